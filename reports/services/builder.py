import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from schools.models import Absence, CouncilComment, Enrollment, Evaluation, Score, Subject, SubjectCoefficient, Term
from reports.services.aggregation import (
    ReportCard,
    RosterEntry,
    ScoreRecord,
    SubjectRef,
    SubjectResult,
    TermRef,
    build_report_cards,
    class_subject_average,
    coefficient_for,
    index_scores,
    subject_result,
    weighted_totals,
)
from reports.services.classification import COMPOSITION, HOMEWORK, EvaluationRecord, classify_evaluations

logger = logging.getLogger(__name__)

CATEGORY_MAP = {"DEVOIR": HOMEWORK, "COMPOSITION": COMPOSITION}
DECISION_LABELS = {"passed": "Admis(e)", "failed": "Non Admis(e)"}


@dataclass
class ClassTermData:
    term: TermRef
    terms: List[TermRef]
    roster: List[RosterEntry]
    subjects: List[SubjectRef]
    scores: List[ScoreRecord]
    absence_hours: Dict[int, float] = field(default_factory=dict)
    comments: Dict[int, dict] = field(default_factory=dict)
    fallback_evaluation_ids: set = field(default_factory=set)


def missing_policy() -> str:
    return getattr(settings, "GRADES_MISSING_SUBJECT_POLICY", "exclude")


def to_term_ref(term: Term) -> TermRef:
    return TermRef(
        id=term.id,
        ordinal=term.ordinal,
        academic_year_id=term.academic_year_id,
        start_date=term.start_date,
        end_date=term.end_date,
    )


def _term_for_date(terms: List[TermRef], day) -> Optional[TermRef]:
    for term in terms:
        if term.start_date and term.end_date and term.start_date <= day <= term.end_date:
            return term
    return None


def duration_hours(start, end) -> float:
    """Durée d'une absence en heures ; 0 si une borne manque ou si la fin précède le début."""
    if start is None or end is None:
        return 0.0
    start_minutes = start.hour * 60 + start.minute
    end_minutes = end.hour * 60 + end.minute
    if end_minutes < start_minutes:
        return 0.0
    return (end_minutes - start_minutes) / 60


def load_class_term(klass, term: Term) -> ClassTermData:
    """
    Fetch everything the aggregation needs for one class and one term.
    Scores of the sibling terms of the same year are loaded too, since T2 and T3
    averages carry the earlier compositions forward.
    """
    terms = [to_term_ref(t) for t in Term.objects.filter(academic_year_id=term.academic_year_id).order_by("ordinal")]
    current = next(t for t in terms if t.id == term.id)
    terms_by_id = {t.id: t for t in terms}

    enrollments = (
        Enrollment.objects.filter(klass=klass, academic_year_id=term.academic_year_id)
        .select_related("student")
        .order_by("student__last_name", "student__first_name", "student_id")
    )
    roster = [
        RosterEntry(
            student_id=e.student_id,
            first_name=e.student.first_name,
            last_name=e.student.last_name,
            class_id=klass.id,
        )
        for e in enrollments
    ]
    student_ids = [entry.student_id for entry in roster]

    evaluations = list(
        Evaluation.objects.filter(klass=klass)
        .filter(Q(term_id__in=list(terms_by_id)) | Q(term__isnull=True))
        .order_by("id")
    )
    eval_terms = {}
    for evaluation in evaluations:
        resolved = terms_by_id.get(evaluation.term_id) if evaluation.term_id else _term_for_date(terms, evaluation.date)
        if resolved is None:
            continue
        eval_terms[evaluation.id] = resolved
    evaluations = [e for e in evaluations if e.id in eval_terms]

    classification = classify_evaluations(
        EvaluationRecord(
            id=e.id,
            subject_id=e.subject_id,
            term_id=eval_terms[e.id].id,
            term_ordinal=eval_terms[e.id].ordinal,
            label=e.label,
            category=CATEGORY_MAP.get(e.category),
        )
        for e in evaluations
    )
    eval_by_id = {e.id: e for e in evaluations}

    scores = []
    seen = Counter()
    for score in Score.objects.filter(evaluation_id__in=list(eval_by_id), student_id__in=student_ids).order_by("id"):
        evaluation = eval_by_id[score.evaluation_id]
        try:
            record = ScoreRecord(
                student_id=score.student_id,
                subject_id=evaluation.subject_id,
                term_id=eval_terms[evaluation.id].id,
                kind=classification.kind_of(evaluation.id),
                value=float(score.value),
                label=evaluation.label,
            )
        except ValueError:
            # les validateurs du modèle ne s'appliquent pas aux écritures ORM directes
            logger.warning(
                "Score out of range, ignored",
                extra={"score_id": score.id, "student_id": score.student_id, "value": str(score.value)},
            )
            continue
        seen[(score.student_id, score.evaluation_id)] += 1
        scores.append(record)
    for (student_id, evaluation_id), count in seen.items():
        if count > 1:
            logger.warning(
                "Duplicate scores, keeping the last entered",
                extra={"student_id": student_id, "evaluation_id": evaluation_id, "count": count},
            )

    coefficient_table = {
        (klass.id, row.subject_id): row.coefficient for row in SubjectCoefficient.objects.filter(klass=klass)
    }
    subject_ids = {subject_id for _, subject_id in coefficient_table} | {e.subject_id for e in evaluations}
    subjects = [
        SubjectRef(id=s.id, name=s.name, coefficient=float(coefficient_for(coefficient_table, klass.id, s.id)))
        for s in Subject.objects.filter(id__in=subject_ids).order_by("name", "id")
    ]

    absence_hours = {}
    absences = Absence.objects.filter(
        klass=klass,
        student_id__in=student_ids,
        justified=False,
        date__gte=term.start_date,
        date__lte=term.end_date,
    )
    for absence in absences:
        absence_hours[absence.student_id] = absence_hours.get(absence.student_id, 0.0) + duration_hours(
            absence.start_time, absence.end_time
        )
    absence_hours = {sid: round(hours, 1) for sid, hours in absence_hours.items()}

    comments = {
        c.student_id: {"teacher": c.teacher_comment, "principal": c.principal_comment}
        for c in CouncilComment.objects.filter(term=term, student_id__in=student_ids)
    }

    logger.info(
        "Class term data loaded",
        extra={
            "class_id": klass.id,
            "term_id": term.id,
            "students": len(roster),
            "subjects": len(subjects),
            "scores": len(scores),
            "fallbacks": len(classification.fallback_ids),
        },
    )
    return ClassTermData(
        term=current,
        terms=terms,
        roster=roster,
        subjects=subjects,
        scores=scores,
        absence_hours=absence_hours,
        comments=comments,
        fallback_evaluation_ids=classification.fallback_ids,
    )


def build_class_report_cards(klass, term: Term, data: Optional[ClassTermData] = None) -> List[ReportCard]:
    data = data or load_class_term(klass, term)
    return build_report_cards(
        data.term,
        data.terms,
        data.roster,
        data.subjects,
        data.scores,
        absence_hours=data.absence_hours,
        comments=data.comments,
        missing=missing_policy(),
    )


def build_subject_sheet(klass, term: Term, subject: Subject) -> List[dict]:
    """Tableau de saisie/consultation d'une matière : une ligne par élève inscrit."""
    data = load_class_term(klass, term)
    subject_ref = next((s for s in data.subjects if s.id == subject.id), None)
    if subject_ref is None:
        subject_ref = SubjectRef(id=subject.id, name=subject.name)
    index = index_scores(data.scores)
    results = [subject_result(entry.student_id, subject_ref, data.term, data.terms, index) for entry in data.roster]
    class_average = class_subject_average(results)
    rows = []
    for entry, result in zip(data.roster, results):
        row = {"student_id": entry.student_id, "name": entry.full_name}
        row.update(subject_row(replace(result, class_average=class_average)))
        rows.append(row)
    return rows


def build_student_report(student, term: Term) -> ReportCard:
    enrollment = Enrollment.objects.select_related("klass").get(student=student, academic_year_id=term.academic_year_id)
    cards = build_class_report_cards(enrollment.klass, term)
    return next(card for card in cards if card.student.student_id == student.id)


def subject_row(result: SubjectResult) -> dict:
    return {
        "subject_id": result.subject_id,
        "subject": result.subject_name,
        "coefficient": result.coefficient,
        "homework1": result.homework1,
        "homework2": result.homework2,
        "composition": result.composition,
        "homework_average": result.homework_average,
        "homework_weighted": result.homework_weighted,
        "average": result.average,
        "appreciation": result.appreciation.appreciation if result.appreciation else None,
        "class_average": result.class_average,
    }


def report_card_summary(card: ReportCard) -> dict:
    return {
        "student_id": card.student.student_id,
        "name": card.student.full_name,
        "term": card.term.label,
        "general_average": card.general_average,
        "class_general_average": card.class_general_average,
        "rank": card.rank,
        "mention": card.mention.label if card.mention else None,
        "appreciation": card.mention.appreciation if card.mention else None,
        "decision": card.decision,
        "class_size": card.class_size,
        "absence_hours": card.absence_hours,
        "comment": dict(card.comment),
        "subjects": [subject_row(result) for result in card.subjects],
    }


def fmt_decimal(value, placeholder=None):
    if value is None:
        return placeholder if placeholder is not None else getattr(settings, "BULLETIN_PLACEHOLDER", "-")
    return f"{float(value):.2f}"


def build_bulletin_payload(card: ReportCard, klass, term: Term) -> dict:
    """
    Données prêtes à l'affichage pour le moteur de rendu du bulletin (hors périmètre).
    Les moyennes indéfinies sont remplacées par le texte de BULLETIN_PLACEHOLDER.
    """
    school = klass.school
    subjects = []
    for result in card.subjects:
        subjects.append(
            {
                "name": result.subject_name,
                "coef": fmt_decimal(result.coefficient),
                "homework1": fmt_decimal(result.homework1),
                "homework2": fmt_decimal(result.homework2),
                "homework_avg": fmt_decimal(result.homework_average),
                "homework_weighted": fmt_decimal(result.homework_weighted),
                "composition": fmt_decimal(result.composition),
                "avg": fmt_decimal(result.average),
                "class_avg": fmt_decimal(result.class_average),
                "app": result.appreciation.appreciation if result.appreciation else "",
            }
        )
    total_coefficients, total_points = weighted_totals(card.subjects, missing=missing_policy())
    return {
        "SCHOOL_NAME": school.name,
        "SCHOOL_ADDRESS": school.address,
        "SCHOOL_COUNTRY": school.country,
        "SCHOOL_MOTTO": school.motto,
        "ACADEMIC_YEAR": str(term.academic_year),
        "TERM_LABEL": card.term.label,
        "CLASS_NAME": klass.name,
        "CLASS_SIZE": card.class_size,
        "STUDENT_NAME": card.student.full_name,
        "SUBJECTS": subjects,
        "TOTAL_COEF": fmt_decimal(total_coefficients),
        "TOTAL_POINTS": fmt_decimal(total_points),
        "AVG": fmt_decimal(card.general_average),
        "CLASS_AVG": fmt_decimal(card.class_general_average),
        "RANK": card.rank or "",
        "MENTION": card.mention.label if card.mention else "",
        "DECISION": DECISION_LABELS.get(card.decision, ""),
        "ABSENCE_HOURS": card.absence_hours,
        "TEACHER_COMMENT": card.comment.get("teacher", ""),
        "PRINCIPAL_COMMENT": card.comment.get("principal", ""),
        "GENERATED_AT": timezone.now().isoformat(timespec="seconds"),
    }
