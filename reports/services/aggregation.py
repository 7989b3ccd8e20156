"""
Grade aggregation: subject averages, weighted general average, class rank and mention.

Pure computation over already-fetched records. Nothing here touches the database,
the network or any module-level state; callers pass everything in explicitly.
"""

import math
from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

MISSING_EXCLUDE = "exclude"
MISSING_ZERO = "zero"
MISSING_POLICIES = (MISSING_EXCLUDE, MISSING_ZERO)

DEFAULT_COEFFICIENT = 1
HOMEWORK_WEIGHT = 3
PASS_THRESHOLD = 10
SCORE_MIN = 0
SCORE_MAX = 20


class EvaluationKind(str, Enum):
    HOMEWORK_1 = "homework1"
    HOMEWORK_2 = "homework2"
    COMPOSITION = "composition"
    UNCLASSIFIED = "unclassified"


class Mention(Enum):
    # (seuil inclusif, appréciation, mention)
    EXCELLENT = (16, "Excellent", "Félicitations")
    VERY_GOOD = (14, "Very good", "Très Bien")
    GOOD = (12, "Good", "Bien")
    FAIR = (10, "Fair", "Assez Bien")
    ENCOURAGEMENT = (8, "Encouragement", "Encouragements")
    WARNING = (None, "Warning", "Avertissement")

    def __init__(self, threshold, appreciation, label):
        self.threshold = threshold
        self.appreciation = appreciation
        self.label = label


@dataclass(frozen=True)
class TermRef:
    id: int
    ordinal: int
    academic_year_id: int
    start_date: object = None
    end_date: object = None

    def __post_init__(self):
        if self.ordinal not in (1, 2, 3):
            raise ValueError(f"Invalid term ordinal: {self.ordinal!r}")

    @property
    def label(self) -> str:
        return f"Trimestre {self.ordinal}"


@dataclass(frozen=True)
class SubjectRef:
    id: int
    name: str
    coefficient: float = DEFAULT_COEFFICIENT


@dataclass(frozen=True)
class RosterEntry:
    student_id: int
    first_name: str
    last_name: str
    class_id: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class ScoreRecord:
    student_id: int
    subject_id: int
    term_id: int
    kind: EvaluationKind
    value: float
    label: str = ""

    def __post_init__(self):
        if not SCORE_MIN <= self.value <= SCORE_MAX:
            raise ValueError(f"Score out of range [0, 20]: {self.value!r}")


@dataclass(frozen=True)
class SubjectResult:
    subject_id: int
    subject_name: str
    coefficient: float
    homework1: Optional[float]
    homework2: Optional[float]
    composition: Optional[float]
    homework_average: Optional[float]
    average: Optional[float]
    appreciation: Optional[Mention]
    class_average: Optional[float] = None

    @property
    def is_defined(self) -> bool:
        return self.average is not None

    @property
    def homework_weighted(self) -> Optional[float]:
        """Moyenne des devoirs pondérée (x3), telle qu'elle entre dans la moyenne de la matière."""
        if self.homework1 is None or self.homework2 is None:
            return None
        return round2((self.homework1 + self.homework2) / 2 * HOMEWORK_WEIGHT)


@dataclass(frozen=True)
class StudentTermResult:
    student_id: int
    subjects: Tuple[SubjectResult, ...]
    general_average: float


@dataclass(frozen=True)
class RankedEntry:
    key: object
    average: float
    position: int
    total: int

    @property
    def rank(self) -> str:
        return f"{self.position}/{self.total}"


@dataclass(frozen=True)
class ReportCard:
    student: RosterEntry
    term: TermRef
    subjects: Tuple[SubjectResult, ...]
    general_average: float
    rank: Optional[str]
    mention: Optional[Mention]
    decision: Optional[str]
    class_size: int
    absence_hours: float = 0
    comment: Mapping = field(default_factory=dict)
    class_general_average: Optional[float] = None


ScoreIndex = Dict[Tuple[int, int, int, EvaluationKind], float]


def round2(value: Optional[float]) -> Optional[float]:
    """
    Half-up rounding to two decimals of the exact binary value, like the grade screens' toFixed(2).
    7.675 computed in floating point is 7.67499999... and gives 7.67.
    """
    if value is None:
        return None
    return float(Decimal(float(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def coefficient_for(table: Mapping, class_id, subject_id):
    """Coefficient of a subject within a class; unknown pairs weigh 1."""
    coefficient = table.get((class_id, subject_id))
    if coefficient is None:
        return DEFAULT_COEFFICIENT
    return coefficient


def index_scores(scores: Iterable[ScoreRecord]) -> ScoreIndex:
    """
    Index scores by (student, subject, term, kind).
    Unclassified scores take no part in averaging; when the same slot appears twice
    the last one seen wins, so callers pass scores in entry order.
    """
    index: ScoreIndex = {}
    for score in scores:
        if score.kind is EvaluationKind.UNCLASSIFIED:
            continue
        index[(score.student_id, score.subject_id, score.term_id, score.kind)] = float(score.value)
    return index


def homework_average(homework1: Optional[float], homework2: Optional[float]) -> Optional[float]:
    if homework1 is None or homework2 is None:
        return None
    return round2((homework1 + homework2) / 2)


def compute_subject_average(
    ordinal: int,
    homework1: Optional[float],
    homework2: Optional[float],
    composition: Optional[float],
    composition_t1: Optional[float] = None,
    composition_t2: Optional[float] = None,
) -> Optional[float]:
    """
    Subject average for one term, or None when a required score is missing.

    T1: (hw * 3 + c) / 4
    T2: (hw * 3 + c + c1) / 5
    T3: (hw * 3 + c + c1 + c2) / 6
    where hw is the unrounded mean of the two homework scores.
    """
    if ordinal not in (1, 2, 3):
        raise ValueError(f"Invalid term ordinal: {ordinal!r}")
    if homework1 is None or homework2 is None or composition is None:
        return None
    hw = (homework1 + homework2) / 2
    if ordinal == 1:
        return round2((hw * 3 + composition) / 4)
    if composition_t1 is None:
        return None
    if ordinal == 2:
        return round2((hw * 3 + composition + composition_t1) / 5)
    if composition_t2 is None:
        return None
    return round2((hw * 3 + composition + composition_t1 + composition_t2) / 6)


def sibling_term(term: TermRef, terms: Iterable[TermRef], ordinal: int) -> Optional[TermRef]:
    for candidate in terms:
        if candidate.academic_year_id == term.academic_year_id and candidate.ordinal == ordinal:
            return candidate
    return None


def mention_for(average: Optional[float]) -> Optional[Mention]:
    if _is_missing(average):
        return None
    for mention in Mention:
        if mention.threshold is None or average >= mention.threshold:
            return mention
    return Mention.WARNING


def decision_for(average: Optional[float]) -> Optional[str]:
    if _is_missing(average):
        return None
    return "passed" if average >= PASS_THRESHOLD else "failed"


def subject_result(
    student_id: int,
    subject: SubjectRef,
    term: TermRef,
    terms: Sequence[TermRef],
    index: ScoreIndex,
) -> SubjectResult:
    def lookup(term_ref: Optional[TermRef], kind: EvaluationKind) -> Optional[float]:
        if term_ref is None:
            return None
        return index.get((student_id, subject.id, term_ref.id, kind))

    h1 = lookup(term, EvaluationKind.HOMEWORK_1)
    h2 = lookup(term, EvaluationKind.HOMEWORK_2)
    composition = lookup(term, EvaluationKind.COMPOSITION)
    c1 = c2 = None
    if term.ordinal >= 2:
        c1 = lookup(sibling_term(term, terms, 1), EvaluationKind.COMPOSITION)
    if term.ordinal == 3:
        c2 = lookup(sibling_term(term, terms, 2), EvaluationKind.COMPOSITION)

    average = compute_subject_average(term.ordinal, h1, h2, composition, c1, c2)
    return SubjectResult(
        subject_id=subject.id,
        subject_name=subject.name,
        coefficient=subject.coefficient,
        homework1=h1,
        homework2=h2,
        composition=composition,
        homework_average=homework_average(h1, h2),
        average=average,
        appreciation=mention_for(average),
    )


def weighted_totals(results: Iterable[SubjectResult], missing: str = MISSING_EXCLUDE) -> Tuple[float, float]:
    """
    (sum of coefficients, sum of average x coefficient) over the subjects counted in the
    general average. With missing="exclude" an undefined subject is left out of both sums;
    with missing="zero" it counts as a 0 average.
    """
    if missing not in MISSING_POLICIES:
        raise ValueError(f"Unknown missing-subject policy: {missing!r}")
    total_points = 0.0
    total_coefficients = 0.0
    for result in results:
        average = result.average
        if average is None:
            if missing == MISSING_EXCLUDE:
                continue
            average = 0.0
        total_points += average * float(result.coefficient)
        total_coefficients += float(result.coefficient)
    return total_coefficients, total_points


def general_average(results: Iterable[SubjectResult], missing: str = MISSING_EXCLUDE) -> float:
    """Coefficient-weighted mean of the subject averages; no usable subject at all gives 0.0."""
    total_coefficients, total_points = weighted_totals(results, missing=missing)
    if total_coefficients <= 0:
        return 0.0
    return round2(total_points / total_coefficients)


def class_subject_average(results: Iterable[SubjectResult]) -> Optional[float]:
    """Mean of the defined averages of one subject over the class, None when nobody has one."""
    averages = [result.average for result in results if result.average is not None]
    if not averages:
        return None
    return round2(sum(averages) / len(averages))


def class_averages(student_results: Iterable[StudentTermResult]) -> Dict[int, Optional[float]]:
    by_subject: Dict[int, List[SubjectResult]] = {}
    for student in student_results:
        for result in student.subjects:
            by_subject.setdefault(result.subject_id, []).append(result)
    return {subject_id: class_subject_average(results) for subject_id, results in by_subject.items()}


def class_general_average(subjects: Sequence[SubjectRef], averages: Mapping[int, Optional[float]]) -> float:
    """Class averages weighted by coefficient; subjects without a class average are left out."""
    total_points = 0.0
    total_coefficients = 0.0
    for subject in subjects:
        average = averages.get(subject.id)
        if average is None:
            continue
        total_points += average * float(subject.coefficient)
        total_coefficients += float(subject.coefficient)
    if total_coefficients <= 0:
        return 0.0
    return round2(total_points / total_coefficients)


def student_term_result(
    student_id: int,
    term: TermRef,
    terms: Sequence[TermRef],
    subjects: Sequence[SubjectRef],
    index: ScoreIndex,
    missing: str = MISSING_EXCLUDE,
) -> StudentTermResult:
    results = tuple(subject_result(student_id, subject, term, terms, index) for subject in subjects)
    return StudentTermResult(
        student_id=student_id,
        subjects=results,
        general_average=general_average(results, missing=missing),
    )


def rank(entries: Iterable[Tuple[object, Optional[float]]]) -> List[RankedEntry]:
    """
    Rank (key, average) pairs by average, best first.
    Entries without a numeric average are left out; ties keep their input order and
    get consecutive ranks.
    """
    ranked = [(key, float(average)) for key, average in entries if not _is_missing(average)]
    ranked.sort(key=lambda item: item[1], reverse=True)
    total = len(ranked)
    return [
        RankedEntry(key=key, average=average, position=position, total=total)
        for position, (key, average) in enumerate(ranked, start=1)
    ]


def build_report_cards(
    term: TermRef,
    terms: Sequence[TermRef],
    roster: Sequence[RosterEntry],
    subjects: Sequence[SubjectRef],
    scores: Iterable[ScoreRecord],
    absence_hours: Optional[Mapping] = None,
    comments: Optional[Mapping] = None,
    missing: str = MISSING_EXCLUDE,
) -> List[ReportCard]:
    """Report cards of a whole class for one term, in rank order."""
    index = index_scores(scores)
    absence_hours = absence_hours or {}
    comments = comments or {}

    results = {
        entry.student_id: student_term_result(entry.student_id, term, terms, subjects, index, missing=missing)
        for entry in roster
    }
    ranking = rank((entry.student_id, results[entry.student_id].general_average) for entry in roster)
    ranks = {item.key: item.rank for item in ranking}
    order = {item.key: item.position for item in ranking}
    by_id = {entry.student_id: entry for entry in roster}
    subject_class_averages = class_averages(results.values())
    class_overall = class_general_average(subjects, subject_class_averages)

    ordered_ids = sorted(by_id, key=lambda sid: order.get(sid, len(roster) + 1))
    cards = []
    for student_id in ordered_ids:
        result = results[student_id]
        cards.append(
            ReportCard(
                student=by_id[student_id],
                term=term,
                subjects=tuple(
                    replace(item, class_average=subject_class_averages.get(item.subject_id)) for item in result.subjects
                ),
                general_average=result.general_average,
                rank=ranks.get(student_id),
                mention=mention_for(result.general_average),
                decision=decision_for(result.general_average),
                class_size=len(roster),
                absence_hours=absence_hours.get(student_id, 0),
                comment=comments.get(student_id, {}),
                class_general_average=class_overall,
            )
        )
    return cards


def _is_missing(value) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))
