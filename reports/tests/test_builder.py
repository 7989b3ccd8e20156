from datetime import date, time

from django.test import TestCase, override_settings

from reports.services.aggregation import Mention
from reports.services.builder import (
    build_bulletin_payload,
    build_class_report_cards,
    build_student_report,
    build_subject_sheet,
    duration_hours,
    load_class_term,
)
from schools.models import Absence, CouncilComment, Enrollment, Score, Student

from .factories import add_evaluation, add_scores, add_term_evaluations, create_year, seed_first_term


class ClassReportCardTests(TestCase):
    def setUp(self):
        self.ctx = seed_first_term(create_year())

    def _cards(self, term_key="t1"):
        return build_class_report_cards(self.ctx["klass"], self.ctx[term_key])

    def test_first_term_cards_in_rank_order(self):
        ibrahim, awa = self._cards()
        self.assertEqual(ibrahim.student.student_id, self.ctx["ibrahim"].id)
        self.assertEqual(ibrahim.general_average, 16.25)
        self.assertEqual(ibrahim.rank, "1/2")
        self.assertIs(ibrahim.mention, Mention.EXCELLENT)
        self.assertEqual(awa.general_average, 12.81)
        self.assertEqual(awa.rank, "2/2")
        self.assertEqual(awa.decision, "passed")

    def test_subjects_ordered_by_name_with_default_coefficient(self):
        data = load_class_term(self.ctx["klass"], self.ctx["t1"])
        self.assertEqual([(s.name, s.coefficient) for s in data.subjects], [("Français", 1.0), ("Mathématiques", 3.0)])
        self.assertEqual([r.last_name for r in data.roster], ["Traoré", "Zongo"])

    def test_undefined_subject_average_is_excluded(self):
        ibrahim = self._cards()[0]
        french = ibrahim.subjects[0]
        self.assertEqual(french.subject_name, "Français")
        self.assertIsNone(french.average)
        self.assertEqual(french.homework_average, 10.0)

    @override_settings(GRADES_MISSING_SUBJECT_POLICY="zero")
    def test_zero_policy_from_settings(self):
        awa_first = self._cards()[0]
        # Ibrahim : (16.25 * 3 + 0) / 4 = 12.19 < 12.81
        self.assertEqual(awa_first.student.student_id, self.ctx["awa"].id)
        ibrahim = self._cards()[1]
        self.assertEqual(ibrahim.general_average, 12.19)

    def test_second_term_carries_first_composition(self):
        ctx = self.ctx
        klass, t2 = ctx["klass"], ctx["t2"]
        math_t2 = add_term_evaluations(klass, ctx["math"], t2)
        french_t2 = (
            add_evaluation(klass, ctx["french"], t2, "Devoir 3", "DEVOIR"),
            add_evaluation(klass, ctx["french"], t2, "Devoir 4", "DEVOIR"),
            # sans trimestre : rattachée par sa date
            add_evaluation(klass, ctx["french"], None, "Composition 2", "COMPOSITION", day=date(2026, 2, 10)),
        )
        add_scores(ctx["awa"], math_t2, [16, 18, 14])
        add_scores(ctx["awa"], french_t2, [12, 12, 12])
        add_scores(ctx["ibrahim"], math_t2, [10, 10, 10])
        add_scores(ctx["ibrahim"], french_t2, [14, 14, 14])

        awa, ibrahim = self._cards("t2")
        self.assertEqual(awa.student.student_id, ctx["awa"].id)
        french, math = awa.subjects
        self.assertEqual(math.average, 16.2)
        self.assertEqual(french.composition, 12.0)
        self.assertEqual(french.average, 11.6)
        self.assertEqual(awa.general_average, 15.05)
        self.assertEqual(awa.rank, "1/2")
        # pas de composition de Français au T1 pour Ibrahim
        self.assertIsNone(ibrahim.subjects[0].average)
        self.assertEqual(ibrahim.subjects[1].average, 10.8)
        self.assertEqual(ibrahim.general_average, 10.8)

    def test_undated_evaluation_outside_terms_is_ignored(self):
        evaluation = add_evaluation(
            self.ctx["klass"], self.ctx["math"], None, "Rattrapage", "DEVOIR", day=date(2026, 7, 15)
        )
        add_scores(self.ctx["awa"], [evaluation], [2])
        data = load_class_term(self.ctx["klass"], self.ctx["t1"])
        self.assertEqual(len(data.scores), 11)

    def test_duplicate_scores_keep_last_entered(self):
        Score.objects.create(student=self.ctx["awa"], evaluation=self.ctx["math_t1"][0], value=20)
        with self.assertLogs("reports.services.builder", level="WARNING") as logs:
            cards = self._cards()
        awa = next(c for c in cards if c.student.student_id == self.ctx["awa"].id)
        # moyenne des devoirs (20 + 14) / 2 = 17 -> (51 + 16) / 4
        self.assertEqual(awa.subjects[1].homework1, 20.0)
        self.assertEqual(awa.subjects[1].average, 16.75)
        self.assertTrue(any("Duplicate scores" in r.getMessage() for r in logs.records))

    def test_unjustified_absences_of_the_term_only(self):
        ctx = self.ctx
        Absence.objects.create(student=ctx["awa"], klass=ctx["klass"], date=date(2025, 11, 3), start_time=time(8, 0), end_time=time(10, 30))
        Absence.objects.create(
            student=ctx["awa"], klass=ctx["klass"], date=date(2025, 11, 4), start_time=time(8, 0), end_time=time(12, 0), justified=True
        )
        Absence.objects.create(student=ctx["awa"], klass=ctx["klass"], date=date(2026, 1, 10), start_time=time(8, 0), end_time=time(9, 0))
        Absence.objects.create(student=ctx["awa"], klass=ctx["klass"], date=date(2025, 11, 5), start_time=time(11, 0), end_time=time(9, 0))
        Absence.objects.create(student=ctx["awa"], klass=ctx["klass"], date=date(2025, 11, 6), start_time=time(8, 0))
        data = load_class_term(ctx["klass"], ctx["t1"])
        self.assertEqual(data.absence_hours, {ctx["awa"].id: 2.5})

    def test_class_averages_ignore_undefined_classmates(self):
        ibrahim, awa = self._cards()
        # Maths : (16.25 + 13.75) / 2 ; Français : Ibrahim n'a pas de moyenne
        self.assertEqual([s.class_average for s in awa.subjects], [10.0, 15.0])
        self.assertEqual([s.class_average for s in ibrahim.subjects], [10.0, 15.0])
        self.assertEqual(awa.class_general_average, 13.75)

    def test_out_of_range_score_is_skipped(self):
        # écriture ORM directe : les validateurs du champ ne sont pas appliqués
        Score.objects.create(student=self.ctx["ibrahim"], evaluation=self.ctx["french_t1"][2], value=25)
        with self.assertLogs("reports.services.builder", level="WARNING") as logs:
            ibrahim = self._cards()[0]
        self.assertIsNone(ibrahim.subjects[0].composition)
        self.assertIsNone(ibrahim.subjects[0].average)
        self.assertEqual(ibrahim.general_average, 16.25)
        self.assertTrue(any("out of range" in r.getMessage() for r in logs.records))

    def test_duration_hours(self):
        self.assertEqual(duration_hours(time(8, 0), time(9, 45)), 1.75)
        self.assertEqual(duration_hours(time(10, 0), time(9, 0)), 0.0)
        self.assertEqual(duration_hours(None, time(9, 0)), 0.0)


class SubjectSheetTests(TestCase):
    def setUp(self):
        self.ctx = seed_first_term(create_year())

    def test_one_row_per_enrolled_student(self):
        rows = build_subject_sheet(self.ctx["klass"], self.ctx["t1"], self.ctx["math"])
        self.assertEqual([row["name"] for row in rows], ["Awa Traoré", "Ibrahim Zongo"])
        awa = rows[0]
        self.assertEqual(awa["homework_average"], 13.0)
        self.assertEqual(awa["average"], 13.75)
        self.assertEqual(awa["coefficient"], 3.0)
        self.assertEqual(awa["appreciation"], "Good")
        self.assertEqual(awa["homework_weighted"], 39.0)
        # (13.75 + 16.25) / 2
        self.assertEqual(awa["class_average"], 15.0)

    def test_incomplete_subject_row(self):
        rows = build_subject_sheet(self.ctx["klass"], self.ctx["t1"], self.ctx["french"])
        ibrahim = rows[1]
        self.assertIsNone(ibrahim["composition"])
        self.assertIsNone(ibrahim["average"])
        self.assertIsNone(ibrahim["appreciation"])
        self.assertEqual(ibrahim["class_average"], 10.0)


class StudentReportTests(TestCase):
    def setUp(self):
        self.ctx = seed_first_term(create_year())

    def test_report_of_one_student(self):
        card = build_student_report(self.ctx["awa"], self.ctx["t1"])
        self.assertEqual(card.general_average, 12.81)
        self.assertEqual(card.rank, "2/2")
        self.assertEqual(card.class_size, 2)

    def test_student_not_enrolled(self):
        outsider = Student.objects.create(first_name="Paul", last_name="Kaboré", matricule="X-1")
        with self.assertRaises(Enrollment.DoesNotExist):
            build_student_report(outsider, self.ctx["t1"])

    def test_bulletin_payload(self):
        ctx = self.ctx
        CouncilComment.objects.create(
            student=ctx["ibrahim"], term=ctx["t1"], teacher_comment="Très bon travail", principal_comment="Continuez"
        )
        card = build_student_report(ctx["ibrahim"], ctx["t1"])
        payload = build_bulletin_payload(card, ctx["klass"], ctx["t1"])
        self.assertEqual(payload["SCHOOL_NAME"], "Lycée Test")
        self.assertEqual(payload["TERM_LABEL"], "Trimestre 1")
        self.assertEqual(payload["STUDENT_NAME"], "Ibrahim Zongo")
        self.assertEqual(payload["AVG"], "16.25")
        self.assertEqual(payload["RANK"], "1/2")
        self.assertEqual(payload["MENTION"], "Félicitations")
        self.assertEqual(payload["DECISION"], "Admis(e)")
        self.assertEqual(payload["TEACHER_COMMENT"], "Très bon travail")
        french = payload["SUBJECTS"][0]
        self.assertEqual(french["composition"], "-")
        self.assertEqual(french["avg"], "-")
        self.assertEqual(french["homework_avg"], "10.00")
        self.assertEqual(french["homework_weighted"], "30.00")
        self.assertEqual(french["class_avg"], "10.00")
        self.assertEqual(payload["SUBJECTS"][1]["class_avg"], "15.00")
        # Français sans moyenne : hors des totaux
        self.assertEqual(payload["TOTAL_COEF"], "3.00")
        self.assertEqual(payload["TOTAL_POINTS"], "48.75")
        self.assertEqual(payload["CLASS_AVG"], "13.75")

    @override_settings(BULLETIN_PLACEHOLDER="NC")
    def test_payload_placeholder_from_settings(self):
        card = build_student_report(self.ctx["ibrahim"], self.ctx["t1"])
        payload = build_bulletin_payload(card, self.ctx["klass"], self.ctx["t1"])
        self.assertEqual(payload["SUBJECTS"][0]["avg"], "NC")
