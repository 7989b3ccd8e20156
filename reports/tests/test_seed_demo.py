from django.core.management import call_command
from django.test import TestCase

from reports.services.builder import build_class_report_cards
from schools.models import Class, Enrollment, Score, Term


class SeedDemoTests(TestCase):
    def test_seeded_year_produces_ranked_cards(self):
        call_command("seed_demo", "--students", "4", "--seed", "7", "--skip-term3")
        klass = Class.objects.get(name="Terminale A")
        t2 = Term.objects.get(academic_year=klass.academic_year, ordinal=2)

        cards = build_class_report_cards(klass, t2)
        self.assertEqual(len(cards), 4)
        self.assertEqual([c.rank for c in cards], ["1/4", "2/4", "3/4", "4/4"])
        self.assertTrue(all(len(c.subjects) == 8 for c in cards))
        self.assertTrue(all(result.average is not None for c in cards for result in c.subjects))

    def test_second_run_does_not_duplicate(self):
        call_command("seed_demo", "--students", "2", "--seed", "1", "--skip-term3")
        scores = Score.objects.count()
        call_command("seed_demo", "--students", "2", "--seed", "1", "--skip-term3")
        self.assertEqual(Score.objects.count(), scores)
        self.assertEqual(Enrollment.objects.count(), 2)
