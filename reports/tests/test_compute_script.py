from django.test import SimpleTestCase

from scripts.compute_bulletins import compute


def _export(**overrides):
    cfg = {
        "term_id": 2,
        "terms": [
            {"id": 1, "ordinal": 1, "academic_year_id": 1},
            {"id": 2, "ordinal": 2, "academic_year_id": 1},
        ],
        "subjects": [{"id": 1, "name": "Mathématiques"}, {"id": 2, "name": "Anglais"}],
        "coefficients": [{"class_id": 7, "subject_id": 1, "coefficient": 3}],
        "roster": [
            {"student_id": 1, "first_name": "Awa", "last_name": "Traoré", "class_id": 7},
            {"student_id": 2, "first_name": "Issa", "last_name": "Sanogo", "class_id": 7},
        ],
        "evaluations": [
            {"id": 10, "subject_id": 1, "term_id": 1, "label": "Composition 1", "category": "composition"},
            {"id": 11, "subject_id": 1, "term_id": 2, "label": "Devoir 3", "category": "homework"},
            {"id": 12, "subject_id": 1, "term_id": 2, "label": "Devoir 4", "category": "homework"},
            {"id": 13, "subject_id": 1, "term_id": 2, "label": "Composition 2", "category": "composition"},
            {"id": 20, "subject_id": 2, "term_id": 2, "label": "Interrogation", "category": "homework"},
            {"id": 21, "subject_id": 2, "term_id": 2, "label": "Devoir écrit", "category": "homework"},
        ],
        "scores": [
            {"student_id": 1, "evaluation_id": 10, "value": 10},
            {"student_id": 1, "evaluation_id": 11, "value": 16},
            {"student_id": 1, "evaluation_id": 12, "value": 18},
            {"student_id": 1, "evaluation_id": 13, "value": 14},
            {"student_id": 2, "evaluation_id": 11, "value": 12},
            {"student_id": 2, "evaluation_id": 12, "value": 12},
            {"student_id": 2, "evaluation_id": 13, "value": 12},
            {"student_id": 2, "evaluation_id": 20, "value": 15},
        ],
        "absence_hours": {"2": 3.0},
    }
    cfg.update(overrides)
    return cfg


class ComputeScriptTests(SimpleTestCase):
    def test_ranking_from_export(self):
        cards = compute(_export())
        awa, issa = cards
        # (17 * 3 + 14 + 10) / 5
        self.assertEqual(awa.subjects[0].average, 15.0)
        self.assertEqual(awa.general_average, 15.0)
        self.assertEqual(awa.rank, "1/2")
        # pas de composition T1 pour Issa : aucune matière définie
        self.assertEqual(issa.general_average, 0.0)
        self.assertEqual(issa.rank, "2/2")
        self.assertEqual(issa.absence_hours, 3.0)

    def test_coefficients_from_export(self):
        awa = compute(_export())[0]
        self.assertEqual([(s.subject_name, s.coefficient) for s in awa.subjects], [("Mathématiques", 3.0), ("Anglais", 1.0)])

    def test_fallback_labels_feed_homework(self):
        issa = compute(_export())[1]
        english = issa.subjects[1]
        self.assertEqual(english.homework1, 15.0)
        self.assertIsNone(english.homework2)
        self.assertIsNone(english.average)

    def test_zero_policy(self):
        cards = compute(_export(missing="zero"))
        # (15 * 3 + 0 * 1) / 4
        self.assertEqual(cards[0].general_average, 11.25)
