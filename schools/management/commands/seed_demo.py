import random
from datetime import date, time
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from schools.models import (
    Absence,
    AcademicYear,
    Class,
    CouncilComment,
    Enrollment,
    Evaluation,
    School,
    Score,
    Student,
    Subject,
    SubjectCoefficient,
    Term,
)


class Command(BaseCommand):
    help = "Peuple la base avec une année de démonstration (3 trimestres, devoirs, compositions, notes). Sans duplication si déjà présent."

    def add_arguments(self, parser):
        parser.add_argument("--students", type=int, default=10, help="Nombre d'élèves à créer (défaut: 10)")
        parser.add_argument("--class-name", type=str, default="Terminale A", help="Nom de la classe à utiliser/créer")
        parser.add_argument("--seed", type=int, default=None, help="Graine aléatoire pour des notes reproductibles")
        parser.add_argument(
            "--skip-term3",
            action="store_true",
            help="Ne pas saisir les notes du trimestre 3 (année en cours).",
        )

    def handle(self, *args, **options):
        rng = random.Random(options["seed"])
        target_students = options["students"]

        with transaction.atomic():
            school, _ = School.objects.get_or_create(
                name="Lycée Horizon Académique",
                defaults={
                    "address": "Avenue des Sciences",
                    "country": "Burkina Faso",
                    "motto": "Unité - Progrès - Justice",
                },
            )
            year, _ = AcademicYear.objects.get_or_create(
                school=school,
                label="2025-2026",
                defaults={"start_date": date(2025, 10, 1), "end_date": date(2026, 6, 30)},
            )
            term_ranges = {
                1: (date(2025, 10, 1), date(2025, 12, 20)),
                2: (date(2026, 1, 5), date(2026, 3, 28)),
                3: (date(2026, 4, 13), date(2026, 6, 30)),
            }
            terms = {}
            for ordinal, (start, end) in term_ranges.items():
                terms[ordinal], _ = Term.objects.get_or_create(
                    academic_year=year,
                    ordinal=ordinal,
                    defaults={"start_date": start, "end_date": end},
                )

            klass, _ = Class.objects.get_or_create(
                school=school,
                academic_year=year,
                name=options["class_name"],
                defaults={"level": "Terminale"},
            )

            subjects_data = [
                ("Mathématiques", Decimal("5")),
                ("Physique-Chimie", Decimal("4")),
                ("SVT", Decimal("3")),
                ("Français", Decimal("4")),
                ("Anglais", Decimal("3")),
                ("Histoire-Géo", Decimal("2")),
                ("Philosophie", Decimal("2")),
                ("EPS", Decimal("1")),
            ]
            subjects = []
            for name, coef in subjects_data:
                subj, _ = Subject.objects.get_or_create(school=school, name=name)
                SubjectCoefficient.objects.get_or_create(klass=klass, subject=subj, defaults={"coefficient": coef})
                subjects.append(subj)

            # Devoir 2n-1, Devoir 2n, Composition n pour chaque trimestre
            evaluations = []
            for ordinal, term in terms.items():
                if ordinal == 3 and options["skip_term3"]:
                    continue
                start, _ = term_ranges[ordinal]
                for subj in subjects:
                    for offset, (category, label) in enumerate(
                        [
                            ("DEVOIR", f"Devoir {2 * ordinal - 1}"),
                            ("DEVOIR", f"Devoir {2 * ordinal}"),
                            ("COMPOSITION", f"Composition {ordinal}"),
                        ]
                    ):
                        evaluation, _ = Evaluation.objects.get_or_create(
                            subject=subj,
                            klass=klass,
                            term=term,
                            label=label,
                            defaults={"category": category, "date": date(start.year, start.month, 10 + 7 * offset)},
                        )
                        evaluations.append(evaluation)

            first_names = ["Awa", "Ibrahim", "Mariam", "Youssef", "Fatou", "Issa", "Aminata", "Paul", "Claire", "Jean"]
            last_names = ["Traoré", "Ouédraogo", "Kaboré", "Zerbo", "Sanogo", "Diallo", "Zongo", "Sawadogo", "Compaoré", "Bationo"]

            created = 0
            for i in range(target_students):
                student, was_created = Student.objects.get_or_create(
                    matricule=f"M{klass.id:02d}{i + 1:04d}",
                    defaults={
                        "first_name": first_names[i % len(first_names)],
                        "last_name": last_names[(i // len(first_names)) % len(last_names)],
                    },
                )
                created += 1 if was_created else 0
                Enrollment.objects.get_or_create(student=student, academic_year=year, defaults={"klass": klass})

                base = rng.uniform(7, 17)
                for evaluation in evaluations:
                    if Score.objects.filter(student=student, evaluation=evaluation).exists():
                        continue
                    value = max(0.0, min(20.0, rng.gauss(base, 2.5)))
                    Score.objects.create(student=student, evaluation=evaluation, value=Decimal(f"{value:.2f}"))

                if i % 3 == 0:
                    Absence.objects.get_or_create(
                        student=student,
                        klass=klass,
                        date=date(2025, 11, 3),
                        defaults={"start_time": time(8, 0), "end_time": time(10, 0), "justified": False},
                    )
                CouncilComment.objects.get_or_create(
                    student=student,
                    term=terms[1],
                    defaults={
                        "teacher_comment": "Travail régulier, peut mieux faire à l'écrit.",
                        "principal_comment": "Trimestre satisfaisant.",
                    },
                )

        self.stdout.write(
            self.style.SUCCESS(
                f"École: {school.name}, Classe: {klass.name}, Élèves créés/nouveaux: {created}/{target_students}"
            )
        )
