import logging

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from reports.models import Bulletin
from reports.services.metrics import mark_pending
from reports.tasks import issue_bulletin
from schools.models import Class, Enrollment, Term

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Enqueue issuance of the bulletins of a class (or a list of students) for one term."

    def add_arguments(self, parser):
        parser.add_argument("--term-id", dest="term_id", type=int, required=True, help="Trimestre à éditer.")
        parser.add_argument("--class-id", dest="class_id", type=int, help="Classe (sinon toutes les classes de l'année).")
        parser.add_argument(
            "--student-ids",
            nargs="+",
            type=int,
            dest="student_ids",
            help="Liste d'IDs d'élèves à traiter (sinon tous les inscrits).",
        )
        parser.add_argument(
            "--batch-size",
            dest="batch_size",
            type=int,
            default=500,
            help="Taille des lots pour l'enqueue (défaut: 500).",
        )
        parser.add_argument(
            "--queue",
            dest="queue",
            default="bulletins",
            help="Nom de la file Celery à utiliser (défaut: bulletins).",
        )

    def handle(self, *args, **options):
        term = Term.objects.filter(pk=options["term_id"]).first()
        if term is None:
            raise CommandError(f"Trimestre inconnu: {options['term_id']}")
        batch_size = options["batch_size"]
        if batch_size <= 0:
            raise CommandError("--batch-size doit être positif.")
        queue = options["queue"]

        enrollments = Enrollment.objects.filter(academic_year_id=term.academic_year_id)
        if options.get("class_id"):
            if not Class.objects.filter(pk=options["class_id"], academic_year_id=term.academic_year_id).exists():
                raise CommandError(f"Classe {options['class_id']} absente de l'année du trimestre.")
            enrollments = enrollments.filter(klass_id=options["class_id"])
        if options.get("student_ids"):
            enrollments = enrollments.filter(student_id__in=options["student_ids"])

        student_ids = list(enrollments.order_by("student_id").values_list("student_id", flat=True))
        total = len(student_ids)
        if total == 0:
            self.stdout.write(self.style.WARNING("Aucun élève inscrit trouvé."))
            return

        self.stdout.write(f"Enqueue {total} bulletins ({term.name}) par lots de {batch_size} sur la queue '{queue}'")

        created = 0
        enqueued = 0
        for offset in range(0, total, batch_size):
            batch = student_ids[offset : offset + batch_size]
            to_enqueue = []
            with transaction.atomic():
                for student_id in batch:
                    existing_qs = Bulletin.objects.filter(student_id=student_id, term=term).order_by("-created_at", "-id")
                    bulletin = existing_qs.first()
                    if bulletin is not None:
                        count = existing_qs.count()
                        if count > 1:
                            logger.warning(
                                "Multiple bulletins found, using latest",
                                extra={"student": student_id, "term": term.id, "count": count},
                            )
                        prev_status = bulletin.status
                        bulletin.status = "PENDING"
                        bulletin.payload = {}
                        bulletin.completed_at = None
                        bulletin.save(update_fields=["status", "payload", "completed_at"])
                        if prev_status != "PENDING":
                            mark_pending(bulletin.id)
                    else:
                        bulletin = Bulletin.objects.create(student_id=student_id, term=term, status="PENDING")
                        mark_pending(bulletin.id)
                        created += 1
                    to_enqueue.append(bulletin.id)
            for bulletin_id in to_enqueue:
                issue_bulletin.apply_async(args=[bulletin_id], queue=queue)
                enqueued += 1
            self.stdout.write(f"Lot {offset // batch_size + 1}: {len(batch)} élèves traités, {enqueued} tâches en file.")

        self.stdout.write(self.style.SUCCESS(f"Terminé. Bulletins créés: {created}. Tâches enqueued: {enqueued}."))
