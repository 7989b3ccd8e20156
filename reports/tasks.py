import logging

from celery import shared_task
from django.utils import timezone

from reports.models import Bulletin
from reports.services.builder import build_bulletin_payload, build_class_report_cards
from reports.services.metrics import mark_failed, mark_ready
from schools.models import Enrollment

logger = logging.getLogger(__name__)


@shared_task(bind=True, autoretry_for=(Exception,), retry_backoff=5, max_retries=3)
def issue_bulletin(self, bulletin_id: int):
    bulletin = Bulletin.objects.select_related("student", "term__academic_year").get(id=bulletin_id)
    logger.info("Start issue_bulletin", extra={"bulletin_id": bulletin_id, "term_id": bulletin.term_id})
    try:
        enrollment = Enrollment.objects.select_related("klass__school").get(
            student=bulletin.student, academic_year_id=bulletin.term.academic_year_id
        )
        cards = build_class_report_cards(enrollment.klass, bulletin.term)
        card = next(c for c in cards if c.student.student_id == bulletin.student_id)
        bulletin.payload = build_bulletin_payload(card, enrollment.klass, bulletin.term)
        bulletin.status = "READY"
        bulletin.completed_at = timezone.now()
        bulletin.save(update_fields=["payload", "status", "completed_at"])
        duration = (bulletin.completed_at - bulletin.created_at).total_seconds() if bulletin.created_at else 0
        mark_ready(bulletin.id, duration)
        logger.info(
            "Bulletin issued",
            extra={"bulletin_id": bulletin_id, "average": card.general_average, "rank": card.rank},
        )
        return bulletin.id
    except Exception:
        bulletin.status = "FAILED"
        bulletin.completed_at = timezone.now()
        bulletin.save(update_fields=["status", "completed_at"])
        mark_failed(bulletin.id)
        raise
