from django.conf import settings
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import serializers, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from reports.models import Bulletin
from reports.services.builder import (
    build_class_report_cards,
    build_student_report,
    build_subject_sheet,
    report_card_summary,
)
from reports.services.metrics import get_metrics, mark_failed, mark_pending, reset_metrics
from reports.tasks import issue_bulletin
from schools.models import Class, Enrollment, Student, Subject, Term


class ClassTermQuerySerializer(serializers.Serializer):
    class_id = serializers.IntegerField()
    term_id = serializers.IntegerField()


class SubjectSheetQuerySerializer(ClassTermQuerySerializer):
    subject_id = serializers.IntegerField()


class StudentGradesQuerySerializer(serializers.Serializer):
    term_id = serializers.IntegerField()


class BulletinRequestSerializer(serializers.Serializer):
    student_id = serializers.IntegerField(required=True)
    term_id = serializers.IntegerField(required=True)
    force_new = serializers.BooleanField(required=False, default=False)


def _class_and_term(validated):
    klass = get_object_or_404(Class, pk=validated["class_id"])
    term = get_object_or_404(Term.objects.select_related("academic_year"), pk=validated["term_id"])
    if klass.academic_year_id != term.academic_year_id:
        raise serializers.ValidationError({"detail": "Le trimestre n'appartient pas à l'année scolaire de la classe."})
    return klass, term


class SubjectSheetView(APIView):
    """Notes d'une matière pour toute la classe (gestion des notes)."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = SubjectSheetQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        klass, term = _class_and_term(serializer.validated_data)
        subject = get_object_or_404(Subject, pk=serializer.validated_data["subject_id"])
        rows = build_subject_sheet(klass, term, subject)
        return Response({"class_id": klass.id, "term": term.name, "subject": subject.name, "rows": rows})


class StudentGradesView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        serializer = StudentGradesQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        student = get_object_or_404(Student, pk=pk)
        term = get_object_or_404(Term, pk=serializer.validated_data["term_id"])
        try:
            card = build_student_report(student, term)
        except Enrollment.DoesNotExist:
            return Response(
                {"detail": "Aucune inscription de cet élève pour l'année du trimestre."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(report_card_summary(card))


class ClassReportCardsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = ClassTermQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        klass, term = _class_and_term(serializer.validated_data)
        cards = build_class_report_cards(klass, term)
        return Response(
            {
                "class_id": klass.id,
                "term": term.name,
                "count": len(cards),
                "report_cards": [report_card_summary(card) for card in cards],
            }
        )


class RankingView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = ClassTermQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        klass, term = _class_and_term(serializer.validated_data)
        cards = build_class_report_cards(klass, term)
        rankings = [
            {
                "student_id": card.student.student_id,
                "name": card.student.full_name,
                "average": card.general_average,
                "rank": card.rank,
            }
            for card in cards
            if card.rank
        ]
        return Response({"class_id": klass.id, "term": term.name, "rankings": rankings})


class IssueBulletinView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = BulletinRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        force_new = serializer.validated_data.get("force_new", False)
        student = get_object_or_404(Student, pk=serializer.validated_data["student_id"])
        term = get_object_or_404(Term, pk=serializer.validated_data["term_id"])
        if not Enrollment.objects.filter(student=student, academic_year_id=term.academic_year_id).exists():
            return Response(
                {"detail": "Inscription manquante pour cet élève/trimestre."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        with transaction.atomic():
            existing = None
            if not force_new:
                existing = (
                    Bulletin.objects.select_for_update()
                    .filter(student=student, term=term)
                    .order_by("-created_at", "-id")
                    .first()
                )
            enqueue = True
            if existing:
                prev_status = existing.status
                if existing.status == "READY":
                    return Response({"id": existing.id, "status": existing.status}, status=status.HTTP_200_OK)
                if existing.status == "PENDING":
                    enqueue = False  # déjà en file, on ne duplique pas
                bulletin = existing
                bulletin.status = "PENDING"
                bulletin.payload = {}
                bulletin.completed_at = None
                bulletin.save(update_fields=["status", "payload", "completed_at"])
                if prev_status != "PENDING":
                    mark_pending(bulletin.id)
            else:
                bulletin = Bulletin.objects.create(student=student, term=term, status="PENDING")
                mark_pending(bulletin.id)

        try:
            if getattr(settings, "CELERY_TASK_ALWAYS_EAGER", False):
                issue_bulletin.apply(args=[bulletin.id]).get()
                bulletin.refresh_from_db()
                return Response(
                    {"id": bulletin.id, "status": bulletin.status, "payload": bulletin.payload},
                    status=status.HTTP_200_OK,
                )
            if enqueue:
                issue_bulletin.delay(bulletin.id)
        except Exception as exc:
            bulletin.status = "FAILED"
            bulletin.completed_at = timezone.now()
            bulletin.save(update_fields=["status", "completed_at"])
            mark_failed(bulletin.id)
            return Response({"detail": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({"id": bulletin.id, "status": bulletin.status}, status=status.HTTP_202_ACCEPTED)


class BulletinDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        bulletin = get_object_or_404(Bulletin, pk=pk)
        return Response(
            {
                "id": bulletin.id,
                "student_id": bulletin.student_id,
                "term_id": bulletin.term_id,
                "status": bulletin.status,
                "payload": bulletin.payload,
                "completed_at": bulletin.completed_at,
            }
        )


class MetricsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        metrics = get_metrics()
        if metrics is None:
            return Response({"detail": "Métriques indisponibles"}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response(metrics)


class ResetMetricsView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        reset_metrics()
        return Response({"detail": "Métriques réinitialisées"}, status=status.HTTP_200_OK)
