from django.contrib import admin
from django.urls import path

from reports.api import (
    SubjectSheetView,
    StudentGradesView,
    ClassReportCardsView,
    RankingView,
    IssueBulletinView,
    BulletinDetailView,
    MetricsView,
    ResetMetricsView,
)


urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/grades/sheet/", SubjectSheetView.as_view(), name="subject-sheet"),
    path("api/students/<int:pk>/grades/", StudentGradesView.as_view(), name="student-grades"),
    path("api/report-cards/", ClassReportCardsView.as_view(), name="class-report-cards"),
    path("api/rankings/", RankingView.as_view(), name="class-rankings"),
    path("api/bulletins/", IssueBulletinView.as_view(), name="issue-bulletin"),
    path("api/bulletins/<int:pk>/", BulletinDetailView.as_view(), name="bulletin-detail"),
    path("api/metrics/", MetricsView.as_view(), name="metrics"),
    path("api/metrics/reset/", ResetMetricsView.as_view(), name="reset-metrics"),
]
