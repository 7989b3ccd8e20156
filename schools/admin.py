from django.contrib import admin

from .models import (
    School,
    AcademicYear,
    Term,
    Class,
    Subject,
    SubjectCoefficient,
    Student,
    Enrollment,
    Evaluation,
    Score,
    Absence,
    CouncilComment,
)


@admin.register(School)
class SchoolAdmin(admin.ModelAdmin):
    list_display = ("name", "country")
    search_fields = ("name", "country")


@admin.register(AcademicYear)
class AcademicYearAdmin(admin.ModelAdmin):
    list_display = ("label", "school", "start_date", "end_date")
    list_filter = ("school",)


@admin.register(Term)
class TermAdmin(admin.ModelAdmin):
    list_display = ("ordinal", "academic_year", "start_date", "end_date")
    list_filter = ("academic_year",)


class SubjectCoefficientInline(admin.TabularInline):
    model = SubjectCoefficient
    extra = 0


@admin.register(Class)
class ClassAdmin(admin.ModelAdmin):
    list_display = ("name", "level", "academic_year", "school")
    list_filter = ("school", "academic_year", "level")
    search_fields = ("name", "level", "school__name")
    inlines = [SubjectCoefficientInline]


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ("name", "school")
    list_filter = ("school",)
    search_fields = ("name", "school__name")


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("first_name", "last_name", "matricule")
    search_fields = ("first_name", "last_name", "matricule")


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ("student", "klass", "academic_year")
    list_filter = ("academic_year", "klass")
    search_fields = ("student__first_name", "student__last_name", "student__matricule")


@admin.register(Evaluation)
class EvaluationAdmin(admin.ModelAdmin):
    list_display = ("label", "category", "subject", "klass", "term", "date")
    list_filter = ("category", "term", "klass")
    search_fields = ("label", "subject__name")


@admin.register(Score)
class ScoreAdmin(admin.ModelAdmin):
    list_display = ("student", "evaluation", "value", "created_at")
    list_filter = ("evaluation__term", "evaluation__subject")
    search_fields = ("student__first_name", "student__last_name", "student__matricule")


@admin.register(Absence)
class AbsenceAdmin(admin.ModelAdmin):
    list_display = ("student", "klass", "date", "start_time", "end_time", "justified")
    list_filter = ("justified", "klass")


@admin.register(CouncilComment)
class CouncilCommentAdmin(admin.ModelAdmin):
    list_display = ("student", "term")
    search_fields = ("student__first_name", "student__last_name", "student__matricule")
