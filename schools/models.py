from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class School(models.Model):
    name = models.CharField(max_length=255)
    address = models.TextField(blank=True)
    country = models.CharField(max_length=64, blank=True)
    motto = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return self.name


class AcademicYear(models.Model):
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name="academic_years")
    label = models.CharField(max_length=32)
    start_date = models.DateField()
    end_date = models.DateField()

    def __str__(self):
        return self.label

    class Meta:
        ordering = ["-start_date"]


class Term(models.Model):
    ORDINAL_CHOICES = [(1, "Trimestre 1"), (2, "Trimestre 2"), (3, "Trimestre 3")]
    academic_year = models.ForeignKey(AcademicYear, on_delete=models.CASCADE, related_name="terms")
    ordinal = models.PositiveSmallIntegerField(choices=ORDINAL_CHOICES)
    start_date = models.DateField()
    end_date = models.DateField()

    @property
    def name(self):
        return f"Trimestre {self.ordinal}"

    def __str__(self):
        return f"{self.name} - {self.academic_year}"

    class Meta:
        ordering = ["academic_year", "ordinal"]
        constraints = [
            models.UniqueConstraint(fields=["academic_year", "ordinal"], name="term_year_ordinal_uniq"),
        ]


class Class(models.Model):
    school = models.ForeignKey(School, on_delete=models.CASCADE)
    academic_year = models.ForeignKey(AcademicYear, on_delete=models.CASCADE, related_name="classes")
    name = models.CharField(max_length=64)
    level = models.CharField(max_length=64, blank=True)

    def __str__(self):
        return f"{self.name} - {self.academic_year}"


class Subject(models.Model):
    school = models.ForeignKey(School, on_delete=models.CASCADE)
    name = models.CharField(max_length=128)

    def __str__(self):
        return self.name


class SubjectCoefficient(models.Model):
    klass = models.ForeignKey(Class, on_delete=models.CASCADE, related_name="coefficients")
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE)
    coefficient = models.DecimalField(max_digits=4, decimal_places=2, default=1)

    def __str__(self):
        return f"{self.subject} ({self.klass.name}) x{self.coefficient}"

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["klass", "subject"], name="coefficient_class_subject_uniq"),
        ]


class Student(models.Model):
    first_name = models.CharField(max_length=64)
    last_name = models.CharField(max_length=64)
    matricule = models.CharField(max_length=64, unique=True)

    def __str__(self):
        return f"{self.first_name} {self.last_name}"


class Enrollment(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="enrollments")
    klass = models.ForeignKey(Class, on_delete=models.CASCADE, related_name="enrollments")
    academic_year = models.ForeignKey(AcademicYear, on_delete=models.CASCADE)

    def __str__(self):
        return f"{self.student} - {self.klass.name}"

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["student", "academic_year"], name="enrollment_student_year_uniq"),
        ]


class Evaluation(models.Model):
    CATEGORY_CHOICES = [("DEVOIR", "Devoir"), ("COMPOSITION", "Composition")]
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE)
    klass = models.ForeignKey(Class, on_delete=models.CASCADE, related_name="evaluations")
    # vide : le trimestre est déduit de la date
    term = models.ForeignKey(Term, on_delete=models.SET_NULL, null=True, blank=True, related_name="evaluations")
    category = models.CharField(max_length=12, choices=CATEGORY_CHOICES)
    label = models.CharField(max_length=64, blank=True)
    date = models.DateField()

    def __str__(self):
        return f"{self.label or self.get_category_display()} - {self.subject}"


class Score(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="scores")
    evaluation = models.ForeignKey(Evaluation, on_delete=models.CASCADE, related_name="scores")
    value = models.DecimalField(
        max_digits=4,
        decimal_places=2,
        validators=[MinValueValidator(0), MaxValueValidator(20)],
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.student} - {self.evaluation}: {self.value}"

    class Meta:
        indexes = [
            models.Index(fields=["student", "evaluation"], name="score_student_eval_idx"),
        ]


class Absence(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="absences")
    klass = models.ForeignKey(Class, on_delete=models.CASCADE)
    date = models.DateField()
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    justified = models.BooleanField(default=False)

    def __str__(self):
        return f"Absence {self.student} {self.date}"


class CouncilComment(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE)
    term = models.ForeignKey(Term, on_delete=models.CASCADE)
    teacher_comment = models.TextField(blank=True)
    principal_comment = models.TextField(blank=True)

    def __str__(self):
        return f"Appréciation {self.student} - {self.term.name}"

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["student", "term"], name="comment_student_term_uniq"),
        ]
