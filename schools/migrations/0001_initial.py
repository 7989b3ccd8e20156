import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="School",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("address", models.TextField(blank=True)),
                ("country", models.CharField(blank=True, max_length=64)),
                ("motto", models.CharField(blank=True, max_length=255)),
            ],
        ),
        migrations.CreateModel(
            name="AcademicYear",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("label", models.CharField(max_length=32)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("school", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="academic_years", to="schools.school")),
            ],
            options={"ordering": ["-start_date"]},
        ),
        migrations.CreateModel(
            name="Term",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("ordinal", models.PositiveSmallIntegerField(choices=[(1, "Trimestre 1"), (2, "Trimestre 2"), (3, "Trimestre 3")])),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("academic_year", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="terms", to="schools.academicyear")),
            ],
            options={"ordering": ["academic_year", "ordinal"]},
        ),
        migrations.AddConstraint(
            model_name="term",
            constraint=models.UniqueConstraint(fields=("academic_year", "ordinal"), name="term_year_ordinal_uniq"),
        ),
        migrations.CreateModel(
            name="Class",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=64)),
                ("level", models.CharField(blank=True, max_length=64)),
                ("academic_year", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="classes", to="schools.academicyear")),
                ("school", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="schools.school")),
            ],
        ),
        migrations.CreateModel(
            name="Subject",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=128)),
                ("school", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="schools.school")),
            ],
        ),
        migrations.CreateModel(
            name="SubjectCoefficient",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("coefficient", models.DecimalField(decimal_places=2, default=1, max_digits=4)),
                ("klass", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="coefficients", to="schools.class")),
                ("subject", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="schools.subject")),
            ],
        ),
        migrations.AddConstraint(
            model_name="subjectcoefficient",
            constraint=models.UniqueConstraint(fields=("klass", "subject"), name="coefficient_class_subject_uniq"),
        ),
        migrations.CreateModel(
            name="Student",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("first_name", models.CharField(max_length=64)),
                ("last_name", models.CharField(max_length=64)),
                ("matricule", models.CharField(max_length=64, unique=True)),
            ],
        ),
        migrations.CreateModel(
            name="Enrollment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("academic_year", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="schools.academicyear")),
                ("klass", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="enrollments", to="schools.class")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="enrollments", to="schools.student")),
            ],
        ),
        migrations.AddConstraint(
            model_name="enrollment",
            constraint=models.UniqueConstraint(fields=("student", "academic_year"), name="enrollment_student_year_uniq"),
        ),
        migrations.CreateModel(
            name="Evaluation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("category", models.CharField(choices=[("DEVOIR", "Devoir"), ("COMPOSITION", "Composition")], max_length=12)),
                ("label", models.CharField(blank=True, max_length=64)),
                ("date", models.DateField()),
                ("klass", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="evaluations", to="schools.class")),
                ("subject", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="schools.subject")),
                ("term", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="evaluations", to="schools.term")),
            ],
        ),
        migrations.CreateModel(
            name="Score",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "value",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=4,
                        validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(20)],
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("evaluation", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="scores", to="schools.evaluation")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="scores", to="schools.student")),
            ],
        ),
        migrations.AddIndex(
            model_name="score",
            index=models.Index(fields=["student", "evaluation"], name="score_student_eval_idx"),
        ),
        migrations.CreateModel(
            name="Absence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("start_time", models.TimeField(blank=True, null=True)),
                ("end_time", models.TimeField(blank=True, null=True)),
                ("justified", models.BooleanField(default=False)),
                ("klass", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="schools.class")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="absences", to="schools.student")),
            ],
        ),
        migrations.CreateModel(
            name="CouncilComment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("teacher_comment", models.TextField(blank=True)),
                ("principal_comment", models.TextField(blank=True)),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="schools.student")),
                ("term", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="schools.term")),
            ],
        ),
        migrations.AddConstraint(
            model_name="councilcomment",
            constraint=models.UniqueConstraint(fields=("student", "term"), name="comment_student_term_uniq"),
        ),
    ]
