from django.db import models

from schools.models import Student, Term


class Bulletin(models.Model):
    """Issued report card: a frozen copy of the computed bulletin for one student and term."""

    STATUS_CHOICES = [
        ("PENDING", "Pending"),
        ("READY", "Ready"),
        ("FAILED", "Failed"),
    ]

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="bulletins")
    term = models.ForeignKey(Term, on_delete=models.CASCADE)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default="PENDING")
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"Bulletin - {self.student} - {self.term.name}"

    class Meta:
        indexes = [
            models.Index(fields=["student", "term"], name="bulletin_student_term_idx"),
        ]
