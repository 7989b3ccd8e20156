from django.contrib import admin

from .models import Bulletin


@admin.register(Bulletin)
class BulletinAdmin(admin.ModelAdmin):
    list_display = ("id", "student", "term", "status", "created_at", "completed_at")
    list_filter = ("term", "status")
    search_fields = ("student__first_name", "student__last_name", "student__matricule")
    readonly_fields = ("payload",)
