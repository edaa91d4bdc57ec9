from django.contrib import admin

from core.admin_mixins import IncludeSoftDeletedAdminMixin

from .models import TimeEntry


@admin.register(TimeEntry)
class TimeEntryAdmin(IncludeSoftDeletedAdminMixin, admin.ModelAdmin):
    list_display = ("work_date", "project", "duration_minutes", "billable", "invoice", "billed_at")
    list_filter = ("billable", ("invoice", admin.EmptyFieldListFilter))
    search_fields = ("description", "project__title")
    date_hierarchy = "work_date"
    readonly_fields = ("invoice", "billed_at", "created_at", "updated_at")
