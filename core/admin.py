from django.contrib import admin

from .models import JobRun


@admin.register(JobRun)
class JobRunAdmin(admin.ModelAdmin):
    list_display = ("created_at", "job", "command", "is_ok", "duration_ms", "run_id")
    list_filter = ("is_ok", "job")
    search_fields = ("job", "command", "run_id", "output_text")
    date_hierarchy = "created_at"
    readonly_fields = ("created_at", "job", "command", "run_id", "is_ok", "duration_ms", "output_text")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
