from django.contrib import admin

from core.admin_mixins import IncludeSoftDeletedAdminMixin, apply_gated_action
from core.context import ActionContext

from . import services
from .models import Reminder, WebhookDelivery


@admin.action(description="Complete")
def complete(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda r, req: services.complete(r, ctx=ActionContext(actor=req.user)),
        is_available=lambda r: r.completed_at is None,
        verb="Reminders completed",
    )


@admin.action(description="Snooze 24 hours")
def snooze(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda r, req: services.snooze(r, hours=24, ctx=ActionContext(actor=req.user)),
        is_available=lambda r: r.completed_at is None,
        verb="Reminders snoozed",
    )


@admin.action(description="Reopen")
def reopen(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda r, req: services.reopen(r, ctx=ActionContext(actor=req.user)),
        is_available=lambda r: r.completed_at is not None,
        verb="Reminders reopened",
    )


@admin.register(Reminder)
class ReminderAdmin(IncludeSoftDeletedAdminMixin, admin.ModelAdmin):
    list_display = ("title", "due_at", "priority", "recurrence", "remindable_kind", "system_type", "completed_at", "notified_at")
    list_filter = ("priority", "recurrence", "is_system", "system_type", "remindable_kind")
    search_fields = ("title", "description")
    date_hierarchy = "due_at"
    readonly_fields = ("is_system", "system_type", "occurrence_date", "completed_at", "notified_at", "created_at", "updated_at")
    actions = [complete, snooze, reopen]


@admin.register(WebhookDelivery)
class WebhookDeliveryAdmin(admin.ModelAdmin):
    list_display = ("created_at", "event", "is_ok", "status_code", "url", "reminder")
    list_filter = ("is_ok", "event")
    search_fields = ("url", "error")
    date_hierarchy = "created_at"
    readonly_fields = ("created_at", "event", "url", "reminder", "is_ok", "status_code", "error")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
