from django.contrib import admin

from core.admin_mixins import IncludeSoftDeletedAdminMixin, apply_gated_action
from core.context import ActionContext

from . import services
from .models import RecurringTask, RecurringTaskLog


@admin.action(description="Process now")
def process_now(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda t, r: services.process_task(t, ctx=ActionContext(actor=r.user)),
        is_available=lambda t: t.active,
        verb="Tasks processed",
    )


@admin.action(description="Skip current occurrence")
def skip_occurrence(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda t, r: services.skip_occurrence(t, reason="Skipped from admin", ctx=ActionContext(actor=r.user)),
        is_available=lambda t: t.active,
        verb="Occurrences skipped",
    )


@admin.action(description="Mark current occurrence done")
def complete_occurrence(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda t, r: services.complete_occurrence(t, ctx=ActionContext(actor=r.user)),
        is_available=lambda t: t.active,
        verb="Occurrences completed",
    )


@admin.action(description="Pause")
def pause(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda t, r: services.pause(t),
        is_available=lambda t: t.active,
        verb="Tasks paused",
    )


@admin.action(description="Resume")
def resume(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda t, r: services.resume(t, ctx=ActionContext(actor=r.user)),
        is_available=lambda t: not t.active,
        verb="Tasks resumed",
    )


class RecurringTaskLogInline(admin.TabularInline):
    model = RecurringTaskLog
    extra = 0
    can_delete = False
    fields = ("due_date", "action", "reminder", "notes", "created_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(RecurringTask)
class RecurringTaskAdmin(IncludeSoftDeletedAdminMixin, admin.ModelAdmin):
    list_display = ("title", "client", "frequency", "next_due_at", "last_run_at", "ends_at", "amount", "active")
    list_filter = ("frequency", "active")
    search_fields = ("title", "client__company_name", "client__last_name")
    readonly_fields = ("last_run_at", "last_processed_on", "created_at", "updated_at")
    inlines = [RecurringTaskLogInline]
    actions = [process_now, skip_occurrence, complete_occurrence, pause, resume]


@admin.register(RecurringTaskLog)
class RecurringTaskLogAdmin(admin.ModelAdmin):
    list_display = ("task", "due_date", "action", "created_at")
    list_filter = ("action",)
    search_fields = ("task__title", "notes")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
