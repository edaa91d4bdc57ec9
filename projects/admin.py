from django.contrib import admin

from core.admin_mixins import IncludeSoftDeletedAdminMixin, apply_gated_action
from core.context import ActionContext
from invoices.services import create_invoice_from_project

from . import services
from .models import Project, ProjectStatus, can_transition_to


def _gate(target):
    return lambda project: can_transition_to(project.status, target)


def _ctx(request) -> ActionContext:
    return ActionContext(actor=request.user)


@admin.action(description="Send offer")
def send_offer(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda p, r: services.send_offer(p, ctx=_ctx(r)),
        is_available=_gate(ProjectStatus.SENT),
        verb="Offers sent",
    )


@admin.action(description="Accept offer")
def accept_offer(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda p, r: services.accept_offer(p, ctx=_ctx(r)),
        is_available=_gate(ProjectStatus.ACCEPTED),
        verb="Offers accepted",
    )


@admin.action(description="Decline offer")
def decline_offer(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda p, r: services.decline_offer(p, ctx=_ctx(r)),
        is_available=_gate(ProjectStatus.DECLINED),
        verb="Offers declined",
    )


@admin.action(description="Start project")
def start_project(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda p, r: services.start_project(p, ctx=_ctx(r)),
        is_available=lambda p: p.status == ProjectStatus.ACCEPTED,
        verb="Projects started",
    )


@admin.action(description="Complete project")
def complete_project(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda p, r: services.complete_project(p, ctx=_ctx(r)),
        is_available=_gate(ProjectStatus.COMPLETED),
        verb="Projects completed",
    )


@admin.action(description="Reopen project")
def reopen_project(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda p, r: services.reopen_project(p, ctx=_ctx(r)),
        is_available=lambda p: p.status == ProjectStatus.COMPLETED,
        verb="Projects reopened",
    )


@admin.action(description="Cancel project")
def cancel_project(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda p, r: services.cancel_project(p, ctx=_ctx(r)),
        is_available=_gate(ProjectStatus.CANCELLED),
        verb="Projects cancelled",
    )


@admin.action(description="Create draft invoice")
def create_invoice(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda p, r: create_invoice_from_project(p, ctx=_ctx(r)),
        is_available=lambda p: p.can_be_invoiced(),
        verb="Invoices drafted",
    )


@admin.register(Project)
class ProjectAdmin(IncludeSoftDeletedAdminMixin, admin.ModelAdmin):
    list_display = ("title", "client", "status", "project_type", "offer_sent_at", "start_date", "end_date")
    list_filter = ("status", "project_type")
    search_fields = ("title", "reference", "client__company_name", "client__last_name")
    readonly_fields = ("status", "offer_sent_at", "offer_accepted_at", "created_at", "updated_at")
    actions = [send_offer, accept_offer, decline_offer, start_project, complete_project, reopen_project, cancel_project, create_invoice]
