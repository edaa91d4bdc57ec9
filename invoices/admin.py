from django.contrib import admin

from core.admin_mixins import IncludeSoftDeletedAdminMixin, apply_gated_action
from core.context import ActionContext

from . import services
from .models import Invoice, InvoiceItem, InvoiceStatus, can_transition_to


def _gate(target):
    return lambda invoice: can_transition_to(invoice.status, target)


@admin.action(description="Mark as sent")
def mark_sent(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda inv, r: services.mark_sent(inv, ctx=ActionContext(actor=r.user)),
        is_available=_gate(InvoiceStatus.SENT),
        verb="Invoices sent",
    )


@admin.action(description="Mark as paid")
def mark_as_paid(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda inv, r: services.mark_as_paid(inv, ctx=ActionContext(actor=r.user)),
        is_available=_gate(InvoiceStatus.PAID),
        verb="Invoices paid",
    )


@admin.action(description="Cancel invoice")
def cancel_invoice(modeladmin, request, queryset):
    apply_gated_action(
        modeladmin, request, queryset,
        action=lambda inv, r: services.cancel_invoice(inv, ctx=ActionContext(actor=r.user)),
        is_available=_gate(InvoiceStatus.CANCELLED),
        verb="Invoices cancelled",
    )


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    fields = ("position", "description", "quantity", "unit", "unit_price")


@admin.register(Invoice)
class InvoiceAdmin(IncludeSoftDeletedAdminMixin, admin.ModelAdmin):
    list_display = ("number", "client", "status", "issued_at", "due_at", "paid_at", "total")
    list_filter = ("status",)
    search_fields = ("number", "client__company_name", "client__last_name")
    date_hierarchy = "due_at"
    readonly_fields = ("number", "status", "paid_at", "vat_amount", "total", "created_at", "updated_at")
    inlines = [InvoiceItemInline]
    actions = [mark_sent, mark_as_paid, cancel_invoice]

    def save_model(self, request, obj, form, change):
        obj.recalc_totals()
        super().save_model(request, obj, form, change)

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        invoice = form.instance
        if invoice.items.exists():
            invoice.recalc_from_items()
            invoice.save(update_fields=["subtotal", "vat_amount", "total"])
