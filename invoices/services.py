from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction

from core.context import ActionContext, resolve_context
from projects.models import Project
from timetracking.models import TimeEntry, minutes_to_hours

from .models import INVOICE_TRANSITIONS, Invoice, InvoiceItem, InvoiceStatus


logger = logging.getLogger(__name__)


def _strict() -> bool:
    return bool(getattr(settings, "DESKBOOK_STRICT_INVOICE_TRANSITIONS", True))


def _transition(invoice: Invoice, target: str, *, enforce: bool, fields: dict | None = None) -> Invoice:
    source = InvoiceStatus(invoice.status)
    if enforce:
        INVOICE_TRANSITIONS.check(source, InvoiceStatus(target))

    invoice.status = target
    changes = dict(fields or {})
    for name, value in changes.items():
        setattr(invoice, name, value)
    invoice.save(update_fields=["status", *changes])

    logger.info("invoice_status_changed id=%s number=%s from=%s to=%s", invoice.pk, invoice.number, source, target)
    return invoice


def allocate_invoice_number(today: date | None = None) -> str:
    """Return the next free YYYY-NNN number for the year of ``today``."""
    return Invoice.next_number(today)


@transaction.atomic
def create_invoice_from_project(project: Project, *, ctx: ActionContext | None = None) -> Invoice:
    """Draft an invoice for a project.

    Fixed-price projects get one flat line at the agreed price. Hourly projects
    get one line for all billable, unbilled time at the project rate, and those
    entries are stamped with the invoice so they are never billed twice.
    """
    ctx = resolve_context(ctx)
    if not project.can_be_invoiced():
        raise ValidationError(
            f"Project '{project}' cannot be invoiced while {project.get_status_display().lower()}.",
            code="not_invoiceable",
        )

    today = ctx.today()
    invoice = Invoice.objects.create(
        owner=project.owner,
        client=project.client,
        project=project,
        status=InvoiceStatus.DRAFT,
        issued_at=today,
        due_at=today + timedelta(days=int(getattr(settings, "DESKBOOK_PAYMENT_TERMS_DAYS", 14))),
        vat_rate=Decimal(str(getattr(settings, "DESKBOOK_DEFAULT_VAT_RATE", "19.00"))),
    )

    billed_minutes = 0
    if project.is_hourly():
        if project.hourly_rate:
            entries = list(
                TimeEntry.objects.select_for_update()
                .filter(project=project)
                .billable()
                .unbilled()
                .order_by("work_date", "created_at")
            )
            billed_minutes = sum(e.duration_minutes for e in entries)
            if billed_minutes > 0:
                first, last = entries[0].work_date, entries[-1].work_date
                InvoiceItem.objects.create(
                    invoice=invoice,
                    position=1,
                    description=f"Work time ({first:%d.%m.%Y} to {last:%d.%m.%Y})",
                    quantity=minutes_to_hours(billed_minutes),
                    unit="hours",
                    unit_price=project.hourly_rate,
                )
                now = ctx.current_time()
                TimeEntry.objects.filter(pk__in=[e.pk for e in entries]).update(
                    invoice=invoice, billed_at=now, updated_at=now
                )
    elif project.fixed_price:
        InvoiceItem.objects.create(
            invoice=invoice,
            position=1,
            description=project.title,
            quantity=Decimal("1.00"),
            unit="flat rate",
            unit_price=project.fixed_price,
        )

    invoice.recalc_from_items()
    invoice.save(update_fields=["subtotal", "vat_amount", "total"])

    logger.info(
        "invoice_created_from_project id=%s number=%s project=%s minutes=%s total=%s",
        invoice.pk, invoice.number, project.pk, billed_minutes, invoice.total,
    )
    return invoice


@transaction.atomic
def mark_sent(invoice: Invoice, *, ctx: ActionContext | None = None) -> Invoice:
    ctx = resolve_context(ctx)
    fields = {}
    if not invoice.issued_at:
        fields["issued_at"] = ctx.today()
    return _transition(invoice, InvoiceStatus.SENT, enforce=_strict(), fields=fields)


@transaction.atomic
def cancel_invoice(invoice: Invoice, *, ctx: ActionContext | None = None) -> Invoice:
    return _transition(invoice, InvoiceStatus.CANCELLED, enforce=_strict())


@transaction.atomic
def mark_as_paid(
    invoice: Invoice,
    *,
    paid_at: date | None = None,
    payment_method: str = "",
    ctx: ActionContext | None = None,
) -> Invoice:
    """Record payment.

    With DESKBOOK_STRICT_INVOICE_TRANSITIONS off this forces ``paid`` from any
    state, matching callers that already checked the status themselves.
    """
    ctx = resolve_context(ctx)
    return _transition(
        invoice,
        InvoiceStatus.PAID,
        enforce=_strict(),
        fields={"paid_at": paid_at or ctx.today(), "payment_method": payment_method or ""},
    )


def sweep_overdue_invoices(*, ctx: ActionContext | None = None) -> int:
    """Flag sent invoices past their due date as overdue and remind the owner.

    Each invoice is handled in its own transaction; one failure does not stop the run.
    Returns the number of invoices flagged.
    """
    from reminders.services import create_overdue_invoice_reminder

    ctx = resolve_context(ctx)
    today = ctx.today()
    candidate_ids = list(Invoice.objects.past_due(today).values_list("pk", flat=True))

    flagged = 0
    for pk in candidate_ids:
        try:
            with transaction.atomic():
                invoice = Invoice.objects.select_for_update().get(pk=pk)
                # Paid or cancelled since the candidate query ran.
                if invoice.status != InvoiceStatus.SENT:
                    continue
                _transition(invoice, InvoiceStatus.OVERDUE, enforce=True)
                create_overdue_invoice_reminder(invoice, ctx=ctx)
            flagged += 1
        except Exception:
            logger.exception("invoice_overdue_failed id=%s", pk)

    logger.info("invoice_overdue_sweep today=%s candidates=%s flagged=%s", today, len(candidate_ids), flagged)
    return flagged
