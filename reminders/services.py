from __future__ import annotations

import logging
from datetime import datetime, timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction

from core.context import ActionContext, resolve_context
from core.recurrence import next_due_date

from .links import as_ref
from .models import Reminder, ReminderPriority, ReminderRecurrence, SystemType
from .notifications import ReminderNotifier, get_notifier


logger = logging.getLogger(__name__)


def _actor_user(ctx: ActionContext):
    actor = ctx.actor
    if actor is not None and getattr(actor, "is_authenticated", False):
        return actor
    return None


def _spawn_successor(reminder: Reminder) -> Reminder | None:
    if not reminder.recurrence:
        return None
    successor = Reminder.objects.create(
        owner=reminder.owner,
        title=reminder.title,
        description=reminder.description,
        due_at=next_due_date(reminder.recurrence, reminder.due_at),
        priority=reminder.priority,
        recurrence=reminder.recurrence,
        remindable_kind=reminder.remindable_kind,
        remindable_id=reminder.remindable_id,
        is_system=reminder.is_system,
        system_type=reminder.system_type,
    )
    logger.info("reminder_successor_created id=%s from=%s due_at=%s", successor.pk, reminder.pk, successor.due_at)
    return successor


def _complete(reminder: Reminder, now: datetime) -> Reminder | None:
    reminder.completed_at = now
    reminder.save(update_fields=["completed_at"])
    logger.info("reminder_completed id=%s", reminder.pk)
    return _spawn_successor(reminder)


@transaction.atomic
def complete(reminder: Reminder, *, ctx: ActionContext | None = None) -> Reminder | None:
    """Mark done. Returns the successor for recurring reminders, else None.

    Completing an already completed reminder is a no-op.
    """
    if reminder.completed_at is not None:
        return None
    ctx = resolve_context(ctx)
    return _complete(reminder, ctx.current_time())


@transaction.atomic
def snooze(reminder: Reminder, *, hours: float = 24, ctx: ActionContext | None = None) -> Reminder:
    """Push ``due_at`` to now + ``hours``; fractional hours are kept (1.5 is 90 minutes)."""
    try:
        delta = timedelta(hours=float(hours))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Snooze hours must be a number.", code="invalid_snooze") from None
    if delta <= timedelta(0):
        raise ValidationError("Snooze hours must be a positive number.", code="invalid_snooze")
    ctx = resolve_context(ctx)
    reminder.due_at = ctx.current_time() + delta
    reminder.save(update_fields=["due_at"])
    logger.info("reminder_snoozed id=%s hours=%s due_at=%s", reminder.pk, hours, reminder.due_at)
    return reminder


@transaction.atomic
def reopen(reminder: Reminder, *, ctx: ActionContext | None = None) -> Reminder:
    reminder.completed_at = None
    reminder.save(update_fields=["completed_at"])
    logger.info("reminder_reopened id=%s", reminder.pk)
    return reminder


def create_for_entity(
    target,
    *,
    title: str,
    due_at: datetime,
    description: str = "",
    priority: str = ReminderPriority.NORMAL,
    recurrence: str | None = None,
    owner=None,
    ctx: ActionContext | None = None,
) -> Reminder:
    """Create a user reminder linked to a client, project, invoice or recurring task.

    ``target`` is a model instance or a RemindableRef; the linked record must exist.
    """
    ctx = resolve_context(ctx)
    ref = as_ref(target)
    linked = ref.resolve()

    if recurrence and recurrence not in ReminderRecurrence.values:
        raise ValidationError(f"Unknown recurrence: {recurrence!r}", code="invalid_recurrence")
    if priority not in ReminderPriority.values:
        raise ValidationError(f"Unknown priority: {priority!r}", code="invalid_priority")

    reminder = Reminder(
        owner=owner or _actor_user(ctx) or getattr(linked, "owner", None),
        title=title,
        description=description,
        due_at=due_at,
        priority=priority,
        recurrence=recurrence or None,
    )
    reminder.link_to(ref)
    reminder.full_clean()
    reminder.save()
    logger.info("reminder_created id=%s kind=%s target=%s due_at=%s", reminder.pk, ref.kind, ref.id, due_at)
    return reminder


def _pending_system_reminder(target, system_type: str) -> Reminder | None:
    return Reminder.objects.pending().system(system_type).linked_to(target).first()


@transaction.atomic
def create_overdue_invoice_reminder(invoice, *, ctx: ActionContext | None = None) -> Reminder:
    """High-priority reminder due now; reuses a pending one for the same invoice."""
    existing = _pending_system_reminder(invoice, SystemType.OVERDUE_INVOICE)
    if existing is not None:
        return existing

    ctx = resolve_context(ctx)
    client = invoice.client
    reminder = Reminder(
        owner=invoice.owner,
        title=f"Invoice {invoice.number} is overdue",
        description=f"Client: {client.display_name()}\nAmount: {invoice.total}\nDue: {invoice.due_at:%Y-%m-%d}",
        due_at=ctx.current_time(),
        priority=ReminderPriority.HIGH,
        is_system=True,
        system_type=SystemType.OVERDUE_INVOICE,
    )
    reminder.link_to(invoice)
    reminder.save()
    logger.info("reminder_created id=%s system_type=%s invoice=%s", reminder.pk, reminder.system_type, invoice.pk)
    return reminder


@transaction.atomic
def create_offer_followup_reminder(
    project,
    *,
    days_after_send: int | None = None,
    ctx: ActionContext | None = None,
) -> Reminder:
    """Follow-up reminder N days after the offer went out; reuses a pending one."""
    existing = _pending_system_reminder(project, SystemType.OFFER_FOLLOWUP)
    if existing is not None:
        return existing

    ctx = resolve_context(ctx)
    if days_after_send is None:
        days_after_send = int(getattr(settings, "DESKBOOK_OFFER_FOLLOWUP_DAYS", 7))
    sent_at = project.offer_sent_at or ctx.current_time()

    reminder = Reminder(
        owner=project.owner,
        title=f"Follow up on offer: {project.title}",
        description=f"Client: {project.client.display_name()}",
        due_at=sent_at + timedelta(days=days_after_send),
        priority=ReminderPriority.NORMAL,
        is_system=True,
        system_type=SystemType.OFFER_FOLLOWUP,
    )
    reminder.link_to(project)
    reminder.save()
    logger.info("reminder_created id=%s system_type=%s project=%s", reminder.pk, reminder.system_type, project.pk)
    return reminder


def process_due_reminders(
    *,
    ctx: ActionContext | None = None,
    notifier: ReminderNotifier | None = None,
) -> int:
    """Notify every due reminder once per due time. Returns the number dispatched.

    Recurring reminders are completed after dispatch and replaced by their
    successor. One-off reminders stay pending until someone completes them.
    """
    ctx = resolve_context(ctx)
    now = ctx.current_time()
    notifier = notifier or get_notifier()

    due_ids = list(Reminder.objects.due(now).order_by("due_at").values_list("pk", flat=True))

    dispatched = 0
    failed = 0
    for pk in due_ids:
        try:
            with transaction.atomic():
                reminder = Reminder.objects.select_for_update().get(pk=pk)
                if not reminder.is_due(now):
                    continue
                notifier.notify(reminder)
                reminder.notified_at = now
                reminder.save(update_fields=["notified_at"])
                if reminder.recurrence:
                    _complete(reminder, now)
            dispatched += 1
        except Exception:
            failed += 1
            logger.exception("reminder_notify_failed id=%s", pk)

    logger.info("reminders_processed due=%s dispatched=%s failed=%s", len(due_ids), dispatched, failed)
    return dispatched
