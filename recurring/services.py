from __future__ import annotations

import logging
from datetime import date, datetime, time

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.context import ActionContext, resolve_context
from core.recurrence import first_on_or_after
from reminders.models import Reminder, ReminderPriority, SystemType

from .models import LogAction, RecurringTask, RecurringTaskLog, days_before


logger = logging.getLogger(__name__)


def _reminder_time(day: date) -> datetime:
    """The configured reminder hour on ``day`` in the current timezone."""
    hour = int(getattr(settings, "DESKBOOK_REMINDER_HOUR", 9))
    return timezone.make_aware(datetime.combine(day, time(hour=hour)))


def _describe(task: RecurringTask) -> str:
    parts = []
    if task.client_id:
        parts.append(f"Client: {task.client.display_name()}")
    parts.append(f"Frequency: {task.get_frequency_display()}")
    parts.append(f"Due: {task.next_due_at:%Y-%m-%d}")
    if task.amount:
        parts.append(f"Amount: {task.amount}")
    if task.description:
        parts.append("")
        parts.append(task.description)
    return "\n".join(parts)


def _occurrence_reminder(task: RecurringTask, system_type: str, occurrence: date) -> Reminder | None:
    return Reminder.objects.system(system_type).linked_to(task).filter(occurrence_date=occurrence).first()


def _system_reminder(task: RecurringTask, *, system_type: str, title: str, day: date) -> Reminder:
    reminder = Reminder(
        owner=task.owner,
        title=title,
        description=_describe(task),
        due_at=_reminder_time(day),
        priority=ReminderPriority.NORMAL,
        is_system=True,
        system_type=system_type,
        occurrence_date=task.next_due_at,
    )
    reminder.link_to(task)
    reminder.save()
    return reminder


@transaction.atomic
def process_task(task: RecurringTask, *, ctx: ActionContext | None = None) -> Reminder:
    """Raise the reminder for the current occurrence, log it, and advance.

    A reminder already raised for this occurrence is reused (no second log row).
    """
    ctx = resolve_context(ctx)
    occurrence = task.next_due_at

    reminder = _occurrence_reminder(task, SystemType.RECURRING_TASK, occurrence)
    if reminder is None:
        reminder = _system_reminder(task, system_type=SystemType.RECURRING_TASK, title=task.title, day=occurrence)
        RecurringTaskLog.objects.create(
            task=task,
            due_date=occurrence,
            action=LogAction.REMINDER_CREATED,
            reminder=reminder,
        )
        logger.info("recurring_task_processed id=%s occurrence=%s reminder=%s", task.pk, occurrence, reminder.pk)
    else:
        logger.info("recurring_task_already_processed id=%s occurrence=%s", task.pk, occurrence)

    task.advance(today=ctx.today(), processed_on=ctx.today())
    return reminder


def process_due_tasks(*, ctx: ActionContext | None = None) -> int:
    """Process every active, running task whose occurrence is due. Returns count processed.

    Rerunning with the same clock is a no-op: each task is processed at most once a day.
    """
    ctx = resolve_context(ctx)
    today = ctx.today()
    due_ids = list(RecurringTask.objects.due(today).values_list("pk", flat=True))

    processed = 0
    for pk in due_ids:
        try:
            with transaction.atomic():
                task = RecurringTask.objects.select_for_update().get(pk=pk)
                # Paused, or already handled by a concurrent or earlier run today.
                if not task.active or task.next_due_at > today or task.last_processed_on == today:
                    continue
                process_task(task, ctx=ctx)
            processed += 1
        except Exception:
            logger.exception("recurring_task_failed id=%s", pk)

    logger.info("recurring_tasks_processed today=%s due=%s processed=%s", today, len(due_ids), processed)
    return processed


def create_upcoming_reminders(*, ctx: ActionContext | None = None) -> int:
    """Create the lead-time reminder for tasks coming due. Returns count created."""
    ctx = resolve_context(ctx)
    today = ctx.today()

    created = 0
    for task in RecurringTask.objects.running(today).select_related("client"):
        if not task.is_due_soon(today):
            continue
        try:
            with transaction.atomic():
                if _occurrence_reminder(task, SystemType.RECURRING_TASK_UPCOMING, task.next_due_at) is not None:
                    continue
                reminder = _system_reminder(
                    task,
                    system_type=SystemType.RECURRING_TASK_UPCOMING,
                    title=f"Upcoming: {task.title}",
                    day=task.upcoming_reminder_date(),
                )
            created += 1
            logger.info("recurring_task_upcoming id=%s occurrence=%s reminder=%s", task.pk, task.next_due_at, reminder.pk)
        except Exception:
            logger.exception("recurring_task_upcoming_failed id=%s", task.pk)

    return created


@transaction.atomic
def skip_occurrence(task: RecurringTask, *, reason: str = "", ctx: ActionContext | None = None) -> RecurringTaskLog:
    ctx = resolve_context(ctx)
    entry = RecurringTaskLog.objects.create(
        task=task,
        due_date=task.next_due_at,
        action=LogAction.SKIPPED,
        notes=reason or "",
    )
    task.advance(today=ctx.today())
    logger.info("recurring_task_skipped id=%s occurrence=%s", task.pk, entry.due_date)
    return entry


@transaction.atomic
def complete_occurrence(task: RecurringTask, *, notes: str = "", ctx: ActionContext | None = None) -> RecurringTaskLog:
    """Record the current occurrence as done by hand and advance.

    Pending system reminders raised for that occurrence are completed with it.
    """
    ctx = resolve_context(ctx)
    occurrence = task.next_due_at
    entry = RecurringTaskLog.objects.create(
        task=task,
        due_date=occurrence,
        action=LogAction.MANUALLY_COMPLETED,
        notes=notes or "",
    )
    (
        Reminder.objects.pending()
        .linked_to(task)
        .filter(is_system=True, occurrence_date=occurrence)
        .update(completed_at=ctx.current_time(), updated_at=ctx.current_time())
    )
    task.advance(today=ctx.today())
    logger.info("recurring_task_completed id=%s occurrence=%s", task.pk, occurrence)
    return entry


@transaction.atomic
def pause(task: RecurringTask, *, ctx: ActionContext | None = None) -> RecurringTask:
    task.active = False
    task.save(update_fields=["active"])
    logger.info("recurring_task_paused id=%s", task.pk)
    return task


@transaction.atomic
def resume(task: RecurringTask, *, ctx: ActionContext | None = None) -> RecurringTask:
    """Reactivate; a next_due_at in the past jumps to the first occurrence on or after today."""
    ctx = resolve_context(ctx)
    today = ctx.today()
    task.active = True
    task.next_due_at = first_on_or_after(task.frequency, task.next_due_at, today)
    task.save(update_fields=["active", "next_due_at"])
    logger.info("recurring_task_resumed id=%s next_due_at=%s", task.pk, task.next_due_at)
    return task
