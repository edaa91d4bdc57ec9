# recurring/models.py
from __future__ import annotations

from datetime import date, timedelta

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from core.models import TrackedModel, TrackedQuerySet
from core.recurrence import next_due_date
from crm.models import Client


class TaskFrequency(models.TextChoices):
    WEEKLY = "weekly", "Weekly"
    MONTHLY = "monthly", "Monthly"
    QUARTERLY = "quarterly", "Quarterly"
    YEARLY = "yearly", "Yearly"


# Lead time (days) for the "upcoming" reminder.
DAYS_BEFORE = {
    TaskFrequency.WEEKLY: 2,
    TaskFrequency.MONTHLY: 7,
    TaskFrequency.QUARTERLY: 14,
    TaskFrequency.YEARLY: 30,
}


def days_before(frequency: str) -> int:
    return DAYS_BEFORE[TaskFrequency(frequency)]


class RecurringTaskQuerySet(TrackedQuerySet):
    def active(self):
        return self.filter(active=True)

    def running(self, today: date):
        """Active and not past the end of the contract window."""
        return self.active().filter(Q(ends_at__isnull=True) | Q(ends_at__gte=today))

    def due(self, today: date):
        """Running tasks with an occurrence due, not yet processed today.

        One occurrence per task per day: a task several periods behind catches
        up one step per daily run.
        """
        return self.running(today).filter(next_due_at__lte=today).exclude(last_processed_on=today)


class RecurringTaskManager(models.Manager.from_queryset(RecurringTaskQuerySet)):
    def get_queryset(self):
        return super().get_queryset().alive()


class RecurringTask(TrackedModel):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="recurring_tasks",
    )
    client = models.ForeignKey(
        Client,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="recurring_tasks",
    )

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    frequency = models.CharField(max_length=20, choices=TaskFrequency.choices, default=TaskFrequency.MONTHLY)

    next_due_at = models.DateField()
    last_run_at = models.DateField(null=True, blank=True)
    # Day the scheduled run last raised an occurrence for this task.
    last_processed_on = models.DateField(null=True, blank=True)
    started_at = models.DateField(null=True, blank=True)
    ends_at = models.DateField(null=True, blank=True)

    amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    billing_notes = models.TextField(blank=True, default="")

    active = models.BooleanField(default=True)

    objects = RecurringTaskManager()

    class Meta:
        ordering = ["next_due_at"]
        indexes = [
            models.Index(fields=["active", "next_due_at"], name="rtask_active_due_idx"),
        ]

    def __str__(self) -> str:
        return self.title

    def has_ended(self, today: date | None = None) -> bool:
        today = today or timezone.localdate()
        return self.ends_at is not None and self.ends_at < today

    def is_overdue(self, today: date | None = None) -> bool:
        today = today or timezone.localdate()
        return self.active and self.next_due_at < today

    def is_due_soon(self, today: date | None = None) -> bool:
        today = today or timezone.localdate()
        return self.active and self.next_due_at <= today + timedelta(days=days_before(self.frequency))

    def upcoming_reminder_date(self) -> date:
        return self.next_due_at - timedelta(days=days_before(self.frequency))

    def advance(self, *, today: date | None = None, processed_on: date | None = None) -> None:
        """Move to the next occurrence; deactivate once the contract window has closed."""
        self.last_run_at = self.next_due_at
        self.next_due_at = next_due_date(self.frequency, self.next_due_at)
        fields = ["last_run_at", "next_due_at"]
        if processed_on is not None:
            self.last_processed_on = processed_on
            fields.append("last_processed_on")
        if self.has_ended(today):
            self.active = False
            fields.append("active")
        self.save(update_fields=fields)


class LogAction(models.TextChoices):
    REMINDER_CREATED = "reminder_created", "Reminder created"
    MANUALLY_COMPLETED = "manually_completed", "Manually completed"
    SKIPPED = "skipped", "Skipped"


class RecurringTaskLog(models.Model):
    """Append-only history: one row per processed, completed or skipped occurrence."""

    task = models.ForeignKey(RecurringTask, on_delete=models.CASCADE, related_name="logs")
    due_date = models.DateField()
    action = models.CharField(max_length=30, choices=LogAction.choices)
    reminder = models.ForeignKey(
        "reminders.Reminder",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["task", "due_date"], name="rtasklog_task_due_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.task} · {self.get_action_display()} · {self.due_date}"
