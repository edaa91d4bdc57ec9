# reminders/models.py
from __future__ import annotations

from datetime import datetime, timedelta

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.models import TrackedModel, TrackedQuerySet

from .links import RemindableKind, RemindableRef, as_ref


class ReminderPriority(models.TextChoices):
    LOW = "low", "Low"
    NORMAL = "normal", "Normal"
    HIGH = "high", "High"


class ReminderRecurrence(models.TextChoices):
    DAILY = "daily", "Daily"
    WEEKLY = "weekly", "Weekly"
    MONTHLY = "monthly", "Monthly"
    QUARTERLY = "quarterly", "Quarterly"
    YEARLY = "yearly", "Yearly"


class SystemType(models.TextChoices):
    RECURRING_TASK = "recurring_task", "Recurring task due"
    RECURRING_TASK_UPCOMING = "recurring_task_upcoming", "Recurring task upcoming"
    OVERDUE_INVOICE = "overdue_invoice", "Overdue invoice"
    OFFER_FOLLOWUP = "offer_followup", "Offer follow-up"


class ReminderQuerySet(TrackedQuerySet):
    def pending(self):
        return self.filter(completed_at__isnull=True)

    def completed(self):
        return self.filter(completed_at__isnull=False)

    def overdue(self, now: datetime | None = None):
        return self.pending().filter(due_at__lt=now or timezone.now())

    def upcoming(self, days: int = 7, now: datetime | None = None):
        now = now or timezone.now()
        return self.pending().filter(due_at__gte=now, due_at__lte=now + timedelta(days=days))

    def due(self, now: datetime | None = None):
        """Pending, due, and not yet notified for the current due time."""
        return self.pending().filter(due_at__lte=now or timezone.now()).filter(
            Q(notified_at__isnull=True) | Q(notified_at__lt=F("due_at"))
        )

    def linked_to(self, target):
        ref = as_ref(target)
        return self.filter(remindable_kind=ref.kind, remindable_id=ref.id)

    def system(self, system_type: str):
        return self.filter(is_system=True, system_type=system_type)


class ReminderManager(models.Manager.from_queryset(ReminderQuerySet)):
    def get_queryset(self):
        return super().get_queryset().alive()


class Reminder(TrackedModel):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reminders",
    )

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    due_at = models.DateTimeField()
    priority = models.CharField(max_length=10, choices=ReminderPriority.choices, default=ReminderPriority.NORMAL)
    recurrence = models.CharField(max_length=20, choices=ReminderRecurrence.choices, null=True, blank=True)

    remindable_kind = models.CharField(max_length=20, choices=RemindableKind.choices, blank=True, default="")
    remindable_id = models.UUIDField(null=True, blank=True)

    is_system = models.BooleanField(default=False)
    system_type = models.CharField(max_length=40, choices=SystemType.choices, blank=True, default="")
    # Recurring-task occurrence this system reminder was raised for.
    occurrence_date = models.DateField(null=True, blank=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    notified_at = models.DateTimeField(null=True, blank=True)

    objects = ReminderManager()

    class Meta:
        ordering = ["due_at"]
        indexes = [
            models.Index(fields=["completed_at", "due_at"], name="rem_pending_due_idx"),
            models.Index(fields=["remindable_kind", "remindable_id"], name="rem_link_idx"),
            models.Index(fields=["system_type", "occurrence_date"], name="rem_system_occ_idx"),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def is_overdue_at(self, now: datetime) -> bool:
        return self.completed_at is None and self.due_at < now

    @property
    def is_overdue(self) -> bool:
        return self.is_overdue_at(timezone.now())

    def is_due(self, now: datetime) -> bool:
        return (
            self.completed_at is None
            and self.due_at <= now
            and (self.notified_at is None or self.notified_at < self.due_at)
        )

    @property
    def remindable(self) -> RemindableRef | None:
        if not self.remindable_kind or self.remindable_id is None:
            return None
        return RemindableRef(kind=self.remindable_kind, id=self.remindable_id)

    def link_to(self, target) -> None:
        ref = as_ref(target)
        self.remindable_kind = ref.kind
        self.remindable_id = ref.id


class WebhookDelivery(models.Model):
    """One outbound webhook attempt. The latest row is the channel's last status."""

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    event = models.CharField(max_length=60)
    url = models.URLField(max_length=500)
    reminder = models.ForeignKey(
        Reminder,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="webhook_deliveries",
    )
    is_ok = models.BooleanField(default=False)
    status_code = models.PositiveSmallIntegerField(null=True, blank=True)
    error = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        state = "ok" if self.is_ok else "failed"
        return f"{self.event} · {state} · {self.created_at:%Y-%m-%d %H:%M}"
