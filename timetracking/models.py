# timetracking/models.py
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Sum
from django.utils import timezone

from core.models import TrackedModel, TrackedQuerySet
from projects.models import Project


def minutes_to_hours(minutes: int) -> Decimal:
    return (Decimal(minutes or 0) / Decimal("60")).quantize(Decimal("0.01"))


class TimeEntryQuerySet(TrackedQuerySet):
    def billable(self):
        return self.filter(billable=True)

    def unbilled(self):
        return self.filter(invoice__isnull=True)

    def total_minutes(self) -> int:
        return self.aggregate(total=Sum("duration_minutes"))["total"] or 0

    def total_hours(self) -> Decimal:
        return minutes_to_hours(self.total_minutes())


class TimeEntryManager(models.Manager.from_queryset(TimeEntryQuerySet)):
    def get_queryset(self):
        return super().get_queryset().alive()


class TimeEntry(TrackedModel):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="time_entries",
    )
    project = models.ForeignKey(Project, on_delete=models.PROTECT, related_name="time_entries")

    description = models.TextField(blank=True, default="")
    work_date = models.DateField(default=timezone.localdate)

    # Either a start/end pair (duration derived on save) or a bare duration.
    started_at = models.DateTimeField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    duration_minutes = models.PositiveIntegerField(default=0)

    billable = models.BooleanField(default=True)

    # Set once the entry is billed; billed time is never billed again.
    invoice = models.ForeignKey(
        "invoices.Invoice",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="time_entries",
    )
    billed_at = models.DateTimeField(null=True, blank=True)

    objects = TimeEntryManager()

    class Meta:
        ordering = ["-work_date", "-created_at"]
        verbose_name_plural = "time entries"
        indexes = [
            models.Index(fields=["project", "billable", "invoice"], name="time_project_unbilled_idx"),
            models.Index(fields=["work_date"], name="time_work_date_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.project} · {self.work_date} · {self.hours}h"

    @property
    def hours(self) -> Decimal:
        return minutes_to_hours(self.duration_minutes)

    @property
    def is_billed(self) -> bool:
        return self.invoice_id is not None

    def clean(self):
        super().clean()
        if self.started_at and self.ended_at and self.ended_at <= self.started_at:
            raise ValidationError({"ended_at": "End time must be after the start time."})

    def save(self, *args, **kwargs):
        if self.started_at and self.ended_at and self.ended_at > self.started_at:
            self.duration_minutes = int((self.ended_at - self.started_at).total_seconds() // 60)
            self.work_date = timezone.localtime(self.started_at).date()
        super().save(*args, **kwargs)
