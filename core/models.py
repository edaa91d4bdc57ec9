# core/models.py
from __future__ import annotations

import uuid

from django.db import models
from django.utils import timezone


class TrackedQuerySet(models.QuerySet):
    """QuerySet with soft-delete semantics."""

    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def dead(self):
        return self.filter(deleted_at__isnull=False)

    def delete(self):
        """Soft-delete in bulk (guardrail)."""
        now = timezone.now()
        return self.update(deleted_at=now, updated_at=now)


class TrackedManager(models.Manager.from_queryset(TrackedQuerySet)):
    """Default manager: hides soft-deleted rows."""

    def get_queryset(self):
        return super().get_queryset().alive()


class TrackedModel(models.Model):
    """
    Base model for Deskbook records.

    - UUID primary key, so reminders can link to any record by (kind, id).
    - updated_at: 'last modified' timestamp, bumped by save().
    - deleted_at: soft delete tombstone.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(default=timezone.now, editable=False)

    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = TrackedManager()
    all_objects = models.Manager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        self.updated_at = timezone.now()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)

    def soft_delete(self, *, save: bool = True):
        """Mark as deleted (tombstone)."""
        self.deleted_at = timezone.now()
        if save:
            self.save(update_fields=["deleted_at"])

    def delete(self, using=None, keep_parents=False, *, hard: bool = False):
        """
        Guardrail: default to soft-delete.

        Pass hard=True ONLY for true data removal (rare; typically admin/maintenance only).
        """
        if hard:
            return super().delete(using=using, keep_parents=keep_parents)
        self.soft_delete(save=True)
        return (1, {self.__class__.__name__: 1})


class JobRun(models.Model):
    """Evidence of a scheduled job execution (one row per job per tick)."""

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    job = models.CharField(max_length=80)
    command = models.CharField(max_length=120)
    run_id = models.CharField(max_length=40, blank=True, default="")
    is_ok = models.BooleanField(default=False)
    duration_ms = models.PositiveIntegerField(default=0)
    output_text = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["job", "created_at"], name="core_jobrun_job_created_idx"),
        ]

    def __str__(self) -> str:
        state = "ok" if self.is_ok else "failed"
        return f"{self.job} · {state} · {self.created_at:%Y-%m-%d %H:%M}"
