"""Reminder -> record links.

A reminder points at one client, project, invoice or recurring task through a
``(kind, id)`` pair. Resolution goes through the app registry so this module
does not import the linked apps.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass

from django.apps import apps
from django.db import models

from core.exceptions import NotFound


class RemindableKind(models.TextChoices):
    CLIENT = "client", "Client"
    PROJECT = "project", "Project"
    INVOICE = "invoice", "Invoice"
    RECURRING_TASK = "recurring_task", "Recurring task"


MODEL_LABELS: dict[str, str] = {
    RemindableKind.CLIENT: "crm.Client",
    RemindableKind.PROJECT: "projects.Project",
    RemindableKind.INVOICE: "invoices.Invoice",
    RemindableKind.RECURRING_TASK: "recurring.RecurringTask",
}

_KIND_BY_LABEL = {label.lower(): kind for kind, label in MODEL_LABELS.items()}


@dataclass(frozen=True)
class RemindableRef:
    kind: str
    id: uuid.UUID

    @classmethod
    def for_instance(cls, obj) -> RemindableRef:
        kind = _KIND_BY_LABEL.get(obj._meta.label_lower)
        if kind is None:
            raise ValueError(f"{obj._meta.label} records cannot carry reminders.")
        return cls(kind=str(kind), id=obj.pk)

    def model(self):
        try:
            return apps.get_model(MODEL_LABELS[self.kind])
        except KeyError:
            raise ValueError(f"Unknown remindable kind: {self.kind!r}") from None

    def resolve(self):
        """Return the linked record; soft-deleted rows count as missing."""
        model = self.model()
        try:
            return model.objects.get(pk=self.id)
        except model.DoesNotExist:
            raise NotFound(f"{self.kind} {self.id} not found") from None


def as_ref(target) -> RemindableRef:
    """Accept either a RemindableRef or a linkable model instance."""
    if isinstance(target, RemindableRef):
        return target
    return RemindableRef.for_instance(target)
