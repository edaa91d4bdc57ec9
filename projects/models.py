# projects/models.py
from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import TrackedModel
from core.transitions import TransitionTable
from crm.models import Client


class ProjectType(models.TextChoices):
    FIXED = "fixed", "Fixed price"
    HOURLY = "hourly", "Hourly"


class ProjectStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    SENT = "sent", "Sent"
    ACCEPTED = "accepted", "Accepted"
    DECLINED = "declined", "Declined"
    IN_PROGRESS = "in_progress", "In progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


PROJECT_TRANSITIONS = TransitionTable(
    {
        ProjectStatus.DRAFT: [ProjectStatus.SENT, ProjectStatus.CANCELLED],
        ProjectStatus.SENT: [ProjectStatus.ACCEPTED, ProjectStatus.DECLINED, ProjectStatus.CANCELLED],
        ProjectStatus.ACCEPTED: [ProjectStatus.IN_PROGRESS, ProjectStatus.CANCELLED],
        ProjectStatus.DECLINED: [],
        ProjectStatus.IN_PROGRESS: [ProjectStatus.COMPLETED, ProjectStatus.CANCELLED],
        ProjectStatus.COMPLETED: [ProjectStatus.IN_PROGRESS],
        ProjectStatus.CANCELLED: [],
    },
    label="project status",
)

ACTIVE_PROJECT_STATUSES = frozenset({ProjectStatus.ACCEPTED, ProjectStatus.IN_PROGRESS})


def allowed_transitions(status: str) -> frozenset[str]:
    return PROJECT_TRANSITIONS.allowed_transitions(ProjectStatus(status))


def can_transition_to(source: str, target: str) -> bool:
    return PROJECT_TRANSITIONS.can_transition(ProjectStatus(source), ProjectStatus(target))


def is_terminal(status: str) -> bool:
    return PROJECT_TRANSITIONS.is_terminal(ProjectStatus(status))


def is_active(status: str) -> bool:
    return ProjectStatus(status) in ACTIVE_PROJECT_STATUSES


class Project(TrackedModel):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="projects",
    )
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="projects")

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    reference = models.CharField(max_length=80, blank=True, default="")

    project_type = models.CharField(max_length=20, choices=ProjectType.choices, default=ProjectType.HOURLY)
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    fixed_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    status = models.CharField(max_length=20, choices=ProjectStatus.choices, default=ProjectStatus.DRAFT)

    offer_date = models.DateField(null=True, blank=True)
    offer_valid_until = models.DateField(null=True, blank=True)
    offer_sent_at = models.DateTimeField(null=True, blank=True)
    offer_accepted_at = models.DateTimeField(null=True, blank=True)

    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    notes = models.TextField(blank=True, default="")

    class Meta:
        indexes = [
            models.Index(fields=["status", "created_at"], name="proj_status_created_idx"),
            models.Index(fields=["client", "status"], name="proj_client_status_idx"),
        ]

    def __str__(self) -> str:
        return self.title

    def can_be_invoiced(self) -> bool:
        return is_active(self.status) or self.status == ProjectStatus.COMPLETED

    def is_hourly(self) -> bool:
        return self.project_type == ProjectType.HOURLY
