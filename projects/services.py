from __future__ import annotations

import logging
from datetime import date

from django.db import transaction

from core.context import ActionContext, resolve_context

from .models import PROJECT_TRANSITIONS, Project, ProjectStatus


logger = logging.getLogger(__name__)


def _transition(project: Project, target: str, *, fields: dict | None = None) -> Project:
    """Apply one table-checked status change plus any stamped fields."""
    source = ProjectStatus(project.status)
    PROJECT_TRANSITIONS.check(source, ProjectStatus(target))

    project.status = target
    changes = dict(fields or {})
    for name, value in changes.items():
        setattr(project, name, value)
    project.save(update_fields=["status", *changes])

    logger.info("project_status_changed id=%s from=%s to=%s", project.pk, source, target)
    return project


@transaction.atomic
def send_offer(project: Project, *, ctx: ActionContext | None = None) -> Project:
    """Mark the offer as sent and schedule a follow-up reminder."""
    from reminders.services import create_offer_followup_reminder

    ctx = resolve_context(ctx)
    _transition(project, ProjectStatus.SENT, fields={"offer_sent_at": ctx.current_time()})
    create_offer_followup_reminder(project, ctx=ctx)
    return project


@transaction.atomic
def accept_offer(project: Project, *, ctx: ActionContext | None = None) -> Project:
    ctx = resolve_context(ctx)
    return _transition(project, ProjectStatus.ACCEPTED, fields={"offer_accepted_at": ctx.current_time()})


@transaction.atomic
def decline_offer(project: Project, *, ctx: ActionContext | None = None) -> Project:
    return _transition(project, ProjectStatus.DECLINED)


@transaction.atomic
def start_project(project: Project, *, start_date: date | None = None, ctx: ActionContext | None = None) -> Project:
    ctx = resolve_context(ctx)
    return _transition(project, ProjectStatus.IN_PROGRESS, fields={"start_date": start_date or ctx.today()})


@transaction.atomic
def complete_project(project: Project, *, end_date: date | None = None, ctx: ActionContext | None = None) -> Project:
    ctx = resolve_context(ctx)
    return _transition(project, ProjectStatus.COMPLETED, fields={"end_date": end_date or ctx.today()})


@transaction.atomic
def reopen_project(project: Project, *, ctx: ActionContext | None = None) -> Project:
    """Move a completed project back to in progress."""
    return _transition(project, ProjectStatus.IN_PROGRESS, fields={"end_date": None})


@transaction.atomic
def cancel_project(project: Project, *, ctx: ActionContext | None = None) -> Project:
    return _transition(project, ProjectStatus.CANCELLED)
