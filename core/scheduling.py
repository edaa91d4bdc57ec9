"""Job table for the once-a-minute ``deskbook_tick`` command.

``settings.DESKBOOK_SCHEDULE`` is a list of dicts::

    {"name": "invoices:check-overdue", "command": "check_overdue_invoices", "at": "08:00"}
    {"name": "reminders:notify", "command": "process_due_reminders", "every_minute": True}

``at`` is local wall-clock time (settings.TIME_ZONE).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone


@dataclass(frozen=True)
class ScheduledJob:
    name: str
    command: str
    at: str = ""
    every_minute: bool = False

    def matches(self, local_now: datetime) -> bool:
        if self.every_minute:
            return True
        return bool(self.at) and local_now.strftime("%H:%M") == self.at


def _parse(entry: dict) -> ScheduledJob:
    try:
        job = ScheduledJob(
            name=str(entry["name"]),
            command=str(entry["command"]),
            at=str(entry.get("at") or "").strip(),
            every_minute=bool(entry.get("every_minute", False)),
        )
    except KeyError as e:
        raise ImproperlyConfigured(f"DESKBOOK_SCHEDULE entry is missing {e}: {entry!r}") from None
    if not job.every_minute:
        try:
            datetime.strptime(job.at, "%H:%M")
        except ValueError:
            raise ImproperlyConfigured(f"DESKBOOK_SCHEDULE entry {job.name!r} needs at='HH:MM' or every_minute") from None
    return job


def get_schedule() -> list[ScheduledJob]:
    return [_parse(e) for e in getattr(settings, "DESKBOOK_SCHEDULE", [])]


def due_jobs(now: datetime | None = None, schedule: list[ScheduledJob] | None = None) -> list[ScheduledJob]:
    """Jobs whose schedule matches the local minute of ``now``."""
    local_now = timezone.localtime(now or timezone.now())
    jobs = get_schedule() if schedule is None else schedule
    return [j for j in jobs if j.matches(local_now)]
