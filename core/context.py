from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from django.utils import timezone


@dataclass(frozen=True)
class ActionContext:
    """Who is acting and when.

    Services take one of these instead of reading the current user and the
    wall clock themselves, so scheduled jobs and tests can pin both.
    """

    actor: Any = None
    now: datetime | None = field(default=None)

    def current_time(self) -> datetime:
        return self.now or timezone.now()

    def today(self) -> date:
        return timezone.localdate(self.current_time())


def resolve_context(ctx: ActionContext | None) -> ActionContext:
    """Pin the clock once so a whole batch sees the same 'now'."""
    if ctx is None:
        return ActionContext(now=timezone.now())
    if ctx.now is None:
        return ActionContext(actor=ctx.actor, now=timezone.now())
    return ctx
