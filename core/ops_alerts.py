from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.core.mail import mail_admins

from core.email_utils import format_email_subject

logger = logging.getLogger(__name__)


def alert_admins(subject: str, message: str, *, fail_silently: bool = True, extra: dict[str, Any] | None = None) -> None:
    """Email settings.ADMINS about a failed scheduled job.

    Best-effort: never raises. Does nothing when ADMINS is empty.
    """

    if extra:
        message = message + "\n\n" + "\n".join(f"{k}: {v}" for k, v in extra.items())

    if not getattr(settings, "ADMINS", None):
        return

    subject = format_email_subject(subject)
    try:
        mail_admins(subject=subject, message=message[:10000], fail_silently=fail_silently)
    except Exception:
        logger.exception("ops_alert_failed subject=%s", subject[:200])
