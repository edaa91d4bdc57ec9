from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import sentry_sdk
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils.html import strip_tags


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailSpec:
    subject: str
    to: list[str]
    context: dict[str, Any]
    template_html: str
    template_txt: str | None = None
    from_email: str | None = None
    reply_to: list[str] | None = None


def format_email_subject(subject: str) -> str:
    """Normalize and prefix outbound email subjects.

    Rules:
    - Trim whitespace.
    - Prepend EMAIL_SUBJECT_PREFIX when present (unless the subject already appears prefixed).
    - Truncate to 200 chars (safe for common SMTP providers).
    """

    raw = (subject or "").strip()
    prefix = getattr(settings, "EMAIL_SUBJECT_PREFIX", "") or ""

    if prefix and not raw.lower().startswith(prefix.strip().lower()):
        out = f"{prefix}{raw}"
    else:
        out = raw

    return (out or "").strip()[:200]


def send_templated_email(spec: EmailSpec, *, fail_silently: bool = False) -> int:
    """Send a multipart email (text + html) with logging + Sentry-friendly behavior."""
    subject = format_email_subject(spec.subject)
    from_email = spec.from_email or getattr(settings, "DEFAULT_FROM_EMAIL", None)

    html_body = render_to_string(spec.template_html, spec.context)
    if spec.template_txt:
        text_body = render_to_string(spec.template_txt, spec.context)
    else:
        text_body = strip_tags(html_body)

    msg = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=from_email,
        to=spec.to,
        reply_to=spec.reply_to or None,
    )
    msg.attach_alternative(html_body, "text/html")

    try:
        sent = msg.send(fail_silently=fail_silently)
        logger.info("email_sent subject=%s to=%s sent=%s", subject, spec.to, sent)
        return sent
    except Exception as e:
        logger.exception("email_send_failed subject=%s to=%s err=%s", subject, spec.to, str(e)[:500])
        sentry_sdk.capture_exception(e)
        if fail_silently:
            return 0
        raise
