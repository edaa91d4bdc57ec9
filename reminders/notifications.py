from __future__ import annotations

import hashlib
import hmac
import json
import logging

import requests
import sentry_sdk
from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

from core.email_utils import EmailSpec, send_templated_email
from core.exceptions import NotFound

from .models import Reminder, WebhookDelivery


logger = logging.getLogger(__name__)

DEFAULT_CHANNELS = [
    "reminders.notifications.EmailReminderNotifier",
    "reminders.notifications.WebhookReminderNotifier",
]


class ReminderNotifier:
    """Delivers a due reminder somewhere a person will see it.

    ``notify`` raises on delivery failure; the caller leaves the reminder
    un-notified so the next run retries it.
    """

    def notify(self, reminder: Reminder) -> None:
        raise NotImplementedError


def _resolve_linked(reminder: Reminder):
    ref = reminder.remindable
    if ref is None:
        return None
    try:
        return ref.resolve()
    except NotFound:
        logger.info("reminder_link_missing id=%s kind=%s target=%s", reminder.pk, ref.kind, ref.id)
        return None


class EmailReminderNotifier(ReminderNotifier):
    template_html = "reminders/email/reminder_due.html"
    template_txt = "reminders/email/reminder_due.txt"

    def recipients(self, reminder: Reminder) -> list[str]:
        owner = reminder.owner
        email = (getattr(owner, "email", "") or "").strip() if owner else ""
        if not email:
            email = (getattr(settings, "DESKBOOK_REMINDER_FALLBACK_EMAIL", "") or "").strip()
        return [email] if email else []

    def notify(self, reminder: Reminder) -> None:
        to = self.recipients(reminder)
        if not to:
            logger.warning("reminder_no_recipient id=%s", reminder.pk)
            return

        spec = EmailSpec(
            subject=f"Reminder: {reminder.title}",
            to=to,
            context={
                "reminder": reminder,
                "linked": _resolve_linked(reminder),
                "linked_kind": reminder.get_remindable_kind_display() if reminder.remindable else "",
            },
            template_html=self.template_html,
            template_txt=self.template_txt,
        )
        send_templated_email(spec)


def sign_payload(body: bytes, secret: str) -> str:
    """``sha256=<hex hmac>`` over the raw request body. An empty secret still signs."""
    digest = hmac.new((secret or "").encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class WebhookReminderNotifier(ReminderNotifier):
    """POSTs a signed JSON event per due reminder to ``DESKBOOK_WEBHOOK_URL``.

    Every attempt is recorded as a WebhookDelivery row. Unconfigured (no URL)
    means disabled, not failed.
    """

    event = "reminder.due"

    def __init__(self, url: str | None = None, secret: str | None = None, timeout: float | None = None):
        self.url = (url if url is not None else getattr(settings, "DESKBOOK_WEBHOOK_URL", "") or "").strip()
        self.secret = secret if secret is not None else getattr(settings, "DESKBOOK_WEBHOOK_SECRET", "") or ""
        self.timeout = timeout or getattr(settings, "DESKBOOK_WEBHOOK_TIMEOUT", 10)

    def build_payload(self, reminder: Reminder) -> dict:
        related = None
        ref = reminder.remindable
        if ref is not None:
            linked = _resolve_linked(reminder)
            related = {
                "type": str(ref.kind),
                "id": str(ref.id),
                "name": str(linked) if linked is not None else None,
            }
        return {
            "event": self.event,
            "timestamp": timezone.now().isoformat(),
            "reminder": {
                "id": str(reminder.pk),
                "title": reminder.title,
                "description": reminder.description,
                "due_at": reminder.due_at.isoformat(),
                "priority": reminder.priority,
                "recurrence": reminder.recurrence,
                "is_system": reminder.is_system,
                "system_type": reminder.system_type or None,
            },
            "related_entity": related,
        }

    def notify(self, reminder: Reminder) -> None:
        if not self.url:
            return

        body = json.dumps(self.build_payload(reminder)).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "User-Agent": "Deskbook-Webhook/1.0",
            "X-Webhook-Event": self.event,
            "X-Webhook-Signature": sign_payload(body, self.secret),
        }
        delivery = WebhookDelivery(event=self.event, url=self.url, reminder=reminder)
        try:
            resp = requests.post(self.url, data=body, headers=headers, timeout=self.timeout)
            delivery.status_code = resp.status_code
            resp.raise_for_status()
        except requests.RequestException as e:
            delivery.error = str(e)[:2000]
            delivery.save()
            logger.warning("reminder_webhook_failed id=%s status=%s", reminder.pk, delivery.status_code)
            raise

        delivery.is_ok = True
        delivery.save()
        logger.info("reminder_webhook_sent id=%s status=%s", reminder.pk, delivery.status_code)


def last_webhook_status() -> WebhookDelivery | None:
    return WebhookDelivery.objects.order_by("-created_at", "-pk").first()


class CompositeReminderNotifier(ReminderNotifier):
    """Fans a reminder out to every configured channel.

    One channel failing does not stop the others. The reminder only counts as
    undelivered (and is retried) when every channel failed.
    """

    def __init__(self, notifiers: list[ReminderNotifier] | None = None):
        if notifiers is None:
            paths = getattr(settings, "DESKBOOK_REMINDER_CHANNELS", None) or DEFAULT_CHANNELS
            notifiers = [import_string(p)() for p in paths]
        self.notifiers = list(notifiers)

    def notify(self, reminder: Reminder) -> None:
        errors = []
        for notifier in self.notifiers:
            try:
                notifier.notify(reminder)
            except Exception as e:
                errors.append(e)
                logger.exception("reminder_channel_failed id=%s channel=%s", reminder.pk, type(notifier).__name__)
                sentry_sdk.capture_exception(e)
        if errors and len(errors) == len(self.notifiers):
            raise errors[0]


def get_notifier() -> ReminderNotifier:
    path = getattr(settings, "DESKBOOK_REMINDER_NOTIFIER", "") or "reminders.notifications.CompositeReminderNotifier"
    return import_string(path)()
