from __future__ import annotations

import hashlib
import hmac
import json
from datetime import timedelta
from unittest.mock import MagicMock, patch

import requests
from django.core import mail
from django.test import override_settings

from reminders import services
from reminders.models import WebhookDelivery
from reminders.notifications import (
    CompositeReminderNotifier,
    WebhookReminderNotifier,
    get_notifier,
    last_webhook_status,
    sign_payload,
)

from .test_services import CTX, NOW, RecordingNotifier, ReminderTestBase


HOOK_URL = "https://hooks.example.com/deskbook"


def ok_response(status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    return resp


class FailingNotifier(RecordingNotifier):
    def notify(self, reminder):
        raise RuntimeError("channel down")


class WebhookNotifierTests(ReminderTestBase):
    @patch("reminders.notifications.requests.post")
    def test_posts_signed_json_event(self, post):
        post.return_value = ok_response()
        r = self.reminder(title="Renew domain", priority="high")

        WebhookReminderNotifier(url=HOOK_URL, secret="s3cret").notify(r)

        post.assert_called_once()
        args, kwargs = post.call_args
        self.assertEqual(args[0], HOOK_URL)
        self.assertEqual(kwargs["timeout"], 10)

        body = kwargs["data"]
        expected = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
        self.assertEqual(kwargs["headers"]["X-Webhook-Signature"], f"sha256={expected}")
        self.assertEqual(kwargs["headers"]["X-Webhook-Event"], "reminder.due")
        self.assertEqual(kwargs["headers"]["Content-Type"], "application/json")

        payload = json.loads(body)
        self.assertEqual(payload["event"], "reminder.due")
        self.assertEqual(payload["reminder"]["id"], str(r.pk))
        self.assertEqual(payload["reminder"]["title"], "Renew domain")
        self.assertEqual(payload["reminder"]["priority"], "high")
        self.assertEqual(payload["related_entity"], {"type": "client", "id": str(self.client_rec.pk), "name": "Acme GmbH"})

        status = last_webhook_status()
        self.assertTrue(status.is_ok)
        self.assertEqual(status.status_code, 200)
        self.assertEqual(status.reminder, r)

    def test_signature_with_empty_secret(self):
        body = b'{"event": "reminder.due"}'
        expected = hmac.new(b"", body, hashlib.sha256).hexdigest()
        self.assertEqual(sign_payload(body, ""), f"sha256={expected}")
        self.assertNotEqual(sign_payload(body, "other"), sign_payload(body, ""))

    @patch("reminders.notifications.requests.post")
    def test_http_error_is_recorded_and_raised(self, post):
        resp = ok_response(502)
        resp.raise_for_status.side_effect = requests.HTTPError("502 Bad Gateway")
        post.return_value = resp
        r = self.reminder()

        with self.assertRaises(requests.HTTPError):
            WebhookReminderNotifier(url=HOOK_URL, secret="s3cret").notify(r)

        status = last_webhook_status()
        self.assertFalse(status.is_ok)
        self.assertEqual(status.status_code, 502)
        self.assertIn("502", status.error)

    @patch("reminders.notifications.requests.post")
    def test_without_url_nothing_is_sent(self, post):
        WebhookReminderNotifier(url="").notify(self.reminder())
        post.assert_not_called()
        self.assertFalse(WebhookDelivery.objects.exists())

    @override_settings(DESKBOOK_WEBHOOK_URL=HOOK_URL, DESKBOOK_WEBHOOK_SECRET="abc", DESKBOOK_WEBHOOK_TIMEOUT=3)
    def test_reads_settings(self):
        notifier = WebhookReminderNotifier()
        self.assertEqual(notifier.url, HOOK_URL)
        self.assertEqual(notifier.secret, "abc")
        self.assertEqual(notifier.timeout, 3)


class CompositeNotifierTests(ReminderTestBase):
    def test_default_notifier_fans_out_to_email_and_webhook(self):
        notifier = get_notifier()
        self.assertIsInstance(notifier, CompositeReminderNotifier)
        self.assertEqual(
            [type(n).__name__ for n in notifier.notifiers],
            ["EmailReminderNotifier", "WebhookReminderNotifier"],
        )

    @override_settings(DESKBOOK_WEBHOOK_URL=HOOK_URL, DESKBOOK_WEBHOOK_SECRET="s3cret")
    @patch("reminders.notifications.requests.post")
    def test_both_channels_fire(self, post):
        post.return_value = ok_response(204)
        r = self.reminder(title="Renew domain")

        self.assertEqual(services.process_due_reminders(ctx=CTX), 1)

        self.assertEqual(len(mail.outbox), 1)
        post.assert_called_once()
        self.assertEqual(post.call_args.kwargs["timeout"], 10)
        r.refresh_from_db()
        self.assertEqual(r.notified_at, NOW)

    @override_settings(DESKBOOK_WEBHOOK_URL=HOOK_URL)
    @patch("reminders.notifications.requests.post")
    def test_webhook_failure_does_not_block_email(self, post):
        post.side_effect = requests.ConnectionError("connection refused")
        r = self.reminder(title="Renew domain")

        with self.assertLogs("reminders.notifications", level="ERROR"):
            dispatched = services.process_due_reminders(ctx=CTX)

        self.assertEqual(dispatched, 1)
        self.assertEqual(len(mail.outbox), 1)
        r.refresh_from_db()
        self.assertEqual(r.notified_at, NOW)

        status = last_webhook_status()
        self.assertFalse(status.is_ok)
        self.assertIsNone(status.status_code)
        self.assertIn("connection refused", status.error)

    def test_all_channels_failing_leaves_reminder_for_retry(self):
        r = self.reminder()
        notifier = CompositeReminderNotifier([FailingNotifier(), FailingNotifier()])

        with self.assertLogs("reminders.services", level="ERROR"):
            self.assertEqual(services.process_due_reminders(ctx=CTX, notifier=notifier), 0)

        r.refresh_from_db()
        self.assertIsNone(r.notified_at)

    def test_one_channel_failing_still_counts_as_delivered(self):
        r = self.reminder(due_at=NOW - timedelta(minutes=5))
        good = RecordingNotifier()
        notifier = CompositeReminderNotifier([FailingNotifier(), good])

        with self.assertLogs("reminders.notifications", level="ERROR"):
            notifier.notify(r)

        self.assertEqual(good.sent, [r.pk])
