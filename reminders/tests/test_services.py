from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone as dt_timezone

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.exceptions import ValidationError
from django.test import TestCase

from core.context import ActionContext
from core.exceptions import NotFound
from crm.models import Client
from projects.models import Project
from reminders import services
from reminders.links import RemindableKind, RemindableRef
from reminders.models import Reminder, ReminderPriority, SystemType
from reminders.notifications import ReminderNotifier


NOW = datetime(2026, 3, 10, 8, 0, tzinfo=dt_timezone.utc)
CTX = ActionContext(now=NOW)


class RecordingNotifier(ReminderNotifier):
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def notify(self, reminder):
        if reminder.pk in self.fail_for:
            raise RuntimeError("delivery failed")
        self.sent.append(reminder.pk)


class ReminderTestBase(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="anna", email="anna@example.com", password="pass12345")
        self.client_rec = Client.objects.create(company_name="Acme GmbH", owner=self.user)

    def reminder(self, **kwargs):
        fields = {"title": "Call back", "due_at": NOW - timedelta(hours=1), "owner": self.user}
        fields.update(kwargs)
        r = Reminder(**fields)
        r.link_to(self.client_rec)
        r.save()
        return r


class ReminderQueryTests(ReminderTestBase):
    def test_pending_overdue_upcoming(self):
        past = self.reminder(due_at=NOW - timedelta(days=1))
        soon = self.reminder(due_at=NOW + timedelta(days=2))
        later = self.reminder(due_at=NOW + timedelta(days=30))
        done = self.reminder(due_at=NOW - timedelta(days=2), completed_at=NOW)

        self.assertEqual(set(Reminder.objects.pending()), {past, soon, later})
        self.assertEqual(list(Reminder.objects.completed()), [done])
        self.assertEqual(list(Reminder.objects.overdue(NOW)), [past])
        self.assertEqual(list(Reminder.objects.upcoming(7, NOW)), [soon])
        self.assertEqual(Reminder.objects.linked_to(self.client_rec).count(), 4)

    def test_is_overdue_ignores_completed(self):
        r = self.reminder(due_at=NOW - timedelta(days=1))
        self.assertTrue(r.is_overdue)
        r.completed_at = NOW
        self.assertFalse(r.is_overdue)

    def test_is_overdue_at_uses_the_given_clock(self):
        r = self.reminder(due_at=NOW)
        self.assertFalse(r.is_overdue_at(NOW))
        self.assertTrue(r.is_overdue_at(NOW + timedelta(seconds=1)))
        self.assertFalse(r.is_overdue_at(NOW - timedelta(hours=1)))


class RemindableRefTests(ReminderTestBase):
    def test_resolves_linked_record(self):
        ref = RemindableRef.for_instance(self.client_rec)
        self.assertEqual(ref.kind, RemindableKind.CLIENT)
        self.assertEqual(ref.resolve(), self.client_rec)

    def test_missing_or_deleted_record_raises_not_found(self):
        with self.assertRaises(NotFound):
            RemindableRef(kind="project", id=uuid.uuid4()).resolve()

        self.client_rec.soft_delete()
        with self.assertRaises(NotFound):
            RemindableRef.for_instance(self.client_rec).resolve()


class ReminderActionTests(ReminderTestBase):
    def test_complete_one_off(self):
        r = self.reminder()
        self.assertIsNone(services.complete(r, ctx=CTX))
        r.refresh_from_db()
        self.assertEqual(r.completed_at, NOW)
        self.assertEqual(Reminder.objects.count(), 1)

    def test_complete_recurring_spawns_successor(self):
        due = datetime(2024, 1, 31, 9, 0, tzinfo=dt_timezone.utc)
        r = self.reminder(due_at=due, recurrence="monthly", priority=ReminderPriority.HIGH)

        successor = services.complete(r, ctx=CTX)

        r.refresh_from_db()
        self.assertEqual(r.completed_at, NOW)
        self.assertIsNotNone(successor)
        self.assertNotEqual(successor.pk, r.pk)
        self.assertEqual(successor.due_at, datetime(2024, 2, 29, 9, 0, tzinfo=dt_timezone.utc))
        self.assertEqual(successor.recurrence, "monthly")
        self.assertEqual(successor.priority, ReminderPriority.HIGH)
        self.assertIsNone(successor.completed_at)
        self.assertEqual(successor.remindable, r.remindable)

        # Completing again does not spawn a second successor.
        self.assertIsNone(services.complete(r, ctx=CTX))
        self.assertEqual(Reminder.objects.count(), 2)

    def test_snooze_and_reopen(self):
        r = self.reminder()
        services.snooze(r, ctx=CTX)
        r.refresh_from_db()
        self.assertEqual(r.due_at, NOW + timedelta(hours=24))

        services.snooze(r, hours=2, ctx=CTX)
        self.assertEqual(r.due_at, NOW + timedelta(hours=2))

        with self.assertRaises(ValidationError):
            services.snooze(r, hours=0, ctx=CTX)

        with self.assertRaises(ValidationError):
            services.snooze(r, hours="soon", ctx=CTX)

        services.complete(r, ctx=CTX)
        services.reopen(r)
        r.refresh_from_db()
        self.assertIsNone(r.completed_at)

    def test_snooze_keeps_fractional_hours(self):
        r = self.reminder()
        services.snooze(r, hours=1.5, ctx=CTX)
        self.assertEqual(r.due_at, NOW + timedelta(minutes=90))

        services.snooze(r, hours=0.5, ctx=CTX)
        r.refresh_from_db()
        self.assertEqual(r.due_at, NOW + timedelta(minutes=30))

        with self.assertRaises(ValidationError):
            services.snooze(r, hours=-0.5, ctx=CTX)

    def test_create_for_entity(self):
        project = Project.objects.create(client=self.client_rec, title="Website", owner=self.user)
        r = services.create_for_entity(project, title="Check scope", due_at=NOW, recurrence="weekly", ctx=CTX)
        self.assertEqual(r.remindable_kind, RemindableKind.PROJECT)
        self.assertEqual(r.remindable.resolve(), project)
        self.assertEqual(r.owner, self.user)
        self.assertFalse(r.is_system)

        with self.assertRaises(ValidationError):
            services.create_for_entity(project, title="x", due_at=NOW, recurrence="hourly", ctx=CTX)
        with self.assertRaises(NotFound):
            services.create_for_entity(RemindableRef(kind="invoice", id=uuid.uuid4()), title="x", due_at=NOW, ctx=CTX)

    def test_offer_followup_is_idempotent_while_pending(self):
        project = Project.objects.create(client=self.client_rec, title="Website", offer_sent_at=NOW)
        first = services.create_offer_followup_reminder(project, ctx=CTX)
        again = services.create_offer_followup_reminder(project, ctx=CTX)
        self.assertEqual(first.pk, again.pk)
        self.assertEqual(first.system_type, SystemType.OFFER_FOLLOWUP)
        self.assertEqual(first.due_at, NOW + timedelta(days=7))

        services.complete(first, ctx=CTX)
        third = services.create_offer_followup_reminder(project, days_after_send=3, ctx=CTX)
        self.assertNotEqual(third.pk, first.pk)
        self.assertEqual(third.due_at, NOW + timedelta(days=3))


class ProcessDueRemindersTests(ReminderTestBase):
    def test_dispatches_each_due_reminder_once(self):
        r = self.reminder()
        self.reminder(due_at=NOW + timedelta(hours=1))
        notifier = RecordingNotifier()

        self.assertEqual(services.process_due_reminders(ctx=CTX, notifier=notifier), 1)
        self.assertEqual(notifier.sent, [r.pk])
        r.refresh_from_db()
        self.assertEqual(r.notified_at, NOW)
        self.assertIsNone(r.completed_at)

        self.assertEqual(services.process_due_reminders(ctx=CTX, notifier=notifier), 0)

    def test_snoozed_reminder_is_notified_again(self):
        r = self.reminder()
        notifier = RecordingNotifier()
        services.process_due_reminders(ctx=CTX, notifier=notifier)
        services.snooze(r, hours=1, ctx=CTX)

        later = ActionContext(now=NOW + timedelta(hours=2))
        self.assertEqual(services.process_due_reminders(ctx=later, notifier=notifier), 1)
        self.assertEqual(notifier.sent, [r.pk, r.pk])

    def test_recurring_reminder_is_completed_and_replaced(self):
        r = self.reminder(recurrence="weekly")
        services.process_due_reminders(ctx=CTX, notifier=RecordingNotifier())

        r.refresh_from_db()
        self.assertEqual(r.completed_at, NOW)
        successor = Reminder.objects.pending().get()
        self.assertEqual(successor.due_at, r.due_at + timedelta(days=7))
        self.assertIsNone(successor.notified_at)

    def test_failure_is_isolated(self):
        bad = self.reminder(due_at=NOW - timedelta(hours=2))
        good = self.reminder(due_at=NOW - timedelta(hours=1))
        notifier = RecordingNotifier(fail_for={bad.pk})

        with self.assertLogs("reminders.services", level="ERROR"):
            dispatched = services.process_due_reminders(ctx=CTX, notifier=notifier)

        self.assertEqual(dispatched, 1)
        bad.refresh_from_db()
        good.refresh_from_db()
        self.assertIsNone(bad.notified_at)
        self.assertEqual(good.notified_at, NOW)

    def test_default_notifier_sends_email_to_owner(self):
        self.reminder(title="Renew domain")
        services.process_due_reminders(ctx=CTX)

        self.assertEqual(len(mail.outbox), 1)
        msg = mail.outbox[0]
        self.assertEqual(msg.to, ["anna@example.com"])
        self.assertIn("Renew domain", msg.subject)
        self.assertIn("Acme GmbH", msg.body)

    def test_default_notifier_falls_back_without_owner(self):
        self.reminder(owner=None)
        services.process_due_reminders(ctx=CTX)
        self.assertEqual(mail.outbox[0].to, ["owner@example.com"])
