from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone
from unittest import mock

from django.test import TestCase

from core.context import ActionContext
from crm.models import Client
from recurring import services
from recurring.models import LogAction, RecurringTask, RecurringTaskLog, TaskFrequency, days_before
from reminders.models import Reminder, SystemType


NOW = datetime(2026, 3, 10, 6, 0, tzinfo=dt_timezone.utc)
CTX = ActionContext(now=NOW)
TODAY = date(2026, 3, 10)


def make_task(**kwargs) -> RecurringTask:
    fields = {"title": "Server maintenance", "frequency": TaskFrequency.WEEKLY, "next_due_at": TODAY}
    fields.update(kwargs)
    return RecurringTask.objects.create(**fields)


class RecurringTaskModelTests(TestCase):
    def test_days_before(self):
        self.assertEqual(
            {f: days_before(f) for f in TaskFrequency.values},
            {"weekly": 2, "monthly": 7, "quarterly": 14, "yearly": 30},
        )

    def test_helpers(self):
        task = make_task(next_due_at=date(2026, 3, 9), ends_at=date(2026, 3, 9))
        self.assertTrue(task.is_overdue(TODAY))
        self.assertTrue(task.is_due_soon(TODAY))
        self.assertTrue(task.has_ended(TODAY))
        self.assertFalse(make_task(next_due_at=date(2026, 3, 13)).is_due_soon(TODAY))

    def test_advance_deactivates_after_end(self):
        task = make_task(frequency=TaskFrequency.MONTHLY, next_due_at=date(2024, 1, 31), ends_at=date(2024, 2, 15))
        task.advance(today=date(2024, 2, 20))
        task.refresh_from_db()
        self.assertEqual(task.last_run_at, date(2024, 1, 31))
        self.assertEqual(task.next_due_at, date(2024, 2, 29))
        self.assertFalse(task.active)


class ProcessDueTasksTests(TestCase):
    def setUp(self):
        self.client_rec = Client.objects.create(company_name="Acme GmbH")

    def test_due_task_gets_reminder_log_and_advance(self):
        task = make_task(client=self.client_rec)

        self.assertEqual(services.process_due_tasks(ctx=CTX), 1)

        reminder = Reminder.objects.linked_to(task).get()
        self.assertEqual(reminder.system_type, SystemType.RECURRING_TASK)
        self.assertEqual(reminder.due_at, datetime(2026, 3, 10, 9, 0, tzinfo=dt_timezone.utc))
        self.assertEqual(reminder.occurrence_date, TODAY)
        self.assertIn("Acme GmbH", reminder.description)

        entry = RecurringTaskLog.objects.get(task=task)
        self.assertEqual(entry.action, LogAction.REMINDER_CREATED)
        self.assertEqual(entry.due_date, TODAY)
        self.assertEqual(entry.reminder, reminder)

        task.refresh_from_db()
        self.assertEqual(task.last_run_at, TODAY)
        self.assertEqual(task.next_due_at, date(2026, 3, 17))

        self.assertEqual(services.process_due_tasks(ctx=CTX), 0)

    def test_inactive_future_and_ended_tasks_are_skipped(self):
        make_task(active=False)
        make_task(next_due_at=date(2026, 3, 11))
        make_task(next_due_at=date(2026, 3, 1), ends_at=date(2026, 3, 5))

        self.assertEqual(services.process_due_tasks(ctx=CTX), 0)
        self.assertFalse(Reminder.objects.exists())

    def test_occurrence_already_raised_is_not_duplicated(self):
        task = make_task()
        services.process_task(task, ctx=CTX)

        # Simulate a run that raised the reminder but never advanced.
        RecurringTask.objects.filter(pk=task.pk).update(next_due_at=TODAY, last_processed_on=None)

        self.assertEqual(services.process_due_tasks(ctx=CTX), 1)
        self.assertEqual(Reminder.objects.linked_to(task).count(), 1)
        self.assertEqual(RecurringTaskLog.objects.filter(task=task).count(), 1)
        task.refresh_from_db()
        self.assertEqual(task.next_due_at, date(2026, 3, 17))

    def test_task_several_periods_behind_catches_up_one_step_per_day(self):
        task = make_task(next_due_at=date(2026, 2, 24))

        self.assertEqual(services.process_due_tasks(ctx=CTX), 1)
        self.assertEqual(services.process_due_tasks(ctx=CTX), 0)

        task.refresh_from_db()
        self.assertEqual(RecurringTaskLog.objects.filter(task=task).count(), 1)
        self.assertEqual(Reminder.objects.linked_to(task).count(), 1)
        self.assertEqual(task.next_due_at, date(2026, 3, 3))
        self.assertEqual(task.last_processed_on, TODAY)

        tomorrow = ActionContext(now=datetime(2026, 3, 11, 6, 0, tzinfo=dt_timezone.utc))
        self.assertEqual(services.process_due_tasks(ctx=tomorrow), 1)
        task.refresh_from_db()
        self.assertEqual(task.next_due_at, date(2026, 3, 10))
        self.assertEqual(RecurringTaskLog.objects.filter(task=task).count(), 2)

    def test_one_failing_task_does_not_stop_the_batch(self):
        bad = make_task(title="Bad")
        good = make_task(title="Good")
        real = services.process_task

        def flaky(task, **kwargs):
            if task.pk == bad.pk:
                raise RuntimeError("boom")
            return real(task, **kwargs)

        with mock.patch("recurring.services.process_task", side_effect=flaky):
            with self.assertLogs("recurring.services", level="ERROR"):
                processed = services.process_due_tasks(ctx=CTX)

        self.assertEqual(processed, 1)
        bad.refresh_from_db()
        good.refresh_from_db()
        self.assertEqual(bad.next_due_at, TODAY)
        self.assertEqual(good.next_due_at, date(2026, 3, 17))


class UpcomingRemindersTests(TestCase):
    def test_weekly_lead_time_is_two_days(self):
        in_two = make_task(next_due_at=date(2026, 3, 12))
        make_task(next_due_at=date(2026, 3, 13))

        self.assertEqual(services.create_upcoming_reminders(ctx=CTX), 1)

        reminder = Reminder.objects.get()
        self.assertEqual(reminder.remindable.id, in_two.pk)
        self.assertEqual(reminder.title, "Upcoming: Server maintenance")
        self.assertEqual(reminder.system_type, SystemType.RECURRING_TASK_UPCOMING)
        self.assertEqual(reminder.due_at, datetime(2026, 3, 10, 9, 0, tzinfo=dt_timezone.utc))
        self.assertEqual(reminder.occurrence_date, date(2026, 3, 12))

    def test_one_upcoming_reminder_per_occurrence(self):
        make_task(frequency=TaskFrequency.MONTHLY, next_due_at=date(2026, 3, 15))
        self.assertEqual(services.create_upcoming_reminders(ctx=CTX), 1)
        self.assertEqual(services.create_upcoming_reminders(ctx=CTX), 0)

    def test_paused_tasks_get_none(self):
        make_task(next_due_at=date(2026, 3, 12), active=False)
        self.assertEqual(services.create_upcoming_reminders(ctx=CTX), 0)


class ManualOccurrenceTests(TestCase):
    def test_skip_occurrence(self):
        task = make_task()
        services.skip_occurrence(task, reason="Client on holiday", ctx=CTX)

        entry = RecurringTaskLog.objects.get(task=task)
        self.assertEqual(entry.action, LogAction.SKIPPED)
        self.assertEqual(entry.notes, "Client on holiday")
        self.assertEqual(entry.due_date, TODAY)
        self.assertFalse(Reminder.objects.exists())
        task.refresh_from_db()
        self.assertEqual(task.next_due_at, date(2026, 3, 17))

    def test_complete_occurrence_closes_its_reminder(self):
        task = make_task()
        reminder = services.process_task(task, ctx=CTX)
        RecurringTask.objects.filter(pk=task.pk).update(next_due_at=TODAY)
        task.refresh_from_db()

        services.complete_occurrence(task, notes="done by phone", ctx=CTX)

        reminder.refresh_from_db()
        self.assertEqual(reminder.completed_at, NOW)
        self.assertTrue(
            RecurringTaskLog.objects.filter(task=task, action=LogAction.MANUALLY_COMPLETED, notes="done by phone").exists()
        )

    def test_pause_and_resume_fast_forwards(self):
        task = make_task(frequency=TaskFrequency.MONTHLY, next_due_at=date(2026, 1, 31))
        services.pause(task)
        self.assertFalse(RecurringTask.objects.get(pk=task.pk).active)

        services.resume(task, ctx=CTX)
        task.refresh_from_db()
        self.assertTrue(task.active)
        self.assertEqual(task.next_due_at, date(2026, 3, 28))
