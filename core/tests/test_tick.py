from __future__ import annotations

import io
from datetime import datetime, timezone as dt_timezone
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from core.models import JobRun
from core.scheduling import due_jobs


SCHEDULE = [
    {"name": "tasks:process", "command": "process_recurring_tasks", "at": "08:00"},
    {"name": "invoices:check-overdue", "command": "check_overdue_invoices", "at": "08:00"},
    {"name": "reminders:notify", "command": "process_due_reminders", "every_minute": True},
]


@override_settings(DESKBOOK_SCHEDULE=SCHEDULE)
class ScheduleTests(TestCase):
    def test_due_jobs_matches_local_minute(self):
        at_eight = datetime(2026, 3, 10, 8, 0, tzinfo=dt_timezone.utc)
        names = [j.name for j in due_jobs(at_eight)]
        self.assertEqual(names, ["tasks:process", "invoices:check-overdue", "reminders:notify"])

        later = datetime(2026, 3, 10, 8, 1, tzinfo=dt_timezone.utc)
        self.assertEqual([j.name for j in due_jobs(later)], ["reminders:notify"])


@override_settings(DESKBOOK_SCHEDULE=SCHEDULE)
class DeskbookTickTests(TestCase):
    def _tick(self, *args) -> str:
        out = io.StringIO()
        call_command("deskbook_tick", *args, stdout=out)
        return out.getvalue()

    def test_named_job_persists_run(self):
        self._tick("--job", "invoices:check-overdue")
        run = JobRun.objects.get()
        self.assertEqual(run.job, "invoices:check-overdue")
        self.assertEqual(run.command, "check_overdue_invoices")
        self.assertTrue(run.is_ok)
        self.assertIn("overdue", run.output_text)
        self.assertTrue(run.run_id)

    def test_all_runs_every_job(self):
        self._tick("--all")
        self.assertEqual(JobRun.objects.count(), 3)
        self.assertTrue(all(JobRun.objects.values_list("is_ok", flat=True)))

    def test_failing_job_does_not_stop_the_tick(self):
        with mock.patch("invoices.management.commands.check_overdue_invoices.sweep_overdue_invoices", side_effect=RuntimeError("boom")):
            out = self._tick("--all")

        runs = {r.job: r for r in JobRun.objects.all()}
        self.assertEqual(len(runs), 3)
        self.assertFalse(runs["invoices:check-overdue"].is_ok)
        self.assertIn("boom", runs["invoices:check-overdue"].output_text)
        self.assertTrue(runs["reminders:notify"].is_ok)
        self.assertIn("FAILED", out)

    def test_unknown_job_name(self):
        with self.assertRaises(CommandError):
            self._tick("--job", "nope")
