from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from crm.models import Client
from invoices.models import Invoice
from projects.models import Project, ProjectStatus
from timetracking.models import TimeEntry


class TimeEntryTests(TestCase):
    def setUp(self):
        client = Client.objects.create(company_name="Acme GmbH")
        self.project = Project.objects.create(client=client, title="Website", status=ProjectStatus.IN_PROGRESS)

    def test_duration_follows_start_and_end(self):
        entry = TimeEntry.objects.create(
            project=self.project,
            started_at=datetime(2026, 3, 2, 9, 0, tzinfo=dt_timezone.utc),
            ended_at=datetime(2026, 3, 2, 10, 40, tzinfo=dt_timezone.utc),
        )
        self.assertEqual(entry.duration_minutes, 100)
        self.assertEqual(entry.work_date, date(2026, 3, 2))
        self.assertEqual(entry.hours, Decimal("1.67"))

    def test_end_before_start_is_rejected(self):
        entry = TimeEntry(
            project=self.project,
            started_at=datetime(2026, 3, 2, 10, 0, tzinfo=dt_timezone.utc),
            ended_at=datetime(2026, 3, 2, 9, 0, tzinfo=dt_timezone.utc),
        )
        with self.assertRaises(ValidationError):
            entry.full_clean()

    def test_billable_unbilled_totals(self):
        invoice = Invoice.objects.create(client=self.project.client, due_at=date(2026, 3, 31), issued_at=date(2026, 3, 1))
        TimeEntry.objects.create(project=self.project, work_date=date(2026, 3, 2), duration_minutes=90)
        TimeEntry.objects.create(project=self.project, work_date=date(2026, 3, 3), duration_minutes=30, billable=False)
        billed = TimeEntry.objects.create(project=self.project, work_date=date(2026, 3, 1), duration_minutes=60, invoice=invoice)
        TimeEntry.objects.create(project=self.project, work_date=date(2026, 3, 4), duration_minutes=15).soft_delete()

        open_time = TimeEntry.objects.filter(project=self.project).billable().unbilled()
        self.assertEqual(open_time.total_minutes(), 90)
        self.assertEqual(open_time.total_hours(), Decimal("1.50"))
        self.assertTrue(billed.is_billed)
        self.assertEqual(TimeEntry.objects.none().total_minutes(), 0)
