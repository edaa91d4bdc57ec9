from __future__ import annotations

from datetime import date, datetime, timedelta, timezone as dt_timezone
from itertools import product

from django.test import TestCase

from core.context import ActionContext
from core.exceptions import InvalidTransition
from crm.models import Client
from projects import services
from projects.models import Project, ProjectStatus, allowed_transitions, can_transition_to, is_active, is_terminal
from reminders.models import Reminder, SystemType


NOW = datetime(2026, 3, 10, 8, 0, tzinfo=dt_timezone.utc)
CTX = ActionContext(now=NOW)


class ProjectStatusRuleTests(TestCase):
    EXPECTED = {
        ("draft", "sent"),
        ("draft", "cancelled"),
        ("sent", "accepted"),
        ("sent", "declined"),
        ("sent", "cancelled"),
        ("accepted", "in_progress"),
        ("accepted", "cancelled"),
        ("in_progress", "completed"),
        ("in_progress", "cancelled"),
        ("completed", "in_progress"),
    }

    def test_full_transition_table(self):
        for source, target in product(ProjectStatus.values, repeat=2):
            with self.subTest(source=source, target=target):
                self.assertEqual(can_transition_to(source, target), (source, target) in self.EXPECTED)

    def test_terminal_and_active_sets(self):
        self.assertEqual({s for s in ProjectStatus.values if is_terminal(s)}, {"declined", "cancelled"})
        self.assertEqual({s for s in ProjectStatus.values if is_active(s)}, {"accepted", "in_progress"})
        self.assertEqual(allowed_transitions("completed"), frozenset({"in_progress"}))

    def test_can_be_invoiced(self):
        invoiceable = {s for s in ProjectStatus.values if Project(status=s).can_be_invoiced()}
        self.assertEqual(invoiceable, {"accepted", "in_progress", "completed"})


class ProjectLifecycleTests(TestCase):
    def setUp(self):
        self.client_rec = Client.objects.create(first_name="Jo", last_name="Berger", client_type="individual")
        self.project = Project.objects.create(client=self.client_rec, title="Shop relaunch")

    def test_offer_to_completion(self):
        services.send_offer(self.project, ctx=CTX)
        self.assertEqual(self.project.offer_sent_at, NOW)

        followup = Reminder.objects.linked_to(self.project).get()
        self.assertEqual(followup.system_type, SystemType.OFFER_FOLLOWUP)
        self.assertEqual(followup.due_at, NOW + timedelta(days=7))

        services.accept_offer(self.project, ctx=CTX)
        services.start_project(self.project, start_date=date(2026, 3, 15), ctx=CTX)
        services.complete_project(self.project, ctx=CTX)

        self.project.refresh_from_db()
        self.assertEqual(self.project.status, ProjectStatus.COMPLETED)
        self.assertEqual(self.project.offer_accepted_at, NOW)
        self.assertEqual(self.project.start_date, date(2026, 3, 15))
        self.assertEqual(self.project.end_date, date(2026, 3, 10))

        services.reopen_project(self.project, ctx=CTX)
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, ProjectStatus.IN_PROGRESS)
        self.assertIsNone(self.project.end_date)

    def test_illegal_moves_raise(self):
        with self.assertRaises(InvalidTransition):
            services.accept_offer(self.project, ctx=CTX)

        services.send_offer(self.project, ctx=CTX)
        services.decline_offer(self.project, ctx=CTX)
        with self.assertRaises(InvalidTransition):
            services.cancel_project(self.project, ctx=CTX)

        self.project.refresh_from_db()
        self.assertEqual(self.project.status, ProjectStatus.DECLINED)

