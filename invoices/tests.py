from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal
from itertools import product
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from core.context import ActionContext
from core.exceptions import InvalidTransition
from crm.models import Client
from invoices import services
from invoices.models import Invoice, InvoiceStatus, allowed_transitions, can_transition_to, is_terminal, is_unpaid
from projects.models import Project, ProjectStatus, ProjectType
from reminders.models import Reminder, ReminderPriority, SystemType
from timetracking.models import TimeEntry


NOW = datetime(2026, 3, 10, 8, 0, tzinfo=dt_timezone.utc)
CTX = ActionContext(now=NOW)


def make_invoice(client, *, status=InvoiceStatus.DRAFT, due_at=date(2026, 3, 1), **kwargs):
    return Invoice.objects.create(client=client, status=status, due_at=due_at, issued_at=date(2026, 2, 1), **kwargs)


class InvoiceStatusRuleTests(TestCase):
    EXPECTED = {
        ("draft", "sent"),
        ("draft", "cancelled"),
        ("sent", "paid"),
        ("sent", "overdue"),
        ("sent", "cancelled"),
        ("overdue", "paid"),
        ("overdue", "cancelled"),
    }

    def test_full_transition_table(self):
        for source, target in product(InvoiceStatus.values, repeat=2):
            with self.subTest(source=source, target=target):
                self.assertEqual(can_transition_to(source, target), (source, target) in self.EXPECTED)

    def test_terminal_and_unpaid_sets(self):
        self.assertEqual({s for s in InvoiceStatus.values if is_terminal(s)}, {"paid", "cancelled"})
        self.assertEqual({s for s in InvoiceStatus.values if is_unpaid(s)}, {"sent", "overdue"})
        self.assertEqual(allowed_transitions("overdue"), frozenset({"paid", "cancelled"}))


class InvoiceModelTests(TestCase):
    def setUp(self):
        self.client_rec = Client.objects.create(company_name="Acme GmbH")

    def test_numbers_are_sequential_per_year(self):
        a = make_invoice(self.client_rec)
        b = make_invoice(self.client_rec)
        self.assertEqual(a.number, "2026-001")
        self.assertEqual(b.number, "2026-002")
        self.assertEqual(services.allocate_invoice_number(date(2027, 1, 2)), "2027-001")

    def test_soft_deleted_numbers_are_not_reused(self):
        make_invoice(self.client_rec).delete()
        self.assertEqual(services.allocate_invoice_number(date(2026, 5, 1)), "2026-002")

    def test_recalc_totals(self):
        inv = Invoice(client=self.client_rec, due_at=date(2026, 3, 1), subtotal=Decimal("100.00"), vat_rate=Decimal("19.00"))
        inv.recalc_totals()
        self.assertEqual(inv.vat_amount, Decimal("19.00"))
        self.assertEqual(inv.total, Decimal("119.00"))


class InvoiceLifecycleTests(TestCase):
    def setUp(self):
        self.client_rec = Client.objects.create(company_name="Acme GmbH")

    def test_mark_sent_stamps_issue_date_when_missing(self):
        inv = Invoice.objects.create(client=self.client_rec, due_at=date(2026, 4, 1))
        services.mark_sent(inv, ctx=CTX)
        inv.refresh_from_db()
        self.assertEqual(inv.status, InvoiceStatus.SENT)
        self.assertEqual(inv.issued_at, date(2026, 3, 10))

    def test_strict_mode_rejects_illegal_moves(self):
        inv = make_invoice(self.client_rec)
        with self.assertRaises(InvalidTransition):
            services.mark_as_paid(inv, ctx=CTX)
        inv.refresh_from_db()
        self.assertEqual(inv.status, InvoiceStatus.DRAFT)

        services.cancel_invoice(inv, ctx=CTX)
        with self.assertRaises(InvalidTransition):
            services.mark_sent(inv, ctx=CTX)

    def test_mark_as_paid_records_payment(self):
        inv = make_invoice(self.client_rec, status=InvoiceStatus.OVERDUE)
        services.mark_as_paid(inv, paid_at=date(2026, 3, 9), payment_method="bank transfer", ctx=CTX)
        inv.refresh_from_db()
        self.assertEqual(inv.status, InvoiceStatus.PAID)
        self.assertEqual(inv.paid_at, date(2026, 3, 9))
        self.assertEqual(inv.payment_method, "bank transfer")

    @override_settings(DESKBOOK_STRICT_INVOICE_TRANSITIONS=False)
    def test_lenient_mode_forces_paid(self):
        inv = make_invoice(self.client_rec, status=InvoiceStatus.CANCELLED)
        services.mark_as_paid(inv, ctx=CTX)
        inv.refresh_from_db()
        self.assertEqual(inv.status, InvoiceStatus.PAID)
        self.assertEqual(inv.paid_at, date(2026, 3, 10))


class OverdueSweepTests(TestCase):
    def setUp(self):
        self.owner = get_user_model().objects.create_user(username="owner", email="owner@example.com", password="pass12345")
        self.client_rec = Client.objects.create(company_name="Acme GmbH")

    def test_only_sent_and_past_due_become_overdue(self):
        late = make_invoice(self.client_rec, status=InvoiceStatus.SENT, due_at=date(2026, 3, 9), owner=self.owner)
        due_today = make_invoice(self.client_rec, status=InvoiceStatus.SENT, due_at=date(2026, 3, 10))
        draft = make_invoice(self.client_rec, status=InvoiceStatus.DRAFT, due_at=date(2026, 1, 1))

        self.assertEqual(services.sweep_overdue_invoices(ctx=CTX), 1)

        for inv in (late, due_today, draft):
            inv.refresh_from_db()
        self.assertEqual(late.status, InvoiceStatus.OVERDUE)
        self.assertEqual(due_today.status, InvoiceStatus.SENT)
        self.assertEqual(draft.status, InvoiceStatus.DRAFT)

        reminder = Reminder.objects.linked_to(late).get()
        self.assertEqual(reminder.system_type, SystemType.OVERDUE_INVOICE)
        self.assertEqual(reminder.priority, ReminderPriority.HIGH)
        self.assertEqual(reminder.due_at, NOW)
        self.assertEqual(reminder.owner, self.owner)

    def test_rerun_is_a_no_op(self):
        make_invoice(self.client_rec, status=InvoiceStatus.SENT, due_at=date(2026, 3, 1))
        services.sweep_overdue_invoices(ctx=CTX)
        self.assertEqual(services.sweep_overdue_invoices(ctx=CTX), 0)
        self.assertEqual(Reminder.objects.count(), 1)

    def test_one_failure_does_not_stop_the_sweep(self):
        bad = make_invoice(self.client_rec, status=InvoiceStatus.SENT, due_at=date(2026, 3, 1))
        good = make_invoice(self.client_rec, status=InvoiceStatus.SENT, due_at=date(2026, 3, 2))

        from reminders import services as reminder_services

        real = reminder_services.create_overdue_invoice_reminder

        def flaky(invoice, **kwargs):
            if invoice.pk == bad.pk:
                raise RuntimeError("mail server on fire")
            return real(invoice, **kwargs)

        with mock.patch("reminders.services.create_overdue_invoice_reminder", side_effect=flaky):
            with self.assertLogs("invoices.services", level="ERROR"):
                flagged = services.sweep_overdue_invoices(ctx=CTX)

        self.assertEqual(flagged, 1)
        bad.refresh_from_db()
        good.refresh_from_db()
        self.assertEqual(bad.status, InvoiceStatus.SENT)
        self.assertEqual(good.status, InvoiceStatus.OVERDUE)


class InvoiceFromProjectTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="anna", email="anna@example.com", password="pass12345")
        self.client_rec = Client.objects.create(company_name="Acme GmbH", owner=self.user)

    def project(self, **kwargs):
        fields = {
            "client": self.client_rec,
            "owner": self.user,
            "title": "Website relaunch",
            "status": ProjectStatus.IN_PROGRESS,
            "project_type": ProjectType.HOURLY,
            "hourly_rate": Decimal("80.00"),
        }
        fields.update(kwargs)
        return Project.objects.create(**fields)

    def test_bills_unbilled_time_once(self):
        project = self.project()
        a = TimeEntry.objects.create(project=project, work_date=date(2026, 3, 2), duration_minutes=90)
        b = TimeEntry.objects.create(project=project, work_date=date(2026, 3, 5), duration_minutes=45)
        internal = TimeEntry.objects.create(project=project, work_date=date(2026, 3, 3), duration_minutes=60, billable=False)
        earlier = make_invoice(self.client_rec, project=project)
        old = TimeEntry.objects.create(project=project, work_date=date(2026, 2, 20), duration_minutes=120, invoice=earlier)

        invoice = services.create_invoice_from_project(project, ctx=CTX)

        self.assertEqual(invoice.status, InvoiceStatus.DRAFT)
        self.assertEqual(invoice.client, self.client_rec)
        self.assertEqual(invoice.project, project)
        self.assertEqual(invoice.owner, self.user)
        self.assertEqual(invoice.issued_at, date(2026, 3, 10))
        self.assertEqual(invoice.due_at, date(2026, 3, 24))
        self.assertEqual(invoice.number, "2026-002")

        item = invoice.items.get()
        self.assertEqual(item.description, "Work time (02.03.2026 to 05.03.2026)")
        self.assertEqual(item.quantity, Decimal("2.25"))
        self.assertEqual(item.unit, "hours")
        self.assertEqual(item.unit_price, Decimal("80.00"))
        self.assertEqual(invoice.subtotal, Decimal("180.00"))
        self.assertEqual(invoice.vat_amount, Decimal("34.20"))
        self.assertEqual(invoice.total, Decimal("214.20"))

        for entry in (a, b):
            entry.refresh_from_db()
            self.assertEqual(entry.invoice, invoice)
            self.assertEqual(entry.billed_at, NOW)
        internal.refresh_from_db()
        old.refresh_from_db()
        self.assertIsNone(internal.invoice)
        self.assertEqual(old.invoice, earlier)

        again = services.create_invoice_from_project(project, ctx=CTX)
        self.assertFalse(again.items.exists())
        self.assertEqual(again.total, Decimal("0.00"))
        self.assertEqual(TimeEntry.objects.filter(invoice=invoice).count(), 2)

    def test_fixed_price_project_gets_one_flat_line(self):
        project = self.project(
            status=ProjectStatus.COMPLETED,
            project_type=ProjectType.FIXED,
            hourly_rate=None,
            fixed_price=Decimal("1500.00"),
        )
        TimeEntry.objects.create(project=project, work_date=date(2026, 3, 2), duration_minutes=300)

        invoice = services.create_invoice_from_project(project, ctx=CTX)

        item = invoice.items.get()
        self.assertEqual(item.description, "Website relaunch")
        self.assertEqual(item.amount, Decimal("1500.00"))
        self.assertEqual(invoice.total, Decimal("1785.00"))
        self.assertFalse(TimeEntry.objects.filter(invoice__isnull=False).exists())

    @override_settings(DESKBOOK_PAYMENT_TERMS_DAYS=30, DESKBOOK_DEFAULT_VAT_RATE="7.00")
    def test_terms_and_vat_come_from_settings(self):
        project = self.project()
        TimeEntry.objects.create(project=project, work_date=date(2026, 3, 2), duration_minutes=60)

        invoice = services.create_invoice_from_project(project, ctx=CTX)

        self.assertEqual(invoice.due_at, date(2026, 4, 9))
        self.assertEqual(invoice.vat_rate, Decimal("7.00"))
        self.assertEqual(invoice.total, Decimal("85.60"))

    def test_project_not_yet_accepted_cannot_be_invoiced(self):
        project = self.project(status=ProjectStatus.SENT)
        entry = TimeEntry.objects.create(project=project, work_date=date(2026, 3, 2), duration_minutes=60)

        with self.assertRaises(ValidationError):
            services.create_invoice_from_project(project, ctx=CTX)

        self.assertFalse(Invoice.objects.filter(project=project).exists())
        entry.refresh_from_db()
        self.assertIsNone(entry.invoice)
