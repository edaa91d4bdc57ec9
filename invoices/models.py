# invoices/models.py
from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import TrackedModel, TrackedQuerySet
from core.transitions import TransitionTable
from crm.models import Client
from projects.models import Project


class InvoiceStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    SENT = "sent", "Sent"
    PAID = "paid", "Paid"
    OVERDUE = "overdue", "Overdue"
    CANCELLED = "cancelled", "Cancelled"


INVOICE_TRANSITIONS = TransitionTable(
    {
        InvoiceStatus.DRAFT: [InvoiceStatus.SENT, InvoiceStatus.CANCELLED],
        InvoiceStatus.SENT: [InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED],
        InvoiceStatus.OVERDUE: [InvoiceStatus.PAID, InvoiceStatus.CANCELLED],
        InvoiceStatus.PAID: [],
        InvoiceStatus.CANCELLED: [],
    },
    label="invoice status",
)

UNPAID_INVOICE_STATUSES = frozenset({InvoiceStatus.SENT, InvoiceStatus.OVERDUE})


def allowed_transitions(status: str) -> frozenset[str]:
    return INVOICE_TRANSITIONS.allowed_transitions(InvoiceStatus(status))


def can_transition_to(source: str, target: str) -> bool:
    return INVOICE_TRANSITIONS.can_transition(InvoiceStatus(source), InvoiceStatus(target))


def is_terminal(status: str) -> bool:
    return INVOICE_TRANSITIONS.is_terminal(InvoiceStatus(status))


def is_unpaid(status: str) -> bool:
    return InvoiceStatus(status) in UNPAID_INVOICE_STATUSES


class InvoiceQuerySet(TrackedQuerySet):
    def unpaid(self):
        return self.filter(status__in=UNPAID_INVOICE_STATUSES)

    def paid(self):
        return self.filter(status=InvoiceStatus.PAID)

    def past_due(self, today: date):
        """Sent invoices whose due date has passed (candidates for the overdue sweep)."""
        return self.filter(status=InvoiceStatus.SENT, due_at__lt=today)

    def issued_in_year(self, year: int):
        return self.filter(issued_at__year=year)


class InvoiceManager(models.Manager.from_queryset(InvoiceQuerySet)):
    def get_queryset(self):
        return super().get_queryset().alive()


class Invoice(TrackedModel):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="invoices",
    )
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="invoices")
    project = models.ForeignKey(Project, null=True, blank=True, on_delete=models.SET_NULL, related_name="invoices")

    number = models.CharField(max_length=20, blank=True, default="")  # YYYY-NNN, allocated on first save
    status = models.CharField(max_length=20, choices=InvoiceStatus.choices, default=InvoiceStatus.DRAFT)

    issued_at = models.DateField(null=True, blank=True)
    due_at = models.DateField()
    paid_at = models.DateField(null=True, blank=True)
    payment_method = models.CharField(max_length=60, blank=True, default="")

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    vat_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("19.00"))
    vat_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True, default="")

    objects = InvoiceManager()

    class Meta:
        indexes = [
            models.Index(fields=["status", "due_at"], name="inv_status_due_idx"),
            models.Index(fields=["number"], name="inv_number_idx"),
            models.Index(fields=["client", "status"], name="inv_client_status_idx"),
        ]

    def __str__(self) -> str:
        return self.number or "(unassigned)"

    @classmethod
    def next_number(cls, today: date | None = None) -> str:
        """Next number for the year of ``today``. Format: YYYY-NNN (e.g. 2026-001)."""
        year = (today or timezone.localdate()).year
        prefix = f"{year}-"
        used = cls.all_objects.filter(number__startswith=prefix).values_list("number", flat=True)
        seqs = [int(n[len(prefix):]) for n in used if n[len(prefix):].isdigit()]
        return f"{prefix}{(max(seqs) + 1 if seqs else 1):03d}"

    def recalc_totals(self) -> None:
        subtotal = Decimal(self.subtotal or 0)
        vat = (subtotal * Decimal(self.vat_rate or 0) / Decimal("100")).quantize(Decimal("0.01"))
        self.vat_amount = vat
        self.total = subtotal + vat

    def recalc_from_items(self) -> None:
        """Subtotal becomes the sum of the line items, then VAT and total follow."""
        self.subtotal = sum((item.amount for item in self.items.all()), Decimal("0.00"))
        self.recalc_totals()

    def save(self, *args, **kwargs):
        if not self.number:
            self.number = Invoice.next_number(self.issued_at)
        super().save(*args, **kwargs)

    @property
    def is_unpaid(self) -> bool:
        return is_unpaid(self.status)


class InvoiceItem(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")
    position = models.PositiveIntegerField(default=0)
    description = models.CharField(max_length=300)
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("1.00"))
    unit = models.CharField(max_length=20, blank=True, default="")
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["invoice", "position", "id"]

    def __str__(self) -> str:
        return self.description

    @property
    def amount(self) -> Decimal:
        return (Decimal(self.quantity or 0) * Decimal(self.unit_price or 0)).quantize(Decimal("0.01"))
