from __future__ import annotations

from django.core.management.base import BaseCommand

from invoices.services import sweep_overdue_invoices


class Command(BaseCommand):
    help = "Mark sent invoices past their due date as overdue and create reminders."

    def handle(self, *args, **options):
        flagged = sweep_overdue_invoices()
        self.stdout.write(self.style.SUCCESS(f"Marked {flagged} invoice(s) as overdue."))
