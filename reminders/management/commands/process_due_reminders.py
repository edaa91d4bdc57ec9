from __future__ import annotations

from django.core.management.base import BaseCommand

from reminders.services import process_due_reminders


class Command(BaseCommand):
    help = "Send notifications for reminders that are due and not yet notified."

    def handle(self, *args, **options):
        dispatched = process_due_reminders()
        self.stdout.write(self.style.SUCCESS(f"Dispatched {dispatched} reminder(s)."))
