from __future__ import annotations

from django.core.management.base import BaseCommand

from recurring.services import create_upcoming_reminders


class Command(BaseCommand):
    help = "Create lead-time reminders for recurring tasks coming due."

    def handle(self, *args, **options):
        n = create_upcoming_reminders()
        self.stdout.write(self.style.SUCCESS(f"Created {n} upcoming reminder(s)."))
