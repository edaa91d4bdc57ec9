from __future__ import annotations

from django.core.management.base import BaseCommand

from recurring.services import process_due_tasks


class Command(BaseCommand):
    help = "Raise reminders for due recurring tasks and advance them."

    def handle(self, *args, **options):
        n = process_due_tasks()
        self.stdout.write(self.style.SUCCESS(f"Processed {n} recurring task(s)."))
