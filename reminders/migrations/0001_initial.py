from __future__ import annotations

import uuid

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Reminder",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("due_at", models.DateTimeField()),
                (
                    "priority",
                    models.CharField(
                        choices=[("low", "Low"), ("normal", "Normal"), ("high", "High")],
                        default="normal",
                        max_length=10,
                    ),
                ),
                (
                    "recurrence",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("daily", "Daily"),
                            ("weekly", "Weekly"),
                            ("monthly", "Monthly"),
                            ("quarterly", "Quarterly"),
                            ("yearly", "Yearly"),
                        ],
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "remindable_kind",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("client", "Client"),
                            ("project", "Project"),
                            ("invoice", "Invoice"),
                            ("recurring_task", "Recurring task"),
                        ],
                        default="",
                        max_length=20,
                    ),
                ),
                ("remindable_id", models.UUIDField(blank=True, null=True)),
                ("is_system", models.BooleanField(default=False)),
                (
                    "system_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("recurring_task", "Recurring task due"),
                            ("recurring_task_upcoming", "Recurring task upcoming"),
                            ("overdue_invoice", "Overdue invoice"),
                            ("offer_followup", "Offer follow-up"),
                        ],
                        default="",
                        max_length=40,
                    ),
                ),
                ("occurrence_date", models.DateField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("notified_at", models.DateTimeField(blank=True, null=True)),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reminders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["due_at"],
                "indexes": [
                    models.Index(fields=["completed_at", "due_at"], name="rem_pending_due_idx"),
                    models.Index(fields=["remindable_kind", "remindable_id"], name="rem_link_idx"),
                    models.Index(fields=["system_type", "occurrence_date"], name="rem_system_occ_idx"),
                ],
            },
        ),
    ]
