# crm/models.py
from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import TrackedModel


class ClientType(models.TextChoices):
    COMPANY = "company", "Company"
    INDIVIDUAL = "individual", "Individual"


class Client(TrackedModel):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="clients",
    )
    client_type = models.CharField(max_length=20, choices=ClientType.choices, default=ClientType.COMPANY)

    company_name = models.CharField(max_length=160, blank=True, default="")
    first_name = models.CharField(max_length=80, blank=True, default="")
    last_name = models.CharField(max_length=80, blank=True, default="")

    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=40, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    class Meta:
        indexes = [
            models.Index(fields=["company_name", "last_name", "first_name"], name="crm_client_name_idx"),
            models.Index(fields=["email"], name="crm_client_email_idx"),
        ]

    def display_name(self) -> str:
        if self.company_name.strip():
            return self.company_name.strip()
        return " ".join([x for x in [self.first_name.strip(), self.last_name.strip()] if x])

    def __str__(self) -> str:
        return self.display_name() or str(self.pk)
