from __future__ import annotations

from .base import *  # noqa


DEBUG = False
SECRET_KEY = "deskbook-test-key"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

TIME_ZONE = "UTC"

DESKBOOK_STRICT_INVOICE_TRANSITIONS = True
DESKBOOK_REMINDER_HOUR = 9
DESKBOOK_REMINDER_FALLBACK_EMAIL = "owner@example.com"
DESKBOOK_WEBHOOK_URL = ""
DESKBOOK_WEBHOOK_SECRET = ""

ALLOWED_HOSTS = ["testserver", "localhost"]
ADMINS = []
