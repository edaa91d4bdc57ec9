from __future__ import annotations

from .base import *  # noqa
from .base import _getenv


# --------------------------------------------------------------------------------------
# Development settings
# --------------------------------------------------------------------------------------

DEBUG = True

if not ALLOWED_HOSTS:
    ALLOWED_HOSTS = ["127.0.0.1", "localhost"]

if not CSRF_TRUSTED_ORIGINS:
    CSRF_TRUSTED_ORIGINS = ["http://127.0.0.1:8000", "http://localhost:8000"]

# Reminder emails go to the console locally.
EMAIL_BACKEND = _getenv(
    "EMAIL_BACKEND",
    "django.core.mail.backends.console.EmailBackend",
)

SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

# Optional monitoring in dev (only if SENTRY_DSN is set)
init_sentry_if_configured()
