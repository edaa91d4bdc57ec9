from __future__ import annotations

from .base import *  # noqa
from .base import _getenv, _getenv_bool, _getenv_int


DEBUG = False

# In production you MUST set ALLOWED_HOSTS (and CSRF_TRUSTED_ORIGINS) via env.

# Security
SECURE_SSL_REDIRECT = _getenv_bool("SECURE_SSL_REDIRECT", True)
SESSION_COOKIE_SECURE = _getenv_bool("SESSION_COOKIE_SECURE", True)
CSRF_COOKIE_SECURE = _getenv_bool("CSRF_COOKIE_SECURE", True)
SESSION_COOKIE_HTTPONLY = True

SECURE_HSTS_SECONDS = _getenv_int("SECURE_HSTS_SECONDS", 60 * 60 * 24 * 30)
SECURE_HSTS_INCLUDE_SUBDOMAINS = _getenv_bool("SECURE_HSTS_INCLUDE_SUBDOMAINS", True)
SECURE_REFERRER_POLICY = _getenv("SECURE_REFERRER_POLICY", "same-origin")

# Trust X-Forwarded-Proto from proxy
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")


# Email: default to SMTP in prod (set EMAIL_HOST etc in env)
EMAIL_BACKEND = _getenv(
    "EMAIL_BACKEND",
    "django.core.mail.backends.smtp.EmailBackend",
)

LOGGING["loggers"].update(
    {
        "core.email_utils": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "reminders": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "recurring": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "invoices": {"handlers": ["console"], "level": "INFO", "propagate": False},
    }
)

init_sentry_if_configured()
