from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


# Base directory (project root)
BASE_DIR = Path(__file__).resolve().parents[2]

# Load environment variables from .env (if present)
load_dotenv(BASE_DIR / ".env")


def _getenv(name: str, default: str | None = None) -> str:
    val = os.getenv(name)
    if val is None:
        return "" if default is None else default
    return str(val)


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _getenv_int(name: str, default: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


DEBUG = _getenv_bool("DEBUG", False)
SECRET_KEY = _getenv("SECRET_KEY", "django-insecure-CHANGE_ME")

ALLOWED_HOSTS = [h.strip() for h in _getenv("ALLOWED_HOSTS", "").split(",") if h.strip()]

CSRF_TRUSTED_ORIGINS = [
    o.strip() for o in _getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if o.strip()
]


# Application definition
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Project apps
    "core",
    "crm",
    "projects",
    "invoices",
    "reminders",
    "recurring",
    "timetracking",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "core.middleware.RequestIDMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

WSGI_APPLICATION = "config.wsgi.application"


# Database
# PostgreSQL when POSTGRES_DB is configured, otherwise a local SQLite file.
if _getenv("POSTGRES_DB", "").strip():
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": _getenv("POSTGRES_DB"),
            "USER": _getenv("POSTGRES_USER", "deskbook"),
            "PASSWORD": _getenv("POSTGRES_PASSWORD", ""),
            "HOST": _getenv("POSTGRES_HOST", "localhost"),
            "PORT": _getenv("POSTGRES_PORT", "5432"),
            "CONN_MAX_AGE": _getenv_int("DB_CONN_MAX_AGE", 0),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]


# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = _getenv("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True


STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


SITE_NAME = _getenv("SITE_NAME", "Deskbook")

# SMTP (used when EMAIL_BACKEND is SMTP backend)
EMAIL_HOST = _getenv("EMAIL_HOST", "localhost")
EMAIL_PORT = _getenv_int("EMAIL_PORT", 587)
EMAIL_USE_TLS = _getenv_bool("EMAIL_USE_TLS", True)
EMAIL_HOST_USER = _getenv("EMAIL_HOST_USER", "")
EMAIL_HOST_PASSWORD = _getenv("EMAIL_HOST_PASSWORD", "")

DEFAULT_FROM_EMAIL = _getenv("DEFAULT_FROM_EMAIL", "deskbook@localhost")
SERVER_EMAIL = _getenv("SERVER_EMAIL", DEFAULT_FROM_EMAIL)

# Optional subject prefix for all outbound email (e.g. "[Deskbook] ")
EMAIL_SUBJECT_PREFIX = _getenv("EMAIL_SUBJECT_PREFIX", "[Deskbook] ")


# -------------------------
# Deskbook rules
# -------------------------
# Strict: invoice mutators re-check the transition table and raise InvalidTransition.
# Lenient: mark_sent/cancel/mark_as_paid trust the caller (admin gating only).
DESKBOOK_STRICT_INVOICE_TRANSITIONS = _getenv_bool("DESKBOOK_STRICT_INVOICE_TRANSITIONS", True)

# Local hour at which system reminders for a due date fall due.
DESKBOOK_REMINDER_HOUR = _getenv_int("DESKBOOK_REMINDER_HOUR", 9)

DESKBOOK_OFFER_FOLLOWUP_DAYS = _getenv_int("DESKBOOK_OFFER_FOLLOWUP_DAYS", 7)

# Invoices drafted from a project: due date is issue date + payment terms.
DESKBOOK_PAYMENT_TERMS_DAYS = _getenv_int("DESKBOOK_PAYMENT_TERMS_DAYS", 14)
DESKBOOK_DEFAULT_VAT_RATE = _getenv("DESKBOOK_DEFAULT_VAT_RATE", "19.00")

DESKBOOK_REMINDER_NOTIFIER = _getenv(
    "DESKBOOK_REMINDER_NOTIFIER",
    "reminders.notifications.CompositeReminderNotifier",
)
# Channels the composite notifier fans out to. Each runs even if another fails.
DESKBOOK_REMINDER_CHANNELS = [
    "reminders.notifications.EmailReminderNotifier",
    "reminders.notifications.WebhookReminderNotifier",
]
# Used when a reminder has no owner (or the owner has no email address).
DESKBOOK_REMINDER_FALLBACK_EMAIL = _getenv("DESKBOOK_REMINDER_FALLBACK_EMAIL", "")

# Empty URL disables the webhook channel. Requests are signed with HMAC-SHA256 of the body.
DESKBOOK_WEBHOOK_URL = _getenv("DESKBOOK_WEBHOOK_URL", "")
DESKBOOK_WEBHOOK_SECRET = _getenv("DESKBOOK_WEBHOOK_SECRET", "")
DESKBOOK_WEBHOOK_TIMEOUT = _getenv_int("DESKBOOK_WEBHOOK_TIMEOUT", 10)

# Scheduled jobs run by `manage.py deskbook_tick` (cron, once per minute).
# "at" is local HH:MM for daily jobs; "every_minute" jobs run on each tick.
DESKBOOK_SCHEDULE = [
    {"name": "recurring-tasks:reminders", "command": "create_upcoming_task_reminders", "at": "07:00"},
    {"name": "recurring-tasks:process", "command": "process_recurring_tasks", "at": "08:00"},
    {"name": "invoices:check-overdue", "command": "check_overdue_invoices", "at": "08:00"},
    {"name": "reminders:notify", "command": "process_due_reminders", "every_minute": True},
]

DESKBOOK_JOB_OUTPUT_MAX_CHARS = _getenv_int("DESKBOOK_JOB_OUTPUT_MAX_CHARS", 20000)


ENVIRONMENT = os.getenv("DESKBOOK_ENV", "dev")
RELEASE_SHA = os.getenv("DESKBOOK_RELEASE_SHA", "")


# Format: "Name:email,Name2:email2". If empty, no admin alert emails are sent.
_raw_admins = _getenv("DESKBOOK_ADMINS", "").strip()
ADMINS = []
if _raw_admins:
    for part in _raw_admins.split(","):
        part = part.strip()
        if not part:
            continue
        if ":" in part:
            name, email = part.split(":", 1)
            name = name.strip() or "Admin"
            email = email.strip()
        else:
            name, email = "Admin", part.strip()
        if email:
            ADMINS.append((name, email))


# --------------------------------------------------------------------------------------
# Logging
# --------------------------------------------------------------------------------------

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": "core.logging.RequestIDLogFilter"},
    },
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s [rid=%(request_id)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "filters": ["request_id"],
            "formatter": "standard",
        },
    },
    "root": {"handlers": ["console"], "level": _getenv("DJANGO_LOG_LEVEL", "INFO")},
    "loggers": {
        "django.request": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}


def init_sentry_if_configured() -> None:
    dsn = _getenv("SENTRY_DSN", "").strip()
    if not dsn:
        return

    environment = _getenv("SENTRY_ENVIRONMENT", ENVIRONMENT).strip() or ENVIRONMENT
    try:
        traces = float(_getenv("SENTRY_TRACES_SAMPLE_RATE", "0.05") or "0.05")
    except ValueError:
        traces = 0.05

    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=RELEASE_SHA or None,
        integrations=[DjangoIntegration()],
        traces_sample_rate=traces,
        send_default_pii=False,
    )
