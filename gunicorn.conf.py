"""Gunicorn configuration for the Deskbook admin web process.

    gunicorn config.wsgi:application -c gunicorn.conf.py

Scheduled work does not run here; cron calls ``manage.py deskbook_tick`` once a minute.
"""

from __future__ import annotations

import os


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


bind = os.getenv("GUNICORN_BIND", "0.0.0.0:" + (os.getenv("PORT") or "8000"))
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# The admin is low traffic; two sync workers are plenty.
workers = _env_int("WEB_CONCURRENCY", 2)
worker_class = "sync"

timeout = _env_int("GUNICORN_TIMEOUT", 30)
graceful_timeout = _env_int("GUNICORN_GRACEFUL_TIMEOUT", 30)

max_requests = _env_int("GUNICORN_MAX_REQUESTS", 1000)
max_requests_jitter = _env_int("GUNICORN_MAX_REQUESTS_JITTER", 100)
