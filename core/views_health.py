from __future__ import annotations

from datetime import datetime, timezone as dt_timezone

from django.conf import settings
from django.db import connection
from django.http import HttpRequest, JsonResponse


def _db_check() -> tuple[str, str | None]:
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
        return "ok", None
    except Exception as e:
        return "error", str(e)[:500]


def health(request: HttpRequest) -> JsonResponse:
    """Liveness + database check for monitors."""
    db_status, db_error = _db_check()
    payload = {
        "status": "ok" if db_status == "ok" else "error",
        "time": datetime.now(dt_timezone.utc).isoformat(),
        "environment": getattr(settings, "ENVIRONMENT", ""),
        "release": getattr(settings, "RELEASE_SHA", ""),
        "checks": {"database": {"status": db_status, "error": db_error}},
    }
    return JsonResponse(payload, status=200 if db_status == "ok" else 503)
