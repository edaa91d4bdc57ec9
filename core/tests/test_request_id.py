from __future__ import annotations

import logging

from django.test import TestCase

from core.logging import RequestIDLogFilter
from core.request_context import get_request_id, set_request_id


class RequestIDTests(TestCase):
    def test_health_echoes_request_id(self):
        resp = self.client.get("/health/", HTTP_X_REQUEST_ID="abc123")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp["X-Request-ID"], "abc123")
        self.assertEqual(resp.json()["checks"]["database"]["status"], "ok")
        self.assertEqual(get_request_id(), "")

    def test_log_filter_injects_id(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        RequestIDLogFilter().filter(record)
        self.assertEqual(record.request_id, "-")

        set_request_id("job-1")
        try:
            RequestIDLogFilter().filter(record)
            self.assertEqual(record.request_id, "job-1")
        finally:
            set_request_id("")
