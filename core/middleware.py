from __future__ import annotations

import uuid

from .request_context import set_request_id


class RequestIDMiddleware:
    """Attach a request id to each request/response for traceability."""

    header_name = "X-Request-ID"

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        rid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())
        request.request_id = rid
        set_request_id(rid)
        try:
            response = self.get_response(request)
        finally:
            set_request_id("")
        response[self.header_name] = rid
        return response
