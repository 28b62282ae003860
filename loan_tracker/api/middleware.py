"""
Request logging middleware

Logs each request on entry (method, path, client, user agent, query params and,
for writes, the JSON body with secrets redacted) and on exit (status and
elapsed time). Every request carries a request id, taken from the
X-Request-ID header or generated, and echoed back in the response.
"""

from fastapi import Request
import json
import time
import uuid

from ..logging_config import get_logger, log_event


REDACTED_FIELDS = {"password"}
WRITE_METHODS = {"POST", "PUT", "PATCH"}


def _redact(body):
    if isinstance(body, dict):
        return {k: ("***" if k in REDACTED_FIELDS else v) for k, v in body.items()}
    return body


class RequestLogger:
    def __init__(self, log_bodies: bool = True):
        self.log_bodies = log_bodies
        self.logger = get_logger("loan_tracker.http")

    async def __call__(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        path = request.url.path
        details = {
            "method": request.method,
            "path": path,
            "client": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent", "Unknown"),
        }
        if request.query_params:
            details["query"] = dict(request.query_params)
        if self.log_bodies and request.method in WRITE_METHODS:
            raw = await request.body()
            if raw:
                try:
                    details["body"] = _redact(json.loads(raw))
                except ValueError:
                    details["body"] = f"<{len(raw)} bytes>"

        log_event(self.logger, "info", f"{request.method} {path}", "request",
                  request_id=request_id, **details)

        response = await call_next(request)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        log_event(
            self.logger, "warning" if response.status_code >= 400 else "info",
            f"{request.method} {path} - Status: {response.status_code} - Time: {elapsed_ms}ms",
            "response", request_id=request_id,
            status=response.status_code, elapsed_ms=elapsed_ms
        )
        return response
