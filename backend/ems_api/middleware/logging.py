"""
EMS API — Request Logging Middleware
======================================

What:  One access-log line per HTTP request.
How:   Measures wall time around the rest of the stack and logs method, path,
       status, duration, request ID and, for traced requests, the trace ID.
When:  Innermost custom middleware, so the request ID and the HTTP span
       already exist.

Request and response bodies are never logged.
"""

import logging
import time

from opentelemetry.trace import format_trace_id
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ems_api.middleware.request_id import request_id_var

logger = logging.getLogger("ems.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs structured information about each HTTP request and response.

    Log level follows the status class: 5xx → ERROR, 4xx → WARNING,
    everything else → INFO. Health checks are skipped.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        trace_id = ""
        span = getattr(request.state, "span", None)
        if span is not None:
            span_context = span.get_span_context()
            if span_context.is_valid:
                trace_id = format_trace_id(span_context.trace_id)

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] trace=%s from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            trace_id or "-",
            client_ip,
            extra={
                "request_id": rid,
                "trace_id": trace_id,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
