"""
EMS API — HTTP Tracing Middleware
===================================

What:  Opens a SERVER span around every EMS request.
How:   Extracts any incoming W3C trace context, starts the span, stores it on
       request.state for the handlers (see tracing.get_call_context), and
       annotates it with request attributes on entry and response attributes
       on exit.
When:  Between RequestIDMiddleware and RequestLoggingMiddleware.

Span attributes:
    On start:   service.version, requestProtocol, requestMethod, http.method,
                http.target, http.flavor, request.id
    On finish:  http.route, http.status_code, responseLength

Only paths containing the configured fragment (default "/ems") are traced;
health probes and anything else pass straight through.
"""

from opentelemetry.propagate import extract
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ems_api.middleware.request_id import request_id_var


class TracingMiddleware(BaseHTTPMiddleware):
    """
    HTTP-level instrumentation.

    Exceptions escaping the application are recorded on the span (status
    ERROR) and re-raised unchanged. Responses with a 5xx status also mark the
    span as ERROR, which covers errors already turned into responses by the
    exception handlers.
    """

    def __init__(
        self,
        app,
        tracer: Tracer,
        path_fragment: str = "/ems",
        service_version: str = "",
    ):
        super().__init__(app)
        self.tracer = tracer
        self.path_fragment = path_fragment
        self.service_version = service_version

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if self.path_fragment not in path:
            return await call_next(request)

        http_version = request.scope.get("http_version", "1.1")
        attributes = {
            "service.version": self.service_version,
            "requestProtocol": f"HTTP/{http_version}",
            "requestMethod": request.method,
            "http.method": request.method,
            "http.target": path,
            "http.flavor": http_version,
            "request.id": request_id_var.get(""),
        }

        with self.tracer.start_as_current_span(
            f"{request.method} {path}",
            context=extract(request.headers),
            kind=SpanKind.SERVER,
            attributes=attributes,
            record_exception=True,
            set_status_on_exception=True,
        ) as span:
            request.state.span = span

            response = await call_next(request)

            # Routing has run by now; name the span after the route template
            # so /ems/billing/5 and /ems/billing/6 share a span name
            route = request.scope.get("route")
            route_path = getattr(route, "path", None)
            if route_path:
                span.update_name(f"{request.method} {route_path}")
                span.set_attribute("http.route", route_path)

            span.set_attribute("http.status_code", response.status_code)
            content_length = response.headers.get("content-length")
            if content_length is not None:
                span.set_attribute("responseLength", int(content_length))
            if response.status_code >= 500:
                span.set_status(Status(StatusCode.ERROR))

            return response
