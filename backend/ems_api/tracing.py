"""
EMS API — Distributed Tracing
===============================

What:  OpenTelemetry tracer-provider setup and the explicit span-carrying
       call context handed from handlers to the persistence gateway.
How:   TracerProvider with an always-on sampler, a BatchSpanProcessor and an
       OTLP exporter speaking protobuf over HTTP, authenticated with a token
       header.
Who:   Built by create_app(); used by TracingMiddleware, the route handlers
       and the persistence gateway.

Span Hierarchy (one request):
    POST /ems/billing                 SERVER  (TracingMiddleware)
    └── Record project work           SERVER  (billing handler)
        └── INSERT Timekeeping        CLIENT  (persistence gateway)

Export:
    The batch processor queues finished spans and ships them from a
    background thread. A slow or unreachable collector only delays or drops
    spans; it never blocks or fails the request. Export errors are logged by
    the SDK and swallowed there.

Why an explicit CallContext:
    Each layer receives the span it should parent under as an argument instead
    of reading the ambient OpenTelemetry context, so span nesting is visible
    in the call signatures and does not depend on context propagation across
    task boundaries.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional

from fastapi import Request
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.trace import Span, SpanKind, Tracer

from ems_api import __version__
from ems_api.config import Settings

logger = logging.getLogger(__name__)

# Instrumentation scope name for every span this service creates
TRACER_NAME = "my-corp.ems.ems-api"


def build_tracer_provider(config: Settings) -> TracerProvider:
    """
    Create the tracer provider for the process.

    Every trace is sampled. The OTLP exporter is only attached when a
    collector token is configured; without one, spans are created (so
    instrumentation behaves identically) but never leave the process.
    """
    resource = Resource.create(
        {
            SERVICE_NAME: config.service_name,
            SERVICE_VERSION: config.service_version,
        }
    )
    provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

    headers = config.otlp_headers
    if headers is None:
        logger.warning(
            "TRACE_EXPORT_TOKEN is not set; spans will not be exported to %s",
            config.otlp_endpoint,
        )
        return provider

    exporter = OTLPSpanExporter(
        endpoint=config.otlp_endpoint,
        headers=headers,
        timeout=config.otlp_export_timeout,
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    logger.info("Exporting spans to %s", config.otlp_endpoint)
    return provider


def get_tracer(provider: TracerProvider) -> Tracer:
    return provider.get_tracer(TRACER_NAME, __version__)


@dataclass(frozen=True)
class CallContext:
    """
    The active span of the current call, paired with the tracer that owns it.

    Handlers open their span as a child of the HTTP span and pass the
    resulting CallContext down to the gateway, which opens SQL spans the same
    way.
    """

    tracer: Tracer
    span: Span

    @classmethod
    def root(cls, tracer: Tracer) -> "CallContext":
        """A context with no active span; children become trace roots."""
        return cls(tracer=tracer, span=trace.INVALID_SPAN)

    @contextmanager
    def child(
        self,
        name: str,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> Iterator["CallContext"]:
        """
        Open a span parented on this context's span.

        Exceptions escaping the block are recorded on the child span and its
        status is set to ERROR before they propagate.
        """
        parent = trace.set_span_in_context(self.span)
        with self.tracer.start_as_current_span(
            name,
            context=parent,
            kind=kind,
            attributes=attributes,
            record_exception=True,
            set_status_on_exception=True,
        ) as span:
            yield CallContext(tracer=self.tracer, span=span)

    def add_event(self, name: str, attributes: Optional[Mapping[str, Any]] = None) -> None:
        self.span.add_event(name, attributes=attributes)

    def set_attribute(self, key: str, value: Any) -> None:
        self.span.set_attribute(key, value)


def get_call_context(request: Request) -> CallContext:
    """
    FastAPI dependency returning the request's CallContext.

    The HTTP span is stored on request.state by TracingMiddleware. Untraced
    requests get a root context, so handler spans still exist but start a new
    trace.
    """
    tracer = request.app.state.tracer
    span = getattr(request.state, "span", None)
    if span is None:
        return CallContext.root(tracer)
    return CallContext(tracer=tracer, span=span)
