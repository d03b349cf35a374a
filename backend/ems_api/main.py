"""
EMS API — FastAPI Application Factory
=======================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn ems_api.main:app) and by
       the test suite with an in-memory tracer provider.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Request ID  │→│ Tracing  │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌──────────────┐ ┌─────────────┐  │
    │  │ /ems/billing │ │ /ems/payroll │ │ GET /health │  │
    │  └──────────────┘ └──────────────┘ └─────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ NotFound→404 │ Persistence→500 │ other→500   │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, log the effective configuration
    Shutdown: dispose the database engine, flush and stop the span exporter
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from opentelemetry.sdk.trace import TracerProvider

from ems_api import __version__
from ems_api.config import settings
from ems_api.database import dispose_engine
from ems_api.exceptions import EMSError, NotFoundError, PersistenceError
from ems_api.middleware.logging import RequestLoggingMiddleware
from ems_api.middleware.request_id import RequestIDMiddleware
from ems_api.middleware.tracing import TracingMiddleware
from ems_api.routes import billing, health, payroll
from ems_api.tracing import build_tracer_provider, get_tracer

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, to stdout.
    Called once during startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup logs the effective configuration; shutdown releases the
    connection pool and flushes any spans still queued for export.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("EMS API %s starting up...", __version__)
    logger.info(
        "Trace export: %s",
        settings.otlp_endpoint if settings.otlp_headers else "disabled (no token)",
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("EMS API shutting down...")
    await dispose_engine()
    # Flushes the batch processor; export errors are logged by the SDK
    app.state.tracer_provider.shutdown()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and JSON error bodies.

    Handler hierarchy:
        NotFoundError     → 404 Not Found
        PersistenceError  → 500 Internal Server Error (generic message)
        EMSError (base)   → 500 Internal Server Error
        Exception         → 500 Internal Server Error (unexpected errors)

    Bodies never carry SQL text, driver messages or stack traces; those are
    logged server-side only.
    """

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": _request_id(request),
            },
        )

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        rid = _request_id(request)
        logger.error("[%s] Persistence error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(EMSError)
    async def handle_ems_error(request: Request, exc: EMSError):
        rid = _request_id(request)
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(tracer_provider: Optional[TracerProvider] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        tracer_provider: Provider to create spans with. Defaults to one built
            from settings (always-on sampling, OTLP export when a token is
            set). Tests pass a provider wired to an in-memory exporter.
    """
    app = FastAPI(
        title="EMS API",
        description="Employee management: project billing and payroll.",
        version=__version__,
        # API explorer and schema endpoints are not served
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    provider = tracer_provider or build_tracer_provider(settings)
    tracer = get_tracer(provider)
    app.state.tracer_provider = provider
    app.state.tracer = tracer

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in REVERSE order of addition: RequestID → Tracing → Logging
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        TracingMiddleware,
        tracer=tracer,
        path_fragment=settings.traced_path_prefix,
        service_version=settings.service_version,
    )
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(billing.router)
    app.include_router(payroll.router)
    app.include_router(health.router)

    return app


app = create_app()
