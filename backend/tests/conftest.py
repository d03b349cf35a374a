"""
EMS API — Test Configuration (conftest.py)
============================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── db_engine: SQLite (aiosqlite) database file with both tables created
    ├── session_factory / db_session: sessions bound to that database
    ├── span_exporter: in-memory exporter collecting finished spans
    ├── tracer_provider / call_context: tracing wired to span_exporter
    ├── app: application from create_app() using the test database and tracer
    └── test_client: HTTPX AsyncClient talking to `app` over ASGI
"""

import os
import tempfile

# Override settings for testing BEFORE any application imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="ems_test_"), "unused.db"
)
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("TRACE_EXPORT_TOKEN", None)
os.environ.pop("LSTOKEN", None)

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ems_api.database import get_db_session
from ems_api.main import create_app
from ems_api.tracing import CallContext, get_tracer

# The application never creates tables; tests do it with plain DDL
SCHEMA = (
    "CREATE TABLE Timekeeping ("
    " EmployeeId INTEGER NOT NULL,"
    " ProjectId INTEGER NOT NULL,"
    " WeekClosingDate DATE NOT NULL,"
    " HoursWorked INTEGER NOT NULL)",
    "CREATE TABLE Payroll ("
    " EmployeeId INTEGER NOT NULL,"
    " PayRateInUSD DECIMAL(19, 4) NOT NULL)",
)


@pytest.fixture
def billing_payload():
    """The example billing record used across the route tests."""
    return {
        "employeeId": 5,
        "projectId": 12,
        "weekClosingDate": "2024-01-07",
        "hoursWorked": 40,
    }


@pytest.fixture
def payroll_payload():
    return {"employeeId": 5, "payRateInUSD": 42.5}


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh SQLite database per test, with the Timekeeping and Payroll tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ems.db'}")
    async with engine.begin() as conn:
        for ddl in SCHEMA:
            await conn.execute(text(ddl))
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Tracing
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter):
    """
    Provider exporting synchronously to memory.

    SimpleSpanProcessor hands each span to the exporter as it ends, so tests
    can assert on spans right after a request returns.
    """
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def call_context(tracer_provider):
    return CallContext.root(get_tracer(tracer_provider))


# ══════════════════════════════════════════════════════════════════════════
# Application
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(tracer_provider, session_factory):
    """
    Application instance using the test database and the in-memory tracer.

    Tests that need a broken database replace the get_db_session override.
    """
    application = create_app(tracer_provider=tracer_provider)

    async def override_db_session():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db_session] = override_db_session
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient configured to talk to the FastAPI app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def finished_spans(span_exporter):
    """Callable returning the finished spans keyed by name."""
    def collect() -> dict:
        return {span.name: span for span in span_exporter.get_finished_spans()}
    return collect


@pytest.fixture
def unreachable_database(app):
    """
    Point the app at a session whose every statement fails as if the
    database server were down.
    """
    session = AsyncMock()
    session.bind = None
    session.execute.side_effect = OperationalError(
        "SELECT 1", {}, ConnectionRefusedError("connection refused")
    )

    async def override_db_session():
        yield session

    app.dependency_overrides[get_db_session] = override_db_session
    return session
