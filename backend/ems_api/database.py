"""
EMS API — Database Session Management
=======================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   Creates an async engine with connection pooling and provides a session
       dependency that rolls back on error and always releases the connection.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Connection Lifetime:
    One AsyncSession per request. The session checks a connection out of the
    pool on its first statement and returns it when closed. Commits are issued
    by the persistence gateway right after each write, so every write is its
    own single-statement transaction; the dependency only has to guarantee
    release.

Schema:
    Tables are owned by the database administrators. This module never creates
    or migrates them.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ems_api.config import settings


def _engine_options() -> Dict[str, Any]:
    """Pool options for the configured backend; SQLite pools take no sizing."""
    options: Dict[str, Any] = {
        # Echo SQL in DEBUG mode for development visibility
        "echo": settings.log_level == "DEBUG",
    }
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,  # Recycle after 1 hour to prevent stale connections
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: nothing is ORM-mapped, but keeps results usable
# after the gateway commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On error: rolls back whatever the failed statement left open
        4. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/ems/billing/{employee_id}")
        async def get_billing_details(
            employee_id: int, db: AsyncSession = Depends(get_db_session)
        ): ...

    Raises:
        Any exception raised by the handler is propagated to the global
        error handler after cleanup.
    """
    session = async_session_factory()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections. Called during application shutdown."""
    await engine.dispose()
