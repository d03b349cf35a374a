"""
EMS API — Application Package Initializer
==========================================

What: Marks the `ems_api` directory as a Python package.
Who:  Imported by uvicorn (`uvicorn ems_api.main:app`) and by the test suite.

Architecture Note:
    The service is a thin routing-and-persistence layer:

    ┌─────────────────────────────────────┐
    │      Middleware (ID, Trace, Log)    │  ← cross-cutting concerns
    ├─────────────────────────────────────┤
    │        Routes (Request Handlers)    │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Persistence Gateway)    │  ← parameterized SQL
    ├─────────────────────────────────────┤
    │        Database (Sessions)          │  ← async SQLAlchemy
    └─────────────────────────────────────┘

    There is no business-logic layer: handlers bind payloads and hand them
    straight to the gateway.
"""

__version__ = "1.0.0"
