# Middleware package init
"""
EMS API — Middleware Package
==============================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Tracing] → [Logging] → Route Handler

    1. Request ID first: every later layer can tag its output with it
    2. Tracing: opens the HTTP span the handler spans nest under
    3. Logging: logs status and duration together with the trace ID

    The order is reversed for responses, so the access log is written before
    the HTTP span ends.
"""
