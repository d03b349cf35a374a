"""
EMS API — Custom Exception Hierarchy
======================================

What:  Application-specific exceptions for the two failure modes handlers see.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by the persistence gateway and the route handlers.

Exception Hierarchy:
    EMSError (base)
    ├── NotFoundError      → 404 Not Found
    └── PersistenceError   → 500 Internal Server Error

Input-shape errors never reach this hierarchy: FastAPI rejects bodies and
path parameters that do not bind to their declared types with a 422.
"""

from typing import Any, Dict, Optional


class EMSError(Exception):
    """
    Base exception for all EMS application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class NotFoundError(EMSError):
    """
    Raised when a lookup by employee id returns zero rows.

    HTTP:    404 Not Found

    An employee with no rows and an employee that does not exist at all are
    indistinguishable here; both produce this error.
    """

    def __init__(
        self,
        resource: str = "resource",
        employee_id: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"No {resource} records were found"
        if employee_id is not None:
            message = f"No {resource} records were found for employee {employee_id}"
        ctx = context or {}
        ctx["resource"] = resource
        if employee_id is not None:
            ctx["employee_id"] = employee_id
        super().__init__(message=message, context=ctx)


class PersistenceError(EMSError):
    """
    Raised when a statement against the relational store fails.

    When:    Connection refused or lost, constraint violation, timeout.
    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. The statement name
    and driver error class are kept in `context` for server-side logs only.
    The gateway never retries; the original driver exception is chained as
    `__cause__`.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
