"""
EMS API — Persistence Gateway
===============================

What:  Executes the four statements the API needs against the relational store:
       insert-one and select-by-employee-id for Timekeeping and Payroll.
How:   Plain SQL text with typed bound parameters, executed on the request's
       AsyncSession. Each statement runs inside its own CLIENT span.
Who:   Called by the billing and payroll route handlers.

Parameter binding:
    Every caller-supplied value travels as a bound parameter (`:EmployeeId`,
    ...). Statement text is fixed at import time and is what the SQL spans
    record, so spans never contain bound values either.

Typed binds and result columns:
    `bindparam(..., type_=...)` and `.columns(...)` let SQLAlchemy convert
    `date` and `Decimal` values for drivers without native support (SQLite
    stores them as text/float) and convert them back on the way out.

Error Handling:
    Any SQLAlchemyError is rolled back, logged and re-raised as
    PersistenceError. No retries and no domain interpretation of the failure.
"""

import logging
from typing import Any, Dict, List, Mapping, Sequence

from opentelemetry.trace import SpanKind
from sqlalchemy import Date, Integer, Numeric, bindparam, column, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ems_api.exceptions import PersistenceError
from ems_api.schemas.ems import PayrollEntry, TimekeepingEntry
from ems_api.tracing import CallContext

logger = logging.getLogger(__name__)

# Scale of the stored pay rate; matches DECIMAL(19, 4) in the Payroll table
PAY_RATE_TYPE = Numeric(19, 4, asdecimal=True)


# ── Statements ────────────────────────────────────────────────────────────

INSERT_TIMEKEEPING_SQL = (
    "INSERT INTO Timekeeping (EmployeeId, ProjectId, WeekClosingDate, HoursWorked) "
    "VALUES (:EmployeeId, :ProjectId, :WeekClosingDate, :HoursWorked)"
)
INSERT_TIMEKEEPING = text(INSERT_TIMEKEEPING_SQL).bindparams(
    bindparam("EmployeeId", type_=Integer),
    bindparam("ProjectId", type_=Integer),
    bindparam("WeekClosingDate", type_=Date),
    bindparam("HoursWorked", type_=Integer),
)

SELECT_TIMEKEEPING_SQL = (
    "SELECT EmployeeId, ProjectId, WeekClosingDate, HoursWorked "
    "FROM Timekeeping WHERE EmployeeId = :EmployeeId"
)
SELECT_TIMEKEEPING = (
    text(SELECT_TIMEKEEPING_SQL)
    .bindparams(bindparam("EmployeeId", type_=Integer))
    .columns(
        column("EmployeeId", Integer),
        column("ProjectId", Integer),
        column("WeekClosingDate", Date),
        column("HoursWorked", Integer),
    )
)

INSERT_PAYROLL_SQL = (
    "INSERT INTO Payroll (EmployeeId, PayRateInUSD) VALUES (:EmployeeId, :PayRateInUSD)"
)
INSERT_PAYROLL = text(INSERT_PAYROLL_SQL).bindparams(
    bindparam("EmployeeId", type_=Integer),
    bindparam("PayRateInUSD", type_=PAY_RATE_TYPE),
)

SELECT_PAYROLL_SQL = (
    "SELECT EmployeeId, PayRateInUSD FROM Payroll WHERE EmployeeId = :EmployeeId"
)
SELECT_PAYROLL = (
    text(SELECT_PAYROLL_SQL)
    .bindparams(bindparam("EmployeeId", type_=Integer))
    .columns(
        column("EmployeeId", Integer),
        column("PayRateInUSD", PAY_RATE_TYPE),
    )
)


def _connection_attributes(session: AsyncSession) -> Dict[str, str]:
    """Connection-level span attributes: database system and name."""
    bind = getattr(session, "bind", None)
    if bind is None:
        return {}
    attributes = {}
    dialect_name = getattr(bind.dialect, "name", None)
    if isinstance(dialect_name, str):
        attributes["db.system"] = dialect_name
    database = getattr(bind.url, "database", None)
    if isinstance(database, str) and database:
        attributes["db.name"] = database
    return attributes


class PersistenceGateway:
    """
    Stateless gateway over the Timekeeping and Payroll tables.

    Each method takes the request's session and the caller's CallContext;
    nothing is held between calls. Writes commit immediately, so each insert
    is its own single-statement transaction.
    """

    async def insert_timekeeping(
        self, session: AsyncSession, entry: TimekeepingEntry, ctx: CallContext
    ) -> None:
        await self._execute(
            session, ctx, "INSERT", "Timekeeping",
            INSERT_TIMEKEEPING_SQL, INSERT_TIMEKEEPING, entry.to_row(),
            write=True,
        )
        logger.info(
            "Recorded %d hours for employee %d on project %d (week closing %s)",
            entry.hours_worked,
            entry.employee_id,
            entry.project_id,
            entry.week_closing_date,
        )

    async def query_timekeeping_by_employee(
        self, session: AsyncSession, employee_id: int, ctx: CallContext
    ) -> List[TimekeepingEntry]:
        """Rows in database order; an empty list when the employee has none."""
        rows = await self._execute(
            session, ctx, "SELECT", "Timekeeping",
            SELECT_TIMEKEEPING_SQL, SELECT_TIMEKEEPING, {"EmployeeId": employee_id},
        )
        return [
            TimekeepingEntry(
                employee_id=row["EmployeeId"],
                project_id=row["ProjectId"],
                week_closing_date=row["WeekClosingDate"],
                hours_worked=row["HoursWorked"],
            )
            for row in rows
        ]

    async def insert_payroll(
        self, session: AsyncSession, entry: PayrollEntry, ctx: CallContext
    ) -> None:
        await self._execute(
            session, ctx, "INSERT", "Payroll",
            INSERT_PAYROLL_SQL, INSERT_PAYROLL, entry.to_row(),
            write=True,
        )
        logger.info("Added employee %d to payroll", entry.employee_id)

    async def query_payroll_by_employee(
        self, session: AsyncSession, employee_id: int, ctx: CallContext
    ) -> List[PayrollEntry]:
        rows = await self._execute(
            session, ctx, "SELECT", "Payroll",
            SELECT_PAYROLL_SQL, SELECT_PAYROLL, {"EmployeeId": employee_id},
        )
        return [
            PayrollEntry(
                employee_id=row["EmployeeId"],
                pay_rate_in_usd=row["PayRateInUSD"],
            )
            for row in rows
        ]

    async def _execute(
        self,
        session: AsyncSession,
        ctx: CallContext,
        operation: str,
        table: str,
        sql: str,
        statement: Any,
        params: Mapping[str, Any],
        write: bool = False,
    ) -> Sequence[Mapping[str, Any]]:
        """
        Run one statement inside a SQL span.

        Returns the result rows as mappings for reads and an empty list for
        writes (which are committed before returning).

        Raises:
            PersistenceError: the store rejected or failed the statement
        """
        attributes = {
            "db.statement": sql,
            "db.operation": operation,
            "db.sql.table": table,
            "db.type": "sql",
            **_connection_attributes(session),
        }
        with ctx.child(f"{operation} {table}", kind=SpanKind.CLIENT, attributes=attributes):
            try:
                result = await session.execute(statement, dict(params))
                if write:
                    await session.commit()
                    return []
                return result.mappings().all()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    "Database error on %s %s: %s", operation, table, type(e).__name__
                )
                raise PersistenceError(
                    context={
                        "statement": f"{operation} {table}",
                        "original_error": type(e).__name__,
                    },
                ) from e


# Module-level instance used by the route handlers
persistence_gateway = PersistenceGateway()
