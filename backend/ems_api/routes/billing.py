"""
EMS API — Billing Route Handlers
==================================

What:  POST /ems/billing (record project work) and
       GET /ems/billing/{employee_id} (billing details for an employee).
How:   Bind the payload or path parameter, open a handler span under the HTTP
       span, call the persistence gateway, map the result to a response.

Recording work is the one place with business telemetry: the handler span
gets a "Work recorded" event and is tagged with the employee, project and
week-closing date, so billing activity can be searched for in the tracing
backend independent of the generic HTTP/SQL instrumentation.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Path, Response
from opentelemetry.trace import SpanKind
from sqlalchemy.ext.asyncio import AsyncSession

from ems_api.database import get_db_session
from ems_api.exceptions import NotFoundError
from ems_api.schemas.ems import INT32_MAX, INT32_MIN, ErrorResponse, TimekeepingEntry
from ems_api.services.persistence_gateway import persistence_gateway
from ems_api.tracing import CallContext, get_call_context

router = APIRouter(prefix="/ems", tags=["Billing"])


@router.post(
    "/billing",
    name="RecordProjectWork",
    status_code=201,
    response_model=TimekeepingEntry,
    responses={
        201: {"description": "Work recorded", "model": TimekeepingEntry},
        500: {"description": "Persistence failure", "model": ErrorResponse},
    },
    summary="Record billable hours for an employee on a project",
)
async def record_project_work(
    entry: TimekeepingEntry,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    ctx: CallContext = Depends(get_call_context),
) -> TimekeepingEntry:
    """
    Persist one timekeeping entry and echo it back.

    Returns 201 with a Location header pointing at the employee's billing
    records. A persistence failure propagates as PersistenceError (→ 500);
    nothing is reported as created unless the insert committed.
    """
    with ctx.child("Record project work", kind=SpanKind.SERVER) as handler_ctx:
        handler_ctx.set_attribute("EmployeeId", entry.employee_id)
        handler_ctx.set_attribute("ProjectId", entry.project_id)
        handler_ctx.set_attribute("WeekClosingDate", entry.week_closing_date.isoformat())

        await persistence_gateway.insert_timekeeping(db, entry, handler_ctx)

        handler_ctx.add_event(
            "Work recorded",
            {"EmployeeId": entry.employee_id, "HoursWorked": entry.hours_worked},
        )

    response.headers["Location"] = f"/ems/billing/{entry.employee_id}"
    return entry


@router.get(
    "/billing/{employee_id}",
    name="GetBillingDetails",
    response_model=List[TimekeepingEntry],
    responses={
        200: {"description": "Billing records for the employee"},
        404: {"description": "No billing records", "model": ErrorResponse},
        500: {"description": "Persistence failure", "model": ErrorResponse},
    },
    summary="Get all billing records for an employee",
)
async def get_billing_details(
    employee_id: Annotated[int, Path(ge=INT32_MIN, le=INT32_MAX)],
    db: AsyncSession = Depends(get_db_session),
    ctx: CallContext = Depends(get_call_context),
) -> List[TimekeepingEntry]:
    """
    Billing records for one employee, in database order.

    An employee with no records and an unknown employee both return 404.
    Non-integer ids and ids outside the INT column range are rejected with
    422 before this handler runs.
    """
    with ctx.child("Fetch projects for employee", kind=SpanKind.SERVER) as handler_ctx:
        handler_ctx.set_attribute("EmployeeId", employee_id)
        entries = await persistence_gateway.query_timekeeping_by_employee(
            db, employee_id, handler_ctx
        )
        handler_ctx.set_attribute("resultCount", len(entries))

    if not entries:
        raise NotFoundError(resource="billing", employee_id=employee_id)
    return entries
