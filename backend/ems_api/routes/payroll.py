"""
EMS API — Payroll Route Handlers
==================================

What:  POST /ems/payroll/add (add an employee to payroll) and
       GET /ems/payroll/{employee_id} (payroll entries for an employee).
How:   Same shape as the billing handlers, over the Payroll table. Responses
       are returned as ExactJSONResponse so pay rates keep every stored digit.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Path
from opentelemetry.trace import SpanKind
from sqlalchemy.ext.asyncio import AsyncSession

from ems_api.database import get_db_session
from ems_api.exceptions import NotFoundError
from ems_api.responses import ExactJSONResponse
from ems_api.schemas.ems import INT32_MAX, INT32_MIN, ErrorResponse, PayrollEntry
from ems_api.services.persistence_gateway import persistence_gateway
from ems_api.tracing import CallContext, get_call_context

router = APIRouter(prefix="/ems", tags=["Payroll"])


@router.post(
    "/payroll/add",
    name="AddEmployeeToPayroll",
    status_code=201,
    response_model=PayrollEntry,
    response_class=ExactJSONResponse,
    responses={
        201: {"description": "Employee added to payroll", "model": PayrollEntry},
        500: {"description": "Persistence failure", "model": ErrorResponse},
    },
    summary="Add a pay rate for an employee",
)
async def add_employee_to_payroll(
    entry: PayrollEntry,
    db: AsyncSession = Depends(get_db_session),
    ctx: CallContext = Depends(get_call_context),
) -> ExactJSONResponse:
    with ctx.child("Add employee to payroll", kind=SpanKind.SERVER) as handler_ctx:
        handler_ctx.set_attribute("EmployeeId", entry.employee_id)
        await persistence_gateway.insert_payroll(db, entry, handler_ctx)

    return ExactJSONResponse(
        entry.model_dump(by_alias=True),
        status_code=201,
        headers={"Location": f"/ems/payroll/{entry.employee_id}"},
    )


@router.get(
    "/payroll/{employee_id}",
    name="GetEmployeePayroll",
    response_model=List[PayrollEntry],
    response_class=ExactJSONResponse,
    responses={
        200: {"description": "Payroll entries for the employee"},
        404: {"description": "No payroll entries", "model": ErrorResponse},
        500: {"description": "Persistence failure", "model": ErrorResponse},
    },
    summary="Get payroll entries for an employee",
)
async def get_employee_payroll(
    employee_id: Annotated[int, Path(ge=INT32_MIN, le=INT32_MAX)],
    db: AsyncSession = Depends(get_db_session),
    ctx: CallContext = Depends(get_call_context),
) -> ExactJSONResponse:
    """Returns 404 when the employee has no payroll entries."""
    with ctx.child("Fetch payroll for employee", kind=SpanKind.SERVER) as handler_ctx:
        handler_ctx.set_attribute("EmployeeId", employee_id)
        entries = await persistence_gateway.query_payroll_by_employee(
            db, employee_id, handler_ctx
        )
        handler_ctx.set_attribute("resultCount", len(entries))

    if not entries:
        raise NotFoundError(resource="payroll", employee_id=employee_id)
    return ExactJSONResponse([entry.model_dump(by_alias=True) for entry in entries])
