"""
EMS API — Pydantic Request/Response Schemas
=============================================

What:  Pydantic models defining the wire contract of the four EMS endpoints.
How:   FastAPI validates request bodies against these models (422 on any field
       that does not bind to its declared type) and serializes responses
       through them.

Wire format:
    JSON keys are camelCase (`employeeId`, `weekClosingDate`, `payRateInUSD`).
    Python code uses snake_case attribute names; both are accepted on input.

Ranges:
    Integer fields fit a 32-bit INT column. Pay rates fit DECIMAL(19, 4):
    at most 19 digits, at most 4 after the point. Payroll responses are
    rendered by responses.ExactJSONResponse so the rate is an exact JSON
    number.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Dict

from pydantic import BaseModel, ConfigDict, Field

# Bounds of the INT columns; out-of-range values are rejected at binding
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

Int32 = Annotated[int, Field(ge=INT32_MIN, le=INT32_MAX)]

# DECIMAL(19, 4): anything the column would round is rejected instead
USDAmount = Annotated[Decimal, Field(max_digits=19, decimal_places=4)]


class TimekeepingEntry(BaseModel):
    """
    One billed week of work for one employee on one project.

    Maps 1:1 to a row of the Timekeeping table. Duplicate entries for the
    same employee/project/week are allowed.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "employeeId": 5,
                "projectId": 12,
                "weekClosingDate": "2024-01-07",
                "hoursWorked": 40,
            }
        },
    )

    employee_id: Int32 = Field(alias="employeeId", description="Employee identifier")
    project_id: Int32 = Field(alias="projectId", description="Project identifier")
    week_closing_date: date = Field(
        alias="weekClosingDate", description="Last day of the billed week"
    )
    hours_worked: Int32 = Field(alias="hoursWorked", description="Hours billed")

    def to_row(self) -> Dict[str, Any]:
        """Bound parameters for the Timekeeping insert statement."""
        return {
            "EmployeeId": self.employee_id,
            "ProjectId": self.project_id,
            "WeekClosingDate": self.week_closing_date,
            "HoursWorked": self.hours_worked,
        }


class PayrollEntry(BaseModel):
    """An employee's pay rate. Maps 1:1 to a row of the Payroll table."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"employeeId": 5, "payRateInUSD": 42.5}},
    )

    employee_id: Int32 = Field(alias="employeeId", description="Employee identifier")
    pay_rate_in_usd: USDAmount = Field(
        alias="payRateInUSD", description="Pay rate in US dollars"
    )

    def to_row(self) -> Dict[str, Any]:
        return {
            "EmployeeId": self.employee_id,
            "PayRateInUSD": self.pay_rate_in_usd,
        }


class ErrorResponse(BaseModel):
    """Body of every error produced by the global exception handlers."""

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable explanation")
    request_id: str = Field(default="", description="Correlation ID for support")


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    tracing: str = Field(description="exporting or disabled")
    uptime_seconds: float
