"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from workzen.services.attendance_reconciler import to_local_naive


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str


# ============================================================================
# Salary components and structures
# ============================================================================


class SalaryPreviewRequest(BaseModel):
    """Flat monthly wage to derive a default component set from."""

    month_wage: Decimal


class ComponentEditRequest(BaseModel):
    """Edit one component of an existing set.

    ``current`` is keyed by payload (camelCase) or snake_case names.
    ``component`` names an amount or percent field, or ``monthWage``.
    """

    current: dict[str, Decimal]
    component: str
    value: Decimal


class SalaryStructureCreate(BaseModel):
    """Schema for saving a new structure version.

    Provide either ``components`` (as returned by preview/recompute) or a
    ``month_wage`` to derive defaults from.
    """

    effective_from: date
    name: str | None = None
    components: dict[str, Decimal] | None = None
    month_wage: Decimal | None = None


class SalaryStructureResponse(BaseModel):
    """Schema for a stored structure version."""

    model_config = ConfigDict(from_attributes=True)

    salary_structure_id: UUID
    employee_id: UUID
    name: str
    effective_from: date
    effective_to: date | None = None
    month_wage: Decimal | None = None
    yearly_wage: Decimal | None = None
    basic_salary: Decimal
    house_rent_allowance: Decimal
    standard_allowance: Decimal
    performance_bonus: Decimal
    travel_allowance: Decimal
    fixed_allowance: Decimal
    gross_salary: Decimal
    pf_employee: Decimal
    pf_employer: Decimal
    professional_tax: Decimal
    tds: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    net_salary: Decimal


# ============================================================================
# Attendance
# ============================================================================


class AttendanceEvent(BaseModel):
    """Check-in or check-out; ``timestamp`` defaults to the server's local time."""

    employee_id: UUID
    timestamp: datetime | None = None

    @field_validator("timestamp")
    @classmethod
    def _local_timestamp(cls, v: datetime | None) -> datetime | None:
        return to_local_naive(v)


class AttendanceResponse(BaseModel):
    """Schema for one attendance row."""

    model_config = ConfigDict(from_attributes=True)

    attendance_id: UUID
    employee_id: UUID
    date: date
    check_in: datetime | None = None
    check_out: datetime | None = None
    hours_worked: Decimal | None = None
    status: str
    notes: str | None = None


class ReconcileRequest(BaseModel):
    now: datetime | None = None

    @field_validator("now")
    @classmethod
    def _local_now(cls, v: datetime | None) -> datetime | None:
        return to_local_naive(v)


class ReconcileResponse(BaseModel):
    processed: int
    updated: int


# ============================================================================
# Payruns and payslips
# ============================================================================


class PayrunCreate(BaseModel):
    """Schema for creating a new payrun."""

    name: str = Field(min_length=1)
    pay_period_start: date
    pay_period_end: date
    pay_date: date


class PayrunResponse(BaseModel):
    """Schema for payrun response."""

    model_config = ConfigDict(from_attributes=True)

    payrun_id: UUID
    name: str
    pay_period_start: date
    pay_period_end: date
    pay_date: date
    status: str
    total_employees: int
    total_amount: Decimal


class PayrunProcessResponse(BaseModel):
    """Outcome of processing a payrun."""

    payrun_id: UUID
    status: str
    payslips_created: int
    total_amount: Decimal
    errors: dict[str, str] = Field(default_factory=dict)


class PayslipResponse(BaseModel):
    """Schema for payslip response."""

    model_config = ConfigDict(from_attributes=True)

    payslip_id: UUID
    payrun_id: UUID
    employee_id: UUID
    status: str
    base_salary: Decimal
    overtime: Decimal
    bonus: Decimal
    allowances: Decimal
    tax: Decimal
    insurance: Decimal
    provident_fund: Decimal
    professional_tax: Decimal
    other_deductions: Decimal
    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    payable_days: Decimal
    period_days: int
    computed_at: datetime | None = None
    validated_at: datetime | None = None


class PayslipListResponse(BaseModel):
    items: list[PayslipResponse]
    total: int


class PayslipUpdate(BaseModel):
    """Manual payslip adjustments; omitted fields are left unchanged."""

    base_salary: Decimal | None = None
    overtime: Decimal | None = None
    bonus: Decimal | None = None
    allowances: Decimal | None = None
    tax: Decimal | None = None
    insurance: Decimal | None = None
    provident_fund: Decimal | None = None
    professional_tax: Decimal | None = None
    other_deductions: Decimal | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ============================================================================
# Settings
# ============================================================================


class PayrollSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tax_rate: Decimal
    insurance_rate: Decimal
    pay_period_days: int


class PayrollSettingsUpdate(BaseModel):
    tax_rate: Decimal | None = None
    insurance_rate: Decimal | None = None
    pay_period_days: int | None = None
