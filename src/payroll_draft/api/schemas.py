"""Pydantic schemas for API request/response models."""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from payroll_draft.calculators.types import PayFrequency


# ============================================================================
# Draft schemas
# ============================================================================


class DraftCreate(BaseModel):
    """Schema for opening a new draft batch."""

    pay_frequency: PayFrequency = PayFrequency.MONTHLY
    period_start: date
    period_end: date
    pay_date: date | None = None
    include_annual_supplement: bool = False

    @model_validator(mode="after")
    def check_dates(self) -> "DraftCreate":
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class PeriodUpdate(BaseModel):
    """Schema for changing the shared period context.

    Omitted fields are kept. An explicit null pay_date clears it.
    """

    pay_frequency: PayFrequency | None = None
    period_start: date | None = None
    period_end: date | None = None
    pay_date: date | None = None
    include_annual_supplement: bool | None = None


class RowEdit(BaseModel):
    """Schema for a single-field row edit."""

    field: str
    value: Any = None


class PeriodResponse(BaseModel):
    """Schema for the period context."""

    model_config = ConfigDict(from_attributes=True)

    pay_frequency: PayFrequency
    period_start: date
    period_end: date
    pay_date: date | None = None
    periods_in_month: Decimal
    include_annual_supplement: bool


class RowValuesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    regular_hours: Decimal
    overtime_hours: Decimal
    night_shift_hours: Decimal
    holiday_hours: Decimal
    absence_hours: Decimal
    late_arrival_minutes: Decimal
    sick_days: Decimal
    bonus: Decimal
    per_diem: Decimal
    allowances: Decimal


class EarningLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str
    description: str
    amount: Decimal
    hours: Decimal | None = None
    rate: Decimal | None = None


class DeductionLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str
    description: str
    amount: Decimal
    is_statutory: bool


class CalculationResponse(BaseModel):
    """Schema for a row's calculation result."""

    model_config = ConfigDict(from_attributes=True)

    earnings: list[EarningLineResponse]
    deductions: list[DeductionLineResponse]
    gross_pay: Decimal
    taxable_income: Decimal
    income_tax: Decimal
    social_insurance_employee: Decimal
    social_insurance_employer: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    total_employer_cost: Decimal
    inputs_fingerprint: str
    warnings: list[str] = Field(default_factory=list)


class RowResponse(BaseModel):
    """Schema for a draft row."""

    employee_id: str
    employee_name: str
    status: str
    is_edited: bool
    included: bool
    current: RowValuesResponse
    original: RowValuesResponse
    calculation: CalculationResponse | None = None
    calculation_error: str | None = None


class TotalsResponse(BaseModel):
    """Schema for batch totals."""

    model_config = ConfigDict(from_attributes=True)

    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    income_tax: Decimal
    social_insurance_employee: Decimal
    social_insurance_employer: Decimal
    total_employer_cost: Decimal
    employee_count: int


class DraftResponse(BaseModel):
    """Schema for a full draft view."""

    draft_id: str
    revision: int
    rules_version: str
    period: PeriodResponse
    rows: list[RowResponse]
    excluded: list[str]
    totals: TotalsResponse


class RowEditResponse(BaseModel):
    accepted: bool
    row: RowResponse


# ============================================================================
# Checks, sync and batch schemas
# ============================================================================


class ValidationResponse(BaseModel):
    valid: bool
    errors: list[str]


class WarningResponse(BaseModel):
    employee_id: str
    employee_name: str
    message: str
    category: str


class WarningListResponse(BaseModel):
    warnings: list[WarningResponse]


class AttendanceSyncResponse(BaseModel):
    updated_rows: int
    revision: int


class BatchRequest(BaseModel):
    """Schema for building the persistable batch."""

    created_by: str = Field(min_length=1)
    allow_validation_errors: bool = False


class BatchResponse(BaseModel):
    header: dict[str, Any]
    records: list[dict[str, Any]]


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
