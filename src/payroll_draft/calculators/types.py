"""Type definitions for calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

ZERO = Decimal("0")


class PayFrequency(str, Enum):
    """Pay frequencies supported by the resolver."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    SEMIMONTHLY = "semimonthly"
    MONTHLY = "monthly"


class CalculationError(Exception):
    """Raised when a payroll calculation cannot produce a result."""

    def __init__(self, employee_id: str, reason: str):
        self.employee_id = employee_id
        self.reason = reason
        super().__init__(f"Cannot calculate payroll for employee {employee_id}: {reason}")


@dataclass(frozen=True)
class EmployeeSnapshot:
    """Read-only view of an employee for the duration of a draft."""

    employee_id: str
    first_name: str = ""
    last_name: str = ""
    employee_number: str = ""
    department: str = ""
    position: str = ""
    monthly_salary: Decimal | None = None
    hire_date: date | None = None
    is_resident: bool = True
    has_tax_exemption: bool = False

    # Standing per-period deductions
    loan_repayment: Decimal = ZERO
    advance_repayment: Decimal = ZERO
    court_orders: Decimal = ZERO
    other_deductions: Decimal = ZERO

    # Year-to-date figures before this run
    ytd_gross_pay: Decimal = ZERO
    ytd_income_tax: Decimal = ZERO
    ytd_social_insurance: Decimal = ZERO
    ytd_sick_days: Decimal = ZERO

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.employee_id


@dataclass(frozen=True)
class PeriodContext:
    """Pay period shared by every row of a draft."""

    pay_frequency: PayFrequency
    period_start: date
    period_end: date
    pay_date: date | None
    periods_in_month: Decimal
    include_annual_supplement: bool = False

    def __post_init__(self) -> None:
        if self.period_end < self.period_start:
            raise ValueError(
                f"period_end {self.period_end} is before period_start {self.period_start}"
            )

    @property
    def days_in_period(self) -> int:
        return (self.period_end - self.period_start).days + 1

    @property
    def as_of_date(self) -> date:
        """Date used for YTD and annual supplement calculations."""
        return self.pay_date or self.period_end


@dataclass(frozen=True)
class RowValues:
    """Editable per-employee inputs, compared structurally for edit tracking."""

    regular_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    night_shift_hours: Decimal = ZERO
    holiday_hours: Decimal = ZERO
    absence_hours: Decimal = ZERO
    late_arrival_minutes: Decimal = ZERO
    sick_days: Decimal = ZERO
    bonus: Decimal = ZERO
    per_diem: Decimal = ZERO
    allowances: Decimal = ZERO

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def differs_from(self, other: RowValues) -> bool:
        return self != other


@dataclass(frozen=True)
class PayrollInput:
    """Everything the statutory calculator needs for one employee and period."""

    employee_id: str
    monthly_salary: Decimal
    hourly_rate: Decimal
    pay_frequency: PayFrequency
    periods_in_month: Decimal
    is_resident: bool = True
    has_tax_exemption: bool = False

    regular_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    night_shift_hours: Decimal = ZERO
    holiday_hours: Decimal = ZERO
    absence_hours: Decimal = ZERO
    late_arrival_minutes: Decimal = ZERO
    sick_days: Decimal = ZERO

    bonus: Decimal = ZERO
    commission: Decimal = ZERO
    per_diem: Decimal = ZERO
    food_allowance: Decimal = ZERO
    transport_allowance: Decimal = ZERO
    other_earnings: Decimal = ZERO
    annual_supplement: Decimal = ZERO

    loan_repayment: Decimal = ZERO
    advance_repayment: Decimal = ZERO
    court_orders: Decimal = ZERO
    other_deductions: Decimal = ZERO

    ytd_gross_pay: Decimal = ZERO
    ytd_income_tax: Decimal = ZERO
    ytd_social_insurance: Decimal = ZERO
    ytd_sick_days: Decimal = ZERO

    # Hours the period expects; regular hours below this are already unpaid
    scheduled_hours: Decimal | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, Decimal):
                value = str(value.normalize()) if value else "0"
            data[f.name] = value
        return data


@dataclass(frozen=True)
class EarningLine:
    """An itemized earning."""

    type: str
    description: str
    amount: Decimal
    hours: Decimal | None = None
    rate: Decimal | None = None
    is_taxable: bool = True
    is_contribution_base: bool = False


@dataclass(frozen=True)
class DeductionLine:
    """An itemized deduction (amount is positive)."""

    type: str
    description: str
    amount: Decimal
    is_statutory: bool = False
    is_voluntary: bool = False


@dataclass(frozen=True)
class CalculationResult:
    """Result of calculating pay for one employee and period."""

    employee_id: str
    earnings: tuple[EarningLine, ...]
    deductions: tuple[DeductionLine, ...]

    gross_pay: Decimal
    taxable_income: Decimal
    contribution_base: Decimal
    income_tax: Decimal
    social_insurance_employee: Decimal
    social_insurance_employer: Decimal
    absence_deduction: Decimal
    late_deduction: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    total_employer_cost: Decimal

    new_ytd_gross_pay: Decimal
    new_ytd_income_tax: Decimal
    new_ytd_social_insurance: Decimal

    inputs_fingerprint: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def earning(self, line_type: str) -> EarningLine | None:
        return next((e for e in self.earnings if e.type == line_type), None)

    def deduction(self, line_type: str) -> DeductionLine | None:
        return next((d for d in self.deductions if d.type == line_type), None)


@dataclass(frozen=True)
class TaxBracket:
    """Tax bracket for progressive taxation."""

    min_amount: Decimal
    max_amount: Decimal | None  # None = no upper limit
    rate: Decimal  # As decimal, e.g., 0.10 for 10%
    flat_amount: Decimal = ZERO  # Flat amount at bracket start
