"""Batch totals and persisted-record construction.

The record builder maps calculator line types onto closed category enums
that downstream reporting depends on:

Earnings
- pass through: regular, overtime, double_time, holiday, bonus,
  annual_supplement, commission, tip, reimbursement, allowance, other
- allowance tier: per_diem, food/transport/housing/travel allowances
- anything else: other

Deductions
- income_tax, social_insurance_employee -> social_security,
  advance_repayment -> advance, loan_repayment -> loan,
  court_order -> garnishment, absence/late_arrival -> attendance
- anything else: other
"""

from __future__ import annotations

from dataclasses import dataclass, fields, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from payroll_draft.calculators.engine import build_payroll_input
from payroll_draft.calculators.line_builder import LineItemBuilder
from payroll_draft.calculators.rules import StatutoryConfig
from payroll_draft.calculators.types import ZERO, PayFrequency
from payroll_draft.services.draft_manager import DraftRow, DraftSnapshot


class EarningCategory(str, Enum):
    REGULAR = "regular"
    OVERTIME = "overtime"
    DOUBLE_TIME = "double_time"
    HOLIDAY = "holiday"
    BONUS = "bonus"
    ANNUAL_SUPPLEMENT = "annual_supplement"
    COMMISSION = "commission"
    TIP = "tip"
    REIMBURSEMENT = "reimbursement"
    ALLOWANCE = "allowance"
    OTHER = "other"


class DeductionCategory(str, Enum):
    INCOME_TAX = "income_tax"
    SOCIAL_SECURITY = "social_security"
    ADVANCE = "advance"
    LOAN = "loan"
    GARNISHMENT = "garnishment"
    ATTENDANCE = "attendance"
    OTHER = "other"


ALLOWANCE_TYPES = frozenset(
    {
        "per_diem",
        "food_allowance",
        "transport_allowance",
        "housing_allowance",
        "travel_allowance",
    }
)

DEDUCTION_CATEGORY_MAP: dict[str, DeductionCategory] = {
    "income_tax": DeductionCategory.INCOME_TAX,
    "social_insurance_employee": DeductionCategory.SOCIAL_SECURITY,
    "advance_repayment": DeductionCategory.ADVANCE,
    "loan_repayment": DeductionCategory.LOAN,
    "court_order": DeductionCategory.GARNISHMENT,
    "absence": DeductionCategory.ATTENDANCE,
    "late_arrival": DeductionCategory.ATTENDANCE,
}

_EARNING_PASS_THROUGH = {category.value: category for category in EarningCategory}


def normalize_earning_category(line_type: str) -> EarningCategory:
    """Map a calculator earning type onto the persisted category."""
    if line_type in _EARNING_PASS_THROUGH:
        return _EARNING_PASS_THROUGH[line_type]
    if line_type in ALLOWANCE_TYPES:
        return EarningCategory.ALLOWANCE
    return EarningCategory.OTHER


def normalize_deduction_category(line_type: str) -> DeductionCategory:
    """Map a calculator deduction type onto the persisted category."""
    return DEDUCTION_CATEGORY_MAP.get(line_type, DeductionCategory.OTHER)


class _Serializable:
    def to_dict(self) -> dict[str, Any]:
        return {f.name: _to_json(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class BatchTotals(_Serializable):
    gross_pay: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_pay: Decimal = ZERO
    income_tax: Decimal = ZERO
    social_insurance_employee: Decimal = ZERO
    social_insurance_employer: Decimal = ZERO
    total_employer_cost: Decimal = ZERO
    employee_count: int = 0


@dataclass(frozen=True)
class BatchHeader(_Serializable):
    period_start: date
    period_end: date
    pay_date: date | None
    pay_frequency: PayFrequency
    status: str
    total_gross_pay: Decimal
    total_deductions: Decimal
    total_net_pay: Decimal
    total_income_tax: Decimal
    total_social_insurance_employee: Decimal
    total_employer_taxes: Decimal
    total_employer_cost: Decimal
    employee_count: int
    created_by: str
    draft_revision: int


@dataclass(frozen=True)
class RecordEarning(_Serializable):
    category: EarningCategory
    description: str
    amount: Decimal
    hours: Decimal | None = None
    rate: Decimal | None = None


@dataclass(frozen=True)
class RecordDeduction(_Serializable):
    category: DeductionCategory
    description: str
    amount: Decimal
    is_statutory: bool = False


@dataclass(frozen=True)
class EmployerTax(_Serializable):
    type: str
    description: str
    amount: Decimal


@dataclass(frozen=True)
class PayrollRecord(_Serializable):
    """Itemized snapshot of one employee's pay, as it would be persisted."""

    employee_id: str
    employee_name: str
    employee_number: str
    department: str
    position: str

    regular_hours: Decimal
    overtime_hours: Decimal
    night_shift_hours: Decimal
    holiday_hours: Decimal
    sick_hours_used: Decimal
    hourly_rate: Decimal
    overtime_rate: Decimal

    earnings: tuple[RecordEarning, ...]
    total_gross_pay: Decimal
    deductions: tuple[RecordDeduction, ...]
    total_deductions: Decimal
    employer_taxes: tuple[EmployerTax, ...]
    total_employer_taxes: Decimal
    net_pay: Decimal
    total_employer_cost: Decimal

    ytd_gross_pay: Decimal
    ytd_income_tax: Decimal
    ytd_social_insurance: Decimal
    inputs_fingerprint: str


@dataclass(frozen=True)
class PayrollBatch(_Serializable):
    header: BatchHeader
    records: tuple[PayrollRecord, ...]


def aggregate_totals(snapshot: DraftSnapshot) -> BatchTotals:
    """Decimal-safe totals over included rows that have a calculation."""
    results = [row.calculation for row in snapshot.calculated_rows()]

    def total(name: str) -> Decimal:
        return LineItemBuilder.sum_money(getattr(r, name) for r in results)

    return BatchTotals(
        gross_pay=total("gross_pay"),
        total_deductions=total("total_deductions"),
        net_pay=total("net_pay"),
        income_tax=total("income_tax"),
        social_insurance_employee=total("social_insurance_employee"),
        social_insurance_employer=total("social_insurance_employer"),
        total_employer_cost=total("total_employer_cost"),
        employee_count=len(results),
    )


def build_batch_header(
    snapshot: DraftSnapshot, totals: BatchTotals, created_by: str
) -> BatchHeader:
    period = snapshot.period
    return BatchHeader(
        period_start=period.period_start,
        period_end=period.period_end,
        pay_date=period.pay_date,
        pay_frequency=period.pay_frequency,
        status="draft",
        total_gross_pay=totals.gross_pay,
        total_deductions=totals.total_deductions,
        total_net_pay=totals.net_pay,
        total_income_tax=totals.income_tax,
        total_social_insurance_employee=totals.social_insurance_employee,
        total_employer_taxes=totals.social_insurance_employer,
        total_employer_cost=totals.total_employer_cost,
        employee_count=totals.employee_count,
        created_by=created_by,
        draft_revision=snapshot.revision,
    )


def build_payroll_record(
    row: DraftRow, snapshot: DraftSnapshot, config: StatutoryConfig
) -> PayrollRecord:
    result = row.calculation
    if result is None:
        raise ValueError(f"Row for employee {row.employee_id} has no calculation")

    data = build_payroll_input(row.employee, row.current, snapshot.period, config)
    employee = row.employee
    employer_si = EmployerTax(
        type="social_insurance_employer",
        description=(
            f"Employer social insurance "
            f"({config.social_insurance.employer_rate * 100:.0f}%)"
        ),
        amount=result.social_insurance_employer,
    )

    return PayrollRecord(
        employee_id=employee.employee_id,
        employee_name=employee.display_name,
        employee_number=employee.employee_number,
        department=employee.department,
        position=employee.position,
        regular_hours=row.current.regular_hours,
        overtime_hours=row.current.overtime_hours,
        night_shift_hours=row.current.night_shift_hours,
        holiday_hours=row.current.holiday_hours,
        sick_hours_used=row.current.sick_days * config.working_hours.standard_daily_hours,
        hourly_rate=data.hourly_rate,
        overtime_rate=config.overtime_rates.standard,
        earnings=tuple(
            RecordEarning(
                category=normalize_earning_category(line.type),
                description=line.description,
                amount=line.amount,
                hours=line.hours,
                rate=line.rate,
            )
            for line in result.earnings
        ),
        total_gross_pay=result.gross_pay,
        deductions=tuple(
            RecordDeduction(
                category=normalize_deduction_category(line.type),
                description=line.description,
                amount=line.amount,
                is_statutory=line.is_statutory,
            )
            for line in result.deductions
        ),
        total_deductions=result.total_deductions,
        employer_taxes=(employer_si,),
        total_employer_taxes=result.social_insurance_employer,
        net_pay=result.net_pay,
        total_employer_cost=result.total_employer_cost,
        ytd_gross_pay=result.new_ytd_gross_pay,
        ytd_income_tax=result.new_ytd_income_tax,
        ytd_social_insurance=result.new_ytd_social_insurance,
        inputs_fingerprint=result.inputs_fingerprint,
    )


def build_payroll_records(
    snapshot: DraftSnapshot, config: StatutoryConfig
) -> list[PayrollRecord]:
    """One record per included row that has a calculation."""
    return [build_payroll_record(row, snapshot, config) for row in snapshot.calculated_rows()]


def build_batch(
    snapshot: DraftSnapshot, config: StatutoryConfig, created_by: str
) -> PayrollBatch:
    totals = aggregate_totals(snapshot)
    return PayrollBatch(
        header=build_batch_header(snapshot, totals, created_by),
        records=tuple(build_payroll_records(snapshot, config)),
    )


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_to_json(v) for v in value]
    if is_dataclass(value):
        return {f.name: _to_json(getattr(value, f.name)) for f in fields(value)}
    return value
