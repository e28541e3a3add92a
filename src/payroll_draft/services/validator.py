"""Business-rule validation of draft rows before submission."""

from __future__ import annotations

from decimal import Decimal

from payroll_draft.calculators.engine import ROW_FAILURES, build_payroll_input
from payroll_draft.calculators.rules import StatutoryConfig
from payroll_draft.calculators.types import PayrollInput, PeriodContext
from payroll_draft.services.draft_manager import DraftRow, DraftSnapshot

HOURS_PER_DAY = Decimal("24")

_HOUR_INPUTS = (
    ("regular_hours", "Regular hours"),
    ("overtime_hours", "Overtime hours"),
    ("night_shift_hours", "Night shift hours"),
    ("holiday_hours", "Holiday hours"),
    ("absence_hours", "Absence hours"),
)


class PayrollValidator:
    """Validates included rows against jurisdiction business rules.

    Validation never raises. Minimum wage and overtime ceilings are
    compliance warnings, not validation failures. A row whose calculation
    failed is reported so it cannot be submitted unnoticed.
    """

    def __init__(self, config: StatutoryConfig):
        self.config = config

    def validate(self, snapshot: DraftSnapshot) -> list[str]:
        """Return "<name>: <message>" strings in row order; empty means valid."""
        errors: list[str] = []
        for row in snapshot.included_rows():
            name = row.employee.display_name
            errors.extend(f"{name}: {msg}" for msg in self.validate_row(row, snapshot.period))
        return errors

    def validate_row(self, row: DraftRow, period: PeriodContext) -> list[str]:
        errors: list[str] = []

        if row.calculation is None:
            errors.append(f"Calculation failed: {row.calculation_error or 'unknown error'}")

        salary = row.employee.monthly_salary
        if salary is None or salary <= 0:
            errors.append("Monthly salary is missing or not positive")

        try:
            data = build_payroll_input(row.employee, row.current, period, self.config)
        except ROW_FAILURES:
            return errors

        for field_name, label in _HOUR_INPUTS:
            if getattr(data, field_name) < 0:
                errors.append(f"{label} cannot be negative")

        worked = self._worked_hours(data)
        available = HOURS_PER_DAY * period.days_in_period
        if worked > available:
            errors.append(
                f"Total hours ({worked}) exceed the {available} hours in the pay period"
            )

        expected = row.original.regular_hours
        if data.absence_hours > expected:
            errors.append(
                f"Absence hours ({data.absence_hours}) exceed expected regular hours ({expected})"
            )

        sick_limit = self.config.sick_leave.total_days
        sick_total = data.ytd_sick_days + data.sick_days
        if sick_total > sick_limit:
            errors.append(
                f"Sick days this year ({sick_total}) exceed the annual limit of {sick_limit}"
            )

        hire_date = row.employee.hire_date
        if hire_date is not None and hire_date > period.period_end and worked > 0:
            errors.append(
                f"Hired on {hire_date}, after the period end, but has {worked} hours recorded"
            )

        return errors

    @staticmethod
    def _worked_hours(data: PayrollInput) -> Decimal:
        return (
            data.regular_hours
            + data.overtime_hours
            + data.night_shift_hours
            + data.holiday_hours
        )
