"""Annual supplement (13th month) calculation."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from payroll_draft.calculators.line_builder import LineItemBuilder
from payroll_draft.calculators.types import ZERO


def effective_months(
    months_worked_this_year: int | None,
    hire_date: date | None,
    as_of_date: date,
    full_year_months: Decimal = Decimal("12"),
) -> Decimal:
    """Months of credit toward the annual supplement as of a date.

    No credit is given for months before the hire month of the current year,
    and nothing for employees hired after the as-of year.
    """
    months = Decimal(as_of_date.month if months_worked_this_year is None else months_worked_this_year)

    if hire_date is not None:
        if hire_date.year > as_of_date.year:
            months = ZERO
        elif hire_date.year == as_of_date.year:
            months = Decimal(max(0, as_of_date.month - hire_date.month + 1))

    return max(ZERO, min(months, full_year_months))


def calculate_annual_supplement(
    monthly_salary: Decimal,
    months_worked_this_year: int | None,
    hire_date: date | None,
    as_of_date: date,
    full_year_months: Decimal = Decimal("12"),
) -> Decimal:
    """Prorated annual supplement: salary x months / full year months."""
    if monthly_salary <= 0:
        return ZERO
    months = effective_months(months_worked_this_year, hire_date, as_of_date, full_year_months)
    return LineItemBuilder.round_to_cents(monthly_salary * months / full_year_months)
