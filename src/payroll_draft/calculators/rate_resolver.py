"""Hourly rate, period count and pro-rated hours resolution."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from payroll_draft.calculators.line_builder import LineItemBuilder
from payroll_draft.calculators.rules import WorkingHoursConfig
from payroll_draft.calculators.types import ZERO, PayFrequency, PeriodContext

WEEKS_PER_YEAR = Decimal("52")
MONTHS_PER_YEAR = Decimal("12")

_CADENCE_DAYS = {
    PayFrequency.WEEKLY: 7,
    PayFrequency.BIWEEKLY: 14,
}


class RateResolver:
    """Derives rates and default hours from the working-hours configuration.

    All methods are pure: the same inputs always give the same outputs and
    nothing is read from outside the resolver's own config.

    - monthly standard hours = weekly hours x 52 / 12
    - hourly rate = monthly salary / monthly standard hours
    - default period hours = monthly standard hours / periods in month
    - hires inside the period receive days_worked / days_in_period of that
    """

    def __init__(self, working_hours: WorkingHoursConfig):
        self.working_hours = working_hours

    def monthly_standard_hours(self) -> Decimal:
        """Unrounded standard hours in a month."""
        return self.working_hours.standard_weekly_hours * WEEKS_PER_YEAR / MONTHS_PER_YEAR

    def hourly_rate(self, monthly_salary: Decimal) -> Decimal:
        monthly_hours = self.monthly_standard_hours()
        if monthly_hours <= 0:
            raise ValueError("standard_weekly_hours must be positive")
        return LineItemBuilder.round_rate(monthly_salary / monthly_hours)

    def periods_in_month(self, frequency: PayFrequency, pay_date: date | None) -> Decimal:
        """Number of pay periods in the calendar month containing pay_date.

        Weekly and biweekly cadences are counted on the calendar: step back
        from the pay date to the first cadence date in the same month, then
        count forward while still in that month. Without a pay date the
        nominal periods-per-month from config is used.
        """
        if frequency == PayFrequency.MONTHLY:
            return Decimal("1")
        if frequency == PayFrequency.SEMIMONTHLY:
            return Decimal("2")

        if pay_date is None:
            return self.working_hours.nominal_periods_per_month[frequency]

        step = timedelta(days=_CADENCE_DAYS[frequency])
        cursor = pay_date
        while (cursor - step).month == pay_date.month and (cursor - step).year == pay_date.year:
            cursor -= step

        count = 0
        while cursor.month == pay_date.month and cursor.year == pay_date.year:
            count += 1
            cursor += step
        return Decimal(count)

    def default_period_hours(self, periods_in_month: Decimal) -> Decimal:
        if periods_in_month <= 0:
            raise ValueError("periods_in_month must be positive")
        return LineItemBuilder.round_hours(self.monthly_standard_hours() / periods_in_month)

    @staticmethod
    def prorated_hours(
        hire_date: date | None,
        period_start: date,
        period_end: date,
        default_hours: Decimal,
    ) -> Decimal:
        """Reduce default hours for an employee hired inside the period."""
        if hire_date is None or hire_date <= period_start:
            return default_hours
        if hire_date > period_end:
            return ZERO

        days_in_period = (period_end - period_start).days + 1
        days_worked = (period_end - hire_date).days + 1
        return LineItemBuilder.round_hours(default_hours * days_worked / days_in_period)

    def build_period(
        self,
        pay_frequency: PayFrequency,
        period_start: date,
        period_end: date,
        pay_date: date | None = None,
        include_annual_supplement: bool = False,
    ) -> PeriodContext:
        """Build a period context with its resolved period count."""
        return PeriodContext(
            pay_frequency=pay_frequency,
            period_start=period_start,
            period_end=period_end,
            pay_date=pay_date,
            periods_in_month=self.periods_in_month(pay_frequency, pay_date),
            include_annual_supplement=include_annual_supplement,
        )

    def default_hours_for(self, hire_date: date | None, period: PeriodContext) -> Decimal:
        """Pro-rated default regular hours for one employee in a period."""
        default_hours = self.default_period_hours(period.periods_in_month)
        return self.prorated_hours(hire_date, period.period_start, period.period_end, default_hours)
