"""Draft row management: seeding, edits, period changes and resets.

Every mutation recomputes the affected rows before returning, and rows are
frozen dataclasses replaced whole, so a reader never sees a row whose
calculation lags behind its inputs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from payroll_draft.calculators.engine import (
    ROW_FAILURES,
    StatutoryCalculator,
    build_payroll_input,
)
from payroll_draft.calculators.rate_resolver import RateResolver
from payroll_draft.calculators.rules import StatutoryConfig
from payroll_draft.calculators.types import (
    ZERO,
    CalculationResult,
    EmployeeSnapshot,
    PayFrequency,
    PeriodContext,
    RowValues,
)
from payroll_draft.services.state_machine import RowStateMachine, RowStatus

logger = logging.getLogger(__name__)

MAX_MONTH_HOURS = Decimal("744")  # 31 days x 24 hours
MAX_MONEY = Decimal("100000")

HOUR_FIELDS = (
    "regular_hours",
    "overtime_hours",
    "night_shift_hours",
    "holiday_hours",
    "absence_hours",
)
MONEY_FIELDS = ("bonus", "per_diem", "allowances")

EDIT_BOUNDS: dict[str, tuple[Decimal, Decimal]] = {
    **{name: (ZERO, MAX_MONTH_HOURS) for name in HOUR_FIELDS},
    **{name: (ZERO, MAX_MONEY) for name in MONEY_FIELDS},
    "late_arrival_minutes": (ZERO, MAX_MONTH_HOURS * 60),
    "sick_days": (ZERO, Decimal("31")),
}

# Default for update_period arguments where None is a meaningful value
UNCHANGED: Any = object()


class RowNotFoundError(Exception):
    """Raised when a draft has no row for an employee."""

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"No draft row for employee {employee_id}")


@dataclass(frozen=True)
class DraftRow:
    """Working state of one employee in a draft batch."""

    employee: EmployeeSnapshot
    current: RowValues
    original: RowValues
    is_edited: bool
    calculation: CalculationResult | None
    status: RowStatus
    calculation_error: str | None = None

    @property
    def employee_id(self) -> str:
        return self.employee.employee_id


@dataclass(frozen=True)
class DraftSnapshot:
    """Consistent, read-only view of a draft at one revision."""

    period: PeriodContext
    rows: tuple[DraftRow, ...]
    excluded: frozenset[str]
    revision: int

    def is_included(self, employee_id: str) -> bool:
        return employee_id not in self.excluded

    def included_rows(self) -> list[DraftRow]:
        return [row for row in self.rows if row.employee_id not in self.excluded]

    def calculated_rows(self) -> list[DraftRow]:
        """Included rows that have a calculation."""
        return [row for row in self.included_rows() if row.calculation is not None]

    def row(self, employee_id: str) -> DraftRow:
        for row in self.rows:
            if row.employee_id == employee_id:
                return row
        raise RowNotFoundError(employee_id)


def coerce_edit_value(value: object) -> Decimal | None:
    """Parse an edit value to a finite Decimal, or None if it is not one."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


class DraftRowManager:
    """Holds one editable row per employee for a draft batch.

    Row lifecycle follows RowStateMachine; the status is informational and
    is_edited is the source of truth for edit tracking.
    """

    def __init__(
        self,
        config: StatutoryConfig,
        calculator: StatutoryCalculator | None = None,
        engine_version: str | None = None,
    ):
        self.config = config
        self.resolver = RateResolver(config.working_hours)
        self.calculator = calculator or StatutoryCalculator(config, engine_version)
        self._period: PeriodContext | None = None
        self._rows: dict[str, DraftRow] = {}
        self._excluded: set[str] = set()
        self._revision = 0

    @property
    def period(self) -> PeriodContext:
        if self._period is None:
            raise ValueError("Draft has not been seeded with a pay period")
        return self._period

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def rows(self) -> tuple[DraftRow, ...]:
        return tuple(self._rows.values())

    @property
    def excluded(self) -> frozenset[str]:
        return frozenset(self._excluded)

    def row(self, employee_id: str) -> DraftRow:
        try:
            return self._rows[employee_id]
        except KeyError:
            raise RowNotFoundError(employee_id) from None

    def seed(self, roster: Iterable[EmployeeSnapshot], period: PeriodContext) -> None:
        """Create pro-rated rows for a roster and calculate each one."""
        employees = list(roster)
        ids = [e.employee_id for e in employees]
        if len(set(ids)) != len(ids):
            raise ValueError("Roster contains duplicate employee ids")

        self._period = period
        self._rows = {e.employee_id: self._seed_row(e) for e in employees}
        self._excluded &= set(ids)
        self._revision += 1
        logger.info(
            "Seeded %d draft rows for %s to %s (revision %d)",
            len(self._rows),
            period.period_start,
            period.period_end,
            self._revision,
        )

    def edit(self, employee_id: str, field: str, value: object) -> bool:
        """Apply a single-field edit. Returns False if the edit was rejected."""
        row = self.row(employee_id)

        bounds = EDIT_BOUNDS.get(field)
        if bounds is None:
            logger.debug("Rejected edit for %s: unknown field %r", employee_id, field)
            return False

        number = coerce_edit_value(value)
        low, high = bounds
        if number is None or number < low or number > high:
            logger.debug(
                "Rejected edit for %s: %s=%r outside [%s, %s]",
                employee_id,
                field,
                value,
                low,
                high,
            )
            return False

        current = replace(row.current, **{field: number})
        status = RowStateMachine.walk(row.status, RowStatus.EDITED, RowStatus.RECALCULATED)
        self._rows[employee_id] = self._build_row(row.employee, current, row.original, status)
        return True

    def apply_values(self, employee_id: str, values: RowValues) -> DraftRow:
        """Replace a row's current values wholesale and recompute it."""
        row = self.row(employee_id)
        status = RowStateMachine.walk(row.status, RowStatus.EDITED, RowStatus.RECALCULATED)
        new_row = self._build_row(row.employee, values, row.original, status)
        self._rows[employee_id] = new_row
        return new_row

    def update_period(
        self,
        pay_frequency: PayFrequency | None = None,
        pay_date: date | None = UNCHANGED,
        period_start: date | None = None,
        period_end: date | None = None,
        include_annual_supplement: bool | None = None,
    ) -> PeriodContext:
        """Change the shared period context.

        Frequency, pay date and supplement changes recompute every row and
        leave current/original/is_edited alone. Start or end changes re-seed
        every row from the roster, which discards edits. Passing
        pay_date=None clears the pay date.
        """
        old = self.period
        new = self.resolver.build_period(
            pay_frequency=old.pay_frequency if pay_frequency is None else pay_frequency,
            period_start=old.period_start if period_start is None else period_start,
            period_end=old.period_end if period_end is None else period_end,
            pay_date=old.pay_date if pay_date is UNCHANGED else pay_date,
            include_annual_supplement=(
                old.include_annual_supplement
                if include_annual_supplement is None
                else include_annual_supplement
            ),
        )
        if new == old:
            return old

        if new.period_start != old.period_start or new.period_end != old.period_end:
            self.seed([row.employee for row in self._rows.values()], new)
            return new

        self._period = new
        self._revision += 1
        for employee_id, row in list(self._rows.items()):
            calculation, error = self._calculate(row.employee, row.current, row.original)
            self._rows[employee_id] = replace(
                row, calculation=calculation, calculation_error=error
            )
        logger.info(
            "Recomputed %d rows after period change (revision %d)",
            len(self._rows),
            self._revision,
        )
        return new

    def reset(self, employee_id: str) -> DraftRow:
        """Restore a row's original values and recompute it."""
        row = self.row(employee_id)
        status = RowStateMachine.walk(row.status, RowStatus.RESET, RowStatus.CALCULATED)
        new_row = self._build_row(row.employee, row.original, row.original, status)
        self._rows[employee_id] = new_row
        return new_row

    def exclude(self, employee_id: str) -> None:
        self.row(employee_id)
        self._excluded.add(employee_id)

    def include(self, employee_id: str) -> None:
        self.row(employee_id)
        self._excluded.discard(employee_id)

    def snapshot(self) -> DraftSnapshot:
        return DraftSnapshot(
            period=self.period,
            rows=self.rows,
            excluded=self.excluded,
            revision=self._revision,
        )

    def _seed_row(self, employee: EmployeeSnapshot) -> DraftRow:
        hours = self.resolver.default_hours_for(employee.hire_date, self.period)
        values = RowValues(regular_hours=hours)
        status = RowStateMachine.walk(RowStatus.UNINITIALIZED, RowStatus.CALCULATED)
        return self._build_row(employee, values, values, status)

    def _build_row(
        self,
        employee: EmployeeSnapshot,
        current: RowValues,
        original: RowValues,
        status: RowStatus,
    ) -> DraftRow:
        calculation, error = self._calculate(employee, current, original)
        return DraftRow(
            employee=employee,
            current=current,
            original=original,
            is_edited=current.differs_from(original),
            calculation=calculation,
            status=status,
            calculation_error=error,
        )

    def _calculate(
        self, employee: EmployeeSnapshot, values: RowValues, original: RowValues
    ) -> tuple[CalculationResult | None, str | None]:
        """Calculate one row; a failure nulls that row only."""
        try:
            data = build_payroll_input(
                employee,
                values,
                self.period,
                self.config,
                scheduled_hours=original.regular_hours,
            )
            return self.calculator.calculate(data), None
        except ROW_FAILURES as e:
            logger.exception("Payroll calculation failed for employee %s", employee.employee_id)
            return None, getattr(e, "reason", None) or str(e) or type(e).__name__
