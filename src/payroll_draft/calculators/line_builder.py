"""Line item builder with decimal-safe rounding and summation."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal

from payroll_draft.calculators.types import ZERO, DeductionLine, EarningLine


class LineItemBuilder:
    """Builds earning and deduction lines.

    Amount conventions:
    - Every line amount is non-negative; deductions are subtracted, never signed
    - Money is rounded to 2 decimals when a line is created, not at display time
    - Rates are kept at 4 decimals, hours at 2
    - Totals are sums of already-rounded lines, so sum(lines) == total exactly
    """

    RATE_PRECISION = Decimal("0.0001")  # 4 decimal places for rates
    HOURS_PRECISION = Decimal("0.01")
    OUTPUT_PRECISION = Decimal("0.01")  # 2 decimal places for money

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def round_rate(rate: Decimal) -> Decimal:
        return rate.quantize(LineItemBuilder.RATE_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def round_hours(hours: Decimal) -> Decimal:
        return hours.quantize(LineItemBuilder.HOURS_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def sum_money(amounts: Iterable[Decimal]) -> Decimal:
        """Sum money amounts exactly and round the result to cents."""
        total = ZERO
        for amount in amounts:
            total += amount
        return LineItemBuilder.round_to_cents(total)

    @staticmethod
    def create_hourly_earning(
        line_type: str,
        description: str,
        hours: Decimal,
        hourly_rate: Decimal,
        multiplier: Decimal = Decimal("1"),
        is_contribution_base: bool = False,
    ) -> EarningLine:
        """Create an earning line of hours x rate x multiplier."""
        rate = LineItemBuilder.round_rate(hourly_rate * multiplier)
        return EarningLine(
            type=line_type,
            description=description,
            amount=LineItemBuilder.round_to_cents(hours * hourly_rate * multiplier),
            hours=hours,
            rate=rate,
            is_taxable=True,
            is_contribution_base=is_contribution_base,
        )

    @staticmethod
    def create_flat_earning(
        line_type: str,
        description: str,
        amount: Decimal,
        is_contribution_base: bool = False,
    ) -> EarningLine:
        """Create a flat-amount earning line."""
        return EarningLine(
            type=line_type,
            description=description,
            amount=LineItemBuilder.round_to_cents(abs(amount)),
            is_taxable=True,
            is_contribution_base=is_contribution_base,
        )

    @staticmethod
    def create_deduction_line(
        line_type: str,
        description: str,
        amount: Decimal,
        is_statutory: bool = False,
        is_voluntary: bool = False,
    ) -> DeductionLine:
        """Create a deduction line (stored as a positive amount)."""
        return DeductionLine(
            type=line_type,
            description=description,
            amount=LineItemBuilder.round_to_cents(abs(amount)),
            is_statutory=is_statutory,
            is_voluntary=is_voluntary,
        )

    @staticmethod
    def calculate_gross_from_lines(lines: Iterable[EarningLine]) -> Decimal:
        """GROSS = sum of all earning lines."""
        return LineItemBuilder.sum_money(line.amount for line in lines)

    @staticmethod
    def calculate_total_deductions(lines: Iterable[DeductionLine]) -> Decimal:
        return LineItemBuilder.sum_money(line.amount for line in lines)

    @staticmethod
    def apply_voluntary_cap(
        lines: list[DeductionLine], cap: Decimal
    ) -> tuple[list[DeductionLine], bool]:
        """Scale voluntary deductions down proportionally to fit within cap.

        Only lines flagged voluntary are reduced. Returns the (possibly new) lines and
        whether the cap was applied. The last voluntary line absorbs rounding so
        the reduced voluntary lines sum exactly to the cap.
        """
        voluntary = [line for line in lines if line.is_voluntary]
        voluntary_total = LineItemBuilder.sum_money(line.amount for line in voluntary)
        if not voluntary or voluntary_total <= cap:
            return lines, False

        ratio = cap / voluntary_total
        remaining = LineItemBuilder.round_to_cents(cap)
        seen = 0
        result: list[DeductionLine] = []
        for line in lines:
            if not line.is_voluntary:
                result.append(line)
                continue
            seen += 1
            if seen == len(voluntary):
                amount = remaining
            else:
                amount = LineItemBuilder.round_to_cents(line.amount * ratio)
                remaining -= amount
            result.append(replace(line, amount=max(ZERO, amount)))

        return result, True
