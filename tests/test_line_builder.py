"""Tests for line item rounding, summation and the voluntary cap."""

from decimal import Decimal

from payroll_draft.calculators.line_builder import LineItemBuilder


class TestRounding:
    """Money, rate and hours precision."""

    def test_round_half_up_to_cents(self):
        assert LineItemBuilder.round_to_cents(Decimal("2.345")) == Decimal("2.35")
        assert LineItemBuilder.round_to_cents(Decimal("2.344")) == Decimal("2.34")

    def test_rate_keeps_four_places(self):
        assert LineItemBuilder.round_rate(Decimal("2.62237762")) == Decimal("2.6224")

    def test_hours_keep_two_places(self):
        assert LineItemBuilder.round_hours(Decimal("190.6666")) == Decimal("190.67")

    def test_sum_money_is_exact(self):
        amounts = [Decimal("0.10")] * 10
        assert LineItemBuilder.sum_money(amounts) == Decimal("1.00")


class TestLineCreation:
    def test_hourly_earning(self):
        line = LineItemBuilder.create_hourly_earning(
            "overtime", "Overtime", Decimal("3"), Decimal("2.6224"), Decimal("1.5")
        )
        # 3 x 2.6224 x 1.5 = 11.8008
        assert line.amount == Decimal("11.80")
        assert line.rate == Decimal("3.9336")
        assert line.hours == Decimal("3")

    def test_deduction_amount_stored_positive(self):
        line = LineItemBuilder.create_deduction_line("loan_repayment", "Loan", Decimal("-12.5"))
        assert line.amount == Decimal("12.50")
        assert line.is_statutory is False


class TestVoluntaryCap:
    """Proportional reduction of voluntary deductions."""

    def _lines(self):
        return [
            LineItemBuilder.create_deduction_line(
                "income_tax", "Tax", Decimal("50"), is_statutory=True
            ),
            LineItemBuilder.create_deduction_line("absence", "Absence", Decimal("20")),
            LineItemBuilder.create_deduction_line(
                "loan_repayment", "Loan", Decimal("100"), is_voluntary=True
            ),
            LineItemBuilder.create_deduction_line(
                "other", "Other", Decimal("100"), is_voluntary=True
            ),
            LineItemBuilder.create_deduction_line(
                "advance_repayment", "Advance", Decimal("100"), is_voluntary=True
            ),
        ]

    def test_under_cap_unchanged(self):
        lines = self._lines()
        result, applied = LineItemBuilder.apply_voluntary_cap(lines, Decimal("300"))
        assert applied is False
        assert result == lines

    def test_over_cap_sums_exactly_to_cap(self):
        result, applied = LineItemBuilder.apply_voluntary_cap(self._lines(), Decimal("100"))
        voluntary = [line for line in result if line.is_voluntary]

        assert applied is True
        assert [line.amount for line in voluntary] == [
            Decimal("33.33"),
            Decimal("33.33"),
            Decimal("33.34"),
        ]
        assert sum(line.amount for line in voluntary) == Decimal("100.00")

    def test_non_voluntary_lines_untouched(self):
        result, _ = LineItemBuilder.apply_voluntary_cap(self._lines(), Decimal("10"))
        assert result[0].amount == Decimal("50.00")
        assert result[1].amount == Decimal("20.00")
        assert [line.type for line in result] == [line.type for line in self._lines()]
