"""Income tax withholding and social insurance using statutory config."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from payroll_draft.calculators.line_builder import LineItemBuilder
from payroll_draft.calculators.rules import IncomeTaxConfig, SocialInsuranceConfig
from payroll_draft.calculators.types import ZERO, TaxBracket


@dataclass(frozen=True)
class IncomeTaxResult:
    taxable_income: Decimal
    income_tax: Decimal
    threshold: Decimal


@dataclass(frozen=True)
class SocialInsuranceResult:
    base: Decimal
    employee: Decimal
    employer: Decimal


class TaxCalculator:
    """Calculates withholding and contributions for one pay period.

    Thresholds, bracket bounds and contribution caps in the config are
    monthly amounts. They are scaled to the pay period by dividing by the
    number of periods in the month, so a weekly run in a five-week month
    withholds against one fifth of the monthly threshold.

    Residents and non-residents each have their own threshold and bracket
    table; by default non-residents are taxed from the first dollar on the
    resident brackets.
    """

    def __init__(self, income_tax: IncomeTaxConfig, social_insurance: SocialInsuranceConfig):
        self.income_tax = income_tax
        self.social_insurance = social_insurance

    def calculate_income_tax(
        self,
        wages: Decimal,
        periods_in_month: Decimal,
        is_resident: bool = True,
        has_tax_exemption: bool = False,
    ) -> IncomeTaxResult:
        """Withholding on wages after the per-period exemption threshold."""
        if is_resident:
            monthly_threshold = self.income_tax.resident_threshold
            brackets = self.income_tax.brackets
        else:
            monthly_threshold = self.income_tax.non_resident_threshold
            brackets = self.income_tax.non_resident_brackets

        threshold = LineItemBuilder.round_to_cents(monthly_threshold / periods_in_month)
        taxable = LineItemBuilder.round_to_cents(max(ZERO, wages - threshold))

        if has_tax_exemption:
            return IncomeTaxResult(taxable_income=taxable, income_tax=ZERO, threshold=threshold)

        tax = self._calculate_progressive_tax(taxable, brackets, periods_in_month)
        return IncomeTaxResult(taxable_income=taxable, income_tax=tax, threshold=threshold)

    def calculate_social_insurance(
        self, base: Decimal, periods_in_month: Decimal
    ) -> SocialInsuranceResult:
        """Employee and employer contributions on a contribution base."""
        base = max(ZERO, base)
        if self.social_insurance.base_cap is not None:
            period_cap = self.social_insurance.base_cap / periods_in_month
            base = min(base, period_cap)
        base = LineItemBuilder.round_to_cents(base)

        return SocialInsuranceResult(
            base=base,
            employee=self._calculate_flat_tax(base, self.social_insurance.employee_rate),
            employer=self._calculate_flat_tax(base, self.social_insurance.employer_rate),
        )

    def _calculate_progressive_tax(
        self,
        wages: Decimal,
        brackets: tuple[TaxBracket, ...],
        periods_in_month: Decimal = Decimal("1"),
    ) -> Decimal:
        """Calculate tax using progressive brackets scaled to the period."""
        if wages <= 0:
            return ZERO

        total_tax = ZERO
        for bracket in brackets:
            bracket_min = bracket.min_amount / periods_in_month
            if wages <= bracket_min:
                break
            bracket_max = (
                bracket.max_amount / periods_in_month
                if bracket.max_amount is not None
                else wages
            )
            taxable_in_bracket = min(wages, bracket_max) - bracket_min
            if taxable_in_bracket > 0:
                total_tax += bracket.flat_amount / periods_in_month
                total_tax += taxable_in_bracket * bracket.rate

        return LineItemBuilder.round_to_cents(total_tax)

    def _calculate_flat_tax(self, wages: Decimal, rate: Decimal) -> Decimal:
        """Calculate flat-rate contribution."""
        if wages <= 0:
            return ZERO
        return LineItemBuilder.round_to_cents(wages * rate)
