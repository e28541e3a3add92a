"""Statutory payroll calculator - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import fields, replace
from decimal import ROUND_CEILING, Decimal

from payroll_draft.calculators.line_builder import LineItemBuilder
from payroll_draft.calculators.rate_resolver import RateResolver
from payroll_draft.calculators.rules import StatutoryConfig
from payroll_draft.calculators.supplement import calculate_annual_supplement
from payroll_draft.calculators.tax_calculator import TaxCalculator
from payroll_draft.calculators.types import (
    ZERO,
    CalculationError,
    CalculationResult,
    DeductionLine,
    EarningLine,
    EmployeeSnapshot,
    PayrollInput,
    PeriodContext,
    RowValues,
)
from payroll_draft.config import get_settings

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal("60")

# Malformed employee data surfaces as one of these; each fails only its row
ROW_FAILURES = (CalculationError, ArithmeticError, TypeError, ValueError)


class StatutoryCalculator:
    """Statutory payroll calculator for one employee and pay period.

    Calculation pipeline (stable order):
    1) Build earnings lines (hourly lines, sick pay, flat amounts)
    2) Sum gross pay
    3) Compute absence and late-arrival deductions
    4) Compute taxable income and income tax withholding
    5) Compute employee/employer social insurance on the contribution base
    6) Build the deductions list and apply the voluntary deduction cap
    7) Compute net pay, employer cost and YTD roll-forward

    The calculator never performs I/O and holds no state beyond its config,
    so calling it twice with the same input returns equal results.
    """

    def __init__(self, config: StatutoryConfig, engine_version: str | None = None):
        self.config = config
        self.tax_calculator = TaxCalculator(config.income_tax, config.social_insurance)
        if engine_version is None:
            engine_version = get_settings().engine_version
        self.engine_version = engine_version

    def calculate(self, data: PayrollInput) -> CalculationResult:
        """Calculate pay. Raises CalculationError on malformed input."""
        self._validate_input(data)
        warnings: list[str] = []

        # 1) Earnings
        earnings = self._build_earnings_lines(data, warnings)

        # 2) Gross
        gross = LineItemBuilder.calculate_gross_from_lines(earnings)

        # 3) Attendance deductions
        absence_hours = self._chargeable_absence_hours(data)
        absence = LineItemBuilder.round_to_cents(absence_hours * data.hourly_rate)
        late = self._late_arrival_deduction(data.late_arrival_minutes, data.hourly_rate)
        attendance_total = absence + late

        # 4) Income tax
        taxable_wages = max(
            ZERO,
            LineItemBuilder.sum_money(e.amount for e in earnings if e.is_taxable)
            - attendance_total,
        )
        tax = self.tax_calculator.calculate_income_tax(
            taxable_wages,
            data.periods_in_month,
            is_resident=data.is_resident,
            has_tax_exemption=data.has_tax_exemption,
        )

        # 5) Social insurance
        contribution_base = self._contribution_base(
            earnings, gross, tax.taxable_income, attendance_total
        )
        si = self.tax_calculator.calculate_social_insurance(
            contribution_base, data.periods_in_month
        )

        # 6) Deductions
        deductions = self._build_deduction_lines(
            data, absence_hours, absence, late, tax.income_tax, si.employee
        )
        cap = LineItemBuilder.round_to_cents(
            gross * self.config.deductions.voluntary_cap_ratio
        )
        deductions, capped = LineItemBuilder.apply_voluntary_cap(deductions, cap)
        if capped:
            warnings.append(
                f"Voluntary deductions reduced to {cap} "
                f"({self.config.deductions.voluntary_cap_ratio * 100:.0f}% of gross pay)"
            )

        # 7) Totals
        total_deductions = LineItemBuilder.calculate_total_deductions(deductions)
        net = gross - total_deductions
        if net < 0:
            raise CalculationError(
                data.employee_id,
                f"net pay is negative ({net}): deductions {total_deductions} exceed gross {gross}",
            )

        return CalculationResult(
            employee_id=data.employee_id,
            earnings=tuple(earnings),
            deductions=tuple(deductions),
            gross_pay=gross,
            taxable_income=tax.taxable_income,
            contribution_base=si.base,
            income_tax=tax.income_tax,
            social_insurance_employee=si.employee,
            social_insurance_employer=si.employer,
            absence_deduction=absence,
            late_deduction=late,
            total_deductions=total_deductions,
            net_pay=net,
            total_employer_cost=gross + si.employer,
            new_ytd_gross_pay=data.ytd_gross_pay + gross,
            new_ytd_income_tax=data.ytd_income_tax + tax.income_tax,
            new_ytd_social_insurance=data.ytd_social_insurance + si.employee,
            inputs_fingerprint=self.compute_inputs_fingerprint(data),
            warnings=tuple(warnings),
        )

    def calculate_safely(self, data: PayrollInput) -> CalculationResult | None:
        """Calculate pay, returning None instead of raising on failure."""
        try:
            return self.calculate(data)
        except ROW_FAILURES:
            logger.exception("Payroll calculation failed for employee %s", data.employee_id)
            return None

    def compute_inputs_fingerprint(self, data: PayrollInput) -> str:
        """Compute fingerprint of all inputs used in calculation."""
        payload = {
            "engine_version": self.engine_version,
            "rules_version": self.config.version,
            "jurisdiction": self.config.jurisdiction,
            "input": data.to_canonical_dict(),
        }
        json_str = json.dumps(payload, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    def _validate_input(self, data: PayrollInput) -> None:
        for f in fields(data):
            value = getattr(data, f.name)
            if not isinstance(value, Decimal):
                continue
            if not value.is_finite():
                raise CalculationError(data.employee_id, f"{f.name} is not a finite number")
            if value < 0:
                raise CalculationError(data.employee_id, f"{f.name} is negative ({value})")
        if data.periods_in_month <= 0:
            raise CalculationError(data.employee_id, "periods_in_month must be positive")

    def _build_earnings_lines(
        self, data: PayrollInput, warnings: list[str]
    ) -> list[EarningLine]:
        rates = self.config.overtime_rates
        lines = [
            LineItemBuilder.create_hourly_earning(
                "regular",
                "Regular pay",
                data.regular_hours,
                data.hourly_rate,
                is_contribution_base=True,
            )
        ]

        hourly = [
            ("overtime", "Overtime", data.overtime_hours, rates.standard, False),
            ("night_shift", "Night shift", data.night_shift_hours, rates.night_shift, True),
            ("holiday", "Public holiday", data.holiday_hours, rates.public_holiday, False),
        ]
        for line_type, description, hours, multiplier, contributable in hourly:
            if hours > 0:
                lines.append(
                    LineItemBuilder.create_hourly_earning(
                        line_type,
                        f"{description} ({hours}h x {multiplier})",
                        hours,
                        data.hourly_rate,
                        multiplier,
                        is_contribution_base=contributable,
                    )
                )

        sick_line = self._sick_pay_line(data, warnings)
        if sick_line is not None:
            lines.append(sick_line)

        flat = [
            ("bonus", "Bonus", data.bonus, False),
            ("commission", "Commission", data.commission, False),
            ("per_diem", "Per diem", data.per_diem, False),
            ("food_allowance", "Food allowance", data.food_allowance, False),
            ("transport_allowance", "Transport allowance", data.transport_allowance, False),
            ("other", "Other earnings", data.other_earnings, False),
            ("annual_supplement", "Annual supplement", data.annual_supplement, True),
        ]
        for line_type, description, amount, contributable in flat:
            if amount > 0:
                lines.append(
                    LineItemBuilder.create_flat_earning(
                        line_type, description, amount, is_contribution_base=contributable
                    )
                )

        return lines

    def _sick_pay_line(
        self, data: PayrollInput, warnings: list[str]
    ) -> EarningLine | None:
        """Tiered sick pay: full rate first, then reduced rate, then unpaid.

        Tiers count from the start of the year, so days already taken
        (ytd_sick_days) consume the full-pay allowance first.
        """
        if data.sick_days <= 0:
            return None

        sick = self.config.sick_leave
        daily_hours = self.config.working_hours.standard_daily_hours
        daily_rate = data.hourly_rate * daily_hours

        prior = data.ytd_sick_days
        full_days = min(data.sick_days, max(ZERO, sick.full_pay_days - prior))
        reduced_used = max(ZERO, prior - sick.full_pay_days)
        reduced_days = min(
            data.sick_days - full_days, max(ZERO, sick.reduced_pay_days - reduced_used)
        )
        unpaid_days = data.sick_days - full_days - reduced_days
        if unpaid_days > 0:
            warnings.append(
                f"{unpaid_days} sick day(s) exceed the annual paid limit of "
                f"{sick.total_days} days and are unpaid"
            )

        paid_days = full_days + reduced_days
        if paid_days <= 0:
            return None

        amount = daily_rate * (full_days * sick.full_pay_rate + reduced_days * sick.reduced_pay_rate)
        line = LineItemBuilder.create_flat_earning(
            "sick_pay",
            f"Sick pay ({full_days}d full, {reduced_days}d reduced)",
            amount,
            is_contribution_base=True,
        )
        return replace(
            line,
            hours=LineItemBuilder.round_hours(paid_days * daily_hours),
            rate=LineItemBuilder.round_rate(daily_rate),
        )

    @staticmethod
    def _chargeable_absence_hours(data: PayrollInput) -> Decimal:
        """Absence hours not already missing from regular_hours."""
        if data.scheduled_hours is None:
            return data.absence_hours
        shortfall = max(ZERO, data.scheduled_hours - data.regular_hours)
        return max(ZERO, data.absence_hours - shortfall)

    def _late_arrival_deduction(self, minutes: Decimal, hourly_rate: Decimal) -> Decimal:
        """Late minutes rounded up to the configured increment, charged hourly."""
        if minutes <= 0:
            return ZERO
        increment = self.config.deductions.late_rounding_minutes
        if increment > 0:
            minutes = (minutes / increment).to_integral_value(rounding=ROUND_CEILING) * increment
        return LineItemBuilder.round_to_cents(minutes / MINUTES_PER_HOUR * hourly_rate)

    def _contribution_base(
        self,
        earnings: list[EarningLine],
        gross: Decimal,
        taxable_income: Decimal,
        attendance_total: Decimal,
    ) -> Decimal:
        basis = self.config.social_insurance.contribution_base
        if basis == "gross":
            return gross
        if basis == "taxable":
            return taxable_income
        contributable = LineItemBuilder.sum_money(
            e.amount for e in earnings if e.is_contribution_base
        )
        return max(ZERO, contributable - attendance_total)

    def _build_deduction_lines(
        self,
        data: PayrollInput,
        absence_hours: Decimal,
        absence: Decimal,
        late: Decimal,
        income_tax: Decimal,
        social_insurance: Decimal,
    ) -> list[DeductionLine]:
        si_rate = self.config.social_insurance.employee_rate
        lines: list[DeductionLine] = []

        if absence > 0:
            lines.append(
                LineItemBuilder.create_deduction_line(
                    "absence", f"Absence ({absence_hours}h)", absence
                )
            )
        if late > 0:
            lines.append(
                LineItemBuilder.create_deduction_line(
                    "late_arrival", f"Late arrival ({data.late_arrival_minutes} min)", late
                )
            )

        # Always present, even when zero
        lines.append(
            LineItemBuilder.create_deduction_line(
                "income_tax", "Wage income tax", income_tax, is_statutory=True
            )
        )
        lines.append(
            LineItemBuilder.create_deduction_line(
                "social_insurance_employee",
                f"Social insurance ({si_rate * 100:.0f}%)",
                social_insurance,
                is_statutory=True,
            )
        )

        standing = [
            ("loan_repayment", "Loan repayment", data.loan_repayment, False),
            ("advance_repayment", "Advance repayment", data.advance_repayment, False),
            ("court_order", "Court order", data.court_orders, True),
            ("other", "Other deductions", data.other_deductions, False),
        ]
        for line_type, description, amount, statutory in standing:
            if amount > 0:
                lines.append(
                    LineItemBuilder.create_deduction_line(
                        line_type,
                        description,
                        amount,
                        is_statutory=statutory,
                        is_voluntary=not statutory,
                    )
                )

        return lines


def build_payroll_input(
    employee: EmployeeSnapshot,
    values: RowValues,
    period: PeriodContext,
    config: StatutoryConfig,
    scheduled_hours: Decimal | None = None,
) -> PayrollInput:
    """Assemble the calculator input for one draft row.

    A missing salary is treated as zero here; the validator reports it.
    scheduled_hours is the row's pro-rated expected regular hours.
    """
    salary = employee.monthly_salary if employee.monthly_salary is not None else ZERO
    resolver = RateResolver(config.working_hours)
    hourly_rate = resolver.hourly_rate(salary) if salary > 0 else ZERO

    supplement = ZERO
    if period.include_annual_supplement:
        supplement = calculate_annual_supplement(
            salary,
            None,
            employee.hire_date,
            period.as_of_date,
            config.full_year_months,
        )

    return PayrollInput(
        employee_id=employee.employee_id,
        monthly_salary=salary,
        hourly_rate=hourly_rate,
        pay_frequency=period.pay_frequency,
        periods_in_month=period.periods_in_month,
        is_resident=employee.is_resident,
        has_tax_exemption=employee.has_tax_exemption,
        regular_hours=values.regular_hours,
        overtime_hours=values.overtime_hours,
        night_shift_hours=values.night_shift_hours,
        holiday_hours=values.holiday_hours,
        absence_hours=values.absence_hours,
        late_arrival_minutes=values.late_arrival_minutes,
        sick_days=values.sick_days,
        bonus=values.bonus,
        per_diem=values.per_diem,
        transport_allowance=values.allowances,
        annual_supplement=supplement,
        loan_repayment=employee.loan_repayment,
        advance_repayment=employee.advance_repayment,
        court_orders=employee.court_orders,
        other_deductions=employee.other_deductions,
        ytd_gross_pay=employee.ytd_gross_pay,
        ytd_income_tax=employee.ytd_income_tax,
        ytd_social_insurance=employee.ytd_social_insurance,
        ytd_sick_days=employee.ytd_sick_days,
        scheduled_hours=scheduled_hours,
    )
