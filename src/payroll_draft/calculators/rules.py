"""Statutory configuration loaded from versioned JSON payloads.

Payload structure (all numbers may be given as JSON numbers or strings):
{
    "jurisdiction": "TL",
    "version": "2023.1",
    "effective_date": "2023-01-01",
    "income_tax": {
        "resident_threshold": 500,
        "non_resident_threshold": 0,
        "brackets": [{"min": 0, "max": null, "rate": 0.10, "flat": 0}],
        "non_resident_brackets": [...]            // optional
    },
    "social_insurance": {
        "employee_rate": 0.04,
        "employer_rate": 0.06,
        "contribution_base": "contributable",      // or "gross" | "taxable"
        "base_cap": null
    },
    "working_hours": {...},
    "overtime_rates": {...},
    "sick_leave": {...},
    "minimum_wage": {"monthly": 115},
    "annual_supplement": {"full_year_months": 12},
    "deductions": {"voluntary_cap_ratio": 0.30, "late_rounding_minutes": 15},
    "compliance": {"working_days_per_month": 22, "max_daily_hours_equivalent": 12}
}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from importlib import resources
from pathlib import Path
from typing import Any

from payroll_draft.calculators.types import PayFrequency, TaxBracket

CONTRIBUTION_BASES = ("contributable", "gross", "taxable")


class StatutoryConfigError(Exception):
    """Raised when a statutory configuration payload is malformed."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid statutory configuration at '{key}': {reason}")


@dataclass(frozen=True)
class IncomeTaxConfig:
    resident_threshold: Decimal
    non_resident_threshold: Decimal
    brackets: tuple[TaxBracket, ...]
    non_resident_brackets: tuple[TaxBracket, ...]


@dataclass(frozen=True)
class SocialInsuranceConfig:
    employee_rate: Decimal
    employer_rate: Decimal
    contribution_base: str = "contributable"
    base_cap: Decimal | None = None


@dataclass(frozen=True)
class WorkingHoursConfig:
    standard_weekly_hours: Decimal
    standard_daily_hours: Decimal
    max_overtime_per_week: Decimal
    nominal_periods_per_month: dict[PayFrequency, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class OvertimeRates:
    standard: Decimal
    night_shift: Decimal
    public_holiday: Decimal


@dataclass(frozen=True)
class SickLeaveConfig:
    full_pay_days: Decimal
    reduced_pay_days: Decimal
    full_pay_rate: Decimal
    reduced_pay_rate: Decimal

    @property
    def total_days(self) -> Decimal:
        return self.full_pay_days + self.reduced_pay_days


@dataclass(frozen=True)
class DeductionConfig:
    voluntary_cap_ratio: Decimal
    late_rounding_minutes: Decimal


@dataclass(frozen=True)
class ComplianceConfig:
    working_days_per_month: Decimal
    max_daily_hours_equivalent: Decimal


@dataclass(frozen=True)
class StatutoryConfig:
    """Versioned jurisdiction parameters consulted by every calculator."""

    jurisdiction: str
    version: str
    effective_date: date | None
    income_tax: IncomeTaxConfig
    social_insurance: SocialInsuranceConfig
    working_hours: WorkingHoursConfig
    overtime_rates: OvertimeRates
    sick_leave: SickLeaveConfig
    minimum_monthly_wage: Decimal
    full_year_months: Decimal
    deductions: DeductionConfig
    compliance: ComplianceConfig

    @property
    def max_monthly_overtime(self) -> Decimal:
        return self.working_hours.max_overtime_per_week * 4

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> StatutoryConfig:
        """Build a config from a JSON-style payload."""
        income = _section(payload, "income_tax")
        brackets = _parse_brackets(income.get("brackets"), "income_tax.brackets")
        non_resident = income.get("non_resident_brackets")
        si = _section(payload, "social_insurance")
        hours = _section(payload, "working_hours")
        ot = _section(payload, "overtime_rates")
        sick = _section(payload, "sick_leave")
        ded = payload.get("deductions", {})
        comp = payload.get("compliance", {})

        contribution_base = si.get("contribution_base", "contributable")
        if contribution_base not in CONTRIBUTION_BASES:
            raise StatutoryConfigError(
                "social_insurance.contribution_base",
                f"expected one of {CONTRIBUTION_BASES}, got {contribution_base!r}",
            )

        nominal = {
            PayFrequency(k): _decimal(v, f"working_hours.nominal_periods_per_month.{k}")
            for k, v in hours.get(
                "nominal_periods_per_month",
                {"weekly": "4.33", "biweekly": "2.17", "semimonthly": "2", "monthly": "1"},
            ).items()
        }

        effective = payload.get("effective_date")
        return cls(
            jurisdiction=str(payload.get("jurisdiction", "")),
            version=str(payload.get("version", "")),
            effective_date=date.fromisoformat(effective) if effective else None,
            income_tax=IncomeTaxConfig(
                resident_threshold=_decimal(
                    income.get("resident_threshold"), "income_tax.resident_threshold"
                ),
                non_resident_threshold=_decimal(
                    income.get("non_resident_threshold", 0),
                    "income_tax.non_resident_threshold",
                ),
                brackets=brackets,
                non_resident_brackets=(
                    _parse_brackets(non_resident, "income_tax.non_resident_brackets")
                    if non_resident
                    else brackets
                ),
            ),
            social_insurance=SocialInsuranceConfig(
                employee_rate=_decimal(si.get("employee_rate"), "social_insurance.employee_rate"),
                employer_rate=_decimal(si.get("employer_rate"), "social_insurance.employer_rate"),
                contribution_base=contribution_base,
                base_cap=(
                    _decimal(si["base_cap"], "social_insurance.base_cap")
                    if si.get("base_cap") is not None
                    else None
                ),
            ),
            working_hours=WorkingHoursConfig(
                standard_weekly_hours=_decimal(
                    hours.get("standard_weekly_hours"), "working_hours.standard_weekly_hours"
                ),
                standard_daily_hours=_decimal(
                    hours.get("standard_daily_hours", 8), "working_hours.standard_daily_hours"
                ),
                max_overtime_per_week=_decimal(
                    hours.get("max_overtime_per_week", 16), "working_hours.max_overtime_per_week"
                ),
                nominal_periods_per_month=nominal,
            ),
            overtime_rates=OvertimeRates(
                standard=_decimal(ot.get("standard"), "overtime_rates.standard"),
                night_shift=_decimal(ot.get("night_shift"), "overtime_rates.night_shift"),
                public_holiday=_decimal(ot.get("public_holiday"), "overtime_rates.public_holiday"),
            ),
            sick_leave=SickLeaveConfig(
                full_pay_days=_decimal(sick.get("full_pay_days", 6), "sick_leave.full_pay_days"),
                reduced_pay_days=_decimal(
                    sick.get("reduced_pay_days", 6), "sick_leave.reduced_pay_days"
                ),
                full_pay_rate=_decimal(sick.get("full_pay_rate", 1), "sick_leave.full_pay_rate"),
                reduced_pay_rate=_decimal(
                    sick.get("reduced_pay_rate", "0.5"), "sick_leave.reduced_pay_rate"
                ),
            ),
            minimum_monthly_wage=_decimal(
                _section(payload, "minimum_wage").get("monthly"), "minimum_wage.monthly"
            ),
            full_year_months=_decimal(
                payload.get("annual_supplement", {}).get("full_year_months", 12),
                "annual_supplement.full_year_months",
            ),
            deductions=DeductionConfig(
                voluntary_cap_ratio=_decimal(
                    ded.get("voluntary_cap_ratio", "0.30"), "deductions.voluntary_cap_ratio"
                ),
                late_rounding_minutes=_decimal(
                    ded.get("late_rounding_minutes", 15), "deductions.late_rounding_minutes"
                ),
            ),
            compliance=ComplianceConfig(
                working_days_per_month=_decimal(
                    comp.get("working_days_per_month", 22), "compliance.working_days_per_month"
                ),
                max_daily_hours_equivalent=_decimal(
                    comp.get("max_daily_hours_equivalent", 12),
                    "compliance.max_daily_hours_equivalent",
                ),
            ),
        )


def load_config_file(path: str | Path) -> StatutoryConfig:
    """Load a statutory configuration from a JSON file."""
    with Path(path).open("r", encoding="utf-8") as fh:
        return StatutoryConfig.from_payload(json.load(fh))


def load_default_payload() -> dict[str, Any]:
    """Return the packaged default payload."""
    resource = resources.files("payroll_draft").joinpath("rules").joinpath("default.json")
    text = resource.read_text(encoding="utf-8")
    return json.loads(text)


def load_default_config() -> StatutoryConfig:
    """Load the packaged reference-jurisdiction configuration."""
    return StatutoryConfig.from_payload(load_default_payload())


def _section(payload: dict[str, Any], key: str) -> dict[str, Any]:
    section = payload.get(key)
    if not isinstance(section, dict):
        raise StatutoryConfigError(key, "section is missing")
    return section


def _decimal(value: Any, key: str) -> Decimal:
    if value is None:
        raise StatutoryConfigError(key, "value is missing")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise StatutoryConfigError(key, f"not a number: {value!r}")
    if not result.is_finite() or result < 0:
        raise StatutoryConfigError(key, f"must be a non-negative number, got {value!r}")
    return result


def _parse_brackets(raw: Any, key: str) -> tuple[TaxBracket, ...]:
    if not raw:
        raise StatutoryConfigError(key, "at least one bracket is required")
    brackets = []
    for i, b in enumerate(raw):
        if not isinstance(b, dict):
            raise StatutoryConfigError(f"{key}[{i}]", "bracket must be an object")
        brackets.append(
            TaxBracket(
                min_amount=_decimal(b.get("min", 0), f"{key}[{i}].min"),
                max_amount=(
                    _decimal(b["max"], f"{key}[{i}].max") if b.get("max") is not None else None
                ),
                rate=_decimal(b.get("rate"), f"{key}[{i}].rate"),
                flat_amount=_decimal(b.get("flat", 0), f"{key}[{i}].flat"),
            )
        )
    return tuple(sorted(brackets, key=lambda b: b.min_amount))
