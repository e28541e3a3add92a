"""Statutory payroll calculation engine."""

from payroll_draft.calculators.engine import StatutoryCalculator, build_payroll_input
from payroll_draft.calculators.line_builder import LineItemBuilder
from payroll_draft.calculators.rate_resolver import RateResolver
from payroll_draft.calculators.rules import (
    StatutoryConfig,
    StatutoryConfigError,
    load_config_file,
    load_default_config,
)
from payroll_draft.calculators.supplement import calculate_annual_supplement
from payroll_draft.calculators.tax_calculator import TaxCalculator
from payroll_draft.calculators.types import (
    CalculationError,
    CalculationResult,
    EmployeeSnapshot,
    PayFrequency,
    PayrollInput,
    PeriodContext,
    RowValues,
)

__all__ = [
    "StatutoryCalculator",
    "build_payroll_input",
    "CalculationError",
    "CalculationResult",
    "EmployeeSnapshot",
    "LineItemBuilder",
    "PayFrequency",
    "PayrollInput",
    "PeriodContext",
    "RateResolver",
    "RowValues",
    "StatutoryConfig",
    "StatutoryConfigError",
    "TaxCalculator",
    "calculate_annual_supplement",
    "load_config_file",
    "load_default_config",
]
