"""Compliance warnings for draft rows."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from payroll_draft.calculators.rules import StatutoryConfig
from payroll_draft.services.draft_manager import DraftRow, DraftSnapshot


class WarningCategory(str, Enum):
    WAGE = "wage"
    HOURS = "hours"


@dataclass(frozen=True)
class ComplianceWarning:
    employee_id: str
    employee_name: str
    message: str
    category: WarningCategory

    def to_dict(self) -> dict[str, str]:
        return {
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "message": self.message,
            "category": self.category.value,
        }


class ComplianceWarningDetector:
    """Flags policy breaches on included rows without blocking submission.

    - monthly salary below the minimum wage
    - overtime above the monthly ceiling (weekly ceiling x 4)
    - (regular + overtime + night shift) / working days above the daily limit
    """

    def __init__(self, config: StatutoryConfig):
        self.config = config

    def detect(self, snapshot: DraftSnapshot) -> list[ComplianceWarning]:
        warnings: list[ComplianceWarning] = []
        for row in snapshot.included_rows():
            warnings.extend(self.detect_row(row))
        return warnings

    def detect_row(self, row: DraftRow) -> list[ComplianceWarning]:
        found: list[ComplianceWarning] = []

        def warn(message: str, category: WarningCategory) -> None:
            found.append(
                ComplianceWarning(
                    employee_id=row.employee_id,
                    employee_name=row.employee.display_name,
                    message=message,
                    category=category,
                )
            )

        minimum = self.config.minimum_monthly_wage
        salary = row.employee.monthly_salary
        if salary is not None and 0 < salary < minimum:
            warn(
                f"Monthly salary ${salary} is below the minimum wage of ${minimum}",
                WarningCategory.WAGE,
            )

        ceiling = self.config.max_monthly_overtime
        overtime = row.current.overtime_hours
        if overtime > ceiling:
            warn(
                f"Overtime of {overtime}h exceeds the monthly limit of {ceiling}h",
                WarningCategory.HOURS,
            )

        compliance = self.config.compliance
        if compliance.working_days_per_month > 0:
            total = row.current.regular_hours + overtime + row.current.night_shift_hours
            daily = total / compliance.working_days_per_month
            if daily > compliance.max_daily_hours_equivalent:
                warn(
                    f"Average of {daily.quantize(Decimal('0.1'))}h per working day exceeds "
                    f"{compliance.max_daily_hours_equivalent}h",
                    WarningCategory.HOURS,
                )

        return found
