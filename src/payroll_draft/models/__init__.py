"""SQLAlchemy ORM models."""

from payroll_draft.models.base import Base, TimestampMixin
from payroll_draft.models.employee import Employee
from payroll_draft.models.rules import StatutoryRuleVersion

__all__ = [
    "Base",
    "TimestampMixin",
    "Employee",
    "StatutoryRuleVersion",
]
