"""Draft batch services."""

from payroll_draft.services.attendance import (
    AttendanceFetchError,
    AttendanceReconciler,
    AttendanceSummary,
    HttpAttendanceSource,
    StaleAttendanceError,
)
from payroll_draft.services.batch_builder import aggregate_totals, build_batch
from payroll_draft.services.compliance import ComplianceWarning, ComplianceWarningDetector
from payroll_draft.services.draft_manager import DraftRow, DraftRowManager, DraftSnapshot, RowNotFoundError
from payroll_draft.services.state_machine import InvalidTransitionError, RowStateMachine, RowStatus
from payroll_draft.services.validator import PayrollValidator

__all__ = [
    "AttendanceFetchError",
    "AttendanceReconciler",
    "AttendanceSummary",
    "HttpAttendanceSource",
    "StaleAttendanceError",
    "aggregate_totals",
    "build_batch",
    "ComplianceWarning",
    "ComplianceWarningDetector",
    "DraftRow",
    "DraftRowManager",
    "DraftSnapshot",
    "RowNotFoundError",
    "InvalidTransitionError",
    "RowStateMachine",
    "RowStatus",
    "PayrollValidator",
]
