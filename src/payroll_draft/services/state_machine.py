"""Draft row state machine with transition validation."""

from __future__ import annotations

from enum import Enum


class RowStatus(str, Enum):
    """Draft row status values."""

    UNINITIALIZED = "uninitialized"
    CALCULATED = "calculated"
    EDITED = "edited"
    RECALCULATED = "recalculated"
    RESET = "reset"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class RowStateMachine:
    """State machine for draft row status transitions.

    Allowed transitions:
    - uninitialized → calculated
    - calculated → edited
    - edited → recalculated
    - recalculated → edited
    - calculated | edited | recalculated → reset
    - reset → calculated

    An accepted edit moves through edited to recalculated in one step, since
    recomputation happens before the edit returns.
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        RowStatus.UNINITIALIZED: [RowStatus.CALCULATED],
        RowStatus.CALCULATED: [RowStatus.EDITED, RowStatus.RESET],
        RowStatus.EDITED: [RowStatus.RECALCULATED, RowStatus.RESET],
        RowStatus.RECALCULATED: [RowStatus.EDITED, RowStatus.RESET],
        RowStatus.RESET: [RowStatus.CALCULATED],
    }

    # Statuses a row can rest in between operations
    SETTLED = {
        RowStatus.CALCULATED,
        RowStatus.RECALCULATED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def walk(cls, from_status: RowStatus, *steps: RowStatus) -> RowStatus:
        """Validate a sequence of transitions and return the final status."""
        current = from_status
        for step in steps:
            cls.validate_transition(current, step)
            current = step
        return current

    @classmethod
    def is_settled(cls, status: str) -> bool:
        return status in cls.SETTLED

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])
