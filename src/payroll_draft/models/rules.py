"""Versioned statutory rule storage."""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import CheckConstraint, Date, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_draft.models.base import Base, IdColumn, TimestampMixin, new_id


class StatutoryRuleVersion(Base, TimestampMixin):
    """Statutory configuration payload with effective dating."""

    __tablename__ = "statutory_rule_version"

    rule_version_id: Mapped[str] = mapped_column(IdColumn, primary_key=True, default=new_id)
    jurisdiction: Mapped[str] = mapped_column(String, nullable=False, index=True)
    version: Mapped[str] = mapped_column(String, nullable=False)
    effective_start: Mapped[date] = mapped_column(Date, nullable=False)
    effective_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    source_url: Mapped[str | None] = mapped_column(String, nullable=True)
    payload_json: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)

    __table_args__ = (
        CheckConstraint(
            "effective_end IS NULL OR effective_end >= effective_start",
            name="statutory_rule_version_dates_check",
        ),
    )

    def is_active_on(self, as_of_date: date) -> bool:
        """Check if version is active on a given date."""
        if self.effective_start > as_of_date:
            return False
        if self.effective_end is not None and self.effective_end < as_of_date:
            return False
        return True
