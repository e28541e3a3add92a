"""Employee directory model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Date, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_draft.models.base import Base, IdColumn, TimestampMixin, new_id


class Employee(Base, TimestampMixin):
    """Employee record as read by the draft engine."""

    __tablename__ = "employee"

    employee_id: Mapped[str] = mapped_column(IdColumn, primary_key=True, default=new_id)
    tenant_id: Mapped[str] = mapped_column(IdColumn, nullable=False, index=True)
    employee_number: Mapped[str] = mapped_column(String, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    department: Mapped[str] = mapped_column(String, nullable=False, default="")
    position: Mapped[str] = mapped_column(String, nullable=False, default="")
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    termination_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    monthly_salary: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    is_resident: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    has_tax_exemption: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Standing per-period deductions
    loan_repayment: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    advance_repayment: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    court_orders: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    other_deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    # Year-to-date before the current run
    ytd_gross_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    ytd_income_tax: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    ytd_social_insurance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    ytd_sick_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))

    __table_args__ = (
        UniqueConstraint("tenant_id", "employee_number", name="employee_tenant_number_unique"),
        CheckConstraint(
            "status IN ('active', 'terminated', 'on_leave')",
            name="employee_status_check",
        ),
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"

    def is_active_on(self, as_of_date: date) -> bool:
        """Check if the employee is on payroll on a given date."""
        if self.status == "terminated" and self.termination_date is None:
            return False
        if self.termination_date is not None and self.termination_date < as_of_date:
            return False
        return True
