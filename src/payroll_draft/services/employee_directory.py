"""Employee directory adapters producing read-only snapshots."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_draft.calculators.types import EmployeeSnapshot
from payroll_draft.models import Employee


class EmployeeNotFoundError(Exception):
    """Raised when an employee is not in the directory."""

    def __init__(self, tenant_id: str, employee_id: str):
        self.tenant_id = tenant_id
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} not found for tenant {tenant_id}")


class EmployeeDirectory(Protocol):
    async def list_active(
        self, tenant_id: str, as_of_date: date | None = None
    ) -> list[EmployeeSnapshot]: ...

    async def get(self, tenant_id: str, employee_id: str) -> EmployeeSnapshot: ...


def snapshot_from_model(employee: Employee) -> EmployeeSnapshot:
    """Build an immutable snapshot from an ORM row."""
    return EmployeeSnapshot(
        employee_id=employee.employee_id,
        first_name=employee.first_name,
        last_name=employee.last_name,
        employee_number=employee.employee_number,
        department=employee.department or "",
        position=employee.position or "",
        monthly_salary=(
            Decimal(str(employee.monthly_salary))
            if employee.monthly_salary is not None
            else None
        ),
        hire_date=employee.hire_date,
        is_resident=employee.is_resident,
        has_tax_exemption=employee.has_tax_exemption,
        loan_repayment=Decimal(str(employee.loan_repayment or 0)),
        advance_repayment=Decimal(str(employee.advance_repayment or 0)),
        court_orders=Decimal(str(employee.court_orders or 0)),
        other_deductions=Decimal(str(employee.other_deductions or 0)),
        ytd_gross_pay=Decimal(str(employee.ytd_gross_pay or 0)),
        ytd_income_tax=Decimal(str(employee.ytd_income_tax or 0)),
        ytd_social_insurance=Decimal(str(employee.ytd_social_insurance or 0)),
        ytd_sick_days=Decimal(str(employee.ytd_sick_days or 0)),
    )


class SqlEmployeeDirectory:
    """Reads employees from the employee table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_active(
        self, tenant_id: str, as_of_date: date | None = None
    ) -> list[EmployeeSnapshot]:
        result = await self.session.execute(
            select(Employee)
            .where(
                Employee.tenant_id == tenant_id,
                Employee.status != "terminated",
            )
            .order_by(Employee.last_name, Employee.first_name, Employee.employee_number)
        )
        employees = result.scalars().all()
        if as_of_date is not None:
            employees = [e for e in employees if e.is_active_on(as_of_date)]
        return [snapshot_from_model(e) for e in employees]

    async def get(self, tenant_id: str, employee_id: str) -> EmployeeSnapshot:
        result = await self.session.execute(
            select(Employee).where(
                Employee.tenant_id == tenant_id,
                Employee.employee_id == employee_id,
            )
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise EmployeeNotFoundError(tenant_id, employee_id)
        return snapshot_from_model(employee)


class InMemoryEmployeeDirectory:
    """Directory over a fixed set of snapshots, keyed by tenant."""

    def __init__(self, employees: dict[str, Iterable[EmployeeSnapshot]] | None = None):
        self._employees: dict[str, list[EmployeeSnapshot]] = {
            tenant: list(snapshots) for tenant, snapshots in (employees or {}).items()
        }

    def add(self, tenant_id: str, employee: EmployeeSnapshot) -> None:
        self._employees.setdefault(tenant_id, []).append(employee)

    async def list_active(
        self, tenant_id: str, as_of_date: date | None = None
    ) -> list[EmployeeSnapshot]:
        return list(self._employees.get(tenant_id, []))

    async def get(self, tenant_id: str, employee_id: str) -> EmployeeSnapshot:
        for employee in self._employees.get(tenant_id, []):
            if employee.employee_id == employee_id:
                return employee
        raise EmployeeNotFoundError(tenant_id, employee_id)
