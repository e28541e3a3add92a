"""Tests for employee directory adapters."""

from datetime import date
from decimal import Decimal

import pytest

from payroll_draft.calculators.types import EmployeeSnapshot
from payroll_draft.models import Employee
from payroll_draft.services.employee_directory import (
    EmployeeNotFoundError,
    InMemoryEmployeeDirectory,
    SqlEmployeeDirectory,
)

TENANT = "tenant-1"


@pytest.fixture
async def employees(session):
    """Active, on-leave, terminated and other-tenant employees."""
    rows = [
        Employee(
            employee_id="emp-b",
            tenant_id=TENANT,
            employee_number="E002",
            first_name="Jose",
            last_name="Belo",
            monthly_salary=Decimal("800.00"),
            hire_date=date(2021, 4, 1),
            loan_repayment=Decimal("25.00"),
        ),
        Employee(
            employee_id="emp-a",
            tenant_id=TENANT,
            employee_number="E001",
            first_name="Ana",
            last_name="Amaral",
            monthly_salary=Decimal("500.00"),
            hire_date=date(2020, 1, 6),
            is_resident=False,
        ),
        Employee(
            employee_id="emp-c",
            tenant_id=TENANT,
            employee_number="E003",
            first_name="Rui",
            last_name="Costa",
            status="on_leave",
            termination_date=date(2024, 2, 15),
        ),
        Employee(
            employee_id="emp-d",
            tenant_id=TENANT,
            employee_number="E004",
            first_name="Maria",
            last_name="Dias",
            status="terminated",
            termination_date=date(2023, 12, 31),
        ),
        Employee(
            employee_id="emp-x",
            tenant_id="tenant-2",
            employee_number="E001",
            first_name="Other",
            last_name="Tenant",
        ),
    ]
    session.add_all(rows)
    await session.flush()
    return rows


class TestSqlEmployeeDirectory:
    """Reads from the employee table."""

    async def test_list_active_excludes_terminated(self, session, employees):
        roster = await SqlEmployeeDirectory(session).list_active(TENANT)
        assert [e.employee_id for e in roster] == ["emp-a", "emp-b", "emp-c"]

    async def test_list_active_as_of_date(self, session, employees):
        roster = await SqlEmployeeDirectory(session).list_active(TENANT, date(2024, 3, 1))
        assert [e.employee_id for e in roster] == ["emp-a", "emp-b"]

    async def test_snapshot_fields(self, session, employees):
        snapshot = await SqlEmployeeDirectory(session).get(TENANT, "emp-b")
        assert snapshot.display_name == "Jose Belo"
        assert snapshot.monthly_salary == Decimal("800.00")
        assert snapshot.loan_repayment == Decimal("25.00")
        assert snapshot.ytd_sick_days == 0
        assert snapshot.is_resident is True

    async def test_missing_salary_stays_none(self, session, employees):
        snapshot = await SqlEmployeeDirectory(session).get(TENANT, "emp-c")
        assert snapshot.monthly_salary is None

    async def test_get_is_tenant_scoped(self, session, employees):
        with pytest.raises(EmployeeNotFoundError):
            await SqlEmployeeDirectory(session).get(TENANT, "emp-x")


class TestInMemoryEmployeeDirectory:
    async def test_list_and_get(self):
        directory = InMemoryEmployeeDirectory()
        directory.add(TENANT, EmployeeSnapshot("emp-1", "Ana", "Soares"))

        assert [e.employee_id for e in await directory.list_active(TENANT)] == ["emp-1"]
        assert await directory.list_active("tenant-2") == []
        assert (await directory.get(TENANT, "emp-1")).display_name == "Ana Soares"

    async def test_get_unknown(self):
        with pytest.raises(EmployeeNotFoundError):
            await InMemoryEmployeeDirectory().get(TENANT, "emp-1")
