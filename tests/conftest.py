"""Pytest fixtures for payroll draft tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any, AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payroll_draft.calculators.rate_resolver import RateResolver
from payroll_draft.calculators.rules import StatutoryConfig, load_default_config
from payroll_draft.calculators.types import EmployeeSnapshot, PayFrequency, PeriodContext
from payroll_draft.models import Base
from payroll_draft.services.draft_manager import DraftRowManager

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_ENGINE_VERSION = "test-1.0"


@pytest.fixture
def config() -> StatutoryConfig:
    """Packaged reference-jurisdiction configuration."""
    return load_default_config()


@pytest.fixture
def make_employee() -> Callable[..., EmployeeSnapshot]:
    """Factory for employee snapshots with sensible defaults."""

    def _make(employee_id: str = "emp-1", **overrides: Any) -> EmployeeSnapshot:
        values: dict[str, Any] = {
            "first_name": "Ana",
            "last_name": "Soares",
            "employee_number": "E001",
            "department": "Finance",
            "position": "Clerk",
            "monthly_salary": Decimal("500"),
            "hire_date": date(2020, 1, 6),
        }
        values.update(overrides)
        return EmployeeSnapshot(employee_id=employee_id, **values)

    return _make


@pytest.fixture
def roster(make_employee) -> list[EmployeeSnapshot]:
    """Two employees hired well before the test period."""
    return [
        make_employee("emp-1"),
        make_employee(
            "emp-2",
            first_name="Jose",
            last_name="Belo",
            employee_number="E002",
            monthly_salary=Decimal("800"),
        ),
    ]


@pytest.fixture
def march_period(config: StatutoryConfig) -> PeriodContext:
    """Monthly period for March 2024, paid on the last day."""
    return RateResolver(config.working_hours).build_period(
        pay_frequency=PayFrequency.MONTHLY,
        period_start=date(2024, 3, 1),
        period_end=date(2024, 3, 31),
        pay_date=date(2024, 3, 31),
    )


@pytest.fixture
def manager(
    config: StatutoryConfig,
    roster: list[EmployeeSnapshot],
    march_period: PeriodContext,
) -> DraftRowManager:
    """Draft manager seeded with the two-employee roster."""
    draft = DraftRowManager(config, engine_version=TEST_ENGINE_VERSION)
    draft.seed(roster, march_period)
    return draft


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()
