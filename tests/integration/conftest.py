"""Integration test fixtures: the app wired to in-memory storage."""

from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payroll_draft.api.app import create_app
from payroll_draft.api.dependencies import get_db_session, get_employee_directory
from payroll_draft.calculators.types import EmployeeSnapshot
from payroll_draft.models import Base
from payroll_draft.services.employee_directory import InMemoryEmployeeDirectory

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

DEMO_TENANT_ID = "adfb6898-026f-fa17-8583-404672c7972a"
OTHER_TENANT_ID = "0d1c2b3a-0000-1111-2222-333344445555"
ALICE_EMPLOYEE_ID = "e5a4c9d3-4567-89ab-cdef-012345678901"
BOB_EMPLOYEE_ID = "f6b5dae4-5678-9abc-def0-123456789012"

TENANT_HEADERS = {"X-Tenant-ID": DEMO_TENANT_ID}


@pytest_asyncio.fixture
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def directory() -> InMemoryEmployeeDirectory:
    """Two-employee roster for the demo tenant."""
    return InMemoryEmployeeDirectory(
        {
            DEMO_TENANT_ID: [
                EmployeeSnapshot(
                    ALICE_EMPLOYEE_ID,
                    first_name="Alice",
                    last_name="Smith",
                    employee_number="EMP001",
                    monthly_salary=Decimal("500"),
                ),
                EmployeeSnapshot(
                    BOB_EMPLOYEE_ID,
                    first_name="Bob",
                    last_name="Jones",
                    employee_number="EMP002",
                    monthly_salary=Decimal("800"),
                ),
            ]
        }
    )


@pytest.fixture
def app(test_engine, directory) -> FastAPI:
    """App with the database and employee directory overridden."""
    app = create_app()
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    async def override_directory() -> InMemoryEmployeeDirectory:
        return directory

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_employee_directory] = override_directory
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def draft(client: AsyncClient) -> dict:
    """A March 2024 monthly draft for the demo tenant."""
    response = await client.post(
        "/api/v1/drafts",
        headers=TENANT_HEADERS,
        json={
            "period_start": "2024-03-01",
            "period_end": "2024-03-31",
            "pay_date": "2024-03-31",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()
