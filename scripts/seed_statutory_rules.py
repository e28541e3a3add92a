"""Seed script for statutory rules and demo employees.

Run with:
    python scripts/seed_statutory_rules.py [rules.json] [--demo-employees]

Creates the tables if needed, then stores the packaged reference
jurisdiction rules (or the given JSON file) as an effective-dated version.
"""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_draft.calculators.rules import load_default_payload
from payroll_draft.database import get_session, init_db
from payroll_draft.models import Base, Employee, StatutoryRuleVersion
from payroll_draft.services.rule_repository import StatutoryRuleRepository

DEMO_TENANT_ID = "adfb6898-026f-fa17-8583-404672c7972a"


async def create_tables() -> None:
    engine, _ = init_db()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_rules(session: AsyncSession, payload: dict) -> None:
    """Store a rule version unless the same jurisdiction/version exists."""
    effective = date.fromisoformat(payload["effective_date"])
    result = await session.execute(
        select(StatutoryRuleVersion).where(
            StatutoryRuleVersion.jurisdiction == payload["jurisdiction"],
            StatutoryRuleVersion.version == payload["version"],
        )
    )
    if result.scalar_one_or_none() is not None:
        print(f"Rules {payload['jurisdiction']} {payload['version']} already exist, skipping...")
        return

    await StatutoryRuleRepository(session).add_version(payload, effective)
    print(f"Created rules {payload['jurisdiction']} {payload['version']} effective {effective}")


async def seed_demo_employees(session: AsyncSession) -> None:
    result = await session.execute(
        select(Employee).where(Employee.tenant_id == DEMO_TENANT_ID).limit(1)
    )
    if result.scalar_one_or_none() is not None:
        print("Demo employees already exist, skipping...")
        return

    session.add_all(
        [
            Employee(
                tenant_id=DEMO_TENANT_ID,
                employee_number="EMP001",
                first_name="Alice",
                last_name="Smith",
                department="Finance",
                position="Accountant",
                monthly_salary=Decimal("500.00"),
                hire_date=date(2023, 1, 2),
            ),
            Employee(
                tenant_id=DEMO_TENANT_ID,
                employee_number="EMP002",
                first_name="Bob",
                last_name="Jones",
                department="Operations",
                position="Driver",
                monthly_salary=Decimal("300.00"),
                hire_date=date(2023, 6, 15),
                loan_repayment=Decimal("25.00"),
            ),
        ]
    )
    await session.flush()
    print(f"Created demo employees for tenant {DEMO_TENANT_ID}")


async def main(argv: list[str]) -> None:
    """Run seed script."""
    paths = [a for a in argv if not a.startswith("--")]
    if paths:
        payload = json.loads(Path(paths[0]).read_text(encoding="utf-8"))
    else:
        payload = load_default_payload()

    print("Seeding statutory rules...")
    await create_tables()

    async with get_session() as session:
        await seed_rules(session, payload)
        if "--demo-employees" in argv:
            await seed_demo_employees(session)

    print("\nDone!")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
