"""Effective-dated statutory configuration lookup."""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_draft.calculators.rules import StatutoryConfig
from payroll_draft.models import StatutoryRuleVersion


class StatutoryRuleNotFoundError(Exception):
    """Raised when no statutory rule version is effective on a date."""

    def __init__(self, jurisdiction: str, as_of_date: date):
        self.jurisdiction = jurisdiction
        self.as_of_date = as_of_date
        super().__init__(
            f"No statutory rules for jurisdiction '{jurisdiction}' effective {as_of_date}"
        )


class StatutoryRuleRepository:
    """Loads StatutoryConfig from statutory_rule_version.payload_json.

    When several versions overlap a date, the one with the latest
    effective_start wins. Parsed configs are cached per jurisdiction and date.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._cache: dict[str, StatutoryConfig] = {}

    async def get_config(self, jurisdiction: str, as_of_date: date) -> StatutoryConfig:
        """Get the statutory config effective on a date."""
        cache_key = f"{jurisdiction}:{as_of_date}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        result = await self.session.execute(
            select(StatutoryRuleVersion)
            .where(
                StatutoryRuleVersion.jurisdiction == jurisdiction,
                StatutoryRuleVersion.effective_start <= as_of_date,
                (
                    StatutoryRuleVersion.effective_end.is_(None)
                    | (StatutoryRuleVersion.effective_end >= as_of_date)
                ),
            )
            .order_by(StatutoryRuleVersion.effective_start.desc())
            .limit(1)
        )
        version = result.scalar_one_or_none()
        if version is None:
            raise StatutoryRuleNotFoundError(jurisdiction, as_of_date)

        payload = dict(version.payload_json)
        payload.setdefault("jurisdiction", version.jurisdiction)
        payload.setdefault("version", version.version)
        payload.setdefault("effective_date", version.effective_start.isoformat())

        config = StatutoryConfig.from_payload(payload)
        self._cache[cache_key] = config
        return config

    async def add_version(
        self,
        payload: dict,
        effective_start: date,
        effective_end: date | None = None,
        source_url: str | None = None,
    ) -> StatutoryRuleVersion:
        """Validate and stage a new rule version (caller commits)."""
        config = StatutoryConfig.from_payload(payload)
        version = StatutoryRuleVersion(
            jurisdiction=config.jurisdiction,
            version=config.version,
            effective_start=effective_start,
            effective_end=effective_end,
            source_url=source_url,
            payload_json=payload,
        )
        self.session.add(version)
        await self.session.flush()
        self._cache.clear()
        return version
