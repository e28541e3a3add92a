"""FastAPI dependencies for dependency injection."""

import logging
import time
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_draft.calculators.rules import StatutoryConfig, load_config_file, load_default_config
from payroll_draft.config import get_settings
from payroll_draft.database import init_db
from payroll_draft.services.attendance import AttendanceSource, HttpAttendanceSource
from payroll_draft.services.draft_manager import DraftRowManager
from payroll_draft.services.employee_directory import EmployeeDirectory, SqlEmployeeDirectory

logger = logging.getLogger(__name__)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None
) -> str:
    """Extract tenant ID from header."""
    if not x_tenant_id or not x_tenant_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required",
        )
    return x_tenant_id.strip()


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
TenantId = Annotated[str, Depends(get_tenant_id)]


@dataclass
class DraftSession:
    """One open draft batch."""

    draft_id: str
    tenant_id: str
    manager: DraftRowManager
    last_used: float = 0.0


class DraftStore:
    """In-memory registry of open drafts, scoped by tenant.

    Drafts idle for longer than ttl_seconds are dropped, and once
    max_drafts are open the least recently used one is evicted.
    """

    def __init__(
        self,
        ttl_seconds: float = 28800,
        max_drafts: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_drafts = max_drafts
        self._clock = clock
        self._drafts: dict[tuple[str, str], DraftSession] = {}

    def create(self, tenant_id: str, manager: DraftRowManager) -> DraftSession:
        self._evict_expired()
        while self._drafts and len(self._drafts) >= self.max_drafts:
            oldest = min(self._drafts, key=lambda key: self._drafts[key].last_used)
            logger.info(
                "Evicting draft %s to stay under %d open drafts", oldest[1], self.max_drafts
            )
            del self._drafts[oldest]

        session = DraftSession(
            draft_id=str(uuid4()),
            tenant_id=tenant_id,
            manager=manager,
            last_used=self._clock(),
        )
        self._drafts[(tenant_id, session.draft_id)] = session
        return session

    def get(self, tenant_id: str, draft_id: str) -> DraftSession | None:
        self._evict_expired()
        session = self._drafts.get((tenant_id, draft_id))
        if session is not None:
            session.last_used = self._clock()
        return session

    def discard(self, tenant_id: str, draft_id: str) -> bool:
        return self._drafts.pop((tenant_id, draft_id), None) is not None

    def __len__(self) -> int:
        return len(self._drafts)

    def _evict_expired(self) -> None:
        cutoff = self._clock() - self.ttl_seconds
        expired = [key for key, s in self._drafts.items() if s.last_used < cutoff]
        for key in expired:
            logger.info("Dropping draft %s after %.0fs idle", key[1], self.ttl_seconds)
            del self._drafts[key]


def get_draft_store(request: Request) -> DraftStore:
    return request.app.state.draft_store


@lru_cache(maxsize=1)
def get_statutory_config() -> StatutoryConfig:
    """Statutory config from STATUTORY_CONFIG_PATH or the packaged default."""
    settings = get_settings()
    if settings.statutory_config_path:
        return load_config_file(settings.statutory_config_path)
    return load_default_config()


async def get_employee_directory(db: DbSession) -> EmployeeDirectory:
    return SqlEmployeeDirectory(db)


async def get_attendance_source(tenant_id: TenantId) -> AttendanceSource:
    settings = get_settings()
    if not settings.attendance_service_url:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Attendance service is not configured",
        )
    return HttpAttendanceSource(
        settings.attendance_service_url,
        timeout=settings.attendance_timeout_seconds,
        tenant_id=tenant_id,
    )


# Type aliases for cleaner dependency injection
Drafts = Annotated[DraftStore, Depends(get_draft_store)]
StatutoryRules = Annotated[StatutoryConfig, Depends(get_statutory_config)]
Directory = Annotated[EmployeeDirectory, Depends(get_employee_directory)]
Attendance = Annotated[AttendanceSource, Depends(get_attendance_source)]
