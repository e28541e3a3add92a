"""Attendance reconciliation into draft rows."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Protocol

import httpx

from payroll_draft.calculators.line_builder import LineItemBuilder
from payroll_draft.calculators.types import ZERO
from payroll_draft.services.draft_manager import EDIT_BOUNDS, DraftRowManager

logger = logging.getLogger(__name__)


class AttendanceFetchError(Exception):
    """Raised when the attendance summary cannot be fetched or parsed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Attendance summary unavailable: {reason}")


class StaleAttendanceError(Exception):
    """Raised when the draft period changed while a fetch was in flight."""

    def __init__(self, fetched_revision: int, current_revision: int):
        self.fetched_revision = fetched_revision
        self.current_revision = current_revision
        super().__init__(
            f"Attendance fetched for draft revision {fetched_revision} "
            f"but draft is now at revision {current_revision}"
        )


@dataclass(frozen=True)
class AttendanceSummary:
    """Pre-aggregated attendance for one employee over a period."""

    employee_id: str
    regular_hours: Decimal
    overtime_hours: Decimal
    late_minutes: Decimal

    @classmethod
    def from_payload(cls, item: Any) -> AttendanceSummary:
        if not isinstance(item, dict) or not item.get("employee_id"):
            raise AttendanceFetchError(f"malformed summary entry: {item!r}")
        return cls(
            employee_id=str(item["employee_id"]),
            regular_hours=_non_negative(item.get("regular_hours", 0), "regular_hours"),
            overtime_hours=_non_negative(item.get("overtime_hours", 0), "overtime_hours"),
            late_minutes=_non_negative(item.get("late_minutes", 0), "late_minutes"),
        )


class AttendanceSource(Protocol):
    """Supplies attendance summaries for a date range."""

    async def fetch_summary(
        self, period_start: date, period_end: date
    ) -> list[AttendanceSummary]: ...


class HttpAttendanceSource:
    """Attendance service client.

    Calls GET {base_url}/attendance/summary?start=YYYY-MM-DD&end=YYYY-MM-DD
    and expects a JSON list of summary objects, or an object with a
    "summaries" list.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        tenant_id: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.tenant_id = tenant_id
        self._client = client

    async def fetch_summary(
        self, period_start: date, period_end: date
    ) -> list[AttendanceSummary]:
        url = f"{self.base_url}/attendance/summary"
        params = {"start": period_start.isoformat(), "end": period_end.isoformat()}
        headers = {"X-Tenant-ID": self.tenant_id} if self.tenant_id else {}

        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise AttendanceFetchError("request timed out") from e
        except httpx.HTTPStatusError as e:
            raise AttendanceFetchError(f"service returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise AttendanceFetchError(f"network error: {e}") from e
        except ValueError as e:
            raise AttendanceFetchError("response is not valid JSON") from e

        if isinstance(payload, dict):
            payload = payload.get("summaries")
        if not isinstance(payload, list):
            raise AttendanceFetchError("expected a list of summaries")
        return [AttendanceSummary.from_payload(item) for item in payload]


class StaticAttendanceSource:
    """Attendance source backed by a fixed list of summaries."""

    def __init__(self, summaries: Iterable[AttendanceSummary] = ()):
        self.summaries = list(summaries)

    async def fetch_summary(
        self, period_start: date, period_end: date
    ) -> list[AttendanceSummary]:
        return list(self.summaries)


class AttendanceReconciler:
    """Merges an attendance summary into a draft's rows.

    Regular and overtime hours and late minutes are overwritten, held to
    the manual edit bounds. Absence hours are derived against the row's
    original (pro-rated) regular hours, so manual edits never compound with
    a sync. The calculator charges only absence hours that are not already
    missing from regular hours.
    """

    def __init__(self, source: AttendanceSource):
        self.source = source

    async def sync(self, manager: DraftRowManager) -> int:
        """Fetch and apply attendance. Returns the number of rows updated."""
        revision = manager.revision
        period = manager.period

        summaries = await self.source.fetch_summary(period.period_start, period.period_end)

        if manager.revision != revision or manager.period != period:
            raise StaleAttendanceError(revision, manager.revision)

        by_employee = {s.employee_id: s for s in summaries}
        touched = 0
        for row in manager.rows:
            summary = by_employee.get(row.employee_id)
            if summary is None:
                continue
            regular = _clamp(
                row.employee_id,
                "regular_hours",
                LineItemBuilder.round_hours(summary.regular_hours),
            )
            values = replace(
                row.current,
                regular_hours=regular,
                overtime_hours=_clamp(
                    row.employee_id,
                    "overtime_hours",
                    LineItemBuilder.round_hours(summary.overtime_hours),
                ),
                late_arrival_minutes=_clamp(
                    row.employee_id,
                    "late_arrival_minutes",
                    summary.late_minutes.quantize(Decimal("1"), rounding=ROUND_HALF_UP),
                ),
                absence_hours=max(ZERO, row.original.regular_hours - regular),
            )
            manager.apply_values(row.employee_id, values)
            touched += 1

        logger.info(
            "Applied attendance to %d of %d rows for %s to %s",
            touched,
            len(manager.rows),
            period.period_start,
            period.period_end,
        )
        return touched


def _clamp(employee_id: str, field: str, value: Decimal) -> Decimal:
    """Hold a synced value to the same bounds as a manual edit."""
    low, high = EDIT_BOUNDS[field]
    if value > high:
        logger.warning(
            "Attendance %s=%s for employee %s capped at %s", field, value, employee_id, high
        )
    return min(max(value, low), high)


def _non_negative(value: Any, key: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise AttendanceFetchError(f"{key} is not a number: {value!r}")
    if not number.is_finite() or number < 0:
        raise AttendanceFetchError(f"{key} must be a non-negative number, got {value!r}")
    return number
