"""Tests for attendance fetching and reconciliation."""

from datetime import date
from decimal import Decimal

import httpx
import pytest

from payroll_draft.calculators.types import PayFrequency
from payroll_draft.services.attendance import (
    AttendanceFetchError,
    AttendanceReconciler,
    AttendanceSummary,
    HttpAttendanceSource,
    StaleAttendanceError,
    StaticAttendanceSource,
)
from payroll_draft.services.batch_builder import build_payroll_records
from payroll_draft.services.state_machine import RowStatus
from payroll_draft.services.validator import PayrollValidator

SERVICE_URL = "http://attendance.test/api/"


def summary(employee_id: str, regular: str, overtime: str = "0", late: str = "0"):
    return AttendanceSummary(
        employee_id=employee_id,
        regular_hours=Decimal(regular),
        overtime_hours=Decimal(overtime),
        late_minutes=Decimal(late),
    )


class PeriodChangingSource:
    """Source that changes the draft period while the fetch is in flight."""

    def __init__(self, manager):
        self.manager = manager

    async def fetch_summary(self, period_start, period_end):
        self.manager.update_period(pay_frequency=PayFrequency.WEEKLY)
        return [summary("emp-1", "160")]


class TestReconciler:
    """Merging summaries into rows."""

    async def test_sync_overwrites_hours_and_derives_absence(self, manager):
        source = StaticAttendanceSource([summary("emp-1", "160", "5", "7.4")])

        updated = await AttendanceReconciler(source).sync(manager)

        row = manager.row("emp-1")
        assert updated == 1
        assert row.current.regular_hours == Decimal("160.00")
        assert row.current.overtime_hours == Decimal("5.00")
        assert row.current.late_arrival_minutes == Decimal("7")
        assert row.current.absence_hours == Decimal("30.67")
        assert row.is_edited is True
        assert row.status == RowStatus.RECALCULATED
        assert row.calculation.earning("regular").amount == Decimal("419.58")
        assert row.calculation.deduction("absence") is None

    async def test_short_month_is_charged_once(self, manager):
        """150 of 190.67 scheduled hours: paid for 150, no second absence charge."""
        await AttendanceReconciler(StaticAttendanceSource([summary("emp-1", "150")])).sync(manager)

        row = manager.row("emp-1")
        assert row.current.absence_hours == Decimal("40.67")
        assert row.calculation.gross_pay == Decimal("393.36")
        assert row.calculation.absence_deduction == 0
        assert row.calculation.net_pay == Decimal("377.63")

    async def test_half_month_stays_in_batch(self, config, manager):
        await AttendanceReconciler(StaticAttendanceSource([summary("emp-1", "90")])).sync(manager)

        row = manager.row("emp-1")
        assert row.calculation.gross_pay == Decimal("236.02")
        assert row.calculation.net_pay == Decimal("226.58")

        snapshot = manager.snapshot()
        assert PayrollValidator(config).validate(snapshot) == []
        records = build_payroll_records(snapshot, config)
        assert [r.employee_id for r in records] == ["emp-1", "emp-2"]

    async def test_synced_values_held_to_edit_bounds(self, manager):
        source = StaticAttendanceSource([summary("emp-1", "1000", "900", "50000")])
        await AttendanceReconciler(source).sync(manager)

        current = manager.row("emp-1").current
        assert current.regular_hours == Decimal("744")
        assert current.overtime_hours == Decimal("744")
        assert current.late_arrival_minutes == Decimal("44640")
        assert current.absence_hours == 0

    async def test_rows_without_summary_untouched(self, manager):
        other = manager.row("emp-2")
        await AttendanceReconciler(StaticAttendanceSource([summary("emp-1", "100")])).sync(manager)
        assert manager.row("emp-2") is other

    async def test_unknown_employees_ignored(self, manager):
        source = StaticAttendanceSource([summary("emp-404", "100")])
        assert await AttendanceReconciler(source).sync(manager) == 0

    async def test_overtime_beyond_expected_gives_no_absence(self, manager):
        source = StaticAttendanceSource([summary("emp-1", "200")])
        await AttendanceReconciler(source).sync(manager)
        assert manager.row("emp-1").current.absence_hours == 0

    async def test_repeated_sync_does_not_compound(self, manager):
        source = StaticAttendanceSource([summary("emp-1", "150")])
        reconciler = AttendanceReconciler(source)
        await reconciler.sync(manager)
        first = manager.row("emp-1").current
        await reconciler.sync(manager)
        assert manager.row("emp-1").current == first

    async def test_period_change_during_fetch_is_stale(self, manager):
        with pytest.raises(StaleAttendanceError) as exc_info:
            await AttendanceReconciler(PeriodChangingSource(manager)).sync(manager)

        assert exc_info.value.current_revision == exc_info.value.fetched_revision + 1
        assert manager.row("emp-1").current.regular_hours == Decimal("190.67")


class TestHttpAttendanceSource:
    """HTTP client behavior against a mocked transport."""

    def _source(self, handler) -> HttpAttendanceSource:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpAttendanceSource(SERVICE_URL, tenant_id="tenant-1", client=client)

    async def test_request_shape_and_list_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["tenant"] = request.headers.get("X-Tenant-ID")
            return httpx.Response(
                200,
                json=[{"employee_id": "emp-1", "regular_hours": 150.5, "late_minutes": "12"}],
            )

        result = await self._source(handler).fetch_summary(date(2024, 3, 1), date(2024, 3, 31))

        assert seen["path"] == "/api/attendance/summary"
        assert seen["params"] == {"start": "2024-03-01", "end": "2024-03-31"}
        assert seen["tenant"] == "tenant-1"
        assert result == [summary("emp-1", "150.5", "0", "12")]

    async def test_wrapped_payload(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"summaries": [{"employee_id": "emp-2"}]})

        result = await self._source(handler).fetch_summary(date(2024, 3, 1), date(2024, 3, 31))
        assert result == [summary("emp-2", "0")]

    async def test_server_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        with pytest.raises(AttendanceFetchError) as exc_info:
            await self._source(handler).fetch_summary(date(2024, 3, 1), date(2024, 3, 31))
        assert "503" in exc_info.value.reason

    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(AttendanceFetchError) as exc_info:
            await self._source(handler).fetch_summary(date(2024, 3, 1), date(2024, 3, 31))
        assert exc_info.value.reason == "request timed out"

    async def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>oops</html>")

        with pytest.raises(AttendanceFetchError):
            await self._source(handler).fetch_summary(date(2024, 3, 1), date(2024, 3, 31))

    @pytest.mark.parametrize(
        "payload",
        [
            {"unexpected": True},
            [{"regular_hours": 10}],
            [{"employee_id": "emp-1", "regular_hours": -4}],
            [{"employee_id": "emp-1", "overtime_hours": "many"}],
        ],
    )
    async def test_malformed_payload(self, payload):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        with pytest.raises(AttendanceFetchError):
            await self._source(handler).fetch_summary(date(2024, 3, 1), date(2024, 3, 31))

    async def test_fetch_error_leaves_draft_untouched(self, manager):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        before = manager.snapshot()
        with pytest.raises(AttendanceFetchError):
            await AttendanceReconciler(self._source(handler)).sync(manager)
        assert manager.snapshot() == before
