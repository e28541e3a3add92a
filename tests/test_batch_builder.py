"""Tests for batch totals and record construction."""

from decimal import Decimal

import pytest

from payroll_draft.services.batch_builder import (
    DeductionCategory,
    EarningCategory,
    aggregate_totals,
    build_batch,
    build_payroll_record,
    normalize_deduction_category,
    normalize_earning_category,
)
from payroll_draft.services.draft_manager import DraftRowManager


class TestCategoryMapping:
    """Calculator line types onto persisted categories."""

    @pytest.mark.parametrize(
        "line_type,expected",
        [
            ("regular", EarningCategory.REGULAR),
            ("overtime", EarningCategory.OVERTIME),
            ("bonus", EarningCategory.BONUS),
            ("annual_supplement", EarningCategory.ANNUAL_SUPPLEMENT),
            ("per_diem", EarningCategory.ALLOWANCE),
            ("transport_allowance", EarningCategory.ALLOWANCE),
            ("food_allowance", EarningCategory.ALLOWANCE),
            ("night_shift", EarningCategory.OTHER),
            ("sick_pay", EarningCategory.OTHER),
            ("mystery", EarningCategory.OTHER),
        ],
    )
    def test_earning_categories(self, line_type, expected):
        assert normalize_earning_category(line_type) == expected

    @pytest.mark.parametrize(
        "line_type,expected",
        [
            ("income_tax", DeductionCategory.INCOME_TAX),
            ("social_insurance_employee", DeductionCategory.SOCIAL_SECURITY),
            ("loan_repayment", DeductionCategory.LOAN),
            ("advance_repayment", DeductionCategory.ADVANCE),
            ("court_order", DeductionCategory.GARNISHMENT),
            ("absence", DeductionCategory.ATTENDANCE),
            ("late_arrival", DeductionCategory.ATTENDANCE),
            ("union_dues", DeductionCategory.OTHER),
        ],
    )
    def test_deduction_categories(self, line_type, expected):
        assert normalize_deduction_category(line_type) == expected


class TestAggregateTotals:
    """Totals over included, calculated rows."""

    def test_totals_sum_included_rows(self, manager):
        snapshot = manager.snapshot()
        totals = aggregate_totals(snapshot)

        rows = [row.calculation for row in snapshot.rows]
        assert totals.employee_count == 2
        assert totals.gross_pay == sum(r.gross_pay for r in rows)
        assert totals.net_pay == sum(r.net_pay for r in rows)
        assert totals.net_pay == totals.gross_pay - totals.total_deductions
        assert totals.total_employer_cost == totals.gross_pay + totals.social_insurance_employer

    def test_exclusion_removes_row_from_totals(self, manager):
        manager.exclude("emp-2")
        totals = aggregate_totals(manager.snapshot())
        assert totals.employee_count == 1
        assert totals.gross_pay == Decimal("500.01")

    def test_failed_rows_not_counted(self, manager):
        # Absence beyond gross pushes net pay below zero
        manager.edit("emp-2", "absence_hours", 400)
        assert manager.row("emp-2").calculation is None
        assert aggregate_totals(manager.snapshot()).employee_count == 1

    def test_empty_draft(self, config, march_period):
        manager = DraftRowManager(config, engine_version="test-1.0")
        manager.seed([], march_period)
        totals = aggregate_totals(manager.snapshot())
        assert totals.employee_count == 0
        assert totals.gross_pay == Decimal("0")


class TestBuildBatch:
    """Header and records for persistence."""

    def test_header(self, config, manager):
        manager.exclude("emp-2")
        batch = build_batch(manager.snapshot(), config, "payroll-admin")

        header = batch.header
        assert header.status == "draft"
        assert header.employee_count == 1
        assert header.created_by == "payroll-admin"
        assert header.total_gross_pay == Decimal("500.01")
        assert header.total_employer_taxes == header.total_employer_cost - header.total_gross_pay
        assert header.draft_revision == manager.revision
        assert len(batch.records) == 1

    def test_record_lines_and_categories(self, config, manager):
        manager.edit("emp-1", "per_diem", 20)
        manager.edit("emp-1", "overtime_hours", 4)
        snapshot = manager.snapshot()

        record = build_payroll_record(snapshot.row("emp-1"), snapshot, config)

        categories = [e.category for e in record.earnings]
        assert categories == [
            EarningCategory.REGULAR,
            EarningCategory.OVERTIME,
            EarningCategory.ALLOWANCE,
        ]
        assert record.hourly_rate == Decimal("2.6224")
        assert record.overtime_rate == Decimal("1.5")
        assert record.total_gross_pay == sum(e.amount for e in record.earnings)
        assert record.employer_taxes[0].amount == record.total_employer_taxes
        assert record.employee_name == "Ana Soares"

    def test_record_requires_calculation(self, config, manager):
        manager.edit("emp-2", "absence_hours", 400)
        snapshot = manager.snapshot()
        with pytest.raises(ValueError):
            build_payroll_record(snapshot.row("emp-2"), snapshot, config)

    def test_to_dict_is_json_ready(self, config, manager):
        data = build_batch(manager.snapshot(), config, "payroll-admin").to_dict()

        assert data["header"]["pay_frequency"] == "monthly"
        assert data["header"]["period_start"] == "2024-03-01"
        assert data["header"]["total_gross_pay"] == "1300.02"
        record = data["records"][0]
        assert record["earnings"][0]["category"] == "regular"
        assert record["deductions"][0]["category"] == "income_tax"
        assert isinstance(record["deductions"], list)
