"""Tests for hourly rate, period count and pro-rated hours."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from payroll_draft.calculators.rate_resolver import RateResolver
from payroll_draft.calculators.types import PayFrequency


@pytest.fixture
def resolver(config) -> RateResolver:
    return RateResolver(config.working_hours)


class TestHourlyRate:
    """Hourly rate derivation from monthly salary."""

    def test_monthly_standard_hours_from_weekly(self, resolver):
        """44h weeks give 44 x 52 / 12 hours a month."""
        assert resolver.monthly_standard_hours().quantize(Decimal("0.01")) == Decimal("190.67")

    def test_hourly_rate_rounded_to_four_places(self, resolver):
        """$500 a month over 190.67 hours is about $2.62 an hour."""
        rate = resolver.hourly_rate(Decimal("500"))
        assert rate == Decimal("2.6224")
        assert rate.quantize(Decimal("0.01")) == Decimal("2.62")

    def test_zero_weekly_hours_rejected(self, config):
        hours = replace(config.working_hours, standard_weekly_hours=Decimal("0"))
        with pytest.raises(ValueError):
            RateResolver(hours).hourly_rate(Decimal("500"))


class TestPeriodsInMonth:
    """Number of pay periods in the pay date's month."""

    def test_monthly_and_semimonthly_are_fixed(self, resolver):
        assert resolver.periods_in_month(PayFrequency.MONTHLY, date(2024, 3, 29)) == 1
        assert resolver.periods_in_month(PayFrequency.SEMIMONTHLY, None) == 2

    def test_weekly_five_friday_month(self, resolver):
        """March 2024 has Fridays on the 1st, 8th, 15th, 22nd and 29th."""
        assert resolver.periods_in_month(PayFrequency.WEEKLY, date(2024, 3, 29)) == 5
        assert resolver.periods_in_month(PayFrequency.WEEKLY, date(2024, 3, 8)) == 5

    def test_weekly_four_friday_month(self, resolver):
        assert resolver.periods_in_month(PayFrequency.WEEKLY, date(2024, 1, 26)) == 4

    def test_biweekly_counts_cadence_dates(self, resolver):
        """Biweekly from 2024-03-29 lands on the 1st, 15th and 29th."""
        assert resolver.periods_in_month(PayFrequency.BIWEEKLY, date(2024, 3, 29)) == 3
        assert resolver.periods_in_month(PayFrequency.BIWEEKLY, date(2024, 2, 9)) == 2

    def test_nominal_without_pay_date(self, resolver):
        assert resolver.periods_in_month(PayFrequency.WEEKLY, None) == Decimal("4.33")
        assert resolver.periods_in_month(PayFrequency.BIWEEKLY, None) == Decimal("2.17")


class TestDefaultHours:
    """Default and pro-rated regular hours."""

    def test_monthly_default_hours(self, resolver):
        assert resolver.default_period_hours(Decimal("1")) == Decimal("190.67")

    def test_weekly_default_hours(self, resolver):
        assert resolver.default_period_hours(Decimal("4")) == Decimal("47.67")

    def test_non_positive_periods_rejected(self, resolver):
        with pytest.raises(ValueError):
            resolver.default_period_hours(Decimal("0"))

    def test_hired_before_period_gets_full_hours(self):
        hours = RateResolver.prorated_hours(
            date(2023, 5, 1), date(2024, 3, 1), date(2024, 3, 31), Decimal("190.67")
        )
        assert hours == Decimal("190.67")

    def test_hired_on_period_start_gets_full_hours(self):
        hours = RateResolver.prorated_hours(
            date(2024, 3, 1), date(2024, 3, 1), date(2024, 3, 31), Decimal("190.67")
        )
        assert hours == Decimal("190.67")

    def test_hired_mid_period_is_prorated(self):
        """Hired on the 17th of a 31-day period: 15 of 31 days."""
        hours = RateResolver.prorated_hours(
            date(2024, 3, 17), date(2024, 3, 1), date(2024, 3, 31), Decimal("190.67")
        )
        assert hours == Decimal("92.26")

    def test_hired_on_period_end_gets_one_day(self):
        hours = RateResolver.prorated_hours(
            date(2024, 3, 31), date(2024, 3, 1), date(2024, 3, 31), Decimal("31")
        )
        assert hours == Decimal("1.00")

    def test_hired_after_period_gets_zero(self):
        hours = RateResolver.prorated_hours(
            date(2024, 4, 1), date(2024, 3, 1), date(2024, 3, 31), Decimal("190.67")
        )
        assert hours == Decimal("0")

    def test_no_hire_date_gets_full_hours(self):
        hours = RateResolver.prorated_hours(
            None, date(2024, 3, 1), date(2024, 3, 31), Decimal("190.67")
        )
        assert hours == Decimal("190.67")


class TestBuildPeriod:
    def test_weekly_period_resolves_count_from_pay_date(self, resolver):
        period = resolver.build_period(
            PayFrequency.WEEKLY, date(2024, 3, 23), date(2024, 3, 29), pay_date=date(2024, 3, 29)
        )
        assert period.periods_in_month == 5
        assert period.days_in_period == 7
        assert period.as_of_date == date(2024, 3, 29)

    def test_end_before_start_rejected(self, resolver):
        with pytest.raises(ValueError):
            resolver.build_period(PayFrequency.MONTHLY, date(2024, 3, 31), date(2024, 3, 1))
