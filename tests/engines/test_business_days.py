"""
Tests for the business day calendar and the date adjustment policy.

Covers:
- Weekend detection
- Stepping forward/backward over weekends
- First/last/Nth/last-minus-N business day of a month
- NONE / NEXT / PREVIOUS adjustment policies
"""

from datetime import date

import pytest

from obligation_engines.adjustment import adjust_date
from obligation_engines.business_days import WEEKEND_CALENDAR, BusinessDayCalendar
from obligation_kernel.domain.values import DateAdjustmentPolicy, Direction


@pytest.fixture
def calendar() -> BusinessDayCalendar:
    return BusinessDayCalendar()


class TestIsBusinessDay:
    """Monday to Friday are business days; there is no holiday table."""

    @pytest.mark.parametrize(
        "day,expected",
        [
            (date(2025, 3, 10), True),   # Monday
            (date(2025, 3, 14), True),   # Friday
            (date(2025, 3, 15), False),  # Saturday
            (date(2025, 3, 16), False),  # Sunday
            (date(2025, 12, 25), True),  # Christmas is still a business day
        ],
    )
    def test_weekday_rule(self, calendar, day, expected):
        assert calendar.is_business_day(day) is expected


class TestAdvance:
    """advance() always moves at least one day."""

    def test_forward_over_weekend(self, calendar):
        """Friday forward lands on Monday."""
        assert calendar.advance(date(2025, 3, 14), Direction.FORWARD) == date(2025, 3, 17)

    def test_backward_over_weekend(self, calendar):
        """Monday backward lands on Friday."""
        assert calendar.advance(date(2025, 3, 17), Direction.BACKWARD) == date(2025, 3, 14)

    def test_forward_midweek(self, calendar):
        assert calendar.advance(date(2025, 3, 11), Direction.FORWARD) == date(2025, 3, 12)

    def test_forward_across_year_boundary(self, calendar):
        """Wednesday 2025-12-31 forward is Thursday 2026-01-01."""
        assert calendar.advance(date(2025, 12, 31), Direction.FORWARD) == date(2026, 1, 1)

    def test_nearest_is_identity_on_business_day(self, calendar):
        assert calendar.nearest(date(2025, 3, 12), Direction.BACKWARD) == date(2025, 3, 12)


class TestMonthBoundaries:
    """First and last business days skip both Saturday and Sunday."""

    def test_february_2025_starts_on_saturday(self, calendar):
        assert calendar.first_business_day(2025, 2) == date(2025, 2, 3)

    def test_august_2025_ends_on_sunday(self, calendar):
        assert calendar.last_business_day(2025, 8) == date(2025, 8, 29)

    def test_business_day_on_boundary_is_kept(self, calendar):
        """March 2025 ends on a Monday."""
        assert calendar.last_business_day(2025, 3) == date(2025, 3, 31)


class TestNthBusinessDay:

    def test_counts_from_first_business_day(self, calendar):
        """Day 1 is a Saturday, so the 3rd business day is Wednesday the 5th."""
        assert calendar.nth_business_day(3, 2025, 2) == date(2025, 2, 5)

    def test_day_one_counts_when_business_day(self, calendar):
        """2025-10-01 is a Wednesday."""
        assert calendar.nth_business_day(1, 2025, 10) == date(2025, 10, 1)

    def test_beyond_month_returns_none(self, calendar):
        """February 2025 has 20 business days."""
        assert calendar.nth_business_day(20, 2025, 2) == date(2025, 2, 28)
        assert calendar.nth_business_day(21, 2025, 2) is None

    def test_zero_rejected(self, calendar):
        with pytest.raises(ValueError):
            calendar.nth_business_day(0, 2025, 2)


class TestLastBusinessDayMinus:

    def test_zero_is_last_business_day(self, calendar):
        assert calendar.last_business_day_minus(0, 2025, 8) == date(2025, 8, 29)

    def test_steps_back_over_weekend(self, calendar):
        """Last business day of March 2025 is Monday 31st; one back is Friday 28th."""
        assert calendar.last_business_day_minus(1, 2025, 3) == date(2025, 3, 28)

    def test_negative_rejected(self, calendar):
        with pytest.raises(ValueError):
            calendar.last_business_day_minus(-1, 2025, 3)


class TestAdjustDate:
    """Adjustment policies never move a business day."""

    SATURDAY = date(2025, 3, 15)
    SUNDAY = date(2025, 3, 16)

    def test_none_keeps_weekend(self):
        assert adjust_date(self.SATURDAY, DateAdjustmentPolicy.NONE) == self.SATURDAY

    def test_next_business_day(self):
        assert adjust_date(self.SATURDAY, DateAdjustmentPolicy.NEXT_BUSINESS_DAY) == date(2025, 3, 17)
        assert adjust_date(self.SUNDAY, DateAdjustmentPolicy.NEXT_BUSINESS_DAY) == date(2025, 3, 17)

    def test_previous_business_day(self):
        assert adjust_date(self.SATURDAY, DateAdjustmentPolicy.PREVIOUS_BUSINESS_DAY) == date(2025, 3, 14)
        assert adjust_date(self.SUNDAY, DateAdjustmentPolicy.PREVIOUS_BUSINESS_DAY) == date(2025, 3, 14)

    @pytest.mark.parametrize("policy", list(DateAdjustmentPolicy))
    def test_business_day_untouched(self, policy):
        wednesday = date(2025, 3, 12)
        assert adjust_date(wednesday, policy, WEEKEND_CALENDAR) == wednesday

    def test_next_business_day_can_cross_month(self):
        """Saturday 2025-05-31 moves to Monday 2025-06-02."""
        assert adjust_date(date(2025, 5, 31), DateAdjustmentPolicy.NEXT_BUSINESS_DAY) == date(2025, 6, 2)
