"""Date adjustment policy applier."""

from __future__ import annotations

from datetime import date
from typing import assert_never

from obligation_engines.business_days import WEEKEND_CALENDAR, BusinessDayCalendar
from obligation_kernel.domain.values import DateAdjustmentPolicy, Direction


def adjust_date(
    day: date,
    policy: DateAdjustmentPolicy,
    calendar: BusinessDayCalendar = WEEKEND_CALENDAR,
) -> date:
    """Apply ``policy`` to a resolved date; a business day is never moved."""
    match policy:
        case DateAdjustmentPolicy.NONE:
            return day
        case DateAdjustmentPolicy.NEXT_BUSINESS_DAY:
            return calendar.nearest(day, Direction.FORWARD)
        case DateAdjustmentPolicy.PREVIOUS_BUSINESS_DAY:
            return calendar.nearest(day, Direction.BACKWARD)
        case _:
            assert_never(policy)
