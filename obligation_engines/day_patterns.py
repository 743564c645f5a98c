"""
obligation_engines.day_patterns -- DayOfMonthPattern resolver.

Responsibility:
    Turn an abstract day-of-month rule into a concrete date in a given
    month, or None when the month has no such day.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on ``obligation_engines.business_days`` for business-day
    variants.

Invariants enforced:
    - ``FixedDay`` never returns None; the day is clamped to the month.
    - ``EndOfMonthMinus`` and ``LastBusinessDayMinus`` may return a date in
      the previous month; this is not clamped.
    - ``NthWeekday`` and ``NthBusinessDay`` return None when the month does
      not contain the requested ordinal.
    - Every variant is handled in one exhaustive ``match``.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import assert_never

from obligation_engines.business_days import WEEKEND_CALENDAR, BusinessDayCalendar
from obligation_kernel.domain.patterns import (
    DayOfMonthPattern,
    EndOfMonth,
    EndOfMonthMinus,
    FirstBusinessDay,
    FixedDay,
    LastBusinessDay,
    LastBusinessDayMinus,
    LastWeekday,
    NthBusinessDay,
    NthWeekday,
)
from obligation_kernel.domain.values import YearMonth


def resolve_pattern(
    pattern: DayOfMonthPattern,
    year: int,
    month: int,
    calendar: BusinessDayCalendar = WEEKEND_CALENDAR,
) -> date | None:
    ym = YearMonth(year, month)
    match pattern:
        case FixedDay(day=day):
            return ym.clamp_day(day)
        case EndOfMonth():
            return ym.last_day
        case EndOfMonthMinus(days=days):
            return ym.last_day - timedelta(days=days)
        case NthWeekday(week=week, weekday=weekday):
            first = ym.first_day
            offset = (weekday - first.weekday()) % 7
            candidate = first + timedelta(days=offset + 7 * (week - 1))
            if candidate.month != month:
                return None
            return candidate
        case LastWeekday(weekday=weekday):
            last = ym.last_day
            return last - timedelta(days=(last.weekday() - weekday) % 7)
        case FirstBusinessDay():
            return calendar.first_business_day(year, month)
        case LastBusinessDay():
            return calendar.last_business_day(year, month)
        case NthBusinessDay(n=n):
            return calendar.nth_business_day(n, year, month)
        case LastBusinessDayMinus(days=days):
            return calendar.last_business_day_minus(days, year, month)
        case _:
            assert_never(pattern)
