"""
obligation_engines.business_days -- Weekend-only business day arithmetic.

Responsibility:
    Answer "is this a business day", step to the nearest business day in a
    direction, and locate the first, last, Nth and last-minus-N business
    day of a month.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Leaf dependency of the
    pattern resolver and the date adjustment policy.

Invariants enforced:
    - A business day is Monday to Friday.  There is no holiday table.
    - ``nearest`` is the identity on business days; ``advance`` always
      moves at least one calendar day.

Failure modes:
    - ValueError from ``nth_business_day`` / ``last_business_day_minus``
      when N is out of range (n < 1, days < 0).
"""

from __future__ import annotations

from datetime import date, timedelta

from obligation_kernel.domain.values import Direction, YearMonth


class BusinessDayCalendar:
    """
    Weekend-only business day calendar.

    Contract:
        Stateless; safe to share between threads and engines.

    Non-goals:
        - Public or custom holidays.
    """

    def is_business_day(self, day: date) -> bool:
        return day.weekday() < 5

    def advance(self, day: date, direction: Direction) -> date:
        """Move one calendar day in ``direction``, repeating until a business day."""
        step = timedelta(days=direction.step)
        current = day + step
        while not self.is_business_day(current):
            current += step
        return current

    def nearest(self, day: date, direction: Direction) -> date:
        """``day`` itself if it is a business day, else ``advance``."""
        if self.is_business_day(day):
            return day
        return self.advance(day, direction)

    def first_business_day(self, year: int, month: int) -> date:
        return self.nearest(YearMonth(year, month).first_day, Direction.FORWARD)

    def last_business_day(self, year: int, month: int) -> date:
        return self.nearest(YearMonth(year, month).last_day, Direction.BACKWARD)

    def nth_business_day(self, n: int, year: int, month: int) -> date | None:
        """
        The Nth business day counted from day 1 inclusive.

        Returns None when the month has fewer than ``n`` business days.
        """
        if n < 1:
            raise ValueError(f"n must be >= 1, got {n}")
        ym = YearMonth(year, month)
        count = 0
        for day_number in range(1, ym.days_in_month + 1):
            day = date(year, month, day_number)
            if self.is_business_day(day):
                count += 1
                if count == n:
                    return day
        return None

    def last_business_day_minus(self, days: int, year: int, month: int) -> date:
        """Step back ``days`` business days from the last business day."""
        if days < 0:
            raise ValueError(f"days must be >= 0, got {days}")
        current = self.last_business_day(year, month)
        for _ in range(days):
            current = self.advance(current, Direction.BACKWARD)
        return current


WEEKEND_CALENDAR = BusinessDayCalendar()
