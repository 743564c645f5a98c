"""
Values -- Immutable domain value types and enumerations.

Responsibility:
    Provides the primitive vocabulary shared by every layer: occurrence
    lifecycle status, saving strategy, date adjustment policy, weekday and
    direction enums, the ``YearMonth`` calendar value, and Decimal amount
    helpers.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by patterns, DTOs, engines, models and services.

Invariants enforced:
    - YearMonth.month is always in 1..12.
    - Amount arithmetic is Decimal-only; floats are rejected by
      ``to_decimal``.

Failure modes:
    - ValueError on YearMonth construction with an invalid month.
    - TypeError when ``to_decimal`` receives a float.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum, IntEnum
from typing import Any


class OccurrenceStatus(str, Enum):
    """Lifecycle status of a single occurrence."""

    PLANNED = "planned"
    SAVING = "saving"  # inside the lead-time window
    COMPLETED = "completed"


class SavingStrategy(str, Enum):
    """How the monthly contribution toward a definition is computed."""

    EVENLY_DISTRIBUTED = "evenly_distributed"
    CUSTOM_MONTHLY = "custom_monthly"
    DISABLED = "disabled"


class DateAdjustmentPolicy(str, Enum):
    """Post-processing applied to a resolved occurrence date."""

    NONE = "none"
    NEXT_BUSINESS_DAY = "next_business_day"
    PREVIOUS_BUSINESS_DAY = "previous_business_day"


class Direction(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"

    @property
    def step(self) -> int:
        return 1 if self is Direction.FORWARD else -1


class Weekday(IntEnum):
    """ISO weekday numbering as returned by ``date.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def is_weekend(self) -> bool:
        return self >= Weekday.SATURDAY


@dataclass(frozen=True, slots=True, order=True)
class YearMonth:
    """
    A calendar month, ordered chronologically.

    Contract:
        Month arithmetic is done on the linear ``index`` (year * 12 + month - 1)
        so repeated stepping never drifts.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be in 1..12, got {self.month}")

    @classmethod
    def of(cls, value: date) -> YearMonth:
        return cls(value.year, value.month)

    @classmethod
    def from_index(cls, index: int) -> YearMonth:
        year, month0 = divmod(index, 12)
        return cls(year, month0 + 1)

    @property
    def index(self) -> int:
        return self.year * 12 + self.month - 1

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, self.days_in_month)

    def plus_months(self, months: int) -> YearMonth:
        return YearMonth.from_index(self.index + months)

    def months_until(self, other: YearMonth) -> int:
        """Signed number of months from self to ``other``."""
        return other.index - self.index

    def clamp_day(self, day: int) -> date:
        """Date in this month with ``day`` clamped to ``[1, days_in_month]``."""
        return date(self.year, self.month, max(1, min(day, self.days_in_month)))

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def to_decimal(value: Any) -> Decimal:
    """Coerce int/str/Decimal to Decimal. Floats are rejected."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("Amounts must not be floats; pass Decimal or str")
    return Decimal(str(value))


def quantize_amount(value: Decimal, scale: int = 2) -> Decimal:
    """Round ``value`` half-up to ``scale`` decimal places."""
    return value.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP)
