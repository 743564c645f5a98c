"""
Patterns -- The closed set of day-of-month rules.

Responsibility:
    Declares each ``DayOfMonthPattern`` variant as a frozen dataclass and
    the ``DayOfMonthPattern`` union over them.  Resolution lives in
    ``obligation_engines.day_patterns``; this module only describes the
    rules and converts them to and from their persisted dict form.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Variant parameters are range-checked at construction.
    - ``pattern_from_dict(pattern_to_dict(p)) == p`` for every variant.

Failure modes:
    - ValueError on out-of-range parameters or an unknown ``kind``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union

from obligation_kernel.domain.values import Weekday

_ORDINALS = {1: "1st", 2: "2nd", 3: "3rd"}


def _ordinal(n: int) -> str:
    return _ORDINALS.get(n, f"{n}th")


@dataclass(frozen=True, slots=True)
class FixedDay:
    """Fixed day number, clamped to the month length."""

    kind: ClassVar[str] = "fixed"
    day: int

    def __post_init__(self) -> None:
        if not 1 <= self.day <= 31:
            raise ValueError(f"Fixed day must be in 1..31, got {self.day}")

    def describe(self) -> str:
        return f"day {self.day}"


@dataclass(frozen=True, slots=True)
class EndOfMonth:
    kind: ClassVar[str] = "end_of_month"

    def describe(self) -> str:
        return "end of month"


@dataclass(frozen=True, slots=True)
class EndOfMonthMinus:
    """End of month minus N calendar days; may land in the previous month."""

    kind: ClassVar[str] = "end_of_month_minus"
    days: int

    def __post_init__(self) -> None:
        if self.days < 0:
            raise ValueError(f"Days must be >= 0, got {self.days}")

    def describe(self) -> str:
        return f"{self.days} day(s) before end of month"


@dataclass(frozen=True, slots=True)
class NthWeekday:
    kind: ClassVar[str] = "nth_weekday"
    week: int
    weekday: Weekday

    def __post_init__(self) -> None:
        if not 1 <= self.week <= 5:
            raise ValueError(f"Week must be in 1..5, got {self.week}")
        object.__setattr__(self, "weekday", Weekday(self.weekday))

    def describe(self) -> str:
        return f"{_ordinal(self.week)} {self.weekday.name.title()}"


@dataclass(frozen=True, slots=True)
class LastWeekday:
    kind: ClassVar[str] = "last_weekday"
    weekday: Weekday

    def __post_init__(self) -> None:
        object.__setattr__(self, "weekday", Weekday(self.weekday))

    def describe(self) -> str:
        return f"last {self.weekday.name.title()}"


@dataclass(frozen=True, slots=True)
class FirstBusinessDay:
    kind: ClassVar[str] = "first_business_day"

    def describe(self) -> str:
        return "first business day"


@dataclass(frozen=True, slots=True)
class LastBusinessDay:
    kind: ClassVar[str] = "last_business_day"

    def describe(self) -> str:
        return "last business day"


@dataclass(frozen=True, slots=True)
class NthBusinessDay:
    """Nth business day counted from day 1 inclusive."""

    kind: ClassVar[str] = "nth_business_day"
    n: int

    def __post_init__(self) -> None:
        if self.n < 1:
            raise ValueError(f"N must be >= 1, got {self.n}")

    def describe(self) -> str:
        return f"{_ordinal(self.n)} business day"


@dataclass(frozen=True, slots=True)
class LastBusinessDayMinus:
    """Last business day stepped back N business days."""

    kind: ClassVar[str] = "last_business_day_minus"
    days: int

    def __post_init__(self) -> None:
        if self.days < 0:
            raise ValueError(f"Days must be >= 0, got {self.days}")

    def describe(self) -> str:
        return f"{self.days} business day(s) before last business day"


DayOfMonthPattern = Union[
    FixedDay,
    EndOfMonth,
    EndOfMonthMinus,
    NthWeekday,
    LastWeekday,
    FirstBusinessDay,
    LastBusinessDay,
    NthBusinessDay,
    LastBusinessDayMinus,
]

_VARIANTS: dict[str, type] = {
    cls.kind: cls
    for cls in (
        FixedDay,
        EndOfMonth,
        EndOfMonthMinus,
        NthWeekday,
        LastWeekday,
        FirstBusinessDay,
        LastBusinessDay,
        NthBusinessDay,
        LastBusinessDayMinus,
    )
}


def pattern_to_dict(pattern: DayOfMonthPattern | None) -> dict[str, Any] | None:
    """Serialize a pattern for the JSON column on the definition row."""
    if pattern is None:
        return None
    data: dict[str, Any] = {"kind": pattern.kind}
    match pattern:
        case FixedDay(day=day):
            data["day"] = day
        case EndOfMonthMinus(days=days) | LastBusinessDayMinus(days=days):
            data["days"] = days
        case NthWeekday(week=week, weekday=weekday):
            data["week"] = week
            data["weekday"] = int(weekday)
        case LastWeekday(weekday=weekday):
            data["weekday"] = int(weekday)
        case NthBusinessDay(n=n):
            data["n"] = n
        case EndOfMonth() | FirstBusinessDay() | LastBusinessDay():
            pass
    return data


def pattern_from_dict(data: dict[str, Any] | None) -> DayOfMonthPattern | None:
    if not data:
        return None
    params = dict(data)
    kind = params.pop("kind", None)
    cls = _VARIANTS.get(kind)
    if cls is None:
        raise ValueError(f"Unknown day-of-month pattern kind: {kind!r}")
    return cls(**params)
