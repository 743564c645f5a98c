"""
Pure domain layer.

This module contains value types, pattern variants, DTOs and validation
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (except the Clock abstraction itself)
- I/O

All domain objects are immutable and deterministic.
"""

from obligation_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from obligation_kernel.domain.dtos import (
    BalanceSnapshot,
    CompletionResult,
    DefinitionInput,
    DefinitionSnapshot,
    DefinitionSuggestion,
    DifferenceKind,
    OccurrenceSnapshot,
    PaymentDifference,
    ScheduleEntry,
    SynchronizationSummary,
    TransactionSnapshot,
)
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
    pattern_from_dict,
    pattern_to_dict,
)
from obligation_kernel.domain.values import (
    DateAdjustmentPolicy,
    Direction,
    OccurrenceStatus,
    SavingStrategy,
    Weekday,
    YearMonth,
    quantize_amount,
    to_decimal,
)

__all__ = [
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # DTOs
    "BalanceSnapshot",
    "CompletionResult",
    "DefinitionInput",
    "DefinitionSnapshot",
    "DefinitionSuggestion",
    "DifferenceKind",
    "OccurrenceSnapshot",
    "PaymentDifference",
    "ScheduleEntry",
    "SynchronizationSummary",
    "TransactionSnapshot",
    # Patterns
    "DayOfMonthPattern",
    "EndOfMonth",
    "EndOfMonthMinus",
    "FirstBusinessDay",
    "FixedDay",
    "LastBusinessDay",
    "LastBusinessDayMinus",
    "LastWeekday",
    "NthBusinessDay",
    "NthWeekday",
    "pattern_from_dict",
    "pattern_to_dict",
    # Values
    "DateAdjustmentPolicy",
    "Direction",
    "OccurrenceStatus",
    "SavingStrategy",
    "Weekday",
    "YearMonth",
    "quantize_amount",
    "to_decimal",
]
