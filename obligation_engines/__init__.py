"""
Module: obligation_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    ``obligation_services``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ``obligation_kernel`` (domain, exceptions, logging) and
    sibling engine modules.  MUST NOT import ``obligation_services`` or
    ``obligation_config``.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Reference dates are explicit parameters.
    - Decimal-only arithmetic for amounts and scores.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine entry points are traced via ``@traced_engine`` (see
    ``obligation_engines.tracer``), emitting OBLIGATION_ENGINE_TRACE records
    with engine name, version, input fingerprint and duration.
"""

from obligation_engines.adjustment import adjust_date
from obligation_engines.business_days import WEEKEND_CALENDAR, BusinessDayCalendar
from obligation_engines.day_patterns import resolve_pattern
from obligation_engines.detection import RecurrenceDetector
from obligation_engines.matching import CandidateScore, ReconciliationScorer
from obligation_engines.savings import SavingsAccumulator
from obligation_engines.schedule import ScheduleGenerator, horizon_end, status_for
from obligation_engines.synchronization import (
    OccurrenceUpdate,
    PlannedOccurrence,
    SynchronizationEngine,
    SynchronizationPlan,
)

__all__ = [
    "BusinessDayCalendar",
    "CandidateScore",
    "OccurrenceUpdate",
    "PlannedOccurrence",
    "ReconciliationScorer",
    "RecurrenceDetector",
    "SavingsAccumulator",
    "ScheduleGenerator",
    "SynchronizationEngine",
    "SynchronizationPlan",
    "WEEKEND_CALENDAR",
    "adjust_date",
    "horizon_end",
    "resolve_pattern",
    "status_for",
]
