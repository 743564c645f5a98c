"""
obligation_engines.schedule -- Schedule generator for recurrence definitions.

Responsibility:
    Produce the ordered sequence of projected occurrences (date, expected
    amount, status) for one definition over a bounded horizon.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Uses the pattern resolver, the adjustment policy and the business day
    calendar.  Receives the reference date explicitly; never reads a clock.

Invariants enforced:
    - Month stepping is done on the linear month index
      (base month + k * interval), so clamping a 31st to a 28th never
      drifts later steps.
    - Every generated entry carries the definition's current amount.
    - Status is month-granular: ``saving`` when the scheduled month is at
      or before ``reference month + lead_time_months``, else ``planned``.
    - Projections are sorted by date and bounded by ``max_steps``.

Re-anchoring:
    When completed occurrences are supplied, the first ``len(completions)``
    entries are placeholders carrying the completed occurrences' own date
    and status (the synchronization engine pairs them positionally).
    Projection resumes at the interval step after the one holding the
    completion with the latest scheduled date.  Each later nominal date
    (pattern, or anchor day clamped) is shifted by that completion's
    ``actual_date - scheduled_date`` before the adjustment policy runs, so
    an on-time payment leaves the schedule untouched and paying early or
    late shifts the rest of it by the realized offset.  Shifted
    projections on or before the actual date are dropped.

Failure modes:
    - InvalidHorizonError for a negative horizon.
    - InvalidRecurrenceError for a definition with interval <= 0.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import date, timedelta

from obligation_engines.adjustment import adjust_date
from obligation_engines.business_days import WEEKEND_CALENDAR, BusinessDayCalendar
from obligation_engines.day_patterns import resolve_pattern
from obligation_engines.tracer import traced_engine
from obligation_kernel.domain.dtos import (
    DefinitionSnapshot,
    OccurrenceSnapshot,
    ScheduleEntry,
)
from obligation_kernel.domain.values import OccurrenceStatus, YearMonth
from obligation_kernel.exceptions import InvalidHorizonError, InvalidRecurrenceError
from obligation_kernel.logging_config import get_logger

logger = get_logger("engines.schedule")

DEFAULT_MAX_STEPS = 600


def status_for(
    scheduled_date: date,
    reference_date: date,
    lead_time_months: int,
) -> OccurrenceStatus:
    """Lifecycle status of a not-yet-completed occurrence on ``scheduled_date``."""
    saving_until = YearMonth.of(reference_date).plus_months(lead_time_months)
    if YearMonth.of(scheduled_date) <= saving_until:
        return OccurrenceStatus.SAVING
    return OccurrenceStatus.PLANNED


def horizon_end(reference_date: date, horizon_months: int) -> date:
    """Last date a projection may fall on."""
    return YearMonth.of(reference_date).plus_months(horizon_months).first_day


class ScheduleGenerator:
    """
    Generates projected occurrences for a definition.

    Contract:
        Pure -- identical inputs always produce identical output.

    Guarantees:
        - Completion placeholders come first, then projections in
          ascending date order.
        - No entry after the horizon end or the definition's end date.
        - A pattern that resolves to None skips that step only.

    Non-goals:
        - Does not compare against persisted occurrences; see
          ``obligation_engines.synchronization``.
    """

    def __init__(
        self,
        calendar: BusinessDayCalendar = WEEKEND_CALENDAR,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        self._calendar = calendar
        self._max_steps = max_steps

    @traced_engine(
        "schedule",
        "1.0",
        fingerprint_fields=("definition", "reference_date", "horizon_months", "completions"),
    )
    def generate(
        self,
        definition: DefinitionSnapshot,
        reference_date: date,
        horizon_months: int,
        completions: Sequence[OccurrenceSnapshot] = (),
    ) -> tuple[ScheduleEntry, ...]:
        """
        Project occurrences of ``definition`` up to the horizon.

        Args:
            definition: The definition to project.
            reference_date: "Today" for status and horizon purposes.
            horizon_months: Months after the reference month to project.
            completions: Completed occurrences of the definition.

        Returns:
            Completion placeholders, then projections sorted by date.
        """
        if horizon_months < 0:
            raise InvalidHorizonError(horizon_months)
        if definition.interval_months <= 0:
            raise InvalidRecurrenceError(str(definition.id), definition.interval_months)

        t0 = time.monotonic()
        last_date = horizon_end(reference_date, horizon_months)
        if definition.end_date is not None and definition.end_date < last_date:
            last_date = definition.end_date

        completed = sorted(
            (c for c in completions if c.is_completed),
            key=lambda c: (c.scheduled_date, str(c.id)),
        )
        entries: list[ScheduleEntry] = [
            ScheduleEntry(c.scheduled_date, c.expected_amount, c.status)
            for c in completed
        ]

        first_step, offset = self._resume_point(definition, completed)
        not_before = completed[-1].actual_date if completed else None

        skipped = 0
        for step in range(first_step, first_step + self._max_steps):
            month = self._step_month(definition, step)
            raw = self._nominal_date(definition, month)

            if raw is None:
                if month.first_day + offset > last_date:
                    break
                skipped += 1
                continue

            scheduled = adjust_date(raw + offset, definition.adjustment_policy, self._calendar)
            if scheduled > last_date:
                break
            if not_before is not None and scheduled <= not_before:
                skipped += 1
                continue
            entries.append(
                ScheduleEntry(
                    scheduled_date=scheduled,
                    expected_amount=definition.amount,
                    status=status_for(
                        scheduled, reference_date, definition.lead_time_months
                    ),
                )
            )
        else:
            logger.warning(
                "schedule_step_cap_reached",
                extra={
                    "definition_id": str(definition.id),
                    "max_steps": self._max_steps,
                },
            )

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info(
            "schedule_generated",
            extra={
                "definition_id": str(definition.id),
                "reference_date": reference_date.isoformat(),
                "horizon_months": horizon_months,
                "completed_count": len(completed),
                "entry_count": len(entries),
                "skipped_steps": skipped,
                "re_anchored": bool(completed),
                "offset_days": offset.days,
                "duration_ms": duration_ms,
            },
        )
        return tuple(entries)

    def _step_month(self, definition: DefinitionSnapshot, step: int) -> YearMonth:
        return YearMonth.of(definition.anchor_date).plus_months(
            step * definition.interval_months
        )

    def _nominal_date(self, definition: DefinitionSnapshot, month: YearMonth) -> date | None:
        """Unshifted, unadjusted date of the step falling in ``month``."""
        if definition.pattern is not None:
            return resolve_pattern(definition.pattern, month.year, month.month, self._calendar)
        return month.clamp_day(definition.anchor_date.day)

    def _resume_point(
        self,
        definition: DefinitionSnapshot,
        completed: Sequence[OccurrenceSnapshot],
    ) -> tuple[int, timedelta]:
        """
        First step to project and the offset to carry forward.

        The latest completion belongs to the step around its scheduled month
        whose adjusted nominal date lies closest to its scheduled date (an
        adjustment may push a date across a month boundary).  Projection
        resumes at the following step, shifted by
        ``actual_date - scheduled_date`` of that completion.
        """
        if not completed:
            return 0, timedelta(0)
        latest = completed[-1]
        months = YearMonth.of(definition.anchor_date).months_until(
            YearMonth.of(latest.scheduled_date)
        )
        approx = months // definition.interval_months

        best_step, best_distance = approx, None
        for step in (approx - 1, approx, approx + 1):
            if step < 0:
                continue
            raw = self._nominal_date(definition, self._step_month(definition, step))
            if raw is None:
                continue
            expected = adjust_date(raw, definition.adjustment_policy, self._calendar)
            distance = abs((expected - latest.scheduled_date).days)
            if best_distance is None or distance < best_distance:
                best_step, best_distance = step, distance

        return max(0, best_step + 1), latest.actual_date - latest.scheduled_date
