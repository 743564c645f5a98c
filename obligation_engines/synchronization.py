"""
obligation_engines.synchronization -- Diff a fresh schedule against persisted occurrences.

Responsibility:
    Given the occurrences currently persisted for a definition and a freshly
    generated schedule, decide which occurrences to create, update in place
    and delete.  The result is a plan; persistence applies it atomically.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``ScheduleGenerator`` output; consumed by the repository.

Invariants enforced:
    - Completed occurrences are never updated or deleted.  Sorted by date
      they consume the fresh schedule's leading entries; colliding fresh
      entries are discarded.
    - Remaining open occurrences pair positionally (ascending date) with the
      remaining fresh entries.  Pairs that differ in date, amount or status
      become updates, surplus fresh entries become creates and surplus open
      occurrences become deletes.
    - Idempotent: re-running with a plan's resulting occurrences and the
      same fresh schedule yields an empty plan.

Failure modes:
    - ValueError if an existing occurrence belongs to another definition.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from obligation_engines.tracer import traced_engine
from obligation_kernel.domain.dtos import (
    OccurrenceSnapshot,
    ScheduleEntry,
    SynchronizationSummary,
)
from obligation_kernel.domain.values import OccurrenceStatus
from obligation_kernel.logging_config import get_logger

logger = get_logger("engines.synchronization")


@dataclass(frozen=True)
class OccurrenceUpdate:
    """In-place change to an open occurrence."""

    occurrence_id: UUID
    scheduled_date: date
    expected_amount: Decimal
    status: OccurrenceStatus
    previous: OccurrenceSnapshot

    @property
    def date_shift_days(self) -> int:
        return (self.scheduled_date - self.previous.scheduled_date).days


@dataclass(frozen=True)
class PlannedOccurrence:
    """One member of the occurrence set after the plan is applied.

    ``occurrence_id`` is None for occurrences the plan creates.
    """

    occurrence_id: UUID | None
    scheduled_date: date
    expected_amount: Decimal
    status: OccurrenceStatus


@dataclass(frozen=True)
class SynchronizationPlan:
    """Create / update / delete decisions for one definition."""

    definition_id: UUID
    created: tuple[ScheduleEntry, ...]
    updated: tuple[OccurrenceUpdate, ...]
    removed: tuple[OccurrenceSnapshot, ...]
    locked: tuple[OccurrenceSnapshot, ...]
    occurrences: tuple[PlannedOccurrence, ...]

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.removed)

    def summary(self, synced_at: datetime) -> SynchronizationSummary:
        return SynchronizationSummary(
            synced_at=synced_at,
            created_count=len(self.created),
            updated_count=len(self.updated),
            removed_count=len(self.removed),
        )


def _sort_key(occurrence: OccurrenceSnapshot) -> tuple[date, str]:
    return (occurrence.scheduled_date, str(occurrence.id))


class SynchronizationEngine:
    """
    Computes the diff between persisted occurrences and a fresh schedule.

    Contract:
        Pure -- the plan depends only on the arguments.

    Non-goals:
        - Does not generate the schedule; pass ``ScheduleGenerator`` output
          (including completion placeholders) as ``fresh``.
    """

    @traced_engine(
        "synchronization", "1.0", fingerprint_fields=("definition_id", "existing", "fresh")
    )
    def synchronize(
        self,
        definition_id: UUID,
        existing: Sequence[OccurrenceSnapshot],
        fresh: Sequence[ScheduleEntry],
    ) -> SynchronizationPlan:
        foreign = [o for o in existing if o.definition_id != definition_id]
        if foreign:
            raise ValueError(
                f"{len(foreign)} occurrence(s) do not belong to definition {definition_id}"
            )

        completed = sorted((o for o in existing if o.is_completed), key=_sort_key)
        open_occurrences = sorted(
            (o for o in existing if not o.is_completed), key=_sort_key
        )

        # Completed occurrences win their ordinal position in the schedule.
        remaining = list(fresh[len(completed):])
        discarded = min(len(completed), len(fresh))

        resulting: list[PlannedOccurrence] = [
            PlannedOccurrence(o.id, o.scheduled_date, o.expected_amount, o.status)
            for o in completed
        ]
        updated: list[OccurrenceUpdate] = []

        for occurrence, entry in zip(open_occurrences, remaining):
            if (
                occurrence.scheduled_date != entry.scheduled_date
                or occurrence.expected_amount != entry.expected_amount
                or occurrence.status != entry.status
            ):
                updated.append(
                    OccurrenceUpdate(
                        occurrence_id=occurrence.id,
                        scheduled_date=entry.scheduled_date,
                        expected_amount=entry.expected_amount,
                        status=entry.status,
                        previous=occurrence,
                    )
                )
            resulting.append(
                PlannedOccurrence(
                    occurrence.id, entry.scheduled_date, entry.expected_amount, entry.status
                )
            )

        created = tuple(remaining[len(open_occurrences):])
        removed = tuple(open_occurrences[len(remaining):])
        resulting.extend(
            PlannedOccurrence(None, e.scheduled_date, e.expected_amount, e.status)
            for e in created
        )
        resulting.sort(key=lambda p: p.scheduled_date)

        plan = SynchronizationPlan(
            definition_id=definition_id,
            created=created,
            updated=tuple(updated),
            removed=removed,
            locked=tuple(completed),
            occurrences=tuple(resulting),
        )

        logger.info(
            "synchronization_planned",
            extra={
                "definition_id": str(definition_id),
                "existing_count": len(existing),
                "fresh_count": len(fresh),
                "locked_count": len(completed),
                "discarded_count": discarded,
                "created_count": len(plan.created),
                "updated_count": len(plan.updated),
                "removed_count": len(plan.removed),
            },
        )
        return plan
