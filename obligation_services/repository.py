"""
ObligationRepository -- SQLAlchemy persistence collaborator.

Responsibility:
    Load definitions, occurrences and balances by identifier, apply a
    synchronization plan, and upsert a balance snapshot.

Architecture position:
    Services -- imperative shell.  Works inside the caller's session and
    only ever flushes; ``ObligationService`` owns commit and rollback via
    ``session_scope()`` so a plan and its balance change commit together.

Invariants enforced:
    - Occurrence rows are created, updated and deleted only through
      ``apply_plan``.
    - ``require_definition(..., for_update=True)`` reads the definition
      row ``SELECT ... FOR UPDATE`` (no-op on SQLite).

Failure modes:
    - DefinitionNotFoundError / OccurrenceNotFoundError on missing ids.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from obligation_engines.synchronization import SynchronizationPlan
from obligation_kernel.domain.dtos import (
    BalanceSnapshot,
    DefinitionInput,
    OccurrenceSnapshot,
)
from obligation_kernel.domain.patterns import pattern_to_dict
from obligation_kernel.exceptions import (
    DefinitionNotFoundError,
    OccurrenceNotFoundError,
)
from obligation_kernel.logging_config import get_logger
from obligation_kernel.models.balance import SavingsBalance
from obligation_kernel.models.category import Category
from obligation_kernel.models.definition import ObligationDefinition
from obligation_kernel.models.occurrence import ObligationOccurrence

logger = get_logger("services.repository")


class ObligationRepository:
    """
    Flush-only persistence for definitions, occurrences and balances.

    Non-goals:
        - Does NOT commit or roll back.
        - Does NOT validate input; the service does that first.
    """

    def __init__(self, session: Session):
        self.session = session

    # =========================================================================
    # Definitions
    # =========================================================================

    def get_definition(
        self, definition_id: UUID, for_update: bool = False
    ) -> ObligationDefinition | None:
        stmt = select(ObligationDefinition).where(ObligationDefinition.id == definition_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def require_definition(
        self, definition_id: UUID, for_update: bool = False
    ) -> ObligationDefinition:
        definition = self.get_definition(definition_id, for_update=for_update)
        if definition is None:
            raise DefinitionNotFoundError(str(definition_id))
        return definition

    def list_definitions(self) -> list[ObligationDefinition]:
        return list(
            self.session.execute(
                select(ObligationDefinition).order_by(ObligationDefinition.name)
            ).scalars()
        )

    def add_definition(self, data: DefinitionInput) -> ObligationDefinition:
        definition = ObligationDefinition()
        self.apply_input(definition, data)
        self.session.add(definition)
        self.session.flush()
        return definition

    def apply_input(self, definition: ObligationDefinition, data: DefinitionInput) -> None:
        """Copy validated input fields onto the row."""
        definition.name = data.name.strip()
        definition.notes = data.notes
        definition.amount = data.amount
        definition.interval_months = data.interval_months
        definition.anchor_date = data.anchor_date
        definition.end_date = data.end_date
        definition.lead_time_months = data.lead_time_months
        definition.day_pattern = pattern_to_dict(data.pattern)
        definition.adjustment_policy = data.adjustment_policy
        definition.saving_strategy = data.saving_strategy
        definition.custom_monthly_amount = data.custom_monthly_amount
        definition.category_id = data.category_id
        definition.match_keywords = list(data.match_keywords)

    def delete_definition(self, definition: ObligationDefinition) -> None:
        self.session.delete(definition)
        self.session.flush()

    def category_exists(self, category_id: UUID) -> bool:
        return self.session.get(Category, category_id) is not None

    # =========================================================================
    # Occurrences
    # =========================================================================

    def list_occurrences(self, definition_id: UUID) -> list[ObligationOccurrence]:
        return list(
            self.session.execute(
                select(ObligationOccurrence)
                .where(ObligationOccurrence.definition_id == definition_id)
                .order_by(ObligationOccurrence.scheduled_date, ObligationOccurrence.id)
            ).scalars()
        )

    def occurrence_snapshots(self, definition_id: UUID) -> tuple[OccurrenceSnapshot, ...]:
        return tuple(
            OccurrenceSnapshot.from_model(o) for o in self.list_occurrences(definition_id)
        )

    def get_occurrence(self, occurrence_id: UUID) -> ObligationOccurrence | None:
        return self.session.get(ObligationOccurrence, occurrence_id)

    def require_occurrence(self, occurrence_id: UUID) -> ObligationOccurrence:
        occurrence = self.get_occurrence(occurrence_id)
        if occurrence is None:
            raise OccurrenceNotFoundError(str(occurrence_id))
        return occurrence

    def linked_transactions(self, transaction_ids: Iterable[UUID]) -> dict[UUID, UUID]:
        """Map transaction id -> id of the occurrence it is linked to."""
        ids = list(transaction_ids)
        if not ids:
            return {}
        rows = self.session.execute(
            select(ObligationOccurrence.transaction_id, ObligationOccurrence.id).where(
                ObligationOccurrence.transaction_id.in_(ids)
            )
        ).all()
        return {tx_id: occ_id for tx_id, occ_id in rows}

    def apply_plan(self, plan: SynchronizationPlan) -> None:
        """Persist creates, in-place updates and deletes of one plan."""
        for update in plan.updated:
            occurrence = self.require_occurrence(update.occurrence_id)
            occurrence.scheduled_date = update.scheduled_date
            occurrence.expected_amount = update.expected_amount
            occurrence.status = update.status

        for removed in plan.removed:
            self.session.delete(self.require_occurrence(removed.id))

        for entry in plan.created:
            self.session.add(
                ObligationOccurrence(
                    definition_id=plan.definition_id,
                    scheduled_date=entry.scheduled_date,
                    expected_amount=entry.expected_amount,
                    status=entry.status,
                )
            )

        self.session.flush()
        logger.debug(
            "synchronization_plan_applied",
            extra={
                "definition_id": str(plan.definition_id),
                "created_count": len(plan.created),
                "updated_count": len(plan.updated),
                "removed_count": len(plan.removed),
            },
        )

    # =========================================================================
    # Balances
    # =========================================================================

    def get_balance(self, definition_id: UUID) -> SavingsBalance | None:
        return self.session.execute(
            select(SavingsBalance).where(SavingsBalance.definition_id == definition_id)
        ).scalar_one_or_none()

    def balance_snapshot(self, definition_id: UUID) -> BalanceSnapshot | None:
        row = self.get_balance(definition_id)
        return BalanceSnapshot.from_model(row) if row is not None else None

    def save_balance(self, snapshot: BalanceSnapshot) -> SavingsBalance:
        """Insert or update the balance row from ``snapshot``."""
        row = self.get_balance(snapshot.definition_id)
        if row is None:
            row = SavingsBalance(definition_id=snapshot.definition_id)
            self.session.add(row)
        row.total_saved = snapshot.total_saved
        row.total_paid = snapshot.total_paid
        if snapshot.last_updated is not None:
            row.last_updated_year = snapshot.last_updated.year
            row.last_updated_month = snapshot.last_updated.month
        else:
            row.last_updated_year = None
            row.last_updated_month = None
        self.session.flush()
        return row
