"""
Module: obligation_kernel.models.occurrence
Responsibility: ORM persistence for individual occurrences of a definition.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - status == completed  <=>  actual_date and actual_amount are both set.
      Maintained by ``complete()`` / ``revert()``; the synchronization
      engine never touches completed rows.
    - Occurrences are created, updated and deleted only by the
      synchronization engine's plan.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from obligation_kernel.db.base import TrackedBase, UUIDString
from obligation_kernel.domain.values import OccurrenceStatus


class ObligationOccurrence(TrackedBase):
    """One projected or completed instance of a definition."""

    __tablename__ = "obligation_occurrences"

    __table_args__ = (
        Index("idx_occurrence_definition_date", "definition_id", "scheduled_date"),
        Index("idx_occurrence_transaction", "transaction_id"),
    )

    definition_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("obligation_definitions.id", ondelete="CASCADE"),
        nullable=False,
    )

    scheduled_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # Snapshot of the definition amount at generation time
    expected_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    status: Mapped[OccurrenceStatus] = mapped_column(
        String(20),
        nullable=False,
        default=OccurrenceStatus.PLANNED,
    )

    actual_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    actual_amount: Mapped[Decimal | None] = mapped_column(
        nullable=True,
    )

    transaction_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("ledger_transactions.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<ObligationOccurrence {self.scheduled_date} {self.status}>"

    @property
    def is_completed(self) -> bool:
        return self.status == OccurrenceStatus.COMPLETED

    def complete(
        self,
        actual_date: date,
        actual_amount: Decimal,
        transaction_id: UUID | None,
    ) -> None:
        """Set the three completion fields together."""
        self.status = OccurrenceStatus.COMPLETED
        self.actual_date = actual_date
        self.actual_amount = actual_amount
        self.transaction_id = transaction_id

    def revert(self, status: OccurrenceStatus) -> None:
        """Clear the completion fields together and set a non-completed status."""
        if status == OccurrenceStatus.COMPLETED:
            raise ValueError("revert() requires a non-completed status")
        self.status = status
        self.actual_date = None
        self.actual_amount = None
        self.transaction_id = None
