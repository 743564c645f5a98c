"""
Module: obligation_kernel.models.definition
Responsibility: ORM persistence for recurrence definitions, the templates from
    which occurrences are generated.
Architecture position: Kernel > Models.  May import from db/base.py and sibling
    models only.

Invariants enforced:
    - Deleting a definition cascades to its occurrences and savings balance
      (ORM ``delete-orphan`` plus ``ON DELETE CASCADE`` on the child FKs).
    - Field invariants (amount > 0, interval > 0, ...) are enforced by
      ``obligation_kernel.domain.validation`` before any row is written.

Failure modes:
    - IntegrityError if category_id references a missing category (checked
      earlier by the service as ReferenceNotFoundError).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from obligation_kernel.db.base import TrackedBase, UUIDString
from obligation_kernel.domain.values import DateAdjustmentPolicy, SavingStrategy

if TYPE_CHECKING:
    from obligation_kernel.models.balance import SavingsBalance
    from obligation_kernel.models.occurrence import ObligationOccurrence


class ObligationDefinition(TrackedBase):
    """
    A recurring obligation template.

    Contract:
        The definition owns its occurrence collection and its savings
        balance.  Occurrences refer back only by ``definition_id``.

    Non-goals:
        - Does not generate occurrences itself; the schedule generator and
          synchronization engine do.
    """

    __tablename__ = "obligation_definitions"

    __table_args__ = (
        Index("idx_definition_category", "category_id"),
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    notes: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    # Expected amount per occurrence (positive magnitude)
    amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    interval_months: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # First occurrence; the schedule anchor
    anchor_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # No occurrence is generated after this date
    end_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    lead_time_months: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Serialized DayOfMonthPattern (see domain.patterns.pattern_to_dict)
    day_pattern: Mapped[dict[str, Any] | None] = mapped_column(
        JSON,
        nullable=True,
    )

    adjustment_policy: Mapped[DateAdjustmentPolicy] = mapped_column(
        String(30),
        nullable=False,
        default=DateAdjustmentPolicy.NONE,
    )

    saving_strategy: Mapped[SavingStrategy] = mapped_column(
        String(30),
        nullable=False,
        default=SavingStrategy.EVENLY_DISTRIBUTED,
    )

    custom_monthly_amount: Mapped[Decimal | None] = mapped_column(
        nullable=True,
    )

    category_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Extra labels the reconciliation scorer treats as a match
    match_keywords: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    occurrences: Mapped[list[ObligationOccurrence]] = relationship(
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ObligationOccurrence.scheduled_date",
    )

    balance: Mapped[SavingsBalance | None] = relationship(
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<ObligationDefinition {self.name} every {self.interval_months}m>"
