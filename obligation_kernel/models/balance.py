"""
Module: obligation_kernel.models.balance
Responsibility: ORM persistence for the per-definition savings balance.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one balance per definition (uq_balance_definition).
    - total_saved >= 0 and total_paid >= 0 (check constraints).
    - The net balance is derived (saved - paid), never stored.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from obligation_kernel.db.base import TrackedBase, UUIDString


class SavingsBalance(TrackedBase):
    """Running saved/paid totals toward one definition."""

    __tablename__ = "savings_balances"

    __table_args__ = (
        UniqueConstraint("definition_id", name="uq_balance_definition"),
        CheckConstraint("total_saved >= 0", name="ck_balance_saved_non_negative"),
        CheckConstraint("total_paid >= 0", name="ck_balance_paid_non_negative"),
    )

    definition_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("obligation_definitions.id", ondelete="CASCADE"),
        nullable=False,
    )

    total_saved: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    total_paid: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    # Month of the last applied contribution; None until the first tick
    last_updated_year: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    last_updated_month: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<SavingsBalance saved={self.total_saved} paid={self.total_paid}>"

    @property
    def balance(self) -> Decimal:
        return self.total_saved - self.total_paid
