"""
Module: obligation_kernel.models.ledger_transaction
Responsibility: ORM mapping of the household ledger as seen by the engine.
    Rows are written by the ledger owner (import, manual entry); this
    package only reads them.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - amount is signed: negative for expenses, positive for income.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from obligation_kernel.db.base import TrackedBase


class LedgerTransaction(TrackedBase):
    """A single ledger line: date, signed amount and free-text label."""

    __tablename__ = "ledger_transactions"

    __table_args__ = (
        Index("idx_ledger_transaction_date", "transaction_date"),
    )

    transaction_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # Signed amount (expense < 0)
    amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    label: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        default="",
    )

    def __repr__(self) -> str:
        return f"<LedgerTransaction {self.transaction_date} {self.amount} {self.label!r}>"

    @property
    def is_expense(self) -> bool:
        return self.amount < 0
