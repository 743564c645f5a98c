"""
obligation_services.ledger -- Read-only access to the household ledger.

Responsibility:
    Supply ledger transactions (date, signed amount, label) to the
    reconciliation scorer and the recurrence detector.

Architecture position:
    Services -- I/O boundary.  ``LedgerReader`` is the collaborator
    interface; ``SqlLedgerReader`` reads the ``ledger_transactions`` table.
    Nothing in this package writes ledger rows.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from obligation_kernel.domain.dtos import TransactionSnapshot
from obligation_kernel.models.ledger_transaction import LedgerTransaction


class LedgerReader(Protocol):
    """Read-only ledger collaborator."""

    def list_transactions(self, start: date, end: date) -> list[TransactionSnapshot]:
        """Transactions dated within [start, end], oldest first."""
        ...

    def get_transaction(self, transaction_id: UUID) -> TransactionSnapshot | None:
        ...


class SqlLedgerReader:
    """``LedgerReader`` over the ``ledger_transactions`` table."""

    def __init__(self, session: Session):
        self.session = session

    def list_transactions(self, start: date, end: date) -> list[TransactionSnapshot]:
        if end < start:
            return []
        rows = self.session.execute(
            select(LedgerTransaction)
            .where(
                LedgerTransaction.transaction_date >= start,
                LedgerTransaction.transaction_date <= end,
            )
            .order_by(LedgerTransaction.transaction_date, LedgerTransaction.id)
        ).scalars()
        return [TransactionSnapshot.from_model(row) for row in rows]

    def get_transaction(self, transaction_id: UUID) -> TransactionSnapshot | None:
        row = self.session.get(LedgerTransaction, transaction_id)
        return TransactionSnapshot.from_model(row) if row is not None else None
