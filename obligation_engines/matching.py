"""
obligation_engines.matching -- Reconciliation scorer for occurrences and ledger transactions.

Responsibility:
    Score ledger transactions as candidates for completing an occurrence,
    rank them best first, and select the candidate list shown to the user.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The service loads transactions through the ledger reader and passes
    them in; the reference date is explicit.

Invariants enforced:
    - Each term is in [0, 1]; the weighted total is clamped to [0, 1].
    - Ranking is total (deterministic): score descending, then smaller
      absolute date difference, then smaller amount difference, then
      transaction date and id.
    - Only expense transactions (negative signed amount) are candidates;
      their magnitude is compared to the expected amount.
    - Decimal arithmetic throughout; no float intermediates.

Failure modes:
    - ValueError on a non-positive window.

Usage:
    scorer = ReconciliationScorer(window_days=60)
    ranked = scorer.rank(occurrence, transactions, definition_name="Car tax")
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from obligation_engines.tracer import traced_engine
from obligation_kernel.domain.dtos import OccurrenceSnapshot, TransactionSnapshot
from obligation_kernel.logging_config import get_logger

logger = get_logger("engines.matching")

ZERO = Decimal("0")
ONE = Decimal("1")


@dataclass(frozen=True)
class CandidateScore:
    """Score breakdown for one transaction against one occurrence."""

    transaction: TransactionSnapshot
    total: Decimal
    amount_score: Decimal
    date_score: Decimal
    label_score: Decimal
    day_difference: int
    amount_difference: Decimal

    @property
    def label_matched(self) -> bool:
        return self.label_score > 0

    def sort_key(self) -> tuple:
        return (
            -self.total,
            self.day_difference,
            self.amount_difference,
            self.transaction.transaction_date,
            str(self.transaction.id),
        )


def _clamp(value: Decimal) -> Decimal:
    return max(ZERO, min(ONE, value))


def label_matches(label: str, definition_name: str, keywords: Sequence[str]) -> bool:
    """Case-insensitive containment of the definition name or any keyword."""
    haystack = label.casefold()
    needles = [definition_name, *keywords]
    return any(n.strip() and n.strip().casefold() in haystack for n in needles)


class ReconciliationScorer:
    """
    Scores and ranks ledger transactions for an occurrence.

    Contract:
        total = amount_weight * amount term + date_weight * date term
                + label_weight * label term

        amount term = 1 - min(1, | |tx amount| - expected | / expected)
        date term   = 1 - min(1, |tx date - scheduled date| / window_days)
        label term  = 1 if the label contains the definition name or a
                      match keyword, else 0

    Non-goals:
        - Does not link anything; completion is a service operation.
    """

    def __init__(
        self,
        window_days: int = 60,
        amount_weight: Decimal = Decimal("0.5"),
        date_weight: Decimal = Decimal("0.3"),
        label_weight: Decimal = Decimal("0.2"),
    ) -> None:
        if window_days <= 0:
            raise ValueError(f"window_days must be > 0, got {window_days}")
        self._window_days = window_days
        self._amount_weight = amount_weight
        self._date_weight = date_weight
        self._label_weight = label_weight

    @property
    def window_days(self) -> int:
        return self._window_days

    def score(
        self,
        occurrence: OccurrenceSnapshot,
        transaction: TransactionSnapshot,
        definition_name: str = "",
        keywords: Sequence[str] = (),
    ) -> CandidateScore:
        expected = occurrence.expected_amount
        amount_difference = abs(abs(transaction.amount) - expected)
        if expected > 0:
            amount_score = ONE - min(ONE, amount_difference / expected)
        else:
            amount_score = ZERO

        day_difference = abs((transaction.transaction_date - occurrence.scheduled_date).days)
        date_score = ONE - min(ONE, Decimal(day_difference) / Decimal(self._window_days))

        label_score = ONE if label_matches(transaction.label, definition_name, keywords) else ZERO

        total = _clamp(
            self._amount_weight * amount_score
            + self._date_weight * date_score
            + self._label_weight * label_score
        )
        return CandidateScore(
            transaction=transaction,
            total=total,
            amount_score=amount_score,
            date_score=date_score,
            label_score=label_score,
            day_difference=day_difference,
            amount_difference=amount_difference,
        )

    def rank(
        self,
        occurrence: OccurrenceSnapshot,
        candidates: Sequence[TransactionSnapshot],
        definition_name: str = "",
        keywords: Sequence[str] = (),
    ) -> list[CandidateScore]:
        """Score every candidate and return them best first."""
        scored = [self.score(occurrence, tx, definition_name, keywords) for tx in candidates]
        return sorted(scored, key=CandidateScore.sort_key)

    def search_window(self, occurrence: OccurrenceSnapshot, reference_date: date) -> tuple[date, date]:
        """Date range searched for candidates; the end never passes the reference date."""
        window = timedelta(days=self._window_days)
        start = occurrence.scheduled_date - window
        end = min(occurrence.scheduled_date + window, reference_date)
        return start, end

    @traced_engine(
        "matching",
        "1.0",
        fingerprint_fields=("occurrence", "transactions", "reference_date"),
    )
    def find_candidates(
        self,
        occurrence: OccurrenceSnapshot,
        transactions: Sequence[TransactionSnapshot],
        reference_date: date,
        definition_name: str = "",
        keywords: Sequence[str] = (),
        linked_transactions: Mapping[UUID, UUID] | None = None,
        min_score: Decimal = Decimal("0.2"),
        amount_threshold: Decimal = Decimal("5000"),
        limit: int = 12,
    ) -> list[CandidateScore]:
        """
        Filter, rank and truncate candidate transactions.

        Args:
            occurrence: The occurrence to reconcile.
            transactions: Ledger transactions (any sign, any date).
            reference_date: Today; the search window never extends past it.
            definition_name: Name used by the label term.
            keywords: Extra match keywords used by the label term.
            linked_transactions: transaction id -> occurrence id for
                transactions already linked; those linked to a different
                occurrence are excluded.
            min_score: Keep candidates scoring at least this.
            amount_threshold: Also keep candidates whose amount is within
                this of the expected amount.
            limit: Maximum number returned.

        Returns:
            Up to ``limit`` CandidateScore, best first.
        """
        t0 = time.monotonic()
        linked = linked_transactions or {}
        start, end = self.search_window(occurrence, reference_date)

        eligible = [
            tx
            for tx in transactions
            if tx.is_expense
            and start <= tx.transaction_date <= end
            and linked.get(tx.id, occurrence.id) == occurrence.id
        ]
        ranked = [
            c
            for c in self.rank(occurrence, eligible, definition_name, keywords)
            if c.total >= min_score
            or c.label_matched
            or c.amount_difference <= amount_threshold
        ]
        result = ranked[:limit]

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info(
            "candidate_search_completed",
            extra={
                "occurrence_id": str(occurrence.id),
                "window_start": start.isoformat(),
                "window_end": end.isoformat(),
                "transactions_considered": len(transactions),
                "eligible_count": len(eligible),
                "candidates_found": len(result),
                "top_score": str(result[0].total) if result else "0",
                "duration_ms": duration_ms,
            },
        )
        return result
