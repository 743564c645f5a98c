"""
obligation_engines.savings -- Savings balance accumulator.

Responsibility:
    Compute the monthly contribution toward a definition, apply monthly
    ticks and payments to an immutable balance, compare actual and expected
    payment amounts, and rebuild a balance from history.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by ``ObligationService``; the repository persists the returned
    snapshots.

Invariants enforced:
    - ``balance == total_saved - total_paid`` after every call (derived on
      ``BalanceSnapshot``, never stored).
    - total_saved and total_paid never go below zero.
    - A tick for a month at or before ``last_updated`` is a no-op, so ticks
      are idempotent per month.
    - Every operation returns a new snapshot; inputs are never mutated.

Failure modes:
    - ValueError on a negative payment amount.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from obligation_engines.tracer import traced_engine
from obligation_kernel.domain.dtos import (
    BalanceSnapshot,
    DefinitionSnapshot,
    OccurrenceSnapshot,
    PaymentDifference,
)
from obligation_kernel.domain.values import SavingStrategy, YearMonth, quantize_amount
from obligation_kernel.logging_config import get_logger

logger = get_logger("engines.savings")

ZERO = Decimal("0")


class SavingsAccumulator:
    """
    Monthly-tick balance accumulator.

    Contract:
        Pure; amounts are quantized to ``amount_scale`` decimal places only
        where a division happens (evenly-distributed contributions).

    Non-goals:
        - Does not decide when a tick happens; callers choose the month.
        - Shortfall is reported, never acted upon.
    """

    def __init__(self, amount_scale: int = 2) -> None:
        self._amount_scale = amount_scale

    def monthly_contribution(self, definition: DefinitionSnapshot) -> Decimal:
        """Amount saved per month under the definition's saving strategy."""
        match definition.saving_strategy:
            case SavingStrategy.EVENLY_DISTRIBUTED:
                months = max(1, definition.interval_months - definition.lead_time_months)
                return quantize_amount(definition.amount / months, self._amount_scale)
            case SavingStrategy.CUSTOM_MONTHLY:
                return definition.custom_monthly_amount or ZERO
            case SavingStrategy.DISABLED:
                return ZERO
        raise ValueError(f"Unknown saving strategy: {definition.saving_strategy!r}")

    @traced_engine(
        "savings", "1.0", fingerprint_fields=("definition", "balance", "year", "month")
    )
    def record_monthly_contribution(
        self,
        definition: DefinitionSnapshot,
        balance: BalanceSnapshot | None,
        year: int,
        month: int,
    ) -> BalanceSnapshot:
        """
        Apply the contribution for ``year``/``month``.

        A missing balance is created here (lazily, on the first tick).
        """
        target = YearMonth(year, month)
        current = balance or BalanceSnapshot.empty(definition.id)

        if current.last_updated is not None and target <= current.last_updated:
            logger.debug(
                "contribution_skipped",
                extra={
                    "definition_id": str(definition.id),
                    "month": str(target),
                    "last_updated": str(current.last_updated),
                },
            )
            return current

        contribution = self.monthly_contribution(definition)
        updated = BalanceSnapshot(
            definition_id=current.definition_id,
            total_saved=current.total_saved + contribution,
            total_paid=current.total_paid,
            last_updated=target,
        )
        logger.info(
            "contribution_recorded",
            extra={
                "definition_id": str(definition.id),
                "month": str(target),
                "contribution": str(contribution),
                "total_saved": str(updated.total_saved),
                "balance": str(updated.balance),
                "balance_created": balance is None,
            },
        )
        return updated

    def record_payment(self, balance: BalanceSnapshot, paid_amount: Decimal) -> BalanceSnapshot:
        """Add ``paid_amount`` to the paid side."""
        if paid_amount < 0:
            raise ValueError(f"Paid amount must be >= 0, got {paid_amount}")
        updated = BalanceSnapshot(
            definition_id=balance.definition_id,
            total_saved=balance.total_saved,
            total_paid=balance.total_paid + paid_amount,
            last_updated=balance.last_updated,
        )
        if updated.is_shortfall:
            logger.warning(
                "balance_shortfall",
                extra={
                    "definition_id": str(balance.definition_id),
                    "balance": str(updated.balance),
                },
            )
        return updated

    def reverse_payment(self, balance: BalanceSnapshot, paid_amount: Decimal) -> BalanceSnapshot:
        """Take back a payment when its occurrence is reverted; floored at zero."""
        if paid_amount < 0:
            raise ValueError(f"Paid amount must be >= 0, got {paid_amount}")
        return BalanceSnapshot(
            definition_id=balance.definition_id,
            total_saved=balance.total_saved,
            total_paid=max(ZERO, balance.total_paid - paid_amount),
            last_updated=balance.last_updated,
        )

    def payment_difference(self, occurrence: OccurrenceSnapshot) -> PaymentDifference:
        """Actual vs expected for a completed occurrence."""
        return PaymentDifference(
            expected=occurrence.expected_amount,
            actual=occurrence.actual_amount if occurrence.actual_amount is not None else ZERO,
        )

    @traced_engine(
        "savings", "1.0", fingerprint_fields=("definition", "occurrences", "start", "through")
    )
    def recalculate(
        self,
        definition: DefinitionSnapshot,
        occurrences: Sequence[OccurrenceSnapshot],
        start: YearMonth,
        through: YearMonth,
    ) -> BalanceSnapshot:
        """
        Rebuild a balance from history, for data repair.

        saved = monthly contribution x months from ``start`` to ``through``
        inclusive (zero when ``through`` precedes ``start``); paid = sum of
        completed actual amounts.
        """
        months = max(0, start.months_until(through) + 1)
        total_saved = self.monthly_contribution(definition) * months
        total_paid = sum(
            (o.actual_amount for o in occurrences if o.is_completed and o.actual_amount),
            ZERO,
        )
        rebuilt = BalanceSnapshot(
            definition_id=definition.id,
            total_saved=total_saved,
            total_paid=total_paid,
            last_updated=through,
        )
        logger.info(
            "balance_recalculated",
            extra={
                "definition_id": str(definition.id),
                "start": str(start),
                "through": str(through),
                "months": months,
                "total_saved": str(rebuilt.total_saved),
                "total_paid": str(rebuilt.total_paid),
            },
        )
        return rebuilt
