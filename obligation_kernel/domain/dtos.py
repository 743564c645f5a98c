"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable structures that flow between the service layer and
    the pure engines: DefinitionInput (caller input), DefinitionSnapshot and
    OccurrenceSnapshot (engine input), ScheduleEntry (generator output),
    BalanceSnapshot and PaymentDifference (accumulator output),
    TransactionSnapshot (ledger input), SynchronizationSummary and
    DefinitionSuggestion (caller output).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``from_model()`` class methods are boundary converters invoked only from
    the service layer.

Invariants enforced:
    - Engines accept and return DTOs, never ORM entities.
    - BalanceSnapshot.balance is always total_saved - total_paid.

Failure modes:
    - ValueError on OccurrenceSnapshot whose completion fields disagree with
      its status.

Data flow:
    DefinitionInput -> ObligationDefinition (row) -> DefinitionSnapshot
        -> ScheduleEntry -> SynchronizationPlan -> ObligationOccurrence (rows)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from obligation_kernel.domain.patterns import (
    DayOfMonthPattern,
    pattern_from_dict,
)
from obligation_kernel.domain.values import (
    DateAdjustmentPolicy,
    OccurrenceStatus,
    SavingStrategy,
    YearMonth,
)

if TYPE_CHECKING:
    from obligation_kernel.models.balance import SavingsBalance as BalanceModel
    from obligation_kernel.models.definition import (
        ObligationDefinition as DefinitionModel,
    )
    from obligation_kernel.models.ledger_transaction import (
        LedgerTransaction as TransactionModel,
    )
    from obligation_kernel.models.occurrence import (
        ObligationOccurrence as OccurrenceModel,
    )


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DefinitionInput:
    """
    Caller-supplied fields for creating or updating a definition.

    Values are not validated on construction; ``validate_definition_input``
    collects every problem so the caller can show them together.
    """

    name: str
    amount: Decimal
    interval_months: int
    anchor_date: date
    lead_time_months: int = 0
    pattern: DayOfMonthPattern | None = None
    adjustment_policy: DateAdjustmentPolicy = DateAdjustmentPolicy.NONE
    saving_strategy: SavingStrategy = SavingStrategy.EVENLY_DISTRIBUTED
    custom_monthly_amount: Decimal | None = None
    category_id: UUID | None = None
    end_date: date | None = None
    notes: str = ""
    match_keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class DefinitionSnapshot:
    """Immutable view of a persisted definition as seen by the engines."""

    id: UUID
    name: str
    amount: Decimal
    interval_months: int
    anchor_date: date
    lead_time_months: int = 0
    pattern: DayOfMonthPattern | None = None
    adjustment_policy: DateAdjustmentPolicy = DateAdjustmentPolicy.NONE
    saving_strategy: SavingStrategy = SavingStrategy.EVENLY_DISTRIBUTED
    custom_monthly_amount: Decimal | None = None
    category_id: UUID | None = None
    end_date: date | None = None
    notes: str = ""
    match_keywords: tuple[str, ...] = ()

    @classmethod
    def from_model(cls, model: DefinitionModel) -> DefinitionSnapshot:
        return cls(
            id=model.id,
            name=model.name,
            amount=model.amount,
            interval_months=model.interval_months,
            anchor_date=model.anchor_date,
            lead_time_months=model.lead_time_months,
            pattern=pattern_from_dict(model.day_pattern),
            adjustment_policy=DateAdjustmentPolicy(model.adjustment_policy),
            saving_strategy=SavingStrategy(model.saving_strategy),
            custom_monthly_amount=model.custom_monthly_amount,
            category_id=model.category_id,
            end_date=model.end_date,
            notes=model.notes or "",
            match_keywords=tuple(model.match_keywords or ()),
        )


# ---------------------------------------------------------------------------
# Occurrences and schedule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OccurrenceSnapshot:
    """
    Immutable view of one persisted occurrence.

    Guarantees:
        - completed <=> actual_date and actual_amount are both present.
    """

    id: UUID
    definition_id: UUID
    scheduled_date: date
    expected_amount: Decimal
    status: OccurrenceStatus
    actual_date: date | None = None
    actual_amount: Decimal | None = None
    transaction_id: UUID | None = None

    def __post_init__(self) -> None:
        has_actuals = self.actual_date is not None and self.actual_amount is not None
        if self.status == OccurrenceStatus.COMPLETED and not has_actuals:
            raise ValueError("Completed occurrence requires actual date and amount")
        if self.status != OccurrenceStatus.COMPLETED and (
            self.actual_date is not None or self.actual_amount is not None
        ):
            raise ValueError("Open occurrence must not carry actual date or amount")

    @property
    def is_completed(self) -> bool:
        return self.status == OccurrenceStatus.COMPLETED

    @property
    def remaining_amount(self) -> Decimal:
        """Amount still to pay; zero once completed."""
        if self.is_completed:
            return Decimal("0")
        return self.expected_amount

    def is_overdue(self, reference_date: date) -> bool:
        return not self.is_completed and self.scheduled_date < reference_date

    @classmethod
    def from_model(cls, model: OccurrenceModel) -> OccurrenceSnapshot:
        return cls(
            id=model.id,
            definition_id=model.definition_id,
            scheduled_date=model.scheduled_date,
            expected_amount=model.expected_amount,
            status=OccurrenceStatus(model.status),
            actual_date=model.actual_date,
            actual_amount=model.actual_amount,
            transaction_id=model.transaction_id,
        )


@dataclass(frozen=True)
class ScheduleEntry:
    """One projected occurrence produced by the schedule generator."""

    scheduled_date: date
    expected_amount: Decimal
    status: OccurrenceStatus


@dataclass(frozen=True)
class SynchronizationSummary:
    """Counts of changes applied by one synchronization run."""

    synced_at: datetime
    created_count: int = 0
    updated_count: int = 0
    removed_count: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.created_count or self.updated_count or self.removed_count)


# ---------------------------------------------------------------------------
# Savings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BalanceSnapshot:
    """
    Immutable savings balance.

    Guarantees:
        - balance == total_saved - total_paid, always (derived, not stored).
        - is_shortfall iff balance < 0.
    """

    definition_id: UUID
    total_saved: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    last_updated: YearMonth | None = None

    @property
    def balance(self) -> Decimal:
        return self.total_saved - self.total_paid

    @property
    def is_shortfall(self) -> bool:
        return self.balance < 0

    @classmethod
    def empty(cls, definition_id: UUID) -> BalanceSnapshot:
        return cls(definition_id=definition_id)

    @classmethod
    def from_model(cls, model: BalanceModel) -> BalanceSnapshot:
        last_updated = None
        if model.last_updated_year is not None and model.last_updated_month is not None:
            last_updated = YearMonth(model.last_updated_year, model.last_updated_month)
        return cls(
            definition_id=model.definition_id,
            total_saved=model.total_saved,
            total_paid=model.total_paid,
            last_updated=last_updated,
        )


class DifferenceKind(str, Enum):
    OVERPAID = "overpaid"
    UNDERPAID = "underpaid"
    EXACT = "exact"


@dataclass(frozen=True)
class PaymentDifference:
    """Actual vs expected amount of a completed occurrence."""

    expected: Decimal
    actual: Decimal

    @property
    def difference(self) -> Decimal:
        return self.actual - self.expected

    @property
    def kind(self) -> DifferenceKind:
        if self.difference > 0:
            return DifferenceKind.OVERPAID
        if self.difference < 0:
            return DifferenceKind.UNDERPAID
        return DifferenceKind.EXACT


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of marking an occurrence completed."""

    summary: SynchronizationSummary
    payment_difference: PaymentDifference
    balance: BalanceSnapshot | None = None


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransactionSnapshot:
    """Read-only ledger transaction: date, signed amount, label."""

    id: UUID
    transaction_date: date
    amount: Decimal
    label: str = ""

    @property
    def is_expense(self) -> bool:
        return self.amount < 0

    @classmethod
    def from_model(cls, model: TransactionModel) -> TransactionSnapshot:
        return cls(
            id=model.id,
            transaction_date=model.transaction_date,
            amount=model.amount,
            label=model.label or "",
        )


@dataclass(frozen=True)
class DefinitionSuggestion:
    """A recurring expense detected in the ledger that has no definition yet."""

    label: str
    amount: Decimal
    interval_months: int
    pattern: DayOfMonthPattern
    first_date: date
    last_date: date
    confidence: Decimal
    is_amount_stable: bool
    min_amount: Decimal
    max_amount: Decimal
    match_keywords: tuple[str, ...] = ()
    transaction_ids: tuple[UUID, ...] = field(default_factory=tuple)

    @property
    def occurrence_count(self) -> int:
        return len(self.transaction_ids)
