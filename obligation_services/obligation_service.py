"""
ObligationService -- Public entry point for obligation scheduling and reconciliation.

Responsibility:
    Expose the caller-facing operations (definition CRUD, synchronization,
    occurrence completion and unlinking, candidate search, monthly savings
    ticks, balance queries, recurring-expense suggestions) and run each one
    as a single atomic unit of work.

Architecture position:
    Services -- imperative shell over the pure engines.
    Composes ScheduleGenerator, SynchronizationEngine, SavingsAccumulator,
    ReconciliationScorer and RecurrenceDetector with ObligationRepository
    (persistence collaborator) and a LedgerReader (ledger collaborator).

Invariants enforced:
    - Single writer per definition: every mutation runs inside
      ``DefinitionLockRegistry.hold(definition_id)`` and reads the
      definition row FOR UPDATE.
    - Atomicity: validation happens before any write; the plan and the
      balance change commit together in one ``session_scope()`` or not at
      all.
    - The reference date comes from the injected Clock; engines receive it
      explicitly.

Failure modes:
    - ValidationError: field validation failed (all problems collected).
    - ReferenceNotFoundError: category or ledger transaction missing.
    - DefinitionNotFoundError / OccurrenceNotFoundError: unknown id.
    - InvalidHorizonError: negative horizon.

Usage:
    service = ObligationService(get_session_factory(), clock=SystemClock())
    definition = service.create_definition(DefinitionInput(...))
    result = service.mark_occurrence_completed(
        occurrence_id, actual_date, actual_amount, transaction_id=tx_id,
    )
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from obligation_config import EngineSettings, get_active_config
from obligation_engines.detection import RecurrenceDetector
from obligation_engines.matching import CandidateScore, ReconciliationScorer
from obligation_engines.savings import SavingsAccumulator
from obligation_engines.schedule import ScheduleGenerator, status_for
from obligation_engines.synchronization import SynchronizationEngine
from obligation_kernel.db.engine import session_scope
from obligation_kernel.domain.clock import Clock, SystemClock
from obligation_kernel.domain.dtos import (
    BalanceSnapshot,
    CompletionResult,
    DefinitionInput,
    DefinitionSnapshot,
    DefinitionSuggestion,
    OccurrenceSnapshot,
    SynchronizationSummary,
)
from obligation_kernel.domain.validation import (
    validate_completion,
    validate_definition_input,
)
from obligation_kernel.domain.values import OccurrenceStatus, YearMonth
from obligation_kernel.exceptions import (
    FieldError,
    InvalidHorizonError,
    ReferenceNotFoundError,
    ValidationError,
)
from obligation_kernel.logging_config import LogContext, get_logger
from obligation_kernel.models.definition import ObligationDefinition
from obligation_services.ledger import LedgerReader, SqlLedgerReader
from obligation_services.locks import DefinitionLockRegistry
from obligation_services.repository import ObligationRepository

logger = get_logger("services.obligation")


class ObligationService:
    """
    Facade over engines and persistence for one database.

    Contract:
        Each public method opens its own transaction.  Mutating methods
        hold the definition's lock for the whole transaction.

    Guarantees:
        - A failed call leaves persisted state exactly as before.
        - Synchronization after any schedule-relevant change re-anchors on
          the latest completion.

    Non-goals:
        - Does NOT decide when monthly ticks run; callers (a scheduler,
          the UI on launch) call ``record_monthly_contribution``.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        settings: EngineSettings | None = None,
        locks: DefinitionLockRegistry | None = None,
        ledger_reader_factory: Callable[[Session], LedgerReader] = SqlLedgerReader,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._settings = settings or get_active_config()
        self._locks = locks or DefinitionLockRegistry()
        self._ledger_reader_factory = ledger_reader_factory

        rec = self._settings.reconciliation
        det = self._settings.detection
        self._generator = ScheduleGenerator(max_steps=self._settings.max_schedule_steps)
        self._synchronizer = SynchronizationEngine()
        self._accumulator = SavingsAccumulator(amount_scale=self._settings.amount_scale)
        self._scorer = ReconciliationScorer(
            window_days=rec.window_days,
            amount_weight=rec.amount_weight,
            date_weight=rec.date_weight,
            label_weight=rec.label_weight,
        )
        self._detector = RecurrenceDetector(
            minimum_occurrences=det.minimum_occurrences,
            date_tolerance_days=det.date_tolerance_days,
            amount_variation_tolerance=det.amount_variation_tolerance,
            title_similarity=det.title_similarity,
        )

    @property
    def locks(self) -> DefinitionLockRegistry:
        return self._locks

    # =========================================================================
    # Definitions
    # =========================================================================

    def create_definition(
        self,
        data: DefinitionInput,
        horizon_months: int | None = None,
    ) -> DefinitionSnapshot:
        """
        Validate and persist a new definition, then generate its occurrences.

        Raises:
            ValidationError: If any field is invalid; a missing category is
                reported in ``reference_errors`` alongside.
            ReferenceNotFoundError: If the category is the only problem.
        """
        horizon = self._horizon(horizon_months)

        with session_scope(self._session_factory) as session:
            repo = ObligationRepository(session)
            self._validate_definition(repo, data)
            definition = repo.add_definition(data)
            with self._locks.hold(definition.id), LogContext.bind(
                definition_id=str(definition.id)
            ):
                summary = self._synchronize(repo, definition, horizon)
                snapshot = DefinitionSnapshot.from_model(definition)
                logger.info(
                    "definition_created",
                    extra={
                        "definition_name": snapshot.name,
                        "interval_months": snapshot.interval_months,
                        "anchor_date": snapshot.anchor_date.isoformat(),
                        "created_count": summary.created_count,
                    },
                )
        return snapshot

    def update_definition(
        self,
        definition_id: UUID,
        data: DefinitionInput,
        horizon_months: int | None = None,
    ) -> SynchronizationSummary:
        """Replace a definition's fields and re-synchronize its occurrences."""
        horizon = self._horizon(horizon_months)

        with self._locks.hold(definition_id), LogContext.bind(
            definition_id=str(definition_id)
        ), session_scope(self._session_factory) as session:
            repo = ObligationRepository(session)
            definition = repo.require_definition(definition_id, for_update=True)
            self._validate_definition(repo, data)
            repo.apply_input(definition, data)
            session.flush()
            summary = self._synchronize(repo, definition, horizon)
            logger.info(
                "definition_updated",
                extra={
                    "created_count": summary.created_count,
                    "updated_count": summary.updated_count,
                    "removed_count": summary.removed_count,
                },
            )
        return summary

    def delete_definition(self, definition_id: UUID) -> None:
        """Delete a definition with its occurrences and balance."""
        with self._locks.hold(definition_id), LogContext.bind(
            definition_id=str(definition_id)
        ):
            with session_scope(self._session_factory) as session:
                repo = ObligationRepository(session)
                definition = repo.require_definition(definition_id, for_update=True)
                repo.delete_definition(definition)
            logger.info("definition_deleted")
        self._locks.discard(definition_id)

    def get_definition(self, definition_id: UUID) -> DefinitionSnapshot:
        with session_scope(self._session_factory) as session:
            definition = ObligationRepository(session).require_definition(definition_id)
            return DefinitionSnapshot.from_model(definition)

    def list_occurrences(self, definition_id: UUID) -> tuple[OccurrenceSnapshot, ...]:
        with session_scope(self._session_factory) as session:
            repo = ObligationRepository(session)
            repo.require_definition(definition_id)
            return repo.occurrence_snapshots(definition_id)

    # =========================================================================
    # Synchronization
    # =========================================================================

    def synchronize_occurrences(
        self,
        definition_id: UUID,
        horizon_months: int | None = None,
    ) -> SynchronizationSummary:
        """Regenerate the schedule and apply the diff to persisted occurrences."""
        horizon = self._horizon(horizon_months)
        with self._locks.hold(definition_id), LogContext.bind(
            definition_id=str(definition_id)
        ), session_scope(self._session_factory) as session:
            repo = ObligationRepository(session)
            definition = repo.require_definition(definition_id, for_update=True)
            return self._synchronize(repo, definition, horizon)

    # =========================================================================
    # Occurrences
    # =========================================================================

    def mark_occurrence_completed(
        self,
        occurrence_id: UUID,
        actual_date: date | None,
        actual_amount: Decimal | None,
        transaction_id: UUID | None = None,
        horizon_months: int | None = None,
    ) -> CompletionResult:
        """
        Complete an occurrence, record the payment and re-synchronize.

        Completing an already-completed occurrence replaces its actuals;
        the previous payment is taken back from the balance first.

        Raises:
            ValidationError: Missing actuals, non-positive amount, or an
                actual date too far from the scheduled date.
            ReferenceNotFoundError: If ``transaction_id`` is not in the ledger
                and the fields are otherwise valid.
        """
        horizon = self._horizon(horizon_months)
        definition_id = self._definition_id_for(occurrence_id)

        with self._locks.hold(definition_id), LogContext.bind(
            definition_id=str(definition_id), occurrence_id=str(occurrence_id)
        ), session_scope(self._session_factory) as session:
            repo = ObligationRepository(session)
            definition = repo.require_definition(definition_id, for_update=True)
            occurrence = repo.require_occurrence(occurrence_id)
            self._validate_completion(
                session, occurrence.scheduled_date, actual_date, actual_amount, transaction_id
            )

            balance = self._balance_or_empty(repo, definition_id)
            if occurrence.is_completed:
                balance = self._accumulator.reverse_payment(balance, occurrence.actual_amount)

            occurrence.complete(actual_date, actual_amount, transaction_id)
            session.flush()
            completed = OccurrenceSnapshot.from_model(occurrence)

            balance = self._accumulator.record_payment(balance, actual_amount)
            repo.save_balance(balance)
            difference = self._accumulator.payment_difference(completed)

            summary = self._synchronize(repo, definition, horizon)
            logger.info(
                "occurrence_completed",
                extra={
                    "scheduled_date": completed.scheduled_date.isoformat(),
                    "actual_date": actual_date.isoformat(),
                    "actual_amount": str(actual_amount),
                    "difference": str(difference.difference),
                    "difference_kind": difference.kind.value,
                    "transaction_id": str(transaction_id) if transaction_id else None,
                },
            )
        return CompletionResult(summary=summary, payment_difference=difference, balance=balance)

    def update_occurrence(
        self,
        occurrence_id: UUID,
        status: OccurrenceStatus,
        actual_date: date | None = None,
        actual_amount: Decimal | None = None,
        transaction_id: UUID | None = None,
        horizon_months: int | None = None,
    ) -> SynchronizationSummary | None:
        """
        Edit an occurrence's status and actuals.

        Returns:
            The synchronization summary when completion toggled (open to
            completed or back), else None.
        """
        horizon = self._horizon(horizon_months)
        definition_id = self._definition_id_for(occurrence_id)

        with self._locks.hold(definition_id), LogContext.bind(
            definition_id=str(definition_id), occurrence_id=str(occurrence_id)
        ), session_scope(self._session_factory) as session:
            repo = ObligationRepository(session)
            definition = repo.require_definition(definition_id, for_update=True)
            occurrence = repo.require_occurrence(occurrence_id)
            was_completed = occurrence.is_completed
            balance = None

            if status == OccurrenceStatus.COMPLETED:
                self._validate_completion(
                    session, occurrence.scheduled_date, actual_date, actual_amount, transaction_id
                )
                balance = self._balance_or_empty(repo, definition_id)
                if was_completed:
                    balance = self._accumulator.reverse_payment(
                        balance, occurrence.actual_amount
                    )
                balance = self._accumulator.record_payment(balance, actual_amount)
                occurrence.complete(actual_date, actual_amount, transaction_id)
            else:
                if was_completed:
                    balance = self._accumulator.reverse_payment(
                        self._balance_or_empty(repo, definition_id),
                        occurrence.actual_amount,
                    )
                occurrence.revert(OccurrenceStatus(status))

            if balance is not None:
                repo.save_balance(balance)
            session.flush()

            toggled = was_completed != (status == OccurrenceStatus.COMPLETED)
            logger.info(
                "occurrence_updated",
                extra={
                    "status": OccurrenceStatus(status).value,
                    "was_completed": was_completed,
                    "completion_toggled": toggled,
                },
            )
            if not toggled:
                return None
            return self._synchronize(repo, definition, horizon)

    def unlink_occurrence(
        self,
        occurrence_id: UUID,
        horizon_months: int | None = None,
    ) -> SynchronizationSummary | None:
        """
        Revert a completed occurrence: clear its actuals and transaction link,
        restore the lead-time status, take back the payment and
        re-synchronize.  Returns None when the occurrence was not completed.
        """
        horizon = self._horizon(horizon_months)
        definition_id = self._definition_id_for(occurrence_id)

        with self._locks.hold(definition_id), LogContext.bind(
            definition_id=str(definition_id), occurrence_id=str(occurrence_id)
        ), session_scope(self._session_factory) as session:
            repo = ObligationRepository(session)
            definition = repo.require_definition(definition_id, for_update=True)
            occurrence = repo.require_occurrence(occurrence_id)
            if not occurrence.is_completed:
                logger.info("occurrence_unlink_skipped", extra={"reason": "not_completed"})
                return None

            balance = self._accumulator.reverse_payment(
                self._balance_or_empty(repo, definition_id), occurrence.actual_amount
            )
            repo.save_balance(balance)
            occurrence.revert(
                status_for(
                    occurrence.scheduled_date,
                    self._clock.today(),
                    definition.lead_time_months,
                )
            )
            session.flush()
            logger.info("occurrence_unlinked")
            return self._synchronize(repo, definition, horizon)

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def candidates(self, occurrence_id: UUID) -> list[CandidateScore]:
        """Ledger transactions ranked as candidates for ``occurrence_id``."""
        rec = self._settings.reconciliation
        with session_scope(self._session_factory) as session:
            repo = ObligationRepository(session)
            occurrence = OccurrenceSnapshot.from_model(repo.require_occurrence(occurrence_id))
            definition = DefinitionSnapshot.from_model(
                repo.require_definition(occurrence.definition_id)
            )
            reference_date = self._clock.today()
            start, end = self._scorer.search_window(occurrence, reference_date)
            transactions = self._ledger_reader_factory(session).list_transactions(start, end)
            linked = repo.linked_transactions(tx.id for tx in transactions)
            return self._scorer.find_candidates(
                occurrence=occurrence,
                transactions=transactions,
                reference_date=reference_date,
                definition_name=definition.name,
                keywords=definition.match_keywords,
                linked_transactions=linked,
                min_score=rec.min_score,
                amount_threshold=rec.amount_threshold,
                limit=rec.candidate_limit,
            )

    def suggest_definitions(self, start: date, end: date) -> list[DefinitionSuggestion]:
        """Recurring expenses in [start, end] not yet covered by a definition."""
        with session_scope(self._session_factory) as session:
            transactions = self._ledger_reader_factory(session).list_transactions(start, end)
            existing = [d.name for d in ObligationRepository(session).list_definitions()]
        return self._detector.detect(transactions=transactions, existing_names=existing)

    # =========================================================================
    # Savings
    # =========================================================================

    def record_monthly_contribution(
        self,
        definition_id: UUID,
        year: int,
        month: int,
    ) -> BalanceSnapshot:
        """Apply the monthly contribution for ``year``/``month`` (idempotent per month)."""
        with self._locks.hold(definition_id), LogContext.bind(
            definition_id=str(definition_id)
        ), session_scope(self._session_factory) as session:
            repo = ObligationRepository(session)
            definition = DefinitionSnapshot.from_model(
                repo.require_definition(definition_id, for_update=True)
            )
            current = repo.balance_snapshot(definition_id)
            updated = self._accumulator.record_monthly_contribution(
                definition=definition, balance=current, year=year, month=month
            )
            if updated != current:
                repo.save_balance(updated)
            return updated

    def balance(self, definition_id: UUID) -> BalanceSnapshot:
        """Current balance; an all-zero snapshot before the first tick."""
        with session_scope(self._session_factory) as session:
            repo = ObligationRepository(session)
            repo.require_definition(definition_id)
            return self._balance_or_empty(repo, definition_id)

    def recalculate_balance(
        self,
        definition_id: UUID,
        start: YearMonth | None = None,
        through: YearMonth | None = None,
    ) -> BalanceSnapshot:
        """
        Rebuild the balance from history.

        ``start`` defaults to the month the definition was created and
        ``through`` to the current month.
        """
        with self._locks.hold(definition_id), LogContext.bind(
            definition_id=str(definition_id)
        ), session_scope(self._session_factory) as session:
            repo = ObligationRepository(session)
            row = repo.require_definition(definition_id, for_update=True)
            first_month = start or YearMonth.of(row.created_at)
            last_month = through or YearMonth.of(self._clock.today())
            rebuilt = self._accumulator.recalculate(
                definition=DefinitionSnapshot.from_model(row),
                occurrences=repo.occurrence_snapshots(definition_id),
                start=first_month,
                through=last_month,
            )
            repo.save_balance(rebuilt)
            return rebuilt

    # =========================================================================
    # Internals
    # =========================================================================

    def _synchronize(
        self,
        repo: ObligationRepository,
        definition: ObligationDefinition,
        horizon_months: int,
    ) -> SynchronizationSummary:
        t0 = time.monotonic()
        snapshot = DefinitionSnapshot.from_model(definition)
        existing = repo.occurrence_snapshots(snapshot.id)
        fresh = self._generator.generate(
            definition=snapshot,
            reference_date=self._clock.today(),
            horizon_months=horizon_months,
            completions=tuple(o for o in existing if o.is_completed),
        )
        plan = self._synchronizer.synchronize(
            definition_id=snapshot.id, existing=existing, fresh=fresh
        )
        repo.apply_plan(plan)
        summary = plan.summary(self._clock.now())
        logger.info(
            "occurrences_synchronized",
            extra={
                "horizon_months": horizon_months,
                "created_count": summary.created_count,
                "updated_count": summary.updated_count,
                "removed_count": summary.removed_count,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return summary

    def _horizon(self, horizon_months: int | None) -> int:
        horizon = (
            self._settings.default_horizon_months if horizon_months is None else horizon_months
        )
        if horizon < 0:
            raise InvalidHorizonError(horizon)
        return horizon

    def _definition_id_for(self, occurrence_id: UUID) -> UUID:
        with session_scope(self._session_factory) as session:
            return ObligationRepository(session).require_occurrence(occurrence_id).definition_id

    def _balance_or_empty(self, repo: ObligationRepository, definition_id: UUID) -> BalanceSnapshot:
        return repo.balance_snapshot(definition_id) or BalanceSnapshot.empty(definition_id)

    def _validate_definition(self, repo: ObligationRepository, data: DefinitionInput) -> None:
        missing = []
        if data.category_id is not None and not repo.category_exists(data.category_id):
            missing.append(ReferenceNotFoundError("category", str(data.category_id)))
        self._raise_if_invalid("definition", validate_definition_input(data), missing)

    def _validate_completion(
        self,
        session: Session,
        scheduled_date: date,
        actual_date: date | None,
        actual_amount: Decimal | None,
        transaction_id: UUID | None,
    ) -> None:
        errors = validate_completion(
            scheduled_date,
            actual_date,
            actual_amount,
            max_date_drift_days=self._settings.reconciliation.max_date_drift_days,
        )
        missing = []
        if (
            transaction_id is not None
            and self._ledger_reader_factory(session).get_transaction(transaction_id) is None
        ):
            missing.append(ReferenceNotFoundError("transaction", str(transaction_id)))
        self._raise_if_invalid("completion", errors, missing)

    def _raise_if_invalid(
        self,
        operation: str,
        errors: list[FieldError],
        missing: list[ReferenceNotFoundError],
    ) -> None:
        """Raise one exception carrying every field and reference problem."""
        if errors:
            logger.warning(
                "validation_failed",
                extra={
                    "operation": operation,
                    "field_codes": [e.code for e in errors],
                    "missing_references": [m.reference_type for m in missing],
                },
            )
            raise ValidationError(errors, missing)
        if missing:
            logger.warning(
                "reference_not_found",
                extra={"operation": operation, "reference_type": missing[0].reference_type},
            )
            raise missing[0]
