"""
obligation_engines.detection -- Recurring expense detection.

Responsibility:
    Scan ledger expenses for groups that look like an untracked recurring
    obligation and propose definitions for them.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Algorithm:
    1. Group expenses whose normalized labels are similar (normalized
       Levenshtein similarity >= ``title_similarity``).
    2. Keep groups with at least ``minimum_occurrences`` members whose
       gaps fit a 1, 2, 3, 6 or 12 month cadence (at least 70% of gaps
       within ``date_tolerance_days`` of the expected date).
    3. Infer a day pattern: end of month when every day is >= 25, else the
       most frequent day.
    4. Score confidence from count, amount stability and cadence.
    5. Drop groups already covered by an existing definition name and sort
       by confidence, highest first.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from rapidfuzz.distance import Levenshtein

from obligation_engines.tracer import traced_engine
from obligation_kernel.domain.dtos import DefinitionSuggestion, TransactionSnapshot
from obligation_kernel.domain.patterns import DayOfMonthPattern, EndOfMonth, FixedDay
from obligation_kernel.domain.values import YearMonth, quantize_amount
from obligation_kernel.logging_config import get_logger

logger = get_logger("engines.detection")

CANDIDATE_INTERVALS = (1, 2, 3, 6, 12)
CADENCE_MATCH_RATIO = Decimal("0.7")
END_OF_MONTH_FROM_DAY = 25


def normalize_label(label: str) -> str:
    return label.strip().lower()


def add_months(day: date, months: int) -> date:
    return YearMonth.of(day).plus_months(months).clamp_day(day.day)


class RecurrenceDetector:
    """
    Proposes definitions from ledger history.

    Non-goals:
        - Category inference.
        - Incremental detection; every call scans the full input.
    """

    def __init__(
        self,
        minimum_occurrences: int = 3,
        date_tolerance_days: int = 7,
        amount_variation_tolerance: Decimal = Decimal("0.1"),
        title_similarity: Decimal = Decimal("0.8"),
    ) -> None:
        self._minimum_occurrences = minimum_occurrences
        self._date_tolerance_days = date_tolerance_days
        self._amount_variation_tolerance = amount_variation_tolerance
        self._title_similarity = float(title_similarity)

    def labels_similar(self, left: str, right: str) -> bool:
        a, b = normalize_label(left), normalize_label(right)
        if a == b:
            return True
        return Levenshtein.normalized_similarity(a, b) >= self._title_similarity

    @traced_engine(
        "detection", "1.0", fingerprint_fields=("transactions", "existing_names")
    )
    def detect(
        self,
        transactions: Sequence[TransactionSnapshot],
        existing_names: Sequence[str] = (),
    ) -> list[DefinitionSuggestion]:
        expenses = sorted(
            (tx for tx in transactions if tx.is_expense),
            key=lambda tx: (tx.transaction_date, str(tx.id)),
        )
        groups = self._group(expenses)

        suggestions = []
        for group in groups:
            suggestion = self._suggest(group)
            if suggestion is None:
                continue
            if any(self.labels_similar(suggestion.label, name) for name in existing_names):
                continue
            suggestions.append(suggestion)

        suggestions.sort(key=lambda s: (-s.confidence, s.label))
        logger.info(
            "recurrence_detection_completed",
            extra={
                "expense_count": len(expenses),
                "group_count": len(groups),
                "suggestion_count": len(suggestions),
            },
        )
        return suggestions

    def _group(self, expenses: list[TransactionSnapshot]) -> list[list[TransactionSnapshot]]:
        groups: list[list[TransactionSnapshot]] = []
        processed: set = set()
        for tx in expenses:
            if tx.id in processed:
                continue
            group = [tx]
            processed.add(tx.id)
            for other in expenses:
                if other.id not in processed and self.labels_similar(tx.label, other.label):
                    group.append(other)
                    processed.add(other.id)
            if len(group) >= self._minimum_occurrences:
                groups.append(group)
        return groups

    def _suggest(self, group: list[TransactionSnapshot]) -> DefinitionSuggestion | None:
        ordered = sorted(group, key=lambda tx: tx.transaction_date)
        interval = self._detect_interval(ordered)
        if interval is None:
            return None

        amounts = [abs(tx.amount) for tx in ordered]
        average = sum(amounts, Decimal("0")) / len(amounts)
        low, high = min(amounts), max(amounts)
        variation = (high - low) / average if average > 0 else Decimal("0")
        stable = variation <= self._amount_variation_tolerance

        first_label = ordered[0].label
        keywords = tuple(normalize_label(first_label).split()) or (normalize_label(first_label),)

        return DefinitionSuggestion(
            label=first_label,
            amount=quantize_amount(average),
            interval_months=interval,
            pattern=self._detect_pattern(ordered),
            first_date=ordered[0].transaction_date,
            last_date=ordered[-1].transaction_date,
            confidence=self._confidence(len(ordered), stable, interval),
            is_amount_stable=stable,
            min_amount=low,
            max_amount=high,
            match_keywords=keywords,
            transaction_ids=tuple(tx.id for tx in ordered),
        )

    def _detect_interval(self, ordered: list[TransactionSnapshot]) -> int | None:
        gaps = len(ordered) - 1
        if gaps < 1:
            return None
        for interval in CANDIDATE_INTERVALS:
            matched = sum(
                1
                for prev, curr in zip(ordered, ordered[1:])
                if abs(
                    (curr.transaction_date - add_months(prev.transaction_date, interval)).days
                )
                <= self._date_tolerance_days
            )
            if Decimal(matched) >= CADENCE_MATCH_RATIO * gaps:
                return interval
        return None

    def _detect_pattern(self, ordered: list[TransactionSnapshot]) -> DayOfMonthPattern:
        days = [tx.transaction_date.day for tx in ordered]
        if all(d >= END_OF_MONTH_FROM_DAY for d in days):
            return EndOfMonth()
        # Counter.most_common keeps first-seen order among ties
        return FixedDay(Counter(days).most_common(1)[0][0])

    def _confidence(self, count: int, stable: bool, interval: int) -> Decimal:
        score = min(Decimal(count) / 12, Decimal("0.5"))
        if stable:
            score += Decimal("0.3")
        score += Decimal("0.2") if interval == 1 else Decimal("0.1")
        return quantize_amount(min(score, Decimal("1")), 4)
