"""
Tests for the reconciliation scorer.

Covers:
- Term scoring (amount, date, label) and weights
- Ranking order and tie-breaks
- Candidate filtering: window, expenses only, already-linked transactions
- Inclusion by label or amount threshold below the minimum score
- Result limit
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from obligation_engines.matching import ReconciliationScorer, label_matches
from obligation_kernel.domain.dtos import OccurrenceSnapshot, TransactionSnapshot
from obligation_kernel.domain.values import OccurrenceStatus

SCHEDULED = date(2025, 3, 15)
TODAY = date(2025, 6, 1)


@pytest.fixture
def occurrence() -> OccurrenceSnapshot:
    return OccurrenceSnapshot(
        id=uuid4(),
        definition_id=uuid4(),
        scheduled_date=SCHEDULED,
        expected_amount=Decimal("100000"),
        status=OccurrenceStatus.SAVING,
    )


@pytest.fixture
def scorer() -> ReconciliationScorer:
    return ReconciliationScorer(window_days=60)


def expense(day: date, amount: str, label: str = "") -> TransactionSnapshot:
    return TransactionSnapshot(
        id=uuid4(), transaction_date=day, amount=-Decimal(amount), label=label
    )


class TestLabelMatches:

    def test_name_contained_case_insensitive(self):
        assert label_matches("PAYMENT CAR TAX 2025", "Car tax", ())

    def test_keyword_contained(self):
        assert label_matches("DGFIP prelevement", "Income tax", ("dgfip",))

    def test_blank_needles_ignored(self):
        assert not label_matches("anything", "  ", ("",))


class TestScore:

    def test_exact_match_with_label_scores_one(self, scorer, occurrence):
        tx = expense(SCHEDULED, "100000", "Car tax")

        score = scorer.score(occurrence, tx, definition_name="Car tax")

        assert score.total == Decimal("1")
        assert score.label_matched

    def test_terms(self, scorer, occurrence):
        """20% amount gap and 30 of 60 days: 0.5*0.8 + 0.3*0.5 = 0.55."""
        tx = expense(SCHEDULED + timedelta(days=30), "120000")

        score = scorer.score(occurrence, tx)

        assert score.amount_score == Decimal("0.8")
        assert score.date_score == Decimal("0.5")
        assert score.label_score == Decimal("0")
        assert score.total == Decimal("0.55")
        assert score.day_difference == 30
        assert score.amount_difference == Decimal("20000")

    def test_terms_floored_at_zero(self, scorer, occurrence):
        tx = expense(SCHEDULED + timedelta(days=200), "500000")

        score = scorer.score(occurrence, tx)

        assert score.amount_score == Decimal("0")
        assert score.date_score == Decimal("0")
        assert score.total == Decimal("0")

    def test_non_positive_window_rejected(self):
        with pytest.raises(ValueError):
            ReconciliationScorer(window_days=0)


class TestRanking:

    def test_exact_candidate_ranks_above_later_larger_one(self, scorer, occurrence):
        """Exact amount and date beats 30 days later and 20,000 more."""
        exact = expense(SCHEDULED, "100000")
        later = expense(SCHEDULED + timedelta(days=30), "120000")

        ranked = scorer.rank(occurrence, [later, exact])

        assert [c.transaction for c in ranked] == [exact, later]
        assert ranked[0].total > ranked[1].total

    def test_tie_broken_by_date_difference(self, scorer):
        """Equal totals: the closer date wins."""
        occurrence = OccurrenceSnapshot(
            id=uuid4(),
            definition_id=uuid4(),
            scheduled_date=SCHEDULED,
            expected_amount=Decimal("100"),
            status=OccurrenceStatus.PLANNED,
        )
        scorer = ReconciliationScorer(
            window_days=60,
            amount_weight=Decimal("1"),
            date_weight=Decimal("0"),
            label_weight=Decimal("0"),
        )
        near = expense(SCHEDULED + timedelta(days=1), "100")
        far = expense(SCHEDULED - timedelta(days=10), "100")

        ranked = scorer.rank(occurrence, [far, near])

        assert ranked[0].total == ranked[1].total
        assert ranked[0].transaction == near

    def test_deterministic(self, scorer, occurrence):
        transactions = [expense(SCHEDULED + timedelta(days=d), "100000") for d in (-5, 5, 0)]
        first = scorer.rank(occurrence, transactions)
        second = scorer.rank(occurrence, list(reversed(transactions)))
        assert [c.transaction.id for c in first] == [c.transaction.id for c in second]


class TestFindCandidates:

    def test_window_and_expense_filter(self, scorer, occurrence):
        inside = expense(SCHEDULED + timedelta(days=10), "100000")
        outside = expense(SCHEDULED + timedelta(days=61), "100000")
        income = TransactionSnapshot(uuid4(), SCHEDULED, Decimal("100000"), "Refund")

        result = scorer.find_candidates(
            occurrence=occurrence,
            transactions=[inside, outside, income],
            reference_date=TODAY,
        )

        assert [c.transaction for c in result] == [inside]

    def test_window_capped_at_reference_date(self, scorer, occurrence):
        before = expense(SCHEDULED - timedelta(days=3), "100000")
        future = expense(SCHEDULED + timedelta(days=3), "100000")

        result = scorer.find_candidates(
            occurrence=occurrence,
            transactions=[before, future],
            reference_date=SCHEDULED,
        )

        assert [c.transaction for c in result] == [before]

    def test_linked_elsewhere_excluded(self, scorer, occurrence):
        mine = expense(SCHEDULED, "100000")
        theirs = expense(SCHEDULED, "100000")

        result = scorer.find_candidates(
            occurrence=occurrence,
            transactions=[mine, theirs],
            reference_date=TODAY,
            linked_transactions={mine.id: occurrence.id, theirs.id: uuid4()},
        )

        assert [c.transaction for c in result] == [mine]

    def test_low_score_kept_by_label_or_amount(self, scorer, occurrence):
        """Below min_score, a label match or a close amount still qualifies."""
        labelled = expense(SCHEDULED + timedelta(days=59), "900000", "car tax")
        close_amount = expense(SCHEDULED + timedelta(days=59), "100000")
        neither = expense(SCHEDULED + timedelta(days=59), "900000")

        result = scorer.find_candidates(
            occurrence=occurrence,
            transactions=[labelled, close_amount, neither],
            reference_date=TODAY,
            definition_name="Car tax",
            min_score=Decimal("0.9"),
            amount_threshold=Decimal("5000"),
        )

        assert {c.transaction.id for c in result} == {labelled.id, close_amount.id}

    def test_limit(self, scorer, occurrence):
        transactions = [expense(SCHEDULED + timedelta(days=d), "100000") for d in range(20)]

        result = scorer.find_candidates(
            occurrence=occurrence,
            transactions=transactions,
            reference_date=TODAY,
            limit=12,
        )

        assert len(result) == 12
        assert result[0].day_difference == 0
