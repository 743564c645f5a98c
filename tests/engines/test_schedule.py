"""
Tests for the schedule generator.

Covers:
- Horizon bound and status by lead time (month granularity)
- Anchor-day fallback and clamping when no pattern is set
- Skipped months for patterns that resolve to none
- Date adjustment applied after resolution
- End date bound
- Re-anchoring: later steps shifted by the latest completion's realized offset
- Invalid horizon / interval
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from obligation_engines.schedule import ScheduleGenerator, horizon_end, status_for
from obligation_kernel.domain.dtos import DefinitionSnapshot, OccurrenceSnapshot
from obligation_kernel.domain.patterns import FirstBusinessDay, FixedDay, NthWeekday
from obligation_kernel.domain.values import (
    DateAdjustmentPolicy,
    OccurrenceStatus,
    Weekday,
)
from obligation_kernel.exceptions import InvalidHorizonError, InvalidRecurrenceError

REFERENCE = date(2025, 1, 1)


def make_definition(**overrides) -> DefinitionSnapshot:
    fields = {
        "id": uuid4(),
        "name": "Rent",
        "amount": Decimal("1000"),
        "interval_months": 1,
        "anchor_date": date(2025, 1, 15),
    }
    fields.update(overrides)
    return DefinitionSnapshot(**fields)


def completed(definition, scheduled, actual, amount=None) -> OccurrenceSnapshot:
    return OccurrenceSnapshot(
        id=uuid4(),
        definition_id=definition.id,
        scheduled_date=scheduled,
        expected_amount=definition.amount,
        status=OccurrenceStatus.COMPLETED,
        actual_date=actual,
        actual_amount=amount or definition.amount,
    )


@pytest.fixture
def generator() -> ScheduleGenerator:
    return ScheduleGenerator()


class TestStatusFor:

    def test_same_month_with_zero_lead_is_saving(self):
        assert status_for(date(2025, 1, 31), REFERENCE, 0) == OccurrenceStatus.SAVING

    def test_next_month_with_zero_lead_is_planned(self):
        assert status_for(date(2025, 2, 1), REFERENCE, 0) == OccurrenceStatus.PLANNED

    def test_month_granularity_not_days(self):
        """Lead time 3 from January covers everything through April 30."""
        assert status_for(date(2025, 4, 30), REFERENCE, 3) == OccurrenceStatus.SAVING
        assert status_for(date(2025, 5, 1), REFERENCE, 3) == OccurrenceStatus.PLANNED


class TestHorizon:

    def test_horizon_end_is_first_of_month(self):
        assert horizon_end(date(2025, 1, 20), 24) == date(2027, 1, 1)

    def test_annual_with_lead_time_scenario(self, generator):
        """
        150,000 every 12 months, lead time 3, anchored in March; from
        January 1 with a 24 month horizon there are exactly two occurrences.
        """
        definition = make_definition(
            amount=Decimal("150000"),
            interval_months=12,
            lead_time_months=3,
            anchor_date=date(2025, 3, 15),
        )

        entries = generator.generate(
            definition=definition, reference_date=REFERENCE, horizon_months=24
        )

        assert [e.scheduled_date for e in entries] == [date(2025, 3, 15), date(2026, 3, 15)]
        assert [e.status for e in entries] == [OccurrenceStatus.SAVING, OccurrenceStatus.PLANNED]
        assert all(e.expected_amount == Decimal("150000") for e in entries)

    def test_zero_horizon_before_anchor_is_empty(self, generator):
        entries = generator.generate(
            definition=make_definition(), reference_date=REFERENCE, horizon_months=0
        )
        assert entries == ()

    def test_negative_horizon_rejected(self, generator):
        with pytest.raises(InvalidHorizonError):
            generator.generate(
                definition=make_definition(), reference_date=REFERENCE, horizon_months=-1
            )

    def test_non_positive_interval_rejected(self, generator):
        with pytest.raises(InvalidRecurrenceError):
            generator.generate(
                definition=make_definition(interval_months=0),
                reference_date=REFERENCE,
                horizon_months=12,
            )


class TestDayResolution:

    def test_anchor_day_clamped_without_pattern(self, generator):
        definition = make_definition(anchor_date=date(2025, 1, 31))

        entries = generator.generate(
            definition=definition, reference_date=REFERENCE, horizon_months=4
        )

        assert [e.scheduled_date for e in entries] == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 31),
            date(2025, 4, 30),
        ]

    def test_missing_ordinal_skips_month(self, generator):
        """Only January, May, August and October 2025 have a 5th Friday."""
        definition = make_definition(
            anchor_date=date(2025, 1, 3),
            pattern=NthWeekday(5, Weekday.FRIDAY),
        )

        entries = generator.generate(
            definition=definition, reference_date=REFERENCE, horizon_months=12
        )

        assert [e.scheduled_date for e in entries] == [
            date(2025, 1, 31),
            date(2025, 5, 30),
            date(2025, 8, 29),
            date(2025, 10, 31),
        ]

    def test_pattern_overrides_anchor_day(self, generator):
        definition = make_definition(anchor_date=date(2025, 1, 15), pattern=FixedDay(3))

        entries = generator.generate(
            definition=definition, reference_date=REFERENCE, horizon_months=2
        )

        assert [e.scheduled_date for e in entries] == [date(2025, 1, 3), date(2025, 2, 3)]

    @pytest.mark.parametrize(
        "policy,expected",
        [
            (DateAdjustmentPolicy.NONE, date(2025, 3, 15)),
            (DateAdjustmentPolicy.NEXT_BUSINESS_DAY, date(2025, 3, 17)),
            (DateAdjustmentPolicy.PREVIOUS_BUSINESS_DAY, date(2025, 3, 14)),
        ],
    )
    def test_adjustment_applied_after_resolution(self, generator, policy, expected):
        """2025-03-15 is a Saturday."""
        definition = make_definition(
            interval_months=12,
            anchor_date=date(2025, 3, 15),
            adjustment_policy=policy,
        )

        entries = generator.generate(
            definition=definition, reference_date=REFERENCE, horizon_months=3
        )

        assert [e.scheduled_date for e in entries] == [expected]


class TestBounds:

    def test_end_date_stops_projection(self, generator):
        definition = make_definition(end_date=date(2025, 3, 20))

        entries = generator.generate(
            definition=definition, reference_date=REFERENCE, horizon_months=12
        )

        assert [e.scheduled_date for e in entries] == [
            date(2025, 1, 15),
            date(2025, 2, 15),
            date(2025, 3, 15),
        ]

    def test_step_cap(self, captured_logs):
        generator = ScheduleGenerator(max_steps=3)

        entries = generator.generate(
            definition=make_definition(), reference_date=REFERENCE, horizon_months=24
        )

        assert len(entries) == 3
        assert any(r["message"] == "schedule_step_cap_reached" for r in captured_logs())


class TestReAnchoring:

    def test_late_payment_shifts_following_dates(self, generator):
        definition = make_definition()
        done = completed(definition, date(2025, 1, 15), date(2025, 1, 20))

        entries = generator.generate(
            definition=definition,
            reference_date=REFERENCE,
            horizon_months=6,
            completions=(done,),
        )

        assert entries[0].status == OccurrenceStatus.COMPLETED
        assert entries[0].scheduled_date == date(2025, 1, 15)
        assert [e.scheduled_date for e in entries[1:]] == [
            date(2025, 2, 20),
            date(2025, 3, 20),
            date(2025, 4, 20),
            date(2025, 5, 20),
            date(2025, 6, 20),
        ]

    def test_early_payment_shifts_following_dates(self, generator):
        definition = make_definition()
        done = completed(definition, date(2025, 1, 15), date(2025, 1, 10))

        entries = generator.generate(
            definition=definition,
            reference_date=REFERENCE,
            horizon_months=3,
            completions=(done,),
        )

        assert [e.scheduled_date for e in entries[1:]] == [date(2025, 2, 10), date(2025, 3, 10)]

    def test_latest_scheduled_completion_is_baseline(self, generator):
        """Completions given out of order still re-anchor on the latest one."""
        definition = make_definition()
        february = completed(definition, date(2025, 2, 15), date(2025, 2, 12))
        january = completed(definition, date(2025, 1, 15), date(2025, 1, 25))

        entries = generator.generate(
            definition=definition,
            reference_date=REFERENCE,
            horizon_months=4,
            completions=(february, january),
        )

        assert [e.scheduled_date for e in entries[:2]] == [date(2025, 1, 15), date(2025, 2, 15)]
        assert [e.scheduled_date for e in entries[2:]] == [date(2025, 3, 12), date(2025, 4, 12)]

    def test_on_time_payment_of_clamped_date_keeps_anchor_day(self, generator):
        definition = make_definition(anchor_date=date(2025, 1, 31))
        done = completed(definition, date(2025, 2, 28), date(2025, 2, 28))

        entries = generator.generate(
            definition=definition,
            reference_date=REFERENCE,
            horizon_months=4,
            completions=(done,),
        )

        assert [e.scheduled_date for e in entries[1:]] == [date(2025, 3, 31), date(2025, 4, 30)]

    def test_on_time_payment_of_adjusted_date_keeps_schedule(self, generator):
        definition = make_definition(
            adjustment_policy=DateAdjustmentPolicy.NEXT_BUSINESS_DAY,
        )
        # 2025-03-15 is a Saturday
        done = completed(definition, date(2025, 3, 17), date(2025, 3, 17))

        entries = generator.generate(
            definition=definition,
            reference_date=REFERENCE,
            horizon_months=6,
            completions=(done,),
        )

        assert [e.scheduled_date for e in entries[1:]] == [
            date(2025, 4, 15),
            date(2025, 5, 15),
            date(2025, 6, 16),
        ]

    def test_late_payment_shift_applied_before_adjustment(self, generator):
        definition = make_definition(
            adjustment_policy=DateAdjustmentPolicy.NEXT_BUSINESS_DAY,
        )
        done = completed(definition, date(2025, 3, 17), date(2025, 3, 20))

        entries = generator.generate(
            definition=definition,
            reference_date=REFERENCE,
            horizon_months=5,
            completions=(done,),
        )

        # +3 days: 04-18 Friday, 05-18 Sunday -> Monday
        assert [e.scheduled_date for e in entries[1:]] == [date(2025, 4, 18), date(2025, 5, 19)]

    def test_adjustment_into_next_month_does_not_skip_step(self, generator):
        definition = make_definition(
            anchor_date=date(2025, 5, 31),
            adjustment_policy=DateAdjustmentPolicy.NEXT_BUSINESS_DAY,
        )
        # 2025-05-31 is a Saturday, so the May step falls on 06-02
        done = completed(definition, date(2025, 6, 2), date(2025, 6, 2))

        entries = generator.generate(
            definition=definition,
            reference_date=REFERENCE,
            horizon_months=7,
            completions=(done,),
        )

        assert [e.scheduled_date for e in entries[1:]] == [date(2025, 6, 30), date(2025, 7, 31)]

    def test_early_payment_with_pattern_does_not_repeat_month(self, generator):
        definition = make_definition(
            anchor_date=date(2025, 1, 1), pattern=FirstBusinessDay()
        )
        done = completed(definition, date(2025, 3, 3), date(2025, 2, 28))

        entries = generator.generate(
            definition=definition,
            reference_date=REFERENCE,
            horizon_months=5,
            completions=(done,),
        )

        dates = [e.scheduled_date for e in entries]
        assert dates == [date(2025, 3, 3), date(2025, 3, 29), date(2025, 4, 28), date(2025, 5, 30)]
        assert len(set(dates)) == len(dates)

    def test_late_payment_with_pattern_keeps_every_step(self, generator):
        definition = make_definition(
            anchor_date=date(2025, 1, 1), pattern=FirstBusinessDay()
        )
        done = completed(definition, date(2025, 3, 3), date(2025, 4, 2))

        entries = generator.generate(
            definition=definition,
            reference_date=REFERENCE,
            horizon_months=6,
            completions=(done,),
        )

        # April and May steps, each shifted by +30 days
        assert [e.scheduled_date for e in entries[1:]] == [date(2025, 5, 1), date(2025, 5, 31)]

    def test_expected_amount_is_current_amount(self, generator):
        """Projections carry today's amount; placeholders keep their own."""
        definition = make_definition(amount=Decimal("1200"))
        done = OccurrenceSnapshot(
            id=uuid4(),
            definition_id=definition.id,
            scheduled_date=date(2025, 1, 15),
            expected_amount=Decimal("1000"),
            status=OccurrenceStatus.COMPLETED,
            actual_date=date(2025, 1, 15),
            actual_amount=Decimal("1000"),
        )

        entries = generator.generate(
            definition=definition,
            reference_date=REFERENCE,
            horizon_months=3,
            completions=(done,),
        )

        assert entries[0].expected_amount == Decimal("1000")
        assert all(e.expected_amount == Decimal("1200") for e in entries[1:])


class TestTrace:

    def test_engine_trace_emitted(self, generator, captured_logs):
        generator.generate(
            definition=make_definition(), reference_date=REFERENCE, horizon_months=2
        )

        traces = [r for r in captured_logs() if r["message"] == "OBLIGATION_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "schedule"
        assert len(traces[0]["input_fingerprint"]) == 16

    def test_fingerprint_stable_for_same_input(self, generator, captured_logs):
        definition = make_definition()
        for _ in range(2):
            generator.generate(
                definition=definition, reference_date=REFERENCE, horizon_months=2
            )

        fingerprints = {
            r["input_fingerprint"]
            for r in captured_logs()
            if r["message"] == "OBLIGATION_ENGINE_TRACE"
        }
        assert len(fingerprints) == 1
