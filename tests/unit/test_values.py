"""
Tests for domain value objects, snapshots and exceptions.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from obligation_kernel.domain.clock import DeterministicClock
from obligation_kernel.domain.dtos import BalanceSnapshot, OccurrenceSnapshot
from obligation_kernel.domain.values import (
    OccurrenceStatus,
    Weekday,
    YearMonth,
    quantize_amount,
    to_decimal,
)
from obligation_kernel.exceptions import (
    DefinitionNotFoundError,
    FieldError,
    InvalidHorizonError,
    LookupFailedError,
    ObligationError,
    ReferenceNotFoundError,
    ValidationError,
)


class TestYearMonth:

    def test_plus_months_across_years(self):
        assert YearMonth(2025, 11).plus_months(3) == YearMonth(2026, 2)
        assert YearMonth(2025, 1).plus_months(-1) == YearMonth(2024, 12)

    def test_ordering(self):
        assert YearMonth(2024, 12) < YearMonth(2025, 1)

    def test_months_until(self):
        assert YearMonth(2025, 1).months_until(YearMonth(2026, 3)) == 14

    def test_leap_february(self):
        assert YearMonth(2024, 2).last_day == date(2024, 2, 29)
        assert YearMonth(2025, 2).last_day == date(2025, 2, 28)

    def test_clamp_day(self):
        assert YearMonth(2025, 4).clamp_day(31) == date(2025, 4, 30)

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            YearMonth(2025, 13)

    def test_str(self):
        assert str(YearMonth(2025, 3)) == "2025-03"


class TestAmounts:

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            to_decimal(1.5)

    def test_str_and_int_accepted(self):
        assert to_decimal("12.50") == Decimal("12.50")
        assert to_decimal(3) == Decimal("3")

    def test_quantize_half_up(self):
        assert quantize_amount(Decimal("2.345")) == Decimal("2.35")


class TestWeekday:

    def test_weekend(self):
        assert Weekday.SATURDAY.is_weekend
        assert not Weekday.FRIDAY.is_weekend


class TestSnapshots:

    def test_completed_requires_actuals(self):
        with pytest.raises(ValueError):
            OccurrenceSnapshot(
                id=uuid4(),
                definition_id=uuid4(),
                scheduled_date=date(2025, 1, 1),
                expected_amount=Decimal("10"),
                status=OccurrenceStatus.COMPLETED,
            )

    def test_open_must_not_carry_actuals(self):
        with pytest.raises(ValueError):
            OccurrenceSnapshot(
                id=uuid4(),
                definition_id=uuid4(),
                scheduled_date=date(2025, 1, 1),
                expected_amount=Decimal("10"),
                status=OccurrenceStatus.PLANNED,
                actual_amount=Decimal("10"),
            )

    def test_overdue(self):
        occurrence = OccurrenceSnapshot(
            id=uuid4(),
            definition_id=uuid4(),
            scheduled_date=date(2025, 1, 10),
            expected_amount=Decimal("10"),
            status=OccurrenceStatus.SAVING,
        )
        assert occurrence.is_overdue(date(2025, 1, 11))
        assert not occurrence.is_overdue(date(2025, 1, 10))
        assert occurrence.remaining_amount == Decimal("10")

    def test_balance_is_derived(self):
        balance = BalanceSnapshot(uuid4(), Decimal("100"), Decimal("130"))
        assert balance.balance == Decimal("-30")
        assert balance.is_shortfall


class TestDeterministicClock:

    def test_set_date_and_advance(self):
        clock = DeterministicClock(datetime(2025, 1, 1, 12, tzinfo=UTC))
        clock.advance_days(31)
        assert clock.today() == date(2025, 2, 1)

        clock.set_date(date(2025, 6, 30))
        assert clock.now() == datetime(2025, 6, 30, 12, tzinfo=UTC)


class TestExceptions:

    def test_codes(self):
        assert ValidationError([FieldError("name", "NAME_REQUIRED", "x")]).code == "VALIDATION_FAILED"
        assert ReferenceNotFoundError("category", "c1").code == "REFERENCE_NOT_FOUND"
        assert InvalidHorizonError(-1).code == "INVALID_HORIZON"

    def test_hierarchy(self):
        error = DefinitionNotFoundError("abc")
        assert isinstance(error, LookupFailedError)
        assert isinstance(error, ObligationError)
        assert not isinstance(ReferenceNotFoundError("transaction", "t"), LookupFailedError)

    def test_field_codes(self):
        error = ValidationError(
            [
                FieldError("name", "NAME_REQUIRED", "Name is required"),
                FieldError("amount", "AMOUNT_NOT_POSITIVE", "Amount must be greater than 0"),
            ]
        )
        assert error.field_codes == ("NAME_REQUIRED", "AMOUNT_NOT_POSITIVE")
        assert "Name is required" in str(error)
        assert error.reference_errors == ()

    def test_reference_errors_carried_alongside(self):
        error = ValidationError(
            [FieldError("name", "NAME_REQUIRED", "Name is required")],
            [ReferenceNotFoundError("category", "c1")],
        )
        assert error.field_codes == ("NAME_REQUIRED",)
        assert error.missing_references == ("category",)
        assert "category not found: c1" in str(error)
        assert "2 error(s)" in str(error)
