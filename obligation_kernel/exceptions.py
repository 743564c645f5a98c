"""
Typed Exception Hierarchy for the Obligation Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (store layer, CLI, tests) must be able to react to failures without
parsing message strings.  Every exception therefore:
  1. Has its own class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, stable)
  3. Carries structured DATA (field errors, identifiers)

Example:
    try:
        service.create_definition(payload)
    except ValidationError as e:
        for err in e.field_errors:
            form.mark(err.field, err.message)
    except ReferenceNotFoundError as e:
        banner(f"{e.reference_type} {e.reference_id} no longer exists")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ObligationError (base)
    |
    +-- ValidationError             field validation, all errors collected
    |
    +-- ReferenceNotFoundError      referenced category / transaction missing
    |
    +-- LookupFailedError
    |   +-- DefinitionNotFoundError
    |   +-- OccurrenceNotFoundError
    |
    +-- ScheduleError
        +-- InvalidHorizonError
        +-- InvalidRecurrenceError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                     | When Raised
-------------------------|---------------------------------------------------
VALIDATION_FAILED        | One or more input fields are invalid
REFERENCE_NOT_FOUND      | Category or ledger transaction id does not exist
DEFINITION_NOT_FOUND     | Definition id does not exist
OCCURRENCE_NOT_FOUND     | Occurrence id does not exist
INVALID_HORIZON          | Negative horizon passed to synchronization
INVALID_RECURRENCE       | Persisted definition has a non-positive interval

Field-level codes carried by ``ValidationError.field_errors``:

    NAME_REQUIRED, AMOUNT_NOT_POSITIVE, INTERVAL_NOT_POSITIVE,
    LEAD_TIME_NEGATIVE, CUSTOM_AMOUNT_REQUIRED, CUSTOM_AMOUNT_NOT_POSITIVE,
    CUSTOM_AMOUNT_NOT_ALLOWED, END_BEFORE_START, ACTUAL_DATE_REQUIRED,
    ACTUAL_AMOUNT_REQUIRED, ACTUAL_AMOUNT_NOT_POSITIVE,
    ACTUAL_DATE_OUT_OF_RANGE

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Referential failures (ReferenceNotFoundError) are NOT a subclass of
   ValidationError.  Callers render them differently (a stale picker vs. a
   bad form field) even though both block the mutation identically.  A
   missing reference alone raises ReferenceNotFoundError; together with
   field errors it is carried in ``ValidationError.reference_errors``.

2. Nothing in the engine is retryable: engines perform no I/O.  There is no
   ConcurrencyError because per-definition serialization is enforced by
   locking rather than detected optimistically.
"""

from __future__ import annotations

from dataclasses import dataclass


class ObligationError(Exception):
    """
    Base exception for all obligation kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "OBLIGATION_ERROR"


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""

    field: str
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ValidationError(ObligationError):
    """
    Input failed field validation.

    All problems found are collected into ``field_errors``; validation never
    stops at the first failure.  Referential failures found in the same pass
    travel along in ``reference_errors`` so the caller sees everything at
    once.
    """

    code: str = "VALIDATION_FAILED"

    def __init__(
        self,
        field_errors: list[FieldError] | tuple[FieldError, ...],
        reference_errors: list[ReferenceNotFoundError]
        | tuple[ReferenceNotFoundError, ...] = (),
    ):
        self.field_errors = tuple(field_errors)
        self.reference_errors = tuple(reference_errors)
        problems = [str(e) for e in self.field_errors]
        problems.extend(str(e) for e in self.reference_errors)
        super().__init__(
            f"Validation failed with {len(problems)} error(s): {'; '.join(problems)}"
        )

    @property
    def field_codes(self) -> tuple[str, ...]:
        return tuple(e.code for e in self.field_errors)

    @property
    def missing_references(self) -> tuple[str, ...]:
        return tuple(e.reference_type for e in self.reference_errors)


class ReferenceNotFoundError(ObligationError):
    """A referenced entity (category, ledger transaction) does not exist."""

    code: str = "REFERENCE_NOT_FOUND"

    def __init__(self, reference_type: str, reference_id: str):
        self.reference_type = reference_type
        self.reference_id = reference_id
        super().__init__(f"{reference_type} not found: {reference_id}")


# Lookup failures


class LookupFailedError(ObligationError):
    """Base exception for missing primary entities."""

    code: str = "LOOKUP_FAILED"


class DefinitionNotFoundError(LookupFailedError):
    """Recurrence definition with given ID was not found."""

    code: str = "DEFINITION_NOT_FOUND"

    def __init__(self, definition_id: str):
        self.definition_id = definition_id
        super().__init__(f"Definition not found: {definition_id}")


class OccurrenceNotFoundError(LookupFailedError):
    """Occurrence with given ID was not found."""

    code: str = "OCCURRENCE_NOT_FOUND"

    def __init__(self, occurrence_id: str):
        self.occurrence_id = occurrence_id
        super().__init__(f"Occurrence not found: {occurrence_id}")


# Scheduling failures


class ScheduleError(ObligationError):
    """Base exception for schedule generation errors."""

    code: str = "SCHEDULE_ERROR"


class InvalidHorizonError(ScheduleError):
    """Horizon must be zero or more months."""

    code: str = "INVALID_HORIZON"

    def __init__(self, horizon_months: int):
        self.horizon_months = horizon_months
        super().__init__(f"Horizon must be >= 0 months, got {horizon_months}")


class InvalidRecurrenceError(ScheduleError):
    """Stored definition has a recurrence interval that cannot be scheduled."""

    code: str = "INVALID_RECURRENCE"

    def __init__(self, definition_id: str, interval_months: int):
        self.definition_id = definition_id
        self.interval_months = interval_months
        super().__init__(
            f"Definition {definition_id} has invalid interval {interval_months}"
        )
