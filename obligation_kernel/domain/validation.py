"""
Field validation for definition and completion inputs.

Pure checks with no I/O.  Every function returns the full list of
``FieldError`` found; callers raise ``ValidationError`` when it is non-empty.
Referential checks (category, transaction existence) need the database and
live in the service layer.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from obligation_kernel.domain.dtos import DefinitionInput
from obligation_kernel.domain.values import SavingStrategy
from obligation_kernel.exceptions import FieldError

DEFAULT_MAX_DATE_DRIFT_DAYS = 90


def validate_definition_input(data: DefinitionInput) -> list[FieldError]:
    errors: list[FieldError] = []

    if not data.name or not data.name.strip():
        errors.append(FieldError("name", "NAME_REQUIRED", "Name is required"))

    if data.amount is None or data.amount <= 0:
        errors.append(
            FieldError("amount", "AMOUNT_NOT_POSITIVE", "Amount must be greater than 0")
        )

    if data.interval_months is None or data.interval_months <= 0:
        errors.append(
            FieldError(
                "interval_months",
                "INTERVAL_NOT_POSITIVE",
                "Recurrence interval must be at least 1 month",
            )
        )

    if data.lead_time_months is None or data.lead_time_months < 0:
        errors.append(
            FieldError(
                "lead_time_months",
                "LEAD_TIME_NEGATIVE",
                "Lead time must be 0 or more months",
            )
        )

    if data.saving_strategy == SavingStrategy.CUSTOM_MONTHLY:
        if data.custom_monthly_amount is None:
            errors.append(
                FieldError(
                    "custom_monthly_amount",
                    "CUSTOM_AMOUNT_REQUIRED",
                    "Custom monthly amount is required for the custom strategy",
                )
            )
        elif data.custom_monthly_amount <= 0:
            errors.append(
                FieldError(
                    "custom_monthly_amount",
                    "CUSTOM_AMOUNT_NOT_POSITIVE",
                    "Custom monthly amount must be greater than 0",
                )
            )
    elif data.custom_monthly_amount is not None:
        errors.append(
            FieldError(
                "custom_monthly_amount",
                "CUSTOM_AMOUNT_NOT_ALLOWED",
                "Custom monthly amount is only allowed with the custom strategy",
            )
        )

    if data.end_date is not None and data.end_date < data.anchor_date:
        errors.append(
            FieldError(
                "end_date",
                "END_BEFORE_START",
                "End date must be on or after the first occurrence date",
            )
        )

    return errors


def validate_completion(
    scheduled_date: date,
    actual_date: date | None,
    actual_amount: Decimal | None,
    max_date_drift_days: int = DEFAULT_MAX_DATE_DRIFT_DAYS,
) -> list[FieldError]:
    """Check the actual date and amount supplied when completing an occurrence."""
    errors: list[FieldError] = []

    if actual_date is None:
        errors.append(
            FieldError("actual_date", "ACTUAL_DATE_REQUIRED", "Actual date is required")
        )
    elif abs((actual_date - scheduled_date).days) > max_date_drift_days:
        errors.append(
            FieldError(
                "actual_date",
                "ACTUAL_DATE_OUT_OF_RANGE",
                f"Actual date must be within {max_date_drift_days} days "
                f"of the scheduled date {scheduled_date.isoformat()}",
            )
        )

    if actual_amount is None:
        errors.append(
            FieldError(
                "actual_amount", "ACTUAL_AMOUNT_REQUIRED", "Actual amount is required"
            )
        )
    elif actual_amount <= 0:
        errors.append(
            FieldError(
                "actual_amount",
                "ACTUAL_AMOUNT_NOT_POSITIVE",
                "Actual amount must be greater than 0",
            )
        )

    return errors
