"""
EngineSettings schema.

Typed, frozen form of the YAML configuration.  The loader parses YAML into
these types; services and engines receive them by injection and never read
files themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class ReconciliationSettings:
    """Candidate search and scoring parameters."""

    window_days: int = 60
    candidate_limit: int = 12
    max_date_drift_days: int = 90
    amount_weight: Decimal = Decimal("0.5")
    date_weight: Decimal = Decimal("0.3")
    label_weight: Decimal = Decimal("0.2")
    # A candidate is kept when its score reaches min_score, its label
    # matches, or its amount is within amount_threshold of the expected one.
    min_score: Decimal = Decimal("0.2")
    amount_threshold: Decimal = Decimal("5000")


@dataclass(frozen=True)
class DetectionSettings:
    """Recurring-expense detection thresholds."""

    minimum_occurrences: int = 3
    date_tolerance_days: int = 7
    amount_variation_tolerance: Decimal = Decimal("0.1")
    title_similarity: Decimal = Decimal("0.8")


@dataclass(frozen=True)
class EngineSettings:
    """Root configuration object returned by ``get_active_config()``."""

    default_horizon_months: int = 36
    max_schedule_steps: int = 600
    amount_scale: int = 2
    reconciliation: ReconciliationSettings = field(default_factory=ReconciliationSettings)
    detection: DetectionSettings = field(default_factory=DetectionSettings)
    checksum: str = ""
