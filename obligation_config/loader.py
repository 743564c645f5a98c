"""
Configuration Loader (``obligation_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen dataclasses of
``obligation_config.schema``.  Services obtain settings through
``obligation_config.get_active_config()``, not from this module.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Decimal settings are parsed from their string form; floats never reach
  the engines.
* Out-of-range values raise ``ValueError``; unknown keys are rejected.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values or unknown keys  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from obligation_config.schema import (
    DetectionSettings,
    EngineSettings,
    ReconciliationSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML value must be a mapping")
    return data


def parse_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{name}: expected a decimal, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name}: expected a decimal, got {value!r}") from exc


def parse_int(value: Any, name: str, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name}: expected an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{name}: must be >= {minimum}, got {value}")
    return value


def _check_keys(data: dict[str, Any], allowed: set[str], section: str) -> None:
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"{section}: unknown setting(s) {sorted(unknown)}")


def parse_reconciliation(data: dict[str, Any]) -> ReconciliationSettings:
    """Parse the ``reconciliation`` section, falling back to defaults per key."""
    defaults = ReconciliationSettings()
    _check_keys(data, set(ReconciliationSettings.__dataclass_fields__), "reconciliation")
    settings = ReconciliationSettings(
        window_days=parse_int(
            data.get("window_days", defaults.window_days), "reconciliation.window_days", 1
        ),
        candidate_limit=parse_int(
            data.get("candidate_limit", defaults.candidate_limit),
            "reconciliation.candidate_limit",
            1,
        ),
        max_date_drift_days=parse_int(
            data.get("max_date_drift_days", defaults.max_date_drift_days),
            "reconciliation.max_date_drift_days",
        ),
        amount_weight=parse_decimal(
            data.get("amount_weight", defaults.amount_weight), "reconciliation.amount_weight"
        ),
        date_weight=parse_decimal(
            data.get("date_weight", defaults.date_weight), "reconciliation.date_weight"
        ),
        label_weight=parse_decimal(
            data.get("label_weight", defaults.label_weight), "reconciliation.label_weight"
        ),
        min_score=parse_decimal(
            data.get("min_score", defaults.min_score), "reconciliation.min_score"
        ),
        amount_threshold=parse_decimal(
            data.get("amount_threshold", defaults.amount_threshold),
            "reconciliation.amount_threshold",
        ),
    )
    for name in ("amount_weight", "date_weight", "label_weight"):
        if getattr(settings, name) < 0:
            raise ValueError(f"reconciliation.{name}: must be >= 0")
    return settings


def parse_detection(data: dict[str, Any]) -> DetectionSettings:
    """Parse the ``detection`` section, falling back to defaults per key."""
    defaults = DetectionSettings()
    _check_keys(data, set(DetectionSettings.__dataclass_fields__), "detection")
    settings = DetectionSettings(
        minimum_occurrences=parse_int(
            data.get("minimum_occurrences", defaults.minimum_occurrences),
            "detection.minimum_occurrences",
            2,
        ),
        date_tolerance_days=parse_int(
            data.get("date_tolerance_days", defaults.date_tolerance_days),
            "detection.date_tolerance_days",
        ),
        amount_variation_tolerance=parse_decimal(
            data.get("amount_variation_tolerance", defaults.amount_variation_tolerance),
            "detection.amount_variation_tolerance",
        ),
        title_similarity=parse_decimal(
            data.get("title_similarity", defaults.title_similarity),
            "detection.title_similarity",
        ),
    )
    if not Decimal("0") <= settings.title_similarity <= Decimal("1"):
        raise ValueError("detection.title_similarity: must be in [0, 1]")
    return settings


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse a complete ``EngineSettings`` from a dict.

    Postconditions:
        - ``checksum`` is the SHA-256 of the canonical input dict.
    """
    defaults = EngineSettings()
    allowed = set(EngineSettings.__dataclass_fields__) - {"checksum"}
    _check_keys(data, allowed, "settings")
    return EngineSettings(
        default_horizon_months=parse_int(
            data.get("default_horizon_months", defaults.default_horizon_months),
            "default_horizon_months",
        ),
        max_schedule_steps=parse_int(
            data.get("max_schedule_steps", defaults.max_schedule_steps),
            "max_schedule_steps",
            1,
        ),
        amount_scale=parse_int(data.get("amount_scale", defaults.amount_scale), "amount_scale"),
        reconciliation=parse_reconciliation(data.get("reconciliation") or {}),
        detection=parse_detection(data.get("detection") or {}),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
