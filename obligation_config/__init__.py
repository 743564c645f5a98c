"""
obligation_config -- single public entrypoint for engine settings.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``EngineSettings`` by injection; no other component reads
    configuration files.

Architecture position:
    Configuration -- sits above ``obligation_kernel`` and below
    ``obligation_services``.  The kernel and the engines MUST NEVER import
    from ``obligation_config``; engines take plain parameters.

Failure modes:
    - ``FileNotFoundError`` -- the supplied settings file does not exist.
    - ``ValueError`` -- malformed or out-of-range settings.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``OBLIGATION_CONFIG_TRACE`` log entry carrying the settings checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from obligation_config.loader import load_yaml_file, parse_settings
from obligation_config.schema import (
    DetectionSettings,
    EngineSettings,
    ReconciliationSettings,
)

_logger = logging.getLogger("obligation_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | None = None) -> EngineSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override settings file.  Defaults to the packaged
            ``defaults.yaml``.

    Returns:
        Frozen ``EngineSettings``.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ValueError: If a setting is malformed or out of range.
    """
    path = config_path or _DEFAULT_CONFIG_PATH
    settings = parse_settings(load_yaml_file(path))

    _logger.info(
        "OBLIGATION_CONFIG_TRACE",
        extra={
            "trace_type": "OBLIGATION_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": settings.checksum,
            "default_horizon_months": settings.default_horizon_months,
            "reconciliation_window_days": settings.reconciliation.window_days,
        },
    )

    return settings


__all__ = [
    "DetectionSettings",
    "EngineSettings",
    "ReconciliationSettings",
    "get_active_config",
]
