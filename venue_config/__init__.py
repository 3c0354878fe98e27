"""
venue_config -- single public entrypoint for venue configuration.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``get_active_config()``: the pricing tariff, the partner roster and
    the description markers, loaded from YAML into frozen dataclasses.

Architecture position:
    Configuration -- sits above ``venue_kernel``.  Neither the kernel
    nor the engines import this package; callers pass the loaded pieces
    (``config.pricing``, ``config.roster``, ``config.markers``) into the
    engines explicitly.

Invariants enforced:
    - The roster is validated on load (percentages sum to 100).
    - Deterministic identity: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``KeyError`` -- a required key is missing.
    - ``InvalidRosterError`` -- the roster does not sum to 100.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``VENUE_CONFIG_TRACE`` log entry with the config_id, version,
    checksum and roster size.
"""

from __future__ import annotations

import os
from pathlib import Path

from venue_config.loader import load_configuration
from venue_config.schema import VenueConfiguration
from venue_kernel.logging_config import get_logger

_logger = get_logger("config")

CONFIG_PATH_ENV = "VENUE_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "venue.yaml"


def get_active_config(path: Path | str | None = None) -> VenueConfiguration:
    """
    Load the active venue configuration.

    Resolution order: the ``path`` argument, then the ``VENUE_CONFIG_PATH``
    environment variable, then the packaged default file.  Nothing is
    cached; callers hold the returned object for as long as they need it.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        KeyError: If a required key is missing.
        InvalidRosterError: If the roster is invalid.
    """
    resolved = Path(path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    config = load_configuration(resolved)

    _logger.info(
        "VENUE_CONFIG_TRACE",
        extra={
            "trace_type": "VENUE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(resolved),
            "partner_count": len(config.roster),
            "dev_percent": str(config.pricing.dev_percent),
        },
    )
    return config


__all__ = [
    "CONFIG_PATH_ENV",
    "DEFAULT_CONFIG_PATH",
    "VenueConfiguration",
    "get_active_config",
]
