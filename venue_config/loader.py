"""
Configuration Loader (``venue_config.loader``).

Responsibility
--------------
Loads the venue YAML file and parses it into the frozen types of
``venue_config.schema``.  Callers obtain configuration through
``venue_config.get_active_config()``; this module is the tooling behind it.

Invariants enforced
-------------------
* Required keys are never silently defaulted: a missing key raises
  ``KeyError``.
* Money values are parsed into ``Decimal`` through ``str``; YAML floats
  never reach arithmetic.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
* Roster percentages not summing to 100  -> ``InvalidRosterError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from venue_config.schema import VenueConfiguration
from venue_kernel.domain.markers import DescriptionMarkers
from venue_kernel.domain.models import Partner, PartnerRoster, PricingConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_money(value: Any) -> Decimal:
    """Parse a money value from YAML (string, int or float)."""
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse amount from {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Cannot parse amount from {value!r}") from e


def parse_pricing(data: dict[str, Any]) -> PricingConfig:
    """Parse the tariff. Place costs and developer percent default to 0."""
    return PricingConfig(
        laptop_rate=parse_money(data["laptop_rate"]),
        mobile_rate=parse_money(data["mobile_rate"]),
        laptop_place_cost=parse_money(data.get("laptop_place_cost", 0)),
        mobile_place_cost=parse_money(data.get("mobile_place_cost", 0)),
        dev_percent=parse_money(data.get("dev_percent", 0)),
    )


def parse_roster(items: list[dict[str, Any]]) -> PartnerRoster:
    """
    Parse the partner list.

    Raises:
        InvalidRosterError: if percentages do not sum to 100 or ids repeat.
    """
    return PartnerRoster(
        partners=tuple(
            Partner(
                id=str(item["id"]),
                name=str(item["name"]),
                percent=parse_money(item["percent"]),
            )
            for item in items
        )
    )


def parse_markers(data: dict[str, Any] | None) -> DescriptionMarkers:
    """Parse description markers; an absent section keeps the defaults."""
    if not data:
        return DescriptionMarkers()
    defaults = DescriptionMarkers()
    keywords = data.get("purchase_keywords")
    return DescriptionMarkers(
        purchase_keywords=(
            tuple(str(k) for k in keywords) if keywords else defaults.purchase_keywords
        ),
        automatic_keyword=str(data.get("automatic_keyword", defaults.automatic_keyword)),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str, ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_configuration(data: dict[str, Any]) -> VenueConfiguration:
    """Parse a whole configuration document."""
    return VenueConfiguration(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        currency_symbol=str(data.get("currency_symbol", "₪")),
        pricing=parse_pricing(data["pricing"]),
        roster=parse_roster(data["partners"]),
        markers=parse_markers(data.get("markers")),
        checksum=compute_checksum(data),
    )


def load_configuration(path: Path) -> VenueConfiguration:
    """Load and parse a configuration file."""
    return parse_configuration(load_yaml_file(path))
