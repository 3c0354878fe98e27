"""
VenueConfiguration schema.

The runtime configuration artifact: one frozen object carrying the
pricing tariff, the partner roster and the description markers, plus
the identity (id, version, checksum) of the YAML it was loaded from.
The component types themselves are kernel domain types, so engines
receive them without ever importing this package.
"""

from __future__ import annotations

from dataclasses import dataclass

from venue_kernel.domain.markers import DescriptionMarkers
from venue_kernel.domain.models import PartnerRoster, PricingConfig


@dataclass(frozen=True)
class VenueConfiguration:
    """Loaded, validated venue configuration."""

    config_id: str
    version: int
    currency_symbol: str
    pricing: PricingConfig
    roster: PartnerRoster
    markers: DescriptionMarkers
    checksum: str = ""
