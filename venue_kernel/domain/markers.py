"""
Description markers that classify ledger entries.

Two kinds of entry are recognised by their description rather than by
their type, because the venue's historical ledger carries no dedicated
flag for them:

* a partner deposit that fronts money for goods ("purchase deposit") is
  not new cash entering the till;
* an operational expense written by plan accrual ("automatic") is a
  virtual marker, not a real cash movement.

Entries the engine writes itself always carry the configured keyword,
so both historical and new entries classify the same way.
"""

from __future__ import annotations

from dataclasses import dataclass

from venue_kernel.domain.models import LedgerEntry
from venue_kernel.domain.values import Direction, TransactionType


@dataclass(frozen=True)
class DescriptionMarkers:
    purchase_keywords: tuple[str, ...] = ("شراء", "بضاعة", "purchase", "goods")
    automatic_keyword: str = "تلقائي"

    def __post_init__(self) -> None:
        if not self.purchase_keywords:
            raise ValueError("at least one purchase keyword is required")
        if not self.automatic_keyword:
            raise ValueError("automatic_keyword must not be empty")

    def mentions_purchase(self, description: str) -> bool:
        text = description.casefold()
        return any(k.casefold() in text for k in self.purchase_keywords)

    def mentions_automatic(self, description: str) -> bool:
        return self.automatic_keyword.casefold() in description.casefold()

    def automatic_description(self, subject: str) -> str:
        return f"{self.automatic_keyword}: {subject}"


DEFAULT_MARKERS = DescriptionMarkers()


def is_partner_purchase_deposit(
    entry: LedgerEntry, markers: DescriptionMarkers = DEFAULT_MARKERS
) -> bool:
    """Partner deposit fronting money for goods."""
    return (
        entry.type == TransactionType.PARTNER_DEPOSIT
        and entry.direction == Direction.IN
        and markers.mentions_purchase(entry.description)
    )


def is_automatic_expense(
    entry: LedgerEntry, markers: DescriptionMarkers = DEFAULT_MARKERS
) -> bool:
    """Accrual-generated operational expense."""
    return (
        entry.type == TransactionType.EXPENSE_OPERATIONAL
        and markers.mentions_automatic(entry.description)
    )
