"""
Partner ledger projection.

Merges a partner's profit shares from closed snapshots, the purchases
the partner funded, and the partner's withdrawals from the venue into
one date-descending statement.  Read-only: nothing here is persisted,
and row ids are derived from their sources so a statement rebuilt from
the same inputs is identical.
"""

from __future__ import annotations

from collections.abc import Iterable

from venue_kernel.domain.models import (
    DebtItem,
    InventorySnapshot,
    PartnerLedgerItem,
    PartnerRoster,
    PartnerShare,
    Purchase,
)
from venue_kernel.domain.values import (
    ZERO,
    Channel,
    FundingSource,
    PartnerLedgerItemType,
)
from venue_kernel.logging_config import get_logger

logger = get_logger("engines.partner_ledger")


def _find_share(
    snapshot: InventorySnapshot, partner_id: str, display_name: str | None
) -> PartnerShare | None:
    for share in snapshot.partners:
        if share.partner_id == partner_id:
            return share
    # Legacy snapshots identify partners by display name only.
    if display_name is not None:
        for share in snapshot.partners:
            if not share.partner_id and share.name == display_name:
                return share
    return None


def generate_partner_ledger(
    partner_id: str,
    snapshots: Iterable[InventorySnapshot],
    purchases: Iterable[Purchase],
    debt_items: Iterable[DebtItem],
    roster: PartnerRoster,
) -> list[PartnerLedgerItem]:
    """Statement rows for ``partner_id``, newest first."""
    partner = roster.get(partner_id)
    display_name = partner.name if partner is not None else None
    items: list[PartnerLedgerItem] = []

    for snapshot in snapshots:
        share = _find_share(snapshot, partner_id, display_name)
        if share is None:
            continue
        for channel, amount, label in (
            (Channel.CASH, share.cash_share_available, "cash"),
            (Channel.BANK, share.bank_share_available, "bank"),
        ):
            if amount > ZERO:
                items.append(PartnerLedgerItem(
                    id=f"{snapshot.id}:{partner_id}:{label}",
                    date=snapshot.period_end,
                    type=PartnerLedgerItemType.PROFIT_SHARE,
                    channel=channel,
                    amount=amount,
                    description=f"Profit share ({label}) - {snapshot.archive_id}",
                    ref_id=snapshot.id,
                ))

    for purchase in purchases:
        if purchase.funding_source != FundingSource.PARTNER or purchase.buyer != partner_id:
            continue
        items.append(PartnerLedgerItem(
            id=purchase.id,
            date=purchase.date,
            type=PartnerLedgerItemType.PURCHASE_REIMBURSEMENT,
            channel=purchase.payment_method,
            amount=purchase.amount,
            description=f"Purchase for the venue: {purchase.name}",
            ref_id=purchase.id,
        ))

    for debt in debt_items:
        if debt.partner_id != partner_id or not debt.is_place_debt:
            continue
        items.append(PartnerLedgerItem(
            id=debt.id,
            date=debt.date,
            type=PartnerLedgerItemType.WITHDRAWAL,
            channel=debt.debt_channel,
            amount=-abs(debt.amount),
            description=f"Withdrawal: {debt.note}",
            ref_id=debt.id,
        ))

    items.sort(key=lambda item: item.date, reverse=True)
    logger.debug("partner_ledger_projected", extra={
        "partner_id": partner_id,
        "item_count": len(items),
    })
    return items
