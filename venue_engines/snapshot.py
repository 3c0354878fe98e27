"""
Module: venue_engines.snapshot
Responsibility:
    Close a date range into an immutable ``InventorySnapshot``: cash and
    bank flows, direct and operational costs, gross profit, developer
    cut, and the allocation of net profit across the partner roster.
    Also guards against re-closing a range and previews an open day.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The snapshot is
    returned to the caller who persists it and the ``PeriodLock`` that
    closes it.

Invariants enforced:
    - Entries are in the period by ``date_key``; records by end-time day.
    - Automatic operational expenses are excluded from cash/bank outflow
      (they are accrual markers) but still count as operational expense.
    - Developer cut only on positive gross profit.
    - Base shares are never negative and sum to net profit when the
      roster sums to 100 and net profit is positive.
    - Partner figures are kept at full precision.

Failure modes:
    - ValueError when ``start`` is after ``end``.
    - SnapshotPeriodOverlapError from ``ensure_period_not_snapshotted``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from venue_engines.billing import calculate_dev_cut
from venue_engines.tracer import traced_engine
from venue_kernel.domain.clock import Clock, SystemClock
from venue_kernel.domain.dates import month_key
from venue_kernel.domain.markers import (
    DEFAULT_MARKERS,
    DescriptionMarkers,
    is_automatic_expense,
    is_partner_purchase_deposit,
)
from venue_kernel.domain.models import (
    DayCycle,
    InventorySnapshot,
    LedgerEntry,
    Partner,
    PartnerRoster,
    PartnerShare,
    PeriodLock,
    PricingConfig,
    SessionRecord,
)
from venue_kernel.domain.values import (
    EXPENSE_TYPES,
    HUNDRED,
    INCOME_TYPES,
    ZERO,
    Channel,
    Direction,
    TransactionType,
    new_id,
    to_decimal,
)
from venue_kernel.exceptions import SnapshotPeriodOverlapError
from venue_kernel.logging_config import get_logger

logger = get_logger("engines.snapshot")

_EVEN_SPLIT = Decimal("0.5")
PREVIEW_CYCLE_ID = "PREVIEW"


def _sum(entries: Iterable[LedgerEntry]) -> Decimal:
    return sum((e.amount for e in entries), ZERO)


def _partner_share(
    partner: Partner,
    period: Sequence[LedgerEntry],
    net_profit: Decimal,
    net_cash: Decimal,
    net_bank: Decimal,
    markers: DescriptionMarkers,
) -> PartnerShare:
    base = max(ZERO, net_profit * partner.percent / HUNDRED)

    own = [e for e in period if e.partner_id == partner.id]
    purchases = _sum(e for e in own if is_partner_purchase_deposit(e, markers))
    withdrawals = _sum(e for e in own if e.type == TransactionType.PARTNER_WITHDRAWAL)

    # Purchases and withdrawals are assumed to move through cash.
    ops_net_cash = net_cash + purchases + withdrawals
    ops_net_bank = net_bank
    total_ops_net = ops_net_cash + ops_net_bank
    if total_ops_net > ZERO:
        cash_ratio = max(ZERO, ops_net_cash) / total_ops_net
    else:
        cash_ratio = _EVEN_SPLIT
    bank_ratio = 1 - cash_ratio

    cash_available = base * cash_ratio
    bank_available = base * bank_ratio
    payout_cash = cash_available + purchases - withdrawals
    payout_bank = bank_available

    return PartnerShare(
        partner_id=partner.id,
        name=partner.name,
        share_percent=partner.percent / HUNDRED,
        base_share=base,
        cash_share_available=cash_available,
        bank_share_available=bank_available,
        purchases_reimbursement=purchases,
        place_debt_deducted=withdrawals,
        final_payout_cash=payout_cash,
        final_payout_bank=payout_bank,
        final_payout_total=payout_cash + payout_bank,
    )


@traced_engine("snapshot", "1.0", fingerprint_fields=("start", "end", "electricity_cost"))
def build_period_snapshot(
    ledger: Sequence[LedgerEntry],
    records: Sequence[SessionRecord],
    start: date,
    end: date,
    pricing: PricingConfig,
    roster: PartnerRoster,
    electricity_cost: Decimal | int | str = ZERO,
    markers: DescriptionMarkers = DEFAULT_MARKERS,
    clock: Clock | None = None,
) -> InventorySnapshot:
    """
    Build the closing snapshot of ``[start, end]`` inclusive.

    Args:
        ledger: Full ledger; filtered here by ``date_key``.
        records: Finalized session records; filtered by end-time day.
        start: First day of the period.
        end: Last day of the period.
        pricing: Supplies the developer percent snapshotted on the result.
        roster: Partners sharing the net profit.
        electricity_cost: Extra operational expense for the period.
        markers: Description markers for purchase and automatic entries.
        clock: Stamps ``archive_date`` and ``created_at``.

    Returns:
        A new InventorySnapshot.  Nothing is persisted.

    Raises:
        ValueError: If ``start`` is after ``end``.
    """
    if start > end:
        raise ValueError(f"Snapshot period start {start} is after end {end}")
    clock = clock or SystemClock()
    electricity = to_decimal(electricity_cost)

    period = [e for e in ledger if start <= e.date_key <= end]

    cash_in = _sum(
        e for e in period if e.channel == Channel.CASH and e.direction == Direction.IN
    )
    bank_in = _sum(
        e for e in period
        if e.channel == Channel.BANK and e.direction == Direction.IN and e.is_confirmed_transfer
    )
    cash_out = _sum(
        e for e in period
        if e.channel == Channel.CASH
        and e.direction == Direction.OUT
        and not is_automatic_expense(e, markers)
    )
    bank_out = _sum(
        e for e in period
        if e.channel == Channel.BANK
        and e.direction == Direction.OUT
        and not is_automatic_expense(e, markers)
    )
    net_cash = cash_in - cash_out
    net_bank = bank_in - bank_out

    period_records = [r for r in records if start <= r.end_date <= end]
    place_cost = sum((r.financials.place_cost for r in period_records), ZERO)
    drinks_cost = sum((r.financials.drinks_cost for r in period_records), ZERO)
    cards_cost = sum((r.financials.internet_cards_cost for r in period_records), ZERO)
    direct_costs = place_cost + drinks_cost + cards_cost

    operating_expenses = (
        _sum(e for e in period if e.type in EXPENSE_TYPES) + electricity
    )
    loan_repayments = _sum(e for e in period if e.type == TransactionType.LOAN_REPAYMENT)
    total_invoice = _sum(
        e for e in period
        if e.type in INCOME_TYPES or e.type == TransactionType.DEBT_CREATE
    )

    gross_profit = total_invoice - operating_expenses - loan_repayments - direct_costs
    dev_cut = calculate_dev_cut(gross_profit, pricing.dev_percent)
    net_profit = gross_profit - dev_cut

    partners = tuple(
        _partner_share(p, period, net_profit, net_cash, net_bank, markers) for p in roster
    )

    now = clock.now()
    snapshot = InventorySnapshot(
        id=new_id(),
        archive_id=f"SNAP-{new_id()}",
        archive_date=now,
        period_start=start,
        period_end=end,
        created_at=now,
        total_paid_revenue=cash_in + bank_in,
        total_cash_revenue=cash_in,
        total_bank_revenue=bank_in,
        total_debt_revenue=total_invoice - (cash_in + bank_in),
        total_invoice=total_invoice,
        total_place_cost=place_cost,
        total_drinks_cost=drinks_cost,
        total_cards_cost=cards_cost,
        total_expenses=operating_expenses,
        total_loan_repayments=loan_repayments,
        electricity_cost=electricity,
        total_cash_expenses=cash_out,
        total_bank_expenses=bank_out,
        net_cash_in_place=net_cash,
        net_bank_in_place=net_bank,
        gross_profit=gross_profit,
        dev_cut=dev_cut,
        net_profit_paid=net_profit,
        dev_percent_snapshot=pricing.dev_percent,
        partners=partners,
    )

    logger.info("period_snapshot_built", extra={
        "snapshot_id": snapshot.id,
        "period_start": start.isoformat(),
        "period_end": end.isoformat(),
        "entry_count": len(period),
        "record_count": len(period_records),
        "total_invoice": str(total_invoice),
        "gross_profit": str(gross_profit),
        "dev_cut": str(dev_cut),
        "net_profit_paid": str(net_profit),
    })
    return snapshot


@dataclass(frozen=True)
class DistributionTotals:
    total_cash: Decimal
    total_bank: Decimal


def snapshot_distribution_totals(snapshot: InventorySnapshot) -> DistributionTotals:
    """Cash and bank payouts across all partners of a snapshot."""
    return DistributionTotals(
        total_cash=sum((p.final_payout_cash for p in snapshot.partners), ZERO),
        total_bank=sum((p.final_payout_bank for p in snapshot.partners), ZERO),
    )


def ensure_period_not_snapshotted(
    start: date,
    end: date,
    snapshots: Iterable[InventorySnapshot],
) -> None:
    """
    Refuse to close a range that an existing snapshot already covers.

    Raises:
        SnapshotPeriodOverlapError: naming the first overlapping snapshot.
    """
    for snapshot in snapshots:
        if snapshot.overlaps(start, end):
            logger.warning("snapshot_period_overlap", extra={
                "snapshot_id": snapshot.id,
                "period_start": start.isoformat(),
                "period_end": end.isoformat(),
            })
            raise SnapshotPeriodOverlapError(start.isoformat(), end.isoformat(), snapshot.id)


def period_lock_for(snapshot: InventorySnapshot) -> PeriodLock:
    """The lock that closes everything up to the snapshot's last day."""
    return PeriodLock(locked_until=snapshot.period_end)


def build_day_cycle_preview(
    ledger: Iterable[LedgerEntry],
    start_timestamp: datetime,
    clock: Clock | None = None,
) -> DayCycle:
    """Inflows and created debt from ``start_timestamp`` up to now."""
    clock = clock or SystemClock()
    now = clock.now()
    cycle = [e for e in ledger if start_timestamp <= e.timestamp <= now]

    cash = _sum(e for e in cycle if e.channel == Channel.CASH and e.direction == Direction.IN)
    bank = _sum(e for e in cycle if e.channel == Channel.BANK and e.direction == Direction.IN)
    debt = _sum(e for e in cycle if e.type == TransactionType.DEBT_CREATE)

    day = start_timestamp.date()
    return DayCycle(
        id=PREVIEW_CYCLE_ID,
        date_key=day,
        month_key=month_key(day),
        start_time=start_timestamp,
        end_time=now,
        cash_revenue=cash,
        bank_revenue=bank,
        total_revenue=cash + bank,
        total_debt=debt,
        total_invoice=cash + bank + debt,
        created_at=now,
    )
