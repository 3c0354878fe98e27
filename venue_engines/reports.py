"""
Module: venue_engines.reports
Responsibility:
    Derived read-only views over the ledger and its satellite lists:
    period statistics, treasury and per-account balances, partner
    withdrawal/debt summaries, the monthly cost analysis and the
    expenses page figures.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Every view is a
    re-filtering and summation of entries the caller supplies; nothing
    is cached between calls.

Invariants enforced:
    - Entries are filtered by ``date_key``; records by the calendar day
      of their end time.
    - Purchase deposits never count as cash flow.
    - Bank inflows count toward account totals only when confirmed or
      carrying no transfer status.

Failure modes:
    - ValueError for a custom period whose end precedes its reference day.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from venue_engines.ledger import ledger_balance
from venue_kernel.domain.dates import all_days_of_month, days_in_month, month_bounds, month_key
from venue_kernel.domain.markers import (
    DEFAULT_MARKERS,
    DescriptionMarkers,
    is_partner_purchase_deposit,
)
from venue_kernel.domain.models import (
    AccountStats,
    BankAccount,
    DebtItem,
    LedgerEntry,
    PartnerRoster,
    Purchase,
    SavingPlan,
    SessionRecord,
)
from venue_kernel.domain.values import (
    EXPENSE_TYPES,
    INCOME_TYPES,
    ZERO,
    Channel,
    Direction,
    PeriodKind,
    PlanCategory,
    TransactionType,
)
from venue_kernel.logging_config import get_logger

logger = get_logger("engines.reports")


_ACTOR_LABELS: dict[TransactionType, str] = {
    TransactionType.INCOME_SESSION: "Customer (session)",
    TransactionType.INCOME_PRODUCT: "Customer (products)",
    TransactionType.DEBT_PAYMENT: "Customer (debt payment)",
    TransactionType.DEBT_CREATE: "Customer (debt recorded)",
    TransactionType.EXPENSE_OPERATIONAL: "Operating expenses",
    TransactionType.EXPENSE_PURCHASE: "Purchases for the venue",
    TransactionType.LOAN_RECEIPT: "Lender (loan)",
    TransactionType.LOAN_REPAYMENT: "Lender (repayment)",
    TransactionType.SAVING_DEPOSIT: "Savings fund",
    TransactionType.LIQUIDATION_TO_APP: "App / bank",
}
UNKNOWN_ACTOR = "Unspecified party"


def _sum(entries: Iterable[LedgerEntry]) -> Decimal:
    return sum((e.amount for e in entries), ZERO)


def _of_types(
    entries: Iterable[LedgerEntry], types: Iterable[TransactionType]
) -> list[LedgerEntry]:
    wanted = frozenset(types)
    return [e for e in entries if e.type in wanted]


def _in_range(ledger: Iterable[LedgerEntry], start: date, end: date) -> list[LedgerEntry]:
    return [e for e in ledger if start <= e.date_key <= end]


# ---------------------------------------------------------------------------
# Savings and actors
# ---------------------------------------------------------------------------


def savings_balance(ledger: Iterable[LedgerEntry]) -> Decimal:
    """Saving deposits minus saving withdrawals, on every channel."""
    balance = ZERO
    for entry in ledger:
        match entry.type:
            case TransactionType.SAVING_DEPOSIT:
                balance += entry.amount
            case TransactionType.SAVING_WITHDRAWAL:
                balance -= entry.amount
            case _:
                pass
    return balance


def resolve_actor_name(entry: LedgerEntry, roster: PartnerRoster) -> str:
    """
    Display name of whoever is behind an entry.

    Order of preference: the stored partner name, the roster name of the
    partner id, the sender name, then a label derived from the type.
    """
    if entry.partner_name:
        return entry.partner_name
    if entry.partner_id:
        partner = roster.get(entry.partner_id)
        if partner is not None:
            return partner.name
    if entry.sender_name:
        return entry.sender_name
    return _ACTOR_LABELS.get(entry.type, UNKNOWN_ACTOR)


# ---------------------------------------------------------------------------
# Period statistics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PeriodStats:
    """
    Income/expense/debt flows of a date range.

    ``total_net_cash`` and ``total_net_bank`` are all-time balances, not
    restricted to the range; ``net_cash_flow`` is the range's cash movement.
    """

    income: Decimal
    session_income: Decimal
    product_income: Decimal
    expenses: Decimal
    debt_created: Decimal
    debt_paid: Decimal
    total_net_cash: Decimal
    total_net_bank: Decimal
    net_cash_flow: Decimal


def ledger_stats_for_period(
    ledger: Sequence[LedgerEntry],
    start: date,
    end: date,
    markers: DescriptionMarkers = DEFAULT_MARKERS,
) -> PeriodStats:
    """Aggregate the entries dated within ``[start, end]`` inclusive."""
    period = _in_range(ledger, start, end)

    net_cash_flow = ZERO
    for entry in period:
        if entry.channel != Channel.CASH:
            continue
        if is_partner_purchase_deposit(entry, markers):
            continue
        net_cash_flow += entry.signed_amount

    return PeriodStats(
        income=_sum(_of_types(period, INCOME_TYPES)),
        session_income=_sum(_of_types(period, (TransactionType.INCOME_SESSION,))),
        product_income=_sum(_of_types(period, (TransactionType.INCOME_PRODUCT,))),
        expenses=_sum(_of_types(period, EXPENSE_TYPES)),
        debt_created=_sum(_of_types(period, (TransactionType.DEBT_CREATE,))),
        debt_paid=_sum(_of_types(period, (TransactionType.DEBT_PAYMENT,))),
        total_net_cash=ledger_balance(ledger, Channel.CASH, markers=markers),
        total_net_bank=ledger_balance(ledger, Channel.BANK, markers=markers),
        net_cash_flow=net_cash_flow,
    )


def ledger_totals(
    ledger: Sequence[LedgerEntry],
    period: PeriodKind,
    reference: date,
    end: date | None = None,
    markers: DescriptionMarkers = DEFAULT_MARKERS,
) -> PeriodStats:
    """
    Period statistics for a named period around ``reference``.

    ``today`` is the reference day alone, ``month`` its whole calendar
    month, and ``custom`` runs from ``reference`` to ``end`` (defaulting
    to the reference day).
    """
    match period:
        case PeriodKind.TODAY:
            start, stop = reference, reference
        case PeriodKind.MONTH:
            start, stop = month_bounds(month_key(reference))
        case PeriodKind.CUSTOM:
            start, stop = reference, end or reference
            if stop < start:
                raise ValueError(f"Custom period end {stop} precedes start {start}")
        case _:
            raise ValueError(f"Unknown period kind: {period}")
    return ledger_stats_for_period(ledger, start, stop, markers)


# ---------------------------------------------------------------------------
# Partners and treasury
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PartnerStats:
    withdrawals: Decimal
    repayments: Decimal
    current_net: Decimal
    entries: tuple[LedgerEntry, ...]


def partner_stats(ledger: Iterable[LedgerEntry], partner_id: str) -> PartnerStats:
    """Withdrawals taken by a partner against deposits and debt repayments."""
    entries = tuple(e for e in ledger if e.partner_id == partner_id)
    withdrawals = _sum(_of_types(entries, (TransactionType.PARTNER_WITHDRAWAL,)))
    repayments = _sum(_of_types(
        entries, (TransactionType.PARTNER_DEPOSIT, TransactionType.PARTNER_DEBT_PAYMENT)
    ))
    return PartnerStats(
        withdrawals=withdrawals,
        repayments=repayments,
        current_net=withdrawals - repayments,
        entries=entries,
    )


@dataclass(frozen=True)
class TreasuryStats:
    cash_balance: Decimal
    total_bank_balance: Decimal
    accounts: tuple[AccountStats, ...]


def treasury_stats(
    ledger: Sequence[LedgerEntry],
    accounts: Iterable[BankAccount],
    markers: DescriptionMarkers = DEFAULT_MARKERS,
) -> TreasuryStats:
    """Cash balance, bank balance, and per-account in/out/balance."""
    per_account = []
    for account in accounts:
        own = [e for e in ledger if e.account_id == account.id]
        per_account.append(AccountStats(
            account=account,
            balance=ledger_balance(ledger, Channel.BANK, account.id, markers),
            total_in=_sum(
                e for e in own if e.direction == Direction.IN and e.is_confirmed_transfer
            ),
            total_out=_sum(e for e in own if e.direction == Direction.OUT),
        ))
    return TreasuryStats(
        cash_balance=ledger_balance(ledger, Channel.CASH, markers=markers),
        total_bank_balance=ledger_balance(ledger, Channel.BANK, markers=markers),
        accounts=tuple(per_account),
    )


@dataclass(frozen=True)
class PartnerDebtSummary:
    total_debt: Decimal
    place_debt: Decimal
    items: tuple[DebtItem, ...]


def partner_debt_summary(debts: Iterable[DebtItem], partner_id: str) -> PartnerDebtSummary:
    """All debts of a partner, and the part owed to the venue itself."""
    items = tuple(d for d in debts if d.partner_id == partner_id)
    return PartnerDebtSummary(
        total_debt=sum((d.amount for d in items), ZERO),
        place_debt=sum((d.amount for d in items if d.is_place_debt), ZERO),
        items=items,
    )


# ---------------------------------------------------------------------------
# Monthly views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CostAnalysisDay:
    """One day of the monthly cost analysis."""

    date: date
    total_revenue: Decimal
    total_expenses: Decimal
    total_savings: Decimal
    total_loan_repayments: Decimal
    total_cogs: Decimal
    net_profit: Decimal

    @property
    def has_activity(self) -> bool:
        return any(
            amount > ZERO
            for amount in (
                self.total_revenue,
                self.total_expenses,
                self.total_savings,
                self.total_loan_repayments,
            )
        )


def cost_analysis_view(
    ledger: Sequence[LedgerEntry],
    records: Sequence[SessionRecord],
    month: str,
) -> list[CostAnalysisDay]:
    """
    Per-day revenue, expenses, savings, loan repayments and COGS of a month.

    ``month`` is a ``YYYY-MM`` key.  Days without revenue, expenses,
    savings or loan repayments are dropped; cost of goods alone does not
    keep a day.
    """
    entries_by_day: dict[date, list[LedgerEntry]] = {}
    for entry in ledger:
        entries_by_day.setdefault(entry.date_key, []).append(entry)
    cogs_by_day: dict[date, Decimal] = {}
    for record in records:
        cogs_by_day[record.end_date] = cogs_by_day.get(record.end_date, ZERO) + record.direct_cost

    days: list[CostAnalysisDay] = []
    for day in all_days_of_month(month):
        entries = entries_by_day.get(day, [])
        revenue = _sum(_of_types(entries, INCOME_TYPES))
        expenses = _sum(_of_types(entries, EXPENSE_TYPES))
        savings = _sum(_of_types(entries, (TransactionType.SAVING_DEPOSIT,)))
        repayments = _sum(_of_types(entries, (TransactionType.LOAN_REPAYMENT,)))
        cogs = cogs_by_day.get(day, ZERO)
        row = CostAnalysisDay(
            date=day,
            total_revenue=revenue,
            total_expenses=expenses,
            total_savings=savings,
            total_loan_repayments=repayments,
            total_cogs=cogs,
            net_profit=revenue - expenses - savings - repayments - cogs,
        )
        if row.has_activity:
            days.append(row)

    logger.debug("cost_analysis_built", extra={"month": month, "active_days": len(days)})
    return days


@dataclass(frozen=True)
class ExpensesPageStats:
    total_daily: Decimal
    total_fixed_monthly: Decimal
    total_daily_fixed: Decimal
    fixed_count: int


def expenses_page_stats(
    purchases: Iterable[Purchase],
    plans: Iterable[SavingPlan],
    month: str,
) -> ExpensesPageStats:
    """
    Purchases of the month plus the fixed expense plans' monthly and daily load.

    Every expense-category plan counts, active or not.
    """
    first, last = month_bounds(month)
    total_daily = sum((p.amount for p in purchases if first <= p.date <= last), ZERO)
    fixed = [p for p in plans if p.category == PlanCategory.EXPENSE]
    day_count = Decimal(days_in_month(first))
    return ExpensesPageStats(
        total_daily=total_daily,
        total_fixed_monthly=sum((p.amount for p in fixed), ZERO),
        total_daily_fixed=sum((p.amount / day_count for p in fixed), ZERO),
        fixed_count=len(fixed),
    )
