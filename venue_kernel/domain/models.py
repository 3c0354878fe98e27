"""
Venue Domain Models (``venue_kernel.domain.models``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of the venue's finances:
ledger entries, sessions and their computed financials, customers,
pricing, the partner roster, loans, saving plans, purchases, partner
debts, and period snapshots.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Engines
consume and return these; the caller persists them.

Invariants enforced
-------------------
* All models are ``frozen=True``.  Updates are copy-and-replace through
  ``dataclasses.replace``; nothing is mutated in place.
* All monetary fields are ``Decimal`` -- NEVER ``float``.
* Ledger amounts and customer balances are non-negative.
* Roster percentages sum to 100 (within ``MONEY_TOLERANCE``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Iterator

from venue_kernel.domain.values import (
    HUNDRED,
    MONEY_TOLERANCE,
    ZERO,
    Channel,
    DebtSource,
    DeviceType,
    Direction,
    DiscountType,
    FundingSource,
    InstallmentStatus,
    LenderType,
    LoanStatus,
    LoanType,
    OrderType,
    PartnerLedgerItemType,
    PlanCategory,
    PlanType,
    ScheduleCadence,
    TransactionType,
    TransferStatus,
)
from venue_kernel.exceptions import InvalidRosterError


# ============================================================================
# Ledger
# ============================================================================


@dataclass(frozen=True)
class LedgerEntry:
    """
    One immutable recorded financial fact.

    Entries are never mutated or deleted; corrections are new offsetting
    entries.  The sign of the effect is carried by ``direction``.
    """

    id: str
    timestamp: datetime
    date_key: date
    type: TransactionType
    amount: Decimal
    direction: Direction
    channel: Channel
    description: str = ""
    account_id: str | None = None
    transfer_status: TransferStatus | None = None
    entity_id: str | None = None
    partner_id: str | None = None
    partner_name: str | None = None
    reference_id: str | None = None
    performed_by_id: str | None = None
    performed_by_name: str | None = None
    sender_name: str | None = None

    def __post_init__(self) -> None:
        if self.amount < ZERO:
            raise ValueError(f"Ledger entry amount must be non-negative: {self.amount}")

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction == Direction.IN else -self.amount

    @property
    def is_confirmed_transfer(self) -> bool:
        """Entries without a transfer status count as confirmed."""
        return self.transfer_status in (None, TransferStatus.CONFIRMED)


@dataclass(frozen=True)
class BankAccount:
    id: str
    name: str


@dataclass(frozen=True)
class AccountStats:
    """Derived per-account view: confirmed inflow, outflow and balance."""

    account: BankAccount
    balance: Decimal
    total_in: Decimal
    total_out: Decimal


@dataclass(frozen=True)
class PeriodLock:
    """Inclusive upper bound: operations dated on or before it are rejected."""

    locked_until: date


# ============================================================================
# Sessions and billing
# ============================================================================


@dataclass(frozen=True)
class DeviceSwitchEvent:
    timestamp: datetime
    from_device: DeviceType
    to_device: DeviceType


@dataclass(frozen=True)
class Order:
    """A sold item: drink or internet card."""

    id: str
    price_at_order: Decimal
    quantity: Decimal = Decimal("1")
    cost_at_order: Decimal = ZERO
    type: OrderType = OrderType.DRINK
    name: str = ""

    def __post_init__(self) -> None:
        if self.quantity < ZERO:
            raise ValueError("quantity must be non-negative")
        if self.price_at_order < ZERO or self.cost_at_order < ZERO:
            raise ValueError("order prices must be non-negative")

    @property
    def total(self) -> Decimal:
        return self.quantity * self.price_at_order

    @property
    def cost_total(self) -> Decimal:
        return self.quantity * self.cost_at_order


@dataclass(frozen=True)
class Discount:
    type: DiscountType
    value: Decimal

    def __post_init__(self) -> None:
        if self.value < ZERO:
            raise ValueError("discount value must be non-negative")


@dataclass(frozen=True)
class AppliedDiscount:
    """A discount frozen onto a record. Once locked it is never re-applied."""

    type: DiscountType
    value: Decimal
    amount: Decimal
    locked: bool = True


@dataclass(frozen=True)
class PricingConfig:
    """
    Tariff snapshot: hourly and place-cost rates per device, developer share.

    Rates are snapshotted onto each record at settlement time so that
    historical invoices stay reproducible after tariff changes.
    """

    laptop_rate: Decimal
    mobile_rate: Decimal
    laptop_place_cost: Decimal = ZERO
    mobile_place_cost: Decimal = ZERO
    dev_percent: Decimal = ZERO

    def __post_init__(self) -> None:
        for attr in ("laptop_rate", "mobile_rate", "laptop_place_cost", "mobile_place_cost"):
            if getattr(self, attr) < ZERO:
                raise ValueError(f"{attr} must be non-negative")
        if not (ZERO <= self.dev_percent <= HUNDRED):
            raise ValueError("dev_percent must be between 0 and 100")

    def hourly_rate(self, device: DeviceType) -> Decimal:
        match device:
            case DeviceType.LAPTOP:
                return self.laptop_rate
            case DeviceType.MOBILE:
                return self.mobile_rate
            case _:
                raise ValueError(f"Unknown device type: {device}")

    def place_cost_rate(self, device: DeviceType) -> Decimal:
        match device:
            case DeviceType.LAPTOP:
                return self.laptop_place_cost
            case DeviceType.MOBILE:
                return self.mobile_place_cost
            case _:
                raise ValueError(f"Unknown device type: {device}")


@dataclass(frozen=True)
class BillingSegment:
    """A contiguous stretch of a session on one device."""

    device: DeviceType
    start: datetime
    end: datetime
    duration_minutes: Decimal
    hourly_rate: Decimal
    place_cost_rate: Decimal
    cost: Decimal
    place_cost: Decimal


@dataclass(frozen=True)
class Session:
    """An open billable occupancy period."""

    id: str
    start_time: datetime
    device_status: DeviceType
    customer_name: str = ""
    customer_id: str | None = None
    events: tuple[DeviceSwitchEvent, ...] = ()
    orders: tuple[Order, ...] = ()
    discount_applied: AppliedDiscount | None = None


@dataclass(frozen=True)
class RecordFinancials:
    """Derived financial fields attached to a record once finalized."""

    duration_minutes: int = 0
    session_invoice: Decimal = ZERO
    drinks_invoice: Decimal = ZERO
    internet_cards_invoice: Decimal = ZERO
    total_invoice: Decimal = ZERO
    total_due: Decimal = ZERO
    discount_applied: AppliedDiscount | None = None
    place_cost: Decimal = ZERO
    drinks_cost: Decimal = ZERO
    internet_cards_cost: Decimal = ZERO
    gross_profit: Decimal = ZERO
    dev_percent_snapshot: Decimal = ZERO
    dev_cut: Decimal = ZERO
    net_profit: Decimal = ZERO
    hourly_rate_snapshot: Decimal = ZERO
    place_cost_rate_snapshot: Decimal = ZERO
    segments_snapshot: tuple[BillingSegment, ...] = ()

    @property
    def total_direct_cost(self) -> Decimal:
        return self.place_cost + self.drinks_cost + self.internet_cards_cost


@dataclass(frozen=True)
class SessionRecord:
    """A finalized session with its computed financials and payment split."""

    id: str
    start_time: datetime
    end_time: datetime
    device_status: DeviceType
    financials: RecordFinancials = field(default_factory=RecordFinancials)
    customer_name: str = ""
    customer_id: str | None = None
    events: tuple[DeviceSwitchEvent, ...] = ()
    orders: tuple[Order, ...] = ()
    cash_paid: Decimal = ZERO
    bank_paid: Decimal = ZERO
    remaining_debt: Decimal = ZERO

    @property
    def end_date(self) -> date:
        return self.end_time.date()

    @property
    def direct_cost(self) -> Decimal:
        return self.financials.total_direct_cost


# ============================================================================
# Customers
# ============================================================================


@dataclass(frozen=True)
class Customer:
    id: str
    name: str = ""
    credit_balance: Decimal = ZERO
    debt_balance: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.credit_balance < ZERO or self.debt_balance < ZERO:
            raise ValueError("customer balances must be non-negative")


# ============================================================================
# Partners
# ============================================================================


@dataclass(frozen=True)
class Partner:
    id: str
    name: str
    percent: Decimal

    def __post_init__(self) -> None:
        if self.percent < ZERO:
            raise ValueError(f"partner {self.id} percent must be non-negative")


@dataclass(frozen=True)
class PartnerRoster:
    """
    Fixed list of partners sharing the venue's profit.

    Passed explicitly to every component that allocates or projects
    partner money, so alternative rosters can be substituted freely.
    """

    partners: tuple[Partner, ...]

    def __post_init__(self) -> None:
        total = sum((p.percent for p in self.partners), ZERO)
        if abs(total - HUNDRED) > MONEY_TOLERANCE:
            raise InvalidRosterError(str(total))
        ids = [p.id for p in self.partners]
        if len(set(ids)) != len(ids):
            raise InvalidRosterError(str(total), reason="partner ids must be unique")

    def __iter__(self) -> Iterator[Partner]:
        return iter(self.partners)

    def __len__(self) -> int:
        return len(self.partners)

    def get(self, partner_id: str) -> Partner | None:
        return next((p for p in self.partners if p.id == partner_id), None)


# ============================================================================
# Loans
# ============================================================================


@dataclass(frozen=True)
class Installment:
    id: str
    loan_id: str
    amount: Decimal
    due_date: date
    status: InstallmentStatus = InstallmentStatus.PENDING


@dataclass(frozen=True)
class LoanPayment:
    id: str
    loan_id: str
    date: date
    amount: Decimal
    channel: Channel
    installment_id: str | None = None
    account_id: str | None = None
    note: str = ""

    def __post_init__(self) -> None:
        if self.amount < ZERO:
            raise ValueError("payment amount must be non-negative")


@dataclass(frozen=True)
class PlaceLoan:
    """Money owed by the venue to a partner or an external lender."""

    id: str
    lender_type: LenderType
    lender_name: str
    principal: Decimal
    channel: Channel
    start_date: date
    schedule_type: ScheduleCadence = ScheduleCadence.MONTHLY
    installments_count: int = 1
    installment_amount: Decimal = ZERO
    status: LoanStatus = LoanStatus.ACTIVE
    loan_type: LoanType = LoanType.OPERATIONAL
    partner_id: str | None = None
    reason: str = ""
    account_id: str | None = None
    created_at: datetime | None = None
    installments: tuple[Installment, ...] = ()
    payments: tuple[LoanPayment, ...] = ()

    def __post_init__(self) -> None:
        if self.principal < ZERO:
            raise ValueError("principal must be non-negative")

    @property
    def total_paid(self) -> Decimal:
        return sum((p.amount for p in self.payments), ZERO)


# ============================================================================
# Recurring plans, purchases, partner debts
# ============================================================================


@dataclass(frozen=True)
class SavingPlan:
    """
    Recurring saving or fixed-expense commitment.

    ``last_applied_at`` is the accrual cursor, advanced only by the
    accrual engine.
    """

    id: str
    name: str
    type: PlanType
    category: PlanCategory
    amount: Decimal
    channel: Channel
    last_applied_at: date
    is_active: bool = True
    bank_account_id: str | None = None

    def __post_init__(self) -> None:
        if self.amount < ZERO:
            raise ValueError("plan amount must be non-negative")


@dataclass(frozen=True)
class Purchase:
    id: str
    name: str
    amount: Decimal
    date: date
    funding_source: FundingSource = FundingSource.PLACE
    buyer: str | None = None
    payment_method: Channel = Channel.CASH


@dataclass(frozen=True)
class DebtItem:
    """A partner's withdrawal or debt. A missing source means the venue itself."""

    id: str
    partner_id: str
    amount: Decimal
    date: date
    debt_source: DebtSource | None = None
    debt_channel: Channel = Channel.CASH
    note: str = ""

    @property
    def is_place_debt(self) -> bool:
        return self.debt_source in (None, DebtSource.PLACE)


# ============================================================================
# Period snapshots and projections
# ============================================================================


@dataclass(frozen=True)
class PartnerShare:
    """One partner's line in a closing snapshot."""

    partner_id: str
    name: str
    share_percent: Decimal
    base_share: Decimal
    cash_share_available: Decimal
    bank_share_available: Decimal
    purchases_reimbursement: Decimal
    place_debt_deducted: Decimal
    final_payout_cash: Decimal
    final_payout_bank: Decimal
    final_payout_total: Decimal
    loan_repayment_cash: Decimal = ZERO
    loan_repayment_bank: Decimal = ZERO
    remaining_debt: Decimal = ZERO


@dataclass(frozen=True)
class InventorySnapshot:
    """
    Immutable period-closing record.

    Never recomputed from a changed ledger: it is the historical source
    of truth for partner-ledger reconstruction.
    """

    id: str
    archive_id: str
    archive_date: datetime
    period_start: date
    period_end: date
    created_at: datetime
    total_paid_revenue: Decimal
    total_cash_revenue: Decimal
    total_bank_revenue: Decimal
    total_debt_revenue: Decimal
    total_invoice: Decimal
    total_place_cost: Decimal
    total_drinks_cost: Decimal
    total_cards_cost: Decimal
    total_expenses: Decimal
    total_loan_repayments: Decimal
    electricity_cost: Decimal
    total_cash_expenses: Decimal
    total_bank_expenses: Decimal
    net_cash_in_place: Decimal
    net_bank_in_place: Decimal
    gross_profit: Decimal
    dev_cut: Decimal
    net_profit_paid: Decimal
    dev_percent_snapshot: Decimal
    partners: tuple[PartnerShare, ...]
    type: str = "manual"
    total_discounts: Decimal = ZERO
    total_savings: Decimal = ZERO

    def overlaps(self, start: date, end: date) -> bool:
        return start <= self.period_end and end >= self.period_start


@dataclass(frozen=True)
class PartnerLedgerItem:
    """Read-only projection row; derived, never persisted."""

    id: str
    date: date
    type: PartnerLedgerItemType
    channel: Channel
    amount: Decimal
    description: str
    ref_id: str


@dataclass(frozen=True)
class DayCycle:
    """Preview of the business day opened at ``start_time``."""

    id: str
    date_key: date
    month_key: str
    start_time: datetime
    end_time: datetime
    cash_revenue: Decimal
    bank_revenue: Decimal
    total_revenue: Decimal
    total_debt: Decimal
    total_invoice: Decimal
    created_at: datetime
