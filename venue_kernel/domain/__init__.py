"""
Pure domain layer.

This package contains the venue's value types and frozen models with NO
dependencies on persistence, I/O or the wall clock (except through an
injected ``Clock``).  All domain objects are immutable and deterministic.
"""

from venue_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from venue_kernel.domain.markers import (
    DEFAULT_MARKERS,
    DescriptionMarkers,
    is_automatic_expense,
    is_partner_purchase_deposit,
)
from venue_kernel.domain.models import (
    AccountStats,
    AppliedDiscount,
    BankAccount,
    BillingSegment,
    Customer,
    DayCycle,
    DebtItem,
    DeviceSwitchEvent,
    Discount,
    Installment,
    InventorySnapshot,
    LedgerEntry,
    LoanPayment,
    Order,
    Partner,
    PartnerLedgerItem,
    PartnerRoster,
    PartnerShare,
    PeriodLock,
    PlaceLoan,
    PricingConfig,
    Purchase,
    RecordFinancials,
    SavingPlan,
    Session,
    SessionRecord,
)
from venue_kernel.domain.values import (
    MONEY_TOLERANCE,
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
    PeriodKind,
    PlanCategory,
    PlanType,
    ScheduleCadence,
    TransactionType,
    TransferStatus,
)

__all__ = [
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Markers
    "DEFAULT_MARKERS",
    "DescriptionMarkers",
    "is_automatic_expense",
    "is_partner_purchase_deposit",
    # Models
    "AccountStats",
    "AppliedDiscount",
    "BankAccount",
    "BillingSegment",
    "Customer",
    "DayCycle",
    "DebtItem",
    "DeviceSwitchEvent",
    "Discount",
    "Installment",
    "InventorySnapshot",
    "LedgerEntry",
    "LoanPayment",
    "Order",
    "Partner",
    "PartnerLedgerItem",
    "PartnerRoster",
    "PartnerShare",
    "PeriodLock",
    "PlaceLoan",
    "PricingConfig",
    "Purchase",
    "RecordFinancials",
    "SavingPlan",
    "Session",
    "SessionRecord",
    # Values
    "MONEY_TOLERANCE",
    "Channel",
    "DebtSource",
    "DeviceType",
    "Direction",
    "DiscountType",
    "FundingSource",
    "InstallmentStatus",
    "LenderType",
    "LoanStatus",
    "LoanType",
    "OrderType",
    "PartnerLedgerItemType",
    "PeriodKind",
    "PlanCategory",
    "PlanType",
    "ScheduleCadence",
    "TransactionType",
    "TransferStatus",
]
