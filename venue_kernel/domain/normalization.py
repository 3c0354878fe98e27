"""
Boundary normalization of caller-supplied records.

Responsibility:
    The surrounding application stores its entities as loosely typed
    mappings (camelCase keys, optional fields, string enums, JSON
    numbers).  Every default the engine relies on is applied HERE, once,
    when data enters; engines then work on fully typed frozen models and
    never fall back implicitly inside a formula.

Defaults applied:
    - Order without ``type``                -> drink
    - Missing money field                   -> 0
    - Missing ``transferStatus``            -> None (counts as confirmed)
    - Missing ``debtSource``                -> None (the venue itself)
    - Missing ``isActive`` on a plan        -> True
    - ``lastAppliedAt`` date or datetime    -> its calendar day

Failure modes:
    - RecordNormalizationError when an enum field holds an unknown value.
    - KeyError when a required key (an id, a timestamp) is missing.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from venue_kernel.domain.dates import as_date
from venue_kernel.domain.models import (
    AppliedDiscount,
    Customer,
    DebtItem,
    DeviceSwitchEvent,
    Installment,
    LedgerEntry,
    LoanPayment,
    Order,
    PlaceLoan,
    PricingConfig,
    Purchase,
    RecordFinancials,
    SavingPlan,
    Session,
    SessionRecord,
)
from venue_kernel.domain.values import (
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
    PlanCategory,
    PlanType,
    ScheduleCadence,
    TransactionType,
    TransferStatus,
)
from venue_kernel.exceptions import RecordNormalizationError
from venue_kernel.logging_config import get_logger

logger = get_logger("domain.normalization")

E = TypeVar("E", bound=Enum)

_MISSING = object()


def _get(data: Mapping[str, Any], key: str, default: Any = _MISSING) -> Any:
    """Read ``key`` (camelCase) or its snake_case spelling."""
    if key in data:
        return data[key]
    snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in key)
    if snake in data:
        return data[snake]
    if default is _MISSING:
        raise KeyError(key)
    return default


def _money(value: Any) -> Decimal:
    """JSON numbers arrive as float; convert through ``str`` exactly once here."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _enum(model: str, field: str, enum_cls: type[E], value: Any) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as e:
        raise RecordNormalizationError(model, field, str(value)) from e


def _optional_enum(model: str, field: str, enum_cls: type[E], value: Any) -> E | None:
    if value is None or value == "":
        return None
    return _enum(model, field, enum_cls, value)


def _datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        # epoch milliseconds, as the application stores createdAt
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_str(value: Any) -> str | None:
    return None if value in (None, "") else str(value)


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


def normalize_ledger_entry(data: Mapping[str, Any]) -> LedgerEntry:
    timestamp = _datetime(_get(data, "timestamp"))
    date_key = _get(data, "dateKey", None)
    return LedgerEntry(
        id=str(_get(data, "id")),
        timestamp=timestamp,
        date_key=as_date(date_key) if date_key else timestamp.date(),
        type=_enum("LedgerEntry", "type", TransactionType, _get(data, "type")),
        amount=_money(_get(data, "amount", None)),
        direction=_enum("LedgerEntry", "direction", Direction, _get(data, "direction")),
        channel=_enum("LedgerEntry", "channel", Channel, _get(data, "channel")),
        description=_get(data, "description", None) or "",
        account_id=_optional_str(_get(data, "accountId", None)),
        transfer_status=_optional_enum(
            "LedgerEntry", "transferStatus", TransferStatus, _get(data, "transferStatus", None)
        ),
        entity_id=_optional_str(_get(data, "entityId", None)),
        partner_id=_optional_str(_get(data, "partnerId", None)),
        partner_name=_optional_str(_get(data, "partnerName", None)),
        reference_id=_optional_str(_get(data, "referenceId", None)),
        performed_by_id=_optional_str(_get(data, "performedById", None)),
        performed_by_name=_optional_str(_get(data, "performedByName", None)),
        sender_name=_optional_str(_get(data, "senderName", None)),
    )


def normalize_ledger(items: Iterable[Mapping[str, Any]]) -> tuple[LedgerEntry, ...]:
    entries = tuple(normalize_ledger_entry(item) for item in items)
    logger.debug("ledger_normalized", extra={"entry_count": len(entries)})
    return entries


# ---------------------------------------------------------------------------
# Sessions and records
# ---------------------------------------------------------------------------


def normalize_order(data: Mapping[str, Any]) -> Order:
    raw_type = _get(data, "type", None)
    return Order(
        id=str(_get(data, "id")),
        name=_get(data, "name", None) or "",
        type=OrderType.DRINK if not raw_type else _enum("Order", "type", OrderType, raw_type),
        quantity=_money(_get(data, "quantity", 1)),
        price_at_order=_money(_get(data, "priceAtOrder", None)),
        cost_at_order=_money(_get(data, "costAtOrder", None)),
    )


def _normalize_event(data: Mapping[str, Any]) -> DeviceSwitchEvent:
    return DeviceSwitchEvent(
        timestamp=_datetime(_get(data, "timestamp")),
        from_device=_enum("DeviceSwitchEvent", "fromDevice", DeviceType, _get(data, "fromDevice")),
        to_device=_enum("DeviceSwitchEvent", "toDevice", DeviceType, _get(data, "toDevice")),
    )


def _normalize_applied_discount(data: Mapping[str, Any] | None) -> AppliedDiscount | None:
    if not data:
        return None
    return AppliedDiscount(
        type=_enum("Discount", "type", DiscountType, _get(data, "type")),
        value=_money(_get(data, "value", None)),
        amount=_money(_get(data, "amount", None)),
        locked=bool(_get(data, "locked", True)),
    )


def normalize_session(data: Mapping[str, Any]) -> Session:
    return Session(
        id=str(_get(data, "id")),
        start_time=_datetime(_get(data, "startTime")),
        device_status=_enum("Session", "deviceStatus", DeviceType, _get(data, "deviceStatus")),
        customer_name=_get(data, "customerName", None) or "",
        customer_id=_optional_str(_get(data, "customerId", None)),
        events=tuple(_normalize_event(e) for e in _get(data, "events", None) or ()),
        orders=tuple(normalize_order(o) for o in _get(data, "orders", None) or ()),
        discount_applied=_normalize_applied_discount(_get(data, "discountApplied", None)),
    )


def normalize_session_record(data: Mapping[str, Any]) -> SessionRecord:
    """Legacy and finalized records carry their financial fields flat."""
    session = normalize_session(data)
    financials = RecordFinancials(
        duration_minutes=int(_get(data, "durationMinutes", 0) or 0),
        session_invoice=_money(_get(data, "sessionInvoice", None)),
        drinks_invoice=_money(_get(data, "drinksInvoice", None)),
        internet_cards_invoice=_money(_get(data, "internetCardsInvoice", None)),
        total_invoice=_money(_get(data, "totalInvoice", None)),
        total_due=_money(_get(data, "totalDue", None)),
        discount_applied=session.discount_applied,
        place_cost=_money(_get(data, "placeCost", None)),
        drinks_cost=_money(_get(data, "drinksCost", None)),
        internet_cards_cost=_money(_get(data, "internetCardsCost", None)),
        gross_profit=_money(_get(data, "grossProfit", None)),
        dev_percent_snapshot=_money(_get(data, "devPercentSnapshot", None)),
        dev_cut=_money(_get(data, "devCut", None)),
        net_profit=_money(_get(data, "netProfit", None)),
        hourly_rate_snapshot=_money(_get(data, "hourlyRateSnapshot", None)),
        place_cost_rate_snapshot=_money(_get(data, "placeCostRateSnapshot", None)),
    )
    return SessionRecord(
        id=session.id,
        start_time=session.start_time,
        end_time=_datetime(_get(data, "endTime")),
        device_status=session.device_status,
        financials=financials,
        customer_name=session.customer_name,
        customer_id=session.customer_id,
        events=session.events,
        orders=session.orders,
        cash_paid=_money(_get(data, "cashPaid", None)),
        bank_paid=_money(_get(data, "bankPaid", None)),
        remaining_debt=_money(_get(data, "remainingDebt", None)),
    )


# ---------------------------------------------------------------------------
# Customers, configuration
# ---------------------------------------------------------------------------


def normalize_customer(data: Mapping[str, Any]) -> Customer:
    return Customer(
        id=str(_get(data, "id")),
        name=_get(data, "name", None) or "",
        credit_balance=_money(_get(data, "creditBalance", None)),
        debt_balance=_money(_get(data, "debtBalance", None)),
    )


def normalize_pricing_config(data: Mapping[str, Any]) -> PricingConfig:
    return PricingConfig(
        laptop_rate=_money(_get(data, "laptopRate")),
        mobile_rate=_money(_get(data, "mobileRate")),
        laptop_place_cost=_money(_get(data, "laptopPlaceCost", None)),
        mobile_place_cost=_money(_get(data, "mobilePlaceCost", None)),
        dev_percent=_money(_get(data, "devPercent", None)),
    )


# ---------------------------------------------------------------------------
# Plans, loans, purchases, partner debts
# ---------------------------------------------------------------------------


def normalize_saving_plan(data: Mapping[str, Any]) -> SavingPlan:
    return SavingPlan(
        id=str(_get(data, "id")),
        name=_get(data, "name", None) or "",
        type=_enum("SavingPlan", "type", PlanType, _get(data, "type")),
        category=_enum("SavingPlan", "category", PlanCategory, _get(data, "category", "saving")),
        amount=_money(_get(data, "amount", None)),
        channel=_enum("SavingPlan", "channel", Channel, _get(data, "channel", "cash")),
        last_applied_at=as_date(_get(data, "lastAppliedAt")),
        is_active=bool(_get(data, "isActive", True)),
        bank_account_id=_optional_str(_get(data, "bankAccountId", None)),
    )


def _normalize_installment(loan_id: str, data: Mapping[str, Any]) -> Installment:
    return Installment(
        id=str(_get(data, "id")),
        loan_id=str(_get(data, "loanId", loan_id)),
        amount=_money(_get(data, "amount", None)),
        due_date=as_date(_get(data, "dueDate")),
        status=_enum("Installment", "status", InstallmentStatus, _get(data, "status", "pending")),
    )


def _normalize_loan_payment(loan_id: str, data: Mapping[str, Any]) -> LoanPayment:
    return LoanPayment(
        id=str(_get(data, "id")),
        loan_id=str(_get(data, "loanId", loan_id)),
        installment_id=_optional_str(_get(data, "installmentId", None)),
        date=as_date(_get(data, "date")),
        amount=_money(_get(data, "amount", None)),
        channel=_enum("LoanPayment", "channel", Channel, _get(data, "channel", "cash")),
        account_id=_optional_str(_get(data, "accountId", None)),
        note=_get(data, "note", None) or "",
    )


def normalize_place_loan(data: Mapping[str, Any]) -> PlaceLoan:
    loan_id = str(_get(data, "id"))
    created_at = _get(data, "createdAt", None)
    installments = tuple(
        _normalize_installment(loan_id, i) for i in _get(data, "installments", None) or ()
    )
    return PlaceLoan(
        id=loan_id,
        lender_type=_enum("PlaceLoan", "lenderType", LenderType, _get(data, "lenderType", "external")),
        lender_name=_get(data, "lenderName", None) or "",
        partner_id=_optional_str(_get(data, "partnerId", None)),
        reason=_get(data, "reason", None) or "",
        principal=_money(_get(data, "principal", None)),
        loan_type=_enum("PlaceLoan", "loanType", LoanType, _get(data, "loanType", "operational")),
        channel=_enum("PlaceLoan", "channel", Channel, _get(data, "channel", "cash")),
        account_id=_optional_str(_get(data, "accountId", None)),
        start_date=as_date(_get(data, "startDate")),
        schedule_type=_enum(
            "PlaceLoan", "scheduleType", ScheduleCadence, _get(data, "scheduleType", "monthly")
        ),
        installments_count=int(_get(data, "installmentsCount", len(installments) or 1)),
        installment_amount=_money(_get(data, "installmentAmount", None)),
        status=_enum("PlaceLoan", "status", LoanStatus, _get(data, "status", "active")),
        created_at=_datetime(created_at) if created_at else None,
        installments=installments,
        payments=tuple(
            _normalize_loan_payment(loan_id, p) for p in _get(data, "payments", None) or ()
        ),
    )


def normalize_purchase(data: Mapping[str, Any]) -> Purchase:
    return Purchase(
        id=str(_get(data, "id")),
        name=_get(data, "name", None) or "",
        amount=_money(_get(data, "amount", None)),
        date=as_date(_get(data, "date")),
        funding_source=_enum(
            "Purchase", "fundingSource", FundingSource, _get(data, "fundingSource", None) or "place"
        ),
        buyer=_optional_str(_get(data, "buyer", None)),
        payment_method=_enum(
            "Purchase", "paymentMethod", Channel, _get(data, "paymentMethod", None) or "cash"
        ),
    )


def normalize_debt_item(data: Mapping[str, Any]) -> DebtItem:
    return DebtItem(
        id=str(_get(data, "id")),
        partner_id=str(_get(data, "partnerId")),
        amount=_money(_get(data, "amount", None)),
        date=as_date(_get(data, "date")),
        debt_source=_optional_enum("DebtItem", "debtSource", DebtSource, _get(data, "debtSource", None)),
        debt_channel=_enum("DebtItem", "debtChannel", Channel, _get(data, "debtChannel", None) or "cash"),
        note=_get(data, "note", None) or "",
    )
