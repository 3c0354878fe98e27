"""
Session Billing Engine.

Pure functions with deterministic behavior. No I/O.

Turns a usage session into an invoice: the session window is cut into
contiguous segments at each device switch, every segment is priced at
its device's hourly rate and place-cost rate, and the product orders
(drinks, internet cards) are added on top.  A discount is applied once
and frozen onto the record.

Rounding:
    - Segment cost and place cost: cents, ROUND_HALF_UP.
    - Final invoice: whole currency units, ROUND_HALF_UP.
    - Profit split figures are left at full precision.

Usage:
    from venue_engines.billing import calculate_record_financials

    financials = calculate_record_financials(session, end_time, pricing)
    financials.total_invoice
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal

from venue_engines.tracer import traced_engine
from venue_kernel.domain.models import (
    AppliedDiscount,
    BillingSegment,
    DeviceSwitchEvent,
    Discount,
    Order,
    PricingConfig,
    RecordFinancials,
    Session,
    SessionRecord,
)
from venue_kernel.domain.values import (
    ZERO,
    DeviceType,
    DiscountType,
    OrderType,
    percent_of,
    round_money,
    round_whole,
    to_decimal,
)
from venue_kernel.exceptions import DiscountLockedError
from venue_kernel.logging_config import get_logger

logger = get_logger("engines.billing")

_MICROS_PER_MINUTE = Decimal(60_000_000)
_MINUTES_PER_HOUR = Decimal(60)


@dataclass(frozen=True)
class SegmentBreakdown:
    """Segments of one session window with their summed costs."""

    segments: tuple[BillingSegment, ...]
    total_cost: Decimal
    place_cost: Decimal

    @property
    def total_minutes(self) -> Decimal:
        return sum((s.duration_minutes for s in self.segments), ZERO)


def _minutes(delta: timedelta) -> Decimal:
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    return Decimal(micros) / _MICROS_PER_MINUTE


def _segment(
    device: DeviceType,
    start: datetime,
    end: datetime,
    pricing: PricingConfig,
) -> BillingSegment:
    minutes = _minutes(end - start)
    hours = minutes / _MINUTES_PER_HOUR
    hourly_rate = pricing.hourly_rate(device)
    place_rate = pricing.place_cost_rate(device)
    return BillingSegment(
        device=device,
        start=start,
        end=end,
        duration_minutes=minutes,
        hourly_rate=hourly_rate,
        place_cost_rate=place_rate,
        cost=round_money(hours * hourly_rate),
        place_cost=round_money(hours * place_rate),
    )


def calculate_session_segments(
    start: datetime,
    end: datetime,
    initial_device: DeviceType,
    events: Sequence[DeviceSwitchEvent],
    pricing: PricingConfig,
) -> SegmentBreakdown:
    """
    Partition ``[start, end]`` at each device switch and price the pieces.

    Switches at or before ``start`` only set the starting device; switches
    at or after ``end`` are ignored.  Zero-length pieces are dropped since
    they contribute nothing.  An inverted window is clamped to zero length.
    """
    if end < start:
        logger.warning("billing_negative_window_clamped", extra={
            "start": start.isoformat(),
            "end": end.isoformat(),
        })
        end = start

    device = initial_device
    cursor = start
    segments: list[BillingSegment] = []

    for event in sorted(events, key=lambda e: e.timestamp):
        if event.timestamp <= start:
            device = event.to_device
            continue
        if event.timestamp >= end:
            break
        segments.append(_segment(device, cursor, event.timestamp, pricing))
        cursor = event.timestamp
        device = event.to_device

    if end > cursor:
        segments.append(_segment(device, cursor, end, pricing))

    return SegmentBreakdown(
        segments=tuple(segments),
        total_cost=sum((s.cost for s in segments), ZERO),
        place_cost=sum((s.place_cost for s in segments), ZERO),
    )


def calculate_orders_total(orders: Sequence[Order]) -> Decimal:
    """Sale value of the orders."""
    return sum((o.total for o in orders), ZERO)


def calculate_orders_cost(orders: Sequence[Order]) -> Decimal:
    """Cost basis of the orders."""
    return sum((o.cost_total for o in orders), ZERO)


def calculate_discount_amount(discount: Discount | None, raw_total: Decimal) -> Decimal:
    """
    Discount in money, clamped so the invoice never goes negative.

    Fixed discounts are taken as-is; percent discounts apply to the raw total.
    """
    if discount is None:
        return ZERO
    match discount.type:
        case DiscountType.FIXED:
            amount = discount.value
        case DiscountType.PERCENT:
            amount = percent_of(raw_total, discount.value)
        case _:
            raise ValueError(f"Unsupported discount type: {discount.type}")
    return min(amount, raw_total)


def calculate_dev_cut(gross_profit: Decimal, dev_percent: Decimal) -> Decimal:
    """Developer share of positive profit; zero when profit is not positive."""
    if gross_profit > ZERO:
        return percent_of(gross_profit, dev_percent)
    return ZERO


def _resolve_discount(session: Session, discount: Discount | None) -> Discount | None:
    existing = session.discount_applied
    if existing is not None and existing.locked:
        if discount is not None:
            logger.warning("billing_discount_already_locked", extra={
                "record_id": session.id,
                "locked_type": existing.type.value,
                "locked_value": str(existing.value),
            })
            raise DiscountLockedError(session.id)
        return Discount(type=existing.type, value=existing.value)
    return discount


@traced_engine("billing", "1.0", fingerprint_fields=("end_time",))
def calculate_record_financials(
    session: Session,
    end_time: datetime,
    pricing: PricingConfig,
    orders: Sequence[Order] | None = None,
    discount: Discount | None = None,
) -> RecordFinancials:
    """
    Compute the financial fields of a session ending at ``end_time``.

    Pure function - no side effects, no I/O, deterministic output.

    Args:
        session: The session being billed.
        end_time: End of the billing window.
        pricing: Tariff to snapshot onto the record.
        orders: Overrides ``session.orders`` when given.
        discount: Discount to apply and lock.

    Returns:
        RecordFinancials with invoice, costs, profit split and snapshots.

    Raises:
        DiscountLockedError: If the session already carries a locked
            discount and a new one is supplied.
    """
    t0 = time.monotonic()
    applied = _resolve_discount(session, discount)

    initial_device = session.events[0].from_device if session.events else session.device_status
    breakdown = calculate_session_segments(
        session.start_time, end_time, initial_device, session.events, pricing
    )

    current_orders = tuple(orders) if orders is not None else session.orders
    drink_orders = [o for o in current_orders if o.type == OrderType.DRINK]
    card_orders = [o for o in current_orders if o.type == OrderType.INTERNET_CARD]

    drinks_invoice = calculate_orders_total(drink_orders)
    cards_invoice = calculate_orders_total(card_orders)
    drinks_cost = calculate_orders_cost(drink_orders)
    cards_cost = calculate_orders_cost(card_orders)

    raw_total = breakdown.total_cost + drinks_invoice + cards_invoice
    discount_amount = calculate_discount_amount(applied, raw_total)
    total_invoice = round_whole(raw_total - discount_amount)

    total_direct_cost = breakdown.place_cost + drinks_cost + cards_cost
    gross_profit = total_invoice - total_direct_cost
    dev_cut = calculate_dev_cut(gross_profit, pricing.dev_percent)

    financials = RecordFinancials(
        duration_minutes=int(breakdown.total_minutes),
        session_invoice=breakdown.total_cost,
        drinks_invoice=drinks_invoice,
        internet_cards_invoice=cards_invoice,
        total_invoice=total_invoice,
        total_due=total_invoice,
        discount_applied=(
            AppliedDiscount(type=applied.type, value=applied.value, amount=discount_amount)
            if applied is not None
            else None
        ),
        place_cost=breakdown.place_cost,
        drinks_cost=drinks_cost,
        internet_cards_cost=cards_cost,
        gross_profit=gross_profit,
        dev_percent_snapshot=pricing.dev_percent,
        dev_cut=dev_cut,
        net_profit=gross_profit - dev_cut,
        hourly_rate_snapshot=pricing.hourly_rate(session.device_status),
        place_cost_rate_snapshot=pricing.place_cost_rate(session.device_status),
        segments_snapshot=breakdown.segments,
    )

    logger.info("billing_calculation_completed", extra={
        "record_id": session.id,
        "segment_count": len(breakdown.segments),
        "duration_minutes": financials.duration_minutes,
        "session_invoice": str(financials.session_invoice),
        "discount_amount": str(discount_amount),
        "total_invoice": str(total_invoice),
        "gross_profit": str(gross_profit),
        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
    })
    return financials


def finalize_session(
    session: Session,
    end_time: datetime,
    pricing: PricingConfig,
    orders: Sequence[Order] | None = None,
    discount: Discount | None = None,
    cash_paid: Decimal | int | str = ZERO,
    bank_paid: Decimal | int | str = ZERO,
    remaining_debt: Decimal | int | str = ZERO,
) -> SessionRecord:
    """Close a session into a record carrying its computed financials."""
    financials = calculate_record_financials(
        session, end_time, pricing, orders=orders, discount=discount
    )
    return SessionRecord(
        id=session.id,
        start_time=session.start_time,
        end_time=end_time,
        device_status=session.device_status,
        financials=financials,
        customer_name=session.customer_name,
        customer_id=session.customer_id,
        events=session.events,
        orders=tuple(orders) if orders is not None else session.orders,
        cash_paid=to_decimal(cash_paid),
        bank_paid=to_decimal(bank_paid),
        remaining_debt=to_decimal(remaining_debt),
    )


def lock_discount(session: Session, financials: RecordFinancials) -> Session:
    """Carry the frozen discount back onto the open session."""
    if financials.discount_applied is None:
        return session
    return replace(session, discount_applied=financials.discount_applied)
