"""
Tests for the session billing engine.

Covers segment partitioning at device switches, order totals, discount
clamping and locking, invoice rounding and the profit split.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from venue_engines.billing import (
    calculate_discount_amount,
    calculate_dev_cut,
    calculate_orders_cost,
    calculate_orders_total,
    calculate_record_financials,
    calculate_session_segments,
    finalize_session,
    lock_discount,
)
from venue_kernel.domain.models import (
    AppliedDiscount,
    DeviceSwitchEvent,
    Discount,
    Order,
    Session,
)
from venue_kernel.domain.values import DeviceType, DiscountType, OrderType
from venue_kernel.exceptions import DiscountLockedError

UTC = timezone.utc


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 3, 10, hour, minute, tzinfo=UTC)


def make_session(**overrides) -> Session:
    fields = {
        "id": "rec-1",
        "start_time": at(10),
        "device_status": DeviceType.LAPTOP,
        "customer_name": "Sami",
    }
    fields.update(overrides)
    return Session(**fields)


# ============================================================================
# Segments
# ============================================================================


class TestSessionSegments:
    """Partitioning a session window at device switches."""

    def test_single_device_window(self, pricing):
        breakdown = calculate_session_segments(at(10), at(12, 30), DeviceType.LAPTOP, (), pricing)

        assert len(breakdown.segments) == 1
        assert breakdown.total_minutes == Decimal("150")
        assert breakdown.total_cost == Decimal("25.00")
        assert breakdown.place_cost == Decimal("5.00")

    def test_switch_splits_window(self, pricing):
        events = (DeviceSwitchEvent(at(11), DeviceType.LAPTOP, DeviceType.MOBILE),)

        breakdown = calculate_session_segments(at(10), at(12), DeviceType.LAPTOP, events, pricing)

        assert [s.device for s in breakdown.segments] == [DeviceType.LAPTOP, DeviceType.MOBILE]
        assert [s.cost for s in breakdown.segments] == [Decimal("10.00"), Decimal("5.00")]
        assert breakdown.total_cost == Decimal("15.00")
        assert breakdown.place_cost == Decimal("3.00")

    def test_segments_are_contiguous(self, pricing):
        events = (
            DeviceSwitchEvent(at(10, 20), DeviceType.LAPTOP, DeviceType.MOBILE),
            DeviceSwitchEvent(at(11, 5), DeviceType.MOBILE, DeviceType.LAPTOP),
        )

        breakdown = calculate_session_segments(at(10), at(12), DeviceType.LAPTOP, events, pricing)

        segments = breakdown.segments
        assert segments[0].start == at(10)
        assert segments[-1].end == at(12)
        for left, right in zip(segments, segments[1:]):
            assert left.end == right.start

    def test_event_at_start_only_sets_device(self, pricing):
        events = (DeviceSwitchEvent(at(10), DeviceType.LAPTOP, DeviceType.MOBILE),)

        breakdown = calculate_session_segments(at(10), at(11), DeviceType.LAPTOP, events, pricing)

        assert len(breakdown.segments) == 1
        assert breakdown.segments[0].device == DeviceType.MOBILE
        assert breakdown.total_cost == Decimal("5.00")

    def test_event_after_end_ignored(self, pricing):
        events = (DeviceSwitchEvent(at(13), DeviceType.LAPTOP, DeviceType.MOBILE),)

        breakdown = calculate_session_segments(at(10), at(11), DeviceType.LAPTOP, events, pricing)

        assert len(breakdown.segments) == 1
        assert breakdown.segments[0].device == DeviceType.LAPTOP

    def test_zero_length_window(self, pricing):
        breakdown = calculate_session_segments(at(10), at(10), DeviceType.LAPTOP, (), pricing)

        assert breakdown.segments == ()
        assert breakdown.total_cost == Decimal("0")

    def test_negative_window_clamped(self, pricing):
        breakdown = calculate_session_segments(at(12), at(10), DeviceType.LAPTOP, (), pricing)

        assert breakdown.segments == ()
        assert breakdown.total_cost == Decimal("0")
        assert breakdown.place_cost == Decimal("0")

    def test_segment_cost_rounded_to_cents(self, pricing):
        breakdown = calculate_session_segments(at(10), at(10, 7), DeviceType.LAPTOP, (), pricing)

        assert breakdown.total_cost == Decimal("1.17")


# ============================================================================
# Orders and discounts
# ============================================================================


class TestOrdersAndDiscounts:

    def test_orders_total_and_cost(self):
        orders = [
            Order(id="o1", price_at_order=Decimal("3"), quantity=Decimal("2"), cost_at_order=Decimal("1")),
            Order(id="o2", price_at_order=Decimal("10"), cost_at_order=Decimal("8"),
                  type=OrderType.INTERNET_CARD),
        ]

        assert calculate_orders_total(orders) == Decimal("16")
        assert calculate_orders_cost(orders) == Decimal("10")

    def test_empty_orders(self):
        assert calculate_orders_total([]) == Decimal("0")
        assert calculate_orders_cost([]) == Decimal("0")

    def test_fixed_discount_clamped_to_raw_total(self):
        discount = Discount(type=DiscountType.FIXED, value=Decimal("150"))

        assert calculate_discount_amount(discount, Decimal("100")) == Decimal("100")

    def test_percent_discount(self):
        discount = Discount(type=DiscountType.PERCENT, value=Decimal("10"))

        assert calculate_discount_amount(discount, Decimal("50")) == Decimal("5")

    def test_no_discount(self):
        assert calculate_discount_amount(None, Decimal("50")) == Decimal("0")

    def test_dev_cut_only_on_positive_profit(self):
        assert calculate_dev_cut(Decimal("200"), Decimal("10")) == Decimal("20")
        assert calculate_dev_cut(Decimal("0"), Decimal("10")) == Decimal("0")
        assert calculate_dev_cut(Decimal("-50"), Decimal("10")) == Decimal("0")


# ============================================================================
# Record financials
# ============================================================================


class TestRecordFinancials:

    def test_laptop_session_two_and_a_half_hours(self, pricing):
        financials = calculate_record_financials(make_session(), end_time=at(12, 30), pricing=pricing)

        assert financials.duration_minutes == 150
        assert financials.session_invoice == Decimal("25.00")
        assert financials.total_invoice == Decimal("25")
        assert financials.total_due == Decimal("25")
        assert financials.place_cost == Decimal("5.00")
        assert financials.gross_profit == Decimal("20.00")
        assert financials.dev_cut == Decimal("2.00")
        assert financials.net_profit == Decimal("18.00")
        assert financials.discount_applied is None

    def test_discount_larger_than_total_gives_zero_invoice(self, pricing):
        session = make_session(orders=(Order(id="o1", price_at_order=Decimal("100")),))
        discount = Discount(type=DiscountType.FIXED, value=Decimal("150"))

        financials = calculate_record_financials(
            session, end_time=at(10), pricing=pricing, discount=discount
        )

        assert financials.discount_applied.amount == Decimal("100")
        assert financials.discount_applied.locked is True
        assert financials.total_invoice == Decimal("0")
        assert financials.dev_cut == Decimal("0")

    def test_invoice_rounds_half_up_to_whole_units(self, pricing):
        financials = calculate_record_financials(make_session(), end_time=at(10, 15), pricing=pricing)

        assert financials.session_invoice == Decimal("2.50")
        assert financials.total_invoice == Decimal("3")

    def test_orders_override_session_orders(self, pricing):
        session = make_session(orders=(Order(id="o1", price_at_order=Decimal("100")),))
        override = [
            Order(id="o2", price_at_order=Decimal("4"), cost_at_order=Decimal("1")),
            Order(id="o3", price_at_order=Decimal("10"), cost_at_order=Decimal("7"),
                  type=OrderType.INTERNET_CARD),
        ]

        financials = calculate_record_financials(
            session, end_time=at(10), pricing=pricing, orders=override
        )

        assert financials.drinks_invoice == Decimal("4")
        assert financials.internet_cards_invoice == Decimal("10")
        assert financials.drinks_cost == Decimal("1")
        assert financials.internet_cards_cost == Decimal("7")
        assert financials.total_invoice == Decimal("14")

    def test_rate_snapshots_use_current_device(self, pricing):
        session = make_session(
            device_status=DeviceType.MOBILE,
            events=(DeviceSwitchEvent(at(11), DeviceType.LAPTOP, DeviceType.MOBILE),),
        )

        financials = calculate_record_financials(session, end_time=at(12), pricing=pricing)

        assert financials.hourly_rate_snapshot == Decimal("5")
        assert financials.place_cost_rate_snapshot == Decimal("1")
        assert financials.session_invoice == Decimal("15.00")
        assert len(financials.segments_snapshot) == 2

    def test_locked_discount_rejects_new_discount(self, pricing):
        session = make_session(
            discount_applied=AppliedDiscount(
                type=DiscountType.FIXED, value=Decimal("5"), amount=Decimal("5")
            ),
        )

        with pytest.raises(DiscountLockedError) as exc_info:
            calculate_record_financials(
                session, end_time=at(11), pricing=pricing,
                discount=Discount(type=DiscountType.FIXED, value=Decimal("1")),
            )
        assert exc_info.value.record_id == "rec-1"

    def test_locked_discount_reused(self, pricing):
        session = make_session(
            orders=(Order(id="o1", price_at_order=Decimal("20")),),
            discount_applied=AppliedDiscount(
                type=DiscountType.FIXED, value=Decimal("5"), amount=Decimal("5")
            ),
        )

        financials = calculate_record_financials(session, end_time=at(10), pricing=pricing)

        assert financials.total_invoice == Decimal("15")
        assert financials.discount_applied.value == Decimal("5")

    def test_emits_engine_trace(self, pricing, captured_logs):
        calculate_record_financials(make_session(), end_time=at(11), pricing=pricing)

        traces = [r for r in captured_logs() if r["message"] == "VENUE_ENGINE_TRACE"]
        assert any(t["engine_name"] == "billing" for t in traces)
        assert all(len(t["input_fingerprint"]) == 16 for t in traces if t["engine_name"] == "billing")


class TestFinalizeSession:

    def test_record_carries_financials_and_payments(self, pricing):
        record = finalize_session(
            make_session(), at(12, 30), pricing, cash_paid=Decimal("20"), remaining_debt=Decimal("5")
        )

        assert record.id == "rec-1"
        assert record.end_time == at(12, 30)
        assert record.financials.total_invoice == Decimal("25")
        assert record.cash_paid == Decimal("20")
        assert record.remaining_debt == Decimal("5")
        assert record.direct_cost == Decimal("5.00")

    def test_lock_discount_carries_frozen_discount(self, pricing):
        session = make_session(orders=(Order(id="o1", price_at_order=Decimal("30")),))
        financials = calculate_record_financials(
            session, end_time=at(10), pricing=pricing,
            discount=Discount(type=DiscountType.PERCENT, value=Decimal("10")),
        )

        locked = lock_discount(session, financials)

        assert locked.discount_applied.amount == Decimal("3")
        with pytest.raises(DiscountLockedError):
            calculate_record_financials(
                locked, end_time=at(10), pricing=pricing,
                discount=Discount(type=DiscountType.FIXED, value=Decimal("1")),
            )

    def test_lock_discount_without_discount_is_noop(self, pricing):
        session = make_session()
        financials = calculate_record_financials(session, end_time=at(11), pricing=pricing)

        assert lock_discount(session, financials) is session
