"""Tests for recurring plan accrual."""

from datetime import date
from decimal import Decimal

import pytest

from venue_engines.accrual import SYSTEM_ACTOR_ID, accrued_amount, process_auto_savings
from venue_kernel.domain.markers import DescriptionMarkers
from venue_kernel.domain.models import SavingPlan
from venue_kernel.domain.values import (
    Channel,
    Direction,
    PlanCategory,
    PlanType,
    TransactionType,
)

PROCESSING = date(2024, 1, 10)


def plan(**overrides) -> SavingPlan:
    fields = {
        "id": "plan-1",
        "name": "Reserve",
        "type": PlanType.DAILY_SAVING,
        "category": PlanCategory.SAVING,
        "amount": Decimal("5"),
        "channel": Channel.CASH,
        "last_applied_at": date(2024, 1, 7),
    }
    fields.update(overrides)
    return SavingPlan(**fields)


class TestDailySaving:

    def test_three_days_accrue_fifteen(self, deterministic_clock):
        result = process_auto_savings([plan()], PROCESSING, clock=deterministic_clock)

        assert len(result.entries) == 1
        entry = result.entries[0]
        assert entry.amount == Decimal("15")
        assert entry.type == TransactionType.SAVING_DEPOSIT
        assert entry.direction == Direction.OUT
        assert entry.channel == Channel.CASH
        assert entry.date_key == PROCESSING
        assert entry.performed_by_id == SYSTEM_ACTOR_ID
        assert result.updated_plans[0].last_applied_at == PROCESSING

    def test_rerun_same_date_emits_nothing(self, deterministic_clock):
        first = process_auto_savings([plan()], PROCESSING, clock=deterministic_clock)

        second = process_auto_savings(first.updated_plans, PROCESSING, clock=deterministic_clock)

        assert second.entries == ()
        assert second.updated_plans == first.updated_plans

    def test_future_cursor_unchanged(self, deterministic_clock):
        future = plan(last_applied_at=date(2024, 1, 12))

        result = process_auto_savings([future], PROCESSING, clock=deterministic_clock)

        assert result.entries == ()
        assert result.updated_plans == (future,)


class TestMonthlyPayment:

    def test_prorated_by_days_in_month(self, deterministic_clock):
        rent = plan(
            type=PlanType.MONTHLY_PAYMENT, category=PlanCategory.EXPENSE, amount=Decimal("310"),
            last_applied_at=date(2024, 1, 8),
        )

        result = process_auto_savings([rent], PROCESSING, clock=deterministic_clock)

        entry = result.entries[0]
        assert entry.amount == Decimal("20")
        assert entry.type == TransactionType.EXPENSE_OPERATIONAL

    def test_expense_entry_carries_automatic_marker(self, deterministic_clock):
        rent = plan(type=PlanType.MONTHLY_PAYMENT, category=PlanCategory.EXPENSE, name="Rent")

        result = process_auto_savings([rent], PROCESSING, clock=deterministic_clock)

        assert result.entries[0].description.startswith("تلقائي")
        assert "Rent (3 days)" in result.entries[0].description

    def test_custom_automatic_keyword(self, deterministic_clock):
        rent = plan(category=PlanCategory.EXPENSE)
        markers = DescriptionMarkers(automatic_keyword="AUTO")

        result = process_auto_savings([rent], PROCESSING, clock=deterministic_clock, markers=markers)

        assert result.entries[0].description.startswith("AUTO: ")

    def test_prorated_amount_rounded_to_cents(self, deterministic_clock):
        rent = plan(type=PlanType.MONTHLY_PAYMENT, amount=Decimal("100"), last_applied_at=date(2024, 1, 9))

        result = process_auto_savings([rent], PROCESSING, clock=deterministic_clock)

        assert result.entries[0].amount == Decimal("3.23")
        assert result.entries[0].amount.as_tuple().exponent == -2

    def test_accrual_rounding_to_zero_keeps_cursor(self, deterministic_clock):
        tiny = plan(type=PlanType.MONTHLY_PAYMENT, amount=Decimal("0.10"), last_applied_at=date(2024, 1, 9))

        result = process_auto_savings([tiny], PROCESSING, clock=deterministic_clock)

        assert result.entries == ()
        assert result.updated_plans == (tiny,)

    def test_accrued_amount_february_leap_year(self):
        rent = plan(type=PlanType.MONTHLY_PAYMENT, amount=Decimal("290"))

        assert accrued_amount(rent, 2, date(2024, 2, 10)) == Decimal("20")


class TestPlanFiltering:

    def test_inactive_plan_passes_through(self, deterministic_clock):
        paused = plan(is_active=False)

        result = process_auto_savings([paused], PROCESSING, clock=deterministic_clock)

        assert result.entries == ()
        assert result.updated_plans == (paused,)

    def test_zero_amount_keeps_cursor(self, deterministic_clock):
        empty = plan(amount=Decimal("0"))

        result = process_auto_savings([empty], PROCESSING, clock=deterministic_clock)

        assert result.entries == ()
        assert result.updated_plans[0].last_applied_at == date(2024, 1, 7)

    def test_bank_plan_uses_its_account(self, deterministic_clock):
        banked = plan(channel=Channel.BANK, bank_account_id="acc-9")

        result = process_auto_savings([banked], PROCESSING, clock=deterministic_clock)

        assert result.entries[0].channel == Channel.BANK
        assert result.entries[0].account_id == "acc-9"

    def test_order_of_plans_preserved(self, deterministic_clock):
        plans = [plan(id="a"), plan(id="b", is_active=False), plan(id="c")]

        result = process_auto_savings(plans, PROCESSING, clock=deterministic_clock)

        assert [p.id for p in result.updated_plans] == ["a", "b", "c"]
        assert len(result.entries) == 2

    @pytest.mark.parametrize("cursor, expected", [
        (date(2024, 1, 9), Decimal("5")),
        (date(2023, 12, 31), Decimal("50")),
    ])
    def test_elapsed_days(self, deterministic_clock, cursor, expected):
        result = process_auto_savings([plan(last_applied_at=cursor)], PROCESSING, clock=deterministic_clock)

        assert result.entries[0].amount == expected
