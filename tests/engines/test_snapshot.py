"""
Tests for the period snapshot builder.

Covers:
- Period totals and profit figures
- Automatic-expense exclusion from outflows
- Partner allocation (base share, cash/bank ratio, reimbursements)
- Overlap guard, period lock and distribution totals
- Day-cycle preview
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from venue_engines.snapshot import (
    PREVIEW_CYCLE_ID,
    build_day_cycle_preview,
    build_period_snapshot,
    ensure_period_not_snapshotted,
    period_lock_for,
    snapshot_distribution_totals,
)
from venue_kernel.domain.values import Channel, Direction, TransactionType, TransferStatus
from venue_kernel.exceptions import SnapshotPeriodOverlapError

UTC = timezone.utc
JAN_1 = date(2024, 1, 1)
JAN_31 = date(2024, 1, 31)
PRECISION = Decimal("0.000001")


@pytest.fixture
def example_ledger(entry_factory):
    return (
        entry_factory(TransactionType.INCOME_SESSION, "1000", day=date(2024, 1, 15)),
        entry_factory(TransactionType.EXPENSE_OPERATIONAL, "200", Direction.OUT, day=date(2024, 1, 15)),
        entry_factory(TransactionType.INCOME_SESSION, "500", channel=Channel.BANK, day=date(2024, 1, 16)),
    )


def build(ledger, pricing, roster, clock, records=(), start=JAN_1, end=JAN_31, **kwargs):
    return build_period_snapshot(
        ledger, records, start, end, pricing, roster, clock=clock, **kwargs
    )


class TestPeriodTotals:

    def test_reference_example(self, example_ledger, pricing, roster, deterministic_clock):
        snapshot = build(example_ledger, pricing, roster, deterministic_clock)

        assert snapshot.total_cash_revenue == Decimal("1000")
        assert snapshot.total_bank_revenue == Decimal("500")
        assert snapshot.total_paid_revenue == Decimal("1500")
        assert snapshot.total_invoice == Decimal("1500")
        assert snapshot.total_debt_revenue == Decimal("0")
        assert snapshot.total_cash_expenses == Decimal("200")
        assert snapshot.net_cash_in_place == Decimal("800")
        assert snapshot.net_bank_in_place == Decimal("500")
        assert snapshot.gross_profit == Decimal("1300")
        assert snapshot.dev_cut == Decimal("130")
        assert snapshot.net_profit_paid == Decimal("1170")
        assert snapshot.dev_percent_snapshot == Decimal("10")

    def test_partner_payouts_sum_to_net_profit(self, example_ledger, pricing, roster, deterministic_clock):
        snapshot = build(example_ledger, pricing, roster, deterministic_clock)

        total = sum(p.final_payout_total for p in snapshot.partners)
        assert abs(total - snapshot.net_profit_paid) < PRECISION
        assert [p.partner_id for p in snapshot.partners] == ["abu_khaled", "khaled", "abdullah"]
        assert snapshot.partners[0].base_share == Decimal("397.8")
        assert snapshot.partners[0].share_percent == Decimal("0.34")

    def test_cash_bank_ratio_follows_net_flows(self, example_ledger, pricing, roster, deterministic_clock):
        snapshot = build(example_ledger, pricing, roster, deterministic_clock)

        share = snapshot.partners[1]
        expected_cash = share.base_share * Decimal("800") / Decimal("1300")
        assert abs(share.cash_share_available - expected_cash) < PRECISION
        assert abs(share.cash_share_available + share.bank_share_available - share.base_share) < PRECISION

    def test_stamped_by_clock(self, example_ledger, pricing, roster, deterministic_clock):
        snapshot = build(example_ledger, pricing, roster, deterministic_clock)

        assert snapshot.created_at == deterministic_clock.now()
        assert snapshot.archive_date == deterministic_clock.now()
        assert snapshot.archive_id.startswith("SNAP-")
        assert snapshot.type == "manual"

    def test_entries_outside_period_ignored(self, example_ledger, entry_factory, pricing, roster,
                                            deterministic_clock):
        outside = entry_factory(TransactionType.INCOME_SESSION, "5000", day=date(2024, 2, 1))

        snapshot = build((*example_ledger, outside), pricing, roster, deterministic_clock)

        assert snapshot.total_invoice == Decimal("1500")

    def test_direct_costs_from_period_records(self, example_ledger, record_factory, pricing, roster,
                                              deterministic_clock):
        records = [
            record_factory(datetime(2024, 1, 20, 22, 0, tzinfo=UTC),
                           place_cost="10", drinks_cost="20", cards_cost="5"),
            record_factory(datetime(2024, 2, 2, 22, 0, tzinfo=UTC), place_cost="99"),
        ]

        snapshot = build(example_ledger, pricing, roster, deterministic_clock, records=records)

        assert snapshot.total_place_cost == Decimal("10")
        assert snapshot.total_drinks_cost == Decimal("20")
        assert snapshot.total_cards_cost == Decimal("5")
        assert snapshot.gross_profit == Decimal("1265")

    def test_electricity_and_loans_reduce_profit(self, example_ledger, entry_factory, pricing, roster,
                                                 deterministic_clock):
        repayment = entry_factory(TransactionType.LOAN_REPAYMENT, "100", Direction.OUT, day=date(2024, 1, 20))

        snapshot = build(
            (*example_ledger, repayment), pricing, roster, deterministic_clock,
            electricity_cost=Decimal("50"),
        )

        assert snapshot.total_expenses == Decimal("250")
        assert snapshot.total_loan_repayments == Decimal("100")
        assert snapshot.electricity_cost == Decimal("50")
        assert snapshot.gross_profit == Decimal("1150")

    def test_automatic_expense_not_an_outflow(self, example_ledger, entry_factory, pricing, roster,
                                              deterministic_clock):
        accrual = entry_factory(
            TransactionType.EXPENSE_OPERATIONAL, "30", Direction.OUT,
            description="تلقائي: Rent (3 days)", day=date(2024, 1, 20),
        )

        snapshot = build((*example_ledger, accrual), pricing, roster, deterministic_clock)

        assert snapshot.total_cash_expenses == Decimal("200")
        assert snapshot.total_expenses == Decimal("230")

    def test_pending_bank_inflow_excluded_from_bank_revenue(self, example_ledger, entry_factory, pricing,
                                                            roster, deterministic_clock):
        pending = entry_factory(
            TransactionType.DEBT_PAYMENT, "300", channel=Channel.BANK,
            transfer_status=TransferStatus.PENDING, day=date(2024, 1, 18),
        )

        snapshot = build((*example_ledger, pending), pricing, roster, deterministic_clock)

        assert snapshot.total_bank_revenue == Decimal("500")

    def test_debt_counts_as_revenue(self, entry_factory, pricing, roster, deterministic_clock):
        ledger = (
            entry_factory(TransactionType.DEBT_CREATE, "500", channel=Channel.RECEIVABLE, day=date(2024, 1, 5)),
        )

        snapshot = build(ledger, pricing, roster, deterministic_clock)

        assert snapshot.total_invoice == Decimal("500")
        assert snapshot.total_debt_revenue == Decimal("500")
        assert snapshot.net_profit_paid == Decimal("450")
        # No cash or bank movement: even split
        share = snapshot.partners[0]
        assert share.cash_share_available == share.base_share * Decimal("0.5")

    def test_loss_gives_zero_shares(self, entry_factory, pricing, roster, deterministic_clock):
        ledger = (
            entry_factory(TransactionType.EXPENSE_OPERATIONAL, "80", Direction.OUT, day=date(2024, 1, 5)),
        )

        snapshot = build(ledger, pricing, roster, deterministic_clock)

        assert snapshot.gross_profit == Decimal("-80")
        assert snapshot.dev_cut == Decimal("0")
        assert all(p.base_share == Decimal("0") for p in snapshot.partners)

    def test_inverted_range_rejected(self, example_ledger, pricing, roster, deterministic_clock):
        with pytest.raises(ValueError):
            build(example_ledger, pricing, roster, deterministic_clock, start=JAN_31, end=JAN_1)


class TestPartnerActivity:

    def test_purchases_reimbursed_and_withdrawals_deducted(self, example_ledger, entry_factory, pricing,
                                                           roster, deterministic_clock):
        ledger = (
            *example_ledger,
            entry_factory(TransactionType.PARTNER_DEPOSIT, "60", description="شراء بضاعة",
                          partner_id="khaled", day=date(2024, 1, 17)),
            entry_factory(TransactionType.PARTNER_WITHDRAWAL, "50", Direction.OUT,
                          partner_id="khaled", day=date(2024, 1, 18)),
        )

        snapshot = build(ledger, pricing, roster, deterministic_clock)

        khaled = next(p for p in snapshot.partners if p.partner_id == "khaled")
        assert khaled.purchases_reimbursement == Decimal("60")
        assert khaled.place_debt_deducted == Decimal("50")
        assert abs(khaled.final_payout_cash - (khaled.cash_share_available + Decimal("10"))) < PRECISION
        assert khaled.final_payout_bank == khaled.bank_share_available

        other = next(p for p in snapshot.partners if p.partner_id == "abdullah")
        assert other.purchases_reimbursement == Decimal("0")
        assert other.place_debt_deducted == Decimal("0")


class TestSnapshotGuards:

    def test_distribution_totals(self, example_ledger, pricing, roster, deterministic_clock):
        snapshot = build(example_ledger, pricing, roster, deterministic_clock)

        totals = snapshot_distribution_totals(snapshot)

        assert abs(totals.total_cash + totals.total_bank - Decimal("1170")) < PRECISION

    def test_overlap_rejected(self, example_ledger, pricing, roster, deterministic_clock):
        snapshot = build(example_ledger, pricing, roster, deterministic_clock)

        with pytest.raises(SnapshotPeriodOverlapError) as exc_info:
            ensure_period_not_snapshotted(date(2024, 1, 31), date(2024, 2, 15), [snapshot])
        assert exc_info.value.snapshot_id == snapshot.id

    def test_adjacent_period_allowed(self, example_ledger, pricing, roster, deterministic_clock):
        snapshot = build(example_ledger, pricing, roster, deterministic_clock)

        ensure_period_not_snapshotted(date(2024, 2, 1), date(2024, 2, 29), [snapshot])

    def test_period_lock_closes_snapshot(self, example_ledger, pricing, roster, deterministic_clock):
        snapshot = build(example_ledger, pricing, roster, deterministic_clock)

        assert period_lock_for(snapshot).locked_until == JAN_31


class TestDayCyclePreview:

    def test_sums_inflows_since_start(self, entry_factory, deterministic_clock):
        def at(hour):
            return datetime(2024, 1, 1, hour, 0, tzinfo=UTC)

        ledger = (
            entry_factory(TransactionType.INCOME_SESSION, "999", timestamp=at(7), day=JAN_1),
            entry_factory(TransactionType.INCOME_SESSION, "50", timestamp=at(9), day=JAN_1),
            entry_factory(TransactionType.INCOME_PRODUCT, "30", channel=Channel.BANK, timestamp=at(10),
                          day=JAN_1),
            entry_factory(TransactionType.DEBT_CREATE, "20", channel=Channel.RECEIVABLE, timestamp=at(11),
                          day=JAN_1),
            entry_factory(TransactionType.EXPENSE_OPERATIONAL, "5", Direction.OUT, timestamp=at(11),
                          day=JAN_1),
            entry_factory(TransactionType.INCOME_SESSION, "777", timestamp=at(13), day=JAN_1),
        )

        cycle = build_day_cycle_preview(ledger, at(8), deterministic_clock)

        assert cycle.id == PREVIEW_CYCLE_ID
        assert cycle.date_key == JAN_1
        assert cycle.month_key == "2024-01"
        assert cycle.cash_revenue == Decimal("50")
        assert cycle.bank_revenue == Decimal("30")
        assert cycle.total_revenue == Decimal("80")
        assert cycle.total_debt == Decimal("20")
        assert cycle.total_invoice == Decimal("100")
        assert cycle.end_time == deterministic_clock.now()
