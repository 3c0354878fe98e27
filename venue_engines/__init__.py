"""
Module: venue_engines
Responsibility:
    Package entrypoint that re-exports all public symbols from the pure
    calculation engine sub-modules.  This is the canonical import surface
    for callers that own the ledger, records, plans and loans.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import venue_kernel (and sibling engine modules).
    MUST NOT import venue_config; configuration is handed in by callers.

Invariants enforced:
    - Time comes from the ``Clock`` passed in by the caller; when none is
      given, engines fall back to ``SystemClock``.
    - Decimal-only arithmetic: all monetary amounts use ``Decimal``.
    - Determinism: identical inputs (and clock) give identical outputs,
      apart from generated entity ids.

Failure modes:
    - ValueError propagated from individual engines on invalid input.
    - Typed ``VenueLedgerError`` subclasses for rejected operations.

Usage:
    from venue_engines import calculate_record_financials, ledger_balance
    from venue_engines import build_period_snapshot, process_auto_savings
"""

from venue_kernel.logging_config import get_logger

logger = get_logger("engines")

from venue_engines.accrual import (
    AccrualResult,
    accrued_amount,
    process_auto_savings,
)
from venue_engines.billing import (
    SegmentBreakdown,
    calculate_dev_cut,
    calculate_discount_amount,
    calculate_orders_cost,
    calculate_orders_total,
    calculate_record_financials,
    calculate_session_segments,
    finalize_session,
    lock_discount,
)
from venue_engines.ledger import (
    check_ledger_integrity,
    create_entry,
    ledger_balance,
    migrate_legacy_records,
    record_transaction,
    validate_operation,
    validate_transaction,
)
from venue_engines.loans import (
    InstallmentPaymentResult,
    LoanCreation,
    LoanStats,
    check_loan_status_after_payment,
    create_place_loan,
    generate_loan_installments,
    pay_installment,
    place_loan_stats,
)
from venue_engines.partner_ledger import generate_partner_ledger
from venue_engines.reports import (
    CostAnalysisDay,
    ExpensesPageStats,
    PartnerDebtSummary,
    PartnerStats,
    PeriodStats,
    TreasuryStats,
    cost_analysis_view,
    expenses_page_stats,
    ledger_stats_for_period,
    ledger_totals,
    partner_debt_summary,
    partner_stats,
    resolve_actor_name,
    savings_balance,
    treasury_stats,
)
from venue_engines.settlement import (
    SettlementResult,
    apply_settlement,
    calculate_customer_transaction,
)
from venue_engines.snapshot import (
    DistributionTotals,
    build_day_cycle_preview,
    build_period_snapshot,
    ensure_period_not_snapshotted,
    period_lock_for,
    snapshot_distribution_totals,
)
from venue_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Accrual
    "AccrualResult",
    "accrued_amount",
    "process_auto_savings",
    # Billing
    "SegmentBreakdown",
    "calculate_dev_cut",
    "calculate_discount_amount",
    "calculate_orders_cost",
    "calculate_orders_total",
    "calculate_record_financials",
    "calculate_session_segments",
    "finalize_session",
    "lock_discount",
    # Ledger
    "check_ledger_integrity",
    "create_entry",
    "ledger_balance",
    "migrate_legacy_records",
    "record_transaction",
    "validate_operation",
    "validate_transaction",
    # Loans
    "InstallmentPaymentResult",
    "LoanCreation",
    "LoanStats",
    "check_loan_status_after_payment",
    "create_place_loan",
    "generate_loan_installments",
    "pay_installment",
    "place_loan_stats",
    # Partner ledger
    "generate_partner_ledger",
    # Reports
    "CostAnalysisDay",
    "ExpensesPageStats",
    "PartnerDebtSummary",
    "PartnerStats",
    "PeriodStats",
    "TreasuryStats",
    "cost_analysis_view",
    "expenses_page_stats",
    "ledger_stats_for_period",
    "ledger_totals",
    "partner_debt_summary",
    "partner_stats",
    "resolve_actor_name",
    "savings_balance",
    "treasury_stats",
    # Settlement
    "SettlementResult",
    "apply_settlement",
    "calculate_customer_transaction",
    # Snapshot
    "DistributionTotals",
    "build_day_cycle_preview",
    "build_period_snapshot",
    "ensure_period_not_snapshotted",
    "period_lock_for",
    "snapshot_distribution_totals",
    # Tracer
    "compute_input_fingerprint",
    "traced_engine",
]

logger.debug("engines_package_loaded", extra={
    "module_count": 8,
    "modules": [
        "accrual", "billing", "ledger", "loans",
        "partner_ledger", "reports", "settlement", "snapshot",
    ],
})
