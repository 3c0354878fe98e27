"""
Module: venue_engines.settlement
Responsibility:
    Net a customer's new due amount and payment against the credit and
    debt the customer already carries.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Standing credit is consumed before any payment is compared.
    - After settlement at most one of final_credit / final_debt is non-zero.
    - No balance is ever negative.
    - Idempotent: settling the output balances again with nothing due and
      nothing paid returns the same balances.

Failure modes:
    - ValueError when any input amount is negative.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from venue_engines.tracer import traced_engine
from venue_kernel.domain.models import Customer
from venue_kernel.domain.values import ZERO, is_zero_money, to_decimal
from venue_kernel.logging_config import get_logger

logger = get_logger("engines.settlement")


@dataclass(frozen=True)
class SettlementResult:
    """
    Full breakdown of one customer transaction.

    Guarantees:
        - ``final_credit * final_debt == 0``.
        - ``is_fully_paid`` iff final debt is within tolerance of zero.
    """

    total_due: Decimal
    paid_amount: Decimal
    applied_credit: Decimal
    created_debt: Decimal
    created_credit: Decimal
    settled_debt: Decimal
    final_credit: Decimal
    final_debt: Decimal
    is_fully_paid: bool


@traced_engine("settlement", "1.0", fingerprint_fields=("total_due", "paid_amount"))
def calculate_customer_transaction(
    total_due: Decimal | int | str,
    paid_amount: Decimal | int | str,
    customer: Customer,
) -> SettlementResult:
    """
    Settle ``total_due`` with ``paid_amount`` for ``customer``.

    Args:
        total_due: Invoice amount owed for this transaction.
        paid_amount: Money actually handed over.
        customer: Customer whose standing balances are netted.

    Returns:
        SettlementResult with the applied credit, created debt/credit,
        the amount netted away, and the final balances.
    """
    due = to_decimal(total_due)
    paid = to_decimal(paid_amount)
    if due < ZERO or paid < ZERO:
        raise ValueError("total_due and paid_amount must be non-negative")

    start_credit = customer.credit_balance
    applied_credit = min(start_credit, due)
    due_after_credit = due - applied_credit
    delta = paid - due_after_credit

    created_credit = delta if delta > ZERO else ZERO
    created_debt = -delta if delta < ZERO else ZERO

    pre_settle_debt = customer.debt_balance + created_debt
    pre_settle_credit = (start_credit - applied_credit) + created_credit
    settled = min(pre_settle_debt, pre_settle_credit)

    final_debt = pre_settle_debt - settled
    result = SettlementResult(
        total_due=due,
        paid_amount=paid,
        applied_credit=applied_credit,
        created_debt=created_debt,
        created_credit=created_credit,
        settled_debt=settled,
        final_credit=pre_settle_credit - settled,
        final_debt=final_debt,
        is_fully_paid=is_zero_money(final_debt),
    )

    logger.info("customer_settlement_calculated", extra={
        "customer_id": customer.id,
        "total_due": str(due),
        "paid_amount": str(paid),
        "applied_credit": str(applied_credit),
        "settled_debt": str(settled),
        "final_credit": str(result.final_credit),
        "final_debt": str(result.final_debt),
    })
    return result


def apply_settlement(customer: Customer, result: SettlementResult) -> Customer:
    """Return the customer carrying the settled balances."""
    return replace(
        customer,
        credit_balance=result.final_credit,
        debt_balance=result.final_debt,
    )
