"""
Module: venue_engines.loans
Responsibility:
    Amortize the venue's loans: build installment schedules, create
    loans (with the receipt entry for operational loans), pay
    installments, and report payoff progress.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Loans are frozen
    values; every operation returns a new ``PlaceLoan`` the caller
    stores in place of the old one.

Invariants enforced:
    - Installments sum exactly to the principal; only the last one may
      differ from the others.
    - Installment status is monotonic: a paid installment is never paid
      again.
    - A loan closes once payments reach the principal within 0.01.

Failure modes:
    - ValueError for a non-positive installment count.
    - LoanClosedError, InstallmentNotFoundError, InstallmentAlreadyPaidError
      from ``pay_installment``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from venue_engines.ledger import create_entry
from venue_engines.tracer import traced_engine
from venue_kernel.domain.clock import Clock, SystemClock
from venue_kernel.domain.dates import step_date
from venue_kernel.domain.models import (
    Installment,
    LedgerEntry,
    LoanPayment,
    PartnerRoster,
    PlaceLoan,
)
from venue_kernel.domain.values import (
    HUNDRED,
    MONEY_TOLERANCE,
    ZERO,
    Channel,
    Direction,
    InstallmentStatus,
    LenderType,
    LoanStatus,
    LoanType,
    ScheduleCadence,
    TransactionType,
    new_id,
    round_money,
    to_decimal,
)
from venue_kernel.exceptions import (
    InstallmentAlreadyPaidError,
    InstallmentNotFoundError,
    LoanClosedError,
)
from venue_kernel.logging_config import get_logger

logger = get_logger("engines.loans")

INSTALLMENT_PAYMENT_NOTE = "Installment payment"


def generate_loan_installments(
    loan_id: str,
    principal: Decimal | int | str,
    start_date: date,
    cadence: ScheduleCadence,
    count: int,
) -> tuple[Installment, ...]:
    """
    Equal installments of ``principal / count`` (cents, half-up).

    The final installment absorbs the rounding remainder.  The first is
    due on ``start_date`` and each later one a cadence period after the
    previous; monthly steps clamp to the month's last day.
    """
    if count < 1:
        raise ValueError(f"installment count must be at least 1, got {count}")
    total = to_decimal(principal)
    base = round_money(total / count)
    last = total - base * (count - 1)

    return tuple(
        Installment(
            id=f"{loan_id}-{index + 1}",
            loan_id=loan_id,
            amount=last if index == count - 1 else base,
            due_date=step_date(start_date, cadence, index),
        )
        for index in range(count)
    )


@dataclass(frozen=True)
class LoanCreation:
    loan: PlaceLoan
    entry: LedgerEntry | None


@traced_engine("loans", "1.0", fingerprint_fields=("principal", "installments_count"))
def create_place_loan(
    *,
    lender_type: LenderType,
    lender_name: str,
    principal: Decimal | int | str,
    channel: Channel,
    start_date: date,
    schedule_type: ScheduleCadence = ScheduleCadence.MONTHLY,
    installments_count: int = 1,
    loan_type: LoanType = LoanType.OPERATIONAL,
    partner_id: str | None = None,
    reason: str = "",
    account_id: str | None = None,
    roster: PartnerRoster | None = None,
    clock: Clock | None = None,
) -> LoanCreation:
    """
    Create a loan with its installment schedule.

    A partner lender's display name comes from the roster when one is
    given.  Operational loans bring money in, so they also produce a
    ``loan_receipt`` entry on the loan's channel dated ``start_date``;
    development loans are commitments only and produce no entry.
    """
    clock = clock or SystemClock()
    if lender_type == LenderType.PARTNER and partner_id and roster is not None:
        partner = roster.get(partner_id)
        if partner is not None:
            lender_name = partner.name

    loan_id = new_id()
    installments = generate_loan_installments(
        loan_id, principal, start_date, schedule_type, installments_count
    )
    loan = PlaceLoan(
        id=loan_id,
        lender_type=lender_type,
        lender_name=lender_name,
        principal=to_decimal(principal),
        channel=channel,
        start_date=start_date,
        schedule_type=schedule_type,
        installments_count=len(installments),
        installment_amount=installments[0].amount,
        loan_type=loan_type,
        partner_id=partner_id if lender_type == LenderType.PARTNER else None,
        reason=reason,
        account_id=account_id if channel == Channel.BANK else None,
        created_at=clock.now(),
        installments=installments,
    )

    entry = None
    match loan_type:
        case LoanType.OPERATIONAL:
            entry = create_entry(
                TransactionType.LOAN_RECEIPT,
                loan.principal,
                Direction.IN,
                channel,
                f"Loan from {loan.lender_name}",
                clock=clock,
                date_key=start_date,
                account_id=loan.account_id,
                entity_id=loan.id,
                partner_id=loan.partner_id,
                reference_id=loan.id,
            )
        case LoanType.DEVELOPMENT:
            pass
        case _:
            raise ValueError(f"Unknown loan type: {loan_type}")

    logger.info("place_loan_created", extra={
        "loan_id": loan.id,
        "lender_type": lender_type.value,
        "loan_type": loan_type.value,
        "principal": str(loan.principal),
        "installments_count": loan.installments_count,
        "receipt_recorded": entry is not None,
    })
    return LoanCreation(loan=loan, entry=entry)


@dataclass(frozen=True)
class LoanStats:
    paid: Decimal
    remaining: Decimal
    progress: Decimal
    is_fully_paid: bool


def place_loan_stats(loan: PlaceLoan) -> LoanStats:
    """Paid, remaining and percent progress of a loan."""
    paid = loan.total_paid
    remaining = loan.principal - paid
    progress = min(HUNDRED, paid / loan.principal * HUNDRED) if loan.principal > ZERO else ZERO
    return LoanStats(
        paid=paid,
        remaining=remaining,
        progress=progress,
        is_fully_paid=remaining <= MONEY_TOLERANCE,
    )


def check_loan_status_after_payment(loan: PlaceLoan, amount: Decimal | int | str) -> LoanStatus:
    """Status the loan would have after paying ``amount`` more."""
    if loan.total_paid + to_decimal(amount) >= loan.principal - MONEY_TOLERANCE:
        return LoanStatus.CLOSED
    return LoanStatus.ACTIVE


@dataclass(frozen=True)
class InstallmentPaymentResult:
    loan: PlaceLoan
    payment: LoanPayment
    entry: LedgerEntry


@traced_engine("loans", "1.0", fingerprint_fields=("installment_id", "amount"))
def pay_installment(
    loan: PlaceLoan,
    installment_id: str,
    amount: Decimal | int | str,
    channel: Channel,
    payment_date: date,
    account_id: str | None = None,
    clock: Clock | None = None,
) -> InstallmentPaymentResult:
    """
    Pay one installment of ``loan``.

    The installment is marked paid, the payment appended, the loan's
    status recomputed, and a ``loan_repayment`` out entry produced for
    the caller to record.

    Raises:
        LoanClosedError: The loan is already closed.
        InstallmentNotFoundError: No installment with that id.
        InstallmentAlreadyPaidError: The installment was paid before.
    """
    if loan.status == LoanStatus.CLOSED:
        raise LoanClosedError(loan.id)
    target = next((i for i in loan.installments if i.id == installment_id), None)
    if target is None:
        raise InstallmentNotFoundError(loan.id, installment_id)
    if target.status == InstallmentStatus.PAID:
        raise InstallmentAlreadyPaidError(loan.id, installment_id)

    value = to_decimal(amount)
    bank_account = account_id if channel == Channel.BANK else None
    payment = LoanPayment(
        id=new_id(),
        loan_id=loan.id,
        installment_id=installment_id,
        date=payment_date,
        amount=value,
        channel=channel,
        account_id=bank_account,
        note=INSTALLMENT_PAYMENT_NOTE,
    )
    status = check_loan_status_after_payment(loan, value)
    updated = replace(
        loan,
        installments=tuple(
            replace(i, status=InstallmentStatus.PAID) if i.id == installment_id else i
            for i in loan.installments
        ),
        payments=(*loan.payments, payment),
        status=status,
    )
    entry = create_entry(
        TransactionType.LOAN_REPAYMENT,
        value,
        Direction.OUT,
        channel,
        f"Loan repayment: {loan.lender_name}",
        clock=clock,
        date_key=payment_date,
        account_id=bank_account,
        entity_id=payment.id,
        partner_id=loan.partner_id,
        reference_id=loan.id,
    )

    logger.info("loan_installment_paid", extra={
        "loan_id": loan.id,
        "installment_id": installment_id,
        "amount": str(value),
        "status": status.value,
    })
    return InstallmentPaymentResult(loan=updated, payment=payment, entry=entry)
