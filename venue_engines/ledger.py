"""
Module: venue_engines.ledger
Responsibility:
    Derive channel balances from the append-only ledger, validate new
    transactions against those balances and against period locks, check
    ledger integrity, and construct new entries.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The ledger is a
    sequence of immutable ``LedgerEntry`` values owned by the caller;
    functions here never mutate it and return new tuples instead.

Invariants enforced:
    - Balance is a pure fold: ``in`` adds, ``out`` subtracts.
    - Purchase deposits by partners never add to a balance.
    - Unconfirmed bank inflows never add to a balance.
    - ``out`` entries are never suppressed.
    - A validated withdrawal never takes cash/bank below -0.01.
    - Operations dated on or before a period lock are rejected before
      anything is recorded (fail closed).

Failure modes:
    - InsufficientBalanceError from ``validate_transaction``.
    - LockedPeriodError from ``validate_operation``.
    - ``check_ledger_integrity`` never raises; it returns messages.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date

from decimal import Decimal

from venue_engines.tracer import traced_engine
from venue_kernel.domain.clock import Clock, SystemClock
from venue_kernel.domain.markers import (
    DEFAULT_MARKERS,
    DescriptionMarkers,
    is_partner_purchase_deposit,
)
from venue_kernel.domain.models import LedgerEntry, PeriodLock, SessionRecord
from venue_kernel.domain.values import (
    MONEY_TOLERANCE,
    ZERO,
    Channel,
    Direction,
    TransactionType,
    TransferStatus,
    format_currency,
    new_id,
    to_decimal,
)
from venue_kernel.exceptions import InsufficientBalanceError, LockedPeriodError
from venue_kernel.logging_config import get_logger

logger = get_logger("engines.ledger")


def _counts_toward_balance(entry: LedgerEntry, markers: DescriptionMarkers) -> bool:
    if entry.direction == Direction.OUT:
        return True
    if is_partner_purchase_deposit(entry, markers):
        return False
    if entry.channel == Channel.BANK and not entry.is_confirmed_transfer:
        return False
    return True


def ledger_balance(
    ledger: Iterable[LedgerEntry],
    channel: Channel,
    account_id: str | None = None,
    markers: DescriptionMarkers = DEFAULT_MARKERS,
) -> Decimal:
    """
    Balance of ``channel`` (optionally one bank account) over the ledger.

    Pure fold; calling it twice on the same ledger gives the same value.
    """
    balance = ZERO
    for entry in ledger:
        if entry.channel != channel:
            continue
        if account_id and entry.account_id != account_id:
            continue
        if not _counts_toward_balance(entry, markers):
            continue
        balance += entry.signed_amount
    return balance


def validate_transaction(
    ledger: Sequence[LedgerEntry],
    amount: Decimal | int | str,
    channel: Channel,
    account_id: str | None = None,
    markers: DescriptionMarkers = DEFAULT_MARKERS,
) -> None:
    """
    Reject a withdrawal of ``amount`` that the channel cannot fund.

    The receivable channel is exempt: debts need no funding.

    Raises:
        InsufficientBalanceError: if ``balance - amount < -0.01``.
    """
    if channel == Channel.RECEIVABLE:
        return
    value = to_decimal(amount)
    balance = ledger_balance(ledger, channel, account_id, markers)
    if balance - value < -MONEY_TOLERANCE:
        logger.warning("transaction_rejected", extra={
            "reason": "insufficient_balance",
            "channel": channel.value,
            "account_id": account_id,
            "balance": str(balance),
            "amount": str(value),
        })
        raise InsufficientBalanceError(
            channel=channel.value,
            balance=f"{balance:.2f}",
            amount=str(value),
            account_id=account_id,
        )


def validate_operation(operation_date: date, lock: PeriodLock | None) -> None:
    """
    Reject a mutation dated inside a locked period.

    Raises:
        LockedPeriodError: if ``operation_date <= lock.locked_until``.
    """
    if lock is not None and operation_date <= lock.locked_until:
        logger.warning("transaction_rejected", extra={
            "reason": "locked_period",
            "operation_date": operation_date.isoformat(),
            "locked_until": lock.locked_until.isoformat(),
        })
        raise LockedPeriodError(operation_date.isoformat(), lock.locked_until.isoformat())


def check_ledger_integrity(
    ledger: Sequence[LedgerEntry],
    markers: DescriptionMarkers = DEFAULT_MARKERS,
    currency_symbol: str = "₪",
) -> list[str]:
    """
    Report integrity problems as messages. Never raises.

    Currently detects a critical cash deficit (cash balance below -0.01).
    """
    errors: list[str] = []
    cash = ledger_balance(ledger, Channel.CASH, markers=markers)
    if cash < -MONEY_TOLERANCE:
        errors.append(f"Critical cash deficit: {format_currency(cash, currency_symbol)}")
        logger.warning("ledger_integrity_cash_deficit", extra={
            "cash_balance": str(cash),
            "entry_count": len(ledger),
        })
    return errors


def create_entry(
    transaction_type: TransactionType,
    amount: Decimal | int | str,
    direction: Direction,
    channel: Channel,
    description: str,
    *,
    clock: Clock | None = None,
    date_key: date | None = None,
    account_id: str | None = None,
    entity_id: str | None = None,
    partner_id: str | None = None,
    partner_name: str | None = None,
    reference_id: str | None = None,
    performed_by_id: str | None = None,
    performed_by_name: str | None = None,
    transfer_status: TransferStatus | None = None,
    sender_name: str | None = None,
) -> LedgerEntry:
    """
    Build a new ledger entry stamped by ``clock``.

    ``date_key`` defaults to the clock's current day.  The entry is not
    recorded anywhere; see ``record_transaction``.
    """
    clock = clock or SystemClock()
    now = clock.now()
    return LedgerEntry(
        id=new_id(),
        timestamp=now,
        date_key=date_key or now.date(),
        type=transaction_type,
        amount=to_decimal(amount),
        direction=direction,
        channel=channel,
        description=description,
        account_id=account_id,
        transfer_status=transfer_status,
        entity_id=entity_id,
        partner_id=partner_id,
        partner_name=partner_name,
        reference_id=reference_id,
        performed_by_id=performed_by_id,
        performed_by_name=performed_by_name,
        sender_name=sender_name,
    )


@traced_engine("ledger", "1.0")
def record_transaction(
    ledger: Sequence[LedgerEntry],
    entry: LedgerEntry,
    lock: PeriodLock | None = None,
    markers: DescriptionMarkers = DEFAULT_MARKERS,
) -> tuple[LedgerEntry, ...]:
    """
    Validate ``entry`` and return the ledger with it appended.

    Period lock first, then funds for outgoing entries.  On rejection
    the original ledger is untouched and nothing is appended.
    """
    validate_operation(entry.date_key, lock)
    if entry.direction == Direction.OUT:
        validate_transaction(ledger, entry.amount, entry.channel, entry.account_id, markers)

    logger.info("ledger_entry_recorded", extra={
        "entry_id": entry.id,
        "type": entry.type.value,
        "direction": entry.direction.value,
        "channel": entry.channel.value,
        "amount": str(entry.amount),
        "date_key": entry.date_key.isoformat(),
    })
    return (*ledger, entry)


def migrate_legacy_records(records: Iterable[SessionRecord]) -> list[LedgerEntry]:
    """
    Rebuild ledger entries for records that predate the ledger.

    Cash paid becomes session income; remaining debt becomes a receivable.
    Entries carry the record's end time and are returned newest first.
    """
    entries: list[LedgerEntry] = []
    for record in records:
        common = {
            "timestamp": record.end_time,
            "date_key": record.end_date,
            "entity_id": record.id,
        }
        if record.cash_paid > ZERO:
            entries.append(LedgerEntry(
                id=new_id(),
                type=TransactionType.INCOME_SESSION,
                amount=record.cash_paid,
                direction=Direction.IN,
                channel=Channel.CASH,
                description=f"Session: {record.customer_name}",
                **common,
            ))
        if record.remaining_debt > ZERO:
            entries.append(LedgerEntry(
                id=new_id(),
                type=TransactionType.DEBT_CREATE,
                amount=record.remaining_debt,
                direction=Direction.IN,
                channel=Channel.RECEIVABLE,
                description=f"Debt: {record.customer_name}",
                **common,
            ))
    entries.sort(key=lambda e: e.timestamp, reverse=True)
    logger.info("legacy_records_migrated", extra={"entry_count": len(entries)})
    return entries
