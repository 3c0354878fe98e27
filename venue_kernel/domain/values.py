"""
Values -- closed enumerations and Decimal money helpers.

Responsibility:
    Provides the vocabulary shared by every engine: transaction types,
    directions, channels, device and order types, plan/loan states, and
    the helpers that keep money in ``Decimal`` with an explicit rounding
    mode.

Invariants enforced:
    - Money is always ``Decimal``; ``to_decimal`` rejects floats so that
      binary rounding never leaks into a ledger amount.
    - Every money comparison uses ``MONEY_TOLERANCE`` (0.01).
    - Rounding is ROUND_HALF_UP: cents for intermediate figures, whole
      units for final invoices.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from uuid import uuid4

MONEY_TOLERANCE = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

_TWO_PLACES = Decimal("0.01")
_WHOLE_UNIT = Decimal("1")


class TransactionType(str, Enum):
    """Closed set of ledger transaction types."""

    INCOME_SESSION = "income_session"
    INCOME_PRODUCT = "income_product"
    EXPENSE_OPERATIONAL = "expense_operational"
    EXPENSE_PURCHASE = "expense_purchase"
    DEBT_CREATE = "debt_create"
    DEBT_PAYMENT = "debt_payment"
    LOAN_RECEIPT = "loan_receipt"
    LOAN_REPAYMENT = "loan_repayment"
    PARTNER_DEPOSIT = "partner_deposit"
    PARTNER_WITHDRAWAL = "partner_withdrawal"
    PARTNER_DEBT_PAYMENT = "partner_debt_payment"
    SAVING_DEPOSIT = "saving_deposit"
    SAVING_WITHDRAWAL = "saving_withdrawal"
    LIQUIDATION_TO_APP = "liquidation_to_app"


INCOME_TYPES = frozenset({TransactionType.INCOME_SESSION, TransactionType.INCOME_PRODUCT})
EXPENSE_TYPES = frozenset({TransactionType.EXPENSE_OPERATIONAL, TransactionType.EXPENSE_PURCHASE})


class Direction(str, Enum):
    IN = "in"
    OUT = "out"


class Channel(str, Enum):
    """Financial channel: a bucket with its own balance semantics."""

    CASH = "cash"
    BANK = "bank"
    RECEIVABLE = "receivable"


class TransferStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class DeviceType(str, Enum):
    LAPTOP = "laptop"
    MOBILE = "mobile"


class OrderType(str, Enum):
    DRINK = "drink"
    INTERNET_CARD = "internet_card"


class DiscountType(str, Enum):
    FIXED = "fixed"
    PERCENT = "percent"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class LenderType(str, Enum):
    PARTNER = "partner"
    EXTERNAL = "external"


class LoanType(str, Enum):
    OPERATIONAL = "operational"  # Cash enters the till
    DEVELOPMENT = "development"  # Commitment only


class ScheduleCadence(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class PlanType(str, Enum):
    DAILY_SAVING = "daily_saving"
    MONTHLY_PAYMENT = "monthly_payment"


class PlanCategory(str, Enum):
    SAVING = "saving"
    EXPENSE = "expense"


class FundingSource(str, Enum):
    PLACE = "place"
    PARTNER = "partner"


class DebtSource(str, Enum):
    PLACE = "place"
    EXTERNAL = "external"


class PartnerLedgerItemType(str, Enum):
    PROFIT_SHARE = "profit_share"
    PURCHASE_REIMBURSEMENT = "purchase_reimbursement"
    WITHDRAWAL = "withdrawal"


class PeriodKind(str, Enum):
    TODAY = "today"
    MONTH = "month"
    CUSTOM = "custom"


# ---------------------------------------------------------------------------
# Money helpers
# ---------------------------------------------------------------------------


def to_decimal(value: Decimal | int | str | None) -> Decimal:
    """
    Convert a money-ish value to Decimal.

    ``None`` becomes zero.  Floats are refused: callers convert at the
    boundary (see ``normalization``) through ``str``.

    Raises:
        TypeError: for float input.
        ValueError: for strings that are not numbers.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Money must not be built from {type(value).__name__}: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def round_money(amount: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def round_whole(amount: Decimal) -> Decimal:
    """Round to the nearest whole currency unit, half-up."""
    return amount.quantize(_WHOLE_UNIT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """``amount * percent / 100`` at full precision."""
    return amount * percent / HUNDRED


def is_zero_money(amount: Decimal) -> bool:
    """True when ``amount`` is within tolerance of zero."""
    return abs(amount) < MONEY_TOLERANCE


def format_currency(amount: Decimal, symbol: str = "₪") -> str:
    """Display form used in messages: two decimals and the currency symbol."""
    return f"{round_money(amount):.2f} {symbol}"


def new_id() -> str:
    """Generate an opaque identifier for a new entity."""
    return uuid4().hex
