"""
Typed Exception Hierarchy for the Venue Ledger Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the engine (the cashier screens, the closing workflow, the
loan pages) must react to failures precisely. A rejected withdrawal is
shown to the cashier; a locked period asks for a different date; a
paid installment is simply refreshed. Parsing message strings for that
is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, UI-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        ledger = record_transaction(ledger, entry, lock=lock)
    except InsufficientBalanceError as e:
        show_error(code=e.code, balance=e.balance, channel=e.channel)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    VenueLedgerError (base)
    |
    +-- ValidationError
    |   +-- InsufficientBalanceError
    |   +-- LockedPeriodError
    |
    +-- BillingError
    |   +-- DiscountLockedError
    |
    +-- LoanError
    |   +-- InstallmentNotFoundError
    |   +-- InstallmentAlreadyPaidError
    |   +-- LoanClosedError
    |
    +-- SnapshotError
    |   +-- SnapshotPeriodOverlapError
    |
    +-- ConfigurationError
    |   +-- InvalidRosterError
    |
    +-- RecordNormalizationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | INSUFFICIENT_BALANCE        | Withdrawal would overdraw cash/bank
                | LOCKED_PERIOD               | Operation dated inside a locked period
----------------|-----------------------------|-----------------------------------------
Billing         | DISCOUNT_LOCKED             | Discount re-applied to a locked record
----------------|-----------------------------|-----------------------------------------
Loan            | INSTALLMENT_NOT_FOUND       | Installment id not on the loan
                | INSTALLMENT_ALREADY_PAID    | Installment status is already paid
                | LOAN_CLOSED                 | Payment against a closed loan
----------------|-----------------------------|-----------------------------------------
Snapshot        | SNAPSHOT_PERIOD_OVERLAP     | Closing a range already snapshotted
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_ROSTER              | Partner percentages do not sum to 100
----------------|-----------------------------|-----------------------------------------
Normalization   | RECORD_NORMALIZATION_ERROR  | Caller data has an unknown enum value

Integrity warnings (negative cash detected after the fact) are NOT
exceptions. ``check_ledger_integrity`` returns them as messages.
"""


class VenueLedgerError(Exception):
    """
    Base exception for all venue ledger errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "VENUE_LEDGER_ERROR"


# Validation exceptions


class ValidationError(VenueLedgerError):
    """Base exception for blocking validation rejections."""

    code: str = "VALIDATION_ERROR"


class InsufficientBalanceError(ValidationError):
    """A withdrawal would take a channel balance below the tolerance."""

    code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        channel: str,
        balance: str,
        amount: str,
        account_id: str | None = None,
    ):
        self.channel = channel
        self.balance = balance
        self.amount = amount
        self.account_id = account_id
        where = f"{channel}/{account_id}" if account_id else channel
        super().__init__(
            f"Insufficient balance in {where}: balance {balance}, requested {amount}"
        )


class LockedPeriodError(ValidationError):
    """Operation date falls on or before the period lock."""

    code: str = "LOCKED_PERIOD"

    def __init__(self, operation_date: str, locked_until: str):
        self.operation_date = operation_date
        self.locked_until = locked_until
        super().__init__(
            f"Period is locked until {locked_until} "
            f"(operation date: {operation_date})"
        )


# Billing exceptions


class BillingError(VenueLedgerError):
    """Base exception for billing errors."""

    code: str = "BILLING_ERROR"


class DiscountLockedError(BillingError):
    """A discount is already frozen on this record."""

    code: str = "DISCOUNT_LOCKED"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Discount already applied and locked on record {record_id}")


# Loan exceptions


class LoanError(VenueLedgerError):
    """Base exception for loan errors."""

    code: str = "LOAN_ERROR"


class InstallmentNotFoundError(LoanError):
    """Installment id is not part of the loan schedule."""

    code: str = "INSTALLMENT_NOT_FOUND"

    def __init__(self, loan_id: str, installment_id: str):
        self.loan_id = loan_id
        self.installment_id = installment_id
        super().__init__(f"Installment {installment_id} not found on loan {loan_id}")


class InstallmentAlreadyPaidError(LoanError):
    """
    Installment has already been paid.

    Installment status is monotonic: paid never reverts to pending.
    """

    code: str = "INSTALLMENT_ALREADY_PAID"

    def __init__(self, loan_id: str, installment_id: str):
        self.loan_id = loan_id
        self.installment_id = installment_id
        super().__init__(f"Installment {installment_id} on loan {loan_id} is already paid")


class LoanClosedError(LoanError):
    """Loan is closed and accepts no further payments."""

    code: str = "LOAN_CLOSED"

    def __init__(self, loan_id: str):
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} is closed")


# Snapshot exceptions


class SnapshotError(VenueLedgerError):
    """Base exception for period snapshot errors."""

    code: str = "SNAPSHOT_ERROR"


class SnapshotPeriodOverlapError(SnapshotError):
    """
    Requested closing range overlaps an existing snapshot.

    Snapshots are append-only historical records; a closed range is
    never recomputed.
    """

    code: str = "SNAPSHOT_PERIOD_OVERLAP"

    def __init__(
        self,
        period_start: str,
        period_end: str,
        snapshot_id: str,
    ):
        self.period_start = period_start
        self.period_end = period_end
        self.snapshot_id = snapshot_id
        super().__init__(
            f"Period {period_start}..{period_end} overlaps snapshot {snapshot_id}"
        )


# Configuration exceptions


class ConfigurationError(VenueLedgerError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidRosterError(ConfigurationError):
    """Partner roster percentages do not sum to 100."""

    code: str = "INVALID_ROSTER"

    def __init__(self, total_percent: str, reason: str = "percentages must sum to 100"):
        self.total_percent = total_percent
        self.reason = reason
        super().__init__(f"Invalid partner roster ({reason}): total {total_percent}")


# Normalization exceptions


class RecordNormalizationError(VenueLedgerError):
    """Caller-supplied data could not be normalized into a domain model."""

    code: str = "RECORD_NORMALIZATION_ERROR"

    def __init__(self, model: str, field: str, value: str):
        self.model = model
        self.field = field
        self.value = value
        super().__init__(f"Cannot normalize {model}.{field}: unexpected value {value!r}")
