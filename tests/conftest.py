"""
Pytest fixtures for the venue ledger test suite.

Provides:
- Structured logging configuration and log capture
- A deterministic clock
- Pricing, roster and marker configuration
- Factories for ledger entries, sessions and records
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from venue_kernel.domain.clock import DeterministicClock
from venue_kernel.domain.markers import DescriptionMarkers
from venue_kernel.domain.models import (
    LedgerEntry,
    Partner,
    PartnerRoster,
    PricingConfig,
    RecordFinancials,
    SessionRecord,
)
from venue_kernel.domain.values import (
    Channel,
    DeviceType,
    Direction,
    TransactionType,
    TransferStatus,
    new_id,
)
from venue_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

UTC = timezone.utc


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture venue_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            record_transaction(ledger, entry)
            logs = captured_logs()
            assert any(r["message"] == "ledger_entry_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("venue_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock and configuration fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock fixed at 2024-01-01 12:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def pricing() -> PricingConfig:
    return PricingConfig(
        laptop_rate=Decimal("10"),
        mobile_rate=Decimal("5"),
        laptop_place_cost=Decimal("2"),
        mobile_place_cost=Decimal("1"),
        dev_percent=Decimal("10"),
    )


@pytest.fixture
def roster() -> PartnerRoster:
    return PartnerRoster(partners=(
        Partner(id="abu_khaled", name="أبو خالد", percent=Decimal("34")),
        Partner(id="khaled", name="خالد", percent=Decimal("33")),
        Partner(id="abdullah", name="عبد الله", percent=Decimal("33")),
    ))


@pytest.fixture
def markers() -> DescriptionMarkers:
    return DescriptionMarkers()


# =============================================================================
# Entity factories
# =============================================================================


def make_entry(
    transaction_type: TransactionType,
    amount: str | int | Decimal,
    direction: Direction = Direction.IN,
    channel: Channel = Channel.CASH,
    *,
    day: date = date(2024, 1, 15),
    description: str = "",
    timestamp: datetime | None = None,
    **fields,
) -> LedgerEntry:
    """Build a ledger entry with sensible defaults for tests."""
    return LedgerEntry(
        id=fields.pop("id", new_id()),
        timestamp=timestamp or datetime(day.year, day.month, day.day, 12, 0, tzinfo=UTC),
        date_key=day,
        type=transaction_type,
        amount=Decimal(str(amount)),
        direction=direction,
        channel=channel,
        description=description,
        **fields,
    )


def make_record(
    end_time: datetime,
    *,
    place_cost: str = "0",
    drinks_cost: str = "0",
    cards_cost: str = "0",
    cash_paid: str = "0",
    remaining_debt: str = "0",
    customer_name: str = "Walk-in",
) -> SessionRecord:
    """Build a finalized session record carrying only cost fields."""
    return SessionRecord(
        id=new_id(),
        start_time=end_time,
        end_time=end_time,
        device_status=DeviceType.LAPTOP,
        financials=RecordFinancials(
            place_cost=Decimal(place_cost),
            drinks_cost=Decimal(drinks_cost),
            internet_cards_cost=Decimal(cards_cost),
        ),
        customer_name=customer_name,
        cash_paid=Decimal(cash_paid),
        remaining_debt=Decimal(remaining_debt),
    )


@pytest.fixture
def entry_factory():
    """Expose ``make_entry`` as a fixture."""
    return make_entry


@pytest.fixture
def record_factory():
    """Expose ``make_record`` as a fixture."""
    return make_record


@pytest.fixture
def pending_bank_deposit():
    return make_entry(
        TransactionType.INCOME_SESSION,
        "300",
        channel=Channel.BANK,
        account_id="acc-1",
        transfer_status=TransferStatus.PENDING,
    )
