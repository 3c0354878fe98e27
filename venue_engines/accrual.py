"""
Recurring plan accrual.

Materialises the obligation of each saving or fixed-expense plan for the
days elapsed since its cursor into one ledger entry, then advances the
cursor.  Running twice for the same processing date emits nothing the
second time.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from venue_engines.ledger import create_entry
from venue_engines.tracer import traced_engine
from venue_kernel.domain.clock import Clock
from venue_kernel.domain.dates import days_in_month, whole_days_between
from venue_kernel.domain.markers import DEFAULT_MARKERS, DescriptionMarkers
from venue_kernel.domain.models import LedgerEntry, SavingPlan
from venue_kernel.domain.values import (
    ZERO,
    Direction,
    PlanCategory,
    PlanType,
    TransactionType,
    new_id,
    round_money,
)
from venue_kernel.logging_config import get_logger

logger = get_logger("engines.accrual")

SYSTEM_ACTOR_ID = "system"
SYSTEM_ACTOR_NAME = "Automated system"


@dataclass(frozen=True)
class AccrualResult:
    entries: tuple[LedgerEntry, ...]
    updated_plans: tuple[SavingPlan, ...]


def accrued_amount(plan: SavingPlan, elapsed_days: int, processing_date: date) -> Decimal:
    """
    Obligation of ``plan`` over ``elapsed_days`` ending on ``processing_date``.

    Rounded half-up to cents; a plan whose accrual rounds to zero emits
    nothing and keeps its cursor.
    """
    match plan.type:
        case PlanType.DAILY_SAVING:
            return round_money(plan.amount * elapsed_days)
        case PlanType.MONTHLY_PAYMENT:
            return round_money(plan.amount / days_in_month(processing_date) * elapsed_days)
        case _:
            raise ValueError(f"Unknown plan type: {plan.type}")


def _entry_type(category: PlanCategory) -> TransactionType:
    match category:
        case PlanCategory.EXPENSE:
            return TransactionType.EXPENSE_OPERATIONAL
        case PlanCategory.SAVING:
            return TransactionType.SAVING_DEPOSIT
        case _:
            raise ValueError(f"Unknown plan category: {category}")


@traced_engine("accrual", "1.0", fingerprint_fields=("processing_date",))
def process_auto_savings(
    plans: Iterable[SavingPlan],
    processing_date: date,
    clock: Clock | None = None,
    markers: DescriptionMarkers = DEFAULT_MARKERS,
) -> AccrualResult:
    """
    Accrue every active plan up to ``processing_date``.

    Inactive plans and plans with nothing elapsed pass through unchanged.
    A plan whose accrual comes to zero keeps its cursor so a later run
    retries it.
    """
    entries: list[LedgerEntry] = []
    updated: list[SavingPlan] = []

    for plan in plans:
        if not plan.is_active:
            updated.append(plan)
            continue

        elapsed = whole_days_between(plan.last_applied_at, processing_date)
        if elapsed <= 0:
            updated.append(plan)
            continue

        amount = accrued_amount(plan, elapsed, processing_date)
        if amount <= ZERO:
            updated.append(plan)
            continue

        entries.append(create_entry(
            _entry_type(plan.category),
            amount,
            Direction.OUT,
            plan.channel,
            markers.automatic_description(f"{plan.name or 'Commitment'} ({elapsed} days)"),
            clock=clock,
            date_key=processing_date,
            account_id=plan.bank_account_id,
            entity_id=new_id(),
            performed_by_id=SYSTEM_ACTOR_ID,
            performed_by_name=SYSTEM_ACTOR_NAME,
        ))
        updated.append(replace(plan, last_applied_at=processing_date))

        logger.info("plan_accrued", extra={
            "plan_id": plan.id,
            "plan_type": plan.type.value,
            "category": plan.category.value,
            "elapsed_days": elapsed,
            "amount": str(amount),
            "processing_date": processing_date.isoformat(),
        })

    return AccrualResult(entries=tuple(entries), updated_plans=tuple(updated))
