"""
Multi-Debt Payoff Calculations

Simulates N liabilities amortizing at the same time, each paying its own
minimum, with one pooled extra payment that flows entirely to the
highest-priority open balance (the waterfall).

Priority order is fixed at the start of the simulation:
1. Avalanche - highest rate first
2. Snowball - smallest balance first

When the target is paid off, the next liability in order receives the pool
starting with the following period. By default a closed liability's minimum
joins the pool from the following period and cash left over in the closing
period flows down the priority order, so every period pays out the sum of
all minimums plus the extra payment until the last balance clears.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from projection_engine.calculations.schedule import (
    EPSILON,
    PayoffStatus,
    Period,
    period_date,
)

logger = logging.getLogger(__name__)

# 360 months x 2
MAX_PAYOFF_PERIODS = 720

# Debt-to-income bands (percent of income), upper bounds
DTI_BANDS = (
    (36.0, "healthy"),
    (43.0, "caution"),
    (50.0, "high_risk"),
)

# Weighted average rate bands (percent), upper bounds
RATE_BANDS = (
    (8.0, "low"),
    (15.0, "moderate"),
    (22.0, "high"),
)


class Strategy(str, Enum):
    """Order in which the extra payment pool attacks liabilities."""

    AVALANCHE = "avalanche"
    SNOWBALL = "snowball"


@dataclass(frozen=True)
class Liability:
    """A single debt in the payoff plan."""

    id: str
    principal: float
    annual_rate: float  # Annual rate as decimal (e.g., 0.22 for 22%)
    minimum_payment: float

    @property
    def monthly_rate(self) -> float:
        return self.annual_rate / 12


@dataclass(frozen=True)
class LiabilityOutcome:
    """How one liability fared over the simulation."""

    id: str
    paid_off_period: Optional[int]
    total_interest: float
    total_paid: float
    ending_balance: float


@dataclass(frozen=True)
class PayoffResult:
    """Outcome of one payoff simulation."""

    strategy: Strategy
    status: PayoffStatus
    extra_payment: float
    priority: Tuple[str, ...]
    periods_to_payoff: Optional[int]
    total_interest: float
    total_paid: float
    outcomes: Tuple[LiabilityOutcome, ...]
    schedule: Tuple[Period, ...]
    first_paid_off: Optional[LiabilityOutcome] = None
    payoff_date: Optional[date] = None

    @property
    def is_paid_off(self) -> bool:
        return self.status is PayoffStatus.PAID_OFF

    def outcome(self, liability_id: str) -> LiabilityOutcome:
        for outcome in self.outcomes:
            if outcome.id == liability_id:
                return outcome
        raise KeyError(liability_id)


@dataclass(frozen=True)
class PayoffComparison:
    """A payoff plan next to the minimum-payments-only baseline."""

    plan: PayoffResult
    baseline: PayoffResult
    interest_saved: Optional[float]
    periods_saved: Optional[int]


@dataclass(frozen=True)
class DebtProfile:
    """Static metrics describing a set of liabilities."""

    total_debt: float
    total_minimum_payments: float
    weighted_average_rate: float  # decimal
    daily_interest: float
    monthly_interest: float
    rate_band: str
    debt_to_income: Optional[float]  # decimal
    dti_band: Optional[str]


def _validate(liabilities: Sequence[Liability], extra_payment: float) -> None:
    if extra_payment < 0:
        raise ValueError("extra_payment must be non-negative")
    seen = set()
    for liability in liabilities:
        if liability.principal < 0:
            raise ValueError(f"{liability.id}: principal must be non-negative")
        if liability.annual_rate < 0:
            raise ValueError(f"{liability.id}: annual_rate must be non-negative")
        if liability.minimum_payment < 0:
            raise ValueError(f"{liability.id}: minimum_payment must be non-negative")
        if liability.id in seen:
            raise ValueError(f"Duplicate liability id: {liability.id}")
        seen.add(liability.id)


def priority_order(
    liabilities: Sequence[Liability], strategy: Strategy
) -> List[Liability]:
    """
    Sort liabilities by the strategy's comparator.

    Avalanche ties go to the smaller balance, snowball ties to the higher
    rate; remaining ties keep input order.
    """
    strategy = Strategy(strategy)
    indexed = list(enumerate(liabilities))
    if strategy is Strategy.AVALANCHE:
        indexed.sort(key=lambda item: (-item[1].annual_rate, item[1].principal, item[0]))
    else:
        indexed.sort(key=lambda item: (item[1].principal, -item[1].annual_rate, item[0]))
    return [liability for _, liability in indexed]


def simulate_payoff(
    liabilities: Sequence[Liability],
    strategy: Strategy = Strategy.AVALANCHE,
    extra_payment: float = 0.0,
    max_periods: int = MAX_PAYOFF_PERIODS,
    rollover_minimums: bool = True,
    start_date: Optional[date] = None,
) -> PayoffResult:
    """
    Simulate month-by-month payoff of several liabilities.

    Each period:
    1. The target is the first open liability in priority order.
    2. Every open liability accrues balance * rate / 12 and pays its minimum,
       capped at balance + interest. The target also receives the whole
       extra pool.
    3. A liability whose remainder falls below EPSILON closes at exactly 0 and
       accrues nothing further. The next open liability becomes the target in
       the following period.

    With rollover_minimums (the default) the period's outflow stays at the
    sum of the starting minimums plus extra_payment:
    - a closed liability's minimum joins the pool from the following period
    - pool or minimum cash a closing liability cannot absorb is paid to the
      next open liabilities in priority order within the same period

    Without it each liability only ever pays its own minimum, the pool goes
    to the target alone and unabsorbed cash is not spent.

    Args:
        liabilities: Debts to pay off
        strategy: Avalanche or snowball ordering
        extra_payment: Pooled amount paid on top of all minimums
        max_periods: Termination cap
        rollover_minimums: Keep the outflow constant as liabilities close
        start_date: Date of the first payment, for dated schedules

    Returns:
        PayoffResult; NON_AMORTIZING when balances remain at the cap.
    """
    strategy = Strategy(strategy)
    _validate(liabilities, extra_payment)

    order = priority_order(liabilities, strategy)
    balances: Dict[str, float] = {item.id: float(item.principal) for item in order}
    interest_by_id: Dict[str, float] = {item.id: 0.0 for item in order}
    paid_by_id: Dict[str, float] = {item.id: 0.0 for item in order}
    paid_off_at: Dict[str, Optional[int]] = {}
    for item in order:
        if balances[item.id] <= EPSILON:
            balances[item.id] = 0.0
            paid_off_at[item.id] = 0

    pool = extra_payment
    freed = 0.0
    total_interest = 0.0
    total_paid = 0.0
    schedule: List[Period] = []
    period = 0

    while period < max_periods and len(paid_off_at) < len(order):
        period += 1
        pool += freed
        freed = 0.0

        open_items = [item for item in order if item.id not in paid_off_at]
        target = open_items[0].id
        starting_total = sum(balances.values())
        period_interest = 0.0
        period_payment = 0.0

        interest_due: Dict[str, float] = {}
        owed: Dict[str, float] = {}
        payments: Dict[str, float] = {}
        available = pool
        for item in open_items:
            interest = balances[item.id] * item.monthly_rate
            interest_due[item.id] = interest
            owed[item.id] = balances[item.id] + interest
            payments[item.id] = min(item.minimum_payment, owed[item.id])
            if rollover_minimums:
                available += item.minimum_payment - payments[item.id]

        # Waterfall: the target first, then on down the order with rollover
        for item in open_items:
            if available <= 0:
                break
            extra = min(available, owed[item.id] - payments[item.id])
            payments[item.id] += extra
            available -= extra
            if not rollover_minimums:
                break

        for item in open_items:
            interest = interest_due[item.id]
            due = owed[item.id]
            paid = payments[item.id]
            remaining = due - paid

            if remaining < EPSILON:
                paid = due
                remaining = 0.0
                paid_off_at[item.id] = period
                if rollover_minimums:
                    freed += item.minimum_payment

            balances[item.id] = remaining
            interest_by_id[item.id] += interest
            paid_by_id[item.id] += paid
            period_interest += interest
            period_payment += paid

        total_interest += period_interest
        total_paid += period_payment
        schedule.append(
            Period(
                index=period,
                starting_balance=starting_total,
                interest=period_interest,
                payment=period_payment,
                principal=period_payment - period_interest,
                ending_balance=sum(balances.values()),
                cumulative_interest=total_interest,
                date=period_date(start_date, period),
                target=target,
                per_liability=dict(balances),
            )
        )

    paid_off = len(paid_off_at) == len(order)
    status = PayoffStatus.PAID_OFF if paid_off else PayoffStatus.NON_AMORTIZING
    if not paid_off:
        open_ids = [item.id for item in order if item.id not in paid_off_at]
        logger.info(
            "%s payoff does not amortize within %d periods; open: %s",
            strategy.value,
            max_periods,
            ", ".join(open_ids),
        )

    outcomes = tuple(
        LiabilityOutcome(
            id=item.id,
            paid_off_period=paid_off_at.get(item.id),
            total_interest=interest_by_id[item.id],
            total_paid=paid_by_id[item.id],
            ending_balance=balances[item.id],
        )
        for item in liabilities
    )
    closed = [
        outcome
        for outcome in outcomes
        if outcome.paid_off_period is not None and outcome.paid_off_period > 0
    ]
    # Stable: ties resolve to priority order
    priority_index = {item.id: position for position, item in enumerate(order)}
    first_paid_off = min(
        closed,
        key=lambda outcome: (outcome.paid_off_period, priority_index[outcome.id]),
        default=None,
    )

    return PayoffResult(
        strategy=strategy,
        status=status,
        extra_payment=extra_payment,
        priority=tuple(item.id for item in order),
        periods_to_payoff=period if paid_off else None,
        total_interest=total_interest,
        total_paid=total_paid,
        outcomes=outcomes,
        schedule=tuple(schedule),
        first_paid_off=first_paid_off,
        payoff_date=schedule[-1].date if paid_off and schedule else None,
    )


def compare_to_minimums(
    liabilities: Sequence[Liability],
    strategy: Strategy = Strategy.AVALANCHE,
    extra_payment: float = 0.0,
    max_periods: int = MAX_PAYOFF_PERIODS,
    rollover_minimums: bool = True,
    start_date: Optional[date] = None,
) -> PayoffComparison:
    """
    Run the plan and an independent minimum-payments-only baseline.

    The baseline is a second simulation with the pool forced to 0 under the
    same clamping and termination rules. Each baseline liability pays only
    its own minimum, so freed minimums never roll over there. Savings are
    None when either run does not amortize.
    """
    plan = simulate_payoff(
        liabilities,
        strategy,
        extra_payment,
        max_periods=max_periods,
        rollover_minimums=rollover_minimums,
        start_date=start_date,
    )
    baseline = simulate_payoff(
        liabilities,
        strategy,
        0.0,
        max_periods=max_periods,
        rollover_minimums=False,
        start_date=start_date,
    )

    interest_saved = None
    periods_saved = None
    if plan.is_paid_off and baseline.is_paid_off:
        interest_saved = baseline.total_interest - plan.total_interest
        periods_saved = baseline.periods_to_payoff - plan.periods_to_payoff

    return PayoffComparison(
        plan=plan,
        baseline=baseline,
        interest_saved=interest_saved,
        periods_saved=periods_saved,
    )


def _band(value: float, bands, fallback: str) -> str:
    for upper, label in bands:
        if value < upper:
            return label
    return fallback


def summarize_liabilities(
    liabilities: Sequence[Liability], monthly_income: Optional[float] = None
) -> DebtProfile:
    """Calculate static cost metrics for a set of liabilities."""
    principals = np.array([item.principal for item in liabilities], dtype=float)
    rates = np.array([item.annual_rate for item in liabilities], dtype=float)
    minimums = np.array([item.minimum_payment for item in liabilities], dtype=float)

    total_debt = float(principals.sum())
    if total_debt > 0:
        weighted_rate = float(np.average(rates, weights=principals))
    else:
        weighted_rate = 0.0

    total_minimums = float(minimums.sum())
    debt_to_income = None
    dti_band = None
    if monthly_income:
        debt_to_income = total_minimums / monthly_income
        dti_band = _band(debt_to_income * 100, DTI_BANDS, "critical")

    return DebtProfile(
        total_debt=total_debt,
        total_minimum_payments=total_minimums,
        weighted_average_rate=weighted_rate,
        daily_interest=float((principals * rates).sum() / 365),
        monthly_interest=float((principals * rates).sum() / 12),
        rate_band=_band(weighted_rate * 100, RATE_BANDS, "critical"),
        debt_to_income=debt_to_income,
        dti_band=dti_band,
    )
