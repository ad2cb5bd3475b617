"""
Loan Amortization Calculations

Implements level-payment loan calculations for a single balance, matching
Excel's PMT function for the payment, and a period-by-period schedule that
handles extra payments, upfront reductions and interest-only grace periods.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Tuple

from projection_engine.calculations.schedule import (
    EPSILON,
    PayoffStatus,
    Period,
    period_date,
    validate_periods_per_year,
)

logger = logging.getLogger(__name__)

# Safety cap when the term is derived from a fixed payment
MAX_PERIODS = 1200


def calculate_payment(
    principal: float,
    annual_rate: float,
    term_periods: int,
    periods_per_year: int = 12,
) -> float:
    """
    Calculate the level periodic payment.

    Matches Excel's PMT() function.

    Args:
        principal: Loan principal amount
        annual_rate: Annual interest rate as decimal (e.g., 0.05 for 5%)
        term_periods: Number of payments
        periods_per_year: Payments per year (12 for monthly)

    Returns:
        Periodic payment amount (positive number)
    """
    if principal <= 0:
        return 0.0
    if term_periods <= 0:
        return 0.0

    periodic_rate = annual_rate / periods_per_year

    if periodic_rate == 0:
        return principal / term_periods

    growth = (1 + periodic_rate) ** term_periods
    return principal * periodic_rate * growth / (growth - 1)


@dataclass(frozen=True)
class AmortizationResult:
    """Outcome of amortizing a single balance."""

    status: PayoffStatus
    payment: float
    financed_principal: float
    total_interest: float
    total_paid: float
    periods_to_payoff: Optional[int]
    grace_interest: float
    schedule: Tuple[Period, ...]
    payoff_date: Optional[date] = None

    @property
    def is_paid_off(self) -> bool:
        return self.status is PayoffStatus.PAID_OFF


def _validate(
    principal: float,
    annual_rate: float,
    term_periods: Optional[int],
    payment: Optional[float],
    extra_payment: float,
    upfront_payment: float,
    grace_periods: int,
    yearly_extra_payment: float,
    lump_sum_payment: float,
    lump_sum_period: Optional[int],
    intro_rate: float,
    intro_periods: int,
    minimum_percent: Optional[float],
    minimum_floor: float,
) -> None:
    if principal < 0:
        raise ValueError("principal must be non-negative")
    if annual_rate < 0:
        raise ValueError("annual_rate must be non-negative")
    if extra_payment < 0:
        raise ValueError("extra_payment must be non-negative")
    if upfront_payment < 0:
        raise ValueError("upfront_payment must be non-negative")
    if grace_periods < 0:
        raise ValueError("grace_periods must be non-negative")
    if term_periods is None and payment is None and minimum_percent is None:
        raise ValueError("Either term_periods, payment or minimum_percent is required")
    if term_periods is not None and term_periods < 1:
        raise ValueError("term_periods must be at least 1")
    if payment is not None and payment < 0:
        raise ValueError("payment must be non-negative")
    if yearly_extra_payment < 0:
        raise ValueError("yearly_extra_payment must be non-negative")
    if lump_sum_payment < 0:
        raise ValueError("lump_sum_payment must be non-negative")
    if lump_sum_payment > 0 and lump_sum_period is None:
        raise ValueError("lump_sum_period is required with lump_sum_payment")
    if lump_sum_period is not None and lump_sum_period < 1:
        raise ValueError("lump_sum_period must be at least 1")
    if intro_rate < 0:
        raise ValueError("intro_rate must be non-negative")
    if intro_periods < 0:
        raise ValueError("intro_periods must be non-negative")
    if minimum_percent is not None and not 0 < minimum_percent <= 1:
        raise ValueError("minimum_percent must be between 0 and 1")
    if minimum_floor < 0:
        raise ValueError("minimum_floor must be non-negative")


def amortize(
    principal: float,
    annual_rate: float,
    term_periods: Optional[int] = None,
    payment: Optional[float] = None,
    extra_payment: float = 0.0,
    upfront_payment: float = 0.0,
    grace_periods: int = 0,
    pay_grace_interest: bool = False,
    periods_per_year: int = 12,
    start_date: Optional[date] = None,
    yearly_extra_payment: float = 0.0,
    lump_sum_payment: float = 0.0,
    lump_sum_period: Optional[int] = None,
    intro_rate: float = 0.0,
    intro_periods: int = 0,
    minimum_percent: Optional[float] = None,
    minimum_floor: float = 0.0,
) -> AmortizationResult:
    """
    Simulate paying down one balance period by period.

    The scheduled payment is the level payment over term_periods, or the fixed
    payment when no term is given. Each period pays
    min(payment + extras, balance + interest), so the final period is short
    and the balance never goes negative.

    With minimum_percent the payment is recomputed every period as
    max(payment, balance * minimum_percent, minimum_floor), which is how card
    issuers set the minimum due. Neither term_periods nor payment is needed
    in that mode.

    Extras on top of the scheduled payment, counted in amortizing periods:
    extra_payment every period, yearly_extra_payment once every
    periods_per_year periods and lump_sum_payment in lump_sum_period only.

    The first intro_periods schedule periods (grace included) accrue interest
    at intro_rate instead of annual_rate. The level payment is still computed
    at annual_rate.

    During grace periods no principal is due. Interest accrues on the
    pre-grace balance and is either paid each period (pay_grace_interest) or
    capitalized onto the balance when grace ends.

    Args:
        principal: Amount borrowed
        annual_rate: Annual interest rate as decimal
        term_periods: Amortizing periods after grace (level payment mode)
        payment: Fixed periodic payment (used when term_periods is None)
        extra_payment: Additional amount paid every amortizing period
        upfront_payment: One-time reduction of the principal before period 1
        grace_periods: Interest-only periods before amortization starts
        pay_grace_interest: Pay grace interest instead of capitalizing it
        periods_per_year: 1, 4, 12 or 365
        start_date: Date of the first period, for dated schedules
        yearly_extra_payment: Paid at the end of each amortizing year
        lump_sum_payment: One-time payment
        lump_sum_period: Amortizing period (1-based) of the one-time payment
        intro_rate: Annual rate during the introductory periods, as decimal
        intro_periods: Number of introductory periods
        minimum_percent: Share of the balance due each period, as decimal
        minimum_floor: Smallest payment due in minimum_percent mode

    Returns:
        AmortizationResult; status is NON_AMORTIZING when the payment never
        reduces the balance or the safety cap is reached.
    """
    _validate(
        principal,
        annual_rate,
        term_periods,
        payment,
        extra_payment,
        upfront_payment,
        grace_periods,
        yearly_extra_payment,
        lump_sum_payment,
        lump_sum_period,
        intro_rate,
        intro_periods,
        minimum_percent,
        minimum_floor,
    )
    validate_periods_per_year(periods_per_year)

    periodic_rate = annual_rate / periods_per_year
    intro_periodic_rate = intro_rate / periods_per_year
    balance = max(principal - upfront_payment, 0.0)
    financed = balance

    if balance <= EPSILON:
        return AmortizationResult(
            status=PayoffStatus.PAID_OFF,
            payment=0.0,
            financed_principal=financed,
            total_interest=0.0,
            total_paid=0.0,
            periods_to_payoff=0,
            grace_interest=0.0,
            schedule=(),
        )

    schedule: List[Period] = []
    total_interest = 0.0
    total_paid = 0.0
    index = 0

    # Interest-only grace
    accrued = 0.0
    for _ in range(grace_periods):
        index += 1
        rate = intro_periodic_rate if index <= intro_periods else periodic_rate
        interest = balance * rate
        starting = balance + accrued
        if pay_grace_interest:
            paid = interest
        else:
            paid = 0.0
            accrued += interest
        total_interest += interest
        total_paid += paid
        schedule.append(
            Period(
                index=index,
                starting_balance=starting,
                interest=interest,
                payment=paid,
                principal=0.0,
                ending_balance=starting + interest - paid,
                cumulative_interest=total_interest,
                date=period_date(start_date, index, periods_per_year),
            )
        )
    grace_interest = total_interest
    balance += accrued

    if term_periods is not None:
        level_payment = calculate_payment(balance, annual_rate, term_periods, periods_per_year)
        cap = 2 * term_periods
    else:
        level_payment = payment or 0.0
        cap = MAX_PERIODS
    first_payment = None

    status = PayoffStatus.NON_AMORTIZING
    for step in range(1, cap + 1):
        index += 1
        rate = intro_periodic_rate if index <= intro_periods else periodic_rate
        interest = balance * rate
        due = balance + interest

        base = level_payment
        if minimum_percent is not None:
            base = max(base, balance * minimum_percent, minimum_floor)
        if first_payment is None:
            first_payment = base
        scheduled = base + extra_payment
        if step % periods_per_year == 0:
            scheduled += yearly_extra_payment
        if step == lump_sum_period:
            scheduled += lump_sum_payment
        paid = min(scheduled, due)
        ending = due - paid

        if ending <= EPSILON:
            paid = due
            ending = 0.0

        total_interest += interest
        total_paid += paid
        schedule.append(
            Period(
                index=index,
                starting_balance=balance,
                interest=interest,
                payment=paid,
                principal=paid - interest,
                ending_balance=ending,
                cumulative_interest=total_interest,
                date=period_date(start_date, index, periods_per_year),
            )
        )
        balance = ending

        if balance == 0.0:
            status = PayoffStatus.PAID_OFF
            break

        if paid <= interest:
            logger.info(
                "Payment %.2f does not cover interest %.2f; balance never amortizes",
                paid,
                interest,
            )
            break

    if status is PayoffStatus.NON_AMORTIZING:
        logger.info("Balance %.2f still open after %d periods", balance, index)

    paid_off = status is PayoffStatus.PAID_OFF
    return AmortizationResult(
        status=status,
        payment=first_payment,
        financed_principal=financed,
        total_interest=total_interest,
        total_paid=total_paid,
        periods_to_payoff=len(schedule) if paid_off else None,
        grace_interest=grace_interest,
        schedule=tuple(schedule),
        payoff_date=schedule[-1].date if paid_off else None,
    )


def calculate_total_interest(schedule: Iterable[Period]) -> float:
    """Calculate total interest over a schedule."""
    return sum(period.interest for period in schedule)


def calculate_debt_service(
    schedule: Iterable[Period], start_period: int, end_period: int
) -> float:
    """Calculate total payments for a range of periods."""
    return sum(
        period.payment
        for period in schedule
        if start_period <= period.index <= end_period
    )
