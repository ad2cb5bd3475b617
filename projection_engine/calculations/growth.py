"""
Compound Growth Projection

Simulates a savings or investment balance forward in time with periodic
contributions, a compounding frequency, optional contribution growth,
fund fees, tax drag on interest and inflation deflation. Also solves for the
deposit needed to reach a savings goal.
"""

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Optional, Tuple

from projection_engine.calculations.schedule import Period, validate_periods_per_year

logger = logging.getLogger(__name__)

COMPOUNDING_FREQUENCIES = MappingProxyType({
    "annually": 1,
    "quarterly": 4,
    "monthly": 12,
    "daily": 365,
})


def effective_apy(annual_rate: float, periods_per_year: int = 12) -> float:
    """Effective annual yield of a nominal rate compounded n times a year."""
    return (1 + annual_rate / periods_per_year) ** periods_per_year - 1


def _annuity_factor(periodic_rate: float, total_periods: int, contribute_at_start: bool) -> float:
    if periodic_rate == 0:
        return float(total_periods)
    factor = ((1 + periodic_rate) ** total_periods - 1) / periodic_rate
    if contribute_at_start:
        factor *= 1 + periodic_rate
    return factor


def future_value(
    initial_balance: float,
    annual_rate: float,
    years: int,
    periods_per_year: int = 12,
    contribution_per_period: float = 0.0,
    contribute_at_start: bool = False,
) -> float:
    """
    Closed-form future value of a lump sum plus an annuity.

    FV = P(1+i)^N + C((1+i)^N - 1)/i, with N = n * years. Deposits made at
    the start of each period (an annuity due) earn one more period: the
    annuity term is multiplied by (1+i).
    """
    periodic_rate = annual_rate / periods_per_year
    total_periods = periods_per_year * years
    growth = (1 + periodic_rate) ** total_periods
    annuity = _annuity_factor(periodic_rate, total_periods, contribute_at_start)
    return initial_balance * growth + contribution_per_period * annuity


def required_contribution(
    target_balance: float,
    initial_balance: float,
    annual_rate: float,
    years: int,
    periods_per_year: int = 12,
    contributions_per_year: int = 12,
    contribute_at_start: bool = False,
) -> float:
    """
    Deposit needed to reach target_balance in the given number of years.

    Inverts future_value for the contribution, then rescales from the
    compounding period to the deposit frequency the same way project_growth
    spreads deposits. Returns 0.0 when the starting balance alone reaches the
    goal.

    Raises:
        ValueError: years or contributions_per_year is not positive
    """
    if years <= 0:
        raise ValueError("years must be positive")
    if contributions_per_year <= 0:
        raise ValueError("contributions_per_year must be positive")
    validate_periods_per_year(periods_per_year)

    periodic_rate = annual_rate / periods_per_year
    total_periods = periods_per_year * years
    shortfall = target_balance - initial_balance * (1 + periodic_rate) ** total_periods
    if shortfall <= 0:
        return 0.0
    per_period = shortfall / _annuity_factor(periodic_rate, total_periods, contribute_at_start)
    return per_period * periods_per_year / contributions_per_year


def doubling_time(annual_rate: float, periods_per_year: int = 12) -> Optional[float]:
    """Years for a balance to double with no contributions (None at zero rate)."""
    apy = effective_apy(annual_rate, periods_per_year)
    if apy <= 0:
        return None
    return math.log(2) / math.log(1 + apy)


@dataclass(frozen=True)
class GrowthResult:
    """Outcome of a compounding projection."""

    final_balance: float
    total_contributions: float
    total_interest: float
    simple_interest: float
    interest_on_interest: float
    effective_apy: float
    tax_on_interest: float
    after_tax_balance: float
    real_balance: float
    years_to_target: Optional[float]
    schedule: Tuple[Period, ...]
    fees_paid: float = 0.0


def project_growth(
    initial_balance: float,
    annual_rate: float,
    years: int,
    periods_per_year: int = 12,
    contribution: float = 0.0,
    contributions_per_year: int = 12,
    contribution_growth: float = 0.0,
    tax_rate: float = 0.0,
    inflation_rate: float = 0.0,
    target_balance: Optional[float] = None,
    contribute_at_start: bool = False,
    fee_rate: float = 0.0,
) -> GrowthResult:
    """
    Project a balance forward with periodic contributions.

    Contributions are normalized to the compounding period by spreading the
    annual total (contribution * contributions_per_year) evenly over the n
    compounding periods. The per-period amount steps up by contribution_growth
    once per year boundary, never mid-year.

    Each period: balance = balance * (1 + r/n) + contribution, or
    (balance + contribution) * (1 + r/n) with contribute_at_start.

    fee_rate is an annual charge deducted from the return, so the balance
    grows at annual_rate - fee_rate. fees_paid is the gap to the same plan
    grown at the gross rate.

    Tax is applied to the interest component only, once at the end. The real
    balance deflates the nominal ending balance by (1 + inflation)^years.

    Args:
        initial_balance: Starting balance
        annual_rate: Nominal annual rate as decimal
        years: Horizon in whole years
        periods_per_year: Compounding frequency (1, 4, 12 or 365)
        contribution: Amount of each deposit
        contributions_per_year: How often deposits are made
        contribution_growth: Annual growth of the deposit as decimal
        tax_rate: Flat tax on interest earned, as decimal
        inflation_rate: Annual inflation as decimal
        target_balance: Optional goal; reports the first time it is reached
        contribute_at_start: Deposit at the beginning of each period
        fee_rate: Annual fee as decimal, deducted from the return

    Returns:
        GrowthResult with one schedule Period per year
    """
    if initial_balance < 0:
        raise ValueError("initial_balance must be non-negative")
    if annual_rate < 0:
        raise ValueError("annual_rate must be non-negative")
    if years < 0:
        raise ValueError("years must be non-negative")
    if contribution < 0:
        raise ValueError("contribution must be non-negative")
    if contributions_per_year < 0:
        raise ValueError("contributions_per_year must be non-negative")
    if not 0 <= tax_rate <= 1:
        raise ValueError("tax_rate must be between 0 and 1")
    if inflation_rate <= -1:
        raise ValueError("inflation_rate must be greater than -1")
    if not 0 <= fee_rate < 1:
        raise ValueError("fee_rate must be between 0 and 1")
    validate_periods_per_year(periods_per_year)

    net_rate = annual_rate - fee_rate
    periodic_rate = net_rate / periods_per_year
    gross_periodic_rate = annual_rate / periods_per_year
    base_per_period = contribution * contributions_per_year / periods_per_year

    balance = float(initial_balance)
    # Same deposits grown without the fee
    gross_balance = balance
    # Deposits without any interest credited on interest
    contributed = float(initial_balance)
    total_contributions = 0.0
    total_interest = 0.0
    simple_interest = 0.0
    years_to_target: Optional[float] = None
    if target_balance is not None and balance >= target_balance:
        years_to_target = 0.0

    schedule: List[Period] = []
    for year in range(years):
        per_period = base_per_period * (1 + contribution_growth) ** year
        year_start = balance
        year_interest = 0.0
        year_contributions = 0.0

        for step in range(periods_per_year):
            if contribute_at_start:
                balance += per_period
                gross_balance += per_period
                contributed += per_period
            interest = balance * periodic_rate
            simple_interest += contributed * periodic_rate
            balance += interest
            gross_balance += gross_balance * gross_periodic_rate
            if not contribute_at_start:
                balance += per_period
                gross_balance += per_period
                contributed += per_period
            year_interest += interest
            year_contributions += per_period

            if years_to_target is None and target_balance is not None and balance >= target_balance:
                years_to_target = (year * periods_per_year + step + 1) / periods_per_year

        total_interest += year_interest
        total_contributions += year_contributions
        schedule.append(
            Period(
                index=year + 1,
                starting_balance=year_start,
                interest=year_interest,
                payment=0.0,
                principal=0.0,
                ending_balance=balance,
                contribution=year_contributions,
                cumulative_interest=total_interest,
            )
        )

    tax_on_interest = total_interest * tax_rate if total_interest > 0 else 0.0
    real_balance = balance / (1 + inflation_rate) ** years
    logger.debug("Projected %d years at %.4f: final balance %.2f", years, net_rate, balance)

    return GrowthResult(
        final_balance=balance,
        total_contributions=total_contributions,
        total_interest=total_interest,
        simple_interest=simple_interest,
        interest_on_interest=max(0.0, total_interest - simple_interest),
        effective_apy=effective_apy(net_rate, periods_per_year),
        tax_on_interest=tax_on_interest,
        after_tax_balance=balance - tax_on_interest,
        real_balance=real_balance,
        years_to_target=years_to_target,
        schedule=tuple(schedule),
        fees_paid=gross_balance - balance,
    )
