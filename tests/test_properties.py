"""
Property checks over randomized inputs.

Each case is generated from a fixed seed so failures reproduce.
"""

import random

import pytest

from projection_engine.calculations.amortization import amortize
from projection_engine.calculations.debt_payoff import Liability, Strategy, simulate_payoff
from projection_engine.calculations.retirement import VestingSchedule
from projection_engine.calculations.units import UNIT_TABLES, convert

SEEDS = list(range(20))


def random_loan(rng):
    return {
        "principal": rng.uniform(1000, 250000),
        "annual_rate": rng.uniform(0.0, 0.18),
        "term_periods": rng.randint(6, 360),
    }


def random_liabilities(rng, count):
    """
    Liabilities whose minimums exceed their first month's interest.

    Rates, balances and the margin of each minimum over interest are drawn
    independently. The margin is 1-5% of the balance so every plan clears
    well inside the period cap.
    """
    liabilities = []
    for index in range(count):
        rate = rng.uniform(0.0, 0.30)
        principal = rng.uniform(300, 20000)
        minimum = principal * (rate / 12 + rng.uniform(0.01, 0.05))
        liabilities.append(Liability(f"L{index}", principal, rate, minimum))
    return liabilities


@pytest.mark.slow
class TestAmortizationProperties:
    """Properties of single-balance amortization."""

    @pytest.mark.parametrize("seed", SEEDS)
    def test_conservation(self, seed):
        """Total interest plus financed principal equals total payments."""
        rng = random.Random(seed)
        loan = random_loan(rng)
        result = amortize(extra_payment=rng.uniform(0, 500), **loan)
        assert result.is_paid_off
        payments = sum(period.payment for period in result.schedule)
        interest = sum(period.interest for period in result.schedule)
        assert payments == pytest.approx(interest + result.financed_principal, abs=0.01)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_balances_never_increase(self, seed):
        """Balances are non-increasing once payments exceed interest."""
        rng = random.Random(seed)
        result = amortize(**random_loan(rng))
        balances = [period.ending_balance for period in result.schedule]
        assert all(later <= earlier for earlier, later in zip(balances, balances[1:]))
        assert all(balance >= 0 for balance in balances)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_extra_payment_monotonicity(self, seed):
        """More extra payment never costs more interest or time."""
        rng = random.Random(seed)
        loan = random_loan(rng)
        smaller = rng.uniform(0, 200)
        larger = smaller + rng.uniform(10, 300)
        low = amortize(extra_payment=smaller, **loan)
        high = amortize(extra_payment=larger, **loan)
        assert high.total_interest <= low.total_interest + 1e-6
        assert high.periods_to_payoff <= low.periods_to_payoff


@pytest.mark.slow
class TestPayoffProperties:
    """Properties of the multi-debt waterfall."""

    @pytest.mark.parametrize("seed", SEEDS)
    def test_avalanche_never_costs_more_than_snowball(self, seed):
        """Highest-rate-first pays no more interest than smallest-first."""
        rng = random.Random(seed)
        for _ in range(25):
            liabilities = random_liabilities(rng, rng.randint(2, 5))
            extra = rng.uniform(0, 400)
            avalanche = simulate_payoff(liabilities, Strategy.AVALANCHE, extra)
            snowball = simulate_payoff(liabilities, Strategy.SNOWBALL, extra)
            assert avalanche.total_interest <= snowball.total_interest + 0.01

    @pytest.mark.parametrize("seed", SEEDS)
    def test_per_liability_balances_never_increase(self, seed):
        """Each balance is non-increasing when minimums exceed interest."""
        rng = random.Random(seed)
        liabilities = random_liabilities(rng, rng.randint(2, 4))
        result = simulate_payoff(liabilities, extra_payment=rng.uniform(0, 300))
        for liability in liabilities:
            series = [liability.principal] + [
                period.per_liability[liability.id] for period in result.schedule
            ]
            assert all(later <= earlier for earlier, later in zip(series, series[1:]))

    @pytest.mark.parametrize("seed", SEEDS)
    def test_extra_payment_monotonicity(self, seed):
        """A larger pool never costs more interest."""
        rng = random.Random(seed)
        liabilities = random_liabilities(rng, rng.randint(2, 4))
        smaller = rng.uniform(0, 200)
        larger = smaller + rng.uniform(100, 300)
        low = simulate_payoff(liabilities, extra_payment=smaller)
        high = simulate_payoff(liabilities, extra_payment=larger)
        assert high.total_interest <= low.total_interest + 0.01
        assert high.periods_to_payoff <= low.periods_to_payoff

    @pytest.mark.parametrize("seed", SEEDS)
    def test_conservation(self, seed):
        """Payments equal principal plus interest across all liabilities."""
        rng = random.Random(seed)
        liabilities = random_liabilities(rng, rng.randint(1, 4))
        result = simulate_payoff(liabilities, extra_payment=rng.uniform(0, 300))
        principal = sum(item.principal for item in liabilities)
        assert result.total_paid == pytest.approx(principal + result.total_interest, abs=0.01)


class TestVestingProperties:
    """Vesting boundary properties."""

    @pytest.mark.parametrize("years", range(1, 8))
    @pytest.mark.parametrize("is_cliff", [True, False])
    def test_boundary(self, years, is_cliff):
        """Fully vested at the boundary, strictly less just below it."""
        vesting = VestingSchedule(vesting_years=years, is_cliff=is_cliff)
        assert vesting.vested_fraction(years) == 1.0
        assert vesting.vested_fraction(years - 0.5) < 1.0


class TestUnitProperties:
    """Unit conversion properties."""

    @pytest.mark.parametrize("seed", SEEDS)
    def test_round_trip_between_units(self, seed):
        """Converting there and back returns the original value."""
        rng = random.Random(seed)
        dimension = rng.choice(list(UNIT_TABLES))
        first, second = rng.sample(list(UNIT_TABLES[dimension]), 2)
        value = rng.uniform(-1000, 1000)
        there = convert(value, first, second, dimension)
        assert convert(there, second, first, dimension) == pytest.approx(value, rel=1e-9, abs=1e-9)
