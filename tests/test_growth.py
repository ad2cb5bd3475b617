"""
Tests for compounding growth projection.
"""

import pytest

from projection_engine.calculations.growth import (
    COMPOUNDING_FREQUENCIES,
    doubling_time,
    effective_apy,
    future_value,
    project_growth,
    required_contribution,
)


class TestClosedForm:
    """Test closed-form helpers."""

    def test_effective_apy_monthly(self):
        """Test 5% compounded monthly yields about 5.116%."""
        assert abs(effective_apy(0.05, 12) - 0.051162) < 1e-6

    def test_effective_apy_annual_equals_nominal(self):
        """Test annual compounding APY equals the nominal rate."""
        assert effective_apy(0.05, 1) == pytest.approx(0.05)

    def test_doubling_time(self):
        """Test 7.2% annual doubles in roughly ten years."""
        assert abs(doubling_time(0.072, 1) - 9.97) < 0.01

    def test_doubling_time_zero_rate(self):
        """Test zero rate never doubles."""
        assert doubling_time(0.0) is None

    def test_future_value_zero_rate(self):
        """Test zero rate future value is deposits only."""
        assert future_value(1000, 0.0, 2, 12, 100) == 1000 + 2400

    def test_future_value_annuity_due(self):
        """Test deposits at the start of a period earn one more period."""
        ordinary = future_value(0, 0.06, 5, 12, 100)
        due = future_value(0, 0.06, 5, 12, 100, contribute_at_start=True)
        assert due == pytest.approx(ordinary * 1.005)

    def test_frequencies(self):
        """Test compounding frequency table."""
        assert dict(COMPOUNDING_FREQUENCIES) == {
            "annually": 1,
            "quarterly": 4,
            "monthly": 12,
            "daily": 365,
        }


class TestProjectGrowth:
    """Test the period-by-period projection."""

    def test_matches_annuity_closed_form(self):
        """Test $500/month at 7% monthly for 10 years equals the annuity value."""
        result = project_growth(0, 0.07, 10, periods_per_year=12, contribution=500)
        expected = future_value(0, 0.07, 10, 12, 500)
        assert result.final_balance == pytest.approx(expected, rel=1e-9)
        assert result.total_contributions == pytest.approx(60000)

    def test_lump_sum_annual(self):
        """Test lump sum compounding annually."""
        result = project_growth(1000, 0.05, 2, periods_per_year=1)
        assert result.final_balance == pytest.approx(1102.5)
        assert result.total_interest == pytest.approx(102.5)

    def test_interest_on_interest(self):
        """Test compounding beyond simple interest is reported."""
        result = project_growth(1000, 0.10, 2, periods_per_year=1)
        assert result.simple_interest == pytest.approx(200)
        assert result.interest_on_interest == pytest.approx(10)

    def test_schedule_is_yearly(self):
        """Test one schedule period per year."""
        result = project_growth(1000, 0.05, 7, contribution=100)
        assert len(result.schedule) == 7
        assert [period.index for period in result.schedule] == list(range(1, 8))

    def test_schedule_invariant(self):
        """Test ending = starting + interest + contribution for every year."""
        result = project_growth(2500, 0.06, 5, periods_per_year=4, contribution=250, contributions_per_year=4)
        for period in result.schedule:
            expected = period.starting_balance + period.interest + period.contribution - period.payment
            assert period.ending_balance == pytest.approx(expected)

    def test_quarterly_deposits_spread_over_monthly_periods(self):
        """Test deposits are normalized to the compounding period."""
        result = project_growth(0, 0.0, 1, periods_per_year=12, contribution=300, contributions_per_year=4)
        assert result.total_contributions == pytest.approx(1200)
        assert result.final_balance == pytest.approx(1200)

    def test_contribution_growth_steps_yearly(self):
        """Test deposits step up once per year."""
        result = project_growth(0, 0.0, 3, contribution=100, contribution_growth=0.10)
        years = [period.contribution for period in result.schedule]
        assert years[0] == pytest.approx(1200)
        assert years[1] == pytest.approx(1320)
        assert years[2] == pytest.approx(1452)

    def test_tax_on_interest(self):
        """Test tax applies to interest only."""
        result = project_growth(1000, 0.10, 1, periods_per_year=1, tax_rate=0.25)
        assert result.tax_on_interest == pytest.approx(25)
        assert result.after_tax_balance == pytest.approx(1075)

    def test_no_tax_without_interest(self):
        """Test zero interest means zero tax."""
        result = project_growth(1000, 0.0, 3, tax_rate=0.3)
        assert result.tax_on_interest == 0

    def test_real_balance(self):
        """Test inflation deflates the final balance."""
        result = project_growth(1000, 0.05, 10, inflation_rate=0.03)
        assert result.real_balance == pytest.approx(result.final_balance / 1.03 ** 10)

    def test_years_to_target(self):
        """Test the first year the target is reached."""
        result = project_growth(1000, 0.10, 5, periods_per_year=1, target_balance=1200)
        assert result.years_to_target == 2.0

    def test_target_already_reached(self):
        """Test a target at or below the start is reached immediately."""
        result = project_growth(5000, 0.05, 3, target_balance=1000)
        assert result.years_to_target == 0.0

    def test_target_not_reached(self):
        """Test an unreachable target is reported as None."""
        result = project_growth(1000, 0.01, 2, target_balance=1_000_000)
        assert result.years_to_target is None

    def test_zero_years(self):
        """Test a zero horizon returns the starting balance."""
        result = project_growth(1000, 0.05, 0)
        assert result.final_balance == 1000
        assert result.schedule == ()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"initial_balance": -1, "annual_rate": 0.05, "years": 1},
            {"initial_balance": 0, "annual_rate": -0.05, "years": 1},
            {"initial_balance": 0, "annual_rate": 0.05, "years": -1},
            {"initial_balance": 0, "annual_rate": 0.05, "years": 1, "periods_per_year": 2},
            {"initial_balance": 0, "annual_rate": 0.05, "years": 1, "tax_rate": 1.5},
            {"initial_balance": 0, "annual_rate": 0.05, "years": 1, "fee_rate": -0.01},
        ],
    )
    def test_invalid_arguments(self, kwargs):
        """Test invalid arguments raise ValueError."""
        with pytest.raises(ValueError):
            project_growth(**kwargs)


class TestDepositTimingAndFees:
    """Test beginning-of-period deposits and fund fees."""

    def test_deposit_at_start_earns_the_period(self):
        """Test a deposit at the start of the year earns that year's interest."""
        start = project_growth(
            0, 0.10, 1, periods_per_year=1, contribution=1000, contributions_per_year=1,
            contribute_at_start=True,
        )
        end = project_growth(0, 0.10, 1, periods_per_year=1, contribution=1000, contributions_per_year=1)
        assert start.final_balance == pytest.approx(1100)
        assert end.final_balance == pytest.approx(1000)

    def test_matches_annuity_due_closed_form(self):
        """Test the projection agrees with the annuity-due future value."""
        result = project_growth(0, 0.07, 10, contribution=500, contribute_at_start=True)
        expected = future_value(0, 0.07, 10, 12, 500, contribute_at_start=True)
        assert result.final_balance == pytest.approx(expected, rel=1e-9)

    def test_fee_reduces_return(self):
        """Test the fee comes off the rate and is reported."""
        result = project_growth(1000, 0.07, 1, periods_per_year=1, fee_rate=0.01)
        assert result.final_balance == pytest.approx(1060)
        assert result.fees_paid == pytest.approx(10)
        assert result.effective_apy == pytest.approx(0.06)

    def test_fees_compound(self):
        """Test fees cost more than the fee rate times the horizon."""
        result = project_growth(10000, 0.08, 30, contribution=200, fee_rate=0.01)
        assert result.fees_paid > 10000 * 0.01 * 30

    def test_no_fee(self):
        """Test fees are zero by default."""
        assert project_growth(1000, 0.05, 3, contribution=50).fees_paid == pytest.approx(0)


class TestRequiredContribution:
    """Test solving for the deposit that reaches a goal."""

    def test_reaches_goal(self):
        """Test projecting with the solved deposit lands on the goal."""
        deposit = required_contribution(100000, 5000, 0.06, 10)
        result = project_growth(5000, 0.06, 10, contribution=deposit)
        assert result.final_balance == pytest.approx(100000, rel=1e-9)

    def test_quarterly_deposits_at_start(self):
        """Test the deposit is scaled to the deposit frequency."""
        deposit = required_contribution(
            50000, 0, 0.05, 8, contributions_per_year=4, contribute_at_start=True,
        )
        result = project_growth(
            0, 0.05, 8, contribution=deposit, contributions_per_year=4, contribute_at_start=True,
        )
        assert result.final_balance == pytest.approx(50000, rel=1e-9)

    def test_zero_rate(self):
        """Test zero rate splits the shortfall evenly."""
        assert required_contribution(12000, 0, 0.0, 1) == pytest.approx(1000)

    def test_goal_already_covered(self):
        """Test no deposit is needed when growth alone reaches the goal."""
        assert required_contribution(1000, 5000, 0.05, 3) == 0.0

    @pytest.mark.parametrize("years,per_year", [(0, 12), (5, 0)])
    def test_invalid_arguments(self, years, per_year):
        """Test a zero horizon or deposit frequency raises ValueError."""
        with pytest.raises(ValueError):
            required_contribution(1000, 0, 0.05, years, contributions_per_year=per_year)
