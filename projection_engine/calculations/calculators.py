"""
Calculator Call Contract

Every calculator is called the same way: a flat map of user values, optional
per-field unit tags and an optional currency multiplier table.

    calculate("loan", {"loan_amount": 25000, "interest_rate": 6.5, ...})

The contract layer:
1. Resolves the calculator kind (closed set)
2. Converts unit-tagged fields to the canonical unit
3. Validates the inputs against the calculator's pydantic model
4. Runs the projection and packages a CalculatorResult

Rates cross this boundary as percentages (6.5 = 6.5%); the projections work
in decimals. Result values stay in the canonical unit; formatted strings are
converted back to the display currency.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from projection_engine.calculations.amortization import (
    AmortizationResult,
    amortize,
    calculate_debt_service,
    calculate_total_interest,
)
from projection_engine.calculations.debt_payoff import (
    Liability,
    Strategy,
    compare_to_minimums,
    summarize_liabilities,
)
from projection_engine.calculations.formatting import (
    format_duration,
    format_money,
    format_percent,
    format_years,
)
from projection_engine.calculations.growth import (
    COMPOUNDING_FREQUENCIES,
    doubling_time,
    project_growth,
    required_contribution,
)
from projection_engine.calculations.retirement import VestingSchedule, project_retirement
from projection_engine.calculations.schedule import Period
from projection_engine.calculations.units import (
    BASE_CURRENCY,
    Dimension,
    from_base,
    normalize_values,
)

logger = logging.getLogger(__name__)

DEBT_FIELD = re.compile(r"^debt(\d+)_(balance|rate|min_payment)$")
DEBT_MONEY_FIELD = re.compile(r"^debt\d+_(balance|min_payment)$")

MONEY_COLUMNS = (
    "beginning_balance",
    "payment",
    "interest",
    "principal",
    "contribution",
    "ending_balance",
    "cumulative_interest",
)


class CalculatorKind(str, Enum):
    """Calculators exposed through the call contract."""

    LOAN = "loan"
    CREDIT_CARD = "credit_card"
    COMPOUND_INTEREST = "compound_interest"
    DEBT_PAYOFF = "debt_payoff"
    RETIREMENT = "retirement"


class CalculatorResult(BaseModel):
    """Packaged output of a calculator call."""

    kind: CalculatorKind
    values: Dict[str, Any] = Field(default_factory=dict)
    formatted: Dict[str, str] = Field(default_factory=dict)
    summary: str = ""
    is_valid: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# INPUT MODELS
# ============================================================================

Frequency = Literal["annually", "quarterly", "monthly", "daily"]

# Down payments under 20% of the price carry mortgage insurance
PMI_LOAN_TO_VALUE = 0.8


class CalculatorInputs(BaseModel):
    """Base for calculator inputs; infinite and NaN numbers are rejected."""

    model_config = ConfigDict(allow_inf_nan=False)


class LoanInputs(CalculatorInputs):
    """Level-payment installment loan, optionally a mortgage with escrow."""

    loan_amount: float = Field(ge=0)
    interest_rate: float = Field(ge=0, le=100)
    loan_term_years: int = Field(ge=1, le=50)
    payments_per_year: Literal[1, 4, 12] = 12
    down_payment: float = Field(default=0.0, ge=0)
    extra_payment: float = Field(default=0.0, ge=0)
    yearly_extra_payment: float = Field(default=0.0, ge=0)
    lump_sum_payment: float = Field(default=0.0, ge=0)
    lump_sum_period: Optional[int] = Field(default=None, ge=1)
    grace_periods: int = Field(default=0, ge=0, le=120)
    pay_grace_interest: bool = False
    property_tax_rate: float = Field(default=0.0, ge=0, le=10)
    home_insurance: float = Field(default=0.0, ge=0)
    pmi_rate: float = Field(default=0.0, ge=0, le=5)
    hoa_monthly: float = Field(default=0.0, ge=0)
    start_date: Optional[date] = None

    @model_validator(mode="after")
    def check_lump_sum(self):
        if self.lump_sum_payment > 0 and self.lump_sum_period is None:
            raise ValueError("lump_sum_period is required with lump_sum_payment")
        return self


class CreditCardInputs(CalculatorInputs):
    """Revolving balance paid down with a fixed payment or the minimum due."""

    balance: float = Field(ge=0)
    apr: float = Field(ge=0, le=100)
    monthly_payment: Optional[float] = Field(default=None, gt=0)
    extra_payment: float = Field(default=0.0, ge=0)
    minimum_payment_percent: float = Field(default=2.0, gt=0, le=100)
    minimum_payment_floor: float = Field(default=35.0, ge=0)
    intro_apr: float = Field(default=0.0, ge=0, le=100)
    intro_months: int = Field(default=0, ge=0, le=60)
    transfer_fee_percent: float = Field(default=0.0, ge=0, le=10)
    start_date: Optional[date] = None


class CompoundInterestInputs(CalculatorInputs):
    """Savings or investment balance growing with deposits."""

    initial_balance: float = Field(default=0.0, ge=0)
    interest_rate: float = Field(ge=0, le=100)
    years: int = Field(ge=0, le=100)
    compounding: Frequency = "monthly"
    contribution: float = Field(default=0.0, ge=0)
    contribution_frequency: Frequency = "monthly"
    contribute_at_start: bool = False
    contribution_growth: float = Field(default=0.0, ge=0, le=100)
    fee_rate: float = Field(default=0.0, ge=0, le=10)
    tax_rate: float = Field(default=0.0, ge=0, le=100)
    inflation_rate: float = Field(default=0.0, ge=0, le=100)
    target_balance: Optional[float] = Field(default=None, ge=0)


class DebtInput(CalculatorInputs):
    """One debt collected from the numbered debt{i}_* keys."""

    id: str
    balance: float = Field(ge=0)
    rate: float = Field(default=0.0, ge=0, le=100)
    min_payment: float = Field(default=0.0, ge=0)


class DebtPayoffInputs(CalculatorInputs):
    """Several debts paid down together with a shared extra payment."""

    debts: List[DebtInput] = Field(min_length=1)
    extra_payment: float = Field(default=0.0, ge=0)
    strategy: Strategy = Strategy.AVALANCHE
    rollover_minimums: bool = True
    monthly_income: Optional[float] = Field(default=None, gt=0)
    start_date: Optional[date] = None


class RetirementInputs(CalculatorInputs):
    """Employer-sponsored retirement plan with match and vesting."""

    current_age: int = Field(ge=16, le=100)
    retirement_age: int = Field(ge=17, le=100)
    salary: float = Field(ge=0)
    contribution_rate: float = Field(ge=0, le=100)
    current_balance: float = Field(default=0.0, ge=0)
    match_rate: float = Field(default=0.0, ge=0, le=200)
    match_limit: float = Field(default=0.0, ge=0, le=100)
    salary_growth: float = Field(default=0.0, ge=0, le=50)
    annual_return: float = Field(default=7.0, ge=0, le=50)
    annual_fee: float = Field(default=0.0, ge=0, le=10)
    vesting_years: int = Field(default=0, ge=0, le=10)
    vesting_type: Literal["graded", "cliff"] = "graded"
    years_of_service: int = Field(default=0, ge=0, le=60)
    inflation_rate: float = Field(default=0.0, ge=0, le=50)
    withdrawal_rate: float = Field(default=4.0, ge=0, le=100)
    annual_withdrawal: Optional[float] = Field(default=None, ge=0)
    post_retirement_return: float = Field(default=5.0, ge=0, le=50)

    @model_validator(mode="after")
    def check_ages(self):
        if self.retirement_age <= self.current_age:
            raise ValueError("retirement_age must be greater than current_age")
        return self


# ============================================================================
# DISPLAY HELPERS
# ============================================================================


class _Display:
    """Formats canonical amounts in the caller's display currency."""

    def __init__(self, currency: str, currency_rates: Optional[Mapping[str, float]]):
        self.currency = currency
        self.currency_rates = currency_rates

    def money(self, amount: Optional[float]) -> str:
        if amount is None:
            return "-"
        converted = from_base(amount, self.currency, Dimension.CURRENCY, self.currency_rates)
        return format_money(converted, self.currency)

    def schedule_table(self, schedule: Tuple[Period, ...]) -> List[Dict[str, Any]]:
        rows = []
        for period in schedule:
            row = period.to_row()
            formatted: Dict[str, Any] = {"period": str(row["period"])}
            if row["date"]:
                formatted["date"] = row["date"]
            for column in MONEY_COLUMNS:
                formatted[column] = self.money(row[column])
            if "target" in row:
                formatted["target"] = row["target"]
            if "balances" in row:
                formatted["balances"] = {
                    key: self.money(value) for key, value in row["balances"].items()
                }
            rows.append(formatted)
        return rows


def _r(value: Optional[float], digits: int = 2) -> Optional[float]:
    return None if value is None else round(value, digits)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _schedule_chart(schedule: Tuple[Period, ...]) -> Dict[str, List]:
    return {
        "labels": [period.index for period in schedule],
        "balance": [round(period.ending_balance, 2) for period in schedule],
        "cumulative_interest": [round(period.cumulative_interest, 2) for period in schedule],
    }


def _savings(plan: AmortizationResult, baseline: AmortizationResult) -> Tuple[Optional[float], Optional[int]]:
    if not (plan.is_paid_off and baseline.is_paid_off):
        return None, None
    return (
        baseline.total_interest - plan.total_interest,
        baseline.periods_to_payoff - plan.periods_to_payoff,
    )


# Each run function returns (values, formatted, summary, chart_data, table_data)
RunOutput = Tuple[Dict[str, Any], Dict[str, str], str, Dict[str, Any], List[Dict[str, Any]]]


# ============================================================================
# CALCULATORS
# ============================================================================


def _run_loan(inputs: LoanInputs, display: _Display) -> RunOutput:
    loan = dict(
        principal=inputs.loan_amount,
        annual_rate=inputs.interest_rate / 100,
        term_periods=inputs.loan_term_years * inputs.payments_per_year,
        upfront_payment=inputs.down_payment,
        grace_periods=inputs.grace_periods,
        pay_grace_interest=inputs.pay_grace_interest,
        periods_per_year=inputs.payments_per_year,
        start_date=inputs.start_date,
    )
    extras = dict(
        extra_payment=inputs.extra_payment,
        yearly_extra_payment=inputs.yearly_extra_payment,
        lump_sum_payment=inputs.lump_sum_payment,
        lump_sum_period=inputs.lump_sum_period,
    )
    result = amortize(**loan, **extras)

    interest_saved = periods_saved = None
    if inputs.extra_payment > 0 or inputs.yearly_extra_payment > 0 or inputs.lump_sum_payment > 0:
        baseline = amortize(**loan)
        interest_saved, periods_saved = _savings(result, baseline)

    per_year = inputs.payments_per_year
    first_year_interest = calculate_total_interest(result.schedule[:per_year])
    first_year_payments = calculate_debt_service(result.schedule, 1, per_year)

    # Escrow and fees, spread over the payments in a year
    property_tax = inputs.loan_amount * inputs.property_tax_rate / 100 / per_year
    insurance = inputs.home_insurance / per_year
    pmi = 0.0
    if result.financed_principal > PMI_LOAN_TO_VALUE * inputs.loan_amount:
        pmi = result.financed_principal * inputs.pmi_rate / 100 / per_year
    hoa = inputs.hoa_monthly * 12 / per_year
    escrow = property_tax + insurance + pmi + hoa
    total_payment = result.payment + inputs.extra_payment

    values = {
        "status": result.status.value,
        "payment": _r(result.payment),
        "total_payment": _r(total_payment),
        "financed_principal": _r(result.financed_principal),
        "total_interest": _r(result.total_interest),
        "total_paid": _r(result.total_paid),
        "total_cost": _r(result.total_paid + min(inputs.down_payment, inputs.loan_amount)),
        "grace_interest": _r(result.grace_interest),
        "first_year_interest": _r(first_year_interest),
        "first_year_payments": _r(first_year_payments),
        "property_tax": _r(property_tax),
        "home_insurance": _r(insurance),
        "pmi": _r(pmi),
        "hoa": _r(hoa),
        "escrow_payment": _r(escrow),
        "housing_payment": _r(total_payment + escrow),
        "periods_to_payoff": result.periods_to_payoff,
        "interest_saved": _r(interest_saved),
        "periods_saved": periods_saved,
        "payoff_date": _iso(result.payoff_date),
    }
    formatted = {
        "payment": display.money(result.payment),
        "total_payment": display.money(total_payment),
        "financed_principal": display.money(result.financed_principal),
        "total_interest": display.money(result.total_interest),
        "total_paid": display.money(result.total_paid),
        "first_year_interest": display.money(first_year_interest),
        "first_year_payments": display.money(first_year_payments),
        "periods_to_payoff": format_duration(result.periods_to_payoff, per_year),
    }
    if interest_saved is not None:
        formatted["interest_saved"] = display.money(interest_saved)
        formatted["periods_saved"] = format_duration(periods_saved, per_year)

    summary = (
        f"Payment of {formatted['payment']} pays off {formatted['financed_principal']} "
        f"in {formatted['periods_to_payoff']} with {formatted['total_interest']} of interest."
    )
    if escrow > 0:
        formatted["escrow_payment"] = display.money(escrow)
        formatted["housing_payment"] = display.money(total_payment + escrow)
        summary += f" With escrow and fees each payment comes to {formatted['housing_payment']}."
    chart = _schedule_chart(result.schedule)
    return values, formatted, summary, chart, display.schedule_table(result.schedule)


def _run_credit_card(inputs: CreditCardInputs, display: _Display) -> RunOutput:
    transfer_fee = inputs.balance * inputs.transfer_fee_percent / 100
    terms = dict(
        principal=inputs.balance + transfer_fee,
        annual_rate=inputs.apr / 100,
        intro_rate=inputs.intro_apr / 100,
        intro_periods=inputs.intro_months,
        start_date=inputs.start_date,
    )
    minimum = dict(
        minimum_percent=inputs.minimum_payment_percent / 100,
        minimum_floor=inputs.minimum_payment_floor,
    )
    if inputs.monthly_payment is None:
        card = dict(terms, **minimum)
    else:
        card = dict(terms, payment=inputs.monthly_payment)
    result = amortize(extra_payment=inputs.extra_payment, **card)

    interest_saved = periods_saved = None
    if inputs.extra_payment > 0:
        baseline = amortize(**card)
        interest_saved, periods_saved = _savings(result, baseline)

    minimum_only = amortize(**terms, **minimum)
    saved_vs_minimum, periods_vs_minimum = _savings(result, minimum_only)

    first_rate = inputs.intro_apr if inputs.intro_months > 0 else inputs.apr
    first_month_interest = terms["principal"] * first_rate / 100 / 12
    payment = result.payment + inputs.extra_payment
    values = {
        "status": result.status.value,
        "payment": _r(payment),
        "minimum_payment": _r(minimum_only.payment),
        "transfer_fee": _r(transfer_fee),
        "first_month_interest": _r(first_month_interest),
        "total_interest": _r(result.total_interest),
        "total_paid": _r(result.total_paid),
        "periods_to_payoff": result.periods_to_payoff,
        "interest_saved": _r(interest_saved),
        "periods_saved": periods_saved,
        "minimum_only_status": minimum_only.status.value,
        "minimum_only_periods": minimum_only.periods_to_payoff,
        "minimum_only_interest": _r(minimum_only.total_interest),
        "interest_saved_vs_minimum": _r(saved_vs_minimum),
        "periods_saved_vs_minimum": periods_vs_minimum,
        "payoff_date": _iso(result.payoff_date),
    }
    formatted = {
        "payment": display.money(payment),
        "minimum_payment": display.money(minimum_only.payment),
        "first_month_interest": display.money(first_month_interest),
        "total_interest": display.money(result.total_interest),
        "total_paid": display.money(result.total_paid),
        "periods_to_payoff": format_duration(result.periods_to_payoff),
        "minimum_only_periods": format_duration(minimum_only.periods_to_payoff),
    }
    if transfer_fee > 0:
        formatted["transfer_fee"] = display.money(transfer_fee)
    if interest_saved is not None:
        formatted["interest_saved"] = display.money(interest_saved)
        formatted["periods_saved"] = format_duration(periods_saved)
    if saved_vs_minimum is not None:
        formatted["interest_saved_vs_minimum"] = display.money(saved_vs_minimum)

    if result.is_paid_off:
        summary = (
            f"Paying {formatted['payment']} a month clears the balance in "
            f"{formatted['periods_to_payoff']} with {formatted['total_interest']} of interest."
        )
    else:
        summary = (
            f"A payment of {formatted['payment']} does not cover "
            f"{formatted['first_month_interest']} of monthly interest; the balance never clears."
        )
    chart = _schedule_chart(result.schedule)
    chart["minimum_only_balance"] = [round(period.ending_balance, 2) for period in minimum_only.schedule]
    return values, formatted, summary, chart, display.schedule_table(result.schedule)


def _run_compound_interest(inputs: CompoundInterestInputs, display: _Display) -> RunOutput:
    periods_per_year = COMPOUNDING_FREQUENCIES[inputs.compounding]
    contributions_per_year = COMPOUNDING_FREQUENCIES[inputs.contribution_frequency]
    rate = inputs.interest_rate / 100
    fee_rate = inputs.fee_rate / 100
    result = project_growth(
        initial_balance=inputs.initial_balance,
        annual_rate=rate,
        years=inputs.years,
        periods_per_year=periods_per_year,
        contribution=inputs.contribution,
        contributions_per_year=contributions_per_year,
        contribution_growth=inputs.contribution_growth / 100,
        tax_rate=inputs.tax_rate / 100,
        inflation_rate=inputs.inflation_rate / 100,
        target_balance=inputs.target_balance,
        contribute_at_start=inputs.contribute_at_start,
        fee_rate=fee_rate,
    )
    doubling = doubling_time(rate - fee_rate, periods_per_year)

    required = None
    if inputs.target_balance is not None and inputs.years > 0:
        required = required_contribution(
            target_balance=inputs.target_balance,
            initial_balance=inputs.initial_balance,
            annual_rate=rate - fee_rate,
            years=inputs.years,
            periods_per_year=periods_per_year,
            contributions_per_year=contributions_per_year,
            contribute_at_start=inputs.contribute_at_start,
        )

    values = {
        "final_balance": _r(result.final_balance),
        "total_contributions": _r(result.total_contributions),
        "total_interest": _r(result.total_interest),
        "interest_on_interest": _r(result.interest_on_interest),
        "effective_apy": _r(result.effective_apy * 100, 4),
        "fees_paid": _r(result.fees_paid),
        "tax_on_interest": _r(result.tax_on_interest),
        "after_tax_balance": _r(result.after_tax_balance),
        "real_balance": _r(result.real_balance),
        "doubling_time_years": _r(doubling),
        "years_to_target": _r(result.years_to_target),
        "required_contribution": _r(required),
    }
    formatted = {
        "final_balance": display.money(result.final_balance),
        "total_contributions": display.money(result.total_contributions),
        "total_interest": display.money(result.total_interest),
        "interest_on_interest": display.money(result.interest_on_interest),
        "effective_apy": format_percent(result.effective_apy),
        "after_tax_balance": display.money(result.after_tax_balance),
        "real_balance": display.money(result.real_balance),
        "doubling_time_years": format_years(doubling) if doubling is not None else "Never",
    }
    if fee_rate > 0:
        formatted["fees_paid"] = display.money(result.fees_paid)
    if inputs.target_balance is not None:
        formatted["years_to_target"] = (
            format_years(result.years_to_target) if result.years_to_target is not None else "Not reached"
        )
    if required is not None:
        formatted["required_contribution"] = display.money(required)

    summary = (
        f"After {inputs.years} years the balance grows to {formatted['final_balance']}, "
        f"including {formatted['total_interest']} of interest."
    )
    if required is not None:
        summary += (
            f" Reaching {display.money(inputs.target_balance)} takes deposits of "
            f"{formatted['required_contribution']} {inputs.contribution_frequency}."
        )
    chart = {
        "labels": [period.index for period in result.schedule],
        "balance": [round(period.ending_balance, 2) for period in result.schedule],
        "contributions": [round(period.contribution, 2) for period in result.schedule],
        "interest": [round(period.interest, 2) for period in result.schedule],
    }
    return values, formatted, summary, chart, display.schedule_table(result.schedule)


def _collect_debts(values: Mapping[str, Any]) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """Split numbered debt{i}_* keys out of a flat map."""
    debts: Dict[int, Dict[str, Any]] = {}
    rest = {}
    for key, value in values.items():
        match = DEBT_FIELD.match(key)
        if match is None:
            rest[key] = value
            continue
        number, column = int(match.group(1)), match.group(2)
        debts.setdefault(number, {"id": f"debt{number}"})[column] = value

    collected = []
    for number in sorted(debts):
        entry = debts[number]
        # Empty rows of the input form
        if not entry.get("balance") and not entry.get("min_payment"):
            continue
        collected.append(entry)
    return collected, rest


def _run_debt_payoff(inputs: DebtPayoffInputs, display: _Display) -> RunOutput:
    liabilities = [
        Liability(
            id=debt.id,
            principal=debt.balance,
            annual_rate=debt.rate / 100,
            minimum_payment=debt.min_payment,
        )
        for debt in inputs.debts
    ]
    comparison = compare_to_minimums(
        liabilities,
        strategy=inputs.strategy,
        extra_payment=inputs.extra_payment,
        rollover_minimums=inputs.rollover_minimums,
        start_date=inputs.start_date,
    )
    plan, baseline = comparison.plan, comparison.baseline
    profile = summarize_liabilities(liabilities, inputs.monthly_income)

    values = {
        "status": plan.status.value,
        "strategy": plan.strategy.value,
        "priority": list(plan.priority),
        "periods_to_payoff": plan.periods_to_payoff,
        "total_interest": _r(plan.total_interest),
        "total_paid": _r(plan.total_paid),
        "baseline_status": baseline.status.value,
        "baseline_periods": baseline.periods_to_payoff,
        "baseline_interest": _r(baseline.total_interest),
        "interest_saved": _r(comparison.interest_saved),
        "periods_saved": comparison.periods_saved,
        "first_paid_off": plan.first_paid_off.id if plan.first_paid_off else None,
        "payoff_date": _iso(plan.payoff_date),
        "total_debt": _r(profile.total_debt),
        "total_minimum_payments": _r(profile.total_minimum_payments),
        "weighted_average_rate": _r(profile.weighted_average_rate * 100, 4),
        "daily_interest": _r(profile.daily_interest),
        "monthly_interest": _r(profile.monthly_interest),
        "rate_band": profile.rate_band,
        "debt_to_income": _r(
            profile.debt_to_income * 100 if profile.debt_to_income is not None else None
        ),
        "dti_band": profile.dti_band,
        "debts": [
            {
                "id": outcome.id,
                "paid_off_period": outcome.paid_off_period,
                "total_interest": _r(outcome.total_interest),
                "total_paid": _r(outcome.total_paid),
                "ending_balance": _r(outcome.ending_balance),
            }
            for outcome in plan.outcomes
        ],
    }
    formatted = {
        "periods_to_payoff": format_duration(plan.periods_to_payoff),
        "total_interest": display.money(plan.total_interest),
        "total_paid": display.money(plan.total_paid),
        "baseline_periods": format_duration(baseline.periods_to_payoff),
        "baseline_interest": display.money(baseline.total_interest),
        "total_debt": display.money(profile.total_debt),
        "total_minimum_payments": display.money(profile.total_minimum_payments),
        "weighted_average_rate": format_percent(profile.weighted_average_rate),
        "monthly_interest": display.money(profile.monthly_interest),
    }
    if comparison.interest_saved is not None:
        formatted["interest_saved"] = display.money(comparison.interest_saved)
        formatted["periods_saved"] = format_duration(comparison.periods_saved)
    if profile.debt_to_income is not None:
        formatted["debt_to_income"] = format_percent(profile.debt_to_income)

    if plan.is_paid_off:
        summary = (
            f"The {plan.strategy.value} plan clears {formatted['total_debt']} of debt in "
            f"{formatted['periods_to_payoff']} with {formatted['total_interest']} of interest."
        )
    else:
        summary = (
            f"The {plan.strategy.value} plan does not clear {formatted['total_debt']} of debt; "
            f"payments do not outpace interest."
        )

    chart = _schedule_chart(plan.schedule)
    chart["per_liability"] = {
        liability.id: [
            round(period.per_liability[liability.id], 2) for period in plan.schedule
        ]
        for liability in liabilities
    }
    chart["baseline_balance"] = [round(period.ending_balance, 2) for period in baseline.schedule]
    return values, formatted, summary, chart, display.schedule_table(plan.schedule)


def _run_retirement(inputs: RetirementInputs, display: _Display) -> RunOutput:
    result = project_retirement(
        current_age=inputs.current_age,
        retirement_age=inputs.retirement_age,
        salary=inputs.salary,
        contribution_rate=inputs.contribution_rate / 100,
        current_balance=inputs.current_balance,
        match_rate=inputs.match_rate / 100,
        match_limit=inputs.match_limit / 100,
        salary_growth=inputs.salary_growth / 100,
        annual_return=inputs.annual_return / 100,
        annual_fee=inputs.annual_fee / 100,
        vesting=VestingSchedule(
            vesting_years=inputs.vesting_years,
            is_cliff=inputs.vesting_type == "cliff",
        ),
        years_of_service=inputs.years_of_service,
        inflation_rate=inputs.inflation_rate / 100,
        withdrawal_rate=inputs.withdrawal_rate / 100,
        annual_withdrawal=inputs.annual_withdrawal,
        post_retirement_return=inputs.post_retirement_return / 100,
    )

    values = {
        "years_to_retirement": result.years_to_retirement,
        "balance": _r(result.balance),
        "vested_balance": _r(result.vested_balance),
        "real_balance": _r(result.real_balance),
        "total_employee_contributions": _r(result.total_employee_contributions),
        "total_employer_match": _r(result.total_employer_match),
        "vested_employer_match": _r(result.vested_employer_match),
        "total_growth": _r(result.total_growth),
        "vested_fraction": _r(result.vested_fraction, 4),
        "annual_withdrawal": _r(result.annual_withdrawal),
        "monthly_income": _r(result.monthly_income),
        "years_funds_last": _r(result.years_funds_last),
        "lasts_indefinitely": result.lasts_indefinitely,
        "first_year_contribution": _r(result.first_year_contribution),
        "first_year_match": _r(result.first_year_match),
        "match_left_on_table": _r(result.match_left_on_table),
        "catch_up_eligible": result.catch_up_eligible,
    }
    formatted = {
        "balance": display.money(result.balance),
        "vested_balance": display.money(result.vested_balance),
        "real_balance": display.money(result.real_balance),
        "total_employee_contributions": display.money(result.total_employee_contributions),
        "total_employer_match": display.money(result.total_employer_match),
        "total_growth": display.money(result.total_growth),
        "vested_fraction": format_percent(result.vested_fraction, 0),
        "annual_withdrawal": display.money(result.annual_withdrawal),
        "monthly_income": display.money(result.monthly_income),
        "years_funds_last": format_years(result.years_funds_last),
        "match_left_on_table": display.money(result.match_left_on_table),
    }

    if result.lasts_indefinitely:
        duration = "indefinitely"
    else:
        duration = f"for {formatted['years_funds_last'].lower()}"
    summary = (
        f"At {inputs.retirement_age} the plan holds {formatted['vested_balance']} vested, "
        f"supporting {formatted['monthly_income']} a month {duration}."
    )
    chart = {
        "labels": [row.age for row in result.years],
        "balance": [round(row.balance, 2) for row in result.years],
        "vested_balance": [round(row.vested_balance, 2) for row in result.years],
        "real_balance": [round(row.real_balance, 2) for row in result.years],
    }
    table = []
    for row in result.years:
        table.append({
            "age": str(row.age),
            "salary": display.money(row.salary),
            "contribution_limit": display.money(row.contribution_limit),
            "employee_contribution": display.money(row.employee_contribution),
            "employer_match": display.money(row.employer_match),
            "growth": display.money(row.growth),
            "balance": display.money(row.balance),
            "vested_fraction": format_percent(row.vested_fraction, 0),
            "vested_balance": display.money(row.vested_balance),
        })
    return values, formatted, summary, chart, table


@dataclass(frozen=True)
class Calculator:
    """A calculator variant: input model, monetary fields and run function."""

    kind: CalculatorKind
    description: str
    inputs: Type[BaseModel]
    money_fields: Tuple[str, ...]
    run: Callable[[Any, _Display], RunOutput]
    numbered_fields: Tuple[str, ...] = ()


CALCULATORS: Mapping[CalculatorKind, Calculator] = MappingProxyType({
    CalculatorKind.LOAN: Calculator(
        kind=CalculatorKind.LOAN,
        description="Level-payment loan or mortgage with extra payments, lump sums, escrow and grace periods",
        inputs=LoanInputs,
        money_fields=(
            "loan_amount",
            "down_payment",
            "extra_payment",
            "yearly_extra_payment",
            "lump_sum_payment",
            "home_insurance",
            "hoa_monthly",
        ),
        run=_run_loan,
    ),
    CalculatorKind.CREDIT_CARD: Calculator(
        kind=CalculatorKind.CREDIT_CARD,
        description="Revolving balance paid down with a fixed payment or the minimum due, with intro APR and transfer fee",
        inputs=CreditCardInputs,
        money_fields=("balance", "monthly_payment", "extra_payment", "minimum_payment_floor"),
        run=_run_credit_card,
    ),
    CalculatorKind.COMPOUND_INTEREST: Calculator(
        kind=CalculatorKind.COMPOUND_INTEREST,
        description="Compounding growth with periodic deposits, fees, tax, inflation and a savings goal",
        inputs=CompoundInterestInputs,
        money_fields=("initial_balance", "contribution", "target_balance"),
        run=_run_compound_interest,
    ),
    CalculatorKind.DEBT_PAYOFF: Calculator(
        kind=CalculatorKind.DEBT_PAYOFF,
        description="Avalanche or snowball payoff of several debts against minimums only",
        inputs=DebtPayoffInputs,
        money_fields=("extra_payment", "monthly_income"),
        run=_run_debt_payoff,
        numbered_fields=("debt{i}_balance", "debt{i}_rate", "debt{i}_min_payment"),
    ),
    CalculatorKind.RETIREMENT: Calculator(
        kind=CalculatorKind.RETIREMENT,
        description="Retirement plan with employer match, vesting and contribution limits",
        inputs=RetirementInputs,
        money_fields=("salary", "current_balance", "annual_withdrawal"),
        run=_run_retirement,
    ),
})


def get_calculator(kind) -> Calculator:
    """Resolve a calculator kind, raising ValueError for unknown kinds."""
    try:
        return CALCULATORS[CalculatorKind(kind)]
    except ValueError:
        raise ValueError(f"Unknown calculator kind: {kind}") from None


def calculator_catalog() -> List[Dict[str, Any]]:
    """Describe every calculator and the flat-map keys it reads."""
    catalog = []
    for calculator in CALCULATORS.values():
        fields = [name for name in calculator.inputs.model_fields if name != "debts"]
        catalog.append({
            "kind": calculator.kind.value,
            "description": calculator.description,
            "fields": fields + list(calculator.numbered_fields),
            "money_fields": list(calculator.money_fields),
        })
    return catalog


def _money_fields(calculator: Calculator, keys) -> List[str]:
    fields = list(calculator.money_fields)
    if calculator.kind is CalculatorKind.DEBT_PAYOFF:
        fields += sorted(key for key in keys if DEBT_MONEY_FIELD.match(key))
    return fields


def _validation_errors(error: ValidationError) -> List[Dict[str, str]]:
    return [
        {
            "field": ".".join(str(part) for part in item["loc"]) or "__root__",
            "message": item["msg"],
        }
        for item in error.errors()
    ]


def calculate(
    kind,
    values: Mapping[str, Any],
    field_units: Optional[Mapping[str, str]] = None,
    currency_rates: Optional[Mapping[str, float]] = None,
) -> CalculatorResult:
    """
    Run a calculator on a flat map of values.

    Args:
        kind: CalculatorKind or its string value
        values: Flat map of field name to value; rates are percentages
        field_units: Optional unit tag per field (e.g. {"loan_amount": "EUR"})
        currency_rates: Value of one unit of each currency in the base currency

    Returns:
        CalculatorResult; is_valid is False with errors in metadata when the
        inputs fail validation.

    Raises:
        ValueError: unknown calculator kind
        InvalidUnitError: unknown unit tag or currency
    """
    calculator = get_calculator(kind)
    field_units = dict(field_units or {})

    money_fields = _money_fields(calculator, set(values) | set(field_units))
    field_dimensions = {name: Dimension.CURRENCY for name in money_fields}
    normalized = normalize_values(values, field_units, field_dimensions, currency_rates)
    normalized = {key: value for key, value in normalized.items() if value is not None}

    display_currency = next(
        (field_units[name] for name in money_fields if name in field_units),
        BASE_CURRENCY,
    )
    display = _Display(display_currency, currency_rates)

    if calculator.kind is CalculatorKind.DEBT_PAYOFF:
        debts, normalized = _collect_debts(normalized)
        normalized["debts"] = debts

    try:
        inputs = calculator.inputs.model_validate(normalized)
    except ValidationError as e:
        errors = _validation_errors(e)
        logger.info("Invalid %s inputs: %d error(s)", calculator.kind.value, len(errors))
        return CalculatorResult(
            kind=calculator.kind,
            is_valid=False,
            metadata={"errors": errors, "currency": display_currency},
        )

    values_out, formatted, summary, chart_data, table_data = calculator.run(inputs, display)
    logger.debug("Calculated %s: %s", calculator.kind.value, values_out.get("status", "ok"))

    return CalculatorResult(
        kind=calculator.kind,
        values=values_out,
        formatted=formatted,
        summary=summary,
        is_valid=True,
        metadata={
            "chart_data": chart_data,
            "table_data": table_data,
            "errors": [],
            "currency": display_currency,
        },
    )
