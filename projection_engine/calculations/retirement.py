"""
Retirement Plan Projection

Projects an employer-sponsored retirement account to retirement age:
- Salary grows annually and drives the employee contribution
- Employee contribution is capped at the statutory limit for each age
- Employer match = min(employee, salary * match limit) * match rate
- Employer money is owned according to the vesting schedule
- Post-retirement withdrawal estimate and how long the balance lasts
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from projection_engine.calculations.schedule import Period, validate_periods_per_year

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContributionLimits:
    """Statutory annual employee contribution limits."""

    base: float
    catch_up: float  # Added at catch_up_age and above
    super_catch_up: float  # Replaces catch_up inside super_catch_up_ages
    catch_up_age: int = 50
    super_catch_up_ages: Tuple[int, int] = (60, 63)


# 2026 limits
DEFAULT_LIMITS = ContributionLimits(base=24500.0, catch_up=8000.0, super_catch_up=11250.0)


def annual_contribution_limit(age: int, limits: ContributionLimits = DEFAULT_LIMITS) -> float:
    """
    Employee contribution ceiling at a given age.

    Step function: base limit under the catch-up age, base + catch-up from it,
    base + super catch-up inside the super catch-up band, and back to
    base + catch-up above the band.
    """
    low, high = limits.super_catch_up_ages
    if low <= age <= high:
        return limits.base + limits.super_catch_up
    if age >= limits.catch_up_age:
        return limits.base + limits.catch_up
    return limits.base


@dataclass(frozen=True)
class VestingSchedule:
    """Ownership schedule for employer contributions."""

    vesting_years: int = 0
    is_cliff: bool = False

    def __post_init__(self):
        if self.vesting_years < 0:
            raise ValueError("vesting_years must be non-negative")

    def vested_fraction(self, tenure_years: float) -> float:
        """Fraction of employer money owned after tenure_years of service."""
        if self.vesting_years == 0 or tenure_years >= self.vesting_years:
            return 1.0
        if self.is_cliff:
            return 0.0
        return max(0.0, tenure_years / self.vesting_years)


@dataclass(frozen=True)
class RetirementYear:
    """One simulated year of the accumulation phase."""

    age: int
    salary: float
    contribution_limit: float
    employee_contribution: float
    employer_match: float
    growth: float
    balance: float
    vested_fraction: float
    vested_balance: float
    real_balance: float


@dataclass(frozen=True)
class RetirementResult:
    """Outcome of a retirement projection."""

    years_to_retirement: int
    balance: float  # Gross, including unvested employer money
    vested_balance: float
    real_balance: float  # Vested balance in today's money
    total_employee_contributions: float
    total_employer_match: float
    vested_employer_match: float
    total_growth: float
    vested_fraction: float
    annual_withdrawal: float
    monthly_income: float
    years_funds_last: Optional[float]  # None means the withdrawal is sustainable indefinitely
    first_year_contribution: float
    first_year_match: float
    match_left_on_table: float
    catch_up_eligible: bool
    years: Tuple[RetirementYear, ...]
    schedule: Tuple[Period, ...]

    @property
    def lasts_indefinitely(self) -> bool:
        return self.years_funds_last is None


def years_balance_lasts(
    balance: float, annual_withdrawal: float, annual_return: float
) -> Optional[float]:
    """
    Years a balance sustains a level monthly withdrawal.

    Closed-form annuity depletion with monthly compounding:
        n = -ln(1 - B*i/W) / ln(1 + i)  months

    Returns None when the withdrawal does not exceed the balance's monthly
    return, i.e. the balance never depletes.
    """
    if balance <= 0:
        return 0.0
    monthly_withdrawal = annual_withdrawal / 12
    if monthly_withdrawal <= 0:
        return None

    monthly_rate = annual_return / 12
    if monthly_rate == 0:
        return balance / monthly_withdrawal / 12

    monthly_return = balance * monthly_rate
    if monthly_withdrawal <= monthly_return:
        return None

    months = -math.log(1 - monthly_return / monthly_withdrawal) / math.log(1 + monthly_rate)
    return months / 12


def project_retirement(
    current_age: int,
    retirement_age: int,
    salary: float,
    contribution_rate: float,
    current_balance: float = 0.0,
    match_rate: float = 0.0,
    match_limit: float = 0.0,
    salary_growth: float = 0.0,
    annual_return: float = 0.07,
    annual_fee: float = 0.0,
    periods_per_year: int = 12,
    vesting: Optional[VestingSchedule] = None,
    years_of_service: int = 0,
    inflation_rate: float = 0.0,
    withdrawal_rate: float = 0.04,
    annual_withdrawal: Optional[float] = None,
    post_retirement_return: float = 0.05,
    limits: ContributionLimits = DEFAULT_LIMITS,
) -> RetirementResult:
    """
    Project a retirement account from current_age to retirement_age.

    Per simulated year:
    1. Employee contribution = min(salary * contribution_rate, limit(age))
    2. Employer match = min(employee, salary * match_limit) * match_rate
    3. Both are deposited evenly each compounding period and grow at
       annual_return - annual_fee
    4. Salary steps up by salary_growth for the next year

    Employee and employer balances are tracked separately; only the employer
    balance is scaled by the vested fraction for the tenure reached.

    current_balance is treated as fully owned by the employee.

    Args:
        current_age: Age at the start of the projection
        retirement_age: Age at which contributions stop
        salary: Current annual salary
        contribution_rate: Employee contribution as decimal of salary
        current_balance: Existing balance
        match_rate: Employer match per unit of matched contribution (decimal)
        match_limit: Share of salary the employer matches up to (decimal)
        salary_growth: Annual raise as decimal
        annual_return: Pre-retirement nominal return as decimal
        annual_fee: Annual fees as decimal, deducted from the return
        periods_per_year: Compounding periods per year
        vesting: Employer match vesting schedule
        years_of_service: Tenure already accrued at current_age
        inflation_rate: Annual inflation as decimal
        withdrawal_rate: Share of the retirement balance withdrawn per year
        annual_withdrawal: Explicit withdrawal, overrides withdrawal_rate
        post_retirement_return: Return assumed while drawing down
        limits: Statutory contribution limits
    """
    if retirement_age <= current_age:
        raise ValueError("retirement_age must be greater than current_age")
    if salary < 0 or current_balance < 0:
        raise ValueError("salary and current_balance must be non-negative")
    if contribution_rate < 0 or match_rate < 0 or match_limit < 0:
        raise ValueError("contribution and match rates must be non-negative")
    if years_of_service < 0:
        raise ValueError("years_of_service must be non-negative")
    if withdrawal_rate < 0 or (annual_withdrawal is not None and annual_withdrawal < 0):
        raise ValueError("withdrawal must be non-negative")
    if inflation_rate <= -1:
        raise ValueError("inflation_rate must be greater than -1")
    validate_periods_per_year(periods_per_year)
    vesting = vesting or VestingSchedule()

    periodic_rate = (annual_return - annual_fee) / periods_per_year
    years_to_retirement = retirement_age - current_age

    employee_balance = float(current_balance)
    employer_balance = 0.0
    total_employee = 0.0
    total_employer = 0.0
    total_growth = 0.0
    current_salary = float(salary)
    first_year_contribution = 0.0
    first_year_match = 0.0
    match_left_on_table = 0.0

    years: List[RetirementYear] = []
    schedule: List[Period] = []

    for year in range(years_to_retirement):
        age = current_age + year
        limit = annual_contribution_limit(age, limits)
        employee = min(current_salary * contribution_rate, limit)
        matchable = min(employee, current_salary * match_limit)
        match = matchable * match_rate

        if year == 0:
            first_year_contribution = employee
            first_year_match = match
            match_left_on_table = max(current_salary * match_limit * match_rate - match, 0.0)

        starting = employee_balance + employer_balance
        year_growth = 0.0
        employee_deposit = employee / periods_per_year
        employer_deposit = match / periods_per_year
        for _ in range(periods_per_year):
            employee_growth = employee_balance * periodic_rate
            employer_growth = employer_balance * periodic_rate
            employee_balance += employee_growth + employee_deposit
            employer_balance += employer_growth + employer_deposit
            year_growth += employee_growth + employer_growth

        total_employee += employee
        total_employer += match
        total_growth += year_growth

        tenure = years_of_service + year + 1
        fraction = vesting.vested_fraction(tenure)
        gross = employee_balance + employer_balance
        vested = employee_balance + employer_balance * fraction
        deflator = (1 + inflation_rate) ** (year + 1)

        years.append(
            RetirementYear(
                age=age + 1,
                salary=current_salary,
                contribution_limit=limit,
                employee_contribution=employee,
                employer_match=match,
                growth=year_growth,
                balance=gross,
                vested_fraction=fraction,
                vested_balance=vested,
                real_balance=vested / deflator,
            )
        )
        schedule.append(
            Period(
                index=year + 1,
                starting_balance=starting,
                interest=year_growth,
                payment=0.0,
                principal=0.0,
                ending_balance=gross,
                contribution=employee + match,
                cumulative_interest=total_growth,
            )
        )

        current_salary *= 1 + salary_growth

    final_fraction = vesting.vested_fraction(years_of_service + years_to_retirement)
    balance = employee_balance + employer_balance
    vested_balance = employee_balance + employer_balance * final_fraction
    real_balance = vested_balance / (1 + inflation_rate) ** years_to_retirement

    if annual_withdrawal is None:
        annual_withdrawal = vested_balance * withdrawal_rate
    years_funds_last = years_balance_lasts(vested_balance, annual_withdrawal, post_retirement_return)
    if years_funds_last is None:
        logger.debug("Withdrawal %.2f is sustainable indefinitely", annual_withdrawal)

    return RetirementResult(
        years_to_retirement=years_to_retirement,
        balance=balance,
        vested_balance=vested_balance,
        real_balance=real_balance,
        total_employee_contributions=total_employee,
        total_employer_match=total_employer,
        vested_employer_match=employer_balance * final_fraction,
        total_growth=total_growth,
        vested_fraction=final_fraction,
        annual_withdrawal=annual_withdrawal,
        monthly_income=annual_withdrawal / 12,
        years_funds_last=years_funds_last,
        first_year_contribution=first_year_contribution,
        first_year_match=first_year_match,
        match_left_on_table=match_left_on_table,
        catch_up_eligible=current_age >= limits.catch_up_age,
        years=tuple(years),
        schedule=tuple(schedule),
    )
