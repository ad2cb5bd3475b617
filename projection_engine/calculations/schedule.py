"""
Schedule Records

Shared period record and helpers used by every projection in the engine.
A schedule is an ordered tuple of Period records, read-only once returned.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Mapping, Optional

from dateutil.relativedelta import relativedelta

# "Effectively zero" for balances, in currency minor-unit terms
EPSILON = 1e-2

VALID_PERIODS_PER_YEAR = (1, 4, 12, 365)


class PayoffStatus(str, Enum):
    """Outcome of a payoff simulation."""

    PAID_OFF = "paid_off"
    NON_AMORTIZING = "non_amortizing"


@dataclass(frozen=True)
class Period:
    """
    One simulated period.

    ending_balance = starting_balance + interest + contribution - payment

    payment is the cash applied to the balance (interest first),
    principal is the part of it that reduced the balance.
    """

    index: int
    starting_balance: float
    interest: float
    payment: float
    principal: float
    ending_balance: float
    contribution: float = 0.0
    cumulative_interest: float = 0.0
    date: Optional[date] = None
    target: Optional[str] = None
    per_liability: Optional[Mapping[str, float]] = field(default=None, compare=False)

    def to_row(self) -> Dict:
        """Render as a dict rounded to cents."""
        row = {
            "period": self.index,
            "date": self.date.isoformat() if self.date else None,
            "beginning_balance": round(self.starting_balance, 2),
            "payment": round(self.payment, 2),
            "interest": round(self.interest, 2),
            "principal": round(self.principal, 2),
            "contribution": round(self.contribution, 2),
            "ending_balance": round(self.ending_balance, 2),
            "cumulative_interest": round(self.cumulative_interest, 2),
        }
        if self.target is not None:
            row["target"] = self.target
        if self.per_liability is not None:
            row["balances"] = {
                key: round(value, 2) for key, value in self.per_liability.items()
            }
        return row


def validate_periods_per_year(periods_per_year: int) -> int:
    """Reject compounding/payment frequencies the engine does not model."""
    if periods_per_year not in VALID_PERIODS_PER_YEAR:
        raise ValueError(
            f"periods_per_year must be one of {VALID_PERIODS_PER_YEAR}, "
            f"got {periods_per_year}"
        )
    return periods_per_year


def period_date(
    start_date: Optional[date], index: int, periods_per_year: int = 12
) -> Optional[date]:
    """
    Date of the period with the given 1-based index.

    Period 1 falls on start_date.
    """
    if start_date is None:
        return None
    offset = index - 1
    if periods_per_year == 365:
        return start_date + relativedelta(days=offset)
    return start_date + relativedelta(months=offset * (12 // periods_per_year))
