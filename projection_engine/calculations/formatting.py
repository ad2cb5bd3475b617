"""
Numeric display formatting.

Only numbers are formatted here: grouping, fixed decimals, a currency code
prefix, percentages and month counts. No translation is attempted.
"""

from typing import Optional


def format_number(value: float, decimals: int = 2) -> str:
    """Group thousands with commas and fix the number of decimals."""
    return f"{value:,.{decimals}f}"


def format_money(amount: float, currency: str = "USD", decimals: int = 2) -> str:
    """
    Format a monetary amount with its currency code.

    Negative amounts keep the sign in front of the digits:
        format_money(-1234.5) -> "USD -1,234.50"
    """
    return f"{currency} {format_number(amount, decimals)}"


def format_percent(rate: float, decimals: int = 2) -> str:
    """Format a decimal rate as a percentage (0.0725 -> '7.25%')."""
    return f"{rate * 100:,.{decimals}f}%"


def format_duration(periods: Optional[int], periods_per_year: int = 12) -> str:
    """
    Format a number of monthly periods as years and months.

    None means the balance never closes and formats as 'Never'.
    """
    if periods is None:
        return "Never"
    if periods_per_year != 12:
        years = periods / periods_per_year
        return f"{years:,.1f} yr"

    years, months = divmod(int(periods), 12)
    if years and months:
        return f"{years} yr {months} mo"
    if years:
        return f"{years} yr"
    return f"{months} mo"


def format_years(years: Optional[float]) -> str:
    """Format a fractional year count; None means indefinitely."""
    if years is None:
        return "Indefinitely"
    return f"{years:,.1f} yr"
