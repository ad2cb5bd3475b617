"""
Financial Projection Engine

Core projection modules: single-balance amortization, compounding growth,
multi-debt payoff, retirement plans and the calculator call contract.
All functions are pure; nothing here reads settings, files or the network.
"""

from projection_engine.calculations import (
    amortization,
    calculators,
    debt_payoff,
    formatting,
    growth,
    retirement,
    schedule,
    units,
)

__all__ = [
    "amortization",
    "calculators",
    "debt_payoff",
    "formatting",
    "growth",
    "retirement",
    "schedule",
    "units",
]
