"""
Global constants for portplan.

Purpose
-------
Centralizes default values and magic numbers used throughout the portplan
codebase. Using constants instead of hardcoded values keeps the numeric
semantics of simulations and solvers in one place.

Usage
-----
>>> from portplan.constants import DEFAULT_PATH_COUNT, RISK_FREE_RATE
>>>
>>> final = simulate(500_000, 24_000, 0.07, 0.15, years=25,
...                  path_count=DEFAULT_PATH_COUNT)

Categories
----------
- Simulation: path counts, seeds, percentile levels
- Optimization: solvers, tolerances, risk levels, frontier sweep
- Tax: rates, wash-sale window, asset-location scoring
- Retirement: withdrawal defaults, Social Security factors
"""

from typing import Dict, Tuple

__all__ = [
    # Simulation
    "DEFAULT_PATH_COUNT",
    "DEFAULT_WITHDRAWAL_PATH_COUNT",
    "PERCENTILE_LEVELS",
    "MONTHS_PER_YEAR",
    # Optimization
    "DEFAULT_SOLVER",
    "DEFAULT_MIP_SOLVER",
    "DEFAULT_TOLERANCE",
    "DEFAULT_TIME_LIMIT",
    "RISK_FREE_RATE",
    "MIN_REPORTED_WEIGHT",
    "BOND_SECTOR",
    "RISK_LEVEL_VOLATILITY",
    "FRONTIER_VOL_RANGE",
    "FRONTIER_STEP",
    # Tax
    "ORDINARY_TAX_RATE",
    "CAPITAL_GAINS_RATE",
    "WASH_SALE_WINDOW_DAYS",
    "BOND_PENALTY_BPS",
    "SCORE_SCALE",
    # Retirement
    "DEFAULT_RETIREMENT_YEARS",
    "DEFAULT_WITHDRAWAL_MEAN_RETURN",
    "DEFAULT_WITHDRAWAL_STDDEV",
    "CLAIMING_AGES",
    "SS_REDUCTION_FACTORS",
    "DEFAULT_COLA",
]


# =============================================================================
# Simulation Defaults
# =============================================================================

DEFAULT_PATH_COUNT: int = 10_000
"""Default number of Monte Carlo paths for growth projections."""

DEFAULT_WITHDRAWAL_PATH_COUNT: int = 1_000
"""Default number of paths for withdrawal strategy comparisons."""

PERCENTILE_LEVELS: Dict[str, float] = {
    "p10": 0.10,
    "p25": 0.25,
    "p50": 0.50,
    "p75": 0.75,
    "p90": 0.90,
}
"""Percentile bands extracted from sorted path balances."""

MONTHS_PER_YEAR: int = 12
"""Number of months in a year (monthly contribution → annual)."""


# =============================================================================
# Optimization Defaults
# =============================================================================

DEFAULT_SOLVER: str = "CLARABEL"
"""Default CVXPY solver for the allocation LP.

Alternatives: "SCIPY" (HiGHS), "ECOS", "SCS", "HIGHS".
"""

DEFAULT_MIP_SOLVER: str = "SCIPY"
"""Default CVXPY solver for boolean problems (scipy.optimize.milp / HiGHS)."""

DEFAULT_TOLERANCE: float = 1e-6
"""Constraint tolerance used when checking solver output."""

DEFAULT_TIME_LIMIT: float = 10.0
"""Solver time budget in seconds; exceeding it yields status UNKNOWN."""

RISK_FREE_RATE: float = 0.04
"""Risk-free rate used for Sharpe ratios."""

MIN_REPORTED_WEIGHT: float = 0.001
"""Allocations below this weight are omitted from the allocation list."""

BOND_SECTOR: str = "Bonds"
"""Sector label identifying bond assets."""

RISK_LEVEL_VOLATILITY: Dict[str, float] = {
    "conservative": 0.10,
    "aggressive": 0.25,
}
"""Fixed volatility caps for named risk levels ("moderate" uses the profile)."""

FRONTIER_VOL_RANGE: Tuple[float, float] = (0.05, 0.30)
"""Volatility cap sweep range for the efficient frontier."""

FRONTIER_STEP: float = 0.005
"""Step between successive frontier volatility caps."""


# =============================================================================
# Tax Defaults
# =============================================================================

ORDINARY_TAX_RATE: float = 0.22
"""Ordinary income rate applied to harvested losses and dividends."""

CAPITAL_GAINS_RATE: float = 0.15
"""Long-term capital gains rate used for growth drag estimates."""

WASH_SALE_WINDOW_DAYS: int = 30
"""Days on either side of the sale date that trigger a wash sale."""

BOND_PENALTY_BPS: int = 500
"""Extra asset-location cost (basis points) for bonds held in Taxable."""

SCORE_SCALE: int = 10_000
"""Fractions are scaled to basis points for asset-location scores."""


# =============================================================================
# Retirement Defaults
# =============================================================================

DEFAULT_RETIREMENT_YEARS: int = 30
"""Length of the decumulation phase for strategy comparisons."""

DEFAULT_WITHDRAWAL_MEAN_RETURN: float = 0.07
"""Mean annual return assumed during retirement."""

DEFAULT_WITHDRAWAL_STDDEV: float = 0.12
"""Annual return volatility assumed during retirement."""

CLAIMING_AGES: Tuple[int, ...] = (62, 63, 64, 65, 66, 67, 68, 69, 70)
"""Social Security claiming ages evaluated by the claiming optimizer."""

SS_REDUCTION_FACTORS: Dict[int, float] = {
    62: 0.70,
    63: 0.75,
    64: 0.80,
    65: 0.8667,
    66: 0.9333,
    67: 1.00,
    68: 1.08,
    69: 1.16,
    70: 1.24,
}
"""Benefit multipliers relative to the full-retirement-age (67) benefit."""

DEFAULT_COLA: float = 0.025
"""Annual cost-of-living adjustment applied to benefit streams."""
