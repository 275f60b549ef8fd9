"""Monte Carlo growth engine for portplan

Vectorized multi-path simulator for the accumulation phase. All paths
advance together: each simulated year draws one normal return per path and
applies

    balance ← balance · (1 + r) + annual_contribution

Percentiles are plain order statistics of the sorted balances,
``sorted[floor(N · p)]`` with no interpolation; p = 0.9 at N = 10,000 reads
index 9,000.

Design goals
------------
- Deterministic when seeded (explicit Generator, no global state).
- Pure: every call owns its arrays and generator.

Typical usage
-------------
>>> final = simulate(700_000, 24_000, mean_return=0.07, stddev=0.15,
...                  years=20, path_count=10_000, seed=42)
>>> summary = summarize(final, goal=2_000_000)
>>> bands = simulate_with_yearly_percentiles(700_000, 24_000, 0.07, 0.15,
...                                          years=20, seed=42)
>>> bands.to_frame().tail()
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, Optional

import numpy as np
import pandas as pd

from .config import SimulationConfig
from .constants import DEFAULT_PATH_COUNT, PERCENTILE_LEVELS
from .exceptions import ValidationError
from .models import InvestorProfile
from .sampling import fill_normal
from .utils import (
    check_non_negative,
    check_non_negative_int,
    check_positive_int,
    ensure_1d,
    future_value,
    make_rng,
    order_statistic,
    round_money,
)

__all__ = [
    "PercentileBands",
    "MonteCarloSummary",
    "DeterministicProjection",
    "simulate",
    "simulate_with_yearly_percentiles",
    "percentile",
    "summarize",
    "run_retirement_projection",
    "project_balance",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PercentileBands:
    """Year-by-year percentile bands; every band has length years + 1."""
    bands: Dict[str, np.ndarray]
    years: int
    path_count: int

    def __getitem__(self, name: str) -> np.ndarray:
        return self.bands[name]

    @property
    def p10(self) -> np.ndarray:
        return self.bands["p10"]

    @property
    def p50(self) -> np.ndarray:
        return self.bands["p50"]

    @property
    def p90(self) -> np.ndarray:
        return self.bands["p90"]

    def to_frame(self) -> pd.DataFrame:
        """Bands as columns, indexed by simulated year (0..years)."""
        df = pd.DataFrame(self.bands, index=pd.RangeIndex(self.years + 1, name="year"))
        return df

    def to_dict(self) -> Dict[str, list]:
        return {name: [round_money(v) for v in values] for name, values in self.bands.items()}


@dataclass(frozen=True)
class MonteCarloSummary:
    """Distribution summary of final balances."""
    path_count: int
    percentiles: Dict[str, float]
    probability_of_goal: float
    mean_final_value: float
    goal: float
    years: Optional[int] = None
    starting_balance: Optional[float] = None
    annual_contribution: Optional[float] = None

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {
            "simulations": self.path_count,
            "percentiles": {k: round_money(v) for k, v in self.percentiles.items()},
            "probabilityOfReachingGoal": self.probability_of_goal,
            "meanFinalValue": round_money(self.mean_final_value),
            "goal": self.goal,
        }
        if self.years is not None:
            out["yearsSimulated"] = self.years
        if self.starting_balance is not None:
            out["startingBalance"] = round_money(self.starting_balance)
        if self.annual_contribution is not None:
            out["annualContribution"] = round_money(self.annual_contribution)
        return out


@dataclass(frozen=True)
class DeterministicProjection:
    """Closed-form compound-growth projection to retirement."""
    current_balance: float
    projected_balance: float
    years_to_retirement: int
    expected_return: float
    annual_contribution: float
    retirement_goal: float
    projected_gap: float = field(init=False)
    on_track: bool = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "projected_gap", self.retirement_goal - self.projected_balance)
        object.__setattr__(self, "on_track", self.projected_balance >= self.retirement_goal)

    def to_dict(self) -> Dict[str, object]:
        return {
            "currentBalance": round_money(self.current_balance),
            "projectedBalance": round_money(self.projected_balance),
            "yearsToRetirement": self.years_to_retirement,
            "expectedReturn": self.expected_return,
            "annualContribution": self.annual_contribution,
            "retirementGoal": self.retirement_goal,
            "projectedGap": round_money(self.projected_gap),
            "onTrack": self.on_track,
        }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def _validate(starting_balance, annual_contribution, mean_return, stddev, years, path_count):
    check_non_negative("starting_balance", starting_balance)
    if not np.isfinite(annual_contribution):
        raise ValidationError(f"annual_contribution must be finite, got {annual_contribution}")
    if not np.isfinite(mean_return):
        raise ValidationError(f"mean_return must be finite, got {mean_return}")
    check_non_negative("stddev", stddev)
    check_non_negative_int("years", years)
    check_positive_int("path_count", path_count)


def _advance(balances: np.ndarray, contribution: float, mean_return: float,
             stddev: float, rng: np.random.Generator) -> None:
    """One simulated year, in place: b ← b·(1 + r) + contribution."""
    returns = fill_normal(balances.size, mean_return, stddev, rng=rng)
    balances *= 1.0 + returns
    balances += contribution


def simulate(
    starting_balance: float,
    annual_contribution: float,
    mean_return: float,
    stddev: float,
    years: int,
    path_count: int = DEFAULT_PATH_COUNT,
    *,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> np.ndarray:
    """
    Simulate ``path_count`` balance paths and return final balances.

    Parameters
    ----------
    starting_balance : float
        Balance of every path at year 0.
    annual_contribution : float
        Amount added to every path at the end of each year.
    mean_return, stddev : float
        Parameters of the normal annual return (stddev >= 0).
    years : int
        Number of simulated years (>= 0).
    path_count : int
        Number of independent paths (>= 1).
    rng, seed
        Random source; see ``utils.make_rng``.

    Returns
    -------
    np.ndarray, shape (path_count,)
        Final balances sorted ascending.

    Raises
    ------
    ValidationError
        If path_count <= 0, years < 0 or stddev < 0.
    """
    _validate(starting_balance, annual_contribution, mean_return, stddev, years, path_count)
    gen = make_rng(rng, seed)

    balances = np.full(path_count, float(starting_balance))
    for _ in range(years):
        _advance(balances, annual_contribution, mean_return, stddev, gen)

    balances.sort()
    logger.debug(
        "simulate: paths=%d years=%d median=%.2f", path_count, years,
        balances[path_count // 2],
    )
    return balances


def percentile(sorted_values, p: float) -> float:
    """Order-statistic percentile: ``sorted_values[floor(N · p)]``."""
    return order_statistic(ensure_1d(sorted_values, name="sorted_values"), p)


def simulate_with_yearly_percentiles(
    starting_balance: float,
    annual_contribution: float,
    mean_return: float,
    stddev: float,
    years: int,
    path_count: int = DEFAULT_PATH_COUNT,
    *,
    levels: Optional[Dict[str, float]] = None,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> PercentileBands:
    """
    Run the same update loop as :func:`simulate`, re-sorting after each
    year and recording the percentile bands.

    Year 0 of every band equals ``starting_balance``.
    """
    _validate(starting_balance, annual_contribution, mean_return, stddev, years, path_count)
    levels = dict(levels or PERCENTILE_LEVELS)
    gen = make_rng(rng, seed)

    bands = {name: np.empty(years + 1, dtype=float) for name in levels}
    for name in levels:
        bands[name][0] = starting_balance

    balances = np.full(path_count, float(starting_balance))
    for year in range(years):
        _advance(balances, annual_contribution, mean_return, stddev, gen)
        ordered = np.sort(balances)
        for name, p in levels.items():
            bands[name][year + 1] = order_statistic(ordered, p)

    return PercentileBands(bands=bands, years=years, path_count=path_count)


def summarize(
    final_balances,
    goal: float,
    *,
    levels: Optional[Dict[str, float]] = None,
) -> MonteCarloSummary:
    """
    Summarize final balances: order-statistic percentiles, probability of
    reaching ``goal`` (percent, 2 decimals) and the mean final value.
    """
    values = np.sort(ensure_1d(final_balances, name="final_balances"))
    n = values.size
    if n == 0:
        raise ValidationError("final_balances must not be empty")
    levels = levels or PERCENTILE_LEVELS
    above = int(np.count_nonzero(values >= goal))
    return MonteCarloSummary(
        path_count=n,
        percentiles={name: order_statistic(values, p) for name, p in levels.items()},
        probability_of_goal=round(above / n * 100.0, 2),
        mean_final_value=float(values.mean()),
        goal=goal,
    )


def run_retirement_projection(
    profile: InvestorProfile,
    expected_return: float,
    volatility: float,
    years: Optional[int] = None,
    config: Optional[SimulationConfig] = None,
    *,
    goal: Optional[float] = None,
    rng: Optional[np.random.Generator] = None,
) -> MonteCarloSummary:
    """
    Monte Carlo projection seeded from an investor profile.

    Starting balance is the sum of all account balances, the contribution
    is 12 × the monthly contribution, and the goal defaults to the
    profile's retirement goal. ``years`` defaults to the years remaining
    until retirement.
    """
    config = config or SimulationConfig()
    years = profile.years_to_retirement if years is None else years
    goal = profile.retirement_goal if goal is None else goal
    seed = None if rng is not None else config.seed

    final = simulate(
        profile.total_balance,
        profile.annual_contribution,
        expected_return,
        volatility,
        years,
        config.path_count,
        rng=rng,
        seed=seed,
    )
    summary = summarize(final, goal, levels=config.percentile_levels)
    return MonteCarloSummary(
        path_count=summary.path_count,
        percentiles=summary.percentiles,
        probability_of_goal=summary.probability_of_goal,
        mean_final_value=summary.mean_final_value,
        goal=goal,
        years=years,
        starting_balance=profile.total_balance,
        annual_contribution=profile.annual_contribution,
    )


def project_balance(profile: InvestorProfile, expected_return: float = 0.07) -> DeterministicProjection:
    """Compound-growth projection of the profile's balances to retirement."""
    if expected_return <= -1.0:
        raise ValidationError(f"expected_return must be > -1, got {expected_return}")
    years = profile.years_to_retirement
    projected = future_value(
        profile.total_balance, profile.annual_contribution, expected_return, years
    )
    return DeterministicProjection(
        current_balance=profile.total_balance,
        projected_balance=projected,
        years_to_retirement=years,
        expected_return=expected_return,
        annual_contribution=profile.annual_contribution,
        retirement_goal=profile.retirement_goal,
    )
