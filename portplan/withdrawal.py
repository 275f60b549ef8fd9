"""
Withdrawal (decumulation) simulation module for portplan.

Purpose
-------
Simulates retirement withdrawals across many market paths and reports how
often a withdrawal policy survives the horizon, the income it delivers and
what it leaves behind. Policies are injected callables, so the engine knows
nothing about the logic of the named strategies built on top of it.

Dynamics
--------
For each path and year t = 0..years-1:

    if B_t <= 0:                 path depleted, stops
    w_t = min(policy(B_t, t, B_0), B_t)
    income += w_t
    B_{t+1} = max(0, (B_t - w_t) · (1 + r_t)),   r_t ~ N(mean, stddev²)

A path succeeds iff it is never depleted and ends with B > 0.

Reported medians take the element at index ``path_count // 2`` of the
sorted array; the two middle elements of an even-length array are never
averaged.

Policy contract
---------------
``policy(current_balance, year_index, initial_balance) -> amount``, the
non-negative amount to withdraw from one path. Paths advance together, so
the engine first offers the policy the ndarray of live balances; a policy
written with NumPy operations (``np.minimum``, ``np.where``) answers for
every path at once. A policy written for a single float balance (plain
``if``/``min``) is detected and called once per live path instead.

Key components
--------------
- simulate_withdrawals: the engine
- fixed_real_policy / dynamic_percentage_policy / guardrails_policy:
  the three named strategies
- compare_withdrawal_strategies: runs all three under common assumptions

Example
-------
>>> policy = fixed_real_policy(inflation_rate=0.025)
>>> result = simulate_withdrawals(1_000_000, years=30, path_count=1_000,
...                               mean_return=0.07, stddev=0.12,
...                               withdrawal_policy=policy, seed=42)
>>> result.success_rate  # percent, one decimal
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Dict, List, Optional, Union
import warnings

import numpy as np

from .constants import (
    DEFAULT_RETIREMENT_YEARS,
    DEFAULT_WITHDRAWAL_MEAN_RETURN,
    DEFAULT_WITHDRAWAL_PATH_COUNT,
    DEFAULT_WITHDRAWAL_STDDEV,
)
from .exceptions import ValidationError
from .sampling import fill_normal
from .types import WithdrawalResultDict
from .utils import (
    check_non_negative,
    check_positive_int,
    make_rng,
    round_money,
)

__all__ = [
    "WithdrawalPolicy",
    "WithdrawalResult",
    "StrategyResult",
    "StrategyComparison",
    "simulate_withdrawals",
    "fixed_real_policy",
    "dynamic_percentage_policy",
    "guardrails_policy",
    "compare_withdrawal_strategies",
]

logger = logging.getLogger(__name__)

BalanceLike = Union[float, np.ndarray]
WithdrawalPolicy = Callable[[BalanceLike, int, float], BalanceLike]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WithdrawalResult:
    """
    Outcome of one withdrawal policy over all simulated paths.

    Attributes
    ----------
    success_rate : float
        Percentage of paths never depleted and ending above zero (1 decimal).
    median_annual_income : float
        Median total income per path divided by years (cents).
    median_remaining_balance : float
        Median final balance (cents).
    """
    success_rate: float
    median_annual_income: float
    median_remaining_balance: float

    def to_dict(self) -> WithdrawalResultDict:
        return {
            "successRate": self.success_rate,
            "medianAnnualIncome": self.median_annual_income,
            "medianRemainingBalance": self.median_remaining_balance,
        }


@dataclass(frozen=True)
class StrategyResult:
    """A named strategy with its simulated outcome."""
    name: str
    result: WithdrawalResult
    covers_expenses: Optional[bool] = None

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {"name": self.name, **self.result.to_dict()}
        if self.covers_expenses is not None:
            out["coversExpenses"] = self.covers_expenses
        return out


@dataclass(frozen=True)
class StrategyComparison:
    """Side-by-side results for the named withdrawal strategies."""
    strategies: List[StrategyResult]
    retirement_years: int
    starting_balance: float

    def __getitem__(self, name: str) -> WithdrawalResult:
        for s in self.strategies:
            if s.name == name:
                return s.result
        raise KeyError(name)

    def to_dict(self) -> Dict[str, object]:
        return {
            "strategies": [s.to_dict() for s in self.strategies],
            "retirementYears": self.retirement_years,
            "startingBalance": round_money(self.starting_balance),
        }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def simulate_withdrawals(
    start_balance: float,
    years: int,
    path_count: int,
    mean_return: float,
    stddev: float,
    withdrawal_policy: WithdrawalPolicy,
    *,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> WithdrawalResult:
    """
    Simulate ``path_count`` retirement paths under ``withdrawal_policy``.

    Parameters
    ----------
    start_balance : float
        Portfolio balance at the start of retirement (>= 0).
    years : int
        Length of the withdrawal horizon (>= 1).
    path_count : int
        Number of simulated paths (>= 1).
    mean_return, stddev : float
        Parameters of the normal annual market return (stddev >= 0).
    withdrawal_policy : callable
        ``(current_balance, year_index, initial_balance) -> amount``.
    rng, seed
        Random source; see ``utils.make_rng``.

    Returns
    -------
    WithdrawalResult

    Raises
    ------
    ValidationError
        On non-positive years/path_count, negative stddev or balance, a
        non-callable policy, or a policy returning a negative or
        non-finite amount.
    """
    check_non_negative("start_balance", start_balance)
    check_positive_int("years", years)
    check_positive_int("path_count", path_count)
    check_non_negative("stddev", stddev)
    if not callable(withdrawal_policy):
        raise ValidationError("withdrawal_policy must be callable")
    gen = make_rng(rng, seed)

    balances = np.full(path_count, float(start_balance))
    income = np.zeros(path_count)
    depleted = np.zeros(path_count, dtype=bool)
    per_path = False

    for year in range(years):
        depleted |= balances <= 0
        live = ~depleted
        n_live = int(np.count_nonzero(live))
        if n_live == 0:
            break

        current = balances[live]
        if not per_path:
            try:
                requested = np.broadcast_to(
                    np.asarray(withdrawal_policy(current, year, start_balance), dtype=float),
                    current.shape,
                )
            except (TypeError, ValueError):
                logger.debug("withdrawal_policy is not array-aware; calling it per path")
                per_path = True
        if per_path:
            requested = np.array(
                [withdrawal_policy(float(b), year, start_balance) for b in current],
                dtype=float,
            )
        if not np.isfinite(requested).all():
            raise ValidationError(
                f"withdrawal_policy returned non-finite amounts in year {year}"
            )
        if (requested < 0).any():
            raise ValidationError(
                f"withdrawal_policy returned a negative amount in year {year}"
            )
        withdrawal = np.minimum(requested, current)

        returns = fill_normal(n_live, mean_return, stddev, rng=gen)
        remaining = (current - withdrawal) * (1.0 + returns)

        income[live] += withdrawal
        balances[live] = np.maximum(remaining, 0.0)

    survived = int(np.count_nonzero(~depleted & (balances > 0)))
    mid = path_count // 2
    final_sorted = np.sort(balances)
    income_sorted = np.sort(income)

    result = WithdrawalResult(
        success_rate=round(survived / path_count * 100.0, 1),
        median_annual_income=round_money(income_sorted[mid] / years),
        median_remaining_balance=round_money(final_sorted[mid]),
    )
    logger.debug(
        "simulate_withdrawals: paths=%d years=%d success=%.1f%%",
        path_count, years, result.success_rate,
    )
    return result


# ---------------------------------------------------------------------------
# Named policies
# ---------------------------------------------------------------------------

def fixed_real_policy(inflation_rate: float, rate: float = 0.04) -> WithdrawalPolicy:
    """
    The "4% rule": withdraw ``rate`` of the initial balance in year 0 and
    grow that amount with inflation, capped at the current balance.
    """

    def policy(balance, year, initial_balance):
        amount = initial_balance * rate * (1.0 + inflation_rate) ** year
        return np.minimum(amount, balance)

    return policy


def dynamic_percentage_policy(
    reference_balance: float,
    high_rate: float = 0.05,
    low_rate: float = 0.04,
) -> WithdrawalPolicy:
    """Withdraw ``high_rate`` of the balance while above ``reference_balance``,
    otherwise ``low_rate``."""

    def policy(balance, year, initial_balance):
        rate = np.where(balance > reference_balance, high_rate, low_rate)
        return balance * rate

    return policy


def guardrails_policy(
    start_balance: float,
    inflation_rate: float,
    base_rate: float = 0.045,
    floor: float = 0.7,
    ceiling: float = 1.5,
    cut: float = 0.90,
    raise_: float = 1.05,
) -> WithdrawalPolicy:
    """
    Floor/ceiling guardrails.

    The base withdrawal is ``base_rate`` × ``start_balance`` grown with
    inflation. It is cut by ``cut`` when the balance falls below
    ``floor`` × initial and raised by ``raise_`` when it exceeds
    ``ceiling`` × initial; the result is capped at the balance.
    """
    base = start_balance * base_rate

    def policy(balance, year, initial_balance):
        w = base * (1.0 + inflation_rate) ** year
        lower = initial_balance * floor
        upper = initial_balance * ceiling
        w = np.where(balance < lower, w * cut, np.where(balance > upper, w * raise_, w))
        return np.minimum(w, balance)

    return policy


def compare_withdrawal_strategies(
    retirement_balance: float,
    inflation_rate: float,
    annual_expenses: Optional[float] = None,
    *,
    years: int = DEFAULT_RETIREMENT_YEARS,
    path_count: int = DEFAULT_WITHDRAWAL_PATH_COUNT,
    mean_return: float = DEFAULT_WITHDRAWAL_MEAN_RETURN,
    stddev: float = DEFAULT_WITHDRAWAL_STDDEV,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> StrategyComparison:
    """
    Compare the 4% rule, dynamic percentage and guardrails strategies.

    All three strategies share one generator, drawing in the listed order.
    When ``annual_expenses`` is given each result is flagged with whether
    its median annual income covers those expenses.
    """
    if inflation_rate <= -1.0:
        raise ValidationError(f"inflation_rate must be > -1, got {inflation_rate}")
    if annual_expenses is not None:
        check_non_negative("annual_expenses", annual_expenses)
        if retirement_balance > 0 and annual_expenses / retirement_balance > 0.10:
            warnings.warn(
                f"annual_expenses {annual_expenses:,.0f} exceed 10% of the retirement "
                f"balance {retirement_balance:,.0f}; every strategy will fall short.",
                UserWarning,
            )
    gen = make_rng(rng, seed)

    policies = {
        "4% Rule": fixed_real_policy(inflation_rate),
        "Dynamic Percentage": dynamic_percentage_policy(retirement_balance),
        "Guardrails": guardrails_policy(retirement_balance, inflation_rate),
    }

    strategies = []
    for name, policy in policies.items():
        result = simulate_withdrawals(
            retirement_balance, years, path_count, mean_return, stddev, policy, rng=gen
        )
        covers = None
        if annual_expenses is not None:
            covers = result.median_annual_income >= annual_expenses
        strategies.append(StrategyResult(name=name, result=result, covers_expenses=covers))

    return StrategyComparison(
        strategies=strategies,
        retirement_years=years,
        starting_balance=retirement_balance,
    )
