"""
Asset location module for portplan.

Purpose
-------
Recommends which account type (Taxable, Roth, Traditional) each holding
should live in to minimize tax drag, subject to the balance available in
each account, and estimates the tax drag of the current placement.

Scoring
-------
Per holding, in basis points (div = 10000·yield, growth =
10000·expected_return, penalty = bond_penalty_bps for bond holdings):

    Taxable      div + penalty
    Roth         max(0, div − growth)
    Traditional  max(0, growth − div − penalty)

The assignment is a one-hot boolean program:

    min_X   Σ_i Σ_a cost[i, a] · X[i, a]
    s.t.    Σ_a X[i, a] = 1                      ∀ i
            Σ_i value_i · X[i, a] ≤ balance_a    ∀ a

Scores only drive the optimizer. Reported tax figures are in dollars:
a placement costs value × dividend_yield × ordinary_rate when Taxable and
nothing otherwise.

Example
-------
>>> plan = optimize_location(holdings, assets, profile.balances)
>>> plan.to_frame()[["current_account", "recommended_account"]]
>>> plan.estimated_savings
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import warnings

import cvxpy as cp
import numpy as np
import pandas as pd

from .config import OptimizationConfig, TaxConfig
from .constants import SCORE_SCALE
from .models import AccountBalances, AccountType, Asset, Holding, market_data_by_symbol
from .optimization import ResultStatusMixin, SolveStatus, solve_problem
from .utils import round_money

__all__ = [
    "LocationRecommendation",
    "LocationPlan",
    "TaxDragEstimate",
    "location_costs",
    "optimize_location",
    "estimate_tax_drag",
]

logger = logging.getLogger(__name__)

ACCOUNT_ORDER: Tuple[AccountType, ...] = (
    AccountType.TAXABLE,
    AccountType.ROTH,
    AccountType.TRADITIONAL,
)

# Share of each drag component recoverable by moving assets to sheltered accounts.
DIVIDEND_SHELTER_FRACTION = 0.7
GROWTH_SHELTER_FRACTION = 0.5
BOND_SHELTER_FRACTION = 1.0

MarketData = Union[Mapping[str, Asset], Sequence[Asset]]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LocationRecommendation:
    """Current and recommended account for one holding, in dollars."""
    symbol: str
    name: str
    value: float
    current_account: AccountType
    recommended_account: AccountType
    annual_dividends: float
    tax_saved: float

    @property
    def changed(self) -> bool:
        return self.current_account is not self.recommended_account

    def to_dict(self) -> Dict[str, object]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "value": round_money(self.value),
            "currentAccount": self.current_account.value,
            "recommendedAccount": self.recommended_account.value,
            "changed": self.changed,
            "annualDividends": round_money(self.annual_dividends),
            "taxSaved": round_money(self.tax_saved),
        }


@dataclass(frozen=True)
class LocationPlan(ResultStatusMixin):
    """Outcome of :func:`optimize_location`."""
    status: SolveStatus
    recommendations: List[LocationRecommendation] = field(default_factory=list)
    current_tax_drag: float = 0.0
    optimized_tax_drag: float = 0.0
    message: str = ""
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @property
    def estimated_savings(self) -> float:
        return self.current_tax_drag - self.optimized_tax_drag

    @property
    def moves(self) -> List[LocationRecommendation]:
        return [r for r in self.recommendations if r.changed]

    def to_frame(self) -> pd.DataFrame:
        """One row per holding, in input order."""
        rows = [
            {
                "symbol": r.symbol,
                "value": r.value,
                "current_account": r.current_account.value,
                "recommended_account": r.recommended_account.value,
                "changed": r.changed,
                "annual_dividends": r.annual_dividends,
                "tax_saved": r.tax_saved,
            }
            for r in self.recommendations
        ]
        return pd.DataFrame(rows, columns=[
            "symbol", "value", "current_account", "recommended_account",
            "changed", "annual_dividends", "tax_saved",
        ])

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {
            "status": self.status.value,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "summary": {
                "currentAnnualTaxDrag": round_money(self.current_tax_drag),
                "optimizedAnnualTaxDrag": round_money(self.optimized_tax_drag),
                "estimatedAnnualSavings": round_money(self.estimated_savings),
            },
        }
        if self.message:
            out["message"] = self.message
        return out


@dataclass(frozen=True)
class TaxDragEstimate:
    """Annual tax drag of the current placement and what sheltering could save."""
    dividend_tax: float
    capital_gains_tax: float
    bond_interest_tax: float
    dividend_sheltering: float
    growth_in_roth: float
    bond_interest_sheltering: float

    @property
    def total_drag(self) -> float:
        return self.dividend_tax + self.capital_gains_tax + self.bond_interest_tax

    @property
    def total_savings(self) -> float:
        return self.dividend_sheltering + self.growth_in_roth + self.bond_interest_sheltering

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            "currentAnnualTaxDrag": {
                "dividendTax": round_money(self.dividend_tax),
                "capitalGainsTax": round_money(self.capital_gains_tax),
                "bondInterestTax": round_money(self.bond_interest_tax),
                "total": round_money(self.total_drag),
            },
            "potentialSavings": {
                "dividendSheltering": round_money(self.dividend_sheltering),
                "growthInRoth": round_money(self.growth_in_roth),
                "bondInterestSheltering": round_money(self.bond_interest_sheltering),
                "total": round_money(self.total_savings),
            },
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _index_market_data(market_data: MarketData) -> Mapping[str, Asset]:
    if isinstance(market_data, Mapping):
        return market_data
    return market_data_by_symbol(market_data)


def _holding_inputs(
    holdings: Sequence[Holding],
    market_data: Mapping[str, Asset],
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """(dividend_yield, expected_return, is_bond) per holding.

    Symbols missing from the market data score as zero-yield, zero-growth,
    non-bond holdings.
    """
    n = len(holdings)
    yields = np.zeros(n)
    growth = np.zeros(n)
    bonds = np.zeros(n, dtype=bool)
    missing = []
    for i, h in enumerate(holdings):
        asset = market_data.get(h.symbol)
        if asset is None:
            missing.append(h.symbol)
            continue
        yields[i] = asset.dividend_yield
        growth[i] = asset.expected_return
        bonds[i] = asset.is_bond
    if missing:
        warnings.warn(
            f"No market data for {', '.join(sorted(set(missing)))}; "
            "treating as zero-yield, zero-growth, non-bond.",
            UserWarning,
        )
    return yields, growth, bonds


def location_costs(
    dividend_yield: np.ndarray,
    expected_return: np.ndarray,
    is_bond: np.ndarray,
    bond_penalty_bps: float,
) -> np.ndarray:
    """Cost matrix of shape (n, 3), columns ordered Taxable, Roth, Traditional."""
    div = SCORE_SCALE * np.asarray(dividend_yield, dtype=float)
    growth = SCORE_SCALE * np.asarray(expected_return, dtype=float)
    penalty = np.where(is_bond, float(bond_penalty_bps), 0.0)
    return np.column_stack([
        div + penalty,
        np.maximum(0.0, div - growth),
        np.maximum(0.0, growth - div - penalty),
    ])


def _placement_tax(value: float, dividend_yield: float, account: AccountType, rate: float) -> float:
    if account is AccountType.TAXABLE:
        return value * dividend_yield * rate
    return 0.0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def optimize_location(
    holdings: Sequence[Holding],
    market_data: MarketData,
    balances: AccountBalances,
    config: Optional[OptimizationConfig] = None,
    *,
    tax: Optional[TaxConfig] = None,
) -> LocationPlan:
    """
    Assign every holding to one account type at minimum tax-drag score.

    Parameters
    ----------
    holdings : sequence of Holding
        Positions with their current account.
    market_data : mapping or sequence of Asset
        Yield, expected return and sector per symbol.
    balances : AccountBalances
        Capacity of each account in dollars.
    config : OptimizationConfig, optional
        MIP solver and time limit.
    tax : TaxConfig, optional
        Ordinary rate and bond penalty.

    Returns
    -------
    LocationPlan
        OPTIMAL with one recommendation per holding (input order),
        INFEASIBLE when the balances cannot hold the holdings, UNKNOWN when
        the solver gave up.
    """
    config = config or OptimizationConfig()
    tax = tax or TaxConfig()
    market = _index_market_data(market_data)

    if len(holdings) == 0:
        return LocationPlan(status=SolveStatus.OPTIMAL)

    values = np.array([h.value for h in holdings])
    yields, growth, bonds = _holding_inputs(holdings, market)
    costs = location_costs(yields, growth, bonds, tax.bond_penalty_bps)
    capacity = np.array([balances[a] for a in ACCOUNT_ORDER])

    n = len(holdings)
    X = cp.Variable((n, len(ACCOUNT_ORDER)), boolean=True, name="placement")
    constraints = [cp.sum(X, axis=1) == 1]
    for j in range(len(ACCOUNT_ORDER)):
        constraints.append(values @ X[:, j] <= capacity[j])
    problem = cp.Problem(cp.Minimize(cp.sum(cp.multiply(costs, X))), constraints)

    outcome = solve_problem(problem, config.mip_solver, config.time_limit, config.verbose)
    if outcome.status is not SolveStatus.OPTIMAL or X.value is None:
        if outcome.status is SolveStatus.INFEASIBLE:
            msg = (
                f"Holdings worth {values.sum():,.2f} cannot be placed within "
                f"account balances totalling {capacity.sum():,.2f}."
            )
        else:
            msg = f"Asset location did not complete ({outcome.diagnostics['solver_status']})."
        status = SolveStatus.UNKNOWN if outcome.status is SolveStatus.OPTIMAL else outcome.status
        return LocationPlan(status=status, message=msg, diagnostics=outcome.diagnostics)

    assignment = np.argmax(X.value, axis=1)

    recommendations = []
    current_drag = 0.0
    optimized_drag = 0.0
    for i, h in enumerate(holdings):
        recommended = ACCOUNT_ORDER[int(assignment[i])]
        current_tax = _placement_tax(values[i], yields[i], h.account_type, tax.ordinary_rate)
        optimized_tax = _placement_tax(values[i], yields[i], recommended, tax.ordinary_rate)
        current_drag += current_tax
        optimized_drag += optimized_tax
        recommendations.append(LocationRecommendation(
            symbol=h.symbol,
            name=h.name,
            value=float(values[i]),
            current_account=h.account_type,
            recommended_account=recommended,
            annual_dividends=float(values[i] * yields[i]),
            tax_saved=current_tax - optimized_tax,
        ))

    logger.debug(
        "optimize_location: %d holdings, %d moves, savings=%.2f",
        n, sum(r.changed for r in recommendations), current_drag - optimized_drag,
    )
    return LocationPlan(
        status=SolveStatus.OPTIMAL,
        recommendations=recommendations,
        current_tax_drag=current_drag,
        optimized_tax_drag=optimized_drag,
        diagnostics=outcome.diagnostics,
    )


def estimate_tax_drag(
    holdings: Sequence[Holding],
    market_data: MarketData,
    config: Optional[TaxConfig] = None,
) -> TaxDragEstimate:
    """
    Annual tax drag of holdings currently in Taxable accounts.

    - dividend tax: ordinary rate on taxable dividends
    - capital-gains drag: capital-gains rate on taxable expected growth
    - bond interest tax: ordinary rate on taxable bond yield

    Potential savings assume 70% of the dividend drag, 50% of the growth
    drag and all of the bond drag can be sheltered.
    """
    config = config or TaxConfig()
    market = _index_market_data(market_data)
    if len(holdings) == 0:
        return TaxDragEstimate(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    values = np.array([h.value for h in holdings])
    yields, growth, bonds = _holding_inputs(holdings, market)
    taxable = np.array([h.account_type is AccountType.TAXABLE for h in holdings], dtype=float)

    dividends = values * yields * taxable
    dividend_tax = float(dividends.sum()) * config.ordinary_rate
    gains_tax = float((values * growth * taxable).sum()) * config.capital_gains_rate
    bond_tax = float(dividends[bonds].sum()) * config.ordinary_rate

    return TaxDragEstimate(
        dividend_tax=dividend_tax,
        capital_gains_tax=gains_tax,
        bond_interest_tax=bond_tax,
        dividend_sheltering=dividend_tax * DIVIDEND_SHELTER_FRACTION,
        growth_in_roth=gains_tax * GROWTH_SHELTER_FRACTION,
        bond_interest_sheltering=bond_tax * BOND_SHELTER_FRACTION,
    )
