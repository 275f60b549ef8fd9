"""
Allocation optimization module for portplan.

Purpose
-------
Solves the constrained asset-allocation problem as a linear program and
provides the shared cvxpy plumbing (status mapping, time limits,
diagnostics) used by every solver-backed component of the package.

Problem
-------
Given assets with expected returns r_i, volatilities σ_i and sectors:

    max_w   Σ_i w_i · r_i
    s.t.    Σ_i w_i = 1
            0 ≤ w_i ≤ max_single_position
            Σ_{i ∈ sector s} w_i ≤ max_sector_weight        ∀ s
            Σ_{i ∈ Bonds} w_i ≥ min_bond_allocation
            Σ_i w_i · σ_i ≤ max_volatility

The risk term is the linear proxy Σ w_i σ_i (an upper bound on true
portfolio volatility under any correlation structure), which keeps the
problem an LP. There is no covariance model.

Status semantics
----------------
Solver outcomes are reported as values, never as exceptions:

- ``SolveStatus.OPTIMAL``: weights are present and satisfy every
  constraint within ``OptimizationConfig.tolerance``.
- ``SolveStatus.INFEASIBLE``: no allocation satisfies the constraints;
  ``weights`` is None.
- ``SolveStatus.UNKNOWN``: the solver hit its time limit or failed.

``result.raise_for_status()`` converts the last two into
InfeasibleError / SolverTimeoutError for callers preferring exceptions.

Key components
--------------
- SolveStatus, solve_problem: shared cvxpy status handling
- AllocationResult / PortfolioStats / FrontierPoint: result containers
- optimize, frontier, stats: allocation API
- resolve_risk_level, risk_label: named risk levels ↔ volatility caps

Example
-------
>>> result = optimize(assets, profile.constraints, max_volatility=0.12)
>>> result.raise_for_status()
>>> result.to_frame()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import cvxpy as cp
import numpy as np
import pandas as pd

from .config import OptimizationConfig
from .constants import (
    BOND_SECTOR,
    FRONTIER_STEP,
    FRONTIER_VOL_RANGE,
    RISK_FREE_RATE,
    RISK_LEVEL_VOLATILITY,
)
from .exceptions import (
    ConfigurationError,
    InfeasibleError,
    SolverTimeoutError,
    ValidationError,
)
from .models import Asset, RiskConstraints, market_data_by_symbol
from .types import AllocationDict, FrontierPointDict, PortfolioStatsDict, SolverDiagnosticsDict
from .utils import ensure_1d, pct

__all__ = [
    "SolveStatus",
    "SolveOutcome",
    "solve_problem",
    "AllocationResult",
    "PortfolioStats",
    "FrontierPoint",
    "optimize",
    "frontier",
    "stats",
    "resolve_risk_level",
    "risk_label",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared solver plumbing
# ---------------------------------------------------------------------------

class SolveStatus(str, Enum):
    """Outcome of a solver-backed computation."""

    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    UNKNOWN = "unknown"
    NO_CANDIDATES = "no_candidates"


_OPTIMAL_STATUSES = (cp.OPTIMAL, cp.OPTIMAL_INACCURATE)
_INFEASIBLE_STATUSES = (cp.INFEASIBLE, cp.INFEASIBLE_INACCURATE)


def _solver_options(solver: str, time_limit: float, integer: bool = False) -> Dict[str, Any]:
    """
    Solver-specific keyword arguments carrying the time budget.

    Integer programs are solved to a zero relative gap so the reported
    selection is the exact optimum.
    """
    if solver == "CLARABEL":
        return {"time_limit": time_limit}
    if solver == "SCIPY":
        options: Dict[str, Any] = {"time_limit": time_limit}
        if integer:
            options["mip_rel_gap"] = 0.0
        return {"scipy_options": options}
    if solver == "HIGHS":
        if integer:
            return {"time_limit": time_limit, "mip_rel_gap": 0.0}
        return {"time_limit": time_limit}
    if solver == "SCS":
        return {"time_limit_secs": time_limit}
    if solver == "ECOS":
        # No wall-clock limit; bound iterations instead.
        return {"max_iters": 10_000}
    raise ConfigurationError(
        f"Unknown solver '{solver}'. Valid options: CLARABEL, SCIPY, ECOS, SCS, HIGHS"
    )


@dataclass(frozen=True)
class SolveOutcome:
    """Mapped status of one cvxpy solve plus diagnostics."""
    status: SolveStatus
    objective_value: Optional[float]
    diagnostics: SolverDiagnosticsDict


def solve_problem(
    problem: cp.Problem,
    solver: str,
    time_limit: float,
    verbose: bool = False,
) -> SolveOutcome:
    """
    Solve a cvxpy problem and map its status onto :class:`SolveStatus`.

    Parameters
    ----------
    problem : cp.Problem
        Problem to solve. Owned by the caller; solved in place.
    solver : str
        CVXPY solver name, e.g. "CLARABEL" or "SCIPY".
    time_limit : float
        Time budget in seconds forwarded to the solver.
    verbose : bool
        Forward solver progress output.

    Returns
    -------
    SolveOutcome
        OPTIMAL for optimal (or optimal-inaccurate) solutions, INFEASIBLE
        for (inaccurately) infeasible problems, UNKNOWN for anything else,
        including user limits and solver errors.
    """
    start_time = time.time()
    raw_status: Optional[str]
    try:
        problem.solve(
            solver=solver,
            verbose=verbose,
            **_solver_options(solver, time_limit, problem.is_mixed_integer()),
        )
        raw_status = problem.status
    except cp.SolverError as exc:
        logger.warning("Solver %s failed: %s", solver, exc)
        raw_status = None
    solve_time = time.time() - start_time

    if raw_status in _OPTIMAL_STATUSES:
        status = SolveStatus.OPTIMAL
    elif raw_status in _INFEASIBLE_STATUSES:
        status = SolveStatus.INFEASIBLE
    else:
        status = SolveStatus.UNKNOWN

    diagnostics: SolverDiagnosticsDict = {
        "solver_status": raw_status,
        "solver_time": solve_time,
        "solver_name": solver,
        "n_variables": sum(v.size for v in problem.variables()),
        "n_constraints": len(problem.constraints),
    }
    objective_value = problem.value if status is SolveStatus.OPTIMAL else None

    logger.debug(
        "solve_problem: solver=%s status=%s time=%.3fs vars=%d cons=%d",
        solver, raw_status, solve_time,
        diagnostics["n_variables"], diagnostics["n_constraints"],
    )
    if status is not SolveStatus.OPTIMAL:
        logger.info("Solver %s finished with status %s", solver, raw_status)

    return SolveOutcome(status=status, objective_value=objective_value, diagnostics=diagnostics)


class ResultStatusMixin:
    """``raise_for_status`` for result types carrying ``status``/``message``."""

    status: SolveStatus
    message: str

    @property
    def feasible(self) -> bool:
        return self.status is SolveStatus.OPTIMAL

    def raise_for_status(self) -> None:
        """
        Raise if the computation did not produce a usable answer.

        Raises
        ------
        InfeasibleError
            If ``status`` is INFEASIBLE.
        SolverTimeoutError
            If ``status`` is UNKNOWN.
        """
        if self.status is SolveStatus.INFEASIBLE:
            raise InfeasibleError(self.message or "Problem is infeasible")
        if self.status is SolveStatus.UNKNOWN:
            raise SolverTimeoutError(self.message or "Solver did not reach a conclusive status")


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PortfolioStats:
    """
    Return/risk statistics of a weight vector.

    Attributes
    ----------
    expected_return : float
        w · r (fraction).
    volatility : float
        Linear proxy w · σ (fraction).
    sharpe_ratio : float
        (return − rf) / volatility, or 0 when volatility is 0.
    sector_weights : dict
        Summed weight per sector.
    """
    expected_return: float
    volatility: float
    sharpe_ratio: float
    sector_weights: Dict[str, float]

    def to_dict(self) -> PortfolioStatsDict:
        return {
            "expectedReturnPct": pct(self.expected_return),
            "volatilityPct": pct(self.volatility),
            "sharpeRatio": round(self.sharpe_ratio, 3),
            "sectorWeights": {s: pct(w) for s, w in self.sector_weights.items()},
        }


@dataclass(frozen=True)
class AllocationResult(ResultStatusMixin):
    """
    Result of :func:`optimize`.

    ``weights`` is aligned with ``symbols`` and is None unless ``status``
    is OPTIMAL. Statistics are computed from the returned weights, so
    ``stats(assets, result.weights)`` reproduces them.
    """
    status: SolveStatus
    symbols: Tuple[str, ...]
    sectors: Tuple[str, ...]
    max_volatility: float
    weights: Optional[np.ndarray] = None
    portfolio: Optional[PortfolioStats] = None
    message: str = ""
    min_reported_weight: float = 0.001
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @property
    def expected_return(self) -> Optional[float]:
        return None if self.portfolio is None else self.portfolio.expected_return

    @property
    def volatility(self) -> Optional[float]:
        return None if self.portfolio is None else self.portfolio.volatility

    @property
    def risk_level(self) -> str:
        return risk_label(self.max_volatility)

    def allocations(self) -> List[Tuple[str, str, float]]:
        """(symbol, sector, weight) for weights >= ``min_reported_weight``."""
        if self.weights is None:
            return []
        return [
            (sym, sec, float(w))
            for sym, sec, w in zip(self.symbols, self.sectors, self.weights)
            if w >= self.min_reported_weight
        ]

    def to_frame(self) -> pd.DataFrame:
        """Weights per symbol with sector, empty when infeasible."""
        if self.weights is None:
            return pd.DataFrame(columns=["sector", "weight"])
        return pd.DataFrame(
            {"sector": list(self.sectors), "weight": self.weights},
            index=pd.Index(self.symbols, name="symbol"),
        )

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {
            "status": self.status.value,
            "riskLevel": self.risk_level,
            "maxVolatilityConstraint": round(self.max_volatility * 100, 1),
        }
        if self.status is not SolveStatus.OPTIMAL:
            out["error"] = self.message
            return out
        allocations: List[AllocationDict] = [
            {"symbol": sym, "sector": sec, "weightPct": pct(w)}
            for sym, sec, w in self.allocations()
        ]
        out["allocations"] = allocations
        stats_dict = self.portfolio.to_dict()
        out["expectedReturnPct"] = stats_dict["expectedReturnPct"]
        out["volatilityPct"] = stats_dict["volatilityPct"]
        out["sharpeRatio"] = stats_dict["sharpeRatio"]
        out["sectorBreakdown"] = stats_dict["sectorWeights"]
        return out

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            "AllocationResult(",
            f"  Status: {self.status.value}",
            f"  Risk level: {self.risk_level} (cap {self.max_volatility:.2%})",
        ]
        if self.portfolio is not None:
            lines.append(f"  Expected return: {self.portfolio.expected_return:.2%}")
            lines.append(f"  Volatility: {self.portfolio.volatility:.2%}")
            lines.append(f"  Sharpe: {self.portfolio.sharpe_ratio:.3f}")
            for sym, _, w in self.allocations():
                lines.append(f"    {sym:<8} {w:>7.2%}")
        elif self.message:
            lines.append(f"  {self.message}")
        if "solver_time" in self.diagnostics:
            lines.append(f"  Solve time: {self.diagnostics['solver_time']:.3f}s")
        lines.append(")")
        return "\n".join(lines)


@dataclass(frozen=True)
class FrontierPoint:
    """One feasible point of the efficient frontier, in percent."""
    volatility_pct: float
    return_pct: float

    def to_dict(self) -> FrontierPointDict:
        return {"volatilityPct": self.volatility_pct, "returnPct": self.return_pct}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _check_assets(assets: Sequence[Asset]) -> None:
    if len(assets) == 0:
        raise ValidationError("assets must not be empty")
    market_data_by_symbol(assets)


def _sector_masks(assets: Sequence[Asset]) -> Dict[str, np.ndarray]:
    """0/1 membership vector per sector, in order of first appearance."""
    masks: Dict[str, np.ndarray] = {}
    for i, asset in enumerate(assets):
        if asset.sector not in masks:
            masks[asset.sector] = np.zeros(len(assets))
        masks[asset.sector][i] = 1.0
    return masks


def _clean_weights(raw: np.ndarray) -> np.ndarray:
    """Clip solver noise below zero and renormalize onto the simplex."""
    w = np.maximum(np.asarray(raw, dtype=float), 0.0)
    total = w.sum()
    if total > 0:
        w /= total
    return w


def _max_violation(
    weights: np.ndarray,
    assets: Sequence[Asset],
    constraints: RiskConstraints,
    max_volatility: float,
) -> float:
    vols = np.array([a.volatility for a in assets])
    violations = [
        abs(weights.sum() - 1.0),
        max(0.0, weights.max() - constraints.max_single_position),
        max(0.0, float(vols @ weights) - max_volatility),
    ]
    for mask in _sector_masks(assets).values():
        violations.append(max(0.0, float(mask @ weights) - constraints.max_sector_weight))
    bond_mask = np.array([a.is_bond for a in assets], dtype=float)
    if bond_mask.any():
        violations.append(max(0.0, constraints.min_bond_allocation - float(bond_mask @ weights)))
    return max(violations)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def stats(
    assets: Sequence[Asset],
    weights=None,
    risk_free_rate: float = RISK_FREE_RATE,
) -> PortfolioStats:
    """
    Portfolio statistics for ``weights`` (equal weights when omitted).

    Raises
    ------
    ValidationError
        If the weight count differs from the asset count.
    """
    _check_assets(assets)
    n = len(assets)
    if weights is None:
        w = np.full(n, 1.0 / n)
    else:
        w = ensure_1d(weights, name="weights")
        if w.size != n:
            raise ValidationError(f"Expected {n} weights, got {w.size}")

    r = np.array([a.expected_return for a in assets])
    vols = np.array([a.volatility for a in assets])
    expected_return = float(w @ r)
    volatility = float(w @ vols)
    sharpe = (expected_return - risk_free_rate) / volatility if volatility > 0 else 0.0

    sector_weights: Dict[str, float] = {}
    for asset, wi in zip(assets, w):
        sector_weights[asset.sector] = sector_weights.get(asset.sector, 0.0) + float(wi)

    return PortfolioStats(
        expected_return=expected_return,
        volatility=volatility,
        sharpe_ratio=sharpe,
        sector_weights=sector_weights,
    )


def optimize(
    assets: Sequence[Asset],
    constraints: RiskConstraints,
    max_volatility: Optional[float] = None,
    config: Optional[OptimizationConfig] = None,
) -> AllocationResult:
    """
    Maximize expected return subject to the profile's caps.

    Parameters
    ----------
    assets : sequence of Asset
        Investable universe with unique symbols.
    constraints : RiskConstraints
        Position, sector and bond-floor limits.
    max_volatility : float, optional
        Cap on Σ w_i σ_i. Defaults to ``constraints.max_volatility``.
    config : OptimizationConfig, optional
        Solver settings.

    Returns
    -------
    AllocationResult
        Status OPTIMAL with weights, or INFEASIBLE / UNKNOWN without.
    """
    config = config or OptimizationConfig()
    _check_assets(assets)
    if max_volatility is None:
        max_volatility = constraints.max_volatility
    if not np.isfinite(max_volatility) or max_volatility < 0:
        raise ValidationError(f"max_volatility must be a non-negative number, got {max_volatility}")

    symbols = tuple(a.symbol for a in assets)
    sectors = tuple(a.sector for a in assets)
    base = dict(
        symbols=symbols,
        sectors=sectors,
        max_volatility=max_volatility,
        min_reported_weight=config.min_reported_weight,
    )

    bond_mask = np.array([a.is_bond for a in assets], dtype=float)
    if constraints.min_bond_allocation > 0 and not bond_mask.any():
        msg = (
            f"min_bond_allocation is {constraints.min_bond_allocation:.2%} "
            f"but no asset is in the '{BOND_SECTOR}' sector"
        )
        logger.info("optimize: %s", msg)
        return AllocationResult(status=SolveStatus.INFEASIBLE, message=msg, **base)

    n = len(assets)
    r = np.array([a.expected_return for a in assets])
    vols = np.array([a.volatility for a in assets])

    w = cp.Variable(n, nonneg=True, name="weights")
    cons = [
        cp.sum(w) == 1,
        w <= constraints.max_single_position,
        vols @ w <= max_volatility,
    ]
    for mask in _sector_masks(assets).values():
        cons.append(mask @ w <= constraints.max_sector_weight)
    if bond_mask.any():
        cons.append(bond_mask @ w >= constraints.min_bond_allocation)

    problem = cp.Problem(cp.Maximize(r @ w), cons)
    outcome = solve_problem(problem, config.solver, config.time_limit, config.verbose)

    if outcome.status is not SolveStatus.OPTIMAL or w.value is None:
        if outcome.status is SolveStatus.INFEASIBLE:
            msg = "No feasible allocation found for the given constraints."
        else:
            msg = f"Solver stopped without a conclusive answer ({outcome.diagnostics['solver_status']})."
        status = SolveStatus.UNKNOWN if outcome.status is SolveStatus.OPTIMAL else outcome.status
        return AllocationResult(status=status, message=msg, diagnostics=outcome.diagnostics, **base)

    weights = _clean_weights(w.value)
    violation = _max_violation(weights, assets, constraints, max_volatility)
    diagnostics = dict(outcome.diagnostics, max_violation=violation)
    if violation > config.tolerance:
        logger.warning(
            "optimize: solution violates constraints by %.2e (tolerance %.0e)",
            violation, config.tolerance,
        )

    return AllocationResult(
        status=SolveStatus.OPTIMAL,
        weights=weights,
        portfolio=stats(assets, weights, config.risk_free_rate),
        diagnostics=diagnostics,
        **base,
    )


def frontier(
    assets: Sequence[Asset],
    constraints: RiskConstraints,
    vol_range: Tuple[float, float] = FRONTIER_VOL_RANGE,
    step: float = FRONTIER_STEP,
    config: Optional[OptimizationConfig] = None,
) -> List[FrontierPoint]:
    """
    Sweep the volatility cap over ``vol_range`` (inclusive) and collect the
    feasible (volatility %, return %) points. Infeasible caps are skipped.
    """
    lo, hi = vol_range
    if step <= 0:
        raise ValidationError(f"step must be positive, got {step}")
    if hi < lo:
        raise ValidationError(f"vol_range must be increasing, got {vol_range}")

    n_steps = int(np.floor((hi - lo) / step + 1e-9)) + 1
    points = []
    for k in range(n_steps):
        cap = round(lo + k * step, 10)
        result = optimize(assets, constraints, cap, config)
        if result.status is not SolveStatus.OPTIMAL:
            continue
        points.append(FrontierPoint(
            volatility_pct=pct(result.volatility),
            return_pct=pct(result.expected_return),
        ))
    logger.debug("frontier: %d of %d caps feasible", len(points), n_steps)
    return points


def resolve_risk_level(
    label_or_cap: Union[str, float, None],
    constraints: RiskConstraints,
) -> float:
    """
    Map a risk label or numeric cap to a volatility cap.

    "conservative" → 0.10, "moderate" → the profile's max volatility,
    "aggressive" → 0.25; numbers and numeric strings are used as-is;
    anything else falls back to the profile's max volatility.
    """
    if label_or_cap is None:
        return constraints.max_volatility
    if isinstance(label_or_cap, (int, float)) and not isinstance(label_or_cap, bool):
        return float(label_or_cap)
    label = str(label_or_cap).strip().lower()
    if label == "moderate":
        return constraints.max_volatility
    if label in RISK_LEVEL_VOLATILITY:
        return RISK_LEVEL_VOLATILITY[label]
    try:
        return float(label)
    except ValueError:
        logger.debug("resolve_risk_level: unknown label %r, using profile cap", label_or_cap)
        return constraints.max_volatility


def risk_label(cap: float) -> str:
    """Label for a volatility cap: ≤0.10 conservative, ≤0.15 moderate."""
    if cap <= 0.10:
        return "conservative"
    if cap <= 0.15:
        return "moderate"
    return "aggressive"
