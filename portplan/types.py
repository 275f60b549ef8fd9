"""
Type definitions for portplan.

Purpose
-------
TypedDict definitions for the JSON-ready dictionaries produced by the
``to_dict()`` methods of portplan results and for solver diagnostics.
They document the output contracts and enable IDE autocompletion.

Usage
-----
>>> from portplan.types import WithdrawalResultDict
>>> payload: WithdrawalResultDict = result.to_dict()
>>> payload["successRate"]
"""

from typing import Dict, Optional
from typing_extensions import TypedDict, NotRequired

__all__ = [
    "SolverDiagnosticsDict",
    "WithdrawalResultDict",
    "PortfolioStatsDict",
    "AllocationDict",
    "FrontierPointDict",
    "HarvestCandidateDict",
    "WashSaleWarningDict",
    "ClaimingStrategyDict",
]


class SolverDiagnosticsDict(TypedDict):
    """
    Diagnostics recorded for every cvxpy solve.

    Keys
    ----
    solver_status : str or None
        Raw cvxpy status; None when the solver raised.
    solver_time : float
        Wall-clock seconds spent in ``problem.solve``.
    solver_name : str
        Backend used.
    n_variables, n_constraints : int
        Problem size.
    max_violation : float, optional
        Largest constraint violation of the returned weights (allocation only).
    """
    solver_status: Optional[str]
    solver_time: float
    solver_name: str
    n_variables: int
    n_constraints: int
    max_violation: NotRequired[float]


class WithdrawalResultDict(TypedDict):
    """Serialized withdrawal simulation outcome (percent and dollars)."""
    successRate: float
    medianAnnualIncome: float
    medianRemainingBalance: float


class PortfolioStatsDict(TypedDict):
    """Serialized portfolio statistics; percentages with 2 decimals."""
    expectedReturnPct: float
    volatilityPct: float
    sharpeRatio: float
    sectorWeights: Dict[str, float]


class AllocationDict(TypedDict):
    """One allocation line of an optimized portfolio."""
    symbol: str
    sector: str
    weightPct: float


class FrontierPointDict(TypedDict):
    volatilityPct: float
    returnPct: float


class HarvestCandidateDict(TypedDict):
    """One lot selected for tax-loss harvesting (ISO purchase date)."""
    lotId: int
    symbol: str
    purchaseDate: str
    shares: float
    purchasePrice: float
    currentPrice: float
    loss: float
    taxSavings: float


class WashSaleWarningDict(TypedDict):
    lotId: int
    symbol: str
    warning: str


class ClaimingStrategyDict(TypedDict):
    primaryClaimingAge: int
    spouseClaimingAge: int
    totalLifetimeBenefits: float

