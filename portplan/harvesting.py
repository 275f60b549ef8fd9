"""
Tax-loss harvesting module for portplan.

Purpose
-------
Selects which losing tax lots to sell to realize capital losses while
respecting the wash-sale rule.

Rules
-----
- A lot is loss-eligible when it is held in a Taxable account and trades
  below its purchase price; its loss is (purchase − current) × shares.
- Wash sale: an eligible lot may not be sold when any *other* lot of the
  same symbol (any account, gain or loss) was purchased within
  ``wash_sale_window_days`` of the evaluation date, in either direction.
  Such lots are reported in ``excluded`` with a warning.

Selection
---------
Boolean program over the sellable lots:

    max_x   Σ_i loss_i · x_i
    s.t.    Σ_i loss_i · x_i ≥ target        (only when target > 0)
            x_i ∈ {0, 1}

Losses and the target enter the program in whole cents.

With no target the optimum sells every sellable lot, so that case skips
the solver. With a target that no subset reaches the plan is INFEASIBLE
and nothing is selected.

Example
-------
>>> plan = find_harvest_candidates(lots, target_amount=3_000,
...                                as_of=date(2025, 6, 1))
>>> plan.total_loss, [c.lot_id for c in plan.candidates]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
import logging
from typing import Any, Dict, List, Optional, Sequence

import cvxpy as cp
import numpy as np
import pandas as pd

from .config import OptimizationConfig, TaxConfig
from .exceptions import ValidationError
from .models import TaxLot, check_unique
from .types import HarvestCandidateDict, WashSaleWarningDict
from .optimization import SolveStatus, ResultStatusMixin, solve_problem
from .utils import round_money, to_cents

__all__ = [
    "HarvestCandidate",
    "WashSaleExclusion",
    "HarvestPlan",
    "find_harvest_candidates",
    "has_wash_sale_conflict",
]

logger = logging.getLogger(__name__)

REVIEW_NOTE = (
    "These are candidates for tax-loss harvesting. "
    "Please review before executing any trades."
)


@dataclass(frozen=True)
class HarvestCandidate:
    """A lot selected for sale."""
    lot_id: int
    symbol: str
    purchase_date: date
    shares: float
    purchase_price: float
    current_price: float
    loss: float
    tax_savings: float

    def to_dict(self) -> HarvestCandidateDict:
        return {
            "lotId": self.lot_id,
            "symbol": self.symbol,
            "purchaseDate": self.purchase_date.isoformat(),
            "shares": self.shares,
            "purchasePrice": self.purchase_price,
            "currentPrice": self.current_price,
            "loss": round_money(self.loss),
            "taxSavings": round_money(self.tax_savings),
        }


@dataclass(frozen=True)
class WashSaleExclusion:
    """An eligible lot held back because of a nearby purchase."""
    lot_id: int
    symbol: str
    warning: str

    def to_dict(self) -> WashSaleWarningDict:
        return {"lotId": self.lot_id, "symbol": self.symbol, "warning": self.warning}


@dataclass(frozen=True)
class HarvestPlan(ResultStatusMixin):
    """
    Outcome of :func:`find_harvest_candidates`.

    ``status`` is OPTIMAL when a selection was made (possibly empty when
    every eligible lot is excluded), INFEASIBLE when the target cannot be
    reached, UNKNOWN when the solver gave up and NO_CANDIDATES when no lot
    is loss-eligible at all.
    """
    status: SolveStatus
    candidates: List[HarvestCandidate] = field(default_factory=list)
    excluded: List[WashSaleExclusion] = field(default_factory=list)
    target_amount: float = 0.0
    as_of: Optional[date] = None
    message: str = ""
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_loss(self) -> float:
        return float(sum(c.loss for c in self.candidates))

    @property
    def estimated_tax_savings(self) -> float:
        return float(sum(c.tax_savings for c in self.candidates))

    @property
    def selected_lot_ids(self) -> List[int]:
        return [c.lot_id for c in self.candidates]

    def to_frame(self) -> pd.DataFrame:
        """Selected lots, one row per lot, indexed by lot id."""
        columns = ["symbol", "purchase_date", "shares", "purchase_price",
                   "current_price", "loss", "tax_savings"]
        rows = [
            {col: getattr(c, col) for col in columns} | {"lot_id": c.lot_id}
            for c in self.candidates
        ]
        return pd.DataFrame(rows, columns=["lot_id"] + columns).set_index("lot_id")

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {
            "status": self.status.value,
            "candidates": [c.to_dict() for c in self.candidates],
            "totalHarvestableLoss": round_money(self.total_loss),
            "estimatedTaxSavings": round_money(self.estimated_tax_savings),
            "washSaleWarnings": [e.to_dict() for e in self.excluded],
            "note": REVIEW_NOTE,
        }
        if self.message:
            out["message"] = self.message
        return out


def has_wash_sale_conflict(
    lot: TaxLot,
    lots: Sequence[TaxLot],
    as_of: date,
    window_days: int,
) -> bool:
    """True if another lot of the same symbol was bought within the window."""
    return any(
        other.symbol == lot.symbol
        and other.lot_id != lot.lot_id
        and abs((other.purchase_date - as_of).days) <= window_days
        for other in lots
    )


def find_harvest_candidates(
    lots: Sequence[TaxLot],
    target_amount: float = 0.0,
    as_of: Optional[date] = None,
    config: Optional[OptimizationConfig] = None,
    *,
    tax: Optional[TaxConfig] = None,
) -> HarvestPlan:
    """
    Choose the losing lots to sell.

    Parameters
    ----------
    lots : sequence of TaxLot
        All lots; every lot participates in the wash-sale check, only
        loss-eligible lots can be sold.
    target_amount : float
        Minimum loss to realize in dollars; ≤ 0 means "harvest everything
        sellable".
    as_of : date, optional
        Evaluation date for the wash-sale window. Defaults to today.
    config : OptimizationConfig, optional
        MIP solver and time limit.
    tax : TaxConfig, optional
        Ordinary tax rate for savings and the wash-sale window.

    Returns
    -------
    HarvestPlan
    """
    config = config or OptimizationConfig()
    tax = tax or TaxConfig()
    as_of = as_of or date.today()
    if not np.isfinite(target_amount):
        raise ValidationError(f"target_amount must be finite, got {target_amount}")
    check_unique([lot.lot_id for lot in lots], "lot id")

    eligible = [lot for lot in lots if lot.is_loss_eligible]
    if not eligible:
        logger.info("find_harvest_candidates: no loss-eligible lots among %d", len(lots))
        return HarvestPlan(
            status=SolveStatus.NO_CANDIDATES,
            target_amount=target_amount,
            as_of=as_of,
            message="No taxable lots with losses found.",
        )

    sellable: List[TaxLot] = []
    excluded: List[WashSaleExclusion] = []
    for lot in eligible:
        if has_wash_sale_conflict(lot, lots, as_of, tax.wash_sale_window_days):
            excluded.append(WashSaleExclusion(
                lot_id=lot.lot_id,
                symbol=lot.symbol,
                warning=(
                    f"Wash sale risk: another lot of {lot.symbol} was purchased "
                    f"within {tax.wash_sale_window_days} days of {as_of.isoformat()}"
                ),
            ))
        else:
            sellable.append(lot)

    base = dict(excluded=excluded, target_amount=target_amount, as_of=as_of)

    def plan_for(selected: Sequence[TaxLot], **extra) -> HarvestPlan:
        candidates = [
            HarvestCandidate(
                lot_id=lot.lot_id,
                symbol=lot.symbol,
                purchase_date=lot.purchase_date,
                shares=lot.shares,
                purchase_price=lot.purchase_price,
                current_price=lot.current_price,
                loss=lot.unrealized_loss,
                tax_savings=lot.unrealized_loss * tax.ordinary_rate,
            )
            for lot in selected
        ]
        return HarvestPlan(status=SolveStatus.OPTIMAL, candidates=candidates, **base, **extra)

    if target_amount <= 0:
        return plan_for(sellable)

    # Target accounting is done in whole cents.
    loss_cents = np.array([to_cents(lot.unrealized_loss) for lot in sellable])
    target_cents = to_cents(target_amount)
    if loss_cents.sum() < target_cents:
        # Even selling everything falls short; no solve needed.
        msg = (
            f"Target {target_amount:,.2f} exceeds the harvestable loss "
            f"{loss_cents.sum() / 100:,.2f} after wash-sale exclusions."
        )
        logger.info("find_harvest_candidates: %s", msg)
        return HarvestPlan(status=SolveStatus.INFEASIBLE, message=msg, **base)

    x = cp.Variable(len(sellable), boolean=True, name="sell")
    harvested = loss_cents @ x
    problem = cp.Problem(cp.Maximize(harvested), [harvested >= target_cents])
    outcome = solve_problem(problem, config.mip_solver, config.time_limit, config.verbose)

    if outcome.status is not SolveStatus.OPTIMAL or x.value is None:
        status = SolveStatus.UNKNOWN if outcome.status is SolveStatus.OPTIMAL else outcome.status
        msg = f"Lot selection did not complete ({outcome.diagnostics['solver_status']})."
        return HarvestPlan(status=status, message=msg, diagnostics=outcome.diagnostics, **base)

    chosen = [lot for lot, flag in zip(sellable, x.value) if flag > 0.5]
    return plan_for(chosen, diagnostics=outcome.diagnostics)
