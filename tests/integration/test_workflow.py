"""
Integration test for the full portplan workflow.

Runs the pipeline an orchestration layer would: load a profile and market
data from plain dicts, allocate, project, compare withdrawal strategies,
harvest losses, place assets and pick claiming ages, then save every
result to disk.
"""

import json

import numpy as np
import pytest

import portplan
from portplan.config import SimulationConfig
from portplan.optimization import SolveStatus
from portplan.serialization import (
    assets_from_dict,
    load_result,
    profile_from_dict,
    result_to_dict,
    save_result,
)
from portplan.social_security import optimize_claiming_for_profile


@pytest.fixture
def market_dict(assets):
    return {"assets": {
        a.symbol: {
            "expectedReturn": a.expected_return,
            "volatility": a.volatility,
            "dividendYield": a.dividend_yield,
            "sector": a.sector,
        }
        for a in assets
    }}


@pytest.mark.integration
class TestFullWorkflow:
    """Integration tests for the complete planning workflow."""

    def test_end_to_end(self, profile_dict, market_dict, lots, holdings, as_of, tmp_path):
        # 1. Inputs
        profile = profile_from_dict(profile_dict)
        assets = assets_from_dict(market_dict)
        assert profile.total_balance == 700_000
        assert len(assets) == 9

        # 2. Allocation
        allocation = portplan.optimize(assets, profile.constraints)
        allocation.raise_for_status()
        assert allocation.volatility <= profile.constraints.max_volatility + 1e-6

        # 3. Accumulation projection at the allocation's return/risk
        projection = portplan.run_retirement_projection(
            profile,
            expected_return=allocation.expected_return,
            volatility=allocation.volatility,
            config=SimulationConfig(path_count=2_000, seed=42),
        )
        assert projection.years == 20
        assert projection.percentiles["p10"] <= projection.percentiles["p90"]

        # 4. Decumulation using the median projected balance
        comparison = portplan.compare_withdrawal_strategies(
            projection.percentiles["p50"], inflation_rate=0.025,
            path_count=500, seed=42,
        )
        assert len(comparison.strategies) == 3

        # 5. Tax tools
        harvest = portplan.find_harvest_candidates(lots, target_amount=1_000, as_of=as_of)
        assert harvest.status is SolveStatus.OPTIMAL
        location = portplan.optimize_location(holdings, assets, profile.balances)
        assert location.status is SolveStatus.OPTIMAL
        assert location.estimated_savings >= 0

        # 6. Social Security
        claiming = optimize_claiming_for_profile(profile)
        assert claiming.best is not None

        # 7. Persist
        outputs = {
            "allocation": allocation,
            "projection": projection,
            "withdrawal": comparison,
            "harvest": harvest,
            "location": location,
            "claiming": claiming,
        }
        for name, result in outputs.items():
            path = tmp_path / f"{name}.json"
            save_result(result, path)
            assert load_result(path) == json.loads(json.dumps(result_to_dict(result)))

    def test_frontier_brackets_allocation(self, assets, constraints):
        """The optimized allocation lies on the frontier traced by the sweep."""
        points = portplan.frontier(assets, constraints, vol_range=(0.10, 0.20), step=0.01)
        allocation = portplan.optimize(assets, constraints, max_volatility=0.15)

        at_cap = [p for p in points if np.isclose(p.volatility_pct, 15.0, atol=0.01)]
        assert at_cap
        assert at_cap[0].return_pct == pytest.approx(allocation.expected_return * 100, abs=0.01)

    def test_seeded_pipeline_reproducible(self, profile):
        config = SimulationConfig(path_count=500, seed=1)
        a = portplan.run_retirement_projection(profile, 0.07, 0.15, config=config)
        b = portplan.run_retirement_projection(profile, 0.07, 0.15, config=config)
        wa = portplan.compare_withdrawal_strategies(a.percentiles["p50"], 0.02,
                                                    path_count=200, seed=1)
        wb = portplan.compare_withdrawal_strategies(b.percentiles["p50"], 0.02,
                                                    path_count=200, seed=1)
        assert a == b
        assert wa == wb
