"""
Unit tests for location.py module.

Tests placement scores, the account-assignment program under capacity
limits, and the standalone tax-drag estimate.
"""

import numpy as np
import pandas as pd
import pytest

from portplan.config import TaxConfig
from portplan.exceptions import InfeasibleError
from portplan.location import estimate_tax_drag, location_costs, optimize_location
from portplan.models import AccountBalances, AccountType, Asset, Holding
from portplan.optimization import SolveStatus


class TestLocationCosts:
    """Basis-point scores per account."""

    def test_equity(self):
        costs = location_costs([0.007], [0.12], [False], 500)
        np.testing.assert_allclose(costs, [[70.0, 0.0, 1_130.0]])

    def test_bond_penalty(self):
        costs = location_costs([0.035], [0.04], [True], 500)
        np.testing.assert_allclose(costs, [[850.0, 0.0, 0.0]])

    def test_income_asset_prefers_traditional(self):
        costs = location_costs([0.05], [0.0], [False], 500)
        np.testing.assert_allclose(costs, [[500.0, 500.0, 0.0]])

    def test_shape(self):
        assert location_costs(np.zeros(4), np.zeros(4), np.zeros(4, dtype=bool), 0).shape == (4, 3)


class TestOptimizeLocation:
    """Tests for optimize_location()."""

    def test_pure_income_asset_avoids_taxable(self):
        """Zero growth, 5% yield: Taxable is the worst score, Traditional the best."""
        market = [Asset("INC", expected_return=0.0, volatility=0.05,
                        dividend_yield=0.05, sector="Income")]
        holdings = [Holding("INC", 100, 10.0, 10.0, AccountType.TAXABLE)]
        plan = optimize_location(holdings, market, AccountBalances(5_000, 5_000, 5_000))

        assert plan.status is SolveStatus.OPTIMAL
        rec = plan.recommendations[0]
        assert rec.recommended_account is AccountType.TRADITIONAL
        assert rec.changed
        assert rec.tax_saved == pytest.approx(1_000 * 0.05 * 0.22)

    def test_ample_balances_shelter_everything(self, holdings, assets, balances):
        plan = optimize_location(holdings, assets, balances)

        assert plan.status is SolveStatus.OPTIMAL
        recommended = {r.symbol: r.recommended_account for r in plan.recommendations}
        assert AccountType.TAXABLE not in recommended.values()
        assert recommended["VGT"] is AccountType.ROTH
        assert recommended["VNQ"] is AccountType.ROTH
        assert recommended["BND"] in (AccountType.ROTH, AccountType.TRADITIONAL)
        assert plan.current_tax_drag == pytest.approx(275.77)
        assert plan.optimized_tax_drag == 0.0
        assert plan.estimated_savings == pytest.approx(275.77)

    def test_recommendations_keep_input_order(self, holdings, assets, balances):
        plan = optimize_location(holdings, assets, balances)
        assert [r.symbol for r in plan.recommendations] == [h.symbol for h in holdings]

    def test_moves(self, holdings, assets, balances):
        plan = optimize_location(holdings, assets, balances)
        moved = {r.symbol for r in plan.moves}
        assert {"VGT", "BND", "VNQ"} <= moved
        assert "SCHD" not in moved

    def test_capacity_forces_taxable(self, holdings, assets):
        plan = optimize_location(holdings, assets, AccountBalances(100_000, 0, 0))
        assert plan.status is SolveStatus.OPTIMAL
        assert all(r.recommended_account is AccountType.TAXABLE for r in plan.recommendations)

    def test_capacity_respected(self, holdings, assets):
        """Roth holds only 25,000, so not every holding fits there."""
        plan = optimize_location(holdings, assets, AccountBalances(100_000, 25_000, 0))
        roth_total = sum(r.value for r in plan.recommendations
                         if r.recommended_account is AccountType.ROTH)
        assert plan.status is SolveStatus.OPTIMAL
        assert roth_total <= 25_000

    def test_insufficient_balances_infeasible(self, holdings, assets):
        plan = optimize_location(holdings, assets, AccountBalances(20_000, 20_000, 10_000))

        assert plan.status is SolveStatus.INFEASIBLE
        assert plan.recommendations == []
        assert "cannot be placed" in plan.message
        with pytest.raises(InfeasibleError):
            plan.raise_for_status()

    def test_missing_market_data_warns(self, assets, balances):
        holdings = [Holding("ZZZ", 10, 10.0, 10.0, "Taxable")]
        with pytest.warns(UserWarning, match="No market data for ZZZ"):
            plan = optimize_location(holdings, assets, balances)
        assert plan.status is SolveStatus.OPTIMAL

    def test_mapping_market_data(self, holdings, assets, balances):
        by_symbol = {a.symbol: a for a in assets}
        a = optimize_location(holdings, by_symbol, balances)
        b = optimize_location(holdings, assets, balances)
        assert a.current_tax_drag == b.current_tax_drag

    def test_empty_holdings(self, assets, balances):
        plan = optimize_location([], assets, balances)
        assert plan.status is SolveStatus.OPTIMAL
        assert plan.recommendations == []
        assert plan.estimated_savings == 0.0

    def test_to_dict(self, holdings, assets, balances):
        out = optimize_location(holdings, assets, balances).to_dict()
        assert out["status"] == "optimal"
        assert len(out["recommendations"]) == 5
        assert out["summary"]["currentAnnualTaxDrag"] == 275.77
        assert out["summary"]["estimatedAnnualSavings"] == 275.77
        assert out["recommendations"][0]["currentAccount"] == "Taxable"

    def test_to_frame(self, holdings, assets, balances):
        df = optimize_location(holdings, assets, balances).to_frame()
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 5
        assert df["value"].sum() == pytest.approx(79_400.0)


class TestEstimateTaxDrag:
    """Tests for estimate_tax_drag()."""

    def test_components(self, holdings, assets):
        est = estimate_tax_drag(holdings, assets)

        # Taxable: VGT 22,500 / BND 21,600 / VNQ 8,500
        dividends = 22_500 * 0.007 + 21_600 * 0.035 + 8_500 * 0.04
        growth = 22_500 * 0.12 + 21_600 * 0.04 + 8_500 * 0.08
        assert est.dividend_tax == pytest.approx(dividends * 0.22)
        assert est.capital_gains_tax == pytest.approx(growth * 0.15)
        assert est.bond_interest_tax == pytest.approx(21_600 * 0.035 * 0.22)

    def test_savings_fractions(self, holdings, assets):
        est = estimate_tax_drag(holdings, assets)
        assert est.dividend_sheltering == pytest.approx(est.dividend_tax * 0.7)
        assert est.growth_in_roth == pytest.approx(est.capital_gains_tax * 0.5)
        assert est.bond_interest_sheltering == pytest.approx(est.bond_interest_tax)
        assert est.total_drag == pytest.approx(
            est.dividend_tax + est.capital_gains_tax + est.bond_interest_tax
        )

    def test_sheltered_holdings_have_no_drag(self, assets):
        holdings = [Holding("SCHD", 10, 70.0, 78.0, "Roth")]
        assert estimate_tax_drag(holdings, assets).total_drag == 0.0

    def test_custom_rates(self, holdings, assets):
        base = estimate_tax_drag(holdings, assets)
        higher = estimate_tax_drag(holdings, assets, TaxConfig(ordinary_rate=0.44))
        assert higher.dividend_tax == pytest.approx(2 * base.dividend_tax)

    def test_to_dict(self, holdings, assets):
        out = estimate_tax_drag(holdings, assets).to_dict()
        assert set(out) == {"currentAnnualTaxDrag", "potentialSavings"}
        assert out["currentAnnualTaxDrag"]["dividendTax"] == 275.77

    def test_empty(self, assets):
        assert estimate_tax_drag([], assets).total_savings == 0.0
