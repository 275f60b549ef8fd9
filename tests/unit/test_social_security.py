"""
Unit tests for social_security.py module.
"""

import dataclasses

import pytest

from portplan.exceptions import ValidationError
from portplan.social_security import (
    lifetime_benefits,
    optimize_claiming,
    optimize_claiming_for_profile,
)


class TestLifetimeBenefits:
    """Tests for lifetime_benefits()."""

    def test_cola_compounds(self):
        assert lifetime_benefits(1_000, 3, 0.10) == pytest.approx(12_000 * 3.31)

    def test_flat(self):
        assert lifetime_benefits(2_000, 10, 0.0) == 240_000

    def test_non_positive_span(self):
        assert lifetime_benefits(2_000, 0, 0.02) == 0.0
        assert lifetime_benefits(2_000, -3, 0.02) == 0.0


class TestOptimizeClaiming:
    """Tests for optimize_claiming()."""

    def test_long_life_favours_delay(self):
        analysis = optimize_claiming(60, 90, 60, 2_000, 0.0, cola=0.0)
        assert analysis.best.primary_claiming_age == 70
        assert analysis.best.total_lifetime_benefits == pytest.approx(2_000 * 12 * 1.24 * 20)

    def test_ties_keep_enumeration_order(self):
        """With no spousal benefit every spouse age ties; the earliest come first."""
        analysis = optimize_claiming(60, 90, 60, 2_000, 0.0, cola=0.0)
        assert [s.spouse_claiming_age for s in analysis.strategies] == [62, 63, 64]
        assert all(s.primary_claiming_age == 70 for s in analysis.strategies)

    def test_short_life_skips_late_ages(self):
        analysis = optimize_claiming(60, 65, 60, 2_000, 1_000, cola=0.0, top_n=20)
        assert len(analysis.strategies) == 9
        assert all(s.primary_claiming_age <= 64 for s in analysis.strategies)
        assert analysis.best.primary_claiming_age == 62

    def test_sorted_descending(self, profile):
        analysis = optimize_claiming_for_profile(profile, top_n=10)
        totals = [s.total_lifetime_benefits for s in analysis.strategies]
        assert totals == sorted(totals, reverse=True)
        assert len(totals) == 10

    def test_spouse_age_gap_extends_spouse_years(self):
        """A younger spouse collects for longer at the same claiming age."""
        same = optimize_claiming(60, 80, 60, 0.0, 1_000, cola=0.0, claiming_ages=[67],
                                 reduction_factors={67: 1.0})
        younger = optimize_claiming(60, 80, 55, 0.0, 1_000, cola=0.0, claiming_ages=[67],
                                    reduction_factors={67: 1.0})
        assert same.best.total_lifetime_benefits == 12_000 * 13
        assert younger.best.total_lifetime_benefits == 12_000 * 18

    def test_missing_reduction_factor(self):
        with pytest.raises(ValidationError, match="No reduction factor"):
            optimize_claiming(60, 90, 60, 2_000, claiming_ages=[61, 62])

    def test_invalid_cola(self):
        with pytest.raises(ValidationError, match="cola"):
            optimize_claiming(60, 90, 60, 2_000, cola=-1.0)

    def test_to_dict(self, profile):
        out = optimize_claiming_for_profile(profile).to_dict()
        assert out["lifeExpectancy"] == 90
        assert out["colaAssumption"] == 0.025
        assert len(out["topStrategies"]) == 3
        assert set(out["topStrategies"][0]) == {
            "primaryClaimingAge", "spouseClaimingAge", "totalLifetimeBenefits"
        }

    def test_profile_without_social_security(self, profile):
        bare = dataclasses.replace(profile, social_security=None)
        with pytest.raises(ValidationError, match="social_security"):
            optimize_claiming_for_profile(bare)
