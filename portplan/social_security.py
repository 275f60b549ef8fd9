"""
Social Security claiming-age optimizer for portplan.

Enumerates every pair of claiming ages for a primary earner and a spouse,
values each pair as the undiscounted sum of COLA-indexed annual benefits
up to the household's life expectancy, and ranks the pairs.

Benefit streams
---------------
For a claiming age c with reduction factor f(c) and monthly benefit M at
full retirement age (67):

    annual_y = 12 · M · f(c) · (1 + cola)^y,   y = 0 .. years_receiving − 1

The primary receives for ``life_expectancy − c_p`` years and the spouse for
``life_expectancy − c_s + (primary_age − spouse_age)`` years, i.e. the
spouse is assumed to live to the same calendar year as the primary.
Combinations where either span is non-positive are skipped.

Example
-------
>>> analysis = optimize_claiming_for_profile(profile)
>>> best = analysis.strategies[0]
>>> best.primary_claiming_age, best.spouse_claiming_age
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .constants import CLAIMING_AGES, DEFAULT_COLA, MONTHS_PER_YEAR, SS_REDUCTION_FACTORS
from .exceptions import ValidationError
from .models import InvestorProfile
from .types import ClaimingStrategyDict
from .utils import check_non_negative, check_positive_int, round_money

__all__ = [
    "ClaimingStrategy",
    "ClaimingAnalysis",
    "lifetime_benefits",
    "optimize_claiming",
    "optimize_claiming_for_profile",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimingStrategy:
    """A pair of claiming ages and the household's lifetime benefits."""
    primary_claiming_age: int
    spouse_claiming_age: int
    total_lifetime_benefits: float

    def to_dict(self) -> ClaimingStrategyDict:
        return {
            "primaryClaimingAge": self.primary_claiming_age,
            "spouseClaimingAge": self.spouse_claiming_age,
            "totalLifetimeBenefits": round_money(self.total_lifetime_benefits),
        }


@dataclass(frozen=True)
class ClaimingAnalysis:
    """Top claiming strategies, best first."""
    strategies: List[ClaimingStrategy]
    life_expectancy: int
    cola: float

    @property
    def best(self) -> Optional[ClaimingStrategy]:
        return self.strategies[0] if self.strategies else None

    def to_dict(self) -> Dict[str, object]:
        return {
            "analysis": (
                f"Top {len(self.strategies)} Social Security claiming strategies "
                "ranked by total lifetime benefits"
            ),
            "lifeExpectancy": self.life_expectancy,
            "colaAssumption": self.cola,
            "topStrategies": [s.to_dict() for s in self.strategies],
        }


def lifetime_benefits(monthly: float, years_receiving: int, cola: float) -> float:
    """Sum of ``years_receiving`` COLA-indexed annual payments."""
    if years_receiving <= 0:
        return 0.0
    growth = (1.0 + cola) ** np.arange(years_receiving)
    return float(np.sum(monthly * MONTHS_PER_YEAR * growth))


def optimize_claiming(
    primary_age: int,
    life_expectancy: int,
    spouse_age: int,
    primary_monthly_at_67: float,
    spouse_monthly_at_67: float = 0.0,
    *,
    reduction_factors: Mapping[int, float] = SS_REDUCTION_FACTORS,
    cola: float = DEFAULT_COLA,
    claiming_ages: Sequence[int] = CLAIMING_AGES,
    top_n: int = 3,
) -> ClaimingAnalysis:
    """
    Rank claiming-age pairs by total lifetime household benefits.

    Parameters
    ----------
    primary_age, spouse_age : int
        Current ages.
    life_expectancy : int
        Primary's life expectancy (age).
    primary_monthly_at_67, spouse_monthly_at_67 : float
        Estimated monthly benefits at full retirement age.
    reduction_factors : mapping
        Claiming age → multiplier on the age-67 benefit.
    cola : float
        Annual cost-of-living adjustment.
    claiming_ages : sequence of int
        Ages to consider for both earners.
    top_n : int
        Number of strategies to return.

    Returns
    -------
    ClaimingAnalysis
        Strategies sorted by benefits descending; ties keep enumeration
        order (primary age, then spouse age, ascending).
    """
    check_non_negative("primary_monthly_at_67", primary_monthly_at_67)
    check_non_negative("spouse_monthly_at_67", spouse_monthly_at_67)
    check_positive_int("top_n", top_n)
    if cola <= -1.0:
        raise ValidationError(f"cola must be > -1, got {cola}")
    missing = [age for age in claiming_ages if age not in reduction_factors]
    if missing:
        raise ValidationError(f"No reduction factor for claiming ages {missing}")

    age_gap = primary_age - spouse_age
    results = []
    for p_claim in claiming_ages:
        for s_claim in claiming_ages:
            p_years = life_expectancy - p_claim
            s_years = life_expectancy - s_claim + age_gap
            if p_years <= 0 or s_years <= 0:
                continue
            total = (
                lifetime_benefits(primary_monthly_at_67 * reduction_factors[p_claim], p_years, cola)
                + lifetime_benefits(spouse_monthly_at_67 * reduction_factors[s_claim], s_years, cola)
            )
            results.append(ClaimingStrategy(p_claim, s_claim, total))

    # sorted() is stable, so ties keep enumeration order.
    ranked = sorted(results, key=lambda s: s.total_lifetime_benefits, reverse=True)
    logger.debug("optimize_claiming: %d combinations evaluated", len(results))
    return ClaimingAnalysis(
        strategies=ranked[:top_n],
        life_expectancy=life_expectancy,
        cola=cola,
    )


def optimize_claiming_for_profile(
    profile: InvestorProfile,
    *,
    reduction_factors: Mapping[int, float] = SS_REDUCTION_FACTORS,
    cola: float = DEFAULT_COLA,
    top_n: int = 3,
) -> ClaimingAnalysis:
    """:func:`optimize_claiming` using the profile's ages and benefit estimates."""
    ss = profile.social_security
    if ss is None:
        raise ValidationError("profile has no social_security section")
    return optimize_claiming(
        profile.age,
        profile.life_expectancy,
        ss.spouse_age,
        ss.estimated_monthly_at_67,
        ss.spouse_estimated_monthly_at_67,
        reduction_factors=reduction_factors,
        cola=cola,
        top_n=top_n,
    )
