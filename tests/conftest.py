"""
Pytest configuration and fixtures for the portplan test suite.

Fixtures describe one small but realistic household: a nine-asset market,
an investor profile, a handful of tax lots and current holdings.
"""

from datetime import date
from typing import List

import numpy as np
import pytest

from portplan.models import (
    AccountBalances,
    AccountType,
    Asset,
    Holding,
    InvestorProfile,
    RiskConstraints,
    SocialSecurityProfile,
    TaxLot,
)


# ---------------------------------------------------------------------------
# Randomness
# ---------------------------------------------------------------------------

@pytest.fixture
def seed() -> int:
    """Standard random seed for reproducibility."""
    return 42


@pytest.fixture
def rng(seed) -> np.random.Generator:
    return np.random.default_rng(seed)


# ---------------------------------------------------------------------------
# Market Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def assets() -> List[Asset]:
    """
    Nine assets over six sectors, two of them bonds.

    The bond sector can hold at most 40% under the standard constraints,
    which makes volatility caps below ~10.5% infeasible.
    """
    return [
        Asset("VGT", 0.12, 0.22, 0.007, "Technology"),
        Asset("XLK", 0.11, 0.20, 0.008, "Technology"),
        Asset("XLV", 0.08, 0.14, 0.015, "Healthcare"),
        Asset("XLF", 0.09, 0.18, 0.020, "Financials"),
        Asset("VXUS", 0.07, 0.16, 0.030, "International"),
        Asset("VNQ", 0.08, 0.19, 0.040, "Real Estate"),
        Asset("SCHD", 0.08, 0.13, 0.035, "Dividend"),
        Asset("BND", 0.04, 0.05, 0.035, "Bonds"),
        Asset("TIP", 0.035, 0.06, 0.030, "Bonds"),
    ]


@pytest.fixture
def constraints() -> RiskConstraints:
    """Moderate profile: 15% volatility, 25% per position, 40% per sector, 20% bonds."""
    return RiskConstraints(
        max_volatility=0.15,
        max_single_position=0.25,
        max_sector_weight=0.40,
        min_bond_allocation=0.20,
    )


# ---------------------------------------------------------------------------
# Profile Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def balances() -> AccountBalances:
    return AccountBalances(taxable=300_000, roth=150_000, traditional=250_000)


@pytest.fixture
def profile(balances, constraints) -> InvestorProfile:
    """
    45-year-old retiring at 65, saving 2,000/month toward a 2M goal.
    """
    return InvestorProfile(
        age=45,
        retirement_age=65,
        life_expectancy=90,
        monthly_contribution=2_000,
        balances=balances,
        constraints=constraints,
        retirement_goal=2_000_000,
        social_security=SocialSecurityProfile(
            spouse_age=43,
            estimated_monthly_at_67=2_800,
            spouse_estimated_monthly_at_67=1_900,
        ),
    )


@pytest.fixture
def profile_dict() -> dict:
    """The same profile in the investor_profile.json layout."""
    return {
        "name": "Test Household",
        "age": 45,
        "retirementAge": 65,
        "lifeExpectancy": 90,
        "monthlyContribution": 2000,
        "accounts": {
            "taxable": {"balance": 300000},
            "roth": {"balance": 150000},
            "traditional": {"balance": 250000},
        },
        "maxVolatility": 0.15,
        "maxSinglePosition": 0.25,
        "maxSectorWeight": 0.40,
        "minBondAllocation": 0.20,
        "goals": [{"name": "Retirement", "targetAmount": 2000000}],
        "socialSecurity": {
            "spouseAge": 43,
            "estimatedMonthlyAt67": 2800,
            "spouseEstimatedMonthlyAt67": 1900,
        },
    }


# ---------------------------------------------------------------------------
# Tax Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def as_of() -> date:
    """Evaluation date for wash-sale windows."""
    return date(2025, 6, 1)


@pytest.fixture
def lots() -> List[TaxLot]:
    """
    Seven lots evaluated on 2025-06-01.

    Loss-eligible: 1 (VTI, 200), 2 (VXUS, 700), 3 (BND, 650), 6 (VNQ, 390).
    Lot 1 is wash-sale excluded by lot 4 (VTI bought 12 days earlier).
    Lot 5 is a loss in a Roth account; lot 7 (VNQ) is 47 days old.
    """
    taxable = AccountType.TAXABLE
    return [
        TaxLot(1, "VTI", date(2023, 3, 15), 10, 250.0, 230.0, taxable),
        TaxLot(2, "VXUS", date(2022, 8, 1), 100, 62.0, 55.0, taxable),
        TaxLot(3, "BND", date(2021, 1, 10), 50, 85.0, 72.0, taxable),
        TaxLot(4, "VTI", date(2025, 5, 20), 5, 228.0, 230.0, taxable),
        TaxLot(5, "XLF", date(2022, 2, 1), 40, 38.0, 35.0, AccountType.ROTH),
        TaxLot(6, "VNQ", date(2022, 5, 1), 30, 95.0, 82.0, taxable),
        TaxLot(7, "VNQ", date(2025, 4, 15), 20, 80.0, 82.0, AccountType.TRADITIONAL),
    ]


@pytest.fixture
def holdings() -> List[Holding]:
    """Five positions worth 79,400 in total, 52,600 of it in Taxable."""
    return [
        Holding("VGT", 50, 400.0, 450.0, "Taxable", name="Vanguard IT"),
        Holding("BND", 300, 80.0, 72.0, "Taxable", name="Vanguard Total Bond"),
        Holding("VNQ", 100, 90.0, 85.0, "Taxable", name="Vanguard REIT"),
        Holding("SCHD", 200, 70.0, 78.0, "Roth", name="Schwab Dividend"),
        Holding("XLV", 80, 130.0, 140.0, "Traditional", name="Health Care SPDR"),
    ]
