"""
Domain records for portplan.

Purpose
-------
Immutable, eagerly validated records for the portfolio snapshot a caller
supplies: market assumptions (Asset), positions (Holding), purchase lots
(TaxLot) and the investor profile with its risk caps and account balances.

Every record is a frozen dataclass validated in ``__post_init__``; bad
values raise ValidationError before any computation starts. Records are
built fresh per call (see ``portplan.serialization`` for dict input) and
never mutated by the engines.

Example
-------
>>> from datetime import date
>>> from portplan.models import Asset, TaxLot, AccountType
>>> bnd = Asset("BND", expected_return=0.04, volatility=0.05,
...             dividend_yield=0.03, sector="Bonds")
>>> bnd.is_bond
True
>>> lot = TaxLot(1, "VTI", date(2024, 3, 1), shares=10,
...              purchase_price=250.0, current_price=230.0,
...              account_type=AccountType.TAXABLE)
>>> lot.is_loss_eligible, lot.unrealized_loss
(True, 200.0)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Iterable, Optional, Sequence, Union

from .constants import BOND_SECTOR, MONTHS_PER_YEAR
from .exceptions import ValidationError
from .utils import check_finite, check_fraction, check_non_negative, check_positive

__all__ = [
    "AccountType",
    "Asset",
    "Holding",
    "TaxLot",
    "RiskConstraints",
    "AccountBalances",
    "SocialSecurityProfile",
    "InvestorProfile",
    "market_data_by_symbol",
]


class AccountType(str, Enum):
    """Tax treatment of the account holding a position."""

    TAXABLE = "Taxable"
    ROTH = "Roth"
    TRADITIONAL = "Traditional"

    @classmethod
    def parse(cls, value: Union[str, "AccountType"]) -> "AccountType":
        """Case-insensitive lookup; raises ValidationError on unknown labels."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        raise ValidationError(
            f"Unknown account type {value!r}. "
            f"Valid options: {', '.join(m.value for m in cls)}"
        )


# ---------------------------------------------------------------------------
# Market data
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Asset:
    """
    Market assumptions for one asset.

    Parameters
    ----------
    symbol : str
        Unique ticker.
    expected_return : float
        Expected annual return (e.g. 0.08 for 8%).
    volatility : float
        Annual volatility, non-negative.
    dividend_yield : float
        Annual dividend (or interest) yield, non-negative.
    sector : str
        Sector label; "Bonds" marks bond assets.
    """
    symbol: str
    expected_return: float
    volatility: float
    dividend_yield: float = 0.0
    sector: str = "Unclassified"

    def __post_init__(self):
        if not self.symbol:
            raise ValidationError("symbol must be a non-empty string")
        check_finite("expected_return", self.expected_return)
        check_non_negative(f"volatility of {self.symbol}", self.volatility)
        check_non_negative(f"dividend_yield of {self.symbol}", self.dividend_yield)

    @property
    def is_bond(self) -> bool:
        return self.sector == BOND_SECTOR


def market_data_by_symbol(assets: Iterable[Asset]) -> Dict[str, Asset]:
    """Index assets by symbol, rejecting duplicates."""
    index: Dict[str, Asset] = {}
    for asset in assets:
        if asset.symbol in index:
            raise ValidationError(f"Duplicate asset symbol {asset.symbol!r}")
        index[asset.symbol] = asset
    return index


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Holding:
    """
    A position in one account.

    ``value`` is shares × current price and is never negative.
    """
    symbol: str
    shares: float
    purchase_price: float
    current_price: float
    account_type: AccountType
    name: str = ""
    sector: Optional[str] = None

    def __post_init__(self):
        if not self.symbol:
            raise ValidationError("symbol must be a non-empty string")
        check_positive(f"shares of {self.symbol}", self.shares)
        check_non_negative(f"purchase_price of {self.symbol}", self.purchase_price)
        check_non_negative(f"current_price of {self.symbol}", self.current_price)
        object.__setattr__(self, "account_type", AccountType.parse(self.account_type))

    @property
    def value(self) -> float:
        return self.shares * self.current_price


@dataclass(frozen=True)
class TaxLot:
    """
    One purchase of a symbol, tracked for tax purposes.

    A lot is loss-eligible when it sits in a Taxable account and trades
    below its purchase price.
    """
    lot_id: int
    symbol: str
    purchase_date: date
    shares: float
    purchase_price: float
    current_price: float
    account_type: AccountType

    def __post_init__(self):
        if not self.symbol:
            raise ValidationError("symbol must be a non-empty string")
        if not isinstance(self.purchase_date, date):
            raise ValidationError(
                f"purchase_date of lot {self.lot_id} must be a date, "
                f"got {type(self.purchase_date).__name__}"
            )
        check_positive(f"shares of lot {self.lot_id}", self.shares)
        check_non_negative(f"purchase_price of lot {self.lot_id}", self.purchase_price)
        check_non_negative(f"current_price of lot {self.lot_id}", self.current_price)
        object.__setattr__(self, "account_type", AccountType.parse(self.account_type))

    @property
    def is_loss_eligible(self) -> bool:
        return (
            self.account_type is AccountType.TAXABLE
            and self.current_price < self.purchase_price
        )

    @property
    def unrealized_loss(self) -> float:
        """(purchase − current) × shares; negative for lots with a gain."""
        return (self.purchase_price - self.current_price) * self.shares


# ---------------------------------------------------------------------------
# Investor profile
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RiskConstraints:
    """
    Allocation caps, all expressed as fractions of the portfolio.

    Parameters
    ----------
    max_volatility : float
        Default cap on the linear volatility proxy Σ w_i·vol_i.
    max_single_position : float
        Upper bound on any single weight.
    max_sector_weight : float
        Upper bound on the summed weight of any sector.
    min_bond_allocation : float
        Lower bound on the summed weight of bond-sector assets.
    """
    max_volatility: float
    max_single_position: float
    max_sector_weight: float
    min_bond_allocation: float = 0.0

    def __post_init__(self):
        check_fraction("max_volatility", self.max_volatility)
        check_fraction("max_single_position", self.max_single_position)
        check_fraction("max_sector_weight", self.max_sector_weight)
        check_fraction("min_bond_allocation", self.min_bond_allocation)


@dataclass(frozen=True)
class AccountBalances:
    """Available balance per account type."""
    taxable: float = 0.0
    roth: float = 0.0
    traditional: float = 0.0

    def __post_init__(self):
        check_non_negative("taxable balance", self.taxable)
        check_non_negative("roth balance", self.roth)
        check_non_negative("traditional balance", self.traditional)

    def __getitem__(self, account: Union[str, AccountType]) -> float:
        account = AccountType.parse(account)
        if account is AccountType.TAXABLE:
            return self.taxable
        if account is AccountType.ROTH:
            return self.roth
        return self.traditional

    @property
    def total(self) -> float:
        return self.taxable + self.roth + self.traditional


@dataclass(frozen=True)
class SocialSecurityProfile:
    """Estimated monthly benefits at full retirement age (67)."""
    spouse_age: int
    estimated_monthly_at_67: float
    spouse_estimated_monthly_at_67: float = 0.0

    def __post_init__(self):
        check_non_negative("estimated_monthly_at_67", self.estimated_monthly_at_67)
        check_non_negative("spouse_estimated_monthly_at_67", self.spouse_estimated_monthly_at_67)


@dataclass(frozen=True)
class InvestorProfile:
    """
    Investor snapshot consumed by the retirement and optimization tools.

    Examples
    --------
    >>> profile = InvestorProfile(
    ...     age=45, retirement_age=65, life_expectancy=90,
    ...     monthly_contribution=2_000,
    ...     balances=AccountBalances(300_000, 150_000, 250_000),
    ...     constraints=RiskConstraints(0.15, 0.10, 0.30, 0.20),
    ...     retirement_goal=2_000_000,
    ... )
    >>> profile.annual_contribution, profile.years_to_retirement
    (24000, 20)
    """
    age: int
    life_expectancy: int
    balances: AccountBalances
    constraints: RiskConstraints
    retirement_age: int = 65
    monthly_contribution: float = 0.0
    retirement_goal: float = 0.0
    social_security: Optional[SocialSecurityProfile] = None

    def __post_init__(self):
        check_non_negative("age", self.age)
        if self.life_expectancy < self.age:
            raise ValidationError(
                f"life_expectancy ({self.life_expectancy}) must be >= age ({self.age})"
            )
        check_non_negative("monthly_contribution", self.monthly_contribution)
        check_non_negative("retirement_goal", self.retirement_goal)

    @property
    def annual_contribution(self) -> float:
        return self.monthly_contribution * MONTHS_PER_YEAR

    @property
    def years_to_retirement(self) -> int:
        return max(0, self.retirement_age - self.age)

    @property
    def total_balance(self) -> float:
        return self.balances.total


def check_unique(values: Sequence, what: str) -> None:
    """Raise ValidationError listing the first duplicated key."""
    seen: set = set()
    for v in values:
        if v in seen:
            raise ValidationError(f"Duplicate {what} {v!r}")
        seen.add(v)
