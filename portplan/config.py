"""
Configuration management module for portplan.

Purpose
-------
Centralized configuration using Pydantic models for type-safe parameter
management, validation, and serialization. Two families of models live here:

- Run configuration (SimulationConfig, OptimizationConfig, TaxConfig) with
  sensible defaults for every numeric knob of the engines.
- Input schemas (AssetConfig, HoldingConfig, TaxLotConfig,
  InvestorProfileConfig, ...) that validate the plain structured data an
  orchestration layer hands to the core. Field names accept both
  snake_case and the camelCase spelling used by portfolio JSON files.

Design Principles
-----------------
- Type-safe: Pydantic enforces types and validates ranges
- Immutable: Frozen models prevent accidental mutation
- Serializable: Easy conversion to/from JSON
- Environment-aware: AppSettings reads PORTPLAN_* variables and .env files

Example
-------
>>> from portplan.config import SimulationConfig, OptimizationConfig
>>> sim_config = SimulationConfig(path_count=5_000, seed=42)
>>> opt_config = OptimizationConfig(solver="SCIPY", time_limit=5.0)
>>>
>>> # Serialize to dict/JSON
>>> config_dict = sim_config.model_dump()
>>> json_str = opt_config.model_dump_json()
>>>
>>> # Load from dict/JSON
>>> loaded = SimulationConfig.model_validate(config_dict)
"""

from __future__ import annotations
from typing import Dict, Optional, Literal
import datetime
import logging

from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_PATH_COUNT,
    PERCENTILE_LEVELS,
    DEFAULT_SOLVER,
    DEFAULT_MIP_SOLVER,
    DEFAULT_TOLERANCE,
    DEFAULT_TIME_LIMIT,
    RISK_FREE_RATE,
    MIN_REPORTED_WEIGHT,
    ORDINARY_TAX_RATE,
    CAPITAL_GAINS_RATE,
    WASH_SALE_WINDOW_DAYS,
    BOND_PENALTY_BPS,
)

__all__ = [
    "SimulationConfig",
    "OptimizationConfig",
    "TaxConfig",
    "AssetConfig",
    "HoldingConfig",
    "TaxLotConfig",
    "RiskConstraintsConfig",
    "AccountBalancesConfig",
    "SocialSecurityConfig",
    "InvestorProfileConfig",
    "AppSettings",
    "configure_logging",
]

SolverName = Literal["CLARABEL", "SCIPY", "ECOS", "SCS", "HIGHS"]


# ---------------------------------------------------------------------------
# Simulation Configuration
# ---------------------------------------------------------------------------

class SimulationConfig(BaseModel):
    """
    Configuration for Monte Carlo simulation parameters.

    Attributes
    ----------
    path_count : int
        Number of simulated paths (1-1,000,000).
    seed : int, optional
        Random seed for reproducibility. If None, draws fresh entropy.
    percentile_levels : dict
        Band name → quantile level read from the sorted balances.

    Examples
    --------
    >>> config = SimulationConfig(path_count=2_000, seed=7)
    >>> config.path_count
    2000
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path_count: int = Field(
        default=DEFAULT_PATH_COUNT,
        ge=1,
        le=1_000_000,
        description="Number of Monte Carlo paths"
    )
    seed: Optional[int] = Field(
        default=None,
        description="Random seed for reproducibility"
    )
    percentile_levels: Dict[str, float] = Field(
        default_factory=lambda: dict(PERCENTILE_LEVELS),
        description="Percentile bands extracted each year"
    )

    @field_validator("percentile_levels")
    @classmethod
    def validate_levels(cls, v):
        """Ensure every level lies in [0, 1]."""
        for name, level in v.items():
            if not 0.0 <= level <= 1.0:
                raise ValueError(f"percentile level {name}={level} must be in [0, 1]")
        return v


# ---------------------------------------------------------------------------
# Optimization Configuration
# ---------------------------------------------------------------------------

class OptimizationConfig(BaseModel):
    """
    Configuration for the cvxpy-backed optimizers.

    Attributes
    ----------
    solver : str
        CVXPY backend for the allocation LP.
    mip_solver : str
        CVXPY backend for boolean problems (lot selection, asset location).
    tolerance : float
        Constraint tolerance when validating solver output (1e-9 to 1e-3).
    time_limit : float
        Solver time budget in seconds. Hitting it yields status UNKNOWN.
    risk_free_rate : float
        Rate used for Sharpe ratios.
    min_reported_weight : float
        Allocations below this weight are omitted from the allocation list.
    verbose : bool
        Forward solver progress output.

    Examples
    --------
    >>> config = OptimizationConfig(solver="SCIPY", time_limit=2.0)
    >>> config.mip_solver
    'SCIPY'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    solver: SolverName = Field(
        default=DEFAULT_SOLVER,
        description="CVXPY solver backend for the allocation LP"
    )
    mip_solver: SolverName = Field(
        default=DEFAULT_MIP_SOLVER,
        description="CVXPY solver backend for boolean problems"
    )
    tolerance: float = Field(
        default=DEFAULT_TOLERANCE,
        ge=1e-9,
        le=1e-3,
        description="Constraint violation tolerance"
    )
    time_limit: float = Field(
        default=DEFAULT_TIME_LIMIT,
        gt=0,
        le=3600,
        description="Solver time budget (seconds)"
    )
    risk_free_rate: float = Field(
        default=RISK_FREE_RATE,
        ge=-0.1,
        le=0.5,
        description="Risk-free rate for Sharpe ratios"
    )
    min_reported_weight: float = Field(
        default=MIN_REPORTED_WEIGHT,
        ge=0,
        lt=1,
        description="Smallest weight listed in allocation output"
    )
    verbose: bool = Field(
        default=False,
        description="Forward solver progress output"
    )

    @field_validator("mip_solver")
    @classmethod
    def validate_mip_solver(cls, v):
        """Only MILP-capable backends may solve boolean problems."""
        if v not in ("SCIPY", "HIGHS"):
            raise ValueError(f"mip_solver must be SCIPY or HIGHS, got {v}")
        return v


# ---------------------------------------------------------------------------
# Tax Configuration
# ---------------------------------------------------------------------------

class TaxConfig(BaseModel):
    """
    Tax assumptions for harvesting and asset-location analysis.

    Examples
    --------
    >>> TaxConfig(ordinary_rate=0.24).wash_sale_window_days
    30
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ordinary_rate: float = Field(
        default=ORDINARY_TAX_RATE,
        ge=0,
        lt=1,
        description="Ordinary income tax rate"
    )
    capital_gains_rate: float = Field(
        default=CAPITAL_GAINS_RATE,
        ge=0,
        lt=1,
        description="Long-term capital gains rate"
    )
    wash_sale_window_days: int = Field(
        default=WASH_SALE_WINDOW_DAYS,
        ge=0,
        le=365,
        description="Wash-sale look-around window (days)"
    )
    bond_penalty_bps: int = Field(
        default=BOND_PENALTY_BPS,
        ge=0,
        description="Asset-location penalty for bonds in Taxable (bps)"
    )


# ---------------------------------------------------------------------------
# Input Schemas
# ---------------------------------------------------------------------------

class _InputModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class AssetConfig(_InputModel):
    """Market assumptions for a single asset (one entry of market data)."""

    symbol: str = Field(min_length=1, max_length=20)
    expected_return: float = Field(alias="expectedReturn", ge=-1.0, le=5.0)
    volatility: float = Field(ge=0)
    dividend_yield: float = Field(default=0.0, alias="dividendYield", ge=0)
    sector: str = Field(min_length=1, max_length=50)


class HoldingConfig(_InputModel):
    """A position held in one account."""

    symbol: str = Field(min_length=1, max_length=20)
    shares: float = Field(gt=0)
    purchase_price: float = Field(alias="purchasePrice", ge=0)
    current_price: float = Field(alias="currentPrice", ge=0)
    account_type: str = Field(alias="accountType")
    name: str = Field(default="", max_length=200)
    sector: Optional[str] = Field(default=None, max_length=50)


class TaxLotConfig(_InputModel):
    """A single tax lot (one purchase of a symbol)."""

    lot_id: int = Field(alias="lotId")
    symbol: str = Field(min_length=1, max_length=20)
    purchase_date: datetime.date = Field(alias="purchaseDate")
    shares: float = Field(gt=0)
    purchase_price: float = Field(alias="purchasePrice", ge=0)
    current_price: float = Field(alias="currentPrice", ge=0)
    account_type: str = Field(alias="accountType")


class RiskConstraintsConfig(_InputModel):
    """Allocation caps from the investor profile."""

    max_volatility: float = Field(alias="maxVolatility", ge=0, le=1)
    max_single_position: float = Field(alias="maxSinglePosition", gt=0, le=1)
    max_sector_weight: float = Field(alias="maxSectorWeight", gt=0, le=1)
    min_bond_allocation: float = Field(default=0.0, alias="minBondAllocation", ge=0, le=1)


class AccountBalancesConfig(_InputModel):
    """Balances of the three account types."""

    taxable: float = Field(default=0.0, ge=0)
    roth: float = Field(default=0.0, ge=0)
    traditional: float = Field(default=0.0, ge=0)


class SocialSecurityConfig(_InputModel):
    """Social Security estimates for the primary earner and spouse."""

    spouse_age: int = Field(alias="spouseAge", ge=18, le=120)
    estimated_monthly_at_67: float = Field(alias="estimatedMonthlyAt67", ge=0)
    spouse_estimated_monthly_at_67: float = Field(
        default=0.0, alias="spouseEstimatedMonthlyAt67", ge=0
    )


class InvestorProfileConfig(_InputModel):
    """
    Validated investor profile.

    Accepts the nested shape of ``investor_profile.json`` where account
    balances may be given either flat (``{"taxable": 1000}``) or nested
    (``{"taxable": {"balance": 1000}}``). Unknown top-level keys (names,
    notes) are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    age: int = Field(ge=0, le=120)
    retirement_age: int = Field(default=65, alias="retirementAge", ge=0, le=120)
    life_expectancy: int = Field(default=90, alias="lifeExpectancy", ge=0, le=130)
    monthly_contribution: float = Field(default=0.0, alias="monthlyContribution", ge=0)
    accounts: AccountBalancesConfig = Field(default_factory=AccountBalancesConfig)
    constraints: RiskConstraintsConfig
    retirement_goal: float = Field(default=0.0, alias="retirementGoal", ge=0)
    social_security: Optional[SocialSecurityConfig] = Field(
        default=None, alias="socialSecurity"
    )

    @model_validator(mode="before")
    @classmethod
    def normalize_layout(cls, data):
        """Flatten nested balances and lift top-level risk caps."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        accounts = data.get("accounts")
        if isinstance(accounts, dict):
            data["accounts"] = {
                k: (v.get("balance", 0.0) if isinstance(v, dict) else v)
                for k, v in accounts.items()
            }

        if "constraints" not in data:
            keys = (
                "maxVolatility", "maxSinglePosition", "maxSectorWeight", "minBondAllocation",
                "max_volatility", "max_single_position", "max_sector_weight",
                "min_bond_allocation",
            )
            lifted = {k: data.pop(k) for k in keys if k in data}
            if lifted:
                data["constraints"] = lifted

        goals = data.pop("goals", None)
        if goals and "retirementGoal" not in data and "retirement_goal" not in data:
            first = goals[0]
            data["retirementGoal"] = first.get("targetAmount", first.get("target_amount", 0.0))
        return data

    @model_validator(mode="after")
    def validate_ages(self):
        """Ensure life expectancy is not before the current age."""
        if self.life_expectancy < self.age:
            raise ValueError(
                f"life_expectancy ({self.life_expectancy}) must be >= age ({self.age})"
            )
        return self


# ---------------------------------------------------------------------------
# Application Settings (Environment Variables)
# ---------------------------------------------------------------------------

class AppSettings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Environment variables are prefixed with PORTPLAN_ (e.g.
    PORTPLAN_LOG_LEVEL=DEBUG). A local .env file is honoured.

    Attributes
    ----------
    debug : bool
        Enable debug mode (forces DEBUG logging).
    log_level : str
        Logging level for the ``portplan`` logger.

    Examples
    --------
    >>> settings = AppSettings()
    >>> settings.log_level
    'WARNING'
    """

    model_config = SettingsConfigDict(
        env_prefix="PORTPLAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level"
    )


def configure_logging(settings: Optional[AppSettings] = None) -> logging.Logger:
    """
    Apply ``settings.log_level`` to the package logger.

    Only the ``portplan`` logger is touched; handlers and the root logger
    stay under the host application's control.
    """
    settings = settings or AppSettings()
    level = "DEBUG" if settings.debug else settings.log_level
    logger = logging.getLogger("portplan")
    logger.setLevel(level)
    return logger
