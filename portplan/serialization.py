"""
Serialization module for portplan.

Purpose
-------
Converts the plain structured data a caller holds (parsed JSON documents,
CSV rows, DataFrames) into validated portplan records, and results back
into JSON-ready dictionaries.

Input shapes
------------
- Market data: ``{"assets": {"VTI": {"expectedReturn": ..., ...}, ...}}``,
  ``{"assets": [{"symbol": "VTI", ...}, ...]}``, or the bare list/mapping.
- Investor profile: the ``investor_profile.json`` layout (see
  ``config.InvestorProfileConfig``).
- Holdings / tax lots: one record per row, camelCase, snake_case or
  PascalCase column names.

Every input passes through the Pydantic schemas in ``portplan.config``;
schema violations surface as ``portplan.exceptions.ValidationError``.

Design Principles
-----------------
- Type-safe: Uses Pydantic configs for validation
- Human-readable: JSON output with camelCase keys
- Reproducible: saved results carry a schema version

Example
-------
>>> from pathlib import Path
>>> from portplan.serialization import load_json, assets_from_dict, save_result
>>> assets = assets_from_dict(load_json(Path("data/market_data.json")))
>>> result = optimize(assets, profile.constraints)
>>> save_result(result, Path("out/allocation.json"))
"""

from __future__ import annotations

from datetime import date
from enum import Enum
import json
from pathlib import Path
import re
from typing import Any, Dict, Iterable, List, Mapping, Type, TypeVar, Union
import warnings

import numpy as np
import pandas as pd
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .config import (
    AssetConfig,
    HoldingConfig,
    InvestorProfileConfig,
    TaxLotConfig,
)
from .exceptions import ValidationError
from .models import (
    AccountBalances,
    Asset,
    Holding,
    InvestorProfile,
    RiskConstraints,
    SocialSecurityProfile,
    TaxLot,
    check_unique,
)

__all__ = [
    "SCHEMA_VERSION",
    "asset_from_dict",
    "assets_from_dict",
    "holding_from_dict",
    "holdings_from_records",
    "holdings_from_frame",
    "lot_from_dict",
    "lots_from_records",
    "lots_from_frame",
    "profile_from_dict",
    "result_to_dict",
    "to_json",
    "load_json",
    "read_holdings_csv",
    "read_tax_lots_csv",
    "save_result",
    "load_result",
]

SCHEMA_VERSION = "1.0.0"

ConfigT = TypeVar("ConfigT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _validate(model_cls: Type[ConfigT], data: Any, what: str) -> ConfigT:
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {what}: {exc}") from exc


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _snake(name: str) -> str:
    """'PurchasePrice' / 'purchasePrice' / 'purchase price' → 'purchase_price'."""
    name = _CAMEL_BOUNDARY.sub("_", str(name).strip())
    return re.sub(r"[\s\-]+", "_", name).lower()


def _clean_record(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Snake-case keys and convert pandas/NumPy scalars to plain Python."""
    out = {}
    for key, value in record.items():
        if isinstance(value, pd.Timestamp):
            value = value.date()
        elif isinstance(value, np.generic):
            value = value.item()
        if isinstance(value, float) and np.isnan(value):
            value = None
        if value is None:
            continue
        out[_snake(key)] = value
    return out


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


# ---------------------------------------------------------------------------
# Market data
# ---------------------------------------------------------------------------

def asset_from_dict(data: Mapping[str, Any]) -> Asset:
    """Build one :class:`Asset` from a market-data entry."""
    config = _validate(AssetConfig, data, "asset")
    return Asset(
        symbol=config.symbol,
        expected_return=config.expected_return,
        volatility=config.volatility,
        dividend_yield=config.dividend_yield,
        sector=config.sector,
    )


def assets_from_dict(data: Union[Mapping[str, Any], Iterable[Mapping[str, Any]]]) -> List[Asset]:
    """
    Build the asset list from market data.

    Accepts the ``{"assets": ...}`` envelope or its content, where the
    content is either a list of entries carrying ``symbol`` or a mapping
    from symbol to entry. Order follows the input.
    """
    if isinstance(data, Mapping) and "assets" in data:
        data = data["assets"]

    if isinstance(data, Mapping):
        entries = [{"symbol": symbol, **dict(entry)} for symbol, entry in data.items()]
    else:
        entries = [dict(entry) for entry in data]

    assets = [asset_from_dict(entry) for entry in entries]
    check_unique([a.symbol for a in assets], "asset symbol")
    return assets


# ---------------------------------------------------------------------------
# Holdings and tax lots
# ---------------------------------------------------------------------------

def holding_from_dict(data: Mapping[str, Any]) -> Holding:
    config = _validate(HoldingConfig, _clean_record(data), "holding")
    return Holding(
        symbol=config.symbol,
        shares=config.shares,
        purchase_price=config.purchase_price,
        current_price=config.current_price,
        account_type=config.account_type,
        name=config.name,
        sector=config.sector,
    )


def holdings_from_records(records: Iterable[Mapping[str, Any]]) -> List[Holding]:
    return [holding_from_dict(r) for r in records]


def holdings_from_frame(df: pd.DataFrame) -> List[Holding]:
    """One holding per DataFrame row."""
    return holdings_from_records(df.to_dict(orient="records"))


def lot_from_dict(data: Mapping[str, Any]) -> TaxLot:
    config = _validate(TaxLotConfig, _clean_record(data), "tax lot")
    return TaxLot(
        lot_id=config.lot_id,
        symbol=config.symbol,
        purchase_date=config.purchase_date,
        shares=config.shares,
        purchase_price=config.purchase_price,
        current_price=config.current_price,
        account_type=config.account_type,
    )


def lots_from_records(records: Iterable[Mapping[str, Any]]) -> List[TaxLot]:
    """Build tax lots; lot ids must be unique."""
    lots = [lot_from_dict(r) for r in records]
    check_unique([lot.lot_id for lot in lots], "lot id")
    return lots


def lots_from_frame(df: pd.DataFrame) -> List[TaxLot]:
    return lots_from_records(df.to_dict(orient="records"))


# ---------------------------------------------------------------------------
# Investor profile
# ---------------------------------------------------------------------------

def profile_from_dict(data: Mapping[str, Any]) -> InvestorProfile:
    """
    Build an :class:`InvestorProfile` from the investor-profile layout.

    Examples
    --------
    >>> profile = profile_from_dict({
    ...     "age": 45, "retirementAge": 65, "lifeExpectancy": 90,
    ...     "monthlyContribution": 2000,
    ...     "accounts": {"taxable": {"balance": 300000},
    ...                  "roth": {"balance": 150000},
    ...                  "traditional": {"balance": 250000}},
    ...     "maxVolatility": 0.15, "maxSinglePosition": 0.10,
    ...     "maxSectorWeight": 0.30, "minBondAllocation": 0.20,
    ... })
    >>> profile.total_balance
    700000.0
    """
    config = _validate(InvestorProfileConfig, dict(data), "investor profile")
    ss = config.social_security
    return InvestorProfile(
        age=config.age,
        retirement_age=config.retirement_age,
        life_expectancy=config.life_expectancy,
        monthly_contribution=config.monthly_contribution,
        retirement_goal=config.retirement_goal,
        balances=AccountBalances(
            taxable=config.accounts.taxable,
            roth=config.accounts.roth,
            traditional=config.accounts.traditional,
        ),
        constraints=RiskConstraints(
            max_volatility=config.constraints.max_volatility,
            max_single_position=config.constraints.max_single_position,
            max_sector_weight=config.constraints.max_sector_weight,
            min_bond_allocation=config.constraints.min_bond_allocation,
        ),
        social_security=None if ss is None else SocialSecurityProfile(
            spouse_age=ss.spouse_age,
            estimated_monthly_at_67=ss.estimated_monthly_at_67,
            spouse_estimated_monthly_at_67=ss.spouse_estimated_monthly_at_67,
        ),
    )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

def result_to_dict(result: Any) -> Any:
    """JSON-ready form of any result exposing ``to_dict()`` (or a list of them)."""
    if isinstance(result, (list, tuple)):
        return [result_to_dict(r) for r in result]
    if hasattr(result, "to_dict"):
        return _jsonable(result.to_dict())
    return _jsonable(result)


def to_json(result: Any, indent: int = 2) -> str:
    return json.dumps(result_to_dict(result), indent=indent)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

def load_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def read_holdings_csv(path: Path) -> List[Holding]:
    """Read a holdings CSV (one position per row) with pandas."""
    return holdings_from_frame(pd.read_csv(path))


def read_tax_lots_csv(path: Path) -> List[TaxLot]:
    """Read a tax-lot CSV; purchase dates must be ISO formatted."""
    return lots_from_frame(pd.read_csv(path))


def save_result(result: Any, path: Path) -> None:
    """
    Save a result to a JSON file, stamped with the schema version.

    Examples
    --------
    >>> save_result(plan, Path("out/harvest.json"))
    """
    payload = {"schema_version": SCHEMA_VERSION, "result": result_to_dict(result)}
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def load_result(path: Path) -> Dict[str, Any]:
    """
    Load a result saved by :func:`save_result` as a plain dictionary.

    Result objects are not reconstructed; the dictionary is what the
    result's ``to_dict()`` produced.
    """
    payload = load_json(path)
    schema_version = payload.get("schema_version", "0.0.0")
    if schema_version != SCHEMA_VERSION:
        warnings.warn(
            f"Result schema version {schema_version} differs from current "
            f"version {SCHEMA_VERSION}. May encounter compatibility issues.",
            UserWarning,
        )
    return payload["result"]
