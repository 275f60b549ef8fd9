"""General utilities for portplan

Contents
--------
- Validation helpers (raise ValidationError with the offending value)
- Array helpers (ensure_1d)
- Randomness helpers (make_rng)
- Finance helpers (future_value, order_statistic)
- Reporting helpers (round_money, pct)
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from .exceptions import ValidationError

__all__ = [
    # Validation
    "check_finite",
    "check_non_negative",
    "check_positive",
    "check_fraction",
    "check_positive_int",
    "check_non_negative_int",
    # Arrays
    "ensure_1d",
    # Randomness
    "make_rng",
    # Finance
    "future_value",
    "order_statistic",
    # Reporting
    "round_money",
    "to_cents",
    "pct",
]

ArrayLike = Sequence[float] | np.ndarray


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def check_finite(name: str, value: float) -> None:
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite, got {value}")


def check_non_negative(name: str, value: float) -> None:
    """Raise if *value* is negative or not finite."""
    check_finite(name, value)
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")


def check_positive(name: str, value: float) -> None:
    """Raise unless *value* is finite and > 0."""
    check_finite(name, value)
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")


def check_fraction(name: str, value: float) -> None:
    """Raise unless *value* lies in [0, 1]."""
    check_finite(name, value)
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"{name} must be in [0, 1], got {value}")


def check_positive_int(name: str, value: int) -> None:
    """Raise unless *value* is an integer >= 1."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}")
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")


def check_non_negative_int(name: str, value: int) -> None:
    """Raise unless *value* is an integer >= 0."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")


# ---------------------------------------------------------------------------
# Array helpers
# ---------------------------------------------------------------------------

def ensure_1d(a: ArrayLike, *, name: str = "array") -> np.ndarray:
    """Convert input to a 1-D float NumPy array with helpful error messages."""
    arr = np.asarray(a, dtype=float)
    if arr.ndim != 1:
        raise ValidationError(f"{name} must be 1-D, got shape {arr.shape}.")
    if not np.isfinite(arr).all():
        raise ValidationError(f"{name} must contain only finite values.")
    return arr


# ---------------------------------------------------------------------------
# Randomness helpers
# ---------------------------------------------------------------------------

def make_rng(
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> np.random.Generator:
    """Return *rng* if given, else a fresh generator seeded with *seed*.

    Each call that builds its own generator owns it, so concurrent calls
    never share random state.
    """
    if rng is not None:
        if seed is not None:
            raise ValidationError("Pass either rng or seed, not both")
        return rng
    return np.random.default_rng(seed)


# ---------------------------------------------------------------------------
# Finance helpers
# ---------------------------------------------------------------------------

def future_value(present: float, payment: float, rate: float, years: int) -> float:
    """Future value of a balance plus end-of-year payments.

    Uses: PV·(1+r)^n + PMT·((1+r)^n − 1)/r, and PV + PMT·n when r == 0.
    """
    if rate == 0:
        return present + payment * years
    growth = (1.0 + rate) ** years
    return present * growth + payment * (growth - 1.0) / rate


def order_statistic(sorted_values: np.ndarray, p: float) -> float:
    """Read ``sorted_values[floor(len × p)]`` without interpolation.

    p = 1.0 maps to the last element.
    """
    if not 0.0 <= p <= 1.0:
        raise ValidationError(f"percentile level must be in [0, 1], got {p}")
    n = len(sorted_values)
    if n == 0:
        raise ValidationError("cannot take a percentile of an empty array")
    idx = min(int(math.floor(n * p)), n - 1)
    return float(sorted_values[idx])


# ---------------------------------------------------------------------------
# Reporting helpers
# ---------------------------------------------------------------------------

def round_money(value: float) -> float:
    """Round a currency amount to cents."""
    return round(float(value), 2)


def to_cents(value: float) -> int:
    """Currency amount as a whole number of cents."""
    return int(round(float(value) * 100.0))


def pct(fraction: float, decimals: int = 2) -> float:
    """Express a fraction as a rounded percentage (0.0712 → 7.12)."""
    return round(float(fraction) * 100.0, decimals)
