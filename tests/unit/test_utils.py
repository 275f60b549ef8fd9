"""
Unit tests for utils.py module.

Tests validation helpers, generator handling and finance helpers.
"""

import numpy as np
import pytest

from portplan.exceptions import ValidationError
from portplan.utils import (
    check_fraction,
    check_non_negative,
    check_non_negative_int,
    check_positive,
    check_positive_int,
    ensure_1d,
    future_value,
    make_rng,
    order_statistic,
    pct,
    round_money,
    to_cents,
)


class TestValidation:
    """Test input validation functions."""

    def test_check_non_negative_valid(self):
        check_non_negative("x", 0)
        check_non_negative("x", 1.5)

    def test_check_non_negative_invalid(self):
        with pytest.raises(ValidationError, match="x must be non-negative, got -0.1"):
            check_non_negative("x", -0.1)

    def test_check_non_negative_rejects_nan(self):
        with pytest.raises(ValidationError, match="must be finite"):
            check_non_negative("x", float("nan"))

    def test_positive_int(self):
        check_positive_int("n", 1)
        check_positive_int("n", np.int64(3))
        with pytest.raises(ValidationError, match="n must be positive, got 0"):
            check_positive_int("n", 0)

    def test_positive_and_fraction(self):
        check_positive("shares", 0.5)
        check_fraction("weight", 1.0)
        with pytest.raises(ValidationError, match="shares must be positive, got 0"):
            check_positive("shares", 0)
        with pytest.raises(ValidationError, match=r"weight must be in \[0, 1\], got 1.5"):
            check_fraction("weight", 1.5)
        with pytest.raises(ValidationError, match="must be finite"):
            check_fraction("weight", float("nan"))

    def test_int_checks_reject_floats_and_bools(self):
        with pytest.raises(ValidationError, match="must be an integer"):
            check_positive_int("n", 2.0)
        with pytest.raises(ValidationError, match="must be an integer"):
            check_non_negative_int("n", True)

    def test_ensure_1d(self):
        arr = ensure_1d([1, 2, 3])
        assert arr.dtype == float
        with pytest.raises(ValidationError, match="must be 1-D"):
            ensure_1d([[1, 2]], name="weights")
        with pytest.raises(ValidationError, match="finite"):
            ensure_1d([1.0, np.inf])


class TestMakeRng:
    """Generator handling."""

    def test_passthrough(self):
        rng = np.random.default_rng(0)
        assert make_rng(rng) is rng

    def test_seeded(self):
        assert make_rng(seed=3).random() == make_rng(seed=3).random()

    def test_both_rejected(self):
        with pytest.raises(ValidationError):
            make_rng(np.random.default_rng(0), seed=1)


class TestFinanceHelpers:
    """Future value, order statistics and rounding."""

    def test_future_value_zero_rate(self):
        assert future_value(1_000, 100, 0.0, 5) == 1_500

    def test_future_value_annuity(self):
        assert future_value(0, 100, 0.10, 2) == pytest.approx(210.0)

    def test_order_statistic_floor(self):
        values = np.array([10.0, 20.0, 30.0])
        assert order_statistic(values, 0.5) == 20.0
        assert order_statistic(values, 0.99) == 30.0
        assert order_statistic(values, 0.0) == 10.0

    def test_round_money_and_pct(self):
        assert round_money(1.005 + 0.0001) == 1.01
        assert pct(0.0712) == 7.12
        assert pct(0.5, decimals=0) == 50.0

    def test_to_cents(self):
        assert to_cents(3 * (1.07 - 1.00)) == 21
        assert to_cents(7 * (2.13 - 2.00)) == 91
        assert to_cents(1.12) == 112
        assert to_cents(-0.5) == -50
