"""
Unit tests for sampling.py module.

Tests the Box-Muller transform, uniform consumption order and input
validation of fill_normal.
"""

import numpy as np
import pytest

from portplan.exceptions import ValidationError
from portplan.sampling import box_muller, fill_normal


class TestBoxMuller:
    """Tests for the raw transform."""

    def test_unit_radius_gives_zero(self):
        """u1 = 1 makes the radius zero whatever the angle."""
        z0, z1 = box_muller(np.array([1.0, 1.0]), np.array([0.1, 0.7]))
        np.testing.assert_allclose(z0, 0.0, atol=1e-15)
        np.testing.assert_allclose(z1, 0.0, atol=1e-15)

    def test_quarter_turn(self):
        """u2 = 0.25 puts the whole radius on z1."""
        u1 = np.array([np.exp(-0.5)])  # radius 1
        z0, z1 = box_muller(u1, np.array([0.25]))
        assert z0[0] == pytest.approx(0.0, abs=1e-12)
        assert z1[0] == pytest.approx(1.0)


class TestFillNormal:
    """Tests for fill_normal."""

    def test_empty(self):
        assert fill_normal(0, rng=np.random.default_rng(0)).shape == (0,)

    def test_odd_count_keeps_pair_order(self):
        """Outputs interleave (z0, z1) per pair; the odd tail keeps only z0."""
        u = np.random.default_rng(3).random((2, 2))
        z0, z1 = box_muller(1.0 - u[:, 0], u[:, 1])
        expected = np.array([z0[0], z1[0], z0[1]])

        draws = fill_normal(3, rng=np.random.default_rng(3))

        np.testing.assert_allclose(draws, expected)

    def test_mean_and_stddev_applied(self):
        u = np.random.default_rng(5).random((2, 2))
        z0, z1 = box_muller(1.0 - u[:, 0], u[:, 1])

        draws = fill_normal(4, mean=0.07, stddev=0.15, rng=np.random.default_rng(5))

        np.testing.assert_allclose(draws, 0.07 + 0.15 * np.array([z0[0], z1[0], z0[1], z1[1]]))

    def test_zero_stddev_is_constant(self):
        draws = fill_normal(11, mean=0.05, stddev=0.0, seed=1)
        assert np.all(draws == 0.05)

    def test_sample_moments(self):
        """Large samples match the requested distribution."""
        draws = fill_normal(200_000, mean=0.07, stddev=0.15, seed=42)
        assert draws.mean() == pytest.approx(0.07, abs=0.002)
        assert draws.std() == pytest.approx(0.15, abs=0.002)

    def test_seed_reproducible(self):
        np.testing.assert_array_equal(fill_normal(10, seed=9), fill_normal(10, seed=9))

    def test_shared_generator_advances(self):
        rng = np.random.default_rng(9)
        first = fill_normal(4, rng=rng)
        second = fill_normal(4, rng=rng)
        assert not np.array_equal(first, second)

    def test_negative_stddev_rejected(self):
        with pytest.raises(ValidationError, match="stddev must be non-negative"):
            fill_normal(3, stddev=-0.1, seed=1)

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError, match="count must be non-negative"):
            fill_normal(-1, seed=1)

    def test_rng_and_seed_together_rejected(self):
        with pytest.raises(ValidationError, match="either rng or seed"):
            fill_normal(3, rng=np.random.default_rng(1), seed=1)
