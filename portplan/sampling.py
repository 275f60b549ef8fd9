"""Normal sampling for portplan simulations.

Box-Muller transform on top of a NumPy ``Generator``'s uniforms. Every
Monte Carlo draw in the package goes through :func:`fill_normal`, so a
seeded generator reproduces a whole simulation.

Uniform consumption order
-------------------------
Outputs are produced in pairs. Pair k consumes two uniforms (u1, u2) in
that order, with u1 taken as ``1 - uniform()`` so it lies in (0, 1] and
``log(u1)`` is always finite:

    z0 = sqrt(-2 ln u1) · cos(2π u2)
    z1 = sqrt(-2 ln u1) · sin(2π u2)

An odd trailing element consumes one further pair and keeps only z0.

>>> import numpy as np
>>> draws = fill_normal(5, mean=0.07, stddev=0.15, rng=np.random.default_rng(1))
>>> draws.shape
(5,)
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .utils import check_non_negative, check_non_negative_int, make_rng

__all__ = ["fill_normal", "box_muller"]


def box_muller(u1: np.ndarray, u2: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Map uniforms u1 ∈ (0, 1], u2 ∈ [0, 1) to two standard normal arrays."""
    radius = np.sqrt(-2.0 * np.log(u1))
    angle = 2.0 * np.pi * u2
    return radius * np.cos(angle), radius * np.sin(angle)


def fill_normal(
    count: int,
    mean: float = 0.0,
    stddev: float = 1.0,
    *,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> np.ndarray:
    """
    Draw ``count`` independent samples from N(mean, stddev²).

    Parameters
    ----------
    count : int
        Number of samples (0 returns an empty array).
    mean : float
        Distribution mean.
    stddev : float
        Standard deviation, non-negative.
    rng : numpy.random.Generator, optional
        Source of uniforms. Consumed in place.
    seed : int, optional
        Seed for a private generator when ``rng`` is not given.

    Returns
    -------
    np.ndarray, shape (count,)
    """
    check_non_negative_int("count", count)
    check_non_negative("stddev", stddev)
    gen = make_rng(rng, seed)

    n_pairs = (count + 1) // 2
    if n_pairs == 0:
        return np.empty(0, dtype=float)

    # Row k holds (u1, u2) for pair k, matching sequential consumption.
    u = gen.random((n_pairs, 2))
    z0, z1 = box_muller(1.0 - u[:, 0], u[:, 1])

    z = np.empty(2 * n_pairs, dtype=float)
    z[0::2] = z0
    z[1::2] = z1
    return mean + stddev * z[:count]
