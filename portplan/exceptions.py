"""
Custom exceptions for portplan.

Purpose
-------
Provides a unified exception hierarchy for consistent error handling
across all portplan modules. All exceptions inherit from PortPlanError,
enabling catch-all handling when needed.

Exception Hierarchy
-------------------
PortPlanError (base)
├── ConfigurationError - Invalid configuration or parameters
├── ValidationError - Malformed or contradictory caller input
└── OptimizationError - Solver failures
    ├── InfeasibleError - No feasible solution exists
    └── SolverTimeoutError - Solver stopped before proving optimality

Optimizers report infeasibility as a result value (``status`` field);
``InfeasibleError`` and ``SolverTimeoutError`` are raised only when a
caller asks for it through ``result.raise_for_status()``.

Usage
-----
>>> from portplan.exceptions import ValidationError, InfeasibleError
>>>
>>> # Raise specific exception
>>> raise ValidationError("path_count must be positive, got 0")
>>>
>>> # Catch all portplan exceptions
>>> try:
...     optimize(assets, constraints, 0.12).raise_for_status()
... except PortPlanError as e:
...     logger.error(f"portplan error: {e}")
"""


class PortPlanError(Exception):
    """
    Base exception for all portplan errors.

    Examples
    --------
    >>> try:
    ...     simulate(100_000, 12_000, 0.07, 0.15, years=30, path_count=0)
    ... except PortPlanError as e:
    ...     logger.error(f"Simulation failed: {e}")
    """
    pass


class ConfigurationError(PortPlanError):
    """
    Invalid configuration or parameters.

    Raised when a configuration object cannot be honoured, such as:
    - Unknown solver backend names
    - Incompatible parameter combinations

    Examples
    --------
    >>> raise ConfigurationError(
    ...     "Unknown solver 'GUROBI'. Valid options: CLARABEL, SCIPY, ECOS, SCS, HIGHS"
    ... )
    """
    pass


class ValidationError(PortPlanError):
    """
    Input validation failures (InvalidInput).

    Raised eagerly, before any computation, when caller input is
    malformed or contradictory:
    - Non-positive path counts or negative horizons
    - Negative volatility or standard deviation
    - Weight vectors whose length does not match the asset count
    - Duplicate symbols or lot ids

    Examples
    --------
    >>> raise ValidationError(
    ...     f"stddev must be non-negative, got {stddev}. "
    ...     f"Use stddev=0 for a deterministic projection."
    ... )
    """
    pass


class OptimizationError(PortPlanError):
    """
    Optimization solver failures.

    Raised when the solver encounters errors:
    - Solver crash or numerical breakdown
    - Unexpected solver status

    Examples
    --------
    >>> raise OptimizationError(
    ...     f"Solver returned unexpected status: {prob.status}. "
    ...     f"Try a different solver backend."
    ... )
    """
    pass


class InfeasibleError(OptimizationError):
    """
    No feasible solution exists.

    Raised from ``raise_for_status()`` when the problem has no solution
    satisfying every hard constraint:
    - Bond floor unreachable under position and sector caps
    - Harvest target above the total available losses
    - Holdings that do not fit in the account balances

    Examples
    --------
    >>> raise InfeasibleError(
    ...     "No allocation satisfies max_volatility=0.03 with "
    ...     "min_bond_allocation=0.40. Consider relaxing the caps."
    ... )
    """
    pass


class SolverTimeoutError(OptimizationError):
    """
    Solver stopped before proving optimality or infeasibility.

    Tagged separately from InfeasibleError so callers can retry with
    relaxed constraints or a larger time budget.

    Examples
    --------
    >>> raise SolverTimeoutError(
    ...     "Solver status 'user_limit' after 10.0s. Increase time_limit."
    ... )
    """
    pass
