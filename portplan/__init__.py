"""
portplan — Portfolio Planning Toolkit

Numerical core for retirement projection and portfolio optimization.

Modules
-------
- sampling        : Box-Muller normal draws on a seeded NumPy Generator
- simulation      : Monte Carlo growth paths, percentile bands, projections
- withdrawal      : Retirement withdrawal simulation and named strategies
- optimization    : Constrained allocation LP, frontier, portfolio statistics
- harvesting      : Tax-loss harvesting lot selection with wash-sale rules
- location        : Asset-location assignment and tax-drag estimates
- social_security : Claiming-age optimization
- models          : Validated domain records
- config          : Pydantic run configuration and input schemas
- serialization   : Dict/CSV/JSON conversion of inputs and results
- utils           : Shared validation and finance helpers
"""

from .exceptions import (
    PortPlanError,
    ConfigurationError,
    ValidationError,
    OptimizationError,
    InfeasibleError,
    SolverTimeoutError,
)
from .models import (
    AccountType,
    Asset,
    Holding,
    TaxLot,
    RiskConstraints,
    AccountBalances,
    SocialSecurityProfile,
    InvestorProfile,
)
from .config import (
    SimulationConfig,
    OptimizationConfig,
    TaxConfig,
    AppSettings,
    configure_logging,
)
from .sampling import fill_normal
from .simulation import (
    simulate,
    simulate_with_yearly_percentiles,
    percentile,
    summarize,
    run_retirement_projection,
    project_balance,
)
from .withdrawal import (
    simulate_withdrawals,
    fixed_real_policy,
    dynamic_percentage_policy,
    guardrails_policy,
    compare_withdrawal_strategies,
)
from .optimization import SolveStatus, optimize, frontier, stats
from .harvesting import find_harvest_candidates
from .location import optimize_location, estimate_tax_drag
from .social_security import optimize_claiming
from . import utils

__version__ = "0.1.0"
