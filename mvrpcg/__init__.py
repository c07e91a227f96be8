"""
mvrpcg: column generation for multi-vessel hub-and-feeder routing

Vessels leave a hub port, deliver cargo to feeder ports and pick cargo up
from them, and return to the hub; unserved demand pays a penalty. The
restricted master problem selects routes, and a pricing subproblem over
per-vessel-class time-expanded graphs generates new ones.
"""

__version__ = "0.1.0"

# Configuration
from mvrpcg.config import config, setup_logging

# Core classes - these are the main user-facing API
from mvrpcg.core import (
    Column,
    ColumnOrigin,
    ColumnPool,
    GlobalColumnPool,
    Node,
    PickupType,
    Port,
    PortWithType,
    Problem,
    Route,
    RowIndex,
    VesselClass,
    VesselGraph,
    copy_graph_map,
    merge_pools,
)

# Master problem
from mvrpcg.master import (
    HIGHS_AVAILABLE,
    HiGHSBackend,
    InfeasibleMasterError,
    LPBackend,
    MasterProblem,
    MPIntegerSolution,
    MPLinearSolution,
    SolutionStatus,
)

# Pricing problem
from mvrpcg.pricing import (
    ElementaritySchedule,
    PricingConfig,
    PricingReport,
    PricingResult,
    PricingSubproblem,
)

# Column generation solver
from mvrpcg.solver import (
    CGConfig,
    CGSolution,
    CGStatus,
    ColumnGeneration,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "config",
    "setup_logging",
    # Core classes
    "Port",
    "VesselClass",
    "PickupType",
    "PortWithType",
    "Node",
    "Problem",
    "RowIndex",
    "Route",
    "VesselGraph",
    "copy_graph_map",
    "Column",
    "ColumnOrigin",
    "ColumnPool",
    "GlobalColumnPool",
    "merge_pools",
    # Master problem
    "MasterProblem",
    "LPBackend",
    "HiGHSBackend",
    "HIGHS_AVAILABLE",
    "InfeasibleMasterError",
    "MPLinearSolution",
    "MPIntegerSolution",
    "SolutionStatus",
    # Pricing problem
    "PricingSubproblem",
    "PricingConfig",
    "PricingReport",
    "PricingResult",
    "ElementaritySchedule",
    # Column generation solver
    "ColumnGeneration",
    "CGConfig",
    "CGSolution",
    "CGStatus",
]
