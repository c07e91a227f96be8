"""
Master problem module - the restricted master problem oracle.

The restricted master problem selects routes (columns) so that every
port-type row is served at most once (exactly once when branched), every
vessel class uses at most its number of vessels, and the sum of route
costs plus the penalties of unserved port-types is minimal.

This module provides:
- MasterProblem: Oracle solving the LP relaxation and the binary master
- LPBackend: Abstract solver backend (build / solve / release)
- HiGHSBackend: Default backend using the HiGHS solver
- MPLinearSolution / MPIntegerSolution: Solution data structures
- InfeasibleMasterError: Raised when no optimal solution exists

Usage:
------
    >>> from mvrpcg.master import MasterProblem
    >>> master = MasterProblem(problem)
    >>> lp = master.solve_lp(columns)
    >>> lp.port_dual(port, PickupType.PICKUP)

Creating a custom backend:

    >>> from mvrpcg.master import LPBackend, BackendResult
    >>>
    >>> class MyBackend(LPBackend):
    ...     def build(self, model):
    ...         # Load the MasterModel arrays into the solver
    ...         ...
    ...
    ...     def solve(self, handle):
    ...         # Return a BackendResult
    ...         ...
    ...
    ...     def release(self, handle):
    ...         ...
"""

from mvrpcg.master.solution import MPIntegerSolution, MPLinearSolution, SolutionStatus
from mvrpcg.master.model import MasterModel, build_master_model
from mvrpcg.master.base import BackendResult, InfeasibleMasterError, LPBackend, MasterProblem
from mvrpcg.master.highs import HIGHS_AVAILABLE, HiGHSBackend


__all__ = [
    # Solution
    'MPLinearSolution',
    'MPIntegerSolution',
    'SolutionStatus',

    # Formulation
    'MasterModel',
    'build_master_model',

    # Oracle and backends
    'MasterProblem',
    'LPBackend',
    'BackendResult',
    'InfeasibleMasterError',

    # HiGHS implementation
    'HiGHSBackend',
    'HIGHS_AVAILABLE',
]
