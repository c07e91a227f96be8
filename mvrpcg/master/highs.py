"""
HiGHS backend for the master problem oracle.

HiGHS is the default LP/MIP solver because:
- Open source (MIT license)
- High performance (competitive with commercial solvers)
- Good Python bindings (highspy)
- Solves both the LP relaxation and the binary master

Usage:
    >>> from mvrpcg.master import MasterProblem, HiGHSBackend
    >>> master = MasterProblem(problem, backend=HiGHSBackend(threads=2))
    >>> lp = master.solve_lp(columns)
"""

import time
from typing import Optional

import numpy as np

try:
    import highspy
    HIGHS_AVAILABLE = True
except ImportError:
    HIGHS_AVAILABLE = False

from mvrpcg.config import config
from mvrpcg.master.base import BackendResult, LPBackend
from mvrpcg.master.model import MasterModel
from mvrpcg.master.solution import SolutionStatus


# HiGHS status mapping
def _map_highs_status(status) -> SolutionStatus:
    """Map HiGHS model status to our SolutionStatus."""
    if not HIGHS_AVAILABLE:
        return SolutionStatus.ERROR

    status_map = {
        highspy.HighsModelStatus.kNotset: SolutionStatus.NOT_SOLVED,
        highspy.HighsModelStatus.kLoadError: SolutionStatus.ERROR,
        highspy.HighsModelStatus.kModelError: SolutionStatus.ERROR,
        highspy.HighsModelStatus.kPresolveError: SolutionStatus.ERROR,
        highspy.HighsModelStatus.kSolveError: SolutionStatus.ERROR,
        highspy.HighsModelStatus.kPostsolveError: SolutionStatus.ERROR,
        highspy.HighsModelStatus.kModelEmpty: SolutionStatus.ERROR,
        highspy.HighsModelStatus.kOptimal: SolutionStatus.OPTIMAL,
        highspy.HighsModelStatus.kInfeasible: SolutionStatus.INFEASIBLE,
        highspy.HighsModelStatus.kUnbounded: SolutionStatus.UNBOUNDED,
        highspy.HighsModelStatus.kUnboundedOrInfeasible: SolutionStatus.INF_OR_UNBOUNDED,
        highspy.HighsModelStatus.kTimeLimit: SolutionStatus.TIME_LIMIT,
        highspy.HighsModelStatus.kIterationLimit: SolutionStatus.ITERATION_LIMIT,
    }

    return status_map.get(status, SolutionStatus.ERROR)


# HiGHS primal_solution_status value for a feasible point
_PRIMAL_FEASIBLE = 2

_LIMIT_STATUSES = (SolutionStatus.TIME_LIMIT, SolutionStatus.ITERATION_LIMIT)


class HiGHSBackend(LPBackend):
    """
    LP/MIP backend using HiGHS.

    Every build() creates a fresh highspy.Highs instance holding the whole
    model; release() clears it.

    Attributes:
        threads: HiGHS worker threads (0 = HiGHS default)
        verbosity: HiGHS output level (0 = silent)
        time_limit: Maximum solve time in seconds (None = no limit)
    """

    def __init__(
        self,
        threads: Optional[int] = None,
        verbosity: Optional[int] = None,
        time_limit: Optional[float] = None,
    ):
        """
        Initialize the backend.

        Args:
            threads: Worker threads (default: config.solver_threads)
            verbosity: Output level (default: config.solver_verbosity)
            time_limit: Time limit in seconds (default: config.solver_time_limit)

        Raises:
            ImportError: If highspy is not installed
        """
        if not HIGHS_AVAILABLE:
            raise ImportError(
                "HiGHS is not available. Install it with: pip install highspy"
            )

        self._threads = config.solver_threads if threads is None else threads
        self._verbosity = config.solver_verbosity if verbosity is None else verbosity
        self._time_limit = config.solver_time_limit if time_limit is None else time_limit

    # =========================================================================
    # LPBackend Implementation
    # =========================================================================

    def build(self, model: MasterModel) -> 'highspy.Highs':
        """Load the model into a new HiGHS instance."""
        highs = highspy.Highs()

        # Set options
        highs.setOptionValue('output_flag', self._verbosity > 0)
        highs.setOptionValue('log_to_console', self._verbosity > 0)
        if self._threads > 0:
            highs.setOptionValue('threads', self._threads)
        if self._time_limit is not None:
            highs.setOptionValue('time_limit', self._time_limit)

        highs.changeObjectiveSense(highspy.ObjSense.kMinimize)

        # Add rows (empty, the columns carry the nonzeros)
        for lower, upper in zip(model.row_lower, model.row_upper):
            lower = -highspy.kHighsInf if np.isinf(lower) else float(lower)
            upper = highspy.kHighsInf if np.isinf(upper) else float(upper)
            highs.addRow(lower, upper, 0, [], [])

        # Column bounds: 0 <= theta <= 1 for the MIP, unbounded above for the LP
        upper = 1.0 if model.integer else highspy.kHighsInf
        for j in range(model.num_cols):
            indices, values = model.column_entries(j)
            # addCol(cost, lower, upper, num_nz, indices, values)
            highs.addCol(
                float(model.costs[j]),
                0.0,
                upper,
                len(indices),
                indices,
                values,
            )
            if model.integer:
                highs.changeColIntegrality(j, highspy.HighsVarType.kInteger)

        return highs

    def solve(self, highs: 'highspy.Highs') -> BackendResult:
        """Run HiGHS and extract the solution."""
        start_time = time.time()

        highs.run()

        status = _map_highs_status(highs.getModelStatus())
        result = BackendResult(status=status, solve_time=time.time() - start_time)

        info = highs.getInfo()
        if status != SolutionStatus.OPTIMAL:
            # A limit stop may still hold a feasible incumbent (MIP)
            if status not in _LIMIT_STATUSES or info.primal_solution_status != _PRIMAL_FEASIBLE:
                return result

        result.objective_value = info.objective_function_value

        sol = highs.getSolution()
        result.col_values = list(sol.col_value)
        if sol.dual_valid:
            result.row_duals = list(sol.row_dual)

        return result

    def release(self, highs: 'highspy.Highs') -> None:
        highs.clear()

    def __repr__(self) -> str:
        return f"HiGHSBackend(threads={self._threads}, time_limit={self._time_limit})"
