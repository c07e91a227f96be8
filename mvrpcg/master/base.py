"""
Master problem oracle and the LP backend interface.

The master problem oracle formulates the restricted master problem from a
column sequence and a set of branching equality rows, hands it to an LP/MIP
backend, and translates the backend's arrays back into duals per port and
per vessel class.

Design Philosophy:
-----------------
- The backend is the only thing that knows about a concrete solver. Its
  interface is narrow: build a handle from a MasterModel, solve it, release it
- Solver types never leave the backend; the oracle only sees BackendResult
- The oracle keeps no state between calls, so it is safe to call repeatedly
  with a growing pool and from several branch nodes
- An LP must be solved to optimality (duals are only valid there); a MIP
  may also stop on a time or iteration limit with a feasible incumbent.
  Anything else is an InfeasibleMasterError

Customization Guide:
-------------------
To plug in another solver:

1. Subclass LPBackend
2. Implement build, solve and release
3. Pass an instance to MasterProblem(problem, backend=...)

Example:
    >>> class MyBackend(LPBackend):
    ...     def build(self, model):
    ...         ...
    ...     def solve(self, handle):
    ...         ...
    ...     def release(self, handle):
    ...         ...
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Collection, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Optional

from mvrpcg.core.column import Column
from mvrpcg.core.port import PickupType, PortWithType
from mvrpcg.core.problem import Problem
from mvrpcg.master.model import MasterModel, build_master_model
from mvrpcg.master.solution import MPIntegerSolution, MPLinearSolution, SolutionStatus

logger = logging.getLogger(__name__)

# MIP stops that still carry a feasible incumbent
_INCUMBENT_STATUSES = frozenset({SolutionStatus.TIME_LIMIT, SolutionStatus.ITERATION_LIMIT})


class InfeasibleMasterError(RuntimeError):
    """
    The restricted master problem has no usable solution.

    Raised when the backend does not report an optimal solve (a MIP may
    also end on a limit with a feasible incumbent), when an LP comes back
    without a dual per row, and when the backend itself fails. The branch node owning the problem must be pruned
    or reported; its bound is never taken as zero.
    """

    def __init__(self, message: str, status: SolutionStatus = SolutionStatus.INFEASIBLE):
        super().__init__(message)
        self.status = status


@dataclass
class BackendResult:
    """
    What a backend returns from a solve.

    Attributes:
        status: Solve status
        objective_value: Objective without the model's constant
        col_values: Primal value of every column
        row_duals: Dual of every row (empty for MIP solves)
        solve_time: Backend time in seconds
    """
    status: SolutionStatus
    objective_value: Optional[float] = None
    col_values: list[float] = field(default_factory=list)
    row_duals: list[float] = field(default_factory=list)
    solve_time: float = 0.0


class LPBackend(ABC):
    """
    Abstract LP/MIP backend.

    A backend turns a MasterModel into a solver-specific handle, solves it,
    and releases whatever the handle holds.
    """

    @abstractmethod
    def build(self, model: MasterModel) -> Any:
        """Create a solver handle for the model."""
        pass

    @abstractmethod
    def solve(self, handle: Any) -> BackendResult:
        """Solve a handle created by build()."""
        pass

    @abstractmethod
    def release(self, handle: Any) -> None:
        """Free the solver resources held by a handle."""
        pass

    @contextmanager
    def session(self, model: MasterModel) -> Iterator[Any]:
        """Build a handle and release it on every exit path."""
        handle = self.build(model)
        try:
            yield handle
        finally:
            self.release(handle)


class MasterProblem:
    """
    Restricted master problem oracle.

    Lifecycle:
    ---------
    1. Create: master = MasterProblem(problem)   (HiGHS backend by default)
    2. Solve LP: lp = master.solve_lp(columns, equality_rows)
    3. Read duals for pricing: lp.port_duals, lp.vc_duals
    4. Repeat 2-3 as the pool grows
    5. Solve MIP over the final pool: mip = master.solve_mip(columns, equality_rows)

    Attributes:
        problem: The Problem instance
        backend: The LP/MIP backend
    """

    def __init__(self, problem: Problem, backend: Optional[LPBackend] = None):
        """
        Initialize the oracle.

        Args:
            problem: The Problem instance
            backend: LP/MIP backend (HiGHSBackend configured from the global
                config if not provided)

        Raises:
            ImportError: If no backend is given and highspy is not installed
        """
        if backend is None:
            from mvrpcg.master.highs import HiGHSBackend
            backend = HiGHSBackend()

        self._problem = problem
        self._backend = backend

    @property
    def problem(self) -> Problem:
        return self._problem

    @property
    def backend(self) -> LPBackend:
        return self._backend

    # =========================================================================
    # Public API
    # =========================================================================

    def solve_lp(
        self,
        columns: Sequence[Column],
        equality_rows: Collection[PortWithType] = (),
    ) -> MPLinearSolution:
        """
        Solve the LP relaxation.

        Args:
            columns: Columns in variable order (a pool or merge_pools output)
            equality_rows: Port-types branched to "exactly one"

        Returns:
            Objective, duals per port and vessel class, and column values

        Raises:
            ValueError: If there are no columns
            InfeasibleMasterError: If the LP is not solved to optimality or the
                backend returns no dual for some row
        """
        columns = list(columns)
        model = build_master_model(self._problem, columns, equality_rows, integer=False)
        result = self._run(model)

        row_index = self._problem.row_index
        pickup_duals: dict = {}
        delivery_duals: dict = {}
        for row in range(model.num_port_rows):
            key = row_index.key_of(row)
            if key.pickup_type is PickupType.PICKUP:
                pickup_duals[key.port] = result.row_duals[row]
            else:
                delivery_duals[key.port] = result.row_duals[row]

        port_duals = {
            port: (pickup_duals.get(port, 0.0), delivery_duals.get(port, 0.0))
            for port in self._problem.feeder_ports
        }
        vc_duals = {
            vc: result.row_duals[model.num_port_rows + k]
            for k, vc in enumerate(self._problem.vessel_classes)
        }

        return MPLinearSolution(
            objective_value=model.objective_constant + result.objective_value,
            port_duals=port_duals,
            vc_duals=vc_duals,
            variables=list(result.col_values),
            status=result.status,
            solve_time=result.solve_time,
        )

    def solve_mip(
        self,
        columns: Sequence[Column],
        equality_rows: Collection[PortWithType] = (),
    ) -> MPIntegerSolution:
        """
        Solve with binary columns.

        Args:
            columns: Columns in variable order
            equality_rows: Port-types branched to "exactly one"

        Returns:
            Objective and 0/1 column values

        Raises:
            ValueError: If there are no columns
            InfeasibleMasterError: If the MIP has no feasible solution, or stops
                for any reason other than optimality or a time or
                iteration limit
        """
        columns = list(columns)
        model = build_master_model(self._problem, columns, equality_rows, integer=True)
        result = self._run(model)

        return MPIntegerSolution(
            objective_value=model.objective_constant + result.objective_value,
            variables=[float(round(v)) for v in result.col_values],
            status=result.status,
            solve_time=result.solve_time,
        )

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _run(self, model: MasterModel) -> BackendResult:
        """Solve a model and turn every failure into InfeasibleMasterError."""
        kind = "MIP" if model.integer else "LP"
        start_time = time.time()

        try:
            with self._backend.session(model) as handle:
                result = self._backend.solve(handle)
        except Exception as e:
            logger.error("%s backend failed on %d columns: %s", kind, model.num_cols, e)
            raise InfeasibleMasterError(
                f"{kind} backend error: {e}", SolutionStatus.ERROR
            ) from e

        accepted = (
            {SolutionStatus.OPTIMAL} if not model.integer
            else {SolutionStatus.OPTIMAL} | _INCUMBENT_STATUSES
        )
        if (
            result.status not in accepted
            or result.objective_value is None
            or len(result.col_values) != model.num_cols
        ):
            raise InfeasibleMasterError(
                f"Infeasible problem! {kind} status {result.status.name} "
                f"with {model.num_cols} columns",
                result.status,
            )

        # Duals are read row by row by solve_lp
        if not model.integer and len(result.row_duals) != model.num_rows:
            logger.error(
                "LP backend returned %d row duals for %d rows",
                len(result.row_duals), model.num_rows,
            )
            raise InfeasibleMasterError(
                f"LP backend returned {len(result.row_duals)} row duals "
                f"for {model.num_rows} rows",
                SolutionStatus.ERROR,
            )

        if result.status != SolutionStatus.OPTIMAL:
            logger.warning(
                "%s stopped on %s, keeping the incumbent: obj=%.4f",
                kind, result.status.name, model.objective_constant + result.objective_value,
            )

        logger.debug(
            "%s solved: obj=%.4f, columns=%d, rows=%d, time=%.3fs",
            kind, model.objective_constant + result.objective_value,
            model.num_cols, model.num_rows, time.time() - start_time,
        )
        return result

    def __repr__(self) -> str:
        return f"MasterProblem(problem={self._problem.name!r}, backend={self._backend!r})"
