"""
Column Generation controller.

This module implements the column generation loop of one branch node of a
branch-and-price tree: the restricted master problem and the pricing
subproblem take turns until no improving route is left.

Algorithm Overview:
------------------
1. Seed the node pool with initial columns
2. Solve the LP relaxation over merge_pools(global_pool, node_pool)
3. Price with the LP duals; new columns go into the node pool
4. If columns were added, go to step 2
5. If none were added and the pricing was not allowed to go fully
   elementary, allow it and price again on the same duals
6. If none were added with fully elementary pricing, the LP has converged
7. Optionally solve the MIP over the final pool

States:
------
    CONTINUE         columns were added, another round follows
    CONVERGED        no improving column, even fully elementary
    INFEASIBLE       the master problem oracle raised InfeasibleMasterError
    ITERATION_LIMIT  round budget exhausted
    TIME_LIMIT       time budget exhausted

References:
----------
- Desaulniers, G., Desrosiers, J., & Solomon, M. M. (Eds.). (2006).
  Column generation. Springer Science & Business Media.
"""

import logging
import time
from collections.abc import Collection, Iterable
from dataclasses import dataclass
from typing import Callable, Optional

from mvrpcg.core.column import Column, ColumnPool, merge_pools
from mvrpcg.core.graph import GraphMap
from mvrpcg.core.port import PortWithType
from mvrpcg.core.problem import Problem
from mvrpcg.master import (
    HIGHS_AVAILABLE,
    InfeasibleMasterError,
    MasterProblem,
    MPLinearSolution,
)
from mvrpcg.pricing import PricingConfig, PricingResult, PricingSubproblem
from mvrpcg.solver.solution import CGIteration, CGSolution, CGStatus

logger = logging.getLogger(__name__)


@dataclass
class CGConfig:
    """
    Configuration for the column generation loop.

    Attributes:
        max_iterations: Maximum number of rounds (0 = unlimited)
        max_time: Maximum total time in seconds (0 = unlimited)
        solve_ip: Whether to solve the MIP after the LP converges
        start_elementary: Let the first rounds price fully elementary
        pricing_config: Configuration for the pricing subproblem
    """
    max_iterations: int = 1000
    max_time: float = 3600.0  # 1 hour default
    solve_ip: bool = False
    start_elementary: bool = False
    pricing_config: Optional[PricingConfig] = None


# Type alias for callback functions
CGCallback = Callable[['ColumnGeneration', CGIteration], bool]


class ColumnGeneration:
    """
    Column generation controller of one branch node.

    The node owns its column pool and its graphs. Columns found by other
    nodes can be shared through a GlobalColumnPool, which this controller
    only reads.

    Example:
        >>> from mvrpcg.solver import ColumnGeneration, CGConfig
        >>> cg = ColumnGeneration(problem, graphs, CGConfig(solve_ip=True))
        >>> cg.add_initial_columns(initial_columns)
        >>> solution = cg.solve()
        >>> print(f"LP bound: {solution.lp_objective}")

    Branching:
        A child node gets its own graph copies and its equality rows:

        >>> child = ColumnGeneration(
        ...     problem, copy_graph_map(graphs),
        ...     global_pool=global_pool,
        ...     equality_rows={PortWithType(port, PickupType.PICKUP)},
        ... )

    Callbacks:
        Register callbacks to monitor progress:

        >>> def my_callback(cg, iteration):
        ...     print(f"Round {iteration.iteration}: obj={iteration.master_objective}")
        ...     return True  # Continue solving
        >>> cg.add_callback(my_callback)
    """

    def __init__(
        self,
        problem: Problem,
        graphs: GraphMap,
        config: Optional[CGConfig] = None,
        master: Optional[MasterProblem] = None,
        global_pool: Optional[ColumnPool] = None,
        equality_rows: Collection[PortWithType] = (),
    ):
        """
        Initialize the column generation controller.

        Args:
            problem: The Problem instance to solve
            graphs: Vessel-class graphs of this branch node
            config: Configuration options (uses defaults if not provided)
            master: Master problem oracle (HiGHS-backed if not provided)
            global_pool: Pool shared with other branch nodes (read only)
            equality_rows: Port-types branched to "exactly one"
        """
        self._problem = problem
        self._graphs = graphs
        self._config = config or CGConfig()
        self._master = master
        self._global_pool = global_pool
        self._equality_rows = frozenset(equality_rows)

        self._node_pool = ColumnPool()
        self._pricing = PricingSubproblem(
            problem, graphs, self._config.pricing_config or PricingConfig()
        )

        # Callbacks
        self._callbacks: list[CGCallback] = []

        # State
        self._try_elementary = self._config.start_elementary
        self._is_solved = False
        self._solution: Optional[CGSolution] = None

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def problem(self) -> Problem:
        return self._problem

    @property
    def config(self) -> CGConfig:
        return self._config

    @property
    def master(self) -> Optional[MasterProblem]:
        return self._master

    @property
    def pricing(self) -> PricingSubproblem:
        return self._pricing

    @property
    def node_pool(self) -> ColumnPool:
        """Columns owned by this branch node."""
        return self._node_pool

    @property
    def global_pool(self) -> Optional[ColumnPool]:
        return self._global_pool

    @property
    def equality_rows(self) -> frozenset[PortWithType]:
        return self._equality_rows

    @property
    def try_elementary(self) -> bool:
        """Whether pricing may currently go fully elementary."""
        return self._try_elementary

    @property
    def is_solved(self) -> bool:
        return self._is_solved

    @property
    def solution(self) -> Optional[CGSolution]:
        return self._solution

    # =========================================================================
    # Configuration
    # =========================================================================

    def set_pricing(self, pricing: PricingSubproblem) -> None:
        self._pricing = pricing

    def add_callback(self, callback: CGCallback) -> None:
        """
        Add a callback function.

        Callbacks are called after each round with the ColumnGeneration
        instance and round info. Return False to stop the loop.

        Args:
            callback: Function taking (ColumnGeneration, CGIteration) -> bool
        """
        self._callbacks.append(callback)

    def add_initial_columns(self, columns: Iterable[Column]) -> int:
        """
        Seed the node pool.

        Args:
            columns: Columns to add (duplicates are ignored)

        Returns:
            Number of columns actually inserted
        """
        return sum(1 for column in columns if self._node_pool.insert(column))

    # =========================================================================
    # Main Algorithm
    # =========================================================================

    def solve(self) -> CGSolution:
        """
        Run the column generation loop.

        Returns:
            CGSolution with results and statistics

        Raises:
            ValueError: If the pools hold no column
            RuntimeError: If no master is given and HiGHS is not installed
        """
        start_time = time.time()

        self._initialize()

        solution = self._run_column_generation(start_time)

        if self._config.solve_ip and solution.status == CGStatus.CONVERGED:
            self._solve_ip(solution)

        solution.total_time = time.time() - start_time
        self._solution = solution
        self._is_solved = True

        logger.info(
            "Column generation on %s finished: %s after %d rounds, %d columns, %.2fs",
            self._problem.name, solution.status.name, solution.iterations,
            solution.total_columns, solution.total_time,
        )
        return solution

    def _initialize(self) -> None:
        """Create the master if not already set."""
        if self._master is None:
            if not HIGHS_AVAILABLE:
                raise RuntimeError(
                    "HiGHS is not available. Install it with: pip install highspy\n"
                    "Or provide a MasterProblem with a custom backend."
                )
            self._master = MasterProblem(self._problem)

    def _run_column_generation(self, start_time: float) -> CGSolution:
        iteration_history: list[CGIteration] = []
        total_master_time = 0.0
        total_pricing_time = 0.0
        total_exact_time = 0.0

        iteration = 0
        status = CGStatus.CONTINUE
        last_lp: Optional[MPLinearSolution] = None
        last_columns: list[Column] = []

        while status == CGStatus.CONTINUE:
            # Check stopping criteria
            if self._config.max_iterations > 0 and iteration >= self._config.max_iterations:
                status = CGStatus.ITERATION_LIMIT
                logger.warning("Stopping after %d rounds: iteration limit", iteration)
                break

            elapsed = time.time() - start_time
            if self._config.max_time > 0 and elapsed >= self._config.max_time:
                status = CGStatus.TIME_LIMIT
                logger.warning("Stopping after %.1fs: time limit", elapsed)
                break

            iteration += 1

            # Solve master problem
            columns = merge_pools(self._global_pool, self._node_pool)
            master_start = time.time()
            try:
                lp = self._master.solve_lp(columns, self._equality_rows)
            except InfeasibleMasterError as e:
                total_master_time += time.time() - master_start
                status = CGStatus.INFEASIBLE
                logger.info("Round %d: master problem infeasible (%s)", iteration, e)
                break
            master_time = time.time() - master_start
            total_master_time += master_time

            last_lp = lp
            last_columns = columns

            # Solve pricing problem
            pricing_start = time.time()
            self._pricing.set_duals(lp)
            result = self._price()
            pricing_time = time.time() - pricing_start
            total_pricing_time += pricing_time
            total_exact_time += result.exact_time

            if result.columns_added == 0:
                status = CGStatus.CONVERGED

            iter_info = CGIteration(
                iteration=iteration,
                master_objective=lp.objective_value,
                num_columns_added=result.columns_added,
                origin=result.origin,
                try_elementary=self._try_elementary,
                master_time=master_time,
                pricing_time=pricing_time,
                exact_time=result.exact_time,
                total_columns=len(columns) + result.columns_added,
                report=result.report,
            )
            iteration_history.append(iter_info)

            logger.info(
                "Round %d: obj=%.4f, added=%d (%s), elementary=%s, total=%d",
                iteration, lp.objective_value, result.columns_added,
                result.origin.name, self._try_elementary, iter_info.total_columns,
            )

            if not self._invoke_callbacks(iter_info) and status == CGStatus.CONTINUE:
                logger.info("Round %d: stopped by callback", iteration)
                break

        return CGSolution(
            status=status,
            lp_objective=last_lp.objective_value if last_lp is not None else None,
            lp_solution=last_lp,
            columns=last_columns,
            total_columns=len(last_columns),
            iterations=iteration,
            master_time=total_master_time,
            pricing_time=total_pricing_time,
            exact_time=total_exact_time,
            iteration_history=iteration_history,
        )

    def _price(self) -> PricingResult:
        """One pricing round, escalating to elementary pricing if it finds nothing."""
        result = self._pricing.solve(self._node_pool, self._global_pool, self._try_elementary)
        logger.debug("Pricing: %s", result.report.summary())

        if result.columns_added == 0 and not self._try_elementary:
            logger.debug("No column with relaxed elementarity, trying elementary pricing")
            self._try_elementary = True
            relaxed = result
            result = self._pricing.solve(self._node_pool, self._global_pool, True)
            result.exact_time += relaxed.exact_time
            result.report.merge(relaxed.report)
            logger.debug("Elementary pricing: %s", result.report.summary())

        return result

    def _solve_ip(self, solution: CGSolution) -> None:
        """Solve the MIP over the final pool and store it in the solution."""
        ip_start = time.time()
        try:
            ip = self._master.solve_mip(solution.columns, self._equality_rows)
        except InfeasibleMasterError as e:
            logger.warning("MIP over the final pool failed: %s", e)
            return
        finally:
            solution.master_time += time.time() - ip_start

        solution.ip_solution = ip
        solution.ip_objective = ip.objective_value
        logger.info("MIP objective: %.4f", ip.objective_value)

    def _invoke_callbacks(self, iteration: CGIteration) -> bool:
        """
        Invoke all callbacks.

        Returns:
            True to continue, False to stop
        """
        for callback in self._callbacks:
            if not callback(self, iteration):
                return False
        return True

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def get_iteration_history(self) -> list[CGIteration]:
        if self._solution is None:
            return []
        return self._solution.iteration_history

    def summary(self) -> str:
        lines = [
            f"ColumnGeneration: {self._problem.name}",
            "  Config:",
            f"    Max iterations: {self._config.max_iterations}",
            f"    Max time: {self._config.max_time}s",
            f"    Solve IP: {self._config.solve_ip}",
            f"    Equality rows: {len(self._equality_rows)}",
        ]

        if self._is_solved and self._solution:
            lines.extend([
                "",
                self._solution.summary(),
            ])
        else:
            lines.append("\n  Status: Not yet solved")

        return "\n".join(lines)

    def __repr__(self) -> str:
        status = "solved" if self._is_solved else "not solved"
        return f"ColumnGeneration(problem={self._problem.name!r}, {status})"
