"""
Pricing subproblem of one branch node.

One call to solve() is one pricing round:

1. Heuristic phase: HeuristicsSolver on every vessel-class graph. If any
   candidate is accepted, the round ends with origin HEURISTIC.
2. Exact phase: PartialElementaryLabeling on every graph, for each level of
   the elementarity schedule until a level accepts a column or the time
   budget runs out. The round ends with origin EXACT.

Acceptance Filter:
-----------------
Every candidate route goes through the same checks, in order:

    infeasible route (repeats a row, over capacity, time)  -> discarded_infeasible
    reduced cost >= -tolerance                             -> discarded_prc
    already accepted earlier in this round                 -> discarded_generated
    already in the node pool or the global pool            -> discarded_in_pool
    otherwise                                              -> accepted

Accepted columns go into the node pool only; the global pool is read-only
here.

Critical Rows:
-------------
At level pct the exact phase enforces elementarity on the top
ceil(pct * rows) rows, ranked first by having been repeated in a route
discarded earlier in the round, then by prize.
"""

import logging
import math
import time
from typing import Optional

from mvrpcg.core.column import Column, ColumnOrigin, ColumnPool
from mvrpcg.core.graph import GraphMap
from mvrpcg.core.port import PortWithType, VesselClass
from mvrpcg.core.problem import Problem
from mvrpcg.core.route import Route
from mvrpcg.master.solution import MPLinearSolution
from mvrpcg.pricing.base import PricingConfig, PricingReport, PricingResult
from mvrpcg.pricing.heuristics import HeuristicsSolver
from mvrpcg.pricing.labeling import PartialElementaryLabeling

logger = logging.getLogger(__name__)


class PricingSubproblem:
    """
    Pricing subproblem over the graphs of a branch node.

    Lifecycle:
    ---------
    1. Create: pricing = PricingSubproblem(problem, graphs)
    2. Set duals: pricing.set_duals(lp_solution)
    3. Solve: result = pricing.solve(node_pool, global_pool, try_elementary)
    4. Repeat 2-3 with the next LP solution

    Attributes:
        problem: The Problem instance
        graphs: Vessel-class graphs owned by the branch node
        config: Pricing configuration
    """

    def __init__(
        self,
        problem: Problem,
        graphs: GraphMap,
        config: Optional[PricingConfig] = None,
    ):
        self._problem = problem
        self._graphs = graphs
        self._config = config or PricingConfig()
        self._heuristics = HeuristicsSolver(problem, graphs, self._config)

        self._solution: Optional[MPLinearSolution] = None
        self._prizes: dict[PortWithType, float] = {}
        self._vc_duals: dict[VesselClass, float] = {}

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def problem(self) -> Problem:
        return self._problem

    @property
    def graphs(self) -> GraphMap:
        return self._graphs

    @property
    def config(self) -> PricingConfig:
        return self._config

    @property
    def prizes(self) -> dict[PortWithType, float]:
        """Penalty plus dual of every row (empty before set_duals)."""
        return dict(self._prizes)

    # =========================================================================
    # Public API
    # =========================================================================

    def set_duals(self, solution: MPLinearSolution) -> None:
        """
        Set the duals of the current LP solution.

        Args:
            solution: LP solution of the restricted master problem
        """
        self._solution = solution
        self._prizes = {
            key: key.port.penalty(key.pickup_type) + solution.port_dual(key.port, key.pickup_type)
            for key in self._problem.row_index
        }
        self._vc_duals = {
            vc: solution.vc_dual(vc) for vc in self._problem.vessel_classes
        }

    def solve(
        self,
        node_pool: ColumnPool,
        global_pool: Optional[ColumnPool] = None,
        try_elementary: bool = False,
    ) -> PricingResult:
        """
        Run one pricing round.

        Args:
            node_pool: Pool of the branch node, receives the accepted columns
            global_pool: Pool shared by all branch nodes (read only)
            try_elementary: Let the schedule go up to fully elementary

        Returns:
            Number and origin of the added columns, exact-phase time, counters

        Raises:
            RuntimeError: If set_duals() was not called
        """
        if self._solution is None:
            raise RuntimeError("Pricing needs duals: call set_duals() first")

        start_time = time.time()
        report = PricingReport()
        accepted: list[Column] = []
        seen: set[Column] = set()
        repeated: set[PortWithType] = set()

        if self._config.use_heuristics:
            routes = self._heuristics.solve(self._prizes, self._vc_duals)
            added = self._accept(
                routes, ColumnOrigin.HEURISTIC, node_pool, global_pool,
                seen, repeated, report,
            )
            accepted.extend(added)
            logger.debug("Heuristic pricing: %s", report.summary())

            if added:
                return PricingResult(
                    columns_added=len(accepted),
                    origin=ColumnOrigin.HEURISTIC,
                    exact_time=0.0,
                    report=report,
                    columns=accepted,
                )

        exact_start = time.time()
        for pct in self._config.schedule.levels(try_elementary):
            remaining = self._remaining_time(start_time)
            if remaining is not None and remaining <= 0.0:
                logger.debug("Exact pricing out of time before level %.1f", pct)
                break

            critical = self.critical_rows(pct, repeated)
            routes = []
            for vessel_class, graph in self._graphs.items():
                labeling = PartialElementaryLabeling(
                    graph,
                    self._prizes,
                    vc_dual=self._vc_duals.get(vessel_class, 0.0),
                    critical_rows=critical,
                    max_columns=self._config.max_columns_per_graph,
                    max_time=remaining or 0.0,
                )
                routes.extend(labeling.solve())

            added = self._accept(
                routes, ColumnOrigin.EXACT, node_pool, global_pool,
                seen, repeated, report,
            )
            accepted.extend(added)
            logger.debug("Exact pricing at level %.1f: %s", pct, report.summary())

            if added:
                break

        return PricingResult(
            columns_added=len(accepted),
            origin=ColumnOrigin.EXACT,
            exact_time=time.time() - exact_start,
            report=report,
            columns=accepted,
        )

    def critical_rows(
        self,
        pct: float,
        repeated: frozenset[PortWithType] = frozenset(),
    ) -> frozenset[PortWithType]:
        """
        Rows on which elementarity is enforced at a schedule level.

        Args:
            pct: Schedule level, fraction of all rows
            repeated: Rows repeated by routes discarded earlier in the round

        Returns:
            The top ceil(pct * rows) rows
        """
        rows = list(self._problem.row_index)
        count = min(len(rows), math.ceil(round(pct * len(rows), 9)))
        ranked = sorted(
            rows,
            key=lambda key: (key not in repeated, -self._prizes.get(key, 0.0)),
        )
        return frozenset(ranked[:count])

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _accept(
        self,
        routes: list[Route],
        origin: ColumnOrigin,
        node_pool: ColumnPool,
        global_pool: Optional[ColumnPool],
        seen: set[Column],
        repeated: set[PortWithType],
        report: PricingReport,
    ) -> list[Column]:
        """Run the acceptance filter; insert accepted columns into node_pool."""
        tolerance = self._config.reduced_cost_tolerance
        added = []

        for route in routes:
            if not route.is_feasible:
                report.discarded_infeasible += 1
                repeated.update(route.repeated_rows())
                continue

            column = Column.from_route(route, self._problem, origin)
            if column.reduced_cost(self._solution, self._problem) >= -tolerance:
                report.discarded_prc += 1
            elif column in seen:
                # Accepted columns are already in node_pool, so check them first
                report.discarded_generated += 1
            elif column in node_pool or (global_pool is not None and column in global_pool):
                report.discarded_in_pool += 1
            else:
                seen.add(column)
                node_pool.insert(column)
                report.accepted += 1
                added.append(column)

        return added

    def _remaining_time(self, start_time: float) -> Optional[float]:
        if self._config.max_time <= 0:
            return None
        return self._config.max_time - (time.time() - start_time)

    def __repr__(self) -> str:
        return (
            f"PricingSubproblem(problem={self._problem.name!r}, "
            f"graphs={len(self._graphs)})"
        )
