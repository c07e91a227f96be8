"""
Partially elementary labeling for the route pricing problem.

This module implements the mono-directional labeling algorithm run by the
exact pricing phase on one vessel-class graph.

Algorithm Overview:
------------------
1. Create the source label: reduced cost = fixed cost - vessel-class dual
2. While there are labels to extend:
   a. Pop the label with the lowest reduced cost
   b. For each successor of its vertex:
      - Reject the extension if it revisits a critical row
      - Reject it if the load bound exceeds the capacity
      - Check dominance against the labels at the successor
3. Turn the labels at SINK with negative reduced cost into routes

Partial Elementarity:
--------------------
Only the rows in `critical_rows` may not be visited twice. Routes repeating
another row can come out of the search; the caller discards them and uses
the repeated rows to pick the critical rows of the next attempt. With every
row critical the search is elementary. The graph is acyclic, so the search
terminates either way.

References:
----------
- Irnich, S., & Desaulniers, G. (2005). Shortest path problems with resource
  constraints. In Column generation (pp. 33-65). Springer.
- Boland, N., Dethridge, J., & Dumitrescu, I. (2006). Accelerated label
  setting algorithms for the elementary resource constrained shortest path
  problem. Operations Research Letters, 34(1), 58-68.
"""

import heapq
import logging
import time
from collections.abc import Collection, Mapping
from typing import Any, Optional

from mvrpcg.core.graph import SINK, SOURCE, Vertex, VesselGraph
from mvrpcg.core.node import Node
from mvrpcg.core.port import PortWithType
from mvrpcg.core.route import Route
from mvrpcg.pricing.label import Label, LabelPool

logger = logging.getLogger(__name__)


class PartialElementaryLabeling:
    """
    Labeling algorithm with elementarity on a subset of rows.

    Example:
        >>> labeling = PartialElementaryLabeling(
        ...     graph, prizes, vc_dual=lp.vc_dual(vc),
        ...     critical_rows=frozenset(problem.row_index),
        ... )
        >>> for route in labeling.solve():
        ...     print(route)

    Attributes:
        graph: Vessel-class graph to search
        critical_rows: Rows visited at most once
        time_limit_reached: True if the last solve() stopped on max_time
    """

    def __init__(
        self,
        graph: VesselGraph,
        prizes: Mapping[PortWithType, float],
        vc_dual: float = 0.0,
        critical_rows: Collection[PortWithType] = frozenset(),
        max_columns: int = 0,
        max_time: float = 0.0,
        max_labels_per_node: int = 0,
    ):
        """
        Initialize the labeling.

        Args:
            graph: Vessel-class graph to search
            prizes: Penalty plus dual of every row
            vc_dual: Dual of the vessel-class row
            critical_rows: Rows on which elementarity is enforced
            max_columns: Routes to return, best first (0 = all)
            max_time: Time limit in seconds (0 = unlimited)
            max_labels_per_node: Label cap per vertex (0 = unlimited)
        """
        self._graph = graph
        self._prizes = prizes
        self._vc_dual = vc_dual
        self._critical = frozenset(critical_rows)
        self._max_columns = max_columns
        self._max_time = max_time
        self._max_labels_per_node = max_labels_per_node

        self._label_pool: Optional[LabelPool] = None
        self._next_label_id = 0
        self.time_limit_reached = False

    @property
    def graph(self) -> VesselGraph:
        return self._graph

    @property
    def critical_rows(self) -> frozenset[PortWithType]:
        return self._critical

    # =========================================================================
    # Main Algorithm
    # =========================================================================

    def solve(self) -> list[Route]:
        """
        Run the labeling.

        Returns:
            Routes with negative reduced cost, most negative first
        """
        start_time = time.time()
        self.time_limit_reached = False
        self._label_pool = LabelPool(self._max_labels_per_node)
        self._next_label_id = 0

        source_label = self._create_source_label()
        self._label_pool.add_label(source_label, check_dominance=False)

        # Priority queue: (reduced_cost, label_id, label)
        pq: list[tuple[float, int, Label]] = []
        heapq.heappush(pq, (source_label.reduced_cost, source_label.label_id, source_label))

        while pq:
            if self._max_time > 0 and time.time() - start_time >= self._max_time:
                self.time_limit_reached = True
                break

            _, _, label = heapq.heappop(pq)
            if self._should_stop(label):
                break
            if label.vertex is SINK or not self._label_pool.is_active(label):
                continue

            for target, cost in self._graph.successors(label.vertex):
                new_label = self._extend_label(label, target, cost)
                if new_label is None:
                    continue

                if self._label_pool.add_label(new_label):
                    heapq.heappush(pq, (new_label.reduced_cost, new_label.label_id, new_label))

        routes = self._collect_routes()
        logger.debug(
            "Labeling on %s with %d critical rows: %d routes, %d labels, %.3fs",
            self._graph.vessel_class.name, len(self._critical), len(routes),
            self._label_pool.total_created, time.time() - start_time,
        )
        return routes

    def _should_stop(self, label: Label) -> bool:
        """Hook for early termination, checked before extending a label."""
        return False

    def _create_source_label(self) -> Label:
        vessel_class = self._graph.vessel_class
        return Label(
            vertex=SOURCE,
            reduced_cost=vessel_class.fixed_cost - self._vc_dual,
            label_id=self._get_next_label_id(),
        )

    def _extend_label(self, label: Label, target: Vertex, cost: float) -> Optional[Label]:
        """
        Extend a label along an arc.

        Returns:
            New label at target, or None if the extension is infeasible
        """
        if target is SINK:
            return Label(
                vertex=SINK,
                reduced_cost=label.reduced_cost + cost,
                cost=label.cost + cost,
                delivered=label.delivered,
                balance=label.balance,
                peak=label.peak,
                critical_visited=label.critical_visited,
                predecessor=label,
                label_id=self._get_next_label_id(),
            )

        if not isinstance(target, Node):
            return None

        key = target.row_key
        critical_visited = label.critical_visited
        if key in self._critical:
            if key in critical_visited:
                return None
            critical_visited = critical_visited | {key}

        delivered = label.delivered + target.delivery_demand
        balance = label.balance + target.pickup_demand - target.delivery_demand
        peak = max(label.peak, balance)
        if delivered + peak > self._graph.vessel_class.capacity + 1e-9:
            return None

        return Label(
            vertex=target,
            reduced_cost=label.reduced_cost + cost - self._prizes.get(key, 0.0),
            cost=label.cost + cost,
            delivered=delivered,
            balance=balance,
            peak=peak,
            critical_visited=critical_visited,
            predecessor=label,
            label_id=self._get_next_label_id(),
        )

    def _collect_routes(self) -> list[Route]:
        candidates = [
            label for label in self._label_pool.get_labels(SINK)
            if label.reduced_cost < 0.0
        ]
        candidates.sort(key=lambda lbl: lbl.reduced_cost)

        if self._max_columns > 0:
            candidates = candidates[:self._max_columns]

        return [self._create_route(label) for label in candidates]

    def _create_route(self, label: Label) -> Route:
        return Route(
            vessel_class=self._graph.vessel_class,
            nodes=label.get_nodes(),
            sailing_cost=label.cost,
        )

    def _get_next_label_id(self) -> int:
        label_id = self._next_label_id
        self._next_label_id += 1
        return label_id

    def get_label_statistics(self) -> dict[str, Any]:
        """Statistics of the last solve() (empty before the first)."""
        if self._label_pool is None:
            return {}
        return self._label_pool.statistics()
