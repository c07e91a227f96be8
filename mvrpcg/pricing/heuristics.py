"""
Heuristic pricing - quick route generators run before the exact phase.

Two generators run on every vessel-class graph:

1. TruncatedLabeling: elementary labeling that keeps only the best labels
   at each vertex and stops after a few routes reach SINK.
2. Randomized greedy construction: starting at SOURCE, repeatedly pick one
   of the cheapest feasible extensions (restricted candidate list) until
   SINK is chosen.

Neither is guaranteed to find a negative reduced cost route when one
exists. When both come back empty the exact phase takes over.
"""

import logging
import random
from collections.abc import Mapping
from typing import Optional

from mvrpcg.core.graph import SINK, SOURCE, GraphMap, Vertex, VesselGraph
from mvrpcg.core.node import Node
from mvrpcg.core.port import PortWithType, VesselClass
from mvrpcg.core.problem import Problem
from mvrpcg.core.route import Route
from mvrpcg.pricing.base import PricingConfig
from mvrpcg.pricing.label import Label
from mvrpcg.pricing.labeling import PartialElementaryLabeling

logger = logging.getLogger(__name__)


class TruncatedLabeling(PartialElementaryLabeling):
    """
    Elementary labeling with aggressive pruning.

    Strategies:
    - Every row is critical, so all routes found are elementary
    - Limit labels per vertex
    - Early termination when enough routes reached SINK
    """

    def __init__(
        self,
        graph: VesselGraph,
        prizes: Mapping[PortWithType, float],
        vc_dual: float = 0.0,
        max_labels_per_node: int = 10,
        early_termination_count: int = 10,
        max_columns: int = 0,
    ):
        super().__init__(
            graph,
            prizes,
            vc_dual=vc_dual,
            critical_rows=frozenset(prizes),
            max_columns=max_columns,
            max_labels_per_node=max_labels_per_node,
        )
        self._early_termination_count = early_termination_count
        self._sink_hits = 0

    def solve(self) -> list[Route]:
        self._sink_hits = 0
        return super().solve()

    def _should_stop(self, label: Label) -> bool:
        if label.vertex is SINK and label.reduced_cost < 0.0:
            self._sink_hits += 1
        return (
            self._early_termination_count > 0
            and self._sink_hits >= self._early_termination_count
        )


class HeuristicsSolver:
    """
    Runs the heuristic generators on every graph of a branch node.

    Example:
        >>> heuristics = HeuristicsSolver(problem, graphs, PricingConfig(seed=1))
        >>> routes = heuristics.solve(prizes, vc_duals)
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
        self._rng = random.Random(self._config.seed)

    def solve(
        self,
        prizes: Mapping[PortWithType, float],
        vc_duals: Mapping[VesselClass, float],
    ) -> list[Route]:
        """
        Generate candidate routes on every graph.

        Args:
            prizes: Penalty plus dual of every row
            vc_duals: Dual of every vessel-class row

        Returns:
            Candidate routes (may contain duplicates)
        """
        routes: list[Route] = []
        for vessel_class, graph in self._graphs.items():
            vc_dual = vc_duals.get(vessel_class, 0.0)

            labeling = TruncatedLabeling(
                graph,
                prizes,
                vc_dual=vc_dual,
                max_labels_per_node=self._config.heuristic_max_labels_per_node,
                early_termination_count=self._config.heuristic_early_termination,
                max_columns=self._config.max_columns_per_graph,
            )
            found = labeling.solve()

            for _ in range(self._config.greedy_iterations):
                route = self.construct_greedy(graph, prizes, vc_dual)
                if route is not None:
                    found.append(route)

            logger.debug("Heuristics on %s: %d candidate routes", vessel_class.name, len(found))
            routes.extend(found)
        return routes

    def construct_greedy(
        self,
        graph: VesselGraph,
        prizes: Mapping[PortWithType, float],
        vc_dual: float = 0.0,
    ) -> Optional[Route]:
        """
        Build one route by randomized greedy extension.

        Returns:
            The route if it reached SINK with negative reduced cost, else None
        """
        capacity = graph.vessel_class.capacity
        reduced_cost = graph.vessel_class.fixed_cost - vc_dual
        sailing_cost = 0.0
        delivered = balance = peak = 0.0
        visited: set[PortWithType] = set()
        nodes: list[Node] = []
        current: Vertex = SOURCE

        while current is not SINK:
            candidates = []
            for target, cost in graph.successors(current):
                if target is SINK:
                    candidates.append((cost, target, cost))
                    continue
                if not isinstance(target, Node) or target.row_key in visited:
                    continue
                new_balance = balance + target.pickup_demand - target.delivery_demand
                new_peak = max(peak, new_balance)
                if delivered + target.delivery_demand + new_peak > capacity + 1e-9:
                    continue
                arc_rc = cost - prizes.get(target.row_key, 0.0)
                candidates.append((arc_rc, target, cost))

            if not candidates:
                return None

            candidates.sort(key=lambda c: c[0])
            arc_rc, target, cost = self._rng.choice(
                candidates[:max(1, self._config.greedy_candidates)]
            )

            reduced_cost += arc_rc
            sailing_cost += cost
            if isinstance(target, Node):
                visited.add(target.row_key)
                nodes.append(target)
                delivered += target.delivery_demand
                balance += target.pickup_demand - target.delivery_demand
                peak = max(peak, balance)
            current = target

        if reduced_cost >= 0.0:
            return None
        return Route(graph.vessel_class, tuple(nodes), sailing_cost)
