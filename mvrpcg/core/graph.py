"""
Graph module - the per-vessel-class constraint graph used by pricing.

Every vessel class sails on its own time-expanded graph: one vertex per
(feeder port, pickup type, time step) plus two sentinels, SOURCE (leaving the
hub) and SINK (returning to the hub). A route is a SOURCE -> SINK path.

Branching decisions other than equality rows (arc or node exclusions) are
applied by mutating a branch node's own copy of the graph.

Design Notes:
------------
- The graph is stored in a networkx DiGraph; arcs carry a 'cost' attribute
- Time strictly increases along every arc, so the graph is acyclic and
  any labeling over it terminates, elementary or not
- Pricing only uses the query methods (successors, arc_cost); it never
  touches the networkx object directly
"""

from collections.abc import Iterable, Mapping
from typing import Union

import networkx as nx

from mvrpcg.core.node import Node
from mvrpcg.core.port import PickupType, VesselClass


class _Terminal:
    """Hub departure / return sentinel."""

    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


SOURCE = _Terminal("SOURCE")
SINK = _Terminal("SINK")

Vertex = Union[Node, _Terminal]


class VesselGraph:
    """
    Constraint graph of one vessel class.

    Example:
        >>> graph = VesselGraph(vessel_class)
        >>> graph.add_arc(SOURCE, node_a, cost=3.0)
        >>> graph.add_arc(node_a, SINK, cost=3.0)
        >>> list(graph.successors(SOURCE))
        [([F1, de, 2, dem: 5], 3.0)]
    """

    def __init__(self, vessel_class: VesselClass):
        self._vessel_class = vessel_class
        self._graph = nx.DiGraph()
        self._graph.add_node(SOURCE)
        self._graph.add_node(SINK)

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def time_expanded(
        cls,
        problem,
        vessel_class: VesselClass,
        travel_steps: Mapping[tuple[str, str], int],
        horizon: int,
    ) -> 'VesselGraph':
        """
        Build the time-expanded graph of a vessel class.

        Args:
            problem: The Problem instance (ports[0] is the hub)
            vessel_class: Class sailing on this graph
            travel_steps: Sailing time in steps between two port names;
                looked up in both directions, missing pairs are not connected
                (a port to itself is always 0)
            horizon: Last time step a vessel may be back at the hub

        Returns:
            The graph
        """
        graph = cls(vessel_class)
        hub = problem.reference_port

        def travel(a, b):
            if a is b:
                return 0
            steps = travel_steps.get((a.name, b.name))
            if steps is None:
                steps = travel_steps.get((b.name, a.name))
            return steps

        nodes = [
            Node(port, pickup_type, t)
            for port in problem.feeder_ports
            for pickup_type in (PickupType.DELIVERY, PickupType.PICKUP)
            for t in range(1, horizon + 1)
        ]
        for node in nodes:
            graph.add_node(node)

        for node in nodes:
            out_steps = travel(hub, node.port)
            if out_steps is not None and node.time_step >= out_steps:
                graph.add_arc(SOURCE, node, out_steps * vessel_class.cost_per_step)

            back_steps = travel(node.port, hub)
            if back_steps is not None and node.time_step + back_steps <= horizon:
                graph.add_arc(node, SINK, back_steps * vessel_class.cost_per_step)

        for u in nodes:
            for v in nodes:
                if u.same_row_as(v):
                    continue
                steps = travel(u.port, v.port)
                if steps is None:
                    continue
                if v.time_step >= u.time_step + max(1, steps):
                    graph.add_arc(u, v, steps * vessel_class.cost_per_step)

        return graph

    def add_node(self, node: Node) -> None:
        self._graph.add_node(node)

    def add_arc(self, source: Vertex, target: Vertex, cost: float = 0.0) -> None:
        """
        Add an arc.

        Raises:
            ValueError: If the arc goes back in time, into SOURCE, or out of SINK
        """
        if target is SOURCE or source is SINK:
            raise ValueError("Arcs cannot enter SOURCE or leave SINK")
        if isinstance(source, Node) and isinstance(target, Node):
            if target.time_step <= source.time_step:
                raise ValueError(f"Arc {source} -> {target} does not move forward in time")
        self._graph.add_edge(source, target, cost=cost)

    # =========================================================================
    # Branching-side mutation
    # =========================================================================

    def remove_arc(self, source: Vertex, target: Vertex) -> bool:
        """Remove an arc; returns False if it was not there."""
        if not self._graph.has_edge(source, target):
            return False
        self._graph.remove_edge(source, target)
        return True

    def remove_node(self, node: Node) -> bool:
        """Remove a visit and all its arcs; returns False if it was not there."""
        if node is SOURCE or node is SINK:
            raise ValueError("Cannot remove SOURCE or SINK")
        if node not in self._graph:
            return False
        self._graph.remove_node(node)
        return True

    def copy(self) -> 'VesselGraph':
        """Independent copy, for a child branch node."""
        other = VesselGraph(self._vessel_class)
        other._graph = self._graph.copy()
        return other

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def vessel_class(self) -> VesselClass:
        return self._vessel_class

    @property
    def num_nodes(self) -> int:
        """Number of visit nodes (sentinels excluded)."""
        return self._graph.number_of_nodes() - 2

    @property
    def num_arcs(self) -> int:
        return self._graph.number_of_edges()

    def nodes(self) -> Iterable[Node]:
        """Visit nodes (sentinels excluded)."""
        return (n for n in self._graph.nodes if isinstance(n, Node))

    def successors(self, vertex: Vertex) -> list[tuple[Vertex, float]]:
        """Feasible extensions of a partial route ending at `vertex`."""
        return [
            (target, data['cost'])
            for target, data in self._graph.adj[vertex].items()
        ]

    def arc_cost(self, source: Vertex, target: Vertex) -> float:
        """
        Cost of an arc.

        Raises:
            KeyError: If the arc does not exist
        """
        if not self._graph.has_edge(source, target):
            raise KeyError(f"No arc {source} -> {target}")
        return self._graph.edges[source, target]['cost']

    def has_arc(self, source: Vertex, target: Vertex) -> bool:
        return self._graph.has_edge(source, target)

    def path_cost(self, nodes: Iterable[Node]) -> float:
        """
        Sailing cost of SOURCE -> nodes... -> SINK.

        Raises:
            KeyError: If an arc along the path does not exist
        """
        path = [SOURCE, *nodes, SINK]
        return sum(self.arc_cost(u, v) for u, v in zip(path, path[1:]))

    def __repr__(self) -> str:
        return (
            f"VesselGraph({self._vessel_class.name!r}, "
            f"nodes={self.num_nodes}, arcs={self.num_arcs})"
        )


GraphMap = dict[VesselClass, VesselGraph]


def copy_graph_map(graphs: GraphMap) -> GraphMap:
    """Copy every graph of a branch node, for a child node."""
    return {vc: graph.copy() for vc, graph in graphs.items()}
