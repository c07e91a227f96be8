"""
Route module - a sequence of port visits sailed by one vessel.

The vessel leaves the hub carrying every delivery of the route, so its load
at departure is the total delivered demand. Each delivery unloads cargo and
each pickup loads cargo; the vessel is over capacity if the load exceeds the
class capacity at any point of the route.
"""

from collections import Counter
from dataclasses import dataclass

from mvrpcg.core.node import Node
from mvrpcg.core.port import PortWithType, VesselClass


@dataclass(frozen=True)
class Route:
    """
    A route sailed by a vessel of a given class.

    The hub departure and return are implicit: `nodes` only holds the feeder
    visits, in sailing order.

    Attributes:
        vessel_class: Class of the vessel sailing the route
        nodes: Visited nodes, in order
        sailing_cost: Sum of the arc costs along the route
    """
    vessel_class: VesselClass
    nodes: tuple[Node, ...]
    sailing_cost: float = 0.0

    def __post_init__(self):
        if not isinstance(self.nodes, tuple):
            object.__setattr__(self, 'nodes', tuple(self.nodes))

    # =========================================================================
    # Cost and demand
    # =========================================================================

    @property
    def cost(self) -> float:
        """Charter cost plus sailing cost."""
        return self.vessel_class.fixed_cost + self.sailing_cost

    @property
    def collected_penalty(self) -> float:
        """Penalties avoided by serving the visited port-types."""
        return sum(node.penalty for node in self.nodes)

    @property
    def delivered_demand(self) -> float:
        return sum(node.delivery_demand for node in self.nodes)

    @property
    def picked_up_demand(self) -> float:
        return sum(node.pickup_demand for node in self.nodes)

    @property
    def max_load(self) -> float:
        """Highest load carried at any point, hub departure included."""
        load = self.delivered_demand
        peak = load
        for node in self.nodes:
            load += node.pickup_demand - node.delivery_demand
            peak = max(peak, load)
        return peak

    # =========================================================================
    # Feasibility
    # =========================================================================

    def repeated_rows(self) -> set[PortWithType]:
        """Port-types visited more than once."""
        counts = Counter(node.row_key for node in self.nodes)
        return {key for key, count in counts.items() if count > 1}

    @property
    def is_elementary(self) -> bool:
        return not self.repeated_rows()

    @property
    def is_capacity_feasible(self) -> bool:
        return self.max_load <= self.vessel_class.capacity + 1e-9

    @property
    def is_time_feasible(self) -> bool:
        steps = [node.time_step for node in self.nodes]
        return all(a < b for a, b in zip(steps, steps[1:]))

    @property
    def is_feasible(self) -> bool:
        return self.is_elementary and self.is_capacity_feasible and self.is_time_feasible

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        path = " -> ".join(repr(n) for n in self.nodes)
        return f"Route({self.vessel_class.name}, cost={self.cost:.2f}: {path or 'empty'})"
