"""
Label module for the route labeling algorithms.

A label is a partial route from SOURCE to some vertex of a vessel-class
graph. Each label tracks:
- The reduced cost and sailing cost so far
- The load resources (delivered demand, load balance, peak balance)
- The critical rows already visited (for partial elementarity)

Load Resources:
--------------
The vessel leaves the hub with every delivery of the route on board. With
`delivered` the deliveries made so far and `balance` the cargo picked up
minus the cargo delivered so far, the load after a visit is

    total_delivered + balance

so the highest load of the whole route is total_delivered + peak, where peak
is the largest balance seen (never below 0, the departure). A label is
extended only while delivered + peak fits the capacity; the bound is exact
once the label reaches SINK.

Design Notes:
------------
- Labels are immutable once created
- Each label knows its predecessor for route reconstruction
- Dominance needs every resource to be no worse and the visited critical
  rows to be a subset
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from mvrpcg.core.graph import Vertex
from mvrpcg.core.node import Node
from mvrpcg.core.port import PortWithType


@dataclass(frozen=True, eq=False)
class Label:
    """
    A partial route in a vessel-class graph.

    Attributes:
        vertex: Vertex this label is at
        reduced_cost: Reduced cost of the partial route
        cost: Sailing cost of the partial route
        delivered: Delivery demand served so far
        balance: Pickups minus deliveries so far
        peak: Highest balance so far (at least 0)
        critical_visited: Critical rows visited so far
        predecessor: Previous label (None for the source label)
        label_id: Creation order, used to break ties in the queue
    """
    vertex: Vertex
    reduced_cost: float
    cost: float = 0.0
    delivered: float = 0.0
    balance: float = 0.0
    peak: float = 0.0
    critical_visited: frozenset[PortWithType] = field(default_factory=frozenset)
    predecessor: Optional['Label'] = None
    label_id: int = 0

    @property
    def is_source_label(self) -> bool:
        return self.predecessor is None

    @property
    def load_bound(self) -> float:
        """Lower bound on the highest load of any completion of this label."""
        return self.delivered + self.peak

    def get_nodes(self) -> tuple[Node, ...]:
        """Visited nodes from SOURCE to this label, sentinels excluded."""
        nodes = []
        label: Optional[Label] = self
        while label is not None:
            if isinstance(label.vertex, Node):
                nodes.append(label.vertex)
            label = label.predecessor
        return tuple(reversed(nodes))

    def dominates(self, other: 'Label', tol: float = 1e-9) -> bool:
        """
        True if every completion of `other` is matched by a completion of self.

        Both labels must be at the same vertex.
        """
        return (
            self.reduced_cost <= other.reduced_cost + tol
            and self.delivered <= other.delivered + tol
            and self.balance <= other.balance + tol
            and self.peak <= other.peak + tol
            and self.critical_visited <= other.critical_visited
        )

    def __repr__(self) -> str:
        return (
            f"Label({self.vertex}, rc={self.reduced_cost:.4f}, "
            f"load={self.load_bound:.1f})"
        )


class LabelPool:
    """
    Non-dominated labels per vertex.

    With `max_labels_per_node` set, a vertex holding that many labels only
    accepts a new one if it beats the worst reduced cost there, which turns
    the exact labeling into a heuristic.
    """

    def __init__(self, max_labels_per_node: int = 0):
        self._labels: dict[Vertex, list[Label]] = {}
        self._max_labels_per_node = max_labels_per_node
        self._removed: set[int] = set()
        self._total_created = 0
        self._total_dominated = 0

    @property
    def total_labels(self) -> int:
        return sum(len(labels) for labels in self._labels.values())

    @property
    def total_created(self) -> int:
        return self._total_created

    @property
    def total_dominated(self) -> int:
        return self._total_dominated

    def get_labels(self, vertex: Vertex) -> list[Label]:
        return list(self._labels.get(vertex, ()))

    def is_active(self, label: Label) -> bool:
        """False once a label was pushed out by a dominating one."""
        return label.label_id not in self._removed

    def add_label(self, label: Label, check_dominance: bool = True) -> bool:
        """
        Add a label unless it is dominated.

        Returns:
            True if the label was added
        """
        self._total_created += 1
        existing = self._labels.setdefault(label.vertex, [])

        if self._max_labels_per_node > 0 and len(existing) >= self._max_labels_per_node:
            worst = max(existing, key=lambda lbl: lbl.reduced_cost)
            if label.reduced_cost >= worst.reduced_cost:
                return False

        if not check_dominance:
            existing.append(label)
            return True

        for other in existing:
            if other.dominates(label):
                self._total_dominated += 1
                return False

        kept = []
        for other in existing:
            if label.dominates(other):
                self._total_dominated += 1
                self._removed.add(other.label_id)
            else:
                kept.append(other)
        kept.append(label)

        if self._max_labels_per_node > 0 and len(kept) > self._max_labels_per_node:
            worst = max(kept, key=lambda lbl: lbl.reduced_cost)
            kept.remove(worst)
            self._removed.add(worst.label_id)

        self._labels[label.vertex] = kept
        return True

    def statistics(self) -> dict[str, Any]:
        return {
            'total_labels': self.total_labels,
            'total_created': self._total_created,
            'total_dominated': self._total_dominated,
            'dominance_rate': (
                self._total_dominated / self._total_created
                if self._total_created > 0 else 0.0
            ),
        }

    def __repr__(self) -> str:
        return f"LabelPool(vertices={len(self._labels)}, labels={self.total_labels})"
