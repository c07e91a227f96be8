"""
Column module - priced routes and the pools that store them.

A column is a route encoded against the master-problem rows: one coefficient
per port row, one per vessel-class row, and an objective coefficient (route
cost minus the penalties it avoids).

This module provides:
- ColumnOrigin: Which generator produced a column
- Column: The immutable column value object
- ColumnPool: A per-branch-node pool with set semantics
- GlobalColumnPool: A pool shared across branch nodes, safe for threads
- merge_pools: The combined column sequence the master problem reads

Design Notes:
------------
- Two columns are equal when their coefficient vectors and objective
  coefficient are equal; origin and route are ignored. Two different routes
  that serve the same port-types with the same class at the same cost are
  the same column.
- Pools iterate in insertion order, which fixes the variable indices of the
  master problem for one generation round.
"""

import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Optional

from mvrpcg.core.port import PickupType
from mvrpcg.core.route import Route

if TYPE_CHECKING:
    from mvrpcg.core.problem import Problem


class ColumnOrigin(Enum):
    """Generator that produced a column."""
    HEURISTIC = auto()
    EXACT = auto()
    INITIAL = auto()  # Seeded by the caller


@dataclass(frozen=True)
class Column:
    """
    A priced route.

    Attributes:
        obj_coeff: Objective coefficient (route cost - avoided penalties)
        port_coeff: Coefficient per port row, indexed by RowIndex rows
        vc_coeff: Coefficient per vessel-class row
        origin: Generator that produced the column
        route: The route behind the column (for reporting)

    Example:
        >>> column = Column.from_route(route, problem, ColumnOrigin.EXACT)
        >>> column.obj_coeff
        -40.0
        >>> column in pool
        False
    """
    obj_coeff: float
    port_coeff: tuple[float, ...]
    vc_coeff: tuple[float, ...]
    origin: ColumnOrigin = field(default=ColumnOrigin.INITIAL, compare=False)
    route: Optional[Route] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.port_coeff, tuple):
            object.__setattr__(self, 'port_coeff', tuple(self.port_coeff))
        if not isinstance(self.vc_coeff, tuple):
            object.__setattr__(self, 'vc_coeff', tuple(self.vc_coeff))

    @classmethod
    def from_route(
        cls,
        route: Route,
        problem: 'Problem',
        origin: ColumnOrigin,
    ) -> 'Column':
        """
        Encode a route against the master rows of a problem.

        Raises:
            KeyError: If the route visits the hub or a port not in the problem
        """
        row_index = problem.row_index
        port_coeff = [0.0] * len(row_index)
        for node in route.nodes:
            port_coeff[row_index.row_of(node.port, node.pickup_type)] += 1.0

        vc_coeff = [0.0] * problem.num_vessel_classes
        vc_coeff[problem.vessel_class_index(route.vessel_class)] = 1.0

        return cls(
            obj_coeff=route.cost - route.collected_penalty,
            port_coeff=tuple(port_coeff),
            vc_coeff=tuple(vc_coeff),
            origin=origin,
            route=route,
        )

    # =========================================================================
    # Pricing
    # =========================================================================

    def reduced_cost(self, solution, problem: 'Problem') -> float:
        """
        Reduced cost against the duals of an LP solution.

        Args:
            solution: An MPLinearSolution
            problem: The Problem the column was built for

        Returns:
            obj_coeff - sum(port dual * coeff) - sum(class dual * coeff)
        """
        row_index = problem.row_index
        value = self.obj_coeff
        for row, coeff in enumerate(self.port_coeff):
            if coeff:
                key = row_index.key_of(row)
                value -= coeff * solution.port_dual(key.port, key.pickup_type)
        for i, coeff in enumerate(self.vc_coeff):
            if coeff:
                value -= coeff * solution.vc_duals.get(problem.vessel_classes[i], 0.0)
        return value

    # =========================================================================
    # Demand encoding
    # =========================================================================

    def pickup_mass(self, problem: 'Problem') -> float:
        """Pickup demand claimed through the pickup rows."""
        return self._mass(problem, PickupType.PICKUP)

    def delivery_mass(self, problem: 'Problem') -> float:
        """Delivery demand claimed through the delivery rows."""
        return self._mass(problem, PickupType.DELIVERY)

    def _mass(self, problem: 'Problem', pickup_type: PickupType) -> float:
        row_index = problem.row_index
        rows = (
            row_index.pickup_rows() if pickup_type is PickupType.PICKUP
            else row_index.delivery_rows()
        )
        return sum(
            self.port_coeff[row] * row_index.key_of(row).port.demand(pickup_type)
            for row in rows
        )

    @property
    def served_rows(self) -> tuple[int, ...]:
        """Rows with a nonzero coefficient."""
        return tuple(row for row, coeff in enumerate(self.port_coeff) if coeff)

    def __repr__(self) -> str:
        return (
            f"Column(obj={self.obj_coeff:.2f}, rows={list(self.served_rows)}, "
            f"origin={self.origin.name})"
        )


# =============================================================================
# Column Pools
# =============================================================================


class ColumnPool:
    """
    Ordered collection of columns with set semantics.

    Inserting a column equal to one already in the pool does nothing, so
    insertion is idempotent.

    Example:
        >>> pool = ColumnPool()
        >>> pool.insert(column)
        True
        >>> pool.insert(column)
        False
        >>> len(pool)
        1
    """

    def __init__(self, columns: Iterable[Column] = ()):
        self._columns: list[Column] = []
        self._keys: set[Column] = set()
        for column in columns:
            self.insert(column)

    @property
    def size(self) -> int:
        return len(self._columns)

    def contains(self, column: Column) -> bool:
        return column in self._keys

    def insert(self, column: Column) -> bool:
        """
        Add a column unless an equal one is already there.

        Returns:
            True if the column was inserted
        """
        if column in self._keys:
            return False
        self._keys.add(column)
        self._columns.append(column)
        return True

    def iterate(self) -> list[Column]:
        """Columns in insertion order."""
        return list(self._columns)

    def clear(self) -> None:
        self._columns.clear()
        self._keys.clear()

    def count_by_origin(self) -> dict[ColumnOrigin, int]:
        counts = {origin: 0 for origin in ColumnOrigin}
        for column in self.iterate():
            counts[column.origin] += 1
        return counts

    def __contains__(self, column: object) -> bool:
        return column in self._keys

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[Column]:
        return iter(self.iterate())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={self.size})"


class GlobalColumnPool(ColumnPool):
    """
    Column pool shared by branch nodes solved in parallel.

    Lookup and insertion hold a lock, so two nodes discovering the same column
    at the same time still leave a single copy. Iteration returns a snapshot.
    """

    def __init__(self, columns: Iterable[Column] = ()):
        self._lock = threading.Lock()
        super().__init__(columns)

    def contains(self, column: Column) -> bool:
        with self._lock:
            return column in self._keys

    def insert(self, column: Column) -> bool:
        with self._lock:
            if column in self._keys:
                return False
            self._keys.add(column)
            self._columns.append(column)
            return True

    def iterate(self) -> list[Column]:
        with self._lock:
            return list(self._columns)

    def clear(self) -> None:
        with self._lock:
            self._columns.clear()
            self._keys.clear()

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._columns)

    def __contains__(self, column: object) -> bool:
        return self.contains(column)


def merge_pools(
    global_pool: Optional[ColumnPool],
    node_pool: ColumnPool,
) -> list[Column]:
    """
    Combined column sequence for the master problem.

    Global columns come first, then node columns not already in the global
    pool. The order is stable for unchanged pools.
    """
    if global_pool is None:
        return node_pool.iterate()

    merged = global_pool.iterate()
    seen = set(merged)
    for column in node_pool.iterate():
        if column not in seen:
            seen.add(column)
            merged.append(column)
    return merged
