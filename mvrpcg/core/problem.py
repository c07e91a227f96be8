"""
Problem module - the container for a feeder routing instance.

The Problem ties together the ports and the vessel classes, and owns the
RowIndex that fixes which master-problem row belongs to which port-type.

Row Layout:
----------
With N ports, the first port is the hub (reference port) and has no row.
Rows are laid out as:

    rows 0 .. N-2        pickup rows of ports[1] .. ports[N-1]
    rows N-1 .. 2N-3     delivery rows of ports[1] .. ports[N-1]

RowIndex builds this table once. Every lookup goes through the table, so the
row a column writes to and the row a dual is read from can never disagree.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from functools import cached_property
from typing import Optional

from mvrpcg.core.port import PickupType, Port, PortWithType, VesselClass


class RowIndex:
    """
    Bidirectional map between master rows and (port, pickup type) pairs.

    Example:
        >>> index = RowIndex(problem.ports)
        >>> row = index.row_of(port, PickupType.DELIVERY)
        >>> index.key_of(row)
        (F1, de)
    """

    def __init__(self, ports: tuple[Port, ...]):
        if len(ports) < 2:
            raise ValueError("A RowIndex needs the hub and at least one other port")

        self._reference = ports[0]
        feeders = ports[1:]

        self._keys: list[PortWithType] = []
        for port in feeders:
            self._keys.append(PortWithType(port, PickupType.PICKUP))
        for port in feeders:
            self._keys.append(PortWithType(port, PickupType.DELIVERY))

        self._rows: dict[PortWithType, int] = {
            key: row for row, key in enumerate(self._keys)
        }
        self._num_feeders = len(feeders)

    @property
    def reference_port(self) -> Port:
        """The hub, excluded from the rows."""
        return self._reference

    def row_of(self, port: Port, pickup_type: PickupType) -> int:
        """
        Row of a port-type.

        Raises:
            KeyError: If the port has no row (reference port or unknown port)
        """
        return self._rows[PortWithType(port, pickup_type)]

    def row_of_key(self, key: PortWithType) -> int:
        return self._rows[key]

    def key_of(self, row: int) -> PortWithType:
        """
        Port-type of a row.

        Raises:
            IndexError: If the row does not exist
        """
        if row < 0 or row >= len(self._keys):
            raise IndexError(f"Row {row} out of range [0, {len(self._keys)})")
        return self._keys[row]

    def pickup_rows(self) -> range:
        return range(0, self._num_feeders)

    def delivery_rows(self) -> range:
        return range(self._num_feeders, 2 * self._num_feeders)

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[PortWithType]:
        return iter(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._rows

    def __repr__(self) -> str:
        return f"RowIndex(rows={len(self)}, reference={self._reference.name!r})"


@dataclass
class Problem:
    """
    Container for a feeder routing instance.

    The Problem doesn't solve anything. It is passed to the master problem,
    the pricing subproblem and the column generation driver.

    Attributes:
        name: Instance name
        ports: All ports; ports[0] is the hub
        vessel_classes: All vessel classes

    Example:
        >>> hub = Port("HUB")
        >>> f1 = Port("F1", pickup_demand=10, delivery_demand=5,
        ...           pickup_penalty=100.0, delivery_penalty=80.0)
        >>> problem = Problem("tiny", ports=(hub, f1),
        ...                   vessel_classes=(VesselClass("small", capacity=20),))
        >>> len(problem.row_index)
        2
    """
    name: str
    ports: tuple[Port, ...]
    vessel_classes: tuple[VesselClass, ...]

    def __post_init__(self):
        self.ports = tuple(self.ports)
        self.vessel_classes = tuple(self.vessel_classes)

        errors = self.validate()
        if errors:
            raise ValueError(f"Invalid problem {self.name!r}: " + "; ".join(errors))

        self._vc_index: dict[VesselClass, int] = {
            vc: i for i, vc in enumerate(self.vessel_classes)
        }

    def validate(self) -> list[str]:
        """Return a list of problems with the instance data (empty if valid)."""
        errors = []
        if len(self.ports) < 2:
            errors.append("need the hub and at least one feeder port")
        if not self.vessel_classes:
            errors.append("need at least one vessel class")

        port_names = [p.name for p in self.ports]
        if len(set(port_names)) != len(port_names):
            errors.append("port names are not unique")

        vc_names = [vc.name for vc in self.vessel_classes]
        if len(set(vc_names)) != len(vc_names):
            errors.append("vessel class names are not unique")

        for vc in self.vessel_classes:
            if vc.num_vessels < 0:
                errors.append(f"vessel class {vc.name!r} has a negative fleet size")
        return errors

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def num_ports(self) -> int:
        return len(self.ports)

    @property
    def num_vessel_classes(self) -> int:
        return len(self.vessel_classes)

    @property
    def reference_port(self) -> Port:
        """The hub port (has no master row)."""
        return self.ports[0]

    @property
    def feeder_ports(self) -> tuple[Port, ...]:
        return self.ports[1:]

    @property
    def total_penalty(self) -> float:
        """Objective value of serving nothing."""
        return sum(p.total_penalty for p in self.ports)

    @cached_property
    def row_index(self) -> RowIndex:
        return RowIndex(self.ports)

    # =========================================================================
    # Lookups
    # =========================================================================

    def vessel_class_index(self, vessel_class: VesselClass) -> int:
        """
        Position of a vessel class in the vessel-class rows.

        Raises:
            KeyError: If the class does not belong to this problem
        """
        return self._vc_index[vessel_class]

    def get_port(self, name: str) -> Optional[Port]:
        for port in self.ports:
            if port.name == name:
                return port
        return None

    def summary(self) -> str:
        lines = [
            f"Problem: {self.name}",
            f"  Hub: {self.reference_port.name}",
            f"  Feeder ports: {self.num_ports - 1}",
            f"  Vessel classes: {self.num_vessel_classes}",
            f"  Port rows: {len(self.row_index)}",
            f"  Total penalty: {self.total_penalty:.2f}",
        ]
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"Problem({self.name!r}, ports={self.num_ports}, "
            f"vessel_classes={self.num_vessel_classes})"
        )
