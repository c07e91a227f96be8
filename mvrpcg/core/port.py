"""
Port module - the static problem data shared by every component.

A feeder network has one hub port (the reference port) and a set of feeder
ports. Vessels leave the hub loaded with the cargo to deliver, visit feeder
ports to deliver and pick up, and return to the hub. Any port-type left
unserved costs its penalty.

This module provides:
- PickupType: Whether a visit picks cargo up or delivers it
- Port: A port with demands and penalties
- VesselClass: A class of vessels with fleet size and costs
- PortWithType: A (port, pickup type) pair, the key of a master row

Design Notes:
------------
- Ports and vessel classes are created once and shared by reference
- They compare and hash by identity: two ports with the same numbers are
  still two different ports
"""

from dataclasses import dataclass
from enum import Enum, auto


class PickupType(Enum):
    """Type of a port visit."""
    PICKUP = auto()
    DELIVERY = auto()

    @property
    def short_name(self) -> str:
        """Two-letter tag used in reports ('pu' or 'de')."""
        return "pu" if self is PickupType.PICKUP else "de"


@dataclass(frozen=True, eq=False)
class Port:
    """
    A port of the network.

    Attributes:
        name: Unique port name
        pickup_demand: Cargo to pick up at this port
        delivery_demand: Cargo to deliver to this port
        pickup_penalty: Cost incurred if the pickup is not served
        delivery_penalty: Cost incurred if the delivery is not served

    Example:
        >>> hub = Port("HUB")
        >>> feeder = Port("F1", pickup_demand=10, delivery_demand=5,
        ...               pickup_penalty=100.0, delivery_penalty=80.0)
        >>> feeder.demand(PickupType.PICKUP)
        10
    """
    name: str
    pickup_demand: float = 0.0
    delivery_demand: float = 0.0
    pickup_penalty: float = 0.0
    delivery_penalty: float = 0.0

    def demand(self, pickup_type: PickupType) -> float:
        """Demand of the given type."""
        if pickup_type is PickupType.PICKUP:
            return self.pickup_demand
        return self.delivery_demand

    def penalty(self, pickup_type: PickupType) -> float:
        """Penalty paid when the given type is left unserved."""
        if pickup_type is PickupType.PICKUP:
            return self.pickup_penalty
        return self.delivery_penalty

    @property
    def total_penalty(self) -> float:
        return self.pickup_penalty + self.delivery_penalty

    def __repr__(self) -> str:
        return f"Port({self.name!r})"


@dataclass(frozen=True, eq=False)
class VesselClass:
    """
    A class of identical vessels.

    Attributes:
        name: Unique class name
        capacity: Cargo capacity of one vessel
        num_vessels: Fleet size (max vessels of this class used at once)
        fixed_cost: Time-charter cost paid for every route sailed
        cost_per_step: Sailing cost per time step
    """
    name: str
    capacity: float
    num_vessels: int = 1
    fixed_cost: float = 0.0
    cost_per_step: float = 1.0

    def __repr__(self) -> str:
        return f"VesselClass({self.name!r}, capacity={self.capacity}, vessels={self.num_vessels})"


@dataclass(frozen=True)
class PortWithType:
    """
    A (port, pickup type) pair.

    This identifies one master-problem row. A set of these also describes the
    branching decisions of a branch-and-price node: every pair in the set must
    be served exactly once.
    """
    port: Port
    pickup_type: PickupType

    def __repr__(self) -> str:
        return f"({self.port.name}, {self.pickup_type.short_name})"
