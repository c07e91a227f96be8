"""
Node module - a port visit in the time-expanded network.

A node is a (port, pickup type, time step) triple. Two nodes on the same port
with the same pickup type fall on the same master-problem row regardless of
their time step; this is what elementarity is measured against.
"""

from dataclasses import dataclass

from mvrpcg.core.port import PickupType, Port, PortWithType


@dataclass(frozen=True)
class Node:
    """
    A visit to a port at a given time step.

    Attributes:
        port: The visited port (shared reference)
        pickup_type: Whether the visit picks up or delivers
        time_step: Time step of the visit

    Example:
        >>> a = Node(port, PickupType.PICKUP, 3)
        >>> b = Node(port, PickupType.PICKUP, 7)
        >>> a.same_row_as(b), a == b
        (True, False)
    """
    port: Port
    pickup_type: PickupType
    time_step: int

    @property
    def pickup_demand(self) -> float:
        """Port pickup demand for a pickup node, 0 otherwise."""
        if self.pickup_type is PickupType.PICKUP:
            return self.port.pickup_demand
        return 0.0

    @property
    def delivery_demand(self) -> float:
        """Port delivery demand for a delivery node, 0 otherwise."""
        if self.pickup_type is PickupType.DELIVERY:
            return self.port.delivery_demand
        return 0.0

    @property
    def demand(self) -> float:
        return self.port.demand(self.pickup_type)

    @property
    def penalty(self) -> float:
        return self.port.penalty(self.pickup_type)

    @property
    def row_key(self) -> PortWithType:
        """The master row this visit contributes to."""
        return PortWithType(self.port, self.pickup_type)

    def same_row_as(self, other: 'Node') -> bool:
        """True if both nodes visit the same port with the same pickup type."""
        return other.port is self.port and other.pickup_type is self.pickup_type

    def __repr__(self) -> str:
        return (
            f"[{self.port.name}, {self.pickup_type.short_name}, {self.time_step}, "
            f"dem: {self.demand}]"
        )
