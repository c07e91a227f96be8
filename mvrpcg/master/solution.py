"""
Master problem solution module.

This module defines the data structures returned by the master problem
oracle: the LP solution (objective, duals, primal values) and the MIP
solution (objective, 0/1 values). Every per-column array is indexed in the
order the columns were given to the oracle.
"""

from dataclasses import dataclass, field
from enum import Enum, auto

from mvrpcg.core.port import PickupType, Port, VesselClass


class SolutionStatus(Enum):
    """
    Status reported by an LP/MIP backend.

    These statuses cover both LP and MIP solving outcomes.
    """
    OPTIMAL = auto()           # Optimal solution found
    INFEASIBLE = auto()        # Problem is infeasible
    UNBOUNDED = auto()         # Problem is unbounded
    INF_OR_UNBOUNDED = auto()  # Infeasible or unbounded (solver couldn't determine)
    TIME_LIMIT = auto()        # Time limit reached
    ITERATION_LIMIT = auto()   # Iteration limit reached
    NOT_SOLVED = auto()        # Solve not called yet
    ERROR = auto()             # Solver error occurred


@dataclass
class MPLinearSolution:
    """
    Solution of the LP relaxation of the restricted master problem.

    Attributes:
        objective_value: Objective value, penalty constant included
        port_duals: port -> (pickup row dual, delivery row dual)
        vc_duals: vessel class -> capacity row dual
        variables: Primal value of every column, in column order
        status: Backend status (always OPTIMAL when returned by the oracle)
        solve_time: Time spent in the backend, in seconds

    Example:
        >>> lp = master.solve_lp(columns, equality_rows=set())
        >>> lp.port_dual(port, PickupType.PICKUP)
        -12.5
    """
    objective_value: float
    port_duals: dict[Port, tuple[float, float]] = field(default_factory=dict)
    vc_duals: dict[VesselClass, float] = field(default_factory=dict)
    variables: list[float] = field(default_factory=list)
    status: SolutionStatus = SolutionStatus.OPTIMAL
    solve_time: float = 0.0

    def port_dual(self, port: Port, pickup_type: PickupType) -> float:
        """Dual of a port row (0 for ports without rows)."""
        pickup_dual, delivery_dual = self.port_duals.get(port, (0.0, 0.0))
        return pickup_dual if pickup_type is PickupType.PICKUP else delivery_dual

    def vc_dual(self, vessel_class: VesselClass) -> float:
        return self.vc_duals.get(vessel_class, 0.0)

    def active_columns(self, tol: float = 1e-6) -> list[int]:
        """Indices of columns with a positive value."""
        return [i for i, value in enumerate(self.variables) if value > tol]

    def fractional_columns(self, tol: float = 1e-6) -> list[int]:
        """Indices of columns with a fractional value, useful for branching."""
        return [
            i for i, value in enumerate(self.variables)
            if value > tol and abs(value - round(value)) > tol
        ]

    @property
    def is_integer(self) -> bool:
        return not self.fractional_columns()

    def summary(self) -> str:
        lines = [
            "MPLinearSolution:",
            f"  Status: {self.status.name}",
            f"  Objective: {self.objective_value:.6f}",
            f"  Active columns: {len(self.active_columns())} / {len(self.variables)}",
            f"  Solve time: {self.solve_time:.3f}s",
        ]
        if not self.is_integer:
            lines.append(f"  Fractional columns: {len(self.fractional_columns())}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"MPLinearSolution(obj={self.objective_value:.4f}, columns={len(self.variables)})"


@dataclass
class MPIntegerSolution:
    """
    Solution of the restricted master problem with binary columns.

    Attributes:
        objective_value: Objective value, penalty constant included
        variables: 0/1 value of every column, in column order
        status: Backend status
        solve_time: Time spent in the backend, in seconds
    """
    objective_value: float
    variables: list[float] = field(default_factory=list)
    status: SolutionStatus = SolutionStatus.OPTIMAL
    solve_time: float = 0.0

    def selected_columns(self, tol: float = 1e-6) -> list[int]:
        """Indices of the columns set to 1."""
        return [i for i, value in enumerate(self.variables) if value > 1 - tol]

    def __repr__(self) -> str:
        return (
            f"MPIntegerSolution(obj={self.objective_value:.4f}, "
            f"selected={len(self.selected_columns())})"
        )
