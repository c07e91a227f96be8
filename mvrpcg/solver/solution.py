"""
Column generation solution module.

This module defines the data structures for representing the results
of the column generation loop of one branch node.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from mvrpcg.core.column import Column, ColumnOrigin
from mvrpcg.master.solution import MPIntegerSolution, MPLinearSolution
from mvrpcg.pricing.base import PricingReport


class CGStatus(Enum):
    """
    State of the column generation loop.
    """
    CONTINUE = auto()          # Columns were added, another round follows
    CONVERGED = auto()         # No improving column, even fully elementary
    INFEASIBLE = auto()        # Restricted master problem has no solution
    ITERATION_LIMIT = auto()   # Round budget exhausted
    TIME_LIMIT = auto()        # Time budget exhausted


@dataclass
class CGIteration:
    """
    Information about a single column generation round.

    Attributes:
        iteration: Round number (1-based)
        master_objective: LP objective of the round
        num_columns_added: Columns the pricing added
        origin: Pricing phase that produced them
        try_elementary: Whether the pricing was allowed to go fully elementary
        master_time: Time spent on the LP
        pricing_time: Time spent on pricing (both phases)
        exact_time: Time spent in the exact pricing phase
        total_columns: Columns in the merged pool after the round
        report: Pricing counters of the round, both calls when it escalated
    """
    iteration: int
    master_objective: float
    num_columns_added: int
    origin: ColumnOrigin
    try_elementary: bool
    master_time: float
    pricing_time: float
    exact_time: float
    total_columns: int
    report: PricingReport = field(default_factory=PricingReport)


@dataclass
class CGSolution:
    """
    Result of the column generation loop.

    Attributes:
        status: Final state
        lp_objective: Last LP objective (None if no LP was solved)
        ip_objective: MIP objective (if solved)
        lp_solution: Last LP solution
        ip_solution: MIP solution over the final pool (if solved)
        columns: Final merged pool, in LP variable order
        total_columns: len(columns)
        iterations: Number of rounds
        total_time: Total solve time
        master_time: Time spent on LPs and the MIP
        pricing_time: Time spent on pricing
        exact_time: Time spent in the exact pricing phase
        iteration_history: History of each round

    Example:
        >>> solution = cg.solve()
        >>> if solution.is_converged:
        ...     print(f"LP bound: {solution.lp_objective}")
        ...     for column, value in solution.active_columns():
        ...         print(f"  {value:.2f} x {column.route}")
    """
    # Status
    status: CGStatus = CGStatus.CONTINUE

    # Objective values
    lp_objective: Optional[float] = None
    ip_objective: Optional[float] = None

    # Master solutions
    lp_solution: Optional[MPLinearSolution] = None
    ip_solution: Optional[MPIntegerSolution] = None

    # Columns
    columns: list[Column] = field(default_factory=list)

    # Statistics
    total_columns: int = 0
    iterations: int = 0
    total_time: float = 0.0
    master_time: float = 0.0
    pricing_time: float = 0.0
    exact_time: float = 0.0

    # Iteration history
    iteration_history: list[CGIteration] = field(default_factory=list)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def is_converged(self) -> bool:
        return self.status == CGStatus.CONVERGED

    @property
    def is_infeasible(self) -> bool:
        return self.status == CGStatus.INFEASIBLE

    @property
    def objective_value(self) -> Optional[float]:
        """MIP objective if solved, LP objective otherwise."""
        if self.ip_objective is not None:
            return self.ip_objective
        return self.lp_objective

    @property
    def gap(self) -> Optional[float]:
        """Relative gap between the MIP and the LP bound."""
        if self.ip_objective is None or self.lp_objective is None:
            return None
        return (self.ip_objective - self.lp_objective) / max(abs(self.ip_objective), 1e-6)

    # =========================================================================
    # Methods
    # =========================================================================

    def active_columns(self, tol: float = 1e-6) -> list[tuple[Column, float]]:
        """
        Columns with a positive value in the last LP solution.

        Returns:
            (column, value) pairs
        """
        if self.lp_solution is None:
            return []
        return [
            (self.columns[i], self.lp_solution.variables[i])
            for i in self.lp_solution.active_columns(tol)
            if i < len(self.columns)
        ]

    def selected_columns(self) -> list[Column]:
        """Columns set to 1 by the MIP (empty if no MIP was solved)."""
        if self.ip_solution is None:
            return []
        return [
            self.columns[i] for i in self.ip_solution.selected_columns()
            if i < len(self.columns)
        ]

    def get_convergence_history(self) -> list[float]:
        """LP objective of every round."""
        return [it.master_objective for it in self.iteration_history]

    def summary(self) -> str:
        lines = [
            "Column Generation Solution:",
            f"  Status: {self.status.name}",
        ]

        if self.lp_objective is not None:
            lines.append(f"  LP Objective: {self.lp_objective:.6f}")

        if self.ip_objective is not None:
            lines.append(f"  IP Objective: {self.ip_objective:.6f}")
            if self.gap is not None:
                lines.append(f"  Gap: {self.gap:.4%}")

        lines.extend([
            "",
            f"  Iterations: {self.iterations}",
            f"  Total columns: {self.total_columns}",
            "",
            f"  Total time: {self.total_time:.3f}s",
            f"  Master time: {self.master_time:.3f}s ({100*self.master_time/max(self.total_time, 1e-6):.1f}%)",
            f"  Pricing time: {self.pricing_time:.3f}s ({100*self.pricing_time/max(self.total_time, 1e-6):.1f}%)",
            f"  Exact pricing time: {self.exact_time:.3f}s",
        ])

        return "\n".join(lines)

    def __repr__(self) -> str:
        obj_str = f", obj={self.objective_value:.4f}" if self.objective_value is not None else ""
        return f"CGSolution({self.status.name}{obj_str}, iter={self.iterations})"
