"""
Pricing configuration and result types.

The pricing subproblem finds routes with negative reduced cost. For a route
sailed by a vessel of class k the reduced cost is

    RC = fixed_cost_k - dual_k + sum over arcs (sailing cost - prize(target))

where the prize of a port-type row is its penalty plus its dual. This equals
Column.reduced_cost of the column built from the route.

This module defines:
- ElementaritySchedule: The critical-row percentages tried by the exact phase
- PricingConfig: Budgets and heuristic parameters
- PricingReport: Per-round candidate counters
- PricingResult: What one pricing round hands back to the driver
"""

import math
from dataclasses import dataclass, field
from typing import Optional

from mvrpcg.config import config
from mvrpcg.core.column import Column, ColumnOrigin


@dataclass(frozen=True)
class ElementaritySchedule:
    """
    Fractions of port rows on which the exact phase enforces elementarity.

    Levels run from `start` by `increment` up to `relaxed_cap`, or up to
    `elementary_cap` once the caller asks for elementary routes. At level
    1.0 every row is critical and the search is fully elementary.

    Example:
        >>> ElementaritySchedule().levels(try_elementary=False)
        [0.1, 0.2, 0.3, 0.4, 0.5, 0.6]
    """
    start: float = 0.1
    increment: float = 0.1
    relaxed_cap: float = 0.6
    elementary_cap: float = 1.0

    def __post_init__(self):
        if self.start <= 0 or self.increment <= 0:
            raise ValueError("start and increment must be positive")
        if not self.start <= self.relaxed_cap <= self.elementary_cap <= 1.0:
            raise ValueError(
                "Need start <= relaxed_cap <= elementary_cap <= 1.0, got "
                f"{self.start}, {self.relaxed_cap}, {self.elementary_cap}"
            )

    def levels(self, try_elementary: bool) -> list[float]:
        cap = self.elementary_cap if try_elementary else self.relaxed_cap
        steps = int(math.floor(round((cap - self.start) / self.increment, 9)))
        return [round(self.start + i * self.increment, 9) for i in range(steps + 1)]


@dataclass
class PricingConfig:
    """
    Configuration for one pricing subproblem.

    Attributes:
        max_time: Time budget of the exact phase in seconds (0 = unlimited)
        max_columns_per_graph: Routes kept per vessel-class graph and phase
            (0 = all with negative reduced cost)
        reduced_cost_tolerance: A candidate is accepted only if its reduced
            cost is below -tolerance (default: config 'reduced_cost')
        use_heuristics: Run the heuristic phase before the exact one
        heuristic_max_labels_per_node: Label cap of the truncated labeling
        heuristic_early_termination: Routes after which the truncated
            labeling stops
        greedy_iterations: Randomized greedy constructions per graph
        greedy_candidates: Size of the greedy restricted candidate list
        seed: Seed of the greedy constructor
        schedule: Elementarity levels of the exact phase
    """
    max_time: float = 0.0
    max_columns_per_graph: int = 0
    reduced_cost_tolerance: float = field(
        default_factory=lambda: config.get_tolerance("reduced_cost")
    )
    use_heuristics: bool = True
    heuristic_max_labels_per_node: int = 10
    heuristic_early_termination: int = 10
    greedy_iterations: int = 10
    greedy_candidates: int = 3
    seed: Optional[int] = 0
    schedule: ElementaritySchedule = field(default_factory=ElementaritySchedule)


@dataclass
class PricingReport:
    """
    Counters of one pricing round.

    Every candidate route ends up in exactly one of the accepted or
    discarded_* counters, so `generated` is their sum.
    """
    accepted: int = 0
    discarded_prc: int = 0          # Reduced cost not negative enough
    discarded_infeasible: int = 0   # Repeats a row, over capacity, or not moving forward in time
    discarded_in_pool: int = 0      # Already in the node or global pool
    discarded_generated: int = 0    # Already accepted earlier this round

    @property
    def generated(self) -> int:
        return (
            self.accepted
            + self.discarded_prc
            + self.discarded_infeasible
            + self.discarded_in_pool
            + self.discarded_generated
        )

    @property
    def discarded_duplicate(self) -> int:
        return self.discarded_in_pool + self.discarded_generated

    def merge(self, other: 'PricingReport') -> None:
        """Add the counters of another round attempt to this one."""
        self.accepted += other.accepted
        self.discarded_prc += other.discarded_prc
        self.discarded_infeasible += other.discarded_infeasible
        self.discarded_in_pool += other.discarded_in_pool
        self.discarded_generated += other.discarded_generated

    def summary(self) -> str:
        return (
            f"generated {self.generated}: accepted {self.accepted}, "
            f"discarded prc {self.discarded_prc}, "
            f"infeasible {self.discarded_infeasible}, "
            f"duplicate {self.discarded_duplicate} "
            f"(in pool {self.discarded_in_pool}, generated {self.discarded_generated})"
        )


@dataclass
class PricingResult:
    """
    Result of one pricing round.

    Attributes:
        columns_added: Columns inserted into the node pool
        origin: Phase that produced them (HEURISTIC or EXACT)
        exact_time: Seconds spent in the exact phase
        report: Candidate counters
        columns: The inserted columns, in insertion order
    """
    columns_added: int
    origin: ColumnOrigin
    exact_time: float = 0.0
    report: PricingReport = field(default_factory=PricingReport)
    columns: list[Column] = field(default_factory=list)

    @property
    def has_columns(self) -> bool:
        return self.columns_added > 0

    def __repr__(self) -> str:
        return (
            f"PricingResult(added={self.columns_added}, origin={self.origin.name}, "
            f"exact_time={self.exact_time:.3f}s)"
        )
