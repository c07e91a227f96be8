"""
Pricing subproblem module - route generation for column generation.

The pricing problem finds routes with negative reduced cost on the
vessel-class graphs of a branch node, and inserts the new columns into the
node's pool.

This module provides:
- PricingSubproblem: One pricing round (heuristic phase, then exact phase)
- PartialElementaryLabeling: Exact labeling, elementary on critical rows
- HeuristicsSolver: Truncated labeling and randomized greedy construction
- ElementaritySchedule: Critical-row levels tried by the exact phase
- Label, LabelPool: Partial routes and their dominance bookkeeping
- PricingConfig, PricingReport, PricingResult: Configuration and results

Usage:
------
    >>> from mvrpcg.pricing import PricingSubproblem, PricingConfig
    >>> pricing = PricingSubproblem(problem, graphs, PricingConfig(max_time=5.0))
    >>> pricing.set_duals(lp_solution)
    >>> result = pricing.solve(node_pool, global_pool, try_elementary=False)
    >>> if result.columns_added == 0:
    ...     print("No improving route")

Dominance:
---------
Label L1 dominates L2 at the same vertex if:
- L1.reduced_cost <= L2.reduced_cost
- L1.delivered, L1.balance and L1.peak are no larger than L2's
- L1's visited critical rows are a subset of L2's
"""

from mvrpcg.pricing.base import (
    ElementaritySchedule,
    PricingConfig,
    PricingReport,
    PricingResult,
)
from mvrpcg.pricing.label import Label, LabelPool
from mvrpcg.pricing.labeling import PartialElementaryLabeling
from mvrpcg.pricing.heuristics import HeuristicsSolver, TruncatedLabeling
from mvrpcg.pricing.subproblem import PricingSubproblem


__all__ = [
    # Configuration and results
    'ElementaritySchedule',
    'PricingConfig',
    'PricingReport',
    'PricingResult',

    # Labels
    'Label',
    'LabelPool',

    # Algorithms
    'PartialElementaryLabeling',
    'TruncatedLabeling',
    'HeuristicsSolver',
    'PricingSubproblem',
]
