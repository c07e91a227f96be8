"""
Solver module - the column generation loop of one branch node.

This module provides:
- ColumnGeneration: Main loop controller
- CGConfig: Configuration options
- CGSolution: Solution data structure
- CGStatus: Loop state enum
- CGIteration: Per-round information

Usage:
------
Basic usage:

    >>> from mvrpcg.solver import ColumnGeneration, CGConfig
    >>> cg = ColumnGeneration(problem, graphs, CGConfig(max_iterations=100, solve_ip=True))
    >>> cg.add_initial_columns(initial_columns)
    >>> solution = cg.solve()
    >>> if solution.is_converged:
    ...     print(f"LP bound: {solution.lp_objective}")

With callbacks for monitoring:

    >>> def progress_callback(cg, iteration):
    ...     print(f"Round {iteration.iteration}: obj={iteration.master_objective:.2f}")
    ...     return iteration.iteration < 50  # Stop after 50 rounds
    >>>
    >>> cg.add_callback(progress_callback)
    >>> solution = cg.solve()
"""

from mvrpcg.solver.column_generation import CGCallback, CGConfig, ColumnGeneration
from mvrpcg.solver.solution import CGIteration, CGSolution, CGStatus

__all__ = [
    'ColumnGeneration',
    'CGConfig',
    'CGCallback',
    'CGSolution',
    'CGStatus',
    'CGIteration',
]
