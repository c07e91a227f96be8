"""
Solver-neutral formulation of the restricted master problem.

    min  total_penalty + sum_j obj_j * theta_j
    s.t. sum_j port_coeff[r][j] * theta_j  in [-inf, 1]   (port row r)
                                           or [1, 1]      (r branched to equality)
         sum_j vc_coeff[k][j] * theta_j   <= num_vessels_k   (vessel-class row k)
         theta_j >= 0                       (LP)
         theta_j in {0, 1}                  (MIP)

Port rows come first, in RowIndex order, followed by one row per vessel
class. The matrix is stored column-wise (CSC), which is what the LP
backends consume.
"""

from collections.abc import Collection, Sequence
from dataclasses import dataclass

import numpy as np

from mvrpcg.core.column import Column
from mvrpcg.core.port import PortWithType
from mvrpcg.core.problem import Problem


@dataclass
class MasterModel:
    """
    Restricted master problem ready for an LP backend.

    Attributes:
        objective_constant: Constant added to the objective (sum of penalties)
        costs: Objective coefficient of every column
        row_lower: Lower bound of every row (-inf for unbounded)
        row_upper: Upper bound of every row
        col_starts: CSC column start offsets (length num_cols + 1)
        row_indices: CSC row index of every nonzero
        values: CSC value of every nonzero
        integer: True if the columns are binary
        num_port_rows: Number of port rows (the vessel-class rows follow)
    """
    objective_constant: float
    costs: np.ndarray
    row_lower: np.ndarray
    row_upper: np.ndarray
    col_starts: np.ndarray
    row_indices: np.ndarray
    values: np.ndarray
    integer: bool
    num_port_rows: int

    @property
    def num_cols(self) -> int:
        return len(self.costs)

    @property
    def num_rows(self) -> int:
        return len(self.row_lower)

    @property
    def num_nonzeros(self) -> int:
        return len(self.values)

    def column_entries(self, j: int) -> tuple[np.ndarray, np.ndarray]:
        """Row indices and values of column j."""
        start, end = self.col_starts[j], self.col_starts[j + 1]
        return self.row_indices[start:end], self.values[start:end]


def build_master_model(
    problem: Problem,
    columns: Sequence[Column],
    equality_rows: Collection[PortWithType] = (),
    integer: bool = False,
) -> MasterModel:
    """
    Formulate the restricted master problem.

    Args:
        problem: The Problem instance
        columns: Columns, in the order that fixes the variable indices
        equality_rows: Port-types branched to "exactly one"
        integer: Build binary columns (MIP) instead of continuous ones

    Returns:
        The model

    Raises:
        ValueError: If there are no columns, an equality row has no master
            row, or a column does not match the problem's row counts
    """
    if len(columns) == 0:
        raise ValueError("The restricted master problem needs at least one column")

    row_index = problem.row_index
    num_port_rows = len(row_index)
    num_vc = problem.num_vessel_classes

    row_lower = np.full(num_port_rows + num_vc, -np.inf)
    row_upper = np.ones(num_port_rows + num_vc)

    for key in equality_rows:
        if key not in row_index:
            raise ValueError(f"{key} has no master row and cannot be branched to equality")
        row_lower[row_index.row_of_key(key)] = 1.0

    for k, vc in enumerate(problem.vessel_classes):
        row_upper[num_port_rows + k] = float(vc.num_vessels)

    costs = np.empty(len(columns))
    col_starts = np.zeros(len(columns) + 1, dtype=np.int32)
    row_indices: list[int] = []
    values: list[float] = []

    for j, column in enumerate(columns):
        if len(column.port_coeff) != num_port_rows or len(column.vc_coeff) != num_vc:
            raise ValueError(
                f"Column {j} has {len(column.port_coeff)} port and {len(column.vc_coeff)} "
                f"class coefficients, expected {num_port_rows} and {num_vc}"
            )
        costs[j] = column.obj_coeff
        for row, coeff in enumerate(column.port_coeff):
            if coeff != 0.0:
                row_indices.append(row)
                values.append(coeff)
        for k, coeff in enumerate(column.vc_coeff):
            if coeff != 0.0:
                row_indices.append(num_port_rows + k)
                values.append(coeff)
        col_starts[j + 1] = len(values)

    return MasterModel(
        objective_constant=problem.total_penalty,
        costs=costs,
        row_lower=row_lower,
        row_upper=row_upper,
        col_starts=col_starts,
        row_indices=np.asarray(row_indices, dtype=np.int32),
        values=np.asarray(values, dtype=np.float64),
        integer=integer,
        num_port_rows=num_port_rows,
    )
