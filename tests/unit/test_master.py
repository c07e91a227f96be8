"""
Tests for the master problem module.

This module tests:
- MPLinearSolution / MPIntegerSolution dataclasses
- build_master_model formulation
- MasterProblem oracle (via a fake backend)
- HiGHSBackend implementation
- Branching support (equality rows)
"""

import math

import pytest

from mvrpcg.core import Column, PickupType, PortWithType
from mvrpcg.master import (
    HIGHS_AVAILABLE,
    BackendResult,
    HiGHSBackend,
    InfeasibleMasterError,
    LPBackend,
    MasterProblem,
    MPIntegerSolution,
    MPLinearSolution,
    SolutionStatus,
    build_master_model,
)


class RowNumberBackend(LPBackend):
    """Fake backend whose row duals are the row numbers."""

    def build(self, model):
        return model

    def release(self, model):
        pass

    def solve(self, model):
        return BackendResult(
            status=SolutionStatus.OPTIMAL,
            objective_value=1.5,
            col_values=[0.5] * model.num_cols,
            row_duals=[float(i) for i in range(model.num_rows)],
        )


class CannedBackend(LPBackend):
    """Fake backend returning the same result for every model."""

    def __init__(self, result):
        self.result = result

    def build(self, model):
        return model

    def release(self, model):
        pass

    def solve(self, model):
        return self.result


# =============================================================================
# Test Solutions
# =============================================================================

class TestMPLinearSolution:
    """Tests for MPLinearSolution."""

    def test_port_dual(self, feeder, hub):
        solution = MPLinearSolution(objective_value=0.0, port_duals={feeder: (-2.0, -3.0)})
        assert solution.port_dual(feeder, PickupType.PICKUP) == -2.0
        assert solution.port_dual(feeder, PickupType.DELIVERY) == -3.0
        assert solution.port_dual(hub, PickupType.PICKUP) == 0.0

    def test_vc_dual_default(self, vessel_class):
        solution = MPLinearSolution(objective_value=0.0)
        assert solution.vc_dual(vessel_class) == 0.0

    def test_active_and_fractional(self):
        solution = MPLinearSolution(objective_value=0.0, variables=[0.0, 1.0, 0.5, 1e-9])
        assert solution.active_columns() == [1, 2]
        assert solution.fractional_columns() == [2]
        assert not solution.is_integer
        assert "Fractional columns: 1" in solution.summary()

    def test_integer(self):
        solution = MPLinearSolution(objective_value=3.0, variables=[1.0, 0.0])
        assert solution.is_integer
        assert "OPTIMAL" in solution.summary()


class TestMPIntegerSolution:
    """Tests for MPIntegerSolution."""

    def test_selected_columns(self):
        solution = MPIntegerSolution(objective_value=1.0, variables=[0.0, 1.0, 1.0])
        assert solution.selected_columns() == [1, 2]


# =============================================================================
# Test Formulation
# =============================================================================

class TestBuildMasterModel:
    """Tests for build_master_model."""

    def test_shape(self, tiny_problem, single_columns):
        model = build_master_model(tiny_problem, single_columns)

        assert model.num_cols == 2
        assert model.num_rows == 3
        assert model.num_port_rows == 2
        assert model.num_nonzeros == 4
        assert model.objective_constant == 27.0
        assert list(model.costs) == [5.0, 8.0]
        assert list(model.col_starts) == [0, 2, 4]
        assert list(model.row_indices) == [0, 2, 1, 2]
        assert not model.integer

    def test_column_entries(self, tiny_problem, single_columns):
        model = build_master_model(tiny_problem, single_columns)
        rows, values = model.column_entries(1)
        assert list(rows) == [1, 2]
        assert list(values) == [1.0, 1.0]

    def test_row_bounds(self, tiny_problem, single_columns):
        model = build_master_model(tiny_problem, single_columns)
        assert all(math.isinf(v) and v < 0 for v in model.row_lower)
        assert list(model.row_upper) == [1.0, 1.0, 1.0]

    def test_vessel_rows_use_fleet_size(self, feeder_problem):
        column = Column(obj_coeff=1.0, port_coeff=(1.0, 0, 0, 0, 0, 0), vc_coeff=(1.0, 0.0))
        model = build_master_model(feeder_problem, [column])
        assert list(model.row_upper[model.num_port_rows:]) == [2.0, 1.0]

    def test_equality_rows(self, tiny_problem, single_columns, feeder):
        eq = {PortWithType(feeder, PickupType.PICKUP)}
        model = build_master_model(tiny_problem, single_columns, equality_rows=eq)
        assert model.row_lower[0] == 1.0
        assert model.row_upper[0] == 1.0
        assert math.isinf(model.row_lower[1])

    def test_equality_on_hub_rejected(self, tiny_problem, single_columns, hub):
        with pytest.raises(ValueError, match="no master row"):
            build_master_model(
                tiny_problem, single_columns,
                equality_rows={PortWithType(hub, PickupType.DELIVERY)},
            )

    def test_empty_pool(self, tiny_problem):
        with pytest.raises(ValueError):
            build_master_model(tiny_problem, [])

    def test_column_mismatch(self, tiny_problem):
        column = Column(obj_coeff=0.0, port_coeff=(1.0,), vc_coeff=(1.0,))
        with pytest.raises(ValueError, match="expected 2 and 1"):
            build_master_model(tiny_problem, [column])

    def test_integer_flag(self, tiny_problem, single_columns):
        model = build_master_model(tiny_problem, single_columns, integer=True)
        assert model.integer


# =============================================================================
# Test Oracle
# =============================================================================

class TestMasterProblem:
    """Tests for the MasterProblem oracle with a fake backend."""

    def test_constant_added(self, tiny_problem, single_columns, fake_backend):
        master = MasterProblem(tiny_problem, backend=fake_backend)
        lp = master.solve_lp(single_columns)

        assert lp.objective_value == 27.0
        assert lp.status == SolutionStatus.OPTIMAL
        assert lp.variables == [0.0, 0.0]
        assert fake_backend.built == 1
        assert fake_backend.released == 1

    def test_dual_mapping(self, feeder_problem):
        column = Column(obj_coeff=1.0, port_coeff=(1.0, 0, 0, 0, 0, 0), vc_coeff=(1.0, 0.0))
        master = MasterProblem(feeder_problem, backend=RowNumberBackend())
        lp = master.solve_lp([column])

        a, b, c = feeder_problem.feeder_ports
        small, large = feeder_problem.vessel_classes
        assert lp.port_duals[a] == (0.0, 3.0)
        assert lp.port_duals[b] == (1.0, 4.0)
        assert lp.port_duals[c] == (2.0, 5.0)
        assert lp.vc_duals == {small: 6.0, large: 7.0}
        assert lp.objective_value == pytest.approx(feeder_problem.total_penalty + 1.5)

    def test_duals_through_row_index(self, feeder_problem):
        column = Column(obj_coeff=1.0, port_coeff=(1.0, 0, 0, 0, 0, 0), vc_coeff=(1.0, 0.0))
        lp = MasterProblem(feeder_problem, backend=RowNumberBackend()).solve_lp([column])

        row_index = feeder_problem.row_index
        for row in range(len(row_index)):
            key = row_index.key_of(row)
            assert lp.port_dual(key.port, key.pickup_type) == float(row)

    def test_backend_failure(self, tiny_problem, single_columns, backend_factory):
        backend = backend_factory(fail=True)
        master = MasterProblem(tiny_problem, backend=backend)

        with pytest.raises(InfeasibleMasterError) as excinfo:
            master.solve_lp(single_columns)

        assert excinfo.value.status == SolutionStatus.ERROR
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert backend.built == 1
        assert backend.released == 1

    def test_non_optimal_status(self, tiny_problem, single_columns, backend_factory):
        backend = backend_factory(status=SolutionStatus.INFEASIBLE)
        master = MasterProblem(tiny_problem, backend=backend)

        with pytest.raises(InfeasibleMasterError) as excinfo:
            master.solve_lp(single_columns)

        assert excinfo.value.status == SolutionStatus.INFEASIBLE
        assert backend.released == 1

    def test_session_releases_on_error(self, tiny_problem, single_columns, fake_backend):
        model = build_master_model(tiny_problem, single_columns)
        with pytest.raises(KeyError):
            with fake_backend.session(model):
                raise KeyError("boom")
        assert fake_backend.released == 1

    def test_mip(self, tiny_problem, single_columns, fake_backend):
        master = MasterProblem(tiny_problem, backend=fake_backend)
        mip = master.solve_mip(single_columns)

        assert mip.objective_value == 27.0
        assert mip.variables == [0.0, 0.0]
        assert fake_backend.models[-1].integer

    def test_stateless_between_calls(self, tiny_problem, single_columns, both_column, fake_backend):
        master = MasterProblem(tiny_problem, backend=fake_backend)
        master.solve_lp(single_columns)
        lp = master.solve_lp(single_columns + [both_column])

        assert len(lp.variables) == 3
        assert fake_backend.built == 2
        assert fake_backend.released == 2

    def test_mip_time_limit_keeps_incumbent(self, tiny_problem, single_columns, both_column):
        backend = CannedBackend(BackendResult(
            status=SolutionStatus.TIME_LIMIT,
            objective_value=-7.0,
            col_values=[0.0, 0.0, 0.9999999],
        ))
        mip = MasterProblem(tiny_problem, backend=backend).solve_mip(single_columns + [both_column])

        assert mip.status == SolutionStatus.TIME_LIMIT
        assert mip.objective_value == pytest.approx(20.0)
        assert mip.variables == [0.0, 0.0, 1.0]
        assert mip.selected_columns() == [2]

    def test_mip_iteration_limit_keeps_incumbent(self, tiny_problem, single_columns):
        backend = CannedBackend(BackendResult(
            status=SolutionStatus.ITERATION_LIMIT,
            objective_value=0.0,
            col_values=[1.0, 0.0],
        ))
        mip = MasterProblem(tiny_problem, backend=backend).solve_mip(single_columns)

        assert mip.status == SolutionStatus.ITERATION_LIMIT
        assert mip.selected_columns() == [0]

    def test_mip_time_limit_without_incumbent(self, tiny_problem, single_columns, backend_factory):
        master = MasterProblem(tiny_problem, backend=backend_factory(status=SolutionStatus.TIME_LIMIT))

        with pytest.raises(InfeasibleMasterError) as excinfo:
            master.solve_mip(single_columns)

        assert excinfo.value.status == SolutionStatus.TIME_LIMIT

    def test_lp_time_limit_rejected(self, tiny_problem, single_columns):
        backend = CannedBackend(BackendResult(
            status=SolutionStatus.TIME_LIMIT,
            objective_value=0.0,
            col_values=[0.0, 0.0],
            row_duals=[0.0, 0.0, 0.0],
        ))

        with pytest.raises(InfeasibleMasterError) as excinfo:
            MasterProblem(tiny_problem, backend=backend).solve_lp(single_columns)

        assert excinfo.value.status == SolutionStatus.TIME_LIMIT

    def test_lp_missing_duals(self, tiny_problem, single_columns):
        backend = CannedBackend(BackendResult(
            status=SolutionStatus.OPTIMAL,
            objective_value=0.0,
            col_values=[0.0, 0.0],
        ))

        with pytest.raises(InfeasibleMasterError) as excinfo:
            MasterProblem(tiny_problem, backend=backend).solve_lp(single_columns)

        assert excinfo.value.status == SolutionStatus.ERROR

    def test_lp_short_duals(self, tiny_problem, single_columns):
        backend = CannedBackend(BackendResult(
            status=SolutionStatus.OPTIMAL,
            objective_value=0.0,
            col_values=[0.0, 0.0],
            row_duals=[0.0, 0.0],
        ))

        with pytest.raises(InfeasibleMasterError) as excinfo:
            MasterProblem(tiny_problem, backend=backend).solve_lp(single_columns)

        assert excinfo.value.status == SolutionStatus.ERROR


# =============================================================================
# Test HiGHS Backend
# =============================================================================

@pytest.mark.skipif(not HIGHS_AVAILABLE, reason="HiGHS not installed")
class TestHiGHSBackend:
    """Tests for the HiGHS LP/MIP backend."""

    def test_lp_single_column(self, tiny_problem, both_column, feeder, vessel_class):
        master = MasterProblem(tiny_problem, backend=HiGHSBackend())
        lp = master.solve_lp([both_column])

        assert lp.status == SolutionStatus.OPTIMAL
        assert lp.objective_value == pytest.approx(20.0)
        assert lp.variables == pytest.approx([1.0])

        pickup_dual, delivery_dual = lp.port_duals[feeder]
        vc_dual = lp.vc_duals[vessel_class]
        assert pickup_dual + delivery_dual + vc_dual == pytest.approx(-7.0)
        for dual in (pickup_dual, delivery_dual, vc_dual):
            assert dual <= 1e-9

    def test_lp_unattractive_columns(self, tiny_problem, single_columns):
        lp = MasterProblem(tiny_problem, backend=HiGHSBackend()).solve_lp(single_columns)
        assert lp.objective_value == pytest.approx(27.0)
        assert lp.variables == pytest.approx([0.0, 0.0])

    def test_equality_raises_objective(self, tiny_problem, single_columns, feeder):
        master = MasterProblem(tiny_problem, backend=HiGHSBackend())
        eq = {PortWithType(feeder, PickupType.PICKUP)}

        free = master.solve_lp(single_columns)
        forced = master.solve_lp(single_columns, equality_rows=eq)

        assert forced.objective_value == pytest.approx(32.0)
        assert forced.objective_value >= free.objective_value - 1e-6

    def test_equality_with_covering_column(self, tiny_problem, single_columns, both_column, feeder):
        master = MasterProblem(tiny_problem, backend=HiGHSBackend())
        columns = single_columns + [both_column]
        eq = {PortWithType(feeder, PickupType.PICKUP)}

        free = master.solve_lp(columns)
        forced = master.solve_lp(columns, equality_rows=eq)

        assert free.objective_value == pytest.approx(20.0)
        assert forced.objective_value == pytest.approx(20.0)

    def test_infeasible_equality(self, tiny_problem, single_columns, feeder):
        # One vessel cannot serve both rows with single-row columns
        master = MasterProblem(tiny_problem, backend=HiGHSBackend())
        eq = {
            PortWithType(feeder, PickupType.PICKUP),
            PortWithType(feeder, PickupType.DELIVERY),
        }

        with pytest.raises(InfeasibleMasterError) as excinfo:
            master.solve_lp(single_columns, equality_rows=eq)

        assert excinfo.value.status in (
            SolutionStatus.INFEASIBLE,
            SolutionStatus.INF_OR_UNBOUNDED,
        )

    def test_mip(self, tiny_problem, single_columns, both_column):
        master = MasterProblem(tiny_problem, backend=HiGHSBackend())
        mip = master.solve_mip(single_columns + [both_column])

        assert mip.status == SolutionStatus.OPTIMAL
        assert mip.objective_value == pytest.approx(20.0)
        assert mip.variables == [0.0, 0.0, 1.0]
        assert mip.selected_columns() == [2]

