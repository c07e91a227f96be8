"""
Shared pytest fixtures for mvrpcg tests.

The tiny instance has a hub H and one feeder F. Every route costs 20
(charter 10, one step out and one step back at 5 per step). Serving only the
pickup (penalty 15) or only the delivery (penalty 12) does not pay; serving
both in one route saves 27 - 20 = 7.
"""

import pytest

from mvrpcg.core import (
    Column,
    ColumnOrigin,
    Node,
    PickupType,
    Port,
    Problem,
    Route,
    VesselClass,
    VesselGraph,
)
from mvrpcg.master import BackendResult, LPBackend, SolutionStatus


def pytest_configure(config):
    """Add custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")


class FakeBackend(LPBackend):
    """
    LP backend returning a canned result.

    Every row dual is `dual`, every column value is 0. Set `fail` to make
    solve() raise; `released` counts release() calls.
    """

    def __init__(self, status=SolutionStatus.OPTIMAL, dual=0.0, fail=False):
        self.status = status
        self.dual = dual
        self.fail = fail
        self.built = 0
        self.released = 0
        self.models = []

    def build(self, model):
        self.built += 1
        self.models.append(model)
        return model

    def solve(self, model):
        if self.fail:
            raise RuntimeError("solver crashed")
        if self.status != SolutionStatus.OPTIMAL:
            return BackendResult(status=self.status)
        return BackendResult(
            status=SolutionStatus.OPTIMAL,
            objective_value=0.0,
            col_values=[0.0] * model.num_cols,
            row_duals=[] if model.integer else [self.dual] * model.num_rows,
        )

    def release(self, model):
        self.released += 1


# =============================================================================
# Tiny instance: hub + one feeder
# =============================================================================

@pytest.fixture
def hub():
    return Port("H")


@pytest.fixture
def feeder():
    return Port(
        "F",
        pickup_demand=4.0,
        delivery_demand=3.0,
        pickup_penalty=15.0,
        delivery_penalty=12.0,
    )


@pytest.fixture
def vessel_class():
    return VesselClass("feeder", capacity=10.0, num_vessels=1, fixed_cost=10.0, cost_per_step=5.0)


@pytest.fixture
def tiny_problem(hub, feeder, vessel_class):
    return Problem("tiny", ports=(hub, feeder), vessel_classes=(vessel_class,))


@pytest.fixture
def tiny_graphs(tiny_problem, vessel_class):
    graph = VesselGraph.time_expanded(
        tiny_problem, vessel_class, travel_steps={("H", "F"): 1}, horizon=3
    )
    return {vessel_class: graph}


@pytest.fixture
def both_route(feeder, vessel_class):
    """Deliver at t=1, pick up at t=2."""
    return Route(
        vessel_class,
        (Node(feeder, PickupType.DELIVERY, 1), Node(feeder, PickupType.PICKUP, 2)),
        sailing_cost=10.0,
    )


@pytest.fixture
def both_column(both_route, tiny_problem):
    return Column.from_route(both_route, tiny_problem, ColumnOrigin.INITIAL)


@pytest.fixture
def single_columns(feeder, vessel_class, tiny_problem):
    """Pickup-only and delivery-only columns, in that order."""
    routes = [
        Route(vessel_class, (Node(feeder, PickupType.PICKUP, 1),), sailing_cost=10.0),
        Route(vessel_class, (Node(feeder, PickupType.DELIVERY, 1),), sailing_cost=10.0),
    ]
    return [Column.from_route(r, tiny_problem, ColumnOrigin.INITIAL) for r in routes]


# =============================================================================
# Three feeders
# =============================================================================

@pytest.fixture
def feeder_problem():
    """Hub plus three feeders, two vessel classes."""
    ports = (
        Port("HUB"),
        Port("A", pickup_demand=4.0, delivery_demand=6.0, pickup_penalty=40.0, delivery_penalty=50.0),
        Port("B", pickup_demand=5.0, delivery_demand=3.0, pickup_penalty=45.0, delivery_penalty=30.0),
        Port("C", pickup_demand=2.0, delivery_demand=7.0, pickup_penalty=20.0, delivery_penalty=60.0),
    )
    vessel_classes = (
        VesselClass("small", capacity=10.0, num_vessels=2, fixed_cost=15.0, cost_per_step=3.0),
        VesselClass("large", capacity=18.0, num_vessels=1, fixed_cost=30.0, cost_per_step=4.0),
    )
    return Problem("three-feeders", ports=ports, vessel_classes=vessel_classes)


@pytest.fixture
def feeder_graphs(feeder_problem):
    travel_steps = {
        ("HUB", "A"): 1,
        ("HUB", "B"): 2,
        ("HUB", "C"): 2,
        ("A", "B"): 1,
        ("A", "C"): 2,
        ("B", "C"): 1,
    }
    return {
        vc: VesselGraph.time_expanded(feeder_problem, vc, travel_steps, horizon=6)
        for vc in feeder_problem.vessel_classes
    }


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def backend_factory():
    """The FakeBackend class, for tests that need a configured instance."""
    return FakeBackend
