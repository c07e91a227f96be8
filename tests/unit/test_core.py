"""
Tests for the core module.

This module tests:
- Port, VesselClass, PortWithType
- Node row/equality contract
- Problem validation and the RowIndex table
- Route load and feasibility
- VesselGraph construction and mutation
- Column encoding and the column pools
"""

import random
from concurrent.futures import ThreadPoolExecutor

import pytest

from mvrpcg.core import (
    SINK,
    SOURCE,
    Column,
    ColumnOrigin,
    ColumnPool,
    GlobalColumnPool,
    Node,
    PickupType,
    Port,
    PortWithType,
    Problem,
    Route,
    VesselClass,
    VesselGraph,
    copy_graph_map,
    merge_pools,
)
from mvrpcg.master import MPLinearSolution


# =============================================================================
# Test Port / VesselClass
# =============================================================================

class TestPort:
    """Tests for Port and PortWithType."""

    def test_demand_and_penalty(self, feeder):
        assert feeder.demand(PickupType.PICKUP) == 4.0
        assert feeder.demand(PickupType.DELIVERY) == 3.0
        assert feeder.penalty(PickupType.PICKUP) == 15.0
        assert feeder.penalty(PickupType.DELIVERY) == 12.0
        assert feeder.total_penalty == 27.0

    def test_identity_semantics(self):
        """Two ports with the same data are different ports."""
        a = Port("X", pickup_demand=1.0)
        b = Port("X", pickup_demand=1.0)
        assert a != b
        assert len({a, b}) == 2

    def test_port_with_type_equality(self, feeder):
        a = PortWithType(feeder, PickupType.PICKUP)
        b = PortWithType(feeder, PickupType.PICKUP)
        c = PortWithType(feeder, PickupType.DELIVERY)
        assert a == b
        assert hash(a) == hash(b)
        assert a != c

    def test_short_name(self):
        assert PickupType.PICKUP.short_name == "pu"
        assert PickupType.DELIVERY.short_name == "de"


# =============================================================================
# Test Node
# =============================================================================

class TestNode:
    """Tests for the Node row/equality contract."""

    def test_same_row_vs_equality(self, feeder):
        a = Node(feeder, PickupType.PICKUP, 3)
        b = Node(feeder, PickupType.PICKUP, 7)
        c = Node(feeder, PickupType.DELIVERY, 3)

        assert a.same_row_as(b)
        assert a != b
        assert not a.same_row_as(c)
        assert a != c

    def test_equal_nodes_hash_equal(self, feeder):
        a = Node(feeder, PickupType.PICKUP, 3)
        b = Node(feeder, PickupType.PICKUP, 3)
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_same_row_needs_same_port_reference(self, feeder):
        twin = Port("F", pickup_demand=4.0, delivery_demand=3.0)
        a = Node(feeder, PickupType.PICKUP, 1)
        b = Node(twin, PickupType.PICKUP, 1)
        assert not a.same_row_as(b)
        assert a != b

    def test_demands(self, feeder):
        pickup = Node(feeder, PickupType.PICKUP, 1)
        delivery = Node(feeder, PickupType.DELIVERY, 1)

        assert pickup.pickup_demand == 4.0
        assert pickup.delivery_demand == 0.0
        assert pickup.demand == 4.0
        assert delivery.pickup_demand == 0.0
        assert delivery.delivery_demand == 3.0
        assert delivery.demand == 3.0

    def test_row_key(self, feeder):
        node = Node(feeder, PickupType.DELIVERY, 2)
        assert node.row_key == PortWithType(feeder, PickupType.DELIVERY)

    def test_repr(self, feeder):
        node = Node(feeder, PickupType.PICKUP, 3)
        assert repr(node) == "[F, pu, 3, dem: 4.0]"


# =============================================================================
# Test Problem / RowIndex
# =============================================================================

class TestProblem:
    """Tests for Problem validation and derived data."""

    def test_derived_values(self, tiny_problem, hub, feeder, vessel_class):
        assert tiny_problem.num_ports == 2
        assert tiny_problem.num_vessel_classes == 1
        assert tiny_problem.reference_port is hub
        assert tiny_problem.feeder_ports == (feeder,)
        assert tiny_problem.total_penalty == 27.0
        assert tiny_problem.vessel_class_index(vessel_class) == 0
        assert tiny_problem.get_port("F") is feeder
        assert tiny_problem.get_port("nope") is None

    def test_needs_two_ports(self, hub, vessel_class):
        with pytest.raises(ValueError):
            Problem("bad", ports=(hub,), vessel_classes=(vessel_class,))

    def test_needs_vessel_class(self, hub, feeder):
        with pytest.raises(ValueError):
            Problem("bad", ports=(hub, feeder), vessel_classes=())

    def test_unique_port_names(self, hub, vessel_class):
        with pytest.raises(ValueError, match="port names"):
            Problem("bad", ports=(hub, Port("F"), Port("F")), vessel_classes=(vessel_class,))

    def test_unique_vessel_class_names(self, hub, feeder):
        classes = (VesselClass("v", capacity=1.0), VesselClass("v", capacity=2.0))
        with pytest.raises(ValueError, match="vessel class names"):
            Problem("bad", ports=(hub, feeder), vessel_classes=classes)

    def test_unknown_vessel_class(self, tiny_problem):
        with pytest.raises(KeyError):
            tiny_problem.vessel_class_index(VesselClass("other", capacity=1.0))

    def test_summary(self, tiny_problem):
        assert "Port rows: 2" in tiny_problem.summary()


class TestRowIndex:
    """Tests for the master row table."""

    def test_layout(self, feeder_problem):
        index = feeder_problem.row_index
        feeders = feeder_problem.feeder_ports

        assert len(index) == 2 * (feeder_problem.num_ports - 1)
        assert list(index.pickup_rows()) == [0, 1, 2]
        assert list(index.delivery_rows()) == [3, 4, 5]

        for i, port in enumerate(feeders):
            assert index.row_of(port, PickupType.PICKUP) == i
            assert index.row_of(port, PickupType.DELIVERY) == len(feeders) + i

    def test_bijection(self, feeder_problem):
        index = feeder_problem.row_index
        keys = [index.key_of(row) for row in range(len(index))]

        assert len(set(keys)) == len(index)
        for row, key in enumerate(keys):
            assert index.row_of_key(key) == row
            assert key in index
        assert list(index) == keys

        expected = {
            PortWithType(port, pickup_type)
            for port in feeder_problem.feeder_ports
            for pickup_type in PickupType
        }
        assert set(keys) == expected

    def test_reference_port_has_no_row(self, feeder_problem):
        index = feeder_problem.row_index
        hub = feeder_problem.reference_port

        assert index.reference_port is hub
        for pickup_type in PickupType:
            assert PortWithType(hub, pickup_type) not in index
            with pytest.raises(KeyError):
                index.row_of(hub, pickup_type)

    def test_out_of_range(self, feeder_problem):
        index = feeder_problem.row_index
        with pytest.raises(IndexError):
            index.key_of(len(index))
        with pytest.raises(IndexError):
            index.key_of(-1)


# =============================================================================
# Test Route
# =============================================================================

class TestRoute:
    """Tests for Route cost, load and feasibility."""

    def test_cost_and_penalty(self, both_route):
        assert both_route.cost == 20.0
        assert both_route.collected_penalty == 27.0
        assert len(both_route) == 2

    def test_load_deliver_first(self, both_route):
        # Leaves with 3, drops to 0, picks up 4
        assert both_route.delivered_demand == 3.0
        assert both_route.picked_up_demand == 4.0
        assert both_route.max_load == 4.0
        assert both_route.is_feasible

    def test_load_pickup_first(self, feeder, vessel_class):
        route = Route(
            vessel_class,
            (Node(feeder, PickupType.PICKUP, 1), Node(feeder, PickupType.DELIVERY, 2)),
        )
        # Leaves with 3, picks up 4, then delivers 3
        assert route.max_load == 7.0

    def test_over_capacity(self, feeder):
        small = VesselClass("small", capacity=5.0)
        route = Route(
            small,
            (Node(feeder, PickupType.PICKUP, 1), Node(feeder, PickupType.DELIVERY, 2)),
        )
        assert not route.is_capacity_feasible
        assert not route.is_feasible

    def test_repeated_rows(self, feeder, vessel_class):
        route = Route(
            vessel_class,
            (Node(feeder, PickupType.PICKUP, 1), Node(feeder, PickupType.PICKUP, 2)),
        )
        assert route.repeated_rows() == {PortWithType(feeder, PickupType.PICKUP)}
        assert not route.is_elementary
        assert not route.is_feasible

    def test_time_must_increase(self, feeder, vessel_class):
        route = Route(
            vessel_class,
            (Node(feeder, PickupType.DELIVERY, 2), Node(feeder, PickupType.PICKUP, 2)),
        )
        assert route.is_elementary
        assert not route.is_time_feasible
        assert not route.is_feasible


# =============================================================================
# Test VesselGraph
# =============================================================================

class TestVesselGraph:
    """Tests for the per-class constraint graph."""

    def test_time_expanded_counts(self, tiny_graphs, vessel_class):
        graph = tiny_graphs[vessel_class]
        # 2 types x 3 steps; 6 out of SOURCE, 4 into SINK, 6 between rows
        assert graph.num_nodes == 6
        assert graph.num_arcs == 16

    def test_time_expanded_arcs(self, tiny_graphs, vessel_class, feeder):
        graph = tiny_graphs[vessel_class]
        de1 = Node(feeder, PickupType.DELIVERY, 1)
        pu1 = Node(feeder, PickupType.PICKUP, 1)
        pu2 = Node(feeder, PickupType.PICKUP, 2)
        de3 = Node(feeder, PickupType.DELIVERY, 3)

        assert graph.arc_cost(SOURCE, de1) == 5.0
        assert graph.arc_cost(pu2, SINK) == 5.0
        assert graph.arc_cost(de1, pu2) == 0.0
        assert not graph.has_arc(pu1, pu2)      # Same row
        assert not graph.has_arc(pu1, de1)      # Same time
        assert not graph.has_arc(de3, SINK)     # Back after the horizon
        assert graph.path_cost([de1, pu2]) == 10.0

    def test_time_strictly_increases(self, feeder_graphs):
        for graph in feeder_graphs.values():
            for node in graph.nodes():
                for target, _ in graph.successors(node):
                    if isinstance(target, Node):
                        assert target.time_step > node.time_step
                        assert not target.same_row_as(node)

    def test_arc_cost_missing(self, tiny_graphs, vessel_class, feeder):
        graph = tiny_graphs[vessel_class]
        with pytest.raises(KeyError):
            graph.arc_cost(SOURCE, SINK)

    def test_add_arc_rejects_backward_time(self, vessel_class, feeder):
        graph = VesselGraph(vessel_class)
        with pytest.raises(ValueError):
            graph.add_arc(Node(feeder, PickupType.PICKUP, 3), Node(feeder, PickupType.DELIVERY, 2))
        with pytest.raises(ValueError):
            graph.add_arc(SINK, Node(feeder, PickupType.PICKUP, 1))
        with pytest.raises(ValueError):
            graph.add_arc(Node(feeder, PickupType.PICKUP, 1), SOURCE)

    def test_copy_is_independent(self, tiny_graphs, vessel_class, feeder):
        graph = tiny_graphs[vessel_class]
        de1 = Node(feeder, PickupType.DELIVERY, 1)
        pu2 = Node(feeder, PickupType.PICKUP, 2)

        child = copy_graph_map(tiny_graphs)[vessel_class]
        assert child.remove_arc(de1, pu2)
        assert not child.remove_arc(de1, pu2)

        assert not child.has_arc(de1, pu2)
        assert graph.has_arc(de1, pu2)

    def test_remove_node(self, tiny_graphs, vessel_class, feeder):
        graph = tiny_graphs[vessel_class].copy()
        de1 = Node(feeder, PickupType.DELIVERY, 1)

        assert graph.remove_node(de1)
        assert graph.num_nodes == 5
        assert not graph.has_arc(SOURCE, de1)
        assert not graph.remove_node(de1)
        with pytest.raises(ValueError):
            graph.remove_node(SOURCE)


# =============================================================================
# Test Column
# =============================================================================

class TestColumn:
    """Tests for Column encoding."""

    def test_from_route(self, both_column, vessel_class):
        assert both_column.obj_coeff == -7.0
        assert both_column.port_coeff == (1.0, 1.0)
        assert both_column.vc_coeff == (1.0,)
        assert both_column.origin == ColumnOrigin.INITIAL
        assert both_column.route.vessel_class is vessel_class
        assert both_column.served_rows == (0, 1)

    def test_equality_ignores_origin_and_route(self, both_column, tiny_problem, feeder, vessel_class):
        other_route = Route(
            vessel_class,
            (Node(feeder, PickupType.PICKUP, 1), Node(feeder, PickupType.DELIVERY, 2)),
            sailing_cost=10.0,
        )
        other = Column.from_route(other_route, tiny_problem, ColumnOrigin.EXACT)
        assert other == both_column
        assert hash(other) == hash(both_column)

    def test_different_cost_is_different_column(self, both_column):
        other = Column(
            obj_coeff=both_column.obj_coeff + 1.0,
            port_coeff=both_column.port_coeff,
            vc_coeff=both_column.vc_coeff,
        )
        assert other != both_column

    def test_reduced_cost(self, both_column, tiny_problem, feeder, vessel_class):
        solution = MPLinearSolution(
            objective_value=0.0,
            port_duals={feeder: (-2.0, -3.0)},
            vc_duals={vessel_class: -1.0},
        )
        assert both_column.reduced_cost(solution, tiny_problem) == pytest.approx(-1.0)

    def test_mass_conservation(self, both_column, both_route, tiny_problem):
        assert both_column.pickup_mass(tiny_problem) == both_route.picked_up_demand
        assert both_column.delivery_mass(tiny_problem) == both_route.delivered_demand

    def test_mass_conservation_multi_port(self, feeder_problem):
        a, b, c = feeder_problem.feeder_ports
        vc = feeder_problem.vessel_classes[1]
        routes = [
            Route(vc, (
                Node(a, PickupType.DELIVERY, 1),
                Node(b, PickupType.PICKUP, 3),
                Node(c, PickupType.DELIVERY, 4),
            )),
            Route(vc, (
                Node(a, PickupType.PICKUP, 1),
                Node(c, PickupType.PICKUP, 3),
                Node(a, PickupType.PICKUP, 5),
            )),
        ]
        for route in routes:
            column = Column.from_route(route, feeder_problem, ColumnOrigin.EXACT)
            assert column.pickup_mass(feeder_problem) == pytest.approx(route.picked_up_demand)
            assert column.delivery_mass(feeder_problem) == pytest.approx(route.delivered_demand)
            assert column.vc_coeff == (0.0, 1.0)


# =============================================================================
# Test Column Pools
# =============================================================================

def make_columns(n: int) -> list[Column]:
    return [
        Column(obj_coeff=float(i), port_coeff=(1.0, 0.0), vc_coeff=(1.0,))
        for i in range(n)
    ]


class TestColumnPool:
    """Tests for ColumnPool, GlobalColumnPool and merge_pools."""

    def test_idempotent_insert(self, both_column):
        pool = ColumnPool()
        assert pool.insert(both_column)
        assert not pool.insert(both_column)
        assert len(pool) == 1
        assert pool.contains(both_column)
        assert both_column in pool

    def test_insert_equal_column_other_origin(self, both_column):
        pool = ColumnPool([both_column])
        twin = Column(
            obj_coeff=both_column.obj_coeff,
            port_coeff=both_column.port_coeff,
            vc_coeff=both_column.vc_coeff,
            origin=ColumnOrigin.HEURISTIC,
        )
        assert not pool.insert(twin)
        assert pool.iterate()[0].origin == ColumnOrigin.INITIAL

    def test_stable_order(self):
        columns = make_columns(5)
        pool = ColumnPool()
        for column in columns:
            pool.insert(column)
        pool.insert(columns[2])
        assert pool.iterate() == columns
        assert list(pool) == columns

    def test_clear(self):
        pool = ColumnPool(make_columns(3))
        pool.clear()
        assert pool.size == 0
        assert not pool.contains(make_columns(1)[0])

    def test_count_by_origin(self, both_column, single_columns):
        pool = ColumnPool(single_columns)
        pool.insert(Column(
            obj_coeff=both_column.obj_coeff,
            port_coeff=both_column.port_coeff,
            vc_coeff=both_column.vc_coeff,
            origin=ColumnOrigin.EXACT,
        ))
        counts = pool.count_by_origin()
        assert counts[ColumnOrigin.INITIAL] == 2
        assert counts[ColumnOrigin.EXACT] == 1
        assert counts[ColumnOrigin.HEURISTIC] == 0

    def test_merge_pools(self):
        c1, c2, c3 = make_columns(3)
        global_pool = GlobalColumnPool([c1, c2])
        node_pool = ColumnPool([c2, c3])

        assert merge_pools(global_pool, node_pool) == [c1, c2, c3]
        assert merge_pools(None, node_pool) == [c2, c3]

    def test_global_pool_concurrent_insert(self):
        columns = make_columns(50)
        pool = GlobalColumnPool()

        def worker(seed):
            order = list(columns)
            random.Random(seed).shuffle(order)
            return sum(1 for column in order if pool.insert(column))

        with ThreadPoolExecutor(max_workers=8) as executor:
            inserted = list(executor.map(worker, range(16)))

        assert sum(inserted) == 50
        assert len(pool) == 50
        assert set(pool.iterate()) == set(columns)

    def test_global_pool_snapshot(self):
        c1, c2 = make_columns(2)
        pool = GlobalColumnPool([c1])
        snapshot = pool.iterate()
        pool.insert(c2)
        assert snapshot == [c1]
        assert pool.iterate() == [c1, c2]
