"""
Core module - the data model of the feeder routing problem.

This module provides:
- Port, VesselClass, PickupType, PortWithType: Static instance data
- Node: A port visit at a time step
- Problem, RowIndex: Instance container and master row table
- Route: A sequence of visits sailed by one vessel
- VesselGraph, GraphMap, SOURCE, SINK: Per-class constraint graph
- Column, ColumnOrigin, ColumnPool, GlobalColumnPool, merge_pools: Columns
"""

from mvrpcg.core.port import PickupType, Port, PortWithType, VesselClass
from mvrpcg.core.node import Node
from mvrpcg.core.problem import Problem, RowIndex
from mvrpcg.core.route import Route
from mvrpcg.core.graph import SINK, SOURCE, GraphMap, VesselGraph, copy_graph_map
from mvrpcg.core.column import (
    Column,
    ColumnOrigin,
    ColumnPool,
    GlobalColumnPool,
    merge_pools,
)

__all__ = [
    'PickupType',
    'Port',
    'PortWithType',
    'VesselClass',
    'Node',
    'Problem',
    'RowIndex',
    'Route',
    'VesselGraph',
    'GraphMap',
    'SOURCE',
    'SINK',
    'copy_graph_map',
    'Column',
    'ColumnOrigin',
    'ColumnPool',
    'GlobalColumnPool',
    'merge_pools',
]
