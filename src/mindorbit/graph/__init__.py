"""Relation graph construction and force-directed layout."""

from .builder import (
    CATEGORY_COLORS,
    EMPTY_GRAPH_MESSAGE,
    GraphEdge,
    GraphNode,
    RelationGraph,
    build_graph,
    category_color,
    node_radius,
)
from .layout import ForceSimulation, LayoutParams, LayoutState, LayoutTask

__all__ = [
    "CATEGORY_COLORS",
    "EMPTY_GRAPH_MESSAGE",
    "ForceSimulation",
    "GraphEdge",
    "GraphNode",
    "LayoutParams",
    "LayoutState",
    "LayoutTask",
    "RelationGraph",
    "build_graph",
    "category_color",
    "node_radius",
]
