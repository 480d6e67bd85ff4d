"""Relation graph derived from shared categories."""

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from itertools import combinations
from typing import Iterable

from ..knowledge.schema import UNCATEGORIZED, KnowledgeItem

logger = logging.getLogger(__name__)

MIN_RADIUS = 10.0
MAX_RADIUS = 20.0

CATEGORY_COLORS = {
    "Technology": "#3b82f6",
    "Science": "#10b981",
    "Health": "#f43f5e",
    "Philosophy": "#8b5cf6",
    "Art": "#f59e0b",
    "Productivity": "#06b6d4",
    UNCATEGORIZED: "#94a3b8",
}

EMPTY_GRAPH_MESSAGE = "Your galaxy is empty. Start adding knowledge to see your universe grow."


def node_radius(summary: str) -> float:
    """Visual radius: summary length / 10, clamped to [10, 20]."""
    return max(MIN_RADIUS, min(MAX_RADIUS, len(summary) / 10))


def category_color(category: str) -> str:
    return CATEGORY_COLORS.get(category, CATEGORY_COLORS[UNCATEGORIZED])


@dataclass(frozen=True)
class GraphNode:
    id: str
    title: str
    category: str
    summary_length: int
    radius: float
    color: str

    @classmethod
    def from_item(cls, item: KnowledgeItem) -> "GraphNode":
        return cls(
            id=item.id,
            title=item.title,
            category=item.category,
            summary_length=len(item.summary),
            radius=node_radius(item.summary),
            color=category_color(item.category),
        )


@dataclass(frozen=True)
class GraphEdge:
    """Undirected edge; ``source`` is the item that appears first."""

    source: str
    target: str

    def as_tuple(self) -> tuple[str, str]:
        return (self.source, self.target)


@dataclass(frozen=True)
class RelationGraph:
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node_ids(self) -> list[str]:
        return [n.id for n in self.nodes]

    def to_dict(self) -> dict:
        return {
            "nodes": [asdict(n) for n in self.nodes],
            "edges": [asdict(e) for e in self.edges],
        }


def build_graph(items: Iterable[KnowledgeItem]) -> RelationGraph:
    """Build the relation graph for the current working set.

    Items are bucketed by category and every pair within a bucket is linked,
    which yields exactly the pairs a full pairwise category comparison would.
    Items repeating an already-seen id are ignored.
    """
    nodes: list[GraphNode] = []
    seen: set[str] = set()
    positions: dict[str, int] = {}
    buckets: dict[str, list[str]] = defaultdict(list)

    for item in items:
        if item.id in seen:
            logger.warning(f"[GRAPH] Skipping duplicate item id: {item.id}")
            continue
        seen.add(item.id)
        positions[item.id] = len(nodes)
        nodes.append(GraphNode.from_item(item))
        buckets[item.category].append(item.id)

    pairs = [pair for ids in buckets.values() for pair in combinations(ids, 2)]
    pairs.sort(key=lambda p: (positions[p[0]], positions[p[1]]))
    edges = [GraphEdge(source, target) for source, target in pairs]

    logger.debug(f"[GRAPH] Built graph: {len(nodes)} node(s), {len(edges)} edge(s)")
    return RelationGraph(nodes=nodes, edges=edges)
