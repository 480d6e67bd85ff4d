"""Tests for mindorbit.graph.builder module."""

import pytest

from mindorbit.graph import (
    CATEGORY_COLORS,
    GraphEdge,
    build_graph,
    category_color,
    node_radius,
)
from mindorbit.graph.builder import MAX_RADIUS, MIN_RADIUS


class TestNodeRadius:
    """Tests for node_radius function."""

    @pytest.mark.parametrize(
        "length,expected",
        [(0, MIN_RADIUS), (50, MIN_RADIUS), (150, 15.0), (200, MAX_RADIUS), (5000, MAX_RADIUS)],
    )
    def test_clamped(self, length, expected):
        assert node_radius("x" * length) == expected

    def test_monotonic(self):
        """Test that longer summaries never give smaller nodes."""
        radii = [node_radius("x" * n) for n in range(0, 300, 7)]

        assert radii == sorted(radii)


class TestCategoryColor:
    def test_known_category(self):
        assert category_color("Science") == "#10b981"

    def test_unknown_category_uses_default(self):
        assert category_color("Cooking") == CATEGORY_COLORS["Uncategorized"]


class TestBuildGraph:
    """Tests for build_graph function."""

    def test_empty(self):
        """Test that no items gives an empty graph."""
        graph = build_graph([])

        assert graph.is_empty
        assert graph.nodes == []
        assert graph.edges == []

    def test_single_item(self, item_factory):
        graph = build_graph([item_factory("a")])

        assert graph.node_ids() == ["a"]
        assert graph.edges == []

    def test_edges_within_category(self, sample_items):
        """Test that only items sharing a category are linked."""
        graph = build_graph(sample_items)

        assert graph.node_ids() == ["a", "b", "c"]
        assert [e.as_tuple() for e in graph.edges] == [("a", "b")]

    def test_no_self_edges(self, item_factory):
        graph = build_graph([item_factory("a", category="Art")])

        assert all(e.source != e.target for e in graph.edges)

    def test_complete_subgraph_per_category(self, item_factory):
        """Test that a category with n items yields n*(n-1)/2 edges."""
        items = [item_factory(str(n), category="Science") for n in range(5)]
        items.append(item_factory("x", category="Art"))

        graph = build_graph(items)

        assert len(graph.edges) == 10
        assert all("x" not in e.as_tuple() for e in graph.edges)

    def test_edges_follow_collection_order(self, item_factory):
        """Test that edges are ordered by the position of their endpoints."""
        items = [
            item_factory("a", category="Science"),
            item_factory("b", category="Art"),
            item_factory("c", category="Science"),
            item_factory("d", category="Art"),
        ]

        graph = build_graph(items)

        assert graph.edges == [GraphEdge("a", "c"), GraphEdge("b", "d")]

    def test_duplicate_ids_are_skipped(self, item_factory):
        items = [item_factory("a"), item_factory("a"), item_factory("b")]

        graph = build_graph(items)

        assert graph.node_ids() == ["a", "b"]
        assert [e.as_tuple() for e in graph.edges] == [("a", "b")]

    def test_node_attributes(self, item_factory):
        item = item_factory("a", category="Health", summary="s" * 120)

        node = build_graph([item]).nodes[0]

        assert node.title == "Item a"
        assert node.summary_length == 120
        assert node.radius == 12.0
        assert node.color == "#f43f5e"

    def test_to_dict(self, sample_items):
        data = build_graph(sample_items).to_dict()

        assert [n["id"] for n in data["nodes"]] == ["a", "b", "c"]
        assert data["edges"] == [{"source": "a", "target": "b"}]
