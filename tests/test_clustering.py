"""
Tests for analytics/clustering.py.

Layouts are written by hand where centroid/radius values are checked, so
the assertions don't depend on the solver.
"""
import math

import pytest

from boardnet.analytics.centrality import compute_centrality
from boardnet.analytics.clustering import STRATEGIES, assign_clusters, influence_level
from boardnet.analytics.layout import compute_layout
from boardnet.config import AnalysisConfig
from boardnet.graph import build_graph
from boardnet.models import LayoutResult, Severity

from conftest import member


def fixed_layout(positions: dict) -> LayoutResult:
    dims = len(next(iter(positions.values())))
    return LayoutResult(positions=positions, dimensions=dims, iterations_run=0, converged=True)


TRIANGLE_POSITIONS = {
    "a1": (0.0, 0.0, 0.0), "a2": (1.0, 0.0, 0.0), "a3": (0.0, 1.0, 0.0),
    "b1": (10.0, 0.0, 0.0), "b2": (11.0, 0.0, 0.0), "b3": (10.0, 1.0, 0.0),
}


# ── strategies ────────────────────────────────────────────────────────────────

class TestStrategies:
    def test_structural_components(self, two_triangles):
        out = assign_clusters(two_triangles, fixed_layout(TRIANGLE_POSITIONS))
        assert out.strategy == "structural"
        assert out.assignments == {
            "a1": "component:0", "a2": "component:0", "a3": "component:0",
            "b1": "component:1", "b2": "component:1", "b3": "component:1",
        }

    def test_structural_threshold_drops_weak_edges(self, board_network, fast_config):
        layout = compute_layout(board_network, fast_config)
        out = assign_clusters(board_network, layout, {"iterations": 50})
        assert out.assignments["dave"] == "component:1"
        assert out.assignments["alice"] == out.assignments["bank"] == "component:0"

    def test_attribute(self, board_network, fast_config):
        layout = compute_layout(board_network, fast_config)
        out = assign_clusters(board_network, layout, {"clustering_strategy": "attribute"})
        assert out.clusters["attr:tech"].members == ("acme", "alice", "dave", "globex")
        assert out.clusters["attr:finance"].members == ("bank", "bob", "carol")

    def test_attribute_missing_value_is_singleton(self, fast_config):
        g = build_graph(
            [member("a", industry="tech"), member("b")],
            [{"source_id": "a", "target_id": "b", "relationship_type": "other", "strength": 1.0}],
        )
        out = assign_clusters(g, compute_layout(g, fast_config), {"clustering_strategy": "attribute"})
        assert out.assignments == {"a": "attr:tech", "b": "node:b"}

    def test_hybrid_splits_components_by_attribute(self, board_network, fast_config):
        layout = compute_layout(board_network, fast_config)
        out = assign_clusters(board_network, layout, {"clustering_strategy": "hybrid"})
        assert out.assignments["alice"] == "component:0/attr:tech"
        assert out.assignments["bob"] == "component:0/attr:finance"
        assert out.assignments["dave"] == "component:1/attr:tech"

    def test_community_recovers_triangles(self, two_triangles):
        out = assign_clusters(
            two_triangles, fixed_layout(TRIANGLE_POSITIONS), {"clustering_strategy": "community"},
        )
        assert out.assignments["a1"] == out.assignments["a2"] == out.assignments["a3"]
        assert out.assignments["b1"] == out.assignments["b2"] == out.assignments["b3"]
        assert out.assignments["a1"] != out.assignments["b1"]
        assert all(cid.startswith("community:") for cid in out.assignments.values())

    @pytest.mark.parametrize("strategy", sorted(STRATEGIES))
    def test_every_node_assigned_once(self, board_network, fast_config, strategy):
        layout = compute_layout(board_network, fast_config)
        out = assign_clusters(board_network, layout, {"clustering_strategy": strategy})
        assert set(out.assignments) == set(board_network.node_ids)
        members = [h for c in out.clusters.values() for h in c.members]
        assert sorted(members) == sorted(board_network.node_ids)

    @pytest.mark.parametrize("strategy", sorted(STRATEGIES))
    def test_isolated_node_is_singleton(self, board_network, fast_config, strategy):
        layout = compute_layout(board_network, fast_config)
        out = assign_clusters(board_network, layout, {"clustering_strategy": strategy})
        assert out.assignments["erin"] == "node:erin"
        assert out.clusters["node:erin"].members == ("erin",)


# ── cluster geometry ──────────────────────────────────────────────────────────

class TestGeometry:
    def test_centroid_is_member_mean(self, two_triangles):
        out = assign_clusters(two_triangles, fixed_layout(TRIANGLE_POSITIONS))
        assert out.clusters["component:0"].centroid == pytest.approx((1 / 3, 1 / 3, 0.0))
        assert out.clusters["component:1"].centroid == pytest.approx((31 / 3, 1 / 3, 0.0))

    def test_radius_covers_members_plus_padding(self, two_triangles):
        out = assign_clusters(two_triangles, fixed_layout(TRIANGLE_POSITIONS), {"cluster_padding": 0.25})
        cluster = out.clusters["component:0"]
        furthest = max(math.dist(TRIANGLE_POSITIONS[h], cluster.centroid) for h in cluster.members)
        assert cluster.radius == pytest.approx(furthest + 0.25)

    def test_singleton_radius_is_padding(self):
        g = build_graph([member("solo")], [])
        out = assign_clusters(g, fixed_layout({"solo": (2.0, 3.0)}))
        assert out.clusters["node:solo"].centroid == (2.0, 3.0)
        assert out.clusters["node:solo"].radius == pytest.approx(0.5)

    def test_idempotent(self, board_network, fast_config):
        layout = compute_layout(board_network, fast_config)
        assert assign_clusters(board_network, layout) == assign_clusters(board_network, layout)


# ── influence and separation ──────────────────────────────────────────────────

class TestInfluence:
    def test_levels(self):
        assert [influence_level(s) for s in (0.9, 0.7, 0.5, 0.2)] == [
            Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW,
        ]

    def test_uniform_network_is_critical_everywhere(self, two_triangles):
        centrality = compute_centrality(two_triangles)
        out = assign_clusters(two_triangles, fixed_layout(TRIANGLE_POSITIONS), centrality=centrality)
        assert {c.influence_level for c in out.clusters.values()} == {Severity.CRITICAL}

    def test_no_centrality_no_level(self, two_triangles):
        out = assign_clusters(two_triangles, fixed_layout(TRIANGLE_POSITIONS))
        assert all(c.influence_level is None for c in out.clusters.values())


class TestSeparation:
    def test_distant_clusters_score_high(self, two_triangles):
        out = assign_clusters(two_triangles, fixed_layout(TRIANGLE_POSITIONS))
        assert out.separation > 0.8

    def test_single_cluster_has_none(self, star_graph, fast_config):
        out = assign_clusters(star_graph, compute_layout(star_graph, fast_config))
        assert len(out.clusters) == 1
        assert out.separation is None

    def test_all_singletons_have_none(self, fast_config):
        g = build_graph([member(h) for h in "abc"], [])
        out = assign_clusters(g, compute_layout(g, fast_config))
        assert len(out.clusters) == 3
        assert out.separation is None

    def test_as_dict_shape(self, two_triangles):
        d = assign_clusters(two_triangles, fixed_layout(TRIANGLE_POSITIONS)).as_dict()
        assert d["strategy"] == "structural"
        assert [c["size"] for c in d["clusters"]] == [3, 3]
        assert isinstance(d["separation"], float)
