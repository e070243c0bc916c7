"""
Tests for analytics/conflicts.py.

board_network (see conftest) contains one instance of every pattern:
alice on two competing boards, bob and carol related and both tied to
the bank, and board/financial paths between otherwise unlinked nodes.
"""
import time
from types import SimpleNamespace

import pytest

from boardnet.analytics import conflicts
from boardnet.analytics.conflicts import (
    RULES,
    detect_conflicts,
    length_factor,
    path_severity,
    summarize_conflicts,
)
from boardnet.config import ALL_CONFLICT_RULES, AnalysisConfig
from boardnet.errors import ComputationTimeout
from boardnet.graph import build_graph
from boardnet.models import ConflictCategory, Severity

from conftest import member, org, rel


def only(rule: str, **overrides) -> AnalysisConfig:
    return AnalysisConfig(conflict_rules=(rule,), **overrides)


def by_related(findings):
    return {f.related_node_ids: f for f in findings}


# ── the interlock scenario ────────────────────────────────────────────────────

class TestInterlock:
    def test_shared_organization_reported_once(self, interlock_records):
        g = build_graph(*interlock_records)
        out = detect_conflicts(g, only("indirect_path", max_conflict_path_degree=2))
        assert len(out) == 1
        f = out[0]
        assert (f.subject_node_id, f.related_node_ids) == ("A", ("A", "C", "B"))
        assert f.category is ConflictCategory.GOVERNANCE
        assert f.severity in (Severity.HIGH, Severity.CRITICAL)
        assert f.evidence_edge_ids == ("A--C:shared_board", "B--C:shared_board")

    def test_all_rules_order_shorter_paths_first(self, interlock_records):
        out = detect_conflicts(build_graph(*interlock_records))
        assert [f.related_node_ids for f in out] == [("A", "C"), ("B", "C"), ("A", "C", "B")]
        assert all(f.severity is Severity.CRITICAL for f in out)

    @pytest.mark.parametrize("rule", ALL_CONFLICT_RULES)
    def test_stronger_edges_never_lower_severity(self, rule):
        previous = {}
        for strength in (0.1, 0.3, 0.45, 0.55, 0.65, 0.85, 1.0):
            nodes = [member("A"), member("B"), org("C"), org("D")]
            edges = [
                rel("A", "C", "shared_board", strength),
                rel("B", "C", "shared_board", strength),
                rel("A", "D", "shared_board", strength),
                rel("C", "D", "competitive", strength),
                rel("A", "C", "financial", strength),
                rel("B", "C", "financial", strength),
                rel("A", "B", "family", strength),
            ]
            for f in detect_conflicts(build_graph(nodes, edges), only(rule)):
                if f.dedup_key in previous:
                    assert f.severity.rank >= previous[f.dedup_key]
                previous[f.dedup_key] = f.severity.rank
        assert previous


# ── individual rules ──────────────────────────────────────────────────────────

class TestDirectInterlock:
    def test_every_board_edge_reported(self, board_network):
        out = by_related(detect_conflicts(board_network, only("direct_interlock")))
        assert set(out) == {
            ("acme", "alice"), ("alice", "globex"), ("acme", "bob"),
            ("carol", "globex"), ("dave", "globex"),
        }
        assert out[("acme", "alice")].severity is Severity.CRITICAL
        assert out[("acme", "bob")].severity is Severity.HIGH
        assert out[("dave", "globex")].severity is Severity.MEDIUM
        assert all(f.category is ConflictCategory.GOVERNANCE for f in out.values())


class TestIndirectPath:
    def test_competitive_edge_sets_category(self, board_network):
        out = by_related(detect_conflicts(board_network, only("indirect_path")))
        f = out[("bob", "acme", "globex")]
        assert f.category is ConflictCategory.COMPETITIVE
        assert f.severity is Severity.HIGH
        assert f.score == pytest.approx(0.7)

    def test_financial_edge_sets_category(self, board_network):
        out = by_related(detect_conflicts(board_network, only("indirect_path")))
        assert out[("acme", "bob", "bank")].category is ConflictCategory.FINANCIAL

    def test_longer_paths_score_lower(self, board_network):
        out = by_related(detect_conflicts(board_network, only("indirect_path")))
        f = out[("bank", "carol", "globex", "dave")]
        assert f.score == pytest.approx(0.4 * 0.75)
        assert f.severity is Severity.LOW

    def test_path_degree_limit(self, board_network):
        out = detect_conflicts(board_network, only("indirect_path", max_conflict_path_degree=2))
        assert out
        assert all(len(f.related_node_ids) == 3 for f in out)

    def test_directly_linked_endpoints_skipped(self, board_network):
        out = detect_conflicts(board_network, only("indirect_path"))
        for f in out:
            assert not board_network.edges_between(f.related_node_ids[0], f.related_node_ids[-1])

    def test_family_and_advisory_edges_are_not_paths(self):
        g = build_graph(
            [member("a"), member("b"), member("c")],
            [rel("a", "b", "family"), rel("b", "c", "advisory")],
        )
        assert detect_conflicts(g, only("indirect_path")) == []

    def test_strongest_path_per_endpoint_pair(self):
        # three directors on the same two boards; o2 seats are the stronger ones
        people = ["m1", "m2", "m3"]
        g = build_graph(
            [member(h) for h in people] + [org("o1"), org("o2")],
            [rel(h, "o1", "shared_board", 0.7) for h in people]
            + [rel(h, "o2", "shared_board", 0.9) for h in people],
        )
        out = detect_conflicts(g, only("indirect_path", max_conflict_path_degree=2))
        assert len(out) == 4
        paths = by_related(out)
        assert ("m1", "o2", "m2") in paths
        assert ("m1", "o1", "m2") not in paths
        assert ("o1", "m1", "o2") in paths

    def test_length_factor(self):
        assert [length_factor(n) for n in (2, 3, 4, 5, 8)] == [1.0, 0.75, 0.5, 0.25, 0.25]


class TestFinancialOverlap:
    def test_shared_lender(self, board_network):
        (f,) = detect_conflicts(board_network, only("financial_overlap"))
        assert f.subject_node_id == "bob"
        assert f.related_node_ids == ("bob", "bank", "carol")
        assert f.category is ConflictCategory.FINANCIAL
        assert f.severity is Severity.MEDIUM
        assert f.evidence_edge_ids == ("bob->bank:financial", "carol->bank:financial")


class TestFamilyTie:
    def test_relatives_with_common_affiliation(self, board_network):
        (f,) = detect_conflicts(board_network, only("family_tie"))
        assert f.related_node_ids == ("bob", "bank", "carol")
        assert f.category is ConflictCategory.PERSONAL
        assert f.severity is Severity.CRITICAL
        assert f.evidence_edge_ids[0] == "bob--carol:family"

    def test_relatives_without_common_affiliation(self):
        g = build_graph(
            [member("a"), member("b"), org("x"), org("y")],
            [rel("a", "b", "family"), rel("a", "x"), rel("b", "y")],
        )
        assert detect_conflicts(g, only("family_tie")) == []


class TestCompetitorInterlock:
    def test_director_on_competing_boards(self, board_network):
        (f,) = detect_conflicts(board_network, only("competitor_interlock"))
        assert f.related_node_ids == ("alice", "acme", "globex")
        assert f.category is ConflictCategory.REGULATORY
        assert f.score == pytest.approx(0.85)
        assert f.severity is Severity.CRITICAL
        assert f.evidence_edge_ids[-1] == "acme--globex:competitive"


# ── detector behaviour ────────────────────────────────────────────────────────

class TestDetector:
    def test_rule_registry_matches_config(self):
        assert set(RULES) == set(ALL_CONFLICT_RULES)

    def test_low_confidence_edges_are_not_evidence(self, board_network):
        assert detect_conflicts(board_network, {"min_conflict_confidence": 0.95}) == []

    def test_confidence_at_threshold_is_not_evidence(self):
        g = build_graph([member("a"), org("b")], [rel("a", "b", confidence=0.5)])
        assert detect_conflicts(g, only("direct_interlock")) == []
        assert len(detect_conflicts(g, only("direct_interlock", min_conflict_confidence=0.49))) == 1

    def test_duplicates_keep_most_severe(self):
        # two opposite financial edges give the same A-C-B path twice
        g = build_graph(
            [member("A"), member("B"), org("C")],
            [
                rel("A", "C", "financial", 0.9),
                rel("C", "A", "financial", 0.3),
                rel("B", "C", "shared_board", 0.9),
            ],
        )
        (f,) = detect_conflicts(g, only("indirect_path", max_conflict_path_degree=2))
        assert f.severity is Severity.CRITICAL
        assert "A->C:financial" in f.evidence_edge_ids

    def test_same_members_different_category_both_kept(self, board_network):
        out = detect_conflicts(board_network, {"conflict_rules": ["financial_overlap", "family_tie"]})
        assert len(out) == 2
        assert {f.category for f in out} == {ConflictCategory.FINANCIAL, ConflictCategory.PERSONAL}

    def test_sorted_most_severe_first(self, board_network):
        out = detect_conflicts(board_network)
        ranks = [f.severity.rank for f in out]
        assert ranks == sorted(ranks, reverse=True)

    def test_deterministic(self, board_network):
        assert detect_conflicts(board_network) == detect_conflicts(board_network)

    def test_no_edges_no_findings(self):
        assert detect_conflicts(build_graph([member("a")], [])) == []

    def test_path_severity_scale(self):
        assert [path_severity(s) for s in (0.9, 0.7, 0.5, 0.1)] == [
            Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW,
        ]


class TestSummary:
    def test_counts(self, board_network):
        out = detect_conflicts(board_network)
        summary = summarize_conflicts(out)
        assert summary["total"] == len(out)
        assert sum(summary["by_severity"].values()) == len(out)
        assert summary["by_category"]["regulatory"] == 1

    def test_empty(self):
        summary = summarize_conflicts([])
        assert summary["total"] == 0
        assert set(summary["by_severity"]) == {"low", "medium", "high", "critical"}


# ── deadlines ─────────────────────────────────────────────────────────────────

class SteppedClock:
    """monotonic() stand-in that jumps past any deadline after `calls` reads."""

    def __init__(self, calls: int):
        self.calls = calls
        self.reads = 0

    def monotonic(self) -> float:
        self.reads += 1
        return 0.0 if self.reads <= self.calls else 1e9


class TestDeadline:
    def test_expired_deadline_raises_with_empty_report(self, board_network):
        with pytest.raises(ComputationTimeout) as ex:
            detect_conflicts(board_network, deadline=time.monotonic() - 1)
        assert ex.value.stage == "conflicts"
        assert ex.value.partial == []
        assert ex.value.to_dict()["partial_count"] == 0

    def test_findings_before_deadline_are_kept(self, board_network, monkeypatch):
        # one read before the rule plus one per board edge, then expiry
        # before indirect_path starts
        board_edges = sum(1 for e in board_network.all_edges() if e.relationship_type.value == "shared_board")
        clock = SteppedClock(calls=1 + board_edges)
        monkeypatch.setattr(conflicts, "time", SimpleNamespace(monotonic=clock.monotonic))

        cfg = AnalysisConfig(conflict_rules=("direct_interlock", "indirect_path"))
        with pytest.raises(ComputationTimeout) as ex:
            detect_conflicts(board_network, cfg, deadline=1.0)

        expected = detect_conflicts(board_network, only("direct_interlock"))
        assert ex.value.partial == expected
        assert "indirect_path" in str(ex.value)

    def test_each_rule_honours_deadline(self, board_network):
        for name, fn in RULES.items():
            with pytest.raises(ComputationTimeout):
                fn(board_network, AnalysisConfig(), time.monotonic() - 1)

    def test_no_deadline_matches_generous_deadline(self, board_network):
        assert detect_conflicts(board_network) == detect_conflicts(
            board_network, deadline=time.monotonic() + 60,
        )
