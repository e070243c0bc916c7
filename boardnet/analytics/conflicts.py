"""
Conflict-of-interest detection — pure functions only.

Each rule scans the graph for one governance-risk pattern and returns
ConflictFinding records. Rules are registered by name and selected through
AnalysisConfig.conflict_rules; the detector unions their output,
deduplicates it, and orders it most severe first.

Only edges whose confidence is above min_conflict_confidence are evidence.

Every rule takes an optional deadline (a time.monotonic() value). When it
passes, the detector raises ComputationTimeout carrying the deduplicated
findings gathered so far.
"""
from __future__ import annotations

import logging
import time
from collections import defaultdict
from typing import Callable, Iterable, Mapping, Optional

from boardnet.config import AnalysisConfig, resolve_config
from boardnet.errors import ComputationTimeout
from boardnet.graph import Graph
from boardnet.models import (
    ConflictCategory,
    ConflictFinding,
    Edge,
    RelationshipType as RT,
    Severity,
)

logger = logging.getLogger(__name__)

Rule = Callable[[Graph, AnalysisConfig, Optional[float]], list[ConflictFinding]]

RULES: dict[str, Rule] = {}

PATH_TYPES = frozenset({RT.SHARED_BOARD, RT.FINANCIAL, RT.COMPETITIVE})
AFFILIATION_TYPES = frozenset({RT.SHARED_BOARD, RT.FINANCIAL})

# Paths walked between two deadline checks
DEADLINE_CHECK_INTERVAL = 512


def rule(name: str) -> Callable[[Rule], Rule]:
    def register(fn: Rule) -> Rule:
        RULES[name] = fn
        return fn
    return register


# ── Severity scales ───────────────────────────────────────────────────────────

def interlock_severity(strength: float) -> Severity:
    if strength > 0.8:
        return Severity.CRITICAL
    if strength > 0.5:
        return Severity.HIGH
    return Severity.MEDIUM


def path_severity(score: float) -> Severity:
    if score > 0.8:
        return Severity.CRITICAL
    if score > 0.6:
        return Severity.HIGH
    if score > 0.4:
        return Severity.MEDIUM
    return Severity.LOW


def overlap_severity(strength: float) -> Severity:
    if strength > 0.8:
        return Severity.HIGH
    if strength > 0.5:
        return Severity.MEDIUM
    return Severity.LOW


def length_factor(path_edges: int) -> float:
    """2 edges → 1.0, 3 → 0.75, 4 → 0.5, longer → 0.25."""
    return max(1.0 - 0.25 * (path_edges - 2), 0.25)


# ── helpers ──────────────────────────────────────────────────────────────────

def _evidence(graph: Graph, cfg: AnalysisConfig) -> list[Edge]:
    return [e for e in graph.all_edges() if e.confidence > cfg.min_conflict_confidence]


def _expired(deadline: Optional[float]) -> bool:
    return deadline is not None and time.monotonic() >= deadline


def _check_deadline(deadline: Optional[float], rule_name: str, findings) -> None:
    if _expired(deadline):
        raise ComputationTimeout(
            f"Conflict rule {rule_name} exceeded its time budget",
            partial=list(findings),
            stage="conflicts",
        )


def _adjacency(edges: Iterable[Edge]) -> dict[str, list[Edge]]:
    adj: dict[str, list[Edge]] = defaultdict(list)
    for e in edges:
        adj[e.source].append(e)
        adj[e.target].append(e)
    return adj


def _name(graph: Graph, node_id: str) -> str:
    return graph.node(node_id).attributes.get("name", node_id)


def _path_category(edges: list[Edge]) -> ConflictCategory:
    types = {e.relationship_type for e in edges}
    if RT.COMPETITIVE in types:
        return ConflictCategory.COMPETITIVE
    if RT.FINANCIAL in types:
        return ConflictCategory.FINANCIAL
    return ConflictCategory.GOVERNANCE


def _walk_paths(adj: dict[str, list[Edge]], start: str, max_edges: int):
    """Yield (node_path, edge_path) for every simple path of 1..max_edges edges."""
    stack = [(start, [start], [])]
    while stack:
        node, path, edges = stack.pop()
        if edges:
            yield path, edges
        if len(edges) == max_edges:
            continue
        for e in adj.get(node, []):
            nxt = e.other(node)
            if nxt in path:
                continue
            stack.append((nxt, path + [nxt], edges + [e]))


# ── Rules ─────────────────────────────────────────────────────────────────────

@rule("direct_interlock")
def detect_direct_interlocks(
    graph: Graph, cfg: AnalysisConfig, deadline: Optional[float] = None,
) -> list[ConflictFinding]:
    """Every confident shared_board edge is a governance interlock."""
    findings = []
    for e in _evidence(graph, cfg):
        if e.relationship_type is not RT.SHARED_BOARD:
            continue
        _check_deadline(deadline, "direct_interlock", findings)
        findings.append(ConflictFinding(
            subject_node_id=e.source,
            related_node_ids=(e.source, e.target),
            category=ConflictCategory.GOVERNANCE,
            severity=interlock_severity(e.strength),
            evidence_edge_ids=(e.id,),
            rule="direct_interlock",
            score=e.strength,
            description=f"{_name(graph, e.source)} and {_name(graph, e.target)} share a board seat",
        ))
    return findings


def _path_finding(graph: Graph, path: list[str], edges: list[Edge], score: float,
                  category: ConflictCategory) -> ConflictFinding:
    start, end = path[0], path[-1]
    return ConflictFinding(
        subject_node_id=start,
        related_node_ids=tuple(path),
        category=category,
        severity=path_severity(score),
        evidence_edge_ids=tuple(e.id for e in edges),
        rule="indirect_path",
        score=score,
        description=(
            f"{_name(graph, start)} reaches {_name(graph, end)} "
            f"through {len(edges) - 1} intermediar{'y' if len(edges) == 2 else 'ies'}"
        ),
    )


@rule("indirect_path")
def detect_indirect_paths(
    graph: Graph, cfg: AnalysisConfig, deadline: Optional[float] = None,
) -> list[ConflictFinding]:
    """
    Paths of 2..max_conflict_path_degree board/financial/competitive edges
    between nodes with no direct relationship. Path strength is the weakest
    edge on the path; longer paths score lower.

    Only the strongest path per (start, end, category) is reported; ties go
    to the shorter path, then the lexicographically smaller one.
    """
    adj = _adjacency(e for e in _evidence(graph, cfg) if e.relationship_type in PATH_TYPES)
    best: dict[tuple, tuple] = {}
    walked = 0
    try:
        for start in sorted(adj):
            _check_deadline(deadline, "indirect_path", ())
            for path, edges in _walk_paths(adj, start, cfg.max_conflict_path_degree):
                walked += 1
                if walked % DEADLINE_CHECK_INTERVAL == 0:
                    _check_deadline(deadline, "indirect_path", ())
                end = path[-1]
                if len(edges) < 2 or end < start:
                    continue
                if graph.edges_between(start, end):
                    continue
                score = min(e.strength for e in edges) * length_factor(len(edges))
                category = _path_category(edges)
                rank = (-score, len(edges), path)
                key = (start, end, category)
                prev = best.get(key)
                if prev is None or rank < prev[0]:
                    best[key] = (rank, path, edges, score, category)
    except ComputationTimeout as ex:
        partial = [_path_finding(graph, *entry[1:]) for entry in best.values()]
        raise ComputationTimeout(str(ex), partial=partial, stage="conflicts") from None
    return [_path_finding(graph, *entry[1:]) for entry in best.values()]


@rule("financial_overlap")
def detect_financial_overlaps(
    graph: Graph, cfg: AnalysisConfig, deadline: Optional[float] = None,
) -> list[ConflictFinding]:
    """Pairs holding financial ties to the same organization."""
    ties: dict[str, list[Edge]] = defaultdict(list)
    for e in _evidence(graph, cfg):
        if e.relationship_type is not RT.FINANCIAL:
            continue
        for end in (e.source, e.target):
            if graph.node(end).is_organization:
                ties[end].append(e)

    findings = []
    for org, edges in sorted(ties.items()):
        _check_deadline(deadline, "financial_overlap", findings)
        for i, ea in enumerate(edges):
            for eb in edges[i + 1:]:
                a, b = sorted((ea.other(org), eb.other(org)))
                if org in (a, b) or a == b:
                    continue
                first, second = (ea, eb) if ea.other(org) == a else (eb, ea)
                strength = min(ea.strength, eb.strength)
                findings.append(ConflictFinding(
                    subject_node_id=a,
                    related_node_ids=(a, org, b),
                    category=ConflictCategory.FINANCIAL,
                    severity=overlap_severity(strength),
                    evidence_edge_ids=(first.id, second.id),
                    rule="financial_overlap",
                    score=strength,
                    description=(
                        f"{_name(graph, a)} and {_name(graph, b)} both hold financial ties "
                        f"to {_name(graph, org)}"
                    ),
                ))
    return findings


def _affiliations(graph: Graph, cfg: AnalysisConfig) -> dict[str, dict[str, Edge]]:
    """{node: {organization: strongest board/financial edge}}"""
    result: dict[str, dict[str, Edge]] = defaultdict(dict)
    for e in _evidence(graph, cfg):
        if e.relationship_type not in AFFILIATION_TYPES:
            continue
        for end in (e.source, e.target):
            other = e.other(end)
            if not graph.node(other).is_organization:
                continue
            prev = result[end].get(other)
            if prev is None or e.strength > prev.strength:
                result[end][other] = e
    return result


@rule("family_tie")
def detect_family_ties(
    graph: Graph, cfg: AnalysisConfig, deadline: Optional[float] = None,
) -> list[ConflictFinding]:
    """Relatives who are both affiliated with the same organization."""
    affiliations = _affiliations(graph, cfg)
    findings = []
    for e in _evidence(graph, cfg):
        if e.relationship_type is not RT.FAMILY:
            continue
        _check_deadline(deadline, "family_tie", findings)
        a, b = e.source, e.target
        shared = sorted(set(affiliations.get(a, {})) & set(affiliations.get(b, {})))
        for org in shared:
            findings.append(ConflictFinding(
                subject_node_id=a,
                related_node_ids=(a, org, b),
                category=ConflictCategory.PERSONAL,
                severity=interlock_severity(e.strength),
                evidence_edge_ids=(e.id, affiliations[a][org].id, affiliations[b][org].id),
                rule="family_tie",
                score=e.strength,
                description=(
                    f"{_name(graph, a)} and {_name(graph, b)} are related and both "
                    f"affiliated with {_name(graph, org)}"
                ),
            ))
    return findings


@rule("competitor_interlock")
def detect_competitor_interlocks(
    graph: Graph, cfg: AnalysisConfig, deadline: Optional[float] = None,
) -> list[ConflictFinding]:
    """One person on the boards of two organizations that compete."""
    evidence = _evidence(graph, cfg)
    seats: dict[str, dict[str, Edge]] = defaultdict(dict)
    for e in evidence:
        if e.relationship_type is not RT.SHARED_BOARD:
            continue
        for end in (e.source, e.target):
            other = e.other(end)
            if graph.node(other).is_organization and not graph.node(end).is_organization:
                seats[end][other] = e

    findings = []
    for comp in evidence:
        if comp.relationship_type is not RT.COMPETITIVE:
            continue
        _check_deadline(deadline, "competitor_interlock", findings)
        org_a, org_b = comp.source, comp.target
        for person in sorted(seats):
            held = seats[person]
            if org_a not in held or org_b not in held:
                continue
            strength = min(comp.strength, held[org_a].strength, held[org_b].strength)
            findings.append(ConflictFinding(
                subject_node_id=person,
                related_node_ids=(person, org_a, org_b),
                category=ConflictCategory.REGULATORY,
                severity=path_severity(strength),
                evidence_edge_ids=(held[org_a].id, held[org_b].id, comp.id),
                rule="competitor_interlock",
                score=strength,
                description=(
                    f"{_name(graph, person)} sits on the boards of competitors "
                    f"{_name(graph, org_a)} and {_name(graph, org_b)}"
                ),
            ))
    return findings


# ── Detector ──────────────────────────────────────────────────────────────────

def finding_sort_key(f: ConflictFinding) -> tuple:
    return (-f.severity.rank, len(f.related_node_ids), f.subject_node_id,
            f.related_node_ids, f.category.value, -f.score)


def _report(findings: list[ConflictFinding]) -> list[ConflictFinding]:
    findings = sorted(findings, key=finding_sort_key)
    seen: set[tuple] = set()
    report = []
    for f in findings:
        if f.dedup_key in seen:
            continue
        seen.add(f.dedup_key)
        report.append(f)
    return report


def detect_conflicts(
    graph: Graph,
    config: AnalysisConfig | Mapping | None = None,
    deadline: Optional[float] = None,
) -> list[ConflictFinding]:
    """
    Run the configured rules and return the deduplicated report,
    most severe first; ties broken by shorter path, then subject id.

    deadline — time.monotonic() value; when it passes, ComputationTimeout
               is raised with the report built from the findings so far.
    """
    cfg = resolve_config(config)
    findings: list[ConflictFinding] = []
    try:
        for name in cfg.conflict_rules:
            _check_deadline(deadline, name, ())
            findings.extend(RULES[name](graph, cfg, deadline))
    except ComputationTimeout as ex:
        findings.extend(ex.partial or ())
        report = _report(findings)
        logger.warning("Conflict detection stopped early with %d findings: %s", len(report), ex)
        raise ComputationTimeout(str(ex), partial=report, stage="conflicts") from None
    return _report(findings)


def summarize_conflicts(findings: list[ConflictFinding]) -> dict:
    by_severity = {s.value: 0 for s in Severity}
    by_category = {c.value: 0 for c in ConflictCategory}
    for f in findings:
        by_severity[f.severity.value] += 1
        by_category[f.category.value] += 1
    return {"total": len(findings), "by_severity": by_severity, "by_category": by_category}
