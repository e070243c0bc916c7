"""
Cluster assignment for visual grouping — pure functions only.

Strategies:
  attribute   — same value of a node attribute (e.g. industry)
  structural  — connected components over edges at or above a strength threshold
  hybrid      — structural components subdivided by attribute
  community   — Louvain communities on the strength-weighted graph

Nodes with no edges at all always form their own singleton cluster.
"""
from __future__ import annotations

import math
from collections import defaultdict
from typing import Callable, Mapping, Optional

import networkx as nx
import numpy as np
from networkx.algorithms.community import louvain_communities
from sklearn.metrics import silhouette_score

from boardnet.config import AnalysisConfig, resolve_config
from boardnet.graph import Graph
from boardnet.models import CentralityResult, Cluster, ClusterAssignment, LayoutResult, Severity

Strategy = Callable[[Graph, AnalysisConfig], dict[str, str]]


def _ordered_groups(groups: list[set[str]]) -> list[list[str]]:
    """Deterministic order: by smallest member id."""
    return sorted((sorted(g) for g in groups), key=lambda g: g[0])


def group_by_attribute(graph: Graph, cfg: AnalysisConfig) -> dict[str, str]:
    out = {}
    for node in graph.all_nodes():
        value = node.attributes.get(cfg.cluster_attribute)
        out[node.id] = f"attr:{value}" if value is not None else f"node:{node.id}"
    return out


def _components(graph: Graph, cfg: AnalysisConfig) -> list[list[str]]:
    G = graph.to_networkx(min_strength=cfg.cluster_strength_threshold)
    return _ordered_groups(list(nx.connected_components(G)))


def group_by_structure(graph: Graph, cfg: AnalysisConfig) -> dict[str, str]:
    out = {}
    for i, members in enumerate(_components(graph, cfg)):
        for h in members:
            out[h] = f"component:{i}"
    return out


def group_hybrid(graph: Graph, cfg: AnalysisConfig) -> dict[str, str]:
    by_attr = group_by_attribute(graph, cfg)
    out = {}
    for i, members in enumerate(_components(graph, cfg)):
        for h in members:
            out[h] = f"component:{i}/{by_attr[h]}"
    return out


def group_by_community(graph: Graph, cfg: AnalysisConfig) -> dict[str, str]:
    G = graph.to_networkx(positive_only=True)
    communities = louvain_communities(G, weight="weight", seed=cfg.seed)
    out = {}
    for i, members in enumerate(_ordered_groups(communities)):
        for h in members:
            out[h] = f"community:{i}"
    return out


STRATEGIES: dict[str, Strategy] = {
    "attribute":  group_by_attribute,
    "structural": group_by_structure,
    "hybrid":     group_hybrid,
    "community":  group_by_community,
}


def influence_level(score: float) -> Severity:
    if score > 0.8:
        return Severity.CRITICAL
    if score > 0.6:
        return Severity.HIGH
    if score > 0.4:
        return Severity.MEDIUM
    return Severity.LOW


def _separation(assignments: dict[str, str], layout: LayoutResult) -> Optional[float]:
    labels = [assignments[h] for h in sorted(assignments)]
    n_clusters = len(set(labels))
    if n_clusters < 2 or n_clusters >= len(labels):
        return None
    X = np.array([layout.positions[h] for h in sorted(assignments)])
    return float(silhouette_score(X, labels))


def cluster_membership(graph: Graph, config: AnalysisConfig | Mapping | None = None) -> dict[str, str]:
    """node id → cluster id under the configured strategy; edgeless nodes stand alone."""
    cfg = resolve_config(config)
    assignments = STRATEGIES[cfg.clustering_strategy](graph, cfg)
    for node in graph.all_nodes():
        if not graph.edges_of(node.id):
            assignments[node.id] = f"node:{node.id}"
    return assignments


def assign_clusters(
    graph: Graph,
    layout: LayoutResult,
    config: AnalysisConfig | Mapping | None = None,
    centrality: Optional[dict[str, CentralityResult]] = None,
) -> ClusterAssignment:
    """
    Assign every node a cluster id and describe each cluster by its
    members, centroid and radius in the layout.

    centrality — when given, each cluster gets an influence level from the
                 mean PageRank of its members
    """
    cfg = resolve_config(config)
    assignments = cluster_membership(graph, cfg)

    members: dict[str, list[str]] = defaultdict(list)
    for h in graph.node_ids:
        members[assignments[h]].append(h)

    clusters: dict[str, Cluster] = {}
    for cid in sorted(members):
        ids = members[cid]
        points = np.array([layout.positions[h] for h in ids], dtype=float)
        center = points.mean(axis=0)
        radius = float(np.linalg.norm(points - center, axis=1).max()) + cfg.cluster_padding
        level = None
        if centrality is not None:
            level = influence_level(sum(centrality[h].pagerank for h in ids) / len(ids))
        clusters[cid] = Cluster(
            id=cid,
            members=tuple(ids),
            centroid=tuple(float(c) for c in center),
            radius=radius,
            influence_level=level,
        )

    separation = _separation(assignments, layout)
    if separation is not None and math.isnan(separation):
        separation = None

    return ClusterAssignment(
        strategy=cfg.clustering_strategy,
        assignments={h: assignments[h] for h in graph.node_ids},
        clusters=clusters,
        separation=separation,
    )
