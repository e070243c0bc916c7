"""
Centrality analysis — pure functions only.

Five measures per node, each min-max normalised to [0, 1] over the graph:
  degree       — summed strength of incident edges
  closeness    — inverse summed shortest-path distance (distance = 1/strength)
  betweenness  — Brandes, over the same distances
  eigenvector  — power iteration on the strength-weighted adjacency
  pagerank     — strength-weighted transitions, uniform teleport
"""
from __future__ import annotations

from typing import Mapping

import networkx as nx
import numpy as np

from boardnet.config import AnalysisConfig, resolve_config
from boardnet.graph import Graph
from boardnet.models import CentralityResult


def normalize_scores(scores: dict[str, float]) -> dict[str, float]:
    """Min-max to [0, 1]; when every value is equal, all 1.0 (or all 0.0 if they are zero)."""
    if not scores:
        return {}
    lo, hi = min(scores.values()), max(scores.values())
    if hi - lo > 1e-12:
        return {h: (v - lo) / (hi - lo) for h, v in scores.items()}
    return {h: (1.0 if hi > 0 else 0.0) for h in scores}


def weighted_degree(graph: Graph) -> dict[str, float]:
    return {h: sum(e.strength for e in graph.edges_of(h)) for h in graph.node_ids}


def closeness(G: nx.Graph) -> dict[str, float]:
    """Inverse of the summed Dijkstra distance to every reachable node."""
    result = {}
    for h in G.nodes:
        lengths = nx.single_source_dijkstra_path_length(G, h, weight="distance")
        total = sum(d for target, d in lengths.items() if target != h)
        result[h] = 1.0 / total if total > 0 else 0.0
    return result


def betweenness(G: nx.Graph) -> dict[str, float]:
    return nx.betweenness_centrality(G, weight="distance", normalized=True)


def _adjacency(G: nx.Graph, order: tuple[str, ...]) -> np.ndarray:
    return nx.to_numpy_array(G, nodelist=list(order), weight="weight")


def eigenvector(A: np.ndarray, max_iterations: int = 100, tolerance: float = 1e-6) -> np.ndarray:
    """
    Power iteration on A + I (same leading eigenvector, no oscillation on
    bipartite graphs). Returns a unit-L2 vector.
    """
    n = A.shape[0]
    x = np.full(n, 1.0 / np.sqrt(n))
    M = A + np.eye(n)
    for _ in range(max_iterations):
        nxt = M @ x
        norm = np.linalg.norm(nxt)
        if norm == 0:
            return np.zeros(n)
        nxt /= norm
        if np.linalg.norm(nxt - x) < tolerance:
            return nxt
        x = nxt
    return x


def pagerank(
    A: np.ndarray,
    damping: float = 0.85,
    max_iterations: int = 100,
    tolerance: float = 1e-6,
) -> np.ndarray:
    n = A.shape[0]
    out_weight = A.sum(axis=1)
    dangling = out_weight == 0
    P = np.divide(A, out_weight[:, None], out=np.zeros_like(A), where=~dangling[:, None])

    r = np.full(n, 1.0 / n)
    for _ in range(max_iterations):
        nxt = (1.0 - damping) / n + damping * (r @ P + r[dangling].sum() / n)
        if np.linalg.norm(nxt - r) < tolerance:
            return nxt
        r = nxt
    return r


def compute_centrality(
    graph: Graph, config: AnalysisConfig | Mapping | None = None,
) -> dict[str, CentralityResult]:
    """
    Compute all five centrality measures for every node.

    Zero-strength edges carry no weight and are not traversable. A graph
    with no positive-strength edge gets all-zero scores.
    """
    cfg = resolve_config(config)
    order = graph.node_ids
    G = graph.to_networkx(positive_only=True)

    if G.number_of_edges() == 0:
        return {h: CentralityResult() for h in order}

    A = _adjacency(G, order)
    ev = eigenvector(A, cfg.max_iterations, cfg.tolerance)
    pr = pagerank(A, cfg.pagerank_damping, cfg.max_iterations, cfg.tolerance)

    degree = normalize_scores(weighted_degree(graph))
    close  = normalize_scores(closeness(G))
    betw   = normalize_scores(betweenness(G))
    eigen  = normalize_scores({h: float(abs(ev[i])) for i, h in enumerate(order)})
    prank  = normalize_scores({h: float(pr[i]) for i, h in enumerate(order)})

    return {
        h: CentralityResult(
            degree=degree[h],
            betweenness=betw[h],
            closeness=close[h],
            eigenvector=eigen[h],
            pagerank=prank[h],
        )
        for h in order
    }


def rank_nodes(
    centrality: dict[str, CentralityResult], measure: str = "pagerank", top_n: int = 10,
) -> list[tuple[str, float]]:
    """Top nodes by one measure, ties broken by node id."""
    ranked = sorted(
        ((h, getattr(r, measure)) for h, r in centrality.items()),
        key=lambda x: (-x[1], x[0]),
    )
    return ranked[:top_n]
