"""
Fixed geometric arrangements — pure functions only.

Alternatives to the force-directed solver, selected with
AnalysisConfig.layout_mode:

  circular      — every node on one ring, in id order
  hierarchical  — one ring per role level, stacked on the vertical axis;
                  higher roles sit higher, most influential first
  cluster       — cluster centres on an outer ring, members on small rings
                  around their centre

Rings lie in the x/z plane in 3D (y is height) and in the x/y plane in 2D.
Each arrangement is computed in one pass, so its result is always converged.
"""
from __future__ import annotations

import math
from collections import defaultdict
from typing import Callable, Mapping, Optional, Sequence

from boardnet.analytics.clustering import cluster_membership
from boardnet.config import AnalysisConfig, resolve_config
from boardnet.graph import Graph
from boardnet.models import CentralityResult, LayoutResult

# Layout units; a force-directed edge settles near 1.0
CIRCLE_RADIUS = 2.0
RING_BASE_RADIUS = 1.0
RING_STEP = 0.8
LEVEL_HEIGHT = 1.0
CLUSTER_RING_RADIUS = 3.0
MEMBER_RING_RADIUS = 0.5

ROLE_LEVELS = {"owner": 3, "admin": 2, "member": 1, "viewer": 0}


def _point(angle: float, radius: float, height: float, dimensions: int) -> tuple[float, ...]:
    x, z = math.cos(angle) * radius, math.sin(angle) * radius
    if dimensions == 2:
        return (x, z)
    return (x, height, z)


def _ring(ids: Sequence[str], radius: float, height: float, dimensions: int,
          center: tuple[float, float] = (0.0, 0.0)) -> dict[str, tuple[float, ...]]:
    out = {}
    for i, h in enumerate(ids):
        p = _point(i / len(ids) * 2 * math.pi, radius, height, dimensions)
        if dimensions == 2:
            out[h] = (p[0] + center[0], p[1] + center[1])
        else:
            out[h] = (p[0] + center[0], p[1], p[2] + center[1])
    return out


def _result(positions: dict[str, tuple[float, ...]], graph: Graph, dimensions: int) -> LayoutResult:
    return LayoutResult(
        positions={h: positions[h] for h in graph.node_ids},
        dimensions=dimensions,
        iterations_run=0,
        converged=True,
    )


def circular_layout(graph: Graph, config: AnalysisConfig | Mapping | None = None) -> LayoutResult:
    cfg = resolve_config(config)
    radius = CIRCLE_RADIUS if len(graph) > 1 else 0.0
    positions = _ring(sorted(graph.node_ids), radius, 0.0, cfg.dimensions)
    return _result(positions, graph, cfg.dimensions)


def role_level(graph: Graph, node_id: str) -> int:
    """Unknown or missing roles sit on the bottom level."""
    return ROLE_LEVELS.get(graph.node(node_id).attributes.get("role"), 0)


def hierarchical_layout(
    graph: Graph,
    config: AnalysisConfig | Mapping | None = None,
    centrality: Optional[dict[str, CentralityResult]] = None,
) -> LayoutResult:
    """
    Ring radius grows with the level (RING_BASE_RADIUS + level * RING_STEP);
    within a level nodes go round by descending PageRank, then by id.
    """
    cfg = resolve_config(config)
    levels: dict[int, list[str]] = defaultdict(list)
    for h in graph.node_ids:
        levels[role_level(graph, h)].append(h)

    def influence(h: str) -> float:
        return centrality[h].pagerank if centrality else 0.0

    positions = {}
    for level, ids in levels.items():
        ordered = sorted(ids, key=lambda h: (-influence(h), h))
        radius = RING_BASE_RADIUS + level * RING_STEP
        positions.update(_ring(ordered, radius, level * LEVEL_HEIGHT, cfg.dimensions))
    return _result(positions, graph, cfg.dimensions)


def cluster_layout(
    graph: Graph,
    config: AnalysisConfig | Mapping | None = None,
    membership: Optional[dict[str, str]] = None,
) -> LayoutResult:
    """membership defaults to clustering.cluster_membership() under the same config."""
    cfg = resolve_config(config)
    if membership is None:
        membership = cluster_membership(graph, cfg)

    groups: dict[str, list[str]] = defaultdict(list)
    for h in sorted(graph.node_ids):
        groups[membership[h]].append(h)

    cluster_ids = sorted(groups)
    outer = CLUSTER_RING_RADIUS if len(cluster_ids) > 1 else 0.0
    positions = {}
    for i, cid in enumerate(cluster_ids):
        angle = i / len(cluster_ids) * 2 * math.pi
        center = (math.cos(angle) * outer, math.sin(angle) * outer)
        inner = MEMBER_RING_RADIUS if len(groups[cid]) > 1 else 0.0
        positions.update(_ring(groups[cid], inner, 0.0, cfg.dimensions, center))
    return _result(positions, graph, cfg.dimensions)


ARRANGEMENTS: dict[str, Callable[..., LayoutResult]] = {
    "circular":     circular_layout,
    "hierarchical": hierarchical_layout,
    "cluster":      cluster_layout,
}


def arrange(
    graph: Graph,
    config: AnalysisConfig | Mapping | None = None,
    centrality: Optional[dict[str, CentralityResult]] = None,
) -> LayoutResult:
    """Dispatch on config.layout_mode; force_directed is not handled here."""
    cfg = resolve_config(config)
    if cfg.layout_mode == "hierarchical":
        return hierarchical_layout(graph, cfg, centrality)
    if cfg.layout_mode not in ARRANGEMENTS:
        raise ValueError(f"{cfg.layout_mode!r} is not a fixed arrangement")
    return ARRANGEMENTS[cfg.layout_mode](graph, cfg)
