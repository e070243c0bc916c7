"""
End-to-end analysis run for one organization's network.

graph → centrality → layout → conflicts → clusters → summary

Errors never escape run_analysis(): construction and configuration errors
come back in AnalysisOutcome.error with nothing else computed; a
timeout comes back in AnalysisOutcome.warnings alongside whatever the
interrupted stage produced. Layout and conflict detection share one
deadline; every other pass still runs on the frozen graph.
"""
from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Optional

from boardnet.analytics.arrangements import arrange
from boardnet.analytics.centrality import compute_centrality
from boardnet.analytics.clustering import assign_clusters
from boardnet.analytics.conflicts import detect_conflicts, summarize_conflicts
from boardnet.analytics.layout import LayoutSolver
from boardnet.analytics.summary import (
    compute_network_metrics,
    identify_risk_patterns,
    network_analysis,
)
from boardnet.cache import ResultCache, content_hash
from boardnet.config import AnalysisConfig, resolve_config
from boardnet.errors import BoardnetError, ComputationTimeout, ConfigError, GraphError
from boardnet.graph import build_graph
from boardnet.models import CentralityResult, ClusterAssignment, ConflictFinding, LayoutResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisOutcome:
    layout: Optional[LayoutResult] = None
    analytics: Optional[dict[str, CentralityResult]] = None
    conflicts: list[ConflictFinding] = field(default_factory=list)
    clusters: Optional[ClusterAssignment] = None
    metrics: Optional[dict] = None
    risk_patterns: list[dict] = field(default_factory=list)
    analysis: Optional[dict] = None
    error: Optional[BoardnetError] = None
    warnings: list[BoardnetError] = field(default_factory=list)
    cache_key: Optional[str] = None
    cached: bool = False
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def converged(self) -> bool:
        return self.layout is not None and self.layout.converged

    def as_dict(self) -> dict:
        if self.error is not None:
            return {"ok": False, "error": self.error.to_dict()}
        return {
            "ok":               True,
            "cached":           self.cached,
            "converged":        self.converged,
            "warnings":         [w.to_dict() for w in self.warnings],
            "elapsed_seconds":  round(self.elapsed_seconds, 3),
            "layout":           self.layout.as_dict(),
            "analytics":        {h: r.as_dict() for h, r in self.analytics.items()},
            "conflicts":        [f.as_dict() for f in self.conflicts],
            "conflict_summary": summarize_conflicts(self.conflicts),
            "clusters":         self.clusters.as_dict(),
            "metrics":          self.metrics,
            "risk_patterns":    self.risk_patterns,
            "analysis":         self.analysis,
        }


def run_analysis(
    node_records: Iterable[Any],
    edge_records: Iterable[Any],
    config: AnalysisConfig | Mapping[str, Any] | None = None,
    *,
    cache: Optional[ResultCache] = None,
    timeout: Optional[float] = None,
) -> AnalysisOutcome:
    """
    Run the full pipeline over one network.

    timeout — wall-clock seconds for the whole run (overrides
              config.timeout_seconds); layout and conflict detection stop
              early when it passes
    cache   — optional ResultCache; complete results are stored for
              config.cache_ttl_seconds, partial (timed-out) ones never are;
              entries are stored and returned as deep copies
    """
    t0 = time.monotonic()
    node_records, edge_records = list(node_records), list(edge_records)

    try:
        cfg = resolve_config(config)
    except ConfigError as ex:
        logger.warning("Rejected analysis config: %s", ex)
        return AnalysisOutcome(error=ex)

    key = None
    if cache is not None:
        key = content_hash(node_records, edge_records, cfg)
        hit = cache.get(key)
        if hit is not None:
            logger.debug("Cache hit for %s", key[:12])
            return replace(copy.deepcopy(hit), cached=True)

    try:
        graph = build_graph(node_records, edge_records)
    except GraphError as ex:
        logger.warning("Network rejected (%s): %s", ex.kind.value, ex)
        return AnalysisOutcome(error=ex, cache_key=key)

    budget = timeout if timeout is not None else cfg.timeout_seconds
    deadline = t0 + budget if budget is not None else None
    warnings: list[BoardnetError] = []

    analytics = compute_centrality(graph, cfg)

    if cfg.layout_mode == "force_directed":
        try:
            layout = LayoutSolver(graph, cfg).run(deadline=deadline)
        except ComputationTimeout as ex:
            layout = ex.partial
            warnings.append(ex)
    else:
        layout = arrange(graph, cfg, centrality=analytics)

    try:
        conflicts = detect_conflicts(graph, cfg, deadline=deadline)
    except ComputationTimeout as ex:
        conflicts = ex.partial
        warnings.append(ex)

    clusters  = assign_clusters(graph, layout, cfg, centrality=analytics)
    metrics   = compute_network_metrics(graph, analytics, clusters)
    risks     = identify_risk_patterns(graph, analytics)
    analysis  = network_analysis(graph, analytics)

    outcome = AnalysisOutcome(
        layout=layout,
        analytics=analytics,
        conflicts=conflicts,
        clusters=clusters,
        metrics=metrics,
        risk_patterns=risks,
        analysis=analysis,
        warnings=warnings,
        cache_key=key,
        elapsed_seconds=time.monotonic() - t0,
    )
    logger.info(
        "Analysed %r in %.2fs: %d conflicts, %d clusters%s",
        graph, outcome.elapsed_seconds, len(conflicts), len(clusters.clusters),
        "".join(f" ({w.stage} timed out)" for w in warnings),
    )

    if cache is not None and not warnings:
        cache.set(key, copy.deepcopy(outcome), cfg.cache_ttl_seconds)
    return outcome
