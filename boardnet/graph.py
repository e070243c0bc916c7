"""
Graph Model — assembles validated nodes and merged edges from raw records.

The Graph returned by build_graph() exposes read accessors only; every
analytics pass treats it as frozen for the duration of one run.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Iterable

import networkx as nx
from pydantic import ValidationError

from boardnet.errors import GraphError, GraphErrorKind
from boardnet.models import (
    DIRECTIONAL_TYPES,
    Edge,
    EdgeRecord,
    Node,
    NodeAttributes,
    NodeRecord,
)

logger = logging.getLogger(__name__)


class Graph:
    def __init__(self, nodes: dict[str, Node], edges: Iterable[Edge]):
        self._nodes: dict[str, Node] = {k: nodes[k] for k in sorted(nodes)}
        self._edges: tuple[Edge, ...] = tuple(
            sorted(edges, key=lambda e: (e.source, e.target, e.relationship_type.value))
        )
        incident: dict[str, list[Edge]] = {h: [] for h in self._nodes}
        for e in self._edges:
            incident[e.source].append(e)
            incident[e.target].append(e)
        self._incident = {h: tuple(es) for h, es in incident.items()}
        self._neighbors = {
            h: tuple(sorted({e.other(h) for e in es})) for h, es in self._incident.items()
        }

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self._nodes)}, edges={len(self._edges)})"

    @property
    def node_ids(self) -> tuple[str, ...]:
        return tuple(self._nodes)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def node(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise KeyError(f"Unknown node id: {node_id!r}") from None

    def all_nodes(self) -> tuple[Node, ...]:
        return tuple(self._nodes.values())

    def all_edges(self) -> tuple[Edge, ...]:
        return self._edges

    def edges_of(self, node_id: str) -> tuple[Edge, ...]:
        self.node(node_id)
        return self._incident[node_id]

    def neighbors(self, node_id: str) -> tuple[str, ...]:
        self.node(node_id)
        return self._neighbors[node_id]

    def edges_between(self, a: str, b: str) -> tuple[Edge, ...]:
        return tuple(e for e in self.edges_of(a) if e.other(a) == b)

    def to_networkx(self, min_strength: float = 0.0, positive_only: bool = False) -> nx.Graph:
        """
        Undirected projection with parallel edges collapsed.

        weight   — summed strength of all parallel edges
        strength — strongest parallel edge
        distance — 1 / strength (shortest-path cost)
        """
        G = nx.Graph()
        G.add_nodes_from(self._nodes)
        for e in self._edges:
            if e.strength < min_strength or (positive_only and e.strength <= 0):
                continue
            if G.has_edge(e.source, e.target):
                data = G[e.source][e.target]
                data["weight"] += e.strength
                data["strength"] = max(data["strength"], e.strength)
                data["edge_ids"].append(e.id)
            else:
                G.add_edge(e.source, e.target, weight=e.strength, strength=e.strength, edge_ids=[e.id])
        for _, _, data in G.edges(data=True):
            data["distance"] = 1.0 / data["strength"] if data["strength"] > 0 else math.inf
        return G


# ── Construction ──────────────────────────────────────────────────────────────

def _validate(model, raw: Any, label: str):
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except ValidationError as ex:
        first = ex.errors()[0]
        where = ".".join(str(p) for p in first["loc"]) or label
        logger.warning("Skipping malformed %s record (%s: %s): %r", label, where, first["msg"], raw)
        return None


def _merge_attributes(first: NodeAttributes, later: NodeAttributes) -> NodeAttributes:
    merged = {**later.as_dict(), **first.as_dict()}
    return NodeAttributes.model_validate(merged)


def build_graph(node_records: Iterable[Any], edge_records: Iterable[Any]) -> Graph:
    """
    Build an immutable Graph from raw node and edge records.

    Records may be dicts or NodeRecord/EdgeRecord instances. Malformed
    records are skipped with a warning. Raises GraphError on dangling
    edges, self-loops, conflicting duplicate nodes, or when no valid node
    remains.
    """
    nodes: dict[str, Node] = {}
    for raw in node_records:
        rec = _validate(NodeRecord, raw, "node")
        if rec is None:
            continue
        existing = nodes.get(rec.id)
        if existing is None:
            nodes[rec.id] = Node(id=rec.id, kind=rec.kind, attributes=rec.attributes)
        elif existing.kind is not rec.kind:
            raise GraphError(
                GraphErrorKind.DUPLICATE_NODE,
                f"Node {rec.id!r} submitted as both {existing.kind.value} and {rec.kind.value}",
                record=raw,
            )
        else:
            nodes[rec.id] = Node(
                id=rec.id, kind=rec.kind,
                attributes=_merge_attributes(existing.attributes, rec.attributes),
            )

    if not nodes:
        raise GraphError(GraphErrorKind.EMPTY_GRAPH, "No valid node records supplied")

    edges: dict[tuple, Edge] = {}
    merged = 0
    for raw in edge_records:
        rec = _validate(EdgeRecord, raw, "edge")
        if rec is None:
            continue
        if rec.source_id == rec.target_id:
            raise GraphError(
                GraphErrorKind.SELF_LOOP,
                f"Edge {rec.relationship_type.value} on {rec.source_id!r} is a self-loop",
                record=raw,
            )
        for endpoint in (rec.source_id, rec.target_id):
            if endpoint not in nodes:
                raise GraphError(
                    GraphErrorKind.DANGLING_EDGE,
                    f"Edge {rec.source_id!r} -> {rec.target_id!r} references unknown node {endpoint!r}",
                    record=raw,
                )

        source, target = rec.source_id, rec.target_id
        if rec.relationship_type not in DIRECTIONAL_TYPES and target < source:
            source, target = target, source

        key = (source, target, rec.relationship_type)
        prev = edges.get(key)
        if prev is not None:
            merged += 1
            edges[key] = Edge(
                source, target, rec.relationship_type,
                strength=max(prev.strength, rec.strength),
                confidence=max(prev.confidence, rec.confidence),
            )
        else:
            edges[key] = Edge(source, target, rec.relationship_type, rec.strength, rec.confidence)

    graph = Graph(nodes, edges.values())
    logger.debug("Built %r (%d duplicate edges merged)", graph, merged)
    return graph
