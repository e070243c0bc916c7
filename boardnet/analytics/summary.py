"""
Network metrics, member findings and risk patterns — pure functions only.
"""
from __future__ import annotations

import math
from collections import defaultdict
from typing import Optional

import networkx as nx
from networkx.algorithms.community import modularity as partition_modularity

from boardnet.graph import Graph
from boardnet.models import CentralityResult, ClusterAssignment

RECOMMENDATIONS = {
    "single_point_failure": [
        "Develop succession planning for bridging members",
        "Add redundant relationships across the affected sub-networks",
    ],
    "isolation": [
        "Facilitate introductions",
        "Create cross-functional committee assignments",
        "Improve onboarding process",
    ],
    "over_dependence": [
        "Distribute leadership responsibilities",
        "Identify backup influencers",
    ],
    "echo_chamber": [
        "Recruit members with outside industry experience",
        "Rotate committee memberships",
    ],
}


def average_path_length(G: nx.Graph) -> float:
    """Mean hop count over every ordered pair of connected, distinct nodes."""
    total, pairs = 0, 0
    for _, lengths in nx.all_pairs_shortest_path_length(G):
        for d in lengths.values():
            if d > 0:
                total += d
                pairs += 1
    return total / pairs if pairs else 0.0


def influence_distribution(scores: list[float]) -> dict:
    ranked = sorted(scores, reverse=True)
    total = sum(ranked)
    if not ranked or total <= 0:
        return {"concentrated": 0.0, "distributed": 0.0, "balanced": 0.0}
    top = math.ceil(len(ranked) * 0.2)
    concentrated = sum(ranked[:top]) / total
    return {
        "concentrated": round(concentrated, 4),
        "distributed":  round(1 - concentrated, 4),
        "balanced":     round(1 - abs(0.5 - concentrated) * 2, 4),
    }


def compute_network_metrics(
    graph: Graph,
    centrality: Optional[dict[str, CentralityResult]] = None,
    assignment: Optional[ClusterAssignment] = None,
) -> dict:
    """
    density, clustering coefficient, average path length, PageRank
    centralization, modularity of the cluster partition, influence spread.
    """
    G = graph.to_networkx(positive_only=True)

    centralization = 0.0
    spread = influence_distribution([])
    if centrality:
        pr = [r.pagerank for r in centrality.values()]
        top = max(pr)
        if top > 0:
            centralization = (top - sum(pr) / len(pr)) / top
        spread = influence_distribution(pr)

    modularity = 0.0
    if assignment is not None and G.number_of_edges() > 0:
        groups: dict[str, set[str]] = defaultdict(set)
        for h, cid in assignment.assignments.items():
            groups[cid].add(h)
        modularity = partition_modularity(G, list(groups.values()), weight="weight")

    return {
        "node_count":             len(graph),
        "edge_count":             len(graph.all_edges()),
        "density":                round(nx.density(G), 4),
        "clustering_coefficient": round(nx.average_clustering(G), 4),
        "average_path_length":    round(average_path_length(G), 4),
        "component_count":        nx.number_connected_components(G),
        "centralization":         round(centralization, 4),
        "modularity":             round(modularity, 4),
        "influence_distribution": spread,
    }


def key_influencers(
    centrality: dict[str, CentralityResult], threshold: float = 0.7, top_n: int = 5,
) -> list[str]:
    ranked = sorted(
        (h for h, r in centrality.items() if r.pagerank > threshold),
        key=lambda h: (-centrality[h].pagerank, h),
    )
    return ranked[:top_n]


def communication_bridges(
    graph: Graph, centrality: dict[str, CentralityResult],
    threshold: float = 0.6, min_edges: int = 3,
) -> list[str]:
    return [
        h for h in graph.node_ids
        if len(graph.edges_of(h)) >= min_edges and centrality[h].betweenness > threshold
    ]


def isolated_members(graph: Graph) -> list[str]:
    """Nodes with at most one relationship."""
    return [h for h in graph.node_ids if len(graph.edges_of(h)) <= 1]


def collaboration_opportunities(
    graph: Graph,
    centrality: dict[str, CentralityResult],
    attributes: tuple[str, ...] = ("industry", "role"),
    threshold: float = 0.6,
    top_n: int = 10,
) -> list[dict]:
    """
    Unconnected member pairs worth introducing.

    potential = 0.3 * (shared attribute values) + 0.35 * (pagerank_a + pagerank_b);
    pairs above threshold, strongest first, ties by id.
    """
    people = sorted(h for h in graph.node_ids if not graph.node(h).is_organization)
    found = []
    for i, a in enumerate(people):
        attrs_a = graph.node(a).attributes
        for b in people[i + 1:]:
            if graph.edges_between(a, b):
                continue
            attrs_b = graph.node(b).attributes
            overlap = sum(
                1 for key in attributes
                if attrs_a.get(key) is not None and attrs_a.get(key) == attrs_b.get(key)
            )
            potential = overlap * 0.3 + (centrality[a].pagerank + centrality[b].pagerank) * 0.35
            if potential > threshold:
                found.append({"source": a, "target": b, "potential": round(potential, 4)})
    found.sort(key=lambda o: (-o["potential"], o["source"], o["target"]))
    return found[:top_n]


def network_analysis(graph: Graph, centrality: dict[str, CentralityResult]) -> dict:
    """Who leads, who is cut off, who connects, and who should meet."""
    return {
        "key_influencers":             key_influencers(centrality),
        "isolated_members":            isolated_members(graph),
        "communication_bridges":       communication_bridges(graph, centrality),
        "collaboration_opportunities": collaboration_opportunities(graph, centrality),
    }


def _pattern(kind: str, description: str, members, risk_level: float) -> dict:
    return {
        "type":             kind,
        "description":      description,
        "affected_members": sorted(members),
        "risk_level":       risk_level,
        "recommendations":  RECOMMENDATIONS[kind],
    }


def identify_risk_patterns(graph: Graph, centrality: dict[str, CentralityResult]) -> list[dict]:
    G = graph.to_networkx(positive_only=True)
    risks = []

    cut_points = list(nx.articulation_points(G))
    if cut_points:
        risks.append(_pattern(
            "single_point_failure",
            "Removing these members would split the network",
            cut_points, 0.8,
        ))

    isolated = isolated_members(graph)
    if isolated and len(graph) > 1:
        risks.append(_pattern(
            "isolation",
            "Some members are poorly connected to the network",
            isolated, 0.6,
        ))

    dominant = [h for h, r in centrality.items() if r.pagerank > 0.8]
    if len(dominant) == 1:
        risks.append(_pattern(
            "over_dependence",
            "The network depends heavily on a single influential member",
            dominant, 0.7,
        ))

    for comp in nx.connected_components(G):
        if len(comp) < 3:
            continue
        industries = {graph.node(h).attributes.get("industry") for h in comp}
        if len(industries) == 1 and None not in industries:
            risks.append(_pattern(
                "echo_chamber",
                f"A connected group of {len(comp)} shares a single industry background",
                comp, 0.5,
            ))

    risks.sort(key=lambda r: (-r["risk_level"], r["type"], r["affected_members"]))
    return risks
