"""
Shared fixtures and record builders for boardnet tests.

Every test builds its network from plain record dicts (the same shape the
data layer hands to build_graph()), so no DB files are required.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from boardnet.config import AnalysisConfig
from boardnet.graph import build_graph


# --------------------------------------------------------------------------
# Record builders
# --------------------------------------------------------------------------

def member(node_id: str, **attributes) -> dict:
    return {"id": node_id, "kind": "member", "attributes": attributes}


def org(node_id: str, **attributes) -> dict:
    return {"id": node_id, "kind": "organization", "attributes": attributes}


def rel(source: str, target: str, rtype: str = "shared_board",
        strength: float = 1.0, confidence: float = 1.0) -> dict:
    return {
        "source_id":         source,
        "target_id":         target,
        "relationship_type": rtype,
        "strength":          strength,
        "confidence":        confidence,
    }


def triangle(a: str, b: str, c: str, rtype: str = "other", strength: float = 1.0) -> list[dict]:
    return [rel(a, b, rtype, strength), rel(b, c, rtype, strength), rel(a, c, rtype, strength)]


# --------------------------------------------------------------------------
# Fixtures
# --------------------------------------------------------------------------

@pytest.fixture
def fast_config() -> AnalysisConfig:
    """Small iteration budget for tests that don't care about layout quality."""
    return AnalysisConfig(iterations=50)


@pytest.fixture
def interlock_records() -> tuple[list[dict], list[dict]]:
    """A and B both sit on the board of organization C; no A–B edge."""
    nodes = [member("A"), member("B"), org("C")]
    edges = [
        rel("A", "C", "shared_board", 0.9, 0.8),
        rel("B", "C", "shared_board", 0.9, 0.8),
    ]
    return nodes, edges


@pytest.fixture
def two_triangles():
    nodes = [member(h) for h in ("a1", "a2", "a3", "b1", "b2", "b3")]
    edges = triangle("a1", "a2", "a3") + triangle("b1", "b2", "b3")
    return build_graph(nodes, edges)


@pytest.fixture
def star_graph():
    """hub connected to four leaves."""
    nodes = [member("hub")] + [member(f"leaf{i}") for i in range(4)]
    edges = [rel("hub", f"leaf{i}", "advisory", 0.8) for i in range(4)]
    return build_graph(nodes, edges)


@pytest.fixture
def board_network():
    """
    Two companies that compete, a bank, and five directors.

    alice  — board of Acme and Globex (competitors)
    bob    — board of Acme, financial tie to Bank
    carol  — board of Globex, financial tie to Bank, bob's sibling
    dave   — board of Globex
    erin   — isolated
    """
    nodes = [
        member("alice", name="Alice", industry="tech"),
        member("bob",   name="Bob",   industry="finance"),
        member("carol", name="Carol", industry="finance"),
        member("dave",  name="Dave",  industry="tech"),
        member("erin",  name="Erin",  industry="retail"),
        org("acme",   name="Acme",   industry="tech"),
        org("globex", name="Globex", industry="tech"),
        org("bank",   name="Bank",   industry="finance"),
    ]
    edges = [
        rel("alice", "acme",   "shared_board", 0.9, 0.9),
        rel("alice", "globex", "shared_board", 0.85, 0.9),
        rel("bob",   "acme",   "shared_board", 0.7, 0.9),
        rel("carol", "globex", "shared_board", 0.6, 0.9),
        rel("dave",  "globex", "shared_board", 0.4, 0.9),
        rel("acme",  "globex", "competitive",  0.9, 0.9),
        rel("bob",   "bank",   "financial",    0.9, 0.8),
        rel("carol", "bank",   "financial",    0.6, 0.8),
        rel("bob",   "carol",  "family",       0.95, 1.0),
    ]
    return build_graph(nodes, edges)
