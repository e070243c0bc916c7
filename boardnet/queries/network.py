"""
Relationship network queries — DB I/O only.

Reads the `entities` and `relationships` tables of a network export and
returns plain record dicts ready for build_graph(). Validation happens
there, not here.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from boardnet.db import has_column, has_table, row_to_dict

logger = logging.getLogger(__name__)

KNOWN_ATTRIBUTES = ("name", "role", "industry", "tenure")


def _org_filter(conn: sqlite3.Connection, table: str, organization_id: Optional[str]) -> tuple[str, tuple]:
    if organization_id is None or not has_column(conn, table, "organization_id"):
        return "", ()
    return " WHERE organization_id = ?", (organization_id,)


def _attributes(row: dict) -> dict:
    attrs = {k: row[k] for k in KNOWN_ATTRIBUTES if row.get(k) is not None}
    raw = row.get("attributes")
    if raw:
        try:
            extra = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unparseable attributes for entity %r", row.get("id"))
            extra = {}
        if isinstance(extra, dict):
            attrs = {**extra, **attrs}
    return attrs


def fetch_nodes(conn: sqlite3.Connection, organization_id: Optional[str] = None) -> list[dict]:
    if not has_table(conn, "entities"):
        return []
    where, params = _org_filter(conn, "entities", organization_id)
    rows = conn.execute(f"SELECT * FROM entities{where} ORDER BY id", params).fetchall()
    nodes = []
    for r in rows:
        row = row_to_dict(r)
        nodes.append({"id": row.get("id"), "kind": row.get("kind"), "attributes": _attributes(row)})
    return nodes


def fetch_edges(conn: sqlite3.Connection, organization_id: Optional[str] = None) -> list[dict]:
    if not has_table(conn, "relationships"):
        return []
    where, params = _org_filter(conn, "relationships", organization_id)
    confidence = "confidence" if has_column(conn, "relationships", "confidence") else "1.0 AS confidence"
    rows = conn.execute(
        f"""
        SELECT source_id, target_id, relationship_type, strength, {confidence}
        FROM relationships{where}
        ORDER BY source_id, target_id, relationship_type
        """,
        params,
    ).fetchall()
    return [row_to_dict(r) for r in rows]


def fetch_network(
    conn: sqlite3.Connection, organization_id: Optional[str] = None,
) -> tuple[list[dict], list[dict]]:
    """Returns (node_records, edge_records)."""
    return fetch_nodes(conn, organization_id), fetch_edges(conn, organization_id)
