"""
Database helpers shared across queries.
No analysis logic lives here — only I/O primitives.
"""
import sqlite3
from pathlib import Path
from typing import Optional

DATA_DIR = Path(__file__).parent.parent / "data"


def row_to_dict(row) -> dict:
    return dict(row)


def open_db(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    return conn


def get_db(org_id: str, data_dir: Optional[Path] = None) -> sqlite3.Connection:
    """Open the relationship export for one organization (data/{org_id}.db)."""
    db_path = (data_dir or DATA_DIR) / f"{org_id}.db"
    if not db_path.exists():
        raise FileNotFoundError(f"Network export for '{org_id}' not found at {db_path}")
    return open_db(db_path)


def has_table(conn: sqlite3.Connection, name: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
    ).fetchone()
    return row is not None


def has_column(conn: sqlite3.Connection, table: str, column: str) -> bool:
    return any(r[1] == column for r in conn.execute(f"PRAGMA table_info({table})").fetchall())
