"""
boardnet offline analysis pass.

Loads one relationship network (a JSON file or an organization's SQLite
export), runs layout, centrality, conflict detection and clustering, and
writes the full report as JSON.

Usage:
    boardnet-analyze network.json                       # JSON {nodes, edges}
    boardnet-analyze --db acme                          # data/acme.db
    boardnet-analyze network.json --config cfg.json     # config overrides
    boardnet-analyze network.json --timeout 5 --out data/report.json
    boardnet-analyze network.json --layout hierarchical

Output: JSON report written to data/{name}.report.json (default).
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from boardnet.config import LAYOUT_MODES, AnalysisConfig, load_config
from boardnet.db import DATA_DIR, get_db
from boardnet.errors import ConfigError
from boardnet.pipeline import run_analysis
from boardnet.queries.network import fetch_network


# ── Data loading ──────────────────────────────────────────────────────────────

def load_json_network(path: Path) -> tuple[list, list]:
    data = json.loads(path.read_text())
    return data.get("nodes", []), data.get("edges", [])


def load_db_network(org_id: str, data_dir: Path) -> tuple[list, list]:
    conn = get_db(org_id, data_dir)
    try:
        return fetch_network(conn)
    finally:
        conn.close()


# ── CLI ───────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Board relationship network analysis.")
    parser.add_argument("network", nargs="?", help="Path to a JSON file with 'nodes' and 'edges'")
    parser.add_argument("--db", metavar="ORG_ID", help="Load data/{ORG_ID}.db instead of a JSON file")
    parser.add_argument("--data-dir", default=str(DATA_DIR), help="Directory holding SQLite exports")
    parser.add_argument("--config", help="JSON file of config overrides")
    parser.add_argument("--seed", type=int, help="Override the layout seed")
    parser.add_argument("--layout", choices=LAYOUT_MODES, help="Override the layout mode")
    parser.add_argument("--timeout", type=float, help="Wall-clock budget in seconds")
    parser.add_argument("--out", help="Output JSON path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.network and not args.db:
        parser.print_help()
        return 2

    try:
        config = load_config(args.config) if args.config else AnalysisConfig()
        if args.seed is not None:
            config = config.with_overrides(seed=args.seed)
        if args.layout is not None:
            config = config.with_overrides(layout_mode=args.layout)
    except ConfigError as ex:
        print(f"Config error: {ex}", file=sys.stderr)
        return 2

    if args.db:
        name = args.db
        print(f"Loading network export for {name}...", flush=True)
        try:
            nodes, edges = load_db_network(args.db, Path(args.data_dir))
        except FileNotFoundError as ex:
            print(str(ex), file=sys.stderr)
            return 1
    else:
        path = Path(args.network)
        name = path.stem
        print(f"Loading {path}...", flush=True)
        nodes, edges = load_json_network(path)

    print(f"  {len(nodes)} node records, {len(edges)} edge records", flush=True)
    outcome = run_analysis(nodes, edges, config, timeout=args.timeout)
    report = outcome.as_dict()

    out_path = Path(args.out) if args.out else Path(args.data_dir) / f"{name}.report.json"
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w") as f:
        json.dump(report, f, indent=2)

    if not outcome.ok:
        print(f"Analysis failed: {outcome.error}", file=sys.stderr)
        print(f"Error report written to {out_path}", flush=True)
        return 1

    print(f"\nDone in {outcome.elapsed_seconds:.2f}s → {out_path}", flush=True)
    for warning in outcome.warnings:
        print(f"  Warning: {warning}")

    summary = report["conflict_summary"]
    print(f"\nConflicts: {summary['total']} "
          f"({summary['by_severity']['critical']} critical, {summary['by_severity']['high']} high)")
    for finding in outcome.conflicts[:5]:
        print(f"  [{finding.severity.value}] {finding.description}")
    print(f"Clusters: {len(outcome.clusters.clusters)} ({outcome.clusters.strategy})")
    influencers = outcome.analysis["key_influencers"]
    if influencers:
        print(f"Key influencers: {', '.join(influencers)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
