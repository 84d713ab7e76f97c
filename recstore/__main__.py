"""
recstore/__main__.py -- Command line entry point.

Inspect and maintain the recommendation store without the desktop app.

Usage::

    python -m recstore init
    python -m recstore health
    python -m recstore show 12
    python -m recstore save 12 recommendations.json
    python -m recstore clear 12
    python -m recstore --db /tmp/seo.db -v show 12
"""

from __future__ import annotations

import argparse
import json
import logging
import sqlite3
import sys

from recstore.database import RecommendationDatabase
from recstore.errors import PersistenceError
from recstore.health import probe
from recstore.reader import get_recommendations
from recstore.utils import safe_read_json
from recstore.writer import delete_recommendations, save_recommendations

logger = logging.getLogger("recstore")


def _setup_logging(verbose: bool) -> None:
    """Configure logging for command line use."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recstore",
        description="Maintain the SEO analyzer recommendation store.",
    )
    parser.add_argument("--db", default=None,
                        help="Database file (default: per-user data directory)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init", help="Create the schema if it is missing")
    sub.add_parser("health", help="Run the store health probe")

    show = sub.add_parser("show", help="Print recommendations for an analysis as JSON")
    show.add_argument("analysis_id", type=int)

    save = sub.add_parser("save", help="Replace recommendations from a JSON file")
    save.add_argument("analysis_id", type=int)
    save.add_argument("file", help='JSON file: {"recommendations": [...]} or a list')

    clear = sub.add_parser("clear", help="Delete recommendations for an analysis")
    clear.add_argument("analysis_id", type=int)
    return parser


def _run(args: argparse.Namespace, db: RecommendationDatabase) -> int:
    if args.command == "init":
        stats = db.get_stats()
        print(f"Schema version {stats['schema_version']} at {stats['path']}")
        return 0

    if args.command == "health":
        report = probe(db)
        print(json.dumps(report.to_dict(), indent=2))
        return 0 if report.healthy else 1

    if args.command == "show":
        recs = get_recommendations(db, args.analysis_id)
        print(json.dumps([r.model_dump(by_alias=True) for r in recs], indent=2))
        return 0

    if args.command == "save":
        payload = safe_read_json(args.file)
        if payload is None:
            print(f"Error: could not read JSON from {args.file}", file=sys.stderr)
            return 1
        if isinstance(payload, list):
            payload = {"recommendations": payload}
        count = save_recommendations(db, args.analysis_id, payload, db)
        print(f"Saved {count} recommendation(s) for analysis {args.analysis_id}")
        return 0

    if args.command == "clear":
        ok = delete_recommendations(db, args.analysis_id, db)
        return 0 if ok else 1

    return 2


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    try:
        # Only init creates tables; other commands attach to the file as it is
        with RecommendationDatabase(args.db, create_schema=args.command == "init") as db:
            return _run(args, db)
    except (PersistenceError, sqlite3.Error) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
