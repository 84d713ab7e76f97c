"""
recstore/database.py -- SQLite handle and transaction coordinator.

``RecommendationDatabase`` owns the runtime SQLite connection for the SEO
analyzer.  It plays both collaborator roles the store needs:

    - the *database handle* (``exec`` / ``run`` / ``last_insert_id``) that
      the reader, writer and health prober issue statements through, and
    - the *transaction coordinator* (``begin_transaction`` returning a
      rollback callback, ``commit_transaction``) the writer is handed.

The connection runs in autocommit mode so that the only transaction
boundaries are the explicit BEGIN/COMMIT/ROLLBACK issued here.

Usage:
    from recstore.database import RecommendationDatabase

    with RecommendationDatabase("runtime/seo-analyzer.db") as db:
        rollback = db.begin_transaction()
        ...
        db.commit_transaction()
"""

from __future__ import annotations

import logging
import os
import sqlite3
from typing import Any, Callable, Protocol, Sequence

from recstore.paths import get_database_path

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------

class DatabaseHandle(Protocol):
    """Statement interface the reader, writer and prober depend on."""

    def exec(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]: ...

    def run(self, sql: str, params: Sequence[Any] = ()) -> int: ...

    def last_insert_id(self) -> int: ...


class TransactionCoordinator(Protocol):
    """Transaction hooks handed to the writer."""

    def begin_transaction(self) -> Callable[[], None]: ...

    def commit_transaction(self) -> None: ...


# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_SQL = """
-- Parent tables (owned by project/analysis management; created here so the
-- recommendation foreign keys have something to reference)
CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    url TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS analyses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id INTEGER NOT NULL,
    title TEXT,
    url TEXT,
    overall_score REAL DEFAULT 0,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS recommendations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    analysis_id INTEGER NOT NULL,
    rec_id TEXT NOT NULL,
    rule_id TEXT,
    title TEXT NOT NULL,
    priority TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'general',
    description TEXT,
    effort TEXT,
    estimated_time TEXT,
    score_increase REAL DEFAULT 0,
    percentage_increase REAL DEFAULT 0,
    why_explanation TEXT,
    status TEXT DEFAULT 'pending',
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (analysis_id) REFERENCES analyses(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS recommendation_actions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    recommendation_id INTEGER NOT NULL,
    step INTEGER NOT NULL,
    action_text TEXT NOT NULL,
    action_type TEXT NOT NULL,
    FOREIGN KEY (recommendation_id) REFERENCES recommendations(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS recommendation_examples (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    recommendation_id INTEGER NOT NULL,
    before_example TEXT,
    after_example TEXT,
    FOREIGN KEY (recommendation_id) REFERENCES recommendations(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS recommendation_resources (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    recommendation_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL,
    FOREIGN KEY (recommendation_id) REFERENCES recommendations(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS recommendation_status_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    recommendation_id INTEGER NOT NULL,
    old_status TEXT NOT NULL,
    new_status TEXT NOT NULL,
    notes TEXT,
    changed_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (recommendation_id) REFERENCES recommendations(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_analyses_project_id ON analyses(project_id);
CREATE INDEX IF NOT EXISTS idx_recommendations_analysis_id ON recommendations(analysis_id);
CREATE INDEX IF NOT EXISTS idx_recommendations_priority ON recommendations(priority);
CREATE INDEX IF NOT EXISTS idx_recommendations_status ON recommendations(status);
CREATE INDEX IF NOT EXISTS idx_recommendation_actions_rec_id ON recommendation_actions(recommendation_id);
CREATE INDEX IF NOT EXISTS idx_recommendation_examples_rec_id ON recommendation_examples(recommendation_id);
CREATE INDEX IF NOT EXISTS idx_recommendation_resources_rec_id ON recommendation_resources(recommendation_id);
"""


def row_to_dict(row: sqlite3.Row) -> dict:
    """Convert a sqlite3.Row to a plain dict."""
    return dict(row)


# ---------------------------------------------------------------------------
# RecommendationDatabase
# ---------------------------------------------------------------------------

class RecommendationDatabase:
    """SQLite-backed handle and transaction coordinator.

    Parameters
    ----------
    path : str, optional
        Database file path, or ``":memory:"``.  Defaults to
        :func:`recstore.paths.get_database_path`.
    create_schema : bool
        Create missing tables on open (default ``True``).  Pass ``False`` to
        attach to an existing file exactly as it is.
    """

    def __init__(self, path: str | None = None, create_schema: bool = True):
        self.path = path or get_database_path()

        if self.path != ":memory:":
            parent = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(parent, exist_ok=True)

        self._conn = sqlite3.connect(
            self.path, check_same_thread=False, isolation_level=None,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")

        if create_schema:
            self._init_schema()

    # ------------------------------------------------------------------
    # Schema initialisation
    # ------------------------------------------------------------------

    def _init_schema(self) -> None:
        """Create all tables and indexes, then stamp the schema version."""
        self._conn.executescript(_SCHEMA_SQL)
        current = self._conn.execute("PRAGMA user_version").fetchone()[0]
        if current < SCHEMA_VERSION:
            # PRAGMA does not accept bound parameters
            self._conn.execute(f"PRAGMA user_version = {int(SCHEMA_VERSION)}")
            logger.info("Database schema initialised at version %d", SCHEMA_VERSION)

    # ------------------------------------------------------------------
    # Statement interface
    # ------------------------------------------------------------------

    def exec(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """Run a read query and return every row."""
        return self._conn.execute(sql, tuple(params)).fetchall()

    def run(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement and return the last inserted row id."""
        cursor = self._conn.execute(sql, tuple(params))
        return cursor.lastrowid or 0

    def last_insert_id(self) -> int:
        """Return the rowid assigned by the most recent INSERT."""
        return self._conn.execute("SELECT last_insert_rowid()").fetchone()[0]

    # ------------------------------------------------------------------
    # Transaction coordinator
    # ------------------------------------------------------------------

    def begin_transaction(self) -> Callable[[], None]:
        """Open a transaction and return its rollback callback.

        The callback never raises; a failed ROLLBACK is logged.
        """
        self._conn.execute("BEGIN")

        def rollback() -> None:
            try:
                self._conn.execute("ROLLBACK")
            except sqlite3.Error:
                logger.error("Error rolling back transaction", exc_info=True)

        return rollback

    def commit_transaction(self) -> None:
        """Commit the open transaction."""
        self._conn.execute("COMMIT")

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None and self._conn.in_transaction

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_stats(self) -> dict:
        """Return database statistics.

        Returns
        -------
        dict
            Contains ``path``, ``schema_version``, ``projects``,
            ``analyses`` and ``recommendations`` counts.
        """
        def _count(table: str) -> int:
            return self._conn.execute(
                f"SELECT COUNT(*) AS cnt FROM {table}"
            ).fetchone()["cnt"]

        return {
            "path": self.path,
            "schema_version": self._conn.execute("PRAGMA user_version").fetchone()[0],
            "projects": _count("projects"),
            "analyses": _count("analyses"),
            "recommendations": _count("recommendations"),
        }

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
