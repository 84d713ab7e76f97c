"""
recstore/reader.py -- Graph reconstruction for analysis recommendations.

Loads the flat recommendation rows for one analysis, then the three
dependent collections (actions, examples, resources) in three separate
lookups, and reassembles them into nested ``StoredRecommendation`` objects.
Separate lookups avoid the row multiplication a single join across three
one-to-many children would produce.

The read path fails open: any irregularity (bad id, unhealthy store,
unknown analysis, query error) is logged and yields an empty list.

Usage:
    from recstore.reader import get_recommendations

    for rec in get_recommendations(db, 12):
        print(rec.priority, rec.title, len(rec.actions))
"""

from __future__ import annotations

import logging
import sqlite3
from collections import defaultdict

from pydantic import ValidationError

from recstore.database import DatabaseHandle, row_to_dict
from recstore.health import probe
from recstore.models.base import (
    PRIORITIES,
    StoredAction,
    StoredExample,
    StoredRecommendation,
    StoredResource,
)
from recstore.utils import as_analysis_id, correlation_id

logger = logging.getLogger(__name__)

# Severity rank used for ordering; unknown priorities sort last
_PRIORITY_RANK_SQL = (
    "CASE priority "
    + " ".join(f"WHEN '{p}' THEN {rank}" for rank, p in enumerate(PRIORITIES))
    + f" ELSE {len(PRIORITIES)} END"
)

# Keeps IN (...) lists under SQLite's bound-variable limit
_ID_CHUNK = 500


def get_recommendations(db: DatabaseHandle, analysis_id: int) -> list[StoredRecommendation]:
    """Return every recommendation stored for *analysis_id*.

    Ordered critical -> high -> medium -> low, and by insertion order
    within a priority.  Actions are in step order.

    Never raises: a malformed id, an unhealthy database, an unknown
    analysis or any query failure returns ``[]``.  A single row that cannot
    be read back (e.g. a NULL in a column an older schema left nullable) is
    logged and skipped.
    """
    tag = correlation_id("get", analysis_id)

    normalised = as_analysis_id(analysis_id)
    if normalised is None:
        logger.warning("[%s] Invalid analysis ID %r, returning no recommendations",
                       tag, analysis_id)
        return []
    analysis_id = normalised

    try:
        report = probe(db)
        if not report.healthy:
            logger.warning("[%s] Store unhealthy at '%s' check: %s",
                           tag, report.failed_check, report.message)
            return []

        found = db.exec("SELECT id FROM analyses WHERE id = ? LIMIT 1", (analysis_id,))
        if not found:
            logger.info("[%s] Analysis %s not found", tag, analysis_id)
            return []

        rows = db.exec(
            f"SELECT * FROM recommendations WHERE analysis_id = ? "
            f"ORDER BY {_PRIORITY_RANK_SQL}, id",
            (analysis_id,),
        )
        if not rows:
            logger.debug("[%s] No recommendations stored", tag)
            return []

        recs = [row_to_dict(r) for r in rows]
        ids = [r["id"] for r in recs]

        actions = _load_children(db, "recommendation_actions", ids, "step, id")
        examples = _load_children(db, "recommendation_examples", ids, "id")
        resources = _load_children(db, "recommendation_resources", ids, "id")

        assembled = []
        for rec in recs:
            try:
                assembled.append(_assemble(rec, actions, examples, resources))
            except ValidationError as exc:
                logger.warning("[%s] Skipping unreadable recommendation row %s: %s",
                               tag, rec.get("id"), exc)
    except Exception:
        logger.exception("[%s] Error getting recommendations", tag)
        return []

    logger.info("[%s] Loaded %d recommendation(s)", tag, len(assembled))
    return assembled


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _load_children(
    db: DatabaseHandle, table: str, rec_ids: list[int], order_by: str,
) -> dict[int, list[dict]]:
    """Fetch child rows for *rec_ids* and group them by recommendation id.

    A missing child table degrades to no children rather than failing the
    whole read.
    """
    grouped: dict[int, list[dict]] = defaultdict(list)
    for start in range(0, len(rec_ids), _ID_CHUNK):
        chunk = rec_ids[start:start + _ID_CHUNK]
        placeholders = ", ".join("?" for _ in chunk)
        try:
            rows = db.exec(
                f"SELECT * FROM {table} WHERE recommendation_id IN ({placeholders}) "
                f"ORDER BY recommendation_id, {order_by}",
                chunk,
            )
        except sqlite3.OperationalError as exc:
            logger.warning("Could not read %s: %s", table, exc)
            return {}
        for row in rows:
            child = row_to_dict(row)
            grouped[child["recommendation_id"]].append(child)
    return grouped


def _assemble(
    rec: dict,
    actions: dict[int, list[dict]],
    examples: dict[int, list[dict]],
    resources: dict[int, list[dict]],
) -> StoredRecommendation:
    """Attach grouped children to a flat recommendation row."""
    rec_pk = rec["id"]
    example_rows = examples.get(rec_pk) or []
    return StoredRecommendation.model_validate({
        **rec,
        "actions": [StoredAction.model_validate(a) for a in actions.get(rec_pk, [])],
        "example": StoredExample.model_validate(example_rows[0]) if example_rows else None,
        "resources": [StoredResource.model_validate(r) for r in resources.get(rec_pk, [])],
    })
