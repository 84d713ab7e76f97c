"""
recstore/writer.py -- Replace-all writer for analysis recommendations.

Saving always supersedes the entire prior set for an analysis: inside one
transaction every existing recommendation (with its actions, example,
resources and status history) is deleted and the new set inserted.  The
write path fails closed: every irregularity aborts the save with a specific
exception and leaves the store exactly as it was.

Usage:
    from recstore.database import RecommendationDatabase
    from recstore.writer import save_recommendations

    db = RecommendationDatabase()
    count = save_recommendations(db, 12, {"recommendations": [...]}, db)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from recstore.database import DatabaseHandle, TransactionCoordinator
from recstore.errors import (
    ConnectivityError,
    PersistenceError,
    RecommendationValidationError,
    ReferentialIntegrityError,
    TransactionError,
)
from recstore.models.base import RecommendationInput
from recstore.models.validators import validate_recommendations
from recstore.utils import as_analysis_id, correlation_id

logger = logging.getLogger(__name__)

# Child tables, deleted before their parent rows
CHILD_TABLES: tuple[str, ...] = (
    "recommendation_actions",
    "recommendation_examples",
    "recommendation_resources",
    "recommendation_status_history",
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def save_recommendations(
    db: DatabaseHandle,
    analysis_id: int,
    payload: Mapping[str, Any] | Any,
    tx: TransactionCoordinator,
) -> int:
    """Atomically replace every recommendation stored for *analysis_id*.

    Parameters
    ----------
    db : DatabaseHandle
        Handle the statements are issued through.
    analysis_id : int
        An existing analysis.
    payload : dict
        ``{"recommendations": [...]}``; an object with a ``recommendations``
        attribute is accepted too.
    tx : TransactionCoordinator
        Supplies ``begin_transaction()`` (returning the rollback callback)
        and ``commit_transaction()``.

    Returns
    -------
    int
        Number of recommendations written (0 for an empty payload, in which
        case no transaction is opened).

    Raises
    ------
    ConnectivityError
        The database did not answer a trivial query.
    ReferentialIntegrityError
        *analysis_id* is malformed or does not exist.
    RecommendationValidationError
        One or more recommendations broke a schema rule.
    TransactionError
        A delete/insert/commit failed; the transaction was rolled back.
    """
    tag = correlation_id("save", analysis_id)
    logger.info("[%s] Starting save for analysis %s", tag, analysis_id)

    try:
        db.exec("SELECT 1")
    except Exception as exc:
        raise ConnectivityError(f"Database connection test failed: {exc}") from exc

    recommendations = _extract_recommendations(payload)
    if recommendations is None or (
        isinstance(recommendations, (list, tuple)) and len(recommendations) == 0
    ):
        logger.info("[%s] No recommendations to save", tag)
        return 0

    analysis_id = _require_analysis(db, analysis_id)

    result = validate_recommendations(recommendations)
    if not result.passed:
        logger.warning(
            "[%s] Validation failed with %d error(s)", tag, len(result.errors)
        )
        raise RecommendationValidationError(result.errors)
    validated = result.recommendations

    try:
        rollback = tx.begin_transaction()
    except Exception as exc:
        raise TransactionError(f"Failed to save recommendations: {exc}") from exc

    try:
        deleted = _delete_graph(db, analysis_id)
        logger.debug("[%s] Cleared %d existing recommendation(s)", tag, deleted)

        saved = 0
        for position, rec in enumerate(validated, start=1):
            try:
                _insert_recommendation(db, analysis_id, rec)
            except Exception as exc:
                raise PersistenceError(
                    f"Failed to save recommendation {position}: {exc}"
                ) from exc
            saved += 1

        tx.commit_transaction()
    except Exception as exc:
        logger.error("[%s] Transaction failed, rolling back: %s", tag, exc)
        rollback()
        raise TransactionError(f"Failed to save recommendations: {exc}") from exc

    _verify_saved(db, analysis_id, saved, tag)
    logger.info("[%s] Saved %d recommendation(s)", tag, saved)
    return saved


def delete_recommendations(
    db: DatabaseHandle,
    analysis_id: int,
    tx: TransactionCoordinator | None = None,
) -> bool:
    """Remove every recommendation (and its children) for *analysis_id*.

    The delete runs inside one transaction opened on *tx*.  Without *tx*,
    *db* itself is used as the coordinator when it provides
    ``begin_transaction``/``commit_transaction`` (``RecommendationDatabase``
    does); a bare handle deletes statement by statement, which is not atomic.

    Returns
    -------
    bool
        True on success, False if the delete failed (the failure is logged).
    """
    if tx is None and hasattr(db, "begin_transaction"):
        tx = db
    elif tx is None:
        logger.warning("No transaction coordinator; deleting for analysis %s without one",
                       analysis_id)
    rollback = None
    try:
        if tx is not None:
            rollback = tx.begin_transaction()
        deleted = _delete_graph(db, analysis_id)
        if tx is not None:
            tx.commit_transaction()
            rollback = None
    except Exception:
        logger.exception("Error deleting recommendations for analysis %s", analysis_id)
        if rollback is not None:
            rollback()
        return False

    logger.info("Deleted %d recommendation(s) for analysis %s", deleted, analysis_id)
    return True


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _extract_recommendations(payload: Any) -> Any:
    if payload is None:
        return None
    if isinstance(payload, Mapping):
        return payload.get("recommendations")
    return getattr(payload, "recommendations", None)


def _require_analysis(db: DatabaseHandle, analysis_id) -> int:
    """Return the normalised id; raise ReferentialIntegrityError unless the row exists."""
    normalised = as_analysis_id(analysis_id)
    if normalised is None:
        raise ReferentialIntegrityError(
            f"Invalid analysis ID: {analysis_id!r}. Must be a positive integer."
        )
    analysis_id = normalised
    try:
        rows = db.exec("SELECT id FROM analyses WHERE id = ? LIMIT 1", (analysis_id,))
    except Exception as exc:
        raise PersistenceError(f"Failed to validate analysis ID: {exc}") from exc
    if not rows:
        raise ReferentialIntegrityError(
            f"Analysis ID {analysis_id} does not exist in database"
        )
    return analysis_id


def _delete_graph(db: DatabaseHandle, analysis_id: int) -> int:
    """Delete all recommendations for an analysis, children first.

    Returns the number of recommendation rows that existed.
    """
    count = db.exec(
        "SELECT COUNT(*) FROM recommendations WHERE analysis_id = ?",
        (analysis_id,),
    )[0][0]
    owned = "SELECT id FROM recommendations WHERE analysis_id = ?"
    for table in CHILD_TABLES:
        db.run(
            f"DELETE FROM {table} WHERE recommendation_id IN ({owned})",
            (analysis_id,),
        )
    db.run("DELETE FROM recommendations WHERE analysis_id = ?", (analysis_id,))
    return count


def _insert_recommendation(
    db: DatabaseHandle, analysis_id: int, rec: RecommendationInput,
) -> int:
    """Insert one recommendation with its actions, example and resources."""
    db.run(
        """
        INSERT INTO recommendations (
            analysis_id, rec_id, rule_id, title, priority, category,
            description, effort, estimated_time, score_increase,
            percentage_increase, why_explanation, status
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            analysis_id,
            rec.rec_id,
            rec.rule_id,
            rec.title,
            rec.priority,
            rec.category,
            rec.description,
            rec.effort,
            rec.estimated_time,
            rec.score_increase,
            rec.percentage_increase,
            rec.why_explanation,
            rec.effective_status,
        ),
    )
    rec_pk = db.last_insert_id()
    if not rec_pk:
        raise PersistenceError(
            f"No row id returned after inserting recommendation '{rec.rec_id}'"
        )

    for action in rec.ordered_actions():
        db.run(
            """
            INSERT INTO recommendation_actions (
                recommendation_id, step, action_text, action_type
            ) VALUES (?, ?, ?, ?)
            """,
            (rec_pk, action.step, action.action_text, action.action_type),
        )

    if rec.example is not None:
        db.run(
            """
            INSERT INTO recommendation_examples (
                recommendation_id, before_example, after_example
            ) VALUES (?, ?, ?)
            """,
            (rec_pk, rec.example.before_example, rec.example.after_example),
        )

    for resource in rec.resources:
        db.run(
            "INSERT INTO recommendation_resources (recommendation_id, title, url) "
            "VALUES (?, ?, ?)",
            (rec_pk, resource.title, resource.url),
        )

    return rec_pk


def _verify_saved(db: DatabaseHandle, analysis_id: int, expected: int, tag: str) -> bool:
    """Compare the stored row count with what was written.  Never raises."""
    try:
        actual = db.exec(
            "SELECT COUNT(*) FROM recommendations WHERE analysis_id = ?",
            (analysis_id,),
        )[0][0]
    except Exception as exc:
        logger.warning("[%s] Post-save verification failed: %s", tag, exc)
        return False
    if actual != expected:
        logger.warning(
            "[%s] Post-save verification mismatch: expected %d, found %d",
            tag, expected, actual,
        )
        return False
    return True
