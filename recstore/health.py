"""
recstore/health.py -- Read-only health probe for the recommendation store.

Runs a short, ordered sequence of cheap checks before the reader touches
the recommendation tables, so that a corrupted or half-migrated database
yields an "unhealthy" report instead of an exception:

    1. connectivity   SELECT 1
    2. integrity      PRAGMA integrity_check(1) == "ok"
    3. schema_version PRAGMA user_version (informational, never fails)
    4. table          recommendations present in sqlite_master
    5. columns        id, analysis_id, title, priority present

The first failing check stops the sequence.  ``probe`` never raises.

Usage:
    from recstore.health import probe

    report = probe(db)
    if not report.healthy:
        print(report.failed_check, report.message)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from recstore.database import DatabaseHandle
from recstore.errors import SchemaDriftError

logger = logging.getLogger(__name__)

RECOMMENDATIONS_TABLE = "recommendations"
REQUIRED_COLUMNS: tuple[str, ...] = ("id", "analysis_id", "title", "priority")


@dataclass
class HealthCheck:
    """Outcome of one probe step."""
    name: str
    passed: bool
    message: str = ""


@dataclass
class HealthReport:
    """Structured result of :func:`probe`."""
    healthy: bool
    checks: list[HealthCheck] = field(default_factory=list)
    schema_version: int | None = None

    @property
    def failed_check(self) -> str | None:
        for check in self.checks:
            if not check.passed:
                return check.name
        return None

    @property
    def message(self) -> str:
        for check in self.checks:
            if not check.passed:
                return check.message
        return "healthy"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "healthy" if self.healthy else "unhealthy",
            "schema_version": self.schema_version,
            "failed_check": self.failed_check,
            "checks": [
                {"name": c.name, "passed": c.passed, "message": c.message}
                for c in self.checks
            ],
        }


# ------------------------------------------------------------------
# Individual checks
# ------------------------------------------------------------------

def check_connectivity(db: DatabaseHandle) -> str:
    rows = db.exec("SELECT 1 AS test_value")
    if not rows or rows[0][0] != 1:
        raise RuntimeError("connectivity query returned no value")
    return "connected"


def check_integrity(db: DatabaseHandle) -> str:
    rows = db.exec("PRAGMA integrity_check(1)")
    result = rows[0][0] if rows else None
    if result != "ok":
        raise RuntimeError(f"integrity_check reported {result!r}")
    return "ok"


def read_schema_version(db: DatabaseHandle) -> int:
    rows = db.exec("PRAGMA user_version")
    return int(rows[0][0]) if rows else 0


def check_table_exists(db: DatabaseHandle, table: str = RECOMMENDATIONS_TABLE) -> str:
    rows = db.exec(
        "SELECT name FROM sqlite_master WHERE type='table' AND name = ? LIMIT 1",
        (table,),
    )
    if not rows:
        raise SchemaDriftError(f"Table '{table}' does not exist in database")
    return f"table '{table}' present"


def check_required_columns(
    db: DatabaseHandle,
    table: str = RECOMMENDATIONS_TABLE,
    required: tuple[str, ...] = REQUIRED_COLUMNS,
) -> str:
    # PRAGMA table_info does not accept bound parameters
    rows = db.exec(f"PRAGMA table_info({table})")
    present = {row["name"] for row in rows}
    missing = [col for col in required if col not in present]
    if missing:
        raise SchemaDriftError(
            f"Missing required columns in {table} table: {', '.join(missing)}"
        )
    return f"{len(present)} columns, all required present"


# ------------------------------------------------------------------
# Probe
# ------------------------------------------------------------------

def probe(db: DatabaseHandle) -> HealthReport:
    """Run every check in order, stopping at the first failure.

    Parameters
    ----------
    db : DatabaseHandle
        The handle to inspect.

    Returns
    -------
    HealthReport
        ``healthy`` is True only if every check passed.
    """
    report = HealthReport(healthy=False)

    steps: list[tuple[str, Callable[[DatabaseHandle], str] | None]] = [
        ("connectivity", check_connectivity),
        ("integrity", check_integrity),
        ("schema_version", None),
        ("table", check_table_exists),
        ("columns", check_required_columns),
    ]

    for name, func in steps:
        if name == "schema_version":
            try:
                report.schema_version = read_schema_version(db)
                report.checks.append(
                    HealthCheck(name, True, f"version {report.schema_version}")
                )
            except Exception as exc:
                # Informational only
                logger.debug("Could not read schema version: %s", exc)
                report.checks.append(HealthCheck(name, True, "unknown"))
            continue

        try:
            message = func(db)
        except Exception as exc:
            logger.warning("Health check '%s' failed: %s", name, exc)
            report.checks.append(HealthCheck(name, False, str(exc)))
            return report
        report.checks.append(HealthCheck(name, True, message))

    report.healthy = True
    return report
