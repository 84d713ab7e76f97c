"""
Shared pytest fixtures for the recommendation store test suite.

Provides:
    - db: a fresh file-backed RecommendationDatabase in tmp_path
    - recording_db: the same, but remembering every statement issued
    - analysis_id: an analysis row seeded into db
    - coordinator: a transaction coordinator that counts its calls
    - seed_analysis / make_coordinator: helpers for databases built inside a test
    - sample_recommendation: a full recommendation (2 actions, example, 3 resources)
    - sample_payload: a three-recommendation payload of mixed priority
"""

import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Ensure recstore/ is importable regardless of where pytest is invoked
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from recstore.database import RecommendationDatabase  # noqa: E402


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------

class RecordingDatabase(RecommendationDatabase):
    """RecommendationDatabase that keeps a log of every SQL statement."""

    def __init__(self, *args, **kwargs):
        self.statements: list[str] = []
        super().__init__(*args, **kwargs)

    def exec(self, sql, params=()):
        self.statements.append(" ".join(sql.split()))
        return super().exec(sql, params)

    def run(self, sql, params=()):
        self.statements.append(" ".join(sql.split()))
        return super().run(sql, params)

    def statements_starting_with(self, keyword: str) -> list[str]:
        return [s for s in self.statements if s.upper().startswith(keyword.upper())]


class CountingCoordinator:
    """Transaction coordinator that delegates to a database and counts calls."""

    def __init__(self, db):
        self._db = db
        self.begin_calls = 0
        self.commit_calls = 0
        self.rollback_calls = 0

    def begin_transaction(self):
        self.begin_calls += 1
        inner_rollback = self._db.begin_transaction()

        def rollback():
            self.rollback_calls += 1
            inner_rollback()

        return rollback

    def commit_transaction(self):
        self.commit_calls += 1
        self._db.commit_transaction()


def _seed_analysis(db, title="Homepage audit", url="https://example.com/"):
    """Insert a project and one analysis; return the analysis id."""
    project_id = db.run(
        "INSERT INTO projects (name, url) VALUES (?, ?)", ("Example", url)
    )
    return db.run(
        "INSERT INTO analyses (project_id, title, url) VALUES (?, ?, ?)",
        (project_id, title, url),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def db(tmp_path):
    """Return a fresh RecommendationDatabase backed by a temp file."""
    database = RecommendationDatabase(str(tmp_path / "seo-analyzer.db"))
    yield database
    database.close()


@pytest.fixture
def recording_db(tmp_path):
    """Return a RecordingDatabase backed by a temp file."""
    database = RecordingDatabase(str(tmp_path / "recording.db"))
    yield database
    database.close()


@pytest.fixture
def analysis_id(db):
    """Seed one analysis into ``db`` and return its id."""
    return _seed_analysis(db)


@pytest.fixture
def seed_analysis():
    """Return a helper that seeds an analysis into any database: ``seed_analysis(db)``."""
    return _seed_analysis


@pytest.fixture
def make_coordinator():
    """Return a factory for CountingCoordinator: ``make_coordinator(db)``."""
    return CountingCoordinator


@pytest.fixture
def coordinator(db):
    """Return a CountingCoordinator wrapping ``db``."""
    return CountingCoordinator(db)


@pytest.fixture
def sample_recommendation():
    """Return a complete recommendation dict in the camelCase wire shape.

    Includes two actions, one example and three resources.
    """
    return {
        "recId": "rec_1",
        "ruleId": "meta-description-length",
        "title": "Shorten the meta description",
        "priority": "high",
        "category": "meta",
        "description": "The meta description is 212 characters long.",
        "effort": "quick",
        "estimatedTime": "5 minutes",
        "scoreIncrease": 4,
        "percentageIncrease": 3.5,
        "whyExplanation": "Search engines truncate descriptions past ~160 characters.",
        "actions": [
            {"step": 1, "actionText": "Open the page settings", "actionType": "navigate"},
            {"step": 2, "actionText": "Trim the description to 155 characters", "actionType": "edit"},
        ],
        "example": {
            "beforeExample": "A very long description that keeps going...",
            "afterExample": "A concise 150-character summary.",
        },
        "resources": [
            {"title": "Meta descriptions guide", "url": "https://developers.google.com/search/docs/appearance/snippet"},
            {"title": "SERP preview tool", "url": "https://example.com/serp-preview"},
            {"title": "Copywriting tips", "url": "https://example.com/copy"},
        ],
    }


@pytest.fixture
def sample_payload(sample_recommendation):
    """Return a payload of three recommendations in mixed priority order."""
    return {
        "recommendations": [
            {"recId": "rec_low", "title": "Add alt text to decorative images", "priority": "low"},
            sample_recommendation,
            {"recId": "rec_crit", "title": "Add a title tag", "priority": "critical",
             "effort": "quick", "status": "in-progress"},
        ]
    }
