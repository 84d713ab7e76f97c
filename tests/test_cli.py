"""
Tests for recstore/__main__.py -- the command line entry point.
"""

import json

import pytest

from recstore.__main__ import main
from recstore.database import SCHEMA_VERSION, RecommendationDatabase


@pytest.fixture
def db_path(tmp_path, seed_analysis):
    """Path to a store seeded with one analysis (id 1)."""
    path = str(tmp_path / "cli.db")
    with RecommendationDatabase(path) as database:
        seed_analysis(database)
    return path


@pytest.fixture
def payload_file(tmp_path, sample_payload):
    path = tmp_path / "recommendations.json"
    path.write_text(json.dumps(sample_payload), encoding="utf-8")
    return str(path)


class TestCommands:

    def test_init(self, tmp_path, capsys):
        path = str(tmp_path / "fresh.db")
        assert main(["--db", path, "init"]) == 0
        out = capsys.readouterr().out
        assert f"Schema version {SCHEMA_VERSION}" in out
        assert path in out

    def test_health(self, db_path, capsys):
        assert main(["--db", db_path, "health"]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["status"] == "healthy"
        assert report["failed_check"] is None

    def test_health_unhealthy_exit_code(self, tmp_path, capsys):
        path = str(tmp_path / "drift.db")
        with RecommendationDatabase(path, create_schema=False) as bare:
            bare.run("CREATE TABLE recommendations (id INTEGER PRIMARY KEY)")
        assert main(["--db", path, "health"]) == 1
        report = json.loads(capsys.readouterr().out)
        assert report["status"] == "unhealthy"
        assert report["failed_check"] == "columns"

    def test_show_on_bare_file_is_empty(self, tmp_path, capsys):
        assert main(["--db", str(tmp_path / "bare.db"), "show", "1"]) == 0
        assert json.loads(capsys.readouterr().out) == []

    def test_save_then_show(self, db_path, payload_file, capsys):
        assert main(["--db", db_path, "save", "1", payload_file]) == 0
        assert "Saved 3 recommendation(s) for analysis 1" in capsys.readouterr().out

        assert main(["--db", db_path, "show", "1"]) == 0
        shown = json.loads(capsys.readouterr().out)
        assert [r["recId"] for r in shown] == ["rec_crit", "rec_1", "rec_low"]
        assert len(shown[1]["resources"]) == 3

    def test_save_accepts_bare_list(self, db_path, tmp_path, capsys):
        path = tmp_path / "list.json"
        path.write_text(json.dumps([{"title": "Only", "priority": "low"}]), encoding="utf-8")
        assert main(["--db", db_path, "save", "1", str(path)]) == 0
        assert "Saved 1" in capsys.readouterr().out

    def test_save_unknown_analysis(self, db_path, payload_file, capsys):
        assert main(["--db", db_path, "save", "42", payload_file]) == 1
        assert "Analysis ID 42 does not exist in database" in capsys.readouterr().err

    def test_save_unreadable_file(self, db_path, tmp_path, capsys):
        assert main(["--db", db_path, "save", "1", str(tmp_path / "missing.json")]) == 1
        assert "could not read JSON" in capsys.readouterr().err

    def test_clear(self, db_path, payload_file, capsys):
        main(["--db", db_path, "save", "1", payload_file])
        assert main(["--db", db_path, "clear", "1"]) == 0
        capsys.readouterr()
        main(["--db", db_path, "show", "1"])
        assert json.loads(capsys.readouterr().out) == []

    def test_show_unknown_analysis_is_empty(self, db_path, capsys):
        assert main(["--db", db_path, "show", "7"]) == 0
        assert json.loads(capsys.readouterr().out) == []
