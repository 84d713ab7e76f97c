"""
recstore/paths.py -- Database location resolution.

Uses platformdirs for the per-user data directory, with an environment
override for tests and packaged deployments.
"""

from __future__ import annotations

import os

from platformdirs import user_data_dir

_APP_NAME = "SEOAnalyzer"
_APP_AUTHOR = "SEOAnalyzer"

DB_FILENAME = "seo-analyzer.db"
DB_PATH_ENV = "RECSTORE_DB_PATH"


def get_user_data_dir() -> str:
    """Return the platform-appropriate user data directory."""
    path = user_data_dir(_APP_NAME, _APP_AUTHOR)
    os.makedirs(path, exist_ok=True)
    return path


def get_database_path() -> str:
    """Return the SQLite database path.

    ``$RECSTORE_DB_PATH`` wins when set; otherwise the database lives in
    the user data directory.
    """
    override = os.environ.get(DB_PATH_ENV, "").strip()
    if override:
        return override
    return os.path.join(get_user_data_dir(), DB_FILENAME)
