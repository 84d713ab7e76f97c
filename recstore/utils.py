"""
Shared utility functions for the recommendation store.

Small helpers used by the reader, the writer and the command line:
analysis id checks, log correlation tags and tolerant JSON loading.
"""

import json
import logging
import time

logger = logging.getLogger(__name__)


def as_analysis_id(value):
    """Return *value* as a positive ``int`` id, or ``None`` if it is not one.

    Integral floats such as ``2.0`` are accepted and converted; bools,
    strings, fractional and non-positive numbers are not.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


def correlation_id(operation: str, analysis_id) -> str:
    """Return a log tag such as ``save-12-1718000000000``."""
    return f"{operation}-{analysis_id}-{int(time.time() * 1000)}"


def safe_read_json(path, default=None):
    """Read a JSON file, returning *default* if the file is missing or corrupt.

    Parameters
    ----------
    path : str or pathlib.Path
        Path to the JSON file.
    default
        Value returned when the file cannot be read (default ``None``).

    Returns
    -------
    object
        Parsed JSON content, or *default* on failure.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        logger.warning("Could not read JSON from %s", path, exc_info=True)
        return default
