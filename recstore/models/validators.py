"""
recstore/models/validators.py -- Schema validation for recommendation sets.

Runs every proposed recommendation through ``RecommendationInput`` and
collects *all* violations across the whole set instead of stopping at the
first one, so the writer can report them in a single error.  Nothing here
touches the database.

Usage::

    from recstore.models.validators import validate_recommendations

    result = validate_recommendations(payload["recommendations"])
    if not result.passed:
        print("\\n".join(result.errors))
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from recstore.models.base import RecommendationInput

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 100


# ------------------------------------------------------------------
# Validation result
# ------------------------------------------------------------------

class ValidationResult:
    """Result of validating a recommendation set.

    Attributes
    ----------
    passed : bool
        Whether every recommendation validated.
    errors : list[str]
        Human-readable violations, each prefixed with the 1-based
        position of the offending recommendation.
    recommendations : list[RecommendationInput]
        The parsed recommendations (only populated if passed).
    """

    __slots__ = ("passed", "errors", "recommendations")

    def __init__(
        self,
        passed: bool,
        errors: list[str],
        recommendations: list[RecommendationInput],
    ):
        self.passed = passed
        self.errors = errors
        self.recommendations = recommendations

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "errors": self.errors,
            "count": len(self.recommendations),
        }


# ------------------------------------------------------------------
# Public entry point
# ------------------------------------------------------------------

def validate_recommendations(recommendations: Any) -> ValidationResult:
    """Validate a proposed recommendation set.

    Parameters
    ----------
    recommendations : list
        Recommendation dicts (or ``RecommendationInput`` instances).

    Returns
    -------
    ValidationResult
        ``passed`` is False if any recommendation broke a rule; ``errors``
        then lists every violation found.
    """
    if not isinstance(recommendations, (list, tuple)):
        return ValidationResult(
            passed=False,
            errors=["Recommendations must be a list"],
            recommendations=[],
        )

    errors: list[str] = []
    if len(recommendations) > MAX_RECOMMENDATIONS:
        errors.append(
            f"Too many recommendations: {len(recommendations)}. "
            f"Maximum allowed is {MAX_RECOMMENDATIONS}."
        )

    parsed: list[RecommendationInput] = []
    for index, raw in enumerate(recommendations):
        position = index + 1
        if isinstance(raw, RecommendationInput):
            rec = raw
        elif not isinstance(raw, dict):
            errors.append(f"Recommendation {position}: is not a valid object")
            continue
        else:
            try:
                rec = RecommendationInput.model_validate(raw)
            except ValidationError as exc:
                for err in exc.errors():
                    errors.append(
                        f"Recommendation {position}: "
                        f"{_humanize_pydantic_error(err)}"
                    )
                continue

        if not rec.rec_id:
            rec.rec_id = f"rec_{position}"
        parsed.append(rec)

    if errors:
        logger.debug("Validation found %d violation(s)", len(errors))
        return ValidationResult(passed=False, errors=errors, recommendations=[])

    return ValidationResult(passed=True, errors=[], recommendations=parsed)


# ------------------------------------------------------------------
# Error humanization
# ------------------------------------------------------------------

def _humanize_pydantic_error(err: dict) -> str:
    """Convert a single Pydantic error dict to a readable message.

    Pydantic error dicts look like::

        {
            "type": "literal_error",
            "loc": ("priority",),
            "msg": "Input should be 'critical', 'high', 'medium' or 'low'",
            "input": "urgent",
        }
    """
    loc = err.get("loc", ())
    msg = err.get("msg", "Validation error")
    err_type = err.get("type", "")

    field_path = ".".join(str(part) for part in loc if part != "__root__")
    if not field_path:
        field_path = "(root)"

    if err_type == "missing" or (err_type == "string_type" and err.get("input") is None):
        return f"missing required field '{field_path}'"
    if err_type in ("string_too_short", "too_short"):
        return f"field '{field_path}' must not be empty"
    if err_type == "literal_error":
        return f"invalid {field_path} {err.get('input')!r}. {msg}"
    if err_type == "value_error":
        return f"{field_path}: {msg.removeprefix('Value error, ')}"
    return f"field '{field_path}': {msg}"
