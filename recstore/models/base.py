"""
recstore/models/base.py -- Pydantic v2 models for recommendations.

Two families of models live here:

    Input models   (``RecommendationInput`` and its nested ``ActionInput``,
                    ``ExampleInput``, ``ResourceInput``) describe what a caller
                    hands to the writer.  They accept the camelCase keys the
                    analyzer front end sends (``recId``, ``whyExplanation``,
                    ...), the legacy recommendation-engine keys (``id``,
                    ``why``, ``impactEstimate.scoreIncrease``, ``action``,
                    ``before``/``after``) and plain snake_case names.

    Stored models  (``StoredRecommendation`` and friends) describe what the
                    reader reassembles from the database.  They dump to
                    camelCase with ``model_dump(by_alias=True)``.

Free-text fields are stripped and clipped to the column limits below; the
enumerated fields (priority, status, effort) are closed ``Literal`` sets.
"""

import logging
from collections.abc import Mapping
from typing import Annotated, Any, Literal, Optional
from urllib.parse import urlparse

from pydantic import (
    AfterValidator,
    AliasChoices,
    AliasPath,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    model_validator,
)
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

Priority = Literal["critical", "high", "medium", "low"]
Status = Literal["pending", "in-progress", "completed", "dismissed"]
Effort = Literal["quick", "moderate", "significant"]

PRIORITIES: tuple[str, ...] = ("critical", "high", "medium", "low")
STATUSES: tuple[str, ...] = ("pending", "in-progress", "completed", "dismissed")
EFFORTS: tuple[str, ...] = ("quick", "moderate", "significant")

DEFAULT_STATUS = "pending"
DEFAULT_CATEGORY = "general"
DEFAULT_ACTION_TYPE = "action"


# ------------------------------------------------------------------
# Field coercion helpers
# ------------------------------------------------------------------

def _scalar_to_str(value: Any) -> Any:
    """Render numbers as strings; leave everything else for pydantic."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _none_to_empty(value: Any) -> Any:
    if value is None:
        return ""
    return _scalar_to_str(value)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return _scalar_to_str(value)


def _enum_value(value: Any) -> Any:
    """Normalise an enumerated value: lowercase, blank means absent."""
    if isinstance(value, str):
        value = value.strip().lower()
        return value or None
    return value


def _none_to_zero(value: Any) -> Any:
    return 0 if value is None else value


def _clip(max_len: int):
    def clip(value: str) -> str:
        return value[:max_len]
    return clip


def _clip_optional(max_len: int):
    def clip(value: Optional[str]) -> Optional[str]:
        return value[:max_len] if value else None
    return clip


def Text(max_len: int):
    """Optional free text: ``None`` becomes ``""``, clipped to *max_len*."""
    return Annotated[str, BeforeValidator(_none_to_empty), AfterValidator(_clip(max_len))]


def OptionalText(max_len: int):
    """Optional free text where blank means absent."""
    return Annotated[
        Optional[str],
        BeforeValidator(_blank_to_none),
        AfterValidator(_clip_optional(max_len)),
    ]


# The length constraint must sit on the str schema itself, ahead of the
# validators, so an empty title reports as string_too_short
RequiredTitle = Annotated[
    str,
    StringConstraints(min_length=1),
    BeforeValidator(_scalar_to_str),
    AfterValidator(_clip(200)),
]
Score = Annotated[float, BeforeValidator(_none_to_zero)]

Text50 = Text(50)
Text100 = Text(100)
Text200 = Text(200)
Text500 = Text(500)
Text2000 = Text(2000)
OptionalText100 = OptionalText(100)
OptionalText2000 = OptionalText(2000)


def _choices(*names: str | AliasPath) -> AliasChoices:
    return AliasChoices(*names)


# ------------------------------------------------------------------
# Input models
# ------------------------------------------------------------------

class _InputModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ActionInput(_InputModel):
    """One remediation step.  ``step`` defaults to the 1-based position."""

    step: Optional[int] = Field(default=None, ge=1)
    action_text: Text500 = Field(
        default="", validation_alias=_choices("actionText", "action_text", "action"),
    )
    action_type: Text50 = Field(
        default=DEFAULT_ACTION_TYPE,
        validation_alias=_choices("actionType", "action_type", "type"),
    )

    @model_validator(mode="after")
    def _default_type(self) -> "ActionInput":
        if not self.action_type:
            self.action_type = DEFAULT_ACTION_TYPE
        return self


class ExampleInput(_InputModel):
    """Before/after illustration; at least one side must be present."""

    before_example: OptionalText2000 = Field(
        default=None,
        validation_alias=_choices("beforeExample", "before_example", "before"),
    )
    after_example: OptionalText2000 = Field(
        default=None,
        validation_alias=_choices("afterExample", "after_example", "after"),
    )

    @model_validator(mode="after")
    def _one_side_present(self) -> "ExampleInput":
        if self.before_example is None and self.after_example is None:
            raise ValueError("an example needs a before or an after value")
        return self


_UNSAFE_SCHEMES = ("javascript", "data", "vbscript")


def is_absolute_url(url: str) -> bool:
    """True for an absolute URL with a scheme (``https://...``, ``mailto:...``)."""
    parsed = urlparse(url)
    if not parsed.scheme or parsed.scheme.lower() in _UNSAFE_SCHEMES:
        return False
    return bool(parsed.netloc or parsed.path)


class ResourceInput(_InputModel):
    """External learn-more link.

    A url that is not absolute is cleared (and logged) rather than
    rejected; the title is kept.
    """

    title: Text200 = ""
    url: Text500 = ""

    @model_validator(mode="after")
    def _clear_bad_url(self) -> "ResourceInput":
        if self.url and not is_absolute_url(self.url):
            logger.warning("Invalid resource URL '%s', removing", self.url)
            self.url = ""
        return self

    @property
    def is_empty(self) -> bool:
        return not self.title and not self.url


def _drop_non_objects(value: Any) -> Any:
    """Skip resource entries that are not objects."""
    if not value:
        return []
    if not isinstance(value, list):
        return value
    kept = []
    for index, item in enumerate(value):
        if isinstance(item, (Mapping, ResourceInput)):
            kept.append(item)
        else:
            logger.warning("Invalid resource at index %d, skipping", index)
    return kept


class RecommendationInput(_InputModel):
    """A recommendation as submitted to the writer."""

    rec_id: OptionalText100 = Field(
        default=None, validation_alias=_choices("recId", "rec_id", "id"),
    )
    rule_id: OptionalText100 = Field(
        default=None, validation_alias=_choices("ruleId", "rule_id"),
    )
    title: RequiredTitle
    priority: Annotated[Priority, BeforeValidator(_enum_value)]
    category: Text100 = DEFAULT_CATEGORY
    description: Text2000 = ""
    effort: Annotated[Optional[Effort], BeforeValidator(_enum_value)] = None
    estimated_time: Text100 = Field(
        default="", validation_alias=_choices("estimatedTime", "estimated_time"),
    )
    score_increase: Score = Field(
        default=0,
        ge=0,
        validation_alias=_choices(
            "scoreIncrease", "score_increase",
            AliasPath("impactEstimate", "scoreIncrease"),
        ),
    )
    percentage_increase: Score = Field(
        default=0,
        validation_alias=_choices(
            "percentageIncrease", "percentage_increase",
            AliasPath("impactEstimate", "percentageIncrease"),
        ),
    )
    why_explanation: Text2000 = Field(
        default="",
        validation_alias=_choices("whyExplanation", "why_explanation", "why"),
    )
    status: Annotated[Optional[Status], BeforeValidator(_enum_value)] = None
    actions: Annotated[list[ActionInput], BeforeValidator(lambda v: v or [])] = []
    example: Optional[ExampleInput] = None
    resources: Annotated[list[ResourceInput], BeforeValidator(_drop_non_objects)] = []

    @model_validator(mode="after")
    def _fill_defaults(self) -> "RecommendationInput":
        if not self.category:
            self.category = DEFAULT_CATEGORY
        for position, action in enumerate(self.actions, start=1):
            if action.step is None:
                action.step = position
        # Neither a title nor a usable url left
        self.resources = [r for r in self.resources if not r.is_empty]
        return self

    @property
    def effective_status(self) -> str:
        return self.status or DEFAULT_STATUS

    def ordered_actions(self) -> list[ActionInput]:
        """Actions sorted by step; ties keep submission order."""
        return sorted(self.actions, key=lambda a: a.step)


# ------------------------------------------------------------------
# Stored models (reader output)
# ------------------------------------------------------------------

def _or_default(default: str):
    def coerce(value: Any) -> Any:
        return default if value is None else value
    return coerce


def StoredText(default: str):
    """Text column that may be NULL in older or hand-edited databases."""
    return Annotated[str, BeforeValidator(_or_default(default))]


StoredTextEmpty = StoredText("")
StoredActionType = StoredText(DEFAULT_ACTION_TYPE)
StoredCategory = StoredText(DEFAULT_CATEGORY)
StoredStatus = StoredText(DEFAULT_STATUS)


class _StoredModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class StoredAction(_StoredModel):
    id: int
    recommendation_id: int
    step: int
    action_text: StoredTextEmpty = ""
    action_type: StoredActionType = DEFAULT_ACTION_TYPE


class StoredExample(_StoredModel):
    id: int
    recommendation_id: int
    before_example: Optional[str] = None
    after_example: Optional[str] = None


class StoredResource(_StoredModel):
    id: int
    recommendation_id: int
    title: StoredTextEmpty = ""
    url: StoredTextEmpty = ""


class StoredRecommendation(_StoredModel):
    """A recommendation reassembled from the database with its children."""

    id: int
    analysis_id: int
    rec_id: str
    rule_id: Optional[str] = None
    title: str
    priority: str
    category: StoredCategory = DEFAULT_CATEGORY
    description: Optional[str] = None
    effort: Optional[str] = None
    estimated_time: Optional[str] = None
    score_increase: Optional[float] = None
    percentage_increase: Optional[float] = None
    why_explanation: Optional[str] = None
    status: StoredStatus = DEFAULT_STATUS
    created_at: Optional[str] = None
    actions: list[StoredAction] = []
    example: Optional[StoredExample] = None
    resources: list[StoredResource] = []
