"""
recstore/models/ -- Pydantic v2 models for the recommendation store.

Submodules:
    base        Input and stored recommendation models.
    validators  Schema validation of a proposed recommendation set.
"""

from recstore.models.base import (
    ActionInput,
    ExampleInput,
    RecommendationInput,
    ResourceInput,
    StoredAction,
    StoredExample,
    StoredRecommendation,
    StoredResource,
)
from recstore.models.validators import ValidationResult, validate_recommendations

__all__ = [
    "ActionInput",
    "ExampleInput",
    "RecommendationInput",
    "ResourceInput",
    "StoredAction",
    "StoredExample",
    "StoredRecommendation",
    "StoredResource",
    "ValidationResult",
    "validate_recommendations",
]
