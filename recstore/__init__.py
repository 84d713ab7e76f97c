"""
recstore -- Recommendation persistence for the SEO analyzer.

Durably stores, atomically replaces and reconstructs the recommendations
produced for an analysis run.

Modules:
    database    SQLite handle and transaction coordinator
    health      Read-only store health probe
    writer      Replace-all save (fails closed)
    reader      Nested graph reconstruction (fails open)
    models      Pydantic models and schema validation
    errors      Exception taxonomy
    paths       Database location resolution
"""

from recstore.database import RecommendationDatabase
from recstore.errors import (
    ConnectivityError,
    PersistenceError,
    RecommendationValidationError,
    ReferentialIntegrityError,
    SchemaDriftError,
    TransactionError,
)
from recstore.health import HealthReport, probe
from recstore.reader import get_recommendations
from recstore.writer import delete_recommendations, save_recommendations

__all__ = [
    "ConnectivityError",
    "HealthReport",
    "PersistenceError",
    "RecommendationDatabase",
    "RecommendationValidationError",
    "ReferentialIntegrityError",
    "SchemaDriftError",
    "TransactionError",
    "delete_recommendations",
    "get_recommendations",
    "probe",
    "save_recommendations",
]
