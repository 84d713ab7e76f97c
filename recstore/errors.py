"""
recstore/errors.py -- Exception taxonomy for the recommendation store.

The write path raises these; the read path catches everything and degrades
to an empty result.

    PersistenceError
        ConnectivityError              store handle unusable
        ReferentialIntegrityError      analysis does not exist
        RecommendationValidationError  payload failed schema rules
        SchemaDriftError               expected table/columns missing
        TransactionError               failure inside an open transaction
"""

from __future__ import annotations


class PersistenceError(Exception):
    """Base class for every error raised by the recommendation store."""


class ConnectivityError(PersistenceError):
    """The database cannot be reached at all."""


class ReferentialIntegrityError(PersistenceError):
    """The referenced analysis does not exist (or the id is malformed)."""


class RecommendationValidationError(PersistenceError):
    """One or more recommendations failed schema validation.

    Attributes
    ----------
    errors : list[str]
        Every violation found, in input order.
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Validation errors: " + "; ".join(self.errors))


class SchemaDriftError(PersistenceError):
    """The recommendations table or one of its required columns is missing."""


class TransactionError(PersistenceError):
    """A delete/insert failed after the transaction was opened."""
