"""Exception types raised by the question builder."""

from __future__ import annotations


class QuestionBuilderError(Exception):
    """Base class for errors raised by the question builder."""


class ConceptLookupError(QuestionBuilderError):
    """Raised when the concept directory cannot resolve an identifier."""

    def __init__(self, concept_id: str, message: str) -> None:
        super().__init__(message)
        self.concept_id = concept_id


class SchemaCoordinateError(QuestionBuilderError):
    """Raised when a schema coordinate does not address the host schema."""


class EditSessionClosedError(QuestionBuilderError):
    """Raised when a committed or discarded edit session is modified."""


__all__ = [
    "ConceptLookupError",
    "EditSessionClosedError",
    "QuestionBuilderError",
    "SchemaCoordinateError",
]
