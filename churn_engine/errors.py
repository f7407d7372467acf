"""Exception types raised by the churn scoring engine."""

from typing import Iterable, Optional


class ChurnEngineError(Exception):
    """Base class for all engine errors."""


class InvalidInputError(ChurnEngineError, ValueError):
    """
    A required feature field is missing or out of range.

    Attributes:
        fields: Names of the offending fields, in the order reported
    """

    def __init__(self, message: str, fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])


class EmptyDatasetError(ChurnEngineError, ValueError):
    """Training or stats update was called with zero samples."""


class PredictionRuntimeError(ChurnEngineError):
    """Unexpected failure inside the regression prediction path."""


class TrainingInProgressError(ChurnEngineError):
    """Another training run currently holds the model store."""
