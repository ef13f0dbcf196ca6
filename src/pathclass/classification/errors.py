"""Classification pipeline errors."""

from __future__ import annotations


class PathclassError(Exception):
    """Base exception for classification pipeline failures."""


class InvalidInputError(PathclassError):
    """Raised when a run is requested with malformed or empty input."""


class ServiceFailure(PathclassError):
    """Raised when the reasoning service fails on every attempt for a batch.

    Attributes:
        attempts: Number of attempts made before giving up.
    """

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


__all__ = ["PathclassError", "InvalidInputError", "ServiceFailure"]
