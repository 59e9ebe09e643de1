"""Error taxonomy shared across the dashboard."""

from __future__ import annotations


class EvalboardError(Exception):
    """Base class for dashboard errors."""


class ValidationError(EvalboardError):
    """Raised when a local check blocks an operation (no retry needed)."""

    def __init__(self, message: str, *, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or [message]


class SaveInProgressError(ValidationError):
    """Raised when a session is asked to save while a save is in flight."""


class StoreError(EvalboardError):
    """Raised when the record store fails a read or write."""


class NotFoundError(EvalboardError):
    """Raised when an operation targets an unknown candidate or evaluation."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found: {identifier!r}")
        self.kind = kind
        self.identifier = identifier


__all__ = [
    "EvalboardError",
    "ValidationError",
    "SaveInProgressError",
    "StoreError",
    "NotFoundError",
]
