"""Exceptions raised by the bulk edit engine."""

from __future__ import annotations


class BulkEditError(RuntimeError):
    """Base class for every error raised by the engine."""


class InvalidFilterCriterion(BulkEditError, ValueError):
    """Raised when a filter criterion is malformed or uses an illegal combination."""


class InvalidOperationParameter(BulkEditError, ValueError):
    """Raised when an edit operation is missing parameters or carries bad values."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class PlanError(BulkEditError):
    """Raised when a new value cannot be computed for one item."""


class RemoteError(BulkEditError):
    """Raised by a gateway when a single remote call fails."""


class RemoteUnavailable(BulkEditError):
    """Raised by a gateway when the remote service cannot be reached at all.

    Unlike :class:`RemoteError` this aborts the whole batch: an expired token
    or an unreachable host means no later call can succeed either.
    """
