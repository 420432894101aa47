"""Errors raised by the report request store and its callers."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from reportflow.reports.models import ArtifactKind, ArtifactStatus


class ReportError(Exception):
    """Base class for report request errors."""


class RequestNotFoundError(ReportError):
    """Raised when a request identifier is unknown or being deleted."""

    def __init__(self, request_id: str) -> None:
        """Record the identifier that could not be resolved."""
        self.request_id = request_id
        super().__init__(f"report request {request_id!r} not found")


class ArtifactNotReadyError(ReportError):
    """Raised when content is requested for an artifact that is not completed."""

    def __init__(
        self,
        request_id: str,
        kind: ArtifactKind,
        status: ArtifactStatus,
    ) -> None:
        """Record the artifact and its current status."""
        self.request_id = request_id
        self.kind = kind
        self.status = status
        super().__init__(
            f"{kind.value} artifact for {request_id!r} is {status.value}, "
            "not completed"
        )


class StorageFailureError(ReportError):
    """Raised when the local persistent store rejects an operation.

    Storage failures are fatal to the operation in progress and are never
    retried automatically.
    """

    def __init__(self, operation: str, cause: Exception) -> None:
        """Wrap *cause* raised while performing *operation*."""
        self.operation = operation
        super().__init__(f"storage failure during {operation}: {cause}")

    @classmethod
    def during(cls, operation: str, cause: Exception) -> StorageFailureError:
        """Build an error for *operation* chained to *cause*."""
        error = cls(operation, cause)
        error.__cause__ = cause
        return error


class InvalidInputError(ReportError, ValueError):
    """Raised when caller supplied input cannot be used."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        """Store the message and optionally the offending field."""
        self.field = field
        super().__init__(message)

    @classmethod
    def missing_field(cls, field: str) -> InvalidInputError:
        """Return an error for a required field that was blank or absent."""
        return cls(f"{field} is required", field=field)

    @classmethod
    def unknown_kind(cls, value: str) -> InvalidInputError:
        """Return an error for an unrecognised artifact kind."""
        return cls(f"unknown artifact kind: {value!r}", field="kind")
