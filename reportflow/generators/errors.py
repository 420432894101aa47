"""Errors raised when talking to generator services."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from reportflow.reports.models import ArtifactKind

_BODY_PREVIEW_LIMIT = 200


class GeneratorError(Exception):
    """Base class for generator RPC failures.

    Dispatch code catches this single type and turns it into a failed
    artifact; it is never propagated as a submission failure.
    """

    def __init__(self, kind: ArtifactKind, message: str) -> None:
        """Record the generator kind alongside the message."""
        self.kind = kind
        super().__init__(f"{kind.value} generator: {message}")


class GeneratorUnreachableError(GeneratorError):
    """Raised when a generator cannot be reached or does not answer in time."""

    @classmethod
    def timeout(cls, kind: ArtifactKind) -> GeneratorUnreachableError:
        """Return an error for an RPC that exceeded its timeout."""
        return cls(kind, "request timed out")

    @classmethod
    def network_error(
        cls, kind: ArtifactKind, detail: str
    ) -> GeneratorUnreachableError:
        """Return an error for connection and transport failures."""
        return cls(kind, f"network error: {detail}")


class GeneratorResponseError(GeneratorError):
    """Raised when a generator answers with an error status or bad payload."""

    def __init__(
        self,
        kind: ArtifactKind,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        """Record the HTTP status code when one is available."""
        self.status_code = status_code
        super().__init__(kind, message)

    @classmethod
    def http_error(cls, kind: ArtifactKind, status_code: int) -> GeneratorResponseError:
        """Return an error for a non-2xx response."""
        return cls(kind, f"HTTP {status_code}", status_code=status_code)

    @classmethod
    def malformed(cls, kind: ArtifactKind, body: bytes) -> GeneratorResponseError:
        """Return an error for a response body that could not be decoded."""
        preview = body[:_BODY_PREVIEW_LIMIT].decode("utf-8", errors="replace")
        return cls(kind, f"malformed response: {preview!r}")
