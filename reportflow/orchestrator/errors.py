"""Errors raised by the report orchestrator."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from reportflow.reports.models import ArtifactKind


class ContentUnavailableError(RuntimeError):
    """Raised when a completed artifact's bytes cannot be fetched."""

    def __init__(self, request_id: str, kind: ArtifactKind, detail: str) -> None:
        """Record the artifact and why its source failed."""
        self.request_id = request_id
        self.kind = kind
        super().__init__(
            f"content of {kind.value} artifact for {request_id!r} "
            f"is unavailable: {detail}"
        )
