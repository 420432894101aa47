"""Wire structures exchanged with generator services.

Field names are snake_case in Python and camelCase on the wire, matching
the generator HTTP and queue contracts.
"""

from __future__ import annotations

import msgspec

from reportflow.reports.models import (
    ArtifactKind,
    ArtifactOutcome,
    FailureOutcome,
    ReportSubmission,
    SuccessOutcome,
)

GENERATOR_FAILED_REASON = "generator reported failure"


class RenderRequest(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Payload of a render RPC and of the submission bus message."""

    request_id: str
    submitter: str
    description: str
    headers: tuple[str, ...] = ()
    data: tuple[tuple[str, ...], ...] = ()

    @classmethod
    def for_submission(
        cls, request_id: str, submission: ReportSubmission
    ) -> RenderRequest:
        """Build the payload for *submission* persisted as *request_id*."""
        return cls(
            request_id=request_id,
            submitter=submission.submitter,
            description=submission.description,
            headers=submission.headers,
            data=submission.data,
        )


class GeneratorDescriptor(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Generator answer describing the stored file, or a failure."""

    request_id: str
    failed: bool = False
    file_id: str | None = None
    file_location: str | None = None
    file_size: int = 0

    def to_outcome(self) -> ArtifactOutcome:
        """Translate the descriptor into an artifact outcome."""
        if self.failed or not self.file_id or not self.file_location:
            return FailureOutcome(reason=GENERATOR_FAILED_REASON)
        return SuccessOutcome(
            file_id=self.file_id,
            file_location=self.file_location,
            file_size=self.file_size,
        )


class CallbackMessage(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Completion notice published by a generator after an async render."""

    request_id: str
    kind: ArtifactKind
    failed: bool = False
    file_id: str | None = None
    file_location: str | None = None
    file_size: int = 0

    @classmethod
    def from_descriptor(
        cls, kind: ArtifactKind, descriptor: GeneratorDescriptor
    ) -> CallbackMessage:
        """Wrap *descriptor* produced by the *kind* generator."""
        return cls(
            request_id=descriptor.request_id,
            kind=kind,
            failed=descriptor.failed,
            file_id=descriptor.file_id,
            file_location=descriptor.file_location,
            file_size=descriptor.file_size,
        )

    def to_outcome(self) -> ArtifactOutcome:
        """Translate the callback into an artifact outcome."""
        return GeneratorDescriptor(
            request_id=self.request_id,
            failed=self.failed,
            file_id=self.file_id,
            file_location=self.file_location,
            file_size=self.file_size,
        ).to_outcome()
