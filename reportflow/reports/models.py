"""Value types describing report requests, artifacts and reconciliation.

ORM rows never leave the store. Callers receive the immutable
``msgspec.Struct`` snapshots defined here, and hand outcomes back to the
store through :class:`SuccessOutcome` and :class:`FailureOutcome`.
"""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import enum
import typing as typ

import msgspec

from reportflow.reports.errors import InvalidInputError

REQUEST_ID_PREFIX = "Req-"


class ArtifactKind(enum.StrEnum):
    """Generator kinds; every request owns exactly one artifact of each."""

    PDF = "pdf"
    SPREADSHEET = "spreadsheet"

    @classmethod
    def parse(cls, value: str) -> ArtifactKind:
        """Return the kind named by *value* or raise ``InvalidInputError``."""
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            raise InvalidInputError.unknown_kind(value) from exc


class ArtifactStatus(enum.StrEnum):
    """Per-artifact lifecycle states."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` for states that are never left again."""
        return self is not ArtifactStatus.PENDING


class RequestStatus(enum.StrEnum):
    """Aggregate status derived from a request's two artifacts."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class RemoteDeletionState(enum.StrEnum):
    """Progress of releasing an artifact's copy held by its generator."""

    NOT_REQUESTED = "not_requested"
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ABANDONED = "abandoned"

    @property
    def is_resolved(self) -> bool:
        """Return ``True`` once no remote delete remains outstanding."""
        return self is not RemoteDeletionState.PENDING


class ReconcileResult(enum.StrEnum):
    """What a reconciliation attempt did to the stored artifact."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    CONFLICT = "conflict"
    REQUEST_GONE = "request_gone"


class ReportSubmission(msgspec.Struct, kw_only=True, frozen=True):
    """Caller supplied input for a new report request.

    Attributes
    ----------
    submitter
        Identity of the caller; also the notification recipient.
    description
        Free-form description copied onto the request.
    headers
        Column headers forwarded to both generators.
    data
        Table rows forwarded to both generators.

    """

    submitter: str
    description: str
    headers: tuple[str, ...] = ()
    data: tuple[tuple[str, ...], ...] = ()

    def validated(self) -> ReportSubmission:
        """Return the submission after checking required fields.

        Raises
        ------
        InvalidInputError
            If ``submitter`` or ``description`` is blank.

        """
        if not self.submitter.strip():
            raise InvalidInputError.missing_field("submitter")
        if not self.description.strip():
            raise InvalidInputError.missing_field("description")
        return self


class SuccessOutcome(msgspec.Struct, kw_only=True, frozen=True, tag="success"):
    """Generator reported a stored artifact."""

    file_id: str
    file_location: str
    file_size: int = 0


class FailureOutcome(msgspec.Struct, kw_only=True, frozen=True, tag="failure"):
    """Generator failed, was unreachable, or did not answer in time."""

    reason: str


ArtifactOutcome = SuccessOutcome | FailureOutcome


class ArtifactView(msgspec.Struct, kw_only=True, frozen=True):
    """Snapshot of one artifact as stored after the last transaction."""

    kind: ArtifactKind
    status: ArtifactStatus
    file_id: str | None = None
    file_location: str | None = None
    file_size: int | None = None
    failure_reason: str | None = None
    remote_deletion: RemoteDeletionState = RemoteDeletionState.NOT_REQUESTED
    created_at: dt.datetime
    updated_at: dt.datetime

    def matches(self, outcome: ArtifactOutcome) -> bool:
        """Return ``True`` when *outcome* repeats the stored terminal state.

        Successes are identified by ``file_id``; every failure repeats a
        failed artifact regardless of its reason.
        """
        if isinstance(outcome, SuccessOutcome):
            return (
                self.status is ArtifactStatus.COMPLETED
                and self.file_id == outcome.file_id
            )
        return self.status is ArtifactStatus.FAILED


class RequestView(msgspec.Struct, kw_only=True, frozen=True):
    """Snapshot of a request and both of its artifacts."""

    id: str
    submitter: str
    description: str
    created_at: dt.datetime
    updated_at: dt.datetime
    artifacts: tuple[ArtifactView, ...]
    deleting: bool = False

    @property
    def status(self) -> RequestStatus:
        """Derive the aggregate status from the artifacts."""
        statuses = {artifact.status for artifact in self.artifacts}
        if ArtifactStatus.PENDING in statuses:
            return RequestStatus.PENDING
        if ArtifactStatus.FAILED in statuses:
            return RequestStatus.FAILED
        return RequestStatus.COMPLETED

    def artifact(self, kind: ArtifactKind) -> ArtifactView:
        """Return the artifact of *kind*.

        Raises
        ------
        KeyError
            If the view does not carry an artifact of that kind.

        """
        for artifact in self.artifacts:
            if artifact.kind is kind:
                return artifact
        raise KeyError(kind)

    def to_payload(self) -> dict[str, typ.Any]:
        """Return a JSON-ready mapping including the derived status."""
        payload = msgspec.to_builtins(self)
        payload["status"] = self.status.value
        return payload


class Reconciliation(msgspec.Struct, kw_only=True, frozen=True):
    """Result of one reconciliation and the view after it committed."""

    result: ReconcileResult
    request: RequestView | None = None
