"""Report requests, their artifacts, and the store that persists them.

Public API
----------
ReportRequestStore
    Transactional store for requests and artifact reconciliation.
ReportSubmission
    Caller input for a new request.
RequestView, ArtifactView
    Immutable snapshots returned by the store.
SuccessOutcome, FailureOutcome
    Outcomes applied to a pending artifact.
init_report_storage
    Create the request and artifact tables.

"""

from reportflow.reports.errors import (
    ArtifactNotReadyError,
    InvalidInputError,
    ReportError,
    RequestNotFoundError,
    StorageFailureError,
)
from reportflow.reports.models import (
    ArtifactKind,
    ArtifactOutcome,
    ArtifactStatus,
    ArtifactView,
    FailureOutcome,
    ReconcileResult,
    Reconciliation,
    RemoteDeletionState,
    ReportSubmission,
    RequestStatus,
    RequestView,
    SuccessOutcome,
)
from reportflow.reports.storage import init_report_storage
from reportflow.reports.store import ReportRequestStore

__all__ = [
    "ArtifactKind",
    "ArtifactNotReadyError",
    "ArtifactOutcome",
    "ArtifactStatus",
    "ArtifactView",
    "FailureOutcome",
    "InvalidInputError",
    "ReconcileResult",
    "Reconciliation",
    "RemoteDeletionState",
    "ReportError",
    "ReportRequestStore",
    "ReportSubmission",
    "RequestNotFoundError",
    "RequestStatus",
    "RequestView",
    "StorageFailureError",
    "SuccessOutcome",
    "init_report_storage",
]
