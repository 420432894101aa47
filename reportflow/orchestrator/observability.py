"""Structured lifecycle events for report orchestration.

Every event is a single femtologging record of the form
``[event.type] key=value ...`` so log pipelines can filter on the bracketed
event type.

Usage
-----
>>> event_logger = OrchestratorEventLogger()
>>> event_logger.log_submission_accepted(request_id="Req-1", mode="sync")

"""

from __future__ import annotations

import enum
import typing as typ

from reportflow.logging import get_logger, log_error, log_info, log_warning
from reportflow.reports.models import RemoteDeletionState, SuccessOutcome

if typ.TYPE_CHECKING:
    from reportflow.reports.models import (
        ArtifactKind,
        ArtifactOutcome,
        ReconcileResult,
    )

logger = get_logger(__name__)


class OrchestratorEventType(enum.StrEnum):
    """Structured log event types for request lifecycles."""

    SUBMISSION_ACCEPTED = "orchestrator.submission.accepted"
    DISPATCH_FAILED = "orchestrator.dispatch.failed"
    JOIN_TIMED_OUT = "orchestrator.join.timed_out"
    ARTIFACT_RECONCILED = "orchestrator.artifact.reconciled"
    RECONCILE_CONFLICT = "orchestrator.artifact.conflict"
    NOTIFICATION_FAILED = "orchestrator.notification.failed"
    DELETION_STARTED = "orchestrator.deletion.started"
    REMOTE_DELETE_RESOLVED = "orchestrator.deletion.remote_resolved"
    REMOTE_DELETE_ABANDONED = "orchestrator.deletion.remote_abandoned"
    DELETION_PURGED = "orchestrator.deletion.purged"
    UNCLAIMED_FILE = "orchestrator.deletion.unclaimed_file"


def _describe(outcome: ArtifactOutcome) -> str:
    if isinstance(outcome, SuccessOutcome):
        return f"success file_id={outcome.file_id}"
    return f"failure reason={outcome.reason!r}"


class OrchestratorEventLogger:
    """Emit structured orchestration events via femtologging."""

    def log_submission_accepted(self, *, request_id: str, mode: str) -> None:
        """Log a persisted submission and the path (sync or async) it takes."""
        log_info(
            logger,
            "[%s] request_id=%s mode=%s",
            OrchestratorEventType.SUBMISSION_ACCEPTED,
            request_id,
            mode,
        )

    def log_dispatch_failed(
        self,
        *,
        request_id: str,
        kind: ArtifactKind,
        error: BaseException,
    ) -> None:
        """Log a generator RPC that failed and will be reconciled as failed.

        Parameters
        ----------
        request_id
            Request whose artifact was being rendered.
        kind
            Generator that failed.
        error
            Exception raised by the generator client.

        """
        log_warning(
            logger,
            "[%s] request_id=%s kind=%s error_type=%s error_message=%s",
            OrchestratorEventType.DISPATCH_FAILED,
            request_id,
            kind,
            type(error).__name__,
            str(error),
        )

    def log_join_timed_out(
        self,
        *,
        request_id: str,
        kinds: typ.Iterable[ArtifactKind],
        timeout_s: float,
    ) -> None:
        """Log dispatches still running when the join deadline expired."""
        log_warning(
            logger,
            "[%s] request_id=%s kinds=%s timeout_s=%.3f",
            OrchestratorEventType.JOIN_TIMED_OUT,
            request_id,
            ",".join(sorted(kind.value for kind in kinds)),
            timeout_s,
        )

    def log_artifact_reconciled(
        self,
        *,
        request_id: str,
        kind: ArtifactKind,
        result: ReconcileResult,
        outcome: ArtifactOutcome,
    ) -> None:
        """Log the result of a reconciliation attempt."""
        log_info(
            logger,
            "[%s] request_id=%s kind=%s result=%s outcome=%s",
            OrchestratorEventType.ARTIFACT_RECONCILED,
            request_id,
            kind,
            result,
            _describe(outcome),
        )

    def log_reconcile_conflict(
        self,
        *,
        request_id: str,
        kind: ArtifactKind,
        outcome: ArtifactOutcome,
    ) -> None:
        """Log an outcome that disagrees with an already terminal artifact.

        The stored state wins; the conflicting outcome is discarded.
        """
        log_warning(
            logger,
            "[%s] request_id=%s kind=%s discarded=%s",
            OrchestratorEventType.RECONCILE_CONFLICT,
            request_id,
            kind,
            _describe(outcome),
        )

    def log_notification_failed(
        self,
        *,
        request_id: str,
        kind: ArtifactKind,
        error: BaseException,
    ) -> None:
        """Log a submitter notification that could not be sent."""
        log_error(
            logger,
            "[%s] request_id=%s kind=%s error_type=%s error_message=%s",
            OrchestratorEventType.NOTIFICATION_FAILED,
            request_id,
            kind,
            type(error).__name__,
            str(error),
            exc_info=error,
        )

    def log_deletion_started(self, *, request_id: str, remote_deletes: int) -> None:
        """Log a request hidden from clients with remote deletes scheduled."""
        log_info(
            logger,
            "[%s] request_id=%s remote_deletes=%d",
            OrchestratorEventType.DELETION_STARTED,
            request_id,
            remote_deletes,
        )

    def log_remote_delete_resolved(
        self,
        *,
        request_id: str,
        kind: ArtifactKind,
        state: RemoteDeletionState,
        attempts: int,
    ) -> None:
        """Log the final state of one remote delete.

        Parameters
        ----------
        request_id
            Request being deleted.
        kind
            Generator holding the copy.
        state
            ``confirmed`` or ``abandoned``.
        attempts
            Number of delete calls made.

        """
        if state is RemoteDeletionState.CONFIRMED:
            emit, event = log_info, OrchestratorEventType.REMOTE_DELETE_RESOLVED
        else:
            emit, event = log_error, OrchestratorEventType.REMOTE_DELETE_ABANDONED
        emit(
            logger,
            "[%s] request_id=%s kind=%s state=%s attempts=%d",
            event,
            request_id,
            kind,
            state,
            attempts,
        )

    def log_deletion_purged(self, *, request_id: str) -> None:
        """Log the removal of a request's local rows."""
        log_info(
            logger,
            "[%s] request_id=%s",
            OrchestratorEventType.DELETION_PURGED,
            request_id,
        )

    def log_unclaimed_file(
        self, *, request_id: str, kind: ArtifactKind, file_id: str
    ) -> None:
        """Log a generator file produced for a request that no longer exists."""
        log_warning(
            logger,
            "[%s] request_id=%s kind=%s file_id=%s",
            OrchestratorEventType.UNCLAIMED_FILE,
            request_id,
            kind,
            file_id,
        )
