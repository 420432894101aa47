"""Report orchestration: submission, reconciliation, retrieval and deletion.

:class:`ReportOrchestrator` owns the lifecycle of a report request. It
persists requests, fans render calls out to the generators through the
bounded worker pool (synchronous path) or the notification bus
(asynchronous path), reconciles generator outcomes into artifact status,
serves artifact content and runs the two-phase delete.

Generator failures are absorbed at the dispatch boundary and recorded as
failed artifacts. Only local storage failures fail a submission.

Usage
-----
>>> dependencies = OrchestratorDependencies(
...     store=ReportRequestStore(session_factory),
...     pool=BoundedWorkerPool(WorkerPoolConfig()),
...     generators={kind: GeneratorClient(kind, cfg) for kind, cfg in configs},
...     content_fetchers=fetchers,
... )
>>> orchestrator = ReportOrchestrator(dependencies, OrchestratorConfig())
>>> view = await orchestrator.submit_sync(
...     ReportSubmission(submitter="ops@example.com", description="Weekly")
... )
>>> view.status
<RequestStatus.COMPLETED: 'completed'>

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

import msgspec

from reportflow.common.time import seconds_ago
from reportflow.generators.errors import GeneratorError
from reportflow.generators.models import RenderRequest
from reportflow.logging import get_logger, log_debug, log_exception, log_warning
from reportflow.messaging.errors import NotificationBusError
from reportflow.orchestrator.config import OrchestratorConfig
from reportflow.orchestrator.errors import ContentUnavailableError
from reportflow.orchestrator.observability import OrchestratorEventLogger
from reportflow.reports.errors import (
    ArtifactNotReadyError,
    RequestNotFoundError,
    StorageFailureError,
)
from reportflow.reports.models import (
    ArtifactKind,
    ArtifactStatus,
    FailureOutcome,
    ReconcileResult,
    Reconciliation,
    RemoteDeletionState,
    SuccessOutcome,
)
from reportflow.workers.errors import PoolShutdownError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from reportflow.common.streams import ContentStream
    from reportflow.generators.client import GeneratorClient
    from reportflow.messaging.protocols import NotificationBus, SubmitterNotifier
    from reportflow.orchestrator.content import ContentFetcher
    from reportflow.reports.models import (
        ArtifactOutcome,
        ReportSubmission,
        RequestView,
    )
    from reportflow.reports.store import ReportRequestStore
    from reportflow.workers.pool import BoundedWorkerPool

logger = get_logger(__name__)

DISPATCH_INCOMPLETE_REASON = "dispatch did not complete"
PUBLISH_FAILED_REASON = "submission could not be published"


def join_timeout_reason(timeout_s: float) -> str:
    """Return the failure reason recorded when the join deadline expires."""
    return f"generator did not respond within {timeout_s:g}s"


@dc.dataclass(frozen=True, slots=True)
class OrchestratorDependencies:
    """Collaborators injected into :class:`ReportOrchestrator`.

    Attributes
    ----------
    store
        Persistent store for requests and artifacts.
    pool
        Bounded worker pool running render dispatches and remote deletes.
    generators
        Generator client per artifact kind.
    content_fetchers
        Content source per artifact kind.
    bus
        Notification bus for asynchronous submission; optional for
        deployments that only serve synchronous requests.
    notifier
        Best-effort submitter notification; optional.

    """

    store: ReportRequestStore
    pool: BoundedWorkerPool
    generators: cabc.Mapping[ArtifactKind, GeneratorClient]
    content_fetchers: cabc.Mapping[ArtifactKind, ContentFetcher]
    bus: NotificationBus | None = None
    notifier: SubmitterNotifier | None = None


class ReportOrchestrator:
    """Coordinate report requests across the store, pool and generators."""

    def __init__(
        self,
        dependencies: OrchestratorDependencies,
        config: OrchestratorConfig | None = None,
        event_logger: OrchestratorEventLogger | None = None,
    ) -> None:
        """Configure the orchestrator.

        Parameters
        ----------
        dependencies
            Store, pool, generator clients, content fetchers and the
            optional bus and notifier.
        config
            Deadlines and retry limits; defaults are used when omitted.
        event_logger
            Structured event logger; a default instance is created when
            omitted.

        """
        self._store = dependencies.store
        self._pool = dependencies.pool
        self._generators = dependencies.generators
        self._content_fetchers = dependencies.content_fetchers
        self._bus = dependencies.bus
        self._notifier = dependencies.notifier
        self._config = config or OrchestratorConfig()
        self._events = event_logger or OrchestratorEventLogger()
        self._tasks: set[asyncio.Task[typ.Any]] = set()

    @property
    def config(self) -> OrchestratorConfig:
        """Return the active configuration."""
        return self._config

    # Submission -------------------------------------------------------

    async def submit_sync(self, submission: ReportSubmission) -> RequestView:
        """Persist a request, render both artifacts and return the result.

        Both render calls run concurrently on the worker pool. Each call
        reconciles its artifact whether the generator succeeded or not. The
        caller waits at most ``join_timeout_s``; artifacts still pending at
        the deadline are reconciled as failed.

        Parameters
        ----------
        submission
            Caller input.

        Returns
        -------
        RequestView
            The request after reconciliation; no artifact is pending. A
            request deleted meanwhile comes back with ``deleting`` set.

        Raises
        ------
        InvalidInputError
            If the submission is missing required fields.
        StorageFailureError
            If persisting the request or an outcome fails.
        PoolShutdownError
            If the worker pool no longer accepts dispatches.

        """
        submission = submission.validated()
        view = await self._store.create(submission)
        self._events.log_submission_accepted(request_id=view.id, mode="sync")
        payload = RenderRequest.for_submission(view.id, submission)

        dispatches = {
            kind: self._spawn(self._dispatch_on_pool(kind, payload))
            for kind in ArtifactKind
        }
        reconciliations = await self._join(view.id, dispatches)
        return await self._settled_view(view, reconciliations)

    async def submit_async(self, submission: ReportSubmission) -> RequestView:
        """Persist a request and publish it to the generators.

        Returns immediately with both artifacts pending; the generators
        report back through callbacks handled by :meth:`reconcile`. When the
        bus rejects the message both artifacts are reconciled as failed so
        the request does not stay pending forever.

        Raises
        ------
        InvalidInputError
            If the submission is missing required fields.
        NotificationBusError
            If no bus is configured. Nothing is persisted in that case.
        StorageFailureError
            If persisting the request fails.

        """
        submission = submission.validated()
        if self._bus is None:
            raise NotificationBusError.not_configured()
        view = await self._store.create(submission)
        self._events.log_submission_accepted(request_id=view.id, mode="async")
        try:
            await self._bus.publish_submission(
                RenderRequest.for_submission(view.id, submission)
            )
        except NotificationBusError as exc:
            log_exception(logger, f"Publishing {view.id} failed", exc)
            failure = FailureOutcome(reason=f"{PUBLISH_FAILED_REASON}: {exc}")
            reconciliations = [
                await self.reconcile(view.id, kind, failure, missing_ok=True)
                for kind in ArtifactKind
            ]
            return await self._settled_view(view, reconciliations)
        return view

    async def _dispatch_on_pool(
        self, kind: ArtifactKind, payload: RenderRequest
    ) -> Reconciliation:
        future = await self._pool.submit(self._dispatch, kind, payload)
        return await future

    async def _dispatch(
        self, kind: ArtifactKind, payload: RenderRequest
    ) -> Reconciliation:
        """Render one artifact and always reconcile the outcome."""
        outcome: ArtifactOutcome = FailureOutcome(reason=DISPATCH_INCOMPLETE_REASON)
        try:
            descriptor = await self._generators[kind].render(payload)
            outcome = descriptor.to_outcome()
        except GeneratorError as exc:
            self._events.log_dispatch_failed(
                request_id=payload.request_id, kind=kind, error=exc
            )
            outcome = FailureOutcome(reason=str(exc))
        finally:
            reconciliation = await self.reconcile(
                payload.request_id, kind, outcome, missing_ok=True
            )
        return reconciliation

    async def _join(
        self,
        request_id: str,
        dispatches: dict[ArtifactKind, asyncio.Task[Reconciliation]],
    ) -> list[Reconciliation]:
        """Wait for *dispatches* until the deadline and fail the stragglers.

        Dispatches run in their own tasks, so the deadline holds even when a
        saturated pool runs the render on the submitting side. Stragglers
        keep running; their late outcomes reconcile as conflicts.
        """
        timeout_s = self._config.join_timeout_s
        _, pending = await asyncio.wait(dispatches.values(), timeout=timeout_s)
        reconciliations: list[Reconciliation] = []
        late = [kind for kind, task in dispatches.items() if task in pending]
        if late:
            self._events.log_join_timed_out(
                request_id=request_id, kinds=late, timeout_s=timeout_s
            )
            failure = FailureOutcome(reason=join_timeout_reason(timeout_s))
            for kind in late:
                reconciliations.append(
                    await self.reconcile(request_id, kind, failure, missing_ok=True)
                )

        for kind, task in dispatches.items():
            if task in pending or task.cancelled():
                continue
            exc = task.exception()
            if isinstance(exc, StorageFailureError | PoolShutdownError):
                raise exc
            if exc is not None:
                log_exception(
                    logger, f"Dispatch of {kind.value} for {request_id} raised", exc
                )
                continue
            reconciliations.append(task.result())
        return reconciliations

    async def _settled_view(
        self, created: RequestView, reconciliations: list[Reconciliation]
    ) -> RequestView:
        """Return the request after submission, even if it was deleted meanwhile.

        A concurrent delete hides the request from lookups; the submitter
        then gets the last committed view, flagged as deleting.
        """
        try:
            return await self._store.get(created.id)
        except RequestNotFoundError:
            committed = [
                reconciliation.request
                for reconciliation in reconciliations
                if reconciliation.request is not None
            ]
            latest = max(committed, key=lambda view: view.updated_at, default=created)
            log_debug(logger, "Request %s was deleted during submission", created.id)
            return msgspec.structs.replace(latest, deleting=True)

    def _spawn[T](self, work: cabc.Coroutine[typ.Any, typ.Any, T]) -> asyncio.Task[T]:
        task = asyncio.create_task(work)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # Reconciliation ---------------------------------------------------

    async def reconcile(
        self,
        request_id: str,
        kind: ArtifactKind,
        outcome: ArtifactOutcome,
        *,
        missing_ok: bool = False,
    ) -> Reconciliation:
        """Apply a generator outcome to one artifact.

        Reconciliation is idempotent: replaying an outcome is a no-op and a
        different outcome for a terminal artifact is logged and discarded.
        The submitter is notified only when the artifact actually changed,
        after the change has committed.

        Parameters
        ----------
        request_id
            Request owning the artifact.
        kind
            Artifact to update.
        outcome
            Success descriptor or failure reason.
        missing_ok
            Report ``REQUEST_GONE`` instead of raising when the request no
            longer exists or is being deleted. A success reported for such
            a request has its generator file released in the background.

        Returns
        -------
        Reconciliation
            What happened and the committed view of the request.

        Raises
        ------
        RequestNotFoundError
            If the request is unknown and ``missing_ok`` is false.
        StorageFailureError
            If the status write fails.

        """
        try:
            reconciliation = await self._store.apply_outcome(request_id, kind, outcome)
        except RequestNotFoundError:
            if not missing_ok:
                raise
            log_debug(
                logger,
                "Ignoring %s outcome for missing request %s",
                kind,
                request_id,
            )
            if isinstance(outcome, SuccessOutcome):
                await self._release_unclaimed(request_id, kind, outcome.file_id)
            return Reconciliation(result=ReconcileResult.REQUEST_GONE)

        self._events.log_artifact_reconciled(
            request_id=request_id,
            kind=kind,
            result=reconciliation.result,
            outcome=outcome,
        )
        if reconciliation.result is ReconcileResult.CONFLICT:
            self._events.log_reconcile_conflict(
                request_id=request_id, kind=kind, outcome=outcome
            )
        elif (
            reconciliation.result is ReconcileResult.APPLIED
            and reconciliation.request is not None
        ):
            await self._notify(reconciliation.request, kind, outcome)
        return reconciliation

    async def _notify(
        self, request: RequestView, kind: ArtifactKind, outcome: ArtifactOutcome
    ) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.notify_artifact_reconciled(request, kind, outcome)
        except Exception as exc:  # noqa: BLE001 - notification is best effort
            self._events.log_notification_failed(
                request_id=request.id, kind=kind, error=exc
            )

    # Retrieval --------------------------------------------------------

    async def get_request(self, request_id: str) -> RequestView:
        """Return the current view of *request_id*."""
        return await self._store.get(request_id)

    async def list_requests(self) -> list[RequestView]:
        """Return every visible request, newest first."""
        return await self._store.list_requests()

    async def get_file_body(self, request_id: str, kind: ArtifactKind) -> ContentStream:
        """Open the content of a completed artifact.

        Raises
        ------
        RequestNotFoundError
            If the request is unknown.
        ArtifactNotReadyError
            If the artifact is pending or failed.
        ContentUnavailableError
            If the content source cannot deliver the bytes.

        """
        view = await self._store.get(request_id)
        artifact = view.artifact(kind)
        if artifact.status is not ArtifactStatus.COMPLETED:
            raise ArtifactNotReadyError(request_id, kind, artifact.status)
        fetcher = self._content_fetchers.get(kind)
        if fetcher is None:
            raise ContentUnavailableError(
                request_id, kind, "no content source configured"
            )
        return await fetcher.fetch(request_id, artifact)

    # Deletion ---------------------------------------------------------

    async def delete(self, request_id: str) -> RequestView:
        """Delete a request and release the generators' copies.

        The request disappears for clients as soon as this returns. Remote
        deletes run in the background on the worker pool; the local rows are
        purged once every remote delete is confirmed or abandoned.

        Returns
        -------
        RequestView
            The request as it was when deletion began.

        Raises
        ------
        RequestNotFoundError
            If the request is unknown or already being deleted.
        StorageFailureError
            If the soft delete cannot be written.

        """
        view = await self._store.begin_deletion(request_id)
        targets = [
            artifact
            for artifact in view.artifacts
            if artifact.remote_deletion is RemoteDeletionState.PENDING
        ]
        self._events.log_deletion_started(
            request_id=request_id, remote_deletes=len(targets)
        )
        if not targets:
            await self._purge(request_id)
            return view
        for artifact in targets:
            try:
                future = await self._pool.submit(
                    self.delete_remote,
                    request_id,
                    artifact.kind,
                    artifact.file_id or "",
                )
            except PoolShutdownError:
                log_warning(
                    logger,
                    "Remote delete of %s for %s deferred to the sweep",
                    artifact.kind,
                    request_id,
                )
                continue
            future.add_done_callback(self._log_background_failure)
        return view

    async def delete_remote(
        self, request_id: str, kind: ArtifactKind, file_id: str
    ) -> RemoteDeletionState:
        """Ask the *kind* generator to drop *file_id*, with retries.

        A generator answering 404 has already released the file and counts
        as confirmed. After ``delete_max_attempts`` failures the remote copy
        is abandoned. Either way the outcome is recorded and the request is
        purged once no remote delete remains outstanding.
        """
        state = await self._delete_with_retries(request_id, kind, file_id)
        if await self._store.record_remote_deletion(request_id, kind, state):
            self._events.log_deletion_purged(request_id=request_id)
        return state

    async def _delete_with_retries(
        self, request_id: str, kind: ArtifactKind, file_id: str
    ) -> RemoteDeletionState:
        client = self._generators[kind]
        max_attempts = self._config.delete_max_attempts
        state = RemoteDeletionState.ABANDONED
        attempts = 0
        for attempt in range(1, max_attempts + 1):
            attempts = attempt
            try:
                await client.delete(file_id)
            except GeneratorError as exc:
                log_warning(
                    logger,
                    "Remote delete of %s for %s failed (attempt %d/%d): %s",
                    kind,
                    request_id,
                    attempt,
                    max_attempts,
                    exc,
                )
                if attempt < max_attempts:
                    await asyncio.sleep(attempt * self._config.delete_backoff_s)
                continue
            state = RemoteDeletionState.CONFIRMED
            break

        self._events.log_remote_delete_resolved(
            request_id=request_id, kind=kind, state=state, attempts=attempts
        )
        return state

    async def _release_unclaimed(
        self, request_id: str, kind: ArtifactKind, file_id: str
    ) -> None:
        """Delete a generator file nobody will reference, without waiting."""
        self._events.log_unclaimed_file(
            request_id=request_id, kind=kind, file_id=file_id
        )
        try:
            future = await self._pool.submit(
                self._delete_with_retries, request_id, kind, file_id
            )
        except PoolShutdownError:
            log_warning(
                logger,
                "Pool closed; %s file %s of %s stays with its generator",
                kind,
                file_id,
                request_id,
            )
            return
        future.add_done_callback(self._log_background_failure)

    async def sweep_stalled_deletions(self) -> int:
        """Finish deletions that stalled, for example after a crash.

        Requests marked deleting for longer than ``deletion_sweep_age_s``
        have their outstanding remote deletes re-driven inline and are
        purged once resolved.

        Returns
        -------
        int
            Number of stalled requests processed.

        """
        cutoff = seconds_ago(self._config.deletion_sweep_age_s)
        stalled = await self._store.find_stalled_deletions(cutoff)
        for view in stalled:
            outstanding = [
                artifact
                for artifact in view.artifacts
                if artifact.remote_deletion is RemoteDeletionState.PENDING
            ]
            if not outstanding:
                await self._purge(view.id)
                continue
            for artifact in outstanding:
                await self.delete_remote(view.id, artifact.kind, artifact.file_id or "")
        return len(stalled)

    async def _purge(self, request_id: str) -> None:
        if await self._store.purge_if_resolved(request_id):
            self._events.log_deletion_purged(request_id=request_id)

    @staticmethod
    def _log_background_failure(future: asyncio.Future[typ.Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            log_exception(logger, "Background remote delete failed", exc)
