"""Transactional access to report requests and their artifacts.

The store is the single writer of request and artifact rows. Every public
method opens its own session, commits before returning, and hands back
immutable views. An artifact leaves ``pending`` through a conditional
``UPDATE`` that only matches a pending row, so concurrent outcomes from
separate processes settle on exactly one winner. Within a process a
per-request lock additionally orders coroutines, and deletion takes
``SELECT ... FOR UPDATE`` on the request row where the database supports it.

Usage
-----
>>> from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
>>> engine = create_async_engine("sqlite+aiosqlite:///reportflow.db")
>>> store = ReportRequestStore(async_sessionmaker(engine, expire_on_commit=False))
>>> view = await store.create(ReportSubmission(submitter="a", description="b"))
>>> view.status
<RequestStatus.PENDING: 'pending'>

"""

from __future__ import annotations

import asyncio
import collections
import contextlib
import typing as typ
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from reportflow.common.time import utcnow
from reportflow.logging import get_logger, log_debug
from reportflow.reports.errors import RequestNotFoundError, StorageFailureError
from reportflow.reports.models import (
    REQUEST_ID_PREFIX,
    ArtifactKind,
    ArtifactStatus,
    ReconcileResult,
    Reconciliation,
    RemoteDeletionState,
    SuccessOutcome,
)
from reportflow.reports.storage import ArtifactRecord, ReportRequestRecord

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from reportflow.reports.models import (
        ArtifactOutcome,
        ReportSubmission,
        RequestView,
    )

logger = get_logger(__name__)


def new_request_id() -> str:
    """Return a fresh opaque request identifier."""
    return f"{REQUEST_ID_PREFIX}{uuid.uuid4()}"


@contextlib.contextmanager
def _storage_errors(operation: str) -> cabc.Iterator[None]:
    """Translate SQLAlchemy failures into ``StorageFailureError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageFailureError.during(operation, exc) from exc


class _KeyedLocks:
    """Reference-counted ``asyncio.Lock`` per key.

    Locks are created on first use and dropped once no coroutine holds or
    waits for them, so the registry only grows with concurrent activity.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: collections.Counter[str] = collections.Counter()

    @contextlib.asynccontextmanager
    async def hold(self, key: str) -> cabc.AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class ReportRequestStore:
    """Persist report requests and apply artifact outcomes atomically."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Bind the store to an async session factory."""
        self._session_factory = session_factory
        self._locks = _KeyedLocks()

    async def create(self, submission: ReportSubmission) -> RequestView:
        """Insert a request together with one pending artifact per kind.

        Parameters
        ----------
        submission
            Validated caller input.

        Returns
        -------
        RequestView
            The freshly persisted request; both artifacts are pending.

        Raises
        ------
        StorageFailureError
            If the insert fails. Nothing is persisted in that case.

        """
        now = utcnow()
        record = ReportRequestRecord(
            id=new_request_id(),
            submitter=submission.submitter,
            description=submission.description,
            created_at=now,
            updated_at=now,
            artifacts=[
                ArtifactRecord(
                    kind=kind,
                    status=ArtifactStatus.PENDING,
                    remote_deletion=RemoteDeletionState.NOT_REQUESTED,
                    created_at=now,
                    updated_at=now,
                )
                for kind in ArtifactKind
            ],
        )
        with _storage_errors("create"):
            async with self._session_factory() as session, session.begin():
                session.add(record)
                await session.flush()
                view = record.to_view()
        log_debug(logger, "Persisted report request %s", view.id)
        return view

    async def get(self, request_id: str) -> RequestView:
        """Return the current view of *request_id*.

        Raises
        ------
        RequestNotFoundError
            If the request does not exist or is being deleted.
        StorageFailureError
            If the lookup fails.

        """
        with _storage_errors("get"):
            async with self._session_factory() as session:
                record = await session.get(ReportRequestRecord, request_id)
                if record is None or record.deleting_at is not None:
                    raise RequestNotFoundError(request_id)
                return record.to_view()

    async def list_requests(self) -> list[RequestView]:
        """Return every visible request, newest first."""
        stmt = (
            select(ReportRequestRecord)
            .where(ReportRequestRecord.deleting_at.is_(None))
            .order_by(
                ReportRequestRecord.created_at.desc(), ReportRequestRecord.id.desc()
            )
        )
        with _storage_errors("list_requests"):
            async with self._session_factory() as session:
                records = (await session.scalars(stmt)).all()
                return [record.to_view() for record in records]

    async def apply_outcome(
        self,
        request_id: str,
        kind: ArtifactKind,
        outcome: ArtifactOutcome,
    ) -> Reconciliation:
        """Apply *outcome* to the *kind* artifact of *request_id*.

        A pending artifact takes the outcome. A terminal artifact is never
        modified: repeating its stored outcome yields ``DUPLICATE`` and a
        different outcome yields ``CONFLICT``.

        The transition is a conditional ``UPDATE`` guarded on the artifact
        still being pending, issued as the transaction's first statement.
        Only one writer can match the pending row, whichever process or
        store instance it runs in; every other writer classifies against
        the committed terminal state.

        Parameters
        ----------
        request_id
            Request owning the artifact.
        kind
            Artifact to update.
        outcome
            Success descriptor or failure reason reported for the artifact.

        Returns
        -------
        Reconciliation
            The result and the committed view of the request.

        Raises
        ------
        RequestNotFoundError
            If the request does not exist or is being deleted.
        StorageFailureError
            If the transaction fails; nothing is written in that case.

        """
        now = utcnow()
        claim = (
            update(ArtifactRecord)
            .where(
                ArtifactRecord.request_id == request_id,
                ArtifactRecord.kind == kind,
                ArtifactRecord.status == ArtifactStatus.PENDING,
                ArtifactRecord.request_id.in_(
                    select(ReportRequestRecord.id).where(
                        ReportRequestRecord.id == request_id,
                        ReportRequestRecord.deleting_at.is_(None),
                    )
                ),
            )
            .values(**_terminal_columns(outcome), updated_at=now)
            .execution_options(synchronize_session=False)
        )
        async with self._locks.hold(request_id):
            with _storage_errors("apply_outcome"):
                async with self._session_factory() as session, session.begin():
                    claimed = await session.execute(claim)
                    record = await self._get_for_update(session, request_id)
                    if record is None or record.deleting_at is not None:
                        raise RequestNotFoundError(request_id)
                    if claimed.rowcount == 1:
                        result = ReconcileResult.APPLIED
                        record.updated_at = now
                        await session.flush()
                    else:
                        result = _classify(_artifact_of(record, kind), outcome)
                    view = record.to_view()
        return Reconciliation(result=result, request=view)

    async def begin_deletion(self, request_id: str) -> RequestView:
        """Mark *request_id* as deleting and plan its remote deletes.

        Artifacts holding a generator file move to ``PENDING`` remote
        deletion; the others are ``NOT_REQUIRED``. The request disappears
        from lookups once this commits.

        Raises
        ------
        RequestNotFoundError
            If the request does not exist or is already being deleted.
        StorageFailureError
            If the update fails.

        """
        async with self._locks.hold(request_id):
            with _storage_errors("begin_deletion"):
                async with self._session_factory() as session, session.begin():
                    record = await self._get_for_update(session, request_id)
                    if record is None or record.deleting_at is not None:
                        raise RequestNotFoundError(request_id)
                    now = utcnow()
                    record.deleting_at = now
                    for artifact in record.artifacts:
                        artifact.remote_deletion = (
                            RemoteDeletionState.PENDING
                            if artifact.file_id
                            else RemoteDeletionState.NOT_REQUIRED
                        )
                        artifact.updated_at = now
                    await session.flush()
                    return record.to_view()

    async def record_remote_deletion(
        self,
        request_id: str,
        kind: ArtifactKind,
        state: RemoteDeletionState,
    ) -> bool:
        """Record the final remote deletion *state* for one artifact.

        Parameters
        ----------
        request_id
            Request being deleted.
        kind
            Artifact whose generator copy was handled.
        state
            ``CONFIRMED`` or ``ABANDONED``.

        Returns
        -------
        bool
            ``True`` when this call also purged the request because no
            remote delete remains outstanding.

        """
        if not state.is_resolved:
            msg = f"remote deletion state must be terminal, got {state.value}"
            raise ValueError(msg)
        async with self._locks.hold(request_id):
            with _storage_errors("record_remote_deletion"):
                async with self._session_factory() as session, session.begin():
                    record = await self._get_for_update(session, request_id)
                    if record is None:
                        return False
                    artifact = _artifact_of(record, kind)
                    artifact.remote_deletion = state
                    artifact.updated_at = utcnow()
            return await self._purge_locked(request_id)

    async def purge_if_resolved(self, request_id: str) -> bool:
        """Delete a deleting request once none of its remote deletes is pending.

        Returns
        -------
        bool
            ``True`` when the rows were removed.

        """
        async with self._locks.hold(request_id):
            return await self._purge_locked(request_id)

    async def find_stalled_deletions(
        self, older_than: dt.datetime
    ) -> list[RequestView]:
        """Return deleting requests whose deletion began before *older_than*."""
        stmt = (
            select(ReportRequestRecord)
            .where(
                ReportRequestRecord.deleting_at.is_not(None),
                ReportRequestRecord.deleting_at < older_than,
            )
            .order_by(ReportRequestRecord.deleting_at)
        )
        with _storage_errors("find_stalled_deletions"):
            async with self._session_factory() as session:
                records = (await session.scalars(stmt)).all()
                return [record.to_view() for record in records]

    async def _purge_locked(self, request_id: str) -> bool:
        with _storage_errors("purge"):
            async with self._session_factory() as session, session.begin():
                record = await self._get_for_update(session, request_id)
                if record is None or record.deleting_at is None:
                    return False
                outstanding = await session.scalar(
                    select(func.count())
                    .select_from(ArtifactRecord)
                    .where(
                        ArtifactRecord.request_id == request_id,
                        ArtifactRecord.remote_deletion == RemoteDeletionState.PENDING,
                    )
                )
                if outstanding:
                    return False
                await session.delete(record)
        log_debug(logger, "Purged report request %s", request_id)
        return True

    @staticmethod
    async def _get_for_update(
        session: AsyncSession, request_id: str
    ) -> ReportRequestRecord | None:
        return await session.get(
            ReportRequestRecord, request_id, with_for_update=True
        )


def _artifact_of(record: ReportRequestRecord, kind: ArtifactKind) -> ArtifactRecord:
    for artifact in record.artifacts:
        if artifact.kind is kind:
            return artifact
    msg = f"request {record.id} has no {kind.value} artifact"
    raise LookupError(msg)


def _terminal_columns(outcome: ArtifactOutcome) -> dict[str, typ.Any]:
    if isinstance(outcome, SuccessOutcome):
        return {
            "status": ArtifactStatus.COMPLETED,
            "file_id": outcome.file_id,
            "file_location": outcome.file_location,
            "file_size": outcome.file_size,
        }
    return {"status": ArtifactStatus.FAILED, "failure_reason": outcome.reason}


def _classify(artifact: ArtifactRecord, outcome: ArtifactOutcome) -> ReconcileResult:
    if artifact.to_view().matches(outcome):
        return ReconcileResult.DUPLICATE
    return ReconcileResult.CONFLICT
