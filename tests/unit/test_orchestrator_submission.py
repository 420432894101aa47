"""Unit tests for synchronous and asynchronous report submission."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
import pytest_asyncio

from reportflow.messaging.errors import NotificationBusError
from reportflow.orchestrator.config import OrchestratorConfig
from reportflow.orchestrator.service import PUBLISH_FAILED_REASON, join_timeout_reason
from reportflow.reports.errors import InvalidInputError
from reportflow.reports.models import (
    ArtifactKind,
    ArtifactStatus,
    ReportSubmission,
    RequestStatus,
)
from reportflow.workers.config import WorkerPoolConfig
from tests.helpers.generator_stubs import RenderMode
from tests.helpers.orchestration import OrchestrationHarness, build_harness

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

SUBMISSION = ReportSubmission(
    submitter="ops@example.com",
    description="Weekly sales",
    headers=("region", "total"),
    data=(("north", "12"), ("south", "7")),
)


@pytest_asyncio.fixture
async def harness(
    session_factory: async_sessionmaker[AsyncSession], tmp_path: Path
) -> cabc.AsyncIterator[OrchestrationHarness]:
    """Yield an orchestrator wired to stub generators."""
    built = await build_harness(session_factory, tmp_path / "blobs")
    yield built
    await built.aclose()


async def _wait_until(predicate: typ.Callable[[], bool]) -> None:
    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(poll(), timeout=2.0)


class TestSubmitSync:
    """Blocking submission through the worker pool."""

    @pytest.mark.asyncio
    async def test_both_artifacts_complete(self, harness: OrchestrationHarness) -> None:
        """Successful generators complete both artifacts."""
        view = await harness.orchestrator.submit_sync(SUBMISSION)

        assert view.status is RequestStatus.COMPLETED
        pdf = view.artifact(ArtifactKind.PDF)
        sheet = view.artifact(ArtifactKind.SPREADSHEET)
        assert pdf.file_id == "File-pdf-1"
        assert pdf.file_location == "reportflow-pdf/File-pdf-1"
        assert sheet.file_id == "File-spreadsheet-1"
        for stub in harness.stubs.values():
            assert stub.renders[0]["requestId"] == view.id
            assert stub.renders[0]["data"] == [["north", "12"], ["south", "7"]]

    @pytest.mark.asyncio
    async def test_generator_failure_is_recorded(
        self, harness: OrchestrationHarness
    ) -> None:
        """A failing generator fails only its own artifact."""
        harness.stubs[ArtifactKind.SPREADSHEET].mode = RenderMode.SERVER_ERROR

        view = await harness.orchestrator.submit_sync(SUBMISSION)

        assert view.status is RequestStatus.FAILED
        sheet = view.artifact(ArtifactKind.SPREADSHEET)
        assert sheet.status is ArtifactStatus.FAILED
        assert sheet.failure_reason is not None
        assert "HTTP 500" in sheet.failure_reason
        assert view.artifact(ArtifactKind.PDF).status is ArtifactStatus.COMPLETED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "mode", [RenderMode.UNREACHABLE, RenderMode.MALFORMED, RenderMode.FAILED]
    )
    async def test_every_generator_fault_fails_artifact(
        self, harness: OrchestrationHarness, mode: RenderMode
    ) -> None:
        """No generator fault leaves an artifact pending."""
        harness.stubs[ArtifactKind.PDF].mode = mode

        view = await harness.orchestrator.submit_sync(SUBMISSION)

        assert view.artifact(ArtifactKind.PDF).status is ArtifactStatus.FAILED
        assert view.status is RequestStatus.FAILED

    @pytest.mark.asyncio
    async def test_invalid_submission_persists_nothing(
        self, harness: OrchestrationHarness
    ) -> None:
        """Blank submitters are rejected before anything is stored."""
        with pytest.raises(InvalidInputError, match="submitter"):
            await harness.orchestrator.submit_sync(
                ReportSubmission(submitter=" ", description="x")
            )

        assert await harness.orchestrator.list_requests() == []

    @pytest.mark.asyncio
    async def test_notifies_each_artifact(self, harness: OrchestrationHarness) -> None:
        """The submitter hears about each artifact once."""
        view = await harness.orchestrator.submit_sync(SUBMISSION)

        notified = sorted(
            (request_id, kind) for request_id, kind, _ in harness.notifier.calls
        )
        assert notified == [
            (view.id, ArtifactKind.PDF),
            (view.id, ArtifactKind.SPREADSHEET),
        ]


class TestDeleteDuringSubmission:
    """A delete racing a sync submission does not fail the submitter."""

    @pytest.mark.asyncio
    async def test_returns_last_committed_view(
        self, harness: OrchestrationHarness
    ) -> None:
        """The caller gets the request as last stored, flagged deleting."""
        gate = asyncio.Event()
        pdf_stub = harness.stubs[ArtifactKind.PDF]
        pdf_stub.gate = gate
        submitted = asyncio.create_task(harness.orchestrator.submit_sync(SUBMISSION))
        await _wait_until(lambda: len(pdf_stub.renders) == 1)
        request_id = pdf_stub.renders[0]["requestId"]
        await _wait_until(lambda: len(harness.notifier.calls) == 1)

        await harness.orchestrator.delete(request_id)
        gate.set()
        view = await submitted

        assert view.id == request_id
        assert view.deleting is True
        sheet = view.artifact(ArtifactKind.SPREADSHEET)
        assert sheet.status is ArtifactStatus.COMPLETED
        await harness.pool.shutdown(wait=True)
        assert pdf_stub.deletes == ["File-pdf-1"]


class TestJoinTimeout:
    """The sync path never waits beyond its deadline."""

    @pytest.mark.asyncio
    async def test_slow_generator_fails_at_deadline(
        self, session_factory: async_sessionmaker[AsyncSession], tmp_path: Path
    ) -> None:
        """A stalled generator is reconciled as failed; late answers conflict."""
        config = OrchestratorConfig(
            join_timeout_s=0.05, delete_max_attempts=1, delete_backoff_s=0.01
        )
        harness = await build_harness(session_factory, tmp_path, config=config)
        gate = asyncio.Event()
        harness.stubs[ArtifactKind.PDF].gate = gate
        try:
            view = await harness.orchestrator.submit_sync(SUBMISSION)

            pdf = view.artifact(ArtifactKind.PDF)
            assert pdf.status is ArtifactStatus.FAILED
            assert pdf.failure_reason == join_timeout_reason(0.05)
            sheet = view.artifact(ArtifactKind.SPREADSHEET)
            assert sheet.status is ArtifactStatus.COMPLETED

            gate.set()
            await harness.pool.shutdown(wait=True)

            after = await harness.orchestrator.get_request(view.id)
            assert after.artifact(ArtifactKind.PDF) == pdf
            pdf_notifications = [
                call for call in harness.notifier.calls if call[1] is ArtifactKind.PDF
            ]
            assert len(pdf_notifications) == 1
        finally:
            await harness.aclose()

    def test_reason_mentions_deadline(self) -> None:
        """The failure reason names the timeout."""
        assert join_timeout_reason(30.0) == "generator did not respond within 30s"


class TestCallerRuns:
    """Backpressure when the pool is saturated."""

    @pytest.mark.asyncio
    async def test_saturated_pool_runs_dispatch_on_caller(
        self, session_factory: async_sessionmaker[AsyncSession], tmp_path: Path
    ) -> None:
        """Submissions beyond the pool's capacity still complete."""
        harness = await build_harness(
            session_factory,
            tmp_path,
            pool_config=WorkerPoolConfig(core_workers=1, max_workers=1, queue_size=1),
        )
        gate = asyncio.Event()
        pdf_stub = harness.stubs[ArtifactKind.PDF]
        pdf_stub.gate = gate
        try:
            first = asyncio.create_task(harness.orchestrator.submit_sync(SUBMISSION))
            await _wait_until(lambda: len(pdf_stub.renders) == 1)
            second = asyncio.create_task(harness.orchestrator.submit_sync(SUBMISSION))
            await _wait_until(lambda: len(pdf_stub.renders) == 2)

            assert harness.pool.caller_runs >= 1

            gate.set()
            views = await asyncio.gather(first, second)
            assert all(view.status is RequestStatus.COMPLETED for view in views)
        finally:
            await harness.aclose()

    @pytest.mark.asyncio
    async def test_deadline_holds_when_dispatches_run_on_caller(
        self, session_factory: async_sessionmaker[AsyncSession], tmp_path: Path
    ) -> None:
        """Renders running on the caller are still cut off at the deadline."""
        harness = await build_harness(
            session_factory,
            tmp_path,
            config=OrchestratorConfig(join_timeout_s=0.2, delete_backoff_s=0.01),
            pool_config=WorkerPoolConfig(core_workers=1, max_workers=1, queue_size=1),
        )
        gate = asyncio.Event()
        for stub in harness.stubs.values():
            stub.gate = gate
        release = asyncio.Event()
        try:
            await harness.pool.submit(release.wait)
            await harness.pool.submit(release.wait)

            view = await asyncio.wait_for(
                harness.orchestrator.submit_sync(SUBMISSION), timeout=5.0
            )

            assert harness.pool.caller_runs == 2
            for artifact in view.artifacts:
                assert artifact.status is ArtifactStatus.FAILED
                assert artifact.failure_reason == join_timeout_reason(0.2)
        finally:
            release.set()
            await harness.aclose()


class TestSubmitAsync:
    """Non-blocking submission through the notification bus."""

    @pytest.mark.asyncio
    async def test_publishes_and_returns_pending(
        self, harness: OrchestrationHarness
    ) -> None:
        """The request is persisted pending and published once."""
        view = await harness.orchestrator.submit_async(SUBMISSION)

        assert view.status is RequestStatus.PENDING
        assert [payload.request_id for payload in harness.bus.published] == [view.id]
        assert harness.bus.published[0].headers == ("region", "total")
        assert all(not stub.renders for stub in harness.stubs.values())

    @pytest.mark.asyncio
    async def test_publish_failure_fails_both_artifacts(
        self, harness: OrchestrationHarness
    ) -> None:
        """A rejected publish does not leave the request pending."""
        harness.bus.error = NotificationBusError.publish_failed("queue", "down")

        view = await harness.orchestrator.submit_async(SUBMISSION)

        assert view.status is RequestStatus.FAILED
        for artifact in view.artifacts:
            assert artifact.failure_reason is not None
            assert artifact.failure_reason.startswith(PUBLISH_FAILED_REASON)

    @pytest.mark.asyncio
    async def test_requires_a_bus(
        self, session_factory: async_sessionmaker[AsyncSession], tmp_path: Path
    ) -> None:
        """Without a bus nothing is persisted."""
        harness = await build_harness(session_factory, tmp_path, with_bus=False)
        try:
            with pytest.raises(NotificationBusError, match="no notification bus"):
                await harness.orchestrator.submit_async(SUBMISSION)
            assert await harness.orchestrator.list_requests() == []
        finally:
            await harness.aclose()
