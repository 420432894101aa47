"""Unit tests for the generator render actors."""

from __future__ import annotations

import typing as typ

import dramatiq
import msgspec
import pytest
import pytest_asyncio
from dramatiq.brokers.stub import StubBroker

from reportflow.blobstore.filesystem import FilesystemBlobStore
from reportflow.generator_service import (
    GeneratorConfigurationError,
    GeneratorService,
    GeneratorServiceConfig,
    GeneratorServiceDependencies,
    MockRenderer,
)
from reportflow.generator_service.actors import handle_render, render_pdf_job
from reportflow.messaging.publisher import MessagePublisher
from reportflow.messaging.queues import CALLBACK_ACTOR, CALLBACK_QUEUE
from reportflow.reports.models import ArtifactKind

if typ.TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

PAYLOAD = {
    "requestId": "Req-async",
    "submitter": "ops@example.com",
    "description": "Weekly",
    "headers": ["region"],
    "data": [["north"]],
}


@pytest_asyncio.fixture
async def service(
    session_factory: async_sessionmaker[AsyncSession], tmp_path: Path
) -> GeneratorService:
    """Return a spreadsheet generator service."""
    blob_store = FilesystemBlobStore(tmp_path / "blobs")
    await blob_store.startup()
    return GeneratorService(
        ArtifactKind.SPREADSHEET,
        GeneratorServiceDependencies(
            session_factory=session_factory,
            blob_store=blob_store,
            renderer=MockRenderer(ArtifactKind.SPREADSHEET),
        ),
        GeneratorServiceConfig(
            kind=ArtifactKind.SPREADSHEET, scratch_dir=tmp_path / "tmp"
        ),
    )


class TestHandleRender:
    """Rendering a bus message and calling back."""

    @pytest.mark.asyncio
    async def test_publishes_callback(self, service: GeneratorService) -> None:
        """The callback lands on the orchestrator's queue in camelCase."""
        broker = StubBroker()

        callback = await handle_render(service, MessagePublisher(broker), PAYLOAD)

        assert not callback.failed
        assert callback.kind is ArtifactKind.SPREADSHEET
        queue = broker.queues[CALLBACK_QUEUE]
        message = dramatiq.Message.decode(queue.get_nowait())
        assert message.actor_name == CALLBACK_ACTOR
        assert message.args[0]["requestId"] == "Req-async"
        assert message.args[0]["kind"] == "spreadsheet"
        assert message.args[0]["fileId"] == callback.file_id
        assert queue.empty(), "exactly one callback expected"

    @pytest.mark.asyncio
    async def test_rejects_invalid_payload(self, service: GeneratorService) -> None:
        """Malformed submissions fail before anything is rendered."""
        with pytest.raises(msgspec.ValidationError):
            await handle_render(
                service, MessagePublisher(StubBroker()), {"requestId": 1}
            )


def test_render_job_requires_database(monkeypatch: pytest.MonkeyPatch) -> None:
    """The actor refuses to run without the generator database."""
    monkeypatch.delenv("REPORTFLOW_GENERATOR_DATABASE_URL", raising=False)

    with pytest.raises(GeneratorConfigurationError, match="DATABASE_URL"):
        render_pdf_job(PAYLOAD)
