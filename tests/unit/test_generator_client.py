"""Unit tests for the generator HTTP client."""

from __future__ import annotations

import typing as typ

import httpx
import pytest
import pytest_asyncio

from reportflow.generators import (
    GENERATOR_FAILED_REASON,
    GeneratorClient,
    GeneratorClientConfig,
    GeneratorResponseError,
    GeneratorUnreachableError,
    RenderRequest,
)
from reportflow.reports.models import ArtifactKind, FailureOutcome, SuccessOutcome
from tests.helpers.generator_stubs import GeneratorStub, RenderMode

if typ.TYPE_CHECKING:
    import collections.abc as cabc

PAYLOAD = RenderRequest(
    request_id="Req-1",
    submitter="ops@example.com",
    description="Weekly",
    headers=("name", "total"),
    data=(("north", "4"),),
)
BASE_URL = "http://pdf.generator.test"


@pytest.fixture
def stub() -> GeneratorStub:
    """Return a PDF generator stub."""
    return GeneratorStub(ArtifactKind.PDF)


@pytest_asyncio.fixture
async def client(stub: GeneratorStub) -> cabc.AsyncIterator[GeneratorClient]:
    """Yield a client routed to *stub*."""
    http_client = httpx.AsyncClient(transport=stub.transport())
    generator = GeneratorClient(
        ArtifactKind.PDF,
        GeneratorClientConfig(base_url=f"{BASE_URL}/"),
        http_client=http_client,
    )
    yield generator
    await generator.aclose()
    await http_client.aclose()


def _client_for(
    handler: typ.Callable[[httpx.Request], httpx.Response],
) -> GeneratorClient:
    return GeneratorClient(
        ArtifactKind.PDF,
        GeneratorClientConfig(base_url=BASE_URL),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestRender:
    """Render RPCs."""

    @pytest.mark.asyncio
    async def test_posts_camel_case_payload(
        self, client: GeneratorClient, stub: GeneratorStub
    ) -> None:
        """The payload uses the camelCase wire names."""
        descriptor = await client.render(PAYLOAD)

        assert stub.renders == [
            {
                "requestId": "Req-1",
                "submitter": "ops@example.com",
                "description": "Weekly",
                "headers": ["name", "total"],
                "data": [["north", "4"]],
            }
        ]
        assert descriptor.file_id == "File-pdf-1"
        assert descriptor.to_outcome() == SuccessOutcome(
            file_id="File-pdf-1",
            file_location="reportflow-pdf/File-pdf-1",
            file_size=len(stub.content),
        )

    @pytest.mark.asyncio
    async def test_failed_descriptor_becomes_failure(
        self, client: GeneratorClient, stub: GeneratorStub
    ) -> None:
        """A descriptor flagged as failed maps to a failure outcome."""
        stub.mode = RenderMode.FAILED

        descriptor = await client.render(PAYLOAD)

        assert descriptor.failed
        assert descriptor.to_outcome() == FailureOutcome(
            reason=GENERATOR_FAILED_REASON
        )

    @pytest.mark.asyncio
    async def test_server_error_raises_response_error(
        self, client: GeneratorClient, stub: GeneratorStub
    ) -> None:
        """Error statuses carry the status code."""
        stub.mode = RenderMode.SERVER_ERROR

        with pytest.raises(GeneratorResponseError) as exc_info:
            await client.render(PAYLOAD)

        assert exc_info.value.status_code == 500
        assert exc_info.value.kind is ArtifactKind.PDF

    @pytest.mark.asyncio
    async def test_malformed_body_raises_response_error(
        self, client: GeneratorClient, stub: GeneratorStub
    ) -> None:
        """Undecodable bodies are reported with a preview."""
        stub.mode = RenderMode.MALFORMED

        with pytest.raises(GeneratorResponseError, match="malformed response"):
            await client.render(PAYLOAD)

    @pytest.mark.asyncio
    async def test_connect_error_raises_unreachable(
        self, client: GeneratorClient, stub: GeneratorStub
    ) -> None:
        """Transport failures surface as unreachable."""
        stub.mode = RenderMode.UNREACHABLE

        with pytest.raises(GeneratorUnreachableError, match="network error"):
            await client.render(PAYLOAD)

    @pytest.mark.asyncio
    async def test_timeout_raises_unreachable(self) -> None:
        """Timeouts surface as unreachable."""

        def handler(request: httpx.Request) -> httpx.Response:
            msg = "read timed out"
            raise httpx.ReadTimeout(msg, request=request)

        client = _client_for(handler)

        with pytest.raises(GeneratorUnreachableError, match="timed out"):
            await client.render(PAYLOAD)


class TestDelete:
    """Delete RPCs."""

    @pytest.mark.asyncio
    async def test_delete_returns_descriptor(
        self, client: GeneratorClient, stub: GeneratorStub
    ) -> None:
        """A successful delete echoes the file descriptor."""
        descriptor = await client.delete("File-pdf-7")

        assert descriptor is not None
        assert descriptor.file_id == "File-pdf-7"
        assert stub.deletes == ["File-pdf-7"]

    @pytest.mark.asyncio
    async def test_delete_unknown_file_returns_none(
        self, client: GeneratorClient, stub: GeneratorStub
    ) -> None:
        """404 means the generator no longer holds the file."""
        stub.delete_statuses = [404]

        assert await client.delete("File-pdf-7") is None

    @pytest.mark.asyncio
    async def test_delete_server_error_raises(
        self, client: GeneratorClient, stub: GeneratorStub
    ) -> None:
        """Other error statuses raise GeneratorResponseError."""
        stub.delete_statuses = [503]

        with pytest.raises(GeneratorResponseError) as exc_info:
            await client.delete("File-pdf-7")
        assert exc_info.value.status_code == 503


class TestOpenContent:
    """Content streaming."""

    @pytest.mark.asyncio
    async def test_streams_generator_bytes(
        self, client: GeneratorClient, stub: GeneratorStub
    ) -> None:
        """The stream yields the body and closes after reading."""
        stream = await client.open_content("File-pdf-1")

        assert await stream.read() == stub.content
        assert stream.closed
        assert stream.content_type == "application/octet-stream"
        assert stub.content_requests == ["File-pdf-1"]

    @pytest.mark.asyncio
    async def test_missing_content_raises(self) -> None:
        """Error statuses are raised before any bytes are streamed."""
        client = _client_for(lambda _request: httpx.Response(404))

        with pytest.raises(GeneratorResponseError) as exc_info:
            await client.open_content("File-pdf-1")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_unreachable_content_raises(self) -> None:
        """Connection failures while opening raise unreachable."""

        def handler(request: httpx.Request) -> httpx.Response:
            msg = "connection refused"
            raise httpx.ConnectError(msg, request=request)

        client = _client_for(handler)

        with pytest.raises(GeneratorUnreachableError):
            await client.open_content("File-pdf-1")


class TestClientConfig:
    """Environment driven client configuration."""

    def test_defaults_per_kind(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Each kind has its own default port."""
        monkeypatch.delenv("REPORTFLOW_PDF_GENERATOR_URL", raising=False)
        monkeypatch.delenv("REPORTFLOW_SPREADSHEET_GENERATOR_URL", raising=False)
        monkeypatch.delenv("REPORTFLOW_GENERATOR_TIMEOUT_S", raising=False)

        pdf = GeneratorClientConfig.from_env(ArtifactKind.PDF)
        sheet = GeneratorClientConfig.from_env(ArtifactKind.SPREADSHEET)

        assert pdf.base_url == "http://localhost:9001"
        assert sheet.base_url == "http://localhost:9002"
        assert pdf.timeout_s == 30.0

    def test_reads_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """URL and timeout come from the environment."""
        monkeypatch.setenv("REPORTFLOW_PDF_GENERATOR_URL", "http://pdf:8000")
        monkeypatch.setenv("REPORTFLOW_GENERATOR_TIMEOUT_S", "2.5")

        config = GeneratorClientConfig.from_env(ArtifactKind.PDF)

        assert config.base_url == "http://pdf:8000"
        assert config.timeout_s == 2.5

    def test_rejects_non_positive_timeout(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A zero timeout is refused."""
        monkeypatch.setenv("REPORTFLOW_GENERATOR_TIMEOUT_S", "0")

        with pytest.raises(ValueError, match="REPORTFLOW_GENERATOR_TIMEOUT_S"):
            GeneratorClientConfig.from_env(ArtifactKind.PDF)
