"""HTTP client for PDF and spreadsheet generator services.

Each :class:`GeneratorClient` talks to one generator kind. Transport
problems surface as :class:`GeneratorUnreachableError`; error statuses and
undecodable bodies surface as :class:`GeneratorResponseError`.

Example:
>>> config = GeneratorClientConfig(base_url="http://pdf-generator:9001")
>>> client = GeneratorClient(ArtifactKind.PDF, config)
>>> descriptor = await client.render(payload)
>>> await client.aclose()

"""

from __future__ import annotations

import typing as typ

import httpx
import msgspec

from reportflow.common.streams import ContentStream
from reportflow.generators.errors import (
    GeneratorResponseError,
    GeneratorUnreachableError,
)
from reportflow.generators.models import GeneratorDescriptor

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from reportflow.generators.config import GeneratorClientConfig
    from reportflow.generators.models import RenderRequest
    from reportflow.reports.models import ArtifactKind

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_NOT_FOUND = 404

_descriptor_decoder = msgspec.json.Decoder(GeneratorDescriptor)
_encoder = msgspec.json.Encoder()


class GeneratorClient:
    """Render, fetch and delete files held by one generator service.

    Parameters
    ----------
    kind
        Artifact kind the generator produces; also the URL path prefix.
    config
        Base URL and timeout for the service.
    http_client
        Optional ``httpx.AsyncClient`` for testing. When omitted the
        instance creates and owns its own client.

    """

    def __init__(
        self,
        kind: ArtifactKind,
        config: GeneratorClientConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client for *kind*."""
        self._kind = kind
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "User-Agent": config.user_agent,
                "Accept": "application/json",
            },
        )

    @property
    def kind(self) -> ArtifactKind:
        """Return the artifact kind served by this generator."""
        return self._kind

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def render(self, payload: RenderRequest) -> GeneratorDescriptor:
        """Ask the generator to render *payload* and describe the result.

        Raises
        ------
        GeneratorUnreachableError
            On timeouts and transport failures.
        GeneratorResponseError
            On error statuses or an undecodable descriptor.

        """
        response = await self._send(
            "POST",
            self._url(),
            content=_encoder.encode(payload),
            headers={"Content-Type": "application/json"},
        )
        self._check_status(response)
        return self._decode(response)

    async def delete(self, file_id: str) -> GeneratorDescriptor | None:
        """Ask the generator to release *file_id*.

        Returns
        -------
        GeneratorDescriptor | None
            The descriptor of the deleted file, or ``None`` when the
            generator no longer knows the file.

        """
        response = await self._send("DELETE", self._url(file_id))
        if response.status_code == _HTTP_NOT_FOUND:
            return None
        self._check_status(response)
        return self._decode(response)

    async def open_content(self, file_id: str) -> ContentStream:
        """Stream the bytes of *file_id* from the generator.

        The response stays open until the returned stream is exhausted or
        closed.
        """
        request = self._client.build_request("GET", self._url(file_id, "content"))
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            raise GeneratorUnreachableError.timeout(self._kind) from exc
        except httpx.RequestError as exc:
            raise GeneratorUnreachableError.network_error(self._kind, str(exc)) from exc
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            await response.aclose()
            raise GeneratorResponseError.http_error(self._kind, response.status_code)
        length = response.headers.get("Content-Length")
        return ContentStream(
            self._iter_body(response),
            close=response.aclose,
            content_length=int(length) if length and length.isdigit() else None,
            content_type=response.headers.get(
                "Content-Type", "application/octet-stream"
            ),
        )

    async def _iter_body(self, response: httpx.Response) -> cabc.AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.TimeoutException as exc:
            raise GeneratorUnreachableError.timeout(self._kind) from exc
        except httpx.RequestError as exc:
            raise GeneratorUnreachableError.network_error(self._kind, str(exc)) from exc

    def _url(self, *parts: str) -> str:
        return "/".join((self._base_url, self._kind.value, *parts))

    async def _send(
        self, method: str, url: str, **kwargs: typ.Any  # noqa: ANN401
    ) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise GeneratorUnreachableError.timeout(self._kind) from exc
        except httpx.RequestError as exc:
            raise GeneratorUnreachableError.network_error(self._kind, str(exc)) from exc

    def _check_status(self, response: httpx.Response) -> None:
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GeneratorResponseError.http_error(self._kind, response.status_code)

    def _decode(self, response: httpx.Response) -> GeneratorDescriptor:
        try:
            return _descriptor_decoder.decode(response.content)
        except msgspec.DecodeError as exc:
            raise GeneratorResponseError.malformed(
                self._kind, response.content
            ) from exc
