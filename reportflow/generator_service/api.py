"""Falcon ASGI surface of a generator service.

Routes for a generator of kind ``{kind}``:

``POST /{kind}``
    Render a :class:`~reportflow.generators.models.RenderRequest`; 200 with
    a descriptor, ``failed=true`` when rendering did not succeed.
``DELETE /{kind}/{file_id}``
    Release a file; 404 when unknown.
``GET /{kind}/{file_id}/content``
    Stream the stored bytes.

"""

from __future__ import annotations

import typing as typ

import falcon
import falcon.asgi
import msgspec

from reportflow.api.errors import handle_invalid_input
from reportflow.api.health.resources import HealthResource, ReadyResource
from reportflow.blobstore.errors import BlobStoreError
from reportflow.generator_service.errors import GeneratedFileNotFoundError
from reportflow.generators.models import RenderRequest
from reportflow.logging import get_logger, log_exception
from reportflow.reports.errors import InvalidInputError

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from reportflow.generator_service.runtime import GeneratorServiceRuntime
    from reportflow.generator_service.service import GeneratorService
    from reportflow.generators.models import GeneratorDescriptor
    from reportflow.reports.models import ArtifactKind

__all__ = ["create_generator_app"]

logger = get_logger(__name__)

type ServiceProvider = typ.Callable[[], GeneratorService]

_encoder = msgspec.json.Encoder()
_request_decoder = msgspec.json.Decoder(RenderRequest)


def _write_descriptor(resp: Response, descriptor: GeneratorDescriptor) -> None:
    resp.data = _encoder.encode(descriptor)
    resp.content_type = falcon.MEDIA_JSON
    resp.status = falcon.HTTP_200


class RenderResource:
    """``POST /{kind}``."""

    def __init__(self, provider: ServiceProvider) -> None:
        """Resolve the service through *provider* on each request."""
        self._provider = provider

    async def on_post(self, req: Request, resp: Response) -> None:
        """Render the posted request.

        Raises
        ------
        InvalidInputError
            If the body is not a render request.

        """
        raw = await req.stream.read()
        try:
            payload = _request_decoder.decode(raw)
        except msgspec.DecodeError as exc:
            raise InvalidInputError(str(exc)) from exc
        descriptor = await self._provider().create_file(payload)
        _write_descriptor(resp, descriptor)


class FileResource:
    """``DELETE /{kind}/{file_id}``."""

    def __init__(self, provider: ServiceProvider) -> None:
        """Resolve the service through *provider* on each request."""
        self._provider = provider

    async def on_delete(self, _req: Request, resp: Response, *, file_id: str) -> None:
        """Delete *file_id* and answer with its last descriptor."""
        descriptor = await self._provider().delete_file(file_id)
        _write_descriptor(resp, descriptor)


class FileContentResource:
    """``GET /{kind}/{file_id}/content``."""

    def __init__(self, provider: ServiceProvider) -> None:
        """Resolve the service through *provider* on each request."""
        self._provider = provider

    async def on_get(self, _req: Request, resp: Response, *, file_id: str) -> None:
        """Stream the bytes of *file_id*."""
        stream = await self._provider().open_content(file_id)
        resp.content_type = stream.content_type
        if stream.content_length is not None:
            resp.content_length = stream.content_length
        resp.stream = stream
        resp.status = falcon.HTTP_200


async def handle_file_not_found(
    _req: Request,
    resp: Response,
    ex: GeneratedFileNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``GeneratedFileNotFoundError`` to an HTTP 404 JSON response."""
    resp.status = falcon.HTTP_404
    resp.media = {"title": "File not found", "description": str(ex)}


async def handle_blob_store_error(
    _req: Request,
    resp: Response,
    ex: BlobStoreError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``BlobStoreError`` to an HTTP 503 JSON response."""
    log_exception(logger, "Blob store failure", ex)
    resp.status = falcon.HTTP_503
    resp.media = {"title": "Blob store unavailable", "description": str(ex)}


def _service_route(
    service: GeneratorService | None,
    runtime: GeneratorServiceRuntime | None,
) -> tuple[ArtifactKind, ServiceProvider] | None:
    """Return the routed kind and a callable resolving the service."""
    if service is not None:
        return service.kind, lambda: service
    if runtime is not None:
        return runtime.kind, lambda: runtime.service
    return None


def create_generator_app(
    service: GeneratorService | None = None,
    *,
    runtime: GeneratorServiceRuntime | None = None,
) -> falcon.asgi.App:
    """Create the Falcon app for one generator.

    Parameters
    ----------
    service
        Already constructed service, typically used by tests.
    runtime
        Runtime started and stopped with the ASGI lifespan. Ignored when
        *service* is given.

    Returns
    -------
    falcon.asgi.App
        Health-only when neither argument is given.

    """
    if service is not None:
        runtime = None
    middleware: list[object] = []
    if runtime is not None:
        from reportflow.api.middleware import RuntimeLifespan

        middleware.append(RuntimeLifespan(runtime))

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    if runtime is not None:
        started = runtime
        app.add_route("/ready", ReadyResource(lambda: started.started))
    else:
        app.add_route("/ready", ReadyResource())

    route = _service_route(service, runtime)
    if route is not None:
        kind, provider = route
        app.add_route(f"/{kind.value}", RenderResource(provider))
        app.add_route(f"/{kind.value}/{{file_id}}", FileResource(provider))
        app.add_route(
            f"/{kind.value}/{{file_id}}/content", FileContentResource(provider)
        )

    app.add_error_handler(GeneratedFileNotFoundError, handle_file_not_found)
    app.add_error_handler(BlobStoreError, handle_blob_store_error)
    app.add_error_handler(InvalidInputError, handle_invalid_input)
    return app
