"""Runtime and Granian entrypoint of a generator service.

:class:`GeneratorServiceRuntime` owns the blob store and builds the
:class:`GeneratorService`. :func:`create_app` assembles it from the
environment for ``reportflow.generator_service.runtime:create_app``.

Configuration is driven by environment variables:

- ``REPORTFLOW_GENERATOR_KIND``: ``pdf`` or ``spreadsheet`` (default
  ``pdf``)
- ``REPORTFLOW_GENERATOR_DATABASE_URL``: Database for file records
  (optional; enables the generator routes when set)
- ``REPORTFLOW_GENERATOR_HOST``: Bind address (default ``0.0.0.0``)
- ``REPORTFLOW_GENERATOR_PORT``: Listen port (default ``9001``)
- ``REPORTFLOW_LOG_LEVEL``: Log level (default ``INFO``)

Blob storage uses the same ``REPORTFLOW_BLOB_*`` variables as the
orchestrator.
"""

from __future__ import annotations

import typing as typ

from reportflow.blobstore.config import BlobStoreConfig
from reportflow.blobstore.factory import create_blob_store
from reportflow.generator_service.config import GeneratorServiceConfig
from reportflow.generator_service.renderer import MockRenderer
from reportflow.generator_service.service import (
    GeneratorService,
    GeneratorServiceDependencies,
)
from reportflow.logging import get_logger, log_info
from reportflow.orchestrator.runtime import RuntimeNotStartedError

if typ.TYPE_CHECKING:
    import falcon.asgi
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from reportflow.blobstore.protocol import BlobStore
    from reportflow.generator_service.renderer import Renderer
    from reportflow.reports.models import ArtifactKind

__all__ = ["GeneratorServiceRuntime", "create_app", "main"]

logger = get_logger(__name__)


class GeneratorServiceRuntime:
    """Own the blob store of one generator service.

    Parameters
    ----------
    config
        Generator settings.
    session_factory
        Async session factory for the file records.
    blob_store
        Optional started blob store; when given the runtime neither starts
        nor shuts it down.
    renderer
        Optional renderer; defaults to :class:`MockRenderer`.
    blob_config
        Backend settings used when the runtime builds its own blob store.

    """

    def __init__(
        self,
        config: GeneratorServiceConfig,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        blob_store: BlobStore | None = None,
        renderer: Renderer | None = None,
        blob_config: BlobStoreConfig | None = None,
    ) -> None:
        """Record collaborators; nothing is started yet."""
        self._config = config
        self._session_factory = session_factory
        self._owns_blob_store = blob_store is None
        self._blob_store = blob_store
        self._blob_config = blob_config
        self._renderer = renderer or MockRenderer(config.kind)
        self._service: GeneratorService | None = None

    @property
    def kind(self) -> ArtifactKind:
        """Return the kind this runtime serves."""
        return self._config.kind

    @property
    def started(self) -> bool:
        """Return ``True`` between :meth:`start` and :meth:`aclose`."""
        return self._service is not None

    @property
    def service(self) -> GeneratorService:
        """Return the running service.

        Raises
        ------
        RuntimeNotStartedError
            If :meth:`start` has not completed.

        """
        if self._service is None:
            raise RuntimeNotStartedError
        return self._service

    async def start(self) -> GeneratorService:
        """Start the blob store and build the service."""
        if self._service is not None:
            return self._service
        if self._blob_store is None:
            self._blob_store = create_blob_store(
                self._blob_config or BlobStoreConfig.from_env()
            )
        if self._owns_blob_store:
            await self._blob_store.startup()
        self._service = GeneratorService(
            self._config.kind,
            GeneratorServiceDependencies(
                session_factory=self._session_factory,
                blob_store=self._blob_store,
                renderer=self._renderer,
            ),
            self._config,
        )
        log_info(logger, "Generator runtime for %s started", self._config.kind)
        return self._service

    async def aclose(self) -> None:
        """Shut down the blob store when owned."""
        if self._blob_store is not None and self._owns_blob_store:
            await self._blob_store.shutdown()
            self._blob_store = None
        self._service = None
        log_info(logger, "Generator runtime for %s stopped", self._config.kind)

    async def __aenter__(self) -> GeneratorServiceRuntime:
        """Start the runtime for ``async with`` use."""
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Release every owned resource."""
        await self.aclose()


def create_app() -> falcon.asgi.App:
    """Create the generator's Falcon ASGI application from the environment.

    Returns
    -------
    falcon.asgi.App
        Full generator app when ``REPORTFLOW_GENERATOR_DATABASE_URL`` is
        set, health-only otherwise.

    """
    from reportflow.generator_service.api import create_generator_app

    config = GeneratorServiceConfig.from_env()
    if config.database_url is None:
        return create_generator_app()

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    engine = create_async_engine(config.database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    return create_generator_app(
        runtime=GeneratorServiceRuntime(config, session_factory)
    )


def main() -> None:
    """Serve a generator; the kind comes from ``REPORTFLOW_GENERATOR_KIND``."""
    from reportflow.runtime import serve

    serve(
        "reportflow.generator_service.runtime:create_app",
        host_variable="REPORTFLOW_GENERATOR_HOST",
        port_variable="REPORTFLOW_GENERATOR_PORT",
        default_port=9001,
    )


if __name__ == "__main__":
    main()
