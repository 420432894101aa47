"""Explicit lifecycle for the orchestrator and the resources it uses.

:class:`OrchestratorRuntime` constructs the worker pool, the generator
clients and the blob store, hands them to a :class:`ReportOrchestrator`,
and releases them again in reverse order. There is no module-level state:
the API process, each Dramatiq actor invocation and every test build their
own runtime.

Usage
-----
>>> settings = OrchestratorSettings.from_env()
>>> async with OrchestratorRuntime(settings, session_factory) as runtime:
...     view = await runtime.orchestrator.get_request("Req-...")

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from reportflow.blobstore.config import BlobStoreConfig
from reportflow.blobstore.factory import create_blob_store
from reportflow.generators.client import GeneratorClient
from reportflow.generators.config import GeneratorClientConfig
from reportflow.logging import get_logger, log_info
from reportflow.orchestrator.config import OrchestratorConfig
from reportflow.orchestrator.content import (
    BlobStoreContentFetcher,
    GeneratorContentFetcher,
)
from reportflow.orchestrator.observability import OrchestratorEventLogger
from reportflow.orchestrator.service import (
    OrchestratorDependencies,
    ReportOrchestrator,
)
from reportflow.reports.models import ArtifactKind
from reportflow.reports.store import ReportRequestStore
from reportflow.workers.config import WorkerPoolConfig
from reportflow.workers.pool import BoundedWorkerPool

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import httpx
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from reportflow.blobstore.protocol import BlobStore
    from reportflow.messaging.protocols import NotificationBus, SubmitterNotifier
    from reportflow.orchestrator.content import ContentFetcher

logger = get_logger(__name__)


class RuntimeNotStartedError(RuntimeError):
    """Raised when the orchestrator is used before ``start()``."""

    def __init__(self) -> None:
        """Describe the lifecycle violation."""
        super().__init__("orchestrator runtime has not been started")


@dc.dataclass(frozen=True, slots=True)
class OrchestratorSettings:
    """All configuration needed to assemble an orchestrator.

    Attributes
    ----------
    orchestrator
        Deadlines and retry limits.
    pool
        Worker pool limits.
    generators
        Client settings per artifact kind.
    blob_store
        Blob backend settings used by the PDF content fetcher.

    """

    orchestrator: OrchestratorConfig = dc.field(default_factory=OrchestratorConfig)
    pool: WorkerPoolConfig = dc.field(default_factory=WorkerPoolConfig)
    generators: cabc.Mapping[ArtifactKind, GeneratorClientConfig] = dc.field(
        default_factory=lambda: {
            kind: GeneratorClientConfig.from_env(kind) for kind in ArtifactKind
        }
    )
    blob_store: BlobStoreConfig = dc.field(default_factory=BlobStoreConfig)

    @classmethod
    def from_env(cls) -> OrchestratorSettings:
        """Read every section from ``REPORTFLOW_*`` environment variables."""
        return cls(
            orchestrator=OrchestratorConfig.from_env(),
            pool=WorkerPoolConfig.from_env(),
            generators={
                kind: GeneratorClientConfig.from_env(kind) for kind in ArtifactKind
            },
            blob_store=BlobStoreConfig.from_env(),
        )


def default_content_fetchers(
    blob_store: BlobStore,
    generators: cabc.Mapping[ArtifactKind, GeneratorClient],
) -> dict[ArtifactKind, ContentFetcher]:
    """Serve PDFs from the blob store and spreadsheets from their generator."""
    return {
        ArtifactKind.PDF: BlobStoreContentFetcher(blob_store),
        ArtifactKind.SPREADSHEET: GeneratorContentFetcher(
            generators[ArtifactKind.SPREADSHEET]
        ),
    }


class OrchestratorRuntime:
    """Own the pool, generator clients and blob store of one orchestrator.

    Parameters
    ----------
    settings
        Assembled configuration.
    session_factory
        Async session factory for the report store.
    bus
        Optional notification bus for asynchronous submission.
    notifier
        Optional submitter notifier.
    http_client
        Optional shared ``httpx.AsyncClient``; when given the generator
        clients use it and the runtime does not close it.
    blob_store
        Optional blob store; when given the runtime neither starts nor
        shuts it down.

    """

    def __init__(  # noqa: PLR0913 - lifecycle owner for every collaborator
        self,
        settings: OrchestratorSettings,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        bus: NotificationBus | None = None,
        notifier: SubmitterNotifier | None = None,
        http_client: httpx.AsyncClient | None = None,
        blob_store: BlobStore | None = None,
    ) -> None:
        """Record collaborators; nothing is started yet."""
        self._settings = settings
        self._session_factory = session_factory
        self._bus = bus
        self._notifier = notifier
        self._http_client = http_client
        self._owns_blob_store = blob_store is None
        self._blob_store = blob_store
        self._pool: BoundedWorkerPool | None = None
        self._generators: dict[ArtifactKind, GeneratorClient] = {}
        self._orchestrator: ReportOrchestrator | None = None

    @property
    def orchestrator(self) -> ReportOrchestrator:
        """Return the running orchestrator.

        Raises
        ------
        RuntimeNotStartedError
            If :meth:`start` has not completed.

        """
        if self._orchestrator is None:
            raise RuntimeNotStartedError
        return self._orchestrator

    @property
    def started(self) -> bool:
        """Return ``True`` between :meth:`start` and :meth:`aclose`."""
        return self._orchestrator is not None

    @property
    def pool(self) -> BoundedWorkerPool:
        """Return the worker pool of the running orchestrator."""
        if self._pool is None:
            raise RuntimeNotStartedError
        return self._pool

    async def start(self) -> ReportOrchestrator:
        """Create and start every owned resource."""
        if self._orchestrator is not None:
            return self._orchestrator
        if self._blob_store is None:
            self._blob_store = create_blob_store(self._settings.blob_store)
        if self._owns_blob_store:
            await self._blob_store.startup()
        self._pool = BoundedWorkerPool(self._settings.pool, name="orchestrator")
        self._generators = {
            kind: GeneratorClient(
                kind,
                self._settings.generators[kind],
                http_client=self._http_client,
            )
            for kind in ArtifactKind
        }
        dependencies = OrchestratorDependencies(
            store=ReportRequestStore(self._session_factory),
            pool=self._pool,
            generators=self._generators,
            content_fetchers=default_content_fetchers(
                self._blob_store, self._generators
            ),
            bus=self._bus,
            notifier=self._notifier,
        )
        self._orchestrator = ReportOrchestrator(
            dependencies,
            config=self._settings.orchestrator,
            event_logger=OrchestratorEventLogger(),
        )
        log_info(logger, "Orchestrator runtime started")
        return self._orchestrator

    async def aclose(self) -> None:
        """Drain the pool, then close clients and the blob store."""
        if self._pool is not None:
            await self._pool.shutdown(wait=True)
            self._pool = None
        for client in self._generators.values():
            await client.aclose()
        self._generators = {}
        if self._blob_store is not None and self._owns_blob_store:
            await self._blob_store.shutdown()
            self._blob_store = None
        self._orchestrator = None
        log_info(logger, "Orchestrator runtime stopped")

    async def __aenter__(self) -> OrchestratorRuntime:
        """Start the runtime for ``async with`` use."""
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Release every owned resource."""
        await self.aclose()
