"""File lifecycle of one generator service.

A :class:`GeneratorService` renders a request to a scratch file, uploads it
to ``<bucket>/<fileId>`` in the blob store, records the file, and serves or
deletes it later by id. Render and upload failures are reported as a
descriptor with ``failed=True`` rather than raised, so both the HTTP route
and the render actors always have an answer for the orchestrator.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ
import uuid

from sqlalchemy.exc import SQLAlchemyError

from reportflow.blobstore.address import BlobAddress
from reportflow.blobstore.errors import BlobNotFoundError, BlobStoreError
from reportflow.generator_service.config import GeneratorServiceConfig
from reportflow.generator_service.errors import GeneratedFileNotFoundError, RenderError
from reportflow.generator_service.storage import GeneratedFile
from reportflow.generators.models import GeneratorDescriptor
from reportflow.logging import get_logger, log_debug, log_info, log_warning
from reportflow.orchestrator.content import content_type_for

if typ.TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from reportflow.blobstore.protocol import BlobStore
    from reportflow.common.streams import ContentStream
    from reportflow.generator_service.renderer import Renderer
    from reportflow.generators.models import RenderRequest
    from reportflow.reports.models import ArtifactKind

logger = get_logger(__name__)

FILE_ID_PREFIX = "File-"


def new_file_id() -> str:
    """Return a fresh ``File-<uuid4>`` identifier."""
    return f"{FILE_ID_PREFIX}{uuid.uuid4()}"


@dc.dataclass(frozen=True, slots=True)
class GeneratorServiceDependencies:
    """Collaborators of a generator service.

    Attributes
    ----------
    session_factory
        Async session factory for the generator's file records.
    blob_store
        Started blob store receiving uploads.
    renderer
        Document renderer for the service's kind.

    """

    session_factory: async_sessionmaker[AsyncSession]
    blob_store: BlobStore
    renderer: Renderer


class GeneratorService:
    """Create, serve and delete rendered files of one kind."""

    def __init__(
        self,
        kind: ArtifactKind,
        dependencies: GeneratorServiceDependencies,
        config: GeneratorServiceConfig | None = None,
    ) -> None:
        """Bind the service to *kind* and its collaborators."""
        self._kind = kind
        self._session_factory = dependencies.session_factory
        self._blob_store = dependencies.blob_store
        self._renderer = dependencies.renderer
        self._config = config or GeneratorServiceConfig(kind=kind)

    @property
    def kind(self) -> ArtifactKind:
        """Return the artifact kind rendered by this service."""
        return self._kind

    async def create_file(self, request: RenderRequest) -> GeneratorDescriptor:
        """Render, upload and record a file for *request*.

        Returns
        -------
        GeneratorDescriptor
            The stored file, or ``failed=True`` when rendering, uploading
            or recording did not succeed.

        """
        file_id = new_file_id()
        address = BlobAddress(self._config.bucket, file_id)
        scratch = self._config.scratch_dir / f"{file_id}.{self._renderer.suffix}"
        try:
            size = await self._render_and_upload(request, address, scratch)
        except (RenderError, BlobStoreError, OSError) as exc:
            log_warning(
                logger,
                "Rendering %s for %s failed: %s",
                self._kind,
                request.request_id,
                exc,
            )
            return GeneratorDescriptor(request_id=request.request_id, failed=True)
        finally:
            await asyncio.to_thread(scratch.unlink, missing_ok=True)
            log_debug(logger, "Cleared scratch file %s", scratch)

        record = GeneratedFile(
            id=file_id,
            kind=self._kind.value,
            request_id=request.request_id,
            submitter=request.submitter,
            description=request.description,
            file_location=address.location,
            file_size=size,
        )
        try:
            async with self._session_factory() as session:
                session.add(record)
                await session.commit()
        except SQLAlchemyError as exc:
            log_warning(
                logger,
                "Recording %s for %s failed, removing upload: %s",
                file_id,
                request.request_id,
                exc,
            )
            await self._discard_upload(address)
            return GeneratorDescriptor(request_id=request.request_id, failed=True)

        log_info(
            logger,
            "Generated %s %s for %s (%d bytes)",
            self._kind,
            file_id,
            request.request_id,
            size,
        )
        return record.to_descriptor()

    async def delete_file(self, file_id: str) -> GeneratorDescriptor:
        """Remove the stored object and then the record of *file_id*.

        A missing object is tolerated so a retried delete converges.

        Raises
        ------
        GeneratedFileNotFoundError
            If *file_id* is unknown.
        BlobStoreError
            If the blob backend fails; the record is kept for a retry.

        """
        async with self._session_factory() as session:
            record = await session.get(GeneratedFile, file_id)
            if record is None:
                raise GeneratedFileNotFoundError(file_id)
            descriptor = record.to_descriptor()
            address = BlobAddress.parse(record.file_location)
            try:
                await self._blob_store.delete(address)
            except BlobNotFoundError:
                log_warning(logger, "Blob %s already gone while deleting", address)
            await session.delete(record)
            await session.commit()
        log_info(logger, "Deleted %s %s", self._kind, file_id)
        return descriptor

    async def open_content(self, file_id: str) -> ContentStream:
        """Return a stream over the bytes of *file_id*.

        Raises
        ------
        GeneratedFileNotFoundError
            If the record or its object is missing.

        """
        async with self._session_factory() as session:
            record = await session.get(GeneratedFile, file_id)
            if record is None:
                raise GeneratedFileNotFoundError(file_id)
            location = record.file_location
        try:
            stream = await self._blob_store.open(BlobAddress.parse(location))
        except BlobNotFoundError as exc:
            raise GeneratedFileNotFoundError(file_id) from exc
        stream.content_type = content_type_for(self._kind)
        return stream

    async def _render_and_upload(
        self, request: RenderRequest, address: BlobAddress, scratch: Path
    ) -> int:
        await asyncio.to_thread(scratch.parent.mkdir, parents=True, exist_ok=True)
        await self._renderer.render(request, scratch)
        log_debug(logger, "Uploading %s to %s", scratch, address)
        return await self._blob_store.put(address, scratch)

    async def _discard_upload(self, address: BlobAddress) -> None:
        try:
            await self._blob_store.delete(address)
        except BlobStoreError as exc:
            log_warning(logger, "Could not remove orphaned blob %s: %s", address, exc)
