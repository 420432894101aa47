"""Content fetchers resolving a completed artifact to its bytes.

Each artifact kind is served by one :class:`ContentFetcher`. PDFs are read
straight from the blob store using the stored ``<bucket>/<key>`` location;
spreadsheets are proxied from their generator's content endpoint. Both
fetchers raise :class:`ContentUnavailableError` when their source fails.
"""

from __future__ import annotations

import typing as typ

from reportflow.blobstore.address import BlobAddress
from reportflow.blobstore.errors import BlobStoreError, InvalidBlobAddressError
from reportflow.generators.errors import GeneratorError
from reportflow.orchestrator.errors import ContentUnavailableError

if typ.TYPE_CHECKING:
    from reportflow.blobstore.protocol import BlobStore
    from reportflow.common.streams import ContentStream
    from reportflow.generators.client import GeneratorClient
    from reportflow.reports.models import ArtifactKind, ArtifactView

_CONTENT_TYPES = {
    "pdf": "application/pdf",
    "spreadsheet": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def content_type_for(kind: ArtifactKind) -> str:
    """Return the media type served for *kind*."""
    return _CONTENT_TYPES.get(kind.value, "application/octet-stream")


@typ.runtime_checkable
class ContentFetcher(typ.Protocol):
    """Open the stored bytes of a completed artifact."""

    async def fetch(self, request_id: str, artifact: ArtifactView) -> ContentStream:
        """Return a stream over *artifact*'s content.

        Raises
        ------
        ContentUnavailableError
            If the content source cannot deliver the bytes.

        """
        ...


class BlobStoreContentFetcher:
    """Read artifact bytes from the blob store by ``file_location``."""

    def __init__(self, blob_store: BlobStore) -> None:
        """Bind the fetcher to *blob_store*."""
        self._blob_store = blob_store

    async def fetch(self, request_id: str, artifact: ArtifactView) -> ContentStream:
        """Split the location on its first ``/`` and open the object."""
        try:
            address = BlobAddress.parse(artifact.file_location or "")
            stream = await self._blob_store.open(address)
        except (InvalidBlobAddressError, BlobStoreError) as exc:
            raise ContentUnavailableError(request_id, artifact.kind, str(exc)) from exc
        stream.content_type = content_type_for(artifact.kind)
        return stream


class GeneratorContentFetcher:
    """Proxy artifact bytes from the generator that produced them."""

    def __init__(self, client: GeneratorClient) -> None:
        """Bind the fetcher to the generator *client*."""
        self._client = client

    async def fetch(self, request_id: str, artifact: ArtifactView) -> ContentStream:
        """Stream ``GET /{kind}/{fileId}/content`` from the generator."""
        if not artifact.file_id:
            raise ContentUnavailableError(request_id, artifact.kind, "no file id")
        try:
            stream = await self._client.open_content(artifact.file_id)
        except GeneratorError as exc:
            raise ContentUnavailableError(request_id, artifact.kind, str(exc)) from exc
        stream.content_type = content_type_for(artifact.kind)
        return stream
