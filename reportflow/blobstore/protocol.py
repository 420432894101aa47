"""BlobStore protocol implemented by the filesystem and S3 backends.

The protocol is ``runtime_checkable`` so runtimes can assert that an
injected backend fits before wiring it in.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path

    from reportflow.blobstore.address import BlobAddress
    from reportflow.common.streams import ContentStream


@typ.runtime_checkable
class BlobStore(typ.Protocol):
    """Object storage holding rendered files."""

    async def startup(self) -> None:
        """Acquire backend resources."""
        ...

    async def shutdown(self) -> None:
        """Release backend resources."""
        ...

    async def put(self, address: BlobAddress, source: Path) -> int:
        """Upload the file at *source* and return its size in bytes."""
        ...

    async def open(self, address: BlobAddress) -> ContentStream:
        """Return a stream over the object at *address*.

        Raises
        ------
        BlobNotFoundError
            If the object does not exist.
        BlobStoreError
            If the backend fails.

        """
        ...

    async def delete(self, address: BlobAddress) -> None:
        """Remove the object at *address*.

        Raises
        ------
        BlobNotFoundError
            If the object does not exist.

        """
        ...
