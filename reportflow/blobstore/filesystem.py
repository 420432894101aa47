"""Filesystem implementation of the BlobStore protocol.

Objects live at ``{root}/{bucket}/{key}``. Blocking file operations run in
worker threads so the event loop is never stalled.
"""

from __future__ import annotations

import asyncio
import shutil
import typing as typ
from pathlib import Path

from reportflow.blobstore.errors import BlobNotFoundError, BlobStoreError
from reportflow.common.streams import ContentStream

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from reportflow.blobstore.address import BlobAddress

_CHUNK_SIZE = 64 * 1024


async def _iter_file(path: Path) -> cabc.AsyncIterator[bytes]:
    handle = await asyncio.to_thread(path.open, "rb")
    try:
        while chunk := await asyncio.to_thread(handle.read, _CHUNK_SIZE):
            yield chunk
    finally:
        await asyncio.to_thread(handle.close)


class FilesystemBlobStore:
    """Store blobs below a local directory.

    Parameters
    ----------
    root
        Directory holding one subdirectory per bucket. Created on
        :meth:`startup` when missing.

    """

    def __init__(self, root: Path) -> None:
        """Initialise the store below *root*."""
        self._root = root

    @property
    def root(self) -> Path:
        """Return the directory holding the buckets."""
        return self._root

    async def startup(self) -> None:
        """Create the root directory when it does not exist yet."""
        await asyncio.to_thread(self._root.mkdir, parents=True, exist_ok=True)

    async def shutdown(self) -> None:
        """Nothing to release for local files."""

    async def put(self, address: BlobAddress, source: Path) -> int:
        """Copy *source* into the store and return the stored size."""
        target = self._path_for(address)
        try:
            await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copyfile, source, target)
            stat = await asyncio.to_thread(target.stat)
        except OSError as exc:
            raise BlobStoreError.operation_failed("put", address, str(exc)) from exc
        return stat.st_size

    async def open(self, address: BlobAddress) -> ContentStream:
        """Return a chunked stream over the stored file."""
        path = self._path_for(address)
        if not await asyncio.to_thread(path.is_file):
            raise BlobNotFoundError(address)
        size = (await asyncio.to_thread(path.stat)).st_size
        chunks = _iter_file(path)
        return ContentStream(chunks, close=chunks.aclose, content_length=size)

    async def delete(self, address: BlobAddress) -> None:
        """Remove the stored file."""
        path = self._path_for(address)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError as exc:
            raise BlobNotFoundError(address) from exc
        except OSError as exc:
            raise BlobStoreError.operation_failed("delete", address, str(exc)) from exc

    def _path_for(self, address: BlobAddress) -> Path:
        root = self._root.resolve()
        path = (root / address.bucket / address.key).resolve()
        if not path.is_relative_to(root):
            raise BlobStoreError.operation_failed(
                "resolve", address, "key escapes the store root"
            )
        return path
