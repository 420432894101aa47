"""Build the configured BlobStore backend."""

from __future__ import annotations

import typing as typ

from reportflow.blobstore.config import BlobBackend, BlobStoreConfig
from reportflow.blobstore.filesystem import FilesystemBlobStore

if typ.TYPE_CHECKING:
    from reportflow.blobstore.protocol import BlobStore


def create_blob_store(config: BlobStoreConfig | None = None) -> BlobStore:
    """Return an unstarted blob store for *config*.

    Parameters
    ----------
    config
        Backend settings; read from the environment when omitted.

    """
    resolved = config or BlobStoreConfig.from_env()
    if resolved.backend is BlobBackend.S3:
        from reportflow.blobstore.s3 import S3BlobStore

        return S3BlobStore(resolved)
    return FilesystemBlobStore(resolved.root)
