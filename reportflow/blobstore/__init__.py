"""Object storage for rendered report files.

Public API
----------
BlobAddress
    ``<bucket>/<key>`` location of a stored object.
BlobStore
    Protocol implemented by :class:`FilesystemBlobStore` and
    ``reportflow.blobstore.s3.S3BlobStore``.
create_blob_store
    Build the backend selected by ``REPORTFLOW_BLOB_BACKEND``.

"""

from reportflow.blobstore.address import BlobAddress
from reportflow.blobstore.config import BlobBackend, BlobStoreConfig
from reportflow.blobstore.errors import (
    BlobNotFoundError,
    BlobStoreError,
    InvalidBlobAddressError,
)
from reportflow.blobstore.factory import create_blob_store
from reportflow.blobstore.filesystem import FilesystemBlobStore
from reportflow.blobstore.protocol import BlobStore

__all__ = [
    "BlobAddress",
    "BlobBackend",
    "BlobNotFoundError",
    "BlobStore",
    "BlobStoreConfig",
    "BlobStoreError",
    "FilesystemBlobStore",
    "InvalidBlobAddressError",
    "create_blob_store",
]
