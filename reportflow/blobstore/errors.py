"""Blob store error types."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from reportflow.blobstore.address import BlobAddress


class BlobStoreError(RuntimeError):
    """Raised when a blob backend fails to complete an operation."""

    @classmethod
    def operation_failed(
        cls, operation: str, address: BlobAddress, detail: str
    ) -> BlobStoreError:
        """Return an error for a failed *operation* on *address*."""
        return cls(f"blob {operation} failed for {address}: {detail}")

    @classmethod
    def not_started(cls, backend: str) -> BlobStoreError:
        """Return an error for a backend used before ``startup()``."""
        return cls(f"{backend} blob store used before startup()")


class BlobNotFoundError(BlobStoreError):
    """Raised when the addressed object does not exist."""

    def __init__(self, address: BlobAddress) -> None:
        """Record the missing address."""
        self.address = address
        super().__init__(f"blob {address} not found")


class InvalidBlobAddressError(ValueError):
    """Raised when a location string is not ``<bucket>/<key>``."""

    def __init__(self, location: str) -> None:
        """Record the offending location string."""
        self.location = location
        super().__init__(f"blob location must be '<bucket>/<key>', got: {location!r}")
