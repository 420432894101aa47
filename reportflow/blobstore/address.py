"""Blob addresses in ``<bucket>/<key>`` form.

Only the first ``/`` separates bucket from key, so keys may themselves
contain slashes.

>>> BlobAddress.parse("reports/2024/File-1")
BlobAddress(bucket='reports', key='2024/File-1')

"""

from __future__ import annotations

import dataclasses as dc

from reportflow.blobstore.errors import InvalidBlobAddressError


@dc.dataclass(frozen=True, slots=True)
class BlobAddress:
    """Bucket and key of one stored object."""

    bucket: str
    key: str

    @classmethod
    def parse(cls, location: str) -> BlobAddress:
        """Split *location* on its first ``/``.

        Raises
        ------
        InvalidBlobAddressError
            If the separator is missing or either side is empty.

        """
        bucket, sep, key = location.partition("/")
        if not sep or not bucket or not key:
            raise InvalidBlobAddressError(location)
        return cls(bucket=bucket, key=key)

    @property
    def location(self) -> str:
        """Return the ``<bucket>/<key>`` string form."""
        return f"{self.bucket}/{self.key}"

    def __str__(self) -> str:
        """Render as the location string."""
        return self.location
