"""Blob store settings read from the environment."""

from __future__ import annotations

import dataclasses as dc
import enum
from pathlib import Path

from reportflow.common.env import parse_positive_float, read_optional_str, read_str


class BlobBackend(enum.StrEnum):
    """Supported blob store backends."""

    FILESYSTEM = "filesystem"
    S3 = "s3"


@dc.dataclass(frozen=True, slots=True)
class BlobStoreConfig:
    """Backend selection and connection settings.

    Attributes
    ----------
    backend
        Which implementation :func:`create_blob_store` builds.
    root
        Directory for the filesystem backend.
    region
        AWS region for the S3 backend.
    endpoint_url
        Optional S3-compatible endpoint (MinIO, LocalStack).
    access_key, secret_key
        Optional static credentials; the default AWS chain is used when
        either is missing.
    timeout_s
        Connect and read timeout for S3 calls.

    """

    backend: BlobBackend = BlobBackend.FILESYSTEM
    root: Path = Path("var/blobs")
    region: str = "us-east-1"
    endpoint_url: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    timeout_s: float = 30.0

    @classmethod
    def from_env(cls) -> BlobStoreConfig:
        """Create configuration from ``REPORTFLOW_BLOB_*`` variables.

        Raises
        ------
        ValueError
            If the backend name is unknown or the timeout is invalid.

        """
        raw_backend = read_str("REPORTFLOW_BLOB_BACKEND", BlobBackend.FILESYSTEM.value)
        try:
            backend = BlobBackend(raw_backend.lower())
        except ValueError as exc:
            msg = (
                "REPORTFLOW_BLOB_BACKEND must be one of filesystem, s3; "
                f"got: {raw_backend!r}"
            )
            raise ValueError(msg) from exc
        return cls(
            backend=backend,
            root=Path(read_str("REPORTFLOW_BLOB_ROOT", "var/blobs")),
            region=read_str("REPORTFLOW_BLOB_S3_REGION", "us-east-1"),
            endpoint_url=read_optional_str("REPORTFLOW_BLOB_S3_ENDPOINT"),
            access_key=read_optional_str("REPORTFLOW_BLOB_S3_ACCESS_KEY"),
            secret_key=read_optional_str("REPORTFLOW_BLOB_S3_SECRET_KEY"),
            timeout_s=parse_positive_float("REPORTFLOW_BLOB_S3_TIMEOUT_S", 30.0),
        )
