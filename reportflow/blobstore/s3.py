"""S3 implementation of the BlobStore protocol using aioboto3.

The client context is entered on :meth:`S3BlobStore.startup` and exited on
:meth:`S3BlobStore.shutdown`, so one connection pool serves every call in
between.
"""

from __future__ import annotations

import typing as typ

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from reportflow.blobstore.errors import BlobNotFoundError, BlobStoreError
from reportflow.common.streams import ContentStream
from reportflow.logging import get_logger, log_info, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from reportflow.blobstore.address import BlobAddress
    from reportflow.blobstore.config import BlobStoreConfig

logger = get_logger(__name__)

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "404", "NotFound"})
_CHUNK_SIZE = 64 * 1024


def _is_not_found(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code", "") in _NOT_FOUND_CODES


class S3BlobStore:
    """Store blobs in S3 or an S3-compatible service."""

    def __init__(
        self,
        config: BlobStoreConfig,
        *,
        session: aioboto3.Session | None = None,
    ) -> None:
        """Prepare the backend; no connection is made until ``startup``."""
        self._config = config
        self._session = session or aioboto3.Session()
        self._client_context: typ.Any = None
        self._client: typ.Any = None

    async def startup(self) -> None:
        """Open the S3 client and its connection pool."""
        if self._client is not None:
            return
        client_kwargs: dict[str, typ.Any] = {"region_name": self._config.region}
        if self._config.endpoint_url:
            client_kwargs["endpoint_url"] = self._config.endpoint_url
        if self._config.access_key and self._config.secret_key:
            client_kwargs["aws_access_key_id"] = self._config.access_key
            client_kwargs["aws_secret_access_key"] = self._config.secret_key
        self._client_context = self._session.client(
            "s3",
            config=Config(
                connect_timeout=self._config.timeout_s,
                read_timeout=self._config.timeout_s,
            ),
            **client_kwargs,
        )
        self._client = await self._client_context.__aenter__()
        log_info(logger, "S3 blob store started (region=%s)", self._config.region)

    async def shutdown(self) -> None:
        """Close the S3 client."""
        if self._client_context is None:
            return
        try:
            await self._client_context.__aexit__(None, None, None)
        except (BotoCoreError, ClientError, OSError) as exc:
            log_warning(logger, "Error closing S3 client: %s", exc)
        finally:
            self._client = None
            self._client_context = None

    async def put(self, address: BlobAddress, source: Path) -> int:
        """Upload *source* and return its size in bytes."""
        client = self._ensure_client()
        try:
            await client.upload_file(str(source), address.bucket, address.key)
            head = await client.head_object(Bucket=address.bucket, Key=address.key)
        except (BotoCoreError, ClientError) as exc:
            raise BlobStoreError.operation_failed("put", address, str(exc)) from exc
        return int(head.get("ContentLength", 0))

    async def open(self, address: BlobAddress) -> ContentStream:
        """Return a stream over the object body."""
        client = self._ensure_client()
        try:
            response = await client.get_object(Bucket=address.bucket, Key=address.key)
        except ClientError as exc:
            if _is_not_found(exc):
                raise BlobNotFoundError(address) from exc
            raise BlobStoreError.operation_failed("open", address, str(exc)) from exc
        except BotoCoreError as exc:
            raise BlobStoreError.operation_failed("open", address, str(exc)) from exc
        body = response["Body"]

        async def _chunks() -> cabc.AsyncIterator[bytes]:
            try:
                async for chunk in body.iter_chunks(_CHUNK_SIZE):
                    yield chunk
            except (BotoCoreError, ClientError) as exc:
                raise BlobStoreError.operation_failed(
                    "read", address, str(exc)
                ) from exc

        async def _close() -> None:
            body.close()

        return ContentStream(
            _chunks(),
            close=_close,
            content_length=response.get("ContentLength"),
            content_type=response.get("ContentType", "application/octet-stream"),
        )

    async def delete(self, address: BlobAddress) -> None:
        """Remove the object; S3 treats a missing key as success."""
        client = self._ensure_client()
        try:
            await client.delete_object(Bucket=address.bucket, Key=address.key)
        except ClientError as exc:
            if _is_not_found(exc):
                raise BlobNotFoundError(address) from exc
            raise BlobStoreError.operation_failed("delete", address, str(exc)) from exc
        except BotoCoreError as exc:
            raise BlobStoreError.operation_failed("delete", address, str(exc)) from exc

    def _ensure_client(self) -> typ.Any:  # noqa: ANN401
        if self._client is None:
            raise BlobStoreError.not_started("S3")
        return self._client
