"""Byte streams returned by blob stores and generator content endpoints.

A :class:`ContentStream` wraps an async iterator of byte chunks together with
the callback that releases the underlying resource (an HTTP response, an S3
body or an open file). Consumers either iterate it or call :meth:`read`; the
stream closes itself once exhausted and can also be closed early.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

CloseCallback = typ.Callable[[], typ.Awaitable[None]]


async def _noop_close() -> None:
    return None


class ContentStream:
    """Async iterable of byte chunks with an explicit close hook."""

    def __init__(
        self,
        chunks: cabc.AsyncIterator[bytes],
        *,
        close: CloseCallback | None = None,
        content_length: int | None = None,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Wrap *chunks* and remember how to release the source."""
        self._chunks = chunks
        self._close = close or _noop_close
        self._closed = False
        self._buffer = b""
        self.content_length = content_length
        self.content_type = content_type

    @classmethod
    def from_bytes(
        cls,
        payload: bytes,
        *,
        content_type: str = "application/octet-stream",
    ) -> ContentStream:
        """Return a stream yielding *payload* as a single chunk."""

        async def _single() -> cabc.AsyncIterator[bytes]:
            yield payload

        return cls(_single(), content_length=len(payload), content_type=content_type)

    @property
    def closed(self) -> bool:
        """Return ``True`` once the source has been released."""
        return self._closed

    def __aiter__(self) -> ContentStream:
        """Return the stream itself as the iterator."""
        return self

    async def __anext__(self) -> bytes:
        """Yield the next chunk, closing the source when exhausted."""
        if self._buffer:
            data, self._buffer = self._buffer, b""
            return data
        return await self._pull()

    async def _pull(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await anext(self._chunks)
        except BaseException:
            await self.aclose()
            raise

    async def read(self, size: int = -1) -> bytes:
        """Return up to *size* bytes, or everything left when *size* is negative.

        An empty result means the stream is exhausted.
        """
        if size < 0:
            return b"".join([chunk async for chunk in self])
        while len(self._buffer) < size:
            try:
                self._buffer += await self._pull()
            except StopAsyncIteration:
                break
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    async def aclose(self) -> None:
        """Release the underlying source; safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        await self._close()

    async def close(self) -> None:
        """Alias of :meth:`aclose` awaited by Falcon after streaming."""
        await self.aclose()

    async def __aenter__(self) -> ContentStream:
        """Return the stream for use in ``async with`` blocks."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close the stream when leaving the context."""
        await self.aclose()
