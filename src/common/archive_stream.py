"""Streaming gzip decompression over an async chunk source."""
from __future__ import annotations

import asyncio
import inspect
import logging
import zlib
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

import aiohttp

from constants import Constants
from errors import ArchiveRetrievalFailure

logger = logging.getLogger(__name__)

Releaser = Callable[[], Union[None, Awaitable[None]]]


class ArchiveStream:
    """Decompressed byte stream of a ``.tar.gz`` archive.

    The underlying source (HTTP response, subprocess pipe) is released exactly
    once: when iteration finishes, fails, or the stream is closed early.
    Use as ``async with stream: ...`` or call ``aclose()``.
    """

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        release: Optional[Releaser] = None,
        *,
        reference: str = "",
        version: Optional[str] = None,
    ):
        self._chunks = chunks
        self._release = release
        self._decompressor = zlib.decompressobj(16 + zlib.MAX_WBITS)
        self._closed = False
        self.reference = reference
        self.version = version

    @classmethod
    def from_response(cls, response: aiohttp.ClientResponse, **kwargs) -> "ArchiveStream":
        return cls(
            response.content.iter_chunked(Constants.ARCHIVE_CHUNK_SIZE),
            response.release,
            **kwargs,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def _failure(self, detail: str) -> ArchiveRetrievalFailure:
        return ArchiveRetrievalFailure(self.reference, self.version, detail)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        if self._closed:
            raise self._failure("stream already closed")
        try:
            async for chunk in self._chunks:
                data = self._decompressor.decompress(chunk)
                if data:
                    yield data
            tail = self._decompressor.flush()
            if tail:
                yield tail
            if not self._decompressor.eof:
                raise self._failure("truncated gzip stream")
        except zlib.error as exc:
            raise self._failure(f"malformed gzip stream: {exc}") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            raise self._failure(f"I/O error: {exc}") from exc
        finally:
            await self.aclose()

    async def read(self) -> bytes:
        """Read and decompress the whole archive."""
        parts = []
        async for data in self:
            parts.append(data)
        return b"".join(parts)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._release is not None:
            result = self._release()
            if inspect.isawaitable(result):
                await result

    async def __aenter__(self) -> "ArchiveStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
