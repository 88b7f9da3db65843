"""Byte readers consumed by StreamSession.

A reader hands out raw chunks until end of stream and must be
released exactly once when the session is done with it.
"""
from __future__ import annotations

import abc
import logging
from collections.abc import AsyncIterable, Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)


class ByteReader(abc.ABC):
    """Source of raw stream chunks."""

    @abc.abstractmethod
    async def read(self) -> bytes:
        """Return the next chunk, or b"" at end of stream.

        Raises on transport failure.
        """

    @abc.abstractmethod
    def release(self) -> None:
        """Give the underlying handle back. Called once per session."""


class IterableReader(ByteReader):
    """Serve chunks from a sync or async iterable of bytes."""

    def __init__(self, chunks: Iterable[bytes] | AsyncIterable[bytes]) -> None:
        if hasattr(chunks, "__aiter__"):
            self._aiter = chunks.__aiter__()
            self._iter = None
        else:
            self._aiter = None
            self._iter = iter(chunks)
        self.release_count = 0

    @property
    def released(self) -> bool:
        return self.release_count > 0

    async def read(self) -> bytes:
        if self.released:
            return b""
        if self._aiter is not None:
            try:
                return await self._aiter.__anext__()
            except StopAsyncIteration:
                return b""
        return next(self._iter, b"")

    def release(self) -> None:
        self.release_count += 1


def iter_file_chunks(path: str | Path, chunk_size: int = 4096) -> Iterator[bytes]:
    """Yield a captured stream body in fixed-size chunks."""
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                return
            yield chunk


@contextmanager
def reader_lease(reader: ByteReader) -> Iterator[ByteReader]:
    """Hold a reader for the duration of a read loop.

    The reader is released on every exit path: completion, end of
    stream, transport failure and cancellation.
    """
    try:
        yield reader
    finally:
        try:
            reader.release()
        except Exception:
            logger.warning("Failed to release stream reader", exc_info=True)
