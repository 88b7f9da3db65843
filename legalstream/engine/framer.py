"""Line framing for the `data:` stream.

Bytes arrive in arbitrary chunks. LineFramer turns them into complete
text lines; extract_payload() strips the `data:` prefix and drops
everything that is not a protocol line.
"""
from __future__ import annotations

import codecs
import logging

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"


class LineFramer:
    """Split a chunked UTF-8 byte stream into newline-terminated lines.

    A multi-byte character split across two chunks is decoded once the
    second chunk arrives. The unterminated tail is carried over until a
    newline completes it.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        """Decode a chunk and return the lines it completed."""
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return lines

    def finish(self) -> str:
        """Flush at end of stream and return the discarded tail.

        A message is only valid once newline-terminated, so the tail is
        never processed.
        """
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if tail.strip():
            logger.debug("Discarding unterminated line at end of stream: %.80r", tail)
        return tail


def extract_payload(line: str) -> str | None:
    """Return the trimmed payload of a `data:` line, or None.

    Blank keep-alives, lines without the prefix and empty payloads all
    yield None.
    """
    stripped = line.strip()
    if not stripped.startswith(DATA_PREFIX):
        return None
    payload = stripped[len(DATA_PREFIX):].strip()
    return payload or None
