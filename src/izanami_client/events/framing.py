"""Line framing for the event stream body.

Network reads arrive in arbitrary chunks. The framer buffers bytes and
only releases lines that were terminated by ``\\n``; a tail left without
a terminator when the stream ends is discarded.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx

from ..errors import MSG_ERROR_READING_EVENT_STREAM, StreamReadError


class LineFramer:
    """Incremental bytes-to-lines splitter (LF or CRLF terminated)."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes received after the last line terminator."""
        return bytes(self._buffer)

    def feed(self, chunk: bytes) -> list[str]:
        """Add a chunk and return every line it completed."""
        if not chunk:
            return []
        self._buffer.extend(chunk)

        lines: list[str] = []
        start = 0
        while True:
            end = self._buffer.find(b"\n", start)
            if end == -1:
                break
            raw = self._buffer[start:end]
            if raw.endswith(b"\r"):
                raw = raw[:-1]
            # Split on bytes before decoding so multi-byte characters
            # spanning two chunks are never cut.
            lines.append(raw.decode("utf-8", errors="replace"))
            start = end + 1

        if start:
            del self._buffer[:start]
        return lines


async def aiter_lines(source: AsyncIterator[bytes]) -> AsyncIterator[str]:
    """Yield complete lines from an async byte source.

    Ends quietly when the source is exhausted.

    Raises:
        StreamReadError: If reading from the source fails
    """
    framer = LineFramer()
    try:
        async for chunk in source:
            for line in framer.feed(chunk):
                yield line
    except (httpx.RequestError, httpx.StreamError, OSError) as e:
        raise StreamReadError(f"{MSG_ERROR_READING_EVENT_STREAM}: {e}") from e
