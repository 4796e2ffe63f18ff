"""Server-Sent Events decoding for streaming workflow runs."""

from __future__ import annotations

import codecs
import logging
import re
from collections.abc import AsyncIterable, AsyncIterator

import httpx

from sketricgen._http import Transport
from sketricgen.types import StreamEvent

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")


class _PendingEvent:
    """Fields collected for the event currently being read."""

    __slots__ = ("event_type", "data", "id")

    def __init__(self) -> None:
        self.event_type: str | None = None
        self.data: str | None = None
        self.id: str | None = None

    def feed(self, line: str) -> StreamEvent | None:
        """Apply one complete line; return an event when a blank line ends one."""
        if line.startswith("event:"):
            self.event_type = line[6:].strip()
        elif line.startswith("data:"):
            # A later data line replaces an earlier one.
            self.data = line[5:].strip()
        elif line.startswith("id:"):
            self.id = line[3:].strip()
        elif line == "":
            return self.take()
        # Comments (":...") and unknown fields are ignored.
        return None

    def take(self) -> StreamEvent | None:
        """Return the pending event if it has a type and data, and start a new one."""
        event = None
        if self.event_type is not None and self.data is not None:
            event = StreamEvent(event_type=self.event_type, data=self.data, id=self.id)
        self.event_type = self.data = self.id = None
        return event


async def parse_sse(
    chunks: AsyncIterable[bytes], encoding: str = "utf-8"
) -> AsyncIterator[StreamEvent]:
    """Decode an SSE byte stream into events, in arrival order.

    Chunks may split lines (or multi-byte characters) anywhere; an incomplete
    trailing line stays buffered until the next chunk. When the stream ends,
    a final unterminated line is applied and a complete pending event is
    emitted without waiting for the blank line.

    The chunk iterator is closed when decoding stops for any reason,
    including the consumer closing this generator early.

    Args:
        chunks: Raw body chunks.
        encoding: Text encoding declared by the stream.

    Yields:
        StreamEvent for every record that has both an event type and data.
    """
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    pending = _PendingEvent()
    buffer = ""
    try:
        async for chunk in chunks:
            buffer += decoder.decode(chunk)
            *lines, buffer = _LINE_BREAK.split(buffer)
            for line in lines:
                event = pending.feed(line)
                if event is not None:
                    yield event

        buffer += decoder.decode(b"", final=True)
        if buffer:
            event = pending.feed(buffer)
            if event is not None:
                yield event
        event = pending.take()
        if event is not None:
            yield event
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()


def iter_sse(transport: Transport, response: httpx.Response) -> AsyncIterator[StreamEvent]:
    """Decode the events of an open streaming response."""
    logger.debug("Decoding event stream from %s", response.url)
    return parse_sse(transport.iter_bytes(response), encoding=response.encoding or "utf-8")
