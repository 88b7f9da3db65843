"""Async event bus bridging session sinks to async consumers.

Sessions deliver events synchronously. The EventBus queues them so a
separate consumer task (the CLI renderer, a websocket relay) can
process them at its own pace without reordering.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from legalstream.adapters.events import StreamEvent

logger = logging.getLogger(__name__)


class EventBus:
    """Async queue bridging session events to consumers.

    Sessions emit without awaiting, so the queue is unbounded by default
    and a long chunk never loses events. A positive ``maxsize`` caps it
    and drops (with an error log) once full.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue(
            maxsize=maxsize
        )
        self._closed = False
        self.dropped = 0

    def _put(self, event: StreamEvent) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.error(
                "EventBus queue full, dropping: %s (queue size: %d)",
                event.event_type,
                self._queue.qsize(),
            )

    def sink(self):
        """Return a synchronous sink for StreamSession / the client."""
        return self._put

    async def consume(self) -> AsyncIterator[StreamEvent]:
        """Yield events as they arrive.

        Stops once close() has been called and the queue is drained.
        """
        while True:
            if self._closed and self._queue.empty():
                return
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=0.5)
            except asyncio.TimeoutError:
                continue
            yield event

    def close(self) -> None:
        """Stop accepting events; consumers finish what is queued."""
        self._closed = True

    def reset(self) -> None:
        """Reset the bus for a new session.

        Drains any leftover events and re-opens the bus.
        """
        while not self._queue.empty():
            self._queue.get_nowait()
        self._closed = False
        self.dropped = 0
