"""Event sinks: where a session delivers its events.

A sink is any callable taking one StreamEvent. CallbackSink fans
events out to the typed hooks of a StreamCallbacks table.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from legalstream.adapters.events import (
    CaseSummary,
    Complete,
    ConversationId,
    DeliverableChunk,
    DeliverableStructured,
    Error,
    PartBegin,
    Reasoning,
    SearchQueries,
    Started,
    StreamEvent,
)
from legalstream.engine.config import StreamCallbacks

logger = logging.getLogger(__name__)

EventSink = Callable[[StreamEvent], None]


def _hook_args(event: StreamEvent) -> tuple[str, tuple[Any, ...]]:
    if isinstance(event, Started):
        return "on_start", ()
    if isinstance(event, ConversationId):
        return "on_conversation_id", (event.conversation_id,)
    if isinstance(event, PartBegin):
        return "on_part", (event.part_number,)
    if isinstance(event, Reasoning):
        return "on_reasoning", (event.part_number, event.text)
    if isinstance(event, SearchQueries):
        return "on_search_queries", (event.part_number, list(event.queries))
    if isinstance(event, DeliverableChunk):
        return "on_deliverable_chunk", (event.part_number, event.text)
    if isinstance(event, DeliverableStructured):
        return "on_deliverable_structured", (event.part_number, dict(event.record))
    if isinstance(event, CaseSummary):
        return "on_case_summary", (event.text,)
    if isinstance(event, Complete):
        return "on_complete", ()
    if isinstance(event, Error):
        return "on_error", (event.message,)
    raise TypeError(f"Unknown event type: {type(event).__name__}")


class CallbackSink:
    """Dispatch events to StreamCallbacks hooks, synchronously.

    A hook that raises is logged and skipped; it never stops the
    stream.
    """

    def __init__(self, callbacks: StreamCallbacks | None = None) -> None:
        self.callbacks = callbacks or StreamCallbacks()

    def __call__(self, event: StreamEvent) -> None:
        name, args = _hook_args(event)
        if self.callbacks.on_event is not None:
            self._invoke("on_event", self.callbacks.on_event, event)
        hook = getattr(self.callbacks, name)
        if hook is not None:
            self._invoke(name, hook, *args)

    def _invoke(self, name: str, hook: Callable[..., Any], *args: Any) -> None:
        try:
            hook(*args)
        except Exception:
            logger.exception("Stream callback %s raised", name)


class RecordingSink:
    """Keep every event in order. Handy for replay and inspection."""

    def __init__(self) -> None:
        self.events: list[StreamEvent] = []

    def __call__(self, event: StreamEvent) -> None:
        self.events.append(event)

    def of_type(self, cls: type[StreamEvent]) -> list[StreamEvent]:
        return [e for e in self.events if isinstance(e, cls)]

    def clear(self) -> None:
        self.events.clear()
