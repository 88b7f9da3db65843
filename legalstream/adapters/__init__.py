"""Adapters package - Bridge between streaming sessions and consumers.

Event types, sinks that deliver them to application callbacks, and
the async event bus.
"""
from __future__ import annotations

__all__ = [
    "CallbackSink",
    "EventBus",
    "RecordingSink",
    "StreamEvent",
    "event_to_dict",
]

from legalstream.adapters.events import StreamEvent, event_to_dict
from legalstream.adapters.event_bus import EventBus
from legalstream.adapters.sink import CallbackSink, RecordingSink
