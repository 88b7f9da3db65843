"""Event types emitted by a streaming session.

Each event is a typed dataclass handed to the session's sink in
stream order. event_to_dict() flattens one for JSON output.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class StreamEvent:
    """Base event from a streaming session."""
    event_type: str = ""
    session_id: str | None = None


@dataclass
class Started(StreamEvent):
    event_type: str = "started"


@dataclass
class ConversationId(StreamEvent):
    event_type: str = "conversation_id"
    conversation_id: str = ""


@dataclass
class PartBegin(StreamEvent):
    event_type: str = "part_begin"
    part_number: int = 0


@dataclass
class Reasoning(StreamEvent):
    event_type: str = "reasoning"
    part_number: int = 0
    text: str = ""


@dataclass
class SearchQueries(StreamEvent):
    event_type: str = "search_queries"
    part_number: int = 0
    queries: list = field(default_factory=list)


@dataclass
class DeliverableChunk(StreamEvent):
    """One deliverable increment (not the accumulated text)."""
    event_type: str = "deliverable_chunk"
    part_number: int = 0
    text: str = ""


@dataclass
class DeliverableStructured(StreamEvent):
    """A structured record replacing the part's deliverable."""
    event_type: str = "deliverable_structured"
    part_number: int = 0
    record: dict = field(default_factory=dict)


@dataclass
class CaseSummary(StreamEvent):
    """Summarized case facts announced by the backend."""
    event_type: str = "case_summary"
    text: str = ""


@dataclass
class Complete(StreamEvent):
    event_type: str = "complete"


@dataclass
class Error(StreamEvent):
    event_type: str = "error"
    message: str = ""


def event_to_dict(event: StreamEvent) -> dict[str, Any]:
    """Flatten an event to a JSON-ready dict keyed by ``event``.

    Unset (None) fields are left out.
    """
    data = {k: v for k, v in asdict(event).items() if v is not None}
    data["event"] = data.pop("event_type")
    return data
