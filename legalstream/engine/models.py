"""Core data models for the streaming client.

Enums, the per-step session state and the structured deliverable
record. Single source of truth to avoid circular imports.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum

# Part number whose deliverable is parsed as a SwotRecord.
DEFAULT_STRUCTURED_PART = 5

# Active part number before any part marker has been seen.
NO_PART = 0


class StreamMode(str, Enum):
    """Classifier states. See state_machine.py for transition rules."""
    IDLE = "idle"
    REASONING = "reasoning"
    DELIVERABLE = "deliverable"
    COMPLETE = "complete"
    ERRORED = "errored"

    @property
    def is_open(self) -> bool:
        return self not in (StreamMode.COMPLETE, StreamMode.ERRORED)


class SessionPhase(str, Enum):
    """Session lifecycle phases. See lifecycle.py for transition rules."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    CLOSED = "closed"


@dataclass(frozen=True)
class SessionState:
    """Classifier state threaded through state_machine.step().

    Never mutated; each step returns a replacement.
    """
    mode: StreamMode = StreamMode.IDLE
    active_part: int = NO_PART
    conversation_id: str | None = None


@dataclass(frozen=True)
class SwotRecord:
    """The four-field record delivered by the structured part."""
    strength: str
    weakness: str
    opportunity: str
    threat: str

    FIELDS = ("strength", "weakness", "opportunity", "threat")

    def to_dict(self) -> dict[str, str]:
        return asdict(self)
