"""Session lifecycle state machine.

Defines valid transitions and enforces them. Invalid transitions
raise SessionStateError rather than silently proceeding.

State Diagram:

    NOT_STARTED ──> RUNNING ──> CLOSED
         │                        ^
         └────────────────────────┘   (close() before run())

    CLOSED is terminal; a closed session is never restarted.
"""
from __future__ import annotations

from .errors import SessionStateError
from .models import SessionPhase

VALID_TRANSITIONS: dict[SessionPhase, set[SessionPhase]] = {
    SessionPhase.NOT_STARTED: {
        SessionPhase.RUNNING,
        SessionPhase.CLOSED,
    },
    SessionPhase.RUNNING: {
        SessionPhase.CLOSED,
    },
    SessionPhase.CLOSED: set(),
}


def validate_transition(current: SessionPhase, target: SessionPhase) -> None:
    """Validate a phase transition. Raises SessionStateError if invalid."""
    allowed = VALID_TRANSITIONS.get(current, set())
    if target not in allowed:
        allowed_str = ", ".join(s.value for s in allowed) or "none (terminal)"
        raise SessionStateError(current.value, target.value, allowed_str)
