"""Directive stream state machine.

step() is pure: it takes the current SessionState and one Marker and
returns the next state plus the effects the interpreter must apply.
No I/O, no ledger access.

State Diagram:

    IDLE ──[THOUGHTS-BEGIN]──> REASONING ──[THOUGHTS-END]──> IDLE
     │
     └──[DELIVERABLE-BEGIN]──> DELIVERABLE ──[DELIVERABLE-END]──> IDLE

    any open state ──[completion]──> COMPLETE
    any open state ──(transport failure)──> ERRORED

Part and conversation-id markers never change the mode.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable

from .markers import (
    CaseSummaryMarker,
    CompletionMarker,
    Content,
    ConversationIdMarker,
    DeliverableBegin,
    DeliverableEnd,
    Marker,
    PartMarker,
    ReasoningBegin,
    ReasoningEnd,
    SearchQueryItem,
    SearchSectionMarker,
)
from .models import SessionState, StreamMode

logger = logging.getLogger(__name__)


# ── Effects ──


@dataclass(frozen=True)
class Effect:
    """Base of all effects returned by step()."""


@dataclass(frozen=True)
class CaptureConversationId(Effect):
    conversation_id: str = ""


@dataclass(frozen=True)
class EnterPart(Effect):
    number: int = 0


@dataclass(frozen=True)
class EmitReasoning(Effect):
    part_number: int = 0
    text: str = ""


@dataclass(frozen=True)
class EmitSearchQuery(Effect):
    part_number: int = 0
    query: str = ""


@dataclass(frozen=True)
class ResolveDeliverable(Effect):
    part_number: int = 0
    text: str = ""


@dataclass(frozen=True)
class EmitCaseSummary(Effect):
    text: str = ""


@dataclass(frozen=True)
class Finish(Effect):
    pass


@dataclass(frozen=True)
class Step:
    state: SessionState
    effects: tuple[Effect, ...] = ()


# ── Handlers ──


def _body(state: SessionState, text: str) -> Step:
    """Route body text by mode; idle text is discarded."""
    if state.mode is StreamMode.DELIVERABLE:
        return Step(state, (ResolveDeliverable(state.active_part, text),))
    if state.mode is StreamMode.REASONING:
        return Step(state, (EmitReasoning(state.active_part, text),))
    logger.debug("Discarding idle payload: %.80s", text)
    return Step(state)


def _on_conversation_id(state: SessionState, marker: ConversationIdMarker) -> Step:
    if marker.conversation_id is None or state.conversation_id is not None:
        return Step(state)
    return Step(
        replace(state, conversation_id=marker.conversation_id),
        (CaptureConversationId(marker.conversation_id),),
    )


def _on_completion(state: SessionState, marker: CompletionMarker) -> Step:
    return Step(replace(state, mode=StreamMode.COMPLETE), (Finish(),))


def _on_reasoning_begin(state: SessionState, marker: ReasoningBegin) -> Step:
    return Step(replace(state, mode=StreamMode.REASONING))


def _on_reasoning_end(state: SessionState, marker: ReasoningEnd) -> Step:
    if state.mode is StreamMode.DELIVERABLE:
        return Step(state)
    return Step(replace(state, mode=StreamMode.IDLE))


def _on_deliverable_begin(state: SessionState, marker: DeliverableBegin) -> Step:
    return Step(replace(state, mode=StreamMode.DELIVERABLE))


def _on_deliverable_end(state: SessionState, marker: DeliverableEnd) -> Step:
    return Step(replace(state, mode=StreamMode.IDLE))


def _on_part(state: SessionState, marker: PartMarker) -> Step:
    return Step(
        replace(state, active_part=marker.number),
        (EnterPart(marker.number),),
    )


def _on_search_section(state: SessionState, marker: SearchSectionMarker) -> Step:
    return Step(state)


def _on_case_summary(state: SessionState, marker: CaseSummaryMarker) -> Step:
    if not marker.text:
        return Step(state)
    return Step(state, (EmitCaseSummary(marker.text),))


def _on_search_item(state: SessionState, marker: SearchQueryItem) -> Step:
    # Inside a body a hyphen line is prose, not a list item.
    if state.mode is not StreamMode.IDLE:
        return _body(state, marker.raw)
    if not marker.query or marker.query == "none":
        return Step(state)
    return Step(state, (EmitSearchQuery(state.active_part, marker.query),))


def _on_content(state: SessionState, marker: Content) -> Step:
    return _body(state, marker.text)


_HANDLERS: dict[type[Marker], Callable[[SessionState, Marker], Step]] = {
    ConversationIdMarker: _on_conversation_id,
    CompletionMarker: _on_completion,
    ReasoningBegin: _on_reasoning_begin,
    ReasoningEnd: _on_reasoning_end,
    DeliverableBegin: _on_deliverable_begin,
    DeliverableEnd: _on_deliverable_end,
    PartMarker: _on_part,
    SearchSectionMarker: _on_search_section,
    CaseSummaryMarker: _on_case_summary,
    SearchQueryItem: _on_search_item,
    Content: _on_content,
}


def step(state: SessionState, marker: Marker) -> Step:
    """Advance the state machine by one marker.

    Terminal states ignore all further markers. Raises TypeError for a
    marker type with no handler.
    """
    handler = _HANDLERS.get(type(marker))
    if handler is None:
        raise TypeError(f"No transition defined for marker {marker!r}")
    if not state.mode.is_open:
        return Step(state)
    return handler(state, marker)
