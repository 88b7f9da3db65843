"""Payload interpreters driven by a StreamSession.

An interpreter consumes one payload at a time and emits events. It
holds no network state, so it can be exercised directly in tests or
fed from a capture file.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from legalstream.adapters.events import (
    CaseSummary,
    Complete,
    ConversationId,
    DeliverableChunk,
    PartBegin,
    Reasoning,
    SearchQueries,
    StreamEvent,
)

from .ledger import PartLedger
from .markers import MarkerTokenizer
from .models import DEFAULT_STRUCTURED_PART, SessionState, StreamMode
from .resolver import DeliverableResolver
from .state_machine import (
    CaptureConversationId,
    Effect,
    EmitCaseSummary,
    EmitReasoning,
    EmitSearchQuery,
    EnterPart,
    Finish,
    ResolveDeliverable,
    step,
)

logger = logging.getLogger(__name__)

Emit = Callable[[StreamEvent], None]


class DirectiveInterpreter:
    """Interpret the marker grammar of a directive analysis stream."""

    def __init__(
        self,
        emit: Emit,
        *,
        tokenizer: MarkerTokenizer | None = None,
        structured_part: int = DEFAULT_STRUCTURED_PART,
    ) -> None:
        self._emit = emit
        self.tokenizer = tokenizer or MarkerTokenizer()
        self.resolver = DeliverableResolver(structured_part)
        self.ledger = PartLedger()
        self.state = SessionState()

    @property
    def conversation_id(self) -> str | None:
        return self.state.conversation_id

    @property
    def finished(self) -> bool:
        """True once a terminal state (complete or errored) is reached."""
        return not self.state.mode.is_open

    def feed(self, payload: str) -> bool:
        """Process one payload. Returns False once the stream is terminal."""
        if self.finished:
            return False
        marker = self.tokenizer.tokenize(payload)
        result = step(self.state, marker)
        self.state = result.state
        for effect in result.effects:
            self._apply(effect)
        return not self.finished

    def mark_complete(self) -> None:
        self.state = replace(self.state, mode=StreamMode.COMPLETE)

    def mark_errored(self) -> None:
        self.state = replace(self.state, mode=StreamMode.ERRORED)

    def _apply(self, effect: Effect) -> None:
        if isinstance(effect, CaptureConversationId):
            logger.info("Conversation ID received: %s", effect.conversation_id)
            self._emit(ConversationId(conversation_id=effect.conversation_id))
        elif isinstance(effect, EnterPart):
            self.ledger.ensure_part(effect.number)
            self._emit(PartBegin(part_number=effect.number))
        elif isinstance(effect, EmitReasoning):
            self.ledger.append_reasoning(effect.part_number, effect.text)
            self._emit(Reasoning(part_number=effect.part_number, text=effect.text))
        elif isinstance(effect, EmitSearchQuery):
            queries = [effect.query]
            self.ledger.append_search_queries(effect.part_number, queries)
            self._emit(SearchQueries(part_number=effect.part_number, queries=queries))
        elif isinstance(effect, ResolveDeliverable):
            part = self.ledger.ensure_part(effect.part_number)
            self._emit(self.resolver.resolve(part, effect.text))
        elif isinstance(effect, EmitCaseSummary):
            self._emit(CaseSummary(text=effect.text))
        elif isinstance(effect, Finish):
            logger.info("Completion marker received")
            self._emit(Complete())
        else:
            raise TypeError(f"Unhandled effect {effect!r}")


class ChatInterpreter:
    """Follow-up chat streams: every payload is deliverable text.

    The chat endpoint sends plain ``data:`` lines and an optional
    ``[DONE]`` sentinel, which is skipped rather than treated as the
    end of the stream.
    """

    def __init__(self, emit: Emit, *, done_literal: str = "[DONE]") -> None:
        self._emit = emit
        self.done_literal = done_literal
        self.ledger = PartLedger()
        self.state = SessionState()

    @property
    def conversation_id(self) -> str | None:
        return self.state.conversation_id

    @property
    def finished(self) -> bool:
        return not self.state.mode.is_open

    def feed(self, payload: str) -> bool:
        if self.finished:
            return False
        if payload == self.done_literal:
            return True
        part = self.ledger.ensure_part(self.state.active_part)
        part.text += payload + "\n"
        self._emit(DeliverableChunk(part_number=part.number, text=payload))
        return True

    def mark_complete(self) -> None:
        self.state = replace(self.state, mode=StreamMode.COMPLETE)

    def mark_errored(self) -> None:
        self.state = replace(self.state, mode=StreamMode.ERRORED)
