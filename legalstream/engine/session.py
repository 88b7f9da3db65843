"""Streaming session: the read loop around one byte stream.

A session owns one interpreter and at most one reader. run() drives
bytes through LineFramer -> extract_payload -> interpreter and ends in
exactly one of four ways:

    completion marker   Complete already emitted by the interpreter
    end of stream       Complete emitted unless already complete
    transport failure   one Error emitted
    close()             nothing emitted

The reader is released once on every one of them.
"""
from __future__ import annotations

import abc
import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, Union

from legalstream.adapters.events import Complete, Error, Started, StreamEvent

from .errors import TransportError
from .framer import LineFramer, extract_payload
from .interpreter import ChatInterpreter, DirectiveInterpreter, Emit
from .ledger import PartLedger
from .lifecycle import validate_transition
from .markers import MarkerTokenizer
from .models import DEFAULT_STRUCTURED_PART, SessionPhase, SessionState
from .reader import ByteReader, reader_lease

logger = logging.getLogger(__name__)

Opener = Callable[[], Awaitable[ByteReader]]
StreamSource = Union[ByteReader, Opener]

CONNECT_ERROR_MESSAGE = "Failed to connect to the analysis service."
STREAM_ERROR_MESSAGE = "An error occurred while processing the stream."
CHAT_ERROR_MESSAGE = "Failed to send chat message."


def _make_session_id() -> str:
    return uuid.uuid4().hex[:12]


class StreamSession(abc.ABC):
    """One start -> stream -> terminate lifecycle.

    Subclasses choose the interpreter. Not reusable: a closed session
    rejects run().
    """

    connect_error_message = CONNECT_ERROR_MESSAGE
    stream_error_message = STREAM_ERROR_MESSAGE

    def __init__(
        self,
        sink: Callable[[StreamEvent], None] | None = None,
        *,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or _make_session_id()
        self._sink = sink
        self._phase = SessionPhase.NOT_STARTED
        self._cancelled = False
        self._pending: asyncio.Future[Any] | None = None
        self._framer = LineFramer()
        self.interpreter = self._make_interpreter(self._emit)

    @abc.abstractmethod
    def _make_interpreter(self, emit: Emit) -> DirectiveInterpreter | ChatInterpreter:
        """Build the interpreter that turns payloads into events."""

    # ── Introspection ──

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def running(self) -> bool:
        return self._phase is SessionPhase.RUNNING

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def state(self) -> SessionState:
        return self.interpreter.state

    @property
    def ledger(self) -> PartLedger:
        return self.interpreter.ledger

    @property
    def conversation_id(self) -> str | None:
        return self.interpreter.conversation_id

    # ── Lifecycle ──

    async def run(self, source: StreamSource) -> None:
        """Open ``source`` and stream it to completion.

        ``source`` is either a ByteReader or a zero-argument coroutine
        function returning one. Raises SessionStateError if the session
        has already run or been closed.
        """
        validate_transition(self._phase, SessionPhase.RUNNING)
        self._phase = SessionPhase.RUNNING
        logger.info("Session %s started", self.session_id)
        self._emit(Started())
        try:
            reader = await self._open(source)
            if reader is not None:
                with reader_lease(reader):
                    await self._read_loop(reader)
        finally:
            self._pending = None
            self._phase = SessionPhase.CLOSED
            logger.info(
                "Session %s closed (mode=%s, cancelled=%s)",
                self.session_id, self.state.mode.value, self._cancelled,
            )

    def close(self) -> None:
        """Stop the session. Idempotent; emits nothing.

        Before run() this just marks the session closed. While running
        it interrupts the pending open or read; the loop then exits
        silently and releases the reader.
        """
        if self._cancelled or self._phase is SessionPhase.CLOSED:
            return
        self._cancelled = True
        if self._phase is SessionPhase.NOT_STARTED:
            validate_transition(self._phase, SessionPhase.CLOSED)
            self._phase = SessionPhase.CLOSED
            return
        logger.info("Closing session %s", self.session_id)
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

    # ── Internals ──

    def _emit(self, event: StreamEvent) -> None:
        event.session_id = self.session_id
        if self._sink is None:
            return
        try:
            self._sink(event)
        except Exception:
            logger.exception(
                "Event sink raised on %s (session %s)",
                event.event_type, self.session_id,
            )

    async def _interruptible(self, awaitable: Awaitable[Any]) -> Any:
        """Await ``awaitable`` in a future close() can cancel."""
        self._pending = asyncio.ensure_future(awaitable)
        try:
            return await self._pending
        finally:
            self._pending = None

    async def _open(self, source: StreamSource) -> ByteReader | None:
        if not callable(source):
            return source
        try:
            return await self._interruptible(source())
        except asyncio.CancelledError:
            if self._cancelled:
                logger.info("Session %s cancelled while connecting", self.session_id)
                return None
            raise
        except Exception as exc:
            if self._cancelled:
                return None
            self._fail(self._connect_failure_message(exc), exc)
            return None

    async def _read_loop(self, reader: ByteReader) -> None:
        while not self._cancelled:
            try:
                chunk = await self._interruptible(reader.read())
            except asyncio.CancelledError:
                if self._cancelled:
                    logger.info("Session %s cancelled while reading", self.session_id)
                    return
                raise
            except Exception as exc:
                if self._cancelled:
                    return
                self._fail(self.stream_error_message, exc)
                return

            # close() may land after the read finished but before we resumed.
            if self._cancelled:
                return

            if not chunk:
                self._framer.finish()
                if not self.interpreter.finished:
                    self.interpreter.mark_complete()
                    self._emit(Complete())
                logger.debug("Session %s reached end of stream", self.session_id)
                return

            for line in self._framer.feed(chunk):
                payload = extract_payload(line)
                if payload is None:
                    continue
                if self._cancelled:
                    return
                if not self.interpreter.feed(payload):
                    return

    def _connect_failure_message(self, exc: Exception) -> str:
        return self.connect_error_message

    def _fail(self, message: str, exc: BaseException) -> None:
        logger.error(
            "Session %s transport failure: %s", self.session_id, exc,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        self.interpreter.mark_errored()
        self._emit(Error(message=message))


class DirectiveSession(StreamSession):
    """Session for the multi-part directive analysis stream."""

    def __init__(
        self,
        sink: Callable[[StreamEvent], None] | None = None,
        *,
        tokenizer: MarkerTokenizer | None = None,
        structured_part: int = DEFAULT_STRUCTURED_PART,
        session_id: str | None = None,
    ) -> None:
        self._tokenizer = tokenizer
        self._structured_part = structured_part
        super().__init__(sink, session_id=session_id)

    def _make_interpreter(self, emit: Emit) -> DirectiveInterpreter:
        return DirectiveInterpreter(
            emit,
            tokenizer=self._tokenizer,
            structured_part=self._structured_part,
        )


class ChatSession(StreamSession):
    """Session for a follow-up chat answer stream."""

    connect_error_message = CHAT_ERROR_MESSAGE
    stream_error_message = CHAT_ERROR_MESSAGE

    def _make_interpreter(self, emit: Emit) -> ChatInterpreter:
        return ChatInterpreter(emit)

    def _connect_failure_message(self, exc: Exception) -> str:
        # The backend answered but refused; show its status and body.
        if isinstance(exc, TransportError) and exc.status is not None:
            return f"Chat error: {exc.status} - {exc.body}"
        return self.connect_error_message
