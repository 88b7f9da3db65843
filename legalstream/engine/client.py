"""High-level streaming client for the legal analysis backend.

Owns an aiohttp ClientSession and at most one active StreamSession.
Starting a new analysis supersedes (closes) the one in flight.
"""
from __future__ import annotations

import logging
from functools import partial

import aiohttp

from legalstream.adapters.events import Error, StreamEvent
from legalstream.adapters.sink import CallbackSink, EventSink

from .config import StreamCallbacks, StreamConfig
from .markers import MarkerTokenizer, MarkerTable
from .session import ChatSession, DirectiveSession, StreamSession
from .transport import CaseInput, open_chat_stream, open_directive_stream

logger = logging.getLogger(__name__)

MISSING_CONVERSATION_MESSAGE = "No active conversation ID found."


class LegalStreamingClient:
    """Start, stop and follow up on analysis streams.

    ``callbacks`` may be a StreamCallbacks table or any event sink
    callable. Use as an async context manager, or call aclose().
    """

    def __init__(
        self,
        callbacks: StreamCallbacks | EventSink | None = None,
        *,
        config: StreamConfig | None = None,
        markers: MarkerTable | None = None,
        http: aiohttp.ClientSession | None = None,
    ) -> None:
        if callbacks is None or isinstance(callbacks, StreamCallbacks):
            self._sink: EventSink = CallbackSink(callbacks)
        else:
            self._sink = callbacks
        self.config = config or StreamConfig()
        self._tokenizer = MarkerTokenizer(markers)
        self._http = http
        self._owns_http = http is None
        self._session: StreamSession | None = None

    @property
    def session(self) -> StreamSession | None:
        """The most recent session, running or finished."""
        return self._session

    @property
    def conversation_id(self) -> str | None:
        if self._session is None:
            return None
        return self._session.conversation_id

    def _http_session(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession()
            self._owns_http = True
        return self._http

    def _supersede(self, session: StreamSession) -> None:
        previous = self._session
        if previous is not None and previous.running:
            logger.info(
                "Superseding session %s with %s",
                previous.session_id, session.session_id,
            )
            previous.close()
        self._session = session

    async def start_analysis(
        self, case: CaseInput, token: str | None = None,
    ) -> DirectiveSession:
        """Stream a directive analysis for ``case``.

        Returns the finished session; its ledger holds every part.
        """
        session = DirectiveSession(
            self._sink,
            tokenizer=self._tokenizer,
            structured_part=self.config.structured_part,
        )
        self._supersede(session)
        opener = partial(
            open_directive_stream, self._http_session(), self.config, case, token,
        )
        await session.run(opener)
        return session

    async def send_chat_message(
        self,
        query: str,
        conversation_id: str | None,
        token: str | None = None,
    ) -> ChatSession | None:
        """Ask a follow-up question on an existing conversation.

        Without a conversation id nothing is sent and one Error event is
        delivered.
        """
        if not conversation_id:
            self._deliver(Error(message=MISSING_CONVERSATION_MESSAGE))
            return None
        session = ChatSession(self._sink)
        self._supersede(session)
        opener = partial(
            open_chat_stream,
            self._http_session(), self.config, query, conversation_id, token,
        )
        await session.run(opener)
        return session

    def close(self) -> None:
        """Stop the active stream, if any. Safe to call repeatedly."""
        if self._session is not None:
            self._session.close()

    async def aclose(self) -> None:
        self.close()
        if self._owns_http and self._http is not None and not self._http.closed:
            await self._http.close()

    async def __aenter__(self) -> LegalStreamingClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _deliver(self, event: StreamEvent) -> None:
        try:
            self._sink(event)
        except Exception:
            logger.exception("Event sink raised on %s", event.event_type)
