"""End-to-end client tests against a local aiohttp backend."""
from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from legalstream.adapters.events import (
    Complete,
    DeliverableChunk,
    DeliverableStructured,
    Error,
    PartBegin,
    Started,
)
from legalstream.adapters.sink import RecordingSink
from legalstream.engine.client import (
    MISSING_CONVERSATION_MESSAGE,
    LegalStreamingClient,
)
from legalstream.engine.config import StreamCallbacks, StreamConfig
from legalstream.engine.session import CHAT_ERROR_MESSAGE, CONNECT_ERROR_MESSAGE

SWOT = {"strength": "s", "weakness": "w", "opportunity": "o", "threat": "t"}

DIRECTIVE_BODY = [
    b"data: [ID: conv42]\n",
    b"data: [SUMMARIZED_FACTS_BEGIN] Flooded flat\n",
    b"data: [PART 1]\ndata: [THOUGHTS-BEGIN]\ndata: weighing the lease\n",
    b"data: [THOUGHTS-END]\ndata: [DELIVERABLE-BEGIN]\ndata: Part one",
    b" text.\ndata: [DELIVERABLE-END]\n",
    b"data: [PART 5]\ndata: [DELIVERABLE-BEGIN]\n",
    b"data: " + json.dumps(SWOT).encode() + b"\n",
    b"data: [DELIVERABLE-END]\ndata: [WAR-GAME-DIRECTIVE-COMPLETE]\n",
    b"data: ignored after completion\n",
]


class _Backend:
    """Records requests and streams canned bodies."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.directive_body = list(DIRECTIVE_BODY)
        self.directive_status = 200
        self.hold = asyncio.Event()
        self.holding = asyncio.Event()
        self.hold_first = False
        self.chat_status = 200

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/generate_directive", self.directive)
        app.router.add_post("/chat", self.chat)
        return app

    async def directive(self, request: web.Request) -> web.StreamResponse:
        form = await request.post()
        upload = form["case_file"]
        self.requests.append({
            "path": request.path,
            "auth": request.headers.get("Authorization"),
            "filename": upload.filename,
            "case": upload.file.read().decode(),
            "case_description": form["case_description"],
        })
        if self.directive_status >= 400:
            return web.Response(status=self.directive_status, text="backend down")

        response = web.StreamResponse(
            headers={"Content-Type": "text/event-stream"},
        )
        await response.prepare(request)
        if self.hold_first and len(self.requests) == 1:
            await response.write(b"data: [PART 1]\n")
            self.holding.set()
            await self.hold.wait()
            return response
        for chunk in self.directive_body:
            await response.write(chunk)
        await response.write_eof()
        return response

    async def chat(self, request: web.Request) -> web.StreamResponse:
        body = await request.json()
        self.requests.append({"path": request.path, "json": body})
        if self.chat_status >= 400:
            return web.Response(status=self.chat_status, text="conversation expired")
        response = web.StreamResponse(
            headers={"Content-Type": "text/event-stream"},
        )
        await response.prepare(request)
        await response.write(b"data: The deposit must be\n")
        await response.write(b"data: [DONE]\ndata: returned.\n")
        await response.write_eof()
        return response


@asynccontextmanager
async def _serve(backend: _Backend) -> AsyncIterator[StreamConfig]:
    server = TestServer(backend.app())
    await server.start_server()
    try:
        yield StreamConfig(
            api_base_url=str(server.make_url("")),
            request_timeout_seconds=10,
        )
    finally:
        backend.hold.set()
        await server.close()


@pytest.mark.asyncio
async def test_analysis_end_to_end() -> None:
    backend = _Backend()
    sink = RecordingSink()
    async with _serve(backend) as config:
        async with LegalStreamingClient(sink, config=config) as client:
            session = await client.start_analysis("Tenant v Landlord", token="tok")

    assert backend.requests == [{
        "path": "/generate_directive",
        "auth": "Bearer tok",
        "filename": "case_description.txt",
        "case": "Tenant v Landlord",
        "case_description": "",
    }]
    assert client.conversation_id == "conv42"
    assert [type(e) for e in sink.events][0] is Started
    assert [type(e) for e in sink.events][-1] is Complete
    assert len(sink.of_type(Complete)) == 1
    assert [e.text for e in sink.of_type(DeliverableChunk)] == ["Part one text."]
    structured = sink.of_type(DeliverableStructured)
    assert [(e.part_number, e.record) for e in structured] == [(5, SWOT)]

    ledger = session.ledger
    assert ledger.get(1).reasoning == ["weighing the lease"]
    assert ledger.get(1).deliverable == "Part one text.\n"
    assert ledger.get(5).deliverable.threat == "t"


@pytest.mark.asyncio
async def test_file_upload_keeps_filename(tmp_path: Path) -> None:
    case_file = tmp_path / "brief.txt"
    case_file.write_text("Facts of the case")
    backend = _Backend()
    async with _serve(backend) as config:
        async with LegalStreamingClient(RecordingSink(), config=config) as client:
            await client.start_analysis(case_file)

    request = backend.requests[0]
    assert request["filename"] == "brief.txt"
    assert request["case"] == "Facts of the case"
    assert request["auth"] is None


@pytest.mark.asyncio
async def test_http_error_reports_connect_failure() -> None:
    backend = _Backend()
    backend.directive_status = 500
    errors: list[str] = []
    completes: list[bool] = []
    callbacks = StreamCallbacks(
        on_error=errors.append,
        on_complete=lambda: completes.append(True),
    )
    async with _serve(backend) as config:
        async with LegalStreamingClient(callbacks, config=config) as client:
            await client.start_analysis("case")

    assert errors == [CONNECT_ERROR_MESSAGE]
    assert completes == []


@pytest.mark.asyncio
async def test_unreachable_backend() -> None:
    sink = RecordingSink()
    config = StreamConfig(api_base_url="http://127.0.0.1:1", request_timeout_seconds=5)
    async with LegalStreamingClient(sink, config=config) as client:
        await client.start_analysis("case")

    assert [e.message for e in sink.of_type(Error)] == [CONNECT_ERROR_MESSAGE]


@pytest.mark.asyncio
async def test_chat_message_streams_answer() -> None:
    backend = _Backend()
    chunks: list[str] = []
    async with _serve(backend) as config:
        async with LegalStreamingClient(
            StreamCallbacks(on_deliverable_chunk=lambda n, text: chunks.append(text)),
            config=config,
        ) as client:
            session = await client.send_chat_message(
                "What about the deposit?", "conv42", token="tok",
            )

    assert backend.requests == [{
        "path": "/chat",
        "json": {"query": "What about the deposit?", "conversation_id": "conv42"},
    }]
    assert chunks == ["The deposit must be", "returned."]
    assert session.ledger.get(0).text == "The deposit must be\nreturned.\n"


@pytest.mark.asyncio
async def test_chat_without_conversation_id() -> None:
    sink = RecordingSink()
    async with LegalStreamingClient(sink) as client:
        session = await client.send_chat_message("Anything?", None)

    assert session is None
    assert [(type(e), e.message) for e in sink.events] == [
        (Error, MISSING_CONVERSATION_MESSAGE),
    ]


@pytest.mark.asyncio
async def test_chat_http_error_message() -> None:
    sink = RecordingSink()
    config = StreamConfig(api_base_url="http://127.0.0.1:1", request_timeout_seconds=5)
    async with LegalStreamingClient(sink, config=config) as client:
        await client.send_chat_message("Anything?", "conv42")

    assert [e.message for e in sink.of_type(Error)] == [CHAT_ERROR_MESSAGE]


@pytest.mark.asyncio
async def test_new_analysis_supersedes_running_one() -> None:
    backend = _Backend()
    backend.hold_first = True
    sink = RecordingSink()
    async with _serve(backend) as config:
        async with LegalStreamingClient(sink, config=config) as client:
            first = asyncio.create_task(client.start_analysis("first case"))
            await backend.holding.wait()
            while not client.session.ledger.parts():
                await asyncio.sleep(0.01)
            first_session = client.session

            second_session = await client.start_analysis("second case")
            await first

    assert first_session.cancelled
    assert client.session is second_session
    first_events = [
        e for e in sink.events if e.session_id == first_session.session_id
    ]
    assert [type(e) for e in first_events] == [Started, PartBegin]
    second_events = [
        e for e in sink.events if e.session_id == second_session.session_id
    ]
    assert type(second_events[-1]) is Complete


@pytest.mark.asyncio
async def test_close_stops_active_stream() -> None:
    backend = _Backend()
    backend.hold_first = True
    sink = RecordingSink()
    async with _serve(backend) as config:
        async with LegalStreamingClient(sink, config=config) as client:
            task = asyncio.create_task(client.start_analysis("case"))
            await backend.holding.wait()
            while client.session is None or not client.session.ledger.parts():
                await asyncio.sleep(0.01)
            client.close()
            client.close()
            session = await task

    assert session.cancelled
    assert not sink.of_type(Error)
    assert not sink.of_type(Complete)


@pytest.mark.asyncio
async def test_chat_rejected_by_backend_shows_status() -> None:
    backend = _Backend()
    backend.chat_status = 410
    errors: list[str] = []
    async with _serve(backend) as config:
        async with LegalStreamingClient(
            StreamCallbacks(on_error=errors.append), config=config,
        ) as client:
            await client.send_chat_message("Still there?", "conv42")

    assert errors == ["Chat error: 410 - conversation expired"]
