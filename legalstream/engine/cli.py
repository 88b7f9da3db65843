"""CLI entry point for the streaming client.

Usage:
    legalstream analyze "Tenant withheld rent after repeated flooding"
    legalstream analyze --file case.pdf --token $TOKEN
    legalstream chat "What about the deposit?" --conversation-id abc123
    legalstream replay captured_stream.txt --chunk-size 7
    legalstream --json replay captured_stream.txt
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from legalstream.adapters.event_bus import EventBus
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
    event_to_dict,
)

from .client import LegalStreamingClient
from .config import StreamConfig
from .errors import ConfigError
from .markers import MarkerTokenizer
from .models import SwotRecord
from .reader import IterableReader, iter_file_chunks
from .session import DirectiveSession, StreamSession
from .yaml_config import ClientSettings, load_yaml_config

logger = logging.getLogger(__name__)


def swot_table(record: SwotRecord, title: str = "SWOT") -> Table:
    table = Table(title=title, show_lines=True)
    table.add_column("Strengths", style="green")
    table.add_column("Weaknesses", style="red")
    table.add_column("Opportunities", style="cyan")
    table.add_column("Threats", style="yellow")
    table.add_row(
        record.strength, record.weakness, record.opportunity, record.threat,
    )
    return table


class EventRenderer:
    """Print stream events to a rich console as they arrive."""

    def __init__(
        self,
        console: Console | None = None,
        *,
        show_reasoning: bool = True,
        json_lines: bool = False,
    ) -> None:
        self.console = console or Console(highlight=False)
        self.show_reasoning = show_reasoning
        # One JSON object per event instead of styled output.
        self.json_lines = json_lines
        self.errors: list[str] = []
        self.structured_parts: set[int] = set()

    async def consume(self, bus: EventBus) -> None:
        async for event in bus.consume():
            self.render(event)

    def render(self, event: StreamEvent) -> None:
        c = self.console
        if self.json_lines:
            if isinstance(event, Error):
                self.errors.append(event.message)
            c.out(json.dumps(event_to_dict(event)), highlight=False)
            return
        if isinstance(event, Started):
            c.print(Text("Stream started", style="bold"))
        elif isinstance(event, ConversationId):
            c.print(Text(f"Conversation: {event.conversation_id}", style="magenta"))
        elif isinstance(event, PartBegin):
            c.print(Rule(f"Part {event.part_number}"))
        elif isinstance(event, Reasoning):
            if self.show_reasoning:
                c.print(Text(event.text, style="dim italic"))
        elif isinstance(event, SearchQueries):
            for query in event.queries:
                c.print(Text(f"search: {query}", style="cyan"))
        elif isinstance(event, DeliverableChunk):
            c.print(Text(event.text))
        elif isinstance(event, DeliverableStructured):
            self.structured_parts.add(event.part_number)
            record = SwotRecord(**event.record)
            c.print(swot_table(record, title=f"Part {event.part_number}"))
        elif isinstance(event, CaseSummary):
            c.print(Text(f"Case summary: {event.text}", style="bold blue"))
        elif isinstance(event, Complete):
            c.print(Text("Analysis complete", style="bold green"))
        elif isinstance(event, Error):
            self.errors.append(event.message)
            c.print(Text(f"Error: {event.message}", style="bold red"))

    def summary(self, session: StreamSession | None, structured_part: int) -> None:
        """Show a SWOT table recovered from text if none was streamed."""
        if self.json_lines or session is None:
            return
        if structured_part in self.structured_parts:
            return
        part = session.ledger.get(structured_part)
        if part is None:
            return
        record = part.swot()
        if record is not None:
            self.console.print(
                swot_table(record, title=f"Part {structured_part} (from text)")
            )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="legalstream",
        description="Stream legal directive analyses from the backend",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="YAML file overriding client settings and marker literals",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Bearer token for authenticated requests",
    )
    parser.add_argument(
        "--hide-reasoning",
        action="store_true",
        help="Do not print reasoning fragments",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print each event as a JSON line",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Start a directive analysis")
    analyze.add_argument(
        "text",
        nargs="?",
        default=None,
        help="Case description (inline string)",
    )
    analyze.add_argument(
        "--file", "-f",
        default=None,
        help="Upload a case file instead of inline text",
    )

    chat = sub.add_parser("chat", help="Ask a follow-up question")
    chat.add_argument("query", help="The question")
    chat.add_argument(
        "--conversation-id",
        required=True,
        help="Conversation ID reported by a previous analysis",
    )

    replay = sub.add_parser(
        "replay", help="Interpret a captured stream body without a network",
    )
    replay.add_argument("capture", help="File holding a raw stream body")
    replay.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Bytes per simulated network read",
    )
    return parser


def _load_settings(path: str | None) -> ClientSettings:
    config = StreamConfig.from_env()
    if path is None:
        return ClientSettings(config=config)
    try:
        return load_yaml_config(path, base=config)
    except ConfigError as exc:
        print(f"Error: {exc}")
        sys.exit(2)


def _resolve_case(text: str | None, file_path: str | None) -> str | Path:
    """Get the case from inline text or a file. Exactly one must be provided."""
    if text and file_path:
        print("Error: Provide either case text or --file, not both.")
        sys.exit(1)
    if file_path:
        p = Path(file_path)
        if not p.is_file():
            print(f"Error: Case file not found: {file_path}")
            sys.exit(1)
        return p
    if text:
        return text
    print("Error: Provide case text or --file.")
    sys.exit(1)


async def _run(args: argparse.Namespace, settings: ClientSettings) -> int:
    config = settings.config
    bus = EventBus()
    renderer = EventRenderer(
        show_reasoning=not args.hide_reasoning, json_lines=args.json,
    )
    consumer = asyncio.create_task(renderer.consume(bus))
    session: StreamSession | None = None
    try:
        if args.command == "replay":
            chunk_size = args.chunk_size or config.replay_chunk_size
            session = DirectiveSession(
                bus.sink(),
                tokenizer=MarkerTokenizer(settings.markers),
                structured_part=config.structured_part,
            )
            await session.run(
                IterableReader(iter_file_chunks(args.capture, chunk_size))
            )
        else:
            async with LegalStreamingClient(
                bus.sink(), config=config, markers=settings.markers,
            ) as client:
                if args.command == "analyze":
                    case = _resolve_case(args.text, args.file)
                    session = await client.start_analysis(case, args.token)
                else:
                    session = await client.send_chat_message(
                        args.query, args.conversation_id, args.token,
                    )
    finally:
        bus.close()
        await consumer

    if args.command != "chat":
        renderer.summary(session, config.structured_part)
    return 1 if renderer.errors else 0


def main() -> None:
    args = _build_parser().parse_args()

    settings = _load_settings(args.config)

    # Configure logging
    level = logging.DEBUG if args.verbose else getattr(
        logging, settings.config.log_level.upper(), logging.INFO,
    )
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        status = asyncio.run(_run(args, settings))
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(1)
    sys.exit(status)


if __name__ == "__main__":
    main()
