"""Per-part accumulation for one directive session."""
from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from .models import NO_PART, SwotRecord
from .swot import parse_swot_from_text

logger = logging.getLogger(__name__)


@dataclass
class Part:
    """One numbered phase of the analysis.

    ``text`` is the deliverable's text trail. ``structured`` is set
    only for the structured part once a clean record has arrived; it
    takes precedence over the text.
    """
    number: int
    reasoning: list[str] = field(default_factory=list)
    search_queries: list[str] = field(default_factory=list)
    text: str = ""
    structured: SwotRecord | None = None

    @property
    def deliverable(self) -> str | SwotRecord:
        if self.structured is not None:
            return self.structured
        return self.text

    def swot(self) -> SwotRecord | None:
        """Structured record, falling back to headed text in the trail."""
        if self.structured is not None:
            return self.structured
        return parse_swot_from_text(self.text)

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "reasoning": list(self.reasoning),
            "search_queries": list(self.search_queries),
            "text": self.text,
            "structured": (
                self.structured.to_dict() if self.structured else None
            ),
        }


class PartLedger:
    """Ordered collection of parts, created lazily and never removed.

    Re-announcing a part returns the existing entry so a backend that
    repeats a part marker keeps appending to it. Content seen before
    any part marker lands in the preamble part (number 0).
    """

    def __init__(self) -> None:
        self._parts: dict[int, Part] = {}

    def ensure_part(self, number: int) -> Part:
        part = self._parts.get(number)
        if part is None:
            part = Part(number=number)
            self._parts[number] = part
            if number != NO_PART:
                logger.debug("Part %d created", number)
        return part

    def get(self, number: int) -> Part | None:
        return self._parts.get(number)

    def append_reasoning(self, number: int, text: str) -> Part:
        part = self.ensure_part(number)
        part.reasoning.append(text)
        return part

    def append_search_queries(self, number: int, queries: list[str]) -> Part:
        part = self.ensure_part(number)
        part.search_queries.extend(queries)
        return part

    def parts(self) -> list[Part]:
        """Parts in the order they were first seen."""
        return list(self._parts.values())

    def __contains__(self, number: object) -> bool:
        return number in self._parts

    def __iter__(self) -> Iterator[Part]:
        return iter(self.parts())

    def __len__(self) -> int:
        return len(self._parts)

    def to_dict(self) -> dict[int, dict[str, Any]]:
        return {number: part.to_dict() for number, part in self._parts.items()}
