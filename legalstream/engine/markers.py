"""Marker tokenizer for directive stream payloads.

Every payload becomes exactly one Marker variant. The recognized
literals live in a MarkerTable so the historical backend dialects
(``[PART 3]`` vs ``=== PART 3 ===``) are data, not code.

Precedence (first match wins):

    conversation id > completion > reasoning begin/end
        > deliverable begin/end > part > search section
        > case summary > search item > content

The grammar has no escape mechanism: a body line that is literally a
marker is classified as that marker.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerTable:
    """Literal forms recognized by the tokenizer."""
    conversation_id_token: str = "[ID:"
    completion: str = "[WAR-GAME-DIRECTIVE-COMPLETE]"
    reasoning_begin: str = "[THOUGHTS-BEGIN]"
    reasoning_end: tuple[str, ...] = ("[THOUGHTS-END]", "[THOUGHTS: none]")
    deliverable_begin: str = "[DELIVERABLE-BEGIN]"
    deliverable_end: tuple[str, ...] = (
        "[DELIVERABLE-END]", "[DELIVERABLE: none]",
    )
    # "{n}" stands for the part number.
    part_forms: tuple[str, ...] = ("[PART {n}]", "=== PART {n} ===")
    search_sections: tuple[str, ...] = (
        "[SEARCH_QUERIES]", "[SEARCH_QUERIES: none]",
    )
    search_item_prefix: str = "- "
    case_summary_token: str = "[SUMMARIZED_FACTS_BEGIN]"

    @classmethod
    def from_dict(cls, data: dict) -> MarkerTable:
        """Build a table from a plain mapping, e.g. a YAML section.

        List values become tuples; unknown keys are logged and skipped.
        """
        known = {f.name: f for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown marker setting: %s", key)
                continue
            if isinstance(value, list):
                value = tuple(str(v) for v in value)
            elif isinstance(getattr(cls, key, None), tuple) and isinstance(value, str):
                value = (value,)
            kwargs[key] = value
        return cls(**kwargs)


# ── Marker variants ──


@dataclass(frozen=True)
class Marker:
    """Base of all tokenizer outputs."""


@dataclass(frozen=True)
class ConversationIdMarker(Marker):
    # None when the payload carried the token but no usable id.
    conversation_id: str | None = None


@dataclass(frozen=True)
class CompletionMarker(Marker):
    pass


@dataclass(frozen=True)
class ReasoningBegin(Marker):
    pass


@dataclass(frozen=True)
class ReasoningEnd(Marker):
    pass


@dataclass(frozen=True)
class DeliverableBegin(Marker):
    pass


@dataclass(frozen=True)
class DeliverableEnd(Marker):
    pass


@dataclass(frozen=True)
class PartMarker(Marker):
    number: int = 0


@dataclass(frozen=True)
class SearchSectionMarker(Marker):
    pass


@dataclass(frozen=True)
class CaseSummaryMarker(Marker):
    text: str = ""


@dataclass(frozen=True)
class SearchQueryItem(Marker):
    """A ``- "query"`` line. ``raw`` keeps the payload for body content."""
    query: str = ""
    raw: str = ""


@dataclass(frozen=True)
class Content(Marker):
    text: str = ""


def _compile_part_form(template: str) -> re.Pattern[str]:
    head, sep, tail = template.partition("{n}")
    if not sep:
        raise ValueError(f"Part form {template!r} has no {{n}} placeholder")
    return re.compile(rf"^{re.escape(head)}(\d+){re.escape(tail)}$")


class MarkerTokenizer:
    """Classify payloads against a MarkerTable."""

    def __init__(self, table: MarkerTable | None = None) -> None:
        self.table = table or MarkerTable()
        self._id_re = re.compile(
            rf"{re.escape(self.table.conversation_id_token)}\s*(\w+)\]"
        )
        self._part_res = [_compile_part_form(t) for t in self.table.part_forms]
        self._item_re = re.compile(
            rf"^{re.escape(self.table.search_item_prefix.rstrip())}\s*[\"']?"
            r"|[\"']?$"
        )

    def tokenize(self, payload: str) -> Marker:
        table = self.table

        if table.conversation_id_token in payload:
            match = self._id_re.search(payload)
            return ConversationIdMarker(match.group(1) if match else None)
        if table.completion in payload:
            return CompletionMarker()
        if payload == table.reasoning_begin:
            return ReasoningBegin()
        if payload in table.reasoning_end:
            return ReasoningEnd()
        if payload == table.deliverable_begin:
            return DeliverableBegin()
        if payload in table.deliverable_end:
            return DeliverableEnd()
        for part_re in self._part_res:
            match = part_re.match(payload)
            if match:
                return PartMarker(int(match.group(1)))
        if payload in table.search_sections:
            return SearchSectionMarker()
        if table.case_summary_token in payload:
            _, _, summary = payload.partition(table.case_summary_token)
            return CaseSummaryMarker(summary.strip())
        if payload.startswith(table.search_item_prefix):
            query = self._item_re.sub("", payload).strip()
            return SearchQueryItem(query=query, raw=payload)
        return Content(payload)
