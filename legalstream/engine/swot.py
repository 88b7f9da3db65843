"""Parsing of the structured (SWOT) deliverable.

The backend sends the structured part as a single JSON object per
line. Older backends sent headed plain text instead, which
parse_swot_from_text() still understands.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

from .models import SwotRecord

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(
    r"^(STRENGTHS|WEAKNESSES|OPPORTUNITIES|THREATS)", re.IGNORECASE,
)
_SECTION_FIELDS = {
    "strengths": "strength",
    "weaknesses": "weakness",
    "opportunities": "opportunity",
    "threats": "threat",
}


def _as_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return "\n".join(value)
    return None


def swot_from_mapping(data: Any) -> SwotRecord | None:
    """Build a SwotRecord from a mapping carrying all four fields.

    List values are joined with newlines. Returns None when a field is
    missing or not text.
    """
    if not isinstance(data, dict):
        return None
    values: dict[str, str] = {}
    for name in SwotRecord.FIELDS:
        text = _as_text(data.get(name))
        if text is None:
            return None
        values[name] = text
    return SwotRecord(**values)


def parse_swot_json(payload: str) -> SwotRecord | None:
    """Parse one payload as a JSON SWOT object, or return None."""
    try:
        data = json.loads(payload)
    except ValueError:
        return None
    record = swot_from_mapping(data)
    if record is None:
        logger.debug("JSON payload is not a SWOT record: %.80s", payload)
    return record


def parse_swot_from_text(text: str) -> SwotRecord | None:
    """Recover a SwotRecord from headed plain text.

    Lines after a STRENGTHS/WEAKNESSES/OPPORTUNITIES/THREATS heading
    belong to that section. All four sections must be non-empty.
    """
    sections: dict[str, list[str]] = {}
    current: str | None = None
    for line in text.split("\n"):
        stripped = line.strip()
        match = _HEADING_RE.match(stripped)
        if match:
            current = _SECTION_FIELDS[match.group(1).lower()]
            sections.setdefault(current, [])
        elif current is not None and stripped:
            sections[current].append(stripped)

    if not all(sections.get(name) for name in SwotRecord.FIELDS):
        return None
    return SwotRecord(**{
        name: "\n".join(sections[name]) for name in SwotRecord.FIELDS
    })
