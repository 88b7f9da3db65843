"""Deliverable resolution: structured record or text increment."""
from __future__ import annotations

import logging

from legalstream.adapters.events import DeliverableChunk, DeliverableStructured

from .ledger import Part
from .models import DEFAULT_STRUCTURED_PART
from .swot import parse_swot_json

logger = logging.getLogger(__name__)


class DeliverableResolver:
    """Decide how one deliverable payload lands in its part.

    Only ``structured_part`` attempts record parsing. A payload that
    parses replaces the part's record, so the last clean record wins.
    Everything else, including parse failures, is appended to the
    part's text trail and reported as an increment.
    """

    def __init__(self, structured_part: int = DEFAULT_STRUCTURED_PART) -> None:
        self.structured_part = structured_part

    def resolve(
        self, part: Part, payload: str,
    ) -> DeliverableChunk | DeliverableStructured:
        if part.number == self.structured_part:
            record = parse_swot_json(payload)
            if record is not None:
                part.structured = record
                logger.debug("Part %d deliverable structured", part.number)
                return DeliverableStructured(
                    part_number=part.number, record=record.to_dict(),
                )
            logger.debug(
                "Part %d payload is not a record, keeping as text",
                part.number,
            )

        part.text += payload + "\n"
        return DeliverableChunk(part_number=part.number, text=payload)
