"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via LEGALSTREAM_* env
vars, or with a YAML file (see yaml_config.py).
"""
from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .models import DEFAULT_STRUCTURED_PART

logger = logging.getLogger(__name__)

ENV_PREFIX = "LEGALSTREAM_"


# Hook signatures. All hooks are synchronous and run in stream order.
StartHook = Callable[[], None]
ConversationIdHook = Callable[[str], None]
PartHook = Callable[[int], None]
# (part_number, text)
ReasoningHook = Callable[[int, str], None]
# (part_number, queries)
SearchQueriesHook = Callable[[int, list], None]
DeliverableChunkHook = Callable[[int, str], None]
# (part_number, {"strength": ..., "weakness": ..., ...})
DeliverableStructuredHook = Callable[[int, dict], None]
CaseSummaryHook = Callable[[str], None]
CompleteHook = Callable[[], None]
ErrorHook = Callable[[str], None]
# Receives every StreamEvent before the typed hook.
EventHook = Callable[[Any], None]


@dataclass
class StreamCallbacks:
    """Hooks observed by the rest of the application.

    Every hook is optional; unset hooks are skipped.
    """
    on_start: StartHook | None = None
    on_conversation_id: ConversationIdHook | None = None
    on_part: PartHook | None = None
    on_reasoning: ReasoningHook | None = None
    on_search_queries: SearchQueriesHook | None = None
    on_deliverable_chunk: DeliverableChunkHook | None = None
    on_deliverable_structured: DeliverableStructuredHook | None = None
    on_case_summary: CaseSummaryHook | None = None
    on_complete: CompleteHook | None = None
    on_error: ErrorHook | None = None
    on_event: EventHook | None = None


@dataclass
class StreamConfig:
    """Streaming client configuration."""

    # Backend endpoints
    api_base_url: str = "https://legal-backend-api-chatbot.onrender.com"
    directive_path: str = "/generate_directive"
    chat_path: str = "/chat"

    # Part whose deliverable is parsed as a SWOT record.
    structured_part: int = DEFAULT_STRUCTURED_PART

    # Total time allowed for one streamed request.
    # Set to 0 (or a negative value) to disable timeout.
    request_timeout_seconds: float = 900.0

    # Read size when replaying captured streams
    replay_chunk_size: int = 4096

    # Logging
    log_level: str = "INFO"

    # Extra headers sent with every request (never logged).
    extra_headers: dict[str, str] = field(default_factory=dict, repr=False)

    def url_for(self, path: str) -> str:
        return self.api_base_url.rstrip("/") + "/" + path.lstrip("/")

    @property
    def directive_url(self) -> str:
        return self.url_for(self.directive_path)

    @property
    def chat_url(self) -> str:
        return self.url_for(self.chat_path)

    @classmethod
    def from_env(cls) -> StreamConfig:
        """Load configuration from LEGALSTREAM_* environment variables."""
        overrides = {
            k: v for k, v in os.environ.items() if k.startswith(ENV_PREFIX)
        }
        if overrides:
            logger.info(
                "StreamConfig.from_env: env overrides: %s",
                ", ".join(sorted(overrides)),
            )
        else:
            logger.debug("StreamConfig.from_env: no %s* env vars set, using defaults", ENV_PREFIX)

        config = cls(
            api_base_url=os.getenv(
                "LEGALSTREAM_API_BASE_URL", cls.api_base_url
            ),
            directive_path=os.getenv(
                "LEGALSTREAM_DIRECTIVE_PATH", cls.directive_path
            ),
            chat_path=os.getenv("LEGALSTREAM_CHAT_PATH", cls.chat_path),
            structured_part=int(os.getenv(
                "LEGALSTREAM_STRUCTURED_PART", str(cls.structured_part)
            )),
            request_timeout_seconds=float(os.getenv(
                "LEGALSTREAM_TIMEOUT", str(cls.request_timeout_seconds)
            )),
            replay_chunk_size=int(os.getenv(
                "LEGALSTREAM_REPLAY_CHUNK_SIZE", str(cls.replay_chunk_size)
            )),
            log_level=os.getenv("LEGALSTREAM_LOG_LEVEL", cls.log_level),
        )
        logger.info(
            "StreamConfig.from_env: base_url=%s structured_part=%d log_level=%s",
            config.api_base_url, config.structured_part, config.log_level,
        )
        return config
