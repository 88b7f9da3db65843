"""Streaming engine: framing, marker interpretation and session lifecycle."""
from .models import (
    DEFAULT_STRUCTURED_PART,
    NO_PART,
    SessionPhase,
    SessionState,
    StreamMode,
    SwotRecord,
)
from .config import StreamCallbacks, StreamConfig
from .markers import MarkerTable, MarkerTokenizer
from .errors import (
    ConfigError,
    LegalStreamError,
    SessionStateError,
    TransportError,
)

__all__ = [
    # Client and sessions (lazy import to avoid circular deps)
    "LegalStreamingClient",
    "StreamSession",
    "DirectiveSession",
    "ChatSession",
    # Interpretation (lazy import)
    "DirectiveInterpreter",
    "ChatInterpreter",
    "PartLedger",
    "Part",
    "DeliverableResolver",
    # Readers (lazy import)
    "ByteReader",
    "IterableReader",
    # YAML config (lazy import)
    "ClientSettings",
    "load_yaml_config",
    # Models
    "DEFAULT_STRUCTURED_PART",
    "NO_PART",
    "SessionPhase",
    "SessionState",
    "StreamMode",
    "SwotRecord",
    # Config
    "StreamCallbacks",
    "StreamConfig",
    "MarkerTable",
    "MarkerTokenizer",
    # Errors
    "ConfigError",
    "LegalStreamError",
    "SessionStateError",
    "TransportError",
]

_LAZY = {
    "LegalStreamingClient": ".client",
    "StreamSession": ".session",
    "DirectiveSession": ".session",
    "ChatSession": ".session",
    "DirectiveInterpreter": ".interpreter",
    "ChatInterpreter": ".interpreter",
    "PartLedger": ".ledger",
    "Part": ".ledger",
    "DeliverableResolver": ".resolver",
    "ByteReader": ".reader",
    "IterableReader": ".reader",
    "ClientSettings": ".yaml_config",
    "load_yaml_config": ".yaml_config",
}


def __getattr__(name: str):
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    import importlib
    module = importlib.import_module(module_name, __name__)
    return getattr(module, name)
