"""YAML configuration loader.

One optional file overrides the env-derived StreamConfig and the
marker literal table. Without a file, StreamConfig.from_env() and the
default MarkerTable apply unchanged.

Example YAML:
    client:
      api_base_url: https://legal-backend.example.com
      structured_part: 5
      request_timeout_seconds: 600
      extra_headers:
        X-Client: legalstream

    markers:
      completion: "[WAR-GAME-DIRECTIVE-COMPLETE]"
      part_forms: ["[PART {n}]", "=== PART {n} ==="]
      deliverable_end: ["[DELIVERABLE-END]", "[DELIVERABLE: none]"]
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from .config import StreamConfig
from .errors import ConfigError
from .markers import MarkerTable, MarkerTokenizer

logger = logging.getLogger(__name__)

_KNOWN_SECTIONS = ("client", "markers")


@dataclass
class ClientSettings:
    """Complete parsed configuration."""
    config: StreamConfig = field(default_factory=StreamConfig)
    markers: MarkerTable = field(default_factory=MarkerTable)


def _apply_client_section(base: StreamConfig, raw: dict) -> StreamConfig:
    known = {f.name: f for f in fields(StreamConfig)}
    for key, value in raw.items():
        if key not in known:
            logger.warning("load_yaml_config: ignoring unknown client setting %s", key)
            continue
        current = getattr(base, key)
        if isinstance(current, bool):
            value = bool(value)
        elif isinstance(current, int):
            value = int(value)
        elif isinstance(current, float):
            value = float(value)
        elif isinstance(current, dict):
            value = {str(k): str(v) for k, v in (value or {}).items()}
        else:
            value = str(value)
        setattr(base, key, value)
    return base


def load_yaml_config(
    path: str | Path, base: StreamConfig | None = None,
) -> ClientSettings:
    """Load and parse a YAML config file.

    Values in the file override ``base`` (env-derived by default).
    Raises ConfigError if the file is missing, unreadable, not valid
    YAML, or holds values of the wrong type.
    """
    path = Path(path)
    logger.info("load_yaml_config: loading %s", path)
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise ConfigError(str(path), "file not found") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(str(path), f"YAML parse error: {exc}") from exc
    except OSError as exc:
        raise ConfigError(str(path), str(exc)) from exc

    if not isinstance(raw, dict):
        raise ConfigError(str(path), "top level must be a mapping")

    unknown = sorted(k for k in raw if k not in _KNOWN_SECTIONS)
    if unknown:
        logger.warning(
            "load_yaml_config: ignoring unknown sections in %s: %s",
            path.name, ", ".join(unknown),
        )

    client_raw = raw.get("client") or {}
    markers_raw = raw.get("markers") or {}
    if not isinstance(client_raw, dict) or not isinstance(markers_raw, dict):
        raise ConfigError(str(path), "'client' and 'markers' must be mappings")

    config = base if base is not None else StreamConfig.from_env()
    try:
        config = _apply_client_section(config, client_raw)
        markers = MarkerTable.from_dict(markers_raw)
        # Compiles the part forms so a bad template fails here.
        MarkerTokenizer(markers)
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigError(str(path), str(exc)) from exc

    logger.info(
        "load_yaml_config: base_url=%s structured_part=%d part_forms=%s",
        config.api_base_url, config.structured_part,
        ", ".join(markers.part_forms),
    )
    return ClientSettings(config=config, markers=markers)
