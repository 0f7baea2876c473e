"""Default engine config generation and validation."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TypedDict

from localfirst.core.errors import ConfigError
from localfirst.core.ids import generate_peer_id, validate_id

CONFIG_ENV = "LOCALFIRST_CONFIG"
PEER_ID_ENV = "LOCALFIRST_PEER_ID"

VALID_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Registers can hold several concurrently written values; reads project
# them down to the first one in dot order.  No other projection exists yet.
VALID_READ_PROJECTIONS: tuple[str, ...] = ("first",)


class EngineConfig(TypedDict, total=False):
    schema_version: int
    peer_id: str
    log_level: str
    read_projection: str


def default_config() -> EngineConfig:
    """Return the default engine configuration.

    Every call generates a fresh peer id, so two engines built from
    default configs never share a dot namespace.
    """
    return {
        "schema_version": 1,
        "peer_id": generate_peer_id(),
        "log_level": "WARNING",
        "read_projection": "first",
    }


def serialize_config(config: EngineConfig | dict[str, object]) -> str:
    """Serialize a config dict to the canonical JSON format."""
    return json.dumps(config, sort_keys=True, indent=2) + "\n"


def load_config(raw: str) -> EngineConfig:
    """Parse a JSON config string and merge it over the defaults.

    This is a pure function (no I/O).  Callers read the file and pass
    the raw string here.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Config must be a JSON object")

    config = default_config()
    config.update(data)  # type: ignore[typeddict-item]
    return config


def validate_config(config: EngineConfig | dict) -> list[str]:
    """Return a list of problems with *config* (empty when valid)."""
    problems: list[str] = []

    version = config.get("schema_version", 1)
    if version != 1:
        problems.append(f"Unsupported schema_version: {version!r}")

    peer_id = config.get("peer_id")
    if peer_id is not None and not validate_id(peer_id, "peer"):
        problems.append(f"Invalid peer_id: {peer_id!r} (expected peer_<ULID>)")

    level = config.get("log_level", "WARNING")
    if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
        problems.append(
            f"Invalid log_level: {level!r} (expected one of {', '.join(VALID_LOG_LEVELS)})"
        )

    projection = config.get("read_projection", "first")
    if projection not in VALID_READ_PROJECTIONS:
        problems.append(f"Unsupported read_projection: {projection!r}")

    return problems


def resolve_config(path: Path | None = None) -> EngineConfig:
    """Build the effective config from a file and the environment.

    *path* wins over ``LOCALFIRST_CONFIG``; ``LOCALFIRST_PEER_ID``
    overrides the peer id from either source.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV)
        if env_path:
            path = Path(env_path)

    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        config = load_config(path.read_text())
    else:
        config = default_config()

    peer_override = os.environ.get(PEER_ID_ENV)
    if peer_override:
        config["peer_id"] = peer_override

    return config


def log_level(config: EngineConfig | dict) -> int:
    """Return the numeric :mod:`logging` level named by *config*."""
    return getattr(logging, str(config.get("log_level", "WARNING")).upper(), logging.WARNING)
