"""Runtime settings for the opponent and its external search engine.

Defaults can be overridden by a TOML file (``[opponent]`` table) named by
``CHESSCORE_CONFIG`` and then by individual environment variables.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path

# Search budget for the expert tier.
DEFAULT_EXPERT_TIME_MS = 2000
DEFAULT_EXPERT_DEPTH = 10

_ENV_OVERRIDES = {
    "stockfish_path": "STOCKFISH_PATH",
    "expert_time_ms": "CHESSCORE_EXPERT_TIME_MS",
    "expert_depth": "CHESSCORE_EXPERT_DEPTH",
    "log_level": "CHESSCORE_LOG_LEVEL",
}


@dataclass(frozen=True)
class Settings:
    stockfish_path: str | None = None
    expert_time_ms: int = DEFAULT_EXPERT_TIME_MS
    expert_depth: int | None = DEFAULT_EXPERT_DEPTH
    log_level: str = "WARNING"


def _coerce(name: str, value):
    if name in ("expert_time_ms", "expert_depth"):
        if value in ("", None):
            return None if name == "expert_depth" else DEFAULT_EXPERT_TIME_MS
        number = int(value)
        if number <= 0:
            raise ValueError(f"{name} must be positive, got {number}")
        return number
    if name == "log_level":
        return str(value).upper()
    return str(value) if value else None


def load_settings(
    path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Build Settings from defaults, an optional TOML file and the environment.

    Args:
        path: TOML file to read. Defaults to ``$CHESSCORE_CONFIG``; a missing
            file is ignored.
        environ: Mapping to read overrides from (defaults to ``os.environ``).

    Returns:
        A new Settings value.

    Raises:
        ValueError: If a numeric setting is not a positive integer.
    """
    env = os.environ if environ is None else environ
    values: dict[str, object] = {}
    known = {f.name for f in fields(Settings)}

    config_path = path if path is not None else env.get("CHESSCORE_CONFIG")
    if config_path and Path(config_path).is_file():
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)
        for key, value in raw.get("opponent", {}).items():
            if key in known:
                values[key] = _coerce(key, value)

    for name, var in _ENV_OVERRIDES.items():
        if var in env:
            values[name] = _coerce(name, env[var])

    return Settings(**values)
