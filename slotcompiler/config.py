"""Compiler configuration.

Defaults cover the usual ``src/`` + ``dist/`` setup. An optional YAML file
can override any of them:

    src: site
    out: public
    debounce_ms: 250
    transient_suffixes: [".tmp", ".swp"]
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Optional

import yaml

# ─── Defaults ───────────────────────────────────────────────────────────────

DEFAULT_SRC = "src"
DEFAULT_OUT = "dist"
LAYOUT_NAME = "_layout.html"
PAGE_EXTENSION = ".html"
DEBOUNCE_MS = 150
POLL_INTERVAL_MS = 100
MISSING_RETRIES = 3
MISSING_RETRY_DELAY_MS = 10


class ConfigError(ValueError):
    """Raised for unreadable or malformed configuration files."""


@dataclass
class CompilerConfig:
    src: str = DEFAULT_SRC
    out: str = DEFAULT_OUT
    layout_name: str = LAYOUT_NAME
    page_extension: str = PAGE_EXTENSION
    debounce_ms: int = DEBOUNCE_MS
    poll_interval_ms: int = POLL_INTERVAL_MS
    transient_suffixes: list = field(default_factory=lambda: [".tmp"])
    missing_retries: int = MISSING_RETRIES
    missing_retry_delay_ms: int = MISSING_RETRY_DELAY_MS
    log_file: Optional[str] = None

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def missing_retry_delay_seconds(self) -> float:
        return self.missing_retry_delay_ms / 1000.0

    def is_transient(self, path: str) -> bool:
        lower = str(path).lower()
        return any(lower.endswith(s.lower()) for s in self.transient_suffixes)

    def is_page_name(self, name: str) -> bool:
        return name.lower().endswith(self.page_extension.lower())

    def is_layout_name(self, name: str) -> bool:
        return name.lower() == self.layout_name.lower()


_FIELD_TYPES = {
    "src": str,
    "out": str,
    "layout_name": str,
    "page_extension": str,
    "debounce_ms": int,
    "poll_interval_ms": int,
    "transient_suffixes": list,
    "missing_retries": int,
    "missing_retry_delay_ms": int,
    "log_file": str,
}


def config_from_dict(data: dict) -> CompilerConfig:
    """Build a config from a parsed mapping, rejecting unknown keys and bad types."""
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(CompilerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    values = {}
    for key, value in data.items():
        if value is None:
            continue
        expected = _FIELD_TYPES[key]
        # bool is an int subclass; reject it for numeric settings
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            raise ConfigError(
                f"Config key '{key}' must be {expected.__name__}, got {type(value).__name__}"
            )
        if expected is int and value < 0:
            raise ConfigError(f"Config key '{key}' must be >= 0, got {value}")
        if key == "transient_suffixes" and not all(isinstance(s, str) for s in value):
            raise ConfigError("Config key 'transient_suffixes' must be a list of strings")
        values[key] = value
    return CompilerConfig(**values)


def load_config(path: Optional[str]) -> CompilerConfig:
    """Load a YAML config file. ``None`` yields the defaults."""
    if path is None:
        return CompilerConfig()
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return CompilerConfig()
    return config_from_dict(data)
