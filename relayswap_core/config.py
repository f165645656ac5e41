"""
TOML-based configuration for RelaySwap.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from relayswap_core.config import load_config
    cfg = load_config("relayswap.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import,no-redef]


@dataclass
class ExchangeConfig:
    """Engine settings."""
    custody_account: str = "relayswap-custody"
    # Run post-operation invariant checks and roll back on failure.
    check_invariants: bool = True
    max_events: int = 10_000


@dataclass
class RelayerConfig:
    """Identity used by the bundled relayer when submitting intents."""
    name: str = "relayer-1"
    max_history: int = 1_000


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class RelaySwapConfig:
    """Top-level configuration container."""
    exchange: ExchangeConfig = field(default_factory=ExchangeConfig)
    relayer: RelayerConfig = field(default_factory=RelayerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _coerce(key: str, current: Any, value: Any) -> Any:
    """Convert *value* to the type of the field's current value."""
    if isinstance(current, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
            return value.strip().lower() in _TRUE
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise ValueError(f"{key}: expected a boolean, got {value!r}")
    if isinstance(current, int):
        if isinstance(value, (bool, float)):
            raise ValueError(f"{key}: expected an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{key}: expected an integer, got {value!r}") from None
    if not isinstance(value, str):
        raise ValueError(f"{key}: expected a string, got {value!r}")
    return value


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place), coercing per field."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, _coerce(key_under, getattr(dc, key_under), value))


def load_config(path: str | None = None) -> RelaySwapConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    Env-var mapping:
        RELAYSWAP_CUSTODY_ACCOUNT     -> exchange.custody_account
        RELAYSWAP_CHECK_INVARIANTS    -> exchange.check_invariants
        RELAYSWAP_MAX_EVENTS          -> exchange.max_events
        RELAYSWAP_RELAYER_NAME        -> relayer.name
        RELAYSWAP_RELAYER_MAX_HISTORY -> relayer.max_history
        RELAYSWAP_LOG_LEVEL           -> logging.level
        RELAYSWAP_LOG_FMT             -> logging.format
        RELAYSWAP_LOG_FILE            -> logging.file
    """
    cfg = RelaySwapConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            for section_name, section_dc in [
                ("exchange", cfg.exchange),
                ("relayer", cfg.relayer),
                ("logging", cfg.logging),
            ]:
                if section_name in data:
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("RELAYSWAP_CUSTODY_ACCOUNT"):
        cfg.exchange.custody_account = v
    if v := os.environ.get("RELAYSWAP_CHECK_INVARIANTS"):
        cfg.exchange.check_invariants = _coerce("check_invariants", True, v)
    if v := os.environ.get("RELAYSWAP_MAX_EVENTS"):
        cfg.exchange.max_events = _coerce("max_events", 0, v)
    if v := os.environ.get("RELAYSWAP_RELAYER_NAME"):
        cfg.relayer.name = v
    if v := os.environ.get("RELAYSWAP_RELAYER_MAX_HISTORY"):
        cfg.relayer.max_history = _coerce("max_history", 0, v)
    if v := os.environ.get("RELAYSWAP_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("RELAYSWAP_LOG_FMT"):
        cfg.logging.format = v
    if v := os.environ.get("RELAYSWAP_LOG_FILE"):
        cfg.logging.file = v

    return cfg
