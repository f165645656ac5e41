"""
Logging setup for RelaySwap.

Exchange, custody and relayer loggers attach operation context to their
records through ``extra=``: the operation name, the acting account, the
submitting relayer and, for rejections, the numeric error code.  Both
formatters here surface that context:

  - **human** – single line, coloured on a terminal, context as a
    trailing ``[op=swap account=rBob code=102]`` tag
  - **json**  – one object per line, context as top-level keys

Usage:
    from relayswap_core.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", log_file="relayswap.log")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from relayswap_core.config import LoggingConfig

# (record attribute, short tag used by the human format)
_CONTEXT_FIELDS = (
    ("operation", "op"),
    ("account", "account"),
    ("relayer", "relayer"),
    ("error_code", "code"),
)


def _context(record: logging.LogRecord) -> dict:
    """Operation context attached to *record*, skipping empty values."""
    ctx = {}
    for attr, _ in _CONTEXT_FIELDS:
        value = getattr(record, attr, None)
        if value not in (None, ""):
            ctx[attr] = value
    return ctx


class _JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        log_obj.update(_context(record))
        if record.exc_info and record.exc_info[1]:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


class _HumanFormatter(logging.Formatter):
    """Single-line console format with a trailing context tag."""

    COLOURS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, colour: bool = True):
        super().__init__()
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"[{record.levelname:<7}]"
        if self.colour:
            level = f"{self.COLOURS.get(record.levelname, '')}{level}{self.RESET}"
        line = f"{ts} {level} {record.name}: {record.getMessage()}"

        ctx = _context(record)
        if ctx:
            tags = " ".join(
                f"{tag}={ctx[attr]}" for attr, tag in _CONTEXT_FIELDS if attr in ctx
            )
            line = f"{line} [{tags}]"
        if record.exc_info and record.exc_info[1]:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the root logger and return it.

    Parameters
    ----------
    level : str
        One of DEBUG, INFO, WARNING, ERROR, CRITICAL (any case).
    fmt : str
        ``"human"`` or ``"json"`` for the stderr handler.
    log_file : str, optional
        Extra JSON-lines file handler; parent directories are created.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        console.setFormatter(_JSONFormatter())
    else:
        console.setFormatter(_HumanFormatter(colour=sys.stderr.isatty()))
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path))
        fh.setFormatter(_JSONFormatter())
        root.addHandler(fh)
    return root


def configure_from(cfg: LoggingConfig) -> logging.Logger:
    """Apply the ``[logging]`` section of a loaded configuration."""
    return setup_logging(level=cfg.level, fmt=cfg.format, log_file=cfg.file or None)
