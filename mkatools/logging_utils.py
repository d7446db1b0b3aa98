from __future__ import annotations

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_FIELDS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_configured = False


class ExtraFormatter(logging.Formatter):
    """Formatter that appends ``extra={...}`` fields as sorted ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = {k: v for k, v in vars(record).items() if k not in _RECORD_FIELDS and not k.startswith("_")}
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
        return line


def _level_from(name: Optional[str]) -> int:
    return getattr(logging, (name or "INFO").upper(), logging.INFO)


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging for the mkatools scripts.

    Records go to stderr so the interactive prompts on stdout stay readable.
    A repeated call only applies ``level`` if one is given.

    Args:
        level: Optional log level name (e.g., "INFO", "DEBUG"). If omitted,
               reads MKATOOLS_LOG_LEVEL, then LOG_LEVEL, or defaults to INFO.
    """
    global _configured
    if _configured:
        if level:
            logging.getLogger().setLevel(_level_from(level))
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ExtraFormatter(LOG_FORMAT))
    logging.basicConfig(
        level=_level_from(level or os.getenv("MKATOOLS_LOG_LEVEL") or os.getenv("LOG_LEVEL")),
        handlers=[handler],
    )
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Module logger; configures logging on first use."""
    setup_logging()
    return logging.getLogger(name)
