from __future__ import annotations

import logging

import structlog

_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

def parse_level(name: str | None) -> int:
    """'info' -> logging.INFO. Unknown names fall back to INFO."""
    key = (name or "INFO").strip().upper()
    if key not in _LEVELS:
        return logging.INFO
    return getattr(logging, key)

def configure_logging(level: str | None = "INFO") -> None:
    """
    Install structlog's filtering bound logger at `level`.
    Called once from the process entry points, never at import time.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(parse_level(level)),
        cache_logger_on_first_use=True,
    )
