"""
Logging - structlog setup with an explicit level contract.

Modules log through `structlog.get_logger(__name__)`. The daemon (or the
hosting application) decides the minimum level through `set_level`.

Example:
    from servitor.logging import LogLevel, configure_logging, set_level

    configure_logging(LogLevel.INFO)
    set_level("debug")
"""

import logging
import sys
from enum import IntEnum
from typing import TextIO

import structlog

__all__ = ["LogLevel", "configure_logging", "get_level", "set_level"]


class LogLevel(IntEnum):
    """Minimum log levels understood by servitor."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR

    @classmethod
    def parse(cls, value: "LogLevel | str | int") -> "LogLevel":
        """Resolve a level name ("info", "WARN") or number to a LogLevel."""
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, int):
            return cls(value)
        name = value.strip().upper()
        if name == "WARN":
            name = "WARNING"
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"unknown log level: {value!r}") from None


_state: dict = {"level": LogLevel.INFO, "stream": None}


def configure_logging(
    level: LogLevel | str | int = LogLevel.INFO,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog for console output.

    Args:
        level: Minimum level to emit
        stream: Output stream (default: sys.stderr at call time)
    """
    level = LogLevel.parse(level)
    _state["level"] = level
    _state["stream"] = stream

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(int(level)),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


def set_level(level: LogLevel | str | int) -> None:
    """Change the minimum level, keeping the current output stream."""
    configure_logging(level, _state["stream"])


def get_level() -> LogLevel:
    """Current minimum level."""
    return _state["level"]
