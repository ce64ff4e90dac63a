"""Structured logging configuration.

This module initializes structlog with a stable JSON event format.
Events go to stderr so command output on stdout stays machine-readable.
"""

from __future__ import annotations

import sys
from typing import Any

import structlog


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    structlog is configured on the first call only; later calls reuse it.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured JSON output.
    """
    if not structlog.is_configured():
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.JSONRenderer(),
            ],
            logger_factory=_stderr_logger,
            cache_logger_on_first_use=True,
        )
    return structlog.get_logger(name)


class _CurrentStderr:
    """File-like proxy writing to whatever ``sys.stderr`` is at write time."""

    def write(self, message: str) -> int:
        return sys.stderr.write(message)

    def flush(self) -> None:
        sys.stderr.flush()


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    _ = args
    return structlog.PrintLogger(_CurrentStderr())
