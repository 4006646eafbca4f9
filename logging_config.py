"""Process-wide logging setup for the CLI and any embedding UI."""

from __future__ import annotations

import logging
import os
import sys
from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_NOISY_LOGGERS = ("httpx", "httpcore", "PIL", "dashscope")


def _configure_third_party_log_levels(*, log_level: int) -> None:
    # HTTP and imaging libraries log every request/decoder step at INFO/DEBUG.
    floor = max(log_level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(floor)


def configure_logging(
    *,
    level: LogLevel | None = None,
    verbose: bool = False,
    quiet: bool = False,
    format_string: str | None = None,
) -> None:
    """Configure logging once at startup.

    Args:
        level: Explicit log level (overrides verbose/quiet and the environment).
        verbose: DEBUG level.
        quiet: Only critical messages.
        format_string: Custom log format (uses default if None).
    """
    env_level = os.getenv("TEXTDESK_LOG_LEVEL", "").upper()
    if level is not None:
        log_level = getattr(logging, level.upper())
    elif verbose:
        log_level = logging.DEBUG
    elif quiet:
        log_level = logging.CRITICAL
    elif env_level in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        log_level = getattr(logging, env_level)
    else:
        log_level = logging.INFO

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    _configure_third_party_log_levels(log_level=log_level)

    if not quiet:
        logging.getLogger(__name__).debug(
            "Logging configured: level=%s", logging.getLevelName(log_level)
        )
