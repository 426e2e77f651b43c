"""Shared logging utilities.

Provides a SafeStreamHandler that tolerates broken pipes and closed file
descriptors, which happen when the CLI output is piped into `head` or the
Streamlit server restarts mid-request.
"""
import logging
import os
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that ignores broken pipe and closed file errors."""

    def emit(self, record):
        try:
            super().emit(record)
        except BrokenPipeError:
            pass  # reader went away
        except ValueError:
            pass  # I/O operation on closed file


def resolve_level(level: Optional[Union[int, str]] = None) -> int:
    """Turn a level name, number or None (read LOG_LEVEL) into a logging level."""
    if level is None:
        level = os.getenv("LOG_LEVEL", "WARNING")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        logging.getLogger(__name__).warning(f"Unknown log level {level!r}, using WARNING")
        return logging.WARNING
    return resolved


def configure_safe_logging(level: Optional[Union[int, str]] = None) -> None:
    """Configure the root logger with a SafeStreamHandler.

    Safe to call multiple times; Streamlit re-executes the app script on every
    interaction, so duplicate handlers are guarded against.

    Args:
        level: Logging level (name or number). Defaults to LOG_LEVEL or WARNING.
    """
    level = resolve_level(level)
    logger = logging.getLogger()
    existing = [h for h in logger.handlers if isinstance(h, SafeStreamHandler)]
    if existing:
        for handler in existing:
            handler.setLevel(level)
    else:
        handler = SafeStreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.setLevel(level)
        logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > level:
        logger.setLevel(level)
