"""
utils/logger.py
---------------
Centralized logging configuration.
All modules should use `get_logger(__name__)` to obtain a logger instance.

Log output goes to the stream named by LOG_STREAM (stderr by default), so
it never interleaves with results the CLI prints on stdout.
"""

import logging
import sys
from typing import TextIO

from config import LOG_DATE_FORMAT, LOG_FORMAT, LOG_LEVEL, LOG_STREAM

_initialized = False


def _resolve_stream(name: str) -> TextIO:
    """
    Map a LOG_STREAM value to the current process stream.

    Raises:
        ValueError: If ``name`` is neither 'stderr' nor 'stdout'.
    """
    streams = {"stderr": sys.stderr, "stdout": sys.stdout}
    if name not in streams:
        raise ValueError(f"LOG_STREAM must be 'stderr' or 'stdout', got {name!r}")
    return streams[name]


def build_handler(
    stream_name: str = LOG_STREAM,
    fmt: str = LOG_FORMAT,
    datefmt: str = LOG_DATE_FORMAT,
) -> logging.StreamHandler:
    """Create the console handler attached to the root logger."""
    handler = logging.StreamHandler(_resolve_stream(stream_name))
    handler.setFormatter(logging.Formatter(fmt, datefmt))
    return handler


def _init_logging() -> None:
    """Configure the root logger once."""
    global _initialized
    if _initialized:
        return
    root = logging.getLogger()
    root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    root.addHandler(build_handler())
    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A configured logging.Logger.
    """
    _init_logging()
    return logging.getLogger(name)
