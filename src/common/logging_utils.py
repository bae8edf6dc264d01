"""Centralized logging helpers.

Provides root logger configuration plus the small set of helpers every
module uses for structured DEBUG traces: ``extra_context`` builds the
``extra=`` payload, ``is_debug_enabled`` guards expensive trace building,
``Timer`` measures durations and ``safe_url`` keeps credentials out of logs.
"""
from __future__ import annotations

import logging
import os
import sys
import time
import urllib.parse
from typing import Any, Dict, Optional

from constants import Constants

_HANDLER_NAME = "plugstage-console"


def configure_logging(level: Optional[str] = None, quiet: bool = False) -> None:
    """Install the console handler on the root logger.

    Args:
        level: Level name; defaults to $PLUGSTAGE_LOG_LEVEL, then INFO.
        quiet: When True only errors reach the console.
    """
    root = logging.getLogger()
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for handler in root.handlers:
        if handler.get_name() == _HANDLER_NAME:
            break
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
    handler.setLevel(logging.ERROR if quiet else logging.NOTSET)


def add_file_handler(path: str) -> logging.Handler:
    """Mirror all log records into ``path``."""
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    logging.getLogger().addHandler(file_handler)
    return file_handler


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping, dropping unset fields."""
    return {key: value for key, value in fields.items() if value is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def safe_url(url: str) -> str:
    """Strip userinfo, query and fragment from a URL."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return "<invalid-url>"
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urllib.parse.urlunsplit((parts.scheme, netloc, parts.path, "", ""))


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds (so far, when still running)."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
