"""Logging for ``statement_insights``.

The CLI calls :func:`configure_logging` once (``--log-level`` or
``STATEMENT_INSIGHTS_LOG_LEVEL``). Ingestion, store and detector modules only
call :func:`get_logger` and stay silent when embedded without configuration.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_ROOT = "statement_insights"
_LEVEL_ENV = "STATEMENT_INSIGHTS_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _resolve_level(*candidates: int | str | None) -> int:
    # First usable candidate wins: int, digit string or level name.
    for value in candidates:
        if isinstance(value, int):
            return value
        if not value:
            continue
        name = value.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelNamesMapping().get(name)
        if numeric is not None:
            return numeric
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Attach one stream handler to the ``statement_insights`` logger.

    Later calls are no-ops. An unknown level name falls through to the
    environment variable, then to INFO.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    root = logging.getLogger(_ROOT)
    for h in [h for h in root.handlers if isinstance(h, logging.NullHandler)]:
        root.removeHandler(h)

    resolved = _resolve_level(level, os.getenv(_LEVEL_ENV))
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    root.setLevel(resolved)
    root.addHandler(handler)
    root.propagate = False
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Logger for a package module; adds a ``NullHandler`` until configured."""

    root = logging.getLogger(_ROOT)
    if not _CONFIGURED and not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
