"""Logging for the ``ar_forecast`` package.

Library modules obtain loggers through :func:`get_logger` and never attach
handlers. Only an entrypoint (the CLI) calls :func:`configure_logging`, which
routes the ``ar_forecast`` logger tree to a single stream.

Log lines are short ``event:key=value`` records such as
``parse_csv:summary valid_rows=12 skipped=1 reasons=bad_date:1``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "ar_forecast"
LEVEL_ENV_VAR = "AR_FORECAST_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_configured = False


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or ``AR_FORECAST_LOG_LEVEL`` when ``None``) into a number.

    Accepts ints, numeric strings and level names in any case. Unrecognized
    names fall back to ``INFO``.

    >>> resolve_level("debug"), resolve_level("30"), resolve_level("chatty")
    (10, 30, 20)
    """

    if level is None:
        level = os.getenv(LEVEL_ENV_VAR) or logging.INFO
    if isinstance(level, int):
        return level

    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    mapped = logging.getLevelNamesMapping().get(name)
    return mapped if mapped is not None else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Send package logs to ``stream``. Only the first call has an effect.

    Any placeholder ``NullHandler`` is replaced and propagation to the root
    logger is turned off, so each record is written once.
    """

    global _configured
    if _configured:
        return

    resolved = resolve_level(level)
    pkg = logging.getLogger(PACKAGE_LOGGER)
    for h in [h for h in pkg.handlers if isinstance(h, logging.NullHandler)]:
        pkg.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    pkg.addHandler(handler)
    pkg.setLevel(resolved)
    pkg.propagate = False

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``; unconfigured, the package stays silent."""

    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not _configured and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
