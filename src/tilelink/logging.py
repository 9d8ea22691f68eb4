"""Logging configuration for TileLink.

All modules log under the ``tilelink`` namespace through :func:`get_logger`.
Nothing is configured on import; hosts (the CLI, tests, services) call
:func:`setup_logging` once to attach handlers.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

ROOT_LOGGER_NAME = "tilelink"
DEFAULT_FORMAT = "%(levelname)-5s | %(name)-16s | %(message)s"
VERBOSE_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-16s | %(message)s"

# Attribute stamped on handlers we own so repeated setup calls replace them.
_HANDLER_TAG = "_tilelink_handler"
_SETUP_LOCK = threading.Lock()

# Keys present on every LogRecord; anything else was passed via ``extra=``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including any ``extra=`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _make_formatter(json_logs: bool, fmt: str) -> logging.Formatter:
    return JsonFormatter() if json_logs else logging.Formatter(fmt)


def setup_logging(
    level: int = logging.INFO,
    verbose: bool = False,
    log_file: str | Path | None = None,
    json_logs: bool = False,
) -> logging.Logger:
    """Attach stderr (and optionally file) handlers to the ``tilelink`` logger.

    Handlers installed by a previous call are removed first, so calling
    this repeatedly never duplicates output.

    Args:
        level: Logging level (default: INFO).
        verbose: Include timestamps in console output.
        log_file: Optional path that also receives every record.
        json_logs: Emit JSON lines instead of the text format.

    Returns:
        The configured ``tilelink`` logger.
    """
    with _SETUP_LOCK:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.setLevel(level)

        for handler in list(logger.handlers):
            if getattr(handler, _HANDLER_TAG, False):
                logger.removeHandler(handler)
                handler.close()

        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(
            _make_formatter(json_logs, VERBOSE_FORMAT if verbose else DEFAULT_FORMAT)
        )
        setattr(console, _HANDLER_TAG, True)
        logger.addHandler(console)

        if log_file:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path, encoding="utf-8")
            file_handler.setFormatter(_make_formatter(json_logs, VERBOSE_FORMAT))
            setattr(file_handler, _HANDLER_TAG, True)
            logger.addHandler(file_handler)

        return logger


def get_logger(name: str) -> logging.Logger:
    """Return the ``tilelink.<name>`` logger (e.g. ``get_logger("matcher")``)."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
