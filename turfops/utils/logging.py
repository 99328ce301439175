"""
Logging setup for the TurfOps CLI.

``configure_logging()`` is called once per command, after the config is
loaded.  Library modules only ever do ``logging.getLogger(__name__)``.

Records go to stderr (stdout is reserved for command output) and, unless
``log_file`` is empty, to a size-rotated file.  Timestamps are UTC.

With ``json_format = true`` every record is one JSON object::

    {"ts": "2025-03-10T12:00:00Z", "level": "WARNING",
     "logger": "turfops.engine.orchestrator", "msg": "Clock skew detected: ..."}

Anything passed through ``extra=`` is copied into the object.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from turfops.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
UTC_DATEFMT = "%Y-%m-%dT%H:%M:%SZ"

# Attribute names every LogRecord carries; anything else came from ``extra=``.
_STANDARD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime"}

# Libraries whose INFO chatter drowns out engine messages.
_NOISY_LOGGERS = ("httpx", "httpcore")


class _UtcFormatter(logging.Formatter):
    converter = time.gmtime


class _JsonFormatter(_UtcFormatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, UTC_DATEFMT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            (k, v) for k, v in vars(record).items()
            if k not in _STANDARD_ATTRS and not k.startswith("_")
        )
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(config: "LoggingConfig", debug: bool = False) -> None:
    """Install root handlers according to ``config``.

    Args:
        config: The ``[logging]`` section.
        debug:  Force DEBUG level regardless of ``config.level``.

    Replaces any handlers already on the root logger, so repeated calls
    (one per CLI invocation in tests) do not stack output.
    """
    level = logging.DEBUG if debug else logging.getLevelName(config.level)
    formatter = _JsonFormatter() if config.json_format else _UtcFormatter(TEXT_FORMAT, UTC_DATEFMT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        path = Path(config.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                path,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
