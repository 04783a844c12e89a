"""Logging setup for services that embed the observability layer.

Console output is always installed. Records are rendered as JSON when
``json_format`` is set, or when ``LOG_FORMAT=json`` / ``ENVIRONMENT=production``
is found in the environment. File output is only added when a ``log_file`` is
given or ``LOG_FILE`` is set; nothing is written to disk otherwise.
"""

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler

# Fields attached via ``extra=`` by the observability layer
EXTRA_FIELDS = ("function", "error_type", "error_message", "signal", "host")

# Loggers that are too chatty at INFO for an embedding application.
# Langfuse raises its own logger to DEBUG when LANGFUSE_DEBUG is set.
QUIET_LOGGERS = ("langfuse", "httpx", "backoff")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 3

_HANDLER_MARKER = "_chat_observability_handler"


class JSONFormatter(logging.Formatter):
    """Render a record as one JSON object per line"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        return json.dumps(log_entry, default=str)


def use_json_format() -> bool:
    if os.getenv("LOG_FORMAT", "").lower() == "json":
        return True
    return os.getenv("ENVIRONMENT", "development") == "production"


def _own_handler(handler: logging.Handler, level: int, formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    setattr(handler, _HANDLER_MARKER, True)
    return handler


def configure_logging(
    level: str | None = None,
    log_file: str | None = None,
    json_format: bool | None = None,
) -> logging.Logger:
    """
    Configure the root logger.

    Calling this again replaces the handlers installed by the previous call;
    handlers added by the host application are left alone.

    Args:
        level: Level name, defaults to ``LOG_LEVEL`` or INFO
        log_file: Path of a size-rotated log file, defaults to ``LOG_FILE``
        json_format: Force JSON (True) or plain text (False) output

    Returns:
        The root logger
    """
    level_name = level or os.getenv("LOG_LEVEL", "INFO")
    log_file = log_file or os.getenv("LOG_FILE")
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    if json_format is None:
        json_format = use_json_format()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        if getattr(handler, _HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    root_logger.addHandler(
        _own_handler(logging.StreamHandler(sys.stdout), log_level, formatter)
    )

    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        root_logger.addHandler(_own_handler(file_handler, log_level, formatter))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
