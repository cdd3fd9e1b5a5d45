"""
Structured logging for the MerchOps engine.

Call setup_logging() once at process start (API app, scripts), then
get a module logger with get_logger(__name__). Context passed via
``extra={...}`` is merged into the JSON record.
"""
import json
import logging
import sys
from datetime import datetime
from typing import Optional

from merchops.core.settings import settings

# Attributes every LogRecord carries; anything else came from ``extra``
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}

_configured = False


class StructuredFormatter(logging.Formatter):
    """Formats log records as structured JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_obj[key] = value

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Configure the root logger from settings (idempotent)."""
    global _configured
    if _configured:
        return

    level = level or settings.LOG_LEVEL
    fmt = fmt or settings.LOG_FORMAT
    formatter = StructuredFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if settings.LOG_FILE:
        file_handler = logging.FileHandler(settings.LOG_FILE)
        file_handler.setFormatter(StructuredFormatter())
        root.addHandler(file_handler)

    # SQL echo is controlled by the engine, keep the library quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a named logger."""
    return logging.getLogger(name)
