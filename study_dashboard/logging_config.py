"""
Structured JSON logging configuration.

Log entries are grouped by channel (http, storage, controller, content) and
carry the id of the browser client whose controller produced them.
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone

# Id of the browser client whose request is being processed.
client_id_var: ContextVar[str] = ContextVar("client_id", default="")

CHANNELS = ["http", "storage", "controller", "content"]


class StructuredJsonFormatter(logging.Formatter):
    """
    Formats each record as one JSON object:
    timestamp, level, message, channel, context (client_id + business
    fields) and extra metadata.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", record.name.split(".")[-1] if "." in record.name else "app"),
            "context": {
                "client_id": client_id_var.get(""),
                **(getattr(record, "context", {}) or {}),
            },
            "extra": getattr(record, "extra_data", {}) or {},
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the root logger with the JSON formatter and set the level of
    every channel logger.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        logging.getLogger(f"app.{channel}").setLevel(log_level)

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Get a channel-specific logger (``app.<channel>``)."""
    return logging.getLogger(f"app.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None,
                     exc_info: bool = False):
    """
    Emit a log entry with business context (email, module_id, key...) and
    extra metadata (duration_ms, sizes...).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.log(
        log_level,
        message,
        exc_info=exc_info,
        extra={"context": context or {}, "extra_data": extra_data or {}, "channel": logger.name.split(".")[-1]},
    )
