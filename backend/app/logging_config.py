"""
Structured JSON logging for the ledger backend.

One JSON object per line on stdout. Every entry names its channel:

- http:   request start/finish, error responses
- store:  document store writes, snapshot reads, subscriber failures
- ledger: lesson, payment, edit and measurement commands
- auth:   sign-in attempts and lockouts

LOG_LEVEL sets the default level. A single channel can be raised or
lowered with LOG_LEVEL_<CHANNEL>, e.g. LOG_LEVEL_STORE=DEBUG to see
every snapshot read without turning on DEBUG everywhere.
"""

import logging
import json
import os
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

# Set by the request middleware, copied into every entry of that request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CHANNELS = ["http", "store", "ledger", "auth"]


def channel_level(channel: str) -> int:
    name = os.getenv(f"LOG_LEVEL_{channel.upper()}", LOG_LEVEL).upper()
    return getattr(logging, name, logging.INFO)


class StructuredJsonFormatter(logging.Formatter):
    """
    Render a record as JSON with the keys timestamp, level, message,
    channel, context (request_id plus student_id/trainer_id when given),
    extra, and exception when a traceback is attached.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", record.name.split(".")[-1] if "." in record.name else "app"),
            "context": {
                "request_id": request_id_var.get(""),
                **(getattr(record, "context", {}) or {})
            },
            "extra": getattr(record, "extra_data", {}) or {}
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str, ensure_ascii=False)


def setup_logging():
    """Install the JSON handler on the root logger and set channel levels."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        logging.getLogger(f"app.{channel}").setLevel(channel_level(channel))

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    if channel not in CHANNELS:
        raise ValueError(f"Unknown log channel: {channel}")
    return logging.getLogger(f"app.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None,
                     exc_info: bool = False):
    """
    Emit a structured entry on a channel logger.

    Args:
        logger: Channel logger from get_logger()
        level: INFO, WARNING, ERROR or DEBUG
        message: Human-readable message
        context: Ids the entry is about (student_id, subcollection, ...)
        extra_data: Metadata such as duration_ms, amount, increments
        exc_info: Attach the active exception traceback
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.log(
        log_level,
        message,
        exc_info=exc_info,
        extra={"context": context or {}, "extra_data": extra_data or {}, "channel": logger.name.split(".")[-1]}
    )


def generate_request_id() -> str:
    return str(uuid.uuid4())
