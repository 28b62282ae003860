"""
Logging setup

Records are written as one JSON object per line, or as plain text when
LOAN_TRACKER_LOG_FORMAT is "text". Loan operations and HTTP requests are
logged as events: a short event name plus the loan id or request id they
concern and a dict of details.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional


APP_LOGGER = "loan_tracker"
TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Attributes log_event sets on a record, in output order
EVENT_FIELDS = ("event", "loan_id", "request_id", "details")


class JSONFormatter(logging.Formatter):
    """Formats a record as a JSON line, omitting event fields that are unset"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in EVENT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info:
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = APP_LOGGER,
                  log_format: str = "json") -> logging.Logger:
    """
    Route the application logger to stderr

    Replaces any handler installed by an earlier call, so create_app can run
    more than once per process without duplicating output.
    """
    handler = logging.StreamHandler()
    if log_format.lower() == "text":
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    else:
        handler.setFormatter(JSONFormatter())

    logger = logging.getLogger(logger_name)
    logger.handlers = [handler]
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger


def get_logger(name: str = APP_LOGGER) -> logging.Logger:
    return logging.getLogger(name)


def log_event(logger: logging.Logger, level: str, message: str, event: str,
              loan_id: Optional[str] = None, request_id: Optional[str] = None,
              **details: Any) -> None:
    """
    Log a named event

    Args:
        logger: Logger to write to
        level: Level name (info, warning, ...)
        message: Human-readable line
        event: Event name, e.g. payment_added
        loan_id: Loan the event concerns
        request_id: X-Request-ID of the HTTP request
        **details: Anything else worth recording, kept under "details"
    """
    logger.log(
        logging.getLevelName(level.upper()), message,
        extra={"event": event, "loan_id": loan_id, "request_id": request_id,
               "details": details or None}
    )
