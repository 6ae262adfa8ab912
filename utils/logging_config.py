"""
Structured logging for the console.

Production writes one JSON object per record; development keeps a readable
console format and mirrors warnings into the Streamlit page. Credentials and
tokens passed as extra fields are masked before any handler sees them.
"""

import logging
import logging.handlers
import json
import time
import traceback
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional
from contextlib import contextmanager
import streamlit as st

from config.app_config import AppConfig, get_config


# Attributes every LogRecord carries; anything else came in through `extra`
_STANDARD_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

SENSITIVE_FIELDS = frozenset({"password", "new_password", "access_token", "token", "reset_token"})
MASK = "***"


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: (MASK if key in SENSITIVE_FIELDS else value)
        for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_ATTRS
    }


class StructuredFormatter(logging.Formatter):
    """One JSON document per record, with extra fields under "extra" """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        if record.exc_info and record.exc_info[0] is not None:
            error_type, error, tb = record.exc_info
            entry["exception"] = {
                "type": error_type.__name__,
                "message": str(error),
                "traceback": traceback.format_exception(error_type, error, tb),
            }

        extra = _extra_fields(record)
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, ensure_ascii=False, default=str)


class StreamlitLogHandler(logging.Handler):
    """Shows warnings and errors on the page while developing"""

    def emit(self, record: logging.LogRecord):
        try:
            show = st.error if record.levelno >= logging.ERROR else st.warning
            show(self.format(record))
        except Exception:
            self.handleError(record)


def _console_formatter(config: AppConfig) -> logging.Formatter:
    if config.debug:
        return logging.Formatter(config.logging.format + " [%(filename)s:%(lineno)d]")
    return StructuredFormatter()


def setup_logging(config: Optional[AppConfig] = None) -> logging.Logger:
    """
    Configure the root logger from LoggingConfig, replacing existing handlers

    Args:
        config: Application config; the process-wide config when omitted

    Returns:
        logging.Logger: The root logger
    """
    config = config or get_config()
    level = getattr(logging, config.logging.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(_console_formatter(config))
    root_logger.addHandler(console_handler)

    if config.logging.enable_file_logging:
        Path(config.logging.log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.logging.log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    if config.debug and config.environment == "development":
        page_handler = StreamlitLogHandler(level=logging.WARNING)
        page_handler.setFormatter(logging.Formatter("⚠️ %(message)s"))
        root_logger.addHandler(page_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_execution_time(logger: logging.Logger, operation: str, **extra_fields):
    """
    Log how long a block took; failures are logged with the traceback and re-raised

    Args:
        logger: Logger instance
        operation: Short description, e.g. "app context setup"
        **extra_fields: Additional fields to include in the record
    """
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        logger.error(f"Failed {operation}: {e}", extra={
            "operation": operation,
            "duration_seconds": round(time.perf_counter() - started, 4),
            "error_type": type(e).__name__,
            **extra_fields
        }, exc_info=True)
        raise
    logger.debug(f"Completed {operation}", extra={
        "operation": operation,
        "duration_seconds": round(time.perf_counter() - started, 4),
        **extra_fields
    })


def log_user_interaction(logger: logging.Logger, interaction_type: str, **details):
    """
    Audit record for something a user did (sign_in, navigate, staff_reply, ...)
    """
    logger.info(f"User interaction: {interaction_type}", extra={
        "event_type": "user_interaction",
        "interaction_type": interaction_type,
        **details
    })


def log_conversation_event(logger: logging.Logger, event_type: str, conversation_id: int, **details):
    """
    Audit record for a conversation change (created, claimed, message_added)
    """
    logger.info(f"Conversation {conversation_id}: {event_type}", extra={
        "event_type": "conversation_event",
        "conversation_event_type": event_type,
        "conversation_id": conversation_id,
        **details
    })


class ErrorTracker:
    """
    Counts handled errors by type and context and logs each one.

    The session store reports degraded paths here (profile fetch failures,
    sign-out errors) so they stay visible without interrupting the user.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.error_counts: Counter = Counter()

    def track_error(self, error: Exception, context: str = "", **extra_info):
        key = f"{type(error).__name__}:{context}"
        self.error_counts[key] += 1

        self.logger.error(f"Error in {context}: {error}", extra={
            "event_type": "error",
            "error_type": type(error).__name__,
            "context": context,
            "error_count": self.error_counts[key],
            **extra_info
        }, exc_info=error)

    def get_error_summary(self) -> Dict[str, Any]:
        return {
            "total_errors": sum(self.error_counts.values()),
            "unique_errors": len(self.error_counts),
            "error_breakdown": dict(self.error_counts),
            "timestamp": datetime.now().isoformat()
        }


_logger_setup = False
_error_tracker: Optional[ErrorTracker] = None


def initialize_logging() -> ErrorTracker:
    """
    Configure logging once per process and return the shared error tracker
    """
    global _logger_setup, _error_tracker

    if not _logger_setup:
        setup_logging()
        _logger_setup = True

    if _error_tracker is None:
        _error_tracker = ErrorTracker(logging.getLogger("ledgerdesk.errors"))

    return _error_tracker
