"""Structured logging and audit trail."""

import json
import logging
import os
import sys
import threading
from contextlib import suppress
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from structlog.types import EventDict

from .events import EventType

LOG_FILE_NAME = "formvault.log"
SENSITIVE_KEYS = {
    "password",
    "key",
    "secret",
    "salt",
    "name",
    "prompt",
    "answer",
    "plaintext",
}

_LOGGER_INSTANCE: Optional[structlog.stdlib.BoundLogger] = None
_logger_lock = threading.Lock()


def get_log_dir(base_dir: Union[str, Path, None] = None) -> Path:
    """Get normalized log directory path.

    Args:
        base_dir: Base directory for logs. If None, uses ~/.local/log

    Returns:
        Resolved Path object for log directory
    """
    if base_dir is None:
        base_dir = Path.home() / ".local" / "log"
    return Path(base_dir).resolve()


def create_secure_handler(
    log_path: Path, max_bytes: int, backup_count: int
) -> RotatingFileHandler:
    """Create a RotatingFileHandler whose file is not world-readable."""
    os.makedirs(log_path.parent, mode=0o750, exist_ok=True)
    if not log_path.exists():
        log_path.touch(mode=0o640)
    os.chmod(log_path, 0o640)
    return RotatingFileHandler(
        str(log_path), maxBytes=max_bytes, backupCount=backup_count
    )


def add_timestamp(
    _: Any, __: str, event_dict: EventDict
) -> EventDict:
    """Add ISO 8601 timestamp."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def sanitize_keys(event_dict: dict, sensitive_keys: set) -> dict:
    """Redact sensitive keys, case-insensitively and through nested structures.

    Args:
        event_dict: Dictionary to sanitize
        sensitive_keys: Set of keys to redact

    Returns:
        Sanitized copy of the dictionary
    """

    def _sanitize_value(key: str, value: Any) -> Any:
        if key.lower() in sensitive_keys:
            return "***"
        if isinstance(value, dict):
            return sanitize_keys(value, sensitive_keys)
        if isinstance(value, list):
            return [_sanitize_value("", item) for item in value]
        return value

    return {k: _sanitize_value(str(k), v) for k, v in event_dict.items()}


def sanitize_event_dict(_: Any, __: str, event_dict: EventDict) -> EventDict:
    """Processor masking sensitive values before rendering."""
    return sanitize_keys(dict(event_dict), SENSITIVE_KEYS)


def configure_logger(
    log_level: str = "INFO",
    max_log_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    base_dir: Union[str, Path, None] = None,
) -> structlog.stdlib.BoundLogger:
    """Configure structlog on top of stdlib logging and return a logger.

    Events are rendered as JSON into a rotating file; warnings and errors are
    also echoed to stderr.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            add_timestamp,
            sanitize_event_dict,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    log_file = get_log_dir(base_dir) / LOG_FILE_NAME
    file_handler = create_secure_handler(log_file, max_log_size, backup_count)
    file_handler.setFormatter(logging.Formatter("%(message)s"))

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    for handler in root_logger.handlers[:]:
        with suppress(Exception):
            handler.close()
        root_logger.removeHandler(handler)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    return structlog.get_logger("formvault")


def setup_logging(
    *,
    log_level: str = "INFO",
    max_log_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    base_dir: Union[str, Path, None] = None,
) -> structlog.stdlib.BoundLogger:
    """Setup structured logging and remember the configured logger.

    Args:
        log_level: Log level (default: INFO)
        max_log_size: Maximum size of a log file before rotation
        backup_count: Number of backup files to keep
        base_dir: Optional base directory for log files

    Returns:
        The configured logger instance.
    """
    global _LOGGER_INSTANCE
    new_logger = configure_logger(
        log_level=log_level,
        max_log_size=max_log_size,
        backup_count=backup_count,
        base_dir=base_dir,
    )
    with _logger_lock:
        _LOGGER_INSTANCE = new_logger
    return new_logger


def get_logger() -> structlog.stdlib.BoundLogger:
    """Get the configured logger, configuring defaults on first use."""
    global _LOGGER_INSTANCE
    with _logger_lock:
        if _LOGGER_INSTANCE is not None:
            return _LOGGER_INSTANCE
    return setup_logging()


def reset_logger() -> None:
    """Remove handlers, restore structlog defaults and drop the cached logger.

    Idempotent.
    """
    global _LOGGER_INSTANCE
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        with suppress(Exception):
            handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)

    structlog.reset_defaults()
    with _logger_lock:
        _LOGGER_INSTANCE = None


def audit_event(
    *,
    event_type: Union[EventType, str],
    success: bool,
    details: Optional[dict] = None,
    error: Optional[Exception] = None,
) -> None:
    """Log an audit event.

    Args:
        event_type: Type of event (e.g., "form.save")
        success: Whether the operation succeeded
        details: Optional event details; sensitive keys are redacted
        error: Optional exception if operation failed
    """
    logger = get_logger()
    event: dict = {
        "event_type": EventType(event_type).value,
        "success": success,
    }
    if details:
        event["details"] = sanitize_keys(details, SENSITIVE_KEYS)
    if error is not None:
        event["error"] = {"type": type(error).__name__, "message": str(error)}

    if success:
        logger.info("audit_event", **event)
    else:
        logger.error("audit_event", **event)


def read_log_events(base_dir: Union[str, Path, None] = None) -> list:
    """Parse the JSON events of the current log file, oldest first."""
    log_file = get_log_dir(base_dir) / LOG_FILE_NAME
    if not log_file.exists():
        return []
    with open(log_file, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]
