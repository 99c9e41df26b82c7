"""Tests for the logger module."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from formvault.audit import EventType, audit_event, get_logger, reset_logger, setup_logging
from formvault.audit.logger import (
    LOG_FILE_NAME,
    SENSITIVE_KEYS,
    get_log_dir,
    read_log_events,
    sanitize_keys,
)
from formvault.crypto import encrypt


def test_get_log_dir_default(mock_home):
    """Test get_log_dir with default base_dir."""
    assert get_log_dir() == (mock_home / ".local" / "log").resolve()


def test_get_log_dir_custom():
    custom_path = Path("/test/custom/log")
    assert get_log_dir(custom_path) == custom_path.resolve()
    assert get_log_dir(str(custom_path)) == custom_path.resolve()


def test_setup_logging_handlers(tmp_path):
    setup_logging(log_level="DEBUG", base_dir=tmp_path)
    root = logging.getLogger()
    assert root.level == logging.DEBUG

    file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].baseFilename == str(tmp_path.resolve() / LOG_FILE_NAME)

    # Reconfiguring replaces rather than stacks handlers
    setup_logging(base_dir=tmp_path)
    assert len(root.handlers) == 2


@pytest.mark.skipif(sys.platform == "win32",
                  reason="POSIX permissions not supported on Windows")
def test_log_file_permissions(tmp_path):
    setup_logging(base_dir=tmp_path / "logs")
    log_file = tmp_path / "logs" / LOG_FILE_NAME
    assert log_file.exists()
    assert oct(os.stat(log_file).st_mode & 0o777) == oct(0o640)


def test_get_logger_reuses_instance(tmp_path):
    configured = setup_logging(base_dir=tmp_path)
    assert get_logger() is configured


def test_get_logger_configures_defaults(mock_home):
    get_logger()
    assert (mock_home / ".local" / "log" / LOG_FILE_NAME).exists()


def test_reset_logger_is_idempotent(tmp_path):
    setup_logging(base_dir=tmp_path)
    reset_logger()
    reset_logger()
    assert logging.getLogger().handlers == []


def test_sanitize_keys():
    event = {
        "Password": "hunter2",
        "count": 3,
        "nested": {"answer": "Cthon98", "ok": True},
        "items": [{"key": "k"}, "plain"],
    }
    sanitized = sanitize_keys(event, SENSITIVE_KEYS)
    assert sanitized == {
        "Password": "***",
        "count": 3,
        "nested": {"answer": "***", "ok": True},
        "items": [{"key": "***"}, "plain"],
    }
    # The input is left untouched
    assert event["Password"] == "hunter2"


def test_events_are_sanitized(tmp_path):
    logger = setup_logging(base_dir=tmp_path)
    logger.info("unlocking", password="hunter2", forms=2)

    [event] = read_log_events(tmp_path)
    assert event["event"] == "unlocking"
    assert event["password"] == "***"
    assert event["forms"] == 2
    assert event["level"] == "info"
    assert "timestamp" in event


def test_audit_event_success(tmp_path):
    setup_logging(base_dir=tmp_path)
    audit_event(
        event_type=EventType.FORM_SAVE,
        success=True,
        details={"fields": 2, "name": "irc"},
    )

    [event] = read_log_events(tmp_path)
    assert event["event"] == "audit_event"
    assert event["event_type"] == "form.save"
    assert event["success"] is True
    assert event["details"] == {"fields": 2, "name": "***"}
    assert event["level"] == "info"


def test_audit_event_failure(tmp_path):
    setup_logging(base_dir=tmp_path)
    audit_event(
        event_type="error.unlock",
        success=False,
        error=RuntimeError("decryption failed"),
    )

    [event] = read_log_events(tmp_path)
    assert event["event_type"] == "error.unlock"
    assert event["success"] is False
    assert event["level"] == "error"
    assert event["error"] == {"type": "RuntimeError", "message": "decryption failed"}


def test_audit_event_rejects_unknown_type(tmp_path):
    setup_logging(base_dir=tmp_path)
    with pytest.raises(ValueError):
        audit_event(event_type="not.an.event", success=True)


def test_level_filtering(tmp_path):
    logger = setup_logging(log_level="WARNING", base_dir=tmp_path)
    logger.info("hidden")
    logger.warning("shown")
    assert [e["event"] for e in read_log_events(tmp_path)] == ["shown"]


def test_read_log_events_missing(tmp_path):
    assert read_log_events(tmp_path / "nowhere") == []


def test_library_events_quiet_until_configured(capsys, tmp_path):
    key = bytes(32)
    encrypt(b"hunter2", key)
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""

    setup_logging(log_level="DEBUG", base_dir=tmp_path)
    encrypt(b"hunter2", key)
    [event] = [e for e in read_log_events(tmp_path) if e["event"] == "encrypted_data"]
    assert event["logger"] == "formvault.crypto.encryption"
    assert event["level"] == "debug"
    assert capsys.readouterr().out == ""


def test_reset_logger_restores_root_level(tmp_path):
    setup_logging(log_level="DEBUG", base_dir=tmp_path)
    reset_logger()
    assert logging.getLogger().level == logging.WARNING
