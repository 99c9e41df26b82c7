"""Shared test fixtures."""

from pathlib import Path

import pytest

from formvault.audit import reset_logger


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging state between tests."""
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    return tmp_path
