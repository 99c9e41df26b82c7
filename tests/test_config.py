"""Tests for runtime settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from formvault.config import MAX_PASSWORD_LENGTH, Settings, default_data_dir
from formvault.crypto import ALPHANUMERIC, PBKDF2_ITERATIONS, SALT_LENGTH


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Drop any FORMVAULT_* variables inherited from the outer environment."""
    for name in list(Settings.model_fields):
        monkeypatch.delenv(f"FORMVAULT_{name.upper()}", raising=False)


def test_defaults(mock_home):
    settings = Settings()
    assert settings.kdf_iterations == PBKDF2_ITERATIONS
    assert settings.salt_length == SALT_LENGTH
    assert settings.password_length == 20
    assert settings.password_alphabet.encode("ascii") == ALPHANUMERIC
    assert settings.log_level == "INFO"
    assert settings.log_dir is None
    assert settings.vault_path == default_data_dir() / "vault.tsv"
    assert str(settings.vault_path).startswith(str(mock_home))


def test_environment(monkeypatch):
    monkeypatch.setenv("FORMVAULT_VAULT_PATH", "/tmp/vault.tsv")
    monkeypatch.setenv("FORMVAULT_KDF_ITERATIONS", "1000")
    monkeypatch.setenv("FORMVAULT_LOG_LEVEL", "debug")
    monkeypatch.setenv("FORMVAULT_PASSWORD_ALPHABET", "abc")
    monkeypatch.setenv("FORMVAULT_UNRELATED", "ignored")

    settings = Settings()
    assert settings.vault_path == Path("/tmp/vault.tsv")
    assert settings.kdf_iterations == 1000
    assert settings.log_level == "DEBUG"
    assert settings.password_alphabet == "abc"


def test_environment_ignores_empty_values(monkeypatch):
    monkeypatch.setenv("FORMVAULT_KDF_ITERATIONS", "")
    assert Settings().kdf_iterations == PBKDF2_ITERATIONS


def test_keyword_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("FORMVAULT_PASSWORD_LENGTH", "32")
    monkeypatch.setenv("FORMVAULT_LOG_LEVEL", "ERROR")
    settings = Settings(log_level="warning")
    assert settings.password_length == 32
    assert settings.log_level == "WARNING"


@pytest.mark.parametrize(
    "values",
    [
        {"kdf_iterations": 0},
        {"salt_length": 8},
        {"password_length": 0},
        {"password_length": MAX_PASSWORD_LENGTH + 1},
        {"log_level": "LOUD"},
        {"password_alphabet": ""},
        {"password_alphabet": "aab"},
        {"password_alphabet": "é"},
    ],
)
def test_invalid_settings(values):
    with pytest.raises(ValidationError):
        Settings(**values)


def test_invalid_environment_value(monkeypatch):
    monkeypatch.setenv("FORMVAULT_KDF_ITERATIONS", "many")
    with pytest.raises(ValidationError):
        Settings()
