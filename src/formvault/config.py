"""Runtime configuration."""

import platform
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .crypto import ALPHANUMERIC, PBKDF2_ITERATIONS, SALT_LENGTH

ENV_PREFIX = "FORMVAULT_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
MAX_PASSWORD_LENGTH = 4096


def default_data_dir() -> Path:
    """Get platform-specific default data directory."""
    system = platform.system().lower()
    if system == "windows":
        base = Path.home() / "AppData/Local/formvault"
    elif system == "darwin":
        base = Path.home() / "Library/Application Support/formvault"
    else:  # Linux and others
        base = Path.home() / ".local/share/formvault"
    return base


class Settings(BaseSettings):
    """Settings for the vault, the CLI and logging.

    Every field can be set from a ``FORMVAULT_<FIELD>`` environment variable;
    keyword arguments take precedence over the environment.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX, env_ignore_empty=True, extra="ignore"
    )

    vault_path: Path = Field(default_factory=lambda: default_data_dir() / "vault.tsv")
    kdf_iterations: int = Field(default=PBKDF2_ITERATIONS, gt=0)
    salt_length: int = Field(default=SALT_LENGTH, ge=16)
    password_length: int = Field(default=20, gt=0, le=MAX_PASSWORD_LENGTH)
    password_alphabet: str = ALPHANUMERIC.decode("ascii")
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return value

    @field_validator("password_alphabet")
    @classmethod
    def _usable_alphabet(cls, value: str) -> str:
        if not value.isascii() or not 0 < len(value) <= 256:
            raise ValueError("password_alphabet must be 1 to 256 ASCII characters")
        if len(set(value)) != len(value):
            raise ValueError("password_alphabet characters must be distinct")
        return value
