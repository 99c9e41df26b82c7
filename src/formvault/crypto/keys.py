"""Password-based key derivation."""

import logging
from typing import Optional, Union

import structlog
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import BaseModel, ConfigDict, Field

from .generate import RandomSource, draw_bytes
from .memory import BytesLike, SecureBuffer

logger = structlog.wrap_logger(logging.getLogger(__name__))

PBKDF2_ITERATIONS = 300_000
KEY_LENGTH = 32
SALT_LENGTH = 16


class KeyDeriver(BaseModel):
    """PBKDF2-HMAC-SHA256 key derivation with fixed parameters.

    Parameters are validated when the deriver is built, so a zero iteration
    count or a too-short key length fails at construction rather than at
    call time.
    """

    model_config = ConfigDict(frozen=True)

    iterations: int = Field(default=PBKDF2_ITERATIONS, gt=0)
    key_length: int = Field(default=KEY_LENGTH, ge=16)

    def derive(
        self, password: Union[SecureBuffer, BytesLike], salt: BytesLike
    ) -> SecureBuffer:
        """Derive a symmetric key from a password and salt.

        Args:
            password: The master password.
            salt: Per-vault salt. Must be persisted with the vault and never
                shared between unrelated vaults.

        Returns:
            A SecureBuffer holding ``key_length`` bytes of key material.
        """
        if isinstance(password, SecureBuffer):
            password = password.read()

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=self.key_length,
            salt=bytes(salt),
            iterations=self.iterations,
        )
        key = SecureBuffer.from_bytes(kdf.derive(password))
        logger.debug(
            "derived_key",
            method="pbkdf2",
            iterations=self.iterations,
            salt_size=len(salt),
        )
        return key


_default_deriver = KeyDeriver()


def derive_key(
    password: Union[SecureBuffer, BytesLike], salt: BytesLike
) -> SecureBuffer:
    """Derive a 32-byte key with the default PBKDF2 parameters."""
    return _default_deriver.derive(password, salt)


def generate_salt(
    length: int = SALT_LENGTH, rng: Optional[RandomSource] = None
) -> bytes:
    """Draw a fresh random salt for a new vault.

    Raises:
        RngFailureError: If the random source fails.
    """
    if length <= 0:
        raise ValueError("salt length must be positive")
    return draw_bytes(length, rng)
