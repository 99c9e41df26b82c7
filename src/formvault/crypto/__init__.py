"""Cryptographic utilities for the vault core."""

from .encryption import (
    BLOB_OVERHEAD,
    NONCE_LENGTH,
    TAG_LENGTH,
    AeadCodec,
    decrypt,
    encrypt,
)
from .errors import (
    DecryptionFailedError,
    EncryptionError,
    MalformedKeyError,
    RngFailureError,
)
from .generate import (
    ALPHANUMERIC,
    RandomSource,
    draw_bytes,
    random_bytes,
    random_string,
    system_random,
)
from .keys import (
    KEY_LENGTH,
    PBKDF2_ITERATIONS,
    SALT_LENGTH,
    KeyDeriver,
    derive_key,
    generate_salt,
)
from .memory import SecureBuffer, compare_bytes, secure_buffer, secure_zero_memory

__all__ = [
    # Encryption
    "AeadCodec",
    "encrypt",
    "decrypt",
    "NONCE_LENGTH",
    "TAG_LENGTH",
    "BLOB_OVERHEAD",
    # Errors
    "EncryptionError",
    "MalformedKeyError",
    "DecryptionFailedError",
    "RngFailureError",
    # Key derivation
    "KeyDeriver",
    "derive_key",
    "generate_salt",
    "KEY_LENGTH",
    "PBKDF2_ITERATIONS",
    "SALT_LENGTH",
    # Random generation
    "RandomSource",
    "system_random",
    "draw_bytes",
    "random_bytes",
    "random_string",
    "ALPHANUMERIC",
    # Memory security
    "SecureBuffer",
    "secure_buffer",
    "secure_zero_memory",
    "compare_bytes",
]
