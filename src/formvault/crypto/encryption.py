"""Authenticated encryption of secret buffers."""

import logging
from typing import Optional, Union

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCMSIV

from .errors import DecryptionFailedError, EncryptionError, MalformedKeyError
from .generate import RandomSource, draw_bytes
from .keys import KEY_LENGTH
from .memory import BytesLike, SecureBuffer

logger = structlog.wrap_logger(logging.getLogger(__name__))

NONCE_LENGTH = 12
TAG_LENGTH = 16
BLOB_OVERHEAD = NONCE_LENGTH + TAG_LENGTH

Secret = Union[SecureBuffer, BytesLike]


def _view(data: Secret) -> memoryview:
    if isinstance(data, SecureBuffer):
        return data.read()
    return memoryview(data).cast("B")


class AeadCodec:
    """AES-256-GCM-SIV sealing of secret buffers into self-describing blobs.

    A blob is laid out as ``nonce (12) || ciphertext (n) || tag (16)``. A new
    random nonce is drawn for every call; GCM-SIV keeps confidentiality intact
    even if a faulty random source ever repeats one.
    """

    def __init__(self, rng: Optional[RandomSource] = None):
        """Initialize the codec.

        Args:
            rng: Optional random source for nonces. If None, uses the
                process-wide system source.
        """
        self._rng = rng

    def encrypt(self, plaintext: Secret, key: Secret) -> SecureBuffer:
        """Encrypt a secret under a 32-byte key.

        Args:
            plaintext: The secret to seal.
            key: 32-byte encryption key.

        Returns:
            SecureBuffer holding nonce, ciphertext and tag.

        Raises:
            MalformedKeyError: If the key is not 32 bytes long.
            RngFailureError: If no nonce can be drawn.
            EncryptionError: If the cipher rejects the input.
        """
        key_view = _view(key)
        if len(key_view) != KEY_LENGTH:
            raise MalformedKeyError(
                f"Key must be {KEY_LENGTH} bytes, got {len(key_view)}"
            )

        data = _view(plaintext)
        nonce = draw_bytes(NONCE_LENGTH, self._rng)
        try:
            sealed = AESGCMSIV(key_view).encrypt(nonce, data, None)
        except (ValueError, OverflowError) as e:
            raise EncryptionError(f"Failed to encrypt data: {e}") from e

        blob = SecureBuffer.allocate_zeroed(NONCE_LENGTH + len(sealed))
        out = blob.write()
        out[:NONCE_LENGTH] = nonce
        out[NONCE_LENGTH:] = sealed

        logger.debug("encrypted_data", data_size=len(data), blob_size=len(blob))
        return blob

    def decrypt(self, blob: Secret, key: Secret) -> SecureBuffer:
        """Decrypt a blob produced by ``encrypt``.

        Every failure (short blob, wrong key length, wrong key, tampering)
        raises the same error with no cause attached.

        Args:
            blob: Nonce, ciphertext and tag.
            key: 32-byte encryption key.

        Returns:
            The plaintext in a SecureBuffer.

        Raises:
            DecryptionFailedError: If the blob cannot be opened.
        """
        key_view = _view(key)
        data = _view(blob)
        if len(data) < BLOB_OVERHEAD or len(key_view) != KEY_LENGTH:
            logger.debug("decryption_failed")
            raise DecryptionFailedError()

        try:
            plaintext = AESGCMSIV(key_view).decrypt(
                data[:NONCE_LENGTH], data[NONCE_LENGTH:], None
            )
        except (InvalidTag, ValueError):
            logger.debug("decryption_failed")
            raise DecryptionFailedError() from None

        logger.debug("decrypted_data", data_size=len(plaintext))
        return SecureBuffer.from_bytes(plaintext)


_default_codec = AeadCodec()


def encrypt(plaintext: Secret, key: Secret) -> SecureBuffer:
    """Encrypt with the default codec."""
    return _default_codec.encrypt(plaintext, key)


def decrypt(blob: Secret, key: Secret) -> SecureBuffer:
    """Decrypt with the default codec."""
    return _default_codec.decrypt(blob, key)
