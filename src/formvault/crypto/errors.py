"""Exceptions raised by the cryptographic layer."""


class EncryptionError(Exception):
    """Base exception for encryption operations."""


class MalformedKeyError(EncryptionError):
    """Raised when a key of the wrong length is supplied for encryption."""


class DecryptionFailedError(EncryptionError):
    """Raised when a ciphertext blob cannot be opened.

    Deliberately carries no detail: a wrong key, a tampered blob and a
    truncated blob all produce the same error.
    """

    def __init__(self) -> None:
        super().__init__("decryption failed")


class RngFailureError(EncryptionError):
    """Raised when the secure random source cannot supply bytes."""
