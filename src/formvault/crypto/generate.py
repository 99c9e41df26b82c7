"""Secure random generation for salts, nonces and new passwords."""

import logging
import secrets
import string
from typing import Callable, Optional, Union

import structlog

from .errors import RngFailureError
from .memory import BytesLike, SecureBuffer, secure_zero_memory

logger = structlog.wrap_logger(logging.getLogger(__name__))

# A random source returns exactly n cryptographically secure random bytes.
RandomSource = Callable[[int], bytes]

ALPHANUMERIC = (string.ascii_letters + string.digits).encode("ascii")
CHUNK_SIZE = 128


def system_random(length: int) -> bytes:
    """Process-wide secure random source backed by the operating system."""
    return secrets.token_bytes(length)


def draw_bytes(length: int, rng: Optional[RandomSource] = None) -> bytes:
    """Draw ``length`` bytes from ``rng`` (default: the system source).

    Raises:
        RngFailureError: If the source raises or returns the wrong amount.
    """
    source = system_random if rng is None else rng
    try:
        data = source(length)
    except Exception as e:
        raise RngFailureError(f"Random source failed: {e}") from e
    if len(data) != length:
        raise RngFailureError(
            f"Random source returned {len(data)} bytes, expected {length}"
        )
    return data


def random_bytes(length: int, rng: Optional[RandomSource] = None) -> SecureBuffer:
    """Return ``length`` random bytes in a SecureBuffer."""
    return SecureBuffer.from_bytes(bytearray(draw_bytes(length, rng)))


def random_string(
    length: int,
    alphabet: Union[str, BytesLike] = ALPHANUMERIC,
    rng: Optional[RandomSource] = None,
    chunk_size: int = CHUNK_SIZE,
) -> SecureBuffer:
    """Generate a random string uniformly distributed over ``alphabet``.

    Bytes are drawn in chunks and mapped with rejection sampling: a byte is
    accepted only below the largest multiple of the alphabet size that fits
    in 256, which removes the bias of a plain modulo.

    Args:
        length: Number of characters to produce.
        alphabet: Distinct characters to draw from (1 to 256 of them).
        rng: Optional random source, mainly for tests.
        chunk_size: How many random bytes to draw at a time.

    Returns:
        A SecureBuffer of exactly ``length`` bytes.

    Raises:
        ValueError: If the arguments are out of range.
        RngFailureError: If the random source fails.
    """
    if isinstance(alphabet, str):
        alphabet = alphabet.encode("ascii")
    alphabet = bytes(alphabet)
    size = len(alphabet)
    if not 0 < size <= 256:
        raise ValueError("alphabet must contain between 1 and 256 characters")
    if len(set(alphabet)) != size:
        raise ValueError("alphabet characters must be distinct")
    if length < 0:
        raise ValueError("length must not be negative")
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    limit = (256 // size) * size
    result = SecureBuffer.allocate_zeroed(length)
    out = result.write()
    produced = 0
    drawn = 0
    while produced < length:
        chunk = bytearray(draw_bytes(chunk_size, rng))
        drawn += chunk_size
        for byte in chunk:
            if byte >= limit:
                continue
            out[produced] = alphabet[byte % size]
            produced += 1
            if produced == length:
                break
        secure_zero_memory(chunk)

    logger.debug("generated_random_string", length=length, bytes_drawn=drawn)
    return result
