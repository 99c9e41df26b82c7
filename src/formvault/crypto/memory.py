"""Secure memory handling utilities."""

import ctypes
from contextlib import contextmanager
from typing import Any, Iterator, NoReturn, Union

BytesLike = Union[bytes, bytearray, memoryview]


def secure_zero_memory(data: Union[bytearray, memoryview]) -> None:
    """Securely zero memory containing sensitive data.

    Args:
        data: A writable buffer (bytearray or writable memoryview) to clear.

    Raises:
        TypeError: If the buffer is read-only, e.g. a bytes object.
    """
    view = memoryview(data).cast("B")
    try:
        if view.readonly:
            raise TypeError("cannot zero a read-only buffer")
        length = len(view)
        if not length:
            return
        arr = (ctypes.c_char * length).from_buffer(view)
        try:
            ctypes.memset(ctypes.addressof(arr), 0, length)
        finally:
            del arr
    finally:
        view.release()


def compare_bytes(a: BytesLike, b: BytesLike) -> bool:
    """Compare two byte strings in constant time.

    Args:
        a: First byte string.
        b: Second byte string.

    Returns:
        True if the strings are equal, False otherwise.
    """
    a = memoryview(a).cast("B")
    b = memoryview(b).cast("B")
    if len(a) != len(b):
        return False

    result = 0
    for x, y in zip(a, b):
        result |= x ^ y
    return result == 0


class SecureBuffer:
    """Fixed-length byte buffer that is wiped before its storage is released.

    The backing bytearray is pinned by a held buffer export, so it can never
    be resized (and therefore never reallocated) while the buffer is alive.
    Contents are zeroed by ``wipe()``, when the buffer is used as a context
    manager and exits, and when the object is garbage collected.
    """

    __slots__ = ("_data", "_pin")

    def __init__(self, data: bytearray):
        if not isinstance(data, bytearray):
            raise TypeError("SecureBuffer requires a bytearray")
        self._data = data
        self._pin = memoryview(data)

    @classmethod
    def allocate_zeroed(cls, length: int) -> "SecureBuffer":
        """Allocate a buffer of ``length`` zero bytes."""
        if length < 0:
            raise ValueError("length must not be negative")
        return cls(bytearray(length))

    @classmethod
    def from_bytes(cls, data: Union[BytesLike, "SecureBuffer"]) -> "SecureBuffer":
        """Take ownership of existing plaintext bytes.

        A bytearray is adopted as-is and must not be used by the caller
        afterwards. Immutable inputs are copied, since Python offers no way to
        wipe a bytes object; callers should prefer bytearrays for secrets.
        """
        if isinstance(data, SecureBuffer):
            return data.copy()
        if isinstance(data, bytearray):
            return cls(data)
        view = memoryview(data).cast("B")
        buf = cls.allocate_zeroed(len(view))
        buf._pin[:] = view
        return buf

    def read(self) -> memoryview:
        """Read-only view over the full byte range."""
        return self._pin.toreadonly()

    def write(self) -> memoryview:
        """Writable view over the full byte range."""
        return self._pin[:]

    def wipe(self) -> None:
        """Overwrite every byte with zero. Safe to call repeatedly."""
        secure_zero_memory(self._pin)

    def truncate(self, length: int) -> "SecureBuffer":
        """Return a new buffer owning a copy of the first ``length`` bytes."""
        if length < 0 or length > len(self):
            raise ValueError(
                f"cannot truncate a {len(self)}-byte buffer to {length} bytes"
            )
        shorter = SecureBuffer.allocate_zeroed(length)
        shorter._pin[:] = self._pin[:length]
        return shorter

    def copy(self) -> "SecureBuffer":
        return self.truncate(len(self))

    def __copy__(self) -> "SecureBuffer":
        return self.copy()

    def __deepcopy__(self, memo: Any) -> "SecureBuffer":
        return self.copy()

    def __reduce__(self) -> NoReturn:
        raise TypeError("SecureBuffer cannot be pickled")

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return len(self._data) > 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecureBuffer):
            return compare_bytes(self._pin, other._pin)
        if isinstance(other, (bytes, bytearray, memoryview)):
            return compare_bytes(self._pin, other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"SecureBuffer(len={len(self)})"

    def __enter__(self) -> "SecureBuffer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe()

    def __del__(self) -> None:
        pin = getattr(self, "_pin", None)
        if pin is not None:
            secure_zero_memory(pin)


@contextmanager
def secure_buffer(length: int) -> Iterator[SecureBuffer]:
    """Create a zeroed secure buffer that will be wiped on exit.

    Yields:
        A SecureBuffer of ``length`` bytes.
    """
    buf = SecureBuffer.allocate_zeroed(length)
    try:
        yield buf
    finally:
        buf.wipe()
