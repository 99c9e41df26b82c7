"""Unlocked vault sessions.

A session holds the master key derived from the user's password and uses it
to seal every form name, prompt and answer before it reaches the vault. Sealed
values are stored as base64 text of the ciphertext blob, which never contains
the tab or newline bytes that delimit the vault format.
"""

import base64
import binascii
import logging
from typing import BinaryIO, Iterable, List, Optional, TextIO, Tuple, Union

import structlog

from .crypto import (
    AeadCodec,
    DecryptionFailedError,
    KeyDeriver,
    SecureBuffer,
    secure_buffer,
)
from .crypto.memory import BytesLike
from .storage import Field, FormNotFoundError, Vault

logger = structlog.wrap_logger(logging.getLogger(__name__))

# Larger than any realistic line typed at the prompt.
MAX_INPUT_LINE_LEN = 1024

Secret = Union[SecureBuffer, BytesLike]
PlainField = Tuple[SecureBuffer, SecureBuffer]


class SessionLockedError(Exception):
    """Raised when a locked session is used."""


def read_secret_line(
    stream: Union[BinaryIO, TextIO], max_length: int = MAX_INPUT_LINE_LEN
) -> Optional[SecureBuffer]:
    """Read one line from a stream straight into secure memory.

    Bytes are read one at a time into a fixed scratch buffer so the line is
    never held in a growing Python string. The trailing newline (and a
    carriage return before it) is dropped.

    Returns:
        The line, or None if the stream was already at end of input.

    Raises:
        ValueError: If the line is longer than ``max_length``. The rest of
            the line is consumed first, so the next read starts on a new line.
    """
    with secure_buffer(max_length) as scratch:
        out = scratch.write()
        count = 0
        overflow = False
        while True:
            char = stream.read(1)
            if not char:
                if count == 0 and not overflow:
                    return None
                break
            data = char.encode("utf-8") if isinstance(char, str) else char
            if data == b"\n":
                break
            if overflow or count + len(data) > max_length:
                overflow = True
                continue
            out[count:count + len(data)] = data
            count += len(data)
        if overflow:
            raise ValueError(f"Input line exceeds {max_length} bytes")
        if count and out[count - 1] == 0x0D:
            count -= 1
        return scratch.truncate(count)


def tokenize(line: SecureBuffer) -> List[SecureBuffer]:
    """Split a command line on spaces, dropping empty tokens."""
    view = line.read()
    tokens = []
    start = 0
    for i in range(len(view) + 1):
        if i == len(view) or view[i] == 0x20:
            if i > start:
                tokens.append(SecureBuffer.from_bytes(view[start:i]))
            start = i + 1
    return tokens


class VaultSession:
    """A vault together with the master key that seals its contents."""

    def __init__(
        self,
        master_key: SecureBuffer,
        salt: bytes,
        vault: Optional[Vault] = None,
        codec: Optional[AeadCodec] = None,
    ):
        self._key: Optional[SecureBuffer] = master_key
        self.salt = salt
        self.vault = vault if vault is not None else Vault()
        self._codec = codec if codec is not None else AeadCodec()

    @classmethod
    def unlock(
        cls,
        password: Secret,
        salt: bytes,
        vault: Optional[Vault] = None,
        deriver: Optional[KeyDeriver] = None,
        codec: Optional[AeadCodec] = None,
    ) -> "VaultSession":
        """Derive the master key from ``password`` and open a session.

        The password is not checked here; call ``verify()`` to confirm it
        opens the stored names.
        """
        deriver = deriver if deriver is not None else KeyDeriver()
        session = cls(deriver.derive(password, salt), salt, vault, codec)
        logger.info("vault_unlocked", forms=len(session.vault))
        return session

    @property
    def locked(self) -> bool:
        return self._key is None

    def lock(self) -> None:
        """Wipe the master key. Further use raises SessionLockedError."""
        if self._key is not None:
            self._key.wipe()
            self._key = None
            logger.info("vault_locked")

    def __enter__(self) -> "VaultSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.lock()

    def _master_key(self) -> SecureBuffer:
        if self._key is None:
            raise SessionLockedError("Session is locked")
        return self._key

    def seal(self, value: Secret) -> bytes:
        """Encrypt a value into its stored text form."""
        with self._codec.encrypt(value, self._master_key()) as blob:
            return base64.b64encode(blob.read())

    def open(self, token: bytes) -> SecureBuffer:
        """Decrypt a stored value.

        Raises:
            DecryptionFailedError: If the value is not a valid blob for the
                master key.
        """
        key = self._master_key()
        try:
            blob = base64.b64decode(token, validate=True)
        except binascii.Error:
            raise DecryptionFailedError() from None
        return self._codec.decrypt(blob, key)

    def verify(self) -> int:
        """Check that every stored name opens under the master key.

        Returns:
            The number of forms checked.

        Raises:
            DecryptionFailedError: If the password is wrong or data was
                tampered with.
        """
        count = 0
        for stored in self.vault.form_names():
            self.open(stored).wipe()
            count += 1
        return count

    def _find(self, name: Secret) -> Optional[bytes]:
        for stored in self.vault.form_names():
            with self.open(stored) as candidate:
                if candidate == name:
                    return stored
        return None

    def names(self) -> List[SecureBuffer]:
        """Decrypt and return all form names."""
        return [self.open(stored) for stored in self.vault.form_names()]

    def save_form(
        self, name: Secret, fields: Iterable[Tuple[Secret, Secret]]
    ) -> bool:
        """Seal and store a form, replacing any form with the same name.

        Returns:
            True if an existing form was replaced.
        """
        sealed = [
            Field(prompt=self.seal(prompt), answer=self.seal(answer))
            for prompt, answer in fields
        ]
        existing = self._find(name)
        if existing is not None:
            self.vault.remove(existing)
        self.vault.insert(self.seal(name), sealed)
        logger.info("saved_form", fields=len(sealed), replaced=existing is not None)
        return existing is not None

    def open_form(self, name: Secret) -> List[PlainField]:
        """Decrypt a form's fields in their stored order.

        Raises:
            FormNotFoundError: If no form has this name.
        """
        stored = self._find(name)
        if stored is None:
            raise FormNotFoundError("Form not found")
        return [
            (self.open(field.prompt), self.open(field.answer))
            for field in self.vault[stored]
        ]

    def remove_form(self, name: Secret) -> bool:
        """Delete a form. Returns False if it was not present."""
        stored = self._find(name)
        if stored is None:
            return False
        self.vault.remove(stored)
        logger.info("removed_form")
        return True
