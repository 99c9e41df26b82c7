"""On-disk persistence of a vault and its key-derivation salt."""

import base64
import binascii
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Tuple, Union

import structlog

from ..crypto import RandomSource, generate_salt
from .vault import MalformedVaultDataError, Vault, VaultStoreError

logger = structlog.wrap_logger(logging.getLogger(__name__))


class VaultFile:
    """A vault stored as a salt header line followed by the serialized rows.

    Layout::

        base64(salt) \\n
        name \\t prompt \\t answer ... \\n
        ...
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def create(
        self, salt: Optional[bytes] = None, rng: Optional[RandomSource] = None
    ) -> bytes:
        """Create a new empty vault file with a fresh random salt.

        Returns:
            The salt written to the file.

        Raises:
            VaultStoreError: If the file already exists.
        """
        if self.exists():
            raise VaultStoreError(f"Vault already exists: {self.path}")
        if salt is None:
            salt = generate_salt(rng=rng)
        self.write(salt, Vault())
        logger.info("created_vault_file", path=str(self.path))
        return salt

    def read(self) -> Tuple[bytes, Vault]:
        """Read the salt and vault.

        Raises:
            FileNotFoundError: If the vault file doesn't exist.
            MalformedVaultDataError: If the file is corrupt.
        """
        data = self.path.read_bytes()
        header, sep, body = data.partition(b"\n")
        if not sep:
            raise MalformedVaultDataError("Vault file is missing its salt header")
        try:
            salt = base64.b64decode(header, validate=True)
        except binascii.Error as e:
            raise MalformedVaultDataError(f"Invalid salt header: {e}") from e
        if not salt:
            raise MalformedVaultDataError("Vault file has an empty salt")

        vault = Vault.load(body)
        logger.debug("read_vault_file", path=str(self.path), forms=len(vault))
        return salt, vault

    def write(self, salt: bytes, vault: Vault) -> None:
        """Atomically replace the vault file with owner-only permissions."""
        os.makedirs(self.path.parent, mode=0o700, exist_ok=True)
        payload = base64.b64encode(salt) + b"\n" + vault.dump()

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            _remove_quietly(tmp_name)
            raise

        logger.debug("wrote_vault_file", path=str(self.path), forms=len(vault))


def _remove_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
