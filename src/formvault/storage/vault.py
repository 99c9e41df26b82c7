"""Vault data model and its tab-separated serialization."""

import logging
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

import structlog
from pydantic import BaseModel, ConfigDict, field_validator

logger = structlog.wrap_logger(logging.getLogger(__name__))

FIELD_SEPARATOR = b"\t"
ROW_SEPARATOR = b"\n"
_RESERVED = (FIELD_SEPARATOR, ROW_SEPARATOR)

Name = Union[bytes, bytearray, memoryview]


class VaultStoreError(Exception):
    """Base exception for vault storage operations."""


class MalformedVaultDataError(VaultStoreError):
    """Raised when serialized vault data cannot be parsed."""


class FormNotFoundError(VaultStoreError):
    """Raised when a form is not present in the vault."""


def _check_value(value: bytes, what: str) -> bytes:
    if any(sep in value for sep in _RESERVED):
        raise ValueError(f"{what} must not contain tab or newline bytes")
    return value


class Field(BaseModel):
    """A prompt/answer pair, e.g. ("password", "hunter2").

    Values are usually base64 text of ciphertext blobs. Tab and newline bytes
    are rejected because they delimit the serialized vault.
    """

    model_config = ConfigDict(frozen=True)

    prompt: bytes
    answer: bytes

    @field_validator("prompt", "answer")
    @classmethod
    def _no_separators(cls, value: bytes) -> bytes:
        return _check_value(value, "field values")


# Any sequence of fields, including an empty one, is a valid form.
Form = Tuple[Field, ...]


class Vault:
    """Maps form names to forms.

    Serializes to ``name\\tprompt1\\tanswer1\\tprompt2\\tanswer2\\n`` per form.
    Row order is unspecified; the empty vault serializes to ``b""``.
    """

    def __init__(self, forms: Optional[Mapping[Name, Iterable[Field]]] = None):
        self._forms: Dict[bytes, Form] = {}
        if forms:
            for name, form in forms.items():
                self.insert(name, form)

    def dump(self) -> bytes:
        """Serialize the vault into tab-separated rows."""
        rows = []
        for name, form in self._forms.items():
            parts = [name]
            for field in form:
                parts.append(field.prompt)
                parts.append(field.answer)
            rows.append(FIELD_SEPARATOR.join(parts) + ROW_SEPARATOR)
        return b"".join(rows)

    @classmethod
    def load(cls, data: Name) -> "Vault":
        """Deserialize tab-separated rows into a vault.

        Rows with an empty name are skipped, so blank lines and rows made of
        tabs only are tolerated.

        Raises:
            MalformedVaultDataError: If a row has a prompt without an answer.
        """
        vault = cls()
        for number, row in enumerate(bytes(data).split(ROW_SEPARATOR), start=1):
            name, *tokens = row.split(FIELD_SEPARATOR)
            if not name:
                continue
            if len(tokens) % 2:
                raise MalformedVaultDataError(
                    f"Row {number} has a prompt without an answer"
                )
            vault._forms[name] = tuple(
                Field(prompt=prompt, answer=answer)
                for prompt, answer in zip(tokens[::2], tokens[1::2])
            )

        logger.debug("loaded_vault", forms=len(vault), size=len(data))
        return vault

    def insert(self, name: Name, form: Iterable[Field]) -> Optional[Form]:
        """Write or overwrite ``vault[name]``.

        Returns:
            The form that was replaced, or None.

        Raises:
            ValueError: If the name is empty or contains tab or newline bytes.
            TypeError: If the form contains something other than fields.
        """
        name = _check_value(bytes(name), "form names")
        if not name:
            raise ValueError("form names must not be empty")
        fields = tuple(form)
        for field in fields:
            if not isinstance(field, Field):
                raise TypeError(f"expected Field, got {type(field).__name__}")
        previous = self._forms.get(name)
        self._forms[name] = fields
        return previous

    def remove(self, name: Name) -> Optional[Form]:
        """Delete a form, returning it, or None if it was not present."""
        return self._forms.pop(bytes(name), None)

    def get(self, name: Name) -> Optional[Form]:
        return self._forms.get(bytes(name))

    def form_names(self) -> Iterator[bytes]:
        """Iterate once over the stored form names, in no particular order."""
        return iter(list(self._forms))

    def items(self) -> Iterator[Tuple[bytes, Form]]:
        return iter(list(self._forms.items()))

    def is_empty(self) -> bool:
        return not self._forms

    def __len__(self) -> int:
        return len(self._forms)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, (bytes, bytearray, memoryview)):
            return False
        return bytes(name) in self._forms

    def __getitem__(self, name: Name) -> Form:
        return self._forms[bytes(name)]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vault):
            return NotImplemented
        return self._forms == other._forms

    def __repr__(self) -> str:
        return f"Vault(forms={len(self)})"
