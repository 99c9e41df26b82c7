"""Vault storage: the in-memory form mapping and its file persistence."""

from .file import VaultFile
from .vault import (
    Field,
    Form,
    FormNotFoundError,
    MalformedVaultDataError,
    Vault,
    VaultStoreError,
)

__all__ = [
    "Field",
    "Form",
    "FormNotFoundError",
    "MalformedVaultDataError",
    "Vault",
    "VaultFile",
    "VaultStoreError",
]
