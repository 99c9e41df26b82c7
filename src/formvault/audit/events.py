"""Audit event type definitions."""

from enum import Enum


class EventType(str, Enum):
    """Audit event types."""

    # Vault events
    VAULT_INIT = "vault.init"
    VAULT_UNLOCK = "vault.unlock"
    VAULT_LOCK = "vault.lock"

    # Form events
    FORM_SAVE = "form.save"
    FORM_READ = "form.read"
    FORM_DELETE = "form.delete"
    FORM_LIST = "form.list"

    # Generator events
    PASSWORD_GENERATE = "password.generate"

    # Error events
    ERROR_UNLOCK = "error.unlock"
    ERROR_VAULT = "error.vault"
