"""
PasswordVault
Copyright (c) 2025

THREAT MODEL:
Passwords are sealed with AES-256-CBC plus an HMAC-SHA256 tag under a single
process key derived from the vault passphrase. Owner accounts are checked
against unsalted SHA-256 hashes and only gate which records a session can
reach; confidentiality rests on the passphrase. Decrypted passwords exist in
process memory while in use.
"""

from .config import APP_VERSION as __version__
from .crypto import CipherEnvelope, Envelope
from .errors import (
    AuthenticationError,
    ConflictError,
    DecryptError,
    NotFoundError,
    RegistrationConflictError,
    VaultError,
)
from .storage import CredentialRecord, MemoryCredentialStorage, SQLiteCredentialStorage
from .users import Authenticator, JsonUserStore
from .vault import CredentialStore, StoreResult

__all__ = [
    "AuthenticationError",
    "Authenticator",
    "CipherEnvelope",
    "ConflictError",
    "CredentialRecord",
    "CredentialStore",
    "DecryptError",
    "Envelope",
    "JsonUserStore",
    "MemoryCredentialStorage",
    "NotFoundError",
    "RegistrationConflictError",
    "SQLiteCredentialStorage",
    "StoreResult",
    "VaultError",
]
