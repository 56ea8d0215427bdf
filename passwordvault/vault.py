"""
Credential store: at most one sealed password per (owner, service, account).

The owner passed to every operation is trusted as already authenticated.
"""

import datetime
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from . import config
from .crypto import CipherEnvelope
from .errors import ConflictError, NotFoundError
from .storage import CredentialRecord, CredentialStorage
from .utils import generate_password

logger = logging.getLogger(__name__)

ACTION_INSERTED = "inserted"
ACTION_UPDATED = "updated"


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a put."""
    action: str
    secret: bytes
    generated: bool = False

    @property
    def inserted(self) -> bool:
        return self.action == ACTION_INSERTED


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class CredentialStore:
    """Maps (owner, service, account) to a sealed password."""

    def __init__(
        self,
        storage: CredentialStorage,
        cipher: CipherEnvelope,
        generator: Callable[[int], str] = generate_password,
        default_length: int = config.PASSWORD_GENERATOR_DEFAULT_LENGTH,
    ):
        self.storage = storage
        self.cipher = cipher
        self.generator = generator
        self.default_length = default_length

    def put(self, owner: str, service: str, account: str, secret: Optional[bytes] = None) -> StoreResult:
        """
        Store a password, replacing any existing one for the same identity key.

        Args:
            owner: Authenticated vault owner
            service: Service name, e.g. "Gmail"
            account: Username or email on that service
            secret: Password to store; generated when None or empty

        Returns:
            StoreResult with the action taken and the stored plaintext, which
            callers should show once when it was generated

        Raises:
            ConflictError: If a concurrent writer keeps the record in flux
        """
        generated = not secret
        if generated:
            secret = self.generator(self.default_length).encode('utf-8')

        envelope = self.cipher.seal(secret)
        now = _now()

        record = CredentialRecord(owner, service, account, envelope, created_at=now, updated_at=now)

        # Presence check only; the stored envelope is never decoded on this path
        if not self.storage.exists(owner, service, account):
            try:
                self.storage.insert(record)
                logger.info(f"Saved password for {service} ({owner})")
                return StoreResult(ACTION_INSERTED, secret, generated)
            except ConflictError:
                logger.info(f"Concurrent insert for {service} ({owner}), retrying as update")

        if not self.storage.replace(record):
            raise ConflictError(owner, service, account)
        logger.info(f"Updated password for {service} ({owner})")
        return StoreResult(ACTION_UPDATED, secret, generated)

    def get(self, owner: str, service: str, account: str) -> bytes:
        """
        Return the decrypted password.

        Raises:
            NotFoundError: If no record exists
            DecryptError: If the stored envelope cannot be opened
        """
        record = self.storage.find_by_key(owner, service, account)
        if record is None:
            raise NotFoundError(owner, service, account)
        return self.cipher.open(record.envelope)

    def delete(self, owner: str, service: str, account: str) -> bool:
        """Delete the record; False when there was none."""
        removed = self.storage.delete_by_key(owner, service, account)
        if removed:
            logger.info(f"Deleted password for {service} ({owner})")
        return removed
