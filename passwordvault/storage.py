"""
Persistence for encrypted credential records.

The identity key (owner, service, account) is enforced unique by each backend;
inserting a duplicate raises ConflictError. Records only ever hold sealed
envelopes, never plaintext.
"""

import os
import copy
import sqlite3
import threading
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from typing import Dict, Iterator, Optional, Tuple, Any

from .crypto import Envelope
from .errors import ConflictError
from .utils import set_owner_only_permissions

logger = logging.getLogger(__name__)

IdentityKey = Tuple[str, str, str]


@dataclass
class CredentialRecord:
    """Represents one stored credential."""
    owner: str
    service: str
    account: str
    envelope: Envelope
    created_at: str = ""
    updated_at: str = ""

    @property
    def key(self) -> IdentityKey:
        return (self.owner, self.service, self.account)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization, envelope as hex strings."""
        data = asdict(self)
        data['envelope'] = self.envelope.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CredentialRecord':
        """Create from dictionary."""
        fields = dict(data)
        fields['envelope'] = Envelope.from_dict(fields['envelope'])
        return cls(**fields)


class CredentialStorage(ABC):
    """Keyed store over credential records."""

    @abstractmethod
    def find_by_key(self, owner: str, service: str, account: str) -> Optional[CredentialRecord]:
        """Return the record for the identity key, or None."""

    @abstractmethod
    def exists(self, owner: str, service: str, account: str) -> bool:
        """Whether a record is stored under the identity key, readable or not."""

    @abstractmethod
    def insert(self, record: CredentialRecord) -> None:
        """
        Insert a new record.

        Raises:
            ConflictError: If a record with the same identity key exists
        """

    @abstractmethod
    def replace(self, record: CredentialRecord) -> bool:
        """Overwrite the envelope of an existing record. False if it is gone."""

    @abstractmethod
    def delete_by_key(self, owner: str, service: str, account: str) -> bool:
        """Remove the record. False if there was nothing to remove."""


class MemoryCredentialStorage(CredentialStorage):
    """In-process storage, mainly for tests and throwaway sessions."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[IdentityKey, CredentialRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def find_by_key(self, owner: str, service: str, account: str) -> Optional[CredentialRecord]:
        with self._lock:
            record = self._records.get((owner, service, account))
            return copy.copy(record) if record else None

    def exists(self, owner: str, service: str, account: str) -> bool:
        with self._lock:
            return (owner, service, account) in self._records

    def insert(self, record: CredentialRecord) -> None:
        with self._lock:
            if record.key in self._records:
                raise ConflictError(*record.key)
            self._records[record.key] = copy.copy(record)

    def replace(self, record: CredentialRecord) -> bool:
        with self._lock:
            existing = self._records.get(record.key)
            if existing is None:
                return False
            existing.envelope = record.envelope
            existing.updated_at = record.updated_at
            return True

    def delete_by_key(self, owner: str, service: str, account: str) -> bool:
        with self._lock:
            return self._records.pop((owner, service, account), None) is not None


class SQLiteCredentialStorage(CredentialStorage):
    """SQLite-backed storage, shareable between processes."""

    _COLUMNS = "owner, service, account, ciphertext, nonce, created_at, updated_at"

    def __init__(self, db_path: str):
        """
        Args:
            db_path: Path to the database file, created if missing
        """
        self.db_path = str(db_path)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        new_file = not os.path.exists(self.db_path)
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS credentials (
                    owner TEXT NOT NULL,
                    service TEXT NOT NULL,
                    account TEXT NOT NULL,
                    ciphertext TEXT NOT NULL,
                    nonce TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE(owner, service, account)
                );
            """)
        if new_file and not set_owner_only_permissions(self.db_path):
            logger.warning(f"Failed to set secure file permissions for vault: {self.db_path}.")

    @staticmethod
    def _row_to_record(row: tuple) -> CredentialRecord:
        """Decode a row; malformed hex raises DecryptError."""
        owner, service, account, ciphertext, nonce, created_at, updated_at = row
        return CredentialRecord.from_dict({
            'owner': owner,
            'service': service,
            'account': account,
            'envelope': {'ciphertext': ciphertext, 'nonce': nonce},
            'created_at': created_at,
            'updated_at': updated_at,
        })

    def find_by_key(self, owner: str, service: str, account: str) -> Optional[CredentialRecord]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM credentials "
                "WHERE owner = ? AND service = ? AND account = ?",
                (owner, service, account),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    def exists(self, owner: str, service: str, account: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM credentials WHERE owner = ? AND service = ? AND account = ?",
                (owner, service, account),
            ).fetchone()
        return row is not None

    def insert(self, record: CredentialRecord) -> None:
        data = record.to_dict()
        try:
            with self._connect() as conn:
                conn.execute(
                    f"INSERT INTO credentials ({self._COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        data['owner'],
                        data['service'],
                        data['account'],
                        data['envelope']['ciphertext'],
                        data['envelope']['nonce'],
                        data['created_at'],
                        data['updated_at'],
                    ),
                )
        except sqlite3.IntegrityError:
            raise ConflictError(*record.key) from None

    def replace(self, record: CredentialRecord) -> bool:
        envelope = record.envelope.to_dict()
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE credentials SET ciphertext = ?, nonce = ?, updated_at = ? "
                "WHERE owner = ? AND service = ? AND account = ?",
                (
                    envelope['ciphertext'],
                    envelope['nonce'],
                    record.updated_at,
                    record.owner,
                    record.service,
                    record.account,
                ),
            )
            return cursor.rowcount > 0

    def delete_by_key(self, owner: str, service: str, account: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM credentials WHERE owner = ? AND service = ? AND account = ?",
                (owner, service, account),
            )
            return cursor.rowcount > 0
