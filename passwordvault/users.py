"""
Owner registration and authentication.

Owners are kept in a flat JSON list of {"username", "password_hash"} entries,
unique by username. Entries are never updated in place.
"""

import os
import json
import shutil
import threading
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Any

from .crypto import hash_password, secure_compare
from .errors import AuthenticationError, RegistrationConflictError
from .utils import set_owner_only_permissions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnerEntry:
    """A registered vault owner."""
    username: str
    password_hash: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OwnerEntry':
        return cls(username=data['username'], password_hash=data['password_hash'])


class UserStore(ABC):
    """Keyed store over owner entries."""

    @abstractmethod
    def find_by_username(self, username: str) -> Optional[OwnerEntry]:
        """Return the entry for username, or None."""

    @abstractmethod
    def insert(self, entry: OwnerEntry) -> None:
        """
        Persist a new entry.

        Raises:
            RegistrationConflictError: If the username is taken
        """


class JsonUserStore(UserStore):
    """UserStore backed by a JSON file, rewritten atomically on every insert."""

    def __init__(self, filepath: str):
        """
        Args:
            filepath: Path to the users file; a missing file is an empty store
        """
        self.filepath = str(filepath)
        self._lock = threading.Lock()

    def _load(self) -> List[OwnerEntry]:
        if not os.path.exists(self.filepath):
            return []
        with open(self.filepath, 'r', encoding='utf-8') as f:
            return [OwnerEntry.from_dict(e) for e in json.load(f)]

    def _save(self, entries: List[OwnerEntry]) -> None:
        tmp_path = self.filepath + '.tmp'
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump([e.to_dict() for e in entries], f, indent=2)

            # Atomic replace using shutil.move
            shutil.move(tmp_path, self.filepath)

            if not set_owner_only_permissions(self.filepath):
                logger.warning(f"Failed to set secure file permissions for users file: {self.filepath}.")
        except OSError as e:
            logger.error(f"Error saving users file {self.filepath}: {e}")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def find_by_username(self, username: str) -> Optional[OwnerEntry]:
        with self._lock:
            for entry in self._load():
                if entry.username == username:
                    return entry
            return None

    def insert(self, entry: OwnerEntry) -> None:
        with self._lock:
            entries = self._load()
            if any(e.username == entry.username for e in entries):
                raise RegistrationConflictError(entry.username)
            entries.append(entry)
            self._save(entries)


class Authenticator:
    """Registers owners and checks their passwords."""

    def __init__(self, users: UserStore):
        self.users = users

    def register(self, username: str, password: str) -> bool:
        """
        Register a new owner.

        Returns:
            True once the entry is persisted

        Raises:
            RegistrationConflictError: If the username already exists
        """
        self.users.insert(OwnerEntry(username=username, password_hash=hash_password(password)))
        logger.info(f"Registered user '{username}'")
        return True

    def verify(self, username: str, password: str) -> bool:
        """Check a password against the stored hash for username."""
        entry = self.users.find_by_username(username)
        if entry is None:
            return False
        return secure_compare(hash_password(password), entry.password_hash)

    def authenticate(self, username: str, password: str) -> str:
        """
        Authenticate an owner.

        Returns:
            The authenticated username

        Raises:
            AuthenticationError: If the username is unknown or the password is wrong
        """
        if not self.verify(username, password):
            logger.info(f"Failed login for '{username}'")
            raise AuthenticationError()
        logger.info(f"User '{username}' logged in")
        return username
