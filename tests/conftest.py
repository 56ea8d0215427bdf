import os

import pytest

from passwordvault.crypto import CipherEnvelope
from passwordvault.storage import MemoryCredentialStorage, SQLiteCredentialStorage
from passwordvault.users import Authenticator, JsonUserStore
from passwordvault.vault import CredentialStore


@pytest.fixture
def key():
    return os.urandom(32)


@pytest.fixture
def cipher(key):
    return CipherEnvelope(key)


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    """Each credential store test runs against both backends."""
    if request.param == "memory":
        return MemoryCredentialStorage()
    return SQLiteCredentialStorage(tmp_path / "vault.db")


@pytest.fixture
def store(storage, cipher):
    return CredentialStore(storage, cipher)


@pytest.fixture
def authenticator(tmp_path):
    return Authenticator(JsonUserStore(tmp_path / "users.json"))


@pytest.fixture
def fast_kdf(monkeypatch):
    """Cheap Argon2 parameters so key derivation does not dominate test time."""
    monkeypatch.setattr("passwordvault.config.ARGON2_MEMORY_COST", 1024)
    monkeypatch.setattr("passwordvault.config.ARGON2_TIME_COST", 1)
    monkeypatch.setattr("passwordvault.config.ARGON2_PARALLELISM", 1)
