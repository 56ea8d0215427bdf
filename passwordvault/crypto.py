"""
Cryptographic operations for the password vault.

Every stored password is sealed into an Envelope: AES-256-CBC with a fresh
16-byte nonce as IV and PKCS7 padding, followed by an HMAC-SHA256 tag over
nonce and ciphertext (encrypt-then-MAC). Encryption and MAC subkeys are
derived from the single 32-byte process key with HKDF.

Never log plaintext, ciphertext or key material from this module.
"""

import os
import hashlib
from dataclasses import dataclass
from typing import Dict, Union

from argon2 import Type
from argon2.low_level import hash_secret_raw
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import constant_time, hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from . import config
from .errors import DecryptError


@dataclass(frozen=True)
class Envelope:
    """Ciphertext and nonce of one sealed secret."""
    ciphertext: bytes
    nonce: bytes

    def to_dict(self) -> Dict[str, str]:
        """Convert to lowercase hex strings for text-based storage."""
        return {"ciphertext": self.ciphertext.hex(), "nonce": self.nonce.hex()}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> 'Envelope':
        """Create from hex strings; malformed values are unreadable secrets."""
        try:
            return cls(
                ciphertext=bytes.fromhex(data["ciphertext"]),
                nonce=bytes.fromhex(data["nonce"]),
            )
        except (KeyError, TypeError, ValueError):
            raise DecryptError() from None


class CipherEnvelope:
    """Seals and opens secrets under a fixed process key."""

    def __init__(self, key: bytes):
        """
        Args:
            key: 32-byte process key, immutable for the lifetime of this object.
        """
        if len(key) != config.KEY_SIZE:
            raise ValueError(f"Process key must be {config.KEY_SIZE} bytes, got {len(key)}")
        self.backend = default_backend()
        self._enc_key = self._derive_subkey(key, config.ENCRYPTION_KEY_INFO)
        self._mac_key = self._derive_subkey(key, config.MAC_KEY_INFO)

    def _derive_subkey(self, key: bytes, info: bytes) -> bytes:
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=config.KEY_SIZE,
            salt=None,
            info=info,
            backend=self.backend
        )
        return hkdf.derive(key)

    def _tag(self, nonce: bytes, ciphertext: bytes) -> hmac.HMAC:
        mac = hmac.HMAC(self._mac_key, hashes.SHA256(), backend=self.backend)
        mac.update(nonce)
        mac.update(ciphertext)
        return mac

    def seal(self, plaintext: bytes) -> Envelope:
        """
        Encrypt a secret into a new envelope.

        A fresh nonce is drawn from the OS random source on every call, so
        sealing the same plaintext twice gives different envelopes. Failure
        of the random source is not handled here.

        Args:
            plaintext: Secret bytes to protect

        Returns:
            Envelope holding ciphertext (with trailing tag) and nonce
        """
        nonce = os.urandom(config.NONCE_SIZE)

        padder = padding.PKCS7(config.BLOCK_SIZE * 8).padder()
        padded = bytearray(padder.update(plaintext) + padder.finalize())

        cipher = Cipher(
            algorithms.AES(self._enc_key),
            modes.CBC(nonce),
            backend=self.backend
        )
        encryptor = cipher.encryptor()
        ciphertext = encryptor.update(bytes(padded)) + encryptor.finalize()
        clear_bytes(padded)

        tag = self._tag(nonce, ciphertext).finalize()
        return Envelope(ciphertext=ciphertext + tag, nonce=nonce)

    def open(self, envelope: Envelope) -> bytes:
        """
        Decrypt an envelope back to the secret.

        Raises:
            DecryptError: If the nonce or ciphertext has the wrong shape, the
                tag does not verify or the padding is malformed. A wrong key
                and corrupted data raise the same error.
        """
        nonce = envelope.nonce
        data = envelope.ciphertext
        if len(nonce) != config.NONCE_SIZE:
            raise DecryptError()
        if len(data) % config.BLOCK_SIZE != 0 or len(data) < config.BLOCK_SIZE + config.TAG_SIZE:
            raise DecryptError()

        ciphertext, tag = data[:-config.TAG_SIZE], data[-config.TAG_SIZE:]
        try:
            self._tag(nonce, ciphertext).verify(tag)
        except InvalidSignature:
            raise DecryptError() from None

        cipher = Cipher(
            algorithms.AES(self._enc_key),
            modes.CBC(nonce),
            backend=self.backend
        )
        decryptor = cipher.decryptor()
        padded = bytearray(decryptor.update(ciphertext) + decryptor.finalize())
        unpadder = padding.PKCS7(config.BLOCK_SIZE * 8).unpadder()
        try:
            return unpadder.update(bytes(padded)) + unpadder.finalize()
        except ValueError:
            raise DecryptError() from None
        finally:
            clear_bytes(padded)


def generate_salt() -> bytes:
    """Generate a cryptographically secure random salt."""
    return os.urandom(config.SALT_SIZE)


def derive_key(passphrase: str, salt: bytes) -> bytes:
    """
    Derive the 32-byte process key from the vault passphrase with Argon2id.

    Args:
        passphrase: The vault passphrase
        salt: Random salt kept next to the vault

    Returns:
        32-byte encryption key
    """
    return hash_secret_raw(
        secret=passphrase.encode('utf-8'),
        salt=salt,
        time_cost=config.ARGON2_TIME_COST,
        memory_cost=config.ARGON2_MEMORY_COST,
        parallelism=config.ARGON2_PARALLELISM,
        hash_len=config.KEY_SIZE,
        type=Type.ID
    )


def hash_password(password: str) -> str:
    """One-way hash of an owner password, as lowercase hex SHA-256."""
    return hashlib.sha256(password.encode('utf-8')).hexdigest()


def secure_compare(a: Union[str, bytes], b: Union[str, bytes]) -> bool:
    """Constant-time comparison to prevent timing attacks."""
    if isinstance(a, str):
        a = a.encode('utf-8')
    if isinstance(b, str):
        b = b.encode('utf-8')
    return constant_time.bytes_eq(a, b)


def clear_bytes(data: bytearray) -> None:
    """Overwrite a mutable buffer holding sensitive bytes."""
    if isinstance(data, bytearray):
        for i in range(len(data)):
            data[i] = 0
