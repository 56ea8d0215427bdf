"""
Exception types raised by the password vault.

Messages carry identifiers only (owner, service, account, username), never
plaintext, ciphertext or key material.
"""


class VaultError(Exception):
    """Base class for all recoverable vault failures."""


class DecryptError(VaultError):
    """A sealed envelope could not be opened.

    Raised for a wrong key and for corrupted data alike; the two cases are
    deliberately not distinguished.
    """

    def __init__(self):
        super().__init__("Stored secret is unreadable")


class NotFoundError(VaultError):
    """No credential record exists for the identity key."""

    def __init__(self, owner: str, service: str, account: str):
        self.owner = owner
        self.service = service
        self.account = account
        super().__init__(f"No credential for {service} / {account}")


class ConflictError(VaultError):
    """A record with the same identity key was inserted concurrently."""

    def __init__(self, owner: str, service: str, account: str):
        self.owner = owner
        self.service = service
        self.account = account
        super().__init__(f"Credential for {service} / {account} already exists")


class RegistrationConflictError(VaultError):
    """The username is already registered."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"User '{username}' already exists")


class AuthenticationError(VaultError):
    """Username or password did not match."""

    def __init__(self):
        super().__init__("Incorrect username or password")
