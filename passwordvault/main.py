"""
Main entry point for the PasswordVault command line.

Runs an interactive session: optional registration, login, then a menu to
store, retrieve and delete passwords until the user logs out.
"""

import os
import sys
import getpass
import logging
from typing import Callable, Optional

from . import config
from .crypto import CipherEnvelope, derive_key, generate_salt
from .errors import (
    AuthenticationError,
    ConflictError,
    DecryptError,
    NotFoundError,
    RegistrationConflictError,
)
from .storage import SQLiteCredentialStorage
from .users import Authenticator, JsonUserStore
from .utils import set_owner_only_permissions
from .vault import CredentialStore

logger = logging.getLogger(__name__)


class VaultApp:
    """Interactive vault session for a single owner."""

    def __init__(
        self,
        authenticator: Authenticator,
        store: CredentialStore,
        input_func: Callable[[str], str] = input,
        password_func: Callable[[str], str] = getpass.getpass,
        output: Callable[[str], None] = print,
    ):
        self.authenticator = authenticator
        self.store = store
        self._input = input_func
        self._password = password_func
        self._print = output
        self.logged_in_user: Optional[str] = None

    def _ask(self, prompt: str, allow_empty: bool = False) -> str:
        while True:
            value = self._input(prompt).strip()
            if value or allow_empty:
                return value

    def _register(self) -> None:
        username = self._ask("Enter new username: ")
        password = self._password("Enter new password: ")
        try:
            self.authenticator.register(username, password)
            self._print(f"User '{username}' created successfully!")
        except RegistrationConflictError:
            self._print("User already exists.")

    def _login(self) -> bool:
        """Prompt for credentials until login succeeds or attempts run out."""
        self._print(f"\nWelcome to {config.APP_NAME}!")
        for _ in range(config.MAX_LOGIN_ATTEMPTS):
            username = self._ask("Enter username: ")
            password = self._password("Enter password: ")
            try:
                self.logged_in_user = self.authenticator.authenticate(username, password)
                self._print(f"Successfully logged in as {username}")
                return True
            except AuthenticationError:
                self._print("Incorrect username or password. Try again.")
        self._print("Too many failed login attempts.")
        return False

    def _store_password(self) -> None:
        service = self._ask("Enter service name: ")
        account = self._ask("Enter username: ")
        password = self._password("Enter password (leave empty to generate): ")
        secret = password.encode('utf-8') if password else None
        try:
            result = self.store.put(self.logged_in_user, service, account, secret)
        except ConflictError:
            self._print("The password was changed by another session. Try again.")
            return
        except DecryptError:
            self._print("Stored password is unreadable.")
            return
        if result.generated:
            self._print(f"Generated Password: {result.secret.decode('utf-8')}")
        if result.inserted:
            self._print(f"Password saved for {service} and {account}")
        else:
            self._print(f"Updated password for {service} and {account}")

    def _retrieve_password(self) -> None:
        service = self._ask("Enter service name: ")
        account = self._ask("Enter username: ")
        try:
            secret = self.store.get(self.logged_in_user, service, account)
        except NotFoundError:
            self._print("No password found.")
            return
        except DecryptError:
            self._print("Stored password is unreadable.")
            return
        self._print(f"Password for {service}: {secret.decode('utf-8', errors='replace')}")

    def _delete_password(self) -> None:
        service = self._ask("Enter service name: ")
        account = self._ask("Enter username: ")
        if self.store.delete(self.logged_in_user, service, account):
            self._print(f"Deleted password for {service}")
        else:
            self._print("No password found.")

    def _main_menu(self) -> bool:
        """Handle one menu choice. Returns False on logout."""
        self._print("\nMenu:")
        self._print("1. Store a password")
        self._print("2. Retrieve a password")
        self._print("3. Delete a password")
        self._print("4. Logout & Exit")
        choice = self._input("Choose an option: ").strip()

        if choice == "1":
            self._store_password()
        elif choice == "2":
            self._retrieve_password()
        elif choice == "3":
            self._delete_password()
        elif choice == "4":
            self._print("Logging out...")
            return False
        else:
            self._print("Invalid choice. Try again.")
        return True

    def run(self) -> int:
        """Run the session. Returns the process exit code."""
        current_state = config.STATE_STARTUP
        exit_code = 0

        while current_state != config.STATE_EXIT:
            try:
                if current_state == config.STATE_STARTUP:
                    answer = self._input("Do you want to register a new user? (yes/no): ")
                    if answer.strip().lower() == "yes":
                        self._register()
                    current_state = config.STATE_LOGIN

                elif current_state == config.STATE_LOGIN:
                    if self._login():
                        current_state = config.STATE_MAIN_MENU
                    else:
                        exit_code = 1
                        current_state = config.STATE_EXIT

                elif current_state == config.STATE_MAIN_MENU:
                    if not self._main_menu():
                        current_state = config.STATE_EXIT

            except EOFError:
                # stdin closed
                self._print("")
                current_state = config.STATE_EXIT

        self.logged_in_user = None
        return exit_code


def _read_salt(path: str) -> bytes:
    with open(path, 'rb') as f:
        salt = f.read()
    if len(salt) != config.SALT_SIZE:
        raise ValueError(f"Key salt file {path} is corrupt")
    return salt


def load_or_create_salt(path: str) -> bytes:
    """
    Read the key derivation salt, creating it on first run.

    The file is created exclusively, so when two processes start a new vault
    at once both end up with the salt written by whichever came first.
    """
    if os.path.exists(path):
        return _read_salt(path)

    salt = generate_salt()
    try:
        with open(path, 'xb') as f:
            f.write(salt)
    except FileExistsError:
        return _read_salt(path)
    if not set_owner_only_permissions(path):
        logger.warning(f"Failed to set secure file permissions for key salt: {path}.")
    logger.info(f"Created new key salt at {path}")
    return salt


def build_app(data_dir: str, passphrase: str, **io) -> VaultApp:
    """Wire the stores and cipher for a vault living in data_dir."""
    os.makedirs(data_dir, exist_ok=True)
    salt = load_or_create_salt(os.path.join(data_dir, config.KEY_SALT_FILE))
    cipher = CipherEnvelope(derive_key(passphrase, salt))

    storage = SQLiteCredentialStorage(os.path.join(data_dir, config.DEFAULT_VAULT_FILE))
    users = JsonUserStore(os.path.join(data_dir, config.USERS_FILE))
    return VaultApp(Authenticator(users), CredentialStore(storage, cipher), **io)


def main():
    """Main entry point."""
    logging.basicConfig(level=config.get_log_level(), format=config.LOG_FORMAT)

    print(config.APP_DISCLAIMER)
    passphrase = config.get_passphrase()
    try:
        if passphrase is None:
            passphrase = getpass.getpass("Vault passphrase: ")
    except (EOFError, KeyboardInterrupt):
        return 1
    if not passphrase:
        print("A vault passphrase is required.")
        return 1

    app = build_app(config.get_data_dir(), passphrase)
    try:
        return app.run()
    except KeyboardInterrupt:
        print("\nLogging out...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
