"""
Configuration constants for the PasswordVault application.
"""

import os
import string

# Application Metadata
APP_VERSION = "1.0.0"  # Use: Current version of the application. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "PasswordVault"  # Use: Name of the application, shown in the CLI banner. Type: str. Range: Any valid string.
# Use: Notice printed when the CLI starts. Type: str (multi-line). Range: Any valid string.
APP_DISCLAIMER = """\
Secrets are encrypted locally. Keep your vault passphrase safe: without it the
stored passwords cannot be recovered.
"""

# Security Settings
KEY_SIZE = 32  # Use: Size of the process encryption key in bytes. Corresponds to AES-256. Type: int. Range: 32 bytes only.
NONCE_SIZE = 16  # Use: Size of the per-envelope nonce (CBC initialization vector) in bytes. Type: int. Range: 16 bytes, the AES block size.
BLOCK_SIZE = 16  # Use: AES block size in bytes, used for padding and ciphertext length checks. Type: int. Range: 16 bytes.
TAG_SIZE = 32  # Use: Size of the HMAC-SHA256 authentication tag appended to each ciphertext. Type: int. Range: 32 bytes.
SALT_SIZE = 16  # Use: Size of the salt used to derive the process key from the passphrase. Type: int. Range: Recommended to be at least 16 bytes (128 bits).
ARGON2_TIME_COST = 2  # Use: Argon2id time cost parameter. Controls the number of iterations. Type: int. Range: Typically 1 to 10.
ARGON2_MEMORY_COST = 65536  # Use: Argon2id memory cost parameter in KiB. Type: int. Range: Recommended to be at least 65536 (64 MB).
ARGON2_PARALLELISM = 4  # Use: Argon2id parallelism parameter (threads/lanes). Type: int. Range: Typically 1 to 8.
ENCRYPTION_KEY_INFO = b"passwordvault-encryption"  # Use: HKDF info label for the AES subkey. Type: bytes. Range: Any value distinct from MAC_KEY_INFO.
MAC_KEY_INFO = b"passwordvault-authentication"  # Use: HKDF info label for the HMAC subkey. Type: bytes. Range: Any value distinct from ENCRYPTION_KEY_INFO.
MAX_LOGIN_ATTEMPTS = 5  # Use: Consecutive failed logins before the CLI gives up and exits with status 1. Type: int. Range: Positive integer (e.g., 3-10).

# Password Generator Settings
PASSWORD_GENERATOR_DEFAULT_LENGTH = 12  # Use: Length of passwords generated when none is supplied. Type: int. Range: Positive integer.
PASSWORD_GENERATOR_SYMBOLS = "!@#$%^&*()-_=+"  # Use: Symbols allowed in generated passwords. Type: str. Range: Any string of printable characters.
PASSWORD_GENERATOR_ALPHABET = (  # Use: Full alphabet sampled by the generator (76 characters). Type: str. Range: Any non-empty string.
    string.ascii_lowercase
    + string.ascii_uppercase
    + string.digits
    + PASSWORD_GENERATOR_SYMBOLS
)

# File and Directory Names
CONFIG_DIR_NAME = ".passwordvault"  # Use: Hidden directory in the user's home where the vault keeps its files. Type: str. Range: Any valid directory name.
DEFAULT_VAULT_FILE = "vault.db"  # Use: SQLite database holding the encrypted credential records. Type: str. Range: Any valid filename.
USERS_FILE = "users.json"  # Use: Flat JSON list of registered owners and their password hashes. Type: str. Range: Any valid filename.
KEY_SALT_FILE = "key.salt"  # Use: File holding the salt for passphrase key derivation. Type: str. Range: Any valid filename.

# Environment Variables
ENV_HOME = "PASSWORDVAULT_HOME"  # Use: Overrides the data directory. Type: str. Range: Environment variable name.
ENV_PASSPHRASE = "PASSWORDVAULT_PASSPHRASE"  # Use: Supplies the vault passphrase without prompting. Type: str. Range: Environment variable name.
ENV_LOG_LEVEL = "PASSWORDVAULT_LOG_LEVEL"  # Use: Logging level name for the CLI. Type: str. Range: Environment variable name.

# Logging Settings
LOG_LEVEL_DEFAULT = "WARNING"  # Use: Logging level when PASSWORDVAULT_LOG_LEVEL is unset. Type: str. Range: DEBUG, INFO, WARNING, ERROR, CRITICAL.
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'  # Use: Format string passed to logging.basicConfig. Type: str. Range: Any valid logging format.

# Application State Machine States
STATE_STARTUP = "STARTUP"  # Use: Initial state, offers registration. Type: str. Range: Any string.
STATE_LOGIN = "LOGIN"  # Use: Login prompt state. Type: str. Range: Any string.
STATE_MAIN_MENU = "MAIN_MENU"  # Use: Store/retrieve/delete menu state. Type: str. Range: Any string.
STATE_EXIT = "EXIT"  # Use: Terminal state. Type: str. Range: Any string.


def get_data_dir() -> str:
    """Directory holding the vault files, honouring PASSWORDVAULT_HOME."""
    override = os.environ.get(ENV_HOME)
    if override:
        return os.path.expanduser(override)
    return os.path.join(os.path.expanduser("~"), CONFIG_DIR_NAME)


def get_log_level() -> str:
    return os.environ.get(ENV_LOG_LEVEL, LOG_LEVEL_DEFAULT).upper()


def get_passphrase():
    """Passphrase from the environment, or None when it must be prompted for."""
    return os.environ.get(ENV_PASSPHRASE) or None
