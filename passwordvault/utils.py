import os
import platform
import secrets
import stat
import logging

from . import config

logger = logging.getLogger(__name__)

if platform.system() == "Windows":
    try:
        import win32security
        import win32api
        import win32con
        WINDOWS_SECURITY_AVAILABLE = True
    except ImportError:
        logger.warning("pywin32 not fully installed, cannot set Windows file permissions securely.")
        WINDOWS_SECURITY_AVAILABLE = False
else:
    WINDOWS_SECURITY_AVAILABLE = False


def generate_password(length: int = config.PASSWORD_GENERATOR_DEFAULT_LENGTH) -> str:
    """
    Generate a random password from the generator alphabet.

    Each character is drawn independently and uniformly with the secrets module.
    """
    if length < 1:
        raise ValueError("Password length must be at least 1")
    alphabet = config.PASSWORD_GENERATOR_ALPHABET
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def set_owner_only_permissions(filepath: str) -> bool:
    """
    Make a file readable/writable by its owner only.

    Returns:
        True if the permissions were applied (or hardening was only partial on
        Windows), False otherwise
    """
    if platform.system() == 'Windows':
        return _set_windows_file_permissions(filepath)
    os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)  # 600
    return True


def _set_windows_file_permissions(filepath: str) -> bool:
    """Replace the file's DACL with a single read/write entry for the current user."""
    if not WINDOWS_SECURITY_AVAILABLE:
        logger.warning(f"Skipping Windows file permission setting for {filepath}: pywin32 not available.")
        return False

    try:
        user_sid, _, _ = win32security.LookupAccountName(None, win32api.GetUserName())
        dacl = win32security.ACL()
        dacl.AddAccessAllowedAce(
            win32security.ACL_REVISION,
            win32con.GENERIC_READ | win32con.GENERIC_WRITE,
            user_sid
        )
        # PROTECTED drops entries inherited from the parent directory
        win32security.SetNamedSecurityInfo(
            filepath,
            win32security.SE_FILE_OBJECT,
            win32security.DACL_SECURITY_INFORMATION | win32security.PROTECTED_DACL_SECURITY_INFORMATION,
            None,
            None,
            dacl,
            None
        )
    except win32api.error as e:
        if e.winerror == 5:  # Access is denied
            logger.warning(f"Could not harden Windows permissions for {filepath}: access is denied.")
            return True
        logger.error(f"Failed to set Windows file permissions for {filepath}: {e}")
        return False
    logger.info(f"Set owner-only permissions for {filepath}.")
    return True
