import os
import stat
import logging
import platform

logger = logging.getLogger(__name__)

IS_WINDOWS = platform.system() == "Windows"

if IS_WINDOWS:
    try:
        import ntsecuritycon
        import win32api
        import win32security
        WINDOWS_SECURITY_AVAILABLE = True
    except ImportError:
        logger.warning("pywin32 not fully installed, cannot set Windows file permissions securely.")
        WINDOWS_SECURITY_AVAILABLE = False
else:
    WINDOWS_SECURITY_AVAILABLE = False


def set_owner_only_permissions(filepath: str) -> bool:
    """
    Restrict a file to its owner: mode 600 on POSIX, a protected
    single-entry DACL on Windows.

    Returns:
        False if the permissions could not be applied
    """
    if IS_WINDOWS:
        return _restrict_windows_acl(filepath)
    os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)
    return True


def _restrict_windows_acl(filepath: str) -> bool:
    if not WINDOWS_SECURITY_AVAILABLE:
        logger.warning(f"Skipping Windows file permission setting for {filepath}: pywin32 not available.")
        return False

    try:
        owner_sid, _, _ = win32security.LookupAccountName(None, win32api.GetUserName())
        dacl = win32security.ACL()
        dacl.AddAccessAllowedAce(
            win32security.ACL_REVISION,
            ntsecuritycon.FILE_GENERIC_READ | ntsecuritycon.FILE_GENERIC_WRITE,
            owner_sid,
        )
        # Protected: entries inherited from the parent directory are dropped.
        win32security.SetNamedSecurityInfo(
            filepath,
            win32security.SE_FILE_OBJECT,
            win32security.DACL_SECURITY_INFORMATION | win32security.PROTECTED_DACL_SECURITY_INFORMATION,
            None,
            None,
            dacl,
            None,
        )
    except win32api.error as e:
        if e.winerror == 5:  # Access is denied
            logger.warning(f"Could not harden permissions for {filepath}: access is denied. The file was written.")
            return True
        logger.error(f"Failed to set Windows file permissions for {filepath}: {e}")
        return False
    return True
