import datetime
import logging
import os
import platform
import stat

from . import config

logger = logging.getLogger(__name__)


def set_file_permissions(filepath: str) -> bool:
    """
    Set file to be readable/writable by owner only.
    Returns False where the platform does not support POSIX modes.
    """
    if platform.system() == 'Windows':
        logger.warning(f"Skipping file permission hardening for {filepath}: not supported on Windows.")
        return False
    try:
        os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)  # 600
    except OSError as e:
        logger.error(f"Failed to set file permissions for {filepath}: {e}")
        return False
    return True


def default_vault_path() -> str:
    """Get the default path for the vault database, creating its directory."""
    home = os.path.expanduser("~")
    app_dir = os.path.join(home, config.CONFIG_DIR_NAME)
    os.makedirs(app_dir, exist_ok=True)
    return os.path.join(app_dir, config.DEFAULT_VAULT_FILE)


def audit_log_path(vault_path: str) -> str:
    """Path of the audit log kept next to a vault file."""
    vault_dir = os.path.dirname(os.path.abspath(vault_path))
    return os.path.join(vault_dir, config.AUDIT_LOG_DIR, config.AUDIT_LOG_FILE)


def log_action(log_file: str, action: str, details: str) -> None:
    """Append a security-relevant action to the audit log.

    Never pass credentials or secret values in ``details``.
    """
    timestamp = datetime.datetime.now().isoformat()
    try:
        os.makedirs(os.path.dirname(log_file), exist_ok=True)
        with open(log_file, 'a', encoding='utf-8') as f:
            f.write(f"{timestamp} | {action} | {details}\n")
    except OSError as e:
        logger.warning(f"Could not write audit log {log_file}: {e}")
