"""
Main entry point for the KeyVault Password Manager.

LEGAL NOTICE:
This tool is for personal use only. It must operate only on the device where
it is installed and only with the explicit consent of the device owner.
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import config
from .cli import Console, VaultShell, create_account, login
from .crypto import CredentialHasher
from .errors import StoreUnavailable
from .storage import RecordStore
from .utils import audit_log_path, default_vault_path
from .vault import LockedVault, UnlockedVault

logger = logging.getLogger(__name__)


class PasswordManagerApp:
    """Main application class for the password manager."""

    def __init__(
        self,
        storage_path: Optional[str] = None,
        user: Optional[str] = None,
        new_account: bool = False,
        hasher: Optional[CredentialHasher] = None,
        console: Optional[Console] = None,
    ):
        """Initialize the application."""
        self.storage_path = storage_path or default_vault_path()
        self.user = user
        self.new_account = new_account
        self.hasher = hasher
        self.console = console or Console()
        self.audit_log = audit_log_path(self.storage_path)

        self.store: Optional[RecordStore] = None
        self.vault: Optional[UnlockedVault] = None

    def run(self) -> int:
        """
        Run the application.
        Returns:
            0 after a normal lock or end of input, 1 if no account was
            unlocked, 2 if the vault file could not be opened
        """
        try:
            self.store = RecordStore(self.storage_path)
        except StoreUnavailable as e:
            self.console.say(f"Cannot open vault {self.storage_path}: {e}")
            return 2
        locked = LockedVault(self.store, self.hasher)

        name = self.user
        if not name:
            try:
                name = self.console.ask("Account name: ")
            except EOFError:
                return 1
        if not name:
            self.console.say("Account name must not be empty.")
            return 1

        if self.new_account:
            self.vault = create_account(locked, name, self.console, self.audit_log)
        else:
            self.vault = login(locked, name, self.console, self.audit_log)
        if self.vault is None:
            return 1

        VaultShell(self.vault, self.console, self.audit_log).run()
        return 0

    def cleanup(self):
        """Clean up resources."""
        if self.vault is not None and not self.vault.is_locked:
            self.vault.lock()
        if self.store is not None:
            self.store.close()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="keyvault", description=config.APP_NAME)
    p.add_argument("--db", help=f"Path to the vault file (default: ~/{config.CONFIG_DIR_NAME}/{config.DEFAULT_VAULT_FILE})")
    p.add_argument("--user", help="Account name (prompted if omitted)")
    p.add_argument("--new", action="store_true", help="Create a new account instead of unlocking one")
    p.add_argument("--debug", action="store_true", help="Log debug output to stderr")
    p.add_argument("--version", action="version", version=config.APP_TITLE_PREFIX)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    )

    app = PasswordManagerApp(storage_path=args.db, user=args.user, new_account=args.new)
    try:
        return app.run()
    except KeyboardInterrupt:
        print("\nAborted by user.")
        return 1
    finally:
        app.cleanup()


if __name__ == "__main__":
    sys.exit(main())
