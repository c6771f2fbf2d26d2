"""
Line-oriented interactive session for the password manager.
"""

import getpass
import logging
import string
import sys
from typing import Callable, Dict, Optional, TextIO

from . import config
from .errors import (
    CorruptCredential,
    IdentityExists,
    InvalidCredential,
    NotFound,
    StoreUnavailable,
    VaultError,
)
from .utils import log_action
from .vault import LockedVault, UnlockedVault

logger = logging.getLogger(__name__)

InputFunc = Callable[[str], str]

HELP_TEXT = """Commands:
  list     Show all entries
  add      Add an entry (prompts for label, account and secret)
  remove   Remove entries by label and account
  passwd   Change the master password
  help     Show this help
  lock     Lock the vault and exit (also: quit, exit)"""


class PasswordStrengthValidator:
    """Validates password strength."""

    @staticmethod
    def check_strength(password: str) -> tuple[bool, str]:
        """
        Check if password meets minimum requirements.

        Returns:
            Tuple of (is_strong, message)
        """
        if len(password) < config.PASSWORD_MIN_LENGTH:
            return False, f"Password must be at least {config.PASSWORD_MIN_LENGTH} characters long"

        has_upper = any(c.isupper() for c in password)
        has_lower = any(c.islower() for c in password)
        has_digit = any(c.isdigit() for c in password)
        has_special = any(c in string.punctuation for c in password)

        if not has_upper:
            return False, "Password must contain uppercase letters"
        if not has_lower:
            return False, "Password must contain lowercase letters"
        if not has_digit:
            return False, "Password must contain digits"
        if not has_special:
            return False, "Password must contain special characters"

        return True, "Password is strong"


class Console:
    """Prompting and printing, swappable for scripted sessions."""

    def __init__(
        self,
        input_func: Optional[InputFunc] = None,
        getpass_func: Optional[InputFunc] = None,
        out: Optional[TextIO] = None,
    ):
        self.input_func = input_func or input
        self.getpass_func = getpass_func or getpass.getpass
        self.out = out

    def ask(self, prompt: str) -> str:
        return self.input_func(prompt).strip()

    def ask_secret(self, prompt: str) -> str:
        return self.getpass_func(prompt)

    def say(self, message: str = "") -> None:
        print(message, file=self.out or sys.stdout)


def _ask_new_password(console: Console, prompt: str) -> Optional[str]:
    """Prompt for a new master password twice, enforcing the strength rules.

    Returns None once the attempts are used up.
    """
    for _ in range(config.MAX_LOGIN_ATTEMPTS):
        password = console.ask_secret(prompt)
        confirm = console.ask_secret("Confirm master password: ")
        if password != confirm:
            console.say("Passwords do not match")
            continue
        is_strong, message = PasswordStrengthValidator.check_strength(password)
        if not is_strong:
            console.say(message)
            continue
        return password
    return None


def create_account(locked: LockedVault, name: str, console: Console, audit_log: str) -> Optional[UnlockedVault]:
    """Interactively create an account. Returns None if it was not created."""
    try:
        password = _ask_new_password(console, "New master password: ")
    except EOFError:
        return None
    if password is None:
        console.say("Account not created.")
        return None

    try:
        vault = locked.create_account(name, password)
    except IdentityExists:
        console.say(f"Account {name} already exists.")
        return None
    except (StoreUnavailable, ValueError) as e:
        console.say(f"Failed to create account: {e}")
        return None

    log_action(audit_log, "ACCOUNT_CREATED", name)
    console.say(f"Account {name} created.")
    return vault


def login(locked: LockedVault, name: str, console: Console, audit_log: str) -> Optional[UnlockedVault]:
    """Prompt for the master password until it verifies or attempts run out."""
    attempts = 0
    while attempts < config.MAX_LOGIN_ATTEMPTS:
        try:
            password = console.ask_secret("Master password: ")
        except EOFError:
            return None
        try:
            vault = locked.authenticate(name, password)
        except InvalidCredential:
            attempts += 1
            log_action(audit_log, "LOGIN_FAILED", name)
            if attempts < config.MAX_LOGIN_ATTEMPTS:
                console.say(f"Invalid master password. Attempts left: {config.MAX_LOGIN_ATTEMPTS - attempts}")
            continue
        except CorruptCredential as e:
            logger.error(f"Stored credential for {name!r} is corrupt: {e}")
            console.say(f"The stored credential for {name} is corrupt. The vault file may be damaged.")
            return None
        except StoreUnavailable as e:
            console.say(f"Failed to unlock vault: {e}")
            return None
        log_action(audit_log, "LOGIN_OK", name)
        return vault

    console.say("Maximum login attempts reached.")
    return None


class VaultShell:
    """Reads one command per line and runs it against an unlocked vault."""

    def __init__(self, vault: UnlockedVault, console: Console, audit_log: str):
        self.vault = vault
        self.console = console
        self.audit_log = audit_log
        self.commands: Dict[str, Callable[[], None]] = {
            "list": self.list_entries,
            "ls": self.list_entries,
            "add": self.add_entry,
            "remove": self.remove_entry,
            "rm": self.remove_entry,
            "passwd": self.change_master_password,
            "help": self.show_help,
            "?": self.show_help,
        }

    def run(self) -> LockedVault:
        """Run until lock, quit or end of input, then lock the vault."""
        self.console.say(f"{config.APP_TITLE_PREFIX}: unlocked {self.vault.name}. Type 'help' for commands.")
        while True:
            try:
                line = self.console.ask(config.PROMPT)
            except EOFError:
                break
            command = line.lower()
            if not command:
                continue
            if command in ("lock", "quit", "exit"):
                break
            handler = self.commands.get(command)
            if handler is None:
                self.console.say(f"Unknown command: {line}. Type 'help' for commands.")
                continue
            try:
                handler()
            except EOFError:
                break
            except CorruptCredential as e:
                logger.error(f"Integrity fault during {command}: {e}")
                self.console.say(f"Stored credential is corrupt: {e}")
            except StoreUnavailable as e:
                self.console.say(f"Storage error, '{command}' was not completed: {e}")
            except VaultError as e:
                self.console.say(f"'{command}' failed: {e}")
        return self.lock()

    def lock(self) -> LockedVault:
        name = self.vault.name
        locked = self.vault.lock()
        log_action(self.audit_log, "LOCKED", name)
        self.console.say("Vault locked.")
        return locked

    def show_help(self) -> None:
        self.console.say(HELP_TEXT)

    def list_entries(self) -> None:
        entries = self.vault.list_entries()
        if not entries:
            self.console.say("No entries.")
            return
        width = max(len(e.label) for e in entries)
        for index, entry in enumerate(entries, start=1):
            self.console.say(f"{index:>3}. {entry.label:<{width}}  {entry.account}  {entry.secret}")

    def add_entry(self) -> None:
        label = self.console.ask("Label: ")
        if not label:
            self.console.say("Label must not be empty.")
            return
        account = self.console.ask("Account: ")
        secret = self.console.ask_secret("Secret: ")
        self.vault.add_entry(label, account, secret)
        log_action(self.audit_log, "ENTRY_ADDED", f"{self.vault.name}: {label}")
        self.console.say(f"Added {label} ({account}) {config.PASSWORD_HIDDEN_TEXT}")

    def remove_entry(self) -> None:
        label = self.console.ask("Label: ")
        account = self.console.ask("Account: ")
        try:
            removed = self.vault.remove_entry(label, account)
        except NotFound:
            self.console.say(f"No entry {label} for {account}.")
            return
        log_action(self.audit_log, "ENTRY_REMOVED", f"{self.vault.name}: {label} x{removed}")
        self.console.say(f"Removed {removed} entr{'y' if removed == 1 else 'ies'}.")

    def change_master_password(self) -> None:
        current = self.console.ask_secret("Current master password: ")
        new = _ask_new_password(self.console, "New master password: ")
        if new is None:
            self.console.say("Master password unchanged.")
            return
        try:
            self.vault.reset_master_credential(current, new)
        except InvalidCredential:
            log_action(self.audit_log, "CREDENTIAL_RESET_FAILED", self.vault.name)
            self.console.say("Current master password is incorrect. Master password unchanged.")
            return
        log_action(self.audit_log, "CREDENTIAL_RESET", self.vault.name)
        self.console.say("Master password changed.")
