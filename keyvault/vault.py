"""
Access control for the password manager.

A vault handle is either a ``LockedVault``, which can only create an account
or authenticate, or an ``UnlockedVault``, which is bound to one
authenticated account and can read and change that account's entries.
The two classes share no operations, so a type checker rejects entry
access through a locked handle. An ``UnlockedVault`` can only be obtained
from a ``LockedVault``, and ``lock()`` turns it back into a new
``LockedVault`` while leaving the old handle unusable.

LEGAL NOTICE:
This module gates access to stored passwords. Use only on devices you own
or administer.
"""

import logging
from typing import List, Optional

from .crypto import Credential, CredentialHasher
from .errors import InvalidCredential, NotFound, VaultLocked
from .storage import RecordStore, SecretRecord

logger = logging.getLogger(__name__)

AUTH_FAILED_MESSAGE = "Invalid account name or master password"

# Only this module can mint unlocked handles.
_UNLOCK_TOKEN = object()


class LockedVault:
    """A vault handle with no authenticated account."""

    def __init__(self, store: RecordStore, hasher: Optional[CredentialHasher] = None):
        """
        Args:
            store: Open record store shared by every handle of this vault
            hasher: Credential hasher; defaults to the configured Argon2id costs
        """
        self._store = store
        self._hasher = hasher or CredentialHasher()

    def __repr__(self) -> str:
        return f"<LockedVault store={self._store.filepath!r}>"

    def create_account(self, name: str, master_credential: Credential) -> 'UnlockedVault':
        """
        Create a new account and return a handle unlocked for it.

        Raises:
            ValueError: If the name is empty or only whitespace
            IdentityExists: If the name is already taken
        """
        if not name or not name.strip():
            raise ValueError("Account name must not be empty")
        digest, salt = self._hasher.hash(master_credential)
        self._store.create_identity(name, digest, salt)
        logger.info(f"Account {name} created")
        return UnlockedVault(self._store, self._hasher, name, digest, _token=_UNLOCK_TOKEN)

    def authenticate(self, name: str, master_credential: Credential) -> 'UnlockedVault':
        """
        Verify a master credential and return a handle unlocked for the account.

        An unknown name and a wrong credential fail the same way and take
        the same time.

        Raises:
            InvalidCredential: If the name is unknown or the credential is wrong
            CorruptCredential: If the stored digest is malformed
        """
        try:
            record = self._store.get_credential(name)
        except NotFound:
            self._hasher.dummy_verify(master_credential)
            logger.warning(f"Authentication failed for {name!r}")
            raise InvalidCredential(AUTH_FAILED_MESSAGE) from None

        if not self._hasher.verify(master_credential, record.digest, record.salt):
            logger.warning(f"Authentication failed for {name!r}")
            raise InvalidCredential(AUTH_FAILED_MESSAGE)

        logger.info(f"Account {name} unlocked")
        return UnlockedVault(self._store, self._hasher, name, record.digest, _token=_UNLOCK_TOKEN)


class UnlockedVault:
    """A vault handle bound to one authenticated account."""

    def __init__(self, store: RecordStore, hasher: CredentialHasher, name: str, digest: str, *, _token=None):
        if _token is not _UNLOCK_TOKEN:
            raise TypeError("UnlockedVault is only created by LockedVault.create_account() or LockedVault.authenticate()")
        self._store = store
        self._hasher = hasher
        self._name: Optional[str] = name
        self._digest: Optional[bytearray] = bytearray(digest.encode('ascii'))

    def __repr__(self) -> str:
        if self.is_locked:
            return "<UnlockedVault (locked)>"
        return f"<UnlockedVault name={self._name!r}>"

    def __enter__(self) -> 'UnlockedVault':
        return self

    def __exit__(self, *exc_info) -> None:
        if not self.is_locked:
            self.lock()

    @property
    def name(self) -> str:
        """Name of the authenticated account."""
        return self._require_unlocked()

    @property
    def is_locked(self) -> bool:
        return self._name is None

    def _require_unlocked(self) -> str:
        if self._name is None:
            raise VaultLocked("This vault handle has been locked")
        return self._name

    def _verify_current(self, name: str, current: Credential) -> None:
        """Check the current master credential against the stored digest."""
        record = self._store.get_credential(name)
        if self._digest is not None and not self._hasher.secure_compare(bytes(self._digest), record.digest.encode('ascii')):
            logger.warning(f"Credential of {name} was changed by another session")
        if not self._hasher.verify(current, record.digest, record.salt):
            logger.warning(f"Master credential re-check failed for {name}")
            raise InvalidCredential(AUTH_FAILED_MESSAGE)

    def _replace_digest(self, digest: Optional[str]) -> None:
        if self._digest is not None:
            self._hasher.clear_bytes(self._digest)
        self._digest = bytearray(digest.encode('ascii')) if digest is not None else None

    def list_entries(self) -> List[SecretRecord]:
        """All entries of the account, oldest first."""
        return self._store.list_records(self._require_unlocked())

    def add_entry(self, label: str, account: str, secret: str) -> int:
        """
        Store a new entry.

        Returns:
            The id of the new entry
        """
        return self._store.add_record(self._require_unlocked(), label, account, secret)

    def remove_entry(self, label: str, account: str) -> int:
        """
        Remove every entry with this label and account.

        Returns:
            Number of entries removed

        Raises:
            NotFound: If no entry matched
        """
        return self._store.remove_record(self._require_unlocked(), label, account)

    def reset_master_credential(self, current: Credential, new: Credential) -> 'UnlockedVault':
        """
        Replace the master credential.

        ``current`` is checked against the stored digest on every call;
        being unlocked is not enough.

        Raises:
            InvalidCredential: If ``current`` does not verify
        """
        name = self._require_unlocked()
        self._verify_current(name, current)
        digest, salt = self._hasher.hash(new)
        self._store.set_credential(name, digest, salt)
        self._replace_digest(digest)
        logger.info(f"Master credential of {name} reset")
        return self

    def delete_account(self, current: Credential) -> LockedVault:
        """
        Delete the account and all of its entries, then lock.

        Raises:
            InvalidCredential: If ``current`` does not verify
        """
        name = self._require_unlocked()
        self._verify_current(name, current)
        self._store.delete_identity(name)
        logger.info(f"Account {name} deleted")
        return self.lock()

    def lock(self) -> LockedVault:
        """Wipe the held account state and return a locked handle."""
        name = self._require_unlocked()
        self._replace_digest(None)
        self._name = None
        logger.info(f"Account {name} locked")
        return LockedVault(self._store, self._hasher)


def open_vault(filepath: str, hasher: Optional[CredentialHasher] = None) -> LockedVault:
    """Open the record store at ``filepath`` and return a locked handle on it."""
    return LockedVault(RecordStore(filepath), hasher)
