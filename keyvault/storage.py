"""
Storage management for the password manager.

LEGAL NOTICE:
This module handles local storage of passwords. All data stays in a file on
this device and is never transmitted. Use only on devices you own or administer.
"""

import sqlite3
import threading
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterator, List

from . import config
from .errors import IdentityExists, NotFound, StoreUnavailable
from .utils import set_file_permissions

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS identities (
    name TEXT PRIMARY KEY,
    credential_digest TEXT NOT NULL,
    credential_salt BLOB NOT NULL
);
CREATE TABLE IF NOT EXISTS secrets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_name TEXT NOT NULL REFERENCES identities(name) ON DELETE CASCADE,
    label TEXT NOT NULL,
    account TEXT NOT NULL,
    secret TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS secrets_owner ON secrets(owner_name);
"""


@dataclass
class CredentialRecord:
    """The stored master credential digest of one identity."""
    name: str
    digest: str = field(repr=False)
    salt: bytes = field(repr=False)


@dataclass
class SecretRecord:
    """Represents a single password entry."""
    id: int
    owner: str
    label: str
    account: str
    secret: str = field(repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'SecretRecord':
        """Create from a ``secrets`` table row."""
        return cls(
            id=row['id'],
            owner=row['owner_name'],
            label=row['label'],
            account=row['account'],
            secret=row['secret'],
        )


class RecordStore:

    """Durable store of identities, their credential digests and their secrets."""

    def __init__(self, filepath: str, timeout: float = config.STORE_TIMEOUT_SECONDS):

        """
        Open (and if needed create) the vault database.
        Args:
            filepath: Path to the SQLite vault file, or ":memory:"
            timeout: Seconds to wait for another process's write lock
        Raises:
            StoreUnavailable: If the file cannot be opened or initialised
        """
        self.filepath = filepath
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(
                filepath,
                timeout=timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            logger.error(f"Could not open vault store {filepath}: {e}")
            raise StoreUnavailable(f"Could not open vault store at {filepath}") from e

        if filepath != ":memory:" and not set_file_permissions(filepath):
            logger.warning(f"Failed to set secure file permissions for vault: {filepath}. This might indicate a permission issue.")
        logger.debug(f"Opened vault store {filepath}")

    def __enter__(self) -> 'RecordStore':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed statements as one write transaction."""
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                logger.error(f"Could not start a transaction on {self.filepath}: {e}")
                raise StoreUnavailable("Vault store is unavailable") from e
            try:
                yield self._conn
            except BaseException:
                self._rollback()
                raise
            else:
                try:
                    self._conn.execute("COMMIT")
                except sqlite3.Error as e:
                    self._rollback()
                    raise StoreUnavailable("Vault store commit failed") from e

    def _rollback(self) -> None:
        # SQLite already rolls back on some errors (e.g. disk full)
        if self._conn.in_transaction:
            self._conn.execute("ROLLBACK")

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        """Surface any driver failure as StoreUnavailable."""
        try:
            yield
        except sqlite3.Error as e:
            logger.error(f"{operation} failed on {self.filepath}: {e}", exc_info=True)
            raise StoreUnavailable(f"{operation} failed") from e

    @staticmethod
    def _require_identity(conn: sqlite3.Connection, name: str) -> None:
        row = conn.execute("SELECT 1 FROM identities WHERE name = ?", (name,)).fetchone()
        if row is None:
            raise NotFound(f"No such account: {name}")

    def create_identity(self, name: str, digest: str, salt: bytes) -> None:
        """
        Create an identity with its credential digest.
        Raises:
            IdentityExists: If the name is already taken
        """
        with self._translate_errors("Create identity"):
            try:
                with self._transaction() as conn:
                    conn.execute(
                        "INSERT INTO identities (name, credential_digest, credential_salt) VALUES (?, ?, ?)",
                        (name, digest, salt),
                    )
            except sqlite3.IntegrityError as e:
                raise IdentityExists(f"Account {name} already exists") from e
        logger.info(f"Created identity {name}")

    def identity_exists(self, name: str) -> bool:
        """Check whether an identity with this name exists."""
        with self._translate_errors("Identity lookup"), self._transaction() as conn:
            row = conn.execute("SELECT 1 FROM identities WHERE name = ?", (name,)).fetchone()
        return row is not None

    def get_credential(self, name: str) -> CredentialRecord:
        """
        Fetch the credential digest and salt of an identity.
        Raises:
            NotFound: If the identity does not exist
        """
        with self._translate_errors("Credential lookup"), self._transaction() as conn:
            row = conn.execute(
                "SELECT name, credential_digest, credential_salt FROM identities WHERE name = ?",
                (name,),
            ).fetchone()
        if row is None:
            raise NotFound(f"No such account: {name}")
        return CredentialRecord(
            name=row['name'],
            digest=row['credential_digest'],
            salt=row['credential_salt'],
        )

    def set_credential(self, name: str, digest: str, salt: bytes) -> None:
        """
        Replace the digest and salt of an identity in one statement.
        Raises:
            NotFound: If the identity does not exist
        """
        with self._translate_errors("Credential update"), self._transaction() as conn:
            cur = conn.execute(
                "UPDATE identities SET credential_digest = ?, credential_salt = ? WHERE name = ?",
                (digest, salt, name),
            )
            if cur.rowcount == 0:
                raise NotFound(f"No such account: {name}")
        logger.info(f"Updated credential for identity {name}")

    def delete_identity(self, name: str) -> None:
        """
        Delete an identity and every record it owns.
        Raises:
            NotFound: If the identity does not exist
        """
        with self._translate_errors("Delete identity"), self._transaction() as conn:
            self._require_identity(conn, name)
            conn.execute("DELETE FROM secrets WHERE owner_name = ?", (name,))
            conn.execute("DELETE FROM identities WHERE name = ?", (name,))
        logger.info(f"Deleted identity {name}")

    def add_record(self, owner: str, label: str, account: str, secret: str) -> int:
        """
        Add a new password entry for an identity.
        Returns:
            The id of the new record
        Raises:
            NotFound: If the owner does not exist
        """
        with self._translate_errors("Add record"), self._transaction() as conn:
            self._require_identity(conn, owner)
            cur = conn.execute(
                "INSERT INTO secrets (owner_name, label, account, secret) VALUES (?, ?, ?, ?)",
                (owner, label, account, secret),
            )
            record_id = cur.lastrowid
        logger.debug(f"Added record {record_id} for {owner}")
        return record_id

    def list_records(self, owner: str) -> List[SecretRecord]:
        """
        Get all password entries of an identity in insertion order.
        Raises:
            NotFound: If the owner does not exist
        """
        with self._translate_errors("List records"), self._transaction() as conn:
            self._require_identity(conn, owner)
            rows = conn.execute(
                "SELECT id, owner_name, label, account, secret FROM secrets WHERE owner_name = ? ORDER BY id",
                (owner,),
            ).fetchall()
        return [SecretRecord.from_row(row) for row in rows]

    def remove_record(self, owner: str, label: str, account: str) -> int:
        """
        Delete every entry of an identity matching label and account.
        Returns:
            Number of records removed (at least 1)
        Raises:
            NotFound: If the owner does not exist or nothing matched
        """
        with self._translate_errors("Remove record"), self._transaction() as conn:
            self._require_identity(conn, owner)
            cur = conn.execute(
                "DELETE FROM secrets WHERE owner_name = ? AND label = ? AND account = ?",
                (owner, label, account),
            )
            removed = cur.rowcount
            if removed == 0:
                raise NotFound(f"No entry {label!r} for account {account!r}")
        logger.debug(f"Removed {removed} record(s) for {owner}")
        return removed
