"""
Exceptions raised by the vault, the record store and the credential hasher.
"""


class VaultError(Exception):
    """Base class for every failure the vault reports to its caller."""


class IdentityExists(VaultError):
    """An account with this name already exists."""


class NotFound(VaultError):
    """The identity or the record does not exist."""


class InvalidCredential(VaultError):
    """Authentication failed.

    Raised both for a wrong master credential and for an unknown account
    name, with the same message, so callers cannot tell which names exist.
    """


class CorruptCredential(VaultError):
    """The stored digest or salt for an identity is malformed.

    This points at a damaged vault file rather than a mistyped password.
    """


class StoreUnavailable(VaultError):
    """The underlying database could not be opened, read or written."""


class VaultLocked(VaultError):
    """An unlocked handle was used after it had been locked."""
