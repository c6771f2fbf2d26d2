"""
KeyVault Password Manager
Copyright (c) 2026

LEGAL NOTICE AND THREAT MODEL:
This tool is for personal use only. It must operate only on the device where
it is installed and only with the explicit consent of the device owner. The
master password gates access through this application; entries are stored
unencrypted inside the vault file, which is readable by anyone who can read
the file itself. Keep the file private (it is created with mode 600).
"""

from .crypto import CredentialHasher
from .errors import (
    CorruptCredential,
    IdentityExists,
    InvalidCredential,
    NotFound,
    StoreUnavailable,
    VaultError,
    VaultLocked,
)
from .storage import CredentialRecord, RecordStore, SecretRecord
from .vault import LockedVault, UnlockedVault, open_vault

__all__ = [
    "CredentialHasher",
    "CredentialRecord",
    "RecordStore",
    "SecretRecord",
    "LockedVault",
    "UnlockedVault",
    "open_vault",
    "VaultError",
    "IdentityExists",
    "NotFound",
    "InvalidCredential",
    "CorruptCredential",
    "StoreUnavailable",
    "VaultLocked",
]
