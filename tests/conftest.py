"""
Shared fixtures for the vault test suite.

Argon2 runs with minimal cost parameters here so the suite stays fast; the
parameters travel inside every digest, so verification behaves the same as
with the production costs.
"""

from __future__ import annotations

import pytest

from keyvault.crypto import CredentialHasher
from keyvault.storage import RecordStore
from keyvault.vault import LockedVault


@pytest.fixture
def hasher():
    return CredentialHasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "vault.db")


@pytest.fixture
def store(db_path):
    s = RecordStore(db_path)
    yield s
    s.close()


@pytest.fixture
def locked(store, hasher):
    return LockedVault(store, hasher)
