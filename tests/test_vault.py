"""Tests for the locked/unlocked vault handles."""

import os
import threading

import pytest

from keyvault import crypto
from keyvault.errors import (
    CorruptCredential,
    IdentityExists,
    InvalidCredential,
    NotFound,
    StoreUnavailable,
    VaultLocked,
)
from keyvault.storage import RecordStore
from keyvault.vault import AUTH_FAILED_MESSAGE, LockedVault, UnlockedVault, open_vault


def entries_of(vault):
    return [(r.label, r.account, r.secret) for r in vault.list_entries()]


class TestCreateAccount:
    def test_returns_unlocked_handle(self, locked):
        vault = locked.create_account("dustin", "1234")
        assert isinstance(vault, UnlockedVault)
        assert vault.name == "dustin"
        assert vault.list_entries() == []

    def test_name_taken(self, locked):
        locked.create_account("dustin", "1234")
        with pytest.raises(IdentityExists):
            locked.create_account("dustin", "other")

    def test_name_taken_keeps_original_credential(self, locked):
        locked.create_account("dustin", "1234")
        with pytest.raises(IdentityExists):
            locked.create_account("dustin", "other")
        assert locked.authenticate("dustin", "1234").name == "dustin"

    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    def test_blank_name(self, locked, store, name):
        with pytest.raises(ValueError):
            locked.create_account(name, "1234")
        assert not store.identity_exists(name)

    def test_stores_digest_not_plaintext(self, locked, store):
        locked.create_account("dustin", "1234")
        record = store.get_credential("dustin")
        assert "1234" not in record.digest
        assert record.digest.startswith("$argon2id$")


class TestAuthenticate:
    def test_round_trip(self, locked):
        locked.create_account("dustin", "1234")
        vault = locked.authenticate("dustin", "1234")
        assert vault.name == "dustin"

    @pytest.mark.parametrize("wrong", ["", "12345", "123", "1234 ", "abcd"])
    def test_wrong_credential(self, locked, wrong):
        locked.create_account("dustin", "1234")
        with pytest.raises(InvalidCredential):
            locked.authenticate("dustin", wrong)

    def test_unknown_name_looks_like_wrong_credential(self, locked):
        locked.create_account("dustin", "1234")
        with pytest.raises(InvalidCredential) as unknown:
            locked.authenticate("nobody", "1234")
        with pytest.raises(InvalidCredential) as wrong:
            locked.authenticate("dustin", "nope")
        assert str(unknown.value) == str(wrong.value) == AUTH_FAILED_MESSAGE
        assert unknown.value.__cause__ is None

    def test_unknown_name_costs_one_argon2_run(self, locked, monkeypatch):
        locked.create_account("dustin", "1234")
        calls = []
        real_hash_secret = crypto.hash_secret

        def counting(*args, **kwargs):
            calls.append(kwargs)
            return real_hash_secret(*args, **kwargs)

        monkeypatch.setattr(crypto, "hash_secret", counting)
        with pytest.raises(InvalidCredential):
            locked.authenticate("nobody", "1234")
        unknown = len(calls)
        with pytest.raises(InvalidCredential):
            locked.authenticate("dustin", "nope")
        wrong = len(calls) - unknown
        assert (unknown, wrong) == (1, 1)

    def test_corrupt_digest_is_distinct(self, locked, store):
        locked.create_account("dustin", "1234")
        store.set_credential("dustin", "garbage", b"\x00" * 32)
        with pytest.raises(CorruptCredential):
            locked.authenticate("dustin", "1234")

    def test_non_ascii_digest_is_corrupt(self, locked, store):
        locked.create_account("dustin", "1234")
        rec = store.get_credential("dustin")
        store.set_credential("dustin", rec.digest[:-1] + "é", rec.salt)
        with pytest.raises(CorruptCredential):
            locked.authenticate("dustin", "1234")

    def test_swapped_salt_is_corrupt(self, locked, store):
        locked.create_account("dustin", "1234")
        rec = store.get_credential("dustin")
        store.set_credential("dustin", rec.digest, os.urandom(len(rec.salt)))
        with pytest.raises(CorruptCredential, match="salt"):
            locked.authenticate("dustin", "1234")

    def test_store_failure_propagates(self, locked, store):
        store.close()
        with pytest.raises(StoreUnavailable):
            locked.authenticate("dustin", "1234")

    def test_locked_handle_has_no_entry_operations(self, locked):
        for attr in ("list_entries", "add_entry", "remove_entry", "reset_master_credential", "lock"):
            assert not hasattr(locked, attr)


class TestUnlockedConstruction:
    def test_cannot_construct_directly(self, store, hasher):
        with pytest.raises(TypeError):
            UnlockedVault(store, hasher, "dustin", "$argon2id$forged")

    def test_unlocked_handle_has_no_login_operations(self, locked):
        vault = locked.create_account("dustin", "1234")
        assert not hasattr(vault, "authenticate")
        assert not hasattr(vault, "create_account")


class TestEntries:
    def test_add_then_list(self, locked):
        vault = locked.create_account("dustin", "1234")
        vault.add_entry("github", "dustin-dev", "p@ss1")
        assert entries_of(vault) == [("github", "dustin-dev", "p@ss1")]

    def test_list_is_idempotent(self, locked):
        vault = locked.create_account("dustin", "1234")
        vault.add_entry("github", "dustin-dev", "p@ss1")
        vault.add_entry("email", "dustin@example.com", "p@ss2")
        assert vault.list_entries() == vault.list_entries()

    def test_remove_then_list(self, locked):
        vault = locked.create_account("dustin", "1234")
        vault.add_entry("github", "dustin-dev", "p@ss1")
        assert vault.remove_entry("github", "dustin-dev") == 1
        assert entries_of(vault) == []

    def test_remove_missing(self, locked):
        vault = locked.create_account("dustin", "1234")
        with pytest.raises(NotFound):
            vault.remove_entry("github", "dustin-dev")

    def test_remove_takes_every_duplicate(self, locked):
        vault = locked.create_account("dustin", "1234")
        vault.add_entry("github", "dustin-dev", "first")
        vault.add_entry("github", "dustin-dev", "second")
        assert vault.remove_entry("github", "dustin-dev") == 2
        assert vault.list_entries() == []

    def test_accounts_are_isolated(self, locked):
        dustin = locked.create_account("dustin", "1234")
        other = locked.create_account("mike", "5678")
        dustin.add_entry("github", "dustin-dev", "p@ss1")
        assert other.list_entries() == []

    def test_entries_survive_lock(self, locked):
        vault = locked.create_account("dustin", "1234")
        vault.add_entry("github", "dustin-dev", "p@ss1")
        relocked = vault.lock()
        again = relocked.authenticate("dustin", "1234")
        assert entries_of(again) == [("github", "dustin-dev", "p@ss1")]

    def test_dustin_scenario(self, locked):
        vault = locked.create_account("dustin", "1234")
        vault.add_entry("github", "dustin-dev", "p@ss1")
        vault.add_entry("email", "dustin@example.com", "p@ss2")
        assert entries_of(vault) == [
            ("github", "dustin-dev", "p@ss1"),
            ("email", "dustin@example.com", "p@ss2"),
        ]
        vault.remove_entry("github", "dustin-dev")
        assert entries_of(vault) == [("email", "dustin@example.com", "p@ss2")]


class TestResetMasterCredential:
    def test_new_works_old_fails(self, locked):
        vault = locked.create_account("dustin", "1234")
        vault.reset_master_credential("1234", "new-secret")
        relocked = vault.lock()
        assert relocked.authenticate("dustin", "new-secret").name == "dustin"
        with pytest.raises(InvalidCredential):
            relocked.authenticate("dustin", "1234")

    def test_returns_same_unlocked_handle(self, locked):
        vault = locked.create_account("dustin", "1234")
        assert vault.reset_master_credential("1234", "new-secret") is vault
        assert vault.name == "dustin"

    def test_wrong_current(self, locked, store):
        vault = locked.create_account("dustin", "1234")
        before = store.get_credential("dustin")
        with pytest.raises(InvalidCredential):
            vault.reset_master_credential("wrong", "new-secret")
        after = store.get_credential("dustin")
        assert (after.digest, after.salt) == (before.digest, before.salt)
        assert not vault.is_locked

    def test_fresh_salt(self, locked, store):
        vault = locked.create_account("dustin", "1234")
        old_salt = store.get_credential("dustin").salt
        vault.reset_master_credential("1234", "1234")
        assert store.get_credential("dustin").salt != old_salt

    def test_rechecks_against_store(self, locked):
        first = locked.create_account("dustin", "1234")
        second = locked.authenticate("dustin", "1234")
        first.reset_master_credential("1234", "changed")
        with pytest.raises(InvalidCredential):
            second.reset_master_credential("1234", "mine")
        second.reset_master_credential("changed", "mine")
        assert locked.authenticate("dustin", "mine").name == "dustin"


class TestLock:
    def test_returns_locked_handle(self, locked):
        vault = locked.create_account("dustin", "1234")
        relocked = vault.lock()
        assert isinstance(relocked, LockedVault)
        assert relocked is not locked

    def test_wipes_state(self, locked):
        vault = locked.create_account("dustin", "1234")
        held = vault._digest
        vault.lock()
        assert vault.is_locked
        assert vault._name is None
        assert vault._digest is None
        assert held == bytearray(len(held))

    def test_old_handle_is_unusable(self, locked):
        vault = locked.create_account("dustin", "1234")
        vault.lock()
        with pytest.raises(VaultLocked):
            vault.list_entries()
        with pytest.raises(VaultLocked):
            vault.add_entry("github", "dustin-dev", "p@ss1")
        with pytest.raises(VaultLocked):
            vault.remove_entry("github", "dustin-dev")
        with pytest.raises(VaultLocked):
            vault.reset_master_credential("1234", "x")
        with pytest.raises(VaultLocked):
            vault.name
        with pytest.raises(VaultLocked):
            vault.lock()

    def test_context_manager_locks(self, locked):
        with locked.create_account("dustin", "1234") as vault:
            vault.add_entry("github", "dustin-dev", "p@ss1")
        assert vault.is_locked

    def test_context_manager_after_explicit_lock(self, locked):
        with locked.create_account("dustin", "1234") as vault:
            vault.lock()
        assert vault.is_locked

    def test_repr(self, locked):
        vault = locked.create_account("dustin", "1234")
        assert "dustin" in repr(vault)
        vault.lock()
        assert "dustin" not in repr(vault)


class TestDeleteAccount:
    def test_removes_identity_and_entries(self, locked, store):
        vault = locked.create_account("dustin", "1234")
        vault.add_entry("github", "dustin-dev", "p@ss1")
        relocked = vault.delete_account("1234")
        assert isinstance(relocked, LockedVault)
        assert vault.is_locked
        assert not store.identity_exists("dustin")
        with pytest.raises(InvalidCredential):
            relocked.authenticate("dustin", "1234")

    def test_name_can_be_reused(self, locked):
        locked.create_account("dustin", "1234").delete_account("1234")
        vault = locked.create_account("dustin", "5678")
        assert vault.list_entries() == []

    def test_wrong_credential(self, locked, store):
        vault = locked.create_account("dustin", "1234")
        with pytest.raises(InvalidCredential):
            vault.delete_account("wrong")
        assert store.identity_exists("dustin")
        assert not vault.is_locked


class TestConcurrentCreate:
    def test_exactly_one_wins(self, db_path, hasher):
        RecordStore(db_path).close()
        barrier = threading.Barrier(2)
        results = []

        def attempt(credential):
            with RecordStore(db_path) as store:
                locked = LockedVault(store, hasher)
                barrier.wait()
                try:
                    locked.create_account("same", credential)
                    results.append(("ok", credential))
                except IdentityExists:
                    results.append(("exists", credential))

        threads = [threading.Thread(target=attempt, args=(c,)) for c in ("first", "second")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(r[0] for r in results) == ["exists", "ok"]
        winner = next(c for outcome, c in results if outcome == "ok")
        with RecordStore(db_path) as store:
            assert LockedVault(store, hasher).authenticate("same", winner).name == "same"


class TestOpenVault:
    def test_open_vault(self, db_path, hasher):
        locked = open_vault(db_path, hasher)
        vault = locked.create_account("dustin", "1234")
        vault.add_entry("github", "dustin-dev", "p@ss1")
        vault.lock()
        reopened = open_vault(db_path, hasher)
        assert entries_of(reopened.authenticate("dustin", "1234")) == [("github", "dustin-dev", "p@ss1")]
