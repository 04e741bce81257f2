"""
tests/test_store_env.py

Keyed store transactions and the contract host.

Properties covered:

  STORE
    Keys with equal fields but different tags never collide
    rollback() restores overwritten values and drops new keys
    pending_changes() reports writes and removals

  ENV
    A failing invocation rolls back EVERY store, including nested calls
    A successful invocation journals exactly one entry
    Unknown contract addresses raise ContractNotFoundError

  AUTHORIZATION
    No proof → AuthorizationError
    A proof that no longer verifies → AuthorizationError
    as_signers() withdraws proofs on exit, even on error
    mock_all_auths() passes every check only inside its block
"""

from dataclasses import replace

import pytest

from revsettle.core.crypto import Ed25519KeyManager
from revsettle.core.env import Env
from revsettle.core.exceptions import (
    AuthorizationError,
    ContractNotFoundError,
    InsufficientBalanceError,
)
from revsettle.ledger.journal import Journal
from revsettle.ledger.store import DataKey, KeyedStore, KeyTag
from revsettle.ledger.token import TokenLedger


# ─────────────────────────────────────────────────────────────
# KeyedStore
# ─────────────────────────────────────────────────────────────

class TestKeyedStore:

    def test_tags_separate_namespaces(self):
        store = KeyedStore(owner="c")
        store.set(DataKey.attestation("b", "p"), "attestation")
        store.set(DataKey.anomaly("b", "p"), "anomaly")
        assert store.get(DataKey.attestation("b", "p")) == "attestation"
        assert store.get(DataKey.anomaly("b", "p")) == "anomaly"
        assert len(store) == 2

    def test_has_get_remove(self):
        store = KeyedStore(owner="c")
        key = DataKey.bond(0)
        assert not store.has(key)
        assert store.get(key, "default") == "default"
        store.set(key, 1)
        assert store.has(key)
        store.remove(key)
        assert not store.has(key)

    def test_rollback_restores(self):
        store = KeyedStore(owner="c")
        store.set(DataKey.admin(), "old")
        store.set(DataKey.arbiter("x"), True)

        store.begin()
        store.set(DataKey.admin(), "new")
        store.set(DataKey.bond(1), "bond")
        store.remove(DataKey.arbiter("x"))
        store.rollback()

        assert store.get(DataKey.admin()) == "old"
        assert not store.has(DataKey.bond(1))
        assert store.has(DataKey.arbiter("x"))
        assert not store.in_transaction

    def test_pending_changes(self):
        store = KeyedStore(owner="c")
        store.set(DataKey.arbiter("x"), True)
        store.begin()
        store.set(DataKey.next_bond_id(), 3)
        store.remove(DataKey.arbiter("x"))
        assert store.pending_changes() == [
            {"key": ["next_bond_id"], "value": 3},
            {"key": ["arbiter", "x"], "removed": True},
        ]
        store.commit()
        assert store.pending_changes() == []

    def test_keys_filtered_by_tag(self):
        store = KeyedStore(owner="c")
        store.set(DataKey.redemption(0, "P1"), 1)
        store.set(DataKey.redemption(1, "P1"), 1)
        store.set(DataKey.bond(0), 1)
        assert len(list(store.keys(KeyTag.REDEMPTION))) == 2


# ─────────────────────────────────────────────────────────────
# Env invocations
# ─────────────────────────────────────────────────────────────

class TestInvocation:

    def test_nested_failure_rolls_back_all_stores(self, env, admin, token, fees_on, business, collector):
        with env.as_signers(admin):
            token.mint(business.address, 500)

        with env.as_signers(business):
            with pytest.raises(InsufficientBalanceError):
                fees_on.submit_attestation(business.address, "P", b"\x01" * 32, 1, 1)

        assert token.balance(business.address) == 500
        assert fees_on.get_business_count(business.address) == 0
        for store in (env.storage_for(token.address), env.storage_for(fees_on.address)):
            assert not store.in_transaction

    def test_success_journals_one_entry(self, admin):
        journal = Journal(signing_key=admin)
        env = Env(journal=journal, timestamp=1)
        token = TokenLedger(env, admin=admin.address)
        before = len(journal.entries)

        with env.as_signers(admin):
            token.mint(admin.address, 10)

        assert len(journal.entries) == before + 1
        entry = journal.entries[-1]
        assert entry.entry_type == "mint"
        assert entry.data["contract"] == token.address
        assert entry.data["changes"] == [{
            "key":      ["balance", admin.address],
            "value":    10,
            "contract": token.address,
        }]

    def test_failure_is_not_journaled(self, admin, business):
        journal = Journal(signing_key=admin)
        env = Env(journal=journal)
        token = TokenLedger(env, admin=admin.address)
        before = len(journal.entries)
        with env.as_signers(business):
            with pytest.raises(AuthorizationError):
                token.mint(business.address, 10)
        assert len(journal.entries) == before

    def test_unknown_contract(self, env):
        with pytest.raises(ContractNotFoundError):
            env.contract("contract-missing")

    def test_pinned_clock(self, env):
        env.set_timestamp(42)
        assert env.timestamp == 42
        env.set_timestamp(None)
        assert env.timestamp > 42


# ─────────────────────────────────────────────────────────────
# Authorization
# ─────────────────────────────────────────────────────────────

class TestAuthorization:

    def test_missing_proof(self, env, admin):
        with pytest.raises(AuthorizationError):
            env.require_auth(admin.address)

    def test_present_proof(self, env, admin):
        with env.as_signers(admin):
            env.require_auth(admin.address)

    def test_other_key_does_not_count(self, env, admin, business):
        with env.as_signers(business):
            with pytest.raises(AuthorizationError):
                env.require_auth(admin.address)

    def test_proof_reverified_each_check(self, env, admin, business):
        with env.as_signers(admin):
            proof = env.auth._proofs[admin.address]
            forged = replace(proof, signature=business.sign(proof.challenge))
            env.auth._proofs[admin.address] = forged
            with pytest.raises(AuthorizationError):
                env.require_auth(admin.address)

    def test_proofs_withdrawn_after_block(self, env, admin):
        with pytest.raises(RuntimeError):
            with env.as_signers(admin):
                raise RuntimeError("boom")
        with pytest.raises(AuthorizationError):
            env.require_auth(admin.address)

    def test_nested_signers_restore(self, env, admin):
        with env.as_signers(admin):
            with env.as_signers(admin):
                pass
            env.require_auth(admin.address)

    def test_mock_all_auths_is_scoped(self, env):
        stranger = Ed25519KeyManager.generate().address
        with env.mock_all_auths():
            env.require_auth(stranger)
        with pytest.raises(AuthorizationError):
            env.require_auth(stranger)

    def test_challenges_bound_to_network(self, admin):
        a, b = Env(network_id="net-a"), Env(network_id="net-b")
        with a.as_signers(admin):
            proof = a.auth._proofs[admin.address]
        assert b"net-a" in proof.challenge
        assert b"net-b" not in proof.challenge
