"""
tests/test_bonds.py

Bond issuance, ownership and default handling.
"""

import pytest

from conftest import issue, mint, submit
from revsettle.core.exceptions import (
    AlreadyInitializedError,
    AuthorizationError,
    BondNotActiveError,
    BondNotFoundError,
    ValidationError,
)
from revsettle.core.models import BondStatus, BondStructure


# ─────────────────────────────────────────────────────────────
# Issuance
# ─────────────────────────────────────────────────────────────

class TestIssuance:

    def test_ids_are_sequential_from_zero(self, env, bonds, attestations, token, issuer, owner):
        first = issue(env, bonds, issuer, owner, attestations, token)
        second = issue(env, bonds, issuer, owner, attestations, token)
        assert (first, second) == (0, 1)

    def test_stored_bond(self, env, bonds, attestations, token, issuer, owner):
        bond_id = issue(env, bonds, issuer, owner, attestations, token)
        bond = bonds.get_bond(bond_id)
        assert bond.issuer == issuer.address
        assert bond.status == BondStatus.ACTIVE
        assert bond.issued_at == env.timestamp
        assert bonds.get_owner(bond_id) == owner.address
        assert bonds.get_total_redeemed(bond_id) == 0
        assert bonds.get_remaining_value(bond_id) == bond.face_value

    @pytest.mark.parametrize("overrides", [
        {"face_value": 0},
        {"face_value": -5},
        {"share_bps": 10_001},
        {"min_payment": -1},
        {"max_payment": 0, "min_payment": 0},
        {"min_payment": 600, "max_payment": 500},
        {"maturity": 0},
    ])
    def test_invalid_terms_rejected(self, env, bonds, attestations, token, issuer, owner, overrides):
        with pytest.raises(ValidationError):
            issue(env, bonds, issuer, owner, attestations, token, **overrides)
        assert bonds.get_bond(0) is None

    def test_issuer_cannot_own(self, env, bonds, attestations, token, issuer):
        with pytest.raises(ValidationError):
            issue(env, bonds, issuer, issuer, attestations, token)

    def test_issuer_must_sign(self, env, bonds, attestations, token, issuer, owner):
        with env.as_signers(owner):
            with pytest.raises(AuthorizationError):
                bonds.issue_bond(
                    issuer.address, owner.address, 1000, BondStructure.FIXED,
                    0, 10, 10, 1, attestations.address, token.address,
                )

    def test_initialize_once(self, env, admin, bonds):
        with env.as_signers(admin):
            with pytest.raises(AlreadyInitializedError):
                bonds.initialize(admin.address)


# ─────────────────────────────────────────────────────────────
# Ownership
# ─────────────────────────────────────────────────────────────

class TestOwnership:

    def test_owner_transfers(self, env, bonds, attestations, token, issuer, owner, business):
        bond_id = issue(env, bonds, issuer, owner, attestations, token)
        with env.as_signers(owner):
            bonds.transfer_ownership(bond_id, owner.address, business.address)
        assert bonds.get_owner(bond_id) == business.address

    def test_non_owner_cannot_transfer(self, env, bonds, attestations, token, issuer, owner, business):
        bond_id = issue(env, bonds, issuer, owner, attestations, token)
        with env.as_signers(business):
            with pytest.raises(AuthorizationError):
                bonds.transfer_ownership(bond_id, business.address, business.address)
        assert bonds.get_owner(bond_id) == owner.address

    def test_named_owner_must_sign(self, env, bonds, attestations, token, issuer, owner, business):
        bond_id = issue(env, bonds, issuer, owner, attestations, token)
        with env.as_signers(business):
            with pytest.raises(AuthorizationError):
                bonds.transfer_ownership(bond_id, owner.address, business.address)

    def test_transfer_to_self_fails(self, env, bonds, attestations, token, issuer, owner):
        bond_id = issue(env, bonds, issuer, owner, attestations, token)
        with env.as_signers(owner):
            with pytest.raises(ValidationError):
                bonds.transfer_ownership(bond_id, owner.address, owner.address)

    def test_unknown_bond(self, env, bonds, owner, business):
        with env.as_signers(owner):
            with pytest.raises(BondNotFoundError):
                bonds.transfer_ownership(42, owner.address, business.address)

    def test_redemption_pays_new_owner(self, env, admin, bonds, attestations, token, issuer, owner, business):
        mint(env, token, admin, issuer.address, 10_000_000)
        bond_id = issue(env, bonds, issuer, owner, attestations, token)
        submit(env, attestations, issuer, period="P1")
        with env.as_signers(owner):
            bonds.transfer_ownership(bond_id, owner.address, business.address)

        with env.as_signers(issuer):
            bonds.redeem(bond_id, "P1", 5_000_000)

        assert token.balance(business.address) == 500_000
        assert token.balance(owner.address) == 0


# ─────────────────────────────────────────────────────────────
# Default
# ─────────────────────────────────────────────────────────────

class TestDefault:

    def test_admin_marks_defaulted(self, env, admin, bonds, attestations, token, issuer, owner):
        bond_id = issue(env, bonds, issuer, owner, attestations, token)
        with env.as_signers(admin):
            bonds.mark_defaulted(admin.address, bond_id)
        assert bonds.get_bond(bond_id).status == BondStatus.DEFAULTED

    def test_defaulted_bond_stops_paying(self, env, admin, bonds, attestations, token, issuer, owner):
        mint(env, token, admin, issuer.address, 10_000_000)
        bond_id = issue(env, bonds, issuer, owner, attestations, token)
        submit(env, attestations, issuer, period="P1")
        submit(env, attestations, issuer, period="P2")
        with env.as_signers(issuer):
            bonds.redeem(bond_id, "P1", 5_000_000)
        with env.as_signers(admin):
            bonds.mark_defaulted(admin.address, bond_id)

        with env.as_signers(issuer):
            with pytest.raises(BondNotActiveError):
                bonds.redeem(bond_id, "P2", 5_000_000)
        assert bonds.get_total_redeemed(bond_id) == 500_000
        assert bonds.get_redemption(bond_id, "P1") is not None

    def test_default_is_terminal(self, env, admin, bonds, attestations, token, issuer, owner):
        bond_id = issue(env, bonds, issuer, owner, attestations, token)
        with env.as_signers(admin):
            bonds.mark_defaulted(admin.address, bond_id)
            with pytest.raises(BondNotActiveError):
                bonds.mark_defaulted(admin.address, bond_id)

    def test_non_admin_cannot_default(self, env, bonds, attestations, token, issuer, owner):
        bond_id = issue(env, bonds, issuer, owner, attestations, token)
        with env.as_signers(issuer):
            with pytest.raises(AuthorizationError):
                bonds.mark_defaulted(issuer.address, bond_id)
        assert bonds.get_bond(bond_id).is_active()
