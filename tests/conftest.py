"""
tests/conftest.py

Shared fixtures: a pinned-clock Env, named keys, a token and the three
registries deployed and initialized by the same admin.
"""

import pytest

from revsettle.attestation.registry import AttestationRegistry
from revsettle.bonds.registry import BondRegistry
from revsettle.core.crypto import Ed25519KeyManager
from revsettle.core.env import Env
from revsettle.core.models import BondStructure
from revsettle.disputes.lifecycle import DisputeRegistry
from revsettle.ledger.token import TokenLedger

LEDGER_TIME = 1_700_000_000


def root(n: int = 1) -> bytes:
    """A 32-byte merkle root filled with byte n."""
    return bytes([n]) * 32


# ─────────────────────────────────────────────────────────────
# Keys
# ─────────────────────────────────────────────────────────────

@pytest.fixture
def admin():
    return Ed25519KeyManager.generate()


@pytest.fixture
def business():
    return Ed25519KeyManager.generate()


@pytest.fixture
def issuer():
    return Ed25519KeyManager.generate()


@pytest.fixture
def owner():
    return Ed25519KeyManager.generate()


@pytest.fixture
def challenger():
    return Ed25519KeyManager.generate()


@pytest.fixture
def arbiter():
    return Ed25519KeyManager.generate()


@pytest.fixture
def collector():
    return Ed25519KeyManager.generate()


# ─────────────────────────────────────────────────────────────
# Deployment
# ─────────────────────────────────────────────────────────────

@pytest.fixture
def env():
    return Env(timestamp=LEDGER_TIME)


@pytest.fixture
def token(env, admin):
    return TokenLedger(env, admin=admin.address)


@pytest.fixture
def attestations(env, admin):
    registry = AttestationRegistry(env)
    with env.as_signers(admin):
        registry.initialize(admin.address)
    return registry


@pytest.fixture
def fees_on(env, admin, token, attestations, collector):
    """Fees enabled at base_fee 1000, paid to `collector`."""
    with env.as_signers(admin):
        attestations.configure_fees(token.address, collector.address, 1000, True)
    return attestations


@pytest.fixture
def bonds(env, admin):
    registry = BondRegistry(env)
    with env.as_signers(admin):
        registry.initialize(admin.address)
    return registry


@pytest.fixture
def disputes(env, admin, attestations):
    registry = DisputeRegistry(env)
    with env.as_signers(admin):
        registry.initialize(admin.address, attestations.address)
    return registry


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def submit(env, registry, key, period="2026-Q1", merkle_root=None, version=1):
    """Submit an attestation signed by `key`."""
    with env.as_signers(key):
        return registry.submit_attestation(
            key.address, period, merkle_root or root(1), LEDGER_TIME, version
        )


def mint(env, token, admin, to, amount):
    with env.as_signers(admin):
        token.mint(to, amount)


def issue(
    env,
    bonds,
    issuer,
    owner,
    attestations,
    token,
    structure=BondStructure.REVENUE_LINKED,
    face_value=10_000_000,
    share_bps=1000,
    min_payment=100_000,
    max_payment=1_000_000,
    maturity=12,
):
    with env.as_signers(issuer):
        return bonds.issue_bond(
            issuer.address,
            owner.address,
            face_value,
            structure,
            share_bps,
            min_payment,
            max_payment,
            maturity,
            attestations.address,
            token.address,
        )
