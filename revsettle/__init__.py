"""
revsettle/__init__.py

revsettle: revenue attestations, revenue-backed bonds and attestation
disputes on a transactional, journaled contract host.

    Env                  host: stores, clock, authorization, journal
    AttestationRegistry  write-once (business, period) attestations + fees
    BondRegistry         bonds redeemed from attested revenue
    DisputeRegistry      OPEN → RESOLVED → CLOSED challenges
    TokenLedger          the transfer primitive behind fees and payments
"""

__version__ = "0.1.0"

from revsettle.core.crypto import Ed25519KeyManager
from revsettle.core.env import Contract, Env, contract_call
from revsettle.core.exceptions import RevSettleError
from revsettle.ledger.journal import Journal
from revsettle.ledger.token import TokenLedger
from revsettle.attestation.registry import AttestationRegistry
from revsettle.bonds.registry import BondRegistry
from revsettle.disputes.lifecycle import DisputeRegistry
from revsettle.config import SettlementConfig
from revsettle.runtime.context import RuntimeContext

__all__ = [
    # Host
    "Env",
    "Contract",
    "contract_call",
    "Ed25519KeyManager",
    "Journal",
    # Contracts
    "TokenLedger",
    "AttestationRegistry",
    "BondRegistry",
    "DisputeRegistry",
    # Deployment
    "SettlementConfig",
    "RuntimeContext",
    # Errors
    "RevSettleError",
]
