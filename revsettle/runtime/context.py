"""
Runtime context for a revsettle deployment.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from revsettle.attestation.registry import AttestationRegistry
from revsettle.bonds.registry import BondRegistry
from revsettle.config import SettlementConfig
from revsettle.core.crypto import Ed25519KeyManager
from revsettle.core.env import Env
from revsettle.core.logs import configure_logging
from revsettle.disputes.lifecycle import DisputeRegistry
from revsettle.ledger.journal import Journal
from revsettle.ledger.token import TokenLedger

logger = logging.getLogger(__name__)


@dataclass
class RuntimeContext:
    """An Env with the token and the three registries deployed and initialized."""

    env:          Env
    admin:        Ed25519KeyManager
    token:        TokenLedger
    attestations: AttestationRegistry
    bonds:        BondRegistry
    disputes:     DisputeRegistry
    config:       SettlementConfig

    @classmethod
    def from_config(
        cls,
        config_path: Optional[Path],
        admin_key:   Ed25519KeyManager,
    ) -> "RuntimeContext":
        """Create a runtime context from a YAML config (or defaults when None)."""
        if config_path is not None:
            config = SettlementConfig.from_yaml(config_path)
        else:
            config = SettlementConfig()
        return cls.from_settings(config, admin_key)

    @classmethod
    def from_settings(
        cls,
        config:    SettlementConfig,
        admin_key: Ed25519KeyManager,
    ) -> "RuntimeContext":
        configure_logging(config.level)

        journal = None
        if config.journal_path is not None:
            journal = Journal(signing_key=admin_key, path=config.journal_path)
        env = Env(journal=journal)

        admin = admin_key.address
        token = TokenLedger(env, admin=admin)
        attestations = AttestationRegistry(env)
        bonds = BondRegistry(env)
        disputes = DisputeRegistry(env)

        with env.as_signers(admin_key):
            attestations.initialize(admin)
            bonds.initialize(admin)
            disputes.initialize(admin, attestations.address)

            attestations.configure_fees(
                token=     token.address,
                collector= config.collector or admin,
                base_fee=  config.base_fee,
                enabled=   config.fees_enabled,
            )
            for tier, discount_bps in sorted(config.tiers.items()):
                attestations.set_tier_discount(tier, discount_bps)
            if config.volume_brackets:
                attestations.set_volume_brackets(
                    [b.threshold for b in config.volume_brackets],
                    [b.discount_bps for b in config.volume_brackets],
                )

        logger.info("Deployment ready on %s", env.network_id)
        return cls(
            env=          env,
            admin=        admin_key,
            token=        token,
            attestations= attestations,
            bonds=        bonds,
            disputes=     disputes,
            config=       config,
        )

    def __repr__(self) -> str:
        journaled = len(self.env.journal.entries) if self.env.journal else 0
        return (
            f"RuntimeContext("
            f"network_id={self.env.network_id!r}, "
            f"journal_entries={journaled})"
        )
