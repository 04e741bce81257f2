"""
Revenue-backed bond registry.

Issues bonds whose repayment profile is tied to attested business
revenue, tracks ownership, and pays each period through the
RedemptionEngine.

Status machine:
    Active ──(total_redeemed reaches face_value)──► FullyRedeemed   terminal
    Active ──(mark_defaulted, admin)───────────────► Defaulted       terminal
"""

import logging
from dataclasses import replace
from typing import Optional

from revsettle.bonds.redemption import RedemptionEngine, RedemptionStats
from revsettle.core.env import Contract, Env, contract_call
from revsettle.core.exceptions import (
    AlreadyInitializedError,
    AuthorizationError,
    BondNotActiveError,
    BondNotFoundError,
    NotInitializedError,
    ValidationError,
)
from revsettle.core.models import (
    Bond,
    BondStatus,
    BondStructure,
    RedemptionRecord,
)
from revsettle.core.validation import (
    require_address,
    require_amount,
    require_bps,
    require_text,
    require_u32,
)
from revsettle.ledger.store import DataKey

logger = logging.getLogger(__name__)


class BondRegistry(Contract):
    """Bond issuance, ownership, redemption and default handling."""

    def __init__(self, env: Env) -> None:
        super().__init__(env)
        self.redemptions = RedemptionEngine(env, self.store)

    # ── Initialization ───────────────────────────────────────

    @contract_call
    def initialize(self, admin: str) -> None:
        """One-time setup of the admin address. Admin must authorize."""
        require_address("admin", admin)
        self.env.require_auth(admin)
        if self.store.has(DataKey.admin()):
            raise AlreadyInitializedError("Bond registry already initialized")
        self.store.set(DataKey.admin(), admin)
        self.store.set(DataKey.next_bond_id(), 0)
        logger.info("Bond registry %s initialized", self.address)

    def get_admin(self) -> str:
        admin = self.store.get(DataKey.admin())
        if admin is None:
            raise NotInitializedError("Bond registry not initialized")
        return admin

    # ── Issuance ─────────────────────────────────────────────

    @contract_call
    def issue_bond(
        self,
        issuer:                 str,
        initial_owner:          str,
        face_value:             int,
        structure:              BondStructure,
        revenue_share_bps:      int,
        min_payment_per_period: int,
        max_payment_per_period: int,
        maturity_periods:       int,
        attestation_source:     str,
        token:                  str,
    ) -> int:
        """
        Issue a new bond and return its id.

        The issuer must authorize and must differ from the initial owner.
        """
        self.env.require_auth(issuer)

        require_amount("face_value", face_value, positive=True)
        if not isinstance(structure, BondStructure):
            raise ValidationError("structure must be a BondStructure", {"structure": repr(structure)})
        require_bps("revenue_share_bps", revenue_share_bps)
        require_amount("min_payment_per_period", min_payment_per_period)
        require_amount("max_payment_per_period", max_payment_per_period, positive=True)
        if max_payment_per_period < min_payment_per_period:
            raise ValidationError(
                "max must be >= min",
                {"min": min_payment_per_period, "max": max_payment_per_period},
            )
        require_u32("maturity_periods", maturity_periods, positive=True)
        require_address("initial_owner", initial_owner)
        if issuer == initial_owner:
            raise ValidationError("issuer and owner must differ")
        require_text("attestation_source", attestation_source)
        require_text("token", token)

        bond_id = self.store.get(DataKey.next_bond_id())
        if bond_id is None:
            raise NotInitializedError("Bond registry not initialized")

        bond = Bond(
            id=                     bond_id,
            issuer=                 issuer,
            face_value=             face_value,
            structure=              structure,
            revenue_share_bps=      revenue_share_bps,
            min_payment_per_period= min_payment_per_period,
            max_payment_per_period= max_payment_per_period,
            maturity_periods=       maturity_periods,
            attestation_source=     attestation_source,
            token=                  token,
            status=                 BondStatus.ACTIVE,
            issued_at=              self.env.timestamp,
        )
        self.store.set(DataKey.bond(bond_id), bond)
        self.store.set(DataKey.bond_owner(bond_id), initial_owner)
        self.store.set(DataKey.total_redeemed(bond_id), 0)
        self.store.set(DataKey.next_bond_id(), bond_id + 1)

        logger.info(
            "Bond %d issued by %s: %s face_value=%d",
            bond_id, issuer[:16], structure.value, face_value,
        )
        return bond_id

    # ── Redemption ───────────────────────────────────────────

    @contract_call
    def redeem(self, bond_id: int, period: str, attested_revenue: int) -> RedemptionRecord:
        """
        Pay one period of a bond from attested revenue.

        The token transfer is drawn from the issuer, so the issuer's
        authorization must be present.
        """
        return self.redemptions.redeem(bond_id, period, attested_revenue)

    # ── Ownership ────────────────────────────────────────────

    @contract_call
    def transfer_ownership(self, bond_id: int, current_owner: str, new_owner: str) -> None:
        """Transfer a bond. The current owner must authorize."""
        self.env.require_auth(current_owner)

        stored_owner = self.store.get(DataKey.bond_owner(bond_id))
        if stored_owner is None:
            raise BondNotFoundError("Bond not found", {"bond_id": bond_id})
        if current_owner != stored_owner:
            raise AuthorizationError("Not bond owner", {"bond_id": bond_id})
        require_address("new_owner", new_owner)
        if current_owner == new_owner:
            raise ValidationError("Cannot transfer to self", {"bond_id": bond_id})

        self.store.set(DataKey.bond_owner(bond_id), new_owner)
        logger.info("Bond %d transferred to %s", bond_id, new_owner[:16])

    # ── Default handling ─────────────────────────────────────

    @contract_call
    def mark_defaulted(self, admin: str, bond_id: int) -> Bond:
        """
        Mark an Active bond as Defaulted. Admin only.
        Past redemptions stand; no further redemptions are possible.
        """
        if admin != self.get_admin():
            raise AuthorizationError("Unauthorized", {"caller": admin[:16]})
        self.env.require_auth(admin)

        bond = self.redemptions.load_bond(bond_id)
        if not bond.is_active():
            raise BondNotActiveError(
                "Bond not active",
                {"bond_id": bond_id, "status": bond.status.value},
            )
        defaulted = replace(bond, status=BondStatus.DEFAULTED)
        self.store.set(DataKey.bond(bond_id), defaulted)
        logger.info("Bond %d marked defaulted", bond_id)
        return defaulted

    # ── Queries ──────────────────────────────────────────────

    def get_bond(self, bond_id: int) -> Optional[Bond]:
        return self.store.get(DataKey.bond(bond_id))

    def get_owner(self, bond_id: int) -> Optional[str]:
        return self.store.get(DataKey.bond_owner(bond_id))

    def get_redemption(self, bond_id: int, period: str) -> Optional[RedemptionRecord]:
        return self.store.get(DataKey.redemption(bond_id, period))

    def get_total_redeemed(self, bond_id: int) -> int:
        return self.redemptions.total_redeemed(bond_id)

    def get_remaining_value(self, bond_id: int) -> int:
        bond = self.redemptions.load_bond(bond_id)
        return bond.face_value - self.redemptions.total_redeemed(bond_id)

    def get_redemption_stats(self, bond_id: int) -> RedemptionStats:
        return self.redemptions.stats(bond_id)
