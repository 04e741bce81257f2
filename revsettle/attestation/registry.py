"""
Attestation registry.

Records write-once revenue attestations per (business, period) and
charges the dynamic fee for each. Anomaly scores and revocations are
stored under their own keys and never modify an attestation's
merkle_root, timestamp or version.

Submission order, all inside one invocation:
    1. business authorizes
    2. duplicate (business, period) fails
    3. fee collected (one transfer or none)
    4. usage counter incremented (always, even with fees disabled)
    5. attestation stored with fee_paid
"""

import logging
from typing import List, Optional, Sequence

from revsettle.attestation.fees import FeeEngine
from revsettle.core.env import Contract, Env, contract_call
from revsettle.core.exceptions import (
    AlreadyInitializedError,
    AlreadyRevokedError,
    AttestationExistsError,
    AttestationNotFoundError,
    AuthorizationError,
    NotInitializedError,
    ValidationError,
)
from revsettle.core.models import (
    ANOMALY_SCORE_MAX,
    MERKLE_ROOT_BYTES,
    AnomalyRecord,
    AttestationRecord,
    FeeConfig,
    RevocationRecord,
    VolumeBracket,
)
from revsettle.core.validation import (
    require_address,
    require_amount,
    require_text,
    require_u32,
)
from revsettle.ledger.store import DataKey

logger = logging.getLogger(__name__)


class AttestationRegistry(Contract):
    """Attestations, their fees, anomaly scores and revocations."""

    def __init__(self, env: Env) -> None:
        super().__init__(env)
        self.fees = FeeEngine(env, self.store)

    # ── Initialization ───────────────────────────────────────

    @contract_call
    def initialize(self, admin: str) -> None:
        """One-time setup of the admin address. Admin must authorize."""
        if self.store.has(DataKey.admin()):
            raise AlreadyInitializedError("Attestation registry already initialized")
        require_address("admin", admin)
        self.env.require_auth(admin)
        self.store.set(DataKey.admin(), admin)
        logger.info("Attestation registry %s initialized", self.address)

    def get_admin(self) -> str:
        admin = self.store.get(DataKey.admin())
        if admin is None:
            raise NotInitializedError("Attestation registry not initialized")
        return admin

    def _require_admin(self) -> str:
        admin = self.get_admin()
        self.env.require_auth(admin)
        return admin

    def _require_admin_caller(self, caller: str) -> None:
        self.env.require_auth(caller)
        if caller != self.get_admin():
            raise AuthorizationError("Caller is not admin", {"caller": caller[:16]})

    # ── Admin: fee configuration ─────────────────────────────

    @contract_call
    def configure_fees(
        self,
        token:     str,
        collector: str,
        base_fee:  int,
        enabled:   bool,
    ) -> FeeConfig:
        """Replace the whole fee schedule."""
        self._require_admin()
        require_text("token", token)
        require_address("collector", collector)
        require_amount("base_fee", base_fee)
        config = FeeConfig(
            token=     token,
            collector= collector,
            base_fee=  base_fee,
            enabled=   bool(enabled),
        )
        self.fees.set_fee_config(config)
        return config

    @contract_call
    def set_tier_discount(self, tier: int, discount_bps: int) -> None:
        """
        Set the discount for a tier level. Tier 0 is Standard (default for
        every business); tiers are open-ended.
        """
        self._require_admin()
        self.fees.set_tier_discount(tier, discount_bps)

    @contract_call
    def set_business_tier(self, business: str, tier: int) -> None:
        self._require_admin()
        self.fees.set_business_tier(business, tier)

    @contract_call
    def set_volume_brackets(
        self,
        thresholds: Sequence[int],
        discounts:  Sequence[int],
    ) -> List[VolumeBracket]:
        """
        Replace the volume brackets.

        Example: thresholds [10, 50, 100], discounts [500, 1000, 2000]
        means 5% off after 10 attestations, 10% after 50, 20% after 100.
        """
        self._require_admin()
        return self.fees.set_volume_brackets(thresholds, discounts)

    @contract_call
    def set_fee_enabled(self, enabled: bool) -> FeeConfig:
        """Toggle fee collection without changing the rest of the schedule."""
        self._require_admin()
        return self.fees.set_fee_enabled(enabled)

    # ── Core attestation methods ─────────────────────────────

    @contract_call
    def submit_attestation(
        self,
        business:    str,
        period:      str,
        merkle_root: bytes,
        timestamp:   int,
        version:     int,
    ) -> AttestationRecord:
        """Store a revenue attestation, charging the business its fee."""
        self.env.require_auth(business)
        require_text("period", period)
        if not isinstance(merkle_root, bytes) or len(merkle_root) != MERKLE_ROOT_BYTES:
            raise ValidationError(
                f"merkle_root must be {MERKLE_ROOT_BYTES} bytes",
                {"merkle_root": repr(merkle_root)[:40]},
            )
        require_amount("timestamp", timestamp)
        require_u32("version", version)

        key = DataKey.attestation(business, period)
        if self.store.has(key):
            raise AttestationExistsError(
                "Attestation already exists for this business and period",
                {"business": business[:16], "period": period},
            )

        fee_paid = self.fees.collect_fee(business)
        self.fees.increment_business_count(business)

        record = AttestationRecord(
            business=    business,
            period=      period,
            merkle_root= merkle_root,
            timestamp=   timestamp,
            version=     version,
            fee_paid=    fee_paid,
        )
        self.store.set(key, record)
        logger.info(
            "Attestation stored for %s period=%s fee_paid=%d",
            business[:16], period, fee_paid,
        )
        return record

    def get_attestation(self, business: str, period: str) -> Optional[AttestationRecord]:
        return self.store.get(DataKey.attestation(business, period))

    def has_attestation(self, business: str, period: str) -> bool:
        return self.store.has(DataKey.attestation(business, period))

    def verify_attestation(self, business: str, period: str, merkle_root: bytes) -> bool:
        """True iff an attestation exists and its merkle root matches."""
        record = self.get_attestation(business, period)
        return record is not None and record.merkle_root == merkle_root

    # ── Revocation ───────────────────────────────────────────

    @contract_call
    def revoke_attestation(
        self,
        caller:   str,
        business: str,
        period:   str,
        reason:   str,
    ) -> RevocationRecord:
        """
        Mark an attestation revoked. Admin only. The attestation itself is
        left untouched; bonds stop paying against it.
        """
        self._require_admin_caller(caller)
        require_text("reason", reason, allow_empty=True)
        if not self.has_attestation(business, period):
            raise AttestationNotFoundError(
                "Attestation does not exist for this business and period",
                {"business": business[:16], "period": period},
            )
        key = DataKey.revocation(business, period)
        if self.store.has(key):
            raise AlreadyRevokedError(
                "Attestation already revoked",
                {"business": business[:16], "period": period},
            )
        record = RevocationRecord(
            revoked_by= caller,
            reason=     reason,
            revoked_at= self.env.timestamp,
        )
        self.store.set(key, record)
        logger.info("Attestation revoked for %s period=%s", business[:16], period)
        return record

    def is_revoked(self, business: str, period: str) -> bool:
        return self.store.has(DataKey.revocation(business, period))

    def get_revocation(self, business: str, period: str) -> Optional[RevocationRecord]:
        return self.store.get(DataKey.revocation(business, period))

    # ── Anomaly analytics ────────────────────────────────────

    @contract_call
    def add_authorized_analytics(self, caller: str, analytics: str) -> None:
        """Add an address to the authorized-analytics set. Caller must be admin."""
        self._require_admin_caller(caller)
        require_address("analytics", analytics)
        self.store.set(DataKey.authorized_analytics(analytics), True)

    @contract_call
    def remove_authorized_analytics(self, caller: str, analytics: str) -> None:
        self._require_admin_caller(caller)
        self.store.remove(DataKey.authorized_analytics(analytics))

    def is_authorized_analytics(self, address: str) -> bool:
        return self.store.has(DataKey.authorized_analytics(address))

    @contract_call
    def set_anomaly(
        self,
        updater:  str,
        business: str,
        period:   str,
        flags:    int,
        score:    int,
    ) -> AnomalyRecord:
        """
        Store anomaly flags and a risk score for an existing attestation.

        flags: bitmask for anomaly conditions (semantics defined off-ledger).
        score: risk in [0, 100]; higher means riskier.
        """
        self.env.require_auth(updater)
        if not self.is_authorized_analytics(updater):
            raise AuthorizationError("Updater not authorized", {"updater": updater[:16]})
        if not self.has_attestation(business, period):
            raise AttestationNotFoundError(
                "Attestation does not exist for this business and period",
                {"business": business[:16], "period": period},
            )
        require_u32("flags", flags)
        require_u32("score", score)
        if score > ANOMALY_SCORE_MAX:
            raise ValidationError("Score out of range", {"score": score})

        record = AnomalyRecord(flags=flags, score=score)
        self.store.set(DataKey.anomaly(business, period), record)
        return record

    def get_anomaly(self, business: str, period: str) -> Optional[AnomalyRecord]:
        return self.store.get(DataKey.anomaly(business, period))

    # ── Read-only fee queries ────────────────────────────────

    def get_fee_config(self) -> Optional[FeeConfig]:
        return self.fees.get_fee_config()

    def get_fee_quote(self, business: str) -> int:
        """Fee the business would pay for its next attestation."""
        return self.fees.calculate_fee(business)

    def get_business_tier(self, business: str) -> int:
        return self.fees.get_business_tier(business)

    def get_tier_discount(self, tier: int) -> int:
        return self.fees.get_tier_discount(tier)

    def get_volume_brackets(self) -> List[VolumeBracket]:
        return self.fees.get_volume_brackets()

    def get_business_count(self, business: str) -> int:
        return self.fees.get_business_count(business)

