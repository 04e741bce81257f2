"""
Bond redemption engine.

redeem(bond_id, period, attested_revenue), steps in this exact order:
  1. Load bond; fail if absent or not Active; the issuer must authorize
  2. Fail if a RedemptionRecord exists for (bond_id, period)   (double-payment guard)
  3. Fail unless the attestation for (issuer, period) exists and is not revoked
  4. Nominal amount by structure (calculate_redemption)
  5. Headroom = face_value - total_redeemed; fail if <= 0;
     actual = min(nominal, headroom)
  6. If actual > 0: transfer issuer → CURRENT owner (read now, not at issuance)
  7. Persist RedemptionRecord with the actual amount
  8. total_redeemed += actual; status → FullyRedeemed once total >= face_value

Invariants:
    total_redeemed never exceeds face_value
    at most one RedemptionRecord per (bond_id, period)
    a zero-headroom bond fails loudly instead of writing a zero record
"""

import logging
from dataclasses import dataclass, replace

from revsettle.core.env import Env
from revsettle.core.exceptions import (
    AlreadyRedeemedError,
    AttestationNotFoundError,
    AttestationRevokedError,
    BondNotActiveError,
    BondNotFoundError,
    FullyRedeemedError,
    NotFoundError,
)
from revsettle.core.models import (
    AMOUNT_MAX,
    BPS_DENOMINATOR,
    Bond,
    BondStatus,
    BondStructure,
    RedemptionRecord,
)
from revsettle.core.validation import require_amount, require_text
from revsettle.ledger.store import DataKey, KeyedStore, KeyTag

logger = logging.getLogger(__name__)


def _saturate(amount: int) -> int:
    return min(amount, AMOUNT_MAX)


def revenue_share(attested_revenue: int, revenue_share_bps: int) -> int:
    """revenue * bps / 10000, truncated, saturating at AMOUNT_MAX."""
    return _saturate(max(attested_revenue, 0) * revenue_share_bps // BPS_DENOMINATOR)


def nominal_payment(
    structure:         BondStructure,
    revenue_share_bps: int,
    min_payment:       int,
    max_payment:       int,
    attested_revenue:  int,
) -> int:
    """
    Nominal payment for one period, before the face-value cap.

        FIXED           min_payment
        REVENUE_LINKED  clamp(share, min_payment, max_payment)
        HYBRID          min(min_payment + share, max_payment)
    """
    if structure == BondStructure.FIXED:
        return min_payment

    share = revenue_share(attested_revenue, revenue_share_bps)

    if structure == BondStructure.REVENUE_LINKED:
        return min(max(share, min_payment), max_payment)

    if structure == BondStructure.HYBRID:
        return min(_saturate(min_payment + share), max_payment)

    raise ValueError(f"Unknown bond structure: {structure!r}")


def calculate_redemption(bond: Bond, attested_revenue: int) -> int:
    return nominal_payment(
        structure=         bond.structure,
        revenue_share_bps= bond.revenue_share_bps,
        min_payment=       bond.min_payment_per_period,
        max_payment=       bond.max_payment_per_period,
        attested_revenue=  attested_revenue,
    )


def cap_to_headroom(nominal: int, face_value: int, total_redeemed: int) -> int:
    """
    Cap a nominal payment by what is left of the face value.

    Raises FullyRedeemedError when nothing is left.
    """
    headroom = face_value - total_redeemed
    if headroom <= 0:
        raise FullyRedeemedError(
            "Bond already fully redeemed",
            {"face_value": face_value, "total_redeemed": total_redeemed},
        )
    return min(nominal, headroom)


@dataclass(frozen=True)
class RedemptionStats:
    bond_id:          int
    periods_redeemed: int
    total_redeemed:   int
    remaining_value:  int
    status:           BondStatus

    def to_dict(self) -> dict:
        return {
            "bond_id":          self.bond_id,
            "periods_redeemed": self.periods_redeemed,
            "total_redeemed":   self.total_redeemed,
            "remaining_value":  self.remaining_value,
            "status":           self.status.value,
        }


class RedemptionEngine:
    """Computes and pays per-period redemptions over the bond registry store."""

    def __init__(self, env: Env, store: KeyedStore) -> None:
        self.env = env
        self.store = store

    def load_bond(self, bond_id: int) -> Bond:
        bond = self.store.get(DataKey.bond(bond_id))
        if bond is None:
            raise BondNotFoundError("Bond not found", {"bond_id": bond_id})
        return bond

    def total_redeemed(self, bond_id: int) -> int:
        return self.store.get(DataKey.total_redeemed(bond_id), 0)

    def redeem(self, bond_id: int, period: str, attested_revenue: int) -> RedemptionRecord:
        # 1. bond must exist and be Active
        bond = self.load_bond(bond_id)
        if not bond.is_active():
            raise BondNotActiveError(
                "Bond not active",
                {"bond_id": bond_id, "status": bond.status.value},
            )
        self.env.require_auth(bond.issuer)
        require_text("period", period)
        require_amount("attested_revenue", attested_revenue)

        # 2. double-payment guard
        redemption_key = DataKey.redemption(bond_id, period)
        if self.store.has(redemption_key):
            raise AlreadyRedeemedError(
                "Already redeemed for period",
                {"bond_id": bond_id, "period": period},
            )

        # 3. attestation must exist and not be revoked
        self._require_valid_attestation(bond, period)

        # 4–5. nominal amount, capped by remaining face value
        total = self.total_redeemed(bond_id)
        nominal = calculate_redemption(bond, attested_revenue)
        actual = cap_to_headroom(nominal, bond.face_value, total)

        # 6. pay the owner of record right now
        if actual > 0:
            owner = self.store.get(DataKey.bond_owner(bond_id))
            if owner is None:
                raise NotFoundError("Bond owner not found", {"bond_id": bond_id})
            token = self.env.contract(bond.token)
            token.transfer(bond.issuer, owner, actual)

        # 7. record the post-cap amount
        record = RedemptionRecord(
            bond_id=           bond_id,
            period=            period,
            attested_revenue=  attested_revenue,
            redemption_amount= actual,
            redeemed_at=       self.env.timestamp,
        )
        self.store.set(redemption_key, record)

        # 8. accumulate and close out
        new_total = total + actual
        self.store.set(DataKey.total_redeemed(bond_id), new_total)
        if new_total >= bond.face_value:
            self.store.set(DataKey.bond(bond_id), replace(bond, status=BondStatus.FULLY_REDEEMED))
            logger.info("Bond %d fully redeemed", bond_id)

        logger.info(
            "Bond %d redeemed period=%s nominal=%d paid=%d total=%d",
            bond_id, period, nominal, actual, new_total,
        )
        return record

    def _require_valid_attestation(self, bond: Bond, period: str) -> None:
        source = self.env.contract(bond.attestation_source)
        if source.get_attestation(bond.issuer, period) is None:
            raise AttestationNotFoundError(
                "Attestation not found",
                {"issuer": bond.issuer[:16], "period": period},
            )
        if source.is_revoked(bond.issuer, period):
            raise AttestationRevokedError(
                "Attestation is revoked",
                {"issuer": bond.issuer[:16], "period": period},
            )

    def stats(self, bond_id: int) -> RedemptionStats:
        bond = self.load_bond(bond_id)
        periods = sum(
            1 for key in self.store.keys(KeyTag.REDEMPTION)
            if key.fields[0] == bond_id
        )
        total = self.total_redeemed(bond_id)
        return RedemptionStats(
            bond_id=          bond_id,
            periods_redeemed= periods,
            total_redeemed=   total,
            remaining_value=  bond.face_value - total,
            status=           bond.status,
        )
