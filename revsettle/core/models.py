"""
revsettle/core/models.py

Settlement Data Model

Every stored value is an immutable record. Updates replace the record
wholesale via dataclasses.replace(); nothing mutates a stored instance.
This is what lets KeyedStore roll back by restoring prior references.

═══════════════════════════════════════════════════════════════════
UNITS
═══════════════════════════════════════════════════════════════════
    amounts     integers in the token's smallest unit
                bounded by AMOUNT_MAX (signed 128-bit ceiling)
    discounts   basis points, 0..BPS_DENOMINATOR (10000 == 100%)
    timestamps  integer UTC seconds (see core/time.py)
    addresses   64-char lowercase hex Ed25519 public keys for accounts,
                "contract-<hex>" for deployed contracts
═══════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

BPS_DENOMINATOR   = 10_000
AMOUNT_MAX        = 2 ** 127 - 1
U32_MAX           = 2 ** 32 - 1
ANOMALY_SCORE_MAX = 100
MERKLE_ROOT_BYTES = 32

DEFAULT_TIER = 0


# ─────────────────────────────────────────────────────────────
# Enumerations
# ─────────────────────────────────────────────────────────────

class BondStructure(Enum):
    """How a bond sizes each period's payment."""
    FIXED          = "fixed"            # min_payment_per_period, revenue ignored
    REVENUE_LINKED = "revenue_linked"   # share of revenue, clamped to [min, max]
    HYBRID         = "hybrid"           # min + share of revenue, capped at max


class BondStatus(Enum):
    ACTIVE         = "active"
    FULLY_REDEEMED = "fully_redeemed"
    DEFAULTED      = "defaulted"


class DisputeStatus(Enum):
    OPEN     = "open"
    RESOLVED = "resolved"
    CLOSED   = "closed"


class DisputeType(Enum):
    REVENUE_MISMATCH = "revenue_mismatch"
    DATA_INTEGRITY   = "data_integrity"
    OTHER            = "other"


class DisputeOutcome(Enum):
    UPHELD   = "upheld"     # challenger was right
    REJECTED = "rejected"   # attestation stands


# ─────────────────────────────────────────────────────────────
# Attestation registry records
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FeeConfig:
    """The attestation fee schedule. Replaced wholesale on every update."""
    token:     str
    collector: str
    base_fee:  int
    enabled:   bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token":     self.token,
            "collector": self.collector,
            "base_fee":  self.base_fee,
            "enabled":   self.enabled,
        }


@dataclass(frozen=True)
class VolumeBracket:
    """Discount earned once a business has submitted `threshold` attestations."""
    threshold:    int
    discount_bps: int

    def to_dict(self) -> Dict[str, Any]:
        return {"threshold": self.threshold, "discount_bps": self.discount_bps}


@dataclass(frozen=True)
class AttestationRecord:
    """
    A write-once revenue attestation for (business, period).

    merkle_root, timestamp and version are immutable after creation.
    fee_paid is the amount actually charged at submission.
    """
    business:    str
    period:      str
    merkle_root: bytes
    timestamp:   int
    version:     int
    fee_paid:    int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "business":    self.business,
            "period":      self.period,
            "merkle_root": self.merkle_root.hex(),
            "timestamp":   self.timestamp,
            "version":     self.version,
            "fee_paid":    self.fee_paid,
        }


@dataclass(frozen=True)
class AnomalyRecord:
    """Analytics output for an attestation, stored apart from the attestation."""
    flags: int
    score: int

    def to_dict(self) -> Dict[str, Any]:
        return {"flags": self.flags, "score": self.score}


@dataclass(frozen=True)
class RevocationRecord:
    revoked_by: str
    reason:     str
    revoked_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "revoked_by": self.revoked_by,
            "reason":     self.reason,
            "revoked_at": self.revoked_at,
        }


# ─────────────────────────────────────────────────────────────
# Bond registry records
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Bond:
    """
    Bond issuance and terms.

    Risk factors carried by holders:
        - revenue volatility changes payment size and timing
        - issuer default if revenue stays below minimum payments
        - payments need a valid, non-revoked attestation per period
    """
    id:                     int
    issuer:                 str
    face_value:             int
    structure:              BondStructure
    revenue_share_bps:      int
    min_payment_per_period: int
    max_payment_per_period: int
    maturity_periods:       int
    attestation_source:     str
    token:                  str
    status:                 BondStatus
    issued_at:              int

    def is_active(self) -> bool:
        return self.status == BondStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id":                     self.id,
            "issuer":                 self.issuer,
            "face_value":             self.face_value,
            "structure":              self.structure.value,
            "revenue_share_bps":      self.revenue_share_bps,
            "min_payment_per_period": self.min_payment_per_period,
            "max_payment_per_period": self.max_payment_per_period,
            "maturity_periods":       self.maturity_periods,
            "attestation_source":     self.attestation_source,
            "token":                  self.token,
            "status":                 self.status.value,
            "issued_at":              self.issued_at,
        }


@dataclass(frozen=True)
class RedemptionRecord:
    """One period's payment. redemption_amount is the post-cap amount."""
    bond_id:           int
    period:            str
    attested_revenue:  int
    redemption_amount: int
    redeemed_at:       int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bond_id":           self.bond_id,
            "period":            self.period,
            "attested_revenue":  self.attested_revenue,
            "redemption_amount": self.redemption_amount,
            "redeemed_at":       self.redeemed_at,
        }


# ─────────────────────────────────────────────────────────────
# Dispute registry records
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Resolution:
    resolver:    str
    outcome:     DisputeOutcome
    resolved_at: int
    notes:       str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resolver":    self.resolver,
            "outcome":     self.outcome.value,
            "resolved_at": self.resolved_at,
            "notes":       self.notes,
        }


@dataclass(frozen=True)
class Dispute:
    id:           int
    challenger:   str
    business:     str
    period:       str
    status:       DisputeStatus
    dispute_type: DisputeType
    evidence:     str
    opened_at:    int
    resolution:   Optional[Resolution] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id":           self.id,
            "challenger":   self.challenger,
            "business":     self.business,
            "period":       self.period,
            "status":       self.status.value,
            "dispute_type": self.dispute_type.value,
            "evidence":     self.evidence,
            "opened_at":    self.opened_at,
            "resolution":   self.resolution.to_dict() if self.resolution else None,
        }
