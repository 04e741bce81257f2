"""
Attestation fee engine: tiered and volume-based discounts.

Pricing (integer only, deterministic):

    tier_bps    = discount of the business's tier        (tier default 0, bps default 0)
    volume_bps  = discount of the highest bracket whose threshold <= prior count
    discount    = min(tier_bps + volume_bps, 10000)
    fee         = base_fee * (10000 - discount) // 10000

"prior count" is the number of attestations the business submitted
BEFORE the current one: discounts are earned by past volume.

FeeEngine does not check authorization; AttestationRegistry gates every
mutating call on the admin before delegating here.
"""

import logging
from typing import List, Optional, Sequence

from revsettle.core.env import Env
from revsettle.core.exceptions import NotInitializedError, ValidationError
from revsettle.core.models import (
    BPS_DENOMINATOR,
    DEFAULT_TIER,
    FeeConfig,
    VolumeBracket,
)
from revsettle.core.validation import require_bps, require_count, require_u32
from revsettle.ledger.store import DataKey, KeyedStore

logger = logging.getLogger(__name__)


def volume_discount_bps(count: int, brackets: Sequence[VolumeBracket]) -> int:
    """Discount of the highest bracket reached by `count`, 0 if none."""
    discount = 0
    for bracket in brackets:
        if count >= bracket.threshold:
            discount = bracket.discount_bps
        else:
            break
    return discount


def compute_fee(
    base_fee:     int,
    tier_bps:     int,
    volume_count: int,
    brackets:     Sequence[VolumeBracket] = (),
) -> int:
    """
    Fee for one attestation given a base fee, a tier discount and the
    business's prior attestation count.
    """
    discount = min(tier_bps + volume_discount_bps(volume_count, brackets), BPS_DENOMINATOR)
    return base_fee * (BPS_DENOMINATOR - discount) // BPS_DENOMINATOR


def build_brackets(
    thresholds: Sequence[int],
    discounts:  Sequence[int],
) -> List[VolumeBracket]:
    """
    Validate parallel threshold/discount arrays and pair them up.

    Raises ValidationError on mismatched lengths, non-ascending thresholds
    or an out-of-range discount. Nothing is written on failure.
    """
    if len(thresholds) != len(discounts):
        raise ValidationError(
            "thresholds and discounts must have equal length",
            {"thresholds": len(thresholds), "discounts": len(discounts)},
        )
    brackets: List[VolumeBracket] = []
    previous: Optional[int] = None
    for threshold, discount in zip(thresholds, discounts):
        require_count("threshold", threshold)
        require_bps("discount_bps", discount)
        if previous is not None and threshold <= previous:
            raise ValidationError(
                "thresholds must be strictly ascending",
                {"previous": previous, "threshold": threshold},
            )
        brackets.append(VolumeBracket(threshold=threshold, discount_bps=discount))
        previous = threshold
    return brackets


class FeeEngine:
    """Fee schedule storage, quoting and collection over a contract store."""

    def __init__(self, env: Env, store: KeyedStore) -> None:
        self.env = env
        self.store = store

    # ── Schedule ─────────────────────────────────────────────

    def get_fee_config(self) -> Optional[FeeConfig]:
        return self.store.get(DataKey.fee_config())

    def set_fee_config(self, config: FeeConfig) -> None:
        self.store.set(DataKey.fee_config(), config)
        logger.info(
            "Fee schedule set: base_fee=%d enabled=%s",
            config.base_fee, config.enabled,
        )

    def set_fee_enabled(self, enabled: bool) -> FeeConfig:
        config = self.get_fee_config()
        if config is None:
            raise NotInitializedError("Fees not configured")
        updated = FeeConfig(
            token=     config.token,
            collector= config.collector,
            base_fee=  config.base_fee,
            enabled=   bool(enabled),
        )
        self.set_fee_config(updated)
        return updated

    def set_tier_discount(self, tier: int, discount_bps: int) -> None:
        require_u32("tier", tier)
        require_bps("discount_bps", discount_bps)
        self.store.set(DataKey.tier_discount(tier), discount_bps)

    def get_tier_discount(self, tier: int) -> int:
        return self.store.get(DataKey.tier_discount(tier), 0)

    def set_business_tier(self, business: str, tier: int) -> None:
        require_u32("tier", tier)
        self.store.set(DataKey.business_tier(business), tier)

    def get_business_tier(self, business: str) -> int:
        return self.store.get(DataKey.business_tier(business), DEFAULT_TIER)

    def set_volume_brackets(
        self,
        thresholds: Sequence[int],
        discounts:  Sequence[int],
    ) -> List[VolumeBracket]:
        brackets = build_brackets(thresholds, discounts)
        self.store.set(DataKey.volume_brackets(), tuple(brackets))
        return brackets

    def get_volume_brackets(self) -> List[VolumeBracket]:
        return list(self.store.get(DataKey.volume_brackets(), ()))

    # ── Usage counter ────────────────────────────────────────

    def get_business_count(self, business: str) -> int:
        return self.store.get(DataKey.business_count(business), 0)

    def increment_business_count(self, business: str) -> int:
        count = self.get_business_count(business) + 1
        self.store.set(DataKey.business_count(business), count)
        return count

    # ── Pricing ──────────────────────────────────────────────

    def calculate_fee(self, business: str) -> int:
        """Fee the business would pay for its next attestation (0 if disabled)."""
        config = self.get_fee_config()
        if config is None or not config.enabled:
            return 0
        return compute_fee(
            base_fee=     config.base_fee,
            tier_bps=     self.get_tier_discount(self.get_business_tier(business)),
            volume_count= self.get_business_count(business),
            brackets=     self.get_volume_brackets(),
        )

    def collect_fee(self, business: str) -> int:
        """
        Charge the business its fee. Exactly one transfer, or none when the
        fee is zero or fees are disabled/unconfigured. Never touches the
        usage counter. Returns the amount charged.
        """
        config = self.get_fee_config()
        if config is None or not config.enabled:
            return 0
        fee = self.calculate_fee(business)
        if fee > 0:
            token = self.env.contract(config.token)
            token.transfer(business, config.collector, fee)
            logger.debug("Collected fee %d from %s", fee, business[:16])
        return fee
