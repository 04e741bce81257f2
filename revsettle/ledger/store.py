"""
Persistent keyed store for revsettle contracts.

One KeyedStore per deployed contract; no two contracts share a
namespace. Keys are DataKey values: a KeyTag plus the identifying
fields for that record kind. Two keys with different tags never
collide, even when their fields are equal.

Transactions:
    begin()    — start recording an undo log
    pending_changes() — what commit() would make permanent
    commit()   — drop the undo log
    rollback() — restore every touched key to its value before begin()

The undo log stores the FIRST prior value of each key touched, so a key
written several times inside one transaction rolls back in one step.
Values must be immutable (frozen records, ints, strings, tuples).
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from revsettle.core.exceptions import RevSettleError


_MISSING = object()


class KeyTag(enum.Enum):
    # Attestation registry
    ADMIN                = "admin"
    FEE_CONFIG           = "fee_config"
    TIER_DISCOUNT        = "tier_discount"
    BUSINESS_TIER        = "business_tier"
    VOLUME_BRACKETS      = "volume_brackets"
    BUSINESS_COUNT       = "business_count"
    ATTESTATION          = "attestation"
    ANOMALY              = "anomaly"
    AUTHORIZED_ANALYTICS = "authorized_analytics"
    REVOCATION           = "revocation"
    # Bond registry
    NEXT_BOND_ID         = "next_bond_id"
    BOND                 = "bond"
    BOND_OWNER           = "bond_owner"
    REDEMPTION           = "redemption"
    TOTAL_REDEEMED       = "total_redeemed"
    # Dispute registry
    ATTESTATION_SOURCE   = "attestation_source"
    NEXT_DISPUTE_ID      = "next_dispute_id"
    DISPUTE              = "dispute"
    DISPUTES_BY_ATTESTATION = "disputes_by_attestation"
    DISPUTES_BY_CHALLENGER  = "disputes_by_challenger"
    ARBITER              = "arbiter"
    # Token ledger
    TOKEN_ADMIN          = "token_admin"
    BALANCE              = "balance"


@dataclass(frozen=True)
class DataKey:
    """A tagged composite key. Build with the named constructors."""
    tag:    KeyTag
    fields: Tuple[Any, ...] = ()

    # ── Singletons ───────────────────────────────────────────

    @classmethod
    def admin(cls) -> "DataKey":
        return cls(KeyTag.ADMIN)

    @classmethod
    def fee_config(cls) -> "DataKey":
        return cls(KeyTag.FEE_CONFIG)

    @classmethod
    def volume_brackets(cls) -> "DataKey":
        return cls(KeyTag.VOLUME_BRACKETS)

    @classmethod
    def next_bond_id(cls) -> "DataKey":
        return cls(KeyTag.NEXT_BOND_ID)

    @classmethod
    def next_dispute_id(cls) -> "DataKey":
        return cls(KeyTag.NEXT_DISPUTE_ID)

    @classmethod
    def attestation_source(cls) -> "DataKey":
        return cls(KeyTag.ATTESTATION_SOURCE)

    @classmethod
    def token_admin(cls) -> "DataKey":
        return cls(KeyTag.TOKEN_ADMIN)

    # ── Fee engine ───────────────────────────────────────────

    @classmethod
    def tier_discount(cls, tier: int) -> "DataKey":
        return cls(KeyTag.TIER_DISCOUNT, (tier,))

    @classmethod
    def business_tier(cls, business: str) -> "DataKey":
        return cls(KeyTag.BUSINESS_TIER, (business,))

    @classmethod
    def business_count(cls, business: str) -> "DataKey":
        return cls(KeyTag.BUSINESS_COUNT, (business,))

    # ── Attestations ─────────────────────────────────────────

    @classmethod
    def attestation(cls, business: str, period: str) -> "DataKey":
        return cls(KeyTag.ATTESTATION, (business, period))

    @classmethod
    def anomaly(cls, business: str, period: str) -> "DataKey":
        return cls(KeyTag.ANOMALY, (business, period))

    @classmethod
    def revocation(cls, business: str, period: str) -> "DataKey":
        return cls(KeyTag.REVOCATION, (business, period))

    @classmethod
    def authorized_analytics(cls, address: str) -> "DataKey":
        return cls(KeyTag.AUTHORIZED_ANALYTICS, (address,))

    # ── Bonds ────────────────────────────────────────────────

    @classmethod
    def bond(cls, bond_id: int) -> "DataKey":
        return cls(KeyTag.BOND, (bond_id,))

    @classmethod
    def bond_owner(cls, bond_id: int) -> "DataKey":
        return cls(KeyTag.BOND_OWNER, (bond_id,))

    @classmethod
    def redemption(cls, bond_id: int, period: str) -> "DataKey":
        return cls(KeyTag.REDEMPTION, (bond_id, period))

    @classmethod
    def total_redeemed(cls, bond_id: int) -> "DataKey":
        return cls(KeyTag.TOTAL_REDEEMED, (bond_id,))

    # ── Disputes ─────────────────────────────────────────────

    @classmethod
    def dispute(cls, dispute_id: int) -> "DataKey":
        return cls(KeyTag.DISPUTE, (dispute_id,))

    @classmethod
    def disputes_by_attestation(cls, business: str, period: str) -> "DataKey":
        return cls(KeyTag.DISPUTES_BY_ATTESTATION, (business, period))

    @classmethod
    def disputes_by_challenger(cls, challenger: str) -> "DataKey":
        return cls(KeyTag.DISPUTES_BY_CHALLENGER, (challenger,))

    @classmethod
    def arbiter(cls, address: str) -> "DataKey":
        return cls(KeyTag.ARBITER, (address,))

    # ── Token ────────────────────────────────────────────────

    @classmethod
    def balance(cls, address: str) -> "DataKey":
        return cls(KeyTag.BALANCE, (address,))

    def to_list(self) -> List[Any]:
        """JSON form: [tag, *fields]."""
        return [self.tag.value, *self.fields]


def encode_value(value: Any) -> Any:
    """
    Convert a stored value to JSON-primitive form for journaling.
    Records expose to_dict(); enums collapse to their value.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    raise TypeError(f"Cannot encode stored value of type {type(value).__name__}")


class KeyedStore:
    """
    Flat key-value store with has/get/set/remove and an undo-log transaction.
    """

    def __init__(self, owner: str) -> None:
        self.owner = owner
        self._data: Dict[DataKey, Any] = {}
        self._undo: Optional[Dict[DataKey, Any]] = None

    # ── Access ───────────────────────────────────────────────

    def has(self, key: DataKey) -> bool:
        return key in self._data

    def get(self, key: DataKey, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: DataKey, value: Any) -> None:
        self._remember(key)
        self._data[key] = value

    def remove(self, key: DataKey) -> None:
        self._remember(key)
        self._data.pop(key, None)

    def keys(self, tag: Optional[KeyTag] = None) -> Iterator[DataKey]:
        for key in list(self._data):
            if tag is None or key.tag == tag:
                yield key

    def __len__(self) -> int:
        return len(self._data)

    # ── Transactions ─────────────────────────────────────────

    @property
    def in_transaction(self) -> bool:
        return self._undo is not None

    def begin(self) -> None:
        if self._undo is not None:
            raise RevSettleError(
                "Transaction already open",
                {"owner": self.owner},
            )
        self._undo = {}

    def pending_changes(self) -> List[Dict[str, Any]]:
        """
        Changes made since begin(), as [{"key": [...], "value": ...}] in
        key-touch order. A removed key is reported with "removed": True.
        """
        changes = []
        for key in self._undo or {}:
            if key in self._data:
                changes.append({
                    "key":   key.to_list(),
                    "value": encode_value(self._data[key]),
                })
            else:
                changes.append({"key": key.to_list(), "removed": True})
        return changes

    def commit(self) -> None:
        self._undo = None

    def rollback(self) -> None:
        undo, self._undo = self._undo or {}, None
        for key, previous in undo.items():
            if previous is _MISSING:
                self._data.pop(key, None)
            else:
                self._data[key] = previous

    def _remember(self, key: DataKey) -> None:
        if self._undo is not None and key not in self._undo:
            self._undo[key] = self._data.get(key, _MISSING)
