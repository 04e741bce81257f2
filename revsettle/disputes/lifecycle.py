"""
Dispute lifecycle for challenges against attestations.

    OPEN ──resolve_dispute──► RESOLVED ──close_dispute──► CLOSED

No transition skips a state; none moves backward. Once CLOSED the
resolution is final and every further resolve/close fails with
DisputeStatusError.

Duplicate rule: a challenger may hold at most one OPEN dispute per
(business, period). Once that dispute is resolved the same challenger
may open another. Other challengers are never blocked.

Indices (append-only, never pruned):
    (business, period) → [dispute_id, ...]
    challenger         → [dispute_id, ...]
"""

import logging
from dataclasses import replace
from typing import List, Optional

from revsettle.core.env import Contract, Env, contract_call
from revsettle.core.exceptions import (
    AlreadyInitializedError,
    AttestationNotFoundError,
    AuthorizationError,
    DisputeNotFoundError,
    DisputeStatusError,
    DuplicateDisputeError,
    NotInitializedError,
    ValidationError,
)
from revsettle.core.models import (
    Dispute,
    DisputeOutcome,
    DisputeStatus,
    DisputeType,
    Resolution,
)
from revsettle.core.validation import require_address, require_text
from revsettle.disputes.policy import ArbiterPolicy
from revsettle.ledger.store import DataKey

logger = logging.getLogger(__name__)


class DisputeRegistry(Contract):
    """Opens, resolves and closes disputes against stored attestations."""

    def __init__(self, env: Env) -> None:
        super().__init__(env)
        self.policy = ArbiterPolicy(self.store)

    # ── Initialization ───────────────────────────────────────

    @contract_call
    def initialize(self, admin: str, attestation_source: str) -> None:
        """One-time setup: admin and the attestation registry disputes refer to."""
        if self.store.has(DataKey.admin()):
            raise AlreadyInitializedError("Dispute registry already initialized")
        require_address("admin", admin)
        self.env.require_auth(admin)
        require_text("attestation_source", attestation_source)
        self.store.set(DataKey.admin(), admin)
        self.store.set(DataKey.attestation_source(), attestation_source)
        self.store.set(DataKey.next_dispute_id(), 1)
        logger.info("Dispute registry %s initialized", self.address)

    def get_admin(self) -> str:
        admin = self.store.get(DataKey.admin())
        if admin is None:
            raise NotInitializedError("Dispute registry not initialized")
        return admin

    # ── Arbiters ─────────────────────────────────────────────

    @contract_call
    def add_arbiter(self, caller: str, arbiter: str) -> None:
        self._require_admin_caller(caller)
        require_address("arbiter", arbiter)
        self.policy.add(arbiter)

    @contract_call
    def remove_arbiter(self, caller: str, arbiter: str) -> None:
        self._require_admin_caller(caller)
        self.policy.remove(arbiter)

    def is_arbiter(self, address: str) -> bool:
        return self.policy.is_arbiter(address)

    def _require_admin_caller(self, caller: str) -> None:
        self.env.require_auth(caller)
        if caller != self.get_admin():
            raise AuthorizationError("Caller is not admin", {"caller": caller[:16]})

    # ── Lifecycle ────────────────────────────────────────────

    @contract_call
    def open_dispute(
        self,
        challenger:   str,
        business:     str,
        period:       str,
        dispute_type: DisputeType,
        evidence:     str,
    ) -> int:
        """Challenge an existing attestation. Returns the new dispute id."""
        self.env.require_auth(challenger)
        if not isinstance(dispute_type, DisputeType):
            raise ValidationError(
                "dispute_type must be a DisputeType",
                {"dispute_type": repr(dispute_type)},
            )
        require_text("evidence", evidence, allow_empty=True)

        source = self.env.contract(self._attestation_source())
        if source.get_attestation(business, period) is None:
            raise AttestationNotFoundError(
                "Attestation does not exist for this business and period",
                {"business": business[:16], "period": period},
            )
        if self._has_open_dispute(challenger, business, period):
            raise DuplicateDisputeError(
                "Challenger already has an open dispute for this attestation",
                {"challenger": challenger[:16], "period": period},
            )

        dispute_id = self.store.get(DataKey.next_dispute_id())
        dispute = Dispute(
            id=           dispute_id,
            challenger=   challenger,
            business=     business,
            period=       period,
            status=       DisputeStatus.OPEN,
            dispute_type= dispute_type,
            evidence=     evidence,
            opened_at=    self.env.timestamp,
        )
        self.store.set(DataKey.dispute(dispute_id), dispute)
        self.store.set(DataKey.next_dispute_id(), dispute_id + 1)
        self._append_index(DataKey.disputes_by_attestation(business, period), dispute_id)
        self._append_index(DataKey.disputes_by_challenger(challenger), dispute_id)

        logger.info(
            "Dispute %d opened by %s against %s period=%s",
            dispute_id, challenger[:16], business[:16], period,
        )
        return dispute_id

    @contract_call
    def resolve_dispute(
        self,
        dispute_id: int,
        resolver:   str,
        outcome:    DisputeOutcome,
        notes:      str,
    ) -> Dispute:
        """OPEN → RESOLVED. Resolver must authorize and pass the arbiter policy."""
        dispute = self._load(dispute_id)
        self._require_status(dispute, DisputeStatus.OPEN)

        self.env.require_auth(resolver)
        allowed, reason = self.policy.evaluate(resolver)
        if not allowed:
            raise AuthorizationError(reason, {"resolver": resolver[:16]})
        if not isinstance(outcome, DisputeOutcome):
            raise ValidationError("outcome must be a DisputeOutcome", {"outcome": repr(outcome)})
        require_text("notes", notes, allow_empty=True)

        resolved = replace(
            dispute,
            status=DisputeStatus.RESOLVED,
            resolution=Resolution(
                resolver=    resolver,
                outcome=     outcome,
                resolved_at= self.env.timestamp,
                notes=       notes,
            ),
        )
        self.store.set(DataKey.dispute(dispute_id), resolved)
        logger.info("Dispute %d resolved: %s", dispute_id, outcome.value)
        return resolved

    @contract_call
    def close_dispute(self, dispute_id: int) -> Dispute:
        """RESOLVED → CLOSED. Any caller may finalize a resolved dispute."""
        dispute = self._load(dispute_id)
        self._require_status(dispute, DisputeStatus.RESOLVED)
        closed = replace(dispute, status=DisputeStatus.CLOSED)
        self.store.set(DataKey.dispute(dispute_id), closed)
        logger.info("Dispute %d closed", dispute_id)
        return closed

    # ── Queries ──────────────────────────────────────────────

    def get_dispute(self, dispute_id: int) -> Optional[Dispute]:
        return self.store.get(DataKey.dispute(dispute_id))

    def get_disputes_by_attestation(self, business: str, period: str) -> List[int]:
        return list(self.store.get(DataKey.disputes_by_attestation(business, period), ()))

    def get_disputes_by_challenger(self, challenger: str) -> List[int]:
        return list(self.store.get(DataKey.disputes_by_challenger(challenger), ()))

    # ── Internals ────────────────────────────────────────────

    def _attestation_source(self) -> str:
        source = self.store.get(DataKey.attestation_source())
        if source is None:
            raise NotInitializedError("Dispute registry not initialized")
        return source

    def _load(self, dispute_id: int) -> Dispute:
        dispute = self.get_dispute(dispute_id)
        if dispute is None:
            raise DisputeNotFoundError("Dispute not found", {"dispute_id": dispute_id})
        return dispute

    @staticmethod
    def _require_status(dispute: Dispute, expected: DisputeStatus) -> None:
        if dispute.status != expected:
            raise DisputeStatusError(
                "Wrong status",
                {
                    "dispute_id": dispute.id,
                    "expected":   expected.value,
                    "actual":     dispute.status.value,
                },
            )

    def _has_open_dispute(self, challenger: str, business: str, period: str) -> bool:
        for dispute_id in self.get_disputes_by_attestation(business, period):
            dispute = self.get_dispute(dispute_id)
            if dispute.challenger == challenger and dispute.status == DisputeStatus.OPEN:
                return True
        return False

    def _append_index(self, key: DataKey, dispute_id: int) -> None:
        self.store.set(key, tuple(self.store.get(key, ())) + (dispute_id,))
