"""
revsettle/core/env.py

Execution environment for revsettle contracts.

Env is the host every contract is deployed into. It owns:
    - one KeyedStore per contract address
    - the contract directory (address → contract object)
    - the ledger clock
    - caller authorization
    - an optional Journal of committed invocations

Invocation contract for every public mutating operation, in order:
  1. Env.invocation() opens (outermost call only) a transaction on EVERY store
  2. The operation runs; nested contract calls join the same transaction
  3. On ANY exception: every store rolls back, the exception propagates
  4. On success: changes are journaled, THEN every store commits
     (a journal write failure rolls back like any other failure)

Authorization contract:
    require_auth(address) passes only if the caller presented a signature,
    made by the key behind `address`, over a fresh per-env challenge.
    The signature is re-verified on EVERY check. There is no session.
"""

import functools
import logging
import secrets
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from revsettle.core.canonical import canonicalize
from revsettle.core.crypto import Ed25519KeyManager
from revsettle.core.exceptions import AuthorizationError, ContractNotFoundError
from revsettle.core.time import ledger_timestamp
from revsettle.ledger.journal import Journal
from revsettle.ledger.store import KeyedStore

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Authorization
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AuthProof:
    """A signature by `address` over `challenge`."""
    address:   str
    challenge: bytes
    signature: str

    def is_valid(self) -> bool:
        return Ed25519KeyManager.verify_detached(
            self.challenge, self.signature, self.address
        )


class AuthContext:
    """
    Holds the proofs presented by the current caller(s).

    present() signs a fresh challenge with a key manager and stores the
    proof; withdraw() drops it. require_auth() re-verifies on every call.
    """

    def __init__(self, network_id: str) -> None:
        self.network_id = network_id
        self._proofs: Dict[str, AuthProof] = {}
        self._mock_all = False

    def _new_challenge(self) -> bytes:
        return canonicalize({
            "network": self.network_id,
            "nonce":   secrets.token_hex(16),
        })

    def present(self, key_manager: Ed25519KeyManager) -> Optional[AuthProof]:
        """Sign a new challenge; returns the proof it replaced, if any."""
        challenge = self._new_challenge()
        proof = AuthProof(
            address=   key_manager.address,
            challenge= challenge,
            signature= key_manager.sign(challenge),
        )
        previous = self._proofs.get(proof.address)
        self._proofs[proof.address] = proof
        return previous

    def restore(self, address: str, previous: Optional[AuthProof]) -> None:
        if previous is None:
            self._proofs.pop(address, None)
        else:
            self._proofs[address] = previous

    def require_auth(self, address: str) -> None:
        if self._mock_all:
            return
        proof = self._proofs.get(address)
        if proof is None:
            raise AuthorizationError(
                "Caller has not proven control of address",
                {"address": _short(address)},
            )
        if not proof.is_valid():
            raise AuthorizationError(
                "Authorization proof does not verify",
                {"address": _short(address)},
            )


def _short(address: Any) -> str:
    return f"{address[:16]}..." if isinstance(address, str) and len(address) > 16 else str(address)


# ─────────────────────────────────────────────────────────────
# Env
# ─────────────────────────────────────────────────────────────

class Env:
    """
    Host for deployed contracts. Single-threaded; each invocation runs to
    completion or rolls back entirely.
    """

    def __init__(
        self,
        journal:    Optional[Journal] = None,
        network_id: Optional[str] = None,
        timestamp:  Optional[int] = None,
    ) -> None:
        self.network_id = network_id or f"revsettle-{uuid.uuid4().hex[:12]}"
        self.journal = journal
        self.auth = AuthContext(self.network_id)

        self._contracts: Dict[str, Any] = {}
        self._stores: Dict[str, KeyedStore] = {}
        self._timestamp: Optional[int] = timestamp
        self._depth = 0

    # ── Clock ────────────────────────────────────────────────

    @property
    def timestamp(self) -> int:
        """Ledger time in seconds. Wall clock unless pinned."""
        if self._timestamp is None:
            return ledger_timestamp()
        return self._timestamp

    def set_timestamp(self, timestamp: Optional[int]) -> None:
        """Pin the ledger clock; None returns to the wall clock."""
        self._timestamp = timestamp

    # ── Contract directory ───────────────────────────────────

    def register(self, contract: Any) -> str:
        address = f"contract-{uuid.uuid4().hex}"
        self._contracts[address] = contract
        store = KeyedStore(owner=address)
        if self._depth:
            store.begin()
        self._stores[address] = store
        logger.debug("Registered %s at %s", type(contract).__name__, address)
        return address

    def contract(self, address: str) -> Any:
        try:
            return self._contracts[address]
        except KeyError:
            raise ContractNotFoundError(
                "No contract registered at address",
                {"address": address},
            ) from None

    def storage_for(self, address: str) -> KeyedStore:
        return self._stores[address]

    # ── Authorization ────────────────────────────────────────

    def require_auth(self, address: str) -> None:
        self.auth.require_auth(address)

    @contextmanager
    def as_signers(self, *key_managers: Ed25519KeyManager) -> Iterator[None]:
        """
        Present authorization proofs for each key for the duration of the block.

            with env.as_signers(business):
                registry.submit_attestation(business.address, ...)
        """
        replaced = [
            (key.address, self.auth.present(key)) for key in key_managers
        ]
        try:
            yield
        finally:
            for address, previous in reversed(replaced):
                self.auth.restore(address, previous)

    @contextmanager
    def mock_all_auths(self) -> Iterator[None]:
        """Make every require_auth() pass. Bootstrap tooling and tests only."""
        previous = self.auth._mock_all
        self.auth._mock_all = True
        try:
            yield
        finally:
            self.auth._mock_all = previous

    # ── Invocations ──────────────────────────────────────────

    @contextmanager
    def invocation(self, contract_address: str, operation: str) -> Iterator[None]:
        """Run one operation atomically across every store."""
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        stores = list(self._stores.values())
        for store in stores:
            store.begin()
        self._depth = 1
        try:
            yield
            self._journal(contract_address, operation)
        except BaseException as exc:
            for store in self._stores.values():
                store.rollback()
            logger.warning(
                "Rolled back %s on %s: %s",
                operation, contract_address, type(exc).__name__,
            )
            raise
        else:
            for store in self._stores.values():
                store.commit()
        finally:
            self._depth = 0

    def _journal(self, contract_address: str, operation: str) -> None:
        if self.journal is None:
            return
        changes: List[Dict[str, Any]] = []
        for address, store in self._stores.items():
            for change in store.pending_changes():
                change["contract"] = address
                changes.append(change)
        self.journal.append(
            entry_type=operation,
            data={
                "contract":  contract_address,
                "operation": operation,
                "changes":   changes,
            },
        )


# ─────────────────────────────────────────────────────────────
# Contract base
# ─────────────────────────────────────────────────────────────

class Contract:
    """
    Base for deployed contracts: registers with the Env on construction
    and owns the store at its address.
    """

    def __init__(self, env: Env) -> None:
        self.env = env
        self.address = env.register(self)
        self.store = env.storage_for(self.address)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(address={self.address!r})"


def contract_call(method: Callable) -> Callable:
    """Wrap a public mutating method in an Env invocation."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.env.invocation(self.address, method.__name__):
            return method(self, *args, **kwargs)

    return wrapper
