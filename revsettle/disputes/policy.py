"""
Resolution policy for disputes.

Decides whether an address may resolve a dispute. The admin may always
resolve; any address the admin has added to the arbiter set may too.

evaluate() returns (allowed, reason) rather than raising so the caller
decides how to report a denial.
"""

from typing import Tuple

from revsettle.ledger.store import DataKey, KeyedStore


class ArbiterPolicy:
    """Admin-or-arbiter check over the dispute registry store."""

    def __init__(self, store: KeyedStore) -> None:
        self.store = store

    def add(self, arbiter: str) -> None:
        self.store.set(DataKey.arbiter(arbiter), True)

    def remove(self, arbiter: str) -> None:
        self.store.remove(DataKey.arbiter(arbiter))

    def is_arbiter(self, address: str) -> bool:
        return self.store.has(DataKey.arbiter(address))

    def evaluate(self, resolver: str) -> Tuple[bool, str]:
        if resolver == self.store.get(DataKey.admin()):
            return True, "admin"
        if self.is_arbiter(resolver):
            return True, "arbiter"
        return False, "resolver is neither admin nor a designated arbiter"
