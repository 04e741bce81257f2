"""
Token ledger: the single atomic transfer primitive used to move fees and
bond payments.

Balances live in the token's own store, so a failed fee collection or
redemption rolls the balances back together with the caller's records.
"""

import logging

from revsettle.core.env import Contract, Env, contract_call
from revsettle.core.exceptions import (
    AlreadyInitializedError,
    InsufficientBalanceError,
    NotInitializedError,
)
from revsettle.core.validation import require_amount
from revsettle.ledger.store import DataKey

logger = logging.getLogger(__name__)


class TokenLedger(Contract):
    """Fungible balances keyed by address."""

    def __init__(self, env: Env, admin: str, symbol: str = "USDC") -> None:
        super().__init__(env)
        self.symbol = symbol
        self._initialize(admin)

    @contract_call
    def _initialize(self, admin: str) -> None:
        if self.store.has(DataKey.token_admin()):
            raise AlreadyInitializedError("Token already initialized")
        self.store.set(DataKey.token_admin(), admin)

    @property
    def admin(self) -> str:
        admin = self.store.get(DataKey.token_admin())
        if admin is None:
            raise NotInitializedError("Token not initialized")
        return admin

    def balance(self, address: str) -> int:
        return self.store.get(DataKey.balance(address), 0)

    @contract_call
    def mint(self, to: str, amount: int) -> None:
        """Create `amount` new units for `to`. Token admin must authorize."""
        self.env.require_auth(self.admin)
        require_amount("amount", amount)
        self.store.set(DataKey.balance(to), self.balance(to) + amount)
        logger.debug("Minted %d %s to %s", amount, self.symbol, to[:16])

    @contract_call
    def transfer(self, from_: str, to: str, amount: int) -> None:
        """
        Move `amount` from `from_` to `to`. The payer must authorize.

        Raises InsufficientBalanceError when the payer cannot cover it;
        the enclosing invocation then rolls back entirely.
        """
        self.env.require_auth(from_)
        require_amount("amount", amount)

        payer_balance = self.balance(from_)
        if payer_balance < amount:
            raise InsufficientBalanceError(
                "Insufficient balance for transfer",
                {"from": from_[:16], "balance": payer_balance, "amount": amount},
            )
        self.store.set(DataKey.balance(from_), payer_balance - amount)
        self.store.set(DataKey.balance(to), self.balance(to) + amount)
