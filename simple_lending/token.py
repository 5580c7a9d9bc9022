"""In-memory ERC-20-style token and the custody adapter the ledger uses."""
from __future__ import annotations

import logging
import threading
from collections import defaultdict

from .constants import TOKEN_DECIMALS

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Base class for token transfer failures."""


class InsufficientTokenBalance(TokenError):
    pass


class InsufficientAllowance(TokenError):
    pass


class InMemoryToken:
    """Balances and allowances with approve / transfer / transferFrom semantics."""

    def __init__(self, symbol: str = "USD8", decimals: int = TOKEN_DECIMALS) -> None:
        self.symbol = symbol
        self.decimals = decimals
        self._lock = threading.RLock()
        self._balances: dict[str, int] = defaultdict(int)
        self._allowances: dict[tuple[str, str], int] = defaultdict(int)
        self._total_supply = 0

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def balance_of(self, account: str) -> int:
        with self._lock:
            return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        with self._lock:
            return self._allowances.get((owner, spender), 0)

    @property
    def total_supply(self) -> int:
        with self._lock:
            return self._total_supply

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mint(self, account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Cannot mint a negative amount")
        with self._lock:
            self._balances[account] += amount
            self._total_supply += amount
        logger.debug("Minted %d %s to %s", amount, self.symbol, account)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Allowance cannot be negative")
        with self._lock:
            self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Cannot transfer a negative amount")
        with self._lock:
            balance = self._balances.get(sender, 0)
            if balance < amount:
                raise InsufficientTokenBalance(
                    f"{sender} holds {balance} {self.symbol}, needs {amount}"
                )
            self._balances[sender] = balance - amount
            self._balances[recipient] += amount

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        """Move ``amount`` from ``owner`` to ``recipient`` using ``spender``'s allowance."""
        with self._lock:
            allowed = self._allowances.get((owner, spender), 0)
            if allowed < amount:
                raise InsufficientAllowance(
                    f"{spender} may spend {allowed} {self.symbol} of {owner}, needs {amount}"
                )
            self.transfer(owner, recipient, amount)
            self._allowances[(owner, spender)] = allowed - amount


class TokenCustody:
    """Custody of the pooled asset: the pool address holds the reserve."""

    def __init__(self, token: InMemoryToken, pool_address: str) -> None:
        self.token = token
        self.pool_address = pool_address

    def pull(self, owner: str, amount: int) -> None:
        self.token.transfer_from(self.pool_address, owner, self.pool_address, amount)

    def push(self, recipient: str, amount: int) -> None:
        self.token.transfer(self.pool_address, recipient, amount)

    def can_pull(self, owner: str, amount: int) -> bool:
        return (
            self.token.allowance(owner, self.pool_address) >= amount
            and self.token.balance_of(owner) >= amount
        )

    def reserve(self) -> int:
        return self.token.balance_of(self.pool_address)
