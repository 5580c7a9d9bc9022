"""Pool setup — build token, custody and ledger from config and seed them."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Callable

from ..amounts import parse_units, validate_amount
from ..config import AppConfig, OperationConfig
from ..errors import InvalidAmount, LendingError
from ..events import EventBus
from ..ledger import LendingLedger
from ..models import EventType, LendingEvent
from ..token import InMemoryToken, TokenCustody

logger = logging.getLogger(__name__)


@dataclass
class PoolContext:
    """Everything a caller needs to drive a seeded pool."""

    token: InMemoryToken
    custody: TokenCustody
    ledger: LendingLedger
    bus: EventBus
    accounts: dict[str, str] = field(default_factory=dict)
    decimals: int = 18

    def resolve(self, ref: str) -> str:
        """Return the address for an account label, or ``ref`` if it is already an address."""
        return self.accounts.get(ref, ref)

    def to_units(self, amount: str) -> int:
        return parse_units(amount, self.decimals)

    def execute(self, action: str, account: str, amount: int) -> LendingEvent:
        """Run one operation, approving exactly what supply / repay will pull.

        The approval is only granted once the operation passes its checks,
        and the previous allowance is restored if the operation still fails.
        """
        amount = validate_amount(amount)
        user = self.resolve(account)
        event_type = EventType.from_action(action)

        if event_type is EventType.WITHDRAWN:
            return self.ledger.withdraw(user, amount)
        if event_type is EventType.BORROWED:
            return self.ledger.borrow(user, amount)

        pulled = self.ledger.preflight(event_type, user, amount, require_allowance=False)
        spender = self.custody.pool_address
        previous = self.token.allowance(user, spender)
        self.token.approve(user, spender, pulled)
        try:
            if event_type is EventType.SUPPLIED:
                return self.ledger.supply(user, amount)
            return self.ledger.repay(user, amount)
        except LendingError:
            self.token.approve(user, spender, previous)
            raise


def _starting_balance(text: str, decimals: int) -> int:
    """Whole-token balance string to base units; zero is allowed here."""
    try:
        if Decimal(text or "0") == 0:
            return 0
    except InvalidOperation:
        raise InvalidAmount(f"Not a valid balance: '{text}'") from None
    return parse_units(text, decimals)


def _apply(ctx: PoolContext, op: OperationConfig) -> LendingEvent:
    event = ctx.execute(op.action, op.account, ctx.to_units(op.amount))
    logger.debug("Genesis %s for %s applied", op.action, op.account)
    return event


def build_pool(config: AppConfig, clock: Callable[[], int] | None = None) -> PoolContext:
    """Create the pool described by ``config`` and replay its genesis operations.

    A genesis operation that fails raises the ledger error unchanged.
    """
    token = InMemoryToken(config.pool.asset_symbol, config.pool.decimals)
    custody = TokenCustody(token, config.pool.address)
    bus = EventBus()
    ledger = LendingLedger(custody, bus=bus, clock=clock)

    ctx = PoolContext(
        token=token,
        custody=custody,
        ledger=ledger,
        bus=bus,
        accounts={a.label: a.address for a in config.accounts if a.label},
        decimals=config.pool.decimals,
    )

    for account in config.accounts:
        balance = _starting_balance(account.balance, config.pool.decimals)
        if balance:
            token.mint(account.address, balance)

    for op in config.genesis:
        _apply(ctx, op)

    logger.info(
        "Pool seeded: %d accounts, %d genesis operations",
        len(config.accounts),
        len(config.genesis),
    )
    return ctx
