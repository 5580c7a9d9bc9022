"""Lending ledger — per-user balances, pool totals and the risk checks guarding them.

Single-asset pool: collateral and debt share one unit of value, so no price
feed is involved. Rates are spot values; nothing accrues between calls.

Concurrency model:

* ``_op_lock`` serializes every mutating call pool-wide and is held across
  validation, the custody transfer and the bookkeeping. Re-entering a
  mutating call from the same thread (for instance from a custody or
  listener callback) raises :class:`ReentrantCall` instead of deadlocking.
* ``_state_lock`` is held only while numbers are read or written, so queries
  always see one consistent snapshot and never wait on a transfer.
"""
from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator

from . import rates, risk
from .amounts import validate_amount
from .errors import (
    CustodyTransferFailed,
    ExceedsBorrowLimit,
    InsufficientAuthorization,
    InsufficientBalance,
    InsufficientLiquidity,
    LendingError,
    ReentrantCall,
    UnhealthyPosition,
)
from .events import EventBus
from .interfaces.custody import AssetCustody
from .models import (
    AccountLimits,
    EventType,
    LedgerSnapshot,
    LendingEvent,
    PoolInfo,
    UserAccount,
    UserPosition,
)

logger = logging.getLogger(__name__)


def _unix_now() -> int:
    return int(time.time())


class LendingLedger:
    """Accounting and risk engine of the lending pool."""

    def __init__(
        self,
        custody: AssetCustody,
        bus: EventBus | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._custody = custody
        self._bus = bus if bus is not None else EventBus()
        self._clock = clock or _unix_now

        self._accounts: dict[str, UserAccount] = {}
        self._total_supply = 0
        self._total_borrow = 0

        self._op_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._op_thread: int | None = None

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def custody(self) -> AssetCustody:
        return self._custody

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, action: str, user: str, amount: object) -> Iterator[None]:
        """Run one mutating call under the non-reentrant pool-wide lock."""
        if self._op_thread == threading.get_ident():
            raise ReentrantCall(f"{action} re-entered while another operation is in progress")

        with self._op_lock:
            self._op_thread = threading.get_ident()
            try:
                yield
            except LendingError as e:
                logger.warning("%s of %s by %s rejected: %s", action, amount, user, e)
                raise
            finally:
                self._op_thread = None

    def _pull(self, user: str, amount: int) -> None:
        try:
            self._custody.pull(user, amount)
        except LendingError:
            raise
        except Exception as e:
            raise InsufficientAuthorization(
                f"Could not pull {amount} from {user}; approve the pool first ({e})"
            ) from e

    def _emit(self, event_type: EventType, user: str, amount: int) -> LendingEvent:
        event = LendingEvent(
            event_type=event_type,
            user=user,
            amount=amount,
            timestamp=self._clock(),
            sequence=self._bus.next_sequence(),
        )
        logger.info("%s: %s %d", event_type.value, user, amount)
        self._bus.publish(event)
        return event

    def _account(self, user: str) -> UserAccount:
        """Account of ``user``, or an empty detached one. Caller holds ``_state_lock``."""
        return self._accounts.get(user) or UserAccount()

    # ------------------------------------------------------------------
    # Precondition checks (no mutation)
    # ------------------------------------------------------------------

    def _check_supply(self, user: str, amount: object) -> int:
        return validate_amount(amount)

    def _check_withdraw(self, user: str, amount: object) -> int:
        amount = validate_amount(amount)
        with self._state_lock:
            account = self._account(user)
            free = self._total_supply - self._total_borrow

        if amount > account.supplied:
            raise InsufficientBalance(
                f"Withdrawal of {amount} exceeds supplied balance {account.supplied}"
            )
        allowed = risk.max_withdraw(account.supplied, account.borrowed)
        if amount > allowed:
            raise UnhealthyPosition(
                f"Withdrawal would make position unhealthy (max withdraw {allowed})"
            )
        if amount > free:
            raise InsufficientLiquidity(
                f"Pool has {free} free liquidity, withdrawal needs {amount}"
            )
        return amount

    def _check_borrow(self, user: str, amount: object) -> int:
        amount = validate_amount(amount)
        with self._state_lock:
            account = self._account(user)
            free = self._total_supply - self._total_borrow

        allowed = risk.max_borrow(account.supplied, account.borrowed)
        if amount > allowed:
            raise ExceedsBorrowLimit(
                f"Borrow of {amount} exceeds borrowing limit {allowed}"
            )
        if amount > free:
            raise InsufficientLiquidity(
                f"Pool has {free} free liquidity, borrow needs {amount}"
            )
        return amount

    def _check_repay(self, user: str, amount: object) -> int:
        """Return the clamped repay amount."""
        amount = validate_amount(amount)
        with self._state_lock:
            borrowed = self._account(user).borrowed
        if borrowed == 0:
            raise InsufficientBalance(f"{user} has no outstanding borrow to repay")
        return min(amount, borrowed)

    def preflight(
        self,
        action: EventType | str,
        user: str,
        amount: object,
        require_allowance: bool = True,
    ) -> int:
        """Dry-run ``action`` and raise the error the real call would raise.

        Returns the amount that would move (the clamped amount for repay).
        Nothing is mutated and no funds move. With ``require_allowance``
        off, the custody check is skipped so callers can validate before
        approving.
        """
        event_type = action if isinstance(action, EventType) else EventType.from_action(action)

        if event_type is EventType.SUPPLIED:
            checked = self._check_supply(user, amount)
        elif event_type is EventType.WITHDRAWN:
            return self._check_withdraw(user, amount)
        elif event_type is EventType.BORROWED:
            return self._check_borrow(user, amount)
        else:
            checked = self._check_repay(user, amount)

        if require_allowance and not self._custody.can_pull(user, checked):
            raise InsufficientAuthorization(
                f"Insufficient allowance or balance for {checked}. Please approve first."
            )
        return checked

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def supply(self, user: str, amount: int) -> LendingEvent:
        """Deposit ``amount`` of the asset as supply and collateral."""
        with self._operation("supply", user, amount):
            amount = self._check_supply(user, amount)
            self._pull(user, amount)

            with self._state_lock:
                account = self._accounts.setdefault(user, UserAccount())
                account.supplied += amount
                self._total_supply += amount

            return self._emit(EventType.SUPPLIED, user, amount)

    def withdraw(self, user: str, amount: int) -> LendingEvent:
        """Return ``amount`` of supplied principal to ``user``."""
        with self._operation("withdraw", user, amount):
            amount = self._check_withdraw(user, amount)

            with self._state_lock:
                account = self._accounts[user]
                account.supplied -= amount
                self._total_supply -= amount

            try:
                self._custody.push(user, amount)
            except Exception as e:
                with self._state_lock:
                    account.supplied += amount
                    self._total_supply += amount
                raise CustodyTransferFailed(f"Could not push {amount} to {user}: {e}") from e

            return self._emit(EventType.WITHDRAWN, user, amount)

    def borrow(self, user: str, amount: int) -> LendingEvent:
        """Lend ``amount`` from free liquidity against ``user``'s supply."""
        with self._operation("borrow", user, amount):
            amount = self._check_borrow(user, amount)

            with self._state_lock:
                account = self._accounts[user]
                account.borrowed += amount
                self._total_borrow += amount

            try:
                self._custody.push(user, amount)
            except Exception as e:
                with self._state_lock:
                    account.borrowed -= amount
                    self._total_borrow -= amount
                raise CustodyTransferFailed(f"Could not push {amount} to {user}: {e}") from e

            return self._emit(EventType.BORROWED, user, amount)

    def repay(self, user: str, amount: int) -> LendingEvent:
        """Repay debt; amounts above the outstanding borrow are clamped, not rejected."""
        with self._operation("repay", user, amount):
            clamped = self._check_repay(user, amount)
            self._pull(user, clamped)

            with self._state_lock:
                account = self._accounts[user]
                account.borrowed -= clamped
                self._total_borrow -= clamped

            return self._emit(EventType.REPAID, user, clamped)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_user_position(self, user: str) -> UserPosition:
        with self._state_lock:
            account = self._account(user)
            supplied, borrowed = account.supplied, account.borrowed

        return UserPosition(
            supplied=supplied,
            borrowed=borrowed,
            collateral_value=supplied,
            health_factor=risk.health_factor(supplied, borrowed),
        )

    def calculate_max_withdraw(self, user: str) -> int:
        """User's withdraw ceiling under the LTV rule, not capped by pool liquidity."""
        with self._state_lock:
            account = self._account(user)
            return risk.max_withdraw(account.supplied, account.borrowed)

    def calculate_max_borrow(self, user: str) -> int:
        """User's remaining borrow headroom, not capped by pool liquidity."""
        with self._state_lock:
            account = self._account(user)
            return risk.max_borrow(account.supplied, account.borrowed)

    def get_account_limits(self, user: str) -> AccountLimits:
        """Position, both limits and free liquidity from a single locked read."""
        with self._state_lock:
            account = self._account(user)
            supplied, borrowed = account.supplied, account.borrowed
            free = self._total_supply - self._total_borrow

        return AccountLimits(
            position=UserPosition(
                supplied=supplied,
                borrowed=borrowed,
                collateral_value=supplied,
                health_factor=risk.health_factor(supplied, borrowed),
            ),
            max_withdraw=risk.max_withdraw(supplied, borrowed),
            max_borrow=risk.max_borrow(supplied, borrowed),
            free_liquidity=free,
        )

    def get_pool_info(self) -> PoolInfo:
        with self._state_lock:
            total_supply, total_borrow = self._total_supply, self._total_borrow

        utilization = rates.utilization_rate(total_supply, total_borrow)
        return PoolInfo(
            total_supply=total_supply,
            total_borrow=total_borrow,
            utilization_rate=utilization,
            supply_rate=rates.supply_rate(utilization),
            borrow_rate=rates.borrow_rate(utilization),
        )

    def free_liquidity(self) -> int:
        with self._state_lock:
            return self._total_supply - self._total_borrow

    def users(self) -> list[str]:
        with self._state_lock:
            return list(self._accounts)

    def snapshot(self) -> LedgerSnapshot:
        with self._state_lock:
            return LedgerSnapshot(
                total_supply=self._total_supply,
                total_borrow=self._total_borrow,
                accounts={
                    user: UserAccount(a.supplied, a.borrowed)
                    for user, a in self._accounts.items()
                },
            )
