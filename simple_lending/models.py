"""Data models. Views are frozen; only UserAccount is mutable."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


# ---------------------------------------------------------------------------
# Health factor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Unbounded:
    """Health of a position with no debt."""

    is_unbounded = True

    def __str__(self) -> str:
        return "unbounded"


@dataclass(frozen=True)
class Ratio:
    """Health of a position with debt, in percent of the LTV ceiling."""

    value: int
    is_unbounded = False

    def __str__(self) -> str:
        return f"{self.value}%"


HealthFactor = Union[Unbounded, Ratio]


class HealthStatus(str, Enum):
    NO_BORROWS = "no_borrows"
    DANGER = "danger"
    WARNING = "warning"
    SAFE = "safe"
    VERY_SAFE = "very_safe"


# ---------------------------------------------------------------------------
# Accounts and pool
# ---------------------------------------------------------------------------


@dataclass
class UserAccount:
    """Principal recorded for a single user."""

    supplied: int = 0
    borrowed: int = 0


@dataclass(frozen=True)
class UserPosition:
    supplied: int
    borrowed: int
    collateral_value: int
    health_factor: HealthFactor


@dataclass(frozen=True)
class PoolInfo:
    """Pool totals and spot rates (all rates in whole percent)."""

    total_supply: int
    total_borrow: int
    utilization_rate: int
    supply_rate: int
    borrow_rate: int

    @property
    def free_liquidity(self) -> int:
        return self.total_supply - self.total_borrow


@dataclass(frozen=True)
class LedgerSnapshot:
    """Consistent copy of the ledger state at one instant."""

    total_supply: int
    total_borrow: int
    accounts: dict[str, UserAccount] = field(default_factory=dict)


@dataclass(frozen=True)
class AccountLimits:
    """A user's position, limits and pool free liquidity read at one instant."""

    position: UserPosition
    max_withdraw: int
    max_borrow: int
    free_liquidity: int


@dataclass(frozen=True)
class AccountSummary:
    """Position plus limits, both theoretical and capped by pool liquidity."""

    user: str
    position: UserPosition
    status: HealthStatus
    max_withdraw: int
    max_borrow: int
    withdrawable: int
    borrowable: int

    @property
    def withdraw_limited_by_pool(self) -> bool:
        return self.withdrawable < self.max_withdraw

    @property
    def borrow_limited_by_pool(self) -> bool:
        return self.borrowable < self.max_borrow


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class EventType(str, Enum):
    SUPPLIED = "Supplied"
    WITHDRAWN = "Withdrawn"
    BORROWED = "Borrowed"
    REPAID = "Repaid"

    @classmethod
    def from_action(cls, action: str) -> "EventType":
        """Map an operation name (``supply``, ``repay``...) to its event."""
        try:
            return _ACTIONS[action.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown action '{action}'") from None


_ACTIONS = {
    "supply": EventType.SUPPLIED,
    "withdraw": EventType.WITHDRAWN,
    "borrow": EventType.BORROWED,
    "repay": EventType.REPAID,
}

ACTIONS = tuple(_ACTIONS)


@dataclass(frozen=True)
class LendingEvent:
    """Notification emitted after a committed mutation."""

    event_type: EventType
    user: str
    amount: int
    timestamp: int
    sequence: int = 0
