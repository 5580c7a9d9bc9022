"""Single-asset collateralized lending pool: accounting and risk engine."""
from .constants import (
    BASE_RATE,
    HEALTH_FACTOR_THRESHOLDS,
    LTV_RATIO,
    TOKEN_DECIMALS,
    HealthThresholds,
)
from .errors import (
    CustodyTransferFailed,
    ExceedsBorrowLimit,
    InsufficientAuthorization,
    InsufficientBalance,
    InsufficientLiquidity,
    InvalidAmount,
    LendingError,
    ReentrantCall,
    UnhealthyPosition,
)
from .events import EventBus, Subscription
from .ledger import LendingLedger
from .models import (
    EventType,
    HealthStatus,
    LendingEvent,
    PoolInfo,
    Ratio,
    Unbounded,
    UserPosition,
)
from .token import InMemoryToken, TokenCustody

__all__ = [
    "BASE_RATE",
    "HEALTH_FACTOR_THRESHOLDS",
    "LTV_RATIO",
    "TOKEN_DECIMALS",
    "HealthThresholds",
    "CustodyTransferFailed",
    "ExceedsBorrowLimit",
    "InsufficientAuthorization",
    "InsufficientBalance",
    "InsufficientLiquidity",
    "InvalidAmount",
    "LendingError",
    "ReentrantCall",
    "UnhealthyPosition",
    "EventBus",
    "Subscription",
    "LendingLedger",
    "EventType",
    "HealthStatus",
    "LendingEvent",
    "PoolInfo",
    "Ratio",
    "Unbounded",
    "UserPosition",
    "InMemoryToken",
    "TokenCustody",
]
