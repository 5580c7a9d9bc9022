"""Error taxonomy for the lending ledger.

Every failure is raised before any state mutation or asset transfer (or after
rolling the bookkeeping back), so a caller catching :class:`LendingError` can
rely on the pool being unchanged.
"""
from __future__ import annotations


class LendingError(Exception):
    """Base class for all ledger failures."""

    code = "lending_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = str(self.args[0])


class InvalidAmount(LendingError, ValueError):
    """Amount must be a positive integer."""

    code = "invalid_amount"


class InsufficientBalance(LendingError):
    """Amount exceeds the recorded balance."""

    code = "insufficient_balance"


class InsufficientAuthorization(LendingError):
    """Asset pull failed: allowance or external balance too low."""

    code = "insufficient_authorization"


class UnhealthyPosition(LendingError):
    """Withdrawal would make position unhealthy."""

    code = "unhealthy_position"


class ExceedsBorrowLimit(LendingError):
    """Borrow would exceed the LTV ceiling."""

    code = "exceeds_borrow_limit"


class InsufficientLiquidity(LendingError):
    """Insufficient pool liquidity."""

    code = "insufficient_liquidity"


class ReentrantCall(LendingError):
    """A mutating call was re-entered before the previous one finished."""

    code = "reentrant_call"


class CustodyTransferFailed(LendingError):
    """Custody could not push funds; bookkeeping was rolled back."""

    code = "custody_transfer_failed"
