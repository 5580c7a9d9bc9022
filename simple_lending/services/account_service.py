"""Per-account limits, intersected with pool liquidity."""
from __future__ import annotations

from ..constants import HEALTH_FACTOR_THRESHOLDS, HealthThresholds
from ..ledger import LendingLedger
from ..models import AccountSummary
from ..risk import classify_health


class AccountService:
    """Combine ledger queries into the view a dashboard or bot needs.

    The ledger's max-withdraw / max-borrow queries ignore pool liquidity.
    This service keeps those values and adds the executable amounts next to
    them, so callers can tell "limited by your collateral" from "limited by
    the pool".
    """

    def __init__(
        self,
        ledger: LendingLedger,
        thresholds: HealthThresholds = HEALTH_FACTOR_THRESHOLDS,
    ) -> None:
        self._ledger = ledger
        self._thresholds = thresholds

    def summary(self, user: str) -> AccountSummary:
        limits = self._ledger.get_account_limits(user)
        liquidity = limits.free_liquidity

        return AccountSummary(
            user=user,
            position=limits.position,
            status=classify_health(limits.position.health_factor, self._thresholds),
            max_withdraw=limits.max_withdraw,
            max_borrow=limits.max_borrow,
            withdrawable=min(limits.max_withdraw, liquidity),
            borrowable=min(limits.max_borrow, liquidity),
        )

    def summaries(self) -> list[AccountSummary]:
        """Summaries for every user that ever supplied."""
        return [self.summary(user) for user in self._ledger.users()]
