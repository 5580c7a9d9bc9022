"""Position risk formulas over supplied and borrowed principal, in integer math.

Collateral and debt are the same asset, so collateral value equals the
supplied principal and no price feed is involved.
"""
from __future__ import annotations

from .constants import HEALTH_FACTOR_THRESHOLDS, LTV_RATIO, HealthThresholds
from .models import HealthFactor, HealthStatus, Ratio, Unbounded


def health_factor(supplied: int, borrowed: int) -> HealthFactor:
    """Return ``supplied * LTV / borrowed`` in percent, or Unbounded without debt."""
    if borrowed == 0:
        return Unbounded()
    return Ratio(supplied * LTV_RATIO // borrowed)


def min_required_supply(borrowed: int) -> int:
    """Smallest supply that keeps ``borrowed`` inside the LTV ceiling (rounded up)."""
    return -(-borrowed * 100 // LTV_RATIO)


def max_withdraw(supplied: int, borrowed: int) -> int:
    """Largest withdrawal that keeps the position healthy.

    Not capped by pool liquidity; callers intersect that separately.
    """
    if borrowed == 0:
        return supplied
    return max(0, supplied - min_required_supply(borrowed))


def max_borrow(supplied: int, borrowed: int) -> int:
    """Remaining borrow headroom under the LTV ceiling, ignoring liquidity."""
    return max(0, supplied * LTV_RATIO // 100 - borrowed)


def is_within_ltv(supplied: int, borrowed: int) -> bool:
    return borrowed * 100 <= supplied * LTV_RATIO


def classify_health(
    factor: HealthFactor,
    thresholds: HealthThresholds = HEALTH_FACTOR_THRESHOLDS,
) -> HealthStatus:
    """Place a health factor into its display band."""
    if factor.is_unbounded:
        return HealthStatus.NO_BORROWS
    if factor.value < thresholds.danger:
        return HealthStatus.DANGER
    if factor.value < thresholds.warning:
        return HealthStatus.WARNING
    if factor.value < thresholds.safe:
        return HealthStatus.SAFE
    return HealthStatus.VERY_SAFE
