"""Protocol constants shared by the engine and its consumers.

Downstream consumers classify positions against these values, so they are
part of the public surface and must stay stable.
"""
from __future__ import annotations

from dataclasses import dataclass

# Loan-to-value ceiling, in percent.
LTV_RATIO = 75

# Floor of both rate curves, in percent.
BASE_RATE = 2

# Fixed-point scaling of the pooled asset.
TOKEN_DECIMALS = 18


@dataclass(frozen=True)
class HealthThresholds:
    """Health-factor band edges, in percent.

    ``< danger`` is a breached position, ``danger..warning`` needs caution,
    ``warning..safe`` is safe and ``>= safe`` is very safe.
    """

    danger: int = 100
    warning: int = 150
    safe: int = 200


HEALTH_FACTOR_THRESHOLDS = HealthThresholds()
