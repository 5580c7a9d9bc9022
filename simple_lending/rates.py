"""Utilization-driven interest-rate curve.

Rates are spot values derived from the current pool totals. Nothing accrues
over time: a borrower's principal only changes through borrow and repay.
"""
from __future__ import annotations

from .constants import BASE_RATE


def utilization_rate(total_supply: int, total_borrow: int) -> int:
    """Share of supplied funds lent out, as a whole percent (floored)."""
    if total_supply == 0:
        return 0
    return total_borrow * 100 // total_supply


def supply_rate(utilization: int) -> int:
    return BASE_RATE + utilization // 10


def borrow_rate(utilization: int) -> int:
    return BASE_RATE + 2 + utilization // 5
