"""Unit tests for the interest-rate curve."""
from __future__ import annotations

import pytest

from simple_lending.rates import borrow_rate, supply_rate, utilization_rate


class TestUtilization:
    def test_empty_pool(self) -> None:
        assert utilization_rate(0, 0) == 0

    def test_no_borrows(self) -> None:
        assert utilization_rate(1000, 0) == 0

    @pytest.mark.parametrize(
        ("supply", "borrow", "expected"),
        [
            (4000, 1000, 25),
            (5000, 2500, 50),
            (1000, 750, 75),
            (3, 1, 33),
            (3, 2, 66),
        ],
    )
    def test_floored_percent(self, supply: int, borrow: int, expected: int) -> None:
        assert utilization_rate(supply, borrow) == expected

    def test_full_utilization(self) -> None:
        assert utilization_rate(10**21, 10**21) == 100


class TestRates:
    def test_base_rates(self) -> None:
        assert supply_rate(0) == 2
        assert borrow_rate(0) == 4

    def test_quarter_utilization(self) -> None:
        assert supply_rate(25) == 4
        assert borrow_rate(25) == 9

    def test_half_utilization(self) -> None:
        assert supply_rate(50) == 7
        assert borrow_rate(50) == 14

    def test_full_utilization(self) -> None:
        assert supply_rate(100) == 12
        assert borrow_rate(100) == 24

    def test_borrow_always_above_supply(self) -> None:
        for u in range(0, 101):
            assert borrow_rate(u) > supply_rate(u)
