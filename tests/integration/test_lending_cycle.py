"""Integration tests — full lending cycles across several users at 18-decimal scale."""
from __future__ import annotations

import threading

import pytest

from conftest import ALICE, BOB, CAROL, ONE, POOL
from simple_lending.errors import LendingError, UnhealthyPosition
from simple_lending.events import EventBus
from simple_lending.ledger import LendingLedger
from simple_lending.models import EventType, Ratio, Unbounded
from simple_lending.token import InMemoryToken, TokenCustody

WALLET = 10_000 * ONE


@pytest.fixture()
def env():
    token = InMemoryToken("USD8", 18)
    for user in (ALICE, BOB, CAROL):
        token.mint(user, WALLET)
    custody = TokenCustody(token, POOL)
    bus = EventBus()
    ledger = LendingLedger(custody, bus=bus)
    return token, custody, bus, ledger


def _supply(env, user: str, amount: int) -> None:
    token, _, _, ledger = env
    token.approve(user, POOL, amount)
    ledger.supply(user, amount)


def _repay(env, user: str, amount: int) -> None:
    token, _, _, ledger = env
    token.approve(user, POOL, amount)
    ledger.repay(user, amount)


class TestFullCycle:
    def test_supply_borrow_repay_withdraw(self, env) -> None:
        token, custody, bus, ledger = env

        _supply(env, ALICE, 1000 * ONE)
        pos = ledger.get_user_position(ALICE)
        assert pos.supplied == 1000 * ONE
        assert pos.health_factor == Unbounded()

        ledger.borrow(ALICE, 500 * ONE)
        pos = ledger.get_user_position(ALICE)
        assert pos.borrowed == 500 * ONE
        assert pos.health_factor == Ratio(150)
        assert token.balance_of(ALICE) == WALLET - 500 * ONE

        _repay(env, ALICE, 500 * ONE)
        assert ledger.get_user_position(ALICE).borrowed == 0

        ledger.withdraw(ALICE, 1000 * ONE)
        assert ledger.get_user_position(ALICE).supplied == 0
        assert token.balance_of(ALICE) == WALLET
        assert custody.reserve() == 0

        info = ledger.get_pool_info()
        assert (info.total_supply, info.total_borrow, info.utilization_rate) == (0, 0, 0)

    def test_events_in_order(self, env) -> None:
        _, _, bus, ledger = env
        _supply(env, ALICE, 1000 * ONE)
        ledger.borrow(ALICE, 500 * ONE)
        _repay(env, ALICE, 500 * ONE)
        ledger.withdraw(ALICE, 1000 * ONE)

        events = list(reversed(bus.history(user=ALICE)))
        assert [e.event_type for e in events] == [
            EventType.SUPPLIED,
            EventType.BORROWED,
            EventType.REPAID,
            EventType.WITHDRAWN,
        ]
        assert [e.amount for e in events] == [1000 * ONE, 500 * ONE, 500 * ONE, 1000 * ONE]
        assert [e.sequence for e in events] == [1, 2, 3, 4]


class TestMultiUser:
    def test_independent_positions(self, env) -> None:
        _, _, _, ledger = env
        _supply(env, ALICE, 2000 * ONE)
        _supply(env, BOB, 3000 * ONE)
        ledger.borrow(ALICE, 1000 * ONE)
        ledger.borrow(BOB, 1500 * ONE)

        info = ledger.get_pool_info()
        assert info.total_supply == 5000 * ONE
        assert info.total_borrow == 2500 * ONE
        assert info.utilization_rate == 50

        # 2000 - ceil(1000 * 100 / 75)
        assert ledger.calculate_max_withdraw(ALICE) == 2000 * ONE - (4000 * ONE + 2) // 3
        assert ledger.calculate_max_withdraw(BOB) == 1000 * ONE
        assert ledger.get_user_position(ALICE).health_factor == Ratio(150)
        assert ledger.get_user_position(BOB).health_factor == Ratio(150)

    def test_rates_follow_utilization(self, env) -> None:
        _, _, _, ledger = env
        info = ledger.get_pool_info()
        assert (info.supply_rate, info.borrow_rate) == (2, 4)

        _supply(env, ALICE, 1000 * ONE)
        ledger.borrow(ALICE, 500 * ONE)
        info = ledger.get_pool_info()
        assert (info.utilization_rate, info.supply_rate, info.borrow_rate) == (50, 7, 14)

        _supply(env, BOB, 1000 * ONE)
        info = ledger.get_pool_info()
        assert (info.utilization_rate, info.supply_rate, info.borrow_rate) == (25, 4, 9)

    def test_unhealthy_withdraw_then_recover(self, env) -> None:
        _, _, _, ledger = env
        _supply(env, ALICE, 1000 * ONE)
        assert ledger.calculate_max_borrow(ALICE) == 750 * ONE
        ledger.borrow(ALICE, 750 * ONE)

        assert ledger.calculate_max_withdraw(ALICE) == 0
        with pytest.raises(UnhealthyPosition, match="unhealthy"):
            ledger.withdraw(ALICE, ONE)

        _repay(env, ALICE, 375 * ONE)
        max_withdraw = ledger.calculate_max_withdraw(ALICE)
        assert max_withdraw == 500 * ONE

        ledger.withdraw(ALICE, max_withdraw)
        pos = ledger.get_user_position(ALICE)
        assert pos.borrowed * 100 // pos.supplied <= 75
        assert pos.health_factor == Ratio(100)


class TestConcurrency:
    def test_parallel_users_keep_totals_consistent(self, env) -> None:
        token, custody, _, ledger = env
        rounds = 50
        errors: list[Exception] = []

        def worker(user: str) -> None:
            try:
                for _ in range(rounds):
                    _supply(env, user, 10 * ONE)
                    ledger.borrow(user, 5 * ONE)
                    _repay(env, user, 5 * ONE)
                    ledger.withdraw(user, 4 * ONE)
            except LendingError as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(u,)) for u in (ALICE, BOB, CAROL)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        snap = ledger.snapshot()
        assert snap.total_borrow == 0
        assert snap.total_supply == 3 * rounds * 6 * ONE
        assert snap.total_supply == sum(a.supplied for a in snap.accounts.values())
        assert custody.reserve() == snap.total_supply

    def test_concurrent_borrows_never_breach_ltv(self, env) -> None:
        _, _, _, ledger = env
        _supply(env, ALICE, 1000 * ONE)
        results: list[bool] = []
        lock = threading.Lock()

        def borrow_once() -> None:
            try:
                ledger.borrow(ALICE, 100 * ONE)
                ok = True
            except LendingError:
                ok = False
            with lock:
                results.append(ok)

        threads = [threading.Thread(target=borrow_once) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 7
        assert ledger.get_user_position(ALICE).borrowed == 700 * ONE
