"""Unit tests for the in-memory token and its custody adapter."""
from __future__ import annotations

import pytest

from conftest import ALICE, BOB, POOL, STARTING_BALANCE
from simple_lending.token import (
    InMemoryToken,
    InsufficientAllowance,
    InsufficientTokenBalance,
    TokenCustody,
)


class TestInMemoryToken:
    def test_mint(self, token: InMemoryToken) -> None:
        assert token.balance_of(ALICE) == STARTING_BALANCE
        assert token.total_supply == 3 * STARTING_BALANCE
        assert token.balance_of("0xNOBODY") == 0

    def test_negative_mint(self, token: InMemoryToken) -> None:
        with pytest.raises(ValueError):
            token.mint(ALICE, -1)

    def test_transfer(self, token: InMemoryToken) -> None:
        token.transfer(ALICE, BOB, 100)
        assert token.balance_of(ALICE) == STARTING_BALANCE - 100
        assert token.balance_of(BOB) == STARTING_BALANCE + 100
        assert token.total_supply == 3 * STARTING_BALANCE

    def test_transfer_over_balance(self, token: InMemoryToken) -> None:
        with pytest.raises(InsufficientTokenBalance):
            token.transfer(ALICE, BOB, STARTING_BALANCE + 1)
        assert token.balance_of(ALICE) == STARTING_BALANCE

    def test_approve_overwrites(self, token: InMemoryToken) -> None:
        token.approve(ALICE, POOL, 100)
        token.approve(ALICE, POOL, 40)
        assert token.allowance(ALICE, POOL) == 40

    def test_transfer_from_spends_allowance(self, token: InMemoryToken) -> None:
        token.approve(ALICE, BOB, 300)
        token.transfer_from(BOB, ALICE, BOB, 200)
        assert token.allowance(ALICE, BOB) == 100
        assert token.balance_of(BOB) == STARTING_BALANCE + 200

    def test_transfer_from_without_allowance(self, token: InMemoryToken) -> None:
        with pytest.raises(InsufficientAllowance):
            token.transfer_from(BOB, ALICE, BOB, 1)

    def test_failed_transfer_from_keeps_allowance(self, token: InMemoryToken) -> None:
        token.approve(ALICE, BOB, STARTING_BALANCE * 2)
        with pytest.raises(InsufficientTokenBalance):
            token.transfer_from(BOB, ALICE, BOB, STARTING_BALANCE + 1)
        assert token.allowance(ALICE, BOB) == STARTING_BALANCE * 2


class TestTokenCustody:
    def test_pull_and_push(self, token: InMemoryToken, custody: TokenCustody) -> None:
        token.approve(ALICE, POOL, 500)
        custody.pull(ALICE, 500)
        assert custody.reserve() == 500
        custody.push(BOB, 200)
        assert custody.reserve() == 300
        assert token.balance_of(BOB) == STARTING_BALANCE + 200

    def test_pull_needs_approval(self, custody: TokenCustody) -> None:
        with pytest.raises(InsufficientAllowance):
            custody.pull(ALICE, 1)

    def test_push_over_reserve(self, custody: TokenCustody) -> None:
        with pytest.raises(InsufficientTokenBalance):
            custody.push(ALICE, 1)

    def test_can_pull(self, token: InMemoryToken, custody: TokenCustody) -> None:
        assert not custody.can_pull(ALICE, 1)
        token.approve(ALICE, POOL, STARTING_BALANCE + 1)
        assert custody.can_pull(ALICE, STARTING_BALANCE)
        assert not custody.can_pull(ALICE, STARTING_BALANCE + 1)
