"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from simple_lending.config import (
    AccountConfig,
    AppConfig,
    EmailConfig,
    MonitorConfig,
    NotificationsConfig,
    OperationConfig,
    PoolConfig,
    TelegramConfig,
    ThresholdsConfig,
)
from simple_lending.events import EventBus
from simple_lending.ledger import LendingLedger
from simple_lending.token import InMemoryToken, TokenCustody

POOL = "0xPOOL"
ALICE = "0xA11CE"
BOB = "0xB0B"
CAROL = "0xCA201"

# One whole token at 18 decimals.
ONE = 10**18
STARTING_BALANCE = 10_000


class FixedClock:
    """Deterministic time source; advances one second per call."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def token() -> InMemoryToken:
    t = InMemoryToken("USD8", 18)
    for user in (ALICE, BOB, CAROL):
        t.mint(user, STARTING_BALANCE)
    return t


@pytest.fixture()
def custody(token: InMemoryToken) -> TokenCustody:
    return TokenCustody(token, POOL)


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def ledger(custody: TokenCustody, bus: EventBus, clock: FixedClock) -> LendingLedger:
    return LendingLedger(custody, bus=bus, clock=clock)


@pytest.fixture()
def approve(token: InMemoryToken):
    """Approve the pool to pull ``amount`` from ``user``."""

    def _approve(user: str, amount: int) -> None:
        token.approve(user, POOL, amount)

    return _approve


@pytest.fixture()
def supply(ledger: LendingLedger, approve):
    """Approve and supply in one step."""

    def _supply(user: str, amount: int):
        approve(user, amount)
        return ledger.supply(user, amount)

    return _supply


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_thresholds() -> ThresholdsConfig:
    return ThresholdsConfig(danger=100, warning=150, safe=200)


@pytest.fixture()
def sample_app_config(sample_thresholds: ThresholdsConfig) -> AppConfig:
    return AppConfig(
        pool=PoolConfig(asset_symbol="USD8", decimals=18, address=POOL),
        accounts=(
            AccountConfig(label="alice", address=ALICE, balance="10000"),
            AccountConfig(label="bob", address=BOB, balance="10000"),
        ),
        genesis=(
            OperationConfig(action="supply", account="alice", amount="1000"),
            OperationConfig(action="borrow", account="alice", amount="500"),
        ),
        monitor=MonitorConfig(check_interval_minutes=5, thresholds=sample_thresholds),
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                alert_bot_token="fake-alert-token",
                log_bot_token="fake-log-token",
                chat_id="12345",
            ),
            email=EmailConfig(enabled=False),
        ),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    pool:
      asset_symbol: USD8
      decimals: 18
      address: "0xPOOL"
    accounts:
      - label: alice
        address: "0xA11CE"
        balance: "10000"
      - label: bob
        address: "0xB0B"
        balance: "5000"
    genesis:
      - {action: supply, account: alice, amount: "2000"}
      - {action: supply, account: bob, amount: "3000"}
      - {action: borrow, account: alice, amount: "1000"}
      - {action: borrow, account: "0xB0B", amount: "1500"}
    monitor:
      check_interval_minutes: 5
      thresholds:
        danger: 100
        warning: 150
        safe: 200
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
      email:
        enabled: false
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
