"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, TypeVar

import yaml
from dotenv import load_dotenv

from .constants import HEALTH_FACTOR_THRESHOLDS, TOKEN_DECIMALS
from .models import ACTIONS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PoolConfig:
    asset_symbol: str = "USD8"
    decimals: int = TOKEN_DECIMALS
    address: str = "0xSimpleLendingPool"


@dataclass(frozen=True)
class AccountConfig:
    label: str = ""
    address: str = ""
    balance: str = "0"


@dataclass(frozen=True)
class OperationConfig:
    """One genesis operation; ``amount`` is in whole-token units."""

    action: str = ""
    account: str = ""
    amount: str = "0"


@dataclass(frozen=True)
class ThresholdsConfig:
    danger: int = HEALTH_FACTOR_THRESHOLDS.danger
    warning: int = HEALTH_FACTOR_THRESHOLDS.warning
    safe: int = HEALTH_FACTOR_THRESHOLDS.safe


@dataclass(frozen=True)
class MonitorConfig:
    check_interval_minutes: int = 15
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""
    timeout: int = 30


@dataclass(frozen=True)
class EmailConfig:
    enabled: bool = False
    alert_email: str = ""
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    sender_email: str = ""
    sender_password: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    email: EmailConfig = field(default_factory=EmailConfig)


@dataclass(frozen=True)
class AppConfig:
    pool: PoolConfig = field(default_factory=PoolConfig)
    accounts: tuple[AccountConfig, ...] = ()
    genesis: tuple[OperationConfig, ...] = ()
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)

    def find_account(self, ref: str) -> AccountConfig | None:
        """Look an account up by label or address."""
        for account in self.accounts:
            if ref in (account.label, account.address):
                return account
        return None


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------

_T = TypeVar("_T")


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# Field annotations are strings under postponed evaluation.
_COERCE: dict[str, Callable[[Any], Any]] = {"str": str, "int": int, "bool": _to_bool}


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    """Mapping under ``key``; an empty YAML section (``telegram:``) reads as ``{}``."""
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a mapping")
    return value


def _entries(raw: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = raw.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise ValueError(f"Config section '{key}' must be a list of mappings")
    return value


def _flat(cls: type[_T], raw: dict[str, Any]) -> _T:
    """Build a flat config dataclass, coercing each key present to its field type."""
    kwargs = {
        f.name: _COERCE[f.type](raw[f.name])
        for f in fields(cls)
        if raw.get(f.name) is not None
    }
    return cls(**kwargs)


def _build_genesis(raw: list[dict[str, Any]]) -> tuple[OperationConfig, ...]:
    ops = (_flat(OperationConfig, op) for op in raw)
    return tuple(replace(op, action=op.action.strip().lower()) for op in ops)


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    interval = raw.get("check_interval_minutes") or MonitorConfig.check_interval_minutes
    return MonitorConfig(
        check_interval_minutes=int(interval),
        thresholds=_flat(ThresholdsConfig, _section(raw, "thresholds")),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    return NotificationsConfig(
        telegram=_flat(TelegramConfig, _section(raw, "telegram")),
        email=_flat(EmailConfig, _section(raw, "email")),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        pool=_flat(PoolConfig, _section(raw, "pool")),
        accounts=tuple(_flat(AccountConfig, a) for a in _entries(raw, "accounts")),
        genesis=_build_genesis(_entries(raw, "genesis")),
        monitor=_build_monitor(_section(raw, "monitor")),
        notifications=_build_notifications(_section(raw, "notifications")),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not 0 <= cfg.pool.decimals <= 36:
        raise ValueError(f"Pool decimals must be between 0 and 36, got {cfg.pool.decimals}")
    if not cfg.pool.address:
        raise ValueError("Pool address must not be empty")

    if not cfg.accounts:
        raise ValueError("At least one account must be configured")

    labels: set[str] = set()
    addresses: set[str] = set()
    for account in cfg.accounts:
        if not account.address:
            raise ValueError(f"Account '{account.label}' has no address")
        if account.address == cfg.pool.address:
            raise ValueError(f"Account '{account.label}' uses the pool address")
        if account.label and account.label in labels:
            raise ValueError(f"Duplicate account label '{account.label}'")
        if account.address in addresses:
            raise ValueError(f"Duplicate account address '{account.address}'")
        labels.add(account.label)
        addresses.add(account.address)

    for op in cfg.genesis:
        if op.action not in ACTIONS:
            raise ValueError(f"Genesis operation has unknown action '{op.action}'")
        if cfg.find_account(op.account) is None:
            raise ValueError(
                f"Genesis operation references unknown account '{op.account}'"
            )

    th = cfg.monitor.thresholds
    if not th.danger < th.warning < th.safe:
        raise ValueError("Health thresholds must satisfy danger < warning < safe")
