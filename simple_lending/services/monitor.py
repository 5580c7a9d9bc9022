"""Health monitoring — classifies configured accounts and dispatches alerts."""
from __future__ import annotations

import asyncio
from collections import deque
import logging
from datetime import datetime, timezone

from ..amounts import (
    format_address,
    format_health_factor,
    format_percentage,
    format_token_amount,
)
from ..config import AppConfig
from ..constants import HealthThresholds
from ..interfaces.notifier import Notifier
from ..ledger import LendingLedger
from ..models import AccountSummary, HealthStatus, LendingEvent
from ..notifications import build_notifiers
from .account_service import AccountService

logger = logging.getLogger(__name__)

_STATUS_LABELS: dict[HealthStatus, str] = {
    HealthStatus.NO_BORROWS: "💤 No Borrows",
    HealthStatus.DANGER: "🚨 Liquidation Risk",
    HealthStatus.WARNING: "⚠️ Caution",
    HealthStatus.SAFE: "✅ Moderate",
    HealthStatus.VERY_SAFE: "✅ Safe",
}


class HealthMonitor:
    """Watches configured accounts on a ledger and alerts on unhealthy positions."""

    def __init__(
        self,
        config: AppConfig,
        ledger: LendingLedger,
        notifiers: list[Notifier] | None = None,
    ) -> None:
        self._config = config
        self._ledger = ledger
        th = config.monitor.thresholds
        self._thresholds = HealthThresholds(th.danger, th.warning, th.safe)
        self._accounts = AccountService(ledger, self._thresholds)
        self._decimals = config.pool.decimals
        self._symbol = config.pool.asset_symbol

        self._notifiers: list[Notifier] = (
            notifiers if notifiers is not None else build_notifiers(config.notifications)
        )

        self._pending: deque[LendingEvent] = deque()
        self._subscription = ledger.event_bus.subscribe(self._pending.append)

    def close(self) -> None:
        self._subscription.cancel()

    def replay_history(self) -> int:
        """Queue events published before this monitor subscribed, oldest first."""
        queued = {e.sequence for e in self._pending}
        past = [
            e for e in reversed(self._ledger.event_bus.history())
            if e.sequence not in queued
        ]
        self._pending.extendleft(reversed(past))
        return len(past)

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    def _amount(self, value: int) -> str:
        return f"{format_token_amount(value, self._decimals)} {self._symbol}"

    def _build_position_lines(self, summary: AccountSummary) -> str:
        pos = summary.position
        lines = (
            f"Supplied: {self._amount(pos.supplied)}\n"
            f"Borrowed: {self._amount(pos.borrowed)}\n"
            f"Health Factor: {format_health_factor(pos.health_factor)}\n"
            f"Max Withdraw: {self._amount(summary.withdrawable)}"
        )
        if summary.withdraw_limited_by_pool:
            lines += " (limited by pool cap)"
        lines += f"\nMax Borrow: {self._amount(summary.borrowable)}"
        if summary.borrow_limited_by_pool:
            lines += " (limited by pool cap)"
        return lines

    def _build_alert(self, summary: AccountSummary, label: str) -> str:
        critical = summary.status is HealthStatus.DANGER
        header = "🚨 CRITICAL" if critical else "⚠️ WARNING"
        advice = (
            "⚠️ Repay debt or supply more collateral immediately!"
            if critical
            else "Consider repaying part of the borrow."
        )
        return (
            f"{header} — HF {format_health_factor(summary.position.health_factor)}\n"
            f"\n"
            f"{label} ({format_address(summary.user)})\n"
            f"\n"
            f"{self._build_position_lines(summary)}\n"
            f"\n"
            f"{advice}\n"
            f"{self._now_str()} UTC"
        )

    def _build_pool_lines(self) -> str:
        info = self._ledger.get_pool_info()
        return (
            f"Total Supply: {self._amount(info.total_supply)}\n"
            f"Total Borrow: {self._amount(info.total_borrow)}\n"
            f"Utilization: {format_percentage(info.utilization_rate)}\n"
            f"Supply APY: {format_percentage(info.supply_rate)} · "
            f"Borrow APY: {format_percentage(info.borrow_rate)}"
        )

    def _build_activity_log(self, events: list[LendingEvent]) -> str:
        lines = [
            f"{e.event_type.value} · {format_address(e.user)} · {self._amount(e.amount)}"
            for e in events
        ]
        return "📒 Pool Activity\n\n" + "\n".join(lines) + f"\n\n{self._now_str()} UTC"

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def _send_log(self, message: str, silent: bool = True) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=silent)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    # ------------------------------------------------------------------
    # Core workflows
    # ------------------------------------------------------------------

    async def flush_activity(self) -> int:
        """Send buffered ledger events as one activity log; return how many."""
        events: list[LendingEvent] = []
        # popleft is atomic; events published mid-drain are kept.
        while self._pending:
            events.append(self._pending.popleft())
        if not events:
            return 0
        await self._send_log(self._build_activity_log(events))
        return len(events)

    async def check_and_alert(self) -> list[AccountSummary]:
        """Check every configured account and alert on WARNING / DANGER bands."""
        await self.flush_activity()

        checked: list[AccountSummary] = []
        for account in self._config.accounts:
            summary = self._accounts.summary(account.address)
            if summary.position.supplied == 0 and summary.position.borrowed == 0:
                continue
            checked.append(summary)

            logger.info(
                "Position — %s · Supplied: %d  Borrowed: %d  HF: %s  Status: %s",
                account.label,
                summary.position.supplied,
                summary.position.borrowed,
                summary.position.health_factor,
                summary.status.value,
            )

            if summary.status is HealthStatus.DANGER:
                await self._send_alert(
                    self._build_alert(summary, account.label),
                    subject="🚨 CRITICAL: Position over LTV ceiling!",
                )
            elif summary.status is HealthStatus.WARNING:
                await self._send_alert(
                    self._build_alert(summary, account.label),
                    subject="⚠️ WARNING: Low health factor",
                )

        if not checked:
            logger.info("No active positions found")
        return checked

    async def generate_daily_report(self) -> str:
        """Send the pool summary plus one block per configured account."""
        sections: list[str] = []
        for account in self._config.accounts:
            summary = self._accounts.summary(account.address)
            if summary.position.supplied == 0 and summary.position.borrowed == 0:
                continue
            sections.append(
                f"{account.label} · {_STATUS_LABELS[summary.status]}\n"
                + self._build_position_lines(summary)
            )

        body = "\n\n".join(sections) if sections else "No active positions found."
        report = (
            f"📋 Daily Lending Pool Report\n"
            f"\n"
            f"━━ Pool ━━\n"
            f"{self._build_pool_lines()}\n"
            f"\n"
            f"{body}\n"
            f"\n"
            f"{self._now_str()} UTC"
        )

        await self._send_alert(report, subject="📋 Daily Lending Pool Report")
        logger.info("Daily report sent")
        return report

    async def run_continuous(self, check_interval_minutes: int | None = None) -> None:
        """Run continuous monitoring loop."""
        interval = check_interval_minutes or self._config.monitor.check_interval_minutes
        logger.info(
            "Starting continuous monitoring (checking every %d minutes)", interval
        )

        while True:
            try:
                await self.check_and_alert()
                await asyncio.sleep(interval * 60)
            except Exception as e:
                logger.error("Error in monitoring loop: %s", e)
                await asyncio.sleep(60)
