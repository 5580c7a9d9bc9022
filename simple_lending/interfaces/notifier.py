"""Notifier protocol — delivery channel for health alerts and activity logs."""
from typing import Protocol


class Notifier(Protocol):
    """Abstract interface for sending alerts (loud) and logs (quiet)."""

    async def send_alert(self, message: str, subject: str = "") -> bool: ...

    async def send_log(self, message: str, silent: bool = True) -> bool: ...
