"""Alert and activity-log delivery channels."""
from ..config import NotificationsConfig
from ..interfaces.notifier import Notifier
from .email import EmailNotifier
from .telegram import TelegramNotifier


def build_notifiers(config: NotificationsConfig) -> list[Notifier]:
    """Instantiate every enabled channel, Telegram first."""
    notifiers: list[Notifier] = []
    if config.telegram.enabled:
        notifiers.append(TelegramNotifier(config.telegram))
    if config.email.enabled:
        notifiers.append(EmailNotifier(config.email))
    return notifiers


__all__ = ["EmailNotifier", "TelegramNotifier", "build_notifiers"]
