"""Telegram notifier — alerts through the alert bot, activity through the log bot."""
import html
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/sendMessage"

# Telegram rejects messages longer than this.
MAX_MESSAGE_LENGTH = 4096


class TelegramNotifier:
    """Deliver pool alerts and activity logs to a Telegram chat."""

    def __init__(self, config: TelegramConfig) -> None:
        self._alert_bot_token = config.alert_bot_token
        self._log_bot_token = config.log_bot_token
        self._chat_id = config.chat_id
        self._timeout = aiohttp.ClientTimeout(total=config.timeout)

    @staticmethod
    def _render(message: str, subject: str = "") -> str:
        text = html.escape(message)
        if subject:
            text = f"<b>{html.escape(subject)}</b>\n\n{text}"
        if len(text) > MAX_MESSAGE_LENGTH:
            text = text[: MAX_MESSAGE_LENGTH - 1] + "…"
        return text

    async def _post(self, bot_token: str, text: str, silent: bool) -> bool:
        if not bot_token or not self._chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        payload = {
            "chat_id": self._chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_notification": silent,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector, timeout=self._timeout) as session:
            async with session.post(API_URL.format(token=bot_token), json=payload) as response:
                if response.status != 200:
                    logger.error("Telegram rejected message: HTTP %s", response.status)
                    return False
                return True

    async def send_alert(self, message: str, subject: str = "") -> bool:
        """Send a health alert through the (unmuted) alert bot."""
        sent = await self._post(self._alert_bot_token, self._render(message, subject), silent=False)
        if sent:
            logger.info("Telegram alert sent")
        return sent

    async def send_log(self, message: str, silent: bool = True) -> bool:
        """Send pool activity through the log bot, muted by default."""
        sent = await self._post(self._log_bot_token, self._render(message), silent=silent)
        if sent:
            logger.info("Telegram log sent")
        return sent
