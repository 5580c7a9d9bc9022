"""Email notifier — health alerts and daily reports over SMTP."""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..config import EmailConfig

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Lending pool alert"


class EmailNotifier:
    """Deliver alerts by email; activity logs are not mailed."""

    def __init__(self, config: EmailConfig) -> None:
        self._config = config

    def _build_message(self, body: str, subject: str) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg["From"] = self._config.sender_email
        msg["To"] = self._config.alert_email
        msg["Subject"] = subject or DEFAULT_SUBJECT
        msg.attach(MIMEText(body, "plain", "utf-8"))
        return msg

    async def send_alert(self, message: str, subject: str = "") -> bool:
        cfg = self._config
        if not cfg.alert_email:
            logger.debug("No alert email configured, skipping email")
            return False
        if not cfg.sender_email or not cfg.sender_password:
            logger.warning("Email credentials not configured")
            return False

        try:
            with smtplib.SMTP(cfg.smtp_server, cfg.smtp_port) as server:
                server.starttls()
                server.login(cfg.sender_email, cfg.sender_password)
                server.send_message(self._build_message(message, subject))
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", cfg.alert_email, e)
            return False

        logger.info("Alert email sent to %s", cfg.alert_email)
        return True

    async def send_log(self, message: str, silent: bool = True) -> bool:
        """Activity logs are not mailed."""
        return False
