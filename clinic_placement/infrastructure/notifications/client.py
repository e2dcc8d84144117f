"""
Outbound email notifications.

SmtpNotifier sends real mail through an SMTP relay. MockNotifier keeps
messages in memory so local runs and tests can see what would have been
sent.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class SmtpConfig:
    server: str
    sender_email: str
    port: int = 25
    user: Optional[str] = None
    password: Optional[str] = None


class SmtpNotifier:

    def __init__(self, config: SmtpConfig) -> None:
        self._config = config

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Send a plain-text email.

        Raises:
            RuntimeError: SMTP server or sender not configured.
            smtplib.SMTPException: the relay refused the message.
        """
        if not self._config.server or not self._config.sender_email:
            raise RuntimeError("SMTP_SERVER or SENDER_EMAIL not configured.")

        msg = EmailMessage()
        msg["From"] = self._config.sender_email
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        try:
            with smtplib.SMTP(self._config.server, self._config.port) as server:
                if self._config.user and self._config.password:
                    server.login(self._config.user, self._config.password)
                server.send_message(msg)
            logger.info("Email sent", extra={"to": to, "subject": subject})
        except smtplib.SMTPException as e:
            logger.error("SMTP error occurred", extra={"to": to, "error": str(e)})
            raise


@dataclass
class SentMessage:
    to: str
    subject: str
    body: str


class MockNotifier:
    """Records messages instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[SentMessage] = []

    def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append(SentMessage(to, subject, body))
        logger.info("Mock email recorded", extra={"to": to, "subject": subject})
