"""
Outbound email notifications (SMTP, or in-memory in mock mode).
"""

from .client import MockNotifier, SentMessage, SmtpConfig, SmtpNotifier

__all__ = ["MockNotifier", "SentMessage", "SmtpConfig", "SmtpNotifier"]
