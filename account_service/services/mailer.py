"""Outbound mail over SMTP."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from account_service.core.config import Settings

logger = logging.getLogger(__name__)


class SmtpMailDispatcher:
    """Sends plain-text mail. send() returns the Message-ID, or None when delivery failed."""

    def __init__(self, settings: Settings) -> None:
        self._host = settings.MAIL_HOST
        self._port = settings.MAIL_PORT
        self._username = settings.MAIL_USERNAME
        self._password = (
            settings.MAIL_PASSWORD.get_secret_value() if settings.MAIL_PASSWORD else None
        )
        self._use_tls = settings.MAIL_USE_TLS
        self._sender = settings.MAIL_SENDER
        self._timeout = settings.MAIL_TIMEOUT_SEC

    def _new_connection(self) -> smtplib.SMTP:
        return smtplib.SMTP(host=self._host, port=self._port, timeout=self._timeout)

    def build_message(self, recipient: str, link: str, subject: str, message: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid()
        msg.set_content(f"{message}: {link}")
        return msg

    def send(self, recipient: str, link: str, subject: str, message: str) -> str | None:
        msg = self.build_message(recipient, link, subject, message)
        try:
            with self._new_connection() as conn:
                if self._use_tls:
                    conn.starttls()
                if self._username and self._password:
                    conn.login(self._username, self._password)
                conn.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Mail to %s failed: %s", recipient, e)
            return None
        logger.info("Message sent: %s", msg["Message-ID"])
        return msg["Message-ID"]
