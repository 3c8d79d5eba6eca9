"""Outbound email delivery."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import UpstreamUnavailable
from taskboard_api.settings import Settings

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None: ...


class SmtpEmailSender:
    """Send plain-text mail through an SMTP relay (blocking I/O in a worker thread)."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    def _build(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as client:
            if self._use_tls:
                client.starttls()
            if self._username:
                client.login(self._username, self._password or "")
            client.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        message = self._build(to, subject, body)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (OSError, smtplib.SMTPException) as exc:
            raise UpstreamUnavailable(f"Email delivery failed: {exc}") from exc
        logger.info("email.sent", extra=log_context(recipient=to, subject=subject))


class LoggingEmailSender:
    """Used when no SMTP relay is configured: records the message in the log."""

    async def send(self, to: str, subject: str, body: str) -> None:
        logger.info("email.skipped", extra=log_context(recipient=to, subject=subject))


def build_email_sender(settings: Settings) -> EmailSender:
    if not settings.smtp_host:
        return LoggingEmailSender()
    return SmtpEmailSender(
        host=settings.smtp_host,
        port=settings.smtp_port,
        sender=settings.email_from,
        username=settings.smtp_username,
        password=settings.smtp_password.get_secret_value() if settings.smtp_password else None,
        use_tls=settings.smtp_use_tls,
    )


__all__ = ["EmailSender", "LoggingEmailSender", "SmtpEmailSender", "build_email_sender"]
