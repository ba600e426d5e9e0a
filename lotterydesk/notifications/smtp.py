from __future__ import annotations

import asyncio
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from ..errors import NotificationError
from .base import EmailNotification, NotificationSender


@dataclass(frozen=True)
class SmtpNotificationConfig:
    host: str
    port: int
    sender: str
    username: Optional[str] = None
    password: Optional[str] = None
    starttls: bool = False
    timeout_seconds: int = 10


class SmtpNotificationSender(NotificationSender):
    """Deliver messages through an SMTP server, one connection per message."""

    def __init__(self, config: SmtpNotificationConfig) -> None:
        self._config = config

    async def send(self, message: EmailNotification) -> None:
        await asyncio.to_thread(self._deliver, self._build_message(message))

    def _build_message(self, message: EmailNotification) -> EmailMessage:
        email = EmailMessage()
        email["From"] = self._config.sender
        email["To"] = message.to
        email["Subject"] = message.subject
        email.set_content(message.body)
        return email

    def _deliver(self, email: EmailMessage) -> None:
        cfg = self._config
        try:
            with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout_seconds) as client:
                if cfg.starttls:
                    client.starttls()
                if cfg.username:
                    client.login(cfg.username, cfg.password or "")
                client.send_message(email)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"SMTP delivery to {email['To']} failed: {exc}") from exc
