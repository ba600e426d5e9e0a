from __future__ import annotations

from ..config import NotifierSettings
from .base import LoggingNotificationSender, NotificationSender
from .http_api import HttpNotificationConfig, HttpNotificationSender
from .smtp import SmtpNotificationConfig, SmtpNotificationSender


def build_notifier(settings: NotifierSettings) -> NotificationSender:
    if settings.backend == "smtp":
        return SmtpNotificationSender(
            SmtpNotificationConfig(
                host=settings.smtp_host,
                port=settings.smtp_port,
                sender=settings.sender,
                username=settings.smtp_username,
                password=settings.smtp_password,
                starttls=settings.smtp_starttls,
                timeout_seconds=settings.timeout_seconds,
            )
        )
    if settings.backend == "http":
        if not settings.http_url:
            raise RuntimeError("NOTIFIER__HTTP_URL is not configured.")
        return HttpNotificationSender(
            HttpNotificationConfig(
                url=settings.http_url,
                sender=settings.sender,
                token=settings.http_token,
                timeout_seconds=settings.timeout_seconds,
            )
        )
    return LoggingNotificationSender()
