from .base import EmailNotification, LoggingNotificationSender, NotificationSender, purchase_confirmation
from .factory import build_notifier
from .http_api import HttpNotificationSender
from .smtp import SmtpNotificationSender

__all__ = [
    "EmailNotification",
    "LoggingNotificationSender",
    "NotificationSender",
    "purchase_confirmation",
    "build_notifier",
    "HttpNotificationSender",
    "SmtpNotificationSender",
]
