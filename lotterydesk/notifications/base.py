from __future__ import annotations

import abc
import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger("lotterydesk.notifications")


@dataclass(frozen=True)
class EmailNotification:
    """Outbound message handed to a sender."""

    to: str
    subject: str
    body: str


def purchase_confirmation(email: str, full_name: Optional[str], ticket_numbers: Sequence[str]) -> EmailNotification:
    subject = f"Lottery tickets purchase confirmation for {email}"
    body = (
        f"Dear {full_name or email}, \n\n"
        f"Thank you for purchasing the following lottery tickets: {', '.join(ticket_numbers)}."
        "\n\nRegards,\nThe Lottery Team"
    )
    return EmailNotification(to=email, subject=subject, body=body)


class NotificationSender(abc.ABC):
    """Abstract outbound notification channel."""

    @abc.abstractmethod
    async def send(self, message: EmailNotification) -> None:
        """Deliver ``message``.

        Implementations raise `NotificationError` when delivery fails.
        """


class LoggingNotificationSender(NotificationSender):
    """Development sender that only writes the message to the log."""

    def __init__(self) -> None:
        self.sent = deque(maxlen=100)

    async def send(self, message: EmailNotification) -> None:
        self.sent.append(message)
        logger.info("Email to %s: %s", message.to, message.subject)
        logger.debug("Email body:\n%s", message.body)
