from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from ..errors import NotificationError
from .base import EmailNotification, NotificationSender


@dataclass(frozen=True)
class HttpNotificationConfig:
    """Where and how to post messages to a JSON mail relay."""

    url: str
    sender: str
    token: Optional[str] = None
    timeout_seconds: int = 10


class HttpNotificationSender(NotificationSender):
    """POST each message as JSON to an HTTP mail relay."""

    def __init__(self, config: HttpNotificationConfig) -> None:
        self._config = config

    async def send(self, message: EmailNotification) -> None:
        await asyncio.to_thread(self._post, self._build_payload(message))

    def _build_payload(self, message: EmailNotification) -> Dict[str, Any]:
        return {
            "from": self._config.sender,
            "to": message.to,
            "subject": message.subject,
            "text": message.body,
        }

    def _post(self, payload: Dict[str, Any]) -> None:
        headers = {"Content-Type": "application/json"}
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        try:
            resp = requests.post(
                self._config.url,
                json=payload,
                headers=headers,
                timeout=self._config.timeout_seconds,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationError(f"Mail relay rejected message to {payload['to']}: {exc}") from exc
