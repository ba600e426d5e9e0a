from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

ALLOCATION_POLICIES = ("strict", "lenient")
NOTIFIER_BACKENDS = ("log", "smtp", "http")


@dataclass(frozen=True)
class FlaskSettings:
    secret_key: str = "lotterydesk-dev-secret"
    debug: bool = True


@dataclass(frozen=True)
class BookingSettings:
    policy: str = "strict"
    max_retries: int = 25
    round_create_max_retries: int = 25


@dataclass(frozen=True)
class NotifierSettings:
    backend: str = "log"
    sender: str = "lottery@localhost"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_starttls: bool = False
    http_url: Optional[str] = None
    http_token: Optional[str] = None
    timeout_seconds: int = 10


@dataclass(frozen=True)
class AppSettings:
    flask: FlaskSettings
    booking: BookingSettings
    notifier: NotifierSettings
    database_url: str
    admin_api_key: Optional[str]


def _bool_from_env(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_from_env(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {key} must be an integer, got {value!r}") from exc


def _choice_from_env(key: str, default: str, choices) -> str:
    value = (os.getenv(key) or default).strip().lower()
    if value not in choices:
        raise RuntimeError(f"Environment variable {key} must be one of {', '.join(choices)}, got {value!r}")
    return value


@lru_cache(maxsize=1)
def load_settings(dotenv_path: Optional[str] = None) -> AppSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        load_dotenv()

    flask_settings = FlaskSettings(
        secret_key=os.getenv("FLASK_SECRET_KEY", "lotterydesk-dev-secret"),
        debug=_bool_from_env(os.getenv("FLASK_DEBUG"), True),
    )

    booking_settings = BookingSettings(
        policy=_choice_from_env("TICKET_ALLOCATION_POLICY", "strict", ALLOCATION_POLICIES),
        max_retries=_int_from_env("BOOKING_MAX_RETRIES", 25),
        round_create_max_retries=_int_from_env("ROUND_CREATE_MAX_RETRIES", 25),
    )

    notifier_settings = NotifierSettings(
        backend=_choice_from_env("NOTIFIER_BACKEND", "log", NOTIFIER_BACKENDS),
        sender=os.getenv("NOTIFIER__SENDER", "lottery@localhost"),
        smtp_host=os.getenv("NOTIFIER__SMTP_HOST", "localhost"),
        smtp_port=_int_from_env("NOTIFIER__SMTP_PORT", 25),
        smtp_username=os.getenv("NOTIFIER__SMTP_USERNAME") or None,
        smtp_password=os.getenv("NOTIFIER__SMTP_PASSWORD") or None,
        smtp_starttls=_bool_from_env(os.getenv("NOTIFIER__SMTP_STARTTLS"), False),
        http_url=os.getenv("NOTIFIER__HTTP_URL") or None,
        http_token=os.getenv("NOTIFIER__HTTP_TOKEN") or None,
        timeout_seconds=_int_from_env("NOTIFIER__TIMEOUT_SECONDS", 10),
    )

    database_url = os.getenv("DATABASE_URL", "sqlite:///lotterydesk.db")
    admin_api_key = os.getenv("ADMIN_API_KEY") or None

    return AppSettings(
        flask=flask_settings,
        booking=booking_settings,
        notifier=notifier_settings,
        database_url=database_url,
        admin_api_key=admin_api_key,
    )
