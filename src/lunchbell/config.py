"""
Settings and logging setup.

Everything is read from environment variables by `Settings.from_env()`.
Provider credentials are optional: when a provider is not configured the
ServiceFactory falls back to the logging-only stand-ins in
services/console.py, so the app always starts.
"""

import logging
import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


class DispatchBackendKind(str, Enum):
    LOCAL = "local"        # in-process asyncio task
    TEMPORAL = "temporal"  # LunchDispatchWorkflow on a Temporal worker


class Settings(BaseModel):
    data_dir: Path = Path(".")
    users_file: str = "users.json"
    displays_file: str = "displays.json"

    batch_size: int = Field(10, gt=0)
    cooldown_seconds: float = Field(5.0, ge=0)
    dispatch_backend: DispatchBackendKind = DispatchBackendKind.LOCAL

    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"
    http_timeout_seconds: float = Field(10.0, gt=0)

    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_notify_service_sid: str | None = None
    twilio_messaging_service_sid: str | None = None
    display_phone: str | None = None

    slack_token: str | None = None

    cater2me_client_id: str | None = None
    cater2me_user_id: str | None = None
    cater2me_profile_ids: list[str] = Field(default_factory=list)
    menu_cron: str = "0 8 * * 1-5"
    timezone: str = "America/Los_Angeles"

    temporal_address: str = "localhost:7233"
    temporal_task_queue: str = "lunch-dispatch"

    @property
    def users_path(self) -> Path:
        return self.data_dir / self.users_file

    @property
    def displays_path(self) -> Path:
        return self.data_dir / self.displays_file

    @property
    def twilio_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token)

    @property
    def notify_configured(self) -> bool:
        return self.twilio_configured and bool(self.twilio_notify_service_sid)

    @property
    def display_signal_configured(self) -> bool:
        return self.twilio_configured and bool(self.twilio_messaging_service_sid and self.display_phone)

    @property
    def cater2me_configured(self) -> bool:
        return bool(self.cater2me_client_id and self.cater2me_user_id and self.cater2me_profile_ids)

    @classmethod
    def from_env(cls) -> "Settings":
        values: dict[str, object] = {
            "data_dir": os.getenv("LUNCHBELL_DATA_DIR"),
            "users_file": os.getenv("LUNCHBELL_USERS_FILE"),
            "displays_file": os.getenv("LUNCHBELL_DISPLAYS_FILE"),
            "batch_size": os.getenv("LUNCHBELL_BATCH_SIZE"),
            "cooldown_seconds": os.getenv("LUNCHBELL_COOLDOWN_SECONDS"),
            "dispatch_backend": _optional_env("LUNCHBELL_DISPATCH_BACKEND", lower=True),
            "host": os.getenv("LUNCHBELL_HOST"),
            "port": os.getenv("PORT"),
            "log_level": _optional_env("LUNCHBELL_LOG_LEVEL", upper=True),
            "http_timeout_seconds": os.getenv("LUNCHBELL_HTTP_TIMEOUT_SECONDS"),
            "twilio_account_sid": _optional_env("TWILIO_ACCOUNT_SID"),
            "twilio_auth_token": _optional_env("TWILIO_AUTH_TOKEN"),
            "twilio_notify_service_sid": _optional_env("TWILIO_NOTIFY_SERVICE_SID"),
            "twilio_messaging_service_sid": _optional_env("TWILIO_MESSAGING_SERVICE_SID"),
            "display_phone": _optional_env("LUNCHBELL_DISPLAY_PHONE"),
            "slack_token": _optional_env("SLACK_TOKEN"),
            "cater2me_client_id": _optional_env("CATER2ME_CLIENT_ID"),
            "cater2me_user_id": _optional_env("CATER2ME_USER_ID"),
            "cater2me_profile_ids": _csv_env("CATER2ME_PROFILE_IDS"),
            "menu_cron": os.getenv("LUNCHBELL_MENU_CRON"),
            "timezone": os.getenv("LUNCHBELL_TIMEZONE"),
            "temporal_address": os.getenv("TEMPORAL_ADDRESS"),
            "temporal_task_queue": os.getenv("TEMPORAL_TASK_QUEUE"),
        }
        # pydantic raises ValidationError (a ValueError) on bad values
        return cls(**{key: value for key, value in values.items() if value is not None})


def _optional_env(name: str, *, lower: bool = False, upper: bool = False) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    value = value.strip()
    if lower:
        return value.lower()
    if upper:
        return value.upper()
    return value


def _csv_env(name: str) -> list[str] | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]
