from pathlib import Path

import pytest
from pydantic import ValidationError

from lunchbell.config import DispatchBackendKind, Settings

ENV_NAMES = [
    "LUNCHBELL_DATA_DIR",
    "LUNCHBELL_BATCH_SIZE",
    "LUNCHBELL_COOLDOWN_SECONDS",
    "LUNCHBELL_DISPATCH_BACKEND",
    "LUNCHBELL_LOG_LEVEL",
    "PORT",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_NOTIFY_SERVICE_SID",
    "TWILIO_MESSAGING_SERVICE_SID",
    "LUNCHBELL_DISPLAY_PHONE",
    "SLACK_TOKEN",
    "CATER2ME_CLIENT_ID",
    "CATER2ME_USER_ID",
    "CATER2ME_PROFILE_IDS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env()

    assert settings.batch_size == 10
    assert settings.cooldown_seconds == 5.0
    assert settings.dispatch_backend is DispatchBackendKind.LOCAL
    assert settings.port == 5000
    assert settings.users_path == Path("users.json")
    assert not settings.twilio_configured
    assert not settings.cater2me_configured


def test_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("LUNCHBELL_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LUNCHBELL_BATCH_SIZE", "25")
    monkeypatch.setenv("LUNCHBELL_COOLDOWN_SECONDS", "0.5")
    monkeypatch.setenv("LUNCHBELL_DISPATCH_BACKEND", " Temporal ")
    monkeypatch.setenv("LUNCHBELL_LOG_LEVEL", "debug")
    monkeypatch.setenv("CATER2ME_PROFILE_IDS", "p1, p2,,")

    settings = Settings.from_env()

    assert settings.batch_size == 25
    assert settings.cooldown_seconds == 0.5
    assert settings.dispatch_backend is DispatchBackendKind.TEMPORAL
    assert settings.log_level == "DEBUG"
    assert settings.cater2me_profile_ids == ["p1", "p2"]
    assert settings.displays_path == tmp_path / "displays.json"


def test_provider_flags(monkeypatch):
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC1")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "secret")
    monkeypatch.setenv("TWILIO_NOTIFY_SERVICE_SID", "IS1")
    monkeypatch.setenv("SLACK_TOKEN", "  ")

    settings = Settings.from_env()

    assert settings.notify_configured
    assert not settings.display_signal_configured
    assert settings.slack_token is None


@pytest.mark.parametrize("name, value", [("LUNCHBELL_BATCH_SIZE", "0"), ("LUNCHBELL_COOLDOWN_SECONDS", "-1"), ("PORT", "http")])
def test_invalid_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        Settings.from_env()
