"""Settings validation and derived values."""

import pytest
from pydantic import ValidationError

from iamsync.core.config import Settings, get_settings


def test_defaults() -> None:
    settings = Settings()
    assert settings.secret_id == "initial-iam-password"
    policy = settings.secret_policy()
    assert policy.min_length == 16
    assert policy.excluded_chars == frozenset('"@/\\')
    assert policy.require_each_class is True


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SECRET_MIN_LENGTH", "24")
    monkeypatch.setenv("WEB_APP_USER_EMAIL", "ops@example.org")
    get_settings.cache_clear()
    settings = get_settings()
    assert settings.secret_policy().min_length == 24
    assert settings.web_app_user_email == "ops@example.org"


def test_get_settings_is_cached() -> None:
    assert get_settings() is get_settings()


@pytest.mark.parametrize(
    "overrides",
    [
        {"registry_backend": "dynamo"},
        {"registry_backend": "postgres", "database_url": ""},
        {"event_channel": "kafka"},
        {"audit_sink": "s3"},
        {"error_channel": "sqs"},
        {"correlation_max_attempts": 0},
        {"correlation_timeout_seconds": 0},
        {"secret_max_age_seconds": -1},
    ],
)
def test_invalid_settings_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(**overrides)
