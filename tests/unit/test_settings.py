from datetime import timedelta

import pytest
from pydantic import ValidationError

from personal_finance.config.settings import Settings, load_settings
from personal_finance.domain.auth.token_policy import AuthTokenPolicy

OPTIONAL_ENV = (
    "JWT_SECRET",
    "JWT_ALGORITHM",
    "JWT_ACCESS_EXPIRES_MINUTES",
    "JWT_REFRESH_DAYS",
    "JWT_REFRESH_MAX_TOKENS",
    "AUTH_MAX_CONFLICT_RETRIES",
    "AUTH_UNIFORM_REFRESH_ERRORS",
    "LOG_LEVEL",
)


def _set_required_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./finance.db")
    for key in OPTIONAL_ENV:
        monkeypatch.delenv(key, raising=False)


def test_database_url_missing_raises_validation_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_required_env(monkeypatch)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_defaults_are_deterministic(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_required_env(monkeypatch)

    settings = Settings(_env_file=None)

    assert settings.jwt_secret is None
    assert settings.jwt_algorithm == "HS256"
    assert settings.jwt_access_expires_minutes == 15
    assert settings.jwt_refresh_days == 30
    assert settings.jwt_refresh_max_tokens == 5
    assert settings.auth_max_conflict_retries == 3
    assert settings.auth_uniform_refresh_errors is False
    assert settings.log_level == "INFO"


def test_token_policy_reflects_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_required_env(monkeypatch)
    monkeypatch.setenv("JWT_SECRET", "env-signing-secret")
    monkeypatch.setenv("JWT_ACCESS_EXPIRES_MINUTES", "5")
    monkeypatch.setenv("JWT_REFRESH_DAYS", "7")
    monkeypatch.setenv("JWT_REFRESH_MAX_TOKENS", "2")
    monkeypatch.setenv("AUTH_UNIFORM_REFRESH_ERRORS", "true")

    policy = Settings(_env_file=None).auth_token_policy()

    assert policy == AuthTokenPolicy(
        signing_secret="env-signing-secret",
        access_token_ttl=timedelta(minutes=5),
        refresh_token_ttl=timedelta(days=7),
        max_refresh_tokens=2,
        uniform_refresh_errors=True,
    )
    assert "env-signing-secret" not in repr(policy)


@pytest.mark.parametrize(
    "key",
    ["JWT_ACCESS_EXPIRES_MINUTES", "JWT_REFRESH_DAYS", "JWT_REFRESH_MAX_TOKENS"],
)
def test_non_positive_token_bounds_are_rejected(
    monkeypatch: pytest.MonkeyPatch,
    key: str,
) -> None:
    _set_required_env(monkeypatch)
    monkeypatch.setenv(key, "0")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_token_policy_rejects_invalid_bounds() -> None:
    with pytest.raises(ValueError, match="max_refresh_tokens"):
        AuthTokenPolicy(max_refresh_tokens=0)
    with pytest.raises(ValueError, match="refresh_token_ttl"):
        AuthTokenPolicy(refresh_token_ttl=timedelta(0))


def test_load_settings_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_required_env(monkeypatch)
    monkeypatch.chdir("/")
    load_settings.cache_clear()

    try:
        assert load_settings() is load_settings()
    finally:
        load_settings.cache_clear()
