from __future__ import annotations

import pytest

from creatorhub.core.config import load_settings

_ENV_VARS = (
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
    "PORT",
    "DATABASE_URL",
    "REDIS_URL",
    "SUBDOMAIN_BASE",
    "BILLING_WEBHOOK_SECRET",
    "TENANT_CACHE_TTL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---- valid values ----


def test_load_settings_defaults() -> None:
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.port == 8000
    assert settings.database_url is None
    assert settings.redis_url is None
    assert settings.subdomain_base == "creatorhub.localhost"
    assert settings.billing_webhook_secret is None
    assert settings.tenant_cache_ttl == 300
    assert settings.is_dev


def test_load_settings_respects_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.setenv("LOG_JSON", "yes")
    monkeypatch.setenv("SUBDOMAIN_BASE", "creatorhub.app")
    monkeypatch.setenv("BILLING_WEBHOOK_SECRET", "whsec_123")
    monkeypatch.setenv("TENANT_CACHE_TTL", "60")
    settings = load_settings()
    assert settings.is_prod
    assert settings.log_level == "error"
    assert settings.log_json is True
    assert settings.subdomain_base == "creatorhub.app"
    assert settings.billing_webhook_secret == "whsec_123"
    assert settings.tenant_cache_ttl == 60


def test_load_settings_normalizes_case_and_whitespace(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "  TEST  ")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("SUBDOMAIN_BASE", " CreatorHub.App ")
    settings = load_settings()
    assert settings.app_env == "test"
    assert settings.log_level == "debug"
    assert settings.subdomain_base == "creatorhub.app"


def test_blank_urls_mean_not_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "  ")
    monkeypatch.setenv("REDIS_URL", "")
    settings = load_settings()
    assert settings.database_url is None
    assert settings.redis_url is None


# ---- invalid values ----


@pytest.mark.parametrize(
    "name,value,message",
    [
        ("APP_ENV", "staging", "APP_ENV must be dev|test|prod"),
        ("LOG_LEVEL", "verbose", "LOG_LEVEL must be debug|info|warning|error"),
        ("LOG_JSON", "maybe", "LOG_JSON must be a boolean"),
        ("PORT", "eighty", "PORT must be an integer"),
        ("TENANT_CACHE_TTL", "-1", "TENANT_CACHE_TTL must be >= 0"),
    ],
)
def test_load_settings_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=message):
        load_settings()
