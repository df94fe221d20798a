"""Tests for environment-driven settings and log levels."""

import pytest
from config import Settings, get_settings, reset_settings
from shared.logging import get_log_level


@pytest.fixture()
def fresh_settings(monkeypatch):
    yield monkeypatch
    monkeypatch.undo()
    reset_settings()


def test_defaults(monkeypatch):
    for name in ("STOREFRONT_ENV", "DATABASE_URL", "PAYMENT_GATEWAY", "PAYMENT_GATEWAY_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.env == "development"
    assert settings.payment_gateway == "fake"
    assert settings.payment_gateway_timeout == 10.0
    assert settings.database_url.startswith("sqlite")
    assert not settings.is_production


def test_settings_are_cached_until_reset(fresh_settings):
    first = get_settings()
    fresh_settings.setenv("PAYMENT_GATEWAY_TIMEOUT", "7.5")
    assert get_settings() is first

    reset_settings()
    assert get_settings().payment_gateway_timeout == 7.5


@pytest.mark.parametrize("env, level", [("production", "INFO"), ("development", "DEBUG"), ("test", "WARNING")])
def test_log_level_follows_environment(fresh_settings, env, level):
    fresh_settings.setenv("STOREFRONT_ENV", env)
    fresh_settings.delenv("LOG_LEVEL", raising=False)
    reset_settings()
    assert get_log_level() == level


def test_log_level_override(fresh_settings):
    fresh_settings.setenv("LOG_LEVEL", "ERROR")
    assert get_log_level() == "ERROR"
