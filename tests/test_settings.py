"""Tests for environment-driven settings."""

from datetime import timedelta

from asyncslot.settings import Settings, load_settings


def test_defaults():
    settings = Settings()

    assert settings.retry_delay_ms == 1000
    assert settings.cache_max_size is None
    assert settings.ai_provider == "groq"
    assert settings.ai_max_tokens == 1024


def test_load_settings_reads_aliases(monkeypatch):
    monkeypatch.setenv("ASYNCSLOT_RETRY_DELAY_MS", "250")
    monkeypatch.setenv("ASYNCSLOT_CACHE_MAX_SIZE", "10")
    monkeypatch.setenv("ASYNCSLOT_DEBUG", "true")
    monkeypatch.setenv("AI_PROVIDER", "together")
    monkeypatch.setenv("AI_API_KEY", "")

    settings = load_settings()

    assert settings.retry_delay_ms == 250
    assert settings.cache_max_size == 10
    assert settings.debug is True
    assert settings.ai_provider == "together"
    assert settings.ai_api_key is None


def test_retry_delay_default_follows_settings(monkeypatch):
    from asyncslot.services import retry
    from asyncslot.services.controller import OperationConfig

    monkeypatch.setattr(retry, "global_settings", Settings(ASYNCSLOT_RETRY_DELAY_MS=40))

    assert OperationConfig().retry_delay == timedelta(milliseconds=40)
