"""Tests for configuration module."""

from pathlib import Path

from mentora.core.config import Settings


def test_default_settings():
    """Settings load with defaults."""
    settings = Settings(
        _env_file=None,  # Don't load .env in tests
    )
    assert settings.data_dir == Path("data")
    assert settings.max_context_messages == 20
    assert settings.cache_ttl_seconds == 300.0
    assert settings.session_max_age_hours == 24.0
    assert settings.ai_api_key == ""


def test_db_path():
    """Database path combines data_dir and db_name."""
    settings = Settings(
        data_dir=Path("/tmp/test"),
        db_name="test.db",
        _env_file=None,
    )
    assert settings.db_path == Path("/tmp/test/test.db")


def test_env_prefix(monkeypatch):
    """MENTORA_ environment variables override defaults."""
    monkeypatch.setenv("MENTORA_AI_API_KEY", "secret")
    monkeypatch.setenv("MENTORA_CHAT_MODEL", "openai/gpt-4o-mini")
    monkeypatch.setenv("MENTORA_CACHE_TTL_SECONDS", "60")

    settings = Settings(_env_file=None)
    assert settings.ai_api_key == "secret"
    assert settings.chat_model == "openai/gpt-4o-mini"
    assert settings.cache_ttl_seconds == 60.0
