"""Tests for environment configuration."""

from __future__ import annotations

import pytest

from usage_watch.config import load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "TG_BOT_TOKEN", "CLAUDE_COOKIES", "TG_CHAT_ID", "USAGE_API_BASE",
        "POLL_INTERVAL_SECONDS", "REQUEST_TIMEOUT", "STATE_PATH", "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    def test_token_required(self) -> None:
        with pytest.raises(RuntimeError, match="TG_BOT_TOKEN"):
            load_config()

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TG_BOT_TOKEN", "123:abc")
        cfg = load_config()
        assert cfg.poll_interval_seconds == 300
        assert cfg.chat_id is None
        assert cfg.cookies == ""
        assert cfg.usage_api_base == "https://claude.ai/api/organizations"
        assert cfg.log_level == "INFO"

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TG_BOT_TOKEN", "123:abc")
        monkeypatch.setenv("TG_CHAT_ID", "-100200")
        monkeypatch.setenv("POLL_INTERVAL_SECONDS", "60")
        monkeypatch.setenv("USAGE_API_BASE", "http://localhost:8080/api/organizations/")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        cfg = load_config()
        assert cfg.chat_id == -100200
        assert cfg.poll_interval_seconds == 60
        assert cfg.usage_api_base == "http://localhost:8080/api/organizations"
        assert cfg.log_level == "DEBUG"

    def test_bad_integer(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TG_BOT_TOKEN", "123:abc")
        monkeypatch.setenv("POLL_INTERVAL_SECONDS", "five")
        with pytest.raises(RuntimeError, match="POLL_INTERVAL_SECONDS"):
            load_config()
