"""Tests for Settings — env var parsing."""

import pytest

from mailbridge.config import DEFAULT_BASE_URL, Settings

_KEYS = ("WEBMAIL_BASE_URL", "WEBMAIL_TIMEOUT_SECONDS", "WEBMAIL_MAX_MESSAGES", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)


class TestSettingsDefaults:
    def test_defaults(self) -> None:
        settings = Settings.from_env()
        assert settings.base_url == DEFAULT_BASE_URL
        assert settings.timeout_seconds == 30.0
        assert settings.max_messages == 100
        assert settings.log_level == "WARNING"


class TestSettingsFromEnv:
    def test_reads_base_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEBMAIL_BASE_URL", "https://mail.example.org")
        assert Settings.from_env().base_url == "https://mail.example.org"

    def test_reads_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEBMAIL_TIMEOUT_SECONDS", "7.5")
        assert Settings.from_env().timeout_seconds == 7.5

    def test_reads_max_messages(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEBMAIL_MAX_MESSAGES", "250")
        assert Settings.from_env().max_messages == 250

    def test_log_level_upper_cased(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert Settings.from_env().log_level == "DEBUG"

    @pytest.mark.parametrize("raw", ["abc", "0", "-3", ""])
    def test_bad_max_messages_falls_back(self, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
        monkeypatch.setenv("WEBMAIL_MAX_MESSAGES", raw)
        assert Settings.from_env().max_messages == 100

    def test_bad_timeout_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEBMAIL_TIMEOUT_SECONDS", "soon")
        assert Settings.from_env().timeout_seconds == 30.0
