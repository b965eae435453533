"""Tests for configuration loading."""

import logging

from callbridge.config import Config, get_config


class TestConfig:
    """Tests for the Config settings."""

    def test_defaults(self):
        config = Config(_env_file=None)

        assert config.dial_timeout_seconds == 20
        assert config.fallback_language == "en-US"
        assert config.reservation_timezone == "UTC"
        assert config.cors_origins == ["*"]

    def test_reads_environment(self, monkeypatch):
        """Test that settings come from environment variables."""
        monkeypatch.setenv("TWILIO_CALLER_ID", "+15005550006")
        monkeypatch.setenv("SERVER_URL", "https://calls.example.com")

        config = Config(_env_file=None)

        assert config.twilio_caller_id == "+15005550006"
        assert config.server_url == "https://calls.example.com"

    def test_has_twilio_config(self):
        partial = Config(_env_file=None, twilio_caller_id="+15005550006")
        complete = Config(
            _env_file=None,
            twilio_account_sid="AC123",
            twilio_auth_token="secret",
            twilio_caller_id="+15005550006",
        )

        assert partial.has_twilio_config() is False
        assert complete.has_twilio_config() is True

    def test_missing_caller_id_warns(self, caplog):
        """Test that a missing verified caller ID is reported at startup."""
        with caplog.at_level(logging.WARNING, logger="callbridge.config"):
            Config(_env_file=None, twilio_caller_id=None)

        assert "TWILIO_CALLER_ID not set" in caplog.text

    def test_get_config_is_cached(self):
        assert get_config() is get_config()
