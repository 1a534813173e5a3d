"""Tests for PushConfig — defaults, validation and environment loading."""

import pytest
from notifications.config import EXPO_PUSH_URL, EXPO_TOKEN_PREFIX, PushConfig


class TestDefaults:
    def test_expo_defaults(self):
        config = PushConfig()
        assert config.gateway_url == EXPO_PUSH_URL
        assert config.token_prefix == EXPO_TOKEN_PREFIX
        assert config.max_attempts == 5
        assert config.base_backoff == 1.0
        assert config.max_backoff == 8.0
        assert config.max_batch_size == 100
        assert config.send_deadline is None
        assert not config.is_authenticated


class TestValidation:
    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            PushConfig(max_attempts=0)

    @pytest.mark.parametrize("size", [0, 101])
    def test_batch_size_must_fit_gateway_limit(self, size):
        with pytest.raises(ValueError):
            PushConfig(max_batch_size=size)

    def test_deadline_must_be_positive(self):
        with pytest.raises(ValueError):
            PushConfig(send_deadline=0)


class TestFromEnv:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PUSH_GATEWAY_URL", "https://push.example.test/send")
        monkeypatch.setenv("EXPO_ACCESS_TOKEN", "secret")
        monkeypatch.setenv("PUSH_MAX_ATTEMPTS", "3")
        monkeypatch.setenv("PUSH_REQUEST_TIMEOUT", "2.5")
        monkeypatch.setenv("PUSH_SEND_DEADLINE", "20")
        monkeypatch.setenv("PUSH_MAX_BATCH_SIZE", "50")

        config = PushConfig.from_env()

        assert config.gateway_url == "https://push.example.test/send"
        assert config.access_token == "secret"
        assert config.is_authenticated
        assert config.max_attempts == 3
        assert config.request_timeout == 2.5
        assert config.send_deadline == 20.0
        assert config.max_batch_size == 50

    def test_blank_values_use_defaults(self, monkeypatch):
        monkeypatch.setenv("PUSH_MAX_ATTEMPTS", "")
        monkeypatch.delenv("EXPO_ACCESS_TOKEN", raising=False)

        config = PushConfig.from_env()

        assert config.max_attempts == 5
        assert config.access_token is None

    def test_non_numeric_value_is_reported(self, monkeypatch):
        monkeypatch.setenv("PUSH_MAX_ATTEMPTS", "many")
        with pytest.raises(ValueError, match="PUSH_MAX_ATTEMPTS"):
            PushConfig.from_env()
