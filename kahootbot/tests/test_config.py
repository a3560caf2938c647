"""
Tests for client configuration.
"""

import pytest

from ..config import ClientConfig, RetryPolicy


class TestRetryPolicy:

    def test_geometric_backoff_is_capped(self):
        policy = RetryPolicy(backoff_seconds=1.0, backoff_factor=3.0, max_backoff_seconds=5.0)

        assert policy.delay_for(0) == 0.0
        assert policy.delay_for(1) == 1.0
        assert policy.delay_for(2) == 3.0
        assert policy.delay_for(3) == 5.0

    def test_bounded(self):
        policy = RetryPolicy(max_consecutive_failures=2)
        assert not policy.exhausted(1)
        assert policy.exhausted(2)

    def test_unbounded(self):
        assert not RetryPolicy(max_consecutive_failures=None).exhausted(10_000)


class TestClientConfig:
    """Tests for defaults and environment overrides."""

    def test_defaults(self):
        config = ClientConfig()

        assert config.cometd_root == "https://kahoot.it/cometd"
        assert config.optimistic_login is True
        assert config.request_timeout * 1000 > config.advice_timeout_ms
        assert (config.screen_width, config.screen_height, config.lag_ms) == (1337, 1337, 22)

    def test_trailing_slash(self):
        assert ClientConfig(base_url="http://localhost:9000/").cometd_root == (
            "http://localhost:9000/cometd"
        )

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("KAHOOTBOT_BASE_URL", "http://localhost:9000")
        monkeypatch.setenv("KAHOOTBOT_HOST", "localhost")
        monkeypatch.setenv("KAHOOTBOT_POLL_INTERVAL", "0.25")
        monkeypatch.setenv("KAHOOTBOT_OPTIMISTIC_LOGIN", "false")
        monkeypatch.setenv("KAHOOTBOT_MAX_CONNECT_FAILURES", "unlimited")
        monkeypatch.setenv("KAHOOTBOT_BACKOFF_SECONDS", "2")
        monkeypatch.setenv("KAHOOTBOT_TRANSPORT_RETRIES", "0")

        config = ClientConfig.from_env()

        assert config.base_url == "http://localhost:9000"
        assert config.host == "localhost"
        assert config.poll_interval == 0.25
        assert config.optimistic_login is False
        assert config.retry.max_consecutive_failures is None
        assert config.retry.backoff_seconds == 2.0
        assert config.transport_retries == 0

    def test_from_env_defaults(self, monkeypatch):
        for name in ("KAHOOTBOT_BASE_URL", "KAHOOTBOT_OPTIMISTIC_LOGIN", "KAHOOTBOT_MAX_CONNECT_FAILURES"):
            monkeypatch.delenv(name, raising=False)

        config = ClientConfig.from_env()

        assert config.base_url == "https://kahoot.it"
        assert config.optimistic_login is True
        assert config.retry.max_consecutive_failures == 5

    def test_bad_number_is_rejected(self, monkeypatch):
        monkeypatch.setenv("KAHOOTBOT_POLL_INTERVAL", "soon")
        with pytest.raises(ValueError):
            ClientConfig.from_env()

    @pytest.mark.parametrize("raw", ["unlimited", "none", "-1"])
    def test_transport_retries_must_be_finite(self, monkeypatch, raw):
        monkeypatch.setenv("KAHOOTBOT_TRANSPORT_RETRIES", raw)
        with pytest.raises(ValueError):
            ClientConfig.from_env()
