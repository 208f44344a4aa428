"""Unit tests for LinkConfig."""

import pytest

from notch_link.config import BAUD_RATE, LinkConfig

ENV_VARS = (
    "NOTCH_PORT",
    "NOTCH_RESPONSE_TIMEOUT",
    "NOTCH_HANDSHAKE_TIMEOUT",
    "NOTCH_PING_TIMEOUT",
    "NOTCH_SETTLE_DELAY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self):
        config = LinkConfig()

        assert config.port is None
        assert config.baud_rate == BAUD_RATE == 9600
        assert config.response_timeout == 10.0
        assert config.handshake_timeout == 15.0
        assert config.ping_timeout == 3.0
        assert config.settle_delay == 2.0
        assert config.encoding == "utf-8"


class TestFromEnv:
    """Test environment loading and overrides."""

    def test_empty_environment_gives_defaults(self):
        assert LinkConfig.from_env() == LinkConfig()

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("NOTCH_PORT", "/dev/ttyACM0")
        monkeypatch.setenv("NOTCH_RESPONSE_TIMEOUT", "4")
        monkeypatch.setenv("NOTCH_HANDSHAKE_TIMEOUT", "20.5")
        monkeypatch.setenv("NOTCH_PING_TIMEOUT", "1")
        monkeypatch.setenv("NOTCH_SETTLE_DELAY", "0")

        config = LinkConfig.from_env()

        assert config.port == "/dev/ttyACM0"
        assert config.response_timeout == 4.0
        assert config.handshake_timeout == 20.5
        assert config.ping_timeout == 1.0
        assert config.settle_delay == 0.0

    def test_blank_values_are_ignored(self, monkeypatch):
        monkeypatch.setenv("NOTCH_PORT", "")
        monkeypatch.setenv("NOTCH_PING_TIMEOUT", "  ")

        config = LinkConfig.from_env()

        assert config.port is None
        assert config.ping_timeout == 3.0

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("NOTCH_PORT", "/dev/ttyACM0")

        config = LinkConfig.from_env(port="COM3", settle_delay=0)

        assert config.port == "COM3"
        assert config.settle_delay == 0

    def test_none_override_is_ignored(self, monkeypatch):
        monkeypatch.setenv("NOTCH_PORT", "/dev/ttyACM0")

        assert LinkConfig.from_env(port=None).port == "/dev/ttyACM0"

    def test_unknown_override(self):
        with pytest.raises(TypeError, match="bogus"):
            LinkConfig.from_env(bogus=1)

    def test_non_numeric_timeout(self, monkeypatch):
        monkeypatch.setenv("NOTCH_RESPONSE_TIMEOUT", "soon")

        with pytest.raises(ValueError, match="NOTCH_RESPONSE_TIMEOUT"):
            LinkConfig.from_env()

    def test_negative_delay(self, monkeypatch):
        monkeypatch.setenv("NOTCH_SETTLE_DELAY", "-1")

        with pytest.raises(ValueError, match="must not be negative"):
            LinkConfig.from_env()
