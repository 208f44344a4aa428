"""Pytest configuration and shared fixtures."""

import pytest

from notch_link.config import LinkConfig
from notch_link.transport import MockLineTransport


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def fast_config() -> LinkConfig:
    """Config with short deadlines and no settle delay."""
    return LinkConfig(
        response_timeout=0.5,
        handshake_timeout=0.5,
        ping_timeout=0.5,
        settle_delay=0,
    )


@pytest.fixture
def transport(fast_config: LinkConfig) -> MockLineTransport:
    """Create a MockLineTransport instance."""
    return MockLineTransport(fast_config)
