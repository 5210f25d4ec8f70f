"""
Shared pytest fixtures for feedbench tests.

These fixtures provide loggers, an in-memory storage network and benchmark
configurations so no test touches a real Bee node.
"""

from unittest.mock import MagicMock

import pytest

from feedbench.config import ENV_READER_URLS, ENV_STAMPS, ENV_WRITER_URLS, SyncMode
from feedbench.models import BenchmarkConfig
from tests.fixtures import FakeClock, FakeNetwork, FakeSleep, MockLogger


# =============================================================================
# Logger Fixtures
# =============================================================================

@pytest.fixture
def mock_logger():
    """
    Create a mock logger that captures all log calls.

    Usage:
        def test_something(mock_logger):
            some_function(logger=mock_logger)
            mock_logger.status.assert_called_with("expected message")
    """
    logger = MagicMock()
    for level in ['debug', 'info', 'warning', 'error', 'critical',
                  'status', 'verbose', 'verboser', 'result']:
        setattr(logger, level, MagicMock())
    return logger


@pytest.fixture
def capturing_logger():
    """MockLogger instance that keeps every message by level."""
    return MockLogger()


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture
def clean_env(monkeypatch):
    """Remove the Bee environment overrides so CLI defaults apply."""
    for name in (ENV_WRITER_URLS, ENV_READER_URLS, ENV_STAMPS):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# =============================================================================
# Network Fixtures
# =============================================================================

@pytest.fixture
def fake_network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep(fake_clock, fake_network) -> FakeSleep:
    return FakeSleep(clock=fake_clock, events=fake_network.events)


# =============================================================================
# Config Fixtures
# =============================================================================

@pytest.fixture
def writer_urls():
    return ["http://writer-1", "http://writer-2"]


@pytest.fixture
def reader_urls():
    return ["http://reader-1"]


@pytest.fixture
def base_config(writer_urls, reader_urls) -> BenchmarkConfig:
    """Two writers, one reader, three updates, download on every update."""
    return BenchmarkConfig(
        writer_urls=list(writer_urls),
        stamps=["a" * 64, "b" * 64],
        reader_urls=list(reader_urls),
        updates=3,
        topic_seed=10,
        download_iteration=1,
        sync_mode=SyncMode.DELAY,
        sync_delay=40.0,
    )
