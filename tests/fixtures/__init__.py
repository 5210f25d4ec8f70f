"""
Test fixtures package for feedbench tests.

This package provides reusable fakes for the storage network and a
message-capturing logger.
"""

from tests.fixtures.mock_logger import MockLogger
from tests.fixtures.fake_network import (
    FakeClock,
    FakeNetwork,
    FakeSleep,
    FakeStorageClient,
    ScriptedStatusClient,
)
from tests.fixtures.fake_signer import StaticSigner

__all__ = [
    'MockLogger',
    'FakeClock',
    'FakeNetwork',
    'FakeSleep',
    'FakeStorageClient',
    'ScriptedStatusClient',
    'StaticSigner',
]
