"""
Shared fixtures for unit tests.

Transports are in-memory fakes, so no test here opens a socket.
"""

from __future__ import annotations

import pytest

from js8call_client.events import EventDispatcher
from js8call_client.structs import ClientSettings
from tests.helpers.fakes import RecordingWriter, TransportFactory


@pytest.fixture
def transport_factory() -> TransportFactory:
    """Factory handing out FakeTransport instances."""
    return TransportFactory()


@pytest.fixture
def dispatcher() -> EventDispatcher:
    return EventDispatcher()


@pytest.fixture
def writer() -> RecordingWriter:
    """Connected writer for RequestCorrelator tests."""
    return RecordingWriter()


@pytest.fixture
def fast_settings() -> ClientSettings:
    """Settings with timeouts short enough for unit tests."""
    return ClientSettings(
        host="127.0.0.1",
        port=2442,
        connect_timeout=0.5,
        request_timeout=0.05,
        reconnect_delay=0.0,
    )
