"""Fixtures for integration tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest

from js8call_client.client import JS8CallClient
from js8call_client.structs import ClientSettings
from tests.helpers.mock_server import MockJS8CallServer


@pytest.fixture
async def js8call_server() -> AsyncGenerator[MockJS8CallServer]:
    """Fixture providing a mock JS8Call API server."""
    server = MockJS8CallServer()
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
async def split_reply_server() -> AsyncGenerator[MockJS8CallServer]:
    """Fixture providing a server that splits every reply across two writes."""
    server = MockJS8CallServer(split_replies=True)
    await server.start()
    yield server
    await server.stop()


def settings_for(server: MockJS8CallServer, request_timeout: float = 1.0) -> ClientSettings:
    return ClientSettings(
        host=server.host,
        port=server.port,
        connect_timeout=1.0,
        request_timeout=request_timeout,
        reconnect_delay=0.0,
    )


@pytest.fixture
async def client(js8call_server: MockJS8CallServer) -> AsyncGenerator[JS8CallClient]:
    """Client connected to js8call_server, disconnected on teardown."""
    js8 = JS8CallClient(settings_for(js8call_server))
    await js8.connect()
    yield js8
    await js8.disconnect()
