"""Unit tests for JS8CallClient wiring."""

from __future__ import annotations

import asyncio

import pytest

from js8call_client.client import JS8CallClient
from js8call_client.events import Event, EventKind
from js8call_client.structs import ClientSettings
from js8call_client.transport.connection_manager import ConnectionState
from js8call_client.transport.exceptions import NotConnectedError
from js8call_client.transport.retry_policy import FixedDelayPolicy, ZeroDelayPolicy
from tests.helpers.expectations import expect_async_exception, wait_for_condition
from tests.helpers.fakes import FakeTransport, TransportFactory


def make_client(settings: ClientSettings, factory: TransportFactory) -> JS8CallClient:
    return JS8CallClient(
        settings,
        reconnect_policy=ZeroDelayPolicy(),
        connection_factory=factory,  # type: ignore[arg-type]
    )


async def answer_next(transport: FakeTransport, reply_type: str, value: str = "", **params: object) -> None:
    """Wait for the next command on transport and reply to it with the same id."""
    already = len(transport.sent_messages())
    await wait_for_condition(lambda: len(transport.sent_messages()) > already)
    msg_id = transport.sent_messages()[-1]["params"]["_ID"]
    transport.feed_message(type=reply_type, value=value, params={**params, "_ID": msg_id})


class TestJS8CallClientInit:
    """Tests for client construction."""

    def test_defaults(self):
        """Test default settings and reconnect policy."""
        client = JS8CallClient()

        assert client.settings == ClientSettings()
        assert client.state == ConnectionState.DISCONNECTED
        assert client.connected is False
        assert isinstance(client.connection.reconnect_policy, FixedDelayPolicy)
        assert client.correlator.timeout_seconds == 5.0
        assert repr(client) == "JS8CallClient(localhost:2442, disconnected)"

    def test_reconnect_delay_from_settings(self):
        """Test that reconnect_delay feeds the default policy."""
        client = JS8CallClient(ClientSettings(reconnect_delay=1.5))

        assert client.connection.reconnect_policy.next_delay(0) == 1.5


class TestJS8CallClientCommands:
    """Tests for commands flowing through the real correlator and manager."""

    @pytest.mark.asyncio
    async def test_get_station_callsign_round_trip(
        self,
        fast_settings: ClientSettings,
        transport_factory: TransportFactory,
    ):
        """Test a command answered by a reply carrying its id."""
        client = make_client(fast_settings.model_copy(update={"request_timeout": 1.0}), transport_factory)
        await client.connect()

        task = asyncio.create_task(client.get_station_callsign())
        await answer_next(transport_factory.latest, "STATION.CALLSIGN", "KC1ABC")

        assert await task == "KC1ABC"
        assert transport_factory.latest.sent_messages()[0] == {
            "type": "STATION.GET_CALLSIGN",
            "value": "",
            "params": {"_ID": 1},
        }

        await client.disconnect()

    @pytest.mark.asyncio
    async def test_unanswered_command_returns_none(
        self,
        fast_settings: ClientSettings,
        transport_factory: TransportFactory,
    ):
        """Test that a PING with no reply resolves to None."""
        client = make_client(fast_settings, transport_factory)
        await client.connect()

        assert await client.send("PING") is None
        assert client.correlator.pending == {}

        await client.disconnect()

    @pytest.mark.asyncio
    async def test_send_while_disconnected(self, fast_settings: ClientSettings, transport_factory: TransportFactory):
        """Test that commands fail fast without a connection."""
        client = make_client(fast_settings, transport_factory)

        _ = await expect_async_exception(client.get_station_grid, NotConnectedError)

    @pytest.mark.asyncio
    async def test_reply_also_published_as_event(
        self,
        fast_settings: ClientSettings,
        transport_factory: TransportFactory,
    ):
        """Test that subscribers see replies as well as the caller."""
        seen: list[Event] = []
        client = make_client(fast_settings.model_copy(update={"request_timeout": 1.0}), transport_factory)
        _ = client.subscribe(EventKind.RIG_FREQUENCY, seen.append)
        await client.connect()

        task = asyncio.create_task(client.get_frequency())
        await answer_next(transport_factory.latest, "RIG.FREQ", FREQ=7079000, DIAL=7078000, OFFSET=1000)
        info = await task

        assert info.freq == 7079000
        assert len(seen) == 1

        await client.disconnect()


class TestJS8CallClientLifecycle:
    """Tests for connect/disconnect through the client."""

    @pytest.mark.asyncio
    async def test_async_context_manager(self, fast_settings: ClientSettings, transport_factory: TransportFactory):
        """Test that the context manager connects and disconnects."""
        events: list[EventKind] = []
        client = make_client(fast_settings, transport_factory)
        _ = client.subscribe(EventKind.CONNECTED, lambda e: events.append(e.kind))
        _ = client.subscribe(EventKind.DISCONNECTED, lambda e: events.append(e.kind))

        async with client as entered:
            assert entered is client
            assert client.connected

        assert client.state == ConnectionState.DISCONNECTED
        assert events == [EventKind.CONNECTED, EventKind.DISCONNECTED]
        assert transport_factory.latest.closed

    @pytest.mark.asyncio
    async def test_ids_keep_increasing_across_reconnect(
        self,
        fast_settings: ClientSettings,
        transport_factory: TransportFactory,
    ):
        """Test that the id counter is not reset by a reconnect."""
        client = make_client(fast_settings, transport_factory)
        await client.connect()
        _ = await client.send("PING")

        transport_factory.latest.drop()
        await wait_for_condition(lambda: len(transport_factory.created) == 2 and client.connected)
        _ = await client.send("PING")

        assert transport_factory.created[0].sent_messages()[0]["params"]["_ID"] == 1
        assert transport_factory.created[1].sent_messages()[0]["params"]["_ID"] == 2

        await client.disconnect()
