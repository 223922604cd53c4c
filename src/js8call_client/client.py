"""JS8Call client: wires connection, correlator, dispatcher and commands together."""

from __future__ import annotations

from collections.abc import Mapping
from types import TracebackType
from typing import Any, Self

from js8call_client.commands import JS8CallCommands
from js8call_client.events import EventCallback, EventDispatcher, EventKind, Subscription
from js8call_client.logging_abstraction import get_logger
from js8call_client.protocol.message import ProtocolMessage
from js8call_client.structs import ClientSettings
from js8call_client.transport.connection_manager import (
    ConnectionFactory,
    ConnectionManager,
    ConnectionState,
)
from js8call_client.transport.request_correlator import RequestCorrelator
from js8call_client.transport.retry_policy import FixedDelayPolicy, ReconnectPolicy

__all__ = ["JS8CallClient"]

logger = get_logger(__name__)


class JS8CallClient(JS8CallCommands):
    """Client for one JS8Call API endpoint.

    Construct one per controller and pass it to whatever needs it; there is
    no module-level instance. Use as an async context manager to tie the
    connection to a scope::

        async with JS8CallClient(ClientSettings(host="radio.local")) as client:
            client.subscribe(EventKind.INCOMING_TEXT, on_text)
            print(await client.get_station_callsign())
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        reconnect_policy: ReconnectPolicy | None = None,
        dispatcher: EventDispatcher | None = None,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        self.settings: ClientSettings = settings or ClientSettings()
        self.dispatcher: EventDispatcher = dispatcher or EventDispatcher()
        self.connection: ConnectionManager = ConnectionManager(
            self.settings.host,
            self.settings.port,
            self.dispatcher,
            reconnect_policy=reconnect_policy or FixedDelayPolicy(self.settings.reconnect_delay),
            connect_timeout=self.settings.connect_timeout,
            connection_factory=connection_factory,
        )
        self.correlator: RequestCorrelator = RequestCorrelator(
            self.connection,
            timeout_seconds=self.settings.request_timeout,
        )
        # Correlator sees each message before subscribers do
        self.connection.add_message_handler(self.correlator.handle_message)
        super().__init__(self)

    @property
    def connected(self) -> bool:
        return self.connection.is_connected

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    async def connect(self) -> None:
        """Connect to JS8Call (raises ConnectionFailedError on failure)."""
        await self.connection.connect()

    async def disconnect(self) -> None:
        """Disconnect and stop reconnecting until the next connect()."""
        await self.connection.disconnect()

    async def send(
        self,
        message_type: str,
        value: str = "",
        params: Mapping[str, Any] | None = None,
        timeout_seconds: float | None = None,
    ) -> ProtocolMessage | None:
        """Send a raw command; returns its response or None on timeout."""
        return await self.correlator.send(message_type, value, params, timeout_seconds)

    def subscribe(self, kind: EventKind, callback: EventCallback) -> Subscription:
        return self.dispatcher.subscribe(kind, callback)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    def __repr__(self) -> str:
        return f"JS8CallClient({self.settings.host}:{self.settings.port}, {self.state.value})"
