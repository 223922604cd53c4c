"""Connection management with state machine, stream reading, and reconnection.

This module implements the ConnectionManager class which owns the TCP
transport to JS8Call: connect/disconnect, the read loop feeding the frame
decoder, and the single-flight reconnect timer.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from enum import Enum

from js8call_client.events import Event, EventDispatcher, EventKind
from js8call_client.logging_abstraction import get_logger
from js8call_client.metrics import registry
from js8call_client.protocol.frame_decoder import FrameDecoder
from js8call_client.protocol.message import ProtocolMessage
from js8call_client.transport.exceptions import (
    ConnectionFailedError,
    NotConnectedError,
    TransportWriteError,
)
from js8call_client.transport.retry_policy import FixedDelayPolicy, ReconnectPolicy
from js8call_client.transport.socket_abstraction import TCPConnection

logger = get_logger(__name__)

MessageHandler = Callable[[ProtocolMessage], None]
ConnectionFactory = Callable[[str, int], TCPConnection]


class ConnectionState(Enum):
    """Connection state enumeration."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionManager:
    """Manages connection lifecycle, stream reading, and reconnection.

    State machine: DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED.

    **Connect**: idempotent while CONNECTED. Callers arriving while a connect
    is in flight await that same attempt instead of starting another. A
    failed connect raises ConnectionFailedError and schedules nothing.

    **Transport loss**: when the read loop ends (peer closed, read error) or a
    write fails while CONNECTED, the manager moves to DISCONNECTED, publishes
    a ``disconnected`` event and arms exactly one reconnect timer. A reconnect
    attempt that fails re-arms the timer with the policy's next delay.

    **Disconnect**: cancels the timer and any reconnect in progress, closes
    the transport, and stays DISCONNECTED until the next explicit connect().

    **Thread Safety**: state transitions happen under ``_state_lock``
    (asyncio.Lock); only this class mutates connection state.

    Every decoded message is passed to each registered message handler (the
    request correlator first) and then to the event dispatcher.
    """

    def __init__(
        self,
        host: str,
        port: int,
        dispatcher: EventDispatcher,
        reconnect_policy: ReconnectPolicy | None = None,
        connect_timeout: float = 5.0,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        """Initialize connection manager.

        Args:
            host: JS8Call API host
            port: JS8Call API TCP port
            dispatcher: Receives lifecycle events and every decoded message
            reconnect_policy: Delay policy for reconnects (default: fixed 5s)
            connect_timeout: Timeout for opening the TCP connection
            connection_factory: Builds the transport (tests inject fakes here)

        """
        self.host: str = host
        self.port: int = port
        self.dispatcher: EventDispatcher = dispatcher
        self.reconnect_policy: ReconnectPolicy = reconnect_policy or FixedDelayPolicy()
        self.connect_timeout: float = connect_timeout
        self._connection_factory: ConnectionFactory = connection_factory or self._default_connection

        self.state: ConnectionState = ConnectionState.DISCONNECTED
        self._state_lock: asyncio.Lock = asyncio.Lock()
        self.conn: TCPConnection | None = None
        self.decoder: FrameDecoder = FrameDecoder()
        self.message_handlers: list[MessageHandler] = []

        self.read_task: asyncio.Task[None] | None = None
        self.connect_task: asyncio.Task[None] | None = None
        self.reconnect_handle: asyncio.TimerHandle | None = None
        self.reconnect_task: asyncio.Task[None] | None = None
        self.reconnect_attempt: int = 0

    def _default_connection(self, host: str, port: int) -> TCPConnection:
        return TCPConnection(host, port, connect_timeout=self.connect_timeout)

    def add_message_handler(self, handler: MessageHandler) -> None:
        """Register a handler called for every decoded message, before dispatch."""
        self.message_handlers.append(handler)

    @property
    def is_connected(self) -> bool:
        """Check if connection is established (best effort, may be stale)."""
        return self.state == ConnectionState.CONNECTED

    async def _set_state(self, state: ConnectionState) -> None:
        async with self._state_lock:
            self._set_state_locked(state)

    def _set_state_locked(self, state: ConnectionState) -> None:
        if self.state != state:
            logger.debug(
                "Connection state %s -> %s",
                self.state.value,
                state.value,
                extra={"host": self.host, "port": self.port},
            )
        self.state = state
        registry.record_connection_state(state.value)

    async def connect(self) -> None:
        """Open the connection (no-op when already connected).

        Raises:
            ConnectionFailedError: If the transport could not be opened, or
                the attempt was aborted by disconnect()

        """
        if self.state == ConnectionState.CONNECTED:
            return

        if self.connect_task is None or self.connect_task.done():
            self.connect_task = asyncio.create_task(self._establish())
        task = self.connect_task

        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                error_msg = "connect aborted by disconnect()"
                raise ConnectionFailedError(self.host, self.port, error_msg) from None
            raise

    async def _establish(self) -> None:
        async with self._state_lock:
            self._set_state_locked(ConnectionState.CONNECTING)

        conn = self._connection_factory(self.host, self.port)
        try:
            connected = await conn.connect()
        except asyncio.CancelledError:
            await conn.close()
            await self._set_state(ConnectionState.DISCONNECTED)
            raise

        if not connected:
            await self._set_state(ConnectionState.DISCONNECTED)
            raise ConnectionFailedError(self.host, self.port, conn.last_error or "unknown error")

        async with self._state_lock:
            self.conn = conn
            self.decoder.reset()
            self.reconnect_attempt = 0
            if self.reconnect_handle is not None:
                # An explicit connect() beat the timer
                self.reconnect_handle.cancel()
                self.reconnect_handle = None
            self._set_state_locked(ConnectionState.CONNECTED)
            self.read_task = asyncio.create_task(self._read_loop(conn))

        logger.info(
            "Connected to JS8Call API",
            extra={"host": self.host, "port": self.port},
        )
        self.dispatcher.publish(Event(EventKind.CONNECTED))

    async def _read_loop(self, conn: TCPConnection) -> None:
        """Feed bytes from the transport to the decoder until it closes.

        **Exception Handling**:
        - asyncio.CancelledError: clean shutdown from disconnect(), re-raised
        - Other exceptions: logged and treated as transport loss
        """
        reason = "closed_by_peer"
        try:
            while True:
                data = await conn.recv()
                if data is None:
                    if conn.last_error:
                        reason = conn.last_error
                    break
                for message in self.decoder.feed(data):
                    self._route_message(message)
        except asyncio.CancelledError:
            logger.debug("Read loop cancelled (clean shutdown)")
            raise
        except Exception:
            # Bug in a handler or decoder; drop the connection rather than wedge it.
            logger.exception("Read loop crashed", extra={"host": self.host, "port": self.port})
            reason = "read_loop_crash"

        await self._handle_transport_lost(conn, reason)

    def _route_message(self, message: ProtocolMessage) -> None:
        for handler in self.message_handlers:
            try:
                handler(message)
            except Exception:
                logger.exception(
                    "Message handler failed for %s",
                    message.type,
                    extra={"message_type": message.type},
                )
        self.dispatcher.publish_message(message)

    async def _handle_transport_lost(self, conn: TCPConnection, reason: str) -> None:
        """Move to DISCONNECTED, publish, and arm the reconnect timer.

        Ignored unless conn is still the live transport, so a second closure
        signal for the same connection (read loop and failed write racing)
        cannot produce a second timer.
        """
        async with self._state_lock:
            if self.conn is not conn or self.state != ConnectionState.CONNECTED:
                return
            self._set_state_locked(ConnectionState.DISCONNECTED)
            self.conn = None
            if self.read_task is not None and self.read_task is not asyncio.current_task():
                _ = self.read_task.cancel()
            self.read_task = None

        await conn.close()
        logger.warning(
            "Disconnected from JS8Call API",
            extra={"host": self.host, "port": self.port, "reason": reason},
        )
        self.dispatcher.publish(Event(EventKind.DISCONNECTED))
        self._schedule_reconnect(reason)

    def _schedule_reconnect(self, reason: str) -> None:
        """Arm the reconnect timer unless one is already pending."""
        if self.reconnect_handle is not None and not self.reconnect_handle.cancelled():
            logger.debug("Reconnect already scheduled", extra={"reason": reason})
            return

        delay = self.reconnect_policy.next_delay(self.reconnect_attempt)
        logger.info(
            "Reconnecting in %.1fs",
            delay,
            extra={"reason": reason, "attempt": self.reconnect_attempt + 1},
        )
        loop = asyncio.get_running_loop()
        self.reconnect_handle = loop.call_later(delay, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self.reconnect_handle = None
        self.reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        self.reconnect_attempt += 1
        logger.info(
            "→ Attempting to reconnect to JS8Call",
            extra={"attempt": self.reconnect_attempt, "host": self.host, "port": self.port},
        )
        try:
            await self.connect()
        except ConnectionFailedError as e:
            registry.record_reconnection("failed")
            logger.warning(
                "✗ Reconnection failed",
                extra={"attempt": self.reconnect_attempt, "reason": e.reason},
            )
            self._schedule_reconnect("reconnect_failed")
        else:
            registry.record_reconnection("success")
            logger.info("✓ Reconnection successful")
        finally:
            if self.reconnect_task is asyncio.current_task():
                self.reconnect_task = None

    async def write_message(self, message: ProtocolMessage) -> None:
        """Serialize message as one line and write it to the transport.

        Raises:
            NotConnectedError: If not CONNECTED
            TransportWriteError: If the write failed (the connection is then
                treated as lost)

        """
        async with self._state_lock:
            conn = self.conn
            if self.state != ConnectionState.CONNECTED or conn is None:
                raise NotConnectedError(message.type, self.state.value)

        if await conn.send(message.to_wire()):
            registry.record_message_sent(message.type, "success")
            return

        registry.record_message_sent(message.type, "failed")
        reason = conn.last_error or "write failed"
        await self._handle_transport_lost(conn, f"write_failed: {reason}")
        raise TransportWriteError(reason)

    async def disconnect(self) -> None:
        """Close the connection and stop reconnecting.

        Cleanup order: reconnect timer, reconnect/connect tasks, read loop,
        then the transport.
        """
        logger.info("Disconnecting...")

        if self.reconnect_handle is not None:
            self.reconnect_handle.cancel()
            self.reconnect_handle = None

        current = asyncio.current_task()
        for task in (self.reconnect_task, self.connect_task):
            if task is not None and task is not current and not task.done():
                _ = task.cancel()
                with contextlib.suppress(asyncio.CancelledError, ConnectionFailedError):
                    await task
        self.reconnect_task = None
        self.connect_task = None

        async with self._state_lock:
            was_connected = self.state == ConnectionState.CONNECTED
            conn, self.conn = self.conn, None
            read_task, self.read_task = self.read_task, None
            self._set_state_locked(ConnectionState.DISCONNECTED)

        if read_task is not None and not read_task.done():
            _ = read_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await read_task

        if conn is not None:
            await conn.close()

        self.reconnect_attempt = 0
        if was_connected:
            self.dispatcher.publish(Event(EventKind.DISCONNECTED))
        logger.info("Disconnect complete")
