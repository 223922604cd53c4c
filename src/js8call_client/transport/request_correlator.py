"""Request/response correlation for JS8Call API commands.

Every command carries a fresh integer id in ``params["_ID"]``; JS8Call echoes
it in its reply. Many commands never get a reply, so a request that times
out resolves with None instead of raising.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Protocol

from js8call_client.correlation import trace_context
from js8call_client.logging_abstraction import get_logger
from js8call_client.metrics import registry
from js8call_client.protocol.message import CORRELATION_ID_KEY, ProtocolMessage
from js8call_client.transport.exceptions import NotConnectedError
from js8call_client.transport.types import PendingRequest

logger = get_logger(__name__)


class MessageWriter(Protocol):
    """Transport side the correlator writes through."""

    @property
    def is_connected(self) -> bool: ...

    async def write_message(self, message: ProtocolMessage) -> None: ...


class RequestCorrelator:
    """Matches outbound commands to their asynchronous responses.

    Ids start at 1 and increase for the lifetime of the correlator; they are
    never reused, so a late reply can only ever match its own request.

    Outstanding requests are not failed when the connection drops: they stay
    in ``pending`` and resolve through a genuine response (possibly after a
    reconnect) or their own timeout.
    """

    def __init__(self, writer: MessageWriter, timeout_seconds: float = 5.0) -> None:
        """Initialize correlator.

        Args:
            writer: Connection used to write commands
            timeout_seconds: How long send() waits for a reply

        """
        self.writer: MessageWriter = writer
        self.timeout_seconds: float = timeout_seconds
        self.pending: dict[int, PendingRequest] = {}
        self._next_id: int = 1

    def _allocate_id(self) -> int:
        msg_id = self._next_id
        self._next_id += 1
        return msg_id

    async def send(
        self,
        message_type: str,
        value: str = "",
        params: Mapping[str, Any] | None = None,
        timeout_seconds: float | None = None,
    ) -> ProtocolMessage | None:
        """Send a command and wait for its response.

        Args:
            message_type: Command name (e.g. "STATION.GET_CALLSIGN")
            value: Command argument
            params: Extra parameters (the correlation id is added)
            timeout_seconds: Override of the default timeout

        Returns:
            The response bearing this command's id, or None if none arrived in time

        Raises:
            NotConnectedError: If the client is not connected
            TransportWriteError: If writing the command failed

        """
        if not self.writer.is_connected:
            raise NotConnectedError(message_type, "disconnected")

        msg_id = self._allocate_id()
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        message = ProtocolMessage(
            type=message_type,
            value=value,
            params={**(params or {}), CORRELATION_ID_KEY: msg_id},
        )

        with trace_context(f"req-{msg_id}"):
            loop = asyncio.get_running_loop()
            pending = PendingRequest(
                msg_id=msg_id,
                message_type=message_type,
                future=loop.create_future(),
                created_at=loop.time(),
                timeout_seconds=timeout,
            )
            # Registered before writing so a reply racing the drain is not missed
            self.pending[msg_id] = pending
            registry.record_pending_requests(len(self.pending))

            try:
                logger.debug(
                    "→ Sending %s",
                    message_type,
                    extra={"msg_id": msg_id, "timeout": timeout},
                )
                await self.writer.write_message(message)
                return await self._await_response(pending)
            finally:
                _ = self.pending.pop(msg_id, None)
                registry.record_pending_requests(len(self.pending))

    async def _await_response(self, pending: PendingRequest) -> ProtocolMessage | None:
        # The deadline runs from registration, so time spent draining the write counts
        elapsed = asyncio.get_running_loop().time() - pending.created_at
        remaining = max(pending.timeout_seconds - elapsed, 0.0)
        try:
            response = await asyncio.wait_for(pending.future, timeout=remaining)
        except TimeoutError:
            registry.record_request_timeout(pending.message_type)
            logger.debug(
                "No response to %s within %.1fs",
                pending.message_type,
                pending.timeout_seconds,
                extra={"msg_id": pending.msg_id},
            )
            return None

        latency = asyncio.get_running_loop().time() - pending.created_at
        registry.record_request_latency(pending.message_type, latency)
        logger.debug(
            "✓ %s answered with %s",
            pending.message_type,
            response.type if response else None,
            extra={"msg_id": pending.msg_id, "latency_ms": round(latency * 1000, 1)},
        )
        return response

    def handle_message(self, message: ProtocolMessage) -> bool:
        """Resolve the pending request whose id the message echoes.

        Returns:
            True if the message completed a pending request

        """
        msg_id = message.correlation_id
        if msg_id is None:
            return False

        pending = self.pending.pop(msg_id, None)
        if pending is None:
            logger.debug(
                "Response %s matches no pending request",
                message.type,
                extra={"msg_id": msg_id},
            )
            return False

        registry.record_pending_requests(len(self.pending))
        if pending.future.done():
            return False
        pending.future.set_result(message)
        return True
