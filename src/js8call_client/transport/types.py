"""Core dataclasses for request tracking."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from js8call_client.protocol.message import ProtocolMessage


@dataclass
class PendingRequest:
    """Command awaiting its response.

    Attributes:
        msg_id: Correlation id written into the command's params
        message_type: Command type (for logs and metrics)
        future: Resolved at most once with the matching response
        created_at: Loop time when the request was registered
        timeout_seconds: How long to wait before resolving with no response

    """

    msg_id: int
    message_type: str
    future: asyncio.Future[ProtocolMessage | None]
    created_at: float
    timeout_seconds: float
