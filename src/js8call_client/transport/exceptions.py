"""Custom exception types for transport layer errors.

This module defines the exception hierarchy for connection-related errors,
extending the protocol exceptions.
"""

from __future__ import annotations

from js8call_client.protocol.exceptions import JS8ProtocolError


class JS8ConnectionError(JS8ProtocolError):
    """Connection state error.

    Note: Named JS8ConnectionError to avoid shadowing Python's built-in ConnectionError.

    Attributes:
        reason: Specific failure reason
        state: Connection state when error occurred

    """

    def __init__(self, reason: str, state: str = "unknown") -> None:
        """Initialize connection error with reason and state."""
        self.reason: str = reason
        self.state: str = state
        super().__init__(f"Connection error: {reason} (state: {state})")


class ConnectionFailedError(JS8ConnectionError):
    """connect() could not establish the transport.

    Raised to the caller of connect() only; a failed first attempt does not
    schedule a retry.

    Attributes:
        host: Target host
        port: Target port

    """

    def __init__(self, host: str, port: int, reason: str) -> None:
        """Initialize with the endpoint that could not be reached."""
        self.host: str = host
        self.port: int = port
        super().__init__(f"could not connect to {host}:{port}: {reason}", state="disconnected")


class NotConnectedError(JS8ConnectionError):
    """A command was issued while the client is not connected.

    Attributes:
        operation: Operation that required a connection

    """

    def __init__(self, operation: str, state: str) -> None:
        """Initialize with the rejected operation and current state."""
        self.operation: str = operation
        super().__init__(f"'{operation}' requires a connected client", state=state)


class TransportWriteError(JS8ConnectionError):
    """The transport failed while writing a command.

    The same failure tears the connection down and feeds the reconnect policy.
    """

    def __init__(self, reason: str) -> None:
        """Initialize transport write error with reason."""
        super().__init__(reason, state="connected")
