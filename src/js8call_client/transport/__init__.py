"""Transport package - TCP connection lifecycle and request correlation."""

from js8call_client.transport.connection_manager import ConnectionManager, ConnectionState
from js8call_client.transport.exceptions import (
    ConnectionFailedError,
    JS8ConnectionError,
    NotConnectedError,
    TransportWriteError,
)
from js8call_client.transport.request_correlator import RequestCorrelator
from js8call_client.transport.retry_policy import (
    BackoffPolicy,
    FixedDelayPolicy,
    ReconnectPolicy,
    ZeroDelayPolicy,
)
from js8call_client.transport.socket_abstraction import TCPConnection

__all__ = [
    "BackoffPolicy",
    "ConnectionFailedError",
    "ConnectionManager",
    "ConnectionState",
    "FixedDelayPolicy",
    "JS8ConnectionError",
    "NotConnectedError",
    "ReconnectPolicy",
    "RequestCorrelator",
    "TCPConnection",
    "TransportWriteError",
    "ZeroDelayPolicy",
]
