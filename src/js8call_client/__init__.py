"""Asyncio client for the JS8Call TCP/JSON API."""

__version__ = "0.3.0"

from js8call_client.client import JS8CallClient
from js8call_client.events import Event, EventDispatcher, EventKind, Subscription
from js8call_client.protocol.message import ProtocolMessage
from js8call_client.structs import (
    BandActivityEntry,
    CallActivityEntry,
    ClientSettings,
    FrequencyInfo,
    StationInfo,
)
from js8call_client.transport.exceptions import (
    ConnectionFailedError,
    JS8ConnectionError,
    NotConnectedError,
    TransportWriteError,
)

__all__ = [
    "BandActivityEntry",
    "CallActivityEntry",
    "ClientSettings",
    "ConnectionFailedError",
    "Event",
    "EventDispatcher",
    "EventKind",
    "FrequencyInfo",
    "JS8CallClient",
    "JS8ConnectionError",
    "NotConnectedError",
    "ProtocolMessage",
    "StationInfo",
    "Subscription",
    "TransportWriteError",
    "__version__",
]
