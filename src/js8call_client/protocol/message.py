"""JS8Call API message type and line codec.

One message is one JSON object on its own line::

    {"type": "STATION.GET_CALLSIGN", "value": "", "params": {"_ID": 1}}
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from js8call_client.protocol.exceptions import MalformedFrameError

__all__ = [
    "CORRELATION_ID_KEY",
    "LINE_DELIMITER",
    "ProtocolMessage",
]

LINE_DELIMITER = b"\n"

# Reserved params key carrying the request id; JS8Call echoes it in replies.
CORRELATION_ID_KEY = "_ID"

# Commands
STATION_GET_CALLSIGN = "STATION.GET_CALLSIGN"
STATION_GET_GRID = "STATION.GET_GRID"
RIG_GET_FREQ = "RIG.GET_FREQ"
RX_GET_CALL_ACTIVITY = "RX.GET_CALL_ACTIVITY"
RX_GET_BAND_ACTIVITY = "RX.GET_BAND_ACTIVITY"
RX_GET_TEXT = "RX.GET_TEXT"
TX_SEND_MESSAGE = "TX.SEND_MESSAGE"
TX_SET_TEXT = "TX.SET_TEXT"
TX_GET_TEXT = "TX.GET_TEXT"
PING = "PING"

# Notifications and replies
RX_ACTIVITY = "RX.ACTIVITY"
RX_TEXT = "RX.TEXT"
RX_CALL_ACTIVITY = "RX.CALL_ACTIVITY"
RX_BAND_ACTIVITY = "RX.BAND_ACTIVITY"
STATION_CALLSIGN = "STATION.CALLSIGN"
STATION_GRID = "STATION.GRID"
RIG_FREQ = "RIG.FREQ"
TX_TEXT = "TX.TEXT"


@dataclass(frozen=True, slots=True)
class ProtocolMessage:
    """One JS8Call API message.

    Instances are shared between the waiting caller and every subscriber, so
    ``params`` is stored as a read-only copy of whatever mapping was given.
    Nested values (activity table rows) are not copied.

    Attributes:
        type: Command or notification name (e.g. "RX.TEXT")
        value: Optional string payload
        params: Optional read-only mapping of named parameters

    """

    type: str
    value: str | None = None
    params: Mapping[str, Any] | None = field(default=None, hash=False)

    def __post_init__(self) -> None:
        if self.params is not None:
            object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def correlation_id(self) -> int | None:
        """Request id echoed in params, or None when absent or not an integer."""
        if not self.params:
            return None
        raw = self.params.get(CORRELATION_ID_KEY)
        if isinstance(raw, bool):
            return None
        if isinstance(raw, int):
            return raw
        if isinstance(raw, float) and raw.is_integer():
            return int(raw)
        return None

    def payload_params(self) -> dict[str, Any]:
        """Return params without the reserved correlation id key."""
        if not self.params:
            return {}
        return {key: val for key, val in self.params.items() if key != CORRELATION_ID_KEY}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.value is not None:
            data["value"] = self.value
        if self.params is not None:
            data["params"] = dict(self.params)
        return data

    def to_wire(self) -> bytes:
        """Serialize as a single newline-terminated JSON line."""
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8") + LINE_DELIMITER

    @classmethod
    def from_dict(cls, data: object, line: bytes = b"") -> ProtocolMessage:
        """Build a message from a decoded JSON value.

        Raises:
            MalformedFrameError: If data is not an object with a string "type"

        """
        if not isinstance(data, dict):
            raise MalformedFrameError("not_an_object", line)
        msg_type = data.get("type")
        if not isinstance(msg_type, str) or not msg_type:
            raise MalformedFrameError("missing_type", line)

        value = data.get("value")
        if value is not None and not isinstance(value, str):
            value = str(value)

        params = data.get("params")
        if params is not None and not isinstance(params, dict):
            raise MalformedFrameError("params_not_an_object", line)

        return cls(type=msg_type, value=value, params=params)

    @classmethod
    def from_line(cls, line: bytes) -> ProtocolMessage:
        """Decode one line (without its delimiter).

        Raises:
            MalformedFrameError: If the line is not valid UTF-8 JSON or lacks a type

        """
        try:
            text = line.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedFrameError("invalid_utf8", line) from e
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedFrameError("invalid_json", line) from e
        return cls.from_dict(data, line)
