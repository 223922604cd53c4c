"""JS8Call protocol package - message type, line codec, and stream framing.

Public API:
- ProtocolMessage (one JSON line on the wire)
- FrameDecoder (byte stream -> messages)
- Exceptions (JS8ProtocolError, MalformedFrameError)
"""

from js8call_client.protocol.exceptions import JS8ProtocolError, MalformedFrameError
from js8call_client.protocol.frame_decoder import FrameDecoder
from js8call_client.protocol.message import CORRELATION_ID_KEY, ProtocolMessage

__all__ = [
    "CORRELATION_ID_KEY",
    "FrameDecoder",
    "JS8ProtocolError",
    "MalformedFrameError",
    "ProtocolMessage",
]
