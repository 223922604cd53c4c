"""Custom exception types for JS8Call protocol errors.

Every error raised by this package derives from JS8ProtocolError so callers
can catch everything from the client with one clause when they want to.
"""

from __future__ import annotations


class JS8ProtocolError(Exception):
    """Base exception for all JS8Call client errors."""


class MalformedFrameError(JS8ProtocolError):
    """A received line could not be decoded into a protocol message.

    Raised by ProtocolMessage.from_line() and contained by the frame decoder:
    the line is dropped and decoding continues with the next one.

    Attributes:
        reason: Specific failure reason (e.g., "invalid_json", "missing_type")
        line_preview: First 64 bytes of the offending line

    """

    PREVIEW_BYTES = 64

    def __init__(self, reason: str, line: bytes = b"") -> None:
        """Initialize malformed frame error with reason and offending line."""
        self.reason: str = reason
        self.line_preview: bytes = line[: self.PREVIEW_BYTES] if line else b""
        super().__init__(f"Malformed frame: {reason}")
