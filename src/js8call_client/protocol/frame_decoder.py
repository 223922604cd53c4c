"""Newline-delimited JSON framing for the JS8Call TCP stream.

This module provides FrameDecoder for turning arbitrary TCP reads into complete
protocol messages, handling partial lines, multi-line reads, and bad lines.
"""

from __future__ import annotations

from js8call_client.logging_abstraction import get_logger
from js8call_client.metrics import registry
from js8call_client.protocol.exceptions import MalformedFrameError
from js8call_client.protocol.message import LINE_DELIMITER, ProtocolMessage

logger = get_logger(__name__)


class FrameDecoder:
    r"""Extract complete messages from a newline-delimited byte stream.

    TCP reads may end mid-line, contain several lines, or land exactly on a
    boundary. The decoder keeps the unterminated tail in ``buffer`` and only
    parses lines once their delimiter has arrived.

    Algorithm:

    1. Append incoming bytes to the buffer
    2. Split on ``\n``; every segment but the last is a complete line
    3. Keep the last segment (possibly empty) as the new buffer
    4. Parse each non-blank line; drop and log lines that fail to parse

    Splitting happens on bytes, so a multi-byte UTF-8 character cut by a read
    boundary is reassembled before decoding.

    Security: any line longer than MAX_LINE_BYTES is dropped, whether it
    arrives in one read or many. Once the unterminated tail outgrows the
    limit it is discarded and the decoder skips ahead to the next delimiter,
    so memory stays bounded on a peer that never sends one.

    Example:
        decoder = FrameDecoder()
        decoder.feed(b'{"type":"PING"}\n{"type":"STAT')    # -> [PING]
        decoder.feed(b'ION.CALLSIGN","value":"KC1ABC"}\n')  # -> [STATION.CALLSIGN]

    """

    MAX_LINE_BYTES: int = 1024 * 1024

    def __init__(self) -> None:
        """Initialize decoder with empty buffer."""
        self.buffer: bytearray = bytearray()
        # Set while skipping the rest of an oversized line
        self._discarding: bool = False

    def reset(self) -> None:
        """Discard any partial line (called on every new connection)."""
        self.buffer = bytearray()
        self._discarding = False

    def feed(self, data: bytes) -> list[ProtocolMessage]:
        """Add data to buffer and return the messages it completes.

        Args:
            data: Incoming bytes from a TCP read

        Returns:
            Decoded messages in stream order (may be empty)

        """
        self.buffer.extend(data)
        messages: list[ProtocolMessage] = []
        for line in self._extract_lines():
            message = self._decode_line(line)
            if message is not None:
                messages.append(message)
        return messages

    def _extract_lines(self) -> list[bytes]:
        *lines, remainder = bytes(self.buffer).split(LINE_DELIMITER)

        if self._discarding:
            if not lines:
                self.buffer = bytearray()
                return []
            # First completed segment is the end of the line already dropped
            lines = lines[1:]
            self._discarding = False

        self.buffer = bytearray(remainder)
        complete = [line for line in lines if not self._over_limit(line)]

        if self._over_limit(self.buffer):
            self.buffer = bytearray()
            self._discarding = True

        return complete

    def _over_limit(self, line: bytes | bytearray) -> bool:
        if len(line) <= self.MAX_LINE_BYTES:
            return False
        logger.error(
            "Discarding line over size limit",
            extra={"line_size": len(line), "max_bytes": self.MAX_LINE_BYTES},
        )
        registry.record_decode_error("line_too_long")
        return True

    def _decode_line(self, line: bytes) -> ProtocolMessage | None:
        if not line.strip():
            return None
        try:
            return ProtocolMessage.from_line(line)
        except MalformedFrameError as e:
            logger.warning(
                "Dropping malformed line: %s",
                e.reason,
                extra={"reason": e.reason, "preview": e.line_preview},
            )
            registry.record_decode_error(e.reason)
            return None
