"""Asyncio TCP socket abstraction with deadlines and instrumentation."""

from __future__ import annotations

import asyncio
import time

from js8call_client.logging_abstraction import get_logger

logger = get_logger(__name__)


class TCPConnection:
    """Async TCP connection with timeouts and instrumentation."""

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float = 5.0,
        write_timeout: float = 5.0,
        read_timeout: float | None = None,
        max_read_size: int = 65536,
    ):
        """
        Initialize TCP connection parameters.

        Args:
            host: Target host
            port: Target port
            connect_timeout: Connection timeout in seconds
            write_timeout: Drain timeout in seconds
            read_timeout: Read timeout in seconds (None waits indefinitely;
                JS8Call may stay silent for long stretches)
            max_read_size: Maximum bytes to read in one operation
        """
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.write_timeout = write_timeout
        self.read_timeout = read_timeout
        self.max_read_size = max_read_size
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.last_error: str = ""
        self._connected = False

    async def connect(self) -> bool:
        """
        Establish TCP connection with timeout.

        Returns:
            True if connected successfully, False otherwise (reason in last_error)
        """
        start_time = time.perf_counter()
        try:
            logger.info(
                "Connecting to %s:%d (timeout: %.1fs)",
                self.host,
                self.port,
                self.connect_timeout,
                extra={"host": self.host, "port": self.port, "timeout": self.connect_timeout},
            )
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self._connected = True
            self.last_error = ""
            logger.info(
                "Connected to %s:%d in %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms},
            )
        except TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = "timeout"
            logger.warning(
                "Connection to %s:%d timed out after %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms, "error": "timeout"},
            )
            return False
        except OSError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = str(e) or type(e).__name__
            logger.warning(
                "Connection to %s:%d failed after %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms, "error": self.last_error},
            )
            return False
        else:
            return True

    async def send(self, data: bytes) -> bool:
        """
        Send data with timeout.

        Args:
            data: Bytes to send

        Returns:
            True if sent successfully, False otherwise
        """
        if not self._connected or not self.writer:
            logger.error(
                "Cannot send: not connected",
                extra={"host": self.host, "port": self.port},
            )
            return False

        start_time = time.perf_counter()
        try:
            self.writer.write(data)
            await asyncio.wait_for(self.writer.drain(), timeout=self.write_timeout)
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(
                "Sent %d bytes to %s:%d in %.1fms",
                len(data),
                self.host,
                self.port,
                elapsed_ms,
                extra={"bytes": len(data), "elapsed_ms": elapsed_ms},
            )
        except TimeoutError:
            self.last_error = "write timeout"
            logger.exception(
                "Send to %s:%d timed out",
                self.host,
                self.port,
                extra={"host": self.host, "port": self.port, "error": "timeout"},
            )
            return False
        except OSError as e:
            self.last_error = str(e) or type(e).__name__
            logger.exception(
                "Send to %s:%d failed",
                self.host,
                self.port,
                extra={"host": self.host, "port": self.port, "error": self.last_error},
            )
            return False
        else:
            return True

    async def recv(self, max_bytes: int | None = None) -> bytes | None:
        """
        Receive data.

        Args:
            max_bytes: Maximum bytes to read (default: self.max_read_size)

        Returns:
            Received bytes, or None once the peer closed or the read failed
        """
        if not self._connected or not self.reader:
            logger.error(
                "Cannot receive: not connected",
                extra={"host": self.host, "port": self.port},
            )
            return None

        if max_bytes is None:
            max_bytes = self.max_read_size

        try:
            data = await asyncio.wait_for(
                self.reader.read(max_bytes),
                timeout=self.read_timeout,
            )
            if not data:
                logger.warning(
                    "Connection closed by %s:%d",
                    self.host,
                    self.port,
                    extra={"host": self.host, "port": self.port},
                )
                self._connected = False
                return None
            logger.debug(
                "Received %d bytes from %s:%d",
                len(data),
                self.host,
                self.port,
                extra={"bytes": len(data)},
            )
        except TimeoutError:
            self.last_error = "read timeout"
            logger.warning(
                "Receive from %s:%d timed out after %.1fs",
                self.host,
                self.port,
                self.read_timeout,
                extra={"host": self.host, "port": self.port, "error": "timeout"},
            )
            return None
        except OSError as e:
            self.last_error = str(e) or type(e).__name__
            logger.warning(
                "Receive from %s:%d failed",
                self.host,
                self.port,
                extra={"host": self.host, "port": self.port, "error": self.last_error},
            )
            self._connected = False
            return None
        else:
            return data

    async def close(self) -> None:
        """Close the connection."""
        if self.writer:
            logger.info(
                "Closing connection to %s:%d",
                self.host,
                self.port,
                extra={"host": self.host, "port": self.port},
            )
            try:
                self.writer.close()
                await self.writer.wait_closed()
            except OSError as e:
                logger.warning(
                    "Error closing connection: %s",
                    e,
                    extra={"host": self.host, "port": self.port, "error_type": type(e).__name__},
                )
            finally:
                self._connected = False
                self.writer = None
                self.reader = None

    @property
    def is_connected(self) -> bool:
        """Check if connection is active."""
        return self._connected

    def __repr__(self) -> str:
        status = "connected" if self._connected else "disconnected"
        return f"TCPConnection({self.host}:{self.port}, {status})"
