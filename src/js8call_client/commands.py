"""Typed wrappers for the JS8Call API commands this client uses.

Each wrapper sends one command and pulls its result out of the reply. A
missing reply or a missing field yields a default (empty string, zero
frequency, empty table); only transport failures raised by send() escape.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from js8call_client.logging_abstraction import get_logger
from js8call_client.protocol import message as wire
from js8call_client.protocol.message import ProtocolMessage
from js8call_client.structs import (
    BandActivityEntry,
    CallActivityEntry,
    FrequencyInfo,
    StationInfo,
)

__all__ = ["JS8CallCommands"]

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class CommandSender(Protocol):
    async def send(
        self,
        message_type: str,
        value: str = "",
        params: Mapping[str, Any] | None = None,
        timeout_seconds: float | None = None,
    ) -> ProtocolMessage | None: ...


def _parse_table(response: ProtocolMessage | None, model: type[ModelT]) -> dict[str, ModelT]:
    """Parse an activity table reply, skipping rows that do not validate."""
    if response is None:
        return {}

    table: dict[str, ModelT] = {}
    for key, row in response.payload_params().items():
        if not isinstance(row, Mapping):
            logger.warning(
                "Skipping non-object %s row",
                response.type,
                extra={"key": key},
            )
            continue
        try:
            table[key] = model.model_validate(row)
        except ValidationError as e:
            logger.warning(
                "Skipping invalid %s row",
                response.type,
                extra={"key": key, "errors": e.error_count()},
            )
    return table


class JS8CallCommands:
    """Typed JS8Call commands over a request correlator."""

    def __init__(self, sender: CommandSender) -> None:
        self._sender = sender

    async def _value_of(self, message_type: str) -> str:
        response = await self._sender.send(message_type)
        if response is None or response.value is None:
            return ""
        return response.value

    async def get_station_callsign(self) -> str:
        """Return the station callsign configured in JS8Call ("" if unknown)."""
        return await self._value_of(wire.STATION_GET_CALLSIGN)

    async def get_station_grid(self) -> str:
        """Return the station grid square ("" if unknown)."""
        return await self._value_of(wire.STATION_GET_GRID)

    async def get_frequency(self) -> FrequencyInfo:
        """Return working frequency, dial frequency and audio offset."""
        response = await self._sender.send(wire.RIG_GET_FREQ)
        if response is None or not response.params:
            return FrequencyInfo()
        try:
            return FrequencyInfo.model_validate(response.payload_params())
        except ValidationError:
            logger.warning("Unusable RIG.FREQ reply", extra={"params": response.payload_params()})
            return FrequencyInfo()

    async def get_station_info(self) -> StationInfo:
        """Query callsign, grid and frequency concurrently."""
        callsign, grid, freq = await asyncio.gather(
            self.get_station_callsign(),
            self.get_station_grid(),
            self.get_frequency(),
        )
        return StationInfo(
            callsign=callsign,
            grid=grid,
            frequency=freq.freq,
            dial=freq.dial,
            offset=freq.offset,
        )

    async def get_call_activity(self) -> dict[str, CallActivityEntry]:
        """Return the call activity table keyed by callsign."""
        response = await self._sender.send(wire.RX_GET_CALL_ACTIVITY)
        return _parse_table(response, CallActivityEntry)

    async def get_band_activity(self) -> dict[str, BandActivityEntry]:
        """Return the band activity table keyed by audio offset."""
        response = await self._sender.send(wire.RX_GET_BAND_ACTIVITY)
        return _parse_table(response, BandActivityEntry)

    async def send_message(self, text: str) -> None:
        """Transmit text as-is."""
        _ = await self._sender.send(wire.TX_SEND_MESSAGE, text)

    async def send_directed_message(self, to: str, text: str) -> None:
        """Transmit text addressed to a callsign or group (e.g. "@ALLCALL")."""
        await self.send_message(f"{to.strip()} {text}")

    async def set_tx_text(self, text: str) -> None:
        """Replace the contents of JS8Call's outgoing text box."""
        _ = await self._sender.send(wire.TX_SET_TEXT, text)

    async def get_rx_text(self) -> str:
        return await self._value_of(wire.RX_GET_TEXT)

    async def get_tx_text(self) -> str:
        return await self._value_of(wire.TX_GET_TEXT)

    async def ping(self) -> None:
        _ = await self._sender.send(wire.PING)
