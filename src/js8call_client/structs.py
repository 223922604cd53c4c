"""Typed models for client settings and JS8Call API results."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from js8call_client.const import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_RECONNECT_DELAY,
    DEFAULT_REQUEST_TIMEOUT,
    env_float,
    env_int,
)

__all__ = [
    "BandActivityEntry",
    "CallActivityEntry",
    "ClientSettings",
    "FrequencyInfo",
    "StationInfo",
]

# JS8Call reports whole Hz, but rigs with sub-Hz tuning send fractional values
Hz = int | float


class ClientSettings(BaseModel):
    """Connection settings for a JS8CallClient."""

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT, gt=0)
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    reconnect_delay: float = Field(default=DEFAULT_RECONNECT_DELAY, ge=0)

    @classmethod
    def from_env(cls) -> ClientSettings:
        """Build settings from the current process environment.

        Read at call time (not import time) so values loaded from a .env
        file afterwards are picked up.
        """
        return cls(
            host=os.environ.get("JS8CALL_HOST") or DEFAULT_HOST,
            port=env_int("JS8CALL_PORT", DEFAULT_PORT),
            connect_timeout=env_float("JS8CALL_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
            request_timeout=env_float("JS8CALL_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            reconnect_delay=env_float("JS8CALL_RECONNECT_DELAY", DEFAULT_RECONNECT_DELAY),
        )


class _ApiModel(BaseModel):
    """Model parsed from JS8Call params; null values fall back to field defaults."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: val for key, val in data.items() if val is not None}
        return data


class FrequencyInfo(_ApiModel):
    """Rig frequency as reported by RIG.GET_FREQ (all values in Hz)."""

    freq: Hz = Field(default=0, alias="FREQ")
    dial: Hz = Field(default=0, alias="DIAL")
    offset: Hz = Field(default=0, alias="OFFSET")


class StationInfo(BaseModel):
    """Identity and tuning of the local station."""

    callsign: str = ""
    grid: str = ""
    frequency: Hz = 0
    dial: Hz = 0
    offset: Hz = 0


class CallActivityEntry(_ApiModel):
    """One row of the call activity table, keyed by callsign."""

    snr: int = Field(default=0, alias="SNR")
    grid: str = Field(default="", alias="GRID")
    utc: int = Field(default=0, alias="UTC")


class BandActivityEntry(_ApiModel):
    """One row of the band activity table, keyed by audio offset."""

    freq: Hz = Field(default=0, alias="FREQ")
    dial: Hz = Field(default=0, alias="DIAL")
    offset: Hz = Field(default=0, alias="OFFSET")
    text: str = Field(default="", alias="TEXT")
    snr: int = Field(default=0, alias="SNR")
    utc: int = Field(default=0, alias="UTC")
