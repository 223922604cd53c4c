"""Metrics module."""

from . import registry
from .registry import (
    record_connection_state,
    record_decode_error,
    record_message_recv,
    record_message_sent,
    record_reconnection,
    start_metrics_server,
)

__all__ = [
    "record_connection_state",
    "record_decode_error",
    "record_message_recv",
    "record_message_sent",
    "record_reconnection",
    "registry",
    "start_metrics_server",
]
