"""Prometheus metrics registry for the JS8Call client."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

js8_message_sent_total: Final = Counter(  # type: ignore[assignment]
    "js8_message_sent_total",
    "Total messages written to the JS8Call API",
    ["message_type", "outcome"],
)

js8_message_recv_total: Final = Counter(  # type: ignore[assignment]
    "js8_message_recv_total",
    "Total messages decoded from the JS8Call API",
    ["event_kind"],
)

js8_decode_errors_total: Final = Counter(  # type: ignore[assignment]
    "js8_decode_errors_total",
    "Total lines dropped by the frame decoder",
    ["reason"],
)

js8_request_latency_seconds: Final = Histogram(  # type: ignore[assignment]
    "js8_request_latency_seconds",
    "Command round-trip latency in seconds (answered commands only)",
    ["message_type"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

js8_request_timeout_total: Final = Counter(  # type: ignore[assignment]
    "js8_request_timeout_total",
    "Total commands that resolved without a response",
    ["message_type"],
)

js8_pending_requests: Final = Gauge(  # type: ignore[assignment]
    "js8_pending_requests",
    "Commands currently awaiting a response",
)

js8_connection_state: Final = Gauge(  # type: ignore[assignment]
    "js8_connection_state",
    "Current connection state",
    ["state"],
)

js8_reconnection_total: Final = Counter(  # type: ignore[assignment]
    "js8_reconnection_total",
    "Total reconnection attempts",
    ["outcome"],
)

js8_subscriber_errors_total: Final = Counter(  # type: ignore[assignment]
    "js8_subscriber_errors_total",
    "Total exceptions raised by event subscribers",
    ["event_kind"],
)

js8_events_dropped_total: Final = Counter(  # type: ignore[assignment]
    "js8_events_dropped_total",
    "Total events dropped because the dispatch queue was full",
    ["event_kind"],
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9402) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_message_sent(message_type: str, outcome: str) -> None:
    """Record a message written to the transport."""
    js8_message_sent_total.labels(message_type=message_type, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_message_recv(event_kind: str) -> None:
    """Record a decoded inbound message by its event category."""
    js8_message_recv_total.labels(event_kind=event_kind).inc()  # type: ignore[no-untyped-call]


def record_decode_error(reason: str) -> None:
    """Record a dropped line."""
    js8_decode_errors_total.labels(reason=reason).inc()  # type: ignore[no-untyped-call]


def record_request_latency(message_type: str, latency_seconds: float) -> None:
    """Record round-trip latency of an answered command."""
    js8_request_latency_seconds.labels(message_type=message_type).observe(latency_seconds)  # type: ignore[no-untyped-call]


def record_request_timeout(message_type: str) -> None:
    """Record a command that resolved without a response."""
    js8_request_timeout_total.labels(message_type=message_type).inc()  # type: ignore[no-untyped-call]


def record_pending_requests(count: int) -> None:
    """Record the size of the pending request table."""
    js8_pending_requests.set(count)  # type: ignore[no-untyped-call]


def record_connection_state(state: str) -> None:
    """Record connection state change."""
    # One-hot: 1 for the current state, 0 for all others
    for s in ["disconnected", "connecting", "connected"]:
        value = 1 if s == state else 0
        js8_connection_state.labels(state=s).set(value)  # type: ignore[no-untyped-call]


def record_reconnection(outcome: str) -> None:
    """Record a reconnection attempt."""
    js8_reconnection_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_subscriber_error(event_kind: str) -> None:
    """Record a subscriber failure."""
    js8_subscriber_errors_total.labels(event_kind=event_kind).inc()  # type: ignore[no-untyped-call]


def record_event_dropped(event_kind: str) -> None:
    """Record an event dropped by a full dispatch queue."""
    js8_events_dropped_total.labels(event_kind=event_kind).inc()  # type: ignore[no-untyped-call]
