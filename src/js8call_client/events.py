"""Typed publish/subscribe for connection and protocol events.

Every decoded message is classified by its ``type`` into an EventKind and
delivered to the subscribers of that kind, synchronously and in registration
order. Events published while a delivery is already running (for example by
a subscriber) are queued and delivered afterwards, so ordering stays
deterministic no matter who publishes.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from js8call_client.logging_abstraction import get_logger
from js8call_client.metrics import registry
from js8call_client.protocol import message as wire
from js8call_client.protocol.message import ProtocolMessage

__all__ = [
    "Event",
    "EventCallback",
    "EventDispatcher",
    "EventKind",
    "Subscription",
    "classify",
]

logger = get_logger(__name__)


class EventKind(StrEnum):
    """Event categories published by the client."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    MESSAGE = "message"
    INCOMING_TEXT = "rx.text"
    CALL_ACTIVITY = "rx.call_activity"
    BAND_ACTIVITY = "rx.band_activity"
    STATION_CALLSIGN = "station.callsign"
    RIG_FREQUENCY = "rig.frequency"


_CLASSIFICATION: Final[dict[str, EventKind]] = {
    wire.RX_ACTIVITY: EventKind.INCOMING_TEXT,
    wire.RX_TEXT: EventKind.INCOMING_TEXT,
    wire.RX_CALL_ACTIVITY: EventKind.CALL_ACTIVITY,
    wire.RX_BAND_ACTIVITY: EventKind.BAND_ACTIVITY,
    wire.STATION_CALLSIGN: EventKind.STATION_CALLSIGN,
    wire.RIG_FREQ: EventKind.RIG_FREQUENCY,
}


def classify(message: ProtocolMessage) -> EventKind | None:
    """Map a message to its event category, or None when unclassified."""
    return _CLASSIFICATION.get(message.type)


@dataclass(frozen=True, slots=True)
class Event:
    """A published event; lifecycle events carry no message."""

    kind: EventKind
    message: ProtocolMessage | None = None


EventCallback = Callable[[Event], Awaitable[None] | None]


class Subscription:
    """Handle for one (kind, callback) registration."""

    def __init__(self, dispatcher: EventDispatcher, kind: EventKind, callback: EventCallback) -> None:
        self._dispatcher = dispatcher
        self.kind = kind
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._dispatcher.is_subscribed(self)

    def cancel(self) -> None:
        """Stop receiving events (no-op if already cancelled)."""
        self._dispatcher.unsubscribe(self)

    def __repr__(self) -> str:
        name = getattr(self.callback, "__qualname__", repr(self.callback))
        return f"Subscription({self.kind.value}, {name})"


class EventDispatcher:
    """Delivers events to subscribers in registration order.

    A subscriber may be a plain callable or a coroutine function. Coroutines
    are scheduled as tasks on the running loop; their completion is not
    awaited. A subscriber that raises is logged and skipped, and delivery
    continues with the next one.
    """

    MAX_QUEUED_EVENTS: int = 1024

    def __init__(self, max_queued_events: int | None = None) -> None:
        self._subscriptions: dict[EventKind, list[Subscription]] = {kind: [] for kind in EventKind}
        self._queue: deque[Event] = deque()
        self._max_queued = max_queued_events or self.MAX_QUEUED_EVENTS
        self._draining = False
        self._tasks: set[asyncio.Task[None]] = set()

    def subscribe(self, kind: EventKind, callback: EventCallback) -> Subscription:
        """Register callback for events of kind; returns a cancellable handle."""
        subscription = Subscription(self, kind, callback)
        self._subscriptions[kind].append(subscription)
        logger.debug("Subscribed %r", subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions[subscription.kind]
        if subscription in subscribers:
            subscribers.remove(subscription)

    def is_subscribed(self, subscription: Subscription) -> bool:
        return subscription in self._subscriptions[subscription.kind]

    def subscriber_count(self, kind: EventKind) -> int:
        return len(self._subscriptions[kind])

    def publish(self, event: Event) -> None:
        """Queue event and deliver everything queued, unless a delivery is already running."""
        if len(self._queue) >= self._max_queued:
            logger.warning(
                "Dispatch queue full, dropping %s event",
                event.kind.value,
                extra={"queued": len(self._queue), "kind": event.kind.value},
            )
            registry.record_event_dropped(event.kind.value)
            return

        self._queue.append(event)
        if self._draining:
            return

        self._draining = True
        try:
            while self._queue:
                self._deliver(self._queue.popleft())
        finally:
            self._draining = False

    def publish_message(self, message: ProtocolMessage) -> EventKind | None:
        """Publish a decoded message under MESSAGE and under its classified kind.

        Returns:
            The classified kind, or None for unclassified messages

        """
        kind = classify(message)
        registry.record_message_recv(kind.value if kind else "unclassified")
        self.publish(Event(EventKind.MESSAGE, message))
        if kind is not None:
            self.publish(Event(kind, message))
        return kind

    def _deliver(self, event: Event) -> None:
        # Snapshot so subscribe/unsubscribe during delivery does not skip anyone
        for subscription in list(self._subscriptions[event.kind]):
            try:
                result = subscription.callback(event)
                if inspect.isawaitable(result):
                    self._schedule(subscription, result)
            except Exception:
                logger.exception(
                    "Subscriber %r failed",
                    subscription,
                    extra={"kind": event.kind.value},
                )
                registry.record_subscriber_error(event.kind.value)

    def _schedule(self, subscription: Subscription, awaitable: Awaitable[None]) -> None:
        async def _run() -> None:
            try:
                await awaitable
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "Async subscriber %r failed",
                    subscription,
                    extra={"kind": subscription.kind.value},
                )
                registry.record_subscriber_error(subscription.kind.value)

        task = asyncio.ensure_future(_run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain_tasks(self) -> None:
        """Wait for scheduled async subscribers to finish."""
        while self._tasks:
            _ = await asyncio.gather(*list(self._tasks), return_exceptions=True)
