"""Unit tests for the event dispatcher."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from js8call_client.events import Event, EventDispatcher, EventKind, classify
from js8call_client.protocol.message import ProtocolMessage


def collector(dispatcher: EventDispatcher, kind: EventKind) -> list[Event]:
    seen: list[Event] = []
    _ = dispatcher.subscribe(kind, seen.append)
    return seen


class TestClassify:
    """Tests for mapping message types to event kinds."""

    @pytest.mark.parametrize(
        ("message_type", "kind"),
        [
            ("RX.ACTIVITY", EventKind.INCOMING_TEXT),
            ("RX.TEXT", EventKind.INCOMING_TEXT),
            ("RX.CALL_ACTIVITY", EventKind.CALL_ACTIVITY),
            ("RX.BAND_ACTIVITY", EventKind.BAND_ACTIVITY),
            ("STATION.CALLSIGN", EventKind.STATION_CALLSIGN),
            ("RIG.FREQ", EventKind.RIG_FREQUENCY),
        ],
    )
    def test_known_types(self, message_type: str, kind: EventKind):
        """Test each classified message type."""
        assert classify(ProtocolMessage(message_type)) is kind

    @pytest.mark.parametrize("message_type", ["PING", "STATION.GRID", "TX.TEXT", "rx.text"])
    def test_unclassified_types(self, message_type: str):
        """Test that other types (and wrong case) have no category."""
        assert classify(ProtocolMessage(message_type)) is None


class TestEventDispatcherSubscribe:
    """Tests for subscribe/unsubscribe."""

    def test_delivery_in_registration_order(self, dispatcher: EventDispatcher):
        """Test that subscribers of one kind run in the order they subscribed."""
        order: list[str] = []
        _ = dispatcher.subscribe(EventKind.CONNECTED, lambda e: order.append("first"))
        _ = dispatcher.subscribe(EventKind.CONNECTED, lambda e: order.append("second"))

        dispatcher.publish(Event(EventKind.CONNECTED))

        assert order == ["first", "second"]

    def test_only_matching_kind_delivered(self, dispatcher: EventDispatcher):
        """Test that subscribers never see other kinds."""
        connected = collector(dispatcher, EventKind.CONNECTED)
        disconnected = collector(dispatcher, EventKind.DISCONNECTED)

        dispatcher.publish(Event(EventKind.DISCONNECTED))

        assert connected == []
        assert len(disconnected) == 1

    def test_subscription_cancel(self, dispatcher: EventDispatcher):
        """Test that a cancelled subscription stops receiving events."""
        seen: list[Event] = []
        subscription = dispatcher.subscribe(EventKind.CONNECTED, seen.append)

        subscription.cancel()
        subscription.cancel()
        dispatcher.publish(Event(EventKind.CONNECTED))

        assert seen == []
        assert subscription.active is False
        assert dispatcher.subscriber_count(EventKind.CONNECTED) == 0

    def test_same_callback_twice_gets_two_deliveries(self, dispatcher: EventDispatcher):
        """Test that each subscribe() call is its own registration."""
        callback = MagicMock()
        first = dispatcher.subscribe(EventKind.CONNECTED, callback)
        _ = dispatcher.subscribe(EventKind.CONNECTED, callback)

        dispatcher.publish(Event(EventKind.CONNECTED))
        first.cancel()
        dispatcher.publish(Event(EventKind.CONNECTED))

        assert callback.call_count == 3

    def test_subscription_repr(self, dispatcher: EventDispatcher):
        """Test Subscription string representation."""

        def on_text(event: Event) -> None:
            pass

        subscription = dispatcher.subscribe(EventKind.INCOMING_TEXT, on_text)

        assert repr(subscription) == f"Subscription(rx.text, {on_text.__qualname__})"


class TestEventDispatcherPublish:
    """Tests for publish ordering and error isolation."""

    def test_publish_message_fans_out_to_message_then_kind(self, dispatcher: EventDispatcher):
        """Test that a classified message is published under MESSAGE and its kind."""
        order: list[EventKind] = []
        _ = dispatcher.subscribe(EventKind.MESSAGE, lambda e: order.append(e.kind))
        _ = dispatcher.subscribe(EventKind.CALL_ACTIVITY, lambda e: order.append(e.kind))
        message = ProtocolMessage("RX.CALL_ACTIVITY", params={"KC1ABC": {"SNR": -5}})

        kind = dispatcher.publish_message(message)

        assert kind is EventKind.CALL_ACTIVITY
        assert order == [EventKind.MESSAGE, EventKind.CALL_ACTIVITY]

    def test_unclassified_message_only_on_message(self, dispatcher: EventDispatcher):
        """Test that an unclassified message reaches only MESSAGE subscribers."""
        raw = collector(dispatcher, EventKind.MESSAGE)

        kind = dispatcher.publish_message(ProtocolMessage("STATION.GRID", "FN42"))

        assert kind is None
        assert [e.message for e in raw] == [ProtocolMessage("STATION.GRID", "FN42")]

    def test_subscriber_cannot_alter_message_for_others(self, dispatcher: EventDispatcher):
        """Test that a subscriber writing into params fails and later subscribers see the original."""
        seen: list[object] = []

        def tamper(event: Event) -> None:
            event.message.params["FROM"] = "W1AW"  # type: ignore[index, union-attr]

        _ = dispatcher.subscribe(EventKind.MESSAGE, tamper)
        _ = dispatcher.subscribe(EventKind.MESSAGE, lambda e: seen.append(e.message.params["FROM"]))

        with patch("js8call_client.events.registry.record_subscriber_error") as record:
            _ = dispatcher.publish_message(ProtocolMessage("RX.DIRECTED", params={"FROM": "K1"}))

        assert seen == ["K1"]
        record.assert_called_once_with("message")

    def test_failing_subscriber_isolated(self, dispatcher: EventDispatcher):
        """Test that one subscriber raising does not stop the others."""
        seen: list[str] = []
        _ = dispatcher.subscribe(EventKind.CONNECTED, MagicMock(side_effect=RuntimeError("boom")))
        _ = dispatcher.subscribe(EventKind.CONNECTED, lambda e: seen.append("after"))

        with patch("js8call_client.events.registry.record_subscriber_error") as record:
            dispatcher.publish(Event(EventKind.CONNECTED))

        assert seen == ["after"]
        record.assert_called_once_with("connected")

    def test_publish_from_subscriber_is_queued(self, dispatcher: EventDispatcher):
        """Test that an event published during delivery waits its turn."""
        order: list[str] = []

        def on_connected(event: Event) -> None:
            order.append("connected:start")
            dispatcher.publish(Event(EventKind.DISCONNECTED))
            order.append("connected:end")

        _ = dispatcher.subscribe(EventKind.CONNECTED, on_connected)
        _ = dispatcher.subscribe(EventKind.CONNECTED, lambda e: order.append("connected:second"))
        _ = dispatcher.subscribe(EventKind.DISCONNECTED, lambda e: order.append("disconnected"))

        dispatcher.publish(Event(EventKind.CONNECTED))

        assert order == ["connected:start", "connected:end", "connected:second", "disconnected"]

    def test_subscribe_during_delivery_applies_to_next_event(self, dispatcher: EventDispatcher):
        """Test that a subscriber added mid-delivery misses the current event."""
        late: list[Event] = []

        def add_late(event: Event) -> None:
            _ = dispatcher.subscribe(EventKind.CONNECTED, late.append)

        first = dispatcher.subscribe(EventKind.CONNECTED, add_late)
        dispatcher.publish(Event(EventKind.CONNECTED))
        assert late == []

        first.cancel()
        dispatcher.publish(Event(EventKind.CONNECTED))
        assert len(late) == 1

    def test_full_queue_drops_event(self):
        """Test that a runaway publisher cannot grow the queue without bound."""
        dispatcher = EventDispatcher(max_queued_events=2)
        delivered: list[EventKind] = []

        def flood(event: Event) -> None:
            delivered.append(event.kind)
            for _ in range(5):
                dispatcher.publish(Event(EventKind.DISCONNECTED))

        _ = dispatcher.subscribe(EventKind.CONNECTED, flood)
        _ = dispatcher.subscribe(EventKind.DISCONNECTED, lambda e: delivered.append(e.kind))

        with patch("js8call_client.events.registry.record_event_dropped") as dropped:
            dispatcher.publish(Event(EventKind.CONNECTED))

        assert delivered == [EventKind.CONNECTED, EventKind.DISCONNECTED, EventKind.DISCONNECTED]
        assert dropped.call_count == 3


class TestAsyncSubscribers:
    """Tests for coroutine subscribers."""

    @pytest.mark.asyncio
    async def test_coroutine_subscriber_scheduled(self, dispatcher: EventDispatcher):
        """Test that an async callback runs as a task."""
        seen: list[Event] = []

        async def on_text(event: Event) -> None:
            await asyncio.sleep(0)
            seen.append(event)

        _ = dispatcher.subscribe(EventKind.INCOMING_TEXT, on_text)

        _ = dispatcher.publish_message(ProtocolMessage("RX.TEXT", "hello"))
        assert seen == []
        await dispatcher.drain_tasks()

        assert [e.message.value for e in seen if e.message] == ["hello"]

    @pytest.mark.asyncio
    async def test_failing_coroutine_subscriber_logged(self, dispatcher: EventDispatcher):
        """Test that an exception in an async callback is contained."""

        async def broken(event: Event) -> None:
            raise ValueError("bad subscriber")

        _ = dispatcher.subscribe(EventKind.CONNECTED, broken)

        with patch("js8call_client.events.registry.record_subscriber_error") as record:
            dispatcher.publish(Event(EventKind.CONNECTED))
            await dispatcher.drain_tasks()

        record.assert_called_once_with("connected")
