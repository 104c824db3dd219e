"""Tests for registry events and the event bus."""

from __future__ import annotations

import logging

from trustregistry.ledger import ALL_EVENT_TYPES, Event, InMemoryEventBus, Subscription


class TestEvent:
    """Tests for the Event dataclass."""

    def test_event_creation(self) -> None:
        """Event creates with required fields and sensible defaults."""
        event = Event(event_type="AgentRegistered", source="identity")
        assert event.payload == {}
        assert event.block_time == 0
        assert event.sequence == 0

    def test_payload_item_access(self) -> None:
        event = Event(
            event_type="AgentRegistered",
            source="identity",
            payload={"agent_id": 7, "domain": "a.example"},
        )
        assert event["agent_id"] == 7
        assert list(event.payload) == ["agent_id", "domain"]

    def test_event_type_names(self) -> None:
        assert ALL_EVENT_TYPES == [
            "AgentRegistered",
            "AgentUpdated",
            "AgentDeveloperLinked",
            "FeedbackAuthorized",
            "ValidationRequested",
            "ValidationResponded",
        ]


class TestInMemoryEventBus:
    """Tests for the synchronous in-process event bus."""

    def test_emit_and_subscribe(self) -> None:
        """Subscribed handler receives emitted events."""
        bus = InMemoryEventBus()
        received: list[Event] = []
        bus.subscribe("Agent*", received.append)

        event = Event(event_type="AgentUpdated", source="identity")
        bus.emit(event)

        assert received == [event]
        assert received[0] is event

    def test_pattern_matching_glob(self) -> None:
        """Glob-style patterns correctly filter events."""
        bus = InMemoryEventBus()
        agent_events: list[Event] = []
        validation_events: list[Event] = []
        bus.subscribe("Agent*", agent_events.append)
        bus.subscribe("Validation*", validation_events.append)

        for event_type in ALL_EVENT_TYPES:
            bus.emit(Event(event_type=event_type, source="test"))

        assert [e.event_type for e in agent_events] == ALL_EVENT_TYPES[:3]
        assert [e.event_type for e in validation_events] == ALL_EVENT_TYPES[4:]

    def test_matching_is_case_sensitive(self) -> None:
        bus = InMemoryEventBus()
        received: list[Event] = []
        bus.subscribe("agent*", received.append)
        bus.emit(Event(event_type="AgentRegistered", source="identity"))
        assert received == []

    def test_unsubscribe(self) -> None:
        bus = InMemoryEventBus()
        received: list[Event] = []
        bus.subscribe("*", received.append)
        bus.subscribe("Agent*", received.append)
        bus.unsubscribe(received.append)

        bus.emit(Event(event_type="AgentRegistered", source="identity"))
        assert received == []

    def test_emit_without_subscribers(self) -> None:
        InMemoryEventBus().emit(Event(event_type="AgentRegistered", source="identity"))

    def test_failing_subscriber_is_isolated(self, caplog) -> None:
        """A raising subscriber is logged and later subscribers still run."""
        bus = InMemoryEventBus()
        received: list[Event] = []

        def broken(event: Event) -> None:
            raise ValueError("cannot index")

        bus.subscribe("*", broken)
        bus.subscribe("*", received.append)

        event = Event(event_type="AgentRegistered", source="identity", sequence=4)
        with caplog.at_level(logging.ERROR, logger="trustregistry.ledger.events"):
            assert bus.emit(event) == 1
        assert received == [event]
        assert "failed on AgentRegistered #4" in caplog.text

    def test_emit_reports_no_failures(self) -> None:
        bus = InMemoryEventBus()
        bus.subscribe("Agent*", lambda event: None)
        assert bus.emit(Event(event_type="AgentUpdated", source="identity")) == 0

    def test_subscriptions_by_event_type(self) -> None:
        bus = InMemoryEventBus()
        agents = bus.subscribe("Agent*", print)
        everything = bus.subscribe("*", print)
        assert isinstance(agents, Subscription)
        assert bus.subscriptions("AgentRegistered") == [agents, everything]
        assert bus.subscriptions("FeedbackAuthorized") == [everything]
        assert bus.subscriptions() == [agents, everything]
