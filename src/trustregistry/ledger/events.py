"""
Registry events and the event bus indexers subscribe to.

Event names and payload keys are a compatibility contract with off-ledger
indexers; payload dictionaries keep their keys in declaration order.
"""

from __future__ import annotations

import fnmatch
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


EVENT_AGENT_REGISTERED = "AgentRegistered"
EVENT_AGENT_UPDATED = "AgentUpdated"
EVENT_AGENT_DEVELOPER_LINKED = "AgentDeveloperLinked"
EVENT_FEEDBACK_AUTHORIZED = "FeedbackAuthorized"
EVENT_VALIDATION_REQUESTED = "ValidationRequested"
EVENT_VALIDATION_RESPONDED = "ValidationResponded"

ALL_EVENT_TYPES = [
    EVENT_AGENT_REGISTERED,
    EVENT_AGENT_UPDATED,
    EVENT_AGENT_DEVELOPER_LINKED,
    EVENT_FEEDBACK_AUTHORIZED,
    EVENT_VALIDATION_REQUESTED,
    EVENT_VALIDATION_RESPONDED,
]


@dataclass
class Event:
    """An event emitted by a committed registry transaction."""

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    block_time: int = 0
    sequence: int = 0

    def __getitem__(self, key: str) -> Any:
        return self.payload[key]


EventHandler = Callable[[Event], Any]


@dataclass(frozen=True)
class Subscription:
    """A handler bound to a glob pattern over event types."""

    pattern: str
    handler: EventHandler

    def matches(self, event_type: str) -> bool:
        return fnmatch.fnmatchcase(event_type, self.pattern)


class EventBus(ABC):
    """Fan-out of committed registry events to off-ledger subscribers.

    Delivery happens after the ledger has committed, so a subscriber can
    never veto or partially undo a transaction. ``emit`` must not let a
    subscriber failure escape.
    """

    @abstractmethod
    def emit(self, event: Event) -> int:
        """Deliver ``event`` to every matching subscriber.

        Returns:
            The number of subscribers that raised.
        """

    @abstractmethod
    def subscribe(self, pattern: str, handler: EventHandler) -> Subscription:
        """Subscribe ``handler`` to event types matching ``pattern`` (e.g. ``Agent*``)."""

    @abstractmethod
    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove ``handler`` from every pattern it is subscribed to."""


class InMemoryEventBus(EventBus):
    """Synchronous in-process bus.

    Subscribers run in subscription order. A subscriber that raises is
    logged and skipped; the remaining subscribers still receive the event.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def emit(self, event: Event) -> int:
        failures = 0
        for subscription in list(self._subscriptions):
            if not subscription.matches(event.event_type):
                continue
            try:
                subscription.handler(event)
            except Exception:
                failures += 1
                logger.exception(
                    "Subscriber %r failed on %s #%d",
                    subscription.handler,
                    event.event_type,
                    event.sequence,
                )
        return failures

    def subscribe(self, pattern: str, handler: EventHandler) -> Subscription:
        subscription = Subscription(pattern=pattern, handler=handler)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, handler: EventHandler) -> None:
        self._subscriptions = [s for s in self._subscriptions if s.handler != handler]

    def subscriptions(self, event_type: str = "*") -> list[Subscription]:
        """Return the subscriptions that would receive ``event_type``."""
        if event_type == "*":
            return list(self._subscriptions)
        return [s for s in self._subscriptions if s.matches(event_type)]
