"""
Shared Ledger

Logical clock, serialized transactions and the committed event log.
"""

from .chain import Ledger, Transaction
from .events import (
    ALL_EVENT_TYPES,
    EVENT_AGENT_DEVELOPER_LINKED,
    EVENT_AGENT_REGISTERED,
    EVENT_AGENT_UPDATED,
    EVENT_FEEDBACK_AUTHORIZED,
    EVENT_VALIDATION_REQUESTED,
    EVENT_VALIDATION_RESPONDED,
    Event,
    EventBus,
    EventHandler,
    InMemoryEventBus,
    Subscription,
)

__all__ = [
    "Ledger",
    "Transaction",
    "Event",
    "EventBus",
    "EventHandler",
    "InMemoryEventBus",
    "Subscription",
    "ALL_EVENT_TYPES",
    "EVENT_AGENT_REGISTERED",
    "EVENT_AGENT_UPDATED",
    "EVENT_AGENT_DEVELOPER_LINKED",
    "EVENT_FEEDBACK_AUTHORIZED",
    "EVENT_VALIDATION_REQUESTED",
    "EVENT_VALIDATION_RESPONDED",
]
