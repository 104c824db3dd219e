"""
Shared Ledger

The ledger every registry runs on. It provides:
- a monotonically increasing logical clock (block time)
- serialized, all-or-nothing transactions authenticated by a sender address
- per-transaction entropy for token derivation
- an append-only event log fanned out to an event bus
"""

from __future__ import annotations

import fnmatch
import logging
import secrets
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

from trustregistry.address import AddressLike, normalize_address
from trustregistry.ledger.events import Event, EventBus, InMemoryEventBus

logger = logging.getLogger(__name__)

EntropySource = Callable[[int], bytes]


@dataclass
class Transaction:
    """A single admitted state transition.

    Attributes:
        sender: Authenticated caller address (normalized).
        value: Payment attached to the call.
        timestamp: Ledger clock value at admission.
        seed: Unpredictable per-transaction entropy.
    """

    sender: str
    value: int
    timestamp: int
    seed: bytes
    pending_events: list[Event] = field(default_factory=list)

    def emit(self, event_type: str, source: str, **payload: object) -> None:
        """Buffer an event; it is published only if the transaction commits."""
        self.pending_events.append(
            Event(
                event_type=event_type,
                source=source,
                payload=dict(payload),
                block_time=self.timestamp,
            )
        )


class Ledger:
    """In-process ledger with a global total order over transactions.

    Args:
        genesis_time: Initial clock value.
        bus: Event bus receiving committed events.
        entropy: Callable returning ``n`` unpredictable bytes.

    Example:
        >>> ledger = Ledger()
        >>> with ledger.transaction("0x" + "11" * 20) as tx:
        ...     tx.emit("Ping", source="demo")
        >>> len(ledger.events())
        1
    """

    def __init__(
        self,
        genesis_time: int = 0,
        bus: Optional[EventBus] = None,
        entropy: Optional[EntropySource] = None,
    ) -> None:
        if genesis_time < 0:
            raise ValueError("genesis_time must be non-negative")
        self._now = genesis_time
        self._bus = bus or InMemoryEventBus()
        self._entropy = entropy or secrets.token_bytes
        self._lock = threading.RLock()
        self._log: list[Event] = []

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    @property
    def now(self) -> int:
        """Current logical clock value."""
        return self._now

    def advance(self, units: int = 1) -> int:
        """Move the clock forward by ``units`` and return the new value."""
        if units < 0:
            raise ValueError("The ledger clock cannot move backwards")
        with self._lock:
            self._now += units
            return self._now

    def set_time(self, timestamp: int) -> int:
        """Move the clock to an absolute value not earlier than ``now``."""
        with self._lock:
            if timestamp < self._now:
                raise ValueError(
                    f"The ledger clock cannot move backwards ({timestamp} < {self._now})"
                )
            self._now = timestamp
            return self._now

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def lock(self) -> threading.RLock:
        """Lock serializing transactions; reads hold it for a consistent view."""
        return self._lock

    @contextmanager
    def transaction(self, sender: AddressLike, value: int = 0) -> Iterator[Transaction]:
        """Admit a transaction from ``sender``.

        The body runs while holding the ledger lock. Buffered events are
        appended to the log and published only when the body returns normally;
        an exception discards them and propagates. Subscriber failures are
        logged and never reach the caller, since the state change has
        already been applied.

        Raises:
            InvalidAddress: If ``sender`` is not a well-formed address.
            ValueError: If ``value`` is negative.
        """
        if value < 0:
            raise ValueError("Transaction value must be non-negative")
        with self._lock:
            tx = Transaction(
                sender=normalize_address(sender),
                value=value,
                timestamp=self._now,
                seed=self._entropy(32),
            )
            yield tx
            self._commit(tx)

    def _commit(self, tx: Transaction) -> None:
        # the whole transaction is logged before any subscriber runs
        for event in tx.pending_events:
            event.sequence = len(self._log) + 1
            self._log.append(event)
        for event in tx.pending_events:
            self._publish(event)

    def _publish(self, event: Event) -> None:
        try:
            failures = self._bus.emit(event)
        except Exception:
            logger.exception("Event bus failed to deliver %s #%d", event.event_type, event.sequence)
            return
        if failures:
            logger.warning(
                "%d subscriber(s) failed on %s #%d", failures, event.event_type, event.sequence
            )
        else:
            logger.debug("Published %s #%d", event.event_type, event.sequence)

    # ------------------------------------------------------------------
    # Event log
    # ------------------------------------------------------------------

    def events(self, pattern: str = "*") -> list[Event]:
        """Return committed events whose type matches a glob pattern."""
        with self._lock:
            return [e for e in self._log if fnmatch.fnmatchcase(e.event_type, pattern)]

    def __len__(self) -> int:
        return len(self._log)
