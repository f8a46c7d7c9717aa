"""In-memory event store - Imperative Shell.

Same contract as FirestoreEventStore, kept in process. Used for offline
runs and tests. Timestamps are assigned at append time by the store's
clock, standing in for the server clock.
"""

import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from safezone.core.feed import RemoteEvent
from safezone.core.geo import Coordinate
from safezone.shell.event_store import AppendResult, ErrorCallback, EventsCallback


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemorySubscription:
    def __init__(self, store: "InMemoryEventStore", token: int) -> None:
        self._store = store
        self._token = token

    def unsubscribe(self) -> None:
        self._store._remove_subscriber(self._token)


class InMemoryEventStore:
    """Append-only list of events with push subscriptions."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock
        self._events: list[RemoteEvent] = []
        self._subscribers: dict[int, tuple[EventsCallback, ErrorCallback, int]] = {}
        self._event_ids = itertools.count(1)
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    def _latest(self, limit: int) -> list[RemoteEvent]:
        return list(reversed(self._events[-limit:]))

    def append(self, coordinate: Coordinate) -> AppendResult:
        """Append an event and notify subscribers."""
        with self._lock:
            event = RemoteEvent(
                coordinate=coordinate,
                server_timestamp=self._clock(),
                id=f"event-{next(self._event_ids)}",
            )
            self._events.append(event)
            subscribers = list(self._subscribers.values())

        logger.info("Stored event %s", event.id)

        for on_events, _, limit in subscribers:
            on_events(self._latest(limit))

        return AppendResult(success=True, event_id=event.id)

    def subscribe(
        self,
        on_events: EventsCallback,
        on_error: ErrorCallback,
        limit: int = 1,
    ) -> MemorySubscription:
        """Register a subscriber and deliver the current snapshot."""
        with self._lock:
            token = next(self._tokens)
            self._subscribers[token] = (on_events, on_error, limit)
            snapshot = self._latest(limit)

        on_events(snapshot)
        return MemorySubscription(self, token)

    def _remove_subscriber(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def events(self) -> list[RemoteEvent]:
        return list(self._events)
