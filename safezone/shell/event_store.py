"""Event store interface - Imperative Shell.

Shared result types and the protocol implemented by the Firestore and
in-memory event stores.
"""

from dataclasses import dataclass
from typing import Callable, Protocol

from safezone.core.feed import RemoteEvent
from safezone.core.geo import Coordinate


EventsCallback = Callable[[list[RemoteEvent]], None]
ErrorCallback = Callable[[Exception], None]


@dataclass
class AppendResult:
    """Result of appending an event.

    Attributes:
        success: Whether the write was committed
        event_id: ID of the new document
        error: Error message if failed
    """
    success: bool
    event_id: str | None = None
    error: str | None = None


class Subscription(Protocol):
    """Handle for a live feed subscription."""

    def unsubscribe(self) -> None:
        ...


class EventStore(Protocol):
    """Append-only store with a push-based "latest N events" feed.

    subscribe() must deliver the current newest-first snapshot right away
    and again after every change. Callbacks may run on any thread.
    """

    def append(self, coordinate: Coordinate) -> AppendResult:
        ...

    def subscribe(
        self,
        on_events: EventsCallback,
        on_error: ErrorCallback,
        limit: int = 1,
    ) -> Subscription:
        ...
