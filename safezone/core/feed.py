"""Event feed classification - Pure functions.

Parses event-store documents into RemoteEvent objects and decides whether
the newest event is alert-worthy for the current location.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from safezone.core.geo import Coordinate, calculate_distance


# An event older than this is no longer alert-worthy
DEFAULT_RECENCY_WINDOW_MS = 60_000

# Events farther than this from the user are ignored
DEFAULT_EVENT_RADIUS_M = 1_000.0


@dataclass(frozen=True)
class RemoteEvent:
    """A reported gunshot event read back from the shared feed.

    Attributes:
        coordinate: Where the event was reported
        server_timestamp: Commit time assigned by the store, None while pending
        id: Store document ID (optional)
    """
    coordinate: Coordinate
    server_timestamp: datetime | None = None
    id: str | None = None

    @property
    def key(self) -> tuple:
        """Identity used to avoid alerting twice on the same event."""
        if self.id:
            return ("id", self.id)
        return (
            "event",
            self.server_timestamp,
            self.coordinate.latitude,
            self.coordinate.longitude,
        )


@dataclass(frozen=True)
class FeedClassification:
    """Outcome of evaluating the newest feed event.

    Attributes:
        event: The event evaluated, None for an empty feed
        is_recent: Event is inside the recency window
        is_nearby: Event is inside the event radius (or no location known)
    """
    event: RemoteEvent | None
    is_recent: bool = False
    is_nearby: bool = False

    @property
    def is_active_event(self) -> bool:
        return self.event is not None and self.is_recent and self.is_nearby


EMPTY_FEED = FeedClassification(event=None)


def _parse_timestamp(value: Any) -> datetime | None:
    """Normalise the timestamp types different stores hand back."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, (int, float)):
        # Milliseconds since epoch
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return None


def parse_event(data: dict[str, Any], event_id: str | None = None) -> RemoteEvent | None:
    """Parse an event-store document into a RemoteEvent.

    Pure function: returns None for documents without a usable location.

    Args:
        data: Document fields ({"location": {"lat", "lng"}, "timestamp"})
        event_id: Document ID

    Returns:
        RemoteEvent or None if invalid
    """
    try:
        location = data.get("location") or {}
        coordinate = Coordinate(
            latitude=float(location["lat"]),
            longitude=float(location["lng"]),
        )
    except (KeyError, TypeError, ValueError, AttributeError):
        return None

    return RemoteEvent(
        coordinate=coordinate,
        server_timestamp=_parse_timestamp(data.get("timestamp")),
        id=event_id,
    )


def latest_event(events: list[RemoteEvent]) -> RemoteEvent | None:
    """Return the most recent event of a newest-first snapshot.

    Pure function.
    """
    return events[0] if events else None


def is_recent(
    event: RemoteEvent,
    now: datetime,
    recency_window_ms: int = DEFAULT_RECENCY_WINDOW_MS,
) -> bool:
    """Check whether an event falls inside the recency window.

    Pure function. A pending (unset) timestamp is never recent.
    """
    if event.server_timestamp is None:
        return False
    age_ms = (now - event.server_timestamp).total_seconds() * 1000
    return age_ms < recency_window_ms


def classify_event(
    event: RemoteEvent | None,
    location: Coordinate | None,
    now: datetime,
    recency_window_ms: int = DEFAULT_RECENCY_WINDOW_MS,
    event_radius_m: float = DEFAULT_EVENT_RADIUS_M,
) -> FeedClassification:
    """Classify the newest feed event against the current location.

    Pure function.

    Args:
        event: Newest event, or None for an empty feed
        location: Current user coordinate, None if unresolved
        now: Current time (UTC)
        recency_window_ms: Recency window in milliseconds
        event_radius_m: Proximity threshold in meters

    Returns:
        FeedClassification; with no location the event counts as nearby
    """
    if event is None:
        return EMPTY_FEED

    if location is None:
        nearby = True
    else:
        nearby = calculate_distance(location, event.coordinate) < event_radius_m

    return FeedClassification(
        event=event,
        is_recent=is_recent(event, now, recency_window_ms),
        is_nearby=nearby,
    )
