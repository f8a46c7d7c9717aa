"""Firestore Client - Imperative Shell.

This module persists reported events to Google Cloud Firestore and
subscribes to the newest one in real time.

Document structure:
{
    "location": {"lat": 34.05, "lng": -118.24},
    "timestamp": <server timestamp>
}

All I/O is contained here; feed classification is in the core module.
"""

import logging
from dataclasses import dataclass
from typing import Any

from google.cloud import firestore

from safezone.core.config import DEFAULT_EVENTS_COLLECTION
from safezone.core.feed import RemoteEvent, parse_event
from safezone.core.geo import Coordinate
from safezone.shell.event_store import AppendResult, ErrorCallback, EventsCallback


logger = logging.getLogger(__name__)


@dataclass
class FirestoreConfig:
    """Configuration for Firestore event store.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        collection: Firestore collection name
    """
    project_id: str | None = None
    database: str | None = None
    collection: str = DEFAULT_EVENTS_COLLECTION


def parse_snapshot(docs: list[Any]) -> list[RemoteEvent]:
    """Convert Firestore document snapshots into events, skipping invalid ones."""
    events = []
    for doc in docs:
        event = parse_event(doc.to_dict() or {}, event_id=doc.id)
        if event is None:
            logger.warning("Skipping malformed event document %s", doc.id)
            continue
        events.append(event)
    return events


class FirestoreSubscription:
    """Wraps a Firestore watch so callers can release it."""

    def __init__(self, watch: Any) -> None:
        self._watch = watch

    def unsubscribe(self) -> None:
        if self._watch is None:
            return
        logger.info("Releasing Firestore event subscription")
        self._watch.unsubscribe()
        self._watch = None


class FirestoreEventStore:
    """Event store backed by a Firestore collection.

    This is part of the imperative shell - it handles database I/O.
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore event store.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _collection(self) -> Any:
        return self.client.collection(self.config.collection)

    def append(self, coordinate: Coordinate) -> AppendResult:
        """Append an event at the given coordinate.

        This method performs database I/O. The timestamp is assigned by the
        server at commit time.

        Args:
            coordinate: Where the event happened

        Returns:
            AppendResult indicating success or failure
        """
        logger.info(
            "Appending event at %.4f, %.4f",
            coordinate.latitude,
            coordinate.longitude,
        )

        try:
            _, doc_ref = self._collection().add({
                "location": coordinate.as_dict(),
                "timestamp": firestore.SERVER_TIMESTAMP,
            })
            logger.info("Event stored as %s", doc_ref.id)
            return AppendResult(success=True, event_id=doc_ref.id)

        except Exception as e:
            logger.error("Failed to append event: %s", str(e))
            return AppendResult(success=False, error=str(e))

    def subscribe(
        self,
        on_events: EventsCallback,
        on_error: ErrorCallback,
        limit: int = 1,
    ) -> FirestoreSubscription:
        """Watch the newest events, ordered by timestamp descending.

        Firestore delivers the current snapshot immediately and then on
        every change. Callbacks run on Firestore's watch thread.

        Args:
            on_events: Receives the newest-first list of events
            on_error: Receives errors raised while handling a snapshot
            limit: Number of events per snapshot

        Returns:
            Subscription handle
        """
        query = (
            self._collection()
            .order_by("timestamp", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )

        def _on_snapshot(docs: list[Any], changes: Any, read_time: Any) -> None:
            try:
                events = parse_snapshot(docs)
            except Exception as e:
                logger.error("Failed to read event snapshot: %s", str(e))
                on_error(e)
                return
            on_events(events)

        logger.info("Subscribing to %s (limit=%d)", self.config.collection, limit)
        watch = query.on_snapshot(_on_snapshot)
        return FirestoreSubscription(watch)
