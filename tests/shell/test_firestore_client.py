"""Tests for the Firestore event store.

The Firestore client is replaced with a MagicMock; no network access.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock, patch

from google.cloud import firestore

from safezone.core.geo import Coordinate
from safezone.shell.firestore_client import (
    FirestoreConfig,
    FirestoreEventStore,
    FirestoreSubscription,
    parse_snapshot,
)


TS = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_doc(doc_id: str, data: dict | None) -> Mock:
    doc = Mock()
    doc.id = doc_id
    doc.to_dict.return_value = data
    return doc


def make_store() -> tuple[FirestoreEventStore, MagicMock]:
    store = FirestoreEventStore(FirestoreConfig(collection="testEvents"))
    store._client = MagicMock()
    return store, store._client.collection.return_value


class TestParseSnapshot:
    def test_parses_documents(self):
        docs = [make_doc("a", {"location": {"lat": 1.0, "lng": 2.0}, "timestamp": TS})]

        events = parse_snapshot(docs)

        assert len(events) == 1
        assert events[0].id == "a"
        assert events[0].coordinate == Coordinate(1.0, 2.0)
        assert events[0].server_timestamp == TS

    def test_skips_malformed_documents(self):
        docs = [
            make_doc("bad", {"timestamp": TS}),
            make_doc("empty", None),
            make_doc("good", {"location": {"lat": 1.0, "lng": 2.0}, "timestamp": None}),
        ]

        events = parse_snapshot(docs)

        assert [e.id for e in events] == ["good"]


class TestFirestoreEventStoreAppend:
    """Tests for FirestoreEventStore.append()."""

    def test_writes_location_and_server_timestamp(self):
        store, collection = make_store()
        doc_ref = Mock()
        doc_ref.id = "doc-1"
        collection.add.return_value = (None, doc_ref)

        result = store.append(Coordinate(34.05, -118.24))

        store._client.collection.assert_called_with("testEvents")
        collection.add.assert_called_once_with({
            "location": {"lat": 34.05, "lng": -118.24},
            "timestamp": firestore.SERVER_TIMESTAMP,
        })
        assert result.success is True
        assert result.event_id == "doc-1"

    def test_failure_returns_error(self):
        store, collection = make_store()
        collection.add.side_effect = RuntimeError("permission denied")

        result = store.append(Coordinate(1.0, 2.0))

        assert result.success is False
        assert result.error == "permission denied"


class TestFirestoreEventStoreSubscribe:
    """Tests for FirestoreEventStore.subscribe()."""

    def test_queries_newest_first(self):
        store, collection = make_store()
        query = collection.order_by.return_value.limit.return_value

        store.subscribe(Mock(), Mock(), limit=1)

        collection.order_by.assert_called_once_with(
            "timestamp", direction=firestore.Query.DESCENDING
        )
        collection.order_by.return_value.limit.assert_called_once_with(1)
        query.on_snapshot.assert_called_once()

    def test_snapshot_delivers_events(self):
        store, collection = make_store()
        query = collection.order_by.return_value.limit.return_value
        on_events, on_error = Mock(), Mock()

        store.subscribe(on_events, on_error)
        callback = query.on_snapshot.call_args[0][0]
        callback(
            [make_doc("a", {"location": {"lat": 1.0, "lng": 2.0}, "timestamp": TS})],
            [],
            TS,
        )

        events = on_events.call_args[0][0]
        assert [e.id for e in events] == ["a"]
        on_error.assert_not_called()

    def test_snapshot_error_goes_to_error_callback(self):
        store, collection = make_store()
        query = collection.order_by.return_value.limit.return_value
        on_events, on_error = Mock(), Mock()
        broken = Mock()
        broken.id = "x"
        broken.to_dict.side_effect = RuntimeError("decode failed")

        store.subscribe(on_events, on_error)
        callback = query.on_snapshot.call_args[0][0]
        callback([broken], [], TS)

        on_events.assert_not_called()
        assert str(on_error.call_args[0][0]) == "decode failed"

    def test_unsubscribe_is_idempotent(self):
        watch = Mock()
        subscription = FirestoreSubscription(watch)

        subscription.unsubscribe()
        subscription.unsubscribe()

        watch.unsubscribe.assert_called_once()


class TestFirestoreClientInit:
    def test_lazy_client_uses_project_and_database(self):
        store = FirestoreEventStore(FirestoreConfig(project_id="proj", database="db"))

        with patch("safezone.shell.firestore_client.firestore.Client") as MockClient:
            client = store.client
            again = store.client

        MockClient.assert_called_once_with(project="proj", database="db")
        assert client is again

    def test_default_client_has_no_arguments(self):
        store = FirestoreEventStore()

        with patch("safezone.shell.firestore_client.firestore.Client") as MockClient:
            store.client

        MockClient.assert_called_once_with()
