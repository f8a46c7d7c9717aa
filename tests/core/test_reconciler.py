"""Unit tests for the alert reconciliation state machine."""

from datetime import datetime, timezone

import pytest

from safezone.core.catalog import HazardCatalog
from safezone.core.feed import EMPTY_FEED, FeedClassification, RemoteEvent
from safezone.core.formatter import (
    EVENT_MESSAGE,
    HAZARD_MESSAGE,
    NO_LOCATION_ERROR,
)
from safezone.core.geo import Coordinate
from safezone.core.location import Provenance, ResolvedLocation
from safezone.core.reconciler import (
    AlertKind,
    AppendEvent,
    CancelDisplayTimer,
    CancelNotificationTimer,
    EVENT_ALERT,
    FeedFailed,
    FeedUpdated,
    LocalTriggered,
    LocationChanged,
    ManualOverride,
    NO_ALERT,
    NotificationExpired,
    ReconcilerState,
    StartDisplayTimer,
    StartNotificationTimer,
    SuppressionExpired,
    WriteFailed,
    location_alert,
    reconcile,
)


CATALOG = HazardCatalog()
TS = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

# On top of Downtown Crossing (hazardous)
DANGER = ResolvedLocation(Coordinate(34.0550, -118.2450), Provenance.DEVICE)
# Library Square, more than 1 km from every hazardous site
SAFE = ResolvedLocation(Coordinate(34.0500, -118.2550), Provenance.DEVICE)
MANUAL_SAFE = ResolvedLocation(
    Coordinate(34.0500, -118.2550), Provenance.MANUAL, "Library Square"
)
MANUAL_FLAGGED = ResolvedLocation(
    Coordinate(34.0550, -118.2450), Provenance.MANUAL, "Downtown Crossing"
)


def active_feed(event_id: str = "e1") -> FeedClassification:
    event = RemoteEvent(Coordinate(34.0501, -118.2551), TS, event_id)
    return FeedClassification(event, is_recent=True, is_nearby=True)


def stale_feed(event_id: str = "e1") -> FeedClassification:
    event = RemoteEvent(Coordinate(34.0501, -118.2551), TS, event_id)
    return FeedClassification(event, is_recent=False, is_nearby=True)


def step(state, trigger):
    return reconcile(state, trigger, CATALOG)


def suppressed_event_state(location=SAFE) -> ReconcilerState:
    """State right after a local trigger at the given location."""
    state = step(ReconcilerState(), LocationChanged(location)).state
    return step(state, LocalTriggered()).state


class TestLocationAlert:
    def test_no_location(self):
        assert location_alert(None, CATALOG) == NO_ALERT

    def test_device_fix_in_hazard_zone(self):
        alert = location_alert(DANGER, CATALOG)

        assert alert.kind == AlertKind.HAZARD
        assert alert.message == HAZARD_MESSAGE

    def test_manual_flagged_site_names_itself(self):
        alert = location_alert(MANUAL_FLAGGED, CATALOG)

        assert alert.kind == AlertKind.HAZARD
        assert '"Downtown Crossing" is a high-risk area' in alert.message

    def test_safe_location(self):
        assert location_alert(SAFE, CATALOG) == NO_ALERT


class TestLocationChanged:
    """Tests for location-derived alerts."""

    def test_hazard_location_raises_hazard(self):
        result = step(ReconcilerState(), LocationChanged(DANGER))

        assert result.state.alert.kind == AlertKind.HAZARD
        assert result.state.location == DANGER
        assert result.effects == ()

    def test_safe_location_clears_hazard(self):
        state = step(ReconcilerState(), LocationChanged(DANGER)).state

        state = step(state, LocationChanged(SAFE)).state

        assert state.alert == NO_ALERT

    def test_lost_location_clears_hazard(self):
        state = step(ReconcilerState(), LocationChanged(DANGER)).state

        state = step(state, LocationChanged(None, error="Location information is unavailable.")).state

        assert state.alert == NO_ALERT
        assert state.error == "Location information is unavailable."

    def test_location_does_not_downgrade_suppressed_event(self):
        state = suppressed_event_state()

        state = step(state, LocationChanged(DANGER)).state

        assert state.alert == EVENT_ALERT
        assert state.suppressed is True
        assert state.location == DANGER

    def test_location_change_with_active_feed_raises_event(self):
        result = step(ReconcilerState(), LocationChanged(SAFE, feed=active_feed()))

        assert result.state.alert == EVENT_ALERT
        assert result.state.suppressed is True
        assert result.effects == (StartDisplayTimer(1),)


class TestLocalTrigger:
    """Tests for locally simulated events."""

    def test_requires_location(self):
        result = step(ReconcilerState(), LocalTriggered())

        assert result.state.error == NO_LOCATION_ERROR
        assert result.state.alert == NO_ALERT
        assert result.effects == ()

    def test_raises_event_and_writes(self):
        state = step(ReconcilerState(), LocationChanged(SAFE)).state

        result = step(state, LocalTriggered())

        assert result.state.alert.kind == AlertKind.EVENT
        assert result.state.alert.message == EVENT_MESSAGE
        assert result.state.suppressed is True
        assert result.state.notification_visible is True
        assert result.state.error is None
        assert result.effects == (
            StartDisplayTimer(1),
            AppendEvent(SAFE.coordinate),
            StartNotificationTimer(1),
        )

    def test_second_trigger_restarts_window(self):
        state = suppressed_event_state()

        result = step(state, LocalTriggered())

        assert result.state.window_generation == 2
        assert StartDisplayTimer(2) in result.effects


class TestSuppressionWindow:
    """Tests for display window expiry."""

    def test_expiry_reverts_to_location_alert(self):
        state = suppressed_event_state(DANGER)

        state = step(state, SuppressionExpired(state.window_generation)).state

        assert state.suppressed is False
        assert state.alert.kind == AlertKind.HAZARD

    def test_expiry_at_safe_location_clears(self):
        state = suppressed_event_state(SAFE)

        state = step(state, SuppressionExpired(state.window_generation)).state

        assert state.alert == NO_ALERT

    def test_stale_expiry_is_ignored(self):
        state = suppressed_event_state()
        state = step(state, LocalTriggered()).state

        result = step(state, SuppressionExpired(1))

        assert result.state is state
        assert result.state.suppressed is True

    def test_expiry_when_not_suppressed_is_noop(self):
        state = step(ReconcilerState(), LocationChanged(DANGER)).state

        assert step(state, SuppressionExpired(0)).state is state


class TestFeed:
    """Tests for remote feed handling."""

    def test_remote_event_raises_event(self):
        state = step(ReconcilerState(), LocationChanged(SAFE)).state

        result = step(state, FeedUpdated(active_feed()))

        assert result.state.alert == EVENT_ALERT
        assert result.state.suppressed is True
        assert result.state.acknowledged_event == ("id", "e1")
        assert result.effects == (StartDisplayTimer(1),)

    def test_redelivery_is_idempotent(self):
        state = step(ReconcilerState(), FeedUpdated(active_feed())).state

        result = step(state, FeedUpdated(active_feed()))

        assert result.state.window_generation == state.window_generation
        assert result.effects == ()

    def test_redelivery_after_expiry_does_not_refire(self):
        state = step(ReconcilerState(), LocationChanged(SAFE)).state
        state = step(state, FeedUpdated(active_feed())).state
        state = step(state, SuppressionExpired(state.window_generation)).state
        assert state.alert == NO_ALERT

        result = step(state, FeedUpdated(active_feed()))

        assert result.state.alert == NO_ALERT
        assert result.effects == ()

    def test_new_event_fires_after_expiry(self):
        state = step(ReconcilerState(), LocationChanged(SAFE)).state
        state = step(state, FeedUpdated(active_feed("e1"))).state
        state = step(state, SuppressionExpired(state.window_generation)).state

        result = step(state, FeedUpdated(active_feed("e2")))

        assert result.state.alert == EVENT_ALERT
        assert result.effects == (StartDisplayTimer(2),)

    def test_active_feed_while_suppressed_is_acknowledged(self):
        state = suppressed_event_state()

        result = step(state, FeedUpdated(active_feed("own-write")))

        assert result.effects == ()
        assert result.state.window_generation == state.window_generation
        assert result.state.acknowledged_event == ("id", "own-write")

    def test_inactive_feed_keeps_suppressed_event(self):
        state = suppressed_event_state()

        state = step(state, FeedUpdated(stale_feed())).state

        assert state.alert == EVENT_ALERT

    def test_inactive_feed_reverts_unsuppressed_event(self):
        state = ReconcilerState(alert=EVENT_ALERT, suppressed=False, location=DANGER)

        state = step(state, FeedUpdated(EMPTY_FEED)).state

        assert state.alert.kind == AlertKind.HAZARD

    def test_feed_failure_sets_error(self):
        state = step(ReconcilerState(), LocationChanged(DANGER)).state

        state = step(state, FeedFailed("Failed to listen for alerts.")).state

        assert state.error == "Failed to listen for alerts."
        assert state.alert.kind == AlertKind.HAZARD

    def test_feed_failure_keeps_local_event(self):
        state = suppressed_event_state()

        state = step(state, FeedFailed("Failed to listen for alerts.")).state

        assert state.alert == EVENT_ALERT
        assert state.suppressed is True
        assert state.error == "Failed to listen for alerts."


class TestWriteFailed:
    def test_collapses_suppression_and_hides_notification(self):
        state = suppressed_event_state()

        result = step(state, WriteFailed("Failed to simulate gunshot event."))

        assert result.state.alert == NO_ALERT
        assert result.state.suppressed is False
        assert result.state.notification_visible is False
        assert result.state.error == "Failed to simulate gunshot event."
        assert result.effects == (CancelDisplayTimer(), CancelNotificationTimer())

    def test_reverts_to_hazard_at_hazardous_location(self):
        state = suppressed_event_state(DANGER)

        state = step(state, WriteFailed("Failed to simulate gunshot event.")).state

        assert state.alert.kind == AlertKind.HAZARD
        assert state.suppressed is False

    def test_pending_expiries_become_stale(self):
        state = suppressed_event_state()
        state = step(state, WriteFailed("boom")).state

        assert step(state, SuppressionExpired(1)).state is state
        assert step(state, NotificationExpired(1)).state is state


class TestManualOverride:
    """Tests for manual location selection."""

    def test_override_during_event_recomputes_alert(self):
        state = suppressed_event_state()

        result = step(state, ManualOverride(MANUAL_FLAGGED))

        assert result.state.alert.kind == AlertKind.HAZARD
        assert result.state.suppressed is False
        assert result.state.location == MANUAL_FLAGGED
        assert result.effects == (CancelDisplayTimer(),)

    def test_override_to_safe_site_clears(self):
        state = step(ReconcilerState(), LocationChanged(DANGER)).state

        state = step(state, ManualOverride(MANUAL_SAFE)).state

        assert state.alert == NO_ALERT
        assert state.error is None

    def test_override_acknowledges_active_feed(self):
        state = step(ReconcilerState(), FeedUpdated(active_feed())).state

        state = step(state, ManualOverride(MANUAL_SAFE, feed=active_feed())).state
        result = step(state, FeedUpdated(active_feed()))

        assert result.state.alert == NO_ALERT
        assert result.effects == ()

    def test_old_window_expiry_ignored_after_override(self):
        state = suppressed_event_state()
        state = step(state, ManualOverride(MANUAL_FLAGGED)).state

        result = step(state, SuppressionExpired(1))

        assert result.state is state


class TestNotification:
    def test_expiry_hides_notification(self):
        state = suppressed_event_state()

        state = step(state, NotificationExpired(state.notification_generation)).state

        assert state.notification_visible is False
        # Alert is independent of the side notification
        assert state.alert == EVENT_ALERT

    def test_stale_expiry_ignored(self):
        state = suppressed_event_state()
        state = step(state, LocalTriggered()).state

        state = step(state, NotificationExpired(1)).state

        assert state.notification_visible is True


def test_unknown_trigger_raises():
    with pytest.raises(TypeError):
        reconcile(ReconcilerState(), object(), CATALOG)
