"""Alert reconciliation state machine - Pure functions.

Combines the location-derived hazard status, the newest feed event and
locally triggered events into a single AlertState.

Every transition is a pure function of (ReconcilerState, trigger, catalog)
and returns the next state plus a tuple of effects. The caller (see
safezone.session) performs the effects: arming and cancelling timers and
writing events to the store.

Precedence: while the suppression flag is set the alert is EVENT. Once it
clears, the alert is exactly what the proximity classifier says about the
current location, until the feed reports a new active event.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from safezone.core.catalog import HazardCatalog, classify_point
from safezone.core.feed import EMPTY_FEED, FeedClassification
from safezone.core.formatter import (
    EVENT_MESSAGE,
    NO_LOCATION_ERROR,
    format_hazard_message,
)
from safezone.core.geo import Coordinate
from safezone.core.location import Provenance, ResolvedLocation


class AlertKind(Enum):
    """Kinds of alert, lowest priority first."""
    NONE = "none"
    HAZARD = "hazard"
    EVENT = "event"


@dataclass(frozen=True)
class AlertState:
    """The single externally visible alert.

    Attributes:
        kind: NONE, HAZARD or EVENT
        message: Banner text (empty for NONE)
    """
    kind: AlertKind = AlertKind.NONE
    message: str = ""


NO_ALERT = AlertState()
EVENT_ALERT = AlertState(AlertKind.EVENT, EVENT_MESSAGE)


@dataclass(frozen=True)
class ReconcilerState:
    """Explicit snapshot the transition function operates on.

    Attributes:
        alert: Currently displayed alert
        suppressed: True while a freshly raised EVENT must not be downgraded
        window_generation: Token of the active display timer; stale expiries
            carry an older token and are ignored
        location: Current resolved location
        feed: Last feed classification
        acknowledged_event: Key of the last event already alerted on
        notification_visible: Side notification visibility
        notification_generation: Token of the side notification timer
        error: User-visible error message
    """
    alert: AlertState = NO_ALERT
    suppressed: bool = False
    window_generation: int = 0
    location: ResolvedLocation | None = None
    feed: FeedClassification = EMPTY_FEED
    acknowledged_event: tuple | None = None
    notification_visible: bool = False
    notification_generation: int = 0
    error: str | None = None


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LocationChanged:
    """Device fix arrived or device fetch failed."""
    location: ResolvedLocation | None
    feed: FeedClassification = EMPTY_FEED
    error: str | None = None


@dataclass(frozen=True)
class ManualOverride:
    """User picked a catalog site."""
    location: ResolvedLocation
    feed: FeedClassification = EMPTY_FEED


@dataclass(frozen=True)
class FeedUpdated:
    """Feed delivered a snapshot (classified against the current location)."""
    feed: FeedClassification


@dataclass(frozen=True)
class FeedFailed:
    message: str


@dataclass(frozen=True)
class LocalTriggered:
    """User simulated an event at the current location."""


@dataclass(frozen=True)
class WriteFailed:
    message: str


@dataclass(frozen=True)
class SuppressionExpired:
    generation: int


@dataclass(frozen=True)
class NotificationExpired:
    generation: int


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StartDisplayTimer:
    generation: int


@dataclass(frozen=True)
class CancelDisplayTimer:
    pass


@dataclass(frozen=True)
class StartNotificationTimer:
    generation: int


@dataclass(frozen=True)
class CancelNotificationTimer:
    pass


@dataclass(frozen=True)
class AppendEvent:
    coordinate: Coordinate


@dataclass(frozen=True)
class Transition:
    """Result of applying one trigger."""
    state: ReconcilerState
    effects: tuple = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Transition function
# ---------------------------------------------------------------------------

def location_alert(
    location: ResolvedLocation | None,
    catalog: HazardCatalog,
) -> AlertState:
    """Alert implied by the location alone (HAZARD or NONE).

    Pure function.
    """
    if location is None:
        return NO_ALERT

    site_name = location.name if location.provenance == Provenance.MANUAL else None
    result = classify_point(location.coordinate, catalog, site_name=site_name)

    if not result.is_hazard:
        return NO_ALERT
    return AlertState(AlertKind.HAZARD, format_hazard_message(location, result))


def _raise_event(
    state: ReconcilerState,
    acknowledged: tuple | None,
) -> tuple[ReconcilerState, tuple]:
    generation = state.window_generation + 1
    new_state = replace(
        state,
        alert=EVENT_ALERT,
        suppressed=True,
        window_generation=generation,
        acknowledged_event=acknowledged,
    )
    return new_state, (StartDisplayTimer(generation),)


def _apply_feed(
    state: ReconcilerState,
    feed: FeedClassification,
    catalog: HazardCatalog,
) -> tuple[ReconcilerState, tuple]:
    state = replace(state, feed=feed)

    if feed.is_active_event:
        key = feed.event.key
        if state.suppressed or state.alert.kind == AlertKind.EVENT:
            return replace(state, acknowledged_event=key), ()
        if key == state.acknowledged_event:
            return state, ()
        return _raise_event(state, acknowledged=key)

    if state.alert.kind == AlertKind.EVENT and not state.suppressed:
        return replace(state, alert=location_alert(state.location, catalog)), ()

    return state, ()


def reconcile(
    state: ReconcilerState,
    trigger: object,
    catalog: HazardCatalog,
) -> Transition:
    """Apply one trigger to the reconciler state.

    Pure function.

    Args:
        state: Current snapshot
        trigger: One of the trigger dataclasses above
        catalog: Hazard catalog used for location-derived alerts

    Returns:
        Transition with the next state and effects to perform

    Raises:
        TypeError: If the trigger type is unknown
    """
    if isinstance(trigger, FeedUpdated):
        new_state, effects = _apply_feed(state, trigger.feed, catalog)
        return Transition(new_state, effects)

    if isinstance(trigger, LocationChanged):
        new_state = replace(
            state,
            location=trigger.location,
            error=trigger.error or state.error,
        )
        if not new_state.suppressed:
            new_state = replace(
                new_state,
                alert=location_alert(trigger.location, catalog),
            )
        new_state, effects = _apply_feed(new_state, trigger.feed, catalog)
        return Transition(new_state, effects)

    if isinstance(trigger, ManualOverride):
        feed = trigger.feed
        acknowledged = feed.event.key if feed.is_active_event else state.acknowledged_event
        new_state = replace(
            state,
            alert=location_alert(trigger.location, catalog),
            suppressed=False,
            window_generation=state.window_generation + 1,
            location=trigger.location,
            feed=feed,
            acknowledged_event=acknowledged,
            error=None,
        )
        return Transition(new_state, (CancelDisplayTimer(),))

    if isinstance(trigger, LocalTriggered):
        if state.location is None:
            return Transition(replace(state, error=NO_LOCATION_ERROR))

        feed = state.feed
        acknowledged = feed.event.key if feed.is_active_event else state.acknowledged_event
        new_state, effects = _raise_event(state, acknowledged)
        notification_generation = state.notification_generation + 1
        new_state = replace(
            new_state,
            notification_visible=True,
            notification_generation=notification_generation,
            error=None,
        )
        effects = effects + (
            AppendEvent(state.location.coordinate),
            StartNotificationTimer(notification_generation),
        )
        return Transition(new_state, effects)

    if isinstance(trigger, WriteFailed):
        # Suppression collapses and the alert falls back to the location
        new_state = replace(
            state,
            alert=location_alert(state.location, catalog),
            suppressed=False,
            window_generation=state.window_generation + 1,
            notification_visible=False,
            notification_generation=state.notification_generation + 1,
            error=trigger.message,
        )
        return Transition(new_state, (CancelDisplayTimer(), CancelNotificationTimer()))

    if isinstance(trigger, SuppressionExpired):
        if not state.suppressed or trigger.generation != state.window_generation:
            return Transition(state)
        new_state = replace(
            state,
            suppressed=False,
            alert=location_alert(state.location, catalog),
        )
        return Transition(new_state)

    if isinstance(trigger, NotificationExpired):
        if trigger.generation != state.notification_generation:
            return Transition(state)
        return Transition(replace(state, notification_visible=False))

    if isinstance(trigger, FeedFailed):
        return Transition(replace(state, error=trigger.message))

    raise TypeError(f"Unknown trigger: {trigger!r}")
