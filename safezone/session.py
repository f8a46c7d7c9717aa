"""Alert Session - Wires Functional Core and Imperative Shell.

This module drives the pure location resolver, feed classifier and alert
reconciler from asynchronous inputs: the one-shot device location fetch,
pushes from the event feed, and user actions. It owns the timers and the
feed subscription and performs the effects the reconciler asks for.

Everything runs on a single asyncio event loop. Blocking I/O (device
fetch, event append) runs in worker threads and its completion is queued
back onto the loop; feed callbacks arrive from store threads and are
marshalled with call_soon_threadsafe. Transitions are therefore applied
one at a time, in delivery order.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from safezone.core.catalog import HazardCatalog, HazardSite
from safezone.core.config import Config
from safezone.core.feed import FeedClassification, RemoteEvent, classify_event, latest_event
from safezone.core.formatter import (
    FEED_FAILED_ERROR,
    SIDE_NOTIFICATION_MESSAGE,
    SIDE_NOTIFICATION_TITLE,
    WRITE_FAILED_ERROR,
    format_location_display,
)
from safezone.core.geo import Coordinate
from safezone.core.location import (
    LocationErrorCode,
    Provenance,
    ResolvedLocation,
    ResolverState,
    apply_device_failure,
    apply_device_fix,
    apply_manual_selection,
    begin_device_fetch,
    should_fetch_device_location,
)
from safezone.core.reconciler import (
    AlertState,
    AppendEvent,
    CancelDisplayTimer,
    CancelNotificationTimer,
    FeedFailed,
    FeedUpdated,
    LocalTriggered,
    LocationChanged,
    ManualOverride,
    NotificationExpired,
    ReconcilerState,
    StartDisplayTimer,
    StartNotificationTimer,
    SuppressionExpired,
    Transition,
    WriteFailed,
    reconcile,
)
from safezone.shell.event_store import AppendResult, EventStore, Subscription
from safezone.shell.firestore_client import FirestoreConfig, FirestoreEventStore
from safezone.shell.location_client import LocationFix, LocationProvider, create_location_provider
from safezone.shell.memory_store import InMemoryEventStore


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionView:
    """Everything the presentation layer needs to render.

    Attributes:
        alert: Current alert
        is_loading: True while the device location is being fetched
        error: User-visible error message
        current_location: Resolved location, if any
        current_location_display: Short provenance label
        locations: Selectable catalog sites
        side_notification_visible: Transient side notification visibility
        suppressed: True while an EVENT alert is being held
        side_notification_title: Notification heading, only while visible
        side_notification_message: Notification body, only while visible
    """
    alert: AlertState
    is_loading: bool
    error: str | None
    current_location: ResolvedLocation | None
    current_location_display: str
    locations: tuple[HazardSite, ...]
    side_notification_visible: bool
    suppressed: bool
    side_notification_title: str | None = None
    side_notification_message: str | None = None

    @property
    def selected_location_name(self) -> str | None:
        if self.current_location and self.current_location.provenance == Provenance.MANUAL:
            return self.current_location.name
        return None


Listener = Callable[[SessionView], None]


class AlertSession:
    """Coordinates location, feed and alert state for one user.

    This class wires together:
    - Location provider (one-shot device fetch)
    - Event store (append + live "latest event" feed)
    - Core functions (resolution, classification, reconciliation)
    """

    def __init__(
        self,
        config: Config,
        event_store: EventStore,
        location_provider: LocationProvider,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the session.

        Args:
            config: Application configuration
            event_store: Store used for appends and the live feed
            location_provider: One-shot device location source
            clock: Returns the current UTC time (injectable for tests)
        """
        self.config = config
        self.catalog: HazardCatalog = config.build_catalog()
        self.event_store = event_store
        self.location_provider = location_provider
        self._clock = clock

        self._resolver = ResolverState()
        self._state = ReconcilerState()
        self._events: list[RemoteEvent] = []

        self._loop: asyncio.AbstractEventLoop | None = None
        self._subscription: Subscription | None = None
        self._fetch_task: asyncio.Task | None = None
        self._write_tasks: set[asyncio.Task] = set()
        self._display_timer: asyncio.TimerHandle | None = None
        self._notification_timer: asyncio.TimerHandle | None = None
        self._listeners: list[Listener] = []
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to the feed and kick off the device location fetch."""
        if self._started:
            return
        self._started = True
        self._loop = asyncio.get_running_loop()

        self._subscription = self.event_store.subscribe(
            self._on_feed_events,
            self._on_feed_error,
            limit=1,
        )

        if should_fetch_device_location(self._resolver):
            self._resolver = begin_device_fetch(self._resolver)
            self._fetch_task = asyncio.create_task(self._fetch_device_location())

        self._notify()

    async def close(self) -> None:
        """Tear down timers, the pending fetch and the feed subscription."""
        if self._closed:
            return
        self._closed = True

        self._cancel_display_timer()
        self._cancel_notification_timer()

        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        pending = [t for t in (self._fetch_task, *self._write_tasks) if t and not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        self._listeners.clear()
        logger.info("Alert session closed")

    async def __aenter__(self) -> "AlertSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def select_location(self, name: str) -> HazardSite:
        """Manually select a catalog site as the current location.

        Args:
            name: Catalog site name

        Returns:
            The selected site

        Raises:
            KeyError: If no site has that name
        """
        site = self.catalog.get(name)
        if site is None:
            raise KeyError(f"Unknown location: {name}")

        if self._fetch_task is not None and not self._fetch_task.done():
            logger.info("Manual selection overrides pending device fetch")
            self._fetch_task.cancel()

        self._resolver = apply_manual_selection(self._resolver, site)
        location = self._resolver.location
        self._dispatch(ManualOverride(location, self._classify_feed(location)))
        return site

    def simulate_event(self) -> bool:
        """Raise a local event at the current location and report it.

        Returns:
            True if the event was raised, False if no location is resolved
        """
        transition = self._dispatch(LocalTriggered())
        return transition is not None and any(
            isinstance(effect, AppendEvent) for effect in transition.effects
        )

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a callback invoked with the new view after every change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def view(self) -> SessionView:
        """Snapshot of the presentation contract."""
        visible = self._state.notification_visible
        return SessionView(
            alert=self._state.alert,
            is_loading=self._resolver.is_loading,
            error=self._state.error,
            current_location=self._resolver.location,
            current_location_display=format_location_display(self._resolver),
            locations=self.catalog.sites,
            side_notification_visible=visible,
            suppressed=self._state.suppressed,
            side_notification_title=SIDE_NOTIFICATION_TITLE if visible else None,
            side_notification_message=SIDE_NOTIFICATION_MESSAGE if visible else None,
        )

    @property
    def alert(self) -> AlertState:
        return self._state.alert

    @property
    def state(self) -> ReconcilerState:
        return self._state

    @property
    def current_location(self) -> ResolvedLocation | None:
        return self._resolver.location

    @property
    def provenance(self) -> Provenance | None:
        return self._resolver.provenance

    @property
    def is_loading(self) -> bool:
        return self._resolver.is_loading

    @property
    def last_error(self) -> str | None:
        return self._resolver.error

    # ------------------------------------------------------------------
    # Device location
    # ------------------------------------------------------------------

    async def _fetch_device_location(self) -> None:
        try:
            fix = await asyncio.to_thread(self.location_provider.fetch)
        except Exception:
            logger.exception("Location provider raised")
            fix = LocationFix.failed(LocationErrorCode.UNKNOWN)
        self._apply_device_fix(fix)

    def _apply_device_fix(self, fix: LocationFix) -> None:
        if self._closed:
            return

        if fix.success and fix.coordinate is not None:
            resolver, applied = apply_device_fix(self._resolver, fix.coordinate)
        else:
            resolver, applied = apply_device_failure(
                self._resolver,
                fix.error_code or LocationErrorCode.UNKNOWN,
                fix.error,
            )

        if not applied:
            logger.info("Discarding device location result after manual selection")
            return

        self._resolver = resolver
        if resolver.error:
            logger.warning("Device location failed: %s", resolver.error)

        location = resolver.location
        self._dispatch(LocationChanged(
            location=location,
            feed=self._classify_feed(location),
            error=resolver.error,
        ))

    # ------------------------------------------------------------------
    # Event feed
    # ------------------------------------------------------------------

    def _classify_feed(self, location: ResolvedLocation | None) -> FeedClassification:
        return classify_event(
            latest_event(self._events),
            location.coordinate if location else None,
            self._clock(),
            recency_window_ms=self.config.recency_window_ms,
            event_radius_m=self.config.event_radius_m,
        )

    def _call_on_loop(self, callback: Callable, *args) -> None:
        if self._closed or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            # Loop already closed
            logger.debug("Dropping feed callback after loop shutdown")

    def _on_feed_events(self, events: list[RemoteEvent]) -> None:
        self._call_on_loop(self._handle_feed_events, events)

    def _on_feed_error(self, error: Exception) -> None:
        self._call_on_loop(self._handle_feed_error, error)

    def _handle_feed_events(self, events: list[RemoteEvent]) -> None:
        if self._closed:
            return
        self._events = list(events)
        self._dispatch(FeedUpdated(self._classify_feed(self._resolver.location)))

    def _handle_feed_error(self, error: Exception) -> None:
        if self._closed:
            return
        logger.error("Event feed error: %s", str(error))
        self._dispatch(FeedFailed(FEED_FAILED_ERROR))

    # ------------------------------------------------------------------
    # Reconciler effects
    # ------------------------------------------------------------------

    def _dispatch(self, trigger: object) -> Transition | None:
        if self._closed:
            return None

        previous = self._state.alert
        transition = reconcile(self._state, trigger, self.catalog)
        self._state = transition.state

        for effect in transition.effects:
            self._perform(effect)

        if self._state.alert != previous:
            logger.info(
                "Alert %s -> %s (%s)",
                previous.kind.value,
                self._state.alert.kind.value,
                type(trigger).__name__,
            )

        self._notify()
        return transition

    def _perform(self, effect: object) -> None:
        if isinstance(effect, StartDisplayTimer):
            self._cancel_display_timer()
            self._display_timer = self._loop.call_later(
                self.config.display_window_ms / 1000,
                self._dispatch,
                SuppressionExpired(effect.generation),
            )
        elif isinstance(effect, CancelDisplayTimer):
            self._cancel_display_timer()
        elif isinstance(effect, StartNotificationTimer):
            self._cancel_notification_timer()
            self._notification_timer = self._loop.call_later(
                self.config.side_notification_ms / 1000,
                self._dispatch,
                NotificationExpired(effect.generation),
            )
        elif isinstance(effect, CancelNotificationTimer):
            self._cancel_notification_timer()
        elif isinstance(effect, AppendEvent):
            task = asyncio.create_task(self._append_event(effect.coordinate))
            self._write_tasks.add(task)
            task.add_done_callback(self._write_tasks.discard)
        else:
            raise TypeError(f"Unknown effect: {effect!r}")

    def _cancel_display_timer(self) -> None:
        if self._display_timer is not None:
            self._display_timer.cancel()
            self._display_timer = None

    def _cancel_notification_timer(self) -> None:
        if self._notification_timer is not None:
            self._notification_timer.cancel()
            self._notification_timer = None

    async def _append_event(self, coordinate: Coordinate) -> None:
        try:
            result = await asyncio.to_thread(self.event_store.append, coordinate)
        except Exception as e:
            logger.exception("Event store raised during append")
            result = AppendResult(success=False, error=str(e))

        if result.success:
            logger.info("Reported event %s", result.event_id)
            return

        logger.error("Failed to report event: %s", result.error)
        self._dispatch(WriteFailed(WRITE_FAILED_ERROR))

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.view()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("Alert listener failed")


def create_event_store(config: Config) -> EventStore:
    """Build the event store described by the configuration.

    Raises:
        ValueError: If the store type is unknown
    """
    if config.event_store == "memory":
        logger.info("Using in-memory event store")
        return InMemoryEventStore()

    if config.event_store != "firestore":
        raise ValueError(f"Unknown event store: {config.event_store}")

    return FirestoreEventStore(
        FirestoreConfig(
            project_id=config.firestore_project,
            database=config.firestore_database,
            collection=config.firestore_collection,
        )
    )


def build_session(config: Config) -> AlertSession:
    """Create a session with the store and provider from the configuration."""
    return AlertSession(
        config,
        event_store=create_event_store(config),
        location_provider=create_location_provider(config.location_provider),
    )
