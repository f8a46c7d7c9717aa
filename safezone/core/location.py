"""Location resolution - Pure functions.

Merges one-shot device fixes and manual overrides into a single
authoritative location with provenance. The async driver lives in
safezone.session; every transition here returns a new ResolverState.
"""

from dataclasses import dataclass, replace
from enum import Enum

from safezone.core.catalog import HazardSite
from safezone.core.geo import Coordinate


class Provenance(Enum):
    """Where the current location came from."""
    DEVICE = "device"
    MANUAL = "manual"


class ResolverStatus(Enum):
    """Lifecycle of the location resolver."""
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


class LocationErrorCode(Enum):
    """Device location failure reasons."""
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


LOCATION_ERROR_MESSAGES: dict[LocationErrorCode, str] = {
    LocationErrorCode.PERMISSION_DENIED: "User denied the request for Geolocation.",
    LocationErrorCode.POSITION_UNAVAILABLE: "Location information is unavailable.",
    LocationErrorCode.TIMEOUT: "The request to get user location timed out.",
    LocationErrorCode.UNSUPPORTED: "Geolocation is not supported by your environment.",
    LocationErrorCode.UNKNOWN: "An unknown error occurred while retrieving location.",
}


@dataclass(frozen=True)
class ResolvedLocation:
    """Authoritative user location.

    Attributes:
        coordinate: Where the user is
        provenance: DEVICE or MANUAL
        name: Catalog site name, only set for MANUAL selections
    """
    coordinate: Coordinate
    provenance: Provenance
    name: str | None = None


@dataclass(frozen=True)
class ResolverState:
    """Snapshot of the location resolver.

    Attributes:
        status: Current lifecycle state
        location: Current resolved location, if any
        error: Message from the last device failure
        manual_selected: True once any manual selection was made
    """
    status: ResolverStatus = ResolverStatus.UNRESOLVED
    location: ResolvedLocation | None = None
    error: str | None = None
    manual_selected: bool = False

    @property
    def is_loading(self) -> bool:
        return self.status == ResolverStatus.RESOLVING

    @property
    def provenance(self) -> Provenance | None:
        return self.location.provenance if self.location else None


def should_fetch_device_location(state: ResolverState) -> bool:
    """Device location is fetched once, and only before any manual choice.

    Pure function.
    """
    return state.status == ResolverStatus.UNRESOLVED and not state.manual_selected


def begin_device_fetch(state: ResolverState) -> ResolverState:
    """Transition UNRESOLVED -> RESOLVING.

    Pure function.
    """
    if not should_fetch_device_location(state):
        return state
    return replace(state, status=ResolverStatus.RESOLVING, error=None)


def apply_device_fix(
    state: ResolverState,
    coordinate: Coordinate,
) -> tuple[ResolverState, bool]:
    """Apply a successful device fix.

    Pure function.

    Returns:
        (new state, applied). A fix that arrives after a manual selection
        is discarded and applied is False.
    """
    if state.manual_selected:
        return state, False

    return ResolverState(
        status=ResolverStatus.RESOLVED,
        location=ResolvedLocation(coordinate, Provenance.DEVICE),
    ), True


def apply_device_failure(
    state: ResolverState,
    code: LocationErrorCode,
    message: str | None = None,
) -> tuple[ResolverState, bool]:
    """Apply a failed device fetch.

    Pure function.

    Returns:
        (new state, applied). Failures after a manual selection are discarded.
    """
    if state.manual_selected:
        return state, False

    return ResolverState(
        status=ResolverStatus.FAILED,
        location=state.location,
        error=message or LOCATION_ERROR_MESSAGES[code],
    ), True


def apply_manual_selection(state: ResolverState, site: HazardSite) -> ResolverState:
    """Select a catalog site as the current location.

    Pure function. Always wins over any in-flight device fetch.
    """
    return ResolverState(
        status=ResolverStatus.RESOLVED,
        location=ResolvedLocation(site.coordinate, Provenance.MANUAL, site.name),
        error=None,
        manual_selected=True,
    )
