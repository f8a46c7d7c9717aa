"""Message formatting - Pure functions.

User-facing strings for alerts, errors and the location badge.
"""

from safezone.core.catalog import HazardReason, ProximityResult
from safezone.core.location import Provenance, ResolvedLocation, ResolverState


EVENT_MESSAGE = "🔫 Gunshot detected nearby! Take cover!"
HAZARD_MESSAGE = "🚨 Entering a high-risk area. Stay alert!"

SIDE_NOTIFICATION_TITLE = "Emergency Alert"
SIDE_NOTIFICATION_MESSAGE = (
    "Your live location has been sent to emergency services. "
    "Help is on the way."
)

NO_LOCATION_ERROR = "Cannot simulate gunshot without a location selected."
WRITE_FAILED_ERROR = "Failed to simulate gunshot event."
FEED_FAILED_ERROR = "Failed to listen for alerts."


def format_hazard_message(location: ResolvedLocation, result: ProximityResult) -> str:
    """Format the banner text for a hazardous location.

    Pure function.

    Manual selections name the chosen site; device fixes use the generic
    "entering" wording.
    """
    if location.provenance == Provenance.MANUAL and location.name:
        if result.reason == HazardReason.FLAGGED:
            return f'🚨 Selected location "{location.name}" is a high-risk area. Stay alert!'
        return f'🚨 Selected location "{location.name}" is near a high-risk area. Stay alert!'
    return HAZARD_MESSAGE


def format_location_display(state: ResolverState) -> str:
    """Short label describing where the current location came from.

    Pure function.
    """
    if state.location is not None:
        if state.location.provenance == Provenance.MANUAL:
            return "Manual Selection"
        return "GPS"
    if state.is_loading:
        return "Determining..."
    return "Unavailable"
