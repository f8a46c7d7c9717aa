"""Device Location Client - Imperative Shell.

This module provides the one-shot "where am I" lookup. The default
provider asks an IP geolocation endpoint over HTTP; a static provider and
a disabled provider cover fixed installations and environments without
location support.

All I/O is contained here; resolution logic is in safezone.core.location.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

import requests

from safezone.core.config import LocationProviderConfig
from safezone.core.geo import Coordinate
from safezone.core.location import LOCATION_ERROR_MESSAGES, LocationErrorCode


logger = logging.getLogger(__name__)


# Default timeout for location requests (seconds)
DEFAULT_TIMEOUT = 10.0


@dataclass
class LocationFix:
    """Result of a device location request.

    Attributes:
        success: Whether a coordinate was obtained
        coordinate: The coordinate, if successful
        error_code: Failure reason, if failed
        error: Human-readable error message, if failed
    """
    success: bool
    coordinate: Coordinate | None = None
    error_code: LocationErrorCode | None = None
    error: str | None = None

    @classmethod
    def failed(cls, code: LocationErrorCode) -> "LocationFix":
        return cls(success=False, error_code=code, error=LOCATION_ERROR_MESSAGES[code])


class LocationProvider(Protocol):
    """One-shot device location source."""

    def fetch(self) -> LocationFix:
        ...


class IPGeolocationClient:
    """Client resolving the device position via an IP geolocation API.

    This is part of the imperative shell - it handles HTTP I/O.

    The endpoint must return JSON with "latitude"/"longitude" (or
    "lat"/"lon") fields. Cached answers are refused with Cache-Control.
    """

    def __init__(
        self,
        url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize geolocation client.

        Args:
            url: Geolocation endpoint URL
            token: Optional API token, sent as a query parameter
            timeout: Request timeout in seconds
        """
        self.url = url
        self.token = token
        self.timeout = timeout

    def fetch(self) -> LocationFix:
        """Request the current position.

        This method performs HTTP I/O.

        Returns:
            LocationFix describing the coordinate or the failure reason
        """
        params = {"token": self.token} if self.token else None

        try:
            response = requests.get(
                self.url,
                params=params,
                headers={"Cache-Control": "no-cache", "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.Timeout:
            logger.error("Location request timed out after %.1fs", self.timeout)
            return LocationFix.failed(LocationErrorCode.TIMEOUT)
        except requests.RequestException as e:
            logger.error("Location request failed: %s", str(e))
            return LocationFix.failed(LocationErrorCode.POSITION_UNAVAILABLE)

        if response.status_code in (401, 403):
            logger.error("Location request denied: HTTP %d", response.status_code)
            return LocationFix.failed(LocationErrorCode.PERMISSION_DENIED)

        if response.status_code != 200:
            logger.error("Location request failed: HTTP %d", response.status_code)
            return LocationFix.failed(LocationErrorCode.POSITION_UNAVAILABLE)

        try:
            data = response.json()
        except ValueError:
            logger.error("Location response is not valid JSON")
            return LocationFix.failed(LocationErrorCode.UNKNOWN)

        return self._parse(data)

    def _parse(self, data: dict) -> LocationFix:
        if not isinstance(data, dict):
            return LocationFix.failed(LocationErrorCode.UNKNOWN)

        if data.get("error") or data.get("status") == "fail":
            logger.error(
                "Location service reported failure: %s",
                data.get("reason") or data.get("message"),
            )
            return LocationFix.failed(LocationErrorCode.POSITION_UNAVAILABLE)

        lat = data.get("latitude", data.get("lat"))
        lon = data.get("longitude", data.get("lon"))

        try:
            coordinate = Coordinate(latitude=float(lat), longitude=float(lon))
        except (TypeError, ValueError):
            logger.error("Location response missing coordinates")
            return LocationFix.failed(LocationErrorCode.UNKNOWN)

        logger.info(
            "Resolved device location: %.4f, %.4f",
            coordinate.latitude,
            coordinate.longitude,
        )
        return LocationFix(success=True, coordinate=coordinate)


class StaticLocationProvider:
    """Provider that always reports a fixed coordinate."""

    def __init__(self, coordinate: Coordinate) -> None:
        self.coordinate = coordinate

    def fetch(self) -> LocationFix:
        return LocationFix(success=True, coordinate=self.coordinate)


class DisabledLocationProvider:
    """Provider for environments where the device location is off-limits."""

    def __init__(self, code: LocationErrorCode = LocationErrorCode.UNSUPPORTED) -> None:
        self.code = code

    def fetch(self) -> LocationFix:
        logger.warning("Device location unavailable: %s", self.code.value)
        return LocationFix.failed(self.code)


def create_location_provider(config: LocationProviderConfig) -> LocationProvider:
    """Build the provider described by the configuration.

    Args:
        config: Location provider settings

    Returns:
        A LocationProvider
    """
    if not config.permission_granted:
        return DisabledLocationProvider(LocationErrorCode.PERMISSION_DENIED)

    if config.type == "static":
        if config.latitude is None or config.longitude is None:
            return DisabledLocationProvider(LocationErrorCode.POSITION_UNAVAILABLE)
        return StaticLocationProvider(Coordinate(config.latitude, config.longitude))

    if config.type == "ip":
        return IPGeolocationClient(
            url=config.url,
            token=config.token,
            timeout=config.timeout_seconds,
        )

    return DisabledLocationProvider(LocationErrorCode.UNSUPPORTED)
