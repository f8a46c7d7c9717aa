"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from safezone.core.catalog import (
    DEFAULT_HAZARD_SITES,
    DEFAULT_PROXIMITY_RADIUS_M,
    HazardCatalog,
    HazardSite,
)
from safezone.core.feed import DEFAULT_EVENT_RADIUS_M, DEFAULT_RECENCY_WINDOW_MS


DEFAULT_DISPLAY_WINDOW_MS = 10_000
DEFAULT_SIDE_NOTIFICATION_MS = 5_000
DEFAULT_EVENTS_COLLECTION = "gunshotEvents"
DEFAULT_IP_LOCATION_URL = "https://ipapi.co/json/"

PROVIDER_TYPES = ("ip", "static", "disabled")
EVENT_STORE_TYPES = ("firestore", "memory")


@dataclass
class LocationProviderConfig:
    """Device location provider settings.

    Attributes:
        type: 'ip' (HTTP IP geolocation), 'static' or 'disabled'
        url: Geolocation endpoint for the 'ip' provider
        token: Optional API token for the endpoint
        timeout_seconds: Request timeout
        latitude: Fixed latitude for the 'static' provider
        longitude: Fixed longitude for the 'static' provider
        permission_granted: False makes every fetch fail as permission-denied
    """
    type: str = "ip"
    url: str = DEFAULT_IP_LOCATION_URL
    token: str | None = None
    timeout_seconds: float = 10.0
    latitude: float | None = None
    longitude: float | None = None
    permission_granted: bool = True


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        hazard_sites: Ordered hazard catalog entries
        proximity_radius_m: Radius around hazardous sites
        event_radius_m: Radius for remote events to count as nearby
        recency_window_ms: Age after which remote events are ignored
        display_window_ms: How long an EVENT alert is held
        side_notification_ms: How long the side notification stays visible
        event_store: 'firestore' or 'memory'
        firestore_project: GCP project ID (None for default)
        firestore_database: Firestore database name (None for default)
        firestore_collection: Collection holding reported events
        location_provider: Device location provider settings
    """
    hazard_sites: list[HazardSite] = field(
        default_factory=lambda: list(DEFAULT_HAZARD_SITES)
    )
    proximity_radius_m: float = DEFAULT_PROXIMITY_RADIUS_M
    event_radius_m: float = DEFAULT_EVENT_RADIUS_M
    recency_window_ms: int = DEFAULT_RECENCY_WINDOW_MS
    display_window_ms: int = DEFAULT_DISPLAY_WINDOW_MS
    side_notification_ms: int = DEFAULT_SIDE_NOTIFICATION_MS
    event_store: str = "firestore"
    firestore_project: str | None = None
    firestore_database: str | None = None
    firestore_collection: str = DEFAULT_EVENTS_COLLECTION
    location_provider: LocationProviderConfig = field(
        default_factory=LocationProviderConfig
    )

    def build_catalog(self) -> HazardCatalog:
        """Create the read-only catalog described by this config."""
        return HazardCatalog(self.hazard_sites, self.proximity_radius_m)


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_coordinates(lat: float, lon: float, field_name: str) -> list[ValidationError]:
    """Validate latitude/longitude coordinates.

    Pure function.

    Args:
        lat: Latitude value
        lon: Longitude value
        field_name: Name of the field for error messages

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not -90 <= lat <= 90:
        errors.append(ValidationError(
            field=field_name,
            message=f"Latitude {lat} out of range [-90, 90]",
        ))

    if not -180 <= lon <= 180:
        errors.append(ValidationError(
            field=field_name,
            message=f"Longitude {lon} out of range [-180, 180]",
        ))

    return errors


def _validate_positive(value: float, field_name: str) -> list[ValidationError]:
    if value <= 0:
        return [ValidationError(
            field=field_name,
            message=f"Must be positive, got {value}",
        )]
    return []


def validate_provider(provider: LocationProviderConfig) -> list[ValidationError]:
    """Validate location provider settings.

    Pure function.
    """
    errors = []

    if provider.type not in PROVIDER_TYPES:
        errors.append(ValidationError(
            field="location_provider.type",
            message=f"Unknown provider type '{provider.type}', expected one of {PROVIDER_TYPES}",
        ))

    if provider.type == "static":
        if provider.latitude is None or provider.longitude is None:
            errors.append(ValidationError(
                field="location_provider",
                message="Static provider requires latitude and longitude",
            ))
        else:
            errors.extend(validate_coordinates(
                provider.latitude, provider.longitude, "location_provider",
            ))

    if provider.type == "ip":
        errors.extend(_validate_positive(provider.timeout_seconds, "location_provider.timeout_seconds"))
        if provider.token and provider.token.startswith("${"):
            errors.append(ValidationError(
                field="location_provider.token",
                message="Token not resolved (still contains placeholder)",
                severity="warning",
            ))

    return errors


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    seen: set[str] = set()
    for i, site in enumerate(config.hazard_sites):
        errors.extend(validate_coordinates(
            site.coordinate.latitude,
            site.coordinate.longitude,
            f"hazard_sites[{i}]",
        ))
        if site.name in seen:
            errors.append(ValidationError(
                field=f"hazard_sites[{i}].name",
                message=f"Duplicate site name '{site.name}'",
            ))
        seen.add(site.name)

    if not any(site.is_hazardous for site in config.hazard_sites):
        errors.append(ValidationError(
            field="hazard_sites",
            message="No hazardous sites configured",
            severity="warning",
        ))

    errors.extend(_validate_positive(config.proximity_radius_m, "proximity_radius_m"))
    errors.extend(_validate_positive(config.event_radius_m, "event_radius_m"))
    errors.extend(_validate_positive(config.recency_window_ms, "recency_window_ms"))
    errors.extend(_validate_positive(config.display_window_ms, "display_window_ms"))
    errors.extend(_validate_positive(config.side_notification_ms, "side_notification_ms"))

    if config.event_store not in EVENT_STORE_TYPES:
        errors.append(ValidationError(
            field="event_store",
            message=f"Unknown event store '{config.event_store}', expected one of {EVENT_STORE_TYPES}",
        ))

    errors.extend(validate_provider(config.location_provider))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
