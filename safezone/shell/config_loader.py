"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, LocationProviderConfig) are defined in
safezone/core/config.py.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from safezone.core.catalog import HazardSite
from safezone.core.config import (
    DEFAULT_EVENTS_COLLECTION,
    Config,
    LocationProviderConfig,
    validate_config,
)
from safezone.core.geo import Coordinate
from safezone.shell.secret_manager_client import SecretManagerClient, SecretManagerConfig


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "config/config.yaml"


def _get_secret_manager_client() -> SecretManagerClient | None:
    """Create a Secret Manager client when a GCP project is known.

    Returns None if GCP_PROJECT is not set (e.g., local development).
    """
    project_id = os.environ.get("GCP_PROJECT")
    if project_id:
        return SecretManagerClient(SecretManagerConfig(project_id=project_id))
    return None


def _resolve_value(value: Any, secret_client: SecretManagerClient | None = None) -> Any:
    """Resolve a value that may contain secret or env var placeholders.

    Args:
        value: Value to resolve (may contain ${...} placeholders)
        secret_client: Client for resolving secrets

    Returns:
        Resolved value
    """
    if not isinstance(value, str):
        return value

    if secret_client:
        return secret_client.resolve(value)

    # No secret client - only handle env vars
    if value.startswith("${") and value.endswith("}"):
        var_spec = value[2:-1]
        if not var_spec.startswith("secret:"):
            env_value = os.environ.get(var_spec)
            if env_value:
                return env_value
            logger.warning("Environment variable %s not set", var_spec)

    return value


def _parse_site(data: dict[str, Any]) -> HazardSite:
    """Parse a hazard catalog entry from config data."""
    return HazardSite(
        name=str(data["name"]),
        coordinate=Coordinate(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
        ),
        is_hazardous=bool(data.get("is_hazardous", False)),
    )


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


def _parse_location_provider(
    data: dict[str, Any],
    secret_client: SecretManagerClient | None = None,
) -> LocationProviderConfig:
    """Parse location provider settings from config data."""
    defaults = LocationProviderConfig()
    token = data.get("token")
    if token is not None:
        token = _resolve_value(token, secret_client)

    return LocationProviderConfig(
        type=data.get("type", defaults.type),
        url=_resolve_value(data.get("url", defaults.url), secret_client),
        token=token,
        timeout_seconds=float(data.get("timeout_seconds", defaults.timeout_seconds)),
        latitude=_optional_float(data.get("latitude")),
        longitude=_optional_float(data.get("longitude")),
        permission_granted=bool(data.get("permission_granted", True)),
    )


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only placeholder expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    secret_client = _get_secret_manager_client()
    defaults = Config()

    sites = defaults.hazard_sites
    if "hazard_sites" in data:
        sites = [_parse_site(s) for s in data.get("hazard_sites") or []]

    return Config(
        hazard_sites=sites,
        proximity_radius_m=float(data.get("proximity_radius_m", defaults.proximity_radius_m)),
        event_radius_m=float(data.get("event_radius_m", defaults.event_radius_m)),
        recency_window_ms=int(data.get("recency_window_ms", defaults.recency_window_ms)),
        display_window_ms=int(data.get("display_window_ms", defaults.display_window_ms)),
        side_notification_ms=int(data.get("side_notification_ms", defaults.side_notification_ms)),
        event_store=data.get("event_store", defaults.event_store),
        firestore_project=data.get("firestore_project"),
        firestore_database=data.get("firestore_database"),
        firestore_collection=data.get("firestore_collection", DEFAULT_EVENTS_COLLECTION),
        location_provider=_parse_location_provider(
            data.get("location_provider") or {},
            secret_client,
        ),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)

    result = validate_config(config)
    for problem in result.errors:
        log = logger.error if problem.severity == "error" else logger.warning
        log("Config %s: %s", problem.field, problem.message)

    logger.info(
        "Loaded config: %d sites (%d hazardous), store=%s, provider=%s",
        len(config.hazard_sites),
        sum(1 for s in config.hazard_sites if s.is_hazardous),
        config.event_store,
        config.location_provider.type,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file. The default
    hazard catalog is used.

    Environment variables:
        EVENT_STORE: 'firestore' or 'memory'
        FIRESTORE_DATABASE: Firestore database name
        FIRESTORE_COLLECTION: Collection holding reported events
        LOCATION_PROVIDER: 'ip', 'static' or 'disabled'
        LOCATION_URL: IP geolocation endpoint
        LOCATION_TOKEN: IP geolocation API token
        STATIC_LOCATION: 'lat,lng' for the static provider
        PROXIMITY_RADIUS_M, EVENT_RADIUS_M, RECENCY_WINDOW_MS, DISPLAY_WINDOW_MS

    Returns:
        Config object from environment
    """
    defaults = Config()
    provider_defaults = LocationProviderConfig()

    latitude = longitude = None
    static_location = os.environ.get("STATIC_LOCATION")
    if static_location:
        parts = [p.strip() for p in static_location.split(",")]
        if len(parts) == 2:
            latitude, longitude = float(parts[0]), float(parts[1])
        else:
            logger.warning("STATIC_LOCATION must be 'lat,lng', got %s", static_location)

    provider = LocationProviderConfig(
        type=os.environ.get("LOCATION_PROVIDER", provider_defaults.type),
        url=os.environ.get("LOCATION_URL", provider_defaults.url),
        token=os.environ.get("LOCATION_TOKEN"),
        latitude=latitude,
        longitude=longitude,
    )

    return Config(
        proximity_radius_m=float(os.environ.get("PROXIMITY_RADIUS_M", defaults.proximity_radius_m)),
        event_radius_m=float(os.environ.get("EVENT_RADIUS_M", defaults.event_radius_m)),
        recency_window_ms=int(os.environ.get("RECENCY_WINDOW_MS", defaults.recency_window_ms)),
        display_window_ms=int(os.environ.get("DISPLAY_WINDOW_MS", defaults.display_window_ms)),
        event_store=os.environ.get("EVENT_STORE", defaults.event_store),
        firestore_database=os.environ.get("FIRESTORE_DATABASE"),
        firestore_collection=os.environ.get("FIRESTORE_COLLECTION", DEFAULT_EVENTS_COLLECTION),
        location_provider=provider,
    )
