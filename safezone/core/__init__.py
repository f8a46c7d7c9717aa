"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Distance calculations
- Hazard catalog and proximity classification
- Location resolution
- Event feed classification
- Alert reconciliation

All functions here are deterministic and have no I/O.
"""

from safezone.core.geo import Coordinate, calculate_distance, is_within_radius
from safezone.core.catalog import HazardCatalog, HazardSite, ProximityResult, classify_point
from safezone.core.location import Provenance, ResolvedLocation, ResolverState
from safezone.core.feed import FeedClassification, RemoteEvent, classify_event, parse_event
from safezone.core.reconciler import AlertKind, AlertState, ReconcilerState, reconcile

__all__ = [
    # Geo
    "Coordinate",
    "calculate_distance",
    "is_within_radius",
    # Catalog
    "HazardCatalog",
    "HazardSite",
    "ProximityResult",
    "classify_point",
    # Location
    "Provenance",
    "ResolvedLocation",
    "ResolverState",
    # Feed
    "FeedClassification",
    "RemoteEvent",
    "classify_event",
    "parse_event",
    # Reconciler
    "AlertKind",
    "AlertState",
    "ReconcilerState",
    "reconcile",
]
