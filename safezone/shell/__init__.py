"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Device location lookup (HTTP)
- Firestore event store (database, real-time feed)
- In-memory event store (offline runs)
- Configuration loading (environment/files, Secret Manager)

Keep this layer thin and simple. All business logic should be in core.
"""

from safezone.shell.location_client import IPGeolocationClient, create_location_provider
from safezone.shell.firestore_client import FirestoreEventStore
from safezone.shell.memory_store import InMemoryEventStore
from safezone.shell.config_loader import load_config, Config

__all__ = [
    "IPGeolocationClient",
    "create_location_provider",
    "FirestoreEventStore",
    "InMemoryEventStore",
    "load_config",
    "Config",
]
