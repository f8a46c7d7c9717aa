#!/usr/bin/env python3
"""Report a simulated gunshot event to the shared feed.

This is the write side of the feed: it appends one event to the
configured event store, exactly like the "simulate" button does.

Usage:
    # Report at a catalog site
    python scripts/simulate_event.py --location "Downtown Crossing"

    # Report at an explicit coordinate
    python scripts/simulate_event.py --latitude 34.055 --longitude -118.245

    # List catalog sites
    python scripts/simulate_event.py --list

    # Preview without writing
    python scripts/simulate_event.py --location "Safe Park" --dry-run

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
    GCP_PROJECT: GCP project ID for Secret Manager access
"""

import argparse
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from safezone.core.geo import Coordinate
from safezone.session import create_event_store
from safezone.shell.config_loader import load_config

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Append a simulated event to the event store",
        epilog="This writes to the REAL shared feed. Use --dry-run first.",
    )
    parser.add_argument("--location", type=str, help="Catalog site name")
    parser.add_argument("--latitude", type=float, help="Event latitude")
    parser.add_argument("--longitude", type=float, help="Event longitude")
    parser.add_argument("--config", type=str, help="Path to YAML config")
    parser.add_argument("--list", action="store_true", help="List catalog sites and exit")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be written")
    args = parser.parse_args()

    config = load_config(args.config)
    catalog = config.build_catalog()

    if args.list:
        for i, site in enumerate(catalog.sites, 1):
            flag = "HAZARD" if site.is_hazardous else "safe"
            print(
                f"{i:2}. {site.name:<24} {site.coordinate.latitude:.4f}, "
                f"{site.coordinate.longitude:.4f}  [{flag}]"
            )
        return 0

    if args.location:
        site = catalog.get(args.location)
        if site is None:
            logger.error("Unknown location '%s' (use --list)", args.location)
            return 1
        coordinate = site.coordinate
    elif args.latitude is not None and args.longitude is not None:
        coordinate = Coordinate(args.latitude, args.longitude)
    else:
        parser.error("Provide --location or both --latitude and --longitude")

    print(f"Event at {coordinate.latitude:.5f}, {coordinate.longitude:.5f}")
    print(f"Store: {config.event_store} ({config.firestore_collection})")

    if args.dry_run:
        print("Dry run - nothing written")
        return 0

    result = create_event_store(config).append(coordinate)
    if not result.success:
        logger.error("Failed to append event: %s", result.error)
        return 1

    print(f"Stored event {result.event_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
