"""Console entry point.

Runs an alert session in the terminal and logs every alert change until
interrupted. Useful for kiosks and for watching the shared feed.
"""

import argparse
import asyncio
import logging
import os
import sys

from safezone.session import AlertSession, SessionView, build_session
from safezone.shell.config_loader import load_config, load_config_from_env


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _get_config(config_path: str | None = None):
    """Load configuration from file or environment."""
    config_path = config_path or os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("EVENT_STORE") or os.environ.get("LOCATION_PROVIDER"):
        # Simple env-based config
        return load_config_from_env()
    else:
        # Try default config path
        return load_config()


def _log_changes(session: AlertSession):
    last = {"view": None}

    def listener(view: SessionView) -> None:
        previous = last["view"]
        last["view"] = view
        if previous is not None and previous.alert == view.alert and previous.error == view.error:
            return
        if view.alert.message:
            logger.warning("[%s] %s", view.alert.kind.value.upper(), view.alert.message)
        else:
            logger.info("Area clear (%s)", view.current_location_display)
        if view.error:
            logger.error("Error: %s", view.error)

    return session.add_listener(listener)


async def run(config_path: str | None = None, location: str | None = None) -> None:
    """Run a session until cancelled.

    Args:
        config_path: YAML config path (optional)
        location: Catalog site to select instead of using the device location
    """
    config = _get_config(config_path)
    session = build_session(config)
    _log_changes(session)

    if location:
        session.select_location(location)

    async with session:
        await asyncio.Event().wait()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Watch location and event alerts")
    parser.add_argument("--config", type=str, help="Path to YAML config")
    parser.add_argument(
        "--location",
        type=str,
        help="Catalog site to select manually (skips device location)",
    )
    args = parser.parse_args(argv)

    try:
        asyncio.run(run(args.config, args.location))
    except KeyError as e:
        logger.error("%s", e.args[0])
        return 1
    except ValueError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
