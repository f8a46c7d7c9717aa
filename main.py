"""Console Entry Point - Root Module.

Runs the SafeZone alert watcher from the repository root.
"""

import sys

from safezone.main import main, run

__all__ = [
    "main",
    "run",
]


if __name__ == "__main__":
    sys.exit(main())
