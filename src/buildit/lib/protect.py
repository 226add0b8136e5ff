"""Read-only protection for framework files copied into a game.

Each game carries a ``shared/`` copy of the client framework. The agent
runs with write access to the game directory, so the copies are
re-chmodded read-only before every agent run. This is hardening: a
missing or unreadable directory is logged, never raised.
"""

import logging
import stat
from pathlib import Path

logger = logging.getLogger(__name__)

READ_ONLY_MODE = stat.S_IRUSR | stat.S_IRGRP | stat.S_IROTH  # 0o444


def make_read_only(path: Path) -> None:
    """Set a single file to r--r--r--."""
    path.chmod(READ_ONLY_MODE)


def protect_shared_files(shared_dir: Path) -> int:
    """Re-apply read-only permissions to every file in ``shared_dir``.

    Returns:
        Number of files protected (0 if the directory is missing).
    """
    if not shared_dir.is_dir():
        logger.warning("No shared directory found at %s", shared_dir)
        return 0

    count = 0
    try:
        for path in sorted(shared_dir.iterdir()):
            if path.is_file():
                make_read_only(path)
                count += 1
    except OSError as e:
        logger.warning("Could not protect shared files in %s: %s", shared_dir, e)
        return count

    logger.info("Verified %d shared files are read-only", count)
    return count
