"""Path helpers for game working directories.

Layout:
    <games>/<game_id>/metadata.json
    <games>/<game_id>/{client.js,room.ts,state.ts,index.html,CLAUDE.md}
    <games>/<game_id>/shared/   (read-only framework copies)

Game ids come from callers (CLI arguments, HTTP paths), so they are
validated before being joined onto the games directory.

Examples:
    >>> game_path(Path("games"), "game_1755120361896")
    PosixPath('games/game_1755120361896')
    >>> game_path(Path("games"), "../etc")
    Traceback (most recent call last):
    ...
    ValueError: Invalid game id: '../etc'
"""

import re
import time
from pathlib import Path

GAME_ID_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9_-]*")

SHARED_DIRNAME = "shared"


def is_valid_game_id(game_id: str) -> bool:
    return GAME_ID_RE.fullmatch(game_id) is not None


def game_path(games_dir: Path, game_id: str) -> Path:
    """Return the working directory of ``game_id``.

    Raises:
        ValueError: If ``game_id`` could escape ``games_dir``.
    """
    if not is_valid_game_id(game_id):
        raise ValueError(f"Invalid game id: {game_id!r}")
    return games_dir / game_id


def shared_path(game_dir: Path) -> Path:
    """Return the read-only framework directory inside a game."""
    return game_dir / SHARED_DIRNAME


def new_game_id(now_ms: int | None = None) -> str:
    """Generate a game id from the current time in milliseconds."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"game_{now_ms}"
