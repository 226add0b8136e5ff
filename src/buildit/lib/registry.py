"""Table of playable game rooms.

The game server needs to know, for every game id, which room class to
serve. Rather than guessing the class by naming convention, the
scaffolding step declares it in the game's metadata (``roomClass``) and
registration checks that ``room.ts`` actually exports it.

The registry is an explicit object handed to whoever needs it (the
improver, the CLI); there is no module-level instance.

Examples:
    Populate at startup and look a game up::

        >>> registry = GameRegistry()
        >>> registry.scan(Path("games"))
        2
        >>> registry["game_1755120361896"].room_class
        'SoccerRoom'
"""

import logging
import re
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from buildit.lib.metadata import GameMetadata, MetadataError, load_metadata

logger = logging.getLogger(__name__)

ROOM_FILENAME = "room.ts"


class RoomRegistrationError(Exception):
    """A game's room cannot be registered."""


class RoomHandler(BaseModel):
    """Descriptor for one registered game room."""

    model_config = ConfigDict(frozen=True)

    game_id: str
    room_class: str
    module_path: Path
    revision: int = Field(default=1, description="Bumped on every re-registration")
    registered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


def _exports_class(source: str, class_name: str) -> bool:
    pattern = rf"export\s+(?:default\s+)?class\s+{re.escape(class_name)}\b"
    return re.search(pattern, source) is not None


class GameRegistry:
    """Mapping of game id to :class:`RoomHandler`."""

    def __init__(self) -> None:
        self._handlers: dict[str, RoomHandler] = {}

    def __contains__(self, game_id: object) -> bool:
        return game_id in self._handlers

    def __getitem__(self, game_id: str) -> RoomHandler:
        return self._handlers[game_id]

    def __len__(self) -> int:
        return len(self._handlers)

    def get(self, game_id: str) -> RoomHandler | None:
        return self._handlers.get(game_id)

    def game_ids(self) -> list[str]:
        return sorted(self._handlers)

    def register(self, game_dir: Path, metadata: GameMetadata) -> RoomHandler:
        """Register (or re-register) the room declared by ``metadata``.

        Raises:
            RoomRegistrationError: If no room class is declared, the room
                file is missing, or it does not export the declared class.
        """
        if not metadata.room_class:
            raise RoomRegistrationError(f"Game {metadata.id} declares no roomClass")

        room_path = game_dir / ROOM_FILENAME
        try:
            source = room_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise RoomRegistrationError(
                f"Cannot read {room_path} for game {metadata.id}: {e}"
            ) from e

        if not _exports_class(source, metadata.room_class):
            raise RoomRegistrationError(
                f"{room_path} does not export class {metadata.room_class}"
            )

        previous = self._handlers.get(metadata.id)
        handler = RoomHandler(
            game_id=metadata.id,
            room_class=metadata.room_class,
            module_path=room_path,
            revision=previous.revision + 1 if previous else 1,
        )
        self._handlers[metadata.id] = handler
        logger.info(
            "%s game room: %s (%s)",
            "Re-registered" if previous else "Registered",
            metadata.id,
            metadata.room_class,
        )
        return handler

    def unregister(self, game_id: str) -> None:
        self._handlers.pop(game_id, None)

    def scan(self, games_dir: Path) -> int:
        """Register every game directory that has a room file.

        Games that fail to load or register are logged and skipped.

        Returns:
            Number of games registered.
        """
        if not games_dir.is_dir():
            logger.warning("Games directory %s does not exist", games_dir)
            return 0

        count = 0
        for game_dir in sorted(games_dir.iterdir()):
            if not (game_dir / ROOM_FILENAME).is_file():
                continue
            try:
                self.register(game_dir, load_metadata(game_dir))
                count += 1
            except (MetadataError, RoomRegistrationError) as e:
                logger.warning("Failed to register game %s: %s", game_dir.name, e)
        return count
