"""Per-game metadata record and its JSON store.

Each game directory holds one ``metadata.json``. It is the single source
of truth for session continuity between improvement requests: which
agent session can be resumed, and the cost/context signals the session
policy looks at before deciding to reuse it.

The on-disk format uses camelCase keys. Descriptive fields written by
the scaffolding step (name, description, icon, ...) live alongside the
session fields; unknown keys are preserved on round-trip.

Examples:
    Load, mutate, and persist::

        >>> metadata = load_metadata(Path("games/game_1"))
        >>> metadata.improvement_count
        3
        >>> save_metadata(Path("games/game_1"), metadata)
        PosixPath('games/game_1/metadata.json')

    Older records stored the session id as ``claudeSessionId``::

        >>> GameMetadata.model_validate({"id": "g", "name": "G", "claudeSessionId": "abc"}).session_token
        'abc'
"""

import json
import logging
import os
import stat
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Self

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

logger = logging.getLogger(__name__)

METADATA_FILENAME = "metadata.json"
METADATA_FILE_MODE = 0o644


class MetadataError(Exception):
    """Base class for metadata store failures."""


class MetadataNotFoundError(MetadataError):
    """The game directory or its metadata file does not exist."""


class MetadataCorruptError(MetadataError):
    """The metadata file exists but cannot be parsed or validated."""


class GameMetadata(BaseModel):
    """Durable record for one game.

    Session fields are mutated only by the session policy. ``context_size``
    and ``last_improvement_cost`` describe the most recent improvement and
    are overwritten, never summed.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    # Descriptive fields (owned by scaffolding)
    id: str
    name: str
    description: str = ""
    icon: str = "🎯"
    created_at: datetime | None = Field(default=None, alias="createdAt")
    room_class: str | None = Field(
        default=None,
        alias="roomClass",
        description="Exported room class name declared at scaffolding time",
    )

    # Session fields
    session_token: str | None = Field(
        default=None,
        alias="sessionToken",
        validation_alias=AliasChoices("sessionToken", "claudeSessionId"),
    )
    has_active_session: bool = Field(default=False, alias="hasActiveSession")
    improvement_count: int = Field(default=0, ge=0, alias="improvementCount")
    last_improvement_at: datetime | None = Field(
        default=None, alias="lastImprovementAt"
    )
    context_size: int = Field(default=0, ge=0, alias="contextSize")
    last_improvement_cost: float = Field(default=0.0, ge=0, alias="lastImprovementCost")
    session_improvement_count: int = Field(
        default=0, ge=0, alias="sessionImprovementCount"
    )

    @model_validator(mode="after")
    def check_session_count(self) -> Self:
        if self.session_improvement_count > self.improvement_count:
            raise ValueError(
                f"sessionImprovementCount ({self.session_improvement_count}) "
                f"exceeds improvementCount ({self.improvement_count})"
            )
        return self

    def to_json(self) -> str:
        """Serialize with on-disk key names, omitting unset optionals."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def metadata_path(game_dir: Path) -> Path:
    """Return the metadata file path for a game directory."""
    return game_dir / METADATA_FILENAME


def load_metadata(game_dir: Path) -> GameMetadata:
    """Read and validate the metadata record of a game.

    Raises:
        MetadataNotFoundError: If the game directory or its metadata file
            is missing.
        MetadataCorruptError: If the file is not valid JSON or fails
            validation.
    """
    if not game_dir.is_dir():
        raise MetadataNotFoundError(f"Game {game_dir.name} not found")

    path = metadata_path(game_dir)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise MetadataNotFoundError(f"No metadata for game {game_dir.name}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise MetadataCorruptError(f"Failed to read {path}: {e}") from e

    try:
        return GameMetadata.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise MetadataCorruptError(f"Failed to load game metadata: {e}") from e


def save_metadata(game_dir: Path, metadata: GameMetadata) -> Path:
    """Durably write the metadata record.

    Writes to a temporary file in the same directory and renames it over
    the target, so readers see either the old record or the new one. The
    existing file mode is kept; a new file gets ``METADATA_FILE_MODE``.

    Returns:
        Path to the written file.
    """
    path = metadata_path(game_dir)
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        mode = METADATA_FILE_MODE

    fd, tmp_name = tempfile.mkstemp(
        dir=game_dir, prefix=".metadata.", suffix=".tmp", text=True
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(metadata.to_json())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.debug("Saved metadata for %s to %s", metadata.id, path)
    return path
