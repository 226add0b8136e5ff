"""Scaffold a new game from a free-text prompt.

The game directory is created from skeleton files, the framework files
are copied in read-only, and the agent fills in the game. A game that
fails any step before its metadata is written is removed again.
"""

import asyncio
import logging
import re
import shutil
import time
from datetime import UTC, datetime
from pathlib import Path

from buildit.agent.config import settings
from buildit.agent.models import GenerateResult
from buildit.agent.prompts import get_generate_prompt
from buildit.agent.tool_policy import ToolPolicy
from buildit.environment.templates import write_skeleton
from buildit.lib.client import AgentRequest, AgentRunner, stream_agent
from buildit.lib.metadata import GameMetadata, save_metadata
from buildit.lib.paths import new_game_id, shared_path
from buildit.lib.protect import make_read_only
from buildit.lib.registry import GameRegistry
from buildit.lib.usage import UsageTracker

logger = logging.getLogger(__name__)

SHARED_FILES = ("BaseGame.js", "PlayerModel.js")
REQUIRED_FILES = ("client.js", "room.ts", "state.ts", "index.html")
IMPORT_FIXED_FILES = ("client.js", "room.ts", "state.ts")

_NAME_RE = re.compile(
    r'(?:create|make|build|design)\s+(?:(?:an|a)\s+)?"?([^"]+?)"?\s*(?:game|multiplayer)',
    re.IGNORECASE,
)
_SHARED_IMPORT_RE = re.compile(r"""from\s+(["'])\./shared/""")


class GameGenerationError(RuntimeError):
    """Raised when a new game could not be scaffolded."""


def extract_game_name(prompt: str, *, now_ms: int | None = None) -> str:
    """Pull a display name out of a prompt like 'Create a "Space Race" game'.

    Falls back to ``Game <n>`` when the prompt names nothing.

    Examples:
        >>> extract_game_name('Create a "Space Race" game for four players')
        'Space Race'
        >>> extract_game_name("build an arena shooter game")
        'Arena Shooter'
    """
    match = _NAME_RE.search(prompt)
    if match and match.group(1).strip():
        words = match.group(1).strip().split(" ")
        return " ".join(w[:1].upper() + w[1:] for w in words)
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"Game {now_ms % 1000}"


def room_class_name(name: str) -> str:
    """Room class exported by a game's room.ts, e.g. ``SpaceRaceRoom``."""
    stem = re.sub(r"\W", "", name)
    if not stem or not stem[0].isalpha():
        stem = f"Game{stem}"
    return f"{stem}Room"


def copy_shared_files(source_dir: Path, game_dir: Path) -> list[Path]:
    """Copy the framework files into ``game_dir/shared`` as read-only.

    Raises:
        GameGenerationError: If a framework file is missing from ``source_dir``.
    """
    target_dir = shared_path(game_dir)
    target_dir.mkdir(exist_ok=True)
    copied: list[Path] = []
    for filename in SHARED_FILES:
        source = source_dir / filename
        if not source.is_file():
            raise GameGenerationError(f"Shared framework file missing: {source}")
        target = target_dir / filename
        shutil.copyfile(source, target)
        make_read_only(target)
        copied.append(target)
    return copied


def fix_shared_imports(game_dir: Path) -> int:
    """Point ``./shared/`` imports at the served framework copies.

    Returns:
        Number of files rewritten.
    """
    fixed = 0
    for filename in IMPORT_FIXED_FILES:
        path = game_dir / filename
        if not path.is_file():
            continue
        content = path.read_text(encoding="utf-8")
        rewritten = _SHARED_IMPORT_RE.sub(r"from \g<1>../../shared/", content)
        if rewritten != content:
            path.write_text(rewritten, encoding="utf-8")
            fixed += 1
    if fixed:
        logger.debug("Fixed shared import paths in %d files", fixed)
    return fixed


def _check_required_files(game_dir: Path) -> None:
    missing = [f for f in REQUIRED_FILES if not (game_dir / f).is_file()]
    if missing:
        raise GameGenerationError(
            f"Game generation incomplete, missing: {', '.join(missing)}"
        )


async def generate_game(
    prompt: str,
    *,
    registry: GameRegistry,
    games_dir: Path | None = None,
    shared_source: Path | None = None,
    run_agent: AgentRunner = stream_agent,
    max_turns: int | None = None,
    model: str | None = None,
    now: datetime | None = None,
) -> GenerateResult:
    """Create, fill in, and register a new game.

    The session the generation run starts is stored in the metadata, so
    the first improvement may resume it.

    Raises:
        GameGenerationError: If scaffolding or the agent run failed. The
            partially created game directory is removed.
        RoomRegistrationError: If the finished game could not be registered.
            The game directory is kept.
    """
    now = now or datetime.now(UTC)
    games_dir = games_dir or settings.games_path
    shared_source = shared_source or settings.shared_path

    game_id = new_game_id(int(now.timestamp() * 1000))
    name = extract_game_name(prompt, now_ms=int(now.timestamp() * 1000))
    room_class = room_class_name(name)
    game_dir = games_dir / game_id
    logger.info("Generating %s (%s) with room class %s", name, game_id, room_class)

    try:
        game_dir.mkdir(parents=True)
    except FileExistsError as e:
        raise GameGenerationError(f"Game {game_id} already exists") from e

    try:
        write_skeleton(game_dir, name=name, game_id=game_id, room_class=room_class)
        copy_shared_files(shared_source, game_dir)

        tracker = UsageTracker(label="Generation")
        request = AgentRequest(
            prompt=get_generate_prompt(
                name=name, description=prompt, room_class=room_class
            ),
            cwd=game_dir,
            max_turns=max_turns or settings.generate_max_turns,
            allowed_tools=ToolPolicy.for_generation().get_allowed_tools(),
            protected_dirs=[shared_path(game_dir)],
            model=model or settings.model,
        )
        async for event in run_agent(request):
            tracker.observe(event)
        tracker.log_summary()

        _check_required_files(game_dir)
        fix_shared_imports(game_dir)

        token = tracker.session_id
        metadata = GameMetadata(
            id=game_id,
            name=name,
            description=f"AI-generated 3D game: {prompt[:100]}",
            created_at=now,
            room_class=room_class,
            session_token=token,
            has_active_session=token is not None,
        )
        await asyncio.to_thread(save_metadata, game_dir, metadata)
    except BaseException as e:
        logger.error("Generation of %s failed, removing %s: %s", game_id, game_dir, e)
        shutil.rmtree(game_dir, ignore_errors=True)
        if isinstance(e, Exception) and not isinstance(e, GameGenerationError):
            raise GameGenerationError(f"Failed to generate game: {e}") from e
        raise

    registry.register(game_dir, metadata)
    logger.info("Generated %s (%s)", name, game_id)
    return GenerateResult(
        game_id=game_id,
        game_name=name,
        room_class=room_class,
        session_id=token,
        cost_usd=tracker.total_cost_usd,
    )
