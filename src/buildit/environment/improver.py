"""Improvement requests: session decision, agent run, bookkeeping, check.

``GameImprover`` sequences one improvement:

1. load the game's metadata (a missing or broken record fails the request)
2. decide resume vs fresh; drop the resumable session on a fresh start
3. re-apply read-only permissions to the game's framework copies
4. run the agent, accumulating usage as events stream in
5. reconcile and persist the metadata
6. type-check the edited server files; a failure only changes the message
7. return a single ``ImproveResult``

Nothing here raises to the caller. Errors after the agent has been
started are logged and reported as ``success=False``; if the agent
never completed, the metadata on disk is left exactly as it was.

The agent runner and the verifier are constructor arguments so the
whole sequence can run against fakes.
"""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import TypeAlias
from datetime import UTC, datetime
from pathlib import Path

from buildit.agent.config import settings
from buildit.agent.models import GameSummary, ImproveResult, SessionInfo
from buildit.agent.prompts import get_improve_prompt, get_improve_system_append
from buildit.agent.tool_policy import ToolPolicy
from buildit.lib.client import AgentRequest, AgentRunner, stream_agent
from buildit.lib.locks import GameBusyError, GameLocks
from buildit.lib.metadata import (
    GameMetadata,
    MetadataCorruptError,
    MetadataError,
    MetadataNotFoundError,
    load_metadata,
    save_metadata,
)
from buildit.lib.paths import game_path, shared_path
from buildit.lib.protect import protect_shared_files
from buildit.lib.registry import GameRegistry, RoomRegistrationError
from buildit.lib.session_policy import (
    CostAssessment,
    SessionDecision,
    SessionThresholds,
    assess_cost,
    begin_invocation,
    decide,
    reconcile,
)
from buildit.lib.usage import UsageTracker
from buildit.lib.verifier import VerificationResult, verify_game

logger = logging.getLogger(__name__)

Verifier: TypeAlias = Callable[[Path], Awaitable[VerificationResult]]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class GameImprover:
    """Runs improvement requests against games in ``games_dir``.

    Args:
        registry: Room table updated after each successful improvement.
        games_dir: Directory holding one working directory per game.
        thresholds: Session reuse limits.
        run_agent: Agent runner; defaults to the Agent SDK adapter.
        verify: Post-edit check; defaults to the tsc verifier.
        locks: Per-game exclusion table (shared with other entry points).
        max_turns: Turn cap per agent run.
        model: Claude model name.
        clock: Source of the current time (timezone-aware).
    """

    def __init__(
        self,
        registry: GameRegistry,
        *,
        games_dir: Path | None = None,
        thresholds: SessionThresholds | None = None,
        run_agent: AgentRunner = stream_agent,
        verify: Verifier | None = None,
        locks: GameLocks | None = None,
        max_turns: int | None = None,
        model: str | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.registry = registry
        self.games_dir = games_dir or settings.games_path
        self.thresholds = thresholds or SessionThresholds.from_settings(settings)
        self.locks = locks or GameLocks()
        self.max_turns = max_turns or settings.improve_max_turns
        self.model = model or settings.model
        self._run_agent = run_agent
        self._verify = verify or functools.partial(
            verify_game, launcher=settings.typecheck_command
        )
        self._clock = clock

    # ------------------------------------------------------------------
    # Improve
    # ------------------------------------------------------------------

    async def improve(self, game_id: str, request: str) -> ImproveResult:
        """Apply one improvement request to a game."""
        try:
            with self.locks.hold(game_id):
                return await self._improve(game_id, request)
        except GameBusyError as e:
            logger.warning("%s", e)
            return ImproveResult(success=False, message=str(e))

    async def _improve(self, game_id: str, request: str) -> ImproveResult:
        try:
            game_dir = game_path(self.games_dir, game_id)
            metadata = await asyncio.to_thread(load_metadata, game_dir)
        except (ValueError, MetadataError) as e:
            logger.error("Cannot improve %s: %s", game_id, e)
            return ImproveResult(success=False, message=str(e))

        logger.info(
            "Improving game %s (%s), %d improvements so far",
            metadata.name,
            game_id,
            metadata.improvement_count,
        )
        decision = decide(metadata, now=self._clock(), thresholds=self.thresholds)
        self._log_decision(metadata, decision)
        working = begin_invocation(metadata, decision)

        try:
            protect_shared_files(shared_path(game_dir))

            tracker = UsageTracker(label="Improvement")
            agent_request = AgentRequest(
                prompt=get_improve_prompt(
                    name=metadata.name,
                    description=metadata.description,
                    request=request,
                ),
                cwd=game_dir,
                max_turns=self.max_turns,
                allowed_tools=ToolPolicy.for_improvement().get_allowed_tools(),
                resume=decision.session_token,
                append_system_prompt=get_improve_system_append(
                    resumed=decision.resume
                ),
                protected_dirs=[shared_path(game_dir)],
                model=self.model,
            )
            async for event in self._run_agent(agent_request):
                tracker.observe(event)
            tracker.log_summary()

            updated = reconcile(
                working, decision, tracker.outcome(), now=self._clock()
            )
            await asyncio.to_thread(save_metadata, game_dir, updated)
            logger.info(
                "Improvement %d recorded (context %d tokens)",
                updated.improvement_count,
                updated.context_size,
            )
            self._log_cost(decision, updated.last_improvement_cost)

            verification = await self._verify(game_dir)
        except Exception as e:
            logger.exception("Improvement of %s failed", game_id)
            return ImproveResult(success=False, message=f"Failed to improve game: {e}")

        self._reregister(game_dir, updated)

        if verification.has_errors:
            return ImproveResult(
                success=True,
                message=(
                    f"Improvement applied to {updated.name} but with TypeScript "
                    "errors. The game may not work correctly until these are fixed."
                ),
            )
        return ImproveResult(
            success=True,
            message=f"Successfully applied improvement to {updated.name}",
        )

    def _log_decision(self, metadata: GameMetadata, decision: SessionDecision) -> None:
        if decision.resume:
            logger.info(
                "Resuming session %s: %d session improvements, context %d tokens, "
                "%.1f minutes since last",
                decision.session_token,
                metadata.session_improvement_count,
                metadata.context_size,
                decision.minutes_since_last or 0.0,
            )
        else:
            logger.info(
                "Starting fresh session: %s",
                decision.describe(metadata, self.thresholds),
            )

    def _log_cost(self, decision: SessionDecision, cost_usd: float) -> None:
        assessment = assess_cost(decision, cost_usd, self.thresholds)
        logger.info(
            "Cost analysis: %s, $%.4f, %s",
            "resumed session" if decision.resume else "fresh start",
            cost_usd,
            assessment,
        )
        if assessment is CostAssessment.CONSIDER_RESET:
            logger.info("Tip: the next improvement will start fresh to reduce costs")

    def _reregister(self, game_dir: Path, metadata: GameMetadata) -> None:
        try:
            self.registry.register(game_dir, metadata)
        except RoomRegistrationError as e:
            logger.warning("Failed to re-register game room %s: %s", metadata.id, e)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _load_or_default(self, game_dir: Path) -> GameMetadata:
        try:
            return load_metadata(game_dir)
        except MetadataError as e:
            if isinstance(e, MetadataCorruptError):
                logger.warning("Using defaults for %s: %s", game_dir.name, e)
            return GameMetadata(id=game_dir.name, name=game_dir.name)

    def session_info(self, game_id: str) -> SessionInfo:
        """Current session projection of a game.

        Raises:
            MetadataNotFoundError: If the game directory does not exist.
            ValueError: If ``game_id`` is not a valid id.
        """
        game_dir = game_path(self.games_dir, game_id)
        if not game_dir.is_dir():
            raise MetadataNotFoundError(f"Game {game_id} not found")

        metadata = self._load_or_default(game_dir)
        preview = decide(metadata, now=self._clock(), thresholds=self.thresholds)
        return SessionInfo(
            game_id=game_id,
            game_name=metadata.name,
            has_session=metadata.session_token is not None,
            improvement_count=metadata.improvement_count,
            session_improvement_count=metadata.session_improvement_count,
            context_size=metadata.context_size,
            last_improvement_cost=metadata.last_improvement_cost,
            last_improvement_at=metadata.last_improvement_at,
            next_directive=preview.directive,
            next_reason=preview.reason,
            can_improve=not self.locks.is_held(game_id),
        )

    def list_games_with_sessions(self) -> list[GameSummary]:
        """Summaries of every playable game (one with an index.html)."""
        if not self.games_dir.is_dir():
            return []

        games: list[GameSummary] = []
        for game_dir in self.games_dir.iterdir():
            if not game_dir.is_dir() or not (game_dir / "index.html").is_file():
                continue
            metadata = self._load_or_default(game_dir)
            games.append(
                GameSummary(
                    id=game_dir.name,
                    name=metadata.name,
                    description=metadata.description,
                    icon=metadata.icon,
                    has_active_session=metadata.session_token is not None,
                    improvement_count=metadata.improvement_count,
                    can_improve=not self.locks.is_held(game_dir.name),
                    created_at=metadata.created_at,
                )
            )

        games.sort(
            key=lambda g: (
                g.created_at is None,
                g.created_at.timestamp() if g.created_at else 0.0,
                g.id,
            )
        )
        return games
