"""Result models returned by the game operations.

These are the shapes handed to callers (CLI, an HTTP layer): the
outcome of an improvement, a game's session info, one row of the game
list, and the result of scaffolding a game.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from buildit.lib.session_policy import Directive, SessionReason


class ImproveResult(BaseModel):
    """Outcome of one improvement request.

    ``success`` is False only when the game could not be loaded or the
    agent run itself failed. A failing type check still reports success,
    with a warning in ``message``.
    """

    success: bool
    message: str


class SessionInfo(BaseModel):
    """Session projection of one game's metadata."""

    game_id: str
    game_name: str
    has_session: bool = Field(description="A resumable session token is held")
    improvement_count: int
    session_improvement_count: int
    context_size: int
    last_improvement_cost: float
    last_improvement_at: datetime | None = None
    next_directive: Directive = Field(
        description="What the policy would decide for a request right now"
    )
    next_reason: SessionReason
    can_improve: bool = True


class GameSummary(BaseModel):
    """One row of the game list."""

    id: str
    name: str
    description: str = ""
    icon: str = "🎯"
    has_active_session: bool = False
    improvement_count: int = 0
    can_improve: bool = True
    created_at: datetime | None = None


class GenerateResult(BaseModel):
    """Outcome of scaffolding a new game."""

    game_id: str
    game_name: str
    room_class: str
    session_id: str | None = None
    cost_usd: float | None = None
