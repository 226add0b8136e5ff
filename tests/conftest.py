"""Shared test fixtures.

Games are built in a temporary games directory; the agent and the type
checker are replaced by in-process fakes.
"""

from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from buildit.lib.client import AgentRequest
from buildit.lib.metadata import GameMetadata, save_metadata
from buildit.lib.usage import AgentEvent
from buildit.lib.verifier import VerificationResult, VerificationStatus

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

ROOM_SOURCE = """\
import { Room, Client } from "colyseus";
import { GameState } from "./state";

export class TestRoom extends Room<GameState> {
  onCreate(options: any) {}
}
"""


class FakeAgent:
    """Agent runner that replays a fixed list of events.

    Args:
        events: Events to yield, in order.
        error: Raised after the events have been yielded.
        on_run: Called with each request before any event is yielded.
    """

    def __init__(
        self,
        events: list[AgentEvent] | None = None,
        *,
        error: Exception | None = None,
        on_run: Callable[[AgentRequest], None] | None = None,
    ) -> None:
        self.events = events or []
        self.error = error
        self.on_run = on_run
        self.requests: list[AgentRequest] = []

    async def __call__(self, request: AgentRequest) -> AsyncIterator[AgentEvent]:
        self.requests.append(request)
        if self.on_run is not None:
            self.on_run(request)
        for event in self.events:
            yield event
        if self.error is not None:
            raise self.error


class FakeVerifier:
    """Verifier returning a fixed result and recording its calls."""

    def __init__(self, status: VerificationStatus = VerificationStatus.CLEAN) -> None:
        self.result = VerificationResult(status=status)
        self.calls: list[Path] = []

    async def __call__(self, game_dir: Path) -> VerificationResult:
        self.calls.append(game_dir)
        return self.result


@pytest.fixture
def now() -> datetime:
    """Fixed clock reading used across tests."""
    return NOW


@pytest.fixture
def games_dir(tmp_path: Path) -> Path:
    """Empty games directory."""
    path = tmp_path / "games"
    path.mkdir()
    return path


@pytest.fixture
def make_game(games_dir: Path) -> Callable[..., Path]:
    """Factory creating a playable game with the given metadata fields."""

    def _make(game_id: str = "game_1", **fields: Any) -> Path:
        game_dir = games_dir / game_id
        (game_dir / "shared").mkdir(parents=True)
        (game_dir / "shared" / "BaseGame.js").write_text("class BaseGame {}\n")
        (game_dir / "room.ts").write_text(ROOM_SOURCE)
        (game_dir / "index.html").write_text("<html></html>\n")
        fields.setdefault("name", "Test Game")
        fields.setdefault("room_class", "TestRoom")
        save_metadata(game_dir, GameMetadata(id=game_id, **fields))
        return game_dir

    return _make


@pytest.fixture
def clean_verifier() -> FakeVerifier:
    """Verifier that always reports a clean compile."""
    return FakeVerifier()


@pytest.fixture
def make_agent() -> type[FakeAgent]:
    """Factory for fake agent runners."""
    return FakeAgent


@pytest.fixture
def make_verifier() -> type[FakeVerifier]:
    """Factory for fake verifiers."""
    return FakeVerifier
