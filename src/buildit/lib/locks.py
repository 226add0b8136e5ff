"""Per-game mutual exclusion for improvement requests.

An improvement is a read-modify-write of the game's metadata with a
long agent run in the middle. Two overlapping requests for the same game
would both read the old record and the later write would silently drop
the earlier one's bookkeeping. ``GameLocks`` rejects the second request
instead of queueing it behind a run that may take minutes.

Acquisition never suspends, so on a single event loop the check and the
claim happen atomically. Different games never contend.

Example:
    locks = GameLocks()

    async def improve(game_id: str) -> None:
        with locks.hold(game_id):
            await do_improvement(game_id)
"""

from collections.abc import Iterator
from contextlib import contextmanager


class GameBusyError(RuntimeError):
    """Another request already holds this game."""

    def __init__(self, game_id: str) -> None:
        super().__init__(f"An improvement for {game_id} is already in progress")
        self.game_id = game_id


class GameLocks:
    """Table of game ids with an in-flight request."""

    def __init__(self) -> None:
        self._held: set[str] = set()

    def is_held(self, game_id: str) -> bool:
        return game_id in self._held

    @contextmanager
    def hold(self, game_id: str) -> Iterator[None]:
        """Claim ``game_id`` for the duration of the block.

        Raises:
            GameBusyError: If the game is already claimed.
        """
        if game_id in self._held:
            raise GameBusyError(game_id)
        self._held.add(game_id)
        try:
            yield
        finally:
            self._held.discard(game_id)
