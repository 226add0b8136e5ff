"""Tests for game path helpers."""

from pathlib import Path

import pytest

from buildit.lib.paths import game_path, is_valid_game_id, new_game_id, shared_path


class TestGamePath:
    """Tests for game id validation and path building."""

    @pytest.mark.parametrize("game_id", ["game_1755120361896", "pong", "a-b_c"])
    def test_valid_ids(self, game_id: str) -> None:
        """Generated and hand-named ids are accepted."""
        assert is_valid_game_id(game_id)
        assert game_path(Path("games"), game_id) == Path("games") / game_id

    @pytest.mark.parametrize(
        "game_id", ["", "../etc", "a/b", ".hidden", "-x", "game_1\n"]
    )
    def test_invalid_ids(self, game_id: str) -> None:
        """Ids that could escape the games directory are rejected."""
        with pytest.raises(ValueError, match="Invalid game id"):
            game_path(Path("games"), game_id)

    def test_shared_path(self) -> None:
        """Framework copies live in shared/."""
        assert shared_path(Path("games/g")) == Path("games/g/shared")

    def test_new_game_id(self) -> None:
        """Ids are derived from the millisecond clock."""
        assert new_game_id(1755120361896) == "game_1755120361896"
        assert is_valid_game_id(new_game_id())
