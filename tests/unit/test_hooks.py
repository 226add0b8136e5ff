"""Tests for the write guard and tool allowlist hooks."""

from pathlib import Path
from typing import Any, cast

import pytest

from buildit.lib.hooks import (
    check_edit_target,
    create_tool_allowlist_hook,
    create_write_guard_hooks,
    merge_hooks,
)


def _pre_tool_use(tool_name: str, tool_input: dict[str, Any]) -> Any:
    return {
        "hook_event_name": "PreToolUse",
        "session_id": "s1",
        "transcript_path": "",
        "cwd": "",
        "tool_name": tool_name,
        "tool_input": tool_input,
    }


def _decision(output: Any) -> str | None:
    specific = cast(dict[str, Any], output).get("hookSpecificOutput") or {}
    return specific.get("permissionDecision")


class TestCheckEditTarget:
    """Tests for check_edit_target()."""

    def test_game_file_allowed(self, tmp_path: Path) -> None:
        """Game files may be edited."""
        assert check_edit_target(str(tmp_path / "room.ts"), tmp_path, []) is None

    def test_relative_path_resolved_in_game(self, tmp_path: Path) -> None:
        """Relative targets are taken relative to the game directory."""
        assert check_edit_target("state.ts", tmp_path, []) is None

    def test_shared_denied(self, tmp_path: Path) -> None:
        """Framework copies are read-only."""
        shared = tmp_path / "shared"

        reason = check_edit_target("shared/BaseGame.js", tmp_path, [shared])

        assert reason is not None
        assert "read-only" in reason

    def test_outside_game_denied(self, tmp_path: Path) -> None:
        """Edits may not escape the game directory."""
        game_dir = tmp_path / "game_1"
        game_dir.mkdir()

        reason = check_edit_target("../game_2/room.ts", game_dir, [])

        assert reason is not None
        assert "only allowed inside" in reason


class TestWriteGuardHook:
    """Tests for create_write_guard_hooks()."""

    @pytest.mark.asyncio
    async def test_denies_shared_edit(self, tmp_path: Path) -> None:
        """MultiEdit on a shared file is denied."""
        hooks = create_write_guard_hooks(tmp_path, [tmp_path / "shared"])
        guard = hooks["PreToolUse"][0].hooks[0]

        output = await guard(
            _pre_tool_use("MultiEdit", {"file_path": str(tmp_path / "shared" / "a.js")}),
            None,
            cast(Any, {"signal": None}),
        )

        assert _decision(output) == "deny"

    @pytest.mark.asyncio
    async def test_ignores_non_edit_tools(self, tmp_path: Path) -> None:
        """Reads are left to the allowlist."""
        hooks = create_write_guard_hooks(tmp_path, [tmp_path / "shared"])
        guard = hooks["PreToolUse"][0].hooks[0]

        output = await guard(
            _pre_tool_use("Read", {"file_path": "/etc/passwd"}),
            None,
            cast(Any, {"signal": None}),
        )

        assert _decision(output) is None


class TestToolAllowlistHook:
    """Tests for create_tool_allowlist_hook()."""

    @pytest.mark.asyncio
    async def test_allow_and_deny(self) -> None:
        """Listed tools are allowed, others denied."""
        hook = create_tool_allowlist_hook(["Read"])["PreToolUse"][0].hooks[0]
        context = cast(Any, {"signal": None})

        allowed = await hook(_pre_tool_use("Read", {}), None, context)
        denied = await hook(_pre_tool_use("Write", {}), None, context)

        assert _decision(allowed) == "allow"
        assert _decision(denied) == "deny"


class TestMergeHooks:
    """Tests for merge_hooks()."""

    def test_matchers_concatenated(self, tmp_path: Path) -> None:
        """Both sources keep their matchers, base first."""
        guard = create_write_guard_hooks(tmp_path, [])
        allow = create_tool_allowlist_hook(["Read"])

        merged = merge_hooks(guard, allow)

        assert merged["PreToolUse"] == guard["PreToolUse"] + allow["PreToolUse"]
