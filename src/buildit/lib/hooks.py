"""Hook utilities for the Claude Agent SDK.

PreToolUse hooks that keep the agent inside its game:
- create_write_guard_hooks(): edits allowed only inside the game
  directory and never inside its read-only framework copies
- create_tool_allowlist_hook(): restrict agent to specific tools

Composition:
- HooksConfig type alias for type-safe hook configuration
- merge_hooks() to compose multiple hook sources

Examples:
    Guard a game directory and restrict tools::

        >>> guard = create_write_guard_hooks(game_dir, protected_dirs=[game_dir / "shared"])
        >>> allow = create_tool_allowlist_hook(["Read", "MultiEdit", "Bash"])
        >>> hooks = merge_hooks(guard, allow)
"""

from pathlib import Path
from typing import TypeAlias, cast

from claude_agent_sdk import HookInput, HookMatcher
from claude_agent_sdk.types import HookContext, HookEvent, SyncHookJSONOutput


HooksConfig: TypeAlias = dict[HookEvent, list[HookMatcher]]
"""Typed hook configuration for ClaudeAgentOptions."""

EDIT_TOOLS: frozenset[str] = frozenset({"Write", "Edit", "MultiEdit"})


def merge_hooks(base: HooksConfig, additional: HooksConfig) -> HooksConfig:
    """Merge two hook configurations.

    For each hook event type, combines the matchers from both configs.
    Base hooks run first, then additional hooks.
    """
    merged: HooksConfig = dict(base)

    for event in additional:
        if event in merged:
            merged[event] = merged[event] + additional[event]
        else:
            merged[event] = additional[event]

    return merged


def allow_hook_output() -> SyncHookJSONOutput:
    """Create an allow decision for PreToolUse hooks."""
    return SyncHookJSONOutput(
        hookSpecificOutput={
            "hookEventName": "PreToolUse",
            "permissionDecision": "allow",
        }
    )


def deny_hook_output(reason: str) -> SyncHookJSONOutput:
    """Create a deny decision for PreToolUse hooks."""
    return SyncHookJSONOutput(
        hookSpecificOutput={
            "hookEventName": "PreToolUse",
            "permissionDecision": "deny",
            "permissionDecisionReason": reason,
        }
    )


def path_is_under(file_path: str | Path, allowed_dirs: list[Path]) -> bool:
    """Check if a file path is under one of the given directories."""
    try:
        path = Path(file_path).resolve()
    except (OSError, ValueError):
        return False

    for allowed in allowed_dirs:
        try:
            path.relative_to(allowed.resolve())
            return True
        except ValueError:
            continue
    return False


def check_edit_target(
    file_path: str,
    game_dir: Path,
    protected_dirs: list[Path],
) -> str | None:
    """Return a denial reason for an edit target, or None if allowed.

    Relative paths are taken relative to ``game_dir`` (the agent's cwd).
    """
    target = Path(file_path)
    if not target.is_absolute():
        target = game_dir / target

    if path_is_under(target, protected_dirs):
        return (
            f"{file_path} is a read-only framework file. "
            "Modify the game files (client.js, room.ts, state.ts, index.html) instead."
        )
    if not path_is_under(target, [game_dir]):
        return f"Edits are only allowed inside {game_dir}"
    return None


def create_write_guard_hooks(
    game_dir: Path,
    protected_dirs: list[Path],
) -> HooksConfig:
    """Create a PreToolUse hook confining edits to the game directory.

    Write/Edit/MultiEdit calls are denied when their ``file_path`` is
    outside ``game_dir`` or under any of ``protected_dirs``. Other tools
    pass through to the allowlist.
    """

    async def write_guard(
        input_data: HookInput,
        _tool_use_id: str | None,
        _context: HookContext,
    ) -> SyncHookJSONOutput:
        if input_data["hook_event_name"] != "PreToolUse":
            return SyncHookJSONOutput()

        if input_data["tool_name"] not in EDIT_TOOLS:
            return SyncHookJSONOutput()

        file_path = input_data["tool_input"].get("file_path", "")
        if not file_path:
            return SyncHookJSONOutput()

        reason = check_edit_target(str(file_path), game_dir, protected_dirs)
        if reason is not None:
            return deny_hook_output(reason)
        return SyncHookJSONOutput()

    return cast(
        HooksConfig,
        {
            "PreToolUse": [HookMatcher(hooks=[write_guard])],
        },
    )


def create_tool_allowlist_hook(
    allowed_tools: list[str],
) -> HooksConfig:
    """Create a PreToolUse hook that restricts the agent to only allowed tools.

    Use this instead of allowed_tools in ClaudeAgentOptions, which is
    ignored when permission_mode="bypassPermissions".
    """
    allowed = frozenset(allowed_tools)

    async def allowlist_hook(
        input_data: HookInput,
        _tool_use_id: str | None,
        _context: HookContext,
    ) -> SyncHookJSONOutput:
        if input_data["hook_event_name"] != "PreToolUse":
            return SyncHookJSONOutput()

        tool_name = input_data["tool_name"]
        if tool_name in allowed:
            return allow_hook_output()
        return deny_hook_output(f"Tool '{tool_name}' not in allowed list.")

    return cast(
        HooksConfig,
        {
            "PreToolUse": [HookMatcher(hooks=[allowlist_hook])],
        },
    )
