"""Tool availability for agent runs.

Key patterns:
1. Tool sets as frozensets for fast membership testing
2. ToolPolicy computes excluded tools at construction
3. Factory classmethods for the two kinds of run
4. get_allowed_tools() feeds both ClaudeAgentOptions and the allowlist hook

Usage:
    from buildit.agent.tool_policy import ToolPolicy

    policy = ToolPolicy.for_improvement()
    allowed_tools = policy.get_allowed_tools()
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, PrivateAttr, model_validator

# Read, edit in place, and run the compiler
EDIT_TOOLS: frozenset[str] = frozenset({"Read", "MultiEdit", "Bash"})

# Creating new files; only scaffolding needs this
CREATE_TOOLS: frozenset[str] = frozenset({"Write"})


class ToolPolicy(BaseModel):
    """Which built-in tools an agent run may use.

    Improvements edit existing files only; scaffolding may also create
    files.
    """

    allow_file_creation: bool = False

    _excluded_tools: frozenset[str] = PrivateAttr(default_factory=frozenset)

    @model_validator(mode="after")
    def compute_excluded_tools(self) -> Self:
        excluded: set[str] = set()
        if not self.allow_file_creation:
            excluded.update(CREATE_TOOLS)
        self._excluded_tools = frozenset(excluded)
        return self

    @classmethod
    def for_improvement(cls) -> ToolPolicy:
        return cls(allow_file_creation=False)

    @classmethod
    def for_generation(cls) -> ToolPolicy:
        return cls(allow_file_creation=True)

    def get_allowed_tools(self) -> list[str]:
        """Sorted list of tool names allowed under this policy."""
        tools = set(EDIT_TOOLS | CREATE_TOOLS)
        tools -= self._excluded_tools
        return sorted(tools)

    def is_tool_available(self, tool_name: str) -> bool:
        return tool_name in EDIT_TOOLS | CREATE_TOOLS and (
            tool_name not in self._excluded_tools
        )
