"""Agent SDK invocation adapter.

All Agent SDK client construction goes through this module. Unlike
one-shot helper calls, game sessions must stay resumable, so session
persistence is left on and the ``resume`` option is threaded through.

Exports:
- AgentRequest: everything one agent run needs
- build_options(): ClaudeAgentOptions for a request (hooks included)
- build_client(): AsyncContextManager[ClaudeSDKClient]
- EventTranslator: SDK messages -> buildit.lib.usage events
- stream_agent(): run a request and yield events as they arrive

Examples:
    Stream an improvement run::

        >>> request = AgentRequest(
        ...     prompt="Add a scoreboard",
        ...     cwd=Path("games/game_1"),
        ...     max_turns=30,
        ...     allowed_tools=["Bash", "MultiEdit", "Read"],
        ...     resume="3f2c...",
        ... )
        >>> async for event in stream_agent(request):
        ...     tracker.observe(event)
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, TypeAlias

from claude_agent_sdk import ClaudeAgentOptions, ClaudeSDKClient, Message
from claude_agent_sdk.types import (
    AssistantMessage,
    ResultMessage,
    StreamEvent,
    SystemMessage,
    ToolUseBlock,
)
from pydantic import BaseModel, Field

from buildit.lib.hooks import (
    create_tool_allowlist_hook,
    create_write_guard_hooks,
    merge_hooks,
)
from buildit.lib.usage import (
    AgentEvent,
    AgentResult,
    AssistantStep,
    SystemInit,
    TokenUsage,
    ToolActivity,
)

logger = logging.getLogger(__name__)


class AgentRequest(BaseModel):
    """Parameters of one agent run."""

    prompt: str
    cwd: Path
    max_turns: int
    allowed_tools: list[str]
    resume: str | None = Field(default=None, description="Session to resume")
    append_system_prompt: str = ""
    protected_dirs: list[Path] = Field(
        default_factory=list, description="Directories the agent must not edit"
    )
    model: str | None = None


AgentRunner: TypeAlias = Callable[[AgentRequest], AsyncIterator[AgentEvent]]
"""Anything that turns a request into an event stream (real or fake)."""


# ---------------------------------------------------------------------------
# Client construction
# ---------------------------------------------------------------------------


def build_options(request: AgentRequest) -> ClaudeAgentOptions:
    """Build ClaudeAgentOptions for a request.

    Permission prompts are bypassed; the allowlist and write guard hooks
    enforce what the agent may do instead.
    """
    hooks = merge_hooks(
        create_write_guard_hooks(request.cwd, request.protected_dirs),
        create_tool_allowlist_hook(request.allowed_tools),
    )
    return ClaudeAgentOptions(
        model=request.model,
        cwd=str(request.cwd),
        max_turns=request.max_turns,
        allowed_tools=list(request.allowed_tools),
        resume=request.resume,
        system_prompt={
            "type": "preset",
            "preset": "claude_code",
            "append": request.append_system_prompt,
        },
        permission_mode="bypassPermissions",
        include_partial_messages=True,
        hooks=hooks,
    )


@asynccontextmanager
async def build_client(options: ClaudeAgentOptions) -> AsyncIterator[ClaudeSDKClient]:
    """Return a connected ClaudeSDKClient for ``options``."""
    async with ClaudeSDKClient(options=options) as client:
        yield client


# ---------------------------------------------------------------------------
# Message translation
# ---------------------------------------------------------------------------


def _tool_target(tool_input: dict[str, Any]) -> str:
    for key in ("file_path", "command", "pattern"):
        value = tool_input.get(key)
        if value:
            return str(value)
    return ""


class EventTranslator:
    """Turns SDK messages into :data:`AgentEvent` values.

    Per-step token usage comes from the raw API stream events: a step
    opens with ``message_start`` (input and cache counters), its output
    count is finalised by ``message_delta``, and ``message_stop`` closes
    it. One :class:`AssistantStep` is emitted per closed step.
    """

    def __init__(self) -> None:
        self._step: TokenUsage | None = None

    def translate(self, message: Message) -> list[AgentEvent]:
        match message:
            case StreamEvent():
                return self._from_stream_event(message)

            case AssistantMessage():
                return [
                    ToolActivity(
                        name=block.name,
                        target=_tool_target(block.input or {}),
                    )
                    for block in message.content
                    if isinstance(block, ToolUseBlock)
                ]

            case SystemMessage():
                if message.subtype != "init":
                    logger.debug("System [%s]: %s", message.subtype, message.data)
                    return []
                return [
                    SystemInit(
                        session_id=message.data.get("session_id"),
                        tools=list(message.data.get("tools", [])),
                    )
                ]

            case ResultMessage():
                return [
                    AgentResult(
                        subtype=message.subtype,
                        total_cost_usd=message.total_cost_usd,
                        usage=(
                            TokenUsage.model_validate(message.usage)
                            if message.usage
                            else None
                        ),
                        num_turns=message.num_turns,
                        duration_ms=message.duration_ms,
                        is_error=message.is_error,
                        session_id=message.session_id,
                    )
                ]

            case _:
                return []

    def _from_stream_event(self, message: StreamEvent) -> list[AgentEvent]:
        event = message.event
        match event.get("type"):
            case "message_start":
                usage = event.get("message", {}).get("usage") or {}
                self._step = TokenUsage.model_validate(usage)
            case "message_delta":
                usage = event.get("usage") or {}
                if self._step is not None and usage.get("output_tokens") is not None:
                    self._step.output_tokens = usage["output_tokens"]
            case "message_stop":
                if self._step is not None:
                    step = AssistantStep(usage=self._step, session_id=message.session_id)
                    self._step = None
                    return [step]
        return []


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------


async def stream_agent(request: AgentRequest) -> AsyncIterator[AgentEvent]:
    """Run the agent for ``request`` and yield events as they arrive.

    SDK and transport errors propagate to the caller unchanged.
    """
    logger.info(
        "Starting agent in %s (%s, max %d turns)",
        request.cwd,
        f"resuming {request.resume}" if request.resume else "fresh session",
        request.max_turns,
    )
    translator = EventTranslator()
    async with build_client(build_options(request)) as client:
        await client.query(request.prompt)
        async for message in client.receive_response():
            for event in translator.translate(message):
                yield event
