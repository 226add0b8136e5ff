"""Agent progress events and token/cost accumulation.

The agent adapter turns the SDK message stream into a small set of
events. ``UsageTracker`` folds those events into the signals the session
policy needs afterwards: total cost, the issued session id, and the last
observed cache-read size (our proxy for reusable context size).

Examples:
    Accumulate a short stream::

        >>> tracker = UsageTracker(label="Improvement")
        >>> tracker.observe(SystemInit(session_id="abc"))
        >>> tracker.observe(AssistantStep(usage=TokenUsage(input_tokens=10, cache_read_input_tokens=4000)))
        >>> tracker.observe(AgentResult(subtype="success", total_cost_usd=0.04))
        >>> outcome = tracker.outcome()
        >>> outcome.session_id, outcome.last_cache_read, outcome.total_cost_usd
        ('abc', 4000, 0.04)
"""

import logging
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)
stream_log = logging.getLogger("buildit.agent.stream")


class TokenUsage(BaseModel):
    """Token usage as reported by the Anthropic API.

    The API reports missing cache counters as ``null``; those are read
    as zero.
    """

    model_config = ConfigDict(extra="ignore")

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    @field_validator("*", mode="before")
    @classmethod
    def none_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @property
    def total(self) -> int:
        """Input plus output tokens (cache counters excluded)."""
        return self.input_tokens + self.output_tokens

    def add(self, other: "TokenUsage") -> None:
        """Accumulate another usage record into this one."""
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.cache_creation_input_tokens += other.cache_creation_input_tokens
        self.cache_read_input_tokens += other.cache_read_input_tokens


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class AssistantStep(BaseModel):
    """One model call inside the agent loop."""

    kind: Literal["assistant-step"] = "assistant-step"
    usage: TokenUsage = Field(default_factory=TokenUsage)
    session_id: str | None = None


class ToolActivity(BaseModel):
    """A tool call issued by the agent (progress display only)."""

    kind: Literal["tool-use"] = "tool-use"
    name: str
    target: str = ""
    session_id: str | None = None


class AgentResult(BaseModel):
    """Final message of an agent run."""

    kind: Literal["result"] = "result"
    subtype: str
    total_cost_usd: float | None = None
    usage: TokenUsage | None = None
    num_turns: int | None = None
    duration_ms: int | None = None
    is_error: bool = False
    session_id: str | None = None


class SystemInit(BaseModel):
    """Session start notice carrying the agent session id."""

    kind: Literal["system-init"] = "system-init"
    session_id: str | None = None
    tools: list[str] = Field(default_factory=list)


AgentEvent: TypeAlias = AssistantStep | ToolActivity | AgentResult | SystemInit


class InvocationOutcome(BaseModel):
    """What a completed agent run reported."""

    session_id: str | None = None
    total_cost_usd: float = 0.0
    usage: TokenUsage = Field(default_factory=TokenUsage)
    step_count: int = 0
    last_cache_read: int | None = Field(
        default=None,
        description="Cache-read tokens of the last step that reported any",
    )
    subtype: str | None = None


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------

_TOOL_EMOJI = {
    "MultiEdit": "📝",
    "Edit": "📝",
    "Write": "📝",
    "Read": "📖",
    "Bash": "🔨",
}


class UsageTracker:
    """Accumulates usage, cost and session identity from agent events.

    Args:
        label: Name of the operation, used in log lines
            (e.g. "Improvement", "Generation").
    """

    def __init__(self, label: str = "Agent") -> None:
        self.label = label
        self.totals = TokenUsage()
        self.step_count = 0
        self.session_id: str | None = None
        self.last_cache_read: int | None = None
        self.result: AgentResult | None = None

    def observe(self, event: AgentEvent) -> None:
        """Fold one event into the running totals."""
        if event.session_id:
            self.session_id = event.session_id

        match event:
            case AssistantStep(usage=usage):
                self.step_count += 1
                self.totals.add(usage)
                if usage.cache_read_input_tokens:
                    self.last_cache_read = usage.cache_read_input_tokens
                logger.info(
                    "Step %d: input=%d output=%d cache_creation=%d cache_read=%d "
                    "(running total %d)",
                    self.step_count,
                    usage.input_tokens,
                    usage.output_tokens,
                    usage.cache_creation_input_tokens,
                    usage.cache_read_input_tokens,
                    self.totals.total,
                )

            case ToolActivity(name=name, target=target):
                stream_log.info(
                    "%s %s %s", _TOOL_EMOJI.get(name, "🔧"), name, target
                )

            case AgentResult():
                self.result = event
                logger.info(
                    "%s finished with status %s (cost $%.4f, turns %s)",
                    self.label,
                    event.subtype,
                    event.total_cost_usd or 0.0,
                    event.num_turns if event.num_turns is not None else "?",
                )
                if event.subtype == "error_max_turns":
                    logger.warning("%s reached the maximum turn limit", self.label)

            case SystemInit():
                logger.info("Agent session initialized: %s", event.session_id)

    @property
    def total_cost_usd(self) -> float:
        if self.result is None or self.result.total_cost_usd is None:
            return 0.0
        return self.result.total_cost_usd

    def outcome(self) -> InvocationOutcome:
        """Snapshot of everything the run reported so far."""
        return InvocationOutcome(
            session_id=self.session_id,
            total_cost_usd=self.total_cost_usd,
            usage=self.totals.model_copy(),
            step_count=self.step_count,
            last_cache_read=self.last_cache_read,
            subtype=self.result.subtype if self.result else None,
        )

    def log_summary(self) -> None:
        """Log the accumulated token summary."""
        if self.result is None:
            logger.warning("%s stream ended without a result message", self.label)
        if self.step_count == 0:
            return
        logger.info(
            "%s token summary: input=%d output=%d cache_creation=%d cache_read=%d "
            "total=%d steps=%d avg/step=%d cost=$%.4f",
            self.label,
            self.totals.input_tokens,
            self.totals.output_tokens,
            self.totals.cache_creation_input_tokens,
            self.totals.cache_read_input_tokens,
            self.totals.total,
            self.step_count,
            round(self.totals.total / self.step_count),
            self.total_cost_usd,
        )
