"""Session reuse policy for iterative agent improvements.

Every improvement request either resumes the agent session that made the
previous edits or starts a fresh one. Resuming is cheap while the
upstream prompt cache is warm and the conversation is small; it turns
expensive once the cache has expired or the history has grown. This
module owns that decision and the bookkeeping around it:

- :func:`decide`: pure decision from metadata, clock and thresholds
- :func:`begin_invocation`: clears the resumable session on a fresh start
- :func:`reconcile`: folds an invocation outcome back into the record
- :func:`assess_cost`: grades the decision once the cost is known

None of these functions touch the filesystem; the orchestrator loads and
persists the record around them.

Examples:
    Decide and reconcile::

        >>> decision = decide(metadata, now=now)
        >>> decision.directive, decision.reason
        (<Directive.FRESH: 'fresh'>, <SessionReason.CACHE_EXPIRED: 'cache expired'>)
        >>> prepared = begin_invocation(metadata, decision)
        >>> updated = reconcile(prepared, decision, outcome, now=now)
        >>> updated.session_improvement_count
        1
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from buildit.lib.metadata import GameMetadata
from buildit.lib.usage import InvocationOutcome

if TYPE_CHECKING:
    from buildit.agent.config import Settings

logger = logging.getLogger(__name__)


class Directive(StrEnum):
    RESUME = "resume"
    FRESH = "fresh"


class SessionReason(StrEnum):
    """Reason code reported with every decision."""

    FIRST_IMPROVEMENT = "first improvement or no previous timestamp"
    NO_SESSION = "no resumable session"
    CACHE_EXPIRED = "cache expired"
    SESSION_IMPROVEMENTS_EXCEEDED = "session improvements exceed threshold"
    CONTEXT_TOO_LARGE = "context size exceeds threshold"
    LAST_COST_TOO_HIGH = "last improvement cost exceeds threshold"
    CONTEXT_STILL_VALUABLE = "context still valuable"


class SessionThresholds(BaseModel):
    """Tunable limits beyond which a session is not worth resuming."""

    model_config = ConfigDict(frozen=True)

    ttl_minutes: float = Field(
        default=5.0, description="Prompt cache lifetime assumed upstream"
    )
    max_session_improvements: int = Field(
        default=5, description="Improvements per session before resetting"
    )
    max_context_tokens: int = Field(
        default=30_000, description="Reusable context ceiling in tokens"
    )
    max_last_cost_usd: float = Field(
        default=0.20, description="Previous improvement cost ceiling in USD"
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> SessionThresholds:
        return cls(
            ttl_minutes=settings.session_ttl_minutes,
            max_session_improvements=settings.max_session_improvements,
            max_context_tokens=settings.max_context_tokens,
            max_last_cost_usd=settings.max_last_cost_usd,
        )


class SessionDecision(BaseModel):
    """Outcome of :func:`decide`."""

    model_config = ConfigDict(frozen=True)

    directive: Directive
    reason: SessionReason
    session_token: str | None = Field(
        default=None, description="Token to resume; set only for RESUME"
    )
    minutes_since_last: float | None = None

    @property
    def resume(self) -> bool:
        return self.directive is Directive.RESUME

    def describe(self, metadata: GameMetadata, thresholds: SessionThresholds) -> str:
        """Human-readable explanation for logs."""
        match self.reason:
            case SessionReason.CACHE_EXPIRED:
                return (
                    f"{round(self.minutes_since_last or 0)} minutes since last "
                    f"improvement (cache expired after {thresholds.ttl_minutes:g})"
                )
            case SessionReason.SESSION_IMPROVEMENTS_EXCEEDED:
                return (
                    f"{metadata.session_improvement_count} improvements in session "
                    f"(limit {thresholds.max_session_improvements})"
                )
            case SessionReason.CONTEXT_TOO_LARGE:
                return (
                    f"context size {metadata.context_size} tokens exceeds "
                    f"{thresholds.max_context_tokens}"
                )
            case SessionReason.LAST_COST_TOO_HIGH:
                return (
                    f"last improvement cost ${metadata.last_improvement_cost:.4f} "
                    f"exceeds ${thresholds.max_last_cost_usd:.2f}"
                )
            case _:
                return str(self.reason)


def _minutes_since(then: datetime, now: datetime) -> float:
    if then.tzinfo is None:
        then = then.replace(tzinfo=UTC)
    return (now - then).total_seconds() / 60


def decide(
    metadata: GameMetadata,
    *,
    now: datetime | None = None,
    thresholds: SessionThresholds | None = None,
) -> SessionDecision:
    """Decide whether the next improvement resumes or starts fresh.

    Any single reset condition forces FRESH. The first matching condition
    is reported as the reason. A record with neither a token nor a
    timestamp is reported as a first improvement.

    Args:
        metadata: Current record of the game.
        now: Clock reading (timezone-aware); defaults to the current UTC time.
        thresholds: Limits to apply; defaults to :class:`SessionThresholds`.
    """
    now = now or datetime.now(UTC)
    limits = thresholds or SessionThresholds()

    minutes = (
        _minutes_since(metadata.last_improvement_at, now)
        if metadata.last_improvement_at is not None
        else None
    )

    def fresh(reason: SessionReason) -> SessionDecision:
        return SessionDecision(
            directive=Directive.FRESH, reason=reason, minutes_since_last=minutes
        )

    if minutes is None:
        return fresh(SessionReason.FIRST_IMPROVEMENT)
    if not metadata.session_token:
        return fresh(SessionReason.NO_SESSION)
    if minutes > limits.ttl_minutes:
        return fresh(SessionReason.CACHE_EXPIRED)
    if metadata.session_improvement_count >= limits.max_session_improvements:
        return fresh(SessionReason.SESSION_IMPROVEMENTS_EXCEEDED)
    if metadata.context_size > limits.max_context_tokens:
        return fresh(SessionReason.CONTEXT_TOO_LARGE)
    if metadata.last_improvement_cost > limits.max_last_cost_usd:
        return fresh(SessionReason.LAST_COST_TOO_HIGH)

    return SessionDecision(
        directive=Directive.RESUME,
        reason=SessionReason.CONTEXT_STILL_VALUABLE,
        session_token=metadata.session_token,
        minutes_since_last=minutes,
    )


def begin_invocation(
    metadata: GameMetadata, decision: SessionDecision
) -> GameMetadata:
    """Return the record as it should look while the agent runs.

    A fresh start drops the resumable session so nothing downstream can
    resume it by accident. A resume leaves the record untouched.
    """
    if decision.resume:
        return metadata.model_copy()
    return metadata.model_copy(
        update={"session_token": None, "session_improvement_count": 0}
    )


def reconcile(
    metadata: GameMetadata,
    decision: SessionDecision,
    outcome: InvocationOutcome,
    *,
    now: datetime | None = None,
) -> GameMetadata:
    """Fold a completed invocation into the record.

    Args:
        metadata: The record returned by :func:`begin_invocation`.
        decision: The decision the invocation ran under.
        outcome: What the invocation reported.
        now: Completion time; defaults to the current UTC time.

    Returns:
        A new record; the input is not modified.
    """
    now = now or datetime.now(UTC)
    update: dict[str, object] = {
        "improvement_count": metadata.improvement_count + 1,
        "has_active_session": True,
        "last_improvement_at": now,
        "last_improvement_cost": outcome.total_cost_usd,
    }

    if decision.resume:
        update["session_improvement_count"] = metadata.session_improvement_count + 1
    else:
        update["session_improvement_count"] = 1
        update["session_token"] = outcome.session_id or None

    if outcome.last_cache_read is not None:
        update["context_size"] = outcome.last_cache_read

    return metadata.model_copy(update=update)


# ---------------------------------------------------------------------------
# Cost assessment
# ---------------------------------------------------------------------------

FRESH_EXCELLENT_USD = 0.25
FRESH_GOOD_USD = 0.35


class CostAssessment(StrEnum):
    EXCELLENT = "excellent"
    GOOD = "good"
    HIGH = "high"
    GOOD_REUSE = "good reuse"
    CONSIDER_RESET = "consider reset next time"


def assess_cost(
    decision: SessionDecision,
    cost_usd: float,
    thresholds: SessionThresholds | None = None,
) -> CostAssessment:
    """Grade the decision once its cost is known.

    Fresh starts pay to re-read the game files, so they are held to a
    looser bar than resumed sessions.
    """
    limits = thresholds or SessionThresholds()
    if decision.resume:
        if cost_usd <= limits.max_last_cost_usd:
            return CostAssessment.GOOD_REUSE
        return CostAssessment.CONSIDER_RESET
    if cost_usd < FRESH_EXCELLENT_USD:
        return CostAssessment.EXCELLENT
    if cost_usd < FRESH_GOOD_USD:
        return CostAssessment.GOOD
    return CostAssessment.HIGH
