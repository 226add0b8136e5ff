"""Tests for the session reuse decision and reconciliation."""

from datetime import UTC, datetime, timedelta

import pytest

from buildit.lib.metadata import GameMetadata
from buildit.lib.session_policy import (
    CostAssessment,
    Directive,
    SessionDecision,
    SessionReason,
    SessionThresholds,
    assess_cost,
    begin_invocation,
    decide,
    reconcile,
)
from buildit.lib.usage import InvocationOutcome

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _resumable(**overrides: object) -> GameMetadata:
    """A record that resumes under default thresholds."""
    fields: dict[str, object] = {
        "id": "game_1",
        "name": "Test Game",
        "session_token": "abc",
        "last_improvement_at": NOW - timedelta(minutes=3),
        "improvement_count": 2,
        "session_improvement_count": 2,
        "context_size": 5000,
        "last_improvement_cost": 0.05,
    }
    fields.update(overrides)
    return GameMetadata(**fields)


FRESH = SessionDecision(directive=Directive.FRESH, reason=SessionReason.NO_SESSION)
RESUME = SessionDecision(
    directive=Directive.RESUME,
    reason=SessionReason.CONTEXT_STILL_VALUABLE,
    session_token="abc",
)


class TestDecide:
    """Tests for decide()."""

    def test_first_improvement(self) -> None:
        """No token and no timestamp starts fresh as a first improvement."""
        decision = decide(GameMetadata(id="g", name="G"), now=NOW)

        assert decision.directive is Directive.FRESH
        assert decision.reason == "first improvement or no previous timestamp"
        assert decision.session_token is None

    def test_timestamp_without_token(self) -> None:
        """A timestamp alone is not resumable."""
        decision = decide(_resumable(session_token=None), now=NOW)

        assert decision.directive is Directive.FRESH
        assert decision.reason is SessionReason.NO_SESSION

    def test_token_without_timestamp(self) -> None:
        """A token without a timestamp counts as a first improvement."""
        decision = decide(_resumable(last_improvement_at=None), now=NOW)

        assert decision.reason is SessionReason.FIRST_IMPROVEMENT

    def test_warm_small_session_resumes(self) -> None:
        """Recent, small and cheap sessions are resumed with their token."""
        decision = decide(_resumable(), now=NOW)

        assert decision.directive is Directive.RESUME
        assert decision.resume
        assert decision.session_token == "abc"
        assert decision.reason is SessionReason.CONTEXT_STILL_VALUABLE
        assert decision.minutes_since_last == pytest.approx(3.0)

    def test_session_improvement_limit(self) -> None:
        """Five improvements in one session force a fresh start."""
        decision = decide(
            _resumable(improvement_count=5, session_improvement_count=5), now=NOW
        )

        assert decision.directive is Directive.FRESH
        assert decision.reason == "session improvements exceed threshold"

    def test_cache_expired(self) -> None:
        """More than five minutes since the last improvement starts fresh."""
        decision = decide(
            _resumable(last_improvement_at=NOW - timedelta(minutes=5, seconds=1)),
            now=NOW,
        )

        assert decision.reason is SessionReason.CACHE_EXPIRED

    def test_exactly_at_ttl_resumes(self) -> None:
        """The TTL bound is exclusive."""
        decision = decide(
            _resumable(last_improvement_at=NOW - timedelta(minutes=5)), now=NOW
        )

        assert decision.resume

    def test_context_too_large(self) -> None:
        """Context above the token ceiling starts fresh."""
        decision = decide(_resumable(context_size=30_001), now=NOW)

        assert decision.reason is SessionReason.CONTEXT_TOO_LARGE

    def test_context_at_ceiling_resumes(self) -> None:
        """Context equal to the ceiling is still reused."""
        assert decide(_resumable(context_size=30_000), now=NOW).resume

    def test_last_cost_too_high(self) -> None:
        """An expensive previous improvement starts fresh."""
        decision = decide(_resumable(last_improvement_cost=0.21), now=NOW)

        assert decision.reason is SessionReason.LAST_COST_TOO_HIGH

    def test_first_failing_condition_is_reported(self) -> None:
        """Expiry is reported ahead of later conditions."""
        decision = decide(
            _resumable(
                last_improvement_at=NOW - timedelta(minutes=30),
                context_size=100_000,
                last_improvement_cost=1.0,
            ),
            now=NOW,
        )

        assert decision.reason is SessionReason.CACHE_EXPIRED

    def test_naive_timestamp_treated_as_utc(self) -> None:
        """Records written without an offset are read as UTC."""
        naive = (NOW - timedelta(minutes=2)).replace(tzinfo=None)
        decision = decide(_resumable(last_improvement_at=naive), now=NOW)

        assert decision.minutes_since_last == pytest.approx(2.0)

    def test_custom_thresholds(self) -> None:
        """Thresholds are parameters, not constants."""
        limits = SessionThresholds(ttl_minutes=1.0)
        decision = decide(_resumable(), now=NOW, thresholds=limits)

        assert decision.reason is SessionReason.CACHE_EXPIRED

    def test_decide_is_pure(self) -> None:
        """Deciding never mutates the record."""
        metadata = _resumable()
        before = metadata.model_dump()

        decide(metadata, now=NOW)

        assert metadata.model_dump() == before

    def test_describe_mentions_limit(self) -> None:
        """Log explanations include the offending value and its limit."""
        metadata = _resumable(context_size=40_000)
        limits = SessionThresholds()
        decision = decide(metadata, now=NOW, thresholds=limits)

        assert "40000" in decision.describe(metadata, limits)
        assert "30000" in decision.describe(metadata, limits)


class TestBeginInvocation:
    """Tests for begin_invocation()."""

    def test_fresh_clears_session(self) -> None:
        """A fresh start drops the token and the session counter."""
        working = begin_invocation(_resumable(), FRESH)

        assert working.session_token is None
        assert working.session_improvement_count == 0

    def test_fresh_leaves_input_untouched(self) -> None:
        """The caller's record is not modified."""
        metadata = _resumable()

        begin_invocation(metadata, FRESH)

        assert metadata.session_token == "abc"
        assert metadata.session_improvement_count == 2

    def test_resume_keeps_session(self) -> None:
        """A resume leaves token and counter in place."""
        working = begin_invocation(_resumable(), RESUME)

        assert working.session_token == "abc"
        assert working.session_improvement_count == 2


class TestReconcile:
    """Tests for reconcile()."""

    def test_fresh_adopts_new_token(self) -> None:
        """A fresh run records the token it was issued and restarts the counter."""
        working = begin_invocation(_resumable(), FRESH)
        outcome = InvocationOutcome(session_id="new", total_cost_usd=0.3)

        updated = reconcile(working, FRESH, outcome, now=NOW)

        assert updated.session_token == "new"
        assert updated.session_improvement_count == 1
        assert updated.improvement_count == 3
        assert updated.has_active_session
        assert updated.last_improvement_at == NOW
        assert updated.last_improvement_cost == pytest.approx(0.3)

    def test_resume_increments_session_counter(self) -> None:
        """A resumed run keeps the token and counts one more session improvement."""
        outcome = InvocationOutcome(session_id="abc", total_cost_usd=0.04)

        updated = reconcile(_resumable(), RESUME, outcome, now=NOW)

        assert updated.session_token == "abc"
        assert updated.session_improvement_count == 3
        assert updated.improvement_count == 3

    def test_cost_is_overwritten_not_summed(self) -> None:
        """The stored cost describes only the latest improvement."""
        outcome = InvocationOutcome(total_cost_usd=0.01)

        updated = reconcile(_resumable(last_improvement_cost=0.15), RESUME, outcome)

        assert updated.last_improvement_cost == pytest.approx(0.01)

    def test_context_size_from_last_cache_read(self) -> None:
        """The last observed cache-read count becomes the context size."""
        outcome = InvocationOutcome(last_cache_read=12_345)

        updated = reconcile(_resumable(), RESUME, outcome, now=NOW)

        assert updated.context_size == 12_345

    def test_context_size_stays_stale_without_signal(self) -> None:
        """Without any cache-read signal the previous context size is kept."""
        outcome = InvocationOutcome(last_cache_read=None)

        updated = reconcile(_resumable(context_size=5000), RESUME, outcome, now=NOW)

        assert updated.context_size == 5000

    def test_fresh_without_token_is_not_resumable(self) -> None:
        """A fresh run that reported no session id leaves nothing to resume."""
        working = begin_invocation(_resumable(), FRESH)

        updated = reconcile(working, FRESH, InvocationOutcome(), now=NOW)

        assert updated.session_token is None
        assert decide(updated, now=NOW).reason is SessionReason.NO_SESSION

    def test_session_count_never_exceeds_total(self) -> None:
        """Repeated reconciles keep the counters consistent."""
        metadata = GameMetadata(id="g", name="G")
        for i in range(8):
            decision = decide(metadata, now=NOW + timedelta(minutes=i))
            working = begin_invocation(metadata, decision)
            outcome = InvocationOutcome(session_id="s", total_cost_usd=0.01)
            metadata = reconcile(
                working, decision, outcome, now=NOW + timedelta(minutes=i)
            )

            assert 1 <= metadata.session_improvement_count <= metadata.improvement_count
            assert metadata.session_improvement_count <= 5

        assert metadata.improvement_count == 8


class TestAssessCost:
    """Tests for assess_cost()."""

    @pytest.mark.parametrize(
        ("cost", "expected"),
        [
            (0.10, CostAssessment.EXCELLENT),
            (0.30, CostAssessment.GOOD),
            (0.50, CostAssessment.HIGH),
        ],
    )
    def test_fresh_grades(self, cost: float, expected: CostAssessment) -> None:
        """Fresh starts are graded against fixed bands."""
        assert assess_cost(FRESH, cost) is expected

    def test_resume_within_limit(self) -> None:
        """A cheap resume is good reuse."""
        assert assess_cost(RESUME, 0.20) is CostAssessment.GOOD_REUSE

    def test_resume_over_limit(self) -> None:
        """An expensive resume suggests a reset next time."""
        assert assess_cost(RESUME, 0.21) is CostAssessment.CONSIDER_RESET
