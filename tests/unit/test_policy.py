"""Unit tests for the policy engine."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from contracts.invocation import Invocation, InvocationContext, InvocationStatus
from contracts.policy import PolicyDecision, PolicyVerdict
from contracts.settings import PolicySettings, RateLimitPolicy
from contracts.tool import ToolCategory, ToolContract
from runtime.catalog import (
    ADD_INTERNAL_NOTE,
    EXTEND_TRIAL,
    PROCESS_REFUND_REQUEST,
    SEARCH_KNOWLEDGE_BASE,
    SEND_RESPONSE,
    UPDATE_TICKET_STATUS,
)
from runtime.policy import ActionPolicyEngine

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


# ── helpers ─────────────────────────────────────────────────────────


def _invocation(
    contract: ToolContract,
    *,
    session_id: str = "sess-1",
    role: str = "agent",
    at: datetime = T0,
    status: InvocationStatus = InvocationStatus.VALIDATED,
) -> Invocation:
    return Invocation(
        id=f"inv-{contract.name}-{at.timestamp()}",
        tool_name=contract.name,
        arguments={},
        context=InvocationContext(
            session_id=session_id, entity_id="T-1", actor_role=role, timestamp=at
        ),
        status=status,
    )


def _auto() -> PolicyDecision:
    return PolicyDecision(verdict=PolicyVerdict.AUTO_EXECUTE, rule="risk_tier.auto")


# ── risk tiers ──────────────────────────────────────────────────────


class TestRiskTiers:
    def test_auto_tool_auto_executes(self) -> None:
        engine = ActionPolicyEngine()
        decision = engine.decide(UPDATE_TICKET_STATUS, _invocation(UPDATE_TICKET_STATUS))
        assert decision.verdict == PolicyVerdict.AUTO_EXECUTE
        assert decision.rule == "risk_tier.auto"

    def test_confirm_tool_requires_confirmation(self) -> None:
        engine = ActionPolicyEngine()
        decision = engine.decide(EXTEND_TRIAL, _invocation(EXTEND_TRIAL))
        assert decision.verdict == PolicyVerdict.REQUIRE_CONFIRMATION
        assert decision.rule == "risk_tier.confirm"

    @pytest.mark.parametrize("role", ["agent", "supervisor", "admin", "unknown"])
    def test_never_auto_never_auto_executes(self, role: str) -> None:
        engine = ActionPolicyEngine(
            PolicySettings(
                capabilities={"admin": list(ToolCategory)},
                rate_limit=RateLimitPolicy(max_invocations=1000),
            )
        )
        for i in range(5):
            invocation = _invocation(
                PROCESS_REFUND_REQUEST, role=role, at=T0 + timedelta(seconds=i)
            )
            decision = engine.decide(PROCESS_REFUND_REQUEST, invocation)
            assert decision.verdict == PolicyVerdict.REQUIRE_CONFIRMATION
            assert decision.rule == "risk_tier.never_auto"
            engine.record(invocation, decision)


# ── capabilities ────────────────────────────────────────────────────


class TestCapabilities:
    def test_empty_table_is_unrestricted(self) -> None:
        engine = ActionPolicyEngine(PolicySettings(capabilities={}))
        decision = engine.decide(ADD_INTERNAL_NOTE, _invocation(ADD_INTERNAL_NOTE, role="intern"))
        assert decision.verdict == PolicyVerdict.AUTO_EXECUTE

    def test_role_without_grants_denied(self) -> None:
        engine = ActionPolicyEngine(
            PolicySettings(capabilities={"agent": [ToolCategory.SYSTEM]})
        )
        decision = engine.decide(ADD_INTERNAL_NOTE, _invocation(ADD_INTERNAL_NOTE, role="intern"))
        assert decision.verdict == PolicyVerdict.DENY
        assert decision.rule == "capabilities.role"

    def test_category_not_granted_denied(self) -> None:
        engine = ActionPolicyEngine(
            PolicySettings(capabilities={"agent": [ToolCategory.KNOWLEDGE]})
        )
        decision = engine.decide(UPDATE_TICKET_STATUS, _invocation(UPDATE_TICKET_STATUS))
        assert decision.verdict == PolicyVerdict.DENY
        assert decision.rule == "capabilities.category"
        assert "ticket-management" in decision.reason

    def test_granted_category_allowed(self) -> None:
        engine = ActionPolicyEngine(
            PolicySettings(capabilities={"agent": [ToolCategory.KNOWLEDGE]})
        )
        decision = engine.decide(SEARCH_KNOWLEDGE_BASE, _invocation(SEARCH_KNOWLEDGE_BASE))
        assert decision.verdict == PolicyVerdict.AUTO_EXECUTE


# ── once per session ────────────────────────────────────────────────


class TestOncePerSession:
    def test_second_send_response_denied(self) -> None:
        engine = ActionPolicyEngine()
        first = _invocation(SEND_RESPONSE, status=InvocationStatus.EXECUTED)
        engine.record(first, _auto())

        second = _invocation(SEND_RESPONSE, at=T0 + timedelta(seconds=5))
        decision = engine.decide(SEND_RESPONSE, second)
        assert decision.verdict == PolicyVerdict.DENY
        assert decision.rule == "once_per_session"
        assert "add_internal_note" in decision.reason

    def test_claimed_when_cleared(self) -> None:
        engine = ActionPolicyEngine()
        first = _invocation(SEND_RESPONSE)
        engine.record(first, engine.decide(SEND_RESPONSE, first))

        # first call still in flight
        second = _invocation(SEND_RESPONSE, at=T0 + timedelta(seconds=1))
        assert engine.decide(SEND_RESPONSE, second).verdict == PolicyVerdict.DENY

    def test_failed_send_releases_claim(self) -> None:
        engine = ActionPolicyEngine()
        failed = _invocation(SEND_RESPONSE, status=InvocationStatus.FAILED)
        engine.record(failed, _auto())
        engine.settle(failed, _auto())
        decision = engine.decide(SEND_RESPONSE, _invocation(SEND_RESPONSE))
        assert decision.verdict == PolicyVerdict.AUTO_EXECUTE
        assert engine.tracked_sessions() == {"sess-1"}

    def test_executed_send_keeps_claim(self) -> None:
        engine = ActionPolicyEngine()
        done = _invocation(SEND_RESPONSE, status=InvocationStatus.EXECUTED)
        engine.record(done, _auto())
        engine.settle(done, _auto())
        decision = engine.decide(SEND_RESPONSE, _invocation(SEND_RESPONSE))
        assert decision.verdict == PolicyVerdict.DENY

    def test_other_session_unaffected(self) -> None:
        engine = ActionPolicyEngine()
        engine.record(_invocation(SEND_RESPONSE, status=InvocationStatus.EXECUTED), _auto())
        decision = engine.decide(SEND_RESPONSE, _invocation(SEND_RESPONSE, session_id="sess-2"))
        assert decision.verdict == PolicyVerdict.AUTO_EXECUTE

    def test_forget_session_clears_history(self) -> None:
        engine = ActionPolicyEngine()
        engine.record(_invocation(SEND_RESPONSE, status=InvocationStatus.EXECUTED), _auto())
        engine.forget_session("sess-1")
        decision = engine.decide(SEND_RESPONSE, _invocation(SEND_RESPONSE))
        assert decision.verdict == PolicyVerdict.AUTO_EXECUTE


# ── rate limit ──────────────────────────────────────────────────────


class TestRateLimit:
    def _engine(self) -> ActionPolicyEngine:
        return ActionPolicyEngine(
            PolicySettings(rate_limit=RateLimitPolicy(max_invocations=3, window_seconds=60))
        )

    def test_burst_escalates_to_confirmation(self) -> None:
        engine = self._engine()
        for i in range(3):
            invocation = _invocation(ADD_INTERNAL_NOTE, at=T0 + timedelta(seconds=i))
            decision = engine.decide(ADD_INTERNAL_NOTE, invocation)
            assert decision.verdict == PolicyVerdict.AUTO_EXECUTE
            engine.record(invocation, decision)

        fourth = _invocation(ADD_INTERNAL_NOTE, at=T0 + timedelta(seconds=3))
        decision = engine.decide(ADD_INTERNAL_NOTE, fourth)
        assert decision.verdict == PolicyVerdict.REQUIRE_CONFIRMATION
        assert decision.rule == "rate_limit"

    def test_window_slides(self) -> None:
        engine = self._engine()
        for i in range(3):
            invocation = _invocation(ADD_INTERNAL_NOTE, at=T0 + timedelta(seconds=i))
            engine.record(invocation, engine.decide(ADD_INTERNAL_NOTE, invocation))

        later = _invocation(ADD_INTERNAL_NOTE, at=T0 + timedelta(seconds=90))
        assert engine.decide(ADD_INTERNAL_NOTE, later).verdict == PolicyVerdict.AUTO_EXECUTE

    def test_capability_denial_checked_before_rate(self) -> None:
        engine = ActionPolicyEngine(
            PolicySettings(
                capabilities={"agent": [ToolCategory.KNOWLEDGE]},
                rate_limit=RateLimitPolicy(max_invocations=1),
            )
        )
        engine.record(_invocation(SEARCH_KNOWLEDGE_BASE), _auto())
        decision = engine.decide(
            ADD_INTERNAL_NOTE, _invocation(ADD_INTERNAL_NOTE, at=T0 + timedelta(seconds=1))
        )
        assert decision.verdict == PolicyVerdict.DENY


class TestDeterminism:
    def test_same_inputs_same_decision(self) -> None:
        engine = ActionPolicyEngine()
        invocation = _invocation(UPDATE_TICKET_STATUS)
        first = engine.decide(UPDATE_TICKET_STATUS, invocation)
        second = engine.decide(UPDATE_TICKET_STATUS, invocation)
        assert first == second


# ── history eviction ────────────────────────────────────────────────


class TestEviction:
    def _engine(self) -> ActionPolicyEngine:
        return ActionPolicyEngine(
            PolicySettings(
                rate_limit=RateLimitPolicy(max_invocations=5, window_seconds=60),
                session_ttl_seconds=3600,
            )
        )

    def test_idle_rate_windows_dropped(self) -> None:
        engine = self._engine()
        for i in range(50):
            invocation = _invocation(ADD_INTERNAL_NOTE, session_id=f"s-{i}")
            engine.record(invocation, _auto())
        assert len(engine.tracked_sessions()) == 50

        later = _invocation(ADD_INTERNAL_NOTE, session_id="s-late", at=T0 + timedelta(minutes=5))
        engine.record(later, _auto())
        assert engine.tracked_sessions() == {"s-late"}

    def test_claims_outlive_window_until_ttl(self) -> None:
        engine = self._engine()
        sent = _invocation(SEND_RESPONSE, session_id="s-1", status=InvocationStatus.EXECUTED)
        engine.record(sent, _auto())

        engine.record(
            _invocation(ADD_INTERNAL_NOTE, session_id="s-2", at=T0 + timedelta(minutes=30)),
            _auto(),
        )
        assert "s-1" in engine.tracked_sessions()
        again = _invocation(SEND_RESPONSE, session_id="s-1", at=T0 + timedelta(minutes=30))
        assert engine.decide(SEND_RESPONSE, again).verdict == PolicyVerdict.DENY

        engine.record(
            _invocation(ADD_INTERNAL_NOTE, session_id="s-2", at=T0 + timedelta(hours=2)),
            _auto(),
        )
        assert engine.tracked_sessions() == {"s-2"}

    def test_active_session_kept(self) -> None:
        engine = self._engine()
        for i in range(3):
            at = T0 + timedelta(seconds=45 * i)
            engine.record(_invocation(ADD_INTERNAL_NOTE, session_id="busy", at=at), _auto())
        assert engine.tracked_sessions() == {"busy"}
