"""Policy engine implementation.

Maps a validated invocation to AUTO_EXECUTE, REQUIRE_CONFIRMATION or DENY
from the contract's risk tier plus contextual overrides (actor
capabilities, once-per-session tools, per-session rate).
"""

from __future__ import annotations

from collections import OrderedDict, deque
from datetime import datetime, timedelta

from contracts.invocation import Invocation, InvocationStatus
from contracts.policy import PolicyDecision, PolicyEngine, PolicyVerdict
from contracts.settings import PolicySettings
from contracts.tool import RiskTier, ToolContract


class ActionPolicyEngine(PolicyEngine):
    """Concrete policy engine driven by PolicySettings.

    ``decide`` reads no clock: the rate window is measured against the
    invocation's own context timestamp, so identical inputs and history
    give identical decisions.

    Session history lives in two maps ordered by last activity.  Each
    ``record`` evicts sessions from the cold end: rate windows once they
    have slid empty, once-per-session claims after ``session_ttl_seconds``.
    """

    def __init__(self, settings: PolicySettings | None = None) -> None:
        self._settings = settings or PolicySettings()
        # session -> timestamps of decisions inside the rate window
        self._recent: OrderedDict[str, deque[datetime]] = OrderedDict()
        # session -> once-per-session tool -> when it was claimed
        self._claimed: OrderedDict[str, dict[str, datetime]] = OrderedDict()

    @property
    def settings(self) -> PolicySettings:
        return self._settings

    # ── decision ────────────────────────────────────────────────────

    def decide(self, contract: ToolContract, invocation: Invocation) -> PolicyDecision:
        # Hard floor: nothing else is consulted.
        if contract.risk_tier == RiskTier.NEVER_AUTO:
            return PolicyDecision(
                verdict=PolicyVerdict.REQUIRE_CONFIRMATION,
                rule="risk_tier.never_auto",
                reason=f"'{contract.name}' is never executed without human approval",
            )
        if contract.risk_tier == RiskTier.CONFIRM:
            return PolicyDecision(
                verdict=PolicyVerdict.REQUIRE_CONFIRMATION,
                rule="risk_tier.confirm",
                reason=f"'{contract.name}' requires reviewer confirmation",
            )

        ctx = invocation.context

        capabilities = self._settings.capabilities
        if capabilities:
            allowed = capabilities.get(ctx.actor_role)
            if allowed is None:
                return PolicyDecision(
                    verdict=PolicyVerdict.DENY,
                    rule="capabilities.role",
                    reason=f"Actor role '{ctx.actor_role}' has no capability grants",
                )
            if contract.category not in allowed:
                return PolicyDecision(
                    verdict=PolicyVerdict.DENY,
                    rule="capabilities.category",
                    reason=(
                        f"Actor role '{ctx.actor_role}' may not use "
                        f"{contract.category.value} tools"
                    ),
                )

        if (
            contract.name in self._settings.once_per_session
            and contract.name in self._claimed.get(ctx.session_id, {})
        ):
            return PolicyDecision(
                verdict=PolicyVerdict.DENY,
                rule="once_per_session",
                reason=(
                    f"'{contract.name}' already ran in this session. "
                    "Use add_internal_note instead for additional context"
                ),
            )

        limit = self._settings.rate_limit
        recent = self._count_recent(ctx.session_id, ctx.timestamp)
        if recent >= limit.max_invocations:
            return PolicyDecision(
                verdict=PolicyVerdict.REQUIRE_CONFIRMATION,
                rule="rate_limit",
                reason=(
                    f"Session made {recent} tool calls in the last "
                    f"{limit.window_seconds}s (limit {limit.max_invocations})"
                ),
            )

        return PolicyDecision(
            verdict=PolicyVerdict.AUTO_EXECUTE,
            rule="risk_tier.auto",
            reason=f"'{contract.name}' is cleared for automatic execution",
        )

    # ── session history ─────────────────────────────────────────────

    def record(self, invocation: Invocation, decision: PolicyDecision) -> None:
        """Count the decision and claim once-per-session tools it cleared.

        Must run in the same synchronous step as ``decide`` so concurrent
        calls in one session see each other.
        """
        ctx = invocation.context
        window_seconds = self._settings.rate_limit.window_seconds

        window = self._recent.pop(ctx.session_id, None) or deque()
        window.append(ctx.timestamp)
        horizon = max(window) - timedelta(seconds=window_seconds)
        while window and window[0] <= horizon:
            window.popleft()
        self._recent[ctx.session_id] = window

        if (
            decision.verdict == PolicyVerdict.AUTO_EXECUTE
            and invocation.tool_name in self._settings.once_per_session
        ):
            claims = self._claimed.pop(ctx.session_id, None) or {}
            claims[invocation.tool_name] = ctx.timestamp
            self._claimed[ctx.session_id] = claims

        self._evict(ctx.timestamp)

    def settle(self, invocation: Invocation, decision: PolicyDecision) -> None:
        """Give back the once-per-session claim of a call that did not execute."""
        if decision.verdict != PolicyVerdict.AUTO_EXECUTE:
            return
        if invocation.status == InvocationStatus.EXECUTED:
            return
        claims = self._claimed.get(invocation.context.session_id)
        if claims is None:
            return
        claims.pop(invocation.tool_name, None)
        if not claims:
            del self._claimed[invocation.context.session_id]

    def forget_session(self, session_id: str) -> None:
        """Drop history for a finished session."""
        self._recent.pop(session_id, None)
        self._claimed.pop(session_id, None)

    def tracked_sessions(self) -> set[str]:
        return set(self._recent) | set(self._claimed)

    def _count_recent(self, session_id: str, at: datetime) -> int:
        window = self._recent.get(session_id)
        if not window:
            return 0
        start = at - timedelta(seconds=self._settings.rate_limit.window_seconds)
        return sum(1 for ts in window if start < ts <= at)

    def _evict(self, now: datetime) -> None:
        window_horizon = now - timedelta(seconds=self._settings.rate_limit.window_seconds)
        while self._recent:
            session_id, window = next(iter(self._recent.items()))
            if window and max(window) > window_horizon:
                break
            del self._recent[session_id]

        claim_horizon = now - timedelta(seconds=self._settings.session_ttl_seconds)
        while self._claimed:
            session_id, claims = next(iter(self._claimed.items()))
            if claims and max(claims.values()) > claim_horizon:
                break
            del self._claimed[session_id]
