"""Action dispatcher: the single entry point for agent tool calls.

Pipeline per call: resolve the contract, validate the arguments, ask the
policy engine, then execute, park for review, or deny.  Every step after
resolution goes through the ledger, so each state has an audit record.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from contracts.confirmation import PendingConfirmation
from contracts.executor import Executor
from contracts.invocation import (
    ActorKind,
    Invocation,
    InvocationContext,
    InvocationResult,
    InvocationStatus,
    Outcome,
)
from contracts.policy import PolicyDecision, PolicyEngine, PolicyVerdict
from contracts.tool import ToolContract
from runtime.execution import ExecutionStage
from runtime.ledger import InvocationLedger, utcnow
from runtime.locks import EntityLockManager
from runtime.log import get_logger
from runtime.registry import ToolRegistry

logger = get_logger(__name__)

POLICY_ACTOR = "policy"


def new_invocation_id() -> str:
    return f"inv_{uuid.uuid4().hex}"


class ActionDispatcher:
    """Routes agent tool calls through validation, policy and execution."""

    def __init__(
        self,
        registry: ToolRegistry,
        policy: PolicyEngine,
        executor: Executor,
        ledger: InvocationLedger,
        *,
        locks: EntityLockManager | None = None,
        confirmation_ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_invocation_id,
    ) -> None:
        self._registry = registry
        self._policy = policy
        self._ledger = ledger
        self._locks = locks or EntityLockManager()
        self._execution = ExecutionStage(executor, ledger)
        self._confirmation_ttl = confirmation_ttl
        self._clock = clock
        self._id_factory = id_factory

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def ledger(self) -> InvocationLedger:
        return self._ledger

    @property
    def locks(self) -> EntityLockManager:
        return self._locks

    @property
    def execution(self) -> ExecutionStage:
        return self._execution

    async def invoke(
        self,
        tool_name: str,
        raw_arguments: Any,
        context: InvocationContext,
    ) -> InvocationResult:
        """Dispatch one tool call and report how it ended (or that it is parked)."""
        log = logger.bind(tool_name=tool_name, session_id=context.session_id)

        contract = self._registry.find(tool_name)
        if contract is None:
            log.warning("dispatch.unknown_tool")
            return InvocationResult(
                outcome=Outcome.UNKNOWN_TOOL,
                tool_name=tool_name,
                reason=f"Unknown tool: {tool_name}",
            )

        now = self._clock()
        invocation = Invocation(
            id=self._id_factory(),
            tool_name=tool_name,
            raw_arguments=raw_arguments,
            context=context,
            created_at=now,
            updated_at=now,
        )
        log = log.bind(invocation_id=invocation.id)
        self._ledger.create(invocation, actor=context.actor)

        # ── validation ──────────────────────────────────────────────
        validation = self._registry.validator(tool_name).validate(raw_arguments)
        if not validation.ok:
            feedback = validation.feedback()
            log.info("dispatch.validation_failed", violations=len(validation.violations))
            self._ledger.transition(
                invocation,
                InvocationStatus.REJECTED,
                actor=context.actor,
                actor_kind=ActorKind.AGENT,
                reason=feedback,
                detail={"violations": [v.model_dump() for v in validation.violations]},
            )
            return InvocationResult(
                outcome=Outcome.VALIDATION_ERROR,
                tool_name=tool_name,
                invocation_id=invocation.id,
                violations=validation.violations,
                reason=feedback,
            )

        self._ledger.transition(
            invocation,
            InvocationStatus.VALIDATED,
            actor=context.actor,
            actor_kind=ActorKind.AGENT,
            reason="Arguments conform to the tool schema",
            arguments=validation.arguments,
        )

        # ── policy ──────────────────────────────────────────────────
        # decide and record with no await in between: concurrent calls in
        # one session must see each other
        decision = self._policy.decide(contract, invocation)
        self._policy.record(invocation, decision)
        invocation.decision = decision
        try:
            return await self._route(contract, invocation, decision)
        finally:
            self._policy.settle(invocation, decision)

    def get_invocation(self, invocation_id: str) -> Invocation:
        """Snapshot of a stored invocation; raises InvocationNotFoundError."""
        return self._ledger.get(invocation_id).model_copy(deep=True)

    # ── routing ─────────────────────────────────────────────────────

    async def _route(
        self,
        contract: ToolContract,
        invocation: Invocation,
        decision: PolicyDecision,
    ) -> InvocationResult:
        log = logger.bind(
            invocation_id=invocation.id,
            tool_name=contract.name,
            session_id=invocation.context.session_id,
            rule=decision.rule,
        )

        if decision.verdict == PolicyVerdict.DENY:
            log.warning("dispatch.denied", reason=decision.reason)
            self._ledger.transition(
                invocation,
                InvocationStatus.DENIED,
                actor=POLICY_ACTOR,
                actor_kind=ActorKind.SYSTEM,
                reason=decision.reason,
                detail={"rule": decision.rule},
            )
            return InvocationResult(
                outcome=Outcome.DENIED,
                tool_name=contract.name,
                invocation_id=invocation.id,
                reason=decision.reason,
            )

        entity_id = invocation.context.entity_id if contract.mutates_state else None
        async with self._locks.hold(entity_id):
            if decision.verdict == PolicyVerdict.AUTO_EXECUTE:
                await self._execution.run(
                    contract,
                    invocation,
                    actor=invocation.context.actor,
                    actor_kind=ActorKind.AGENT,
                    reason=decision.reason,
                )
                return result_for(invocation)

            now = self._clock()
            confirmation = PendingConfirmation(
                invocation_id=invocation.id,
                tool_name=contract.name,
                entity_id=invocation.context.entity_id,
                reason=decision.reason,
                requested_at=now,
                expires_at=now + self._confirmation_ttl,
            )
            self._ledger.park(
                invocation,
                confirmation,
                actor=POLICY_ACTOR,
                actor_kind=ActorKind.SYSTEM,
                reason=decision.reason,
                detail={
                    "rule": decision.rule,
                    "expires_at": confirmation.expires_at.isoformat(),
                },
            )
        log.info("dispatch.awaiting_confirmation", expires_at=confirmation.expires_at.isoformat())
        return InvocationResult(
            outcome=Outcome.PENDING,
            tool_name=contract.name,
            invocation_id=invocation.id,
            reason=decision.reason,
            expires_at=confirmation.expires_at,
        )


def result_for(invocation: Invocation) -> InvocationResult:
    """Agent-facing result for an invocation that went through execution."""
    if invocation.status == InvocationStatus.EXECUTED:
        return InvocationResult(
            outcome=Outcome.EXECUTED,
            tool_name=invocation.tool_name,
            invocation_id=invocation.id,
            reason=invocation.reason,
            result=invocation.result,
        )
    error = invocation.error
    return InvocationResult(
        outcome=Outcome.FAILED,
        tool_name=invocation.tool_name,
        invocation_id=invocation.id,
        reason=error.message if error else invocation.reason,
        retryable=error.retryable if error else False,
    )
