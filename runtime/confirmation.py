"""Confirmation workflow: reviewer decisions on parked invocations.

Invocations wait in AWAITING_CONFIRMATION until a reviewer approves or
rejects them, or until their confirmation expires.  A confirmation is
closed synchronously before anything is awaited, so two reviewers racing
on the same invocation cannot both act on it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime

from contracts.confirmation import ConfirmationDecision, PendingConfirmation
from contracts.errors import NotPendingError
from contracts.invocation import ActorKind, Invocation, InvocationStatus
from runtime.execution import ExecutionStage
from runtime.ledger import InvocationLedger, utcnow
from runtime.locks import EntityLockManager
from runtime.log import get_logger
from runtime.registry import ToolRegistry

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"
REASON_APPROVED = "Approved"
REASON_REJECTED = "Rejected"
REASON_EXPIRED = "Expired"


class ConfirmationWorkflow:
    def __init__(
        self,
        registry: ToolRegistry,
        ledger: InvocationLedger,
        execution: ExecutionStage,
        locks: EntityLockManager,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._registry = registry
        self._ledger = ledger
        self._execution = execution
        self._locks = locks
        self._clock = clock

    async def resolve(
        self,
        invocation_id: str,
        reviewer_id: str,
        decision: ConfirmationDecision | str,
        notes: str = "",
    ) -> Invocation:
        """Apply a reviewer decision to a parked invocation.

        Raises ``InvocationNotFoundError`` for unknown ids and
        ``NotPendingError`` when the invocation is no longer awaiting
        review (already resolved, expired, or never parked).
        """
        decision = ConfirmationDecision(decision)
        if decision == ConfirmationDecision.EXPIRED:
            raise ValueError("EXPIRED is assigned by the expiry sweep, not by reviewers")

        invocation = self._ledger.get(invocation_id)
        confirmation = self._ledger.confirmation(invocation_id)
        if (
            invocation.status != InvocationStatus.AWAITING_CONFIRMATION
            or confirmation is None
            or not confirmation.is_open
        ):
            raise NotPendingError(invocation_id, invocation.status.value)

        now = self._clock()
        if confirmation.is_stale(now):
            # Past its deadline but not yet swept: expiry wins.
            self._expire(invocation, now)
            raise NotPendingError(invocation_id, invocation.status.value)

        contract = self._registry.get(invocation.tool_name)
        self._ledger.close_confirmation(
            invocation_id, decision, reviewer=reviewer_id, notes=notes, at=now
        )
        log = logger.bind(
            invocation_id=invocation_id,
            tool_name=invocation.tool_name,
            reviewer=reviewer_id,
        )
        log.info("confirmation.resolved", decision=decision.value)

        if decision == ConfirmationDecision.REJECTED:
            self._ledger.transition(
                invocation,
                InvocationStatus.DENIED,
                actor=reviewer_id,
                actor_kind=ActorKind.REVIEWER,
                reason=REASON_REJECTED,
                detail={"notes": notes} if notes else {},
            )
            return invocation.model_copy(deep=True)

        entity_id = invocation.context.entity_id if contract.mutates_state else None
        async with self._locks.hold(entity_id):
            await self._execution.run(
                contract,
                invocation,
                actor=reviewer_id,
                actor_kind=ActorKind.REVIEWER,
                reason=REASON_APPROVED,
            )
        return invocation.model_copy(deep=True)

    async def expire_stale(self, now: datetime | None = None) -> list[Invocation]:
        """Deny every open confirmation whose deadline has passed."""
        now = now or self._clock()
        expired: list[Invocation] = []
        for confirmation in self._ledger.open_confirmations():
            if not confirmation.is_stale(now):
                continue
            invocation = self._ledger.get(confirmation.invocation_id)
            self._expire(invocation, now)
            expired.append(invocation.model_copy(deep=True))
        if expired:
            logger.info("confirmation.expired", count=len(expired))
        return expired

    def list_pending(self) -> list[PendingConfirmation]:
        return [c.model_copy() for c in self._ledger.open_confirmations()]

    def get_confirmation(self, invocation_id: str) -> PendingConfirmation | None:
        confirmation = self._ledger.confirmation(invocation_id)
        return confirmation.model_copy() if confirmation else None

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Call ``expire_stale`` every *interval_seconds* until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            await self.expire_stale()

    # ── internal ────────────────────────────────────────────────────

    def _expire(self, invocation: Invocation, now: datetime) -> None:
        self._ledger.close_confirmation(
            invocation.id, ConfirmationDecision.EXPIRED, reviewer=None, at=now
        )
        self._ledger.transition(
            invocation,
            InvocationStatus.DENIED,
            actor=SYSTEM_ACTOR,
            actor_kind=ActorKind.SYSTEM,
            reason=REASON_EXPIRED,
        )
