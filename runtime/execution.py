"""Execution stage: run the executor for an authorized invocation.

Shared by the dispatcher (auto-executed calls) and the confirmation
workflow (approved calls).  Every executor problem ends as a FAILED
invocation with a retryable flag; nothing raised by the executor escapes.
"""

from __future__ import annotations

import asyncio

from contracts.executor import ExecutionOutcome, Executor
from contracts.invocation import ActorKind, Invocation, InvocationStatus
from contracts.tool import ToolContract
from runtime.ledger import InvocationLedger
from runtime.log import get_logger

logger = get_logger(__name__)


class ExecutionStage:
    def __init__(self, executor: Executor, ledger: InvocationLedger) -> None:
        self._executor = executor
        self._ledger = ledger

    async def run(
        self,
        contract: ToolContract,
        invocation: Invocation,
        *,
        actor: str,
        actor_kind: ActorKind,
        reason: str,
    ) -> Invocation:
        """Execute *invocation* and commit EXECUTED or FAILED."""
        log = logger.bind(
            invocation_id=invocation.id,
            tool_name=contract.name,
            session_id=invocation.context.session_id,
        )
        try:
            outcome = await asyncio.wait_for(
                self._executor.execute(
                    contract.name, dict(invocation.arguments or {}), invocation.context
                ),
                timeout=contract.timeout_seconds,
            )
        except asyncio.TimeoutError:
            log.warning("executor.timeout", timeout_seconds=contract.timeout_seconds)
            outcome = ExecutionOutcome.failure(
                f"Timed out after {contract.timeout_seconds:g}s", retryable=True
            )
        except asyncio.CancelledError:
            self._ledger.transition(
                invocation,
                InvocationStatus.FAILED,
                actor="system",
                actor_kind=ActorKind.SYSTEM,
                reason="Cancelled before the executor finished",
                detail={"retryable": True},
                error=ExecutionOutcome.failure("Cancelled", retryable=True).error,
            )
            raise
        except Exception as exc:
            log.exception("executor.error")
            outcome = ExecutionOutcome.failure(
                f"Executor raised {type(exc).__name__}: {exc}", retryable=False
            )

        if outcome.ok:
            return self._ledger.transition(
                invocation,
                InvocationStatus.EXECUTED,
                actor=actor,
                actor_kind=actor_kind,
                reason=reason,
                result=outcome.result,
            )

        error = outcome.error
        assert error is not None
        log.warning("executor.failed", retryable=error.retryable, message=error.message)
        return self._ledger.transition(
            invocation,
            InvocationStatus.FAILED,
            actor=actor,
            actor_kind=actor_kind,
            reason=error.message,
            detail={"retryable": error.retryable},
            error=error,
        )
