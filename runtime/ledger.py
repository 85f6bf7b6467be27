"""Invocation ledger: the only place invocation state changes.

Each transition is checked against the state machine and written to the
audit log *before* the in-memory invocation changes, so no caller can
observe a state that has no audit record.  All methods are synchronous;
callers on the event loop never interleave inside a commit.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from contracts.audit import AuditEntry, AuditLogger
from contracts.confirmation import ConfirmationDecision, PendingConfirmation
from contracts.errors import IllegalTransitionError, InvocationNotFoundError
from contracts.invocation import ActorKind, Invocation, InvocationStatus, can_transition
from runtime.log import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvocationLedger:
    """In-memory invocation store that commits transitions with their audit entries."""

    def __init__(self, audit: AuditLogger, clock: Callable[[], datetime] = utcnow) -> None:
        self._audit = audit
        self._clock = clock
        self._invocations: dict[str, Invocation] = {}
        self._confirmations: dict[str, PendingConfirmation] = {}

    @property
    def audit(self) -> AuditLogger:
        return self._audit

    # ── lifecycle ───────────────────────────────────────────────────

    def create(self, invocation: Invocation, *, actor: str, reason: str = "") -> Invocation:
        """Persist a new invocation in PENDING_VALIDATION."""
        if invocation.id in self._invocations:
            raise IllegalTransitionError(
                invocation.id, invocation.status.value, InvocationStatus.PENDING_VALIDATION.value
            )
        self._commit(
            invocation,
            None,
            InvocationStatus.PENDING_VALIDATION,
            actor=actor,
            actor_kind=ActorKind.AGENT,
            reason=reason or "Tool call received",
            detail={},
        )
        self._invocations[invocation.id] = invocation
        return invocation

    def transition(
        self,
        invocation: Invocation,
        to_status: InvocationStatus,
        *,
        actor: str,
        actor_kind: ActorKind,
        reason: str = "",
        detail: dict[str, Any] | None = None,
        **changes: Any,
    ) -> Invocation:
        """Move *invocation* to *to_status*, applying *changes* to its fields."""
        if self._invocations.get(invocation.id) is not invocation:
            raise InvocationNotFoundError(invocation.id)
        self._commit(
            invocation,
            invocation.status,
            to_status,
            actor=actor,
            actor_kind=actor_kind,
            reason=reason,
            detail=detail or {},
        )
        for name, value in changes.items():
            setattr(invocation, name, value)
        return invocation

    def park(
        self,
        invocation: Invocation,
        confirmation: PendingConfirmation,
        *,
        actor: str,
        actor_kind: ActorKind,
        reason: str = "",
        detail: dict[str, Any] | None = None,
    ) -> Invocation:
        """Move to AWAITING_CONFIRMATION and open its confirmation together."""
        existing = self._confirmations.get(invocation.id)
        if existing is not None and existing.is_open:
            raise IllegalTransitionError(
                invocation.id,
                invocation.status.value,
                InvocationStatus.AWAITING_CONFIRMATION.value,
            )
        self.transition(
            invocation,
            InvocationStatus.AWAITING_CONFIRMATION,
            actor=actor,
            actor_kind=actor_kind,
            reason=reason,
            detail=detail,
        )
        self._confirmations[invocation.id] = confirmation
        return invocation

    def close_confirmation(
        self,
        invocation_id: str,
        decision: ConfirmationDecision,
        *,
        reviewer: str | None,
        notes: str = "",
        at: datetime | None = None,
    ) -> PendingConfirmation:
        confirmation = self._confirmations[invocation_id]
        closed = confirmation.model_copy(
            update={
                "decision": decision,
                "reviewer": reviewer,
                "notes": notes,
                "resolved_at": at or self._clock(),
            }
        )
        self._confirmations[invocation_id] = closed
        return closed

    # ── reads ───────────────────────────────────────────────────────

    def get(self, invocation_id: str) -> Invocation:
        try:
            return self._invocations[invocation_id]
        except KeyError:
            raise InvocationNotFoundError(invocation_id) from None

    def find(self, invocation_id: str) -> Invocation | None:
        return self._invocations.get(invocation_id)

    def confirmation(self, invocation_id: str) -> PendingConfirmation | None:
        return self._confirmations.get(invocation_id)

    def open_confirmations(self) -> list[PendingConfirmation]:
        """Open confirmations, oldest request first."""
        return sorted(
            (c for c in self._confirmations.values() if c.is_open),
            key=lambda c: c.requested_at,
        )

    def __len__(self) -> int:
        return len(self._invocations)

    # ── internal ────────────────────────────────────────────────────

    def _commit(
        self,
        invocation: Invocation,
        from_status: InvocationStatus | None,
        to_status: InvocationStatus,
        *,
        actor: str,
        actor_kind: ActorKind,
        reason: str,
        detail: dict[str, Any],
    ) -> None:
        if not can_transition(from_status, to_status):
            raise IllegalTransitionError(
                invocation.id, from_status.value if from_status else None, to_status.value
            )
        ts = self._clock()
        self._audit.log(
            AuditEntry(
                ts=ts,
                invocation_id=invocation.id,
                tool_name=invocation.tool_name,
                from_status=from_status,
                to_status=to_status,
                actor=actor,
                actor_kind=actor_kind,
                reason=reason,
                detail=detail,
            )
        )
        invocation.status = to_status
        invocation.updated_at = ts
        if reason:
            invocation.reason = reason
        logger.info(
            "invocation.transition",
            invocation_id=invocation.id,
            tool_name=invocation.tool_name,
            session_id=invocation.context.session_id,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value,
            actor=actor,
        )
