"""Invocation contracts: one runtime attempt to call a tool.

The lifecycle is an explicit finite-state machine.  Only the transitions
listed in ``TRANSITIONS`` are legal; terminal states never change again.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from contracts.executor import ExecutionError
from contracts.policy import PolicyDecision
from contracts.validation import Violation


class InvocationStatus(str, Enum):
    PENDING_VALIDATION = "PENDING_VALIDATION"
    VALIDATED = "VALIDATED"
    REJECTED = "REJECTED"
    EXECUTED = "EXECUTED"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    DENIED = "DENIED"
    FAILED = "FAILED"


# None stands for "not yet created".
TRANSITIONS: dict[InvocationStatus | None, frozenset[InvocationStatus]] = {
    None: frozenset({InvocationStatus.PENDING_VALIDATION}),
    InvocationStatus.PENDING_VALIDATION: frozenset(
        {InvocationStatus.VALIDATED, InvocationStatus.REJECTED}
    ),
    InvocationStatus.VALIDATED: frozenset(
        {
            InvocationStatus.EXECUTED,
            InvocationStatus.FAILED,
            InvocationStatus.AWAITING_CONFIRMATION,
            InvocationStatus.DENIED,
        }
    ),
    InvocationStatus.AWAITING_CONFIRMATION: frozenset(
        {InvocationStatus.EXECUTED, InvocationStatus.FAILED, InvocationStatus.DENIED}
    ),
}

TERMINAL_STATUSES = frozenset(
    {
        InvocationStatus.REJECTED,
        InvocationStatus.EXECUTED,
        InvocationStatus.FAILED,
        InvocationStatus.DENIED,
    }
)


def can_transition(from_status: InvocationStatus | None, to_status: InvocationStatus) -> bool:
    return to_status in TRANSITIONS.get(from_status, frozenset())


class ActorKind(str, Enum):
    AGENT = "agent"
    SYSTEM = "system"
    REVIEWER = "reviewer"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvocationContext(BaseModel):
    """Caller-supplied context for one tool call."""

    session_id: str
    entity_id: str | None = None   # ticket id; key for per-entity serialization
    actor: str = "agent"
    actor_role: str = "agent"      # capability lookup key
    timestamp: datetime = Field(default_factory=_utcnow)


class Invocation(BaseModel):
    id: str
    tool_name: str
    raw_arguments: Any = None
    arguments: dict[str, Any] | None = None
    context: InvocationContext
    status: InvocationStatus = InvocationStatus.PENDING_VALIDATION
    decision: PolicyDecision | None = None
    result: Any = None
    error: ExecutionError | None = None
    reason: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


# ── Results handed back to the agent loop ───────────────────────────


class Outcome(str, Enum):
    UNKNOWN_TOOL = "unknown_tool"
    VALIDATION_ERROR = "validation_error"
    DENIED = "denied"
    PENDING = "pending"
    EXECUTED = "executed"
    FAILED = "failed"


class InvocationResult(BaseModel):
    outcome: Outcome
    tool_name: str
    invocation_id: str | None = None
    violations: list[Violation] = []
    reason: str = ""
    result: Any = None
    retryable: bool = False
    expires_at: datetime | None = None

    def to_tool_message(self) -> str:
        """Text fed back to the model as the tool result."""
        if self.outcome == Outcome.UNKNOWN_TOOL:
            return f"Unknown tool: {self.tool_name}"
        if self.outcome == Outcome.VALIDATION_ERROR:
            details = "; ".join(
                f"{v.path}: {v.message}" if v.path else v.message for v in self.violations
            )
            return f"Validation error: {details}. Correct the arguments and try again."
        if self.outcome == Outcome.DENIED:
            return f"Action blocked: {self.reason}"
        if self.outcome == Outcome.PENDING:
            return (
                f"Action queued for human review: {self.reason}. "
                "It has not been carried out yet."
            )
        if self.outcome == Outcome.FAILED:
            hint = " It may succeed if retried." if self.retryable else ""
            return f"Action failed: {self.reason}.{hint}"
        return json.dumps({"success": True, "result": self.result}, default=str)
