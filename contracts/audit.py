"""Audit logging contracts.

Append-only: one record per Invocation state transition.  The complete
history of an invocation can be rebuilt from its entries alone, ordered by
``(ts, seq)``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from contracts.invocation import ActorKind, InvocationStatus


class AuditEntry(BaseModel):
    """A single audit log record."""

    seq: int = 0
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    invocation_id: str
    tool_name: str = ""
    from_status: InvocationStatus | None = None
    to_status: InvocationStatus
    actor: str = ""
    actor_kind: ActorKind = ActorKind.AGENT
    reason: str = ""
    detail: dict[str, Any] = {}  # policy rule, violations, executor error, ...


class AuditLogger(ABC):
    """Interface for the append-only audit logger."""

    @abstractmethod
    def log(self, entry: AuditEntry) -> AuditEntry:
        """Append an entry and return it with its sequence number assigned."""
        ...

    @abstractmethod
    def query_by_invocation(self, invocation_id: str) -> list[AuditEntry]:
        """Return all entries for a given invocation, oldest first."""
        ...

    @abstractmethod
    def query_by_status(self, status: InvocationStatus, limit: int = 100) -> list[AuditEntry]:
        """Return recent entries that moved an invocation into *status*."""
        ...

    @abstractmethod
    def tail(self, n: int = 20) -> list[AuditEntry]:
        """Return the last N entries."""
        ...
