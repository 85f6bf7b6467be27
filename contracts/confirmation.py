"""Confirmation contracts: invocations parked for human review."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class ConfirmationDecision(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class PendingConfirmation(BaseModel):
    invocation_id: str
    tool_name: str
    entity_id: str | None = None
    reason: str = ""                 # why review is required
    requested_at: datetime
    expires_at: datetime
    reviewer: str | None = None
    decision: ConfirmationDecision | None = None
    notes: str = ""
    resolved_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.decision is None

    def is_stale(self, now: datetime) -> bool:
        return self.is_open and self.expires_at <= now
