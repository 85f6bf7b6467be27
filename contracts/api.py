"""HTTP request/response contracts for the ActionGate server."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from contracts.audit import AuditEntry
from contracts.confirmation import ConfirmationDecision, PendingConfirmation
from contracts.invocation import Invocation, InvocationContext


class InvokeRequest(BaseModel):
    tool_name: str
    # Raw model output: a JSON object or a JSON-encoded string.
    arguments: Any = None
    context: InvocationContext


class ResolveRequest(BaseModel):
    reviewer_id: str = Field(min_length=1)
    decision: ConfirmationDecision
    notes: str = ""


class ExpireRequest(BaseModel):
    now: datetime | None = None  # sweep as of this instant; defaults to the clock


class PendingList(BaseModel):
    confirmations: list[PendingConfirmation]
    total: int


class ExpiredList(BaseModel):
    invocations: list[Invocation]
    total: int


class AuditPage(BaseModel):
    entries: list[AuditEntry]
    total: int
