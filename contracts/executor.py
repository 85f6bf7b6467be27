"""Executor contracts.

The executor performs the actual business side effect of a tool (send a
message, mutate a ticket, call the payment provider).  ActionGate only
decides *whether* and *when* it runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from contracts.invocation import InvocationContext


class ExecutionError(BaseModel):
    retryable: bool
    message: str


class ExecutionOutcome(BaseModel):
    ok: bool
    result: Any = None
    error: ExecutionError | None = None

    @classmethod
    def success(cls, result: Any = None) -> ExecutionOutcome:
        return cls(ok=True, result=result)

    @classmethod
    def failure(cls, message: str, *, retryable: bool) -> ExecutionOutcome:
        return cls(ok=False, error=ExecutionError(retryable=retryable, message=message))


class Executor(ABC):
    """Interface for the collaborator that carries out tool side effects."""

    @abstractmethod
    async def execute(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        context: InvocationContext,
    ) -> ExecutionOutcome:
        """Run the tool.  Failures are returned, not raised."""
        ...
