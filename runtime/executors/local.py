"""In-process executor backed by a table of async handlers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from contracts.executor import ExecutionOutcome, Executor
from contracts.invocation import InvocationContext

Handler = Callable[[dict[str, Any], InvocationContext], Awaitable[Any]]


class HandlerExecutor(Executor):
    """Dispatches each tool name to a registered coroutine function.

    A handler may return an ``ExecutionOutcome`` to report a failure with
    its own retryable flag; any other return value is the tool result.
    Exceptions are left to the execution stage.
    """

    def __init__(self, handlers: dict[str, Handler] | None = None) -> None:
        self._handlers: dict[str, Handler] = dict(handlers or {})

    def register(self, tool_name: str, handler: Handler) -> None:
        self._handlers[tool_name] = handler

    def handler(self, tool_name: str) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`register`."""

        def decorator(fn: Handler) -> Handler:
            self.register(tool_name, fn)
            return fn

        return decorator

    def handles(self, tool_name: str) -> bool:
        return tool_name in self._handlers

    async def execute(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        context: InvocationContext,
    ) -> ExecutionOutcome:
        handler = self._handlers.get(tool_name)
        if handler is None:
            return ExecutionOutcome.failure(
                f"No executor handler registered for '{tool_name}'", retryable=False
            )
        result = await handler(arguments, context)
        if isinstance(result, ExecutionOutcome):
            return result
        return ExecutionOutcome.success(result)
