"""HTTP executor adapter.

Forwards authorized tool calls to a business backend via httpx.  The
backend receives ``POST {base_url}/tools/{tool_name}`` with the validated
arguments and the invocation context.
"""

from __future__ import annotations

from typing import Any

import httpx

from contracts.executor import ExecutionOutcome, Executor
from contracts.invocation import InvocationContext


class HttpExecutor(Executor):
    """Async executor for a JSON-over-HTTP tool backend."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8090",
        headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = dict(headers or {})

    async def execute(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        context: InvocationContext,
    ) -> ExecutionOutcome:
        payload = {
            "arguments": arguments,
            "context": context.model_dump(mode="json"),
        }

        # The dispatcher bounds the call with the contract's timeout.
        try:
            async with httpx.AsyncClient(timeout=None, headers=self._headers) as client:
                resp = await client.post(
                    f"{self._base_url}/tools/{tool_name}", json=payload
                )
        except httpx.TransportError as exc:
            return ExecutionOutcome.failure(
                f"Cannot reach tool backend at {self._base_url}: {exc}",
                retryable=True,
            )

        if resp.status_code == 429 or resp.status_code >= 500:
            return ExecutionOutcome.failure(
                f"Tool backend unavailable ({resp.status_code}): {resp.text}",
                retryable=True,
            )
        if resp.status_code >= 400:
            return ExecutionOutcome.failure(
                f"Tool backend refused the call ({resp.status_code}): {resp.text}",
                retryable=False,
            )

        if not resp.content:
            return ExecutionOutcome.success(None)
        data = resp.json()

        # Backends may answer {"ok": false, "error": {...}} with a 2xx.
        if isinstance(data, dict) and data.get("ok") is False:
            error = data.get("error") or {}
            return ExecutionOutcome.failure(
                str(error.get("message", "Tool backend reported failure")),
                retryable=bool(error.get("retryable", False)),
            )
        if isinstance(data, dict) and "result" in data:
            return ExecutionOutcome.success(data["result"])
        return ExecutionOutcome.success(data)
