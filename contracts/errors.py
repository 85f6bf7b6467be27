"""Exception types shared by the ActionGate runtime.

Validation failures, policy denials and executor failures are *results*,
not exceptions.  The classes here cover programming errors and invalid
reviewer requests only.
"""

from __future__ import annotations


class ActionGateError(Exception):
    """Base class for all ActionGate exceptions."""


# ── Registry / contract errors ──────────────────────────────────────


class DuplicateToolNameError(ActionGateError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' is already registered")
        self.name = name


class RegistryFrozenError(ActionGateError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Registry is frozen; cannot register '{name}'")
        self.name = name


class ToolNotFoundError(ActionGateError, KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' not found in registry")
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


class UnsupportedSchemaError(ActionGateError):
    """The schema uses a construct the provider protocol cannot express."""

    def __init__(self, path: str, construct: str) -> None:
        where = path or "<root>"
        super().__init__(f"Unsupported schema construct '{construct}' at {where}")
        self.path = path
        self.construct = construct


class UnsatisfiableSchemaError(ActionGateError):
    def __init__(self, tool_name: str, detail: str) -> None:
        super().__init__(f"Schema for tool '{tool_name}' is unsatisfiable: {detail}")
        self.tool_name = tool_name
        self.detail = detail


# ── Invocation lifecycle errors ─────────────────────────────────────


class IllegalTransitionError(ActionGateError):
    def __init__(self, invocation_id: str, from_status: str | None, to_status: str) -> None:
        super().__init__(
            f"Invocation {invocation_id}: illegal transition {from_status} -> {to_status}"
        )
        self.invocation_id = invocation_id
        self.from_status = from_status
        self.to_status = to_status


class InvocationNotFoundError(ActionGateError, KeyError):
    def __init__(self, invocation_id: str) -> None:
        super().__init__(f"Invocation '{invocation_id}' not found")
        self.invocation_id = invocation_id

    def __str__(self) -> str:
        return self.args[0]


class NotPendingError(ActionGateError):
    """Raised when resolving an invocation that is not awaiting confirmation."""

    def __init__(self, invocation_id: str, status: str) -> None:
        super().__init__(
            f"Invocation '{invocation_id}' is not awaiting confirmation (status: {status})"
        )
        self.invocation_id = invocation_id
        self.status = status
