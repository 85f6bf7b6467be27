"""Validation result contracts."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class Violation(BaseModel):
    path: str          # "priority", "customer.email", "tags[2]"; "" for the root
    constraint: str    # "required", "type", "enum", "max_length", ...
    message: str


class ValidationResult(BaseModel):
    """Either normalized arguments (``ok``) or an ordered list of violations."""

    ok: bool
    arguments: dict[str, Any] | None = None
    violations: list[Violation] = []

    @classmethod
    def success(cls, arguments: dict[str, Any]) -> ValidationResult:
        return cls(ok=True, arguments=arguments)

    @classmethod
    def failure(cls, violations: list[Violation]) -> ValidationResult:
        return cls(ok=False, violations=violations)

    def feedback(self) -> str:
        """Render violations as one line of guidance for the model."""
        if self.ok:
            return ""
        return "; ".join(
            f"{v.path}: {v.message}" if v.path else v.message for v in self.violations
        )
