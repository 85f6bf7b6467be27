"""Shared contracts: source of truth for all ActionGate interfaces."""

from contracts.schema import (
    ArraySchema,
    BooleanSchema,
    EnumSchema,
    FieldSchema,
    NumberSchema,
    ObjectSchema,
    StringSchema,
    UnionSchema,
)
from contracts.tool import RiskTier, ToolCategory, ToolContract
from contracts.validation import ValidationResult, Violation
from contracts.executor import ExecutionError, ExecutionOutcome, Executor
from contracts.policy import PolicyDecision, PolicyEngine, PolicyVerdict
from contracts.invocation import (
    ActorKind,
    Invocation,
    InvocationContext,
    InvocationResult,
    InvocationStatus,
    Outcome,
)
from contracts.confirmation import ConfirmationDecision, PendingConfirmation
from contracts.audit import AuditEntry, AuditLogger
from contracts.settings import Settings

__all__ = [
    # schema
    "ArraySchema",
    "BooleanSchema",
    "EnumSchema",
    "FieldSchema",
    "NumberSchema",
    "ObjectSchema",
    "StringSchema",
    "UnionSchema",
    # tool
    "RiskTier",
    "ToolCategory",
    "ToolContract",
    # validation
    "ValidationResult",
    "Violation",
    # executor
    "ExecutionError",
    "ExecutionOutcome",
    "Executor",
    # policy
    "PolicyDecision",
    "PolicyEngine",
    "PolicyVerdict",
    # invocation
    "ActorKind",
    "Invocation",
    "InvocationContext",
    "InvocationResult",
    "InvocationStatus",
    "Outcome",
    # confirmation
    "ConfirmationDecision",
    "PendingConfirmation",
    # audit
    "AuditEntry",
    "AuditLogger",
    # settings
    "Settings",
]
