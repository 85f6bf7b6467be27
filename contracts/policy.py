"""Policy engine contracts.

The policy engine maps a validated invocation of a tool contract to one of
three execution decisions.  Decisions must be deterministic: the same
contract, invocation and recorded session history always produce the same
verdict.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel

from contracts.tool import ToolContract

if TYPE_CHECKING:
    from contracts.invocation import Invocation


class PolicyVerdict(str, Enum):
    AUTO_EXECUTE = "AUTO_EXECUTE"
    REQUIRE_CONFIRMATION = "REQUIRE_CONFIRMATION"
    DENY = "DENY"


class PolicyDecision(BaseModel):
    verdict: PolicyVerdict
    rule: str = ""      # which rule triggered the decision
    reason: str = ""    # human-readable explanation


class PolicyEngine(ABC):
    """Interface that the runtime policy engine must implement."""

    @abstractmethod
    def decide(self, contract: ToolContract, invocation: Invocation) -> PolicyDecision:
        """How may this validated invocation proceed?"""
        ...

    @abstractmethod
    def record(self, invocation: Invocation, decision: PolicyDecision) -> None:
        """Remember a decision so later session-scoped rules can see it.

        Called right after ``decide``, before the invocation is routed.
        """
        ...

    @abstractmethod
    def settle(self, invocation: Invocation, decision: PolicyDecision) -> None:
        """Adjust history once the routed invocation has come to rest."""
        ...
