"""Tool contract: the registered description of one agent action.

Every action the agent may take is declared once, at startup, as a
ToolContract.  The runtime validates arguments against ``input_schema``,
advertises a translated copy to the LLM provider, and consults
``risk_tier`` before anything is executed.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from contracts.schema import ObjectSchema


class ToolCategory(str, Enum):
    TICKET_MANAGEMENT = "ticket-management"
    COMMUNICATION = "communication"
    ESCALATION = "escalation"
    KNOWLEDGE = "knowledge"
    BUSINESS_ACTION = "business-action"
    SYSTEM = "system"


class RiskTier(str, Enum):
    AUTO = "AUTO"              # may execute without review
    CONFIRM = "CONFIRM"        # always parked for a reviewer
    NEVER_AUTO = "NEVER_AUTO"  # financial / irreversible; hard floor


class ToolContract(BaseModel):
    """Immutable contract for a callable agent action."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=r"^[a-zA-Z0-9_-]{1,64}$")
    description: str
    input_schema: ObjectSchema
    category: ToolCategory
    risk_tier: RiskTier = RiskTier.AUTO
    timeout_seconds: float = Field(default=30.0, gt=0)
    mutates_state: bool = True  # serialize executions per entity
