"""Built-in support-agent tool catalogue.

The contracts the support agent is allowed to call, grouped by category.
Risk tiers: refunds are NEVER_AUTO; trial extensions and supervisor
escalations always wait for a reviewer; everything else may auto-execute
subject to policy.
"""

from __future__ import annotations

from contracts.schema import array, boolean, enum, integer, number, obj, string
from contracts.tool import RiskTier, ToolCategory, ToolContract

TICKET_STATUSES = ["OPEN", "IN_PROGRESS", "WAITING_ON_CUSTOMER", "RESOLVED", "CLOSED"]
TICKET_PRIORITIES = ["LOW", "MEDIUM", "HIGH", "CRITICAL"]


# ── Ticket management ───────────────────────────────────────────────

UPDATE_TICKET_STATUS = ToolContract(
    name="update_ticket_status",
    description=(
        "Update the ticket status. Use this when:\n"
        "- Customer confirms issue is resolved -> RESOLVED\n"
        "- Customer provides requested info -> OPEN (from WAITING_ON_CUSTOMER)\n"
        "- Waiting for customer response -> WAITING_ON_CUSTOMER\n"
        "- Ticket is being worked on -> IN_PROGRESS\n"
        "- Ticket is finalized and no further action needed -> CLOSED"
    ),
    input_schema=obj(
        {
            "status": enum(TICKET_STATUSES, "New status for the ticket"),
            "reason": string("Explanation for why you are changing the status"),
        }
    ),
    category=ToolCategory.TICKET_MANAGEMENT,
)

UPDATE_TICKET_PRIORITY = ToolContract(
    name="update_ticket_priority",
    description=(
        "Change the priority level. Consider:\n"
        "- CRITICAL: Security issues, data loss, complete system failures, legal threats\n"
        "- HIGH: Major functionality broken affecting business operations\n"
        "- MEDIUM: Feature not working but has workaround\n"
        "- LOW: Questions, minor issues, enhancement requests"
    ),
    input_schema=obj(
        {
            "priority": enum(TICKET_PRIORITIES, "New priority level"),
            "reason": string("Why the priority should be changed"),
        }
    ),
    category=ToolCategory.TICKET_MANAGEMENT,
)

ADD_TICKET_TAGS = ToolContract(
    name="add_ticket_tags",
    description="Add categorization tags to help with reporting and routing.",
    input_schema=obj({"tags": array(string(), "Tags to add for categorization")}),
    category=ToolCategory.TICKET_MANAGEMENT,
)

ASSIGN_TICKET = ToolContract(
    name="assign_ticket",
    description="Assign the ticket to a specific team member based on expertise needed.",
    input_schema=obj(
        {
            "assigneeEmail": string("Email of the team member to assign", format="email"),
            "reason": string("Why this person should handle the ticket"),
        }
    ),
    category=ToolCategory.TICKET_MANAGEMENT,
)


# ── Customer communication ──────────────────────────────────────────

SEND_RESPONSE = ToolContract(
    name="send_response",
    description=(
        "Send a response to the customer. The message should be:\n"
        "- Professional and empathetic\n"
        "- Specific to their issue\n"
        "- Include next steps when applicable\n"
        "- Never make up product features or capabilities\n"
        "- 3-4 paragraphs maximum"
    ),
    input_schema=obj(
        {
            "message": string(
                "The response message to send to the customer", min_length=10, max_length=5000
            ),
            "markAsWaiting": boolean(
                "Set status to WAITING_ON_CUSTOMER after sending", optional=True
            ),
        }
    ),
    category=ToolCategory.COMMUNICATION,
)

REQUEST_MORE_INFO = ToolContract(
    name="request_more_info",
    description="Ask the customer for additional details needed to resolve their issue.",
    input_schema=obj(
        {
            "questions": array(
                string(), "Specific questions to ask the customer", min_items=1, max_items=5
            ),
            "context": string("Context about why this information is needed"),
        }
    ),
    category=ToolCategory.COMMUNICATION,
)

SEND_CSAT_REQUEST = ToolContract(
    name="send_csat_request",
    description="Request customer satisfaction feedback after resolving a ticket.",
    input_schema=obj(
        {"timing": enum(["immediate", "delayed"], "When to send the satisfaction survey")}
    ),
    category=ToolCategory.COMMUNICATION,
)

ACKNOWLEDGE_RECEIPT = ToolContract(
    name="acknowledge_receipt",
    description="Send a quick acknowledgment that we received their message.",
    input_schema=obj(
        {"customMessage": string("Optional custom acknowledgment message", optional=True)}
    ),
    category=ToolCategory.COMMUNICATION,
)


# ── Escalation & routing ────────────────────────────────────────────

ESCALATE_TO_SUPERVISOR = ToolContract(
    name="escalate_to_supervisor",
    description=(
        "Escalate ticket to a supervisor. Use when:\n"
        "- Customer is extremely frustrated or threatening to leave\n"
        "- Issue has security or legal implications\n"
        "- Multiple failed resolution attempts (3+)\n"
        "- VIP customer with complex issue\n"
        "- You are unsure how to proceed"
    ),
    input_schema=obj(
        {
            "urgency": enum(["low", "medium", "high", "critical"], "How urgent is the escalation"),
            "reason": string("Detailed explanation for escalation"),
            "suggestedAction": string("What you think should happen next", optional=True),
        }
    ),
    category=ToolCategory.ESCALATION,
    risk_tier=RiskTier.CONFIRM,
)

ROUTE_TO_SPECIALIST = ToolContract(
    name="route_to_specialist",
    description=(
        "Route to a specialized team (billing, technical, security, legal) "
        "when expertise is needed."
    ),
    input_schema=obj(
        {
            "team": enum(
                ["billing", "technical", "security", "legal"],
                "Which specialized team should handle this",
            ),
            "reason": string("Why this team is appropriate"),
        }
    ),
    category=ToolCategory.ESCALATION,
)

FLAG_FOR_REVIEW = ToolContract(
    name="flag_for_review",
    description="Flag the ticket for human review without full escalation.",
    input_schema=obj(
        {
            "flag": string('Short flag label (e.g., "unusual_request", "potential_churn")'),
            "notes": string("Additional context for reviewers"),
        }
    ),
    category=ToolCategory.ESCALATION,
)


# ── Knowledge & research (read-only) ────────────────────────────────

SEARCH_KNOWLEDGE_BASE = ToolContract(
    name="search_knowledge_base",
    description="Search our help articles and documentation to find relevant solutions.",
    input_schema=obj(
        {
            "query": string("Search query for help articles"),
            "limit": integer("Maximum results to return", default=5, minimum=1, maximum=50),
        }
    ),
    category=ToolCategory.KNOWLEDGE,
    timeout_seconds=10.0,
    mutates_state=False,
)

LOOKUP_CUSTOMER_HISTORY = ToolContract(
    name="lookup_customer_history",
    description="Look up customer past tickets and interactions for context.",
    input_schema=obj(
        {
            "email": string("Customer email to look up", format="email"),
            "limit": integer("Maximum past tickets to retrieve", default=10, minimum=1, maximum=100),
        }
    ),
    category=ToolCategory.KNOWLEDGE,
    timeout_seconds=10.0,
    mutates_state=False,
)

CHECK_KNOWN_ISSUES = ToolContract(
    name="check_known_issues",
    description="Check if the reported issue matches any known bugs or outages.",
    input_schema=obj(
        {"symptoms": array(string(), "Symptoms or error messages to check", min_items=1)}
    ),
    category=ToolCategory.KNOWLEDGE,
    timeout_seconds=10.0,
    mutates_state=False,
)


# ── Business actions ────────────────────────────────────────────────

PROCESS_REFUND_REQUEST = ToolContract(
    name="process_refund_request",
    description=(
        "Initiate a refund for the customer. ONLY use when:\n"
        "- Customer explicitly requests a refund\n"
        "- You have transaction details\n"
        "- The request seems legitimate\n"
        "NOTE: This requires human approval before execution."
    ),
    input_schema=obj(
        {
            "transactionId": string("Transaction ID from customer", min_length=1),
            "amount": number("Amount to refund, if specified", optional=True, minimum=0),
            "reason": string("Reason for the refund"),
        }
    ),
    category=ToolCategory.BUSINESS_ACTION,
    risk_tier=RiskTier.NEVER_AUTO,
    timeout_seconds=60.0,
)

EXTEND_TRIAL = ToolContract(
    name="extend_trial",
    description="Extend customer trial period as a goodwill gesture.",
    input_schema=obj(
        {
            "days": integer("Number of days to extend", minimum=1, maximum=30),
            "reason": string("Justification for the extension"),
        }
    ),
    category=ToolCategory.BUSINESS_ACTION,
    risk_tier=RiskTier.CONFIRM,
)

CREATE_FOLLOWUP_TASK = ToolContract(
    name="create_followup_task",
    description="Create a follow-up task to ensure the issue is fully resolved.",
    input_schema=obj(
        {
            "title": string("Task title"),
            "dueDate": string("Due date in ISO format", format="date-time"),
            "assignee": string("Email of person to assign the task", optional=True, format="email"),
        }
    ),
    category=ToolCategory.BUSINESS_ACTION,
)

SCHEDULE_CALLBACK = ToolContract(
    name="schedule_callback",
    description="Schedule a callback with the customer for complex issues.",
    input_schema=obj(
        {
            "preferredTime": string("Customer preferred callback time"),
            "topic": string("What the callback should cover"),
        }
    ),
    category=ToolCategory.BUSINESS_ACTION,
)


# ── System actions ──────────────────────────────────────────────────

ADD_INTERNAL_NOTE = ToolContract(
    name="add_internal_note",
    description="Add an internal note visible only to the support team.",
    input_schema=obj({"note": string("Internal note visible only to team")}),
    category=ToolCategory.SYSTEM,
)

LOG_DECISION = ToolContract(
    name="log_decision",
    description="Log your decision and reasoning for audit purposes.",
    input_schema=obj(
        {
            "decision": string("What decision was made"),
            "confidence": number("Confidence level 0-1", minimum=0, maximum=1),
            "reasoning": string("Explanation of reasoning", optional=True),
        }
    ),
    category=ToolCategory.SYSTEM,
)

SET_REMINDER = ToolContract(
    name="set_reminder",
    description="Set a reminder for follow-up on this ticket.",
    input_schema=obj(
        {
            "reminderDate": string("When to remind in ISO format", format="date-time"),
            "message": string("Reminder message"),
        }
    ),
    category=ToolCategory.SYSTEM,
)


SUPPORT_AGENT_CONTRACTS: tuple[ToolContract, ...] = (
    UPDATE_TICKET_STATUS,
    UPDATE_TICKET_PRIORITY,
    ADD_TICKET_TAGS,
    ASSIGN_TICKET,
    SEND_RESPONSE,
    REQUEST_MORE_INFO,
    SEND_CSAT_REQUEST,
    ACKNOWLEDGE_RECEIPT,
    ESCALATE_TO_SUPERVISOR,
    ROUTE_TO_SPECIALIST,
    FLAG_FOR_REVIEW,
    SEARCH_KNOWLEDGE_BASE,
    LOOKUP_CUSTOMER_HISTORY,
    CHECK_KNOWN_ISSUES,
    PROCESS_REFUND_REQUEST,
    EXTEND_TRIAL,
    CREATE_FOLLOWUP_TASK,
    SCHEDULE_CALLBACK,
    ADD_INTERNAL_NOTE,
    LOG_DECISION,
    SET_REMINDER,
)
