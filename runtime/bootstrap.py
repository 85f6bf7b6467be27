"""Shared initialisation logic for the ActionGate server and embedders."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from contracts.audit import AuditLogger
from contracts.executor import Executor
from contracts.settings import ExecutorBackend, Settings
from runtime.audit.logger import JsonlAuditLogger
from runtime.confirmation import ConfirmationWorkflow
from runtime.dispatcher import ActionDispatcher
from runtime.executors.http import HttpExecutor
from runtime.executors.local import HandlerExecutor
from runtime.ledger import InvocationLedger, utcnow
from runtime.locks import EntityLockManager
from runtime.log import get_logger, setup_logging
from runtime.policy import ActionPolicyEngine
from runtime.registry import ToolRegistry, create_default_registry
from runtime.settings_loader import load_settings, resolve_config_path

logger = get_logger(__name__)


def create_executor(settings: Settings) -> Executor:
    """Create the executor adapter named by the config."""
    backend = settings.executor.backend
    if backend == ExecutorBackend.HTTP:
        return HttpExecutor(
            base_url=settings.executor.base_url,
            headers=settings.executor.headers,
        )
    # No backend: every authorized call fails non-retryably.
    return HandlerExecutor()


class ActionGateComponents:
    """Container for initialised ActionGate components."""

    def __init__(
        self,
        settings: Settings,
        registry: ToolRegistry,
        policy: ActionPolicyEngine,
        audit: AuditLogger,
        ledger: InvocationLedger,
        dispatcher: ActionDispatcher,
        confirmations: ConfirmationWorkflow,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.policy = policy
        self.audit = audit
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.confirmations = confirmations


def build_components(
    settings: Settings,
    *,
    executor: Executor | None = None,
    audit: AuditLogger | None = None,
    registry: ToolRegistry | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> ActionGateComponents:
    """Wire registry, policy, ledger, dispatcher and confirmation workflow."""
    registry = registry or create_default_registry(settings.provider.format)
    policy = ActionPolicyEngine(settings.policy)
    audit = audit or JsonlAuditLogger(settings.audit.path)
    ledger = InvocationLedger(audit, clock=clock)
    locks = EntityLockManager()

    dispatcher = ActionDispatcher(
        registry,
        policy,
        executor or create_executor(settings),
        ledger,
        locks=locks,
        confirmation_ttl=timedelta(seconds=settings.confirmation.ttl_seconds),
        clock=clock,
    )
    confirmations = ConfirmationWorkflow(
        registry, ledger, dispatcher.execution, locks, clock=clock
    )

    return ActionGateComponents(
        settings=settings,
        registry=registry,
        policy=policy,
        audit=audit,
        ledger=ledger,
        dispatcher=dispatcher,
        confirmations=confirmations,
    )


def init_actiongate(
    config_path: str | None = None,
    *,
    executor: Executor | None = None,
) -> ActionGateComponents:
    """Load settings, configure logging and build all components.

    Uses ``ACTIONGATE_CONFIG`` env var if *config_path* is not provided.
    """
    path = resolve_config_path(config_path)
    settings = load_settings(path)
    setup_logging(settings.logging)

    components = build_components(settings, executor=executor)
    logger.info(
        "actiongate.initialised",
        config=path,
        app=settings.app.name,
        tools=len(components.registry),
        executor=settings.executor.backend.value,
        audit_path=settings.audit.path,
    )
    return components
