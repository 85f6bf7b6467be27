"""ActionGate FastAPI server."""

from __future__ import annotations

import asyncio
import contextlib
import time
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException, Query

from contracts.api import (
    AuditPage,
    ExpiredList,
    ExpireRequest,
    InvokeRequest,
    PendingList,
    ResolveRequest,
)
from contracts.audit import AuditEntry
from contracts.errors import InvocationNotFoundError, NotPendingError
from contracts.invocation import Invocation, InvocationResult, InvocationStatus
from contracts.tool import ToolCategory

from runtime.audit.query import query_filtered
from runtime.bootstrap import ActionGateComponents, init_actiongate
from runtime.metrics import compute_metrics_from_log

# ── Module-level state (set during lifespan) ─────────────────────────

_components: ActionGateComponents | None = None
_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialise all components on startup and run the expiry sweeper."""
    global _components, _start_time  # noqa: PLW0603

    _start_time = time.time()
    _components = init_actiongate()

    sweeper = asyncio.create_task(
        _components.confirmations.run_sweeper(
            _components.settings.confirmation.sweep_interval_seconds
        )
    )
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        _components = None


app = FastAPI(title="ActionGate", version="0.1.0", lifespan=lifespan)


def _require() -> ActionGateComponents:
    if _components is None:
        raise HTTPException(status_code=503, detail="Runtime not initialised")
    return _components


# ── Endpoints ────────────────────────────────────────────────────────


@app.get("/v1/actiongate/health")
async def health() -> dict[str, Any]:
    """Extended health-check endpoint."""
    result: dict[str, Any] = {"status": "ok", "version": "0.1.0"}
    result["uptime_seconds"] = round(time.time() - _start_time, 1) if _start_time else 0

    if _components:
        settings = _components.settings
        result["config"] = {
            "app": settings.app.name,
            "app_version": settings.app.version,
            "executor": settings.executor.backend.value,
            "provider_format": settings.provider.format.value,
            "tools": len(_components.registry),
        }
        result["pending_confirmations"] = len(_components.confirmations.list_pending())

        log_path = Path(settings.audit.path)
        if log_path.exists():
            result["audit_log_size_bytes"] = log_path.stat().st_size

    return result


@app.get("/v1/actiongate/tools")
async def list_tools(category: ToolCategory | None = Query(None)) -> list[dict[str, Any]]:
    """Tool definitions exactly as advertised to the model provider."""
    components = _require()
    registry = components.registry
    if category is None:
        return registry.all_external_schemas()
    return [registry.external_schema(c.name) for c in registry.list_by_category(category)]


@app.post("/v1/actiongate/invocations")
async def invoke(request: InvokeRequest) -> InvocationResult:
    """Dispatch one agent tool call."""
    components = _require()
    return await components.dispatcher.invoke(
        request.tool_name, request.arguments, request.context
    )


@app.get("/v1/actiongate/invocations/{invocation_id}")
async def get_invocation(invocation_id: str) -> Invocation:
    components = _require()
    try:
        return components.dispatcher.get_invocation(invocation_id)
    except InvocationNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/v1/actiongate/confirmations")
async def list_confirmations() -> PendingList:
    """Open confirmations, oldest first."""
    pending = _require().confirmations.list_pending()
    return PendingList(confirmations=pending, total=len(pending))


@app.post("/v1/actiongate/confirmations/expire")
async def expire_confirmations(request: ExpireRequest | None = None) -> ExpiredList:
    """Run the expiry sweep now."""
    components = _require()
    now = request.now if request else None
    expired = await components.confirmations.expire_stale(now)
    return ExpiredList(invocations=expired, total=len(expired))


@app.post("/v1/actiongate/confirmations/{invocation_id}/resolve")
async def resolve_confirmation(invocation_id: str, request: ResolveRequest) -> Invocation:
    """Apply a reviewer decision to a parked invocation."""
    components = _require()
    try:
        return await components.confirmations.resolve(
            invocation_id, request.reviewer_id, request.decision, request.notes
        )
    except InvocationNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except NotPendingError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.get("/v1/actiongate/audit/logs")
async def audit_logs(
    status: InvocationStatus | None = Query(None),
    tool_name: str | None = Query(None),
    since: datetime | None = Query(None),
    until: datetime | None = Query(None),
    invocation_id: str | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> AuditPage:
    """Filtered, paginated audit log query."""
    components = _require()

    entries, total = query_filtered(
        components.settings.audit.path,
        status=status,
        tool_name=tool_name,
        since=since,
        until=until,
        invocation_id=invocation_id,
        limit=limit,
        offset=offset,
    )
    return AuditPage(entries=entries, total=total)


@app.get("/v1/actiongate/audit/{invocation_id}")
async def audit_query(invocation_id: str) -> list[AuditEntry]:
    """Return audit entries for a given invocation."""
    return _require().audit.query_by_invocation(invocation_id)


@app.get("/v1/actiongate/metrics")
async def metrics(
    since: datetime | None = Query(None),
    window: int = Query(60, ge=1, le=3600, description="Bucket window in seconds"),
) -> dict[str, Any]:
    """Aggregated outcome metrics."""
    components = _require()
    return compute_metrics_from_log(
        components.settings.audit.path, since=since, window_seconds=window
    )


def main() -> None:
    """Serve the app with uvicorn using the configured host and port."""
    import uvicorn

    from runtime.settings_loader import load_settings, resolve_config_path

    settings = load_settings(resolve_config_path())
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
