"""Settings (actiongate.yaml) schema: Pydantic models.

Every section has defaults, so an empty ``app`` block is a valid config.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from contracts.tool import ToolCategory


# ── Top-level sections ──────────────────────────────────────────────


class AppInfo(BaseModel):
    name: str
    version: str = "0.1.0"


# ── Policy ──────────────────────────────────────────────────────────


class RateLimitPolicy(BaseModel):
    max_invocations: int = Field(default=20, ge=1)   # per session, per window
    window_seconds: int = Field(default=60, ge=1)


class PolicySettings(BaseModel):
    rate_limit: RateLimitPolicy = RateLimitPolicy()
    # actor_role -> categories it may auto-execute; empty means unrestricted
    capabilities: dict[str, list[ToolCategory]] = {}
    # customer-facing tools that may auto-execute once per session
    once_per_session: list[str] = ["send_response", "request_more_info"]
    # idle time after which a session's once-per-session claims are forgotten
    session_ttl_seconds: int = Field(default=86_400, ge=1)


# ── Confirmation ────────────────────────────────────────────────────


class ConfirmationSettings(BaseModel):
    ttl_seconds: int = Field(default=86_400, ge=1)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)


# ── Executor ────────────────────────────────────────────────────────


class ExecutorBackend(str, Enum):
    HTTP = "http"
    NONE = "none"


class ExecutorSettings(BaseModel):
    backend: ExecutorBackend = ExecutorBackend.NONE
    base_url: str = "http://127.0.0.1:8090"
    headers: dict[str, str] = {}


# ── Provider ────────────────────────────────────────────────────────


class ProviderFormat(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class ProviderSettings(BaseModel):
    format: ProviderFormat = ProviderFormat.ANTHROPIC


# ── Audit / logging / server ────────────────────────────────────────


class AuditSettings(BaseModel):
    path: str = "audit.jsonl"


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_output: bool = Field(default=False, alias="json")

    model_config = ConfigDict(populate_by_name=True)


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8080


# ── Root settings ───────────────────────────────────────────────────


class Settings(BaseModel):
    app: AppInfo
    policy: PolicySettings = PolicySettings()
    confirmation: ConfirmationSettings = ConfirmationSettings()
    executor: ExecutorSettings = ExecutorSettings()
    provider: ProviderSettings = ProviderSettings()
    audit: AuditSettings = AuditSettings()
    logging: LoggingSettings = LoggingSettings()
    server: ServerSettings = ServerSettings()
