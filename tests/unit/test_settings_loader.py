"""Unit tests for the settings loader."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from contracts.settings import ExecutorBackend, ProviderFormat
from contracts.tool import ToolCategory
from runtime.settings_loader import CONFIG_ENV_VAR, load_settings, resolve_config_path

FULL_CONFIG = """\
app:
  name: support-desk
  version: 1.2.0
policy:
  rate_limit:
    max_invocations: 5
    window_seconds: 30
  capabilities:
    agent: [ticket-management, communication, knowledge, system]
    supervisor: [ticket-management, communication, escalation, knowledge, business-action, system]
  once_per_session: [send_response]
  session_ttl_seconds: 3600
confirmation:
  ttl_seconds: 600
  sweep_interval_seconds: 5
executor:
  backend: http
  base_url: http://tools.internal:8090
  headers:
    Authorization: Bearer abc
provider:
  format: openai
audit:
  path: /var/log/actiongate/audit.jsonl
logging:
  level: DEBUG
  json: true
"""


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "actiongate.yaml"
    p.write_text(text)
    return p


class TestLoadSettings:
    def test_full_config(self, tmp_path: Path) -> None:
        settings = load_settings(_write(tmp_path, FULL_CONFIG))
        assert settings.app.name == "support-desk"
        assert settings.policy.rate_limit.max_invocations == 5
        assert settings.policy.capabilities["agent"][0] == ToolCategory.TICKET_MANAGEMENT
        assert settings.policy.once_per_session == ["send_response"]
        assert settings.policy.session_ttl_seconds == 3600
        assert settings.confirmation.ttl_seconds == 600
        assert settings.executor.backend == ExecutorBackend.HTTP
        assert settings.executor.headers == {"Authorization": "Bearer abc"}
        assert settings.provider.format == ProviderFormat.OPENAI
        assert settings.logging.json_output is True

    def test_minimal_config_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(_write(tmp_path, "app:\n  name: mini\n"))
        assert settings.executor.backend == ExecutorBackend.NONE
        assert settings.policy.capabilities == {}
        assert settings.policy.session_ttl_seconds == 86_400
        assert settings.confirmation.ttl_seconds == 86_400
        assert settings.audit.path == "audit.jsonl"
        assert settings.logging.json_output is False

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml")

    def test_non_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="mapping"):
            load_settings(_write(tmp_path, "- just\n- a list\n"))

    def test_unknown_category_rejected(self, tmp_path: Path) -> None:
        text = "app:\n  name: x\npolicy:\n  capabilities:\n    agent: [teleportation]\n"
        with pytest.raises(ValidationError):
            load_settings(_write(tmp_path, text))

    def test_missing_app_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            load_settings(_write(tmp_path, "audit:\n  path: a.jsonl\n"))


class TestResolveConfigPath:
    def test_explicit_path_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, "/etc/env.yaml")
        assert resolve_config_path("/tmp/explicit.yaml") == "/tmp/explicit.yaml"

    def test_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, "/etc/env.yaml")
        assert resolve_config_path() == "/etc/env.yaml"

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert resolve_config_path() == "./actiongate.yaml"
