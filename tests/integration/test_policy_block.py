"""Integration test: policy overrides enforced through the HTTP server."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
import yaml
from fastapi.testclient import TestClient

from contracts.invocation import InvocationContext
from runtime.executors.local import HandlerExecutor


async def _ok(arguments: dict[str, Any], context: InvocationContext) -> str:
    return "done"


@pytest.fixture()
def restricted_config_file(tmp_path: Path) -> Path:
    """Agents may only use knowledge, communication and system tools."""
    config = {
        "app": {"name": "support-desk-restricted"},
        "policy": {
            "rate_limit": {"max_invocations": 3, "window_seconds": 60},
            "capabilities": {
                "agent": ["knowledge", "communication", "system"],
                "supervisor": ["ticket-management", "knowledge", "communication", "system"],
            },
        },
        "audit": {"path": str(tmp_path / "audit.jsonl")},
        "logging": {"level": "WARNING"},
    }
    p = tmp_path / "actiongate.yaml"
    p.write_text(yaml.dump(config))
    return p


@pytest.fixture()
def client(restricted_config_file: Path) -> TestClient:
    os.environ["ACTIONGATE_CONFIG"] = str(restricted_config_file)
    executor = HandlerExecutor(
        {
            "update_ticket_status": _ok,
            "add_internal_note": _ok,
            "send_response": _ok,
        }
    )
    try:
        from runtime.app import app

        with patch("runtime.bootstrap.create_executor", return_value=executor):
            with TestClient(app) as c:
                yield c
    finally:
        os.environ.pop("ACTIONGATE_CONFIG", None)


def _invoke(client: TestClient, tool_name: str, arguments: Any, **context: Any) -> dict[str, Any]:
    ctx = {"session_id": "sess-1", "entity_id": "T-1", **context}
    resp = client.post(
        "/v1/actiongate/invocations",
        json={"tool_name": tool_name, "arguments": arguments, "context": ctx},
    )
    assert resp.status_code == 200
    return resp.json()


class TestPolicyBlock:
    def test_category_outside_role_denied(self, client: TestClient) -> None:
        result = _invoke(client, "update_ticket_status", {"status": "CLOSED", "reason": "done"})
        assert result["outcome"] == "denied"
        assert "ticket-management" in result["reason"]

        entries = client.get(f"/v1/actiongate/audit/{result['invocation_id']}").json()
        assert entries[-1]["to_status"] == "DENIED"
        assert entries[-1]["detail"]["rule"] == "capabilities.category"

    def test_supervisor_allowed(self, client: TestClient) -> None:
        result = _invoke(
            client,
            "update_ticket_status",
            {"status": "CLOSED", "reason": "done"},
            actor="sup-1",
            actor_role="supervisor",
        )
        assert result["outcome"] == "executed"

    def test_unknown_role_denied(self, client: TestClient) -> None:
        result = _invoke(client, "add_internal_note", {"note": "x"}, actor_role="intern")
        assert result["outcome"] == "denied"

    def test_duplicate_customer_email_denied(self, client: TestClient) -> None:
        message = {"message": "We have resolved the billing issue on your account."}
        assert _invoke(client, "send_response", message)["outcome"] == "executed"
        second = _invoke(client, "send_response", message)
        assert second["outcome"] == "denied"
        assert "add_internal_note" in second["reason"]

    def test_burst_escalates_to_review(self, client: TestClient) -> None:
        outcomes = [
            _invoke(client, "add_internal_note", {"note": f"n{i}"}, session_id="burst")["outcome"]
            for i in range(4)
        ]
        assert outcomes == ["executed", "executed", "executed", "pending"]

        metrics = client.get("/v1/actiongate/metrics").json()
        assert metrics["outcomes"]["EXECUTED"] == 3
