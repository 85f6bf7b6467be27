"""End-to-end integration tests for the ActionGate HTTP server."""

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

REFUND = {"transactionId": "tx_42", "amount": 19.99, "reason": "charged twice"}


def _backend() -> HandlerExecutor:
    """Fake business backend: every tool echoes what it was asked to do."""
    executor = HandlerExecutor()

    async def echo(arguments: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        return {"ticket": context.entity_id, "applied": arguments}

    for name in (
        "update_ticket_status",
        "update_ticket_priority",
        "add_internal_note",
        "send_response",
        "process_refund_request",
        "extend_trial",
    ):
        executor.register(name, echo)
    return executor


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    config = {
        "app": {"name": "support-desk", "version": "0.1.0"},
        "confirmation": {"ttl_seconds": 3600, "sweep_interval_seconds": 3600},
        "audit": {"path": str(tmp_path / "audit.jsonl")},
        "logging": {"level": "WARNING"},
    }
    p = tmp_path / "actiongate.yaml"
    p.write_text(yaml.dump(config))
    return p


@pytest.fixture()
def client(config_file: Path) -> TestClient:
    os.environ["ACTIONGATE_CONFIG"] = str(config_file)
    try:
        from runtime.app import app

        with patch("runtime.bootstrap.create_executor", return_value=_backend()):
            with TestClient(app) as c:
                yield c
    finally:
        os.environ.pop("ACTIONGATE_CONFIG", None)


def _invoke(client: TestClient, tool_name: str, arguments: Any, **context: Any) -> dict[str, Any]:
    ctx = {"session_id": "sess-1", "entity_id": "T-100", **context}
    resp = client.post(
        "/v1/actiongate/invocations",
        json={"tool_name": tool_name, "arguments": arguments, "context": ctx},
    )
    assert resp.status_code == 200
    return resp.json()


class TestServer:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/v1/actiongate/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["config"]["app"] == "support-desk"
        assert data["config"]["tools"] == 21
        assert data["pending_confirmations"] == 0

    def test_tools_advertised(self, client: TestClient) -> None:
        tools = client.get("/v1/actiongate/tools").json()
        assert len(tools) == 21
        names = [t["name"] for t in tools]
        assert names == sorted(names)

    def test_tools_by_category(self, client: TestClient) -> None:
        tools = client.get("/v1/actiongate/tools", params={"category": "knowledge"}).json()
        assert {t["name"] for t in tools} == {
            "search_knowledge_base",
            "lookup_customer_history",
            "check_known_issues",
        }


class TestDispatch:
    def test_auto_tool_executes(self, client: TestClient) -> None:
        result = _invoke(client, "update_ticket_status", {"status": "RESOLVED", "reason": "fixed"})
        assert result["outcome"] == "executed"
        assert result["result"]["ticket"] == "T-100"

        entries = client.get(f"/v1/actiongate/audit/{result['invocation_id']}").json()
        assert [e["to_status"] for e in entries] == [
            "PENDING_VALIDATION",
            "VALIDATED",
            "EXECUTED",
        ]

    def test_json_string_arguments(self, client: TestClient) -> None:
        result = _invoke(client, "add_internal_note", '{"note": "customer on hold"}')
        assert result["outcome"] == "executed"

    def test_refund_parks(self, client: TestClient) -> None:
        result = _invoke(client, "process_refund_request", REFUND)
        assert result["outcome"] == "pending"
        assert result["expires_at"] is not None

        invocation = client.get(f"/v1/actiongate/invocations/{result['invocation_id']}").json()
        assert invocation["status"] == "AWAITING_CONFIRMATION"

    def test_unknown_tool(self, client: TestClient) -> None:
        result = _invoke(client, "delete_everything", {})
        assert result["outcome"] == "unknown_tool"
        assert result["invocation_id"] is None
        logs = client.get("/v1/actiongate/audit/logs").json()
        assert logs["total"] == 0

    def test_validation_failure(self, client: TestClient) -> None:
        result = _invoke(client, "update_ticket_priority", {"priority": "ULTRA", "reason": "x"})
        assert result["outcome"] == "validation_error"
        assert result["violations"][0]["path"] == "priority"

    def test_unknown_invocation_404(self, client: TestClient) -> None:
        assert client.get("/v1/actiongate/invocations/missing").status_code == 404


class TestReview:
    def test_approve(self, client: TestClient) -> None:
        invocation_id = _invoke(client, "process_refund_request", REFUND)["invocation_id"]
        pending = client.get("/v1/actiongate/confirmations").json()
        assert pending["total"] == 1
        assert pending["confirmations"][0]["invocation_id"] == invocation_id

        resp = client.post(
            f"/v1/actiongate/confirmations/{invocation_id}/resolve",
            json={"reviewer_id": "rev-1", "decision": "APPROVED"},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "EXECUTED"
        assert client.get("/v1/actiongate/confirmations").json()["total"] == 0

    def test_reject_then_conflict(self, client: TestClient) -> None:
        invocation_id = _invoke(client, "extend_trial", {"days": 7, "reason": "outage"})["invocation_id"]
        url = f"/v1/actiongate/confirmations/{invocation_id}/resolve"

        resp = client.post(url, json={"reviewer_id": "rev-1", "decision": "REJECTED"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "DENIED"
        assert resp.json()["reason"] == "Rejected"

        resp = client.post(url, json={"reviewer_id": "rev-2", "decision": "APPROVED"})
        assert resp.status_code == 409

    def test_resolve_unknown_404(self, client: TestClient) -> None:
        resp = client.post(
            "/v1/actiongate/confirmations/missing/resolve",
            json={"reviewer_id": "rev-1", "decision": "APPROVED"},
        )
        assert resp.status_code == 404

    def test_reviewer_cannot_expire(self, client: TestClient) -> None:
        invocation_id = _invoke(client, "process_refund_request", REFUND)["invocation_id"]
        resp = client.post(
            f"/v1/actiongate/confirmations/{invocation_id}/resolve",
            json={"reviewer_id": "rev-1", "decision": "EXPIRED"},
        )
        assert resp.status_code == 422

    def test_expire_sweep(self, client: TestClient) -> None:
        invocation_id = _invoke(client, "process_refund_request", REFUND)["invocation_id"]
        resp = client.post(
            "/v1/actiongate/confirmations/expire", json={"now": "2099-01-01T00:00:00Z"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 1
        assert data["invocations"][0]["id"] == invocation_id
        assert data["invocations"][0]["reason"] == "Expired"

        resp = client.post(
            f"/v1/actiongate/confirmations/{invocation_id}/resolve",
            json={"reviewer_id": "rev-1", "decision": "APPROVED"},
        )
        assert resp.status_code == 409

    def test_expire_without_body_keeps_fresh(self, client: TestClient) -> None:
        _invoke(client, "process_refund_request", REFUND)
        resp = client.post("/v1/actiongate/confirmations/expire")
        assert resp.status_code == 200
        assert resp.json()["total"] == 0


class TestAuditAndMetrics:
    def test_audit_logs_filters(self, client: TestClient) -> None:
        _invoke(client, "update_ticket_status", {"status": "RESOLVED", "reason": "fixed"})
        _invoke(client, "process_refund_request", REFUND)

        data = client.get("/v1/actiongate/audit/logs", params={"status": "EXECUTED"}).json()
        assert data["total"] == 1
        assert data["entries"][0]["tool_name"] == "update_ticket_status"

        data = client.get(
            "/v1/actiongate/audit/logs", params={"tool_name": "process_refund_request"}
        ).json()
        assert data["total"] == 3
        assert data["entries"][0]["to_status"] == "AWAITING_CONFIRMATION"

    def test_metrics_split_denials(self, client: TestClient) -> None:
        rejected = _invoke(client, "process_refund_request", REFUND)["invocation_id"]
        client.post(
            f"/v1/actiongate/confirmations/{rejected}/resolve",
            json={"reviewer_id": "rev-1", "decision": "REJECTED"},
        )
        _invoke(client, "process_refund_request", REFUND)
        client.post("/v1/actiongate/confirmations/expire", json={"now": "2099-01-01T00:00:00Z"})

        metrics = client.get("/v1/actiongate/metrics").json()
        assert metrics["denials"] == {"policy": 0, "rejected": 1, "expired": 1}
        assert metrics["outcomes"]["DENIED"] == 2
        assert metrics["review_latency"]["count"] == 2
