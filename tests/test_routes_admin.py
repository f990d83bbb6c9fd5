# ============================================================
# Tests : tests/test_routes_admin.py
# Objet  : API d'administration (instances, comptes, apps, DSL).
# ============================================================
"""Tests des routes d'administration via TestClient, base SQLite mémoire et passerelle simulée."""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from dify_console.api.deps import get_gateway, get_session
from dify_console.app.main import app as fastapi_app
from dify_console.core.clock import utcnow
from dify_console.domain.results import AppDetailResult, AppListResult, AuthenticationResult
from dify_console.infra.repo.db import session_scope
from dify_console.infra.repo.models import DifyAccountORM, DifyAppORM, DifyInstanceORM
from tests.fakes import FakeGateway, export_failed, export_ok


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def client(session_factory, gateway):
    def _session():
        with session_scope(session_factory) as s:
            yield s

    fastapi_app.dependency_overrides[get_session] = _session
    fastapi_app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def seeded(session_factory) -> dict:
    """Instance + compte connecté + application, validés en base."""
    with session_scope(session_factory) as s:
        inst = DifyInstanceORM(name="prod", base_url="https://dify.example.com")
        s.add(inst)
        s.flush()
        acc = DifyAccountORM(
            instance_id=inst.id,
            email="ops@example.com",
            password="s3cret",
            access_token="tok-123",
            token_expires_at=utcnow() + timedelta(hours=1),
        )
        s.add(acc)
        s.flush()
        dify_app = DifyAppORM(
            instance_id=inst.id,
            account_id=acc.id,
            dify_app_id="app-uuid-1",
            name="Support bot",
            kind="chat_assistant",
            mode="chat",
            kind_config={},
        )
        s.add(dify_app)
        s.flush()
        return {"instance": inst.id, "account": acc.id, "app": dify_app.id}


def test_health(client) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert "X-Request-ID" in r.headers


def test_instance_lifecycle(client) -> None:
    r = client.post(
        "/admin/instances", json={"name": "staging", "base_url": "https://staging.example.com/"}
    )
    assert r.status_code == 201
    body = r.json()
    assert body["base_url"] == "https://staging.example.com"
    r = client.post(f"/admin/instances/{body['id']}/disable")
    assert r.status_code == 200 and r.json()["is_enabled"] is False
    assert client.get("/admin/instances", params={"enabled_only": True}).json() == []
    assert client.post("/admin/instances/999/enable").status_code == 404


def test_instance_rejects_invalid_url(client) -> None:
    r = client.post("/admin/instances", json={"name": "x", "base_url": "not a url"})
    assert r.status_code == 422


def test_accounts_never_expose_secrets(client, seeded) -> None:
    r = client.post(
        "/admin/accounts",
        json={"instance_id": seeded["instance"], "email": "dev@example.com", "password": "pw"},
    )
    assert r.status_code == 201
    for payload in [r.json(), *client.get("/admin/accounts").json()]:
        assert "password" not in payload and "access_token" not in payload


def test_account_on_unknown_instance(client) -> None:
    r = client.post("/admin/accounts", json={"instance_id": 77, "email": "a@b.c", "password": "p"})
    assert r.status_code == 404


def test_duplicate_account_conflicts(client, seeded) -> None:
    payload = {"instance_id": seeded["instance"], "email": "ops@example.com", "password": "x"}
    assert client.post("/admin/accounts", json=payload).status_code == 409


def test_account_login(client, seeded, gateway) -> None:
    r = client.post(f"/admin/accounts/{seeded['account']}/login")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True and body["expires_at"]
    assert "token" not in body
    assert client.post("/admin/accounts/999/login").status_code == 404


def test_instance_update(client, seeded) -> None:
    url = f"/admin/instances/{seeded['instance']}"
    r = client.patch(url, json={"name": "prod-eu", "base_url": "https://eu.dify.example.com/"})
    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "prod-eu" and body["base_url"] == "https://eu.dify.example.com"
    assert body["is_enabled"] is True
    assert client.patch("/admin/instances/999", json={"name": "x"}).status_code == 404
    assert client.patch(url, json={"base_url": "nope"}).status_code == 422


def test_account_update(client, seeded, session_factory) -> None:
    url = f"/admin/accounts/{seeded['account']}"
    r = client.patch(url, json={"nickname": "Ops"})
    assert r.status_code == 200 and r.json()["nickname"] == "Ops"
    with session_scope(session_factory) as s:
        assert s.get(DifyAccountORM, seeded["account"]).access_token == "tok-123"

    r = client.patch(url, json={"email": "ops2@example.com"})
    assert r.status_code == 200 and r.json()["email"] == "ops2@example.com"
    assert "password" not in r.json()
    with session_scope(session_factory) as s:
        assert s.get(DifyAccountORM, seeded["account"]).access_token is None

    client.post(
        "/admin/accounts",
        json={"instance_id": seeded["instance"], "email": "dev@example.com", "password": "pw"},
    )
    assert client.patch(url, json={"email": "dev@example.com"}).status_code == 409
    assert client.patch("/admin/accounts/999", json={"nickname": "x"}).status_code == 404


def test_instance_connection_test(client, seeded, gateway) -> None:
    r = client.post(f"/admin/instances/{seeded['instance']}/test-connection")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True and body["account_id"] == seeded["account"]
    assert body["base_url"] == "https://dify.example.com" and body["tested_at"]
    assert gateway.calls_named("authenticate") == [
        ("authenticate", "https://dify.example.com", "ops@example.com")
    ]

    gateway.auth_result = AuthenticationResult(success=False, error="Identifiants refusés")
    body = client.post(f"/admin/instances/{seeded['instance']}/test-connection").json()
    assert body["success"] is False and body["error"] == "Identifiants refusés"
    assert client.post("/admin/instances/999/test-connection").status_code == 404


def test_all_instances_connection_test(client, seeded) -> None:
    client.post("/admin/instances", json={"name": "empty", "base_url": "https://x.example.com"})
    body = client.post("/admin/instances/test-connections").json()
    assert body["total_count"] == 2 and body["success_count"] == 1
    failed = [r for r in body["results"] if not r["success"]]
    assert failed[0]["instance_name"] == "empty" and failed[0]["account_id"] is None


def test_dsl_sync_and_history(client, seeded, gateway) -> None:
    app_id = seeded["app"]
    gateway.exports.extend([export_ok({"a": 1}, raw="a: 1\n"), export_ok({"a": 1}),
                            export_ok({"a": 2})])

    r1 = client.post(f"/admin/apps/{app_id}/dsl/sync").json()
    assert r1["success"] is True and r1["created"] is True and r1["version"] == 1
    r2 = client.post(f"/admin/apps/{app_id}/dsl/sync").json()
    assert r2["created"] is False and r2["version"] == 1
    r3 = client.post(f"/admin/apps/{app_id}/dsl/sync").json()
    assert r3["version"] == 2

    history = client.get(f"/admin/apps/{app_id}/dsl/versions").json()
    assert [v["version"] for v in history] == [2, 1]
    assert "dsl_content" not in history[0]

    v1 = client.get(f"/admin/apps/{app_id}/dsl/versions/1").json()
    assert v1["dsl_content"] == {"a": 1} and v1["dsl_raw_content"] == "a: 1\n"
    assert client.get(f"/admin/apps/{app_id}/dsl/versions/7").status_code == 404

    pruned = client.post(f"/admin/apps/{app_id}/dsl/prune", params={"keep": 1}).json()
    assert pruned == {"deleted": 1, "remaining": 1}


def test_dsl_sync_failure_answers_200(client, seeded, gateway) -> None:
    gateway.exports.append(export_failed("Service Dify indisponible"))
    r = client.post(f"/admin/apps/{seeded['app']}/dsl/sync")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is False and body["error"] == "Service Dify indisponible"
    assert client.get(f"/admin/apps/{seeded['app']}/dsl/versions").json() == []


def test_unknown_app_is_404(client) -> None:
    assert client.post("/admin/apps/404/dsl/sync").status_code == 404
    assert client.get("/admin/apps/404/dsl/versions").status_code == 404
    assert client.post("/admin/apps/404/dsl/prune", params={"keep": 1}).status_code == 404


def test_prune_requires_non_negative_keep(client, seeded) -> None:
    r = client.post(f"/admin/apps/{seeded['app']}/dsl/prune", params={"keep": -1})
    assert r.status_code == 422


def test_apps_sync_and_list(client, seeded, gateway) -> None:
    gateway.pages = [
        AppListResult(success=True, apps=[{"id": "wf-1", "mode": "workflow", "name": "Flow"}])
    ]
    gateway.details["wf-1"] = AppDetailResult(
        success=True,
        app_data={
            "site": {"code": "AbC123", "title": "Flow", "app_base_url": "https://udify.app"}
        },
    )
    stats = client.post("/admin/apps/sync", json={}).json()
    assert stats["created_apps"] == 1 and stats["created_sites"] == 1
    kinds = [a["kind"] for a in client.get("/admin/apps").json()]
    assert sorted(kinds) == ["chat_assistant", "workflow"]
    workflows = client.get("/admin/apps", params={"kind": "workflow"}).json()
    assert [a["dify_app_id"] for a in workflows] == ["wf-1"]
    assert workflows[0]["site"]["site_url"] == "https://udify.app/workflow/AbC123"


def test_metrics_endpoint(client, seeded, gateway) -> None:
    gateway.exports.append(export_ok({"a": 1}))
    client.post(f"/admin/apps/{seeded['app']}/dsl/sync")
    text = client.get("/metrics").text
    assert "dsl_sync_total" in text
    assert "http_requests_total" in text
