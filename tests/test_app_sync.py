# ============================================================
# Tests : tests/test_app_sync.py
# Objet  : Synchronisation de la liste des applications distantes.
# ============================================================
"""Tests du service AppSyncService: pagination, upsert, familles et erreurs."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from dify_console.core.clock import utcnow
from dify_console.domain.errors import NotFoundError
from dify_console.domain.results import AppDetailResult, AppListResult
from dify_console.infra.repo.console_repo import AppRepo
from dify_console.infra.repo.models import DifySiteORM
from dify_console.services.app_sync import AppSyncService
from tests.fakes import FakeGateway


def _page(apps, has_more=False, page=1) -> AppListResult:
    return AppListResult(success=True, apps=apps, total=len(apps), page=page, has_more=has_more)


def test_pages_are_followed_and_apps_created(session, account) -> None:
    gw = FakeGateway()
    gw.pages = [
        _page([{"id": "a1", "mode": "chat", "name": "Bot", "created_at": 1700000000}], True),
        _page([{"id": "a2", "mode": "workflow", "name": "Flow"}], page=2),
    ]
    stats = AppSyncService(session, gw).sync_apps()

    assert [c[3].page for c in gw.calls_named("list_apps")] == [1, 2]
    assert stats["processed_instances"] == 1 and stats["processed_accounts"] == 1
    assert stats["synced_apps"] == 2 and stats["created_apps"] == 2
    assert stats["app_types"] == {"chat_assistant": 1, "workflow": 1}

    apps = AppRepo(session).list()
    assert [(a.dify_app_id, a.kind, a.mode) for a in apps] == [
        ("a1", "chat_assistant", "chat"),
        ("a2", "workflow", "workflow"),
    ]
    assert apps[0].account_id == account.id
    assert apps[0].dify_created_at.replace(tzinfo=UTC) == datetime.fromtimestamp(1700000000, UTC)


def test_existing_app_is_updated(session, app) -> None:
    gw = FakeGateway()
    gw.pages = [_page([{"id": app.dify_app_id, "mode": "advanced-chat", "name": "Renamed"}])]
    stats = AppSyncService(session, gw).sync_apps()
    assert stats["updated_apps"] == 1 and stats["created_apps"] == 0
    session.refresh(app)
    assert app.name == "Renamed" and app.mode == "advanced-chat"


def test_detail_payload_feeds_kind_config(session, account) -> None:
    gw = FakeGateway()
    gw.pages = [_page([{"id": "c1", "mode": "chatflow", "name": "CF"}])]
    gw.details["c1"] = AppDetailResult(
        success=True,
        app_data={"id": "c1", "workflow_config": {"nodes": 3}, "conversation_config": None},
    )
    AppSyncService(session, gw).sync_apps()
    stored = AppRepo(session).find_by_remote_id(account.instance_id, "c1")
    assert stored.kind == "chatflow"
    assert stored.kind_config == {"workflow_config": {"nodes": 3}}


def test_unsupported_mode_is_skipped(session, account) -> None:
    gw = FakeGateway()
    gw.pages = [_page([{"id": "x", "mode": "agent-flow", "name": "?"}])]
    stats = AppSyncService(session, gw).sync_apps()
    assert stats["skipped_apps"] == 1 and stats["synced_apps"] == 0
    assert AppRepo(session).list() == []


def test_invalid_app_data_counts_as_error(session, account) -> None:
    gw = FakeGateway()
    gw.pages = [_page([{"name": "no id"}])]
    stats = AppSyncService(session, gw).sync_apps()
    assert stats["errors"] == 1 and len(stats["error_details"]) == 1


def test_mode_filter(session, account) -> None:
    gw = FakeGateway()
    gw.pages = [_page([{"id": "a", "mode": "chat"}, {"id": "b", "mode": "workflow"}])]
    stats = AppSyncService(session, gw).sync_apps(mode="workflow")
    assert gw.calls_named("list_apps")[0][3].mode == "workflow"
    assert stats["synced_apps"] == 1
    assert [a.dify_app_id for a in AppRepo(session).list()] == ["b"]


def test_expired_account_is_reported(session, account) -> None:
    account.token_expires_at = utcnow() - timedelta(seconds=1)
    gw = FakeGateway()
    stats = AppSyncService(session, gw).sync_apps()
    assert stats["errors"] == 1 and gw.calls_named("list_apps") == []


def test_list_failure_is_reported(session, account) -> None:
    gw = FakeGateway()
    gw.pages = [AppListResult(success=False, error="Token Dify invalide ou expiré")]
    stats = AppSyncService(session, gw).sync_apps()
    assert stats["errors"] == 1
    assert "Token Dify invalide" in stats["error_details"][0]


def test_disabled_instances_are_ignored_by_default(session, account, instance) -> None:
    instance.is_enabled = False
    stats = AppSyncService(session, FakeGateway()).sync_apps()
    assert stats["processed_instances"] == 0


def test_unknown_filters_raise(session) -> None:
    with pytest.raises(NotFoundError):
        AppSyncService(session, FakeGateway()).sync_apps(instance_id=42)
    with pytest.raises(NotFoundError):
        AppSyncService(session, FakeGateway()).sync_apps(account_id=42)


def test_site_block_is_mirrored(session, account) -> None:
    gw = FakeGateway()
    gw.pages = [_page([{"id": "a1", "mode": "chat", "name": "Bot"}])]
    gw.details["a1"] = AppDetailResult(
        success=True,
        app_data={"site": {"code": "AbC", "title": "Bot", "app_base_url": "https://udify.app"}},
    )
    stats = AppSyncService(session, gw).sync_apps()
    assert stats["synced_sites"] == 1 and stats["created_sites"] == 1

    stored = AppRepo(session).find_by_remote_id(account.instance_id, "a1")
    assert stored.site.site_code == "AbC"
    assert stored.site.site_url == "https://udify.app/chatbot/AbC"
    assert stored.site.last_sync_at is not None


def test_site_is_updated_then_removed(session, account) -> None:
    gw = FakeGateway()
    gw.pages = [_page([{"id": "a1", "mode": "chat", "site": {"code": "AbC", "title": "v1"}}])]
    AppSyncService(session, gw).sync_apps()

    gw.pages = [_page([{"id": "a1", "mode": "chat", "site": {"code": "AbC", "title": "v2"}}])]
    stats = AppSyncService(session, gw).sync_apps()
    assert stats["updated_sites"] == 1 and stats["created_sites"] == 0
    stored = AppRepo(session).find_by_remote_id(account.instance_id, "a1")
    assert stored.site.title == "v2"

    gw.pages = [_page([{"id": "a1", "mode": "chat", "site": None}])]
    stats = AppSyncService(session, gw).sync_apps()
    assert stats["removed_sites"] == 1
    session.refresh(stored)
    assert stored.site is None
    assert session.query(DifySiteORM).count() == 0


def test_missing_site_block_keeps_existing_site(session, account) -> None:
    gw = FakeGateway()
    gw.pages = [_page([{"id": "a1", "mode": "chat", "site": {"code": "AbC"}}])]
    AppSyncService(session, gw).sync_apps()
    gw.pages = [_page([{"id": "a1", "mode": "chat"}])]
    stats = AppSyncService(session, gw).sync_apps()
    assert stats["synced_sites"] == 0 and stats["removed_sites"] == 0
    assert AppRepo(session).find_by_remote_id(account.instance_id, "a1").site is not None
