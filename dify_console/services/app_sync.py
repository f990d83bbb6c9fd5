# ============================================================
# Module : dify_console/services/app_sync.py
# Objet  : Synchronisation de la liste des applications distantes.
# Contexte : Pour chaque instance/compte actif avec token valide, parcourt
#            toutes les pages de /console/api/apps et met à jour la table
#            locale `dify_apps` (clé: instance + identifiant distant), ainsi que
#            le site public de chaque application (`dify_sites`).
# ============================================================
"""Synchronisation des applications Dify vers la base locale."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.orm import Session

from dify_console.core.clock import from_unix, utcnow
from dify_console.core.http_constants import DIFY_DEFAULT_PAGE_LIMIT
from dify_console.domain.app_kinds import AppKind, extract_kind_config, kind_for_mode
from dify_console.domain.results import AppListQuery
from dify_console.domain.sites import extract_site_fields
from dify_console.infra.repo.console_repo import AccountRepo, AppRepo, InstanceRepo
from dify_console.infra.repo.models import (
    DifyAccountORM,
    DifyAppORM,
    DifyInstanceORM,
    DifySiteORM,
)

log = structlog.get_logger(__name__)


def new_sync_stats() -> dict[str, Any]:
    """Compteurs initiaux d'une synchronisation d'applications."""
    return {
        "processed_instances": 0,
        "processed_accounts": 0,
        "synced_apps": 0,
        "created_apps": 0,
        "updated_apps": 0,
        "skipped_apps": 0,
        "synced_sites": 0,
        "created_sites": 0,
        "updated_sites": 0,
        "removed_sites": 0,
        "errors": 0,
        "app_types": {},
        "error_details": [],
    }


class AppSyncService:
    """Met à jour le miroir local des applications distantes."""

    def __init__(
        self, session: Session, gateway, page_limit: int = DIFY_DEFAULT_PAGE_LIMIT
    ) -> None:
        self._session = session
        self._gateway = gateway
        self._page_limit = page_limit
        self._instances = InstanceRepo(session)
        self._accounts = AccountRepo(session)
        self._apps = AppRepo(session)

    def sync_apps(
        self,
        instance_id: int | None = None,
        account_id: int | None = None,
        mode: str | None = None,
    ) -> dict[str, Any]:
        """Synchronise les applications, filtrées par instance, compte et/ou mode distant.

        Un compte donné sans instance restreint la synchronisation à l'instance du compte.
        Lève NotFoundError si l'instance ou le compte demandé n'existe pas.
        """
        stats = new_sync_stats()
        if account_id is not None:
            account = self._accounts.require(account_id)
            instance_id = instance_id if instance_id is not None else account.instance_id
        if instance_id is not None:
            instances = [self._instances.require(instance_id)]
        else:
            instances = self._instances.list(enabled_only=True)

        log.info(
            "app_sync_started", instance_id=instance_id, account_id=account_id, mode=mode
        )
        for instance in instances:
            stats["processed_instances"] += 1
            accounts = self._accounts.list(instance_id=instance.id, enabled_only=True)
            if account_id is not None:
                accounts = [a for a in accounts if a.id == account_id]
            for account in accounts:
                self._sync_account(instance, account, mode, stats)
        self._session.flush()
        log.info(
            "app_sync_done",
            synced=stats["synced_apps"],
            created=stats["created_apps"],
            updated=stats["updated_apps"],
            sites=stats["synced_sites"],
            errors=stats["errors"],
        )
        return stats

    def _sync_account(
        self,
        instance: DifyInstanceORM,
        account: DifyAccountORM,
        mode: str | None,
        stats: dict[str, Any],
    ) -> None:
        stats["processed_accounts"] += 1
        if account.is_token_expired():
            self._error(stats, f"Token expiré pour le compte {account.display_name}")
            return

        page = 1
        while True:
            query = AppListQuery(page=page, limit=self._page_limit, mode=mode)
            result = self._gateway.list_apps(instance.base_url, account.access_token, query)
            if not result.success:
                self._error(
                    stats,
                    f"Listage impossible pour le compte {account.display_name}: {result.error}",
                )
                return
            for app_data in result.apps:
                self._sync_one(instance, account, app_data, mode, stats)
            if not result.has_more or not result.apps:
                return
            page += 1

    def _sync_one(
        self,
        instance: DifyInstanceORM,
        account: DifyAccountORM,
        app_data: dict[str, Any],
        mode: str | None,
        stats: dict[str, Any],
    ) -> None:
        remote_mode = app_data.get("mode")
        remote_id = app_data.get("id")
        if not isinstance(remote_mode, str) or not isinstance(remote_id, str):
            self._error(
                stats, f"Données d'application invalides (compte {account.id}): id ou mode absent"
            )
            return
        if mode is not None and remote_mode != mode:
            return
        kind = kind_for_mode(remote_mode)
        if kind is None:
            stats["skipped_apps"] += 1
            log.warning(
                "app_sync_unsupported_mode",
                mode=remote_mode,
                dify_app_id=remote_id,
                name=app_data.get("name", "unknown"),
            )
            return

        detail = self._gateway.get_app_detail(instance.base_url, account.access_token, remote_id)
        if detail.success and detail.app_data:
            app_data = {**app_data, **detail.app_data}
        else:
            log.debug("app_detail_unavailable", dify_app_id=remote_id, error=detail.error)

        app = self._apps.find_by_remote_id(instance.id, remote_id)
        is_new = app is None
        if app is None:
            app = DifyAppORM(instance_id=instance.id, dify_app_id=remote_id)
        self._apply(app, account, app_data, kind, remote_mode)
        if is_new:
            self._apps.add(app)
            stats["created_apps"] += 1
        else:
            app.touch()
            stats["updated_apps"] += 1
        if "site" in app_data:
            self._sync_site(app, app_data["site"], remote_mode, stats)
        stats["synced_apps"] += 1
        stats["app_types"][kind.value] = stats["app_types"].get(kind.value, 0) + 1

    @staticmethod
    def _sync_site(
        app: DifyAppORM, site_data: Any, remote_mode: str, stats: dict[str, Any]
    ) -> None:
        """Recopie le bloc `site`; un bloc vide ou sans code détache le site existant."""
        fields = extract_site_fields(site_data, remote_mode)
        if fields is None:
            if app.site is not None:
                app.site = None
                stats["removed_sites"] += 1
            return
        site = app.site
        if site is None:
            site = DifySiteORM(**fields)
            app.site = site
            stats["created_sites"] += 1
        else:
            for key, value in fields.items():
                setattr(site, key, value)
            site.touch()
            stats["updated_sites"] += 1
        site.last_sync_at = utcnow()
        stats["synced_sites"] += 1

    @staticmethod
    def _apply(
        app: DifyAppORM,
        account: DifyAccountORM,
        app_data: dict[str, Any],
        kind: AppKind,
        remote_mode: str,
    ) -> None:
        app.account_id = account.id
        app.name = str(app_data.get("name") or app.name or app.dify_app_id)
        app.description = app_data.get("description") or None
        app.icon = app_data.get("icon") or None
        app.is_public = bool(app_data.get("is_public", False))
        created_by = app_data.get("created_by")
        app.created_by_dify_user = created_by if isinstance(created_by, str) else None
        app.dify_created_at = from_unix(app_data.get("created_at"))
        app.dify_updated_at = from_unix(app_data.get("updated_at"))
        app.kind = kind.value
        app.mode = remote_mode
        app.kind_config = extract_kind_config(kind, app_data)

    @staticmethod
    def _error(stats: dict[str, Any], message: str) -> None:
        stats["errors"] += 1
        stats["error_details"].append(message)
        log.warning("app_sync_error", error=message)
