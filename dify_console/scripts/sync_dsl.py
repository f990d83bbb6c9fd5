"""
Synchronise le DSL des applications Dify vers le magasin de versions.

Usage:
    dify-sync-dsl --app-id 12
    dify-sync-dsl --all [--instance 1] [--account 3] [--dry-run]

Code de sortie 1 dès qu'une synchronisation échoue.
"""

from __future__ import annotations

import argparse

import structlog

from dify_console.core.container import container
from dify_console.core.logging import setup_logging
from dify_console.domain.errors import NotFoundError
from dify_console.infra.repo.console_repo import AccountRepo, AppRepo
from dify_console.infra.repo.db import session_scope
from dify_console.services.dsl_sync import DslSyncService

log = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dify-sync-dsl", description="Synchronise le DSL des applications Dify."
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--app-id", type=int, help="Identifiant local de l'application")
    target.add_argument("--all", action="store_true", help="Synchronise toutes les applications")
    parser.add_argument("-i", "--instance", type=int, help="Limite à une instance")
    parser.add_argument("-a", "--account", type=int, help="Limite à un compte")
    parser.add_argument(
        "--dry-run", action="store_true", help="Affiche les applications sans synchroniser"
    )
    return parser


def _sync_one(service: DslSyncService, app_id: int, dry_run: bool) -> int:
    try:
        app = AppRepo(service.session).require(app_id)
    except NotFoundError as err:
        print(f"erreur: {err}")
        return 1
    print(f"application: {app.name} (id={app.id})")
    if dry_run:
        print("dry-run: aucune synchronisation effectuée")
        return 0
    result = service.sync_app(app)
    if not result.success:
        print(f"échec: {result.message}")
        return 1
    print(result.message)
    return 0


def _sync_all(
    service: DslSyncService, instance_id: int | None, account_id: int | None, dry_run: bool
) -> int:
    session = service.session
    if account_id is not None and AccountRepo(session).get(account_id) is None:
        print(f"erreur: compte {account_id} introuvable")
        return 1
    apps = AppRepo(session).list(instance_id=instance_id, account_id=account_id)
    if not apps:
        print("aucune application trouvée")
        return 0
    print(f"{len(apps)} application(s) trouvée(s)")
    if dry_run:
        for app in apps:
            print(f"  {app.id}\t{app.name}\t{app.kind}\t{app.instance.name}")
        return 0
    stats = service.sync_many(apps)
    print(
        f"total={stats.total} succès={stats.success} nouvelles={stats.new_versions} "
        f"inchangées={stats.no_changes} erreurs={stats.errors}"
    )
    for detail in stats.error_details:
        print(f"  - {detail}")
    return 1 if stats.errors else 0


def main(argv: list[str] | None = None) -> int:
    """Point d'entrée `dify-sync-dsl`."""
    args = build_parser().parse_args(argv)
    setup_logging(container.settings.LOG_LEVEL)
    try:
        with session_scope(container.session_factory) as session:
            service = DslSyncService(
                session, container.gateway, container.settings.DSL_RETENTION_LIMIT
            )
            if args.app_id is not None:
                return _sync_one(service, args.app_id, args.dry_run)
            return _sync_all(service, args.instance, args.account, args.dry_run)
    except Exception as exc:
        log.error("dsl_sync_command_failed", error=str(exc), exc_info=True)
        print(f"erreur: {exc}")
        return 1


if __name__ == "__main__":  # pragma: no cover - script entry
    raise SystemExit(main())
