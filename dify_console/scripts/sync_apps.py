"""
Synchronise la liste des applications Dify (toutes instances/comptes actifs par défaut).

Usage:
    dify-sync-apps [--instance 1] [--account 3] [--mode workflow]
"""

from __future__ import annotations

import argparse

from dify_console.core.container import container
from dify_console.core.logging import setup_logging
from dify_console.domain.errors import NotFoundError
from dify_console.infra.repo.db import session_scope
from dify_console.services.app_sync import AppSyncService


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="dify-sync-apps")
    parser.add_argument("-i", "--instance", type=int, help="Limite à une instance")
    parser.add_argument("-a", "--account", type=int, help="Limite à un compte")
    parser.add_argument("-m", "--mode", help="Mode distant (chat, workflow, advanced-chat, ...)")
    args = parser.parse_args(argv)
    setup_logging(container.settings.LOG_LEVEL)

    try:
        with session_scope(container.session_factory) as session:
            service = AppSyncService(
                session, container.gateway, container.settings.DIFY_APPS_PAGE_LIMIT
            )
            stats = service.sync_apps(
                instance_id=args.instance, account_id=args.account, mode=args.mode
            )
    except NotFoundError as err:
        print(f"erreur: {err}")
        return 1

    print(
        f"instances={stats['processed_instances']} comptes={stats['processed_accounts']} "
        f"applications={stats['synced_apps']} créées={stats['created_apps']} "
        f"mises_à_jour={stats['updated_apps']} ignorées={stats['skipped_apps']} "
        f"sites={stats['synced_sites']} "
        f"erreurs={stats['errors']}"
    )
    for kind, count in sorted(stats["app_types"].items()):
        print(f"  {kind}: {count}")
    for detail in stats["error_details"]:
        print(f"  - {detail}")
    return 1 if stats["errors"] else 0


if __name__ == "__main__":  # pragma: no cover - script entry
    raise SystemExit(main())
