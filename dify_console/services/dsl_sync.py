# ============================================================
# Module : dify_console/services/dsl_sync.py
# Objet  : Orchestration de la synchronisation DSL d'une application.
# Contexte : export distant -> empreinte -> comparaison avec la dernière
#            version -> ajout d'une version -> rétention.
# Invariants :
#  - Un échec de récupération distante ne stocke rien et ne lève pas.
#  - Contenu inchangé (même empreinte que la dernière version) => aucune écriture de version.
#  - Les erreurs de stockage/rétention se propagent à l'appelant.
# ============================================================
"""Service de synchronisation des DSL d'applications Dify."""

from __future__ import annotations

from collections.abc import Iterable

import structlog
from sqlalchemy.orm import Session

from dify_console.app.metrics import DSL_SYNC_TOTAL, DSL_VERSIONS_PRUNED
from dify_console.core.clock import utcnow
from dify_console.domain.fingerprint import fingerprint
from dify_console.domain.results import SyncResult, SyncStats
from dify_console.infra.repo.console_repo import AppRepo
from dify_console.infra.repo.dsl_version_repo import DslVersionRepo
from dify_console.infra.repo.models import DifyAppORM

log = structlog.get_logger(__name__)


class DslSyncService:
    """Synchronise le DSL distant d'une application vers le magasin de versions.

    Le `gateway` doit exposer `export_dsl(base_url, token, app_id) -> AppDslExportResult`
    (voir `infra.dify_client.DifyConsoleClient`).
    """

    def __init__(self, session: Session, gateway, retention_limit: int = 10) -> None:
        if retention_limit < 0:
            raise ValueError("retention_limit doit être >= 0")
        self._session = session
        self._gateway = gateway
        self._retention_limit = retention_limit
        self._apps = AppRepo(session)
        self._versions = DslVersionRepo(session)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def versions(self) -> DslVersionRepo:
        return self._versions

    def sync(self, application_id: int) -> SyncResult:
        """Synchronise l'application d'identifiant local `application_id`.

        Lève NotFoundError si l'application n'existe pas.
        """
        return self.sync_app(self._apps.require(application_id))

    def sync_app(self, app: DifyAppORM) -> SyncResult:
        """Synchronise une application déjà chargée."""
        account = app.account
        instance = app.instance
        if account is None or instance is None:
            return self._failed(app, "Application sans compte ou instance associé")
        if not account.is_enabled:
            return self._failed(app, f"Le compte {account.display_name} est désactivé")
        if account.is_token_expired():
            return self._failed(
                app,
                f"Token expiré pour le compte {account.display_name}, reconnectez le compte",
            )

        export = self._gateway.export_dsl(instance.base_url, account.access_token, app.dify_app_id)
        if not export.success:
            return self._failed(app, export.error or "Échec de l'export DSL")

        content = export.dsl_content or {}
        dsl_hash = fingerprint(content)
        latest = self._versions.latest(app.id)
        app.last_sync_at = utcnow()

        if latest is not None and latest.dsl_hash == dsl_hash:
            DSL_SYNC_TOTAL.labels("unchanged").inc()
            log.info("dsl_sync_unchanged", app_id=app.id, version=latest.version)
            self._session.flush()
            return SyncResult(
                success=True,
                created=False,
                message="Contenu DSL inchangé",
                version=latest.version,
                dsl_hash=dsl_hash,
            )

        created = self._versions.append(app.id, content, dsl_hash, export.raw_content)
        # la version tout juste ajoutée est toujours conservée
        pruned = self._versions.prune_oldest(app.id, max(self._retention_limit, 1))
        self._session.flush()
        DSL_SYNC_TOTAL.labels("created").inc()
        if pruned:
            DSL_VERSIONS_PRUNED.inc(pruned)
        log.info(
            "dsl_sync_new_version",
            app_id=app.id,
            version=created.version,
            dsl_hash=created.short_hash,
            pruned=pruned,
        )
        return SyncResult(
            success=True,
            created=True,
            message=f"Nouvelle version v{created.version}",
            version=created.version,
            dsl_hash=dsl_hash,
            pruned=pruned,
        )

    def sync_many(self, apps: Iterable[DifyAppORM]) -> SyncStats:
        """Synchronise une série d'applications et agrège les résultats."""
        stats = SyncStats()
        for app in apps:
            stats.total += 1
            result = self.sync_app(app)
            if not result.success and result.error:
                result = SyncResult(
                    success=False,
                    created=False,
                    message=result.message,
                    error=f"{app.name}: {result.error}",
                )
            stats.record(result)
        log.info(
            "dsl_sync_batch_done",
            total=stats.total,
            new_versions=stats.new_versions,
            no_changes=stats.no_changes,
            errors=stats.errors,
        )
        return stats

    @staticmethod
    def _failed(app: DifyAppORM, error: str) -> SyncResult:
        DSL_SYNC_TOTAL.labels("failed").inc()
        log.warning("dsl_sync_failed", app_id=app.id, dify_app_id=app.dify_app_id, error=error)
        return SyncResult(
            success=False,
            created=False,
            message=f"Échec de synchronisation: {error}",
            error=error,
        )
