"""
Routes d'administration des applications Dify et de leurs versions DSL.

Ce module regroupe les endpoints `/admin/apps` : liste du miroir local, synchronisation de la liste
distante, synchronisation du DSL d'une application, consultation de l'historique et purge.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from dify_console.api.deps import get_app_sync_service, get_dsl_sync_service, get_session
from dify_console.api.schemas import (
    AppOut,
    AppSyncRequest,
    DslVersionOut,
    DslVersionSummary,
    PruneResponse,
)
from dify_console.domain.errors import NotFoundError
from dify_console.infra.repo.console_repo import AppRepo
from dify_console.infra.repo.dsl_version_repo import DslVersionRepo
from dify_console.services.app_sync import AppSyncService
from dify_console.services.dsl_sync import DslSyncService

router = APIRouter(prefix="/admin/apps", tags=["apps"])
session_dep = Depends(get_session)
dsl_sync_dep = Depends(get_dsl_sync_service)
app_sync_dep = Depends(get_app_sync_service)


def _require_app(session: Session, app_id: int):
    try:
        return AppRepo(session).require(app_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="App not found") from err


@router.get("", response_model=list[AppOut])
def list_apps(
    instance_id: int | None = None,
    account_id: int | None = None,
    kind: str | None = None,
    session: Session = session_dep,
):
    """Liste les applications synchronisées."""
    return AppRepo(session).list(instance_id=instance_id, account_id=account_id, kind=kind)


@router.post("/sync")
def sync_apps(payload: AppSyncRequest | None = None, service: AppSyncService = app_sync_dep):
    """Synchronise la liste des applications distantes et retourne les statistiques."""
    payload = payload or AppSyncRequest()
    try:
        return service.sync_apps(
            instance_id=payload.instance_id, account_id=payload.account_id, mode=payload.mode
        )
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail=str(err)) from err


@router.post("/{app_id}/dsl/sync")
def sync_app_dsl(app_id: int, service: DslSyncService = dsl_sync_dep):
    """
    Synchronise le DSL d'une application.

    Retour: `{success, created, message, version?, dsl_hash?, pruned?, error?}`. Un échec de
    récupération distante répond 200 avec `success=false`.
    """
    try:
        result = service.sync(app_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="App not found") from err
    return result.as_dict()


@router.get("/{app_id}/dsl/versions", response_model=list[DslVersionSummary])
def list_dsl_versions(app_id: int, session: Session = session_dep):
    """Historique DSL de l'application, version la plus récente d'abord."""
    _require_app(session, app_id)
    return [
        DslVersionSummary(
            version=v.version, dsl_hash=v.dsl_hash, sync_time=v.sync_time, created_at=v.created_at
        )
        for v in DslVersionRepo(session).history(app_id)
    ]


@router.get("/{app_id}/dsl/versions/{version}", response_model=DslVersionOut)
def get_dsl_version(app_id: int, version: int, session: Session = session_dep):
    """Retourne une version DSL précise (contenu structuré et YAML brut)."""
    _require_app(session, app_id)
    found = DslVersionRepo(session).by_version_number(app_id, version)
    if found is None:
        raise HTTPException(status_code=404, detail="Version not found")
    return DslVersionOut(
        version=found.version,
        dsl_hash=found.dsl_hash,
        sync_time=found.sync_time,
        created_at=found.created_at,
        dsl_content=found.dsl_content,
        dsl_raw_content=found.dsl_raw_content,
    )


@router.post("/{app_id}/dsl/prune", response_model=PruneResponse)
def prune_dsl_versions(app_id: int, keep: int = Query(ge=0), session: Session = session_dep):
    """Supprime les versions au-delà des `keep` plus récentes."""
    _require_app(session, app_id)
    repo = DslVersionRepo(session)
    deleted = repo.prune_oldest(app_id, keep)
    return PruneResponse(deleted=deleted, remaining=repo.count_for(app_id))
