"""Routes d'administration des instances Dify (`/admin/instances`)."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from dify_console.api.deps import get_instance_service, get_session
from dify_console.api.schemas import (
    ConnectionTestOut,
    ConnectionTestSummary,
    InstanceCreate,
    InstanceOut,
    InstanceUpdate,
)
from dify_console.domain.errors import NotFoundError
from dify_console.infra.repo.console_repo import InstanceRepo
from dify_console.services.instance_service import InstanceService

router = APIRouter(prefix="/admin/instances", tags=["instances"])
session_dep = Depends(get_session)
instance_service_dep = Depends(get_instance_service)


@router.get("", response_model=list[InstanceOut])
def list_instances(enabled_only: bool = False, session: Session = session_dep):
    """Liste les instances déclarées."""
    return InstanceRepo(session).list(enabled_only=enabled_only)


@router.post("", response_model=InstanceOut, status_code=201)
def create_instance(payload: InstanceCreate, session: Session = session_dep):
    """Déclare une nouvelle instance."""
    return InstanceRepo(session).create(
        name=payload.name,
        base_url=str(payload.base_url),
        description=payload.description,
        is_enabled=payload.is_enabled,
    )


@router.patch("/{instance_id}", response_model=InstanceOut)
def update_instance(instance_id: int, payload: InstanceUpdate, session: Session = session_dep):
    """Modifie les champs fournis d'une instance."""
    try:
        return InstanceRepo(session).update(
            instance_id,
            name=payload.name,
            base_url=str(payload.base_url) if payload.base_url is not None else None,
            description=payload.description,
            is_enabled=payload.is_enabled,
        )
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Instance not found") from err


def _set_enabled(session: Session, instance_id: int, enabled: bool):
    try:
        return InstanceRepo(session).set_enabled(instance_id, enabled)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Instance not found") from err


@router.post("/{instance_id}/enable", response_model=InstanceOut)
def enable_instance(instance_id: int, session: Session = session_dep):
    return _set_enabled(session, instance_id, True)


@router.post("/{instance_id}/disable", response_model=InstanceOut)
def disable_instance(instance_id: int, session: Session = session_dep):
    return _set_enabled(session, instance_id, False)


@router.post("/test-connections", response_model=ConnectionTestSummary)
def test_all_connections(service: InstanceService = instance_service_dep):
    """Teste la connexion de toutes les instances déclarées."""
    results = service.test_all()
    return ConnectionTestSummary(
        total_count=len(results),
        success_count=sum(1 for r in results if r.success),
        results=[ConnectionTestOut.model_validate(r) for r in results],
    )


@router.post("/{instance_id}/test-connection", response_model=ConnectionTestOut)
def test_instance_connection(instance_id: int, service: InstanceService = instance_service_dep):
    """Teste la connexion d'une instance (login d'un compte actif, token non conservé)."""
    try:
        return service.test_connection(instance_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Instance not found") from err
