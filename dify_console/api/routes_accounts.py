"""
Routes d'administration des comptes Dify (`/admin/accounts`).

Le mot de passe est accepté en écriture mais jamais renvoyé; le token de session reste interne.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dify_console.api.deps import get_account_service, get_session
from dify_console.api.schemas import AccountCreate, AccountOut, AccountUpdate, LoginResponse
from dify_console.domain.errors import NotFoundError
from dify_console.infra.repo.console_repo import AccountRepo, InstanceRepo
from dify_console.services.account_service import AccountService

router = APIRouter(prefix="/admin/accounts", tags=["accounts"])
session_dep = Depends(get_session)
account_service_dep = Depends(get_account_service)


@router.get("", response_model=list[AccountOut])
def list_accounts(
    instance_id: int | None = None, enabled_only: bool = False, session: Session = session_dep
):
    """Liste les comptes, éventuellement pour une seule instance."""
    return AccountRepo(session).list(instance_id=instance_id, enabled_only=enabled_only)


@router.post("", response_model=AccountOut, status_code=201)
def create_account(payload: AccountCreate, session: Session = session_dep):
    """Déclare un compte sur une instance existante."""
    if InstanceRepo(session).get(payload.instance_id) is None:
        raise HTTPException(status_code=404, detail="Instance not found")
    try:
        return AccountRepo(session).create(
            instance_id=payload.instance_id,
            email=payload.email,
            password=payload.password,
            nickname=payload.nickname,
            is_enabled=payload.is_enabled,
        )
    except IntegrityError as err:
        raise HTTPException(status_code=409, detail="Account already exists") from err


@router.patch("/{account_id}", response_model=AccountOut)
def update_account(account_id: int, payload: AccountUpdate, session: Session = session_dep):
    """Modifie les champs fournis d'un compte (409 si l'email est déjà pris sur l'instance)."""
    try:
        return AccountRepo(session).update(
            account_id,
            email=payload.email,
            password=payload.password,
            nickname=payload.nickname,
            is_enabled=payload.is_enabled,
        )
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Account not found") from err
    except IntegrityError as err:
        raise HTTPException(status_code=409, detail="Account already exists") from err


def _set_enabled(session: Session, account_id: int, enabled: bool):
    try:
        return AccountRepo(session).set_enabled(account_id, enabled)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Account not found") from err


@router.post("/{account_id}/enable", response_model=AccountOut)
def enable_account(account_id: int, session: Session = session_dep):
    return _set_enabled(session, account_id, True)


@router.post("/{account_id}/disable", response_model=AccountOut)
def disable_account(account_id: int, session: Session = session_dep):
    return _set_enabled(session, account_id, False)


@router.post("/{account_id}/login", response_model=LoginResponse)
def login_account(account_id: int, service: AccountService = account_service_dep):
    """Connecte le compte à son instance et mémorise le token obtenu."""
    try:
        result = service.login(account_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Account not found") from err
    return LoginResponse(success=result.success, expires_at=result.expires_at, error=result.error)
