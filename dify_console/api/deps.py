"""Dépendances partagées pour les routes de l'API.

But du module
-------------
- Centraliser la création des sessions SQL et des services utilisés par les endpoints.
- Offrir des points de surcharge (`app.dependency_overrides`) pour les tests, sans modifier les
  routes.
"""

from collections.abc import Iterator

from fastapi import Depends
from sqlalchemy.orm import Session

from dify_console.core.container import container
from dify_console.infra.repo.db import session_scope
from dify_console.services.account_service import AccountService
from dify_console.services.app_sync import AppSyncService
from dify_console.services.dsl_sync import DslSyncService
from dify_console.services.instance_service import InstanceService


def get_session() -> Iterator[Session]:
    """Session transactionnelle par requête (commit en sortie, rollback sur erreur)."""
    with session_scope(container.session_factory) as session:
        yield session


def get_gateway():
    """Passerelle Dify Console API partagée."""
    return container.gateway


def get_dsl_sync_service(
    session: Session = Depends(get_session), gateway=Depends(get_gateway)
) -> DslSyncService:
    return DslSyncService(session, gateway, container.settings.DSL_RETENTION_LIMIT)


def get_account_service(
    session: Session = Depends(get_session), gateway=Depends(get_gateway)
) -> AccountService:
    return AccountService(session, gateway)


def get_app_sync_service(
    session: Session = Depends(get_session), gateway=Depends(get_gateway)
) -> AppSyncService:
    return AppSyncService(session, gateway, container.settings.DIFY_APPS_PAGE_LIMIT)


def get_instance_service(
    session: Session = Depends(get_session), gateway=Depends(get_gateway)
) -> InstanceService:
    return InstanceService(session, gateway)
